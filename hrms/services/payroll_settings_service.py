# hrms/services/payroll_settings_service.py
import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrms.core.exceptions import InvalidInput, NotFound
from hrms.database import run_in_transaction
from hrms.models.models import Employee, PayrollSettings

logger = logging.getLogger("payroll")


@dataclass(frozen=True)
class PayrollSettingsValue:
    hourly_rate: Decimal
    overtime_rate: Decimal
    regular_hours_per_day: Decimal
    bonus: Decimal
    deductions: Decimal
    working_days_per_month: int = 22
    effective_from: Optional[date] = None
    is_default: bool = False


def default_payroll_settings() -> PayrollSettingsValue:
    """Settings used when an employee has no settings version yet."""
    return PayrollSettingsValue(
        hourly_rate=Decimal("15.00"),
        overtime_rate=Decimal("22.50"),
        regular_hours_per_day=Decimal("8.00"),
        bonus=Decimal("0.00"),
        deductions=Decimal("0.00"),
        working_days_per_month=22,
        is_default=True,
    )


def _dec(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _to_value(row: PayrollSettings) -> PayrollSettingsValue:
    return PayrollSettingsValue(
        hourly_rate=_dec(row.hourly_rate),
        overtime_rate=_dec(row.overtime_rate),
        regular_hours_per_day=_dec(row.regular_hours_per_day),
        bonus=_dec(row.bonus or 0),
        deductions=_dec(row.deductions or 0),
        working_days_per_month=row.working_days_per_month or 22,
        effective_from=row.effective_from,
    )


class PayrollSettingsService:
    """Versioned payroll settings lookup, keyed by effective_from."""

    def __init__(self, session_factory: async_sessionmaker, today: Callable[[], date] = date.today):
        self.session_factory = session_factory
        self.today = today

    async def current(self, session: AsyncSession, employee_id: int, as_of: Optional[date] = None) -> PayrollSettingsValue:
        """
        Latest version with effective_from <= as_of (ties go to the most
        recently inserted row), or the defaults when none exists.
        """
        as_of = as_of or self.today()
        row = (
            await session.execute(
                select(PayrollSettings)
                .filter(
                    PayrollSettings.employee_id == employee_id,
                    PayrollSettings.effective_from <= as_of,
                )
                .order_by(PayrollSettings.effective_from.desc(), PayrollSettings.id.desc())
                .limit(1)
            )
        ).scalars().first()

        if row is None:
            return default_payroll_settings()
        return _to_value(row)

    async def get_for_employee(self, employee_id: int) -> PayrollSettingsValue:
        async with self.session_factory() as session:
            if await session.get(Employee, employee_id) is None:
                raise NotFound("Employee not found")
            return await self.current(session, employee_id)

    async def save(
        self,
        employee_id: int,
        hourly_rate,
        overtime_rate,
        regular_hours_per_day=Decimal("8.00"),
        working_days_per_month: int = 22,
        bonus=Decimal("0.00"),
        deductions=Decimal("0.00"),
    ) -> PayrollSettingsValue:
        """Write a settings version effective today (replacing today's version if any)."""
        values = replace(
            default_payroll_settings(),
            hourly_rate=_dec(hourly_rate),
            overtime_rate=_dec(overtime_rate),
            regular_hours_per_day=_dec(regular_hours_per_day),
            working_days_per_month=int(working_days_per_month),
            bonus=_dec(bonus),
            deductions=_dec(deductions),
            is_default=False,
        )
        for name in ("hourly_rate", "overtime_rate", "regular_hours_per_day", "bonus", "deductions"):
            if getattr(values, name) < 0:
                raise InvalidInput(f"{name} must be >= 0")

        effective_from = self.today()

        async def work(session: AsyncSession) -> PayrollSettingsValue:
            if await session.get(Employee, employee_id) is None:
                raise NotFound("Employee not found")

            row = (
                await session.execute(
                    select(PayrollSettings).filter(
                        PayrollSettings.employee_id == employee_id,
                        PayrollSettings.effective_from == effective_from,
                    )
                )
            ).scalars().first()
            if row is None:
                row = PayrollSettings(employee_id=employee_id, effective_from=effective_from)
                session.add(row)

            row.hourly_rate = values.hourly_rate
            row.overtime_rate = values.overtime_rate
            row.regular_hours_per_day = values.regular_hours_per_day
            row.working_days_per_month = values.working_days_per_month
            row.bonus = values.bonus
            row.deductions = values.deductions
            await session.flush()

            logger.info(f"[PAYROLL] Settings saved for emp={employee_id} effective {effective_from}")
            return replace(values, effective_from=effective_from)

        return await run_in_transaction(self.session_factory, work)
