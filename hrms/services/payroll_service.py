# hrms/services/payroll_service.py
"""
Payroll calculation.

Attendance for a pay period is split into regular and overtime hours one
day at a time: each qualifying day contributes min(h, R) regular hours and
max(0, h - R) overtime hours, where R is the employee's
regular_hours_per_day. The split is never applied to the period total.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Iterable, List, Optional, Tuple, Union

from sqlalchemy import case, extract, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrms.core.exceptions import InvalidInput, NotFound
from hrms.database import run_in_transaction
from hrms.models.models import Employee, PayrollRecord, PayrollStatus
from hrms.services.attendance_service import AttendanceService
from hrms.services.payroll_settings_service import PayrollSettingsService, PayrollSettingsValue
from hrms.utils.dates import DateLike, parse_date

logger = logging.getLogger("payroll")

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Draft is the implicit pre-calculation state, never an explicit target
TRANSITION_TARGETS = (PayrollStatus.CALCULATED, PayrollStatus.APPROVED, PayrollStatus.PAID)
_STATUS_ORDER = {
    PayrollStatus.DRAFT: 0,
    PayrollStatus.CALCULATED: 1,
    PayrollStatus.APPROVED: 2,
    PayrollStatus.PAID: 3,
}


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


@dataclass
class AttendanceSummary:
    working_days: int = 0
    regular_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO

    @property
    def total_hours(self) -> Decimal:
        return self.regular_hours + self.overtime_hours

    def as_dict(self) -> dict:
        return {
            "working_days": self.working_days,
            "total_hours": float(self.total_hours),
            "regular_hours": float(self.regular_hours),
            "overtime_hours": float(self.overtime_hours),
        }


@dataclass
class PayBreakdown:
    regular_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal
    bonus: Decimal
    deductions: Decimal
    net_pay: Decimal


def split_daily_hours(hours_worked, regular_hours_per_day) -> Tuple[Decimal, Decimal]:
    """Return (regular, overtime) for a single day's hours."""
    hours = max(ZERO, _dec(hours_worked))
    cap = _dec(regular_hours_per_day)
    if hours <= cap:
        return hours, ZERO
    return cap, hours - cap


def summarize_attendance(daily_hours: Iterable, regular_hours_per_day) -> AttendanceSummary:
    summary = AttendanceSummary()
    for hours in daily_hours:
        regular, overtime = split_daily_hours(hours, regular_hours_per_day)
        summary.working_days += 1
        summary.regular_hours += regular
        summary.overtime_hours += overtime
    return summary


def compute_pay(summary: AttendanceSummary, settings: PayrollSettingsValue) -> PayBreakdown:
    # net pay is not floored; deductions above gross give a negative net
    regular_pay = _quantize(summary.regular_hours * settings.hourly_rate)
    overtime_pay = _quantize(summary.overtime_hours * settings.overtime_rate)
    bonus = _quantize(settings.bonus)
    deductions = _quantize(settings.deductions)
    gross_pay = regular_pay + overtime_pay + bonus
    return PayBreakdown(
        regular_pay=regular_pay,
        overtime_pay=overtime_pay,
        gross_pay=gross_pay,
        bonus=bonus,
        deductions=deductions,
        net_pay=gross_pay - deductions,
    )


def parse_payroll_status(value: Union[PayrollStatus, str], allowed=TRANSITION_TARGETS) -> PayrollStatus:
    try:
        status = PayrollStatus(value)
    except ValueError:
        raise InvalidInput(f"Invalid status: {value!r}")
    if status not in allowed:
        raise InvalidInput(f"Invalid status: {status.value}")
    return status


class PayrollService:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        settings_service: Optional[PayrollSettingsService] = None,
        attendance_service: Optional[AttendanceService] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.session_factory = session_factory
        self.settings_service = settings_service or PayrollSettingsService(session_factory)
        self.attendance_service = attendance_service or AttendanceService(session_factory)
        self.now = now

    async def _get_record(self, session: AsyncSession, record_id: int) -> Optional[PayrollRecord]:
        return (
            await session.execute(
                select(PayrollRecord)
                .filter(PayrollRecord.id == record_id)
                .execution_options(populate_existing=True)
            )
        ).scalars().first()

    async def _find_period(self, session: AsyncSession, employee_id: int, start_date: date, end_date: date) -> Optional[PayrollRecord]:
        return (
            await session.execute(
                select(PayrollRecord).filter(
                    PayrollRecord.employee_id == employee_id,
                    PayrollRecord.pay_period_start == start_date,
                    PayrollRecord.pay_period_end == end_date,
                )
            )
        ).scalars().first()

    @staticmethod
    def _apply(record: PayrollRecord, summary: AttendanceSummary, settings: PayrollSettingsValue, pay: PayBreakdown) -> None:
        record.regular_hours = summary.regular_hours
        record.overtime_hours = summary.overtime_hours
        record.total_hours = summary.total_hours
        record.hourly_rate = settings.hourly_rate
        record.overtime_rate = settings.overtime_rate
        record.regular_pay = pay.regular_pay
        record.overtime_pay = pay.overtime_pay
        record.gross_pay = pay.gross_pay
        record.bonus = pay.bonus
        record.deductions = pay.deductions
        record.net_pay = pay.net_pay
        record.status = PayrollStatus.CALCULATED

    async def calculate(self, employee_id: int, start_date: DateLike, end_date: DateLike) -> Tuple[PayrollRecord, AttendanceSummary]:
        """
        Aggregate attendance for [start_date, end_date] and upsert the payroll
        record for that period.

        An inverted range matches no attendance and yields a zero record.
        Recalculating an existing period overwrites its numbers and resets
        its status to Calculated; approved_at and paid_at are left alone.
        """
        start_date = parse_date(start_date, "start_date")
        end_date = parse_date(end_date, "end_date")

        async def work(session: AsyncSession) -> Tuple[PayrollRecord, AttendanceSummary]:
            if await session.get(Employee, employee_id) is None:
                raise NotFound("Employee not found")

            settings = await self.settings_service.current(session, employee_id)
            rows = await self.attendance_service.working_rows(session, employee_id, start_date, end_date)
            summary = summarize_attendance((row.hours_worked for row in rows), settings.regular_hours_per_day)
            pay = compute_pay(summary, settings)

            record = await self._find_period(session, employee_id, start_date, end_date)
            if record is None:
                record = PayrollRecord(
                    employee_id=employee_id,
                    pay_period_start=start_date,
                    pay_period_end=end_date,
                    generated_at=self.now(),
                )
                self._apply(record, summary, settings, pay)
                try:
                    async with session.begin_nested():
                        session.add(record)
                except IntegrityError:
                    # another calculation inserted the period first; last write wins
                    record = await self._find_period(session, employee_id, start_date, end_date)
                    if record is None:
                        raise
                    self._apply(record, summary, settings, pay)
            else:
                self._apply(record, summary, settings, pay)

            await session.flush()
            logger.info(
                f"[PAYROLL] Emp {employee_id} {start_date}..{end_date}: "
                f"days={summary.working_days} reg={summary.regular_hours} ot={summary.overtime_hours} "
                f"net={pay.net_pay}{' (default settings)' if settings.is_default else ''}"
            )
            return await self._get_record(session, record.id), summary

        return await run_in_transaction(self.session_factory, work)

    async def transition(self, record_id: int, new_status: Union[PayrollStatus, str], notes: Optional[str] = None) -> PayrollRecord:
        """Move a record to Calculated, Approved or Paid, stamping approved_at / paid_at."""
        new_status = parse_payroll_status(new_status)

        async def work(session: AsyncSession) -> PayrollRecord:
            record = await session.get(PayrollRecord, record_id)
            if record is None:
                raise NotFound("Payroll record not found")

            old_status = PayrollStatus(record.status)
            if _STATUS_ORDER[new_status] < _STATUS_ORDER[old_status]:
                logger.warning(f"[PAYROLL] Record {record_id} moved backwards {old_status.value} -> {new_status.value}")

            record.status = new_status
            record.notes = notes
            if new_status == PayrollStatus.APPROVED:
                record.approved_at = self.now()
            elif new_status == PayrollStatus.PAID:
                record.paid_at = self.now()
            await session.flush()

            logger.info(f"[PAYROLL] Record {record_id}: {old_status.value} -> {new_status.value}")
            return await self._get_record(session, record_id)

        return await run_in_transaction(self.session_factory, work)

    async def list_records(
        self,
        employee_id: Optional[int] = None,
        status: Optional[str] = None,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
    ) -> List[PayrollRecord]:
        """Most recent period first, then by employee name."""
        query = select(PayrollRecord).join(Employee, PayrollRecord.employee_id == Employee.id)

        if employee_id:
            query = query.filter(PayrollRecord.employee_id == employee_id)
        if status and status != "All":
            query = query.filter(PayrollRecord.status == parse_payroll_status(status, allowed=tuple(PayrollStatus)))
        if start_date and end_date:
            query = query.filter(
                PayrollRecord.pay_period_start >= parse_date(start_date, "start_date"),
                PayrollRecord.pay_period_end <= parse_date(end_date, "end_date"),
            )

        query = query.order_by(PayrollRecord.pay_period_start.desc(), Employee.name)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().unique().all())

    async def stats(self, year: Optional[int] = None, month: Optional[int] = None) -> dict:
        today = self.now().date()
        year = year or today.year
        month = month or today.month
        if month < 1 or month > 12:
            raise InvalidInput("Invalid month")

        settled = PayrollRecord.status.in_((PayrollStatus.APPROVED, PayrollStatus.PAID))

        def count_status(status: PayrollStatus):
            return func.count(case((PayrollRecord.status == status, 1)))

        def settled_sum(column):
            return func.sum(case((settled, column), else_=0))

        async with self.session_factory() as session:
            row = (
                await session.execute(
                    select(
                        func.count(PayrollRecord.id).label("total_records"),
                        count_status(PayrollStatus.DRAFT).label("draft_count"),
                        count_status(PayrollStatus.CALCULATED).label("calculated_count"),
                        count_status(PayrollStatus.APPROVED).label("approved_count"),
                        count_status(PayrollStatus.PAID).label("paid_count"),
                        settled_sum(PayrollRecord.gross_pay).label("total_gross_pay"),
                        settled_sum(PayrollRecord.net_pay).label("total_net_pay"),
                        settled_sum(PayrollRecord.total_hours).label("total_hours_paid"),
                        func.avg(case((settled, PayrollRecord.net_pay))).label("average_net_pay"),
                    ).filter(
                        extract("year", PayrollRecord.pay_period_start) == year,
                        extract("month", PayrollRecord.pay_period_start) == month,
                    )
                )
            ).one()

        def money(value):
            return float(_quantize(_dec(value))) if value is not None else 0.0

        return {
            "year": year,
            "month": month,
            "total_records": row.total_records or 0,
            "draft_count": row.draft_count or 0,
            "calculated_count": row.calculated_count or 0,
            "approved_count": row.approved_count or 0,
            "paid_count": row.paid_count or 0,
            "total_gross_pay": money(row.total_gross_pay),
            "total_net_pay": money(row.total_net_pay),
            "total_hours_paid": money(row.total_hours_paid),
            "average_net_pay": money(row.average_net_pay) if row.average_net_pay is not None else None,
        }

    async def delete_record(self, record_id: int) -> None:
        async def work(session: AsyncSession) -> None:
            record = await session.get(PayrollRecord, record_id)
            if record is None:
                raise NotFound("Payroll record not found")
            await session.delete(record)
            logger.info(f"[PAYROLL] Record {record_id} deleted")

        await run_in_transaction(self.session_factory, work)
