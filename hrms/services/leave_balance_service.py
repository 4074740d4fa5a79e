# hrms/services/leave_balance_service.py
import logging
from datetime import date
from typing import Callable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrms.core.exceptions import ConflictOnAdjust, InvalidInput
from hrms.models.models import LeaveBalance, LeaveType

logger = logging.getLogger("leave")

DEFAULT_ALLOCATED_DAYS = 20


def parse_leave_type(value) -> LeaveType:
    try:
        return LeaveType(value)
    except ValueError:
        raise InvalidInput(f"Invalid leave type: {value!r}")


class LeaveBalanceService:
    """
    Allocated vs. used leave days per (employee, leave_type, year).

    Rows are only written through adjust(), which always runs inside the
    caller's transaction so the balance moves together with the leave
    request that caused it.
    """

    def __init__(self, session_factory: async_sessionmaker, today: Callable[[], date] = date.today):
        self.session_factory = session_factory
        self.today = today

    @staticmethod
    def _key(employee_id: int, leave_type: LeaveType, year: int):
        return (
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type == leave_type,
            LeaveBalance.year == year,
        )

    async def _relative_update(self, session: AsyncSession, employee_id: int, leave_type: LeaveType, year: int, delta_days: int) -> int:
        # single UPDATE so concurrent adjustments of one row never lose increments
        result = await session.execute(
            update(LeaveBalance)
            .where(*self._key(employee_id, leave_type, year))
            .values(used_days=LeaveBalance.used_days + delta_days)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def adjust(self, session: AsyncSession, employee_id: int, leave_type, year: int, delta_days: int) -> LeaveBalance:
        """
        Add delta_days to used_days, creating the row on first use.

        A new row starts at allocated=20, used=max(0, delta_days). Nothing is
        clamped: used_days may go negative and remaining_days may exceed the
        allocation.
        """
        leave_type = parse_leave_type(leave_type)

        if await self._relative_update(session, employee_id, leave_type, year, delta_days) == 0:
            try:
                async with session.begin_nested():
                    session.add(
                        LeaveBalance(
                            employee_id=employee_id,
                            leave_type=leave_type,
                            year=year,
                            allocated_days=DEFAULT_ALLOCATED_DAYS,
                            used_days=max(0, delta_days),
                        )
                    )
                logger.info(f"[BALANCE] Seeded emp={employee_id} {leave_type.value}/{year} used={max(0, delta_days)}")
            except IntegrityError:
                # created concurrently after our UPDATE missed it
                if await self._relative_update(session, employee_id, leave_type, year, delta_days) != 1:
                    raise ConflictOnAdjust(
                        f"Leave balance for employee {employee_id} {leave_type.value}/{year} could not be adjusted"
                    )
        else:
            logger.info(f"[BALANCE] emp={employee_id} {leave_type.value}/{year} used {delta_days:+d}")

        balance = (
            await session.execute(
                select(LeaveBalance)
                .where(*self._key(employee_id, leave_type, year))
                .execution_options(populate_existing=True)
            )
        ).scalars().first()
        if balance is None:
            raise ConflictOnAdjust(f"Leave balance for employee {employee_id} {leave_type.value}/{year} vanished")
        return balance

    async def balances(self, employee_id: int, year: Optional[int] = None) -> List[LeaveBalance]:
        year = year or self.today().year
        async with self.session_factory() as session:
            result = await session.execute(
                select(LeaveBalance)
                .filter(LeaveBalance.employee_id == employee_id, LeaveBalance.year == year)
                .order_by(LeaveBalance.leave_type)
            )
            return list(result.scalars().all())
