# hrms/services/leave_request_service.py
import logging
from datetime import date
from typing import Callable, List, Optional, Union

from sqlalchemy import case, extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrms.core.exceptions import InvalidInput, LeaveRequestConflict, NotFound
from hrms.database import run_in_transaction
from hrms.models.models import Employee, LeaveRequest, LeaveStatus, LeaveType
from hrms.services.leave_balance_service import LeaveBalanceService, parse_leave_type
from hrms.utils.dates import DateLike, parse_date

logger = logging.getLogger("leave")

REVIEW_DECISIONS = (LeaveStatus.APPROVED, LeaveStatus.REJECTED)


def days_requested(start_date: date, end_date: date) -> int:
    """Inclusive day count; start == end is one day."""
    return (end_date - start_date).days + 1


def parse_decision(value: Union[LeaveStatus, str]) -> LeaveStatus:
    try:
        decision = LeaveStatus(value)
    except ValueError:
        raise InvalidInput(f"Invalid status: {value!r}")
    if decision not in REVIEW_DECISIONS:
        raise InvalidInput(f"Invalid status: {decision.value}")
    return decision


class LeaveRequestService:
    """
    Pending -> Approved / Rejected, plus deletion.

    Approval accrues days_requested on the employee's balance and deleting
    an approved request reverses exactly that accrual. Each status change or
    deletion runs in one transaction with its balance adjustment.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        balance_service: Optional[LeaveBalanceService] = None,
        today: Callable[[], date] = date.today,
    ):
        self.session_factory = session_factory
        self.today = today
        self.balance_service = balance_service or LeaveBalanceService(session_factory, today=today)

    async def _get(self, session: AsyncSession, request_id: int) -> Optional[LeaveRequest]:
        return (
            await session.execute(
                select(LeaveRequest)
                .filter(LeaveRequest.id == request_id)
                .execution_options(populate_existing=True)
            )
        ).scalars().first()

    async def create(
        self,
        employee_id: int,
        leave_type: Union[LeaveType, str],
        start_date: DateLike,
        end_date: DateLike,
        reason: str,
    ) -> LeaveRequest:
        leave_type = parse_leave_type(leave_type)
        start_date = parse_date(start_date, "start_date")
        end_date = parse_date(end_date, "end_date")
        if not reason or not reason.strip():
            raise InvalidInput("Reason is required")

        days = days_requested(start_date, end_date)
        if days <= 0:
            raise InvalidInput("End date must be after start date")

        async def work(session: AsyncSession) -> LeaveRequest:
            if await session.get(Employee, employee_id) is None:
                raise NotFound("Employee not found")

            request = LeaveRequest(
                employee_id=employee_id,
                leave_type=leave_type,
                start_date=start_date,
                end_date=end_date,
                days_requested=days,
                reason=reason,
                status=LeaveStatus.PENDING,
                applied_date=self.today(),
            )
            session.add(request)
            await session.flush()
            logger.info(f"[LEAVE] Request {request.id} created: emp={employee_id} {leave_type.value} {days}d")
            return await self._get(session, request.id)

        return await run_in_transaction(self.session_factory, work)

    async def get(self, request_id: int) -> LeaveRequest:
        async with self.session_factory() as session:
            request = await self._get(session, request_id)
            if request is None:
                raise NotFound("Leave request not found")
            return request

    async def list_requests(self, status: Optional[str] = None, employee_id: Optional[int] = None) -> List[LeaveRequest]:
        query = select(LeaveRequest)
        if status and status != "All":
            try:
                query = query.filter(LeaveRequest.status == LeaveStatus(status))
            except ValueError:
                raise InvalidInput(f"Invalid status: {status!r}")
        if employee_id:
            query = query.filter(LeaveRequest.employee_id == employee_id)
        query = query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def review(self, request_id: int, decision: Union[LeaveStatus, str], admin_notes: Optional[str] = None) -> LeaveRequest:
        """
        Approve or reject a pending request.

        Only Pending requests can be reviewed; anything else raises
        LeaveRequestConflict so a second review can never double-count.
        If the balance adjustment fails the status change is rolled back too.
        """
        decision = parse_decision(decision)

        async def work(session: AsyncSession) -> LeaveRequest:
            request = await session.get(LeaveRequest, request_id, with_for_update=True)
            if request is None:
                raise NotFound("Leave request not found")
            if request.status != LeaveStatus.PENDING:
                raise LeaveRequestConflict(f"Leave request {request_id} is already {LeaveStatus(request.status).value}")

            today = self.today()
            request.status = decision
            request.admin_notes = admin_notes
            request.reviewed_by_admin = True
            request.reviewed_date = today

            if decision == LeaveStatus.APPROVED:
                request.balance_year = today.year
                await session.flush()
                await self.balance_service.adjust(
                    session, request.employee_id, request.leave_type, today.year, request.days_requested
                )
            else:
                await session.flush()

            logger.info(f"[LEAVE] Request {request_id} {decision.value.lower()}")
            return await self._get(session, request_id)

        return await run_in_transaction(self.session_factory, work)

    async def delete(self, request_id: int) -> None:
        """Delete a request, reversing its accrual first when it was approved."""

        async def work(session: AsyncSession) -> None:
            request = await session.get(LeaveRequest, request_id, with_for_update=True)
            if request is None:
                raise NotFound("Leave request not found")

            if request.status == LeaveStatus.APPROVED:
                year = request.balance_year or request.start_date.year
                await self.balance_service.adjust(
                    session, request.employee_id, request.leave_type, year, -request.days_requested
                )

            await session.delete(request)
            logger.info(f"[LEAVE] Request {request_id} deleted ({LeaveStatus(request.status).value})")

        await run_in_transaction(self.session_factory, work)

    async def stats(self) -> dict:
        """Counts for requests applied in the current year."""

        def count_where(condition):
            return func.count(case((condition, 1)))

        async with self.session_factory() as session:
            row = (
                await session.execute(
                    select(
                        count_where(LeaveRequest.status == LeaveStatus.PENDING).label("pending_count"),
                        count_where(LeaveRequest.status == LeaveStatus.APPROVED).label("approved_count"),
                        count_where(LeaveRequest.status == LeaveStatus.REJECTED).label("rejected_count"),
                        func.count(LeaveRequest.id).label("total_requests"),
                        count_where(LeaveRequest.leave_type == LeaveType.ANNUAL).label("annual_leave_count"),
                        count_where(LeaveRequest.leave_type == LeaveType.SICK).label("sick_leave_count"),
                        func.sum(
                            case((LeaveRequest.status == LeaveStatus.APPROVED, LeaveRequest.days_requested), else_=0)
                        ).label("total_approved_days"),
                    ).filter(extract("year", LeaveRequest.applied_date) == self.today().year)
                )
            ).one()

        return {
            "pending_count": row.pending_count or 0,
            "approved_count": row.approved_count or 0,
            "rejected_count": row.rejected_count or 0,
            "total_requests": row.total_requests or 0,
            "annual_leave_count": row.annual_leave_count or 0,
            "sick_leave_count": row.sick_leave_count or 0,
            "total_approved_days": int(row.total_approved_days or 0),
        }
