# hrms/services/attendance_service.py
import logging
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Union

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrms.core.exceptions import InvalidInput, NotFound
from hrms.database import run_in_transaction
from hrms.models.models import (
    WORKING_STATUSES, AttendanceRecord, AttendanceStatus, Employee, EmployeeStatus,
)
from hrms.utils.dates import DateLike, parse_date, parse_time

logger = logging.getLogger("attendance")

NOT_MARKED = "Not Marked"


def compute_hours_worked(check_in: Optional[time], check_out: Optional[time], status) -> Decimal:
    """
    Hours between check-in and check-out, rounded to 2 places.

    Absent days and days missing either time count as 0; a check-out
    before check-in is clamped to 0.
    """
    if AttendanceStatus(status) == AttendanceStatus.ABSENT:
        return Decimal("0.00")
    if check_in is None or check_out is None:
        return Decimal("0.00")

    anchor = date(2000, 1, 1)
    seconds = (datetime.combine(anchor, check_out) - datetime.combine(anchor, check_in)).total_seconds()
    hours = Decimal(str(max(0.0, seconds))) / Decimal(3600)
    return hours.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _parse_status(value) -> AttendanceStatus:
    try:
        return AttendanceStatus(value)
    except ValueError:
        raise InvalidInput(f"Invalid attendance status: {value!r}")


class AttendanceService:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    # ---------- READ SIDE USED BY PAYROLL ----------

    async def working_rows(self, session: AsyncSession, employee_id: int, start_date: date, end_date: date) -> List[AttendanceRecord]:
        """Rows in [start_date, end_date] whose status counts as worked time."""
        result = await session.execute(
            select(AttendanceRecord)
            .filter(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.date >= start_date,
                AttendanceRecord.date <= end_date,
                AttendanceRecord.status.in_(WORKING_STATUSES),
            )
            .order_by(AttendanceRecord.date)
        )
        return list(result.scalars().all())

    # ---------- MARKING ----------

    async def _upsert(self, session: AsyncSession, employee_id: int, work_date: date, check_in, check_out, status, notes) -> AttendanceRecord:
        status = _parse_status(status)
        check_in = parse_time(check_in, "check_in")
        check_out = parse_time(check_out, "check_out")
        hours = compute_hours_worked(check_in, check_out, status)

        record = (
            await session.execute(
                select(AttendanceRecord).filter(
                    AttendanceRecord.employee_id == employee_id,
                    AttendanceRecord.date == work_date,
                )
            )
        ).scalars().first()

        if record is None:
            record = AttendanceRecord(employee_id=employee_id, date=work_date)
            session.add(record)

        record.check_in = check_in
        record.check_out = check_out
        record.status = status
        record.hours_worked = hours
        record.notes = notes
        await session.flush()
        return record

    async def mark(
        self,
        employee_id: int,
        work_date: DateLike,
        status: Union[AttendanceStatus, str],
        check_in=None,
        check_out=None,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        """Insert or overwrite the attendance row for (employee, date)."""
        work_date = parse_date(work_date, "date")

        async def work(session: AsyncSession) -> AttendanceRecord:
            if await session.get(Employee, employee_id) is None:
                raise NotFound("Employee not found")
            record = await self._upsert(session, employee_id, work_date, check_in, check_out, status, notes)
            logger.info(f"[ATTENDANCE] Emp {employee_id} {work_date} -> {record.status.value} ({record.hours_worked}h)")
            return record

        return await run_in_transaction(self.session_factory, work)

    async def mark_bulk(self, work_date: DateLike, records: Iterable[dict]) -> int:
        """Mark many employees for one date; all rows land or none do."""
        work_date = parse_date(work_date, "date")
        records = list(records)

        async def work(session: AsyncSession) -> int:
            for item in records:
                employee_id = item["employee_id"]
                if await session.get(Employee, employee_id) is None:
                    raise NotFound(f"Employee {employee_id} not found")
                await self._upsert(
                    session,
                    employee_id,
                    work_date,
                    item.get("check_in"),
                    item.get("check_out"),
                    item.get("status"),
                    item.get("notes"),
                )
            return len(records)

        count = await run_in_transaction(self.session_factory, work)
        logger.info(f"[ATTENDANCE] Bulk marked {count} rows for {work_date}")
        return count

    # ---------- QUERIES ----------

    async def for_date(self, work_date: DateLike) -> List[AttendanceRecord]:
        work_date = parse_date(work_date, "date")
        async with self.session_factory() as session:
            result = await session.execute(
                select(AttendanceRecord)
                .join(Employee, AttendanceRecord.employee_id == Employee.id)
                .filter(AttendanceRecord.date == work_date)
                .order_by(Employee.name)
            )
            return list(result.scalars().unique().all())

    async def roster(self, work_date: DateLike) -> List[dict]:
        """
        Every Active employee with their attendance for one day, ordered by name.

        Employees without a row for that day come back as "Not Marked" with
        0 hours and empty notes.
        """
        work_date = parse_date(work_date, "date")
        async with self.session_factory() as session:
            result = await session.execute(
                select(
                    Employee.id.label("employee_id"),
                    Employee.name,
                    Employee.department,
                    Employee.position,
                    Employee.status.label("employee_status"),
                    AttendanceRecord.id.label("attendance_id"),
                    AttendanceRecord.check_in,
                    AttendanceRecord.check_out,
                    AttendanceRecord.status.label("attendance_status"),
                    AttendanceRecord.hours_worked,
                    AttendanceRecord.notes,
                )
                .outerjoin(
                    AttendanceRecord,
                    and_(AttendanceRecord.employee_id == Employee.id, AttendanceRecord.date == work_date),
                )
                .filter(Employee.status == EmployeeStatus.ACTIVE)
                .order_by(Employee.name, Employee.id)
            )
            rows = result.all()

        return [
            {
                "employee_id": row.employee_id,
                "name": row.name,
                "department": row.department,
                "position": row.position,
                "employee_status": row.employee_status,
                "attendance_id": row.attendance_id,
                "check_in": row.check_in,
                "check_out": row.check_out,
                "attendance_status": row.attendance_status.value if row.attendance_status is not None else NOT_MARKED,
                "hours_worked": row.hours_worked if row.hours_worked is not None else Decimal("0.00"),
                "notes": row.notes or "",
            }
            for row in rows
        ]

    async def stats(self, start_date: DateLike, end_date: DateLike) -> dict:
        start_date = parse_date(start_date, "start_date")
        end_date = parse_date(end_date, "end_date")

        def count_status(status: AttendanceStatus):
            return func.count(case((AttendanceRecord.status == status, 1)))

        async with self.session_factory() as session:
            row = (
                await session.execute(
                    select(
                        count_status(AttendanceStatus.PRESENT).label("present_count"),
                        count_status(AttendanceStatus.ABSENT).label("absent_count"),
                        count_status(AttendanceStatus.LATE).label("late_count"),
                        count_status(AttendanceStatus.HALF_DAY).label("half_day_count"),
                        func.count(AttendanceRecord.id).label("total_records"),
                        func.avg(AttendanceRecord.hours_worked).label("average_hours"),
                    ).filter(
                        AttendanceRecord.date >= start_date,
                        AttendanceRecord.date <= end_date,
                    )
                )
            ).one()

            active = await session.scalar(
                select(func.count(Employee.id)).filter(Employee.status == EmployeeStatus.ACTIVE)
            )

        return {
            "present_count": row.present_count or 0,
            "absent_count": row.absent_count or 0,
            "late_count": row.late_count or 0,
            "half_day_count": row.half_day_count or 0,
            "total_records": row.total_records or 0,
            "average_hours": float(row.average_hours) if row.average_hours is not None else None,
            "total_active_employees": active or 0,
        }

    async def delete(self, record_id: int) -> None:
        async def work(session: AsyncSession) -> None:
            record = await session.get(AttendanceRecord, record_id)
            if record is None:
                raise NotFound("Attendance record not found")
            await session.delete(record)

        await run_in_transaction(self.session_factory, work)
