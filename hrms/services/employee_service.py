# hrms/services/employee_service.py
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrms.core.exceptions import Conflict, InvalidInput, NotFound
from hrms.database import run_in_transaction
from hrms.models.models import Employee, EmployeeStatus
from hrms.utils.dates import parse_date

logger = logging.getLogger("employees")

_EDITABLE = ("name", "email", "department", "position", "phone", "address", "hire_date", "salary", "status")


class EmployeeService:
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def list_employees(self, skip: int = 0, limit: int = 100) -> List[Employee]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Employee).order_by(Employee.created_at.desc(), Employee.id.desc()).offset(skip).limit(limit)
            )
            return list(result.scalars().all())

    async def get(self, employee_id: int) -> Employee:
        async with self.session_factory() as session:
            employee = await session.get(Employee, employee_id)
            if employee is None:
                raise NotFound("Employee not found")
            return employee

    @staticmethod
    async def _email_taken(session: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Employee.id).filter(Employee.email == email)
        if exclude_id is not None:
            query = query.filter(Employee.id != exclude_id)
        return (await session.execute(query)).first() is not None

    @staticmethod
    def _clean(fields: dict) -> dict:
        data = {k: v for k, v in fields.items() if k in _EDITABLE}
        if data.get("hire_date") is not None:
            data["hire_date"] = parse_date(data["hire_date"], "hire_date")
        if data.get("status") is not None:
            try:
                data["status"] = EmployeeStatus(data["status"])
            except ValueError:
                raise InvalidInput(f"Invalid employee status: {data['status']!r}")
        return data

    async def create(self, **fields) -> Employee:
        data = self._clean(fields)
        data["status"] = EmployeeStatus.ACTIVE

        async def work(session: AsyncSession) -> Employee:
            if await self._email_taken(session, data["email"]):
                raise Conflict("Employee with this email already exists")
            employee = Employee(**{k: v for k, v in data.items() if v is not None})
            session.add(employee)
            await session.flush()
            logger.info(f"[EMPLOYEE] Created {employee.id} ({employee.name})")
            return employee

        return await run_in_transaction(self.session_factory, work)

    async def update(self, employee_id: int, **fields) -> Employee:
        data = self._clean(fields)

        async def work(session: AsyncSession) -> Employee:
            employee = await session.get(Employee, employee_id)
            if employee is None:
                raise NotFound("Employee not found")
            if data.get("email") and await self._email_taken(session, data["email"], exclude_id=employee_id):
                raise Conflict("Employee with this email already exists")
            for key, value in data.items():
                if value is not None:
                    setattr(employee, key, value)
            await session.flush()
            return employee

        return await run_in_transaction(self.session_factory, work)

    async def delete(self, employee_id: int) -> None:
        async def work(session: AsyncSession) -> None:
            employee = await session.get(Employee, employee_id)
            if employee is None:
                raise NotFound("Employee not found")
            # attendance, leave and payroll rows go with it (ON DELETE CASCADE)
            await session.delete(employee)
            logger.info(f"[EMPLOYEE] Deleted {employee_id}")

        await run_in_transaction(self.session_factory, work)
