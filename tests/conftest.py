from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.pool import StaticPool

from hrms.database import build_engine, build_session_factory, create_tables
from hrms.models.models import AttendanceRecord, AttendanceStatus, Employee, PayrollSettings


@pytest.fixture()
async def engine():
    # one shared in-memory connection per test
    bind = build_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await create_tables(bind)
    yield bind
    await bind.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def make_employee(session_factory):
    counter = {"n": 0}

    async def _make(**fields) -> int:
        counter["n"] += 1
        data = {
            "name": f"Employee {counter['n']}",
            "email": f"employee{counter['n']}@acme-hr.com",
            "department": "Engineering",
            "position": "Developer",
        }
        data.update(fields)
        async with session_factory() as session:
            async with session.begin():
                employee = Employee(**data)
                session.add(employee)
            return employee.id

    return _make


@pytest.fixture()
def add_attendance(session_factory):
    """Write attendance rows directly, including hours the marking path would never store."""

    async def _add(employee_id: int, day: date, hours, status=AttendanceStatus.PRESENT) -> int:
        async with session_factory() as session:
            async with session.begin():
                record = AttendanceRecord(
                    employee_id=employee_id,
                    date=day,
                    status=status,
                    hours_worked=Decimal(str(hours)),
                )
                session.add(record)
            return record.id

    return _add


@pytest.fixture()
def add_settings(session_factory):
    async def _add(employee_id: int, effective_from: date, **fields) -> None:
        data = {
            "hourly_rate": Decimal("15.00"),
            "overtime_rate": Decimal("22.50"),
            "regular_hours_per_day": Decimal("8.00"),
            "bonus": Decimal("0"),
            "deductions": Decimal("0"),
        }
        data.update({k: Decimal(str(v)) for k, v in fields.items()})
        async with session_factory() as session:
            async with session.begin():
                session.add(PayrollSettings(employee_id=employee_id, effective_from=effective_from, **data))

    return _add
