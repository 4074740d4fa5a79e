import pytest
from sqlalchemy import func, select

from hrms.core.exceptions import NotFound, TransactionAborted
from hrms.database import run_in_transaction
from hrms.models.models import Employee


def _employee(email):
    return Employee(name="Dup", email=email, department="Ops", position="Clerk")


async def _employee_count(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count(Employee.id)))


async def test_commits_on_success(session_factory):
    async def work(session):
        session.add(_employee("one@acme-hr.com"))
        return "done"

    assert await run_in_transaction(session_factory, work) == "done"
    assert await _employee_count(session_factory) == 1


async def test_store_failure_rolls_back_and_is_wrapped(session_factory):
    async def work(session):
        session.add(_employee("first@acme-hr.com"))
        await session.flush()
        session.add(_employee("first@acme-hr.com"))
        await session.flush()

    with pytest.raises(TransactionAborted) as excinfo:
        await run_in_transaction(session_factory, work)

    assert excinfo.value.__cause__ is not None
    assert await _employee_count(session_factory) == 0


async def test_domain_errors_pass_through_after_rollback(session_factory):
    async def work(session):
        session.add(_employee("gone@acme-hr.com"))
        await session.flush()
        raise NotFound("nope")

    with pytest.raises(NotFound):
        await run_in_transaction(session_factory, work)
    assert await _employee_count(session_factory) == 0
