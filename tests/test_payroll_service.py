from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from hrms.core.exceptions import InvalidInput, NotFound
from hrms.models.models import AttendanceStatus, PayrollRecord, PayrollStatus
from hrms.services.payroll_service import PayrollService
from hrms.services.payroll_settings_service import PayrollSettingsService

JAN_1 = date(2025, 1, 1)
JAN_31 = date(2025, 1, 31)
FIXED_NOW = datetime(2025, 2, 3, 9, 30)


@pytest.fixture()
def service(session_factory):
    return PayrollService(session_factory, now=lambda: FIXED_NOW)


async def _count_records(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count(PayrollRecord.id)))


async def test_scenario_a_default_rates(service, make_employee, add_attendance):
    emp = await make_employee()
    await add_attendance(emp, date(2025, 1, 6), 10)
    await add_attendance(emp, date(2025, 1, 7), 6)

    record, summary = await service.calculate(emp, JAN_1, JAN_31)

    assert summary.working_days == 2
    assert record.regular_hours == Decimal("14")
    assert record.overtime_hours == Decimal("2")
    assert record.total_hours == Decimal("16")
    assert record.hourly_rate == Decimal("15")
    assert record.overtime_rate == Decimal("22.5")
    assert record.regular_pay == Decimal("210")
    assert record.overtime_pay == Decimal("45")
    assert record.gross_pay == Decimal("255")
    assert record.net_pay == Decimal("255")
    assert record.status == PayrollStatus.CALCULATED
    assert record.generated_at == FIXED_NOW
    assert record.employee_name == "Employee 1"


async def test_absent_and_holiday_rows_never_count(service, make_employee, add_attendance):
    emp = await make_employee()
    await add_attendance(emp, date(2025, 1, 6), 8, AttendanceStatus.PRESENT)
    await add_attendance(emp, date(2025, 1, 7), 9, AttendanceStatus.LATE)
    await add_attendance(emp, date(2025, 1, 8), 4, AttendanceStatus.HALF_DAY)
    # stored hours on these must be ignored
    await add_attendance(emp, date(2025, 1, 9), 12, AttendanceStatus.ABSENT)
    await add_attendance(emp, date(2025, 1, 10), 12, AttendanceStatus.HOLIDAY)

    record, summary = await service.calculate(emp, JAN_1, JAN_31)

    assert summary.working_days == 3
    assert record.regular_hours == Decimal("20")
    assert record.overtime_hours == Decimal("1")
    assert record.total_hours == Decimal("21")


async def test_only_rows_inside_the_period(service, make_employee, add_attendance):
    emp = await make_employee()
    await add_attendance(emp, date(2024, 12, 31), 8)
    await add_attendance(emp, JAN_1, 5)
    await add_attendance(emp, JAN_31, 5)
    await add_attendance(emp, date(2025, 2, 1), 8)

    record, _ = await service.calculate(emp, JAN_1, JAN_31)

    assert record.total_hours == Decimal("10")


async def test_recalculation_is_idempotent(service, session_factory, make_employee, add_attendance):
    emp = await make_employee()
    await add_attendance(emp, date(2025, 1, 6), 9.5)

    first, _ = await service.calculate(emp, JAN_1, JAN_31)
    second, _ = await service.calculate(emp, JAN_1, JAN_31)

    assert second.id == first.id
    for field in ("regular_hours", "overtime_hours", "total_hours", "regular_pay", "overtime_pay", "gross_pay", "net_pay"):
        assert getattr(second, field) == getattr(first, field)
    assert await _count_records(session_factory) == 1


async def test_scenario_d_recalculation_overwrites_and_resets_status(service, session_factory, make_employee, add_attendance):
    emp = await make_employee()
    await add_attendance(emp, date(2025, 1, 6), 8)
    first, _ = await service.calculate(emp, JAN_1, JAN_31)
    approved = await service.transition(first.id, "Approved")
    assert approved.approved_at == FIXED_NOW

    await add_attendance(emp, date(2025, 1, 7), 11)
    again, summary = await service.calculate(emp, JAN_1, JAN_31)

    assert again.id == first.id
    assert summary.working_days == 2
    assert again.total_hours == Decimal("19")
    assert again.overtime_hours == Decimal("3")
    assert again.status == PayrollStatus.CALCULATED
    # approval stamp survives recalculation
    assert again.approved_at == FIXED_NOW
    assert await _count_records(session_factory) == 1


async def test_inverted_range_yields_zero_record(service, make_employee, add_attendance):
    emp = await make_employee()
    await add_attendance(emp, date(2025, 1, 6), 8)

    record, summary = await service.calculate(emp, JAN_31, JAN_1)

    assert summary.working_days == 0
    assert record.total_hours == 0
    assert record.net_pay == 0
    assert record.status == PayrollStatus.CALCULATED


async def test_unknown_employee_writes_nothing(service, session_factory):
    with pytest.raises(NotFound):
        await service.calculate(999, JAN_1, JAN_31)
    assert await _count_records(session_factory) == 0


async def test_malformed_dates_rejected(service, session_factory, make_employee):
    emp = await make_employee()
    with pytest.raises(InvalidInput):
        await service.calculate(emp, "2025-13-01", "2025-01-31")
    with pytest.raises(InvalidInput):
        await service.calculate(emp, "yesterday", "2025-01-31")
    assert await _count_records(session_factory) == 0


async def test_latest_settings_version_is_used(service, make_employee, add_attendance, add_settings):
    emp = await make_employee()
    await add_settings(emp, date(2024, 1, 1), hourly_rate=10, overtime_rate=15)
    await add_settings(emp, date(2024, 6, 1), hourly_rate=20, overtime_rate=30, regular_hours_per_day=6, bonus=50, deductions=20)
    # not effective yet
    await add_settings(emp, date.today() + timedelta(days=30), hourly_rate=99, overtime_rate=99)
    await add_attendance(emp, date(2025, 1, 6), 8)

    record, _ = await service.calculate(emp, JAN_1, JAN_31)

    assert record.hourly_rate == Decimal("20")
    assert record.regular_hours == Decimal("6")
    assert record.overtime_hours == Decimal("2")
    assert record.regular_pay == Decimal("120")
    assert record.overtime_pay == Decimal("60")
    assert record.gross_pay == Decimal("230")
    assert record.net_pay == Decimal("210")


async def test_transition_stamps_and_validates(service, make_employee):
    emp = await make_employee()
    record, _ = await service.calculate(emp, JAN_1, JAN_31)

    paid = await service.transition(record.id, "Paid", notes="bank transfer")
    assert paid.status == PayrollStatus.PAID
    assert paid.paid_at == FIXED_NOW
    assert paid.approved_at is None
    assert paid.notes == "bank transfer"

    with pytest.raises(InvalidInput):
        await service.transition(record.id, "Draft")
    with pytest.raises(NotFound):
        await service.transition(12345, "Approved")


async def test_list_records_filters_and_orders(service, make_employee):
    alice = await make_employee(name="Alice")
    bob = await make_employee(name="Bob")
    await service.calculate(bob, JAN_1, JAN_31)
    await service.calculate(alice, JAN_1, JAN_31)
    feb, _ = await service.calculate(alice, date(2025, 2, 1), date(2025, 2, 28))
    await service.transition(feb.id, "Approved")

    records = await service.list_records()
    assert [(r.employee_name, r.pay_period_start) for r in records] == [
        ("Alice", date(2025, 2, 1)),
        ("Alice", JAN_1),
        ("Bob", JAN_1),
    ]

    assert len(await service.list_records(employee_id=bob)) == 1
    assert [r.id for r in await service.list_records(status="Approved")] == [feb.id]
    assert len(await service.list_records(status="All")) == 3
    assert len(await service.list_records(start_date=JAN_1, end_date=JAN_31)) == 2


async def test_stats_by_month(service, make_employee, add_attendance):
    emp = await make_employee()
    other = await make_employee()
    await add_attendance(emp, date(2025, 1, 6), 10)
    await add_attendance(other, date(2025, 1, 6), 4)

    rec, _ = await service.calculate(emp, JAN_1, JAN_31)
    await service.calculate(other, JAN_1, JAN_31)
    await service.transition(rec.id, "Approved")

    stats = await service.stats(year=2025, month=1)

    assert stats["total_records"] == 2
    assert stats["approved_count"] == 1
    assert stats["calculated_count"] == 1
    assert stats["draft_count"] == 0
    assert stats["total_gross_pay"] == 165.0
    assert stats["total_net_pay"] == 165.0
    assert stats["total_hours_paid"] == 10.0
    assert stats["average_net_pay"] == 165.0

    empty = await service.stats(year=2025, month=3)
    assert empty["total_records"] == 0
    assert empty["average_net_pay"] is None

    with pytest.raises(InvalidInput):
        await service.stats(year=2025, month=13)


async def test_delete_record(service, session_factory, make_employee):
    emp = await make_employee()
    record, _ = await service.calculate(emp, JAN_1, JAN_31)

    await service.delete_record(record.id)

    assert await _count_records(session_factory) == 0
    with pytest.raises(NotFound):
        await service.delete_record(record.id)


async def test_settings_service_save_and_lookup(session_factory, make_employee):
    settings_service = PayrollSettingsService(session_factory, today=lambda: date(2025, 1, 15))
    emp = await make_employee()

    assert (await settings_service.get_for_employee(emp)).is_default

    await settings_service.save(emp, hourly_rate=18, overtime_rate=27)
    saved = await settings_service.save(emp, hourly_rate=19, overtime_rate=28.5, bonus=10)

    assert saved.effective_from == date(2025, 1, 15)
    current = await settings_service.get_for_employee(emp)
    assert current.hourly_rate == Decimal("19")
    assert current.overtime_rate == Decimal("28.5")
    assert current.bonus == Decimal("10")
    assert not current.is_default

    with pytest.raises(NotFound):
        await settings_service.get_for_employee(404)
    with pytest.raises(InvalidInput):
        await settings_service.save(emp, hourly_rate=-1, overtime_rate=10)
