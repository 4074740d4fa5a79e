from dataclasses import replace
from decimal import Decimal

import pytest

from hrms.core.exceptions import InvalidInput
from hrms.models.models import PayrollStatus
from hrms.services.payroll_service import (
    AttendanceSummary, compute_pay, parse_payroll_status, split_daily_hours, summarize_attendance,
)
from hrms.services.payroll_settings_service import default_payroll_settings


@pytest.mark.parametrize(
    "hours, regular, overtime",
    [
        ("0", "0", "0"),
        ("6", "6", "0"),
        ("8", "8", "0"),
        ("8.01", "8", "0.01"),
        ("10", "8", "2"),
        ("-1", "0", "0"),
    ],
)
def test_split_daily_hours_caps_each_day(hours, regular, overtime):
    assert split_daily_hours(Decimal(hours), Decimal("8")) == (Decimal(regular), Decimal(overtime))


def test_overtime_is_daily_not_period_level():
    # 16h total fits two regular days, but one day went over the cap
    summary = summarize_attendance([Decimal("10"), Decimal("6")], Decimal("8"))

    assert summary.working_days == 2
    assert summary.regular_hours == Decimal("14")
    assert summary.overtime_hours == Decimal("2")
    assert summary.total_hours == Decimal("16")


def test_defaults_are_fixed():
    defaults = default_payroll_settings()

    assert defaults.hourly_rate == Decimal("15.00")
    assert defaults.overtime_rate == Decimal("22.50")
    assert defaults.regular_hours_per_day == Decimal("8.00")
    assert defaults.bonus == 0 and defaults.deductions == 0
    assert defaults.is_default
    assert default_payroll_settings() == defaults


def test_compute_pay_scenario_a():
    summary = summarize_attendance([Decimal("10"), Decimal("6")], Decimal("8"))
    pay = compute_pay(summary, default_payroll_settings())

    assert pay.regular_pay == Decimal("210.00")
    assert pay.overtime_pay == Decimal("45.00")
    assert pay.gross_pay == Decimal("255.00")
    assert pay.net_pay == Decimal("255.00")


def test_net_pay_can_go_negative():
    settings = replace(default_payroll_settings(), bonus=Decimal("5"), deductions=Decimal("100"))
    pay = compute_pay(AttendanceSummary(working_days=1, regular_hours=Decimal("2")), settings)

    assert pay.gross_pay == Decimal("35.00")
    assert pay.net_pay == Decimal("-65.00")


def test_money_rounds_half_up_to_cents():
    settings = replace(default_payroll_settings(), hourly_rate=Decimal("10.01"))
    pay = compute_pay(AttendanceSummary(working_days=1, regular_hours=Decimal("0.25")), settings)

    # 2.5025 -> 2.50
    assert pay.regular_pay == Decimal("2.50")


def test_parse_payroll_status():
    assert parse_payroll_status("Approved") is PayrollStatus.APPROVED
    with pytest.raises(InvalidInput):
        parse_payroll_status("Draft")
    with pytest.raises(InvalidInput):
        parse_payroll_status("Done")
