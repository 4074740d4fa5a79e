# each class maps one table
import enum
from datetime import datetime, date
from sqlalchemy import (
    Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, Time, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from hrms.database import Base


def _enum_column(enum_cls, name):
    # persist the human-readable value ("Half Day"), not the member name
    return Enum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e])


# ===== Enums =====
class EmployeeStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ON_LEAVE = "On Leave"

class AttendanceStatus(str, enum.Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"
    HALF_DAY = "Half Day"
    HOLIDAY = "Holiday"

# statuses whose hours count towards payroll
WORKING_STATUSES = (AttendanceStatus.PRESENT, AttendanceStatus.LATE, AttendanceStatus.HALF_DAY)

class PayrollStatus(str, enum.Enum):
    DRAFT = "Draft"
    CALCULATED = "Calculated"
    APPROVED = "Approved"
    PAID = "Paid"

class LeaveType(str, enum.Enum):
    ANNUAL = "Annual"
    SICK = "Sick"
    PERSONAL = "Personal"
    MATERNITY = "Maternity"
    PATERNITY = "Paternity"
    EMERGENCY = "Emergency"
    UNPAID = "Unpaid"

class LeaveStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class _EmployeeDetailsMixin:
    # only read an already-loaded relationship; never lazy-load in async code
    def _loaded_employee_attr(self, attr):
        employee = self.__dict__.get("employee")
        return getattr(employee, attr) if employee is not None else None

    @property
    def employee_name(self):
        return self._loaded_employee_attr("name")

    @property
    def department(self):
        return self._loaded_employee_attr("department")

    @property
    def position(self):
        return self._loaded_employee_attr("position")


class Employee(Base):
    __tablename__ = "employees"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    department = Column(String(100), nullable=False)
    position = Column(String(100), nullable=False)
    phone = Column(String(20))
    address = Column(Text)
    hire_date = Column(Date, default=date.today)
    salary = Column(Numeric(12, 2))
    status = Column(_enum_column(EmployeeStatus, "employee_status_enum"), nullable=False, default=EmployeeStatus.ACTIVE)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class AttendanceRecord(Base, _EmployeeDetailsMixin):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    check_in = Column(Time)
    check_out = Column(Time)
    status = Column(_enum_column(AttendanceStatus, "attendance_status_enum"), nullable=False)
    hours_worked = Column(Numeric(5, 2), nullable=False, default=0)
    notes = Column(Text)

    employee = relationship("Employee", lazy="joined", innerjoin=True)


class PayrollSettings(Base):
    __tablename__ = "payroll_settings"
    __table_args__ = (
        UniqueConstraint("employee_id", "effective_from", name="uq_payroll_settings_version"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    hourly_rate = Column(Numeric(10, 2), nullable=False, default=15)
    overtime_rate = Column(Numeric(10, 2), nullable=False, default=22.5)
    regular_hours_per_day = Column(Numeric(4, 2), nullable=False, default=8)
    working_days_per_month = Column(Integer, nullable=False, default=22)
    bonus = Column(Numeric(12, 2), nullable=False, default=0)
    deductions = Column(Numeric(12, 2), nullable=False, default=0)
    effective_from = Column(Date, nullable=False, default=date.today)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class PayrollRecord(Base, _EmployeeDetailsMixin):
    __tablename__ = "payroll_records"
    __table_args__ = (
        UniqueConstraint("employee_id", "pay_period_start", "pay_period_end", name="uq_payroll_period"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    pay_period_start = Column(Date, nullable=False)
    pay_period_end = Column(Date, nullable=False)

    regular_hours = Column(Numeric(8, 2), nullable=False, default=0)
    overtime_hours = Column(Numeric(8, 2), nullable=False, default=0)
    total_hours = Column(Numeric(8, 2), nullable=False, default=0)

    # snapshot of the settings used for the calculation
    hourly_rate = Column(Numeric(10, 2), nullable=False)
    overtime_rate = Column(Numeric(10, 2), nullable=False)

    regular_pay = Column(Numeric(12, 2), nullable=False, default=0)
    overtime_pay = Column(Numeric(12, 2), nullable=False, default=0)
    gross_pay = Column(Numeric(12, 2), nullable=False, default=0)
    bonus = Column(Numeric(12, 2), nullable=False, default=0)
    deductions = Column(Numeric(12, 2), nullable=False, default=0)
    net_pay = Column(Numeric(12, 2), nullable=False, default=0)

    status = Column(_enum_column(PayrollStatus, "payroll_status_enum"), nullable=False, default=PayrollStatus.DRAFT)
    notes = Column(Text)
    generated_at = Column(DateTime, default=datetime.now)
    approved_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    employee = relationship("Employee", lazy="joined", innerjoin=True)


class LeaveRequest(Base, _EmployeeDetailsMixin):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type = Column(_enum_column(LeaveType, "leave_type_enum"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days_requested = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(_enum_column(LeaveStatus, "leave_status_enum"), nullable=False, default=LeaveStatus.PENDING)
    admin_notes = Column(Text)
    reviewed_by_admin = Column(Boolean, nullable=False, default=False)
    applied_date = Column(Date, default=date.today)
    reviewed_date = Column(Date, nullable=True)
    # year of the balance row the approval accrued against
    balance_year = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    employee = relationship("Employee", lazy="joined", innerjoin=True)


class LeaveBalance(Base, _EmployeeDetailsMixin):
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type", "year", name="uq_leave_balance_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type = Column(_enum_column(LeaveType, "leave_type_enum"), nullable=False)
    year = Column(Integer, nullable=False)
    allocated_days = Column(Integer, nullable=False, default=20)
    used_days = Column(Integer, nullable=False, default=0)

    employee = relationship("Employee", lazy="joined", innerjoin=True)

    @property
    def remaining_days(self) -> int:
        # may go negative, nothing clamps it
        return (self.allocated_days or 0) - (self.used_days or 0)
