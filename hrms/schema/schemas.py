from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import date, datetime, time
from hrms.models.models import AttendanceStatus, EmployeeStatus, LeaveStatus, LeaveType, PayrollStatus


class ORMModel(BaseModel):
    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str


# ===== Employees =====
class EmployeeCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    department: str = Field(min_length=1)
    position: str = Field(min_length=1)
    phone: Optional[str] = None
    address: Optional[str] = None
    hire_date: Optional[date] = None
    salary: Optional[float] = None

# every field optional so the web can send partial updates
class EmployeeUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    department: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    hire_date: Optional[date] = None
    salary: Optional[float] = None
    status: Optional[EmployeeStatus] = None

class EmployeeResponse(ORMModel):
    id: int
    name: str
    email: str
    department: str
    position: str
    phone: Optional[str] = None
    address: Optional[str] = None
    hire_date: Optional[date] = None
    salary: Optional[float] = None
    status: EmployeeStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ===== Attendance =====
class AttendanceMark(BaseModel):
    employee_id: int
    date: date
    status: AttendanceStatus
    check_in: Optional[time] = None
    check_out: Optional[time] = None
    notes: Optional[str] = None

class AttendanceBulkItem(BaseModel):
    employee_id: int
    status: AttendanceStatus
    check_in: Optional[time] = None
    check_out: Optional[time] = None
    notes: Optional[str] = None

class AttendanceBulk(BaseModel):
    date: date
    attendance_records: List[AttendanceBulkItem]

class AttendanceResponse(ORMModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    date: date
    check_in: Optional[time] = None
    check_out: Optional[time] = None
    status: AttendanceStatus
    hours_worked: float
    notes: Optional[str] = None

class AttendanceRosterEntry(BaseModel):
    employee_id: int
    name: str
    department: str
    position: str
    employee_status: EmployeeStatus
    attendance_id: Optional[int] = None
    check_in: Optional[time] = None
    check_out: Optional[time] = None
    # an AttendanceStatus value, or "Not Marked"
    attendance_status: str
    hours_worked: float
    notes: str

class AttendanceStats(BaseModel):
    present_count: int
    absent_count: int
    late_count: int
    half_day_count: int
    total_records: int
    average_hours: Optional[float] = None
    total_active_employees: int


# ===== Payroll =====
class PayrollSettingsUpdate(BaseModel):
    hourly_rate: float = Field(ge=0)
    overtime_rate: float = Field(ge=0)
    regular_hours_per_day: float = Field(default=8.0, gt=0)
    working_days_per_month: int = Field(default=22, gt=0)
    bonus: float = Field(default=0, ge=0)
    deductions: float = Field(default=0, ge=0)

class PayrollSettingsResponse(BaseModel):
    employee_id: int
    hourly_rate: float
    overtime_rate: float
    regular_hours_per_day: float
    working_days_per_month: int
    bonus: float
    deductions: float
    effective_from: Optional[date] = None
    is_default: bool = False

class PayrollCalculateRequest(BaseModel):
    employee_id: int
    # strings so malformed dates reach the service and come back as 400
    start_date: str
    end_date: str

class PayrollStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None

class PayrollRecordResponse(ORMModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    pay_period_start: date
    pay_period_end: date
    regular_hours: float
    overtime_hours: float
    total_hours: float
    hourly_rate: float
    overtime_rate: float
    regular_pay: float
    overtime_pay: float
    gross_pay: float
    bonus: float
    deductions: float
    net_pay: float
    status: PayrollStatus
    notes: Optional[str] = None
    generated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

class AttendanceSummaryResponse(BaseModel):
    working_days: int
    total_hours: float
    regular_hours: float
    overtime_hours: float

class PayrollCalculateResponse(BaseModel):
    message: str
    payroll: PayrollRecordResponse
    attendance_summary: AttendanceSummaryResponse

class PayrollStatusResponse(BaseModel):
    message: str
    payroll: PayrollRecordResponse

class PayrollStats(BaseModel):
    year: int
    month: int
    total_records: int
    draft_count: int
    calculated_count: int
    approved_count: int
    paid_count: int
    total_gross_pay: float
    total_net_pay: float
    total_hours_paid: float
    average_net_pay: Optional[float] = None


# ===== Leave =====
class LeaveRequestCreate(BaseModel):
    employee_id: int
    leave_type: LeaveType
    start_date: str
    end_date: str
    reason: str = Field(min_length=1)

class LeaveReview(BaseModel):
    status: str
    admin_notes: Optional[str] = None

class LeaveRequestResponse(ORMModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_requested: int
    reason: str
    status: LeaveStatus
    admin_notes: Optional[str] = None
    reviewed_by_admin: bool
    applied_date: Optional[date] = None
    reviewed_date: Optional[date] = None

class LeaveRequestEnvelope(BaseModel):
    message: str
    leave_request: LeaveRequestResponse

class LeaveBalanceResponse(ORMModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    leave_type: LeaveType
    year: int
    allocated_days: int
    used_days: int
    remaining_days: int

class LeaveStats(BaseModel):
    pending_count: int
    approved_count: int
    rejected_count: int
    total_requests: int
    annual_leave_count: int
    sick_leave_count: int
    total_approved_days: int
