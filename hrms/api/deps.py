# hrms/api/deps.py
from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from hrms.database import get_session_factory
from hrms.services.attendance_service import AttendanceService
from hrms.services.employee_service import EmployeeService
from hrms.services.leave_balance_service import LeaveBalanceService
from hrms.services.leave_request_service import LeaveRequestService
from hrms.services.payroll_service import PayrollService
from hrms.services.payroll_settings_service import PayrollSettingsService


def get_employee_service(factory: async_sessionmaker = Depends(get_session_factory)) -> EmployeeService:
    return EmployeeService(factory)

def get_attendance_service(factory: async_sessionmaker = Depends(get_session_factory)) -> AttendanceService:
    return AttendanceService(factory)

def get_payroll_settings_service(factory: async_sessionmaker = Depends(get_session_factory)) -> PayrollSettingsService:
    return PayrollSettingsService(factory)

def get_payroll_service(factory: async_sessionmaker = Depends(get_session_factory)) -> PayrollService:
    return PayrollService(factory)

def get_leave_balance_service(factory: async_sessionmaker = Depends(get_session_factory)) -> LeaveBalanceService:
    return LeaveBalanceService(factory)

def get_leave_request_service(factory: async_sessionmaker = Depends(get_session_factory)) -> LeaveRequestService:
    return LeaveRequestService(factory)
