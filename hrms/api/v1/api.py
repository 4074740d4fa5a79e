from fastapi import APIRouter

from hrms.api.v1.endpoints import attendance, employees, leave, payroll

api_router = APIRouter()

api_router.include_router(employees.router, prefix="/employees", tags=["Employees"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["Attendance"])
api_router.include_router(leave.router, tags=["Leave"])
api_router.include_router(payroll.router, tags=["Payroll"])
