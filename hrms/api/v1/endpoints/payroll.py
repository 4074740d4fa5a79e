from dataclasses import asdict
from fastapi import APIRouter, Depends
from typing import List, Optional
from hrms.api.deps import get_payroll_service, get_payroll_settings_service
from hrms.schema import schemas
from hrms.services.payroll_service import PayrollService
from hrms.services.payroll_settings_service import PayrollSettingsService

router = APIRouter()


# ==========================================
# 1. Payroll settings
# ==========================================
@router.get("/payroll-settings/{employee_id}", response_model=schemas.PayrollSettingsResponse)
async def get_payroll_settings(employee_id: int, service: PayrollSettingsService = Depends(get_payroll_settings_service)):
    """Current settings, or the defaults when the employee has none."""
    value = await service.get_for_employee(employee_id)
    return {"employee_id": employee_id, **asdict(value)}

@router.put("/payroll-settings/{employee_id}", response_model=schemas.PayrollSettingsResponse)
async def update_payroll_settings(
    employee_id: int,
    body: schemas.PayrollSettingsUpdate,
    service: PayrollSettingsService = Depends(get_payroll_settings_service),
):
    value = await service.save(employee_id, **body.model_dump())
    return {"employee_id": employee_id, **asdict(value)}


# ==========================================
# 2. Calculation & records
# ==========================================
@router.post("/payroll/calculate", response_model=schemas.PayrollCalculateResponse)
async def calculate_payroll(body: schemas.PayrollCalculateRequest, service: PayrollService = Depends(get_payroll_service)):
    record, summary = await service.calculate(body.employee_id, body.start_date, body.end_date)
    return {
        "message": "Payroll calculated successfully",
        "payroll": record,
        "attendance_summary": summary.as_dict(),
    }

@router.get("/payroll", response_model=List[schemas.PayrollRecordResponse])
async def list_payroll(
    employee_id: Optional[int] = None,
    status: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    service: PayrollService = Depends(get_payroll_service),
):
    """
    URL: GET /payroll?employee_id=5&status=Approved&start_date=2025-01-01&end_date=2025-01-31
    Most recent pay period first.
    """
    return await service.list_records(employee_id=employee_id, status=status, start_date=start_date, end_date=end_date)

# declared before /payroll/{record_id} routes so "stats" is not read as an id
@router.get("/payroll/stats", response_model=schemas.PayrollStats)
async def payroll_stats(year: Optional[int] = None, month: Optional[int] = None, service: PayrollService = Depends(get_payroll_service)):
    return await service.stats(year=year, month=month)

@router.put("/payroll/{record_id}/status", response_model=schemas.PayrollStatusResponse)
async def update_payroll_status(
    record_id: int,
    body: schemas.PayrollStatusUpdate,
    service: PayrollService = Depends(get_payroll_service),
):
    record = await service.transition(record_id, body.status, body.notes)
    return {
        "message": f"Payroll {record.status.value.lower()} successfully",
        "payroll": record,
    }

@router.delete("/payroll/{record_id}", response_model=schemas.MessageResponse)
async def delete_payroll(record_id: int, service: PayrollService = Depends(get_payroll_service)):
    await service.delete_record(record_id)
    return {"message": "Payroll record deleted successfully"}
