from datetime import date
from fastapi import APIRouter, Depends
from typing import List
from hrms.api.deps import get_attendance_service
from hrms.schema import schemas
from hrms.services.attendance_service import AttendanceService

router = APIRouter()


@router.post("/", response_model=schemas.AttendanceResponse)
async def mark_attendance(body: schemas.AttendanceMark, service: AttendanceService = Depends(get_attendance_service)):
    """Insert or overwrite one employee's attendance for a day; hours_worked is derived."""
    return await service.mark(
        body.employee_id,
        body.date,
        body.status,
        check_in=body.check_in,
        check_out=body.check_out,
        notes=body.notes,
    )

@router.post("/bulk", response_model=schemas.MessageResponse)
async def mark_attendance_bulk(body: schemas.AttendanceBulk, service: AttendanceService = Depends(get_attendance_service)):
    count = await service.mark_bulk(body.date, [item.model_dump() for item in body.attendance_records])
    return {"message": f"Bulk attendance marked successfully ({count} records)"}

@router.get("/stats/{start_date}/{end_date}", response_model=schemas.AttendanceStats)
async def attendance_stats(start_date: date, end_date: date, service: AttendanceService = Depends(get_attendance_service)):
    return await service.stats(start_date, end_date)

@router.get("/full/{work_date}", response_model=List[schemas.AttendanceRosterEntry])
async def attendance_roster(work_date: date, service: AttendanceService = Depends(get_attendance_service)):
    """All active employees for the day, marked or not."""
    return await service.roster(work_date)

@router.get("/{work_date}", response_model=List[schemas.AttendanceResponse])
async def attendance_for_date(work_date: date, service: AttendanceService = Depends(get_attendance_service)):
    return await service.for_date(work_date)

@router.delete("/{record_id}", response_model=schemas.MessageResponse)
async def delete_attendance(record_id: int, service: AttendanceService = Depends(get_attendance_service)):
    await service.delete(record_id)
    return {"message": "Attendance record deleted successfully"}
