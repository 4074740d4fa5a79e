from fastapi import APIRouter, Depends
from typing import List, Optional
from hrms.api.deps import get_leave_balance_service, get_leave_request_service
from hrms.schema import schemas
from hrms.services.leave_balance_service import LeaveBalanceService
from hrms.services.leave_request_service import LeaveRequestService

router = APIRouter()


@router.get("/leave-requests", response_model=List[schemas.LeaveRequestResponse])
async def list_leave_requests(
    status: Optional[str] = None,
    employee_id: Optional[int] = None,
    service: LeaveRequestService = Depends(get_leave_request_service),
):
    """
    URL: GET /leave-requests?status=Pending&employee_id=5
    status=All (or omitted) returns every request.
    """
    return await service.list_requests(status=status, employee_id=employee_id)

# must stay above /leave-requests/{request_id}
@router.get("/leave-requests/stats", response_model=schemas.LeaveStats)
async def leave_stats(service: LeaveRequestService = Depends(get_leave_request_service)):
    return await service.stats()

@router.get("/leave-requests/{request_id}", response_model=schemas.LeaveRequestResponse)
async def get_leave_request(request_id: int, service: LeaveRequestService = Depends(get_leave_request_service)):
    return await service.get(request_id)

@router.post("/leave-requests", response_model=schemas.LeaveRequestEnvelope, status_code=201)
async def create_leave_request(body: schemas.LeaveRequestCreate, service: LeaveRequestService = Depends(get_leave_request_service)):
    request = await service.create(body.employee_id, body.leave_type, body.start_date, body.end_date, body.reason)
    return {"message": "Leave request created successfully", "leave_request": request}

@router.put("/leave-requests/{request_id}/status", response_model=schemas.LeaveRequestEnvelope)
async def review_leave_request(
    request_id: int,
    body: schemas.LeaveReview,
    service: LeaveRequestService = Depends(get_leave_request_service),
):
    request = await service.review(request_id, body.status, body.admin_notes)
    return {
        "message": f"Leave request {request.status.value.lower()} successfully",
        "leave_request": request,
    }

@router.delete("/leave-requests/{request_id}", response_model=schemas.MessageResponse)
async def delete_leave_request(request_id: int, service: LeaveRequestService = Depends(get_leave_request_service)):
    await service.delete(request_id)
    return {"message": "Leave request deleted successfully"}

@router.get("/leave-balances/{employee_id}", response_model=List[schemas.LeaveBalanceResponse])
async def get_leave_balances(
    employee_id: int,
    year: Optional[int] = None,
    service: LeaveBalanceService = Depends(get_leave_balance_service),
):
    return await service.balances(employee_id, year)
