from fastapi import APIRouter, Depends
from typing import List
from hrms.api.deps import get_employee_service
from hrms.schema import schemas
from hrms.services.employee_service import EmployeeService

router = APIRouter()


@router.get("/", response_model=List[schemas.EmployeeResponse])
async def read_employees(skip: int = 0, limit: int = 100, service: EmployeeService = Depends(get_employee_service)):
    """
    All employees, newest first.
    URL: GET /employees/
    """
    return await service.list_employees(skip=skip, limit=limit)

@router.get("/{employee_id}", response_model=schemas.EmployeeResponse)
async def read_employee(employee_id: int, service: EmployeeService = Depends(get_employee_service)):
    return await service.get(employee_id)

@router.post("/", response_model=schemas.EmployeeResponse, status_code=201)
async def create_employee(emp_in: schemas.EmployeeCreate, service: EmployeeService = Depends(get_employee_service)):
    return await service.create(**emp_in.model_dump())

@router.put("/{employee_id}", response_model=schemas.EmployeeResponse)
async def update_employee(employee_id: int, emp_in: schemas.EmployeeUpdate, service: EmployeeService = Depends(get_employee_service)):
    # only fields the client actually sent
    return await service.update(employee_id, **emp_in.model_dump(exclude_unset=True))

@router.delete("/{employee_id}", response_model=schemas.MessageResponse)
async def delete_employee(employee_id: int, service: EmployeeService = Depends(get_employee_service)):
    await service.delete(employee_id)
    return {"message": "Employee deleted successfully"}
