from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from truewood_ems.db import get_db
from truewood_ems.deps import get_today
from truewood_ems.models import EmployeeStatus
from truewood_ems.schemas import (
    DeleteResponse,
    EmployeeCreate,
    EmployeeRead,
    EmployeeUpdate,
    EmploymentHistoryRead,
    LeaveBalanceItem,
)
from truewood_ems.services import employees
from truewood_ems.services.employees import to_employee_read

router = APIRouter(tags=["employees"])


@router.get("/api/employees", response_model=list[EmployeeRead])
def list_employees(
    status: EmployeeStatus | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
) -> list[EmployeeRead]:
    return [to_employee_read(item) for item in employees.list_employees(db, status=status, search=search)]


@router.get("/api/employees/recent", response_model=list[EmployeeRead])
def list_recent_employees(
    limit: int = Query(default=5, ge=1, le=50),
    db: Session = Depends(get_db),
) -> list[EmployeeRead]:
    return [to_employee_read(item) for item in employees.list_employees(db, limit=limit, newest_first=True)]


@router.post("/api/employees", response_model=EmployeeRead, status_code=201)
def create_employee(
    payload: EmployeeCreate,
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> EmployeeRead:
    return to_employee_read(employees.create_employee(db, payload=payload, today=today))


@router.post("/api/employees/employment-history/backfill")
def backfill_employment_history(db: Session = Depends(get_db)) -> dict[str, int]:
    return {"created": employees.backfill_employment_history(db)}


@router.get("/api/employees/{employee_id}", response_model=EmployeeRead)
def get_employee(employee_id: int, db: Session = Depends(get_db)) -> EmployeeRead:
    return to_employee_read(employees.get_employee(db, employee_id))


@router.patch("/api/employees/{employee_id}", response_model=EmployeeRead)
def update_employee(
    employee_id: int,
    payload: EmployeeUpdate,
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> EmployeeRead:
    return to_employee_read(employees.update_employee(db, employee_id=employee_id, payload=payload, today=today))


@router.delete("/api/employees/{employee_id}", response_model=DeleteResponse)
def delete_employee(employee_id: int, db: Session = Depends(get_db)) -> DeleteResponse:
    employees.delete_employee(db, employee_id=employee_id)
    return DeleteResponse(ok=True, id=employee_id)


@router.get("/api/employees/{employee_id}/employment-history", response_model=list[EmploymentHistoryRead])
def list_employment_history(employee_id: int, db: Session = Depends(get_db)) -> list[EmploymentHistoryRead]:
    return [
        EmploymentHistoryRead.model_validate(item)
        for item in employees.list_employment_history(db, employee_id=employee_id)
    ]


@router.get("/api/employees/{employee_id}/leave-balance", response_model=list[LeaveBalanceItem])
def get_leave_balance(
    employee_id: int,
    year: int | None = Query(default=None, ge=1970, le=2100),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> list[LeaveBalanceItem]:
    return employees.leave_balance(db, employee_id=employee_id, year=year or today.year)
