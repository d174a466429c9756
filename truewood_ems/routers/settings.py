from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from truewood_ems.db import get_db
from truewood_ems.deps import get_today
from truewood_ems.schemas import (
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    DeleteResponse,
    DepartmentCreate,
    DepartmentRead,
    DepartmentUpdate,
    HolidayCreate,
    HolidayRead,
    HolidayUpdate,
    LeaveTypeCreate,
    LeaveTypeRead,
    LeaveTypeUpdate,
    WeeklyOffRead,
    WeeklyOffUpdateRequest,
)
from truewood_ems.services import catalog

router = APIRouter(tags=["settings"])


@router.get("/api/settings/categories", response_model=list[CategoryRead])
def list_categories(db: Session = Depends(get_db)) -> list[CategoryRead]:
    return [CategoryRead.model_validate(item) for item in catalog.list_categories(db)]


@router.post("/api/settings/categories", response_model=CategoryRead, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)) -> CategoryRead:
    return CategoryRead.model_validate(catalog.save_category(db, payload=payload))


@router.put("/api/settings/categories/{category_id}", response_model=CategoryRead)
def update_category(category_id: int, payload: CategoryUpdate, db: Session = Depends(get_db)) -> CategoryRead:
    return CategoryRead.model_validate(catalog.save_category(db, payload=payload, category_id=category_id))


@router.delete("/api/settings/categories/{category_id}", response_model=DeleteResponse)
def delete_category(category_id: int, db: Session = Depends(get_db)) -> DeleteResponse:
    catalog.delete_category(db, category_id=category_id)
    return DeleteResponse(ok=True, id=category_id)


@router.get("/api/settings/departments", response_model=list[DepartmentRead])
def list_departments(db: Session = Depends(get_db)) -> list[DepartmentRead]:
    return [DepartmentRead.model_validate(item) for item in catalog.list_departments(db)]


@router.post("/api/settings/departments", response_model=DepartmentRead, status_code=201)
def create_department(payload: DepartmentCreate, db: Session = Depends(get_db)) -> DepartmentRead:
    return DepartmentRead.model_validate(catalog.save_department(db, payload=payload))


@router.put("/api/settings/departments/{department_id}", response_model=DepartmentRead)
def update_department(
    department_id: int,
    payload: DepartmentUpdate,
    db: Session = Depends(get_db),
) -> DepartmentRead:
    return DepartmentRead.model_validate(catalog.save_department(db, payload=payload, department_id=department_id))


@router.delete("/api/settings/departments/{department_id}", response_model=DeleteResponse)
def delete_department(department_id: int, db: Session = Depends(get_db)) -> DeleteResponse:
    catalog.delete_department(db, department_id=department_id)
    return DeleteResponse(ok=True, id=department_id)


@router.get("/api/settings/leave-types", response_model=list[LeaveTypeRead])
def list_leave_types(db: Session = Depends(get_db)) -> list[LeaveTypeRead]:
    return [LeaveTypeRead.model_validate(item) for item in catalog.list_leave_types(db)]


@router.post("/api/settings/leave-types", response_model=LeaveTypeRead, status_code=201)
def create_leave_type(payload: LeaveTypeCreate, db: Session = Depends(get_db)) -> LeaveTypeRead:
    return LeaveTypeRead.model_validate(catalog.save_leave_type(db, payload=payload))


@router.put("/api/settings/leave-types/{leave_type_id}", response_model=LeaveTypeRead)
def update_leave_type(
    leave_type_id: int,
    payload: LeaveTypeUpdate,
    db: Session = Depends(get_db),
) -> LeaveTypeRead:
    return LeaveTypeRead.model_validate(catalog.save_leave_type(db, payload=payload, leave_type_id=leave_type_id))


@router.delete("/api/settings/leave-types/{leave_type_id}", response_model=DeleteResponse)
def delete_leave_type(leave_type_id: int, db: Session = Depends(get_db)) -> DeleteResponse:
    catalog.delete_leave_type(db, leave_type_id=leave_type_id)
    return DeleteResponse(ok=True, id=leave_type_id)


@router.get("/api/settings/holidays", response_model=list[HolidayRead])
def list_holidays(
    year: int | None = Query(default=None, ge=1970, le=2100),
    db: Session = Depends(get_db),
) -> list[HolidayRead]:
    return [HolidayRead.model_validate(item) for item in catalog.list_holidays(db, year=year)]


@router.get("/api/settings/holidays/upcoming", response_model=list[HolidayRead])
def list_upcoming_holidays(
    limit: int = Query(default=5, ge=1, le=50),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> list[HolidayRead]:
    return [HolidayRead.model_validate(item) for item in catalog.list_upcoming_holidays(db, today=today, limit=limit)]


@router.post("/api/settings/holidays", response_model=HolidayRead, status_code=201)
def create_holiday(payload: HolidayCreate, db: Session = Depends(get_db)) -> HolidayRead:
    return HolidayRead.model_validate(catalog.save_holiday(db, payload=payload))


@router.put("/api/settings/holidays/{holiday_id}", response_model=HolidayRead)
def update_holiday(holiday_id: int, payload: HolidayUpdate, db: Session = Depends(get_db)) -> HolidayRead:
    return HolidayRead.model_validate(catalog.save_holiday(db, payload=payload, holiday_id=holiday_id))


@router.delete("/api/settings/holidays/{holiday_id}", response_model=DeleteResponse)
def delete_holiday(holiday_id: int, db: Session = Depends(get_db)) -> DeleteResponse:
    catalog.delete_holiday(db, holiday_id=holiday_id)
    return DeleteResponse(ok=True, id=holiday_id)


@router.get("/api/settings/weekly-off", response_model=list[WeeklyOffRead])
def list_weekly_off(db: Session = Depends(get_db)) -> list[WeeklyOffRead]:
    return [WeeklyOffRead.model_validate(item) for item in catalog.list_weekly_off(db)]


@router.put("/api/settings/weekly-off", response_model=WeeklyOffRead)
def set_weekly_off(payload: WeeklyOffUpdateRequest, db: Session = Depends(get_db)) -> WeeklyOffRead:
    return WeeklyOffRead.model_validate(catalog.set_weekly_off(db, day_order=payload.day_order))
