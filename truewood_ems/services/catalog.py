"""Settings catalog: categories, departments, leave types, holidays, weekly off."""

from __future__ import annotations

import logging
from datetime import date
from typing import TypeVar

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from truewood_ems.errors import conflict, not_found
from truewood_ems.models import Category, Department, Holiday, LeaveType, WeeklyOff
from truewood_ems.schemas import (
    CategoryCreate,
    DepartmentCreate,
    HolidayCreate,
    LeaveTypeCreate,
)

logger = logging.getLogger("truewood_ems.catalog")

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

ModelT = TypeVar("ModelT", Category, Department, LeaveType, Holiday)


def _get(db: Session, model: type[ModelT], item_id: int, entity: str) -> ModelT:
    item = db.get(model, item_id)
    if item is None:
        raise not_found(entity)
    return item


def _commit_unique(db: Session, *, code: str, entity: str) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict(code, f"{entity.capitalize()} name already exists")


def _delete(db: Session, model: type[ModelT], item_id: int, entity: str) -> None:
    item = _get(db, model, item_id, entity)
    db.delete(item)
    db.commit()
    logger.info("catalog_item_deleted", extra={"entity": entity, "item_id": item_id})


# --- categories ---------------------------------------------------------------


def list_categories(db: Session) -> list[Category]:
    return list(db.scalars(select(Category).order_by(Category.name.asc())).all())


def save_category(db: Session, *, payload: CategoryCreate, category_id: int | None = None) -> Category:
    if category_id is None:
        category = Category()
        db.add(category)
    else:
        category = _get(db, Category, category_id, "category")
    category.name = payload.name
    category.description = payload.description
    category.time_in = payload.time_in
    category.time_out = payload.time_out
    category.break_hours = payload.break_hours
    _commit_unique(db, code="CATEGORY_NAME_EXISTS", entity="category")
    db.refresh(category)
    return category


def delete_category(db: Session, *, category_id: int) -> None:
    _delete(db, Category, category_id, "category")


# --- departments --------------------------------------------------------------


def list_departments(db: Session) -> list[Department]:
    return list(db.scalars(select(Department).order_by(Department.name.asc())).all())


def save_department(db: Session, *, payload: DepartmentCreate, department_id: int | None = None) -> Department:
    if department_id is None:
        department = Department()
        db.add(department)
    else:
        department = _get(db, Department, department_id, "department")
    department.name = payload.name
    department.description = payload.description
    _commit_unique(db, code="DEPARTMENT_NAME_EXISTS", entity="department")
    db.refresh(department)
    return department


def delete_department(db: Session, *, department_id: int) -> None:
    _delete(db, Department, department_id, "department")


# --- leave types --------------------------------------------------------------


def list_leave_types(db: Session) -> list[LeaveType]:
    return list(db.scalars(select(LeaveType).order_by(LeaveType.name.asc())).all())


def save_leave_type(db: Session, *, payload: LeaveTypeCreate, leave_type_id: int | None = None) -> LeaveType:
    if leave_type_id is None:
        leave_type = LeaveType()
        db.add(leave_type)
    else:
        leave_type = _get(db, LeaveType, leave_type_id, "leave type")
    leave_type.name = payload.name
    leave_type.description = payload.description
    leave_type.max_days = payload.max_days
    leave_type.is_paid = payload.is_paid
    _commit_unique(db, code="LEAVE_TYPE_NAME_EXISTS", entity="leave type")
    db.refresh(leave_type)
    return leave_type


def delete_leave_type(db: Session, *, leave_type_id: int) -> None:
    _delete(db, LeaveType, leave_type_id, "leave type")


# --- holidays -----------------------------------------------------------------


def list_holidays(db: Session, *, year: int | None = None) -> list[Holiday]:
    stmt = select(Holiday).order_by(Holiday.start_date.asc(), Holiday.id.asc())
    if year is not None:
        stmt = stmt.where(Holiday.start_date <= date(year, 12, 31), Holiday.end_date >= date(year, 1, 1))
    return list(db.scalars(stmt).all())


def list_upcoming_holidays(db: Session, *, today: date, limit: int = 5) -> list[Holiday]:
    return list(
        db.scalars(
            select(Holiday)
            .where(or_(Holiday.start_date >= today, Holiday.end_date >= today))
            .order_by(Holiday.start_date.asc())
            .limit(limit)
        ).all()
    )


def save_holiday(db: Session, *, payload: HolidayCreate, holiday_id: int | None = None) -> Holiday:
    if holiday_id is None:
        holiday = Holiday()
        db.add(holiday)
    else:
        holiday = _get(db, Holiday, holiday_id, "holiday")
    holiday.name = payload.name
    holiday.start_date = payload.start_date
    holiday.end_date = payload.end_date
    holiday.description = payload.description
    db.commit()
    db.refresh(holiday)
    return holiday


def delete_holiday(db: Session, *, holiday_id: int) -> None:
    _delete(db, Holiday, holiday_id, "holiday")


# --- weekly off ---------------------------------------------------------------


def list_weekly_off(db: Session) -> list[WeeklyOff]:
    return list(db.scalars(select(WeeklyOff).order_by(WeeklyOff.day_order.asc())).all())


def set_weekly_off(db: Session, *, day_order: int) -> WeeklyOff:
    """Make ``day_order`` (0 = Sunday) the single active weekly off."""
    db.execute(update(WeeklyOff).where(WeeklyOff.is_active.is_(True)).values(is_active=False))
    row = db.scalar(select(WeeklyOff).where(WeeklyOff.day_order == day_order))
    if row is None:
        row = WeeklyOff(day_order=day_order, day_name=WEEKDAY_NAMES[day_order], is_active=True)
        db.add(row)
    else:
        row.is_active = True
        row.day_name = WEEKDAY_NAMES[day_order]
    db.commit()
    db.refresh(row)
    logger.info("weekly_off_changed", extra={"day_order": day_order, "day_name": row.day_name})
    return row
