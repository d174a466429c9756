from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from truewood_ems.errors import conflict, invalid, not_found
from truewood_ems.models import (
    AttendanceRecord,
    AttendanceStatus,
    Category,
    Department,
    Employee,
    EmployeeStatus,
    EmploymentHistory,
    LeaveType,
    WorkSite,
)
from truewood_ems.schemas import EmployeeCreate, EmployeeRead, EmployeeUpdate, LeaveBalanceItem

logger = logging.getLogger("truewood_ems.employees")


def to_employee_read(employee: Employee) -> EmployeeRead:
    return EmployeeRead(
        id=employee.id,
        employee_code=employee.employee_code,
        name=employee.name,
        phone=employee.phone,
        category_id=employee.category_id,
        category_name=employee.category.name if employee.category is not None else None,
        department_id=employee.department_id,
        department_name=employee.department.name if employee.department is not None else None,
        work_site_id=employee.work_site_id,
        joining_date=employee.joining_date,
        exit_date=employee.exit_date,
        salary=employee.salary,
        status=employee.status,
        created_at=employee.created_at,
    )


def get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.scalar(
        select(Employee)
        .options(selectinload(Employee.category), selectinload(Employee.department))
        .where(Employee.id == employee_id)
    )
    if employee is None:
        raise not_found("employee")
    return employee


def list_employees(
    db: Session,
    *,
    status: EmployeeStatus | None = None,
    search: str | None = None,
    limit: int | None = None,
    newest_first: bool = False,
) -> list[Employee]:
    stmt = select(Employee).options(selectinload(Employee.category), selectinload(Employee.department))
    if status is not None:
        stmt = stmt.where(Employee.status == status)
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            func.lower(Employee.name).like(pattern) | func.lower(func.coalesce(Employee.employee_code, "")).like(pattern)
        )
    if newest_first:
        stmt = stmt.order_by(Employee.created_at.desc(), Employee.id.desc())
    else:
        stmt = stmt.order_by(Employee.id.asc())
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt).all())


def _check_references(
    db: Session,
    *,
    category_id: int | None,
    department_id: int | None,
    work_site_id: int | None,
) -> None:
    if category_id is not None and db.get(Category, category_id) is None:
        raise not_found("category")
    if department_id is not None and db.get(Department, department_id) is None:
        raise not_found("department")
    if work_site_id is not None and db.get(WorkSite, work_site_id) is None:
        raise not_found("work site")


def _ensure_code_available(db: Session, employee_code: str | None, *, exclude_id: int | None = None) -> None:
    if not employee_code:
        return
    stmt = select(Employee.id).where(Employee.employee_code == employee_code)
    if exclude_id is not None:
        stmt = stmt.where(Employee.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise conflict("EMPLOYEE_CODE_EXISTS", f"Employee ID {employee_code} already exists")


def _check_dates(joining_date: date | None, exit_date: date | None) -> None:
    if joining_date and exit_date and exit_date < joining_date:
        raise invalid("INVALID_DATE_RANGE", "exit_date must be greater than or equal to joining_date")


def _commit(db: Session, employee_code: str | None) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict("EMPLOYEE_CODE_EXISTS", f"Employee ID {employee_code} already exists")


def create_employee(db: Session, *, payload: EmployeeCreate, today: date) -> Employee:
    _check_references(
        db,
        category_id=payload.category_id,
        department_id=payload.department_id,
        work_site_id=payload.work_site_id,
    )
    _ensure_code_available(db, payload.employee_code)
    exit_date = payload.exit_date
    if payload.status == EmployeeStatus.INACTIVE and exit_date is None:
        exit_date = today
    _check_dates(payload.joining_date, exit_date)

    employee = Employee(
        employee_code=payload.employee_code,
        name=payload.name,
        phone=payload.phone,
        category_id=payload.category_id,
        department_id=payload.department_id,
        work_site_id=payload.work_site_id,
        joining_date=payload.joining_date,
        exit_date=exit_date,
        salary=payload.salary,
        status=payload.status,
    )
    db.add(employee)
    db.flush()
    if employee.joining_date is not None:
        db.add(
            EmploymentHistory(
                employee_id=employee.id,
                joining_date=employee.joining_date,
                exit_date=employee.exit_date,
                status=employee.status,
            )
        )
    _commit(db, payload.employee_code)
    logger.info("employee_created", extra={"employee_id": employee.id, "employee_code": employee.employee_code})
    return get_employee(db, employee.id)


def _latest_history(db: Session, employee_id: int) -> EmploymentHistory | None:
    return db.scalar(
        select(EmploymentHistory)
        .where(EmploymentHistory.employee_id == employee_id)
        .order_by(EmploymentHistory.joining_date.desc(), EmploymentHistory.id.desc())
        .limit(1)
    )


def update_employee(db: Session, *, employee_id: int, payload: EmployeeUpdate, today: date) -> Employee:
    """Partial update; only fields present in the body are applied."""
    employee = get_employee(db, employee_id)
    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] is None:
        raise invalid("NAME_REQUIRED", "Employee name is required")
    if "status" in changes and changes["status"] is None:
        changes.pop("status")

    _check_references(
        db,
        category_id=changes.get("category_id"),
        department_id=changes.get("department_id"),
        work_site_id=changes.get("work_site_id"),
    )
    if "employee_code" in changes:
        _ensure_code_available(db, changes["employee_code"], exclude_id=employee.id)

    was_active = employee.status == EmployeeStatus.ACTIVE
    for field_name, value in changes.items():
        setattr(employee, field_name, value)

    if was_active and employee.status == EmployeeStatus.INACTIVE and employee.exit_date is None:
        employee.exit_date = today
    if not was_active and employee.status == EmployeeStatus.ACTIVE and "exit_date" not in changes:
        employee.exit_date = None
    _check_dates(employee.joining_date, employee.exit_date)

    history = _latest_history(db, employee.id)
    if history is None and employee.joining_date is not None:
        db.add(
            EmploymentHistory(
                employee_id=employee.id,
                joining_date=employee.joining_date,
                exit_date=employee.exit_date,
                status=employee.status,
            )
        )
    elif history is not None:
        if employee.joining_date is not None:
            history.joining_date = employee.joining_date
        history.exit_date = employee.exit_date
        history.status = employee.status

    _commit(db, employee.employee_code)
    if was_active != (employee.status == EmployeeStatus.ACTIVE):
        logger.info(
            "employee_status_changed",
            extra={
                "employee_id": employee.id,
                "status": employee.status.value,
                "exit_date": employee.exit_date,
            },
        )
    return get_employee(db, employee.id)


def delete_employee(db: Session, *, employee_id: int) -> None:
    employee = get_employee(db, employee_id)
    db.delete(employee)
    db.commit()
    logger.info("employee_deleted", extra={"employee_id": employee_id})


def list_employment_history(db: Session, *, employee_id: int) -> list[EmploymentHistory]:
    get_employee(db, employee_id)
    return list(
        db.scalars(
            select(EmploymentHistory)
            .where(EmploymentHistory.employee_id == employee_id)
            .order_by(EmploymentHistory.joining_date.desc(), EmploymentHistory.id.desc())
        ).all()
    )


def backfill_employment_history(db: Session) -> int:
    """Create a history row for every employee with a joining date and none yet."""
    has_history = select(EmploymentHistory.employee_id)
    employees = db.scalars(
        select(Employee).where(
            Employee.joining_date.is_not(None),
            Employee.id.not_in(has_history),
        )
    ).all()
    for employee in employees:
        db.add(
            EmploymentHistory(
                employee_id=employee.id,
                joining_date=employee.joining_date,
                exit_date=employee.exit_date,
                status=employee.status,
            )
        )
    db.commit()
    if employees:
        logger.info("employment_history_backfilled", extra={"created_count": len(employees)})
    return len(employees)


def leave_balance(db: Session, *, employee_id: int, year: int) -> list[LeaveBalanceItem]:
    get_employee(db, employee_id)
    leave_types = db.scalars(select(LeaveType).order_by(LeaveType.name.asc())).all()
    if not leave_types:
        return []

    taken_rows = db.execute(
        select(AttendanceRecord.leave_type_id, func.count(AttendanceRecord.id))
        .where(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.status == AttendanceStatus.LEAVE,
            AttendanceRecord.day_date >= date(year, 1, 1),
            AttendanceRecord.day_date <= date(year, 12, 31),
        )
        .group_by(AttendanceRecord.leave_type_id)
    ).all()
    taken = {leave_type_id: int(count) for leave_type_id, count in taken_rows}

    result: list[LeaveBalanceItem] = []
    for leave_type in leave_types:
        taken_days = taken.get(leave_type.id, 0)
        remaining = max(0, leave_type.max_days - taken_days) if leave_type.max_days is not None else None
        result.append(
            LeaveBalanceItem(
                leave_type_id=leave_type.id,
                leave_type_name=leave_type.name,
                max_days=leave_type.max_days,
                taken_days=taken_days,
                remaining_days=remaining,
                is_paid=leave_type.is_paid,
            )
        )
    return result
