from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from truewood_ems.errors import not_found
from truewood_ems.models import (
    AttendanceRecord,
    AttendanceStatus,
    Employee,
    EmployeeStatus,
    LeaveType,
    WorkSite,
    WorkSiteStatus,
)
from truewood_ems.schemas import (
    AttendanceUpsertRequest,
    DashboardCountsRead,
    TimesheetRecordUpdateRequest,
    UpcomingLeaveRead,
    WeeklyAttendancePoint,
)
from truewood_ems.services.reports import day_name
from truewood_ems.services.schedule_resolver import load_schedule_context, resolve_expected_window
from truewood_ems.services.time_calc import format_minutes

logger = logging.getLogger("truewood_ems.attendance")


def _ensure_employee_exists(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise not_found("employee")
    return employee


def _ensure_work_site_exists(db: Session, work_site_id: int | None) -> None:
    if work_site_id is not None and db.get(WorkSite, work_site_id) is None:
        raise not_found("work site")


def _ensure_leave_type_exists(db: Session, leave_type_id: int | None) -> None:
    if leave_type_id is not None and db.get(LeaveType, leave_type_id) is None:
        raise not_found("leave type")


def default_times_for(
    db: Session,
    *,
    employee: Employee,
    work_site_id: int | None,
    day: date,
) -> tuple[str | None, str | None]:
    """Schedule in effect for the employee that day, as stored HH:MM values."""
    context = load_schedule_context(db, up_to=day)
    window = resolve_expected_window(
        context,
        category_id=employee.category_id,
        work_site_id=work_site_id,
        day=day,
    )
    time_in = format_minutes(window.start) if window.start is not None else None
    time_out = format_minutes(window.end) if window.end is not None else None
    return time_in, time_out


def upsert_attendance(db: Session, *, payload: AttendanceUpsertRequest) -> AttendanceRecord:
    employee = _ensure_employee_exists(db, payload.employee_id)
    _ensure_work_site_exists(db, payload.work_site_id)
    leave_type_id = payload.leave_type_id if payload.status == AttendanceStatus.LEAVE else None
    _ensure_leave_type_exists(db, leave_type_id)

    record = db.scalar(
        select(AttendanceRecord).where(
            AttendanceRecord.employee_id == payload.employee_id,
            AttendanceRecord.day_date == payload.day_date,
        )
    )
    is_new = record is None
    if record is None:
        record = AttendanceRecord(employee_id=payload.employee_id, day_date=payload.day_date)
        db.add(record)

    record.status = payload.status
    record.leave_type_id = leave_type_id
    record.work_site_id = payload.work_site_id

    if payload.status == AttendanceStatus.PRESENT and not payload.has_explicit_times:
        record.time_in, record.time_out = default_times_for(
            db,
            employee=employee,
            work_site_id=payload.work_site_id,
            day=payload.day_date,
        )
    else:
        if "time_in" in payload.model_fields_set:
            record.time_in = payload.time_in
        elif payload.status != AttendanceStatus.PRESENT:
            record.time_in = None
        if "time_out" in payload.model_fields_set:
            record.time_out = payload.time_out
        elif payload.status != AttendanceStatus.PRESENT:
            record.time_out = None

    db.commit()
    db.refresh(record)
    logger.info(
        "attendance_upserted",
        extra={
            "attendance_id": record.id,
            "employee_id": record.employee_id,
            "day_date": record.day_date,
            "status": record.status.value,
            "work_site_id": record.work_site_id,
            "is_new": is_new,
        },
    )
    return record


def list_attendance_for_day(db: Session, *, day: date) -> list[AttendanceRecord]:
    return list(
        db.scalars(
            select(AttendanceRecord)
            .where(AttendanceRecord.day_date == day)
            .order_by(AttendanceRecord.employee_id.asc())
        ).all()
    )


def delete_attendance(db: Session, *, employee_id: int, day: date) -> int:
    result = db.execute(
        delete(AttendanceRecord).where(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.day_date == day,
        )
    )
    db.commit()
    deleted = int(result.rowcount or 0)
    if deleted == 0:
        raise not_found("attendance record")
    logger.info("attendance_deleted", extra={"employee_id": employee_id, "day_date": day})
    return deleted


def reset_attendance_day(db: Session, *, day: date) -> int:
    result = db.execute(delete(AttendanceRecord).where(AttendanceRecord.day_date == day))
    db.commit()
    deleted = int(result.rowcount or 0)
    logger.info("attendance_day_reset", extra={"day_date": day, "deleted": deleted})
    return deleted


def update_timesheet_record(
    db: Session,
    *,
    record_id: int,
    payload: TimesheetRecordUpdateRequest,
) -> AttendanceRecord:
    record = db.get(AttendanceRecord, record_id)
    if record is None:
        raise not_found("attendance record")

    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        return record
    if "work_site_id" in changes:
        _ensure_work_site_exists(db, changes["work_site_id"])

    for field_name, value in changes.items():
        setattr(record, field_name, value)
    db.commit()
    db.refresh(record)
    logger.info(
        "timesheet_record_updated",
        extra={"attendance_id": record.id, "fields": sorted(changes)},
    )
    return record


def list_upcoming_leaves(db: Session, *, today: date, limit: int = 5) -> list[UpcomingLeaveRead]:
    rows = db.execute(
        select(AttendanceRecord, Employee, LeaveType)
        .join(Employee, Employee.id == AttendanceRecord.employee_id)
        .outerjoin(LeaveType, LeaveType.id == AttendanceRecord.leave_type_id)
        .where(
            AttendanceRecord.status == AttendanceStatus.LEAVE,
            AttendanceRecord.day_date >= today,
        )
        .order_by(AttendanceRecord.day_date.asc(), AttendanceRecord.id.asc())
        .limit(limit)
    ).all()
    return [
        UpcomingLeaveRead(
            id=record.id,
            day_date=record.day_date,
            employee_id=employee.id,
            employee_name=employee.name,
            employee_code=employee.employee_code,
            leave_type_id=record.leave_type_id,
            leave_type_name=leave_type.name if leave_type is not None else "Leave",
        )
        for record, employee, leave_type in rows
    ]


def _count(db: Session, stmt) -> int:
    return int(db.scalar(stmt) or 0)


def dashboard_counts(db: Session, *, today: date) -> DashboardCountsRead:
    return DashboardCountsRead(
        total_employees=_count(db, select(func.count(Employee.id))),
        active_employees=_count(
            db, select(func.count(Employee.id)).where(Employee.status == EmployeeStatus.ACTIVE)
        ),
        active_work_sites=_count(
            db, select(func.count(WorkSite.id)).where(WorkSite.status == WorkSiteStatus.ACTIVE)
        ),
        today_present=_count(
            db,
            select(func.count(AttendanceRecord.id)).where(
                AttendanceRecord.day_date == today,
                AttendanceRecord.status == AttendanceStatus.PRESENT,
            ),
        ),
        today_absent_or_leave=_count(
            db,
            select(func.count(AttendanceRecord.id)).where(
                AttendanceRecord.day_date == today,
                AttendanceRecord.status.in_([AttendanceStatus.ABSENT, AttendanceStatus.LEAVE]),
            ),
        ),
    )


def weekly_attendance(db: Session, *, today: date) -> list[WeeklyAttendancePoint]:
    start = today - timedelta(days=6)
    rows = db.execute(
        select(AttendanceRecord.day_date, AttendanceRecord.status, func.count(AttendanceRecord.id))
        .where(AttendanceRecord.day_date >= start, AttendanceRecord.day_date <= today)
        .group_by(AttendanceRecord.day_date, AttendanceRecord.status)
    ).all()
    points = {
        start + timedelta(days=offset): WeeklyAttendancePoint(
            day_date=start + timedelta(days=offset),
            day_name=day_name(start + timedelta(days=offset)),
        )
        for offset in range(7)
    }
    for day_value, status, count in rows:
        point = points.get(day_value)
        if point is None:
            continue
        if status == AttendanceStatus.PRESENT:
            point.present += int(count)
        elif status == AttendanceStatus.ABSENT:
            point.absent += int(count)
        else:
            point.leave += int(count)
    return [points[key] for key in sorted(points)]
