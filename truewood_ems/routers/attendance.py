from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from truewood_ems.db import get_db
from truewood_ems.deps import get_today
from truewood_ems.schemas import (
    AttendanceRead,
    AttendanceUpsertRequest,
    DayResetResponse,
    DeleteResponse,
    TimesheetRecordUpdateRequest,
    UpcomingLeaveRead,
)
from truewood_ems.services import attendance

router = APIRouter(tags=["attendance"])


@router.put("/api/attendance", response_model=AttendanceRead)
def upsert_attendance(payload: AttendanceUpsertRequest, db: Session = Depends(get_db)) -> AttendanceRead:
    return AttendanceRead.model_validate(attendance.upsert_attendance(db, payload=payload))


@router.get("/api/attendance", response_model=list[AttendanceRead])
def list_attendance(
    day: date = Query(alias="date"),
    db: Session = Depends(get_db),
) -> list[AttendanceRead]:
    return [AttendanceRead.model_validate(item) for item in attendance.list_attendance_for_day(db, day=day)]


@router.delete("/api/attendance", response_model=DeleteResponse)
def delete_attendance(
    employee_id: int = Query(ge=1),
    day: date = Query(alias="date"),
    db: Session = Depends(get_db),
) -> DeleteResponse:
    attendance.delete_attendance(db, employee_id=employee_id, day=day)
    return DeleteResponse(ok=True)


@router.delete("/api/attendance/day", response_model=DayResetResponse)
def reset_attendance_day(
    day: date = Query(alias="date"),
    db: Session = Depends(get_db),
) -> DayResetResponse:
    deleted = attendance.reset_attendance_day(db, day=day)
    return DayResetResponse(ok=True, day_date=day, deleted=deleted)


@router.patch("/api/attendance/{record_id}/timesheet", response_model=AttendanceRead)
def update_timesheet_record(
    record_id: int,
    payload: TimesheetRecordUpdateRequest,
    db: Session = Depends(get_db),
) -> AttendanceRead:
    return AttendanceRead.model_validate(
        attendance.update_timesheet_record(db, record_id=record_id, payload=payload)
    )


@router.get("/api/attendance/upcoming-leaves", response_model=list[UpcomingLeaveRead])
def list_upcoming_leaves(
    limit: int = Query(default=5, ge=1, le=50),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> list[UpcomingLeaveRead]:
    return attendance.list_upcoming_leaves(db, today=today, limit=limit)
