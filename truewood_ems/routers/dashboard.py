from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from truewood_ems.db import get_db
from truewood_ems.deps import get_today
from truewood_ems.schemas import DashboardCountsRead, WeeklyAttendancePoint
from truewood_ems.services.attendance import dashboard_counts, weekly_attendance

router = APIRouter(tags=["dashboard"])


@router.get("/api/dashboard/counts", response_model=DashboardCountsRead)
def get_dashboard_counts(
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> DashboardCountsRead:
    return dashboard_counts(db, today=today)


@router.get("/api/dashboard/weekly-attendance", response_model=list[WeeklyAttendancePoint])
def get_weekly_attendance(
    end: date | None = Query(default=None),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> list[WeeklyAttendancePoint]:
    return weekly_attendance(db, today=end or today)
