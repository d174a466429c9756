from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from truewood_ems.db import get_db
from truewood_ems.deps import get_today
from truewood_ems.schemas import MonthlyTimesheetResponse, TimesheetDailyResponse
from truewood_ems.services.exports import XLSX_MEDIA_TYPE, build_timesheet_xlsx_bytes
from truewood_ems.services.timesheet import build_daily_timesheet, build_monthly_timesheet, current_working_month
from truewood_ems.settings import get_settings

router = APIRouter(tags=["timesheet"])


def _resolve_month(start_year: int | None, start_month: int | None, today: date) -> tuple[int, int]:
    if start_year is None or start_month is None:
        return current_working_month(today)
    return start_year, start_month


@router.get("/api/timesheet/daily", response_model=TimesheetDailyResponse)
def daily_timesheet(
    day: date | None = Query(default=None, alias="date"),
    search: str | None = Query(default=None, max_length=100),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> TimesheetDailyResponse:
    return build_daily_timesheet(db, day=day or today, search=search)


@router.get("/api/timesheet/monthly", response_model=MonthlyTimesheetResponse)
def monthly_timesheet(
    start_year: int | None = Query(default=None, ge=1970, le=2100),
    start_month: int | None = Query(default=None, ge=1, le=12),
    search: str | None = Query(default=None, max_length=100),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> MonthlyTimesheetResponse:
    year, month = _resolve_month(start_year, start_month, today)
    return build_monthly_timesheet(db, start_year=year, start_month=month, search=search)


@router.get("/api/timesheet/monthly/export.xlsx")
def export_monthly_timesheet(
    start_year: int | None = Query(default=None, ge=1970, le=2100),
    start_month: int | None = Query(default=None, ge=1, le=12),
    search: str | None = Query(default=None, max_length=100),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> Response:
    year, month = _resolve_month(start_year, start_month, today)
    timesheet = build_monthly_timesheet(db, start_year=year, start_month=month, search=search)
    payload = build_timesheet_xlsx_bytes(timesheet, organization_name=get_settings().organization_name)
    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="timesheet-{year}-{month:02d}.xlsx"',
        },
    )
