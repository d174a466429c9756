import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from truewood_ems.db import get_db
from truewood_ems.deps import get_today
from truewood_ems.schemas import AttendanceReportResponse
from truewood_ems.services.exports import (
    PDF_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    build_report_pdf_bytes,
    build_report_xlsx_bytes,
)
from truewood_ems.services.reports import build_monthly_report, build_yearly_report
from truewood_ems.services.timesheet import current_working_month
from truewood_ems.settings import get_settings

router = APIRouter(tags=["reports"])
logger = logging.getLogger("truewood_ems.reports")


def _monthly(
    db: Session,
    start_year: int | None,
    start_month: int | None,
    search: str | None,
    today: date,
) -> tuple[AttendanceReportResponse, str]:
    if start_year is None or start_month is None:
        start_year, start_month = current_working_month(today)
    report = build_monthly_report(db, start_year=start_year, start_month=start_month, search=search)
    return report, f"{start_year}-{start_month:02d}"


def _download(content: bytes, *, media_type: str, filename: str) -> Response:
    logger.info("report_exported", extra={"download_name": filename, "size_bytes": len(content)})
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/api/reports/monthly", response_model=AttendanceReportResponse)
def monthly_report(
    start_year: int | None = Query(default=None, ge=1970, le=2100),
    start_month: int | None = Query(default=None, ge=1, le=12),
    search: str | None = Query(default=None, max_length=100),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> AttendanceReportResponse:
    report, _ = _monthly(db, start_year, start_month, search, today)
    return report


@router.get("/api/reports/monthly/export.xlsx")
def export_monthly_report_xlsx(
    start_year: int | None = Query(default=None, ge=1970, le=2100),
    start_month: int | None = Query(default=None, ge=1, le=12),
    search: str | None = Query(default=None, max_length=100),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> Response:
    report, suffix = _monthly(db, start_year, start_month, search, today)
    content = build_report_xlsx_bytes(report, organization_name=get_settings().organization_name)
    return _download(content, media_type=XLSX_MEDIA_TYPE, filename=f"attendance-{suffix}.xlsx")


@router.get("/api/reports/monthly/export.pdf")
def export_monthly_report_pdf(
    start_year: int | None = Query(default=None, ge=1970, le=2100),
    start_month: int | None = Query(default=None, ge=1, le=12),
    search: str | None = Query(default=None, max_length=100),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> Response:
    report, suffix = _monthly(db, start_year, start_month, search, today)
    content = build_report_pdf_bytes(report, organization_name=get_settings().organization_name)
    return _download(content, media_type=PDF_MEDIA_TYPE, filename=f"attendance-{suffix}.pdf")


@router.get("/api/reports/yearly", response_model=AttendanceReportResponse)
def yearly_report(
    year: int | None = Query(default=None, ge=1970, le=2100),
    search: str | None = Query(default=None, max_length=100),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> AttendanceReportResponse:
    return build_yearly_report(db, year=year or today.year, search=search)


@router.get("/api/reports/yearly/export.xlsx")
def export_yearly_report_xlsx(
    year: int | None = Query(default=None, ge=1970, le=2100),
    search: str | None = Query(default=None, max_length=100),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> Response:
    selected_year = year or today.year
    report = build_yearly_report(db, year=selected_year, search=search)
    content = build_report_xlsx_bytes(report, organization_name=get_settings().organization_name)
    return _download(content, media_type=XLSX_MEDIA_TYPE, filename=f"attendance-yearly-{selected_year}.xlsx")


@router.get("/api/reports/yearly/export.pdf")
def export_yearly_report_pdf(
    year: int | None = Query(default=None, ge=1970, le=2100),
    search: str | None = Query(default=None, max_length=100),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> Response:
    selected_year = year or today.year
    report = build_yearly_report(db, year=selected_year, search=search)
    content = build_report_pdf_bytes(report, organization_name=get_settings().organization_name)
    return _download(content, media_type=PDF_MEDIA_TYPE, filename=f"attendance-yearly-{selected_year}.pdf")
