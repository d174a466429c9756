from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from truewood_ems.models import (
    AttendanceRecord,
    AttendanceStatus,
    Employee,
    EmployeeStatus,
    Holiday,
    LeaveType,
    WeeklyOff,
    WorkSite,
)
from truewood_ems.schemas import (
    AttendanceReportResponse,
    AttendanceStatisticsRead,
    ReportCatalogItem,
    ReportDayColumn,
    ReportEmployeeRow,
    ReportLegendItem,
    WorkingPeriodRead,
)
from truewood_ems.services.timesheet import (
    MONTH_NAMES,
    group_by_category,
    iter_days,
    matches_search,
    working_month_period,
    working_year_bounds,
)

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
HOLIDAY = "HOLIDAY"
WEEKLY_OFF = "WEEKLY_OFF"

STATUS_LEGEND = (
    ("P", "Present"),
    ("A", "Absent"),
    ("H", "Holiday"),
    ("W", "Week Off"),
)


def day_order(day: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


def day_name(day: date) -> str:
    return DAY_NAMES[day_order(day)]


def abbreviate(name: str | None) -> str:
    words = (name or "").split()
    if len(words) >= 2:
        return (words[0][0] + words[1][0]).upper()
    return (name or "").strip()[:2].upper()


def work_site_code(work_site: WorkSite) -> str:
    return work_site.short_hand or abbreviate(work_site.name)


def find_holiday(day: date, holidays: Sequence[Holiday]) -> Holiday | None:
    for holiday in holidays:
        if holiday.start_date <= day <= holiday.end_date:
            return holiday
    return None


def is_weekly_off(day: date, weekly_off: Sequence[WeeklyOff]) -> bool:
    order = day_order(day)
    return any(item.is_active and item.day_order == order for item in weekly_off)


def day_status(
    day: date,
    holidays: Sequence[Holiday],
    weekly_off: Sequence[WeeklyOff],
) -> tuple[str | None, str | None]:
    holiday = find_holiday(day, holidays)
    if holiday is not None:
        return HOLIDAY, holiday.name or "Holiday"
    if is_weekly_off(day, weekly_off):
        return WEEKLY_OFF, "Week Off"
    return None, None


def status_label(
    record: AttendanceRecord | None,
    status_of_day: str | None,
    *,
    leave_types: dict[int, LeaveType],
    work_sites: dict[int, WorkSite],
) -> str:
    if record is not None and record.work_site_id is not None:
        work_site = work_sites.get(record.work_site_id)
        if work_site is not None and work_site.name:
            return work_site_code(work_site)

    if record is not None:
        if record.status == AttendanceStatus.PRESENT:
            return "P"
        if record.status == AttendanceStatus.ABSENT:
            return "A"
        if record.status == AttendanceStatus.LEAVE:
            leave_type = leave_types.get(record.leave_type_id) if record.leave_type_id else None
            if leave_type is not None and leave_type.name:
                return abbreviate(leave_type.name)
            return "L"

    if status_of_day == HOLIDAY:
        return "H"
    if status_of_day == WEEKLY_OFF:
        return "W"
    return "-"


def employee_statistics(
    days: Sequence[date],
    records_by_day: dict[date, AttendanceRecord],
) -> AttendanceStatisticsRead:
    """Counts over marked days only; a record on a holiday still counts.

    Leave without a leave type is shown as ``L`` but has no column to count in.
    """
    stats = AttendanceStatisticsRead()
    for day in days:
        record = records_by_day.get(day)
        if record is None:
            continue
        if record.status == AttendanceStatus.PRESENT:
            stats.present += 1
            if record.work_site_id is not None:
                stats.work_sites[record.work_site_id] = stats.work_sites.get(record.work_site_id, 0) + 1
        elif record.status == AttendanceStatus.ABSENT:
            stats.absent += 1
        elif record.status == AttendanceStatus.LEAVE and record.leave_type_id is not None:
            stats.leaves[record.leave_type_id] = stats.leaves.get(record.leave_type_id, 0) + 1
    return stats


def employed_during(employee: Employee, start: date, end: date) -> bool:
    if employee.status == EmployeeStatus.ACTIVE:
        return True
    if employee.exit_date is None:
        return False
    return start <= employee.exit_date <= end


def build_legend(leave_types: Sequence[LeaveType], work_sites: Sequence[WorkSite]) -> list[ReportLegendItem]:
    legend = [ReportLegendItem(code=code, description=text, type="Status") for code, text in STATUS_LEGEND]
    legend.extend(
        ReportLegendItem(code=abbreviate(item.name or "Leave"), description=item.name or "Leave", type="Leave")
        for item in leave_types
    )
    legend.extend(
        ReportLegendItem(code=work_site_code(item), description=item.name, type="Work Site")
        for item in work_sites
    )
    return legend


def _load_catalog(db: Session, start: date, end: date):
    holidays = db.scalars(
        select(Holiday).where(Holiday.start_date <= end, Holiday.end_date >= start).order_by(Holiday.start_date)
    ).all()
    weekly_off = db.scalars(select(WeeklyOff)).all()
    leave_types = db.scalars(select(LeaveType).order_by(LeaveType.name)).all()
    work_sites = db.scalars(select(WorkSite).order_by(WorkSite.name)).all()
    return holidays, weekly_off, leave_types, work_sites


def _load_employees(db: Session, start: date, end: date, search: str | None) -> list[Employee]:
    stmt = (
        select(Employee)
        .options(selectinload(Employee.category))
        .where(
            or_(
                Employee.status == EmployeeStatus.ACTIVE,
                Employee.exit_date.between(start, end),
            )
        )
        .order_by(Employee.id)
    )
    return [
        item
        for item in db.scalars(stmt).all()
        if employed_during(item, start, end) and matches_search(item, search)
    ]


def _load_records(db: Session, start: date, end: date) -> dict[int, dict[date, AttendanceRecord]]:
    records = db.scalars(
        select(AttendanceRecord).where(
            AttendanceRecord.day_date >= start,
            AttendanceRecord.day_date <= end,
        )
    ).all()
    grouped: dict[int, dict[date, AttendanceRecord]] = {}
    for record in records:
        grouped.setdefault(record.employee_id, {})[record.day_date] = record
    return grouped


def _build_report(
    db: Session,
    *,
    kind: str,
    period: WorkingPeriodRead,
    with_cells: bool,
    search: str | None,
) -> AttendanceReportResponse:
    start, end = period.start_date, period.end_date
    days = iter_days(start, end)
    holidays, weekly_off, leave_types, work_sites = _load_catalog(db, start, end)
    leave_types_by_id = {item.id: item for item in leave_types}
    work_sites_by_id = {item.id: item for item in work_sites}

    statuses: dict[date, str | None] = {}
    columns: list[ReportDayColumn] = []
    for day in days:
        status_of_day, status_name = day_status(day, holidays, weekly_off)
        statuses[day] = status_of_day
        if with_cells:
            columns.append(
                ReportDayColumn(
                    day_date=day,
                    day=day.day,
                    day_name=day_name(day),
                    day_status=status_of_day,
                    day_status_name=status_name,
                )
            )

    records = _load_records(db, start, end)
    rows: list[ReportEmployeeRow] = []
    for category, members in group_by_category(_load_employees(db, start, end, search)):
        for employee in members:
            employee_records = records.get(employee.id, {})
            cells = (
                [
                    status_label(
                        employee_records.get(day),
                        statuses[day],
                        leave_types=leave_types_by_id,
                        work_sites=work_sites_by_id,
                    )
                    for day in days
                ]
                if with_cells
                else []
            )
            rows.append(
                ReportEmployeeRow(
                    employee_id=employee.id,
                    employee_code=employee.employee_code,
                    employee_name=employee.name,
                    category=category,
                    cells=cells,
                    statistics=employee_statistics(days, employee_records),
                )
            )

    return AttendanceReportResponse(
        kind=kind,
        period=period,
        columns=columns,
        rows=rows,
        leave_types=[
            ReportCatalogItem(id=item.id, name=item.name, code=abbreviate(item.name)) for item in leave_types
        ],
        work_sites=[
            ReportCatalogItem(id=item.id, name=item.name, code=work_site_code(item)) for item in work_sites
        ],
        legend=build_legend(leave_types, work_sites),
    )


def build_monthly_report(
    db: Session,
    *,
    start_year: int,
    start_month: int,
    search: str | None = None,
) -> AttendanceReportResponse:
    return _build_report(
        db,
        kind="MONTHLY",
        period=working_month_period(start_year, start_month),
        with_cells=True,
        search=search,
    )


def build_yearly_report(db: Session, *, year: int, search: str | None = None) -> AttendanceReportResponse:
    start, end = working_year_bounds(year)
    period = WorkingPeriodRead(
        start_date=start,
        end_date=end,
        label=(
            f"{MONTH_NAMES[start.month - 1]} {start.day}, {start.year} - "
            f"{MONTH_NAMES[end.month - 1]} {end.day}, {end.year}"
        ),
    )
    return _build_report(db, kind="YEARLY", period=period, with_cells=False, search=search)
