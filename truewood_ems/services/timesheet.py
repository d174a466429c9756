from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from truewood_ems.models import AttendanceRecord, AttendanceStatus, Employee, EmployeeStatus, WorkSite
from truewood_ems.schemas import (
    MonthlyTimesheetDay,
    MonthlyTimesheetEmployee,
    MonthlyTimesheetResponse,
    MonthlyTimesheetTotals,
    TimesheetCategoryGroup,
    TimesheetDailyResponse,
    TimesheetDailyRow,
    WorkingPeriodRead,
)
from truewood_ems.services.schedule_resolver import (
    ScheduleContext,
    load_schedule_context,
    resolve_actual_default_window,
    resolve_expected_window,
)
from truewood_ems.services.time_calc import (
    EMPTY_WINDOW,
    ScheduleWindow,
    break_hours_to_minutes,
    compute_overtime_minutes,
    compute_worked_minutes,
    display_minutes,
    format_minutes,
    is_sunday,
    normalize_to_hhmm,
)
from truewood_ems.settings import get_category_order, get_settings

UNCATEGORIZED = "Uncategorized"
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

_NATURAL_CHUNK = re.compile(r"(\d+)")


@dataclass(frozen=True)
class DayResult:
    worked_minutes: int | None
    overtime_minutes: int | None
    expected: ScheduleWindow = EMPTY_WINDOW
    actual: ScheduleWindow = EMPTY_WINDOW


EMPTY_DAY = DayResult(worked_minutes=None, overtime_minutes=None)


def compute_day(
    record: AttendanceRecord | None,
    category_id: int | None,
    context: ScheduleContext,
) -> DayResult:
    """Worked and overtime minutes for one attendance record.

    The clocked times are the record's own times, falling back per field to
    the schedule in effect that day. The record's break wins over the
    expected break when one was entered.
    """
    if record is None or record.status != AttendanceStatus.PRESENT:
        return EMPTY_DAY

    day = record.day_date
    expected = resolve_expected_window(
        context,
        category_id=category_id,
        work_site_id=record.work_site_id,
        day=day,
    )
    actual = resolve_actual_default_window(
        context,
        category_id=category_id,
        work_site_id=record.work_site_id,
        day=day,
        recorded_time_in=record.time_in,
        recorded_time_out=record.time_out,
    )
    if record.break_hours is not None:
        actual_break = break_hours_to_minutes(record.break_hours)
    else:
        actual_break = expected.break_minutes
    actual = ScheduleWindow(start=actual.start, end=actual.end, break_minutes=actual_break)

    worked = compute_worked_minutes(actual.start, actual.end, actual_break, day)
    overtime = compute_overtime_minutes(
        actual.start,
        actual.end,
        expected.start,
        expected.end,
        actual_break,
        expected.break_minutes,
        day,
    )
    return DayResult(worked_minutes=worked, overtime_minutes=overtime, expected=expected, actual=actual)


# --- ordering -----------------------------------------------------------------


def natural_sort_key(value: str | None) -> tuple[tuple[int, int | str], ...]:
    if not value:
        return ((2, ""),)
    parts = _NATURAL_CHUNK.split(value.strip().lower())
    key: list[tuple[int, int | str]] = []
    for part in parts:
        if not part:
            continue
        if part.isdigit():
            key.append((0, int(part)))
        else:
            key.append((1, part))
    return tuple(key)


def category_label(employee: Employee) -> str:
    category = employee.category
    if category is None or not category.name:
        return UNCATEGORIZED
    return category.name


def category_sort_key(name: str, order: Sequence[str] | None = None) -> tuple[int, str]:
    order = list(order) if order is not None else get_category_order()
    if name in order:
        return (0, f"{order.index(name):04d}")
    if name == UNCATEGORIZED:
        return (2, "")
    return (1, name.lower())


def matches_search(employee: Employee, search: str | None) -> bool:
    if not search or not search.strip():
        return True
    needle = search.strip().lower()
    code = (employee.employee_code or "").lower()
    return needle in code or needle in employee.name.lower()


def group_by_category(
    employees: Iterable[Employee],
    *,
    order: Sequence[str] | None = None,
) -> list[tuple[str, list[Employee]]]:
    grouped: dict[str, list[Employee]] = {}
    for employee in employees:
        grouped.setdefault(category_label(employee), []).append(employee)

    result: list[tuple[str, list[Employee]]] = []
    for name in sorted(grouped, key=lambda item: category_sort_key(item, order)):
        members = sorted(grouped[name], key=lambda item: natural_sort_key(item.employee_code))
        result.append((name, members))
    return result


# --- working month ------------------------------------------------------------


def working_month_bounds(start_year: int, start_month: int) -> tuple[date, date]:
    """Working month that starts on the configured day of ``start_month``."""
    start_day = get_settings().working_month_start_day
    start = date(start_year, start_month, start_day)
    if start_month == 12:
        end = date(start_year + 1, 1, start_day - 1)
    else:
        end = date(start_year, start_month + 1, start_day - 1)
    return start, end


def current_working_month(today: date) -> tuple[int, int]:
    if today.day >= get_settings().working_month_start_day:
        return today.year, today.month
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def working_year_bounds(year: int) -> tuple[date, date]:
    start, _ = working_month_bounds(year - 1, 12)
    _, end = working_month_bounds(year, 11)
    return start, end


def working_month_label(start_year: int, start_month: int) -> str:
    start, end = working_month_bounds(start_year, start_month)
    return f"{MONTH_NAMES[start.month - 1]} {start.day} - {MONTH_NAMES[end.month - 1]} {end.day}, {end.year}"


def iter_days(start: date, end: date) -> list[date]:
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def working_month_period(start_year: int, start_month: int) -> WorkingPeriodRead:
    start, end = working_month_bounds(start_year, start_month)
    return WorkingPeriodRead(
        start_date=start,
        end_date=end,
        label=working_month_label(start_year, start_month),
    )


# --- daily --------------------------------------------------------------------


def _status_label(record: AttendanceRecord | None) -> str:
    if record is None:
        return "Not Marked"
    return {
        AttendanceStatus.PRESENT: "Present",
        AttendanceStatus.LEAVE: "Leave",
        AttendanceStatus.ABSENT: "Absent",
    }[record.status]


def _project_label(record: AttendanceRecord | None, work_sites: dict[int, WorkSite]) -> str:
    if record is None or record.status != AttendanceStatus.PRESENT or record.work_site_id is None:
        return "-"
    work_site = work_sites.get(record.work_site_id)
    if work_site is None:
        return "-"
    return work_site.short_hand or work_site.name


def _window_time(minutes: int | None) -> str:
    return "-" if minutes is None else format_minutes(minutes)


def build_daily_row(
    employee: Employee,
    record: AttendanceRecord | None,
    context: ScheduleContext,
    work_sites: dict[int, WorkSite],
) -> TimesheetDailyRow:
    result = compute_day(record, employee.category_id, context)
    is_present = record is not None and record.status == AttendanceStatus.PRESENT
    return TimesheetDailyRow(
        employee_id=employee.id,
        employee_code=employee.employee_code,
        employee_name=employee.name,
        record_id=record.id if record is not None else None,
        status=record.status if record is not None else None,
        status_label=_status_label(record),
        project=_project_label(record, work_sites),
        work_site_id=record.work_site_id if record is not None else None,
        time_in=_window_time(result.actual.start) if is_present else "-",
        time_out=_window_time(result.actual.end) if is_present else "-",
        worked_minutes=result.worked_minutes,
        overtime_minutes=result.overtime_minutes,
        worked_display=display_minutes(result.worked_minutes),
        overtime_display=display_minutes(result.overtime_minutes, hide_zero=True),
        edit_time_in=normalize_to_hhmm(record.time_in) if record is not None else "",
        edit_time_out=normalize_to_hhmm(record.time_out) if record is not None else "",
        editable=is_present,
    )


def _active_employees_stmt():
    return (
        select(Employee)
        .options(selectinload(Employee.category))
        .where(Employee.status == EmployeeStatus.ACTIVE)
        .order_by(Employee.id)
    )


def build_daily_timesheet(db: Session, *, day: date, search: str | None = None) -> TimesheetDailyResponse:
    employees = [item for item in db.scalars(_active_employees_stmt()).all() if matches_search(item, search)]
    records = db.scalars(select(AttendanceRecord).where(AttendanceRecord.day_date == day)).all()
    records_by_employee = {record.employee_id: record for record in records}
    work_sites = {item.id: item for item in db.scalars(select(WorkSite)).all()}
    context = load_schedule_context(db, up_to=day)

    groups = [
        TimesheetCategoryGroup(
            category=name,
            employees=[
                build_daily_row(employee, records_by_employee.get(employee.id), context, work_sites)
                for employee in members
            ],
        )
        for name, members in group_by_category(employees)
    ]
    return TimesheetDailyResponse(day_date=day, is_sunday=is_sunday(day), groups=groups)


# --- monthly ------------------------------------------------------------------


def build_monthly_employee(
    employee: Employee,
    days: Sequence[date],
    records_by_day: dict[date, AttendanceRecord],
    context: ScheduleContext,
) -> MonthlyTimesheetEmployee:
    totals = MonthlyTimesheetTotals()
    cells: list[MonthlyTimesheetDay] = []
    for day in days:
        record = records_by_day.get(day)
        result = compute_day(record, employee.category_id, context)
        if record is not None and record.status == AttendanceStatus.PRESENT:
            totals.present_days += 1
            if result.overtime_minutes is None:
                totals.undefined_overtime_days += 1
        if result.worked_minutes is not None:
            totals.worked_minutes += result.worked_minutes
        if result.overtime_minutes is not None:
            totals.overtime_minutes += result.overtime_minutes
        cells.append(
            MonthlyTimesheetDay(
                day_date=day,
                status=record.status if record is not None else None,
                worked_minutes=result.worked_minutes,
                overtime_minutes=result.overtime_minutes,
                worked_display=display_minutes(result.worked_minutes),
                overtime_display=display_minutes(result.overtime_minutes, hide_zero=True),
            )
        )
    totals.worked_display = format_minutes(totals.worked_minutes)
    totals.overtime_display = format_minutes(totals.overtime_minutes)
    return MonthlyTimesheetEmployee(
        employee_id=employee.id,
        employee_code=employee.employee_code,
        employee_name=employee.name,
        category=category_label(employee),
        days=cells,
        totals=totals,
    )


def build_monthly_timesheet(
    db: Session,
    *,
    start_year: int,
    start_month: int,
    search: str | None = None,
) -> MonthlyTimesheetResponse:
    period = working_month_period(start_year, start_month)
    days = iter_days(period.start_date, period.end_date)

    employees = [item for item in db.scalars(_active_employees_stmt()).all() if matches_search(item, search)]
    records = db.scalars(
        select(AttendanceRecord).where(
            AttendanceRecord.day_date >= period.start_date,
            AttendanceRecord.day_date <= period.end_date,
        )
    ).all()
    records_by_employee: dict[int, dict[date, AttendanceRecord]] = {}
    for record in records:
        records_by_employee.setdefault(record.employee_id, {})[record.day_date] = record
    context = load_schedule_context(db, up_to=period.end_date)

    rows = [
        build_monthly_employee(employee, days, records_by_employee.get(employee.id, {}), context)
        for _, members in group_by_category(employees)
        for employee in members
    ]
    return MonthlyTimesheetResponse(period=period, employees=rows)
