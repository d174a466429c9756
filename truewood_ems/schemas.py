from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from truewood_ems.models import AttendanceStatus, EmployeeStatus, WorkSiteStatus
from truewood_ems.services.time_calc import normalize_to_hhmm


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _normalize_time(value: object) -> str | None:
    value = _blank_to_none(value)
    if value is None:
        return None
    normalized = normalize_to_hhmm(value)
    if not normalized:
        raise ValueError("Invalid time format. Use HH:MM.")
    return normalized


class _ScheduleFields(BaseModel):
    time_in: str | None = None
    time_out: str | None = None
    break_hours: float | None = Field(default=None, ge=0, le=24)

    @field_validator("time_in", "time_out", mode="before")
    @classmethod
    def _validate_time(cls, value: object) -> str | None:
        return _normalize_time(value)


class DeleteResponse(BaseModel):
    ok: bool = True
    id: int | None = None


# --- settings catalog -------------------------------------------------------


class CategoryCreate(_ScheduleFields):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value: object) -> object:
        return _blank_to_none(value)


class CategoryUpdate(CategoryCreate):
    pass


class CategoryRead(BaseModel):
    id: int
    name: str
    description: str | None = None
    time_in: str | None = None
    time_out: str | None = None
    break_hours: float | None = None

    model_config = ConfigDict(from_attributes=True)


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value: object) -> object:
        return _blank_to_none(value)


class DepartmentUpdate(DepartmentCreate):
    pass


class DepartmentRead(BaseModel):
    id: int
    name: str
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class LeaveTypeCreate(DepartmentCreate):
    max_days: int | None = Field(default=None, ge=0)
    is_paid: bool = True


class LeaveTypeUpdate(LeaveTypeCreate):
    pass


class LeaveTypeRead(BaseModel):
    id: int
    name: str
    description: str | None = None
    max_days: int | None = None
    is_paid: bool

    model_config = ConfigDict(from_attributes=True)


class HolidayCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    start_date: date
    end_date: date
    description: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_range(self) -> "HolidayCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be greater than or equal to start_date")
        return self


class HolidayUpdate(HolidayCreate):
    pass


class HolidayRead(BaseModel):
    id: int
    name: str
    start_date: date
    end_date: date
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class WeeklyOffUpdateRequest(BaseModel):
    day_order: int = Field(ge=0, le=6)


class WeeklyOffRead(BaseModel):
    id: int
    day_order: int
    day_name: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


# --- work sites -------------------------------------------------------------


class WorkSiteCreate(_ScheduleFields):
    name: str = Field(min_length=1, max_length=255)
    location: str = Field(min_length=1, max_length=255)
    status: WorkSiteStatus = WorkSiteStatus.ACTIVE
    short_hand: str | None = Field(default=None, max_length=32)
    start_date: date | None = None
    end_date: date | None = None
    effective_from: date | None = None

    @field_validator("name", "location", mode="before")
    @classmethod
    def _strip_required(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("short_hand", mode="before")
    @classmethod
    def _blank_short_hand(cls, value: object) -> object:
        return _blank_to_none(value)


class WorkSiteUpdate(WorkSiteCreate):
    pass


class WorkSiteRead(BaseModel):
    id: int
    name: str
    location: str
    status: WorkSiteStatus
    short_hand: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    time_in: str | None = None
    time_out: str | None = None
    break_hours: float | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class WorkSiteScheduleHistoryRead(BaseModel):
    id: int
    work_site_id: int
    effective_from: date
    time_in: str | None = None
    time_out: str | None = None
    break_hours: float | None = None

    model_config = ConfigDict(from_attributes=True)


class ScheduleWindowRead(BaseModel):
    start: str | None = None
    end: str | None = None
    break_minutes: int = 0
    duration_minutes: int | None = None


class WorkSiteScheduleRead(BaseModel):
    work_site_id: int
    on: date
    source: Literal["HISTORY", "CURRENT", "NONE"]
    window: ScheduleWindowRead


# --- employees --------------------------------------------------------------


class EmployeeCreate(BaseModel):
    employee_code: str | None = Field(default=None, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    category_id: int | None = Field(default=None, ge=1)
    department_id: int | None = Field(default=None, ge=1)
    work_site_id: int | None = Field(default=None, ge=1)
    joining_date: date | None = None
    exit_date: date | None = None
    salary: float | None = Field(default=None, ge=0)
    status: EmployeeStatus = EmployeeStatus.ACTIVE

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("employee_code", "phone", mode="before")
    @classmethod
    def _blank_optional(cls, value: object) -> object:
        return _blank_to_none(value)


class EmployeeUpdate(BaseModel):
    employee_code: str | None = Field(default=None, max_length=64)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    category_id: int | None = Field(default=None, ge=1)
    department_id: int | None = Field(default=None, ge=1)
    work_site_id: int | None = Field(default=None, ge=1)
    joining_date: date | None = None
    exit_date: date | None = None
    salary: float | None = Field(default=None, ge=0)
    status: EmployeeStatus | None = None

    @field_validator("employee_code", "phone", "name", mode="before")
    @classmethod
    def _blank_optional(cls, value: object) -> object:
        return _blank_to_none(value)


class EmployeeRead(BaseModel):
    id: int
    employee_code: str | None = None
    name: str
    phone: str | None = None
    category_id: int | None = None
    category_name: str | None = None
    department_id: int | None = None
    department_name: str | None = None
    work_site_id: int | None = None
    joining_date: date | None = None
    exit_date: date | None = None
    salary: float | None = None
    status: EmployeeStatus
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class EmploymentHistoryRead(BaseModel):
    id: int
    employee_id: int
    joining_date: date
    exit_date: date | None = None
    status: EmployeeStatus

    model_config = ConfigDict(from_attributes=True)


class LeaveBalanceItem(BaseModel):
    leave_type_id: int
    leave_type_name: str
    max_days: int | None = None
    taken_days: int
    remaining_days: int | None = None
    is_paid: bool | None = None


# --- attendance -------------------------------------------------------------


class AttendanceUpsertRequest(BaseModel):
    employee_id: int = Field(ge=1)
    day_date: date
    status: AttendanceStatus
    leave_type_id: int | None = Field(default=None, ge=1)
    work_site_id: int | None = Field(default=None, ge=1)
    time_in: str | None = None
    time_out: str | None = None

    @field_validator("time_in", "time_out", mode="before")
    @classmethod
    def _validate_time(cls, value: object) -> str | None:
        return _normalize_time(value)

    @property
    def has_explicit_times(self) -> bool:
        return "time_in" in self.model_fields_set or "time_out" in self.model_fields_set


class AttendanceRead(BaseModel):
    id: int
    employee_id: int
    day_date: date
    status: AttendanceStatus
    leave_type_id: int | None = None
    work_site_id: int | None = None
    time_in: str | None = None
    time_out: str | None = None
    break_hours: float | None = None

    model_config = ConfigDict(from_attributes=True)


class TimesheetRecordUpdateRequest(BaseModel):
    """Partial edit; only fields present in the body are applied."""

    time_in: str | None = None
    time_out: str | None = None
    break_hours: float | None = Field(default=None, ge=0, le=24)
    work_site_id: int | None = Field(default=None, ge=1)

    @field_validator("time_in", "time_out", mode="before")
    @classmethod
    def _validate_time(cls, value: object) -> str | None:
        return _normalize_time(value)


class DayResetResponse(BaseModel):
    ok: bool = True
    day_date: date
    deleted: int


class UpcomingLeaveRead(BaseModel):
    id: int
    day_date: date
    employee_id: int
    employee_name: str
    employee_code: str | None = None
    leave_type_id: int | None = None
    leave_type_name: str


# --- timesheet --------------------------------------------------------------


class TimesheetDailyRow(BaseModel):
    employee_id: int
    employee_code: str | None = None
    employee_name: str
    record_id: int | None = None
    status: AttendanceStatus | None = None
    status_label: str
    project: str
    work_site_id: int | None = None
    time_in: str
    time_out: str
    worked_minutes: int | None = None
    overtime_minutes: int | None = None
    worked_display: str
    overtime_display: str
    edit_time_in: str = ""
    edit_time_out: str = ""
    editable: bool = False


class TimesheetCategoryGroup(BaseModel):
    category: str
    employees: list[TimesheetDailyRow]


class TimesheetDailyResponse(BaseModel):
    day_date: date
    is_sunday: bool
    groups: list[TimesheetCategoryGroup]


class MonthlyTimesheetDay(BaseModel):
    day_date: date
    status: AttendanceStatus | None = None
    worked_minutes: int | None = None
    overtime_minutes: int | None = None
    worked_display: str
    overtime_display: str


class MonthlyTimesheetTotals(BaseModel):
    present_days: int = 0
    worked_minutes: int = 0
    overtime_minutes: int = 0
    undefined_overtime_days: int = 0
    worked_display: str = "00:00"
    overtime_display: str = "00:00"


class MonthlyTimesheetEmployee(BaseModel):
    employee_id: int
    employee_code: str | None = None
    employee_name: str
    category: str
    days: list[MonthlyTimesheetDay]
    totals: MonthlyTimesheetTotals


class WorkingPeriodRead(BaseModel):
    start_date: date
    end_date: date
    label: str


class MonthlyTimesheetResponse(BaseModel):
    period: WorkingPeriodRead
    employees: list[MonthlyTimesheetEmployee]


# --- reports ----------------------------------------------------------------


class ReportDayColumn(BaseModel):
    day_date: date
    day: int
    day_name: str
    day_status: Literal["HOLIDAY", "WEEKLY_OFF"] | None = None
    day_status_name: str | None = None


class AttendanceStatisticsRead(BaseModel):
    present: int = 0
    absent: int = 0
    leaves: dict[int, int] = Field(default_factory=dict)
    work_sites: dict[int, int] = Field(default_factory=dict)


class ReportEmployeeRow(BaseModel):
    employee_id: int
    employee_code: str | None = None
    employee_name: str
    category: str
    cells: list[str] = Field(default_factory=list)
    statistics: AttendanceStatisticsRead


class ReportLegendItem(BaseModel):
    code: str
    description: str
    type: Literal["Status", "Leave", "Work Site"]


class ReportCatalogItem(BaseModel):
    id: int
    name: str
    code: str


class AttendanceReportResponse(BaseModel):
    kind: Literal["MONTHLY", "YEARLY"]
    period: WorkingPeriodRead
    columns: list[ReportDayColumn]
    rows: list[ReportEmployeeRow]
    leave_types: list[ReportCatalogItem]
    work_sites: list[ReportCatalogItem]
    legend: list[ReportLegendItem]


# --- dashboard --------------------------------------------------------------


class DashboardCountsRead(BaseModel):
    total_employees: int
    active_employees: int
    active_work_sites: int
    today_present: int
    today_absent_or_leave: int


class WeeklyAttendancePoint(BaseModel):
    day_date: date
    day_name: str
    present: int = 0
    absent: int = 0
    leave: int = 0
