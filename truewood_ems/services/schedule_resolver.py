from __future__ import annotations

from bisect import bisect_right
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from truewood_ems.models import Category, WorkSite, WorkSiteScheduleHistory
from truewood_ems.services.time_calc import (
    EMPTY_WINDOW,
    ScheduleWindow,
    break_hours_to_minutes,
    parse_time_of_day,
)


@dataclass(frozen=True)
class ScheduleSnapshot:
    time_in: str | None = None
    time_out: str | None = None
    break_hours: float | None = None

    def to_window(self) -> ScheduleWindow:
        return ScheduleWindow(
            start=parse_time_of_day(self.time_in),
            end=parse_time_of_day(self.time_out),
            break_minutes=break_hours_to_minutes(self.break_hours),
        )


@dataclass(frozen=True)
class WorkSiteScheduleEntry:
    work_site_id: int
    effective_from: date
    time_in: str | None = None
    time_out: str | None = None
    break_hours: float | None = None
    entry_id: int = 0

    @property
    def snapshot(self) -> ScheduleSnapshot:
        return ScheduleSnapshot(self.time_in, self.time_out, self.break_hours)


@dataclass(frozen=True)
class ScheduleContext:
    """Already-fetched schedule data for a batch of resolver calls."""

    categories: Mapping[int, ScheduleSnapshot] = field(default_factory=dict)
    work_sites: Mapping[int, ScheduleSnapshot] = field(default_factory=dict)
    work_site_history: Mapping[int, tuple[WorkSiteScheduleEntry, ...]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *,
        categories: Mapping[int, ScheduleSnapshot] | None = None,
        work_sites: Mapping[int, ScheduleSnapshot] | None = None,
        history: Iterable[WorkSiteScheduleEntry] = (),
    ) -> ScheduleContext:
        grouped: dict[int, list[WorkSiteScheduleEntry]] = defaultdict(list)
        for entry in history:
            grouped[entry.work_site_id].append(entry)
        ordered = {
            work_site_id: tuple(sorted(entries, key=lambda item: (item.effective_from, item.entry_id)))
            for work_site_id, entries in grouped.items()
        }
        return cls(
            categories=dict(categories or {}),
            work_sites=dict(work_sites or {}),
            work_site_history=ordered,
        )


def schedule_as_of(
    history: tuple[WorkSiteScheduleEntry, ...] | list[WorkSiteScheduleEntry],
    day: date,
) -> WorkSiteScheduleEntry | None:
    """Latest entry with ``effective_from <= day``; ``history`` must be sorted."""
    if not history:
        return None
    effective_dates = [entry.effective_from for entry in history]
    index = bisect_right(effective_dates, day)
    if index == 0:
        return None
    return history[index - 1]


def _has_any_field(window: ScheduleWindow) -> bool:
    return window.start is not None or window.end is not None


def _history_window(entry: WorkSiteScheduleEntry | None) -> ScheduleWindow | None:
    if entry is None:
        return None
    if entry.time_in is None and entry.time_out is None and entry.break_hours is None:
        return None
    return entry.snapshot.to_window()


def resolve_expected_window(
    context: ScheduleContext,
    *,
    category_id: int | None,
    work_site_id: int | None,
    day: date,
) -> ScheduleWindow:
    if work_site_id is not None:
        historical = _history_window(
            schedule_as_of(context.work_site_history.get(work_site_id, ()), day)
        )
        if historical is not None:
            return historical

        current = context.work_sites.get(work_site_id)
        if current is not None:
            window = current.to_window()
            if _has_any_field(window):
                return window

    if category_id is not None:
        category = context.categories.get(category_id)
        if category is not None:
            window = category.to_window()
            if _has_any_field(window):
                return window

    return EMPTY_WINDOW


def _is_recorded(value: str | None) -> bool:
    return isinstance(value, str) and bool(value.strip())


def resolve_actual_default_window(
    context: ScheduleContext,
    *,
    category_id: int | None,
    work_site_id: int | None,
    day: date,
    recorded_time_in: str | None,
    recorded_time_out: str | None,
) -> ScheduleWindow:
    """Window shown as the employee's clocked time.

    A time explicitly recorded on the attendance record wins over the
    schedule chain, field by field.
    """
    fallback = resolve_expected_window(
        context,
        category_id=category_id,
        work_site_id=work_site_id,
        day=day,
    )
    start = parse_time_of_day(recorded_time_in) if _is_recorded(recorded_time_in) else fallback.start
    end = parse_time_of_day(recorded_time_out) if _is_recorded(recorded_time_out) else fallback.end
    return ScheduleWindow(start=start, end=end, break_minutes=fallback.break_minutes)


def snapshot_from_row(row: Category | WorkSite | WorkSiteScheduleHistory) -> ScheduleSnapshot:
    return ScheduleSnapshot(
        time_in=row.time_in,
        time_out=row.time_out,
        break_hours=row.break_hours,
    )


def entry_from_row(row: WorkSiteScheduleHistory) -> WorkSiteScheduleEntry:
    return WorkSiteScheduleEntry(
        work_site_id=row.work_site_id,
        effective_from=row.effective_from,
        time_in=row.time_in,
        time_out=row.time_out,
        break_hours=row.break_hours,
        entry_id=row.id or 0,
    )


def build_schedule_context(
    *,
    categories: Iterable[Category],
    work_sites: Iterable[WorkSite],
    history: Iterable[WorkSiteScheduleHistory],
) -> ScheduleContext:
    return ScheduleContext.build(
        categories={item.id: snapshot_from_row(item) for item in categories},
        work_sites={item.id: snapshot_from_row(item) for item in work_sites},
        history=[entry_from_row(item) for item in history],
    )


def load_schedule_context(db: Session, *, up_to: date | None = None) -> ScheduleContext:
    history_stmt = select(WorkSiteScheduleHistory).order_by(
        WorkSiteScheduleHistory.work_site_id.asc(),
        WorkSiteScheduleHistory.effective_from.asc(),
        WorkSiteScheduleHistory.id.asc(),
    )
    if up_to is not None:
        history_stmt = history_stmt.where(WorkSiteScheduleHistory.effective_from <= up_to)

    return build_schedule_context(
        categories=db.scalars(select(Category)).all(),
        work_sites=db.scalars(select(WorkSite)).all(),
        history=db.scalars(history_stmt).all(),
    )
