from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from truewood_ems.errors import invalid, not_found
from truewood_ems.models import WorkSite, WorkSiteScheduleHistory, WorkSiteStatus
from truewood_ems.schemas import ScheduleWindowRead, WorkSiteCreate, WorkSiteScheduleRead, WorkSiteUpdate
from truewood_ems.services.schedule_resolver import (
    ScheduleContext,
    entry_from_row,
    resolve_expected_window,
    schedule_as_of,
    snapshot_from_row,
)
from truewood_ems.services.time_calc import format_minutes

logger = logging.getLogger("truewood_ems.work_sites")

SCHEDULE_FIELDS = ("time_in", "time_out", "break_hours")


def generate_short_hand(name: str) -> str:
    words = name.split()
    if len(words) >= 2:
        return (words[0][0] + words[1][0]).upper()
    return name.strip()[:2].upper()


def get_work_site(db: Session, work_site_id: int) -> WorkSite:
    work_site = db.get(WorkSite, work_site_id)
    if work_site is None:
        raise not_found("work site")
    return work_site


def _check_dates(payload: WorkSiteCreate) -> None:
    if payload.start_date and payload.end_date and payload.end_date < payload.start_date:
        raise invalid("INVALID_DATE_RANGE", "end_date must be greater than or equal to start_date")


def _has_schedule(work_site: WorkSite) -> bool:
    return any(getattr(work_site, field_name) is not None for field_name in SCHEDULE_FIELDS)


def _append_history(db: Session, work_site: WorkSite, effective_from: date) -> WorkSiteScheduleHistory:
    entry = WorkSiteScheduleHistory(
        work_site_id=work_site.id,
        effective_from=effective_from,
        time_in=work_site.time_in,
        time_out=work_site.time_out,
        break_hours=work_site.break_hours,
    )
    db.add(entry)
    return entry


def create_work_site(db: Session, *, payload: WorkSiteCreate, today: date) -> WorkSite:
    _check_dates(payload)
    work_site = WorkSite(
        name=payload.name,
        location=payload.location,
        status=payload.status,
        short_hand=payload.short_hand or generate_short_hand(payload.name),
        start_date=payload.start_date,
        end_date=payload.end_date,
        time_in=payload.time_in,
        time_out=payload.time_out,
        break_hours=payload.break_hours,
    )
    db.add(work_site)
    db.flush()
    if _has_schedule(work_site):
        _append_history(db, work_site, payload.effective_from or today)
    db.commit()
    db.refresh(work_site)
    logger.info("work_site_created", extra={"work_site_id": work_site.id, "short_hand": work_site.short_hand})
    return work_site


def update_work_site(db: Session, *, work_site_id: int, payload: WorkSiteUpdate, today: date) -> WorkSite:
    """Full update; a schedule change is appended to the history, never rewritten."""
    _check_dates(payload)
    work_site = get_work_site(db, work_site_id)
    schedule_changed = any(
        getattr(work_site, field_name) != getattr(payload, field_name) for field_name in SCHEDULE_FIELDS
    )
    effective_from = payload.effective_from or today
    if schedule_changed:
        latest_effective_from = db.scalar(
            select(func.max(WorkSiteScheduleHistory.effective_from)).where(
                WorkSiteScheduleHistory.work_site_id == work_site.id
            )
        )
        # The current fields must mirror the newest history entry.
        if latest_effective_from is not None and effective_from < latest_effective_from:
            raise invalid(
                "EFFECTIVE_FROM_BEFORE_LATEST",
                f"effective_from must not be earlier than {latest_effective_from.isoformat()}",
            )

    work_site.name = payload.name
    work_site.location = payload.location
    work_site.status = payload.status
    work_site.short_hand = payload.short_hand or generate_short_hand(payload.name)
    work_site.start_date = payload.start_date
    work_site.end_date = payload.end_date
    work_site.time_in = payload.time_in
    work_site.time_out = payload.time_out
    work_site.break_hours = payload.break_hours

    if schedule_changed:
        _append_history(db, work_site, effective_from)
        logger.info(
            "work_site_schedule_changed",
            extra={
                "work_site_id": work_site.id,
                "effective_from": effective_from,
                "time_in": work_site.time_in,
                "time_out": work_site.time_out,
                "break_hours": work_site.break_hours,
            },
        )

    db.commit()
    db.refresh(work_site)
    return work_site


def delete_work_site(db: Session, *, work_site_id: int) -> None:
    work_site = get_work_site(db, work_site_id)
    db.delete(work_site)
    db.commit()
    logger.info("work_site_deleted", extra={"work_site_id": work_site_id})


def list_work_sites(db: Session, *, status: WorkSiteStatus | None = None) -> list[WorkSite]:
    stmt = select(WorkSite).order_by(WorkSite.name.asc(), WorkSite.id.asc())
    if status is not None:
        stmt = stmt.where(WorkSite.status == status)
    return list(db.scalars(stmt).all())


def count_active_work_sites(db: Session) -> int:
    return int(db.scalar(select(func.count(WorkSite.id)).where(WorkSite.status == WorkSiteStatus.ACTIVE)) or 0)


def list_schedule_history(db: Session, *, work_site_id: int) -> list[WorkSiteScheduleHistory]:
    get_work_site(db, work_site_id)
    return list(
        db.scalars(
            select(WorkSiteScheduleHistory)
            .where(WorkSiteScheduleHistory.work_site_id == work_site_id)
            .order_by(WorkSiteScheduleHistory.effective_from.asc(), WorkSiteScheduleHistory.id.asc())
        ).all()
    )


def resolve_work_site_schedule(db: Session, *, work_site_id: int, on: date) -> WorkSiteScheduleRead:
    work_site = get_work_site(db, work_site_id)
    history = list_schedule_history(db, work_site_id=work_site_id)
    context = ScheduleContext.build(
        work_sites={work_site.id: snapshot_from_row(work_site)},
        history=[entry_from_row(item) for item in history],
    )
    window = resolve_expected_window(context, category_id=None, work_site_id=work_site.id, day=on)

    entry = schedule_as_of(context.work_site_history.get(work_site.id, ()), on)
    if entry is not None and any(getattr(entry, field_name) is not None for field_name in SCHEDULE_FIELDS):
        source = "HISTORY"
    elif window.start is not None or window.end is not None:
        source = "CURRENT"
    else:
        source = "NONE"

    return WorkSiteScheduleRead(
        work_site_id=work_site.id,
        on=on,
        source=source,
        window=ScheduleWindowRead(
            start=format_minutes(window.start) if window.start is not None else None,
            end=format_minutes(window.end) if window.end is not None else None,
            break_minutes=window.break_minutes,
            duration_minutes=window.duration_minutes,
        ),
    )
