from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from truewood_ems.db import get_db
from truewood_ems.deps import get_today
from truewood_ems.models import WorkSiteStatus
from truewood_ems.schemas import (
    DeleteResponse,
    WorkSiteCreate,
    WorkSiteRead,
    WorkSiteScheduleHistoryRead,
    WorkSiteScheduleRead,
    WorkSiteUpdate,
)
from truewood_ems.services import work_sites

router = APIRouter(tags=["work-sites"])


@router.get("/api/work-sites", response_model=list[WorkSiteRead])
def list_work_sites(
    status: WorkSiteStatus | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[WorkSiteRead]:
    return [WorkSiteRead.model_validate(item) for item in work_sites.list_work_sites(db, status=status)]


@router.get("/api/work-sites/active-count")
def active_work_site_count(db: Session = Depends(get_db)) -> dict[str, int]:
    return {"count": work_sites.count_active_work_sites(db)}


@router.post("/api/work-sites", response_model=WorkSiteRead, status_code=201)
def create_work_site(
    payload: WorkSiteCreate,
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> WorkSiteRead:
    return WorkSiteRead.model_validate(work_sites.create_work_site(db, payload=payload, today=today))


@router.get("/api/work-sites/{work_site_id}", response_model=WorkSiteRead)
def get_work_site(work_site_id: int, db: Session = Depends(get_db)) -> WorkSiteRead:
    return WorkSiteRead.model_validate(work_sites.get_work_site(db, work_site_id))


@router.put("/api/work-sites/{work_site_id}", response_model=WorkSiteRead)
def update_work_site(
    work_site_id: int,
    payload: WorkSiteUpdate,
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> WorkSiteRead:
    return WorkSiteRead.model_validate(
        work_sites.update_work_site(db, work_site_id=work_site_id, payload=payload, today=today)
    )


@router.delete("/api/work-sites/{work_site_id}", response_model=DeleteResponse)
def delete_work_site(work_site_id: int, db: Session = Depends(get_db)) -> DeleteResponse:
    work_sites.delete_work_site(db, work_site_id=work_site_id)
    return DeleteResponse(ok=True, id=work_site_id)


@router.get(
    "/api/work-sites/{work_site_id}/schedule-history",
    response_model=list[WorkSiteScheduleHistoryRead],
)
def list_schedule_history(work_site_id: int, db: Session = Depends(get_db)) -> list[WorkSiteScheduleHistoryRead]:
    return [
        WorkSiteScheduleHistoryRead.model_validate(item)
        for item in work_sites.list_schedule_history(db, work_site_id=work_site_id)
    ]


@router.get("/api/work-sites/{work_site_id}/schedule", response_model=WorkSiteScheduleRead)
def resolve_schedule(
    work_site_id: int,
    on: date | None = Query(default=None),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
) -> WorkSiteScheduleRead:
    return work_sites.resolve_work_site_schedule(db, work_site_id=work_site_id, on=on or today)
