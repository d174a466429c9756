#!/usr/bin/env python
from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import create_engine, text

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from truewood_ems.settings import get_settings

EXPECTED_HEAD = "0001_initial"

REQUIRED_TABLES = (
    "categories",
    "departments",
    "leave_types",
    "holidays",
    "weekly_off",
    "work_sites",
    "work_site_schedule_history",
    "employees",
    "employment_history",
    "attendance_records",
)


def run() -> dict:
    database_url = get_settings().database_url
    engine = create_engine(database_url)
    report: dict = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "checks": [],
    }

    def add(name: str, status: str, details: dict) -> None:
        report["checks"].append(
            {
                "name": name,
                "status": status,
                "details": details,
            }
        )

    with engine.connect() as conn:
        tables = set(
            conn.execute(
                text(
                    """
                    select table_name
                    from information_schema.tables
                    where table_schema='public'
                    """
                )
            ).scalars()
        )

        current_versions: list[str] = []
        if "alembic_version" in tables:
            current_versions = [
                row[0]
                for row in conn.execute(text("select version_num from alembic_version")).fetchall()
            ]
        add("alembic_version", "ok" if current_versions else "fail", {"current": current_versions})
        add(
            "migration_up_to_date",
            "ok" if EXPECTED_HEAD in current_versions else "warn",
            {"expected_head": EXPECTED_HEAD, "current": current_versions},
        )

        missing_tables = [table for table in REQUIRED_TABLES if table not in tables]
        add("missing_tables", "fail" if missing_tables else "ok", {"tables": missing_tables})
        if missing_tables:
            return report

        orphan_records = conn.execute(
            text(
                """
                select a.id
                from attendance_records a
                left join employees e on e.id = a.employee_id
                where e.id is null
                limit 20
                """
            )
        ).fetchall()
        add(
            "attendance_orphan_employee",
            "fail" if orphan_records else "ok",
            {"sample_ids": [row[0] for row in orphan_records]},
        )

        duplicate_days = conn.execute(
            text(
                """
                select employee_id, day_date, count(*)
                from attendance_records
                group by employee_id, day_date
                having count(*) > 1
                limit 20
                """
            )
        ).fetchall()
        add(
            "attendance_duplicate_employee_day",
            "fail" if duplicate_days else "ok",
            {"rows": [[row[0], str(row[1]), row[2]] for row in duplicate_days]},
        )

        sites_without_history = conn.execute(
            text(
                """
                select w.id, w.name
                from work_sites w
                where (w.time_in is not null or w.time_out is not null or w.break_hours is not null)
                  and not exists (
                    select 1 from work_site_schedule_history h where h.work_site_id = w.id
                  )
                order by w.id
                """
            )
        ).fetchall()
        add(
            "work_site_schedule_without_history",
            "warn" if sites_without_history else "ok",
            {"work_sites": [{"id": row[0], "name": row[1]} for row in sites_without_history]},
        )

        unresolved = conn.execute(
            text(
                """
                select a.id, a.employee_id, a.day_date
                from attendance_records a
                join employees e on e.id = a.employee_id
                left join work_sites w on w.id = a.work_site_id
                left join categories c on c.id = e.category_id
                where a.status = 'PRESENT'
                  and (
                    w.id is null
                    or (
                      w.time_in is null
                      and w.time_out is null
                      and not exists (
                        select 1
                        from work_site_schedule_history h
                        where h.work_site_id = w.id and h.effective_from <= a.day_date
                      )
                    )
                  )
                  and (c.id is null or (c.time_in is null and c.time_out is null))
                order by a.day_date desc
                limit 20
                """
            )
        ).fetchall()
        add(
            "present_without_schedule",
            "warn" if unresolved else "ok",
            {
                "sample": [
                    {"attendance_id": row[0], "employee_id": row[1], "day_date": str(row[2])} for row in unresolved
                ]
            },
        )

    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2))
