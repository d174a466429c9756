from __future__ import annotations

import re
import unittest
from collections.abc import Generator
from datetime import date

from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from truewood_ems.db import get_db
from truewood_ems.deps import get_today
from truewood_ems.main import app
from truewood_ems.models import (
    AttendanceRecord,
    AttendanceStatus,
    Category,
    Employee,
    EmployeeStatus,
    EmploymentHistory,
    LeaveType,
    WeeklyOff,
    WorkSite,
    WorkSiteScheduleHistory,
    WorkSiteStatus,
)

TODAY = date(2026, 10, 19)


class _ScalarRows:
    def __init__(self, rows):
        self._rows = rows

    def all(self):
        return self._rows


class _Result:
    rowcount = 0

    def __init__(self, rows=None):
        self._rows = rows or []

    def all(self):
        return self._rows


def _table_of(statement) -> str:  # type: ignore[no-untyped-def]
    return re.search(r"FROM (\w+)", str(statement)).group(1)


class _FakeCatalogDB:
    def __init__(self, **rows_by_table: list[object]):
        self.rows_by_table: dict[str, list[object]] = {key: list(value) for key, value in rows_by_table.items()}
        self.fail_commit = False
        self.deleted: list[object] = []
        self.rolled_back = False

    def rows(self, table_name: str) -> list[object]:
        return self.rows_by_table.setdefault(table_name, [])

    def get(self, model, pk):  # type: ignore[no-untyped-def]
        for row in self.rows(model.__tablename__):
            if row.id == pk:
                return row
        return None

    def scalar(self, statement):  # type: ignore[no-untyped-def]
        table_name = _table_of(statement)
        text = str(statement)
        params = statement.compile().params
        if table_name == "employees" and text.startswith("SELECT employees.id \n"):
            code = params.get("employee_code_1")
            excluded = params.get("id_1")
            for row in self.rows(table_name):
                if row.employee_code == code and row.id != excluded:
                    return row.id
            return None
        if table_name == "employees":
            return self.get(Employee, params.get("id_1"))
        if table_name == "employment_history":
            matches = [row for row in self.rows(table_name) if row.employee_id == params.get("employee_id_1")]
            return matches[-1] if matches else None
        if table_name == "work_site_schedule_history" and text.startswith("SELECT max("):
            dates = [
                row.effective_from
                for row in self.rows(table_name)
                if row.work_site_id == params.get("work_site_id_1")
            ]
            return max(dates) if dates else None
        if table_name == "weekly_off":
            for row in self.rows(table_name):
                if row.day_order == params.get("day_order_1"):
                    return row
            return None
        rows = self.rows(table_name)
        return rows[0] if rows else None

    def scalars(self, statement):  # type: ignore[no-untyped-def]
        table_name = _table_of(statement)
        if table_name == "employees" and "NOT IN" in str(statement):
            with_history = {row.employee_id for row in self.rows("employment_history")}
            return _ScalarRows(
                [
                    row
                    for row in self.rows(table_name)
                    if row.joining_date is not None and row.id not in with_history
                ]
            )
        return _ScalarRows(self.rows(table_name))

    def execute(self, statement):  # type: ignore[no-untyped-def]
        if str(statement).startswith("UPDATE weekly_off"):
            for row in self.rows("weekly_off"):
                row.is_active = False
            return _Result()
        params = statement.compile().params
        taken: dict[int | None, int] = {}
        for row in self.rows("attendance_records"):
            if (
                row.employee_id == params["employee_id_1"]
                and row.status == AttendanceStatus.LEAVE
                and params["day_date_1"] <= row.day_date <= params["day_date_2"]
            ):
                taken[row.leave_type_id] = taken.get(row.leave_type_id, 0) + 1
        return _Result(list(taken.items()))

    def add(self, obj) -> None:  # type: ignore[no-untyped-def]
        self.rows(obj.__tablename__).append(obj)

    def flush(self) -> None:
        for table_rows in self.rows_by_table.values():
            for index, row in enumerate(table_rows, start=1):
                if row.id is None:
                    row.id = 100 + index

    def commit(self) -> None:
        if self.fail_commit:
            raise IntegrityError("INSERT", {}, Exception("duplicate key value"))
        self.flush()

    def refresh(self, _obj) -> None:  # type: ignore[no-untyped-def]
        return

    def rollback(self) -> None:
        self.rolled_back = True

    def delete(self, obj) -> None:  # type: ignore[no-untyped-def]
        self.deleted.append(obj)
        self.rows(obj.__tablename__).remove(obj)


def _override_get_db(fake_db):
    def _override() -> Generator[object, None, None]:
        yield fake_db

    return _override


class _EndpointTestCase(unittest.TestCase):
    def setUp(self) -> None:
        app.dependency_overrides[get_today] = lambda: TODAY

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _client(self, fake_db: _FakeCatalogDB) -> TestClient:
        app.dependency_overrides[get_db] = _override_get_db(fake_db)
        return TestClient(app)


class SettingsEndpointTests(_EndpointTestCase):
    def test_create_category_normalizes_schedule(self) -> None:
        fake_db = _FakeCatalogDB()
        client = self._client(fake_db)

        response = client.post(
            "/api/settings/categories",
            json={"name": "  Worker Staff ", "time_in": "8:0", "time_out": "17:00", "break_hours": 1},
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["name"], "Worker Staff")
        self.assertEqual(body["time_in"], "08:00")
        self.assertEqual(body["break_hours"], 1)
        self.assertIsNotNone(body["id"])

    def test_duplicate_category_name_is_conflict(self) -> None:
        fake_db = _FakeCatalogDB()
        fake_db.fail_commit = True
        client = self._client(fake_db)

        response = client.post("/api/settings/categories", json={"name": "Worker Staff"})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "CATEGORY_NAME_EXISTS")
        self.assertTrue(fake_db.rolled_back)

    def test_holiday_range_must_not_be_inverted(self) -> None:
        client = self._client(_FakeCatalogDB())

        response = client.post(
            "/api/settings/holidays",
            json={"name": "National Day", "start_date": "2026-12-03", "end_date": "2026-12-02"},
        )

        self.assertEqual(response.status_code, 422)

    def test_delete_unknown_leave_type(self) -> None:
        client = self._client(_FakeCatalogDB())

        response = client.delete("/api/settings/leave-types/3")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "LEAVE_TYPE_NOT_FOUND")

    def test_set_weekly_off_keeps_a_single_active_day(self) -> None:
        sunday = WeeklyOff(id=1, day_order=0, day_name="Sunday", is_active=True)
        fake_db = _FakeCatalogDB(weekly_off=[sunday])
        client = self._client(fake_db)

        response = client.put("/api/settings/weekly-off", json={"day_order": 5})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["day_name"], "Friday")
        self.assertTrue(response.json()["is_active"])
        self.assertFalse(sunday.is_active)


class WorkSiteEndpointTests(_EndpointTestCase):
    def _site(self) -> WorkSite:
        return WorkSite(
            id=10,
            name="Marina Tower",
            location="Dubai",
            status=WorkSiteStatus.ACTIVE,
            short_hand="MT",
            time_in="06:00",
            time_out="15:00",
            break_hours=1,
        )

    def test_create_generates_short_hand_and_history(self) -> None:
        fake_db = _FakeCatalogDB()
        client = self._client(fake_db)

        response = client.post(
            "/api/work-sites",
            json={"name": "Palm Villa", "location": "Dubai", "time_in": "07:00", "time_out": "16:00"},
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["short_hand"], "PV")
        history = fake_db.rows("work_site_schedule_history")
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].effective_from, TODAY)
        self.assertEqual(history[0].time_in, "07:00")

    def test_schedule_change_appends_history(self) -> None:
        site = self._site()
        fake_db = _FakeCatalogDB(work_sites=[site])
        client = self._client(fake_db)

        response = client.put(
            "/api/work-sites/10",
            json={
                "name": "Marina Tower",
                "location": "Dubai",
                "short_hand": "MT",
                "time_in": "07:00",
                "time_out": "15:00",
                "break_hours": 1,
                "effective_from": "2026-11-01",
            },
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["time_in"], "07:00")
        history = fake_db.rows("work_site_schedule_history")
        self.assertEqual([(row.effective_from, row.time_in) for row in history], [(date(2026, 11, 1), "07:00")])

    def test_unchanged_schedule_adds_no_history(self) -> None:
        fake_db = _FakeCatalogDB(work_sites=[self._site()])
        client = self._client(fake_db)

        response = client.put(
            "/api/work-sites/10",
            json={
                "name": "Marina Tower",
                "location": "Dubai Marina",
                "time_in": "06:00",
                "time_out": "15:00",
                "break_hours": 1,
            },
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["location"], "Dubai Marina")
        self.assertEqual(fake_db.rows("work_site_schedule_history"), [])

    def _history(self, entry_id: int, effective_from: date, time_in: str) -> WorkSiteScheduleHistory:
        return WorkSiteScheduleHistory(
            id=entry_id,
            work_site_id=10,
            effective_from=effective_from,
            time_in=time_in,
            time_out="15:00",
            break_hours=1,
        )

    def _schedule_payload(self, time_in: str, effective_from: str) -> dict[str, object]:
        return {
            "name": "Marina Tower",
            "location": "Dubai",
            "short_hand": "MT",
            "time_in": time_in,
            "time_out": "15:00",
            "break_hours": 1,
            "effective_from": effective_from,
        }

    def test_schedule_change_cannot_predate_latest_history(self) -> None:
        site = self._site()
        history = [
            self._history(1, date(2026, 1, 1), "09:00"),
            self._history(2, date(2026, 3, 1), "06:00"),
        ]
        fake_db = _FakeCatalogDB(work_sites=[site], work_site_schedule_history=history)
        client = self._client(fake_db)

        response = client.put("/api/work-sites/10", json=self._schedule_payload("07:00", "2026-02-01"))

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "EFFECTIVE_FROM_BEFORE_LATEST")
        self.assertEqual(site.time_in, "06:00")
        self.assertEqual(len(fake_db.rows("work_site_schedule_history")), 2)

    def test_schedule_change_on_latest_history_date_is_accepted(self) -> None:
        site = self._site()
        history = [self._history(1, date(2026, 3, 1), "06:00")]
        fake_db = _FakeCatalogDB(work_sites=[site], work_site_schedule_history=history)
        client = self._client(fake_db)

        response = client.put("/api/work-sites/10", json=self._schedule_payload("07:00", "2026-03-01"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(site.time_in, "07:00")
        rows = fake_db.rows("work_site_schedule_history")
        self.assertEqual([(row.effective_from, row.time_in) for row in rows][-1], (date(2026, 3, 1), "07:00"))

    def test_resolve_schedule_by_date(self) -> None:
        history = WorkSiteScheduleHistory(
            id=1,
            work_site_id=10,
            effective_from=date(2026, 1, 1),
            time_in="07:00",
            time_out="16:00",
            break_hours=1,
        )
        client = self._client(_FakeCatalogDB(work_sites=[self._site()], work_site_schedule_history=[history]))

        historical = client.get("/api/work-sites/10/schedule", params={"on": "2026-03-01"})
        before = client.get("/api/work-sites/10/schedule", params={"on": "2025-12-01"})

        self.assertEqual(historical.status_code, 200)
        self.assertEqual(historical.json()["source"], "HISTORY")
        self.assertEqual(
            historical.json()["window"],
            {"start": "07:00", "end": "16:00", "break_minutes": 60, "duration_minutes": 540},
        )
        self.assertEqual(before.json()["source"], "CURRENT")
        self.assertEqual(before.json()["window"]["start"], "06:00")

    def test_invalid_date_range(self) -> None:
        client = self._client(_FakeCatalogDB())

        response = client.post(
            "/api/work-sites",
            json={"name": "Palm Villa", "location": "Dubai", "start_date": "2026-05-01", "end_date": "2026-04-01"},
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "INVALID_DATE_RANGE")


class EmployeeEndpointTests(_EndpointTestCase):
    def test_create_employee_records_employment_history(self) -> None:
        worker = Category(id=1, name="Worker Staff")
        fake_db = _FakeCatalogDB(categories=[worker])
        client = self._client(fake_db)

        response = client.post(
            "/api/employees",
            json={"employee_code": "TW-1", "name": "Rahul", "category_id": 1, "joining_date": "2026-01-05"},
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["employee_code"], "TW-1")
        self.assertEqual(body["status"], "ACTIVE")
        history = fake_db.rows("employment_history")
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].joining_date, date(2026, 1, 5))

    def test_duplicate_employee_code(self) -> None:
        existing = Employee(id=1, employee_code="TW-1", name="Rahul", status=EmployeeStatus.ACTIVE)
        client = self._client(_FakeCatalogDB(employees=[existing]))

        response = client.post("/api/employees", json={"employee_code": "TW-1", "name": "Imran"})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "EMPLOYEE_CODE_EXISTS")

    def test_unknown_category(self) -> None:
        client = self._client(_FakeCatalogDB())

        response = client.post("/api/employees", json={"name": "Imran", "category_id": 4})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "CATEGORY_NOT_FOUND")

    def test_deactivation_stamps_exit_date(self) -> None:
        employee = Employee(
            id=1,
            employee_code="TW-1",
            name="Rahul",
            joining_date=date(2026, 1, 5),
            status=EmployeeStatus.ACTIVE,
        )
        history = EmploymentHistory(
            id=1,
            employee_id=1,
            joining_date=date(2026, 1, 5),
            status=EmployeeStatus.ACTIVE,
        )
        client = self._client(_FakeCatalogDB(employees=[employee], employment_history=[history]))

        response = client.patch("/api/employees/1", json={"status": "INACTIVE"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["exit_date"], "2026-10-19")
        self.assertEqual(history.exit_date, TODAY)
        self.assertEqual(history.status, EmployeeStatus.INACTIVE)

    def test_reactivation_clears_exit_date(self) -> None:
        employee = Employee(
            id=1,
            employee_code="TW-1",
            name="Rahul",
            exit_date=date(2026, 6, 30),
            status=EmployeeStatus.INACTIVE,
        )
        client = self._client(_FakeCatalogDB(employees=[employee]))

        response = client.patch("/api/employees/1", json={"status": "ACTIVE"})

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()["exit_date"])

    def test_leave_balance_counts_leave_days_in_year(self) -> None:
        employee = Employee(id=1, employee_code="TW-1", name="Rahul", status=EmployeeStatus.ACTIVE)
        annual = LeaveType(id=1, name="Annual Leave", max_days=30, is_paid=True)
        sick = LeaveType(id=2, name="Sick Leave", max_days=None, is_paid=False)
        records = [
            AttendanceRecord(id=1, employee_id=1, day_date=date(2026, 3, 10), status=AttendanceStatus.LEAVE, leave_type_id=1),
            AttendanceRecord(id=2, employee_id=1, day_date=date(2026, 10, 1), status=AttendanceStatus.LEAVE, leave_type_id=1),
            AttendanceRecord(id=3, employee_id=1, day_date=date(2025, 12, 30), status=AttendanceStatus.LEAVE, leave_type_id=1),
            AttendanceRecord(id=4, employee_id=1, day_date=date(2026, 5, 5), status=AttendanceStatus.LEAVE, leave_type_id=2),
            AttendanceRecord(id=5, employee_id=1, day_date=date(2026, 5, 6), status=AttendanceStatus.PRESENT),
            AttendanceRecord(id=6, employee_id=2, day_date=date(2026, 4, 1), status=AttendanceStatus.LEAVE, leave_type_id=1),
        ]
        client = self._client(
            _FakeCatalogDB(employees=[employee], leave_types=[annual, sick], attendance_records=records)
        )

        response = client.get("/api/employees/1/leave-balance")

        self.assertEqual(response.status_code, 200)
        by_name = {item["leave_type_name"]: item for item in response.json()}
        self.assertEqual(by_name["Annual Leave"]["taken_days"], 2)
        self.assertEqual(by_name["Annual Leave"]["remaining_days"], 28)
        self.assertEqual(by_name["Sick Leave"]["taken_days"], 1)
        self.assertIsNone(by_name["Sick Leave"]["remaining_days"])
        self.assertFalse(by_name["Sick Leave"]["is_paid"])

    def test_leave_balance_for_previous_year(self) -> None:
        employee = Employee(id=1, employee_code="TW-1", name="Rahul", status=EmployeeStatus.ACTIVE)
        annual = LeaveType(id=1, name="Annual Leave", max_days=30, is_paid=True)
        record = AttendanceRecord(
            id=1, employee_id=1, day_date=date(2025, 12, 30), status=AttendanceStatus.LEAVE, leave_type_id=1
        )
        client = self._client(_FakeCatalogDB(employees=[employee], leave_types=[annual], attendance_records=[record]))

        response = client.get("/api/employees/1/leave-balance", params={"year": 2025})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()[0]["taken_days"], 1)
        self.assertEqual(response.json()[0]["remaining_days"], 29)

    def test_backfill_creates_history_only_where_missing(self) -> None:
        pending = Employee(id=1, name="Rahul", joining_date=date(2026, 1, 5), status=EmployeeStatus.ACTIVE)
        tracked = Employee(id=2, name="Imran", joining_date=date(2025, 7, 1), status=EmployeeStatus.ACTIVE)
        no_joining_date = Employee(id=3, name="Ali", status=EmployeeStatus.ACTIVE)
        existing = EmploymentHistory(id=1, employee_id=2, joining_date=date(2025, 7, 1), status=EmployeeStatus.ACTIVE)
        fake_db = _FakeCatalogDB(employees=[pending, tracked, no_joining_date], employment_history=[existing])
        client = self._client(fake_db)

        response = client.post("/api/employees/employment-history/backfill")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"created": 1})
        history = fake_db.rows("employment_history")
        self.assertEqual([(row.employee_id, row.joining_date) for row in history], [(2, date(2025, 7, 1)), (1, date(2026, 1, 5))])
        self.assertEqual(history[-1].status, EmployeeStatus.ACTIVE)

    def test_get_unknown_employee(self) -> None:
        client = self._client(_FakeCatalogDB())

        response = client.get("/api/employees/42")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "EMPLOYEE_NOT_FOUND")


if __name__ == "__main__":
    unittest.main()
