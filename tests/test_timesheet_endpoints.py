from __future__ import annotations

import re
import unittest
from collections.abc import Generator
from datetime import date
from io import BytesIO

from fastapi.testclient import TestClient
from openpyxl import load_workbook

from truewood_ems.db import get_db
from truewood_ems.deps import get_today
from truewood_ems.main import app
from truewood_ems.models import (
    AttendanceRecord,
    AttendanceStatus,
    Category,
    Employee,
    EmployeeStatus,
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


class _FakeTimesheetDB:
    def __init__(self, rows_by_table: dict[str, list[object]]):
        self._rows_by_table = rows_by_table

    def scalars(self, statement):  # type: ignore[no-untyped-def]
        table_name = re.search(r"FROM (\w+)", str(statement)).group(1)
        return _ScalarRows(self._rows_by_table.get(table_name, []))


def _override_get_db(fake_db):
    def _override() -> Generator[object, None, None]:
        yield fake_db

    return _override


def _seed() -> dict[str, list[object]]:
    worker = Category(id=1, name="Worker Staff", time_in="09:00", time_out="18:00", break_hours=1)
    office = Category(id=2, name="Office Staff", time_in="09:00", time_out="17:00", break_hours=1)
    site = WorkSite(
        id=10,
        name="Marina Tower",
        location="Dubai",
        status=WorkSiteStatus.ACTIVE,
        short_hand="MT",
        time_in="06:00",
        time_out="15:00",
        break_hours=1,
    )
    history = WorkSiteScheduleHistory(
        id=1,
        work_site_id=10,
        effective_from=date(2026, 1, 1),
        time_in="07:00",
        time_out="16:00",
        break_hours=1,
    )
    employees = [
        Employee(id=1, employee_code="TW-10", name="Rahul", category=worker, category_id=1, status=EmployeeStatus.ACTIVE),
        Employee(id=2, employee_code="TW-2", name="Imran", category=worker, category_id=1, status=EmployeeStatus.ACTIVE),
        Employee(id=3, employee_code="OF-1", name="Sara", category=office, category_id=2, status=EmployeeStatus.ACTIVE),
    ]
    records = [
        AttendanceRecord(
            id=1,
            employee_id=1,
            day_date=TODAY,
            status=AttendanceStatus.PRESENT,
            work_site_id=10,
            time_out="19:00",
        ),
        AttendanceRecord(id=2, employee_id=2, day_date=TODAY, status=AttendanceStatus.ABSENT),
    ]
    return {
        "categories": [worker, office],
        "work_sites": [site],
        "work_site_schedule_history": [history],
        "employees": employees,
        "attendance_records": records,
        "leave_types": [LeaveType(id=5, name="Sick Leave", is_paid=True)],
        "weekly_off": [WeeklyOff(id=1, day_order=0, day_name="Sunday", is_active=True)],
        "holidays": [],
    }


class TimesheetEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeTimesheetDB(_seed()))
        app.dependency_overrides[get_today] = lambda: TODAY
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def test_daily_timesheet_groups_and_computes(self) -> None:
        response = self.client.get("/api/timesheet/daily")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["day_date"], "2026-10-19")
        self.assertFalse(body["is_sunday"])
        self.assertEqual([group["category"] for group in body["groups"]], ["Worker Staff", "Office Staff"])

        imran, rahul = body["groups"][0]["employees"]
        self.assertEqual(imran["employee_code"], "TW-2")
        self.assertEqual(imran["status_label"], "Absent")
        self.assertEqual(imran["worked_display"], "-")

        self.assertEqual(rahul["project"], "MT")
        self.assertEqual((rahul["time_in"], rahul["time_out"]), ("07:00", "19:00"))
        self.assertEqual(rahul["worked_minutes"], 660)
        self.assertEqual(rahul["overtime_minutes"], 180)
        self.assertEqual(rahul["overtime_display"], "03:00")
        self.assertEqual(rahul["edit_time_in"], "")
        self.assertEqual(rahul["edit_time_out"], "19:00")

        sara = body["groups"][1]["employees"][0]
        self.assertEqual(sara["status_label"], "Not Marked")

    def test_daily_timesheet_search(self) -> None:
        response = self.client.get("/api/timesheet/daily", params={"date": "2026-10-19", "search": "sara"})

        self.assertEqual(response.status_code, 200)
        groups = response.json()["groups"]
        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0]["employees"][0]["employee_name"], "Sara")

    def test_monthly_timesheet_defaults_to_current_working_month(self) -> None:
        response = self.client.get("/api/timesheet/monthly")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["period"]["start_date"], "2026-09-26")
        self.assertEqual(body["period"]["end_date"], "2026-10-25")
        self.assertEqual(body["period"]["label"], "September 26 - October 25, 2026")
        self.assertEqual([row["employee_code"] for row in body["employees"]], ["TW-2", "TW-10", "OF-1"])

        rahul = body["employees"][1]
        self.assertEqual(len(rahul["days"]), 30)
        self.assertEqual(rahul["totals"]["present_days"], 1)
        self.assertEqual(rahul["totals"]["worked_display"], "11:00")
        self.assertEqual(rahul["totals"]["overtime_display"], "03:00")

    def test_monthly_timesheet_export(self) -> None:
        response = self.client.get("/api/timesheet/monthly/export.xlsx", params={"start_year": 2026, "start_month": 9})

        self.assertEqual(response.status_code, 200)
        self.assertIn("timesheet-2026-09.xlsx", response.headers["content-disposition"])
        wb = load_workbook(BytesIO(response.content))
        self.assertEqual(wb.sheetnames, ["Worked Hours", "Overtime", "Summary"])

    def test_invalid_month_is_rejected(self) -> None:
        response = self.client.get("/api/timesheet/monthly", params={"start_year": 2026, "start_month": 13})

        self.assertEqual(response.status_code, 422)


class ReportEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeTimesheetDB(_seed()))
        app.dependency_overrides[get_today] = lambda: TODAY
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def test_monthly_report(self) -> None:
        response = self.client.get("/api/reports/monthly", params={"start_year": 2026, "start_month": 9})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["kind"], "MONTHLY")
        self.assertEqual(len(body["columns"]), 30)
        index = next(i for i, column in enumerate(body["columns"]) if column["day_date"] == "2026-10-19")
        rows = {row["employee_code"]: row for row in body["rows"]}
        self.assertEqual(rows["TW-10"]["cells"][index], "MT")
        self.assertEqual(rows["TW-2"]["cells"][index], "A")
        self.assertEqual(rows["OF-1"]["cells"][index], "-")
        self.assertEqual(rows["TW-10"]["statistics"]["work_sites"], {"10": 1})

    def test_monthly_report_exports(self) -> None:
        xlsx = self.client.get("/api/reports/monthly/export.xlsx")
        pdf = self.client.get("/api/reports/monthly/export.pdf")

        self.assertEqual(xlsx.status_code, 200)
        self.assertIn("attendance-2026-09.xlsx", xlsx.headers["content-disposition"])
        self.assertEqual(load_workbook(BytesIO(xlsx.content)).sheetnames, ["Attendance"])
        self.assertEqual(pdf.status_code, 200)
        self.assertEqual(pdf.headers["content-type"], "application/pdf")
        self.assertTrue(pdf.content.startswith(b"%PDF"))

    def test_yearly_report(self) -> None:
        response = self.client.get("/api/reports/yearly")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["kind"], "YEARLY")
        self.assertEqual(body["period"]["start_date"], "2025-12-26")
        self.assertEqual(body["columns"], [])

    def test_yearly_report_export(self) -> None:
        response = self.client.get("/api/reports/yearly/export.xlsx", params={"year": 2025})

        self.assertEqual(response.status_code, 200)
        self.assertIn("attendance-yearly-2025.xlsx", response.headers["content-disposition"])
        self.assertEqual(load_workbook(BytesIO(response.content)).sheetnames, ["Yearly Summary"])


if __name__ == "__main__":
    unittest.main()
