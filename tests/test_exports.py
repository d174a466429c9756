from __future__ import annotations

import unittest
from datetime import date
from io import BytesIO

from openpyxl import load_workbook

from truewood_ems.schemas import (
    AttendanceReportResponse,
    AttendanceStatisticsRead,
    MonthlyTimesheetDay,
    MonthlyTimesheetEmployee,
    MonthlyTimesheetResponse,
    MonthlyTimesheetTotals,
    ReportCatalogItem,
    ReportDayColumn,
    ReportEmployeeRow,
    ReportLegendItem,
    WorkingPeriodRead,
)
from truewood_ems.services.exports import (
    build_report_pdf_bytes,
    build_report_xlsx_bytes,
    build_timesheet_xlsx_bytes,
)

PERIOD = WorkingPeriodRead(
    start_date=date(2026, 10, 19),
    end_date=date(2026, 10, 21),
    label="October 19 - October 21, 2026",
)


def _report(kind: str = "MONTHLY") -> AttendanceReportResponse:
    columns = [
        ReportDayColumn(day_date=date(2026, 10, 19), day=19, day_name="Mon"),
        ReportDayColumn(day_date=date(2026, 10, 20), day=20, day_name="Tue"),
        ReportDayColumn(
            day_date=date(2026, 10, 21),
            day=21,
            day_name="Wed",
            day_status="HOLIDAY",
            day_status_name="National Day",
        ),
    ]
    return AttendanceReportResponse(
        kind=kind,
        period=PERIOD,
        columns=columns if kind == "MONTHLY" else [],
        rows=[
            ReportEmployeeRow(
                employee_id=1,
                employee_code="TW-1",
                employee_name="Rahul",
                category="Worker Staff",
                cells=["MT", "SL", "H"] if kind == "MONTHLY" else [],
                statistics=AttendanceStatisticsRead(present=1, absent=0, leaves={5: 1}, work_sites={10: 1}),
            ),
            ReportEmployeeRow(
                employee_id=2,
                employee_code=None,
                employee_name="Imran",
                category="Uncategorized",
                cells=["P", "A", "H"] if kind == "MONTHLY" else [],
                statistics=AttendanceStatisticsRead(present=1, absent=1),
            ),
        ],
        leave_types=[ReportCatalogItem(id=5, name="Sick Leave", code="SL")],
        work_sites=[ReportCatalogItem(id=10, name="Marina Tower", code="MT")],
        legend=[
            ReportLegendItem(code="P", description="Present", type="Status"),
            ReportLegendItem(code="SL", description="Sick Leave", type="Leave"),
            ReportLegendItem(code="MT", description="Marina Tower", type="Work Site"),
        ],
    )


def _timesheet() -> MonthlyTimesheetResponse:
    return MonthlyTimesheetResponse(
        period=PERIOD,
        employees=[
            MonthlyTimesheetEmployee(
                employee_id=1,
                employee_code="TW-1",
                employee_name="Rahul",
                category="Worker Staff",
                days=[
                    MonthlyTimesheetDay(
                        day_date=date(2026, 10, 19),
                        worked_minutes=540,
                        overtime_minutes=120,
                        worked_display="09:00",
                        overtime_display="02:00",
                    ),
                    MonthlyTimesheetDay(day_date=date(2026, 10, 20), worked_display="-", overtime_display="-"),
                    MonthlyTimesheetDay(
                        day_date=date(2026, 10, 21),
                        worked_minutes=480,
                        worked_display="08:00",
                        overtime_display="-",
                    ),
                ],
                totals=MonthlyTimesheetTotals(
                    present_days=2,
                    worked_minutes=1020,
                    overtime_minutes=120,
                    undefined_overtime_days=1,
                    worked_display="17:00",
                    overtime_display="02:00",
                ),
            )
        ],
    )


class ReportExportTests(unittest.TestCase):
    def test_monthly_xlsx_layout(self) -> None:
        content = build_report_xlsx_bytes(_report(), organization_name="True Wood EMS")

        wb = load_workbook(BytesIO(content))
        ws = wb["Attendance"]
        self.assertEqual(ws.cell(row=1, column=1).value, "Attendance Report: October 19 - October 21, 2026")
        self.assertEqual(ws.cell(row=2, column=2).value, "True Wood EMS")
        header = [cell.value for cell in ws[5]]
        self.assertEqual(
            header[:10],
            ["Employee ID", "Employee Name", "Category", "19", "20", "21", "Present", "Absent", "Sick Leave", "Marina Tower"],
        )
        first = [cell.value for cell in ws[6]]
        self.assertEqual(first[:10], ["TW-1", "Rahul", "Worker Staff", "MT", "SL", "H", 1, 0, 1, 1])
        second = [cell.value for cell in ws[7]]
        self.assertEqual(second[0], "-")
        self.assertEqual(ws.cell(row=10, column=1).value, "LEGEND")
        self.assertEqual(ws.cell(row=12, column=1).value, "P")

    def test_yearly_xlsx_has_no_day_columns(self) -> None:
        content = build_report_xlsx_bytes(_report("YEARLY"), organization_name="True Wood EMS")

        ws = load_workbook(BytesIO(content))["Yearly Summary"]
        header = [cell.value for cell in ws[5]]
        self.assertEqual(header[:5], ["Employee ID", "Employee Name", "Category", "Present", "Absent"])
        self.assertEqual(ws.cell(row=7, column=5).value, 1)

    def test_pdf_export(self) -> None:
        for kind in ("MONTHLY", "YEARLY"):
            content = build_report_pdf_bytes(_report(kind), organization_name="True Wood EMS")
            self.assertTrue(content.startswith(b"%PDF"))


class TimesheetExportTests(unittest.TestCase):
    def test_worked_overtime_and_summary_sheets(self) -> None:
        content = build_timesheet_xlsx_bytes(_timesheet(), organization_name="True Wood EMS")

        wb = load_workbook(BytesIO(content))
        self.assertEqual(wb.sheetnames, ["Worked Hours", "Overtime", "Summary"])

        worked = [cell.value for cell in wb["Worked Hours"][6]]
        self.assertEqual(worked, ["TW-1", "Rahul", "Worker Staff", "09:00", "-", "08:00", "17:00"])
        overtime = [cell.value for cell in wb["Overtime"][6]]
        self.assertEqual(overtime, ["TW-1", "Rahul", "Worker Staff", "02:00", "-", "-", "02:00"])
        self.assertEqual([cell.value for cell in wb["Overtime"][5]][-1], "Total")

        summary = wb["Summary"]
        self.assertEqual(summary.cell(row=1, column=7).value, "Days Without Schedule")
        self.assertEqual(
            [cell.value for cell in summary[2]],
            ["TW-1", "Rahul", "Worker Staff", 2, "17:00", "02:00", 1],
        )

    def test_empty_timesheet_still_exports(self) -> None:
        content = build_timesheet_xlsx_bytes(
            MonthlyTimesheetResponse(period=PERIOD, employees=[]),
            organization_name="True Wood EMS",
        )

        wb = load_workbook(BytesIO(content))
        self.assertEqual(wb["Worked Hours"].cell(row=5, column=4).value, "Total")


if __name__ == "__main__":
    unittest.main()
