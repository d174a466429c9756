from __future__ import annotations

from datetime import datetime, timezone
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from truewood_ems.schemas import AttendanceReportResponse, MonthlyTimesheetResponse

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

HEADER_FILL = PatternFill(fill_type="solid", fgColor="23887C")
CATEGORY_FILL = PatternFill(fill_type="solid", fgColor="DDF0ED")
META_LABEL_FILL = PatternFill(fill_type="solid", fgColor="EAF4F2")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F7FBFA")
HOLIDAY_FILL = PatternFill(fill_type="solid", fgColor="DBEAFE")
WEEKLY_OFF_FILL = PatternFill(fill_type="solid", fgColor="F3F4F6")
PRESENT_FILL = PatternFill(fill_type="solid", fgColor="DCFCE7")
ABSENT_FILL = PatternFill(fill_type="solid", fgColor="FEE2E2")
LEAVE_FILL = PatternFill(fill_type="solid", fgColor="FEF9C3")
SITE_FILL = PatternFill(fill_type="solid", fgColor="F3E8FF")
OVERTIME_FILL = PatternFill(fill_type="solid", fgColor="E6F4EA")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
TITLE_FONT = Font(bold=True, color="23887C", size=14)
MUTED_FONT = Font(color="334155")

THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)
CENTER = Alignment(horizontal="center", vertical="center")

PDF_HEADER_COLOR = colors.HexColor("#23887C")
PDF_CELL_COLORS = {
    "P": colors.HexColor("#DCFCE7"),
    "A": colors.HexColor("#FEE2E2"),
    "H": colors.HexColor("#DBEAFE"),
    "W": colors.HexColor("#F3F4F6"),
}


def _style_header(ws: Worksheet, row: int) -> None:
    for cell in ws[row]:
        if cell.value is None:
            continue
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _auto_width(ws: Worksheet, *, max_width: int = 40) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            if cell.coordinate in ws.merged_cells:
                continue
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, max_width)


def _write_title(ws: Worksheet, title: str, *, organization_name: str) -> int:
    ws.cell(row=1, column=1, value=title).font = TITLE_FONT
    generated = datetime.now(timezone.utc).strftime("%d %b %Y %H:%M UTC")
    for row_idx, (label, value) in enumerate(
        (("Organization", organization_name), ("Generated on", generated)),
        start=2,
    ):
        label_cell = ws.cell(row=row_idx, column=1, value=label)
        label_cell.font = BOLD_FONT
        label_cell.fill = META_LABEL_FILL
        ws.cell(row=row_idx, column=2, value=value).font = MUTED_FONT
    return 5


def _label_fill(label: str, codes: dict[str, str]) -> PatternFill | None:
    kind = codes.get(label)
    if label == "P":
        return PRESENT_FILL
    if label == "A":
        return ABSENT_FILL
    if label == "H":
        return HOLIDAY_FILL
    if label == "W":
        return WEEKLY_OFF_FILL
    if kind == "Leave" or label == "L":
        return LEAVE_FILL
    if kind == "Work Site":
        return SITE_FILL
    return None


def _append_legend(ws: Worksheet, report: AttendanceReportResponse, *, start_row: int) -> None:
    ws.cell(row=start_row, column=1, value="LEGEND").font = TITLE_FONT
    header_row = start_row + 1
    for col_idx, header in enumerate(("Code", "Description", "Type"), start=1):
        ws.cell(row=header_row, column=col_idx, value=header)
    _style_header(ws, header_row)
    for offset, item in enumerate(report.legend, start=1):
        row_idx = header_row + offset
        ws.cell(row=row_idx, column=1, value=item.code).alignment = CENTER
        ws.cell(row=row_idx, column=2, value=item.description)
        ws.cell(row=row_idx, column=3, value=item.type)
        for col_idx in range(1, 4):
            ws.cell(row=row_idx, column=col_idx).border = THIN_BORDER


def _summary_headers(report: AttendanceReportResponse) -> list[str]:
    return (
        ["Present", "Absent"]
        + [item.name for item in report.leave_types]
        + [item.name for item in report.work_sites]
    )


def _summary_values(report: AttendanceReportResponse, row_index: int) -> list[int]:
    stats = report.rows[row_index].statistics
    return (
        [stats.present, stats.absent]
        + [stats.leaves.get(item.id, 0) for item in report.leave_types]
        + [stats.work_sites.get(item.id, 0) for item in report.work_sites]
    )


def build_report_xlsx_bytes(report: AttendanceReportResponse, *, organization_name: str) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Attendance" if report.kind == "MONTHLY" else "Yearly Summary"

    header_row = _write_title(
        ws,
        f"Attendance Report: {report.period.label}",
        organization_name=organization_name,
    )
    headers = ["Employee ID", "Employee Name", "Category"]
    headers.extend(f"{column.day:02d}" for column in report.columns)
    headers.extend(_summary_headers(report))
    for col_idx, header in enumerate(headers, start=1):
        ws.cell(row=header_row, column=col_idx, value=header)
    _style_header(ws, header_row)

    codes = {item.code: item.type for item in report.legend}
    first_day_col = 4
    for row_offset, row in enumerate(report.rows, start=1):
        row_idx = header_row + row_offset
        values: list[object] = [row.employee_code or "-", row.employee_name, row.category]
        values.extend(row.cells)
        values.extend(_summary_values(report, row_offset - 1))
        for col_idx, value in enumerate(values, start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.border = THIN_BORDER
            if row_offset % 2 == 0:
                cell.fill = ZEBRA_FILL
            if col_idx >= first_day_col:
                cell.alignment = CENTER
        for day_offset, label in enumerate(row.cells):
            fill = _label_fill(label, codes)
            if fill is not None:
                ws.cell(row=row_idx, column=first_day_col + day_offset).fill = fill

    last_row = header_row + len(report.rows)
    if report.rows:
        ws.auto_filter.ref = f"A{header_row}:{get_column_letter(len(headers))}{last_row}"
    ws.freeze_panes = ws.cell(row=header_row + 1, column=first_day_col)

    _append_legend(ws, report, start_row=last_row + 3)
    _auto_width(ws)
    for offset in range(len(report.columns)):
        ws.column_dimensions[get_column_letter(first_day_col + offset)].width = 5

    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()


def build_timesheet_xlsx_bytes(timesheet: MonthlyTimesheetResponse, *, organization_name: str) -> bytes:
    wb = Workbook()
    worked_ws = wb.active
    worked_ws.title = "Worked Hours"
    overtime_ws = wb.create_sheet("Overtime")
    summary_ws = wb.create_sheet("Summary")

    days = timesheet.employees[0].days if timesheet.employees else []
    for ws, label in ((worked_ws, "Worked Hours"), (overtime_ws, "Overtime")):
        header_row = _write_title(
            ws,
            f"{label}: {timesheet.period.label}",
            organization_name=organization_name,
        )
        headers = ["Employee ID", "Employee Name", "Category"]
        headers.extend(item.day_date.strftime("%d") for item in days)
        headers.append("Total")
        for col_idx, header in enumerate(headers, start=1):
            ws.cell(row=header_row, column=col_idx, value=header)
        _style_header(ws, header_row)

        for row_offset, employee in enumerate(timesheet.employees, start=1):
            row_idx = header_row + row_offset
            if ws is worked_ws:
                cells = [item.worked_display for item in employee.days]
                total = employee.totals.worked_display
            else:
                cells = [item.overtime_display for item in employee.days]
                total = employee.totals.overtime_display
            values = [employee.employee_code or "-", employee.employee_name, employee.category, *cells, total]
            for col_idx, value in enumerate(values, start=1):
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.border = THIN_BORDER
                if col_idx > 3:
                    cell.alignment = CENTER
                if ws is overtime_ws and 3 < col_idx < len(values) and value != "-":
                    cell.fill = OVERTIME_FILL
            ws.cell(row=row_idx, column=len(values)).font = BOLD_FONT
        ws.freeze_panes = ws.cell(row=header_row + 1, column=4)
        _auto_width(ws)

    summary_headers = [
        "Employee ID",
        "Employee Name",
        "Category",
        "Present Days",
        "Worked Hours",
        "Overtime",
        "Days Without Schedule",
    ]
    summary_ws.append(summary_headers)
    _style_header(summary_ws, 1)
    for employee in timesheet.employees:
        summary_ws.append(
            [
                employee.employee_code or "-",
                employee.employee_name,
                employee.category,
                employee.totals.present_days,
                employee.totals.worked_display,
                employee.totals.overtime_display,
                employee.totals.undefined_overtime_days,
            ]
        )
    summary_ws.freeze_panes = "A2"
    _auto_width(summary_ws)

    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()


def _pdf_cell_color(label: str, codes: dict[str, str]) -> colors.Color | None:
    if label in PDF_CELL_COLORS:
        return PDF_CELL_COLORS[label]
    kind = codes.get(label)
    if kind == "Leave" or label == "L":
        return colors.HexColor("#FEF9C3")
    if kind == "Work Site":
        return colors.HexColor("#F3E8FF")
    return None


def build_report_pdf_bytes(report: AttendanceReportResponse, *, organization_name: str) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=8 * mm,
        rightMargin=8 * mm,
        topMargin=10 * mm,
        bottomMargin=10 * mm,
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Heading1"],
        fontSize=14,
        textColor=PDF_HEADER_COLOR,
        spaceAfter=4,
    )
    story = [
        Paragraph(f"{organization_name} - Attendance Report", title_style),
        Paragraph(f"Period: {report.period.label}", styles["Normal"]),
        Spacer(1, 6),
    ]

    summary_headers = ["Present", "Absent"] + [item.code for item in report.leave_types] + [
        item.code for item in report.work_sites
    ]
    header = ["ID", "Name"] + [str(column.day) for column in report.columns] + summary_headers
    data: list[list[object]] = [header]
    for index, row in enumerate(report.rows):
        data.append([row.employee_code or "-", row.employee_name, *row.cells, *_summary_values(report, index)])

    day_count = len(report.columns)
    if day_count:
        usable_width = doc.width - 60 * mm
        cell_width = usable_width / (day_count + len(summary_headers))
        col_widths = [18 * mm, 42 * mm] + [cell_width] * (day_count + len(summary_headers))
        font_size = 6
    else:
        col_widths = [25 * mm, 60 * mm] + [22 * mm] * len(summary_headers)
        font_size = 8

    table_style = [
        ("BACKGROUND", (0, 0), (-1, 0), PDF_HEADER_COLOR),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), font_size),
        ("ALIGN", (2, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("LEFTPADDING", (0, 0), (-1, -1), 1),
        ("RIGHTPADDING", (0, 0), (-1, -1), 1),
    ]
    codes = {item.code: item.type for item in report.legend}
    for row_idx, row in enumerate(report.rows, start=1):
        for day_idx, label in enumerate(row.cells):
            color = _pdf_cell_color(label, codes)
            if color is not None:
                table_style.append(("BACKGROUND", (2 + day_idx, row_idx), (2 + day_idx, row_idx), color))

    table = Table(data, colWidths=col_widths, repeatRows=1)
    table.setStyle(TableStyle(table_style))
    story.append(table)
    story.append(Spacer(1, 10))

    story.append(Paragraph("Legend", styles["Heading3"]))
    legend_data = [["Code", "Description", "Type"]]
    legend_data.extend([item.code, item.description, item.type] for item in report.legend)
    legend = Table(legend_data, colWidths=[20 * mm, 70 * mm, 30 * mm], hAlign="LEFT")
    legend.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), PDF_HEADER_COLOR),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F7FBFA")]),
            ]
        )
    )
    story.append(legend)

    doc.build(story)
    return buffer.getvalue()
