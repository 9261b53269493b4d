"""
core/export.py -- CSV, XLSX and PDF exports of already-fetched records.

Exports never call the API. Screens hand over the rows they rendered, a row
builder flattens them into labelled columns, and one of the writers below
returns the file body:

  to_csv()   text, with the formula-injection guard on every string cell
  to_xlsx()  bytes via XlsxWriter, bold banded header row
  to_pdf()   bytes via ReportLab, title + "Generated:" line + striped table

build_export() picks the writer from a format name and returns an ExportFile
carrying filename and media type, so the web layer and the CLI share one
code path.
"""

from __future__ import annotations

import csv
import io
import json
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional
from xml.sax.saxutils import escape

import xlsxwriter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from core.formatting import format_currency, format_datetime, person_name, tenant_name
from core.table import display_str, parse_datetime, record_amount

EXPORT_FORMATS = ("pdf", "xlsx", "csv")

MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}

HEADER_BLUE = colors.Color(37 / 255, 99 / 255, 235 / 255)
ROW_STRIPE = colors.Color(245 / 255, 247 / 255, 250 / 255)

# Tables wider than this switch the PDF to landscape.
_LANDSCAPE_COLUMNS = 6


@dataclass
class Column:
    key: str
    label: str
    format: Optional[Callable[[Any], str]] = None


@dataclass
class ExportFile:
    filename: str
    media_type: str
    content: bytes


# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------


def short_date(value: Any, default: str = "") -> str:
    """M/D/YYYY, the console's table date format."""
    parsed = parse_datetime(value)
    if parsed is None:
        return default
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def _sanitize_csv_cell(value: str) -> str:
    """Neutralize spreadsheet formula injection (CWE-1236).

    Cells starting with =, +, - or @ are prefixed with a tab so spreadsheet
    applications treat them as text.
    """
    if value and value[0] in ("=", "+", "-", "@"):
        return "\t" + value
    return value


def _cell_text(row: Mapping, column: Column) -> str:
    value = row.get(column.key)
    if value is None:
        return ""
    if column.format is not None:
        return column.format(value)
    if isinstance(value, (Mapping, list)):
        return json.dumps(value, default=str)
    return display_str(value)


def label_from_key(key: str) -> str:
    """Turn a camelCase key into a label, paymentCount -> Payment Count."""
    spaced = re.sub(r"(?<=[a-z])(?=[A-Z])", " ", key)
    return spaced[:1].upper() + spaced[1:]


def columns_for(rows: list[Mapping]) -> list[Column]:
    """One column per key of the first row, labelled from the key."""
    if not rows:
        return []
    return [Column(key, label_from_key(key)) for key in rows[0]]


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------


def to_csv(rows: Iterable[Mapping], columns: Optional[list[Column]] = None) -> str:
    rows = list(rows)
    columns = columns or columns_for(rows)
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([c.label for c in columns])
    for row in rows:
        cells = []
        for column in columns:
            raw = row.get(column.key)
            text = _cell_text(row, column)
            # Numbers are written as numbers; only text can carry a formula.
            cells.append(text if isinstance(raw, (int, float)) and column.format is None else _sanitize_csv_cell(text))
        writer.writerow(cells)
    return buf.getvalue()


def to_xlsx(
    rows: Iterable[Mapping],
    columns: Optional[list[Column]] = None,
    sheet_name: str = "Sheet1",
) -> bytes:
    rows = list(rows)
    columns = columns or columns_for(rows)
    output = io.BytesIO()
    workbook = xlsxwriter.Workbook(output, {"in_memory": True})
    worksheet = workbook.add_worksheet(sheet_name[:31])

    header_format = workbook.add_format(
        {
            "bold": True,
            "bg_color": "#2563EB",
            "font_color": "white",
            "border": 1,
        }
    )

    widths = [len(c.label) for c in columns]
    for col, column in enumerate(columns):
        worksheet.write_string(0, col, column.label, header_format)
    for row_num, row in enumerate(rows, start=1):
        for col, column in enumerate(columns):
            raw = row.get(column.key)
            if isinstance(raw, (int, float)) and not isinstance(raw, bool) and column.format is None:
                worksheet.write_number(row_num, col, raw)
                text = display_str(raw)
            else:
                # write_string, not write: text starting with "=" must stay text.
                text = _cell_text(row, column)
                worksheet.write_string(row_num, col, text)
            widths[col] = max(widths[col], len(text))
    for col, width in enumerate(widths):
        worksheet.set_column(col, col, min(width + 2, 60))

    workbook.close()
    return output.getvalue()


def to_pdf(
    rows: Iterable[Mapping],
    columns: Optional[list[Column]],
    title: str,
    generated: Optional[date] = None,
) -> bytes:
    rows = list(rows)
    columns = columns or columns_for(rows)
    generated = generated or date.today()
    buffer = io.BytesIO()
    pagesize = landscape(A4) if len(columns) > _LANDSCAPE_COLUMNS else A4
    doc = SimpleDocTemplate(
        buffer,
        pagesize=pagesize,
        rightMargin=14 * mm,
        leftMargin=14 * mm,
        topMargin=14 * mm,
        bottomMargin=14 * mm,
        title=title,
    )
    styles = getSampleStyleSheet()
    cell_style = styles["BodyText"].clone("ExportCell", fontSize=8, leading=10)
    header_style = cell_style.clone("ExportHeader", textColor=colors.white, fontName="Helvetica-Bold")

    elements: list = [
        Paragraph(escape(title), styles["Title"]),
        Paragraph(f"Generated: {short_date(generated)}", styles["Normal"]),
        Spacer(1, 6 * mm),
    ]

    if columns:
        data = [[Paragraph(escape(c.label), header_style) for c in columns]]
        for row in rows:
            data.append([Paragraph(escape(_cell_text(row, c)), cell_style) for c in columns])
        table = Table(data, repeatRows=1, colWidths=[doc.width / len(columns)] * len(columns))
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), HEADER_BLUE),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, ROW_STRIPE]),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.HexColor("#e2e8f0")),
                ]
            )
        )
        elements.append(table)
    else:
        elements.append(Paragraph("No data to export.", styles["Italic"]))

    doc.build(elements)
    return buffer.getvalue()


def build_export(
    rows: Iterable[Mapping],
    fmt: str,
    basename: str,
    title: str,
    columns: Optional[list[Column]] = None,
) -> ExportFile:
    """Render rows in the requested format. Raises ValueError for unknown formats."""
    rows = list(rows)
    if fmt == "csv":
        content = to_csv(rows, columns).encode("utf-8")
    elif fmt == "xlsx":
        content = to_xlsx(rows, columns)
    elif fmt == "pdf":
        content = to_pdf(rows, columns, title)
    else:
        raise ValueError(f"Unsupported export format: {fmt!r}")
    return ExportFile(filename=f"{safe_filename(basename)}.{fmt}", media_type=MEDIA_TYPES[fmt], content=content)


def safe_filename(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "-", name).strip("-")
    return cleaned or "export"


# ---------------------------------------------------------------------------
# Column presets and row builders
# ---------------------------------------------------------------------------

PAYMENT_COLUMNS = [
    Column("paymentDate", "Date", short_date),
    Column("tenant", "Tenant", lambda t: person_name(t)),
    Column("house", "House", lambda h: display_str(h.get("houseNumber")) if isinstance(h, Mapping) else "N/A"),
    Column("amount", "Amount", format_currency),
    Column("status", "Status"),
    Column("paymentMethod", "Method"),
]

TENANT_COLUMNS = [
    Column("firstName", "First Name"),
    Column("lastName", "Last Name"),
    Column("email", "Email"),
    Column("phone", "Phone"),
    Column("house", "House", lambda h: display_str(h.get("houseNumber")) if isinstance(h, Mapping) else "Not Assigned"),
    Column("status", "Status"),
]


def payment_rows(payments: Iterable[Mapping]) -> list[dict]:
    """Flat rows for the payments spreadsheet and CSV exports."""
    rows = []
    for p in payments:
        house = p.get("house")
        rows.append(
            {
                "Date": short_date(p.get("paymentDate"), "N/A"),
                "Tenant": tenant_name(p) if isinstance(p.get("tenant"), Mapping) else "N/A",
                "House": display_str(house.get("houseNumber")) if isinstance(house, Mapping) else "N/A",
                "Amount": record_amount(p),
                "Status": p.get("status"),
                "Method": p.get("paymentMethod"),
            }
        )
    return rows


def tenant_rows(tenants: Iterable[Mapping]) -> list[dict]:
    rows = []
    for t in tenants:
        house = t.get("house")
        rows.append(
            {
                "First Name": t.get("firstName"),
                "Last Name": t.get("lastName"),
                "Email": t.get("email"),
                "Phone": t.get("phone"),
                "House": display_str(house.get("houseNumber")) if isinstance(house, Mapping) else "Not Assigned",
                "Status": t.get("status"),
            }
        )
    return rows


def activity_log_rows(logs: Iterable[Mapping]) -> list[dict]:
    rows = []
    for log in logs:
        user = log.get("user") if isinstance(log.get("user"), Mapping) else None
        rows.append(
            {
                "Date": format_datetime(log.get("createdAt")),
                "User": person_name(user) if user else "N/A",
                "Role": (user or {}).get("role") or "N/A",
                "Action": log.get("action"),
                "Entity Type": log.get("entityType"),
                "Entity Name": log.get("entityName") or "N/A",
                "Description": log.get("description"),
                "IP Address": log.get("ipAddress") or "N/A",
            }
        )
    return rows


def income_statement_rows(statement: Mapping) -> list[dict]:
    revenue = statement.get("revenue") or {}
    expenses = statement.get("expenses") or {}
    return [
        {"label": "Revenue", "value": format_currency(revenue.get("total"))},
        {"label": "Expenses", "value": format_currency(expenses.get("total"))},
        {"label": "Net Income", "value": format_currency(statement.get("netIncome"))},
    ]


def outstanding_balance_rows(report: Mapping) -> list[dict]:
    rows = []
    for b in report.get("balances") or []:
        apartment = b.get("apartment") if isinstance(b.get("apartment"), Mapping) else {}
        house = b.get("house") if isinstance(b.get("house"), Mapping) else {}
        rows.append(
            {
                "Tenant": person_name(b.get("tenant")),
                "Apartment": apartment.get("name") or "N/A",
                "House": house.get("houseNumber") or "N/A",
                "Outstanding Balance": format_currency(b.get("currentBalance")),
            }
        )
    return rows


def revenue_by_apartment_rows(report: Mapping) -> list[dict]:
    return [
        {
            "Apartment": a.get("apartmentName"),
            "Revenue": format_currency(a.get("revenue")),
            "Late Fees": format_currency(a.get("lateFees")),
            "Total": format_currency(a.get("total")),
            "Payments": a.get("paymentCount"),
            "Tenants": a.get("tenantCount"),
        }
        for a in report.get("apartments") or []
    ]


def tenant_ledger_rows(ledger: Mapping) -> list[dict]:
    return [
        {
            "Date": short_date(p.get("paymentDate"), "N/A"),
            "Expected": format_currency(p.get("expectedAmount") or p.get("amount")),
            "Paid": format_currency(p.get("paidAmount") or p.get("amount")),
            "Deficit": format_currency(p.get("deficit") or 0),
            "Late Fee": format_currency(p.get("lateFee") or 0),
            "Status": p.get("status"),
            "Method": p.get("paymentMethod"),
        }
        for p in ledger.get("payments") or []
    ]


def ledger_tenant_name(ledger: Mapping) -> str:
    tenant = ledger.get("tenant") or {}
    return tenant.get("name") or person_name(tenant, "tenant")
