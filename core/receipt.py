"""
core/receipt.py -- Single-payment receipt PDF.

Everything printed comes from the payment record as the API returned it:
deficit, late fee and status are shown, never recomputed. The only arithmetic
is the "Total Paid" line (paid amount plus late fee).
"""

from __future__ import annotations

import io
from collections.abc import Mapping
from datetime import date
from typing import Any, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from core.export import HEADER_BLUE, ROW_STRIPE
from core.formatting import format_currency, format_date
from core.table import to_number

_STATUS_COLORS = {
    "paid": colors.Color(34 / 255, 197 / 255, 94 / 255),
    "partial": colors.Color(251 / 255, 146 / 255, 60 / 255),
}
_STATUS_DEFAULT = colors.Color(239 / 255, 68 / 255, 68 / 255)
_DEFICIT_RED = colors.Color(239 / 255, 68 / 255, 68 / 255)


def receipt_number(payment: Mapping) -> str:
    """Server receipt number, else REC- plus the last 8 id characters."""
    if payment.get("receiptNumber"):
        return str(payment["receiptNumber"])
    return f"REC-{str(payment.get('_id') or '')[-8:].upper()}"


def receipt_filename(payment: Mapping, today: Optional[date] = None) -> str:
    today = today or date.today()
    ident = payment.get("receiptNumber") or str(payment.get("_id") or "")[-8:]
    return f"Receipt-{ident}-{today.isoformat()}.pdf"


def _method_label(payment: Mapping) -> str:
    method = payment.get("paymentMethod") or payment.get("paymentSource") or "N/A"
    # Only the first underscore is replaced: "BANK_TRANSFER" -> "BANK TRANSFER".
    return str(method).upper().replace("_", " ", 1)


def _embedded(record: Any) -> Mapping:
    return record if isinstance(record, Mapping) else {}


def payment_receipt_pdf(payment: Mapping, business_name: str = "Rent Management System") -> bytes:
    """Render the receipt for one payment and return the PDF bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=20 * mm,
        leftMargin=20 * mm,
        topMargin=15 * mm,
        bottomMargin=20 * mm,
        title=f"Receipt {receipt_number(payment)}",
    )

    styles = getSampleStyleSheet()
    styles.add(
        ParagraphStyle(
            name="ReceiptBrand",
            parent=styles["Heading1"],
            fontSize=22,
            leading=26,
            alignment=TA_CENTER,
            textColor=colors.white,
        )
    )
    styles.add(
        ParagraphStyle(
            name="ReceiptKind",
            parent=styles["Normal"],
            fontSize=12,
            alignment=TA_CENTER,
            textColor=colors.white,
        )
    )
    styles.add(ParagraphStyle(name="SectionHeader", parent=styles["Heading3"], spaceBefore=8, spaceAfter=4))
    styles.add(
        ParagraphStyle(
            name="ReceiptFooter",
            parent=styles["Italic"],
            fontSize=9,
            alignment=TA_CENTER,
            textColor=colors.grey,
        )
    )

    tenant = _embedded(payment.get("tenant"))
    house = _embedded(payment.get("house"))
    apartment = _embedded(house.get("apartment")) or _embedded(payment.get("apartment"))

    expected = to_number(payment.get("expectedAmount") or payment.get("amount") or 0) or 0.0
    paid = to_number(payment.get("paidAmount") or payment.get("amount") or 0) or 0.0
    deficit = to_number(payment.get("deficit")) or 0.0
    late_fee = to_number(payment.get("lateFee")) or 0.0

    elements: list = []

    banner = Table(
        [
            [Paragraph(escape(business_name.upper()), styles["ReceiptBrand"])],
            [Paragraph("PAYMENT RECEIPT", styles["ReceiptKind"])],
        ],
        colWidths=[doc.width],
    )
    banner.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), HEADER_BLUE),
                ("TOPPADDING", (0, 0), (-1, 0), 10),
                ("BOTTOMPADDING", (0, -1), (-1, -1), 10),
            ]
        )
    )
    elements += [banner, Spacer(1, 8 * mm)]

    header = Table(
        [
            ["Receipt Number:", receipt_number(payment)],
            ["Date:", format_date(payment.get("paymentDate"), "%B %d, %Y")],
        ],
        colWidths=[45 * mm, doc.width - 45 * mm],
    )
    header.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 12),
                ("LINEBELOW", (0, -1), (-1, -1), 0.5, colors.HexColor("#c8c8c8")),
                ("BOTTOMPADDING", (0, -1), (-1, -1), 8),
            ]
        )
    )
    elements.append(header)

    elements.append(Paragraph("PAYMENT DETAILS", styles["SectionHeader"]))
    tenant_label = f"{tenant.get('firstName') or ''} {tenant.get('lastName') or ''}".strip() or "N/A"
    details = Table(
        [
            ["Tenant Name:", tenant_label],
            ["Email:", tenant.get("email") or "N/A"],
            ["Phone:", tenant.get("phone") or "N/A"],
            ["House Number:", house.get("houseNumber") or "N/A"],
            ["Apartment:", apartment.get("name") or "N/A"],
            ["Address:", apartment.get("address") or "N/A"],
        ],
        colWidths=[45 * mm, doc.width - 45 * mm],
    )
    details.setStyle(
        TableStyle(
            [
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("FONTNAME", (1, 0), (1, 0), "Helvetica-Bold"),
                ("FONTNAME", (1, 3), (1, 3), "Helvetica-Bold"),
            ]
        )
    )
    elements.append(details)

    elements.append(Paragraph("PAYMENT INFORMATION", styles["SectionHeader"]))
    amounts = [
        ["Expected Amount:", format_currency(expected)],
        ["Paid Amount:", format_currency(paid)],
    ]
    amount_style = [
        ("BACKGROUND", (0, 0), (-1, -1), ROW_STRIPE),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("FONTNAME", (1, 0), (1, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
    ]
    if deficit > 0:
        amount_style.append(("TEXTCOLOR", (0, len(amounts)), (-1, len(amounts)), _DEFICIT_RED))
        amounts.append(["Deficit:", format_currency(deficit)])
    if late_fee > 0:
        amounts.append(["Late Fee:", format_currency(late_fee)])
    amounts.append(["Total Paid:", format_currency(paid + late_fee)])
    amount_style += [
        ("FONTSIZE", (0, -1), (-1, -1), 12),
        ("LINEABOVE", (0, -1), (-1, -1), 0.5, colors.HexColor("#c8c8c8")),
    ]
    amount_table = Table(amounts, colWidths=[doc.width / 2, doc.width / 2])
    amount_table.setStyle(TableStyle(amount_style))
    elements += [amount_table, Spacer(1, 5 * mm)]

    status = payment.get("status") or "N/A"
    meta = [
        ["Payment Method:", _method_label(payment)],
        ["Status:", str(status).upper()],
    ]
    if payment.get("transactionId"):
        meta.append(["Transaction ID:", str(payment["transactionId"])])
    if payment.get("referenceNumber"):
        meta.append(["Reference:", str(payment["referenceNumber"])])
    meta_table = Table(meta, colWidths=[45 * mm, doc.width - 45 * mm])
    meta_table.setStyle(
        TableStyle(
            [
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("FONTNAME", (1, 0), (1, 1), "Helvetica-Bold"),
                ("TEXTCOLOR", (1, 1), (1, 1), _STATUS_COLORS.get(status, _STATUS_DEFAULT)),
                ("LINEBELOW", (0, -1), (-1, -1), 0.5, colors.HexColor("#c8c8c8")),
                ("BOTTOMPADDING", (0, -1), (-1, -1), 10),
            ]
        )
    )
    elements += [meta_table, Spacer(1, 10 * mm)]

    elements.append(Paragraph("This is a computer-generated receipt. No signature required.", styles["ReceiptFooter"]))
    elements.append(Paragraph("Thank you for your payment!", styles["ReceiptFooter"]))

    doc.build(elements)
    return buffer.getvalue()
