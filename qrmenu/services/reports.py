"""
Sales Report Export

Lays a sales report out as the spreadsheet-friendly CSV the owner downloads
from the dashboard: title, period, summary block, then the best sellers.
"""

import logging
from datetime import date
from typing import Any, Union

import pandas as pd

from qrmenu.schemas import SalesReport

logger = logging.getLogger(__name__)

DateLike = Union[date, str]


def format_rupiah(amount: Any) -> str:
    """Format a whole-Rupiah amount with Indonesian digit grouping: 1.500.000"""
    try:
        value = int(round(float(amount or 0)))
    except (TypeError, ValueError):
        value = 0
    return f"{value:,}".replace(",", ".")


def report_filename(start: DateLike, end: DateLike) -> str:
    return f"laporan-penjualan-{start}-{end}.csv"


def build_report_rows(report: SalesReport, start: DateLike, end: DateLike) -> list[list[Any]]:
    rows: list[list[Any]] = [
        ["Laporan Penjualan"],
        ["Periode", f"{start} - {end}"],
        [""],
        ["Ringkasan"],
        ["Total Penjualan", f"Rp {format_rupiah(report.total_sales)}"],
        ["Total Pesanan", report.total_orders],
        ["Pesanan Selesai", report.completed_orders],
        ["Pesanan Dibatalkan", report.cancelled_orders],
        ["Pesanan Dalam Proses", report.pending_orders],
        [""],
        ["Menu Terlaris"],
        ["Nama Menu", "Jumlah Terjual", "Total Pendapatan"],
    ]
    for item in report.top_selling_items:
        rows.append([
            item.menu_name,
            item.total_quantity,
            f"Rp {format_rupiah(item.total_revenue)}",
        ])
    return rows


def report_to_csv(report: SalesReport, start: DateLike, end: DateLike) -> str:
    """Render the report as CSV text. Short rows are padded with empty cells."""
    rows = build_report_rows(report, start, end)
    df = pd.DataFrame(rows).fillna("")
    csv_text = df.to_csv(index=False, header=False, lineterminator="\n")
    logger.info(f"Sales report exported ({start} - {end}, {len(report.top_selling_items)} top items)")
    return csv_text
