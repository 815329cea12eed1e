from datetime import date

import pytest

from qrmenu.schemas import SalesReport
from qrmenu.services.qr import qr_filename, qr_payload_url, render_qr_svg
from qrmenu.services.receipt import receipt_context, render_receipt
from qrmenu.services.reports import (
    build_report_rows,
    format_rupiah,
    report_filename,
    report_to_csv,
)


@pytest.fixture
def report() -> SalesReport:
    return SalesReport.model_validate({
        "totalSales": "1575000.00",
        "totalOrders": 42,
        "completedOrders": 38,
        "cancelledOrders": 1,
        "pendingOrders": 3,
        "topSellingItems": [
            {"menu_name": "Mie Aceh Goreng", "total_quantity": "31", "total_revenue": "682000.00"},
            {"menu_name": None, "total_quantity": 2, "total_revenue": 16000},
        ],
    })


class TestSalesReport:
    @pytest.mark.parametrize("amount, expected", [
        (0, "0"),
        (999, "999"),
        (1500000, "1.500.000"),
        ("25000.00", "25.000"),
        (None, "0"),
    ])
    def test_format_rupiah(self, amount, expected):
        assert format_rupiah(amount) == expected

    def test_filename(self):
        assert report_filename(date(2026, 10, 1), date(2026, 10, 19)) == (
            "laporan-penjualan-2026-10-01-2026-10-19.csv"
        )

    def test_rows(self, report):
        rows = build_report_rows(report, "2026-10-01", "2026-10-19")

        assert rows[0] == ["Laporan Penjualan"]
        assert rows[1] == ["Periode", "2026-10-01 - 2026-10-19"]
        assert ["Total Penjualan", "Rp 1.575.000"] in rows
        assert ["Pesanan Dalam Proses", 3] in rows
        assert rows[-2] == ["Mie Aceh Goreng", 31, "Rp 682.000"]
        assert rows[-1] == ["Unknown", 2, "Rp 16.000"]

    def test_csv(self, report):
        lines = report_to_csv(report, "2026-10-01", "2026-10-19").splitlines()

        assert lines[0] == "Laporan Penjualan,,"
        assert lines[1] == "Periode,2026-10-01 - 2026-10-19,"
        assert "Total Pesanan,42," in lines
        assert "Nama Menu,Jumlah Terjual,Total Pendapatan" in lines
        assert lines[-2] == "Mie Aceh Goreng,31,Rp 682.000"

    def test_empty_report_defaults(self):
        report = SalesReport.model_validate({"totalSales": None, "topSellingItems": None})

        assert report.total_sales == 0
        assert report.top_selling_items == []


class TestTableQr:
    def test_payload_url_encodes_table(self):
        assert qr_payload_url("5") == "http://menu.test/menu/5"
        assert qr_payload_url("VIP 1", origin="https://resto.id/") == "https://resto.id/menu/VIP%201"

    @pytest.mark.parametrize("table, expected", [
        ("5", "meja_5_qrcode.svg"),
        ("VIP 1", "meja_VIP-1_qrcode.svg"),
        ("Teras\tA 2", "meja_Teras-A-2_qrcode.svg"),
    ])
    def test_filename_replaces_whitespace(self, table, expected):
        assert qr_filename(table) == expected

    def test_render_svg(self):
        svg = render_qr_svg("5")

        assert isinstance(svg, bytes)
        assert b"svg" in svg[:400]
        assert b"path" in svg


class TestReceipt:
    def test_context_uppercases_labels(self, placed_order):
        context = receipt_context(placed_order)

        assert context["restaurant_name"] == "MANDELA CORNER"
        assert context["restaurant_city"] == "Bengkulu"
        assert context["table_label"] == "Take Away - Budi"
        assert context["order_status"] == "DALAM PROSES"
        assert context["payment_status"] == "BELUM BAYAR"

    def test_render(self, placed_order):
        html = render_receipt(placed_order)

        assert "STRUK PESANAN" in html
        assert "Bengkulu" in html
        assert "ID Pesanan: #1001" in html
        assert "19/10/2026 09:30" in html
        assert "2x Mie Aceh Goreng" in html
        assert "Rp 44.000" in html
        assert "@ Rp 22.000" in html
        assert "* pedas" in html
        assert "* dingin" in html
        assert "TOTAL:</span><span>Rp 62.000" in html

    def test_missing_statuses(self, placed_order):
        order = placed_order.model_copy(update={"order_status": None, "payment_status": None})

        assert receipt_context(order)["order_status"] == "N/A"
