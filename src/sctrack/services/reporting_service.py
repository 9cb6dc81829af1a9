from __future__ import annotations

from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from sctrack.domain.models import AnalyticsData


class ReportingService:
    def __init__(self, analytics):
        self.analytics = analytics

    def export_analytics_excel(self, path: Path | str, data: AnalyticsData | None = None) -> Path:
        data = data or self.analytics.compute()
        wb = Workbook()

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, end_row: int, end_col: int):
            ref = f"A{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        def counts_sheet(title: str, table_name: str, label: str, counts: dict[str, int]):
            ws = wb.create_sheet(title)
            ws.append([label, "Products"])
            bold_row(ws, 1)
            for key, count in counts.items():
                ws.append([key, int(count)])
            ws.freeze_panes = "A2"
            set_widths(ws, {"A": 32, "B": 12})
            if ws.max_row >= 2:
                add_table(ws, table_name, 1, ws.max_row, 2)

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Supply Chain Analytics"
        ws["A1"].font = Font(bold=True, size=14)

        rows = [
            ("Total products", data.total_products, None),
            ("Active shipments", data.active_shipments, None),
            ("Completed deliveries", data.completed_deliveries, None),
            ("Average delivery time (days)", data.average_delivery_time, None),
            ("On-time delivery rate", data.on_time_delivery_rate / 100, "0%"),
            ("Quality score", data.quality_score, "0.0"),
        ]
        start_row = 3
        for i, (label, val, fmt) in enumerate(rows):
            r = start_row + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = val
            if fmt:
                ws[f"B{r}"].number_format = fmt
        set_widths(ws, {"A": 32, "B": 16})

        # -------- 2) Distributions --------
        counts_sheet("Categories", "CategoryStats", "Category", data.category_stats)
        counts_sheet("Locations", "LocationStats", "Location", data.location_stats)

        # -------- 3) Monthly Trends --------
        ws4 = wb.create_sheet("Monthly Trends")
        ws4.append(["Month", "Products", "Shipments"])
        bold_row(ws4, 1)
        for trend in data.monthly_trends:
            ws4.append([trend.month, int(trend.products), int(trend.shipments)])
        set_widths(ws4, {"A": 12, "B": 12, "C": 12})
        if ws4.max_row >= 2:
            add_table(ws4, "MonthlyTrends", 1, ws4.max_row, 3)

        target = Path(path)
        wb.save(target)
        return target
