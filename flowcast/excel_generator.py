"""
FlowCast - Excel Report Generation Module.

This module generates Excel reports for projection runs.
Follows the 'Executive First' principle with an at-a-glance Projection
Summary tab, one monthly detail tab per scenario and a Scenario
Comparison tab with a cumulative cash chart.

Report Conventions:
    - Currency formatting (#,##0.00) without a fixed symbol
    - Months with negative cumulative cash are highlighted
    - Scenario series share one month column for charting

Classes:
    ExcelReporter: Generates Excel workbooks from projection runs.
"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import List, Sequence, Union

from openpyxl import Workbook
from openpyxl.chart import LineChart, Reference
from openpyxl.styles import (
    Alignment,
    Border,
    Font,
    PatternFill,
    Side,
)
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from flowcast.calculator import ProjectionEngine
from flowcast.comparison import scenario_series
from flowcast.date_logic import MonthCalendar
from flowcast.schema import ProjectionMonth, ProjectionRun, Scenario, ScenarioSummary


class ExcelReporter:
    """
    Generates Excel reports for projection runs.

    Creates workbooks with a summary sheet, per-scenario detail sheets
    and a comparison sheet, applying currency formatting and
    highlighting months where cash goes negative.

    Attributes:
        CURRENCY_FORMAT: Excel number format for money.

    Example:
        >>> reporter = ExcelReporter()
        >>> reporter.generate_report(run, "projection_report.xlsx")
    """

    CURRENCY_FORMAT = '#,##0.00'

    SUMMARY_SHEET = "Projection Summary"
    COMPARISON_SHEET = "Scenario Comparison"

    DETAIL_HEADERS = [
        "Month",
        "Income",
        "Expenses",
        "Debt Payment",
        "Net Cash Flow",
        "Debt Balance",
        "Investment Value",
        "Cumulative Cash",
        "Net Worth",
    ]

    # Conditional formatting colours
    NEGATIVE_FILL = PatternFill(
        start_color="FFC7CE",
        end_color="FFC7CE",
        fill_type="solid"
    )
    POSITIVE_FILL = PatternFill(
        start_color="C6EFCE",
        end_color="C6EFCE",
        fill_type="solid"
    )

    # Header styling
    HEADER_FONT = Font(bold=True, color="FFFFFF")
    HEADER_FILL = PatternFill(
        start_color="2F5496",
        end_color="2F5496",
        fill_type="solid"
    )
    HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center")

    # Border styling
    THIN_BORDER = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin")
    )

    def __init__(self, engine: ProjectionEngine = None):
        """
        Initialises the ExcelReporter.

        Args:
            engine: Engine used to summarise scenarios. Defaults to a new one.
        """
        self._engine = engine or ProjectionEngine()
        self._calendar = MonthCalendar()

    @staticmethod
    def detail_sheet_name(scenario: Scenario) -> str:
        """Returns the detail sheet title for a scenario, e.g. 'Base Scenario'."""
        return f"{scenario.value.title()} Scenario"

    def generate_report(
        self,
        run: ProjectionRun,
        output_path: Union[str, Path]
    ) -> None:
        """
        Generates a complete Excel report from a projection run.

        Creates a workbook with:
        1. Projection Summary - settings and per-scenario outcomes
        2. One detail sheet per scenario - monthly rows
        3. Scenario Comparison - cumulative cash per scenario with chart

        Args:
            run: Projection run to report.
            output_path: Path for the output .xlsx file.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        workbook = Workbook()

        # Remove default sheet
        default_sheet = workbook.active
        workbook.remove(default_sheet)

        summaries = [
            self._engine.summarise(scenario, run.projections[scenario])
            for scenario in run.scenarios
        ]

        self._create_summary_sheet(workbook, run, summaries)
        for scenario in run.scenarios:
            self._create_detail_sheet(workbook, scenario, run.projections[scenario])
        self._create_comparison_sheet(workbook, run)

        workbook.save(output_path)

    def _create_summary_sheet(
        self,
        workbook: Workbook,
        run: ProjectionRun,
        summaries: Sequence[ScenarioSummary]
    ) -> None:
        """
        Creates the Projection Summary sheet.

        Args:
            workbook: Target workbook.
            run: Projection run.
            summaries: One summary per scenario in the run.
        """
        ws = workbook.create_sheet(self.SUMMARY_SHEET)
        settings = run.settings

        ws["A1"] = "FlowCast - Projection Summary"
        ws["A1"].font = Font(bold=True, size=16)
        ws.merge_cells("A1:D1")

        ws["A3"] = "Report Generated:"
        ws["B3"] = datetime.now().strftime("%Y-%m-%d %H:%M")
        ws["A4"] = "Projection Date:"
        ws["B4"] = run.timestamp.strftime("%Y-%m-%d %H:%M")
        ws["A5"] = "Version:"
        ws["B5"] = run.version
        ws["A6"] = "Horizon:"
        ws["B6"] = (
            f"{settings.horizon_months} months from "
            f"{self._calendar.format_display(run.start_month)}"
        )

        ws["A8"] = "HOUSEHOLD SNAPSHOT"
        ws["A8"].font = Font(bold=True, size=14)
        ws.merge_cells("A8:D8")

        snapshot_rows = [
            ("Current Balance", settings.current_balance),
            ("Monthly Income", settings.monthly_income),
            ("Fixed Expenses", settings.monthly_fixed_expenses),
            ("Variable Expenses", settings.monthly_variable_expenses),
            ("Total Debt", settings.total_debt),
            ("Monthly Investment", settings.investment_contribution_monthly),
        ]

        row = 10
        for label, value in snapshot_rows:
            ws[f"A{row}"] = label
            ws[f"A{row}"].font = Font(bold=True)
            ws[f"B{row}"] = float(value)
            ws[f"B{row}"].number_format = self.CURRENCY_FORMAT
            row += 1

        row += 1
        ws[f"A{row}"] = "SCENARIO OUTCOMES"
        ws[f"A{row}"].font = Font(bold=True, size=14)
        ws.merge_cells(f"A{row}:H{row}")
        row += 2

        headers = [
            "Scenario",
            "Final Cash",
            "Lowest Cash",
            "Lowest Month",
            "Final Debt",
            "Investments",
            "Net Worth",
            "First Negative",
            "Debt Free",
        ]
        self._write_header_row(ws, row, headers)

        for summary in summaries:
            row += 1
            values = [
                summary.scenario.value.upper(),
                float(summary.final_cash),
                float(summary.lowest_cash),
                summary.lowest_cash_month,
                float(summary.final_debt_balance),
                float(summary.final_investment_value),
                float(summary.net_worth),
                summary.first_negative_month or "-",
                summary.debt_free_month or "-",
            ]
            for col_idx, value in enumerate(values, start=1):
                cell = ws.cell(row=row, column=col_idx, value=value)
                cell.border = self.THIN_BORDER
                if isinstance(value, float):
                    cell.number_format = self.CURRENCY_FORMAT

            fill = self.NEGATIVE_FILL if summary.first_negative_month else self.POSITIVE_FILL
            ws.cell(row=row, column=1).fill = fill

        self._auto_adjust_columns(ws)

    def _create_detail_sheet(
        self,
        workbook: Workbook,
        scenario: Scenario,
        months: Sequence[ProjectionMonth]
    ) -> None:
        """
        Creates a detail sheet with one row per projected month.

        Args:
            workbook: Target workbook.
            scenario: Scenario the months belong to.
            months: Projection series.
        """
        ws = workbook.create_sheet(self.detail_sheet_name(scenario))
        self._write_header_row(ws, 1, self.DETAIL_HEADERS)

        for row_idx, month in enumerate(months, start=2):
            row_data = [
                month.month,
                float(month.income),
                float(month.expenses),
                float(month.debt_payment),
                float(month.net_cash_flow),
                float(month.debt_balance),
                float(month.investment_value),
                float(month.cumulative_cash),
                float(month.net_worth),
            ]

            for col_idx, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.border = self.THIN_BORDER
                if col_idx > 1:
                    cell.number_format = self.CURRENCY_FORMAT

            if month.cumulative_cash < Decimal("0"):
                for col_idx in range(1, len(self.DETAIL_HEADERS) + 1):
                    ws.cell(row=row_idx, column=col_idx).fill = self.NEGATIVE_FILL

        ws.freeze_panes = "B2"
        self._auto_adjust_columns(ws)

    def _create_comparison_sheet(
        self,
        workbook: Workbook,
        run: ProjectionRun
    ) -> None:
        """
        Creates the Scenario Comparison sheet with a line chart.

        Args:
            workbook: Target workbook.
            run: Projection run.
        """
        ws = workbook.create_sheet(self.COMPARISON_SHEET)
        scenarios = run.scenarios
        rows = scenario_series(run.projections, "cumulative_cash")

        headers: List[str] = ["Month"] + [s.value.title() for s in scenarios]
        self._write_header_row(ws, 1, headers)

        for row_idx, row in enumerate(rows, start=2):
            ws.cell(row=row_idx, column=1, value=row["month"]).border = self.THIN_BORDER
            for col_idx, scenario in enumerate(scenarios, start=2):
                cell = ws.cell(row=row_idx, column=col_idx, value=float(row[scenario.value]))
                cell.number_format = self.CURRENCY_FORMAT
                cell.border = self.THIN_BORDER

        if rows:
            chart = LineChart()
            chart.title = "Cumulative Cash by Scenario"
            chart.y_axis.title = "Cash"
            chart.x_axis.title = "Month"
            chart.height = 9
            chart.width = 20

            data = Reference(
                ws, min_col=2, max_col=len(headers), min_row=1, max_row=len(rows) + 1
            )
            categories = Reference(ws, min_col=1, min_row=2, max_row=len(rows) + 1)
            chart.add_data(data, titles_from_data=True)
            chart.set_categories(categories)

            anchor_col = get_column_letter(len(headers) + 2)
            ws.add_chart(chart, f"{anchor_col}2")

        self._auto_adjust_columns(ws)

    def _write_header_row(self, ws: Worksheet, row: int, headers: Sequence[str]) -> None:
        """Writes a styled header row starting at column A."""
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.font = self.HEADER_FONT
            cell.fill = self.HEADER_FILL
            cell.alignment = self.HEADER_ALIGNMENT
            cell.border = self.THIN_BORDER

    def _auto_adjust_columns(self, worksheet: Worksheet) -> None:
        """
        Auto-adjusts column widths based on content.

        Args:
            worksheet: Target worksheet.
        """
        for col_idx in range(1, worksheet.max_column + 1):
            max_length = 0
            column_letter = get_column_letter(col_idx)

            for row_idx in range(1, worksheet.max_row + 1):
                value = worksheet.cell(row=row_idx, column=col_idx).value
                if value is not None:
                    max_length = max(max_length, len(str(value)))

            # Add padding and set minimum width
            worksheet.column_dimensions[column_letter].width = max(max_length + 2, 10)

    def generate_filename(self, prefix: str = "projection_report") -> str:
        """
        Generates a timestamped filename for reports.

        Args:
            prefix: Filename prefix. Defaults to "projection_report".

        Returns:
            Filename like "projection_report_2024-12-18_143052.xlsx".
        """
        timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
        return f"{prefix}_{timestamp}.xlsx"
