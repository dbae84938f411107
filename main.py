"""
FlowCast - Main Entry Point.

Household cash-flow projection tool.
Loads a settings file, projects base/best/worst scenarios and writes
an audit log plus an Excel report.

Usage:
    python main.py <settings_json> [--scenario all] [--months N]
                   [--start-month YYYY-MM] [--output-dir <dir>] [--init]

Example:
    python main.py household.json --months 24 --output-dir reports/
"""

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from flowcast import __version__
from flowcast.audit import AuditLogger
from flowcast.calculator import ProjectionEngine
from flowcast.comparison import compare_scenarios
from flowcast.date_logic import MonthCalendar
from flowcast.excel_generator import ExcelReporter
from flowcast.repository import JsonSettingsRepository
from flowcast.schema import ProjectionRun, Scenario, ScenarioSummary, default_settings
from flowcast.validator import SettingsValidationError, SettingsValidator, ValidationError


def print_header() -> None:
    """Prints the application header."""
    print("=" * 60)
    print("  FlowCast - Household Cash-Flow Projection")
    print(f"  Version: {__version__}")
    print("=" * 60)
    print()


def print_errors(errors: List[ValidationError]) -> None:
    """Prints the first ten validation errors."""
    print(f"\n  ❌ VALIDATION ERRORS ({len(errors)} errors):")
    for error in errors[:10]:
        print(f"     {error}")
    if len(errors) > 10:
        print(f"     ... and {len(errors) - 10} more errors")


def print_summary(run: ProjectionRun, summaries: List[ScenarioSummary]) -> None:
    """
    Prints a per-scenario summary to the console.

    Args:
        run: Completed projection run.
        summaries: One summary per scenario in the run.
    """
    settings = run.settings

    print("\n" + "=" * 60)
    print("  PROJECTION COMPLETE")
    print("=" * 60)
    print()

    print("  HOUSEHOLD SNAPSHOT")
    print("  " + "-" * 40)
    print(f"  Current Balance:   {settings.current_balance:>14,.2f}")
    print(f"  Monthly Income:    {settings.monthly_income:>14,.2f}")
    print(f"  Monthly Expenses:  {settings.monthly_expenses:>14,.2f}")
    print(f"  Total Debt:        {settings.total_debt:>14,.2f}")
    print(f"  Horizon:           {settings.horizon_months} months from {run.start_month:%Y-%m}")
    print()

    for summary in summaries:
        print(f"  {summary.scenario.value.upper()} SCENARIO")
        print("  " + "-" * 40)
        print(f"  Final Cash:        {summary.final_cash:>14,.2f}")
        print(f"  Lowest Cash:       {summary.lowest_cash:>14,.2f} ({summary.lowest_cash_month})")
        print(f"  Final Debt:        {summary.final_debt_balance:>14,.2f}")
        print(f"  Investments:       {summary.final_investment_value:>14,.2f}")
        print(f"  Net Worth:         {summary.net_worth:>14,.2f}")
        if summary.debt_free_month:
            print(f"  ✓  Debt free in {summary.debt_free_month}")
        if summary.first_negative_month:
            print(f"  ⚠️  Cash turns negative in {summary.first_negative_month}")
        print()


def print_scenario_differences(run: ProjectionRun) -> None:
    """Prints final-month differences of best/worst against base."""
    if Scenario.BASE not in run.projections or len(run.projections) < 2:
        return

    print("  DIFFERENCE VS BASE (final month)")
    print("  " + "-" * 40)
    for scenario, rows in compare_scenarios(run.projections).items():
        for row in rows:
            if row.label != "Cumulative Cash":
                continue
            sign = "+" if row.difference > 0 else ""
            print(
                f"  {scenario.value.upper():<6} {sign}{row.difference:,.2f} "
                f"({sign}{row.percent_change}%)"
            )
    print()


def init_settings(settings_path: Path) -> int:
    """
    Writes a default settings file if none exists.

    Returns:
        Exit code.
    """
    if settings_path.exists():
        print(f"  ❌ ERROR: Settings file already exists: {settings_path}")
        return 1

    repository = JsonSettingsRepository(settings_path)
    asyncio.run(repository.save(default_settings()))
    print(f"  ✓ Default settings written: {settings_path}")
    return 0


def run_projection(
    settings_path: Path,
    output_dir: Path,
    scenario_choice: str = "all",
    months: Optional[int] = None,
    start_month: Optional[str] = None
) -> int:
    """
    Runs the complete projection pipeline.

    Args:
        settings_path: Path to the settings JSON file.
        output_dir: Directory for output files.
        scenario_choice: "base", "best", "worst" or "all".
        months: Optional horizon override.
        start_month: Optional first month as YYYY-MM. Defaults to this month.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    print_header()

    # Step 1: Validate settings
    print(f"  Loading: {settings_path}")
    validator = SettingsValidator()

    try:
        result = validator.validate_file(settings_path)
    except FileNotFoundError:
        print(f"\n  ❌ ERROR: File not found: {settings_path}")
        return 1
    except ValueError as e:
        print(f"\n  ❌ ERROR: {e}")
        return 1

    if not result.is_valid:
        print_errors(result.errors)
        return 1

    settings = result.settings
    if months is not None:
        settings = replace(settings, horizon_months=months)

    try:
        first_month = MonthCalendar().parse_label(start_month) if start_month else None
    except ValueError as e:
        print(f"\n  ❌ ERROR: {e}")
        return 1

    print(f"  ✓ Settings valid ({len(settings.debts)} debts)")

    # Step 2: Project scenarios
    scenarios = list(Scenario) if scenario_choice == "all" else [Scenario(scenario_choice)]
    print(f"  Projecting {', '.join(s.value for s in scenarios)} scenario(s)...")
    engine = ProjectionEngine()

    try:
        run = engine.build_run(settings, start_month=first_month, scenarios=scenarios)
    except SettingsValidationError as e:
        print_errors(e.errors)
        return 1

    summaries = [
        engine.summarise(scenario, run.projections[scenario])
        for scenario in run.scenarios
    ]

    # Step 3: Save audit log
    output_dir.mkdir(parents=True, exist_ok=True)

    audit_logger = AuditLogger()
    audit_path = output_dir / audit_logger.generate_filename("projection_audit")
    audit_logger.save_to_file(run, audit_path)
    print(f"  ✓ Audit log saved: {audit_path}")

    # Step 4: Generate Excel report
    excel_reporter = ExcelReporter(engine)
    excel_path = output_dir / excel_reporter.generate_filename("projection_report")
    excel_reporter.generate_report(run, excel_path)
    print(f"  ✓ Excel report saved: {excel_path}")

    print_summary(run, summaries)
    print_scenario_differences(run)

    print("=" * 60)
    print("  FlowCast - Projection Complete")
    print("=" * 60)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        description="FlowCast - Household Cash-Flow Projection"
    )
    parser.add_argument(
        "settings_file",
        type=Path,
        help="Path to household settings JSON file"
    )
    parser.add_argument(
        "--scenario",
        choices=["all"] + [s.value for s in Scenario],
        default="all",
        help="Scenario to project (default: all)"
    )
    parser.add_argument(
        "--months",
        type=int,
        default=None,
        help="Override the projection horizon in months"
    )
    parser.add_argument(
        "--start-month",
        default=None,
        help="First projected month as YYYY-MM (default: current month)"
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("output"),
        help="Output directory for reports (default: output/)"
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Write a default settings file and exit"
    )

    args = parser.parse_args(argv)

    if args.init:
        return init_settings(args.settings_file)

    return run_projection(
        args.settings_file,
        args.output_dir,
        scenario_choice=args.scenario,
        months=args.months,
        start_month=args.start_month,
    )


if __name__ == "__main__":
    sys.exit(main())
