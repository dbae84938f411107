"""
FlowCast - Audit Logger Tests.

Property-based and unit tests for AuditLogger class.
Tests ensure correct JSON serialisation, Decimal precision
preservation, and round-trip consistency.

**Feature: flowcast, Property 8: Serialisation Round-Trip**
"""

import json
import tempfile
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis.strategies import (
    composite, datetimes, decimals, integers, lists, sampled_from, tuples
)

from flowcast.audit import AuditLogger, DecimalEncoder
from flowcast.calculator import ProjectionEngine
from flowcast.schema import (
    Debt,
    ProjectionRun,
    ProjectionSettings,
    Scenario,
    ScenarioAdjustments,
    ScenarioFactors,
)
from flowcast.validator import SettingsValidator


def money(min_value="0", max_value="100000"):
    """Strategy for cent-precision amounts."""
    return decimals(
        min_value=Decimal(min_value),
        max_value=Decimal(max_value),
        places=2,
        allow_nan=False,
        allow_infinity=False
    )


def rate(min_value="0", max_value="0.30"):
    """Strategy for annual rates with basis-point precision."""
    return decimals(
        min_value=Decimal(min_value),
        max_value=Decimal(max_value),
        places=4,
        allow_nan=False,
        allow_infinity=False
    )


# Custom strategies for generating test data
@composite
def valid_settings(draw):
    """Generate valid ProjectionSettings objects."""
    names = ["Car", "Mortgage", "Student_Loan", "Credit_Card", ""]
    debts = draw(lists(
        tuples(money("0", "50000"), money("0", "5000"), rate(), sampled_from(names)),
        max_size=3
    ))

    return ProjectionSettings(
        current_balance=draw(money("-10000", "100000")),
        monthly_income=draw(money()),
        monthly_fixed_expenses=draw(money("0", "20000")),
        monthly_variable_expenses=draw(money("0", "20000")),
        debts=tuple(
            Debt(balance, payment, r, name)
            for balance, payment, r, name in debts
        ),
        investment_contribution_monthly=draw(money("0", "5000")),
        investment_return_annual=draw(rate("-0.20", "0.20")),
        horizon_months=draw(integers(min_value=1, max_value=36)),
        scenario_adjustments=ScenarioAdjustments(
            best=ScenarioFactors(draw(rate("1", "1.5")), draw(rate("0.5", "1"))),
            worst=ScenarioFactors(draw(rate("0.5", "1")), draw(rate("1", "1.5"))),
        ),
        starting_investment_value=draw(money("0", "50000")),
        income_growth_annual=draw(rate("-0.10", "0.10")),
    )


@composite
def valid_runs(draw):
    """Generate ProjectionRun objects from real engine output."""
    timestamp = draw(datetimes(
        min_value=datetime(2020, 1, 1),
        max_value=datetime(2030, 12, 31)
    ))
    start = date(draw(integers(2020, 2030)), draw(integers(1, 12)), 1)

    return ProjectionEngine().build_run(
        draw(valid_settings()), start_month=start, timestamp=timestamp
    )


def sample_run() -> ProjectionRun:
    """Returns a small run with one debt."""
    settings = ProjectionSettings(
        current_balance=Decimal("1000.00"),
        monthly_income=Decimal("3000.00"),
        monthly_fixed_expenses=Decimal("1500.00"),
        monthly_variable_expenses=Decimal("800.00"),
        debts=(Debt(Decimal("1200.00"), Decimal("500.00"), Decimal("0.05"), "Car"),),
        horizon_months=3,
    )
    return ProjectionEngine().build_run(
        settings,
        start_month=date(2024, 11, 1),
        timestamp=datetime(2024, 12, 18, 14, 30, 0)
    )


class TestAuditLoggerUnit:
    """Unit tests for AuditLogger edge cases."""

    def setup_method(self) -> None:
        """Initialise AuditLogger for each test."""
        self.logger = AuditLogger(version="0.1.0")

    def test_decimal_encoder_preserves_precision(self) -> None:
        """Verify DecimalEncoder converts Decimal to string."""
        encoded = json.dumps({"amount": Decimal("12345.67")}, cls=DecimalEncoder)

        assert '"12345.67"' in encoded

    def test_decimal_encoder_handles_dates(self) -> None:
        """Verify DecimalEncoder handles datetime and date."""
        encoded = json.dumps(
            {"timestamp": datetime(2024, 12, 18, 14, 30, 0), "start": date(2024, 11, 1)},
            cls=DecimalEncoder
        )

        assert "2024-12-18T14:30:00" in encoded
        assert "2024-11-01" in encoded

    def test_decimal_encoder_handles_scenario(self) -> None:
        """Verify DecimalEncoder handles Scenario enum."""
        encoded = json.dumps({"scenario": Scenario.WORST}, cls=DecimalEncoder)

        assert '"worst"' in encoded

    def test_decimal_encoder_rejects_unknown(self) -> None:
        """Verify unsupported objects still raise TypeError."""
        with pytest.raises(TypeError):
            json.dumps({"value": object()}, cls=DecimalEncoder)

    def test_serialise_run_structure(self) -> None:
        """Verify basic run serialisation."""
        data = json.loads(self.logger.serialise_run(sample_run()))

        assert set(data) == {"metadata", "settings", "projections"}
        assert data["metadata"]["version"] == "0.1.0"
        assert data["metadata"]["generated_by"] == "FlowCast 0.1.0"
        assert data["metadata"]["start_month"] == "2024-11-01"
        assert list(data["projections"]) == ["base", "best", "worst"]

        first = data["projections"]["base"][0]
        assert first["month"] == "2024-11"
        assert first["debt_payment"] == "500.00"
        assert first["debt_balances"] == ["705.00"]
        assert data["settings"]["debts"][0]["name"] == "Car"

    def test_deserialise_restores_decimal_types(self) -> None:
        """Verify deserialisation restores Decimal types."""
        restored = self.logger.deserialise_run(self.logger.serialise_run(sample_run()))

        month = restored.projections[Scenario.BASE][0]
        assert isinstance(month.income, Decimal)
        assert isinstance(month.cumulative_cash, Decimal)
        assert isinstance(month.debt_balances[0], Decimal)
        assert isinstance(restored.settings.monthly_income, Decimal)

    def test_round_trip_preserves_run(self) -> None:
        """Verify round-trip reproduces the run exactly."""
        run = sample_run()

        restored = self.logger.deserialise_run(self.logger.serialise_run(run))

        assert restored == run

    def test_settings_dict_accepted_by_validator(self) -> None:
        """Verify the stored settings format is valid validator input."""
        run = sample_run()

        result = SettingsValidator().validate_mapping(
            self.logger.settings_to_dict(run.settings)
        )

        assert result.is_valid
        assert result.settings == run.settings

    def test_serialise_settings_is_json(self) -> None:
        """Verify settings serialise to a JSON object with string amounts."""
        data = json.loads(self.logger.serialise_settings(sample_run().settings))

        assert data["monthly_income"] == "3000.00"
        assert data["horizon_months"] == 3
        assert data["scenario_adjustments"]["worst"]["expense_factor"] == "1.10"

    def test_settings_dict_uses_fixed_point(self) -> None:
        """Verify exponent-form Decimals are written in plain notation."""
        settings = ProjectionSettings(
            current_balance=Decimal("1.0E+4"),
            monthly_income=Decimal("3E+3"),
            monthly_fixed_expenses=Decimal("0"),
            monthly_variable_expenses=Decimal("0"),
            income_growth_annual=Decimal("2E-5"),
        )

        data = self.logger.settings_to_dict(settings)

        assert data["current_balance"] == "10000"
        assert data["monthly_income"] == "3000"
        assert data["income_growth_annual"] == "0.00002"
        assert SettingsValidator().validate_mapping(data).settings == settings

    def test_save_and_load_file(self) -> None:
        """Verify file save and load operations."""
        run = sample_run()

        with tempfile.TemporaryDirectory() as tmpdir:
            file_path = Path(tmpdir) / "nested" / "audit.json"

            self.logger.save_to_file(run, file_path)
            assert file_path.exists()

            loaded = self.logger.load_from_file(file_path)

        assert loaded.projections == run.projections

    def test_load_nonexistent_file_raises(self) -> None:
        """Verify FileNotFoundError for missing file."""
        with pytest.raises(FileNotFoundError, match="Audit file not found"):
            self.logger.load_from_file("nonexistent.json")

    def test_load_month_without_debt_balances(self) -> None:
        """Verify month records without per-debt balances still load."""
        month = self.logger._dict_to_month({
            "month": "2025-01",
            "income": "100.00",
            "expenses": "50.00",
            "debt_payment": "0.00",
            "net_cash_flow": "50.00",
            "debt_balance": "0.00",
            "investment_value": "0.00",
            "cumulative_cash": "150.00",
        })

        assert month.debt_balances == ()

    def test_generate_filename(self) -> None:
        """Verify filename generation format."""
        filename = self.logger.generate_filename("cashflow_audit")

        assert filename.startswith("cashflow_audit_")
        assert filename.endswith(".json")
        assert len(filename) > 20  # Has timestamp


class TestAuditLoggerPropertyRoundTrip:
    """
    Property-based tests for serialisation round-trip.

    **Feature: flowcast, Property 8: Serialisation Round-Trip**
    """

    def setup_method(self) -> None:
        """Initialise AuditLogger for each test."""
        self.logger = AuditLogger()

    @given(valid_runs())
    @settings(max_examples=50, deadline=None)
    def test_round_trip_preserves_projections(self, run: ProjectionRun) -> None:
        """
        Property: Round-trip preserves every projected month exactly.
        """
        restored = self.logger.deserialise_run(self.logger.serialise_run(run))

        assert restored.projections == run.projections

    @given(valid_runs())
    @settings(max_examples=50, deadline=None)
    def test_round_trip_preserves_metadata(self, run: ProjectionRun) -> None:
        """
        Property: Round-trip preserves timestamp, version and start month.
        """
        restored = self.logger.deserialise_run(self.logger.serialise_run(run))

        assert restored.timestamp == run.timestamp
        assert restored.version == run.version
        assert restored.start_month == run.start_month
        assert restored.scenarios == run.scenarios

    @given(valid_settings())
    @settings(max_examples=100)
    def test_settings_round_trip(self, settings_: ProjectionSettings) -> None:
        """
        Property: settings survive both the direct and validated reload.
        """
        data = json.loads(self.logger.serialise_settings(settings_))

        assert self.logger.dict_to_settings(data) == settings_

        result = SettingsValidator().validate_mapping(data)
        assert result.is_valid, [str(e) for e in result.errors]
        assert result.settings == settings_
