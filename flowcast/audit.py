"""
FlowCast - Audit and Serialisation Module.

This module provides JSON serialisation for settings and projection runs.
All Decimal values are converted to string representation to preserve
precision during serialisation and deserialisation.

Audit Context:
    - Every run includes timestamp and version
    - The settings a run was generated from are stored with it
    - JSON format doubles as the settings store format

Classes:
    DecimalEncoder: JSON encoder for Decimal, dates and scenarios.
    AuditLogger: Manages JSON serialisation for audit and persistence.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Union

from flowcast import __version__
from flowcast.schema import (
    Debt,
    ProjectionMonth,
    ProjectionRun,
    ProjectionSettings,
    Scenario,
    ScenarioAdjustments,
    ScenarioFactors,
)


class DecimalEncoder(json.JSONEncoder):
    """
    Custom JSON encoder that converts Decimal to string.

    Preserves full precision of Decimal values by encoding them
    as strings rather than floats.
    """

    def default(self, obj: Any) -> Any:
        """
        Encode Decimal, date/datetime and Scenario objects.

        Args:
            obj: Object to encode.

        Returns:
            JSON-serialisable representation.
        """
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Scenario):
            return obj.value
        return super().default(obj)


def _fixed(value: Decimal) -> str:
    """Formats a Decimal in plain fixed-point notation, never '1.0E+4'."""
    return format(value, "f")


class AuditLogger:
    """
    Manages JSON serialisation for audit and persistence.

    Converts Decimal values to string representation so that a
    serialised run reloads to an identical ProjectionRun.

    Example:
        >>> logger = AuditLogger()
        >>> json_str = logger.serialise_run(run)
        >>> restored = logger.deserialise_run(json_str)
        >>> assert run.projections == restored.projections
    """

    def __init__(self, version: str = None):
        """
        Initialises the AuditLogger.

        Args:
            version: Version identifier written to metadata.
                     Defaults to package version.
        """
        self._version = version or __version__

    def serialise_run(self, run: ProjectionRun) -> str:
        """
        Serialises a ProjectionRun to JSON string.

        Args:
            run: Projection run to serialise.

        Returns:
            JSON string representation.
        """
        data = self._run_to_dict(run)
        return json.dumps(data, cls=DecimalEncoder, indent=2)

    def deserialise_run(self, json_str: str) -> ProjectionRun:
        """
        Deserialises a JSON string to ProjectionRun.

        Args:
            json_str: JSON string to deserialise.

        Returns:
            Reconstructed ProjectionRun.

        Raises:
            json.JSONDecodeError: If JSON is malformed.
            KeyError: If required fields are missing.
            ValueError: If data types are invalid.
        """
        data = json.loads(json_str)
        return self._dict_to_run(data)

    def serialise_settings(self, settings: ProjectionSettings) -> str:
        """Serialises settings to the JSON settings-store format."""
        return json.dumps(self.settings_to_dict(settings), cls=DecimalEncoder, indent=2)

    def save_to_file(
        self,
        run: ProjectionRun,
        file_path: Union[str, Path]
    ) -> None:
        """
        Saves a ProjectionRun to a JSON file.

        Args:
            run: Projection run to save.
            file_path: Output file path.

        Raises:
            PermissionError: If file cannot be written.
        """
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        json_str = self.serialise_run(run)
        file_path.write_text(json_str, encoding="utf-8")

    def load_from_file(self, file_path: Union[str, Path]) -> ProjectionRun:
        """
        Loads a ProjectionRun from a JSON file.

        Raises:
            FileNotFoundError: If file does not exist.
            json.JSONDecodeError: If JSON is malformed.
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Audit file not found: {file_path}")

        json_str = file_path.read_text(encoding="utf-8")
        return self.deserialise_run(json_str)

    def settings_to_dict(self, settings: ProjectionSettings) -> Dict[str, Any]:
        """
        Converts ProjectionSettings to a dictionary.

        The result is also accepted by SettingsValidator.validate_mapping.
        """
        adjustments = settings.scenario_adjustments
        return {
            "current_balance": _fixed(settings.current_balance),
            "monthly_income": _fixed(settings.monthly_income),
            "monthly_fixed_expenses": _fixed(settings.monthly_fixed_expenses),
            "monthly_variable_expenses": _fixed(settings.monthly_variable_expenses),
            "debts": [
                {
                    "name": debt.name,
                    "balance": _fixed(debt.balance),
                    "monthly_payment": _fixed(debt.monthly_payment),
                    "interest_rate_annual": _fixed(debt.interest_rate_annual),
                }
                for debt in settings.debts
            ],
            "investment_contribution_monthly": _fixed(settings.investment_contribution_monthly),
            "investment_return_annual": _fixed(settings.investment_return_annual),
            "starting_investment_value": _fixed(settings.starting_investment_value),
            "income_growth_annual": _fixed(settings.income_growth_annual),
            "horizon_months": settings.horizon_months,
            "scenario_adjustments": {
                "best": self._factors_to_dict(adjustments.best),
                "worst": self._factors_to_dict(adjustments.worst),
            },
        }

    def dict_to_settings(self, data: Dict[str, Any]) -> ProjectionSettings:
        """
        Converts a dictionary written by settings_to_dict back to settings.

        No validation is applied; use SettingsValidator for untrusted data.
        """
        adjustments = data["scenario_adjustments"]
        return ProjectionSettings(
            current_balance=Decimal(data["current_balance"]),
            monthly_income=Decimal(data["monthly_income"]),
            monthly_fixed_expenses=Decimal(data["monthly_fixed_expenses"]),
            monthly_variable_expenses=Decimal(data["monthly_variable_expenses"]),
            debts=tuple(
                Debt(
                    balance=Decimal(d["balance"]),
                    monthly_payment=Decimal(d["monthly_payment"]),
                    interest_rate_annual=Decimal(d["interest_rate_annual"]),
                    name=d.get("name", ""),
                )
                for d in data["debts"]
            ),
            investment_contribution_monthly=Decimal(data["investment_contribution_monthly"]),
            investment_return_annual=Decimal(data["investment_return_annual"]),
            starting_investment_value=Decimal(data["starting_investment_value"]),
            income_growth_annual=Decimal(data["income_growth_annual"]),
            horizon_months=int(data["horizon_months"]),
            scenario_adjustments=ScenarioAdjustments(
                best=self._dict_to_factors(adjustments["best"]),
                worst=self._dict_to_factors(adjustments["worst"]),
            ),
        )

    def _factors_to_dict(self, factors: ScenarioFactors) -> Dict[str, str]:
        return {
            "income_factor": _fixed(factors.income_factor),
            "expense_factor": _fixed(factors.expense_factor),
        }

    def _dict_to_factors(self, data: Dict[str, str]) -> ScenarioFactors:
        return ScenarioFactors(
            income_factor=Decimal(data["income_factor"]),
            expense_factor=Decimal(data["expense_factor"]),
        )

    def _run_to_dict(self, run: ProjectionRun) -> Dict[str, Any]:
        """
        Converts ProjectionRun to dictionary for JSON serialisation.

        Args:
            run: Run to convert.

        Returns:
            Dictionary representation.
        """
        return {
            "metadata": {
                "timestamp": run.timestamp.isoformat(),
                "version": run.version,
                "generated_by": f"FlowCast {self._version}",
                "start_month": run.start_month.isoformat(),
            },
            "settings": self.settings_to_dict(run.settings),
            "projections": {
                scenario.value: [
                    self._month_to_dict(month) for month in run.projections[scenario]
                ]
                for scenario in run.scenarios
            },
        }

    def _month_to_dict(self, month: ProjectionMonth) -> Dict[str, Any]:
        """
        Converts ProjectionMonth to dictionary.

        Args:
            month: Projection month to convert.

        Returns:
            Dictionary representation.
        """
        return {
            "month": month.month,
            "income": str(month.income),
            "expenses": str(month.expenses),
            "debt_payment": str(month.debt_payment),
            "net_cash_flow": str(month.net_cash_flow),
            "debt_balance": str(month.debt_balance),
            "debt_balances": [str(b) for b in month.debt_balances],
            "investment_value": str(month.investment_value),
            "cumulative_cash": str(month.cumulative_cash),
        }

    def _dict_to_run(self, data: Dict[str, Any]) -> ProjectionRun:
        """
        Converts dictionary to ProjectionRun.

        Args:
            data: Dictionary from JSON.

        Returns:
            Reconstructed ProjectionRun.
        """
        metadata = data["metadata"]

        projections: Dict[Scenario, List[ProjectionMonth]] = {
            Scenario(key): [self._dict_to_month(m) for m in months]
            for key, months in data["projections"].items()
        }

        return ProjectionRun(
            timestamp=datetime.fromisoformat(metadata["timestamp"]),
            version=metadata["version"],
            settings=self.dict_to_settings(data["settings"]),
            start_month=date.fromisoformat(metadata["start_month"]),
            projections=projections,
        )

    def _dict_to_month(self, data: Dict[str, Any]) -> ProjectionMonth:
        """
        Converts dictionary to ProjectionMonth.

        Args:
            data: Dictionary from JSON.

        Returns:
            Reconstructed ProjectionMonth.
        """
        return ProjectionMonth(
            month=data["month"],
            income=Decimal(data["income"]),
            expenses=Decimal(data["expenses"]),
            debt_payment=Decimal(data["debt_payment"]),
            net_cash_flow=Decimal(data["net_cash_flow"]),
            debt_balance=Decimal(data["debt_balance"]),
            investment_value=Decimal(data["investment_value"]),
            cumulative_cash=Decimal(data["cumulative_cash"]),
            debt_balances=tuple(Decimal(b) for b in data.get("debt_balances", [])),
        )

    def generate_filename(self, prefix: str = "projection_audit") -> str:
        """
        Generates a timestamped filename for audit files.

        Args:
            prefix: Filename prefix. Defaults to "projection_audit".

        Returns:
            Filename like "projection_audit_2024-12-18_143052.json".
        """
        timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
        return f"{prefix}_{timestamp}.json"
