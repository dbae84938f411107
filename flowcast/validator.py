"""
FlowCast - Settings Validation Module.

This module provides validation and parsing for projection settings.
Raw records (JSON files, form payloads) are converted to typed
ProjectionSettings with every problem reported against its field path.

Input Conventions:
    - Keys may be snake_case or camelCase ("monthly_income" or "monthlyIncome")
    - Money may carry a currency symbol and thousands separators ("€ 1,500.00")
    - Rates are fractions ("0.05") or percentages ("5%")

Classes:
    ValidationError: A single validation failure with context.
    SettingsValidationError: Exception raised for invalid typed settings.
    ValidationResult: Container for validation outcomes.
    SettingsValidator: Main validation class for settings records.
"""

import json
import re
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from flowcast.schema import (
    Debt,
    ProjectionSettings,
    ScenarioAdjustments,
    ScenarioFactors,
)


@dataclass
class ValidationError:
    """
    Represents a single validation error with context.

    Attributes:
        field_name: Path of the field that failed, e.g. "debts[0].balance".
        value: The invalid value as provided.
        message: A user-facing error message.
    """

    field_name: str
    value: str
    message: str

    def __str__(self) -> str:
        """Returns a formatted error message for display."""
        return f"Error: '{self.field_name}' - {self.message}"


class SettingsValidationError(ValueError):
    """Raised when settings fail validation before a projection starts."""

    def __init__(self, errors: List[ValidationError]):
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"Invalid projection settings: {details}")


@dataclass
class ValidationResult:
    """
    Container for settings validation results.

    Attributes:
        settings: Parsed settings, or None if any error occurred.
        errors: List of ValidationError objects.
    """

    settings: Optional[ProjectionSettings] = None
    errors: List[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Returns True if validation produced no errors."""
        return len(self.errors) == 0

    @property
    def error_count(self) -> int:
        """Returns the number of validation errors."""
        return len(self.errors)


class SettingsValidator:
    """
    Validates settings records and converts them to ProjectionSettings.

    Ensures all monetary values are converted to Decimal and quantised
    to cents. Rates keep their full precision.

    Attributes:
        REQUIRED_FIELDS: Fields that must be present in a raw record.
        FIELD_ALIASES: Accepted alternative spellings per field.

    Example:
        >>> validator = SettingsValidator()
        >>> result = validator.validate_file("settings.json")
        >>> if result.is_valid:
        ...     print(result.settings.horizon_months)
    """

    REQUIRED_FIELDS = [
        "current_balance",
        "monthly_income",
        "monthly_fixed_expenses",
        "monthly_variable_expenses",
    ]

    FIELD_ALIASES = {
        "current_balance": ["currentBalance", "starting_cash", "startingCash"],
        "monthly_income": ["monthlyIncome", "expected_income", "expectedIncome"],
        "monthly_fixed_expenses": ["monthlyFixedExpenses", "fixed_costs", "fixedCosts"],
        "monthly_variable_expenses": [
            "monthlyVariableExpenses", "variable_costs", "variableCosts"
        ],
        "debts": [],
        "investment_contribution_monthly": ["investmentContributionMonthly"],
        "investment_return_annual": ["investmentReturnAnnual"],
        "horizon_months": ["horizonMonths"],
        "scenario_adjustments": ["scenarioAdjustments"],
        "starting_investment_value": ["startingInvestmentValue"],
        "income_growth_annual": ["incomeGrowthAnnual", "growth_rate", "growthRate"],
        "balance": [],
        "monthly_payment": ["monthlyPayment"],
        "interest_rate_annual": ["interestRateAnnual", "interest_rate", "interestRate"],
        "name": [],
        "income_factor": ["incomeFactor"],
        "expense_factor": ["expenseFactor"],
    }

    # Currency symbols, spaces and thousands separators
    CURRENCY_CLEAN_PATTERN = re.compile(r"[€$£\s,]")
    EUROPEAN_FORMAT_PATTERN = re.compile(r"^[€$£]?\s*-?\d+,\d{2}$")
    NUMBER_PATTERN = re.compile(r"^-?\d+\.?\d*(?:[eE][-+]?\d+)?$")

    CENT = Decimal("0.01")

    def validate_file(self, file_path: Union[str, Path]) -> ValidationResult:
        """
        Validates a JSON settings file.

        Args:
            file_path: Path to the JSON file.

        Returns:
            ValidationResult with settings and any errors.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is not a JSON object.
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Settings file not found: {file_path}")

        try:
            data = json.loads(file_path.read_text(encoding="utf-8-sig"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Settings file is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ValueError("Settings file must contain a JSON object")

        return self.validate_mapping(data)

    def validate_mapping(self, data: Mapping[str, Any]) -> ValidationResult:
        """
        Validates a raw settings record.

        Every field is checked so that all problems are reported at once.

        Args:
            data: Mapping with settings data.

        Returns:
            ValidationResult with settings (if valid) and any errors.
        """
        errors: List[ValidationError] = []

        for required in self.REQUIRED_FIELDS:
            if self._lookup(data, required) is None:
                errors.append(ValidationError(
                    field_name=required,
                    value="",
                    message=f"{required} is required"
                ))
        if errors:
            return ValidationResult(errors=errors)

        values: Dict[str, Any] = {}

        money_fields = [
            ("current_balance", True),
            ("monthly_income", False),
            ("monthly_fixed_expenses", False),
            ("monthly_variable_expenses", False),
            ("investment_contribution_monthly", False),
            ("starting_investment_value", False),
        ]
        for name, allow_negative in money_fields:
            raw = self._lookup(data, name)
            if raw is None:
                continue
            parsed, error = self._parse_decimal(
                raw, name, allow_negative=allow_negative, quantum=self.CENT
            )
            if error:
                errors.append(error)
            else:
                values[name] = parsed

        for name in ("investment_return_annual", "income_growth_annual"):
            raw = self._lookup(data, name)
            if raw is None:
                continue
            parsed, error = self._parse_rate(raw, name, allow_negative=True)
            if error:
                errors.append(error)
            else:
                values[name] = parsed

        raw_horizon = self._lookup(data, "horizon_months")
        if raw_horizon is not None:
            horizon, error = self._parse_horizon(raw_horizon)
            if error:
                errors.append(error)
            else:
                values["horizon_months"] = horizon

        raw_debts = self._lookup(data, "debts")
        if raw_debts is not None:
            debts, debt_errors = self._parse_debts(raw_debts)
            errors.extend(debt_errors)
            values["debts"] = debts

        raw_adjustments = self._lookup(data, "scenario_adjustments")
        if raw_adjustments is not None:
            adjustments, adjustment_errors = self._parse_adjustments(raw_adjustments)
            errors.extend(adjustment_errors)
            if adjustments is not None:
                values["scenario_adjustments"] = adjustments

        if errors:
            return ValidationResult(errors=errors)

        settings = ProjectionSettings(**values)
        try:
            self.check(settings)
        except SettingsValidationError as e:
            return ValidationResult(errors=e.errors)

        return ValidationResult(settings=settings)

    def check(self, settings: ProjectionSettings) -> None:
        """
        Validates an already-typed settings record.

        Args:
            settings: Settings to check.

        Raises:
            SettingsValidationError: If any constraint is violated.
        """
        errors: List[ValidationError] = []
        zero = Decimal("0")

        non_negative = [
            "monthly_income",
            "monthly_fixed_expenses",
            "monthly_variable_expenses",
            "investment_contribution_monthly",
            "starting_investment_value",
        ]
        for name in non_negative:
            value = getattr(settings, name)
            if value < zero:
                errors.append(ValidationError(
                    field_name=name,
                    value=str(value),
                    message=f"{name} must be a non-negative number"
                ))

        if isinstance(settings.horizon_months, bool) or \
                not isinstance(settings.horizon_months, int) or \
                settings.horizon_months < 1:
            errors.append(ValidationError(
                field_name="horizon_months",
                value=str(settings.horizon_months),
                message="horizon_months must be a whole number of at least 1"
            ))

        # Rates at or below -100% would make the monthly multiplier non-positive
        for name in ("investment_return_annual", "income_growth_annual"):
            value = getattr(settings, name)
            if value <= Decimal("-1"):
                errors.append(ValidationError(
                    field_name=name,
                    value=str(value),
                    message=f"{name} must be greater than -1 (-100%)"
                ))

        for idx, debt in enumerate(settings.debts):
            for name in ("balance", "monthly_payment", "interest_rate_annual"):
                value = getattr(debt, name)
                if value < zero:
                    errors.append(ValidationError(
                        field_name=f"debts[{idx}].{name}",
                        value=str(value),
                        message=f"{name} must be a non-negative number"
                    ))

        adjustments = settings.scenario_adjustments
        for label, factors in (("best", adjustments.best), ("worst", adjustments.worst)):
            for name in ("income_factor", "expense_factor"):
                value = getattr(factors, name)
                if value < zero:
                    errors.append(ValidationError(
                        field_name=f"scenario_adjustments.{label}.{name}",
                        value=str(value),
                        message=f"{name} must be a non-negative number"
                    ))

        if errors:
            raise SettingsValidationError(errors)

    def _lookup(self, data: Mapping[str, Any], name: str) -> Any:
        """Returns the value stored under name or any of its aliases."""
        for key in [name] + self.FIELD_ALIASES.get(name, []):
            if key in data and data[key] is not None:
                return data[key]
        return None

    def _parse_debts(
        self,
        raw: Any
    ) -> Tuple[Tuple[Debt, ...], List[ValidationError]]:
        """
        Parses the debts list.

        Args:
            raw: List of debt mappings.

        Returns:
            Tuple of (parsed debts, list of errors).
        """
        if not isinstance(raw, list):
            return (), [ValidationError(
                field_name="debts",
                value=str(raw),
                message="debts must be a list"
            )]

        debts: List[Debt] = []
        errors: List[ValidationError] = []

        for idx, item in enumerate(raw):
            prefix = f"debts[{idx}]"
            if not isinstance(item, dict):
                errors.append(ValidationError(
                    field_name=prefix,
                    value=str(item),
                    message="Each debt must be an object"
                ))
                continue

            item_errors: List[ValidationError] = []
            parsed: Dict[str, Any] = {}

            for name in ("balance", "monthly_payment"):
                value = self._lookup(item, name)
                if value is None:
                    item_errors.append(ValidationError(
                        field_name=f"{prefix}.{name}",
                        value="",
                        message=f"{name} is required"
                    ))
                    continue
                amount, error = self._parse_decimal(
                    value, f"{prefix}.{name}", quantum=self.CENT
                )
                if error:
                    item_errors.append(error)
                else:
                    parsed[name] = amount

            rate_raw = self._lookup(item, "interest_rate_annual")
            if rate_raw is not None:
                rate, error = self._parse_rate(
                    rate_raw, f"{prefix}.interest_rate_annual"
                )
                if error:
                    item_errors.append(error)
                else:
                    parsed["interest_rate_annual"] = rate

            name_raw = self._lookup(item, "name")
            if name_raw is not None:
                parsed["name"] = str(name_raw).strip()

            errors.extend(item_errors)
            if not item_errors:
                debts.append(Debt(**parsed))

        return tuple(debts), errors

    def _parse_adjustments(
        self,
        raw: Any
    ) -> Tuple[Optional[ScenarioAdjustments], List[ValidationError]]:
        """
        Parses best/worst scenario factors.

        Missing scenarios or factors fall back to the defaults.
        """
        if not isinstance(raw, dict):
            return None, [ValidationError(
                field_name="scenario_adjustments",
                value=str(raw),
                message="scenario_adjustments must be an object"
            )]

        defaults = ScenarioAdjustments()
        errors: List[ValidationError] = []
        resolved: Dict[str, ScenarioFactors] = {}

        for label in ("best", "worst"):
            default_factors: ScenarioFactors = getattr(defaults, label)
            entry = raw.get(label)
            if entry is None:
                resolved[label] = default_factors
                continue
            if not isinstance(entry, dict):
                errors.append(ValidationError(
                    field_name=f"scenario_adjustments.{label}",
                    value=str(entry),
                    message=f"{label} must be an object"
                ))
                continue

            factors: Dict[str, Decimal] = {}
            for name in ("income_factor", "expense_factor"):
                value = self._lookup(entry, name)
                if value is None:
                    factors[name] = getattr(default_factors, name)
                    continue
                parsed, error = self._parse_decimal(
                    value, f"scenario_adjustments.{label}.{name}"
                )
                if error:
                    errors.append(error)
                else:
                    factors[name] = parsed

            if len(factors) == 2:
                resolved[label] = ScenarioFactors(**factors)

        if errors:
            return None, errors

        return ScenarioAdjustments(**resolved), errors

    def _parse_horizon(self, value: Any) -> Tuple[Optional[int], Optional[ValidationError]]:
        """Parses horizon_months as a whole number of at least 1."""
        text = str(value).strip()
        if isinstance(value, bool) or not re.match(r"^-?\d+$", text):
            return None, ValidationError(
                field_name="horizon_months",
                value=text,
                message="horizon_months must be a whole number "
                        f"(received: '{text}')"
            )

        horizon = int(text)
        if horizon < 1:
            return None, ValidationError(
                field_name="horizon_months",
                value=text,
                message="horizon_months must be at least 1 "
                        f"(received: '{text}')"
            )
        return horizon, None

    def _parse_rate(
        self,
        value: Any,
        field_name: str,
        allow_negative: bool = False
    ) -> Tuple[Optional[Decimal], Optional[ValidationError]]:
        """
        Parses an annual rate.

        A trailing '%' marks a percentage, so "5%" and "0.05" are equal.
        """
        text = str(value).strip()
        if text.endswith("%"):
            rate, error = self._parse_decimal(
                text[:-1], field_name, allow_negative=allow_negative
            )
            if error:
                error.value = text
                return None, error
            return rate / Decimal("100"), None
        return self._parse_decimal(value, field_name, allow_negative=allow_negative)

    def _parse_decimal(
        self,
        value: Any,
        field_name: str,
        allow_negative: bool = False,
        quantum: Optional[Decimal] = None
    ) -> Tuple[Optional[Decimal], Optional[ValidationError]]:
        """
        Parses a raw value to Decimal with validation.

        Handles common money formats:
        - 1500 or 1500.5 (JSON numbers)
        - "1500" (plain number)
        - "1,500.00" (with thousands separator)
        - "€ 1,500.00" (with currency symbol)

        Args:
            value: Raw value to parse.
            field_name: Name of the field for error messages.
            allow_negative: If True, negative values are accepted.
            quantum: If given, the result is rounded to this precision.

        Returns:
            Tuple of (Decimal value or None, ValidationError or None).
        """
        if isinstance(value, bool):
            return None, ValidationError(
                field_name=field_name,
                value=str(value),
                message=f"{field_name} must be a valid number "
                        f"(received: '{value}')"
            )

        original_value = "" if value is None else str(value)
        text = original_value.strip()

        if not text:
            return None, ValidationError(
                field_name=field_name,
                value=original_value,
                message=f"{field_name} cannot be empty"
            )

        # Reject decimal-comma amounts such as "100,00"
        if self.EUROPEAN_FORMAT_PATTERN.match(text):
            return None, ValidationError(
                field_name=field_name,
                value=original_value,
                message=f"{field_name} appears to use a comma as decimal separator. "
                        f"Please use a period instead (e.g., '100.00' not '100,00')"
            )

        cleaned = self.CURRENCY_CLEAN_PATTERN.sub("", text)

        if not self.NUMBER_PATTERN.match(cleaned):
            return None, ValidationError(
                field_name=field_name,
                value=original_value,
                message=f"{field_name} must be a valid number "
                        f"(received: '{original_value}')"
            )

        try:
            decimal_value = Decimal(cleaned)
            if quantum is not None:
                decimal_value = decimal_value.quantize(quantum, rounding=ROUND_HALF_EVEN)
        except InvalidOperation:
            return None, ValidationError(
                field_name=field_name,
                value=original_value,
                message=f"{field_name} must be a valid number "
                        f"(received: '{original_value}')"
            )

        if not allow_negative and decimal_value < Decimal("0"):
            return None, ValidationError(
                field_name=field_name,
                value=original_value,
                message=f"{field_name} must be a non-negative number "
                        f"(received: '{original_value}')"
            )

        return decimal_value, None

    def quantise_money(self, settings: ProjectionSettings) -> ProjectionSettings:
        """
        Returns settings with every money field rounded to cents.

        Rates and scenario factors keep their full precision. The result
        equals what validate_mapping produces for the serialised record.
        """
        debts = tuple(
            replace(
                debt,
                balance=self._to_cents(debt.balance),
                monthly_payment=self._to_cents(debt.monthly_payment),
            )
            for debt in settings.debts
        )
        return replace(
            settings,
            current_balance=self._to_cents(settings.current_balance),
            monthly_income=self._to_cents(settings.monthly_income),
            monthly_fixed_expenses=self._to_cents(settings.monthly_fixed_expenses),
            monthly_variable_expenses=self._to_cents(settings.monthly_variable_expenses),
            investment_contribution_monthly=self._to_cents(
                settings.investment_contribution_monthly
            ),
            starting_investment_value=self._to_cents(settings.starting_investment_value),
            debts=debts,
        )

    def _to_cents(self, amount: Decimal) -> Decimal:
        """Rounds an amount to cents using Banker's Rounding."""
        return amount.quantize(self.CENT, rounding=ROUND_HALF_EVEN)
