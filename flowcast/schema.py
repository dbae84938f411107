"""
FlowCast - Data Schema Module.

This module defines the core data models for the projection engine.
All monetary fields use Decimal type to ensure financial precision.

Household Context:
    - Single household, single currency
    - Monthly amounts are recurring baselines, not transactions
    - Rates are annual fractions (0.05 means 5% per year)

Classes:
    Scenario: Closed enumeration of projection variants.
    ScenarioFactors: Income and expense multipliers for one scenario.
    ScenarioAdjustments: Factors for the best and worst scenarios.
    Debt: A single amortising debt.
    ProjectionSettings: The household's financial snapshot.
    ProjectionMonth: One simulated month.
    ScenarioSummary: Decision-support figures for one scenario.
    ProjectionRun: Complete projection run with metadata for audit purposes.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Scenario(Enum):
    """
    Projection variant.

    Attributes:
        BASE: Settings taken at face value.
        BEST: Optimistic income and expense factors applied.
        WORST: Pessimistic income and expense factors applied.
    """

    BASE = "base"
    BEST = "best"
    WORST = "worst"


@dataclass(frozen=True)
class ScenarioFactors:
    """
    Multiplicative adjustments relative to the base scenario.

    Attributes:
        income_factor: Multiplier applied to monthly income.
        expense_factor: Multiplier applied to fixed plus variable expenses.
    """

    income_factor: Decimal = Decimal("1")
    expense_factor: Decimal = Decimal("1")


BASE_FACTORS = ScenarioFactors()


@dataclass(frozen=True)
class ScenarioAdjustments:
    """
    Factors for the non-base scenarios.

    The base scenario is implicitly (1, 1) and is not stored.
    """

    best: ScenarioFactors = ScenarioFactors(Decimal("1.10"), Decimal("0.95"))
    worst: ScenarioFactors = ScenarioFactors(Decimal("0.90"), Decimal("1.10"))


@dataclass(frozen=True)
class Debt:
    """
    A single amortising debt.

    Interest accrues monthly at interest_rate_annual / 12 before the
    payment is taken.

    Attributes:
        balance: Outstanding principal.
        monthly_payment: Scheduled payment per month.
        interest_rate_annual: Annual interest rate as a fraction.
        name: Optional label used in reports.
    """

    balance: Decimal
    monthly_payment: Decimal
    interest_rate_annual: Decimal = Decimal("0")
    name: str = ""


@dataclass(frozen=True)
class ProjectionSettings:
    """
    The household's financial snapshot that drives a projection.

    One record per household. The engine only ever reads it; edits go
    through a SettingsRepository save.

    Attributes:
        current_balance: Starting cash. May be negative.
        monthly_income: Expected net income per month.
        monthly_fixed_expenses: Rent, insurance and other fixed costs.
        monthly_variable_expenses: Discretionary spending baseline.
        debts: Debts in payment order.
        investment_contribution_monthly: Amount invested every month.
        investment_return_annual: Expected annual growth rate (may be 0 or negative).
        horizon_months: Number of months to project.
        scenario_adjustments: Best and worst scenario factors.
        starting_investment_value: Portfolio value before the first month.
        income_growth_annual: Annual income growth rate as a fraction.
    """

    current_balance: Decimal
    monthly_income: Decimal
    monthly_fixed_expenses: Decimal
    monthly_variable_expenses: Decimal
    debts: Tuple[Debt, ...] = ()
    investment_contribution_monthly: Decimal = Decimal("0")
    investment_return_annual: Decimal = Decimal("0")
    horizon_months: int = 12
    scenario_adjustments: ScenarioAdjustments = ScenarioAdjustments()
    starting_investment_value: Decimal = Decimal("0")
    income_growth_annual: Decimal = Decimal("0")

    @property
    def monthly_expenses(self) -> Decimal:
        """Returns fixed plus variable expenses."""
        return self.monthly_fixed_expenses + self.monthly_variable_expenses

    @property
    def total_debt(self) -> Decimal:
        """Returns the sum of all outstanding debt balances."""
        return sum((d.balance for d in self.debts), Decimal("0"))


def default_settings() -> ProjectionSettings:
    """Returns the settings used when a household has none stored yet."""
    return ProjectionSettings(
        current_balance=Decimal("5000.00"),
        monthly_income=Decimal("3000.00"),
        monthly_fixed_expenses=Decimal("1500.00"),
        monthly_variable_expenses=Decimal("500.00"),
        horizon_months=12,
    )


@dataclass(frozen=True)
class ProjectionMonth:
    """
    One simulated month of a projection.

    Attributes:
        month: ISO month label (YYYY-MM).
        income: Income for the month after scenario factors.
        expenses: Fixed plus variable expenses after scenario factors.
        debt_payment: Amount actually paid towards debts this month.
        net_cash_flow: income - expenses - debt_payment.
        debt_balance: Total debt outstanding after interest and payment.
        investment_value: Portfolio value after contribution and growth.
        cumulative_cash: Running cash balance.
        debt_balances: Per-debt balances, in settings order.
    """

    month: str
    income: Decimal
    expenses: Decimal
    debt_payment: Decimal
    net_cash_flow: Decimal
    debt_balance: Decimal
    investment_value: Decimal
    cumulative_cash: Decimal
    debt_balances: Tuple[Decimal, ...] = ()

    @property
    def net_worth(self) -> Decimal:
        """Cash plus investments minus debt."""
        return self.cumulative_cash + self.investment_value - self.debt_balance


@dataclass(frozen=True)
class ScenarioSummary:
    """
    Decision-support figures for a single scenario.

    Attributes:
        scenario: Scenario summarised.
        final_cash: Cumulative cash in the last month.
        final_debt_balance: Debt outstanding in the last month.
        final_investment_value: Portfolio value in the last month.
        total_net_cash_flow: Sum of all monthly net cash flows.
        lowest_cash: Lowest cumulative cash over the horizon.
        lowest_cash_month: Month label where lowest_cash occurs (first occurrence).
        first_negative_month: First month with negative cash, or None.
        debt_free_month: First month with zero debt, or None.
        net_worth: Net worth in the last month.
    """

    scenario: Scenario
    final_cash: Decimal
    final_debt_balance: Decimal
    final_investment_value: Decimal
    total_net_cash_flow: Decimal
    lowest_cash: Decimal
    lowest_cash_month: str
    first_negative_month: Optional[str]
    debt_free_month: Optional[str]
    net_worth: Decimal


@dataclass
class ProjectionRun:
    """
    Complete projection run with metadata for audit purposes.

    Attributes:
        timestamp: When the projection was generated.
        version: FlowCast version identifier.
        settings: Settings the projection was generated from.
        start_month: First projected calendar month (day is always 1).
        projections: Monthly series per scenario.
    """

    timestamp: datetime
    version: str
    settings: ProjectionSettings
    start_month: date
    projections: Dict[Scenario, List[ProjectionMonth]] = field(default_factory=dict)

    @property
    def scenarios(self) -> List[Scenario]:
        """Returns the scenarios present, in enumeration order."""
        return [s for s in Scenario if s in self.projections]
