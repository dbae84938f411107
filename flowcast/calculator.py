"""
FlowCast - Projection Engine Module.

This module provides the month-by-month cash-flow projection engine.
All calculations use Decimal arithmetic with Banker's Rounding to ensure
financial precision.

Classes:
    ProjectionEngine: Scenario-driven generator of monthly projection points.

Functions:
    generate_projection: Convenience wrapper around a default engine.
"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from flowcast import __version__
from flowcast.date_logic import MonthCalendar
from flowcast.schema import (
    BASE_FACTORS,
    Debt,
    ProjectionMonth,
    ProjectionRun,
    ProjectionSettings,
    Scenario,
    ScenarioFactors,
    ScenarioSummary,
)
from flowcast.validator import SettingsValidator


ScenarioLike = Union[Scenario, str]


class ProjectionEngine:
    """
    Deterministic month-by-month cash-flow simulator.

    Walks forward from the settings snapshot, applying income, expenses,
    debt amortisation and investment compounding for every month of the
    horizon. Each call works on its own local state, so the engine can
    be shared freely and called concurrently.

    Scenario factors scale income and expenses only. Debt interest and
    investment return are the same in every scenario.

    Attributes:
        calendar: MonthCalendar used for month labels.
        validator: SettingsValidator used to reject bad settings up front.

    Example:
        >>> engine = ProjectionEngine()
        >>> months = engine.generate_projection(settings, Scenario.BASE)
        >>> months[-1].cumulative_cash
        Decimal('3100.00')
    """

    CENT = Decimal("0.01")
    MONTHS_PER_YEAR = Decimal("12")
    ZERO = Decimal("0")

    def __init__(
        self,
        calendar: Optional[MonthCalendar] = None,
        validator: Optional[SettingsValidator] = None
    ):
        """
        Initialises the ProjectionEngine.

        Args:
            calendar: Month calendar. Defaults to a new MonthCalendar.
            validator: Settings validator. Defaults to a new SettingsValidator.
        """
        self._calendar = calendar or MonthCalendar()
        self._validator = validator or SettingsValidator()

    def resolve_factors(
        self,
        settings: ProjectionSettings,
        scenario: ScenarioLike
    ) -> ScenarioFactors:
        """
        Looks up the income and expense factors for a scenario.

        Args:
            settings: Settings holding the best/worst adjustments.
            scenario: Scenario member or its value ("base", "best", "worst").

        Returns:
            ScenarioFactors for the scenario. Base is always (1, 1).

        Raises:
            ValueError: If scenario is not a known scenario value.
        """
        scenario = Scenario(scenario)
        lookup = {
            Scenario.BASE: BASE_FACTORS,
            Scenario.BEST: settings.scenario_adjustments.best,
            Scenario.WORST: settings.scenario_adjustments.worst,
        }
        return lookup[scenario]

    def growth_factor(self, settings: ProjectionSettings, month_index: int) -> Decimal:
        """
        Returns the income growth multiplier for a month.

        Formula: (1 + income_growth_annual) ^ (month_index / 12)
        """
        growth = settings.income_growth_annual
        if growth == self.ZERO or month_index == 0:
            return Decimal("1")
        exponent = Decimal(month_index) / self.MONTHS_PER_YEAR
        return (Decimal("1") + growth) ** exponent

    def apply_debt_month(
        self,
        balances: Sequence[Decimal],
        debts: Sequence[Debt]
    ) -> Tuple[List[Decimal], Decimal]:
        """
        Applies one month of interest and payments to every debt.

        Interest is added first, then the payment is taken, capped at the
        outstanding balance. A debt paid off stays at zero and its payment
        is not carried over to other debts. A payment smaller than the
        interest lets the balance grow.

        Args:
            balances: Balances at the start of the month, one per debt.
            debts: Debt terms, in the same order.

        Returns:
            Tuple of (balances after the month, total amount actually paid).
        """
        new_balances: List[Decimal] = []
        total_paid = self.ZERO

        for balance, debt in zip(balances, debts):
            if balance <= self.ZERO:
                new_balances.append(self.ZERO)
                continue

            monthly_rate = debt.interest_rate_annual / self.MONTHS_PER_YEAR
            interest = self._to_cents(balance * monthly_rate)
            balance = balance + interest

            paid = min(debt.monthly_payment, balance)
            balance = max(balance - paid, self.ZERO)

            new_balances.append(balance)
            total_paid += paid

        return new_balances, total_paid

    def grow_investment(self, value: Decimal, settings: ProjectionSettings) -> Decimal:
        """
        Adds the monthly contribution and applies one month of return.

        Formula: (value + contribution) * (1 + investment_return_annual / 12)
        """
        monthly_return = settings.investment_return_annual / self.MONTHS_PER_YEAR
        grown = (value + settings.investment_contribution_monthly) * (
            Decimal("1") + monthly_return
        )
        return self._to_cents(grown)

    def generate_projection(
        self,
        settings: ProjectionSettings,
        scenario: ScenarioLike = Scenario.BASE,
        start_month: Optional[date] = None
    ) -> List[ProjectionMonth]:
        """
        Generates the monthly projection for one scenario.

        The result is rebuilt from scratch on every call: identical inputs
        give identical output and settings are never modified.

        Args:
            settings: Household snapshot to project from.
            scenario: Scenario to apply. Defaults to BASE.
            start_month: First projected month. Defaults to the current month.

        Returns:
            List of exactly settings.horizon_months ProjectionMonth entries.

        Raises:
            SettingsValidationError: If settings violate any constraint.
            ValueError: If scenario is not a known scenario value.
        """
        scenario = Scenario(scenario)
        self._validator.check(settings)

        factors = self.resolve_factors(settings, scenario)
        start = self._calendar.month_start(start_month)

        cumulative_cash = settings.current_balance
        balances = [self._to_cents(d.balance) for d in settings.debts]
        investment_value = self._to_cents(settings.starting_investment_value)
        base_expenses = settings.monthly_expenses
        labels = self._calendar.month_labels(start, settings.horizon_months)

        months: List[ProjectionMonth] = []
        for index, label in enumerate(labels):
            income = self._to_cents(
                settings.monthly_income
                * factors.income_factor
                * self.growth_factor(settings, index)
            )
            expenses = self._to_cents(base_expenses * factors.expense_factor)

            balances, debt_payment = self.apply_debt_month(balances, settings.debts)

            net_cash_flow = income - expenses - debt_payment
            cumulative_cash += net_cash_flow

            investment_value = self.grow_investment(investment_value, settings)

            months.append(ProjectionMonth(
                month=label,
                income=income,
                expenses=expenses,
                debt_payment=debt_payment,
                net_cash_flow=net_cash_flow,
                debt_balance=sum(balances, self.ZERO),
                investment_value=investment_value,
                cumulative_cash=cumulative_cash,
                debt_balances=tuple(balances),
            ))

        return months

    def generate_all_scenarios(
        self,
        settings: ProjectionSettings,
        start_month: Optional[date] = None,
        scenarios: Optional[Iterable[ScenarioLike]] = None
    ) -> Dict[Scenario, List[ProjectionMonth]]:
        """
        Generates projections for several scenarios from one start month.

        Args:
            settings: Household snapshot to project from.
            start_month: First projected month. Defaults to the current month.
            scenarios: Scenarios to generate. Defaults to all of them.

        Returns:
            Dictionary mapping each scenario to its monthly series.
        """
        start = self._calendar.month_start(start_month)
        selected = list(Scenario) if scenarios is None else [Scenario(s) for s in scenarios]
        return {
            scenario: self.generate_projection(settings, scenario, start)
            for scenario in selected
        }

    def summarise(
        self,
        scenario: ScenarioLike,
        months: Sequence[ProjectionMonth]
    ) -> ScenarioSummary:
        """
        Condenses a projection into decision-support figures.

        Args:
            scenario: Scenario the months belong to.
            months: Non-empty projection series.

        Returns:
            ScenarioSummary for the series.

        Raises:
            ValueError: If months is empty.
        """
        if not months:
            raise ValueError("Cannot summarise an empty projection")

        final = months[-1]
        lowest = min(months, key=lambda m: m.cumulative_cash)

        first_negative = next(
            (m.month for m in months if m.cumulative_cash < self.ZERO),
            None
        )
        debt_free = next(
            (m.month for m in months if m.debt_balances and m.debt_balance == self.ZERO),
            None
        )

        return ScenarioSummary(
            scenario=Scenario(scenario),
            final_cash=final.cumulative_cash,
            final_debt_balance=final.debt_balance,
            final_investment_value=final.investment_value,
            total_net_cash_flow=sum((m.net_cash_flow for m in months), self.ZERO),
            lowest_cash=lowest.cumulative_cash,
            lowest_cash_month=lowest.month,
            first_negative_month=first_negative,
            debt_free_month=debt_free,
            net_worth=final.net_worth,
        )

    def build_run(
        self,
        settings: ProjectionSettings,
        start_month: Optional[date] = None,
        scenarios: Optional[Iterable[ScenarioLike]] = None,
        timestamp: Optional[datetime] = None
    ) -> ProjectionRun:
        """
        Generates projections and wraps them with audit metadata.

        Args:
            settings: Household snapshot to project from.
            start_month: First projected month. Defaults to the current month.
            scenarios: Scenarios to include. Defaults to all of them.
            timestamp: Run timestamp. Defaults to now.

        Returns:
            ProjectionRun ready for reporting and audit.
        """
        start = self._calendar.month_start(start_month)
        return ProjectionRun(
            timestamp=timestamp or datetime.now(),
            version=__version__,
            settings=settings,
            start_month=start,
            projections=self.generate_all_scenarios(settings, start, scenarios),
        )

    def _to_cents(self, amount: Decimal) -> Decimal:
        """Rounds an amount to cents using Banker's Rounding."""
        return amount.quantize(self.CENT, rounding=ROUND_HALF_EVEN)


_DEFAULT_ENGINE = ProjectionEngine()


def generate_projection(
    settings: ProjectionSettings,
    scenario: ScenarioLike = Scenario.BASE,
    start_month: Optional[date] = None
) -> List[ProjectionMonth]:
    """
    Generates the monthly projection for one scenario.

    See ProjectionEngine.generate_projection.
    """
    return _DEFAULT_ENGINE.generate_projection(settings, scenario, start_month)
