"""
FlowCast - Comparison Module.

Helpers for "current vs simulated" comparisons and chart series built
from projection output. Every ratio here treats a zero denominator as
a neutral 0 instead of raising.

Classes:
    ComparisonRow: One labelled current/simulated pair.

Functions:
    percent_change: Zero-safe percentage change.
    savings_rate: Zero-safe share of income kept.
    compare_months: Field-by-field comparison of two projection months.
    compare_scenarios: Final-month comparison of each scenario against a baseline.
    month_over_month: Percentage change of cumulative cash between neighbours.
    scenario_series: Chart rows keyed by month with one column per scenario.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Dict, List, Mapping, Sequence, Union

from flowcast.schema import ProjectionMonth, Scenario


# Differences smaller than this are shown as unchanged
FLAT_THRESHOLD = Decimal("0.01")

PERCENT_QUANTUM = Decimal("0.01")


def percent_change(previous: Decimal, current: Decimal) -> Decimal:
    """
    Calculates the percentage change from previous to current.

    Args:
        previous: Reference value.
        current: New value.

    Returns:
        Change in percent, rounded to two places. Decimal('0') when
        previous is zero.

    Example:
        >>> percent_change(Decimal("200"), Decimal("250"))
        Decimal('25.00')
        >>> percent_change(Decimal("0"), Decimal("250"))
        Decimal('0')
    """
    if previous == 0:
        return Decimal("0")
    change = (current - previous) / abs(previous) * Decimal("100")
    return change.quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_EVEN)


def savings_rate(income: Decimal, net: Decimal) -> Decimal:
    """Returns net / income as a fraction, or 0 when income is zero."""
    if income == 0:
        return Decimal("0")
    return net / income


@dataclass(frozen=True)
class ComparisonRow:
    """
    One row of a current-vs-simulated comparison table.

    Attributes:
        label: Row caption.
        current: Value in the current situation.
        simulated: Value in the simulated situation.
        is_percentage: Whether the values are percentages.
        invert_colors: True where lower is better (costs, debt).
    """

    label: str
    current: Decimal
    simulated: Decimal
    is_percentage: bool = False
    invert_colors: bool = False

    @property
    def difference(self) -> Decimal:
        return self.simulated - self.current

    @property
    def percent_change(self) -> Decimal:
        return percent_change(self.current, self.simulated)

    @property
    def direction(self) -> str:
        """'up', 'down' or 'flat'."""
        if abs(self.difference) < FLAT_THRESHOLD:
            return "flat"
        return "up" if self.difference > 0 else "down"

    @property
    def is_improvement(self) -> bool:
        """True if the change is favourable, respecting invert_colors."""
        if self.direction == "flat":
            return False
        rising = self.direction == "up"
        return not rising if self.invert_colors else rising


# (label, attribute, lower is better)
MONTH_FIELDS = [
    ("Income", "income", False),
    ("Expenses", "expenses", True),
    ("Debt Payments", "debt_payment", True),
    ("Net Cash Flow", "net_cash_flow", False),
    ("Debt Balance", "debt_balance", True),
    ("Investment Value", "investment_value", False),
    ("Cumulative Cash", "cumulative_cash", False),
]


def compare_months(
    current: ProjectionMonth,
    simulated: ProjectionMonth
) -> List[ComparisonRow]:
    """
    Compares two projection months field by field.

    A savings-rate row (percentage) is appended after the money rows.
    """
    rows = [
        ComparisonRow(
            label=label,
            current=getattr(current, attr),
            simulated=getattr(simulated, attr),
            invert_colors=lower_is_better,
        )
        for label, attr, lower_is_better in MONTH_FIELDS
    ]

    rows.append(ComparisonRow(
        label="Savings Rate",
        current=savings_rate(current.income, current.net_cash_flow) * 100,
        simulated=savings_rate(simulated.income, simulated.net_cash_flow) * 100,
        is_percentage=True,
    ))
    return rows


def compare_scenarios(
    projections: Mapping[Scenario, Sequence[ProjectionMonth]],
    baseline: Scenario = Scenario.BASE
) -> Dict[Scenario, List[ComparisonRow]]:
    """
    Compares the final month of each scenario against the baseline.

    Args:
        projections: Monthly series per scenario.
        baseline: Scenario treated as "current". Defaults to BASE.

    Returns:
        Comparison rows per non-baseline scenario.

    Raises:
        KeyError: If the baseline scenario is missing.
        ValueError: If any series is empty.
    """
    if baseline not in projections:
        raise KeyError(f"Baseline scenario '{baseline.value}' not in projections")

    if any(len(months) == 0 for months in projections.values()):
        raise ValueError("Cannot compare empty projections")

    reference = projections[baseline][-1]
    return {
        scenario: compare_months(reference, months[-1])
        for scenario, months in projections.items()
        if scenario != baseline
    }


def month_over_month(months: Sequence[ProjectionMonth]) -> List[Decimal]:
    """
    Percentage change in cumulative cash between neighbouring months.

    The first month has no predecessor and reports 0.
    """
    changes: List[Decimal] = []
    for idx, month in enumerate(months):
        if idx == 0:
            changes.append(Decimal("0"))
            continue
        changes.append(percent_change(
            months[idx - 1].cumulative_cash,
            month.cumulative_cash
        ))
    return changes


def scenario_series(
    projections: Mapping[Scenario, Sequence[ProjectionMonth]],
    field_name: str = "cumulative_cash"
) -> List[Dict[str, Union[str, Decimal]]]:
    """
    Builds chart rows keyed by month label.

    Each row holds the month label and one entry per scenario value,
    e.g. {"month": "2025-01", "base": ..., "best": ..., "worst": ...}.
    All series must share the same month labels.

    Raises:
        ValueError: If the series have different month labels.
    """
    ordered = [s for s in Scenario if s in projections]
    if not ordered:
        return []

    labels = [m.month for m in projections[ordered[0]]]
    for scenario in ordered[1:]:
        if [m.month for m in projections[scenario]] != labels:
            raise ValueError("All scenarios must cover the same months")

    rows: List[Dict[str, Union[str, Decimal]]] = []
    for idx, label in enumerate(labels):
        row: Dict[str, Union[str, Decimal]] = {"month": label}
        for scenario in ordered:
            row[scenario.value] = getattr(projections[scenario][idx], field_name)
        rows.append(row)
    return rows
