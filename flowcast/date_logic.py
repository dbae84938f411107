"""
FlowCast - Date Logic Module.

This module provides calendar month arithmetic for projections,
including month offsets, ISO month labels and display labels.

Classes:
    MonthCalendar: Manages all month-related calculations for projections.
"""

import calendar
import re
from datetime import date
from typing import List, Optional


class MonthCalendar:
    """
    Manages calendar month calculations for projections.

    Projections are keyed by month, so every date is normalised to the
    first day of its month. Labels use the ISO "YYYY-MM" form, which
    sorts lexicographically in calendar order.

    Example:
        >>> mc = MonthCalendar()
        >>> mc.add_months(date(2024, 11, 15), 3)
        datetime.date(2025, 2, 1)
        >>> mc.month_labels(date(2024, 12, 1), 2)
        ['2024-12', '2025-01']
    """

    LABEL_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")

    def month_start(self, reference_date: Optional[date] = None) -> date:
        """
        Returns the first day of the month containing reference_date.

        Args:
            reference_date: Any date. Defaults to today.

        Returns:
            Date set to day 1 of the same month.
        """
        if reference_date is None:
            reference_date = date.today()
        return reference_date.replace(day=1)

    def add_months(self, reference_date: date, offset: int) -> date:
        """
        Offsets a date by a whole number of months.

        Args:
            reference_date: Starting date. Only year and month are used.
            offset: Months to add. May be negative.

        Returns:
            First day of the resulting month.
        """
        index = reference_date.year * 12 + (reference_date.month - 1) + offset
        year, month_zero = divmod(index, 12)
        return date(year, month_zero + 1, 1)

    def format_label(self, month_date: date) -> str:
        """Returns the ISO month label, e.g. '2025-01'."""
        return f"{month_date.year:04d}-{month_date.month:02d}"

    def format_display(self, month_date: date) -> str:
        """Returns a human-readable label, e.g. 'Jan 2025'."""
        return f"{calendar.month_abbr[month_date.month]} {month_date.year}"

    def parse_label(self, label: str) -> date:
        """
        Parses an ISO month label back to the first day of that month.

        Args:
            label: Label in "YYYY-MM" form.

        Returns:
            First day of the labelled month.

        Raises:
            ValueError: If the label is malformed or the month is out of range.
        """
        match = self.LABEL_PATTERN.match(label.strip())
        if not match:
            raise ValueError(f"Month label must be in YYYY-MM form, got '{label}'")
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {month}")
        return date(year, month, 1)

    def month_labels(self, start: date, count: int) -> List[str]:
        """
        Generates consecutive ISO month labels.

        Args:
            start: First month of the series.
            count: Number of labels to generate.

        Returns:
            List of count labels, strictly increasing.
        """
        return [
            self.format_label(self.add_months(start, offset))
            for offset in range(count)
        ]
