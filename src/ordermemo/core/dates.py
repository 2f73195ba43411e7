#!/usr/bin/env python3
"""
FinancialDate Primitive Type

Immutable calendar-day wrapper. Order emails carry full timestamps and YNAB
carries plain dates; matching happens on whole days only.
"""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True, order=True)
class FinancialDate:
    """Immutable financial date wrapper with consistent formatting."""

    date: date

    @classmethod
    def from_string(cls, date_str: str, format: str = "%Y-%m-%d") -> "FinancialDate":
        """
        Parse from string in specified format.

        Args:
            date_str: Date string to parse
            format: Date format (default: ISO format "%Y-%m-%d")
        """
        return cls(date=datetime.strptime(date_str, format).date())

    @classmethod
    def from_datetime(cls, timestamp: datetime) -> "FinancialDate":
        """
        Truncate a timestamp to its calendar day.

        Timezone-aware timestamps are converted to local time first, so a
        message received late in the evening lands on the local day the
        purchase was made.
        """
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone()
        return cls(date=timestamp.date())

    @classmethod
    def today(cls) -> "FinancialDate":
        """Get today's date."""
        return cls(date=date.today())

    def to_iso_string(self) -> str:
        """Format as YYYY-MM-DD (also the format YNAB expects)."""
        return self.date.isoformat()

    def days_between(self, other: "FinancialDate") -> int:
        """Absolute number of whole days between two dates."""
        return abs((other.date - self.date).days)

    def __str__(self) -> str:
        return self.to_iso_string()

    def __repr__(self) -> str:
        return f"FinancialDate(date={self.date!r})"
