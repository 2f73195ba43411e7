#!/usr/bin/env python3
"""
Money Primitive Type

Immutable currency value wrapper that uses integer milliunits internally,
the same scale YNAB uses on the wire.
"""

from dataclasses import dataclass

from .currency import format_milliunits, parse_dollars_to_milliunits


@dataclass(frozen=True)
class Money:
    """
    Immutable money value in milliunits (USD).

    Supports both positive (inflow) and negative (outflow) amounts.
    Uses integer arithmetic throughout so tolerance comparisons are exact.

    Examples:
        >>> order = Money.from_dollars("$42.10")
        >>> order.to_milliunits()
        42100

        >>> expense = Money.from_milliunits(-45990)
        >>> str(expense)
        '$-45.99'
        >>> expense.abs()
        Money(milliunits=45990)
    """

    milliunits: int

    @classmethod
    def from_milliunits(cls, milliunits: int) -> "Money":
        """Create Money from YNAB milliunits (sign preserved)."""
        return cls(milliunits=int(milliunits))

    @classmethod
    def from_dollars(cls, dollars: str | int) -> "Money":
        """
        Parse from dollar string like '$123.45' or integer dollars.

        Args:
            dollars: String like "$12.34" or "0.5", or integer like 12

        Returns:
            Money object
        """
        if isinstance(dollars, int):
            return cls(milliunits=dollars * 1000)
        return cls(milliunits=parse_dollars_to_milliunits(dollars))

    def to_milliunits(self) -> int:
        """Get value in YNAB milliunits."""
        return self.milliunits

    def abs(self) -> "Money":
        """Return absolute value of Money."""
        return Money(milliunits=abs(self.milliunits))

    def __neg__(self) -> "Money":
        return Money(milliunits=-self.milliunits)

    def __add__(self, other: "Money") -> "Money":
        return Money(milliunits=self.milliunits + other.milliunits)

    def __sub__(self, other: "Money") -> "Money":
        return Money(milliunits=self.milliunits - other.milliunits)

    def __lt__(self, other: "Money") -> bool:
        return self.milliunits < other.milliunits

    def __le__(self, other: "Money") -> bool:
        return self.milliunits <= other.milliunits

    def __gt__(self, other: "Money") -> bool:
        return self.milliunits > other.milliunits

    def __ge__(self, other: "Money") -> bool:
        return self.milliunits >= other.milliunits

    def __str__(self) -> str:
        """Format as dollar string."""
        return format_milliunits(self.milliunits)

    def __repr__(self) -> str:
        return f"Money(milliunits={self.milliunits})"
