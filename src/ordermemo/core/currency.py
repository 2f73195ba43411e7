#!/usr/bin/env python3
"""
Currency Conversion and Handling Utilities

All amounts in ordermemo are integer YNAB milliunits (1000 milliunits = $1.00).
Order emails state totals as dollar strings and configuration states
tolerances in dollars; both are converted to milliunits here without ever
passing through floating point.

Key Principles:
- Never use floating-point arithmetic for currency calculations
- Parse decimal text with Decimal, store and compare integers
- Format for display only at the edges (logging, CLI)
"""

from decimal import Decimal, InvalidOperation

MILLIUNITS_PER_DOLLAR = 1000


def parse_dollars_to_milliunits(dollars_str: str) -> int:
    """
    Parse a dollar string to milliunits using exact decimal arithmetic.

    Args:
        dollars_str: String like "$12.34", "12.34", "1,234.56" or "0.5"

    Returns:
        Amount in milliunits

    Raises:
        ValueError: If the string is not a decimal amount

    Examples:
        parse_dollars_to_milliunits("$42.10") -> 42100
        parse_dollars_to_milliunits("0.5") -> 500
        parse_dollars_to_milliunits("-3") -> -3000
    """
    clean = dollars_str.replace("$", "").replace(",", "").strip()
    if not clean:
        raise ValueError("Empty currency string")

    try:
        amount = Decimal(clean)
    except InvalidOperation as e:
        raise ValueError(f"Invalid currency string: {dollars_str!r}") from e

    if not amount.is_finite():
        raise ValueError(f"Invalid currency string: {dollars_str!r}")

    # Sub-milliunit precision is truncated toward zero
    return int(amount * MILLIUNITS_PER_DOLLAR)


def safe_dollars_to_milliunits(dollars_str: str | None) -> int:
    """
    Convert a dollar string to milliunits, returning 0 for anything unparseable.

    Examples:
        safe_dollars_to_milliunits("$45.99") -> 45990
        safe_dollars_to_milliunits("FREE") -> 0
        safe_dollars_to_milliunits(None) -> 0
    """
    if not dollars_str:
        return 0
    try:
        return parse_dollars_to_milliunits(dollars_str)
    except ValueError:
        return 0


def dollars_and_cents_to_milliunits(dollars: str, cents: str) -> int:
    """
    Combine the digit groups of a "$<dollars>.<cents>" match into milliunits.

    Example:
        dollars_and_cents_to_milliunits("42", "10") -> 42100
    """
    return int(dollars) * MILLIUNITS_PER_DOLLAR + int(cents.ljust(2, "0")[:2]) * 10


def milliunits_to_dollars_str(milliunits: int) -> str:
    """
    Convert milliunits to a dollar string using pure integer arithmetic.

    Sub-cent milliunits are truncated for display.

    Example:
        milliunits_to_dollars_str(-45990) -> "-45.99"
    """
    is_negative = milliunits < 0
    abs_cents = abs(int(milliunits)) // 10

    dollars = abs_cents // 100
    remainder = abs_cents % 100

    if is_negative:
        return f"-{dollars}.{remainder:02d}"
    return f"{dollars}.{remainder:02d}"


def format_milliunits(milliunits: int) -> str:
    """Format milliunits as dollar string with $ prefix, e.g. "$45.99"."""
    return f"${milliunits_to_dollars_str(milliunits)}"
