#!/usr/bin/env python3
"""
Amazon Order Domain Models

The raw order-confirmation email as it arrives from the mail server, and the
normalized purchase record extracted from it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..core.dates import FinancialDate
from ..core.money import Money


@dataclass
class OrderEmail:
    """A single message from the mailbox, reduced to what extraction needs."""

    sender: str
    subject: str
    html_content: str
    date: datetime
    message_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PurchaseRecord:
    """
    A purchase extracted from one order-confirmation email.

    The amount is negative, mirroring the outflow YNAB records for the card
    charge. Items are the product titles in document order, already
    normalized for use in a transaction memo.
    """

    date: FinancialDate
    amount: Money
    items: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.items:
            raise ValueError("PurchaseRecord requires at least one item")

    @property
    def memo(self) -> str:
        """Memo text written to the matched YNAB transaction."""
        return ", ".join(self.items)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "date": self.date.to_iso_string(),
            "amount": self.amount.to_milliunits(),
            "items": list(self.items),
        }
