#!/usr/bin/env python3
"""
YNAB Domain Models

Type-safe models for the parts of the YNAB API ordermemo reads and writes.
Amounts use the Money primitive (milliunits), dates use FinancialDate.
"""

from dataclasses import dataclass
from typing import Any

from ..core.dates import FinancialDate
from ..core.money import Money


@dataclass
class YnabBudget:
    """YNAB budget summary from the /budgets endpoint."""

    id: str
    name: str
    last_modified_on: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "YnabBudget":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            last_modified_on=data.get("last_modified_on"),
        )


@dataclass
class YnabTransaction:
    """
    YNAB transaction from API.

    The memo doubles as the "already reconciled" marker: a transaction with a
    non-empty memo is never matched again.
    """

    id: str
    date: FinancialDate
    amount: Money
    memo: str | None = None
    payee_name: str | None = None
    account_name: str | None = None
    approved: bool = True
    deleted: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "YnabTransaction":
        """
        Create YnabTransaction from API dict.

        Args:
            data: Transaction object from the YNAB API

        Returns:
            YnabTransaction instance
        """
        return cls(
            id=data["id"],
            date=FinancialDate.from_string(data["date"]),
            amount=Money.from_milliunits(data["amount"]),
            memo=data.get("memo"),
            payee_name=data.get("payee_name"),
            account_name=data.get("account_name"),
            approved=data.get("approved", True),
            deleted=data.get("deleted", False),
        )

    @property
    def is_annotated(self) -> bool:
        """True once any memo has been written to the transaction."""
        return bool(self.memo)

    def describe(self) -> str:
        """Human-readable one-liner for log messages."""
        return f"{self.payee_name} transaction on {self.date} of {self.amount.abs()}"


@dataclass(frozen=True)
class TransactionUpdate:
    """One entry of a PATCH /transactions request."""

    id: str
    memo: str
    approved: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "memo": self.memo, "approved": self.approved}
