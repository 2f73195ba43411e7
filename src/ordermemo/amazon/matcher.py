#!/usr/bin/env python3
"""
Amazon Order Matching Module

Pairs PurchaseRecords extracted from order emails with YNAB transactions.

Every (record, transaction) pair within the date and amount tolerances
becomes a candidate. Candidates are ranked globally by date difference, then
amount difference, and accepted greedily: the best remaining candidate wins
and every other candidate sharing its record or its transaction is dropped.
This is not an optimal assignment, and is kept greedy on purpose so that
tie resolution stays the same from run to run.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ..core.money import Money
from ..ynab.models import TransactionUpdate, YnabTransaction
from .models import PurchaseRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchCandidate:
    """A record/transaction pair that falls within both tolerances."""

    date_difference: int  # whole days
    amount_difference: int  # milliunits, magnitude only
    record_index: int
    transaction_id: str

    @property
    def is_perfect(self) -> bool:
        return self.date_difference == 0 and self.amount_difference == 0


@dataclass(frozen=True)
class AcceptedMatch:
    """A transaction that will be annotated with a record's items."""

    transaction_id: str
    record: PurchaseRecord


class OrderMatcher:
    """Greedy one-to-one matcher between purchase records and YNAB transactions."""

    def __init__(self, date_tolerance_days: int = 4, amount_tolerance: Money | None = None):
        """
        Initialize the matcher.

        Args:
            date_tolerance_days: Maximum days between order email and transaction
            amount_tolerance: Maximum difference in amount magnitude (default $0.50)
        """
        if amount_tolerance is None:
            amount_tolerance = Money.from_dollars("0.5")
        self.date_tolerance_days = date_tolerance_days
        self.amount_tolerance = amount_tolerance.abs().to_milliunits()

    def match(
        self,
        records: list[PurchaseRecord],
        transactions: Iterable[YnabTransaction] | Mapping[str, YnabTransaction],
    ) -> list[AcceptedMatch]:
        """
        Compute the one-to-one assignment between records and transactions.

        Args:
            records: Purchase records; their order breaks ranking ties
            transactions: Candidate transactions; their iteration order breaks
                ties within a record. Annotated or deleted ones are ignored.

        Returns:
            Accepted matches in acceptance order
        """
        if not records:
            return []

        if isinstance(transactions, Mapping):
            transactions = transactions.values()
        eligible = [t for t in transactions if not t.is_annotated and not t.deleted]

        candidates = self.find_candidates(records, eligible)
        ranked = sorted(candidates, key=lambda c: (c.date_difference, c.amount_difference))

        used_records: set[int] = set()
        used_transactions: set[str] = set()
        accepted: list[AcceptedMatch] = []

        for candidate in ranked:
            if candidate.record_index in used_records or candidate.transaction_id in used_transactions:
                continue
            used_records.add(candidate.record_index)
            used_transactions.add(candidate.transaction_id)
            accepted.append(AcceptedMatch(candidate.transaction_id, records[candidate.record_index]))

        logger.debug(f"Accepted {len(accepted)} of {len(candidates)} candidate matches")
        return accepted

    def find_candidates(
        self, records: list[PurchaseRecord], transactions: list[YnabTransaction]
    ) -> list[MatchCandidate]:
        """
        Generate candidates in record order, then transaction order.

        Scanning for a record stops at its first perfect match. The matched
        transaction stays available to later records; conflicts are settled
        by the global ranking.
        """
        candidates = []

        for record_index, record in enumerate(records):
            record_amount = record.amount.abs().to_milliunits()

            for transaction in transactions:
                date_difference = record.date.days_between(transaction.date)
                amount_difference = abs(record_amount - transaction.amount.abs().to_milliunits())

                if date_difference <= self.date_tolerance_days and amount_difference <= self.amount_tolerance:
                    candidates.append(
                        MatchCandidate(
                            date_difference=date_difference,
                            amount_difference=amount_difference,
                            record_index=record_index,
                            transaction_id=transaction.id,
                        )
                    )

                if date_difference == 0 and amount_difference == 0:
                    break

        return candidates


def build_updates(matches: list[AcceptedMatch]) -> list[TransactionUpdate]:
    """Turn accepted matches into unapproved memo updates, one per match."""
    return [TransactionUpdate(id=m.transaction_id, memo=m.record.memo, approved=False) for m in matches]


def generate_match_summary(matches: list[AcceptedMatch], records: list[PurchaseRecord]) -> dict[str, Any]:
    """
    Generate summary statistics for one matching cycle.

    Args:
        matches: Accepted matches from OrderMatcher.match
        records: The records that were offered to the matcher

    Returns:
        Dictionary with summary statistics
    """
    matched_amount = sum(m.record.amount.abs().to_milliunits() for m in matches)
    return {
        "total_records": len(records),
        "matched": len(matches),
        "unmatched": len(records) - len(matches),
        "match_rate": len(matches) / len(records) if records else 0,
        "total_amount_matched": matched_amount,
    }
