#!/usr/bin/env python3
"""
YNAB Transaction Cache

In-memory store of the YNAB transactions that could match an order email,
kept current with YNAB's delta sync (server knowledge) so each refresh only
transfers what changed.
"""

import logging
from collections.abc import Iterable, Iterator

from ..core.dates import FinancialDate
from .client import YnabClient
from .models import YnabTransaction

logger = logging.getLogger(__name__)


class TransactionCache:
    """
    Transactions keyed by ID, in first-seen order.

    Insertion order is the transaction order the matcher sees, so it is
    preserved across updates of the same transaction.
    """

    def __init__(self, payee_filter: str = "amazon"):
        self.payee_filter = payee_filter.lower()
        self.server_knowledge: int | None = None
        self._transactions: dict[str, YnabTransaction] = {}

    def __len__(self) -> int:
        return len(self._transactions)

    def __contains__(self, transaction_id: object) -> bool:
        return transaction_id in self._transactions

    def get(self, transaction_id: str) -> YnabTransaction | None:
        return self._transactions.get(transaction_id)

    def is_relevant(self, transaction: YnabTransaction) -> bool:
        """Check the payee against the configured filter."""
        return bool(transaction.payee_name) and self.payee_filter in transaction.payee_name.lower()  # type: ignore[union-attr]

    def apply(self, transactions: Iterable[YnabTransaction], server_knowledge: int | None = None) -> int:
        """
        Merge a batch of (possibly delta) transactions into the cache.

        Deleted transactions are removed; everything else is inserted or
        replaced, so memos written by other YNAB clients are picked up.

        Returns:
            Number of transactions added or replaced
        """
        changed = 0
        for transaction in transactions:
            if not self.is_relevant(transaction):
                continue

            if transaction.deleted:
                if self._transactions.pop(transaction.id, None) is not None:
                    logger.info(f"Deleting transaction: {transaction.describe()}")
                continue

            if transaction.id not in self._transactions and not transaction.is_annotated:
                logger.info(f"Caching transaction: {transaction.describe()}")
            self._transactions[transaction.id] = transaction
            changed += 1

        if server_knowledge is not None:
            self.server_knowledge = server_knowledge
        return changed

    def sync(self, client: YnabClient, budget_id: str, since_date: FinancialDate | None = None) -> int:
        """
        Fetch changes since the last sync and merge them.

        Raises:
            YnabApiError: If the fetch fails; the cache is left unchanged
        """
        transactions, server_knowledge = client.get_transactions(
            budget_id, since_date=since_date, last_knowledge=self.server_knowledge
        )
        changed = self.apply(transactions, server_knowledge)
        logger.debug(f"Synced {changed} transaction(s), server knowledge now {self.server_knowledge}")
        return changed

    def annotate(self, transaction_id: str, memo: str) -> None:
        """Record locally that a memo was written, excluding the transaction from matching."""
        transaction = self._transactions.get(transaction_id)
        if transaction is not None:
            transaction.memo = memo

    def pending(self) -> list[YnabTransaction]:
        """Transactions still waiting for a memo, in cache order."""
        return [t for t in self._transactions.values() if not t.is_annotated and not t.deleted]

    def __iter__(self) -> Iterator[YnabTransaction]:
        return iter(list(self._transactions.values()))
