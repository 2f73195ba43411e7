"""
YNAB Integration Package

Access to the YNAB API and the local transaction cache used for matching.

Key Components:
- models: Budget, transaction and memo-update models
- client: REST client (requests) with error translation
- cache: Delta-synced in-memory transaction cache
"""

from .cache import TransactionCache
from .client import YnabApiError, YnabClient, extract_ynab_error, resolve_budget
from .models import TransactionUpdate, YnabBudget, YnabTransaction

__all__ = [
    "TransactionCache",
    "TransactionUpdate",
    "YnabApiError",
    "YnabBudget",
    "YnabClient",
    "YnabTransaction",
    "extract_ynab_error",
    "resolve_budget",
]
