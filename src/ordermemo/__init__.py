"""
ordermemo - Amazon order memos for YNAB

Reads Amazon order-confirmation emails, extracts what was purchased, matches
each order to the YNAB transaction it produced and writes the item titles
into that transaction's memo.

Domain Packages:
- core: Currency handling, Money/FinancialDate primitives, configuration
- amazon: Order email extraction and order-to-transaction matching
- ynab: YNAB API client and transaction cache
- mail: IMAP fetching and concurrent batch extraction
- sync: Backfill / watch / refresh orchestration
- cli: Command-line interface

Example Usage:
    from ordermemo.amazon import AmazonOrderParser, OrderMatcher
    from ordermemo.core import Money

    record = AmazonOrderParser().extract(order_email)
    matches = OrderMatcher(amount_tolerance=Money.from_dollars("0.5")).match([record], transactions)
"""

__version__ = "0.1.0"

from .amazon import AcceptedMatch, AmazonOrderParser, OrderEmail, OrderMatcher, PurchaseRecord
from .core.config import ConfigurationError, Environment, get_config

__all__ = [
    "AcceptedMatch",
    "AmazonOrderParser",
    "ConfigurationError",
    "Environment",
    "OrderEmail",
    "OrderMatcher",
    "PurchaseRecord",
    "get_config",
]
