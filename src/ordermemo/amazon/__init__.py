"""
Amazon Order Processing Package

Extraction of purchases from Amazon order-confirmation emails and matching of
those purchases to YNAB transactions.

Key Components:
- models: OrderEmail and PurchaseRecord
- parser: Layered extraction strategies for modern and legacy email layouts
- matcher: Greedy one-to-one matching under date/amount tolerance
"""

from .matcher import (
    AcceptedMatch,
    MatchCandidate,
    OrderMatcher,
    build_updates,
    generate_match_summary,
)
from .models import OrderEmail, PurchaseRecord
from .parser import AmazonOrderParser, ParsedOrder, normalize_title

__all__ = [
    "AcceptedMatch",
    # Email parsing
    "AmazonOrderParser",
    # Transaction matching
    "MatchCandidate",
    "OrderEmail",
    "OrderMatcher",
    "ParsedOrder",
    "PurchaseRecord",
    "build_updates",
    "generate_match_summary",
    "normalize_title",
]
