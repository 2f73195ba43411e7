#!/usr/bin/env python3
"""
Amazon Order Email Parser

Extracts a PurchaseRecord from an Amazon order-confirmation email.

Amazon's email markup has shifted between a "modern" layout (totals in a
generic table, products as /dp/ links) and a "legacy" layout (fixed
costBreakdownRight / itemDetails tables). Each field is therefore extracted
by an ordered list of strategies, tried until one produces a value. The
legacy strategies stay in place even though current emails are handled by
the modern ones, because the vendor has regressed to older templates before.
"""

import logging
import re
from dataclasses import dataclass, field
from email.utils import parseaddr

from bs4 import BeautifulSoup

from ..core.config import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_SENDER_ADDRESS
from ..core.currency import dollars_and_cents_to_milliunits, parse_dollars_to_milliunits
from ..core.dates import FinancialDate
from ..core.money import Money
from .models import OrderEmail, PurchaseRecord

logger = logging.getLogger(__name__)

# Links longer than this are page sections, not product titles
MAX_TITLE_CHARS = 200

TRUNCATION_MARKER = "..."
NORMALIZED_TRUNCATION_MARKER = ".."

# Forwarding clients (Outlook in particular) rewrite id/class values to x_foo
FORWARDED_ATTRIBUTE_PREFIX = re.compile(r"([\"'])x_")

TOTAL_AMOUNT_PATTERN = re.compile(r"\$(\d+)\.(\d{2})")
LEADING_NUMBER_PATTERN = re.compile(r"\d*\.?\d+")

LEGACY_COST_SELECTOR = 'table[id$="costBreakdownRight"] td'
LEGACY_ITEMS_SELECTOR = 'table[id$="itemDetails"] tr'


def normalize_title(title: str) -> str:
    """
    Normalize a product title that Amazon truncated with "...".

    The last word of a truncated title is usually cut mid-word, so it is
    dropped along with a dangling comma and replaced by "..":

        "Widget Pro Max, Blue, 2-Pa..." -> "Widget Pro Max, Blue.."
    """
    if title.endswith(TRUNCATION_MARKER):
        title = " ".join(title.split(" ")[:-1])
        if title.endswith(","):
            title = title[:-1]
        title += NORMALIZED_TRUNCATION_MARKER
    return title


def strip_forwarded_prefixes(html_content: str) -> str:
    """Undo the x_ prefix that mail forwarding adds to attribute values."""
    return FORWARDED_ATTRIBUTE_PREFIX.sub(r"\1", html_content)


class TotalTableStrategy:
    """Modern layout: first table mentioning "Total" with a $d.dd amount."""

    name = "total_table"

    def attempt(self, soup: BeautifulSoup) -> Money | None:
        for table in soup.find_all("table"):
            text = table.get_text()
            if "Total" not in text:
                continue
            match = TOTAL_AMOUNT_PATTERN.search(text)
            if match:
                return Money.from_milliunits(dollars_and_cents_to_milliunits(match.group(1), match.group(2)))
        return None


class CostBreakdownStrategy:
    """Legacy layout: cell text of the costBreakdownRight table."""

    name = "cost_breakdown"

    def attempt(self, soup: BeautifulSoup) -> Money | None:
        cost_text = "".join(td.get_text() for td in soup.select(LEGACY_COST_SELECTOR)).strip()
        if not cost_text.startswith("$"):
            return None

        # Only the leading number counts; later cells may hold other prices
        match = LEADING_NUMBER_PATTERN.match(cost_text[1:].lstrip())
        if not match:
            return None
        return Money.from_milliunits(parse_dollars_to_milliunits(match.group()))


class ProductLinksStrategy:
    """Modern layout: anchor texts of product-detail links."""

    name = "product_links"

    def __init__(self, exclude_patterns: list[str]):
        self.exclude_patterns = exclude_patterns

    def attempt(self, soup: BeautifulSoup) -> list[str] | None:
        items = []
        for link in soup.find_all("a"):
            href = link.get("href") or ""
            if isinstance(href, list):
                href = " ".join(href)
            if "/dp/" not in href and "asin" not in href:
                continue

            text = link.get_text().strip()
            if not text or len(text) >= MAX_TITLE_CHARS:
                continue
            if any(pattern in text for pattern in self.exclude_patterns):
                continue

            items.append(normalize_title(text))
        return items or None


class ItemDetailsStrategy:
    """Legacy layout: <font> text in each itemDetails table row."""

    name = "item_details"

    def attempt(self, soup: BeautifulSoup) -> list[str] | None:
        items = []
        for row in soup.select(LEGACY_ITEMS_SELECTOR):
            title = "".join(font.get_text() for font in row.find_all("font")).strip()
            title = normalize_title(title)
            if title:
                items.append(title)
        return items or None


@dataclass
class ParsedOrder:
    """Intermediate result of running the extraction strategies over a document."""

    total: Money | None = None
    items: list[str] = field(default_factory=list)
    total_strategy: str | None = None
    items_strategy: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.total is not None and bool(self.items)


class AmazonOrderParser:
    """
    Turns order-confirmation emails into PurchaseRecords.

    extract() never raises: emails from other senders, emails without a
    resolvable total or item list, and emails whose markup breaks the parser
    all produce None.
    """

    def __init__(
        self,
        sender_address: str = DEFAULT_SENDER_ADDRESS,
        exclude_patterns: list[str] | None = None,
    ):
        self.sender_address = sender_address.strip().lower()
        if exclude_patterns is None:
            exclude_patterns = list(DEFAULT_EXCLUDE_PATTERNS)

        self.total_strategies = [TotalTableStrategy(), CostBreakdownStrategy()]
        self.item_strategies = [ProductLinksStrategy(exclude_patterns), ItemDetailsStrategy()]

    def is_order_email(self, sender: str) -> bool:
        """Check the From header against the order-confirmation address."""
        _, address = parseaddr(sender or "")
        return address.strip().lower() == self.sender_address

    def extract(self, order_email: OrderEmail) -> PurchaseRecord | None:
        """
        Extract a PurchaseRecord from one email.

        Returns:
            PurchaseRecord, or None when the email is skipped
        """
        if not self.is_order_email(order_email.sender):
            logger.debug(f"Ignoring email from {order_email.sender!r}: not an order confirmation")
            return None

        try:
            parsed = self.parse_html_content(order_email.html_content)

            if parsed.total is None:
                logger.info(f"No order total found in {order_email.subject!r}, skipping")
                return None
            if not parsed.items:
                logger.info(f"No order items found in {order_email.subject!r}, skipping")
                return None

            record = PurchaseRecord(
                date=FinancialDate.from_datetime(order_email.date),
                amount=-parsed.total,
                items=tuple(parsed.items),
            )
        except Exception as e:
            logger.error(f"Failed to parse order email with subject {order_email.subject!r}: {e}")
            logger.debug("Parse failure details", exc_info=True)
            return None

        logger.info(
            f"Found {parsed.total} order on {record.date} of {len(record.items)} item(s): {record.memo}"
        )
        return record

    def parse_html_content(self, html_content: str) -> ParsedOrder:
        """
        Run the total and item strategies over raw email HTML.

        No sender check is done here; this is also used to debug saved emails.
        """
        soup = BeautifulSoup(strip_forwarded_prefixes(html_content or ""), "lxml")
        parsed = ParsedOrder()

        for total_strategy in self.total_strategies:
            total = total_strategy.attempt(soup)
            if total is not None and total.to_milliunits() != 0:
                parsed.total = total
                parsed.total_strategy = total_strategy.name
                break

        # An email without a total is skipped, so items are not worth scanning
        if parsed.total is None:
            return parsed

        for item_strategy in self.item_strategies:
            items = item_strategy.attempt(soup)
            if items:
                parsed.items = items
                parsed.items_strategy = item_strategy.name
                break

        logger.debug(f"Parsed order using {parsed.total_strategy} / {parsed.items_strategy}")
        return parsed
