"""
Pytest Configuration and Shared Fixtures

Provides common test fixtures and configuration for the entire test suite.
"""

from datetime import datetime

import pytest

from ordermemo.amazon.models import OrderEmail
from ordermemo.core import config as config_module
from ordermemo.ynab.models import YnabTransaction


@pytest.fixture
def sample_ynab_transaction() -> dict:
    """Sample YNAB transaction as returned by the API."""
    return {
        "id": "test-transaction-123",
        "date": "2024-08-15",
        "amount": -42100,  # -$42.10 in milliunits
        "memo": None,
        "payee_name": "Amazon.com",
        "account_name": "Chase Credit Card",
        "approved": False,
        "deleted": False,
    }


@pytest.fixture
def make_transaction():
    """Factory for YnabTransaction domain models."""

    def _make(
        id: str,
        date: str,
        amount: int,
        memo: str | None = None,
        payee_name: str = "Amazon.com",
        deleted: bool = False,
    ) -> YnabTransaction:
        return YnabTransaction.from_dict(
            {
                "id": id,
                "date": date,
                "amount": amount,
                "memo": memo,
                "payee_name": payee_name,
                "deleted": deleted,
            }
        )

    return _make


@pytest.fixture
def make_order_email():
    """Factory for OrderEmail messages from the order sender."""

    def _make(
        html: str,
        sender: str = "Amazon.com <auto-confirm@amazon.com>",
        subject: str = "Your Amazon.com order #111-2223334-5556667",
        date: datetime | None = None,
    ) -> OrderEmail:
        return OrderEmail(
            sender=sender,
            subject=subject,
            html_content=html,
            date=date or datetime(2024, 8, 15, 18, 42, 7),
        )

    return _make


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Set up test environment variables and a fresh global config."""
    monkeypatch.setenv("ORDERMEMO_ENV", "test")

    # Mock sensitive environment variables
    monkeypatch.setenv("YNAB_TOKEN", "test-token")
    monkeypatch.setenv("YNAB_BUDGET_ID", "test-budget")
    monkeypatch.setenv("IMAP_PASSWORD", "test-password")

    for name in [
        "YNAB_ACCEPTABLE_DOLLAR_DIFFERENCE",
        "YNAB_ACCEPTABLE_DATE_DIFFERENCE",
        "HISTORICAL_SEARCH_NUM_EMAILS",
        "ITEM_EXCLUDE_PATTERNS",
        "ORDER_SENDER_ADDRESS",
        "SYNC_INTERVAL_SECONDS",
        "LOG_LEVEL",
        "DEBUG",
        "YNAB_TIMEOUT",
        "YNAB_PAYEE_FILTER",
        "IMAP_USERNAME",
        "IMAP_INCOMING_HOST",
        "IMAP_INCOMING_PORT",
    ]:
        monkeypatch.delenv(name, raising=False)

    monkeypatch.setattr(config_module, "_config", None)
