#!/usr/bin/env python3
"""Tests for the backfill / watch / refresh orchestration."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from ordermemo.amazon.models import OrderEmail
from ordermemo.core.config import Config, ConfigurationError
from ordermemo.core.dates import FinancialDate
from ordermemo.mail.fetcher import MailTransportError
from ordermemo.sync import OrderSyncService
from ordermemo.ynab.client import YnabApiError
from ordermemo.ynab.models import TransactionUpdate, YnabBudget
from tests.fixtures.amazon.order_email_samples import LEGACY_ORDER_HTML, MODERN_ORDER_HTML

AMAZON = "Amazon.com <auto-confirm@amazon.com>"


class FakeFetcher:
    """Mailbox double addressed by sequence number."""

    def __init__(self, messages: dict[int, OrderEmail]):
        self.messages = messages
        self.count = max(messages, default=0)
        self.connected = False
        self.header_fetches: list[tuple[int, int]] = []

    def connect(self):
        self.connected = True

    def disconnect(self):
        self.connected = False

    def select_inbox(self) -> int:
        return self.count

    def poll_message_count(self) -> int:
        return self.count

    def fetch_senders(self, start: int, end: int) -> list[tuple[int, str]]:
        self.header_fetches.append((start, end))
        return [(seqno, self.messages[seqno].sender) for seqno in range(start, end + 1) if seqno in self.messages]

    def fetch_email(self, seqno: int) -> OrderEmail:
        return self.messages[seqno]


def order_email(html: str, when: datetime, sender: str = AMAZON) -> OrderEmail:
    return OrderEmail(sender=sender, subject="Your Amazon.com order", html_content=html, date=when)


@pytest.fixture
def mailbox():
    return FakeFetcher(
        {
            1: order_email(MODERN_ORDER_HTML, datetime(2024, 8, 15, 18, 42)),
            2: order_email("<p>Hello</p>", datetime(2024, 8, 15, 19, 0), sender="Friend <friend@example.com>"),
            3: order_email(LEGACY_ORDER_HTML, datetime(2024, 8, 16, 8, 5)),
        }
    )


@pytest.fixture
def ynab_client(make_transaction):
    client = MagicMock()
    client.get_budgets.return_value = [YnabBudget(id="test-budget", name="Household")]
    client.get_transactions.return_value = (
        [
            make_transaction("t1", "2024-08-15", -42100),
            make_transaction("t2", "2024-08-17", -19990),
            make_transaction("t3", "2024-08-15", -42100, payee_name="Apple"),
        ],
        100,
    )
    client.update_transactions.side_effect = lambda budget_id, updates: [u.id for u in updates]
    return client


def make_service(fetcher, client, **kwargs) -> OrderSyncService:
    service = OrderSyncService(fetcher=fetcher, client=client, budget_id="test-budget", **kwargs)
    service.start()
    return service


@pytest.mark.integration
class TestHistoricalSearch:
    """Backfill over the most recent messages."""

    def test_backfill_matches_and_updates(self, mailbox, ynab_client):
        service = make_service(mailbox, ynab_client)

        applied = service.historical_search()

        assert applied == 2
        ynab_client.update_transactions.assert_called_once_with(
            "test-budget",
            [
                TransactionUpdate(id="t1", memo="Widget A, Widget B", approved=False),
                TransactionUpdate(
                    id="t2",
                    memo="Cable Organizer Clips.., Acme Super Long Product Name, With Many.., USB-C Cable",
                    approved=False,
                ),
            ],
        )
        assert ynab_client.get_transactions.call_args.kwargs["since_date"] == FinancialDate.from_string(
            "2024-08-15"
        )
        assert service.records == []
        assert service.cache.pending() == []
        assert "t3" not in service.cache

    def test_backfill_window(self, mailbox, ynab_client):
        service = make_service(mailbox, ynab_client, historical_search_num_emails=2)

        service.historical_search()

        assert mailbox.header_fetches == [(2, 3)]

    def test_backfill_disabled(self, mailbox, ynab_client):
        service = make_service(mailbox, ynab_client, historical_search_num_emails=0)

        assert service.historical_search() == 0
        assert mailbox.header_fetches == []

    def test_backfill_without_orders_skips_sync(self, ynab_client):
        fetcher = FakeFetcher({1: order_email("<p>Hi</p>", datetime(2024, 8, 15), sender="a@example.com")})
        service = make_service(fetcher, ynab_client)

        assert service.historical_search() == 0
        ynab_client.get_transactions.assert_not_called()

    def test_records_sorted_chronologically(self, ynab_client):
        fetcher = FakeFetcher(
            {
                1: order_email(LEGACY_ORDER_HTML, datetime(2024, 8, 20, 9)),
                2: order_email(MODERN_ORDER_HTML, datetime(2024, 8, 10, 9)),
            }
        )
        ynab_client.get_transactions.return_value = ([], 1)
        service = make_service(fetcher, ynab_client)

        service.historical_search()

        assert [str(r.date) for r in service.records] == ["2024-08-10", "2024-08-20"]

    def test_dry_run_sends_nothing(self, mailbox, ynab_client):
        service = make_service(mailbox, ynab_client, dry_run=True)

        assert service.historical_search() == 2
        ynab_client.update_transactions.assert_not_called()
        assert len(service.records) == 2
        assert len(service.cache.pending()) == 2

    def test_update_failure_keeps_records(self, mailbox, ynab_client):
        ynab_client.update_transactions.side_effect = YnabApiError("rate limited", status_code=429)
        service = make_service(mailbox, ynab_client)

        assert service.historical_search() == 0
        assert len(service.records) == 2
        assert len(service.cache.pending()) == 2

    def test_unconfirmed_update_retried_next_cycle(self, mailbox, ynab_client):
        ynab_client.update_transactions.side_effect = lambda budget_id, updates: ["t1"]
        service = make_service(mailbox, ynab_client)

        assert service.historical_search() == 1
        assert [str(r.date) for r in service.records] == ["2024-08-16"]
        assert [t.id for t in service.cache.pending()] == ["t2"]
        assert service.cache.get("t1").memo == "Widget A, Widget B"

        ynab_client.update_transactions.side_effect = lambda budget_id, updates: [u.id for u in updates]
        ynab_client.get_transactions.return_value = ([], 101)

        assert service.refresh() == 1
        assert ynab_client.update_transactions.call_args.args[1][0].id == "t2"
        assert service.records == []

    def test_sync_failure(self, mailbox, ynab_client):
        ynab_client.get_transactions.side_effect = YnabApiError("down")
        service = make_service(mailbox, ynab_client)

        assert service.historical_search() == 0
        assert len(service.records) == 2

    def test_scan_failure_is_logged(self, mailbox, ynab_client):
        service = make_service(mailbox, ynab_client)
        service.fetcher = MagicMock()
        service.fetcher.fetch_senders.side_effect = MailTransportError("connection reset")

        assert service.scan_messages(1, 3) == []


@pytest.mark.integration
class TestWatching:
    """New mail, refresh and the run loop."""

    def test_poll_once_handles_new_mail(self, mailbox, ynab_client, make_transaction):
        service = make_service(mailbox, ynab_client, historical_search_num_emails=0)
        service.cache.apply([make_transaction("t9", "2024-08-21", -42100)])
        mailbox.messages[4] = order_email(MODERN_ORDER_HTML, datetime(2024, 8, 20, 7))
        mailbox.count = 4

        assert service.poll_once() == 1
        assert mailbox.header_fetches == [(4, 4)]
        assert service.cache.get("t9").memo == "Widget A, Widget B"
        assert service.message_count == 4

    def test_poll_once_without_new_mail(self, mailbox, ynab_client):
        service = make_service(mailbox, ynab_client, historical_search_num_emails=0)

        assert service.poll_once() == 0
        assert mailbox.header_fetches == []

    def test_unmatched_record_matched_on_refresh(self, mailbox, ynab_client, make_transaction):
        ynab_client.get_transactions.return_value = ([], 100)
        service = make_service(mailbox, ynab_client, historical_search_num_emails=1)
        service.historical_search()
        assert len(service.records) == 1

        ynab_client.get_transactions.return_value = ([make_transaction("t5", "2024-08-18", -19990)], 101)

        assert service.refresh() == 1
        assert service.records == []
        assert ynab_client.get_transactions.call_args.kwargs["last_knowledge"] == 100

    def test_record_never_matched_twice(self, mailbox, ynab_client, make_transaction):
        service = make_service(mailbox, ynab_client)
        service.historical_search()

        ynab_client.get_transactions.return_value = ([make_transaction("t6", "2024-08-15", -42100)], 101)

        assert service.refresh() == 0

    def test_refresh_failure(self, mailbox, ynab_client):
        ynab_client.get_transactions.side_effect = YnabApiError("down")
        service = make_service(mailbox, ynab_client)

        assert service.refresh() == 0

    def test_run_forever_cycles(self, mailbox, ynab_client):
        sleep = MagicMock()
        service = OrderSyncService(fetcher=mailbox, client=ynab_client, budget_id="test-budget")

        service.run_forever(poll_interval_seconds=5, max_cycles=2, sleep=sleep)

        assert sleep.call_count == 2
        sleep.assert_called_with(5)
        assert mailbox.connected is False
        ynab_client.update_transactions.assert_called_once()

    def test_run_forever_survives_poll_errors(self, mailbox, ynab_client):
        service = OrderSyncService(fetcher=mailbox, client=ynab_client, budget_id="test-budget")
        mailbox.poll_message_count = MagicMock(side_effect=MailTransportError("timeout"))

        service.run_forever(max_cycles=3, sleep=lambda _: None)

        assert mailbox.poll_message_count.call_count == 3

    def test_start_rejects_unknown_budget(self, mailbox, ynab_client):
        service = OrderSyncService(fetcher=mailbox, client=ynab_client, budget_id="other")

        with pytest.raises(ConfigurationError):
            service.start()
        assert mailbox.connected is False

    def test_failed_inbox_select_disconnects(self, mailbox, ynab_client):
        mailbox.select_inbox = MagicMock(side_effect=MailTransportError("no such mailbox"))
        mailbox.disconnect = MagicMock(wraps=mailbox.disconnect)
        service = OrderSyncService(fetcher=mailbox, client=ynab_client, budget_id="test-budget")

        with pytest.raises(MailTransportError):
            service.run_forever(max_cycles=0, sleep=lambda _: None)

        mailbox.disconnect.assert_called_once()
        assert mailbox.connected is False


@pytest.mark.integration
class TestFromConfig:
    """Wiring from configuration."""

    def test_from_config(self, monkeypatch):
        monkeypatch.setenv("IMAP_INCOMING_HOST", "imap.example.com")
        monkeypatch.setenv("IMAP_USERNAME", "me@example.com")
        monkeypatch.setenv("YNAB_ACCEPTABLE_DATE_DIFFERENCE", "2")
        monkeypatch.setenv("HISTORICAL_SEARCH_NUM_EMAILS", "25")

        service = OrderSyncService.from_config(Config.from_environment(), dry_run=True)

        assert service.budget_id == "test-budget"
        assert service.matcher.date_tolerance_days == 2
        assert service.historical_search_num_emails == 25
        assert service.dry_run is True
        assert service.fetcher.config.imap_server == "imap.example.com"

    def test_from_config_missing_settings(self):
        with pytest.raises(ConfigurationError, match="IMAP_INCOMING_HOST"):
            OrderSyncService.from_config(Config.from_environment())
