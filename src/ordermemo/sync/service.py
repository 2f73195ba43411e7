#!/usr/bin/env python3
"""
Order Sync Service

Ties the pieces together: order emails are fetched and extracted, YNAB
transactions are kept in a delta-synced cache, and every cycle the pending
purchase records are matched against the cache and matched transactions get
their memo written.

Nothing is persisted locally. A transaction's memo is the record that it has
been handled, so a crash or a failed update just means the next cycle finds
the same work again.
"""

import logging
import time
from collections.abc import Callable

from ..amazon.matcher import AcceptedMatch, OrderMatcher, build_updates, generate_match_summary
from ..amazon.models import PurchaseRecord
from ..amazon.parser import AmazonOrderParser
from ..core.config import Config
from ..mail.batch import run_extraction
from ..mail.fetcher import MailTransportError, OrderEmailFetcher
from ..ynab.cache import TransactionCache
from ..ynab.client import YnabApiError, YnabClient, resolve_budget

logger = logging.getLogger(__name__)


class OrderSyncService:
    """Backfill, new-mail handling and periodic refresh for one budget and mailbox."""

    def __init__(
        self,
        fetcher: OrderEmailFetcher,
        client: YnabClient,
        budget_id: str,
        parser: AmazonOrderParser | None = None,
        matcher: OrderMatcher | None = None,
        cache: TransactionCache | None = None,
        historical_search_num_emails: int = 500,
        sync_interval_seconds: int = 60,
        dry_run: bool = False,
    ):
        self.fetcher = fetcher
        self.client = client
        self.budget_id = budget_id
        self.parser = parser or AmazonOrderParser()
        self.matcher = matcher or OrderMatcher()
        self.cache = cache or TransactionCache()
        self.historical_search_num_emails = historical_search_num_emails
        self.sync_interval_seconds = sync_interval_seconds
        self.dry_run = dry_run

        # Purchase records not yet matched, oldest first after a backfill
        self.records: list[PurchaseRecord] = []
        self.message_count = 0

    @classmethod
    def from_config(cls, config: Config, dry_run: bool = False) -> "OrderSyncService":
        """
        Build a service from application configuration.

        Raises:
            ConfigurationError: If a required setting is missing
        """
        config.require_runtime_settings()

        client = YnabClient(
            api_token=config.ynab.api_token or "",
            base_url=config.ynab.base_url,
            timeout=config.ynab.timeout,
        )
        return cls(
            fetcher=OrderEmailFetcher(config.email),
            client=client,
            budget_id=config.ynab.budget_id or "",
            parser=AmazonOrderParser(
                sender_address=config.extraction.sender_address,
                exclude_patterns=config.extraction.exclude_patterns,
            ),
            matcher=OrderMatcher(
                date_tolerance_days=config.matching.date_tolerance_days,
                amount_tolerance=config.matching.amount_tolerance,
            ),
            cache=TransactionCache(payee_filter=config.ynab.payee_filter),
            historical_search_num_emails=config.extraction.historical_search_num_emails,
            sync_interval_seconds=config.sync_interval_seconds,
            dry_run=dry_run,
        )

    def start(self) -> None:
        """
        Validate the budget and open the mailbox.

        Raises:
            ConfigurationError: If the budget ID does not exist
            YnabApiError: If YNAB cannot be reached
            MailTransportError: If the mailbox cannot be opened
        """
        resolve_budget(self.client, self.budget_id)
        self.fetcher.connect()
        try:
            self.message_count = self.fetcher.select_inbox()
        except MailTransportError:
            self.fetcher.disconnect()
            raise

    def stop(self) -> None:
        self.fetcher.disconnect()

    def scan_messages(self, start: int, end: int) -> list[PurchaseRecord]:
        """
        Extract purchase records from messages start..end (inclusive).

        Only messages whose From header is the order sender are fetched in full.
        """
        try:
            senders = self.fetcher.fetch_senders(start, end)
        except MailTransportError as e:
            logger.error(f"Could not scan messages {start}:{end}: {e}")
            return []

        order_seqnos = [seqno for seqno, sender in senders if self.parser.is_order_email(sender)]
        logger.info(f"{len(order_seqnos)} Amazon order confirmation emails found")
        return run_extraction(self.fetcher, self.parser, order_seqnos)

    def historical_search(self) -> int:
        """
        Scan the most recent messages, then match against transactions since the oldest order.

        Returns:
            Number of matches applied
        """
        if self.historical_search_num_emails <= 0 or self.message_count == 0:
            return 0

        logger.info(f"Searching back over last {self.historical_search_num_emails} emails...")
        end = self.message_count
        start = max(1, end - (self.historical_search_num_emails - 1))
        records = self.scan_messages(start, end)
        logger.info("Finished scanning old emails successfully!")

        if not records:
            return 0

        # Concurrent extraction makes arrival order meaningless; ties in
        # matching follow record order, so fix it chronologically
        self.records.extend(records)
        self.records.sort(key=lambda r: r.date)

        try:
            self.cache.sync(self.client, self.budget_id, since_date=self.records[0].date)
        except YnabApiError as e:
            logger.error(f"Transaction sync failed: {e}")
            return 0

        return self.match_and_update()

    def handle_new_mail(self, new_count: int) -> int:
        """
        Process the newest new_count messages and try to match them.

        Returns:
            Number of matches applied
        """
        logger.info(f"{new_count} new email(s), scanning contents...")
        end = self.message_count
        start = max(1, end - (new_count - 1))
        records = self.scan_messages(start, end)
        self.records.extend(records)
        return self.match_and_update()

    def refresh(self) -> int:
        """
        Pull transaction changes from YNAB and retry matching.

        Returns:
            Number of matches applied
        """
        try:
            self.cache.sync(self.client, self.budget_id)
        except YnabApiError as e:
            logger.error(f"Transaction sync failed: {e}")
            return 0
        return self.match_and_update()

    def match_and_update(self) -> int:
        """
        Match pending records against the cache and write memos for the matches.

        Returns:
            Number of matches applied (or that would be applied, in dry-run mode)
        """
        matches = self.matcher.match(self.records, self.cache.pending())
        if not matches:
            return 0

        updates = build_updates(matches)
        for update in updates:
            transaction = self.cache.get(update.id)
            description = transaction.describe() if transaction else update.id
            logger.info(f'Adding memo "{update.memo}" to {description}')

        if self.dry_run:
            logger.info(f"Dry run: {len(updates)} update(s) not sent")
            return len(matches)

        try:
            updated_ids = set(self.client.update_transactions(self.budget_id, updates))
        except YnabApiError as e:
            logger.error(f"Failed to update {len(updates)} transaction(s): {e}")
            return 0

        # Anything YNAB did not confirm stays pending for the next cycle
        applied = [m for m in matches if m.transaction_id in updated_ids]
        if len(applied) < len(matches):
            logger.warning(f"YNAB confirmed {len(applied)} of {len(matches)} update(s)")
        for update in updates:
            if update.id in updated_ids:
                self.cache.annotate(update.id, update.memo)
        self._drop_matched(applied)

        summary = generate_match_summary(matches, self.records)
        logger.debug(f"Match summary: {summary}")
        logger.info(
            f"Status: {len(self.cache)} Amazon transactions cached, {len(self.records)} order emails cached"
        )
        return len(applied)

    def _drop_matched(self, matches: list[AcceptedMatch]) -> None:
        """Remove records whose transaction now carries their memo."""
        matched = {id(m.record) for m in matches}
        self.records = [r for r in self.records if id(r) not in matched]

    def poll_once(self) -> int:
        """
        Check the mailbox for new messages and process them.

        Returns:
            Number of matches applied
        """
        count = self.fetcher.poll_message_count()
        previous = self.message_count
        self.message_count = count

        if count <= previous:
            return 0
        return self.handle_new_mail(count - previous)

    def run_forever(
        self,
        poll_interval_seconds: float = 10,
        max_cycles: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Backfill, then watch the mailbox and refresh transactions periodically.

        Transport errors in one cycle are logged and retried on the next.
        """
        self.start()
        try:
            self.historical_search()
            logger.info("Listening to mailbox for new emails...")

            last_refresh = time.monotonic()
            cycles = 0
            while max_cycles is None or cycles < max_cycles:
                sleep(poll_interval_seconds)
                cycles += 1

                try:
                    self.poll_once()
                except MailTransportError as e:
                    logger.error(f"Mailbox poll failed: {e}")

                if time.monotonic() - last_refresh >= self.sync_interval_seconds:
                    last_refresh = time.monotonic()
                    self.refresh()
        finally:
            self.stop()
