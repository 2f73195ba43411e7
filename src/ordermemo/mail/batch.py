#!/usr/bin/env python3
"""
Batch Order Extraction

Fetches and extracts many order emails as independent tasks, waiting for all
of them and tolerating individual failures. A message that cannot be fetched
or parsed is logged and left out; it never aborts its siblings.
"""

import asyncio
import logging
from typing import Protocol

from ..amazon.models import OrderEmail, PurchaseRecord
from ..amazon.parser import AmazonOrderParser

logger = logging.getLogger(__name__)


class EmailSource(Protocol):
    def fetch_email(self, seqno: int) -> OrderEmail: ...


async def extract_batch(
    source: EmailSource, parser: AmazonOrderParser, seqnos: list[int]
) -> list[PurchaseRecord]:
    """
    Fetch and extract the given messages concurrently.

    Fetches run in worker threads but are serialized by a lock, since one
    IMAP connection cannot carry interleaved commands. Parsing runs on the
    event loop once a message has arrived.

    Returns:
        Extracted records in the order of seqnos, skips and failures omitted
    """
    fetch_lock = asyncio.Lock()

    async def extract_one(seqno: int) -> PurchaseRecord | None:
        async with fetch_lock:
            order_email = await asyncio.to_thread(source.fetch_email, seqno)
        return parser.extract(order_email)

    outcomes = await asyncio.gather(*(extract_one(seqno) for seqno in seqnos), return_exceptions=True)

    records = []
    failures = 0
    for seqno, outcome in zip(seqnos, outcomes):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            failures += 1
            logger.error(f"Failed to process message {seqno}: {outcome}")
            continue
        if outcome is not None:
            records.append(outcome)

    logger.info(f"Extracted {len(records)} order(s) from {len(seqnos)} message(s), {failures} failed")
    return records


def run_extraction(source: EmailSource, parser: AmazonOrderParser, seqnos: list[int]) -> list[PurchaseRecord]:
    """Synchronous entry point for extract_batch."""
    if not seqnos:
        return []
    return asyncio.run(extract_batch(source, parser, seqnos))
