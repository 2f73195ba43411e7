#!/usr/bin/env python3
"""
Order CLI - Extraction and Sync Commands
"""

import json
from pathlib import Path

import click

from ..amazon.parser import AmazonOrderParser
from ..core.config import Config, ConfigurationError
from ..mail.fetcher import MailTransportError, parse_order_email
from ..sync.service import OrderSyncService
from ..ynab.client import YnabApiError


def _parser_from_config(config: Config) -> AmazonOrderParser:
    return AmazonOrderParser(
        sender_address=config.extraction.sender_address,
        exclude_patterns=config.extraction.exclude_patterns,
    )


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def parse(ctx: click.Context, path: Path) -> None:
    """
    Run the order extractor on a saved email.

    .eml files go through the full extractor, sender check included.
    Anything else is treated as the HTML body and only the document
    strategies are run.

    Examples:
      ordermemo parse order.eml
      ordermemo parse order-body.html
    """
    parser = _parser_from_config(ctx.obj["config"])

    if path.suffix.lower() == ".eml":
        order_email = parse_order_email(path.read_bytes())
        record = parser.extract(order_email)
        if record is None:
            click.echo(f"Skipped: no purchase extracted from {order_email.subject!r}")
            return
        click.echo(json.dumps(record.to_dict(), indent=2))
        return

    parsed = parser.parse_html_content(path.read_text(encoding="utf-8", errors="ignore"))
    result = {
        "total": parsed.total.to_milliunits() if parsed.total else None,
        "total_strategy": parsed.total_strategy,
        "items": parsed.items,
        "items_strategy": parsed.items_strategy,
        "complete": parsed.is_complete,
    }
    click.echo(json.dumps(result, indent=2))


@click.command()
@click.option("--dry-run", is_flag=True, help="Match and log, but do not update YNAB")
@click.option("--limit", type=int, help="Override how many recent emails to scan")
@click.pass_context
def backfill(ctx: click.Context, dry_run: bool, limit: int | None) -> None:
    """
    Scan recent order emails once and write memos for matching transactions.

    Example:
      ordermemo backfill --limit 200 --dry-run
    """
    config: Config = ctx.obj["config"]

    try:
        service = OrderSyncService.from_config(config, dry_run=dry_run)
        if limit is not None:
            service.historical_search_num_emails = limit

        service.start()
        try:
            matched = service.historical_search()
        finally:
            service.stop()
    except (ConfigurationError, YnabApiError, MailTransportError) as e:
        raise click.ClickException(str(e)) from e

    verb = "Would update" if dry_run else "Updated"
    click.echo(f"{verb} {matched} transaction(s); {len(service.records)} order(s) still unmatched")


@click.command()
@click.option("--dry-run", is_flag=True, help="Match and log, but do not update YNAB")
@click.option("--poll-interval", type=float, default=10.0, show_default=True, help="Seconds between mailbox polls")
@click.pass_context
def run(ctx: click.Context, dry_run: bool, poll_interval: float) -> None:
    """
    Backfill, then keep watching the mailbox and YNAB for new matches.

    Example:
      ordermemo run
    """
    config: Config = ctx.obj["config"]

    try:
        service = OrderSyncService.from_config(config, dry_run=dry_run)
        service.run_forever(poll_interval_seconds=poll_interval)
    except (ConfigurationError, YnabApiError, MailTransportError) as e:
        raise click.ClickException(str(e)) from e
