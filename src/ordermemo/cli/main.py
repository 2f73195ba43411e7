#!/usr/bin/env python3
"""
Main CLI Entry Point for ordermemo

Provides the command-line interface for scanning order emails and writing
YNAB memos.
"""

import logging
import os

import click

from ..core.config import ConfigurationError, get_config, reload_config


@click.group()
@click.option(
    "--config-env",
    type=click.Choice(["development", "test", "production"]),
    help="Override environment configuration",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_env: str | None, verbose: bool, debug: bool) -> None:
    """
    ordermemo - Amazon order memos for YNAB

    Reads Amazon order-confirmation emails, matches them to YNAB transactions
    and writes the purchased items into the transaction memo.
    """
    ctx.ensure_object(dict)

    if config_env:
        os.environ["ORDERMEMO_ENV"] = config_env

    if debug:
        os.environ["LOG_LEVEL"] = "DEBUG"

    try:
        config = reload_config() if (config_env or debug) else get_config()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.getLogger("ordermemo").setLevel(logging.DEBUG)

    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["config"] = config

    if verbose:
        click.echo(f"Environment: {config.environment.value}")

    if debug:
        click.echo("Debug logging enabled")


@main.command()
def version() -> None:
    """Show version information."""
    from ordermemo import __version__

    click.echo(f"ordermemo v{__version__}")


@main.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Show current configuration."""
    config_obj = ctx.obj["config"]
    settings = config_obj.to_dict()

    click.echo("Current Configuration:")
    click.echo(f"  Environment: {settings['environment']}")
    click.echo(f"  YNAB Budget: {settings['ynab']['budget_id'] or 'not set'}")
    click.echo(f"  YNAB Token: {settings['ynab']['api_token'] or 'not set'}")
    click.echo(f"  Payee Filter: {settings['ynab']['payee_filter']}")
    click.echo(f"  IMAP Server: {settings['email']['imap_server'] or 'not set'}:{settings['email']['imap_port']}")
    click.echo(f"  Mailbox: {settings['email']['inbox_name']}")
    click.echo(f"  Order Sender: {settings['extraction']['sender_address']}")
    click.echo(f"  Amount Tolerance: {settings['matching']['amount_tolerance']}")
    click.echo(f"  Date Tolerance: {settings['matching']['date_tolerance_days']} days")
    click.echo(f"  Historical Search: {settings['extraction']['historical_search_num_emails']} emails")
    click.echo(f"  Sync Interval: {settings['sync_interval_seconds']}s")
    click.echo(f"  Log Level: {settings['log_level']}")


from .orders import backfill, parse, run  # noqa: E402

main.add_command(parse)
main.add_command(backfill)
main.add_command(run)


if __name__ == "__main__":
    main()
