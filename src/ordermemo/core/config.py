#!/usr/bin/env python3
"""
Configuration Management for ordermemo

Handles environment-based configuration with secure defaults and validation.
Supports multiple environments (development, test, production) with the
logging format appropriate for each.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dotenv import load_dotenv

from .money import Money

# Load environment variables from .env file
load_dotenv()

DEFAULT_SENDER_ADDRESS = "auto-confirm@amazon.com"

DEFAULT_EXCLUDE_PATTERNS = [
    "View or edit order",
    "Your Orders",
    "Your Account",
    "Buy Again",
    "Track package",
]


class ConfigurationError(ValueError):
    """Required configuration is missing or invalid."""


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


@dataclass
class YNABConfig:
    """YNAB API configuration."""

    api_token: str | None = None
    budget_id: str | None = None
    base_url: str = "https://api.ynab.com/v1"
    timeout: int = 30
    payee_filter: str = "amazon"


@dataclass
class EmailConfig:
    """IMAP configuration for order-confirmation fetching."""

    imap_server: str | None = None
    imap_port: int = 993
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    inbox_name: str = "INBOX"


@dataclass
class MatchingConfig:
    """Reconciliation tolerances."""

    amount_tolerance: Money = field(default_factory=lambda: Money.from_dollars("0.5"))
    date_tolerance_days: int = 4


@dataclass
class ExtractionConfig:
    """Order email extraction settings."""

    sender_address: str = DEFAULT_SENDER_ADDRESS
    exclude_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    historical_search_num_emails: int = 500


@dataclass
class Config:
    """
    Main configuration class for ordermemo.

    Loads configuration from environment variables with secure defaults
    and validation for each environment type.
    """

    environment: Environment

    # Component configurations
    ynab: YNABConfig
    email: EmailConfig
    matching: MatchingConfig
    extraction: ExtractionConfig

    # Application settings
    sync_interval_seconds: int = 60
    debug: bool = False
    log_level: str = "INFO"

    # Values that failed to parse, reported by validate()
    parse_errors: list[str] = field(default_factory=list)

    @classmethod
    def from_environment(cls) -> "Config":
        """Create configuration from environment variables."""
        parse_errors: list[str] = []

        try:
            env = Environment(os.getenv("ORDERMEMO_ENV", "development"))
        except ValueError:
            parse_errors.append(f"Unknown ORDERMEMO_ENV: {os.getenv('ORDERMEMO_ENV')}")
            env = Environment.DEVELOPMENT

        ynab = YNABConfig(
            api_token=os.getenv("YNAB_TOKEN"),
            budget_id=os.getenv("YNAB_BUDGET_ID"),
            base_url=os.getenv("YNAB_BASE_URL", "https://api.ynab.com/v1"),
            timeout=_parse_int("YNAB_TIMEOUT", 30, parse_errors),
            payee_filter=os.getenv("YNAB_PAYEE_FILTER", "amazon"),
        )

        email = EmailConfig(
            imap_server=os.getenv("IMAP_INCOMING_HOST"),
            imap_port=_parse_int("IMAP_INCOMING_PORT", 993, parse_errors),
            username=os.getenv("IMAP_USERNAME"),
            password=os.getenv("IMAP_PASSWORD"),
            use_tls=os.getenv("IMAP_TLS", "true").lower() == "true",
            inbox_name=os.getenv("IMAP_INBOX_NAME", "INBOX"),
        )

        tolerance_str = os.getenv("YNAB_ACCEPTABLE_DOLLAR_DIFFERENCE", "0.5")
        try:
            amount_tolerance = Money.from_dollars(tolerance_str)
        except ValueError:
            parse_errors.append(f"Invalid YNAB_ACCEPTABLE_DOLLAR_DIFFERENCE: {tolerance_str!r}")
            amount_tolerance = Money.from_dollars("0.5")

        matching = MatchingConfig(
            amount_tolerance=amount_tolerance,
            date_tolerance_days=_parse_int("YNAB_ACCEPTABLE_DATE_DIFFERENCE", 4, parse_errors),
        )

        exclude_env = os.getenv("ITEM_EXCLUDE_PATTERNS")
        extraction = ExtractionConfig(
            sender_address=os.getenv("ORDER_SENDER_ADDRESS", DEFAULT_SENDER_ADDRESS).strip().lower(),
            exclude_patterns=(
                _parse_list(exclude_env) if exclude_env is not None else list(DEFAULT_EXCLUDE_PATTERNS)
            ),
            historical_search_num_emails=_parse_int("HISTORICAL_SEARCH_NUM_EMAILS", 500, parse_errors),
        )

        return cls(
            environment=env,
            ynab=ynab,
            email=email,
            matching=matching,
            extraction=extraction,
            sync_interval_seconds=_parse_int("SYNC_INTERVAL_SECONDS", 60, parse_errors),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            parse_errors=parse_errors,
        )

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = list(self.parse_errors)

        if self.environment == Environment.PRODUCTION and not self.ynab.api_token:
            errors.append("YNAB_TOKEN is required in production")

        if self.email.username and not self.email.password:
            errors.append("IMAP_PASSWORD is required when IMAP_USERNAME is provided")

        if self.ynab.timeout <= 0:
            errors.append("YNAB timeout must be positive")
        if self.email.imap_port <= 0 or self.email.imap_port > 65535:
            errors.append("IMAP port must be 1-65535")
        if self.matching.amount_tolerance.to_milliunits() < 0:
            errors.append("Amount tolerance must be non-negative")
        if self.matching.date_tolerance_days < 0:
            errors.append("Date tolerance must be non-negative")
        if self.extraction.historical_search_num_emails < 0:
            errors.append("Historical search size must be non-negative")
        if self.sync_interval_seconds <= 0:
            errors.append("Sync interval must be positive")
        if not self.extraction.sender_address:
            errors.append("ORDER_SENDER_ADDRESS must not be empty")

        return errors

    def require_runtime_settings(self) -> None:
        """
        Check the settings needed to talk to YNAB and the mail server.

        Raises:
            ConfigurationError: If any required identifier is missing
        """
        missing = [
            name
            for name, value in [
                ("YNAB_TOKEN", self.ynab.api_token),
                ("YNAB_BUDGET_ID", self.ynab.budget_id),
                ("IMAP_INCOMING_HOST", self.email.imap_server),
                ("IMAP_USERNAME", self.email.username),
                ("IMAP_PASSWORD", self.email.password),
            ]
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    def setup_logging(self) -> None:
        """Configure logging based on configuration."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.environment == Environment.DEVELOPMENT:
            format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            format_str = "%(asctime)s - %(levelname)s - %(message)s"

        logging.basicConfig(level=level, format=format_str, datefmt="%Y-%m-%d %H:%M:%S")

        # Reduce noise from external libraries in production
        if self.environment == Environment.PRODUCTION:
            logging.getLogger("urllib3").setLevel(logging.WARNING)
            logging.getLogger("requests").setLevel(logging.WARNING)

    def get_sensitive_fields(self) -> list[str]:
        """Get list of field names that contain sensitive data."""
        return [
            "ynab.api_token",
            "email.password",
            "email.username",
        ]

    def to_dict(self, include_sensitive: bool = False) -> dict[str, Any]:
        """Convert configuration to dictionary, optionally excluding sensitive data."""
        result: dict[str, Any] = {}

        for field_name, field_value in self.__dict__.items():
            if field_name == "parse_errors":
                continue
            if hasattr(field_value, "__dict__") and not isinstance(field_value, (Enum, Money)):
                nested_dict: dict[str, Any] = {}
                for nested_name, nested_value in field_value.__dict__.items():
                    full_field_name = f"{field_name}.{nested_name}"

                    if not include_sensitive and full_field_name in self.get_sensitive_fields():
                        nested_dict[nested_name] = "***REDACTED***" if nested_value else None
                    elif isinstance(nested_value, Money):
                        nested_dict[nested_name] = str(nested_value)
                    else:
                        nested_dict[nested_name] = nested_value

                result[field_name] = nested_dict
            elif isinstance(field_value, Enum):
                result[field_name] = field_value.value
            else:
                result[field_name] = field_value

        return result


def _parse_list(value: str, delimiter: str = ",") -> list[str]:
    """Parse comma-separated string into list, handling empty values."""
    if not value:
        return []
    return [item.strip() for item in value.split(delimiter) if item.strip()]


def _parse_int(name: str, default: int, errors: list[str]) -> int:
    """Read an integer environment variable, recording a parse error instead of raising."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        errors.append(f"Invalid integer for {name}: {raw!r}")
        return default


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        config = Config.from_environment()

        errors = config.validate()
        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

        config.setup_logging()
        _config = config

    return _config


def reload_config() -> Config:
    """Reload configuration from environment (useful for testing)."""
    global _config
    _config = None
    return get_config()
