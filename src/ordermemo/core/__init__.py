"""
Core Utilities Package

Shared primitives used by the extraction, matching and sync packages.

This package provides:
- Currency handling with integer milliunit arithmetic
- Immutable Money and FinancialDate value types
- Configuration management for environment-specific settings
"""

from .config import (
    Config,
    ConfigurationError,
    EmailConfig,
    Environment,
    ExtractionConfig,
    MatchingConfig,
    YNABConfig,
    get_config,
    reload_config,
)
from .currency import (
    dollars_and_cents_to_milliunits,
    format_milliunits,
    milliunits_to_dollars_str,
    parse_dollars_to_milliunits,
    safe_dollars_to_milliunits,
)
from .dates import FinancialDate
from .money import Money

__all__ = [
    # Configuration
    "Config",
    "ConfigurationError",
    "EmailConfig",
    "Environment",
    "ExtractionConfig",
    "FinancialDate",
    "MatchingConfig",
    "Money",
    "YNABConfig",
    # Currency utilities
    "dollars_and_cents_to_milliunits",
    "format_milliunits",
    "get_config",
    "milliunits_to_dollars_str",
    "parse_dollars_to_milliunits",
    "reload_config",
    "safe_dollars_to_milliunits",
]
