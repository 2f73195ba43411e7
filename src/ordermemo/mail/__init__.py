"""
Mail Package

IMAP access to order-confirmation emails and concurrent batch extraction.
"""

from .batch import extract_batch, run_extraction
from .fetcher import (
    MailTransportError,
    OrderEmailFetcher,
    decode_header,
    extract_html_content,
    parse_order_email,
)

__all__ = [
    "MailTransportError",
    "OrderEmailFetcher",
    "decode_header",
    "extract_batch",
    "extract_html_content",
    "parse_order_email",
    "run_extraction",
]
