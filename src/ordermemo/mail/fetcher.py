#!/usr/bin/env python3
"""
Order Email Fetcher Module

IMAP access to the mailbox that receives Amazon order confirmations.
Messages are addressed by sequence number: header-only fetches are used to
find order emails cheaply, full fetches only for the ones that matter.
"""

import email
import email.header
import email.message
import email.utils
import imaplib
import logging
import re
from datetime import datetime

from ..amazon.models import OrderEmail
from ..core.config import EmailConfig, get_config

logger = logging.getLogger(__name__)

HEADER_FIELDS = "BODY.PEEK[HEADER.FIELDS (FROM SUBJECT)]"
FULL_MESSAGE = "(BODY.PEEK[])"

_EXISTS_PATTERN = re.compile(rb"(\d+)")


class MailTransportError(RuntimeError):
    """The IMAP server could not be reached or refused a command."""


class OrderEmailFetcher:
    """
    Fetches order-confirmation emails over IMAP.

    The mailbox is always selected read-only so fetching never changes
    \\Seen flags.
    """

    def __init__(self, config: EmailConfig | None = None):
        """Initialize with email configuration."""
        if config is None:
            config = get_config().email
        self.config = config
        self.connection: imaplib.IMAP4 | None = None

    def connect(self) -> None:
        """
        Connect and log in to the IMAP server.

        Raises:
            MailTransportError: If the connection or login fails
        """
        logger.info(f"Connecting to mail server {self.config.imap_server}:{self.config.imap_port}...")
        try:
            if self.config.use_tls:
                self.connection = imaplib.IMAP4_SSL(self.config.imap_server or "", self.config.imap_port)
            else:
                self.connection = imaplib.IMAP4(self.config.imap_server or "", self.config.imap_port)
            self.connection.login(self.config.username or "", self.config.password or "")
        except (imaplib.IMAP4.error, OSError) as e:
            self.connection = None
            raise MailTransportError(f"Failed to connect to IMAP server: {e}") from e

        logger.info("Successfully connected to mail server!")

    def disconnect(self) -> None:
        """Disconnect from IMAP server."""
        if self.connection:
            try:
                self.connection.logout()
                logger.info("Mail server connection closed")
            except (imaplib.IMAP4.error, OSError) as e:
                logger.warning(f"Error during disconnect: {e}")
            finally:
                self.connection = None

    def _require_connection(self) -> imaplib.IMAP4:
        if self.connection is None:
            raise MailTransportError("Not connected to IMAP server")
        return self.connection

    def select_inbox(self) -> int:
        """
        Open the configured mailbox read-only.

        Returns:
            Number of messages in the mailbox
        """
        connection = self._require_connection()
        logger.info(f"Opening mailbox {self.config.inbox_name}...")
        try:
            result, data = connection.select(self.config.inbox_name, readonly=True)
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailTransportError(f"Cannot select mailbox {self.config.inbox_name}: {e}") from e

        if result != "OK":
            raise MailTransportError(f"Cannot select mailbox {self.config.inbox_name}: {data!r}")
        return _parse_count(data)

    def poll_message_count(self) -> int:
        """
        Ask the server for the current message count.

        NOOP lets the server report new EXISTS; re-selecting makes the count
        authoritative even when the server does not push it.
        """
        connection = self._require_connection()
        try:
            connection.noop()
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailTransportError(f"IMAP NOOP failed: {e}") from e
        return self.select_inbox()

    def fetch_senders(self, start: int, end: int) -> list[tuple[int, str]]:
        """
        Fetch only the From header for a range of sequence numbers.

        Returns:
            List of (sequence number, decoded From header)
        """
        if end < start or end < 1:
            return []
        start = max(start, 1)

        connection = self._require_connection()
        try:
            result, data = connection.fetch(f"{start}:{end}", f"({HEADER_FIELDS})")
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailTransportError(f"Header fetch {start}:{end} failed: {e}") from e
        if result != "OK":
            raise MailTransportError(f"Header fetch {start}:{end} failed: {data!r}")

        senders = []
        for part in data:
            if not isinstance(part, tuple) or len(part) < 2:
                continue
            envelope, raw_headers = part[0], part[1]
            seq_match = _EXISTS_PATTERN.match(envelope)
            if not seq_match or not isinstance(raw_headers, bytes):
                continue
            headers = email.message_from_bytes(raw_headers)
            senders.append((int(seq_match.group(1)), decode_header(headers.get("From", ""))))
        return senders

    def fetch_email(self, seqno: int) -> OrderEmail:
        """
        Fetch and decode one full message.

        Raises:
            MailTransportError: If the message cannot be fetched
        """
        connection = self._require_connection()
        try:
            result, data = connection.fetch(str(seqno), FULL_MESSAGE)
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailTransportError(f"Fetch of message {seqno} failed: {e}") from e

        if result != "OK" or not data or not isinstance(data[0], tuple):
            raise MailTransportError(f"Fetch of message {seqno} returned no data")

        raw_email = data[0][1]
        if not isinstance(raw_email, bytes):
            raise MailTransportError(f"Expected bytes for message {seqno}, got {type(raw_email)}")

        return parse_order_email(raw_email, seqno=seqno)


def parse_order_email(raw_email: bytes, seqno: int | None = None) -> OrderEmail:
    """Build an OrderEmail from a raw RFC822 message."""
    msg = email.message_from_bytes(raw_email)

    date_str = msg.get("Date", "")
    try:
        email_date = email.utils.parsedate_to_datetime(date_str)
    except (TypeError, ValueError):
        logger.warning(f"Unparseable Date header {date_str!r}, using current time")
        email_date = datetime.now()

    return OrderEmail(
        sender=decode_header(msg.get("From", "")),
        subject=decode_header(msg.get("Subject", "")),
        html_content=extract_html_content(msg),
        date=email_date,
        message_id=msg.get("Message-ID"),
        metadata={"seqno": seqno, "size": len(raw_email)},
    )


def extract_html_content(msg: email.message.Message) -> str:
    """
    Extract the HTML body of a message, falling back to plain text.

    Transfer encodings (quoted-printable, base64) are decoded here.
    """
    html_content = None
    text_content = None

    for part in msg.walk() if msg.is_multipart() else [msg]:
        if "attachment" in str(part.get("Content-Disposition", "")):
            continue

        content_type = part.get_content_type()
        if content_type not in ("text/html", "text/plain"):
            continue

        payload = part.get_payload(decode=True)
        if not isinstance(payload, bytes):
            continue
        charset = part.get_content_charset() or "utf-8"
        try:
            content = payload.decode(charset, errors="ignore")
        except LookupError:
            content = payload.decode("utf-8", errors="ignore")

        if content_type == "text/html" and html_content is None:
            html_content = content
        elif content_type == "text/plain" and text_content is None:
            text_content = content

    return html_content or text_content or ""


def decode_header(header: str) -> str:
    """Decode an RFC 2047 encoded header."""
    if not header:
        return ""

    decoded_parts = []
    for part, encoding in email.header.decode_header(header):
        if isinstance(part, bytes):
            try:
                decoded_parts.append(part.decode(encoding or "utf-8", errors="ignore"))
            except LookupError:
                decoded_parts.append(part.decode("utf-8", errors="ignore"))
        else:
            decoded_parts.append(str(part))
    return "".join(decoded_parts)


def _parse_count(data: list) -> int:
    if not data or data[0] is None:
        return 0
    raw = data[0]
    if isinstance(raw, bytes):
        match = _EXISTS_PATTERN.match(raw.strip())
        return int(match.group(1)) if match else 0
    return int(raw)
