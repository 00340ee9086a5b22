"""Email parsing - raw RFC822 payloads into NormalizedEmail records."""

import re
from datetime import datetime, timezone
from email import policy
from email.headerregistry import Address
from email.message import EmailMessage
from email.parser import BytesHeaderParser, BytesParser
from email.utils import getaddresses
from typing import Any, List, Optional, Tuple

from mailsync.core.models.email import NormalizedEmail
from mailsync.utils.errors import MailSyncError, MissingMessageIdError, ParseError
from mailsync.utils.logging import get_logger

logger = get_logger(__name__)

NO_SUBJECT = "(no subject)"

# Last-resort match for raw header blocks the structured parser chokes on
_MESSAGE_ID_PATTERN = re.compile(
    r"^Message-ID:[ \t]*(?:\r?\n[ \t]+)?<?([^<>\s]+)>?", re.IGNORECASE | re.MULTILINE
)


def clean_message_id(value: Any) -> Optional[str]:
    """Strip angle brackets and whitespace; None when nothing usable is left."""
    if value is None:
        return None

    text = str(value).strip()
    if text.startswith("<") and text.endswith(">"):
        text = text[1:-1].strip()

    if not text or "<" in text or ">" in text or any(ch.isspace() for ch in text):
        return None

    return text


def normalize_addresses(value: Any) -> List[str]:
    """Flatten any address-field shape into an ordered list of addresses.

    Accepts None, a raw header string, a single ``Address``, a ``Group``,
    an address header, or any sequence mixing those.
    """
    if value is None:
        return []

    if isinstance(value, Address):
        return [value.addr_spec] if value.username else []

    # Group objects and AddressHeader both expose .addresses
    addresses = getattr(value, "addresses", None)
    if addresses is not None:
        return normalize_addresses(list(addresses))

    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")

    if isinstance(value, str):
        return [addr for _, addr in getaddresses([value]) if addr]

    if isinstance(value, (list, tuple, set, frozenset)):
        result: List[str] = []
        for item in value:
            result.extend(normalize_addresses(item))
        return result

    return normalize_addresses(str(value))


class MessageNormalizer:
    """Parse MIME email messages into NormalizedEmail records"""

    @staticmethod
    def extract_message_id(raw_headers: bytes) -> Optional[str]:
        """Extract the Message-ID from a header-only fetch.

        Args:
            raw_headers: Raw header block (HEADER.FIELDS fetch result)

        Returns:
            Identifier without angle brackets, or None if absent/malformed
        """
        if not raw_headers:
            return None

        try:
            headers = BytesHeaderParser(policy=policy.default).parsebytes(
                bytes(raw_headers)
            )
            message_id = clean_message_id(headers.get("Message-ID"))
            if message_id:
                return message_id
        except Exception as e:
            logger.debug(f"Structured header parse failed, using pattern: {e}")

        text = bytes(raw_headers).decode("utf-8", errors="replace")
        match = _MESSAGE_ID_PATTERN.search(text)
        return clean_message_id(match.group(1)) if match else None

    def normalize(
        self,
        raw_email: bytes,
        fallback_message_id: Optional[str] = None,
        received_at: Optional[datetime] = None,
    ) -> NormalizedEmail:
        """Parse raw email bytes into a NormalizedEmail.

        Args:
            raw_email: Full RFC822 payload
            fallback_message_id: Identifier taken from the header-only fetch,
                used when the payload's own Message-ID is absent or malformed
            received_at: Local receipt time (defaults to now, UTC)

        Returns:
            NormalizedEmail with no None string fields

        Raises:
            ParseError: If the payload cannot be parsed
            MissingMessageIdError: If no usable identifier exists at all
        """
        received_at = received_at or datetime.now(timezone.utc)

        if not raw_email or not isinstance(raw_email, (bytes, bytearray)):
            raise ParseError("Empty or non-binary message payload")

        try:
            message = BytesParser(policy=policy.default).parsebytes(bytes(raw_email))

            if not message.keys():
                raise ParseError(
                    "Message has no header fields",
                    details={"defects": [type(d).__name__ for d in message.defects]},
                )

            message_id = clean_message_id(message.get("Message-ID")) or clean_message_id(
                fallback_message_id
            )
            if not message_id:
                raise MissingMessageIdError(
                    "Message has no usable Message-ID",
                    details={"subject": str(message.get("Subject") or "")},
                )

            sender_name, sender_email = self._sender(message)
            text, html = self._bodies(message)

            return NormalizedEmail(
                message_id=message_id,
                subject=self._subject(message),
                sender_name=sender_name,
                sender_email=sender_email,
                to=tuple(normalize_addresses(message.get("To"))),
                cc=tuple(normalize_addresses(message.get("Cc"))),
                bcc=tuple(normalize_addresses(message.get("Bcc"))),
                text=text,
                html=html,
                sent_at=self._sent_at(message) or received_at,
                received_at=received_at,
            )

        except MailSyncError:
            raise

        except Exception as e:
            raise ParseError(
                "Failed to parse email bytes",
                details={"fallback_message_id": fallback_message_id, "error": str(e)},
            ) from e

    @staticmethod
    def _subject(message: EmailMessage) -> str:
        subject = str(message.get("Subject") or "").strip()
        return subject or NO_SUBJECT

    @staticmethod
    def _sender(message: EmailMessage) -> Tuple[str, str]:
        header = message.get("From")
        if header is None:
            return "", ""

        addresses = getattr(header, "addresses", ())
        if not addresses:
            emails = normalize_addresses(str(header))
            return "", emails[0] if emails else ""

        first = addresses[0]
        return first.display_name or "", first.addr_spec if first.username else ""

    @staticmethod
    def _sent_at(message: EmailMessage) -> Optional[datetime]:
        header = message.get("Date")
        if header is None:
            return None

        try:
            sent_at = header.datetime
        except (AttributeError, TypeError, ValueError):
            return None

        if sent_at is None:
            return None
        if sent_at.tzinfo is None:
            return sent_at.replace(tzinfo=timezone.utc)
        return sent_at.astimezone(timezone.utc)

    @classmethod
    def _bodies(cls, message: EmailMessage) -> Tuple[str, str]:
        text_part = message.get_body(preferencelist=("plain",))
        html_part = message.get_body(preferencelist=("html",))

        text = cls._decode_part(text_part) if text_part is not None else ""
        html = cls._decode_part(html_part) if html_part is not None else ""
        return text, html

    @staticmethod
    def _decode_part(part: EmailMessage) -> str:
        try:
            content = part.get_content()
        except (LookupError, UnicodeError):
            # Unknown or lying charset; keep what we can
            payload = part.get_payload(decode=True) or b""
            return payload.decode("utf-8", errors="replace")

        if isinstance(content, bytes):
            return content.decode("utf-8", errors="replace")
        return content or ""
