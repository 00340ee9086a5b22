"""Error classification - map raw failures to a fixed set of kinds."""

import asyncio
import socket
from email.errors import MessageError
from typing import Dict, Optional, Tuple

import aioimaplib

from mailsync.core.models.sync import ClassifiedError, ErrorKind
from mailsync.utils.errors import ErrorCategory, MailSyncError

# kind -> (user message, remediation hint)
HINTS: Dict[ErrorKind, Tuple[str, str]] = {
    ErrorKind.AUTHENTICATION: (
        "Authentication failed",
        "Check your credentials. Some providers (Gmail, Yahoo, iCloud) "
        "require an app-specific password.",
    ),
    ErrorKind.CONNECTION: (
        "Connection problem",
        "Check your internet connection and the IMAP server host and port.",
    ),
    ErrorKind.TIMEOUT: (
        "Connection timed out",
        "The mail server took too long to respond. Try again later.",
    ),
    ErrorKind.PARSE: (
        "Message could not be read",
        "One or more messages were malformed and were skipped.",
    ),
    ErrorKind.UNKNOWN: (
        "Unknown error",
        "An unexpected error occurred. Contact support if the problem persists.",
    ),
}

_CATEGORY_KINDS = {
    ErrorCategory.AUTHENTICATION: ErrorKind.AUTHENTICATION,
    ErrorCategory.NETWORK: ErrorKind.CONNECTION,
    ErrorCategory.TIMEOUT: ErrorKind.TIMEOUT,
    ErrorCategory.PARSE: ErrorKind.PARSE,
}

# Checked in order; "connection timed out" is a connection failure, not a timeout
_MESSAGE_PATTERNS = (
    (
        ErrorKind.AUTHENTICATION,
        (
            "authenticationfailed",
            "authentication failed",
            "no supported authentication method",
            "invalid credentials",
            "login failed",
            "[auth]",
        ),
    ),
    (
        ErrorKind.CONNECTION,
        (
            "econnrefused",
            "econnreset",
            "enotfound",
            "connection refused",
            "connection reset",
            "connection timed out",
            "name or service not known",
            "nodename nor servname",
            "network is unreachable",
        ),
    ),
    (ErrorKind.TIMEOUT, ("timeout", "timed out", "etimedout")),
)


def _kind_from_type(error: BaseException) -> Optional[ErrorKind]:
    if isinstance(error, MailSyncError):
        return _CATEGORY_KINDS.get(error.category)

    # CommandTimeout and asyncio.TimeoutError before OSError: TimeoutError is an OSError
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, aioimaplib.CommandTimeout)):
        return ErrorKind.TIMEOUT

    if isinstance(error, (ConnectionError, socket.gaierror, OSError)):
        return ErrorKind.CONNECTION

    if isinstance(error, (MessageError, UnicodeError)):
        return ErrorKind.PARSE

    return None


def _kind_from_message(message: str) -> ErrorKind:
    lowered = message.lower()
    for kind, needles in _MESSAGE_PATTERNS:
        if any(needle in lowered for needle in needles):
            return kind
    return ErrorKind.UNKNOWN


def classify(error: BaseException) -> ClassifiedError:
    """Classify a raw failure.

    Typed exceptions are mapped first; anything else falls back to matching
    well-known phrases in the error text. Pure and deterministic.

    Args:
        error: The exception that surfaced

    Returns:
        ClassifiedError with kind, user message and remediation hint
    """
    message = str(error) or error.__class__.__name__

    kind = _kind_from_type(error)
    if kind is None:
        kind = _kind_from_message(message)

    user_message, hint = HINTS[kind]
    return ClassifiedError(
        kind=kind,
        message=message,
        user_message=user_message,
        hint=hint,
        cause=error,
    )


def hint_for(kind: ErrorKind) -> str:
    return HINTS[kind][1]
