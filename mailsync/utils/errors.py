"""Exception hierarchy shared by the sync engine."""

from enum import Enum
from typing import Any, Dict


## Error Categories


class ErrorCategory(Enum):
    """Categories of errors for better handling."""

    DATABASE = "database"
    NETWORK = "network"
    PROTOCOL = "protocol"
    TIMEOUT = "timeout"
    AUTHENTICATION = "authentication"
    PARSE = "parse"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


## Custom Exceptions


class MailSyncError(Exception):
    """Base exception for all mailsync errors."""

    category = ErrorCategory.UNKNOWN
    user_message = "An error occurred"

    def __init__(
        self, message: str | None = None, details: Dict[str, Any] | None = None
    ):
        """Initialise MailSyncError with optional message and details."""
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error details to a dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


## Database Errors


class DatabaseError(MailSyncError):
    """Base exception for database-related errors."""

    category = ErrorCategory.DATABASE
    user_message = "A database error occurred"


class DatabaseConnectionError(DatabaseError):
    """Exception for database connection failures."""

    user_message = "Failed to connect to the database"


class DuplicateMessageError(DatabaseError):
    """Exception when a message identifier is already stored for a mailbox."""

    user_message = "Message already stored"


## Network Errors


class NetworkError(MailSyncError):
    """Base exception for network-related errors."""

    category = ErrorCategory.NETWORK
    user_message = "A network error occurred"


class IMAPError(NetworkError):
    """Exception for commands the IMAP server answered with NO or BAD."""

    category = ErrorCategory.PROTOCOL
    user_message = "The mail server rejected the request"


class SessionClosedError(NetworkError):
    """Exception for calls made on a session that is no longer usable."""

    user_message = "The mail server session is closed"


class NetworkTimeoutError(NetworkError):
    """Exception for network timeout errors."""

    category = ErrorCategory.TIMEOUT
    user_message = "The connection timed out"


## Authentication Errors


class AuthenticationError(MailSyncError):
    """Base exception for authentication-related errors."""

    category = ErrorCategory.AUTHENTICATION
    user_message = "An authentication error occurred"


class InvalidCredentialsError(AuthenticationError):
    """Exception for invalid login credentials."""

    user_message = "Invalid username or password"


## Parse Errors


class ParseError(MailSyncError):
    """Exception for messages that cannot be parsed."""

    category = ErrorCategory.PARSE
    user_message = "Failed to parse email message"


class MissingMessageIdError(ParseError):
    """Exception for messages carrying no usable Message-ID."""

    user_message = "Email has no Message-ID"


## Configuration Errors


class ConfigurationError(MailSyncError):
    """Base exception for configuration-related errors."""

    category = ErrorCategory.CONFIGURATION
    user_message = "A configuration error occurred"


class InvalidConfigError(ConfigurationError):
    """Exception for invalid configuration settings."""

    user_message = "Invalid configuration settings"

