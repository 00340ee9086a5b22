"""Domain models for the sync engine."""

from .email import CandidateMessage, NormalizedEmail
from .mailbox import FolderDescriptor, MailboxConfig, SyncCursor
from .sync import ClassifiedError, DiagnosticReport, ErrorKind, SyncResult

__all__ = [
    "CandidateMessage",
    "ClassifiedError",
    "DiagnosticReport",
    "ErrorKind",
    "FolderDescriptor",
    "MailboxConfig",
    "NormalizedEmail",
    "SyncCursor",
    "SyncResult",
]
