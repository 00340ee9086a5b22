"""mailsync - incremental, idempotent IMAP mailbox synchronisation."""

from mailsync.core.database import EngineManager, SqlSyncStore, SyncStore
from mailsync.core.email.imap import MailboxSession, SessionState, probe_mailbox
from mailsync.core.email.parser import MessageNormalizer
from mailsync.core.models import (
    CandidateMessage,
    ClassifiedError,
    DiagnosticReport,
    ErrorKind,
    FolderDescriptor,
    MailboxConfig,
    NormalizedEmail,
    SyncCursor,
    SyncResult,
)
from mailsync.core.sync import (
    FolderSyncWorker,
    RetryPolicy,
    SyncOrchestrator,
    classify,
    health_status,
    with_retry,
)

__version__ = "0.1.0"

__all__ = [
    "CandidateMessage",
    "ClassifiedError",
    "DiagnosticReport",
    "EngineManager",
    "ErrorKind",
    "FolderDescriptor",
    "FolderSyncWorker",
    "MailboxConfig",
    "MailboxSession",
    "MessageNormalizer",
    "NormalizedEmail",
    "RetryPolicy",
    "SessionState",
    "SqlSyncStore",
    "SyncCursor",
    "SyncOrchestrator",
    "SyncResult",
    "SyncStore",
    "classify",
    "health_status",
    "probe_mailbox",
    "with_retry",
]
