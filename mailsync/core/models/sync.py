"""Sync outcome models: classified errors, folder results, diagnostic reports."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from mailsync.core.models.mailbox import SyncCursor


class ErrorKind(Enum):
    """Fixed set of failure kinds used for retry and diagnostics."""

    AUTHENTICATION = "authentication"
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    PARSE = "parse"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.CONNECTION, ErrorKind.TIMEOUT)


@dataclass(frozen=True)
class ClassifiedError:
    """A failure reduced to its kind plus user-facing text."""

    kind: ErrorKind
    message: str
    user_message: str
    hint: str
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "message": self.message,
            "user_message": self.user_message,
            "hint": self.hint,
            "retryable": self.retryable,
        }


@dataclass
class SyncResult:
    """Outcome of one folder pass."""

    folder: str = ""
    success: bool = False
    synced: int = 0
    errors: int = 0
    warnings: List[str] = field(default_factory=list)
    error: Optional[ClassifiedError] = None

    @classmethod
    def failed(
        cls, folder: str, error: ClassifiedError, warning: str
    ) -> "SyncResult":
        """A pass that never got to process candidates."""
        return cls(
            folder=folder,
            success=False,
            synced=0,
            errors=1,
            warnings=[warning],
            error=error,
        )

    @property
    def is_total_failure(self) -> bool:
        return not self.success and self.synced == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "folder": self.folder,
            "success": self.success,
            "synced": self.synced,
            "errors": self.errors,
            "warnings": list(self.warnings),
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass
class DiagnosticReport:
    """Mailbox-level summary of a sync run."""

    mailbox_id: str
    username: str
    provider: str
    host: str
    port: int
    started_at: datetime
    finished_at: datetime
    folder_results: List[SyncResult] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    has_auth_error: bool = False
    has_connection_error: bool = False
    cursor_advanced: bool = False
    cursor: Optional[SyncCursor] = None
    status_message: str = ""

    @property
    def total_synced(self) -> int:
        return sum(result.synced for result in self.folder_results)

    @property
    def total_errors(self) -> int:
        return sum(result.errors for result in self.folder_results)

    @property
    def folders_processed(self) -> int:
        return len(self.folder_results)

    @property
    def success_rate(self) -> int:
        from mailsync.core.sync.diagnostics import success_rate

        return success_rate(self.total_synced, self.total_errors)

    @property
    def success(self) -> bool:
        return self.total_synced > 0 or self.total_errors == 0

    @property
    def error_kinds(self) -> List[ErrorKind]:
        """Distinct error kinds seen, in first-seen order."""
        kinds: List[ErrorKind] = []
        for result in self.folder_results:
            if result.error and result.error.kind not in kinds:
                kinds.append(result.error.kind)
        return kinds

    def to_dict(self) -> Dict[str, Any]:
        """Serialisable form for the trigger surface."""
        return {
            "timestamp": self.finished_at.isoformat(),
            "message": self.status_message,
            "success": self.success,
            "mailbox": {
                "id": self.mailbox_id,
                "username": self.username,
                "provider": self.provider,
                "host": self.host,
                "port": self.port,
            },
            "summary": {
                "total_synced": self.total_synced,
                "total_errors": self.total_errors,
                "folders_synced": self.folders_processed,
                "success_rate": self.success_rate,
                "duration_seconds": round(
                    (self.finished_at - self.started_at).total_seconds(), 2
                ),
            },
            "folder_results": [result.to_dict() for result in self.folder_results],
            "recommendations": list(self.recommendations),
            "cursor": {
                "advanced": self.cursor_advanced,
                "last_synced_at": self.cursor.last_synced_at.isoformat()
                if self.cursor and self.cursor.last_synced_at
                else None,
            },
        }
