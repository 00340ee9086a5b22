"""Mailbox, folder and cursor models"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class MailboxConfig(BaseModel):
    """Connection settings for one remote mailbox.

    The credential is already decrypted by the caller; it is held as a
    ``SecretStr`` so it never appears in reprs or logs.
    """

    model_config = ConfigDict(frozen=True)

    mailbox_id: str
    host: str
    port: int = Field(default=993, gt=0, lt=65536)
    use_ssl: bool = True
    username: str
    password: SecretStr
    # None falls back to the engine-wide defaults in SyncSettings
    connect_timeout: Optional[float] = Field(default=None, gt=0)
    session_timeout: Optional[float] = Field(default=None, gt=0)

    @property
    def provider(self) -> str:
        """Domain part of the username, e.g. ``gmail.com``."""
        _, _, domain = self.username.rpartition("@")
        return domain.lower()


@dataclass
class FolderDescriptor:
    """A configured folder and its local bookkeeping."""

    folder_id: str
    name: str
    path: str
    message_count: int = 0
    last_synced_at: Optional[datetime] = None


@dataclass(frozen=True)
class SyncCursor:
    """Timestamp of the mailbox's last successful sync."""

    mailbox_id: str
    last_synced_at: Optional[datetime] = None

    @property
    def is_incremental(self) -> bool:
        return self.last_synced_at is not None

    def search_criteria(self) -> str:
        """Build the IMAP SEARCH criteria for this cursor.

        IMAP SINCE has day granularity, so the cursor's whole day is
        rescanned; dedup keeps that idempotent.
        """
        if self.last_synced_at is None:
            return "ALL"

        ts = self.last_synced_at
        if ts.tzinfo is not None:
            ts = ts.astimezone(timezone.utc)

        return f"SINCE {_imap_date(ts)}"

    def advanced_to(self, timestamp: datetime) -> "SyncCursor":
        return SyncCursor(mailbox_id=self.mailbox_id, last_synced_at=timestamp)


_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def _imap_date(ts: datetime) -> str:
    # strftime("%b") is locale dependent; IMAP requires English month names
    return f"{ts.day:02d}-{_MONTHS[ts.month - 1]}-{ts.year}"
