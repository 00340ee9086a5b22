"""Persistence interface used by the sync engine."""

from abc import ABC, abstractmethod
from datetime import datetime

from mailsync.core.models import NormalizedEmail


class SyncStore(ABC):
    """Where synced messages and sync bookkeeping end up."""

    @abstractmethod
    async def exists(self, mailbox_id: str, message_id: str) -> bool:
        """Check if a message is already stored for a mailbox.

        Args:
            mailbox_id: Mailbox the message belongs to
            message_id: Message-ID without angle brackets

        Returns:
            True if the message exists, False otherwise.
        """
        pass

    @abstractmethod
    async def insert(
        self, mailbox_id: str, folder_id: str, email: NormalizedEmail
    ) -> None:
        """Persist a new message.

        Args:
            mailbox_id: Mailbox the message belongs to
            folder_id: Folder the message was found in
            email: The normalized message

        Raises:
            DuplicateMessageError: If the message is already stored
            DatabaseError: If the write fails
        """
        pass

    @abstractmethod
    async def update_folder_count(
        self, folder_id: str, count: int, timestamp: datetime
    ) -> None:
        """Record a folder's message count and last sync time."""
        pass

    @abstractmethod
    async def update_mailbox_cursor(self, mailbox_id: str, timestamp: datetime) -> None:
        """Record the mailbox's last successful sync time."""
        pass
