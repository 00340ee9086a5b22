"""SQL sync store with SQLAlchemy Core queries."""

import json
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, literal_column, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mailsync.core.database.engine_manager import EngineManager
from mailsync.core.database.models import folders, mailboxes, messages
from mailsync.core.models import (
    FolderDescriptor,
    MailboxConfig,
    NormalizedEmail,
    SyncCursor,
)
from mailsync.utils.errors import DatabaseError, DuplicateMessageError
from mailsync.utils.logging import get_logger

from .base import SyncStore

logger = get_logger(__name__)


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SqlSyncStore(SyncStore):
    """SyncStore backed by SQLite through SQLAlchemy Core.

    Provides:
    - Dedup lookups keyed on (mailbox, Message-ID)
    - Inserts guarded by a unique constraint, so a lost dedup race
      surfaces as DuplicateMessageError instead of a second row
    - Upserts for folder and mailbox bookkeeping
    """

    def __init__(self, engine_manager: EngineManager):
        """Initialise store.

        Args:
            engine_manager: Engine manager for database access
        """
        self.engine_mgr = engine_manager

    async def exists(self, mailbox_id: str, message_id: str) -> bool:
        engine = await self.engine_mgr.get_engine()

        query = (
            select(messages.c.id)
            .where(messages.c.mailbox_id == mailbox_id)
            .where(messages.c.message_id == message_id)
            .limit(1)
        )

        try:
            async with engine.connect() as conn:
                result = await conn.execute(query)
                return result.first() is not None

        except SQLAlchemyError as e:
            raise DatabaseError(
                "Failed to look up message",
                details={"mailbox_id": mailbox_id, "message_id": message_id, "error": str(e)},
            ) from e

    async def insert(
        self, mailbox_id: str, folder_id: str, email: NormalizedEmail
    ) -> None:
        engine = await self.engine_mgr.get_engine()

        values = self._email_to_row(mailbox_id, folder_id, email)

        try:
            async with engine.begin() as conn:
                await conn.execute(messages.insert().values(**values))

        except IntegrityError as e:
            raise DuplicateMessageError(
                "Message already stored for this mailbox",
                details={"mailbox_id": mailbox_id, "message_id": email.message_id},
            ) from e

        except SQLAlchemyError as e:
            raise DatabaseError(
                "Failed to store message",
                details={"mailbox_id": mailbox_id, "message_id": email.message_id, "error": str(e)},
            ) from e

        logger.debug(f"Saved message {email.message_id} to folder {folder_id}")

    async def update_folder_count(
        self, folder_id: str, count: int, timestamp: datetime
    ) -> None:
        engine = await self.engine_mgr.get_engine()

        values = {"message_count": count, "last_synced_at": _to_iso(timestamp)}
        query = insert(folders).values(id=folder_id, **values)
        query = query.on_conflict_do_update(index_elements=["id"], set_=values)

        try:
            async with engine.begin() as conn:
                await conn.execute(query)

        except SQLAlchemyError as e:
            raise DatabaseError(
                "Failed to update folder bookkeeping",
                details={"folder_id": folder_id, "error": str(e)},
            ) from e

    async def update_mailbox_cursor(self, mailbox_id: str, timestamp: datetime) -> None:
        engine = await self.engine_mgr.get_engine()

        values = {"last_synced_at": _to_iso(timestamp)}
        query = insert(mailboxes).values(id=mailbox_id, **values)
        query = query.on_conflict_do_update(index_elements=["id"], set_=values)

        try:
            async with engine.begin() as conn:
                await conn.execute(query)

        except SQLAlchemyError as e:
            raise DatabaseError(
                "Failed to update mailbox cursor",
                details={"mailbox_id": mailbox_id, "error": str(e)},
            ) from e

        logger.info(
            "Mailbox cursor advanced",
            extra={"mailbox_id": mailbox_id, "last_synced_at": values["last_synced_at"]},
        )

    ## Registration and read helpers

    async def save_mailbox(self, config: MailboxConfig) -> None:
        """Register or refresh a mailbox row without touching its cursor."""
        engine = await self.engine_mgr.get_engine()

        values = {"username": config.username, "host": config.host, "port": config.port}
        query = insert(mailboxes).values(id=config.mailbox_id, **values)
        query = query.on_conflict_do_update(index_elements=["id"], set_=values)

        async with engine.begin() as conn:
            await conn.execute(query)

    async def save_folder(self, mailbox_id: str, folder: FolderDescriptor) -> None:
        """Register or refresh a folder row without touching its counters."""
        engine = await self.engine_mgr.get_engine()

        values = {"mailbox_id": mailbox_id, "name": folder.name, "path": folder.path}
        query = insert(folders).values(id=folder.folder_id, **values)
        query = query.on_conflict_do_update(index_elements=["id"], set_=values)

        async with engine.begin() as conn:
            await conn.execute(query)

    async def list_folders(self, mailbox_id: str) -> List[FolderDescriptor]:
        """Folders registered for a mailbox, in registration order."""
        engine = await self.engine_mgr.get_engine()

        query = (
            select(folders)
            .where(folders.c.mailbox_id == mailbox_id)
            .order_by(literal_column("rowid"))
        )

        async with engine.connect() as conn:
            result = await conn.execute(query)
            rows = result.mappings().all()

        return [
            FolderDescriptor(
                folder_id=row["id"],
                name=row["name"],
                path=row["path"],
                message_count=row["message_count"],
                last_synced_at=_from_iso(row["last_synced_at"]),
            )
            for row in rows
        ]

    async def get_mailbox_cursor(self, mailbox_id: str) -> SyncCursor:
        """Load the stored cursor; a mailbox never synced gets an empty one."""
        engine = await self.engine_mgr.get_engine()

        query = select(mailboxes.c.last_synced_at).where(mailboxes.c.id == mailbox_id)

        async with engine.connect() as conn:
            result = await conn.execute(query)
            row = result.first()

        return SyncCursor(
            mailbox_id=mailbox_id,
            last_synced_at=_from_iso(row[0]) if row else None,
        )

    async def count_messages(
        self, mailbox_id: str, folder_id: Optional[str] = None
    ) -> int:
        engine = await self.engine_mgr.get_engine()

        query = (
            select(func.count())
            .select_from(messages)
            .where(messages.c.mailbox_id == mailbox_id)
        )
        if folder_id is not None:
            query = query.where(messages.c.folder_id == folder_id)

        async with engine.connect() as conn:
            result = await conn.execute(query)
            return result.scalar() or 0

    @staticmethod
    def _email_to_row(
        mailbox_id: str, folder_id: str, email: NormalizedEmail
    ) -> dict:
        return {
            "mailbox_id": mailbox_id,
            "folder_id": folder_id,
            "message_id": email.message_id,
            "subject": email.subject,
            "sender_name": email.sender_name,
            "sender_email": email.sender_email,
            "to_addresses": json.dumps(list(email.to)),
            "cc_addresses": json.dumps(list(email.cc)),
            "bcc_addresses": json.dumps(list(email.bcc)),
            "text_body": email.text,
            "html_body": email.html,
            "sent_at": _to_iso(email.sent_at),
            "received_at": _to_iso(email.received_at),
        }
