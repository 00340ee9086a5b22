"""Folder sync worker - one pass over one folder inside a live session"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import List, Optional

from mailsync.core.database.repositories.base import SyncStore
from mailsync.core.email.imap.session import MailboxSession
from mailsync.core.email.parser import MessageNormalizer
from mailsync.core.models import (
    CandidateMessage,
    ClassifiedError,
    FolderDescriptor,
    SyncCursor,
    SyncResult,
)
from mailsync.core.sync.classifier import classify
from mailsync.utils.errors import MissingMessageIdError, NetworkTimeoutError
from mailsync.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_CANDIDATES = 50
DEFAULT_FOLDER_TIMEOUT = 180.0


@dataclass
class FolderProgress:
    """Running counters for a folder pass.

    Kept outside the pass coroutine so a timeout still leaves the partial
    counts behind.
    """

    synced: int = 0
    errors: int = 0
    already_stored: int = 0
    missing_id: int = 0
    warnings: List[str] = field(default_factory=list)
    error: Optional[ClassifiedError] = None

    def record_error(self, error: ClassifiedError) -> None:
        self.errors += 1
        if self.error is None:
            self.error = error

    def to_result(self, folder: str) -> SyncResult:
        return SyncResult(
            folder=folder,
            success=self.synced > 0,
            synced=self.synced,
            errors=self.errors,
            warnings=list(self.warnings),
            error=self.error,
        )


class FolderSyncWorker:
    """Sync one folder: search, cap, dedup, fetch, normalize, persist."""

    def __init__(
        self,
        store: SyncStore,
        mailbox_id: str,
        normalizer: Optional[MessageNormalizer] = None,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        folder_timeout: float = DEFAULT_FOLDER_TIMEOUT,
    ):
        """Initialise folder sync worker.

        Args:
            store: Persistence collaborator used for dedup and inserts
            mailbox_id: Mailbox the folder belongs to
            normalizer: MessageNormalizer (default: new instance)
            max_candidates: Newest candidates processed per pass (default: 50)
            folder_timeout: Wall-clock bound for the whole pass in seconds
        """
        if max_candidates < 1:
            raise ValueError("max_candidates must be >= 1")
        if folder_timeout <= 0:
            raise ValueError("folder_timeout must be > 0")

        self._store = store
        self.mailbox_id = mailbox_id
        self._normalizer = normalizer or MessageNormalizer()
        self.max_candidates = max_candidates
        self.folder_timeout = folder_timeout

    async def sync_folder(
        self,
        session: MailboxSession,
        folder: FolderDescriptor,
        cursor: SyncCursor,
    ) -> SyncResult:
        """Run one pass over a folder.

        Never raises for remote or data failures; they end up in the
        returned SyncResult.

        Args:
            session: Open session; not shared with any other folder
            folder: Folder to sync
            cursor: Mailbox cursor deciding the search window

        Returns:
            SyncResult for the pass
        """
        progress = FolderProgress()
        start_time = time.time()

        logger.info(
            "Starting folder sync",
            extra={
                "mailbox_id": self.mailbox_id,
                "folder": folder.name,
                "incremental": cursor.is_incremental,
            },
        )

        try:
            result = await asyncio.wait_for(
                self._run_pass(session, folder, cursor, progress),
                timeout=self.folder_timeout,
            )

        except asyncio.TimeoutError:
            session.abort(
                NetworkTimeoutError(
                    "Folder sync timed out",
                    details={"folder": folder.name, "timeout": self.folder_timeout},
                )
            )
            progress.warnings.append(
                f"Sync of {folder.name} stopped after {self.folder_timeout:g}s; "
                f"{progress.synced} messages synced"
            )
            logger.warning(
                "Folder sync timed out, returning partial result",
                extra={"folder": folder.name, "synced": progress.synced},
            )
            result = progress.to_result(folder.name)

        logger.info(
            "Folder sync completed",
            extra={
                "folder": folder.name,
                "success": result.success,
                "synced": result.synced,
                "errors": result.errors,
                "already_stored": progress.already_stored,
                "duration": round(time.time() - start_time, 2),
            },
        )
        return result

    async def _run_pass(
        self,
        session: MailboxSession,
        folder: FolderDescriptor,
        cursor: SyncCursor,
        progress: FolderProgress,
    ) -> SyncResult:
        try:
            await session.select_folder(folder.path)
        except Exception as e:
            logger.error(
                "Failed to open folder", extra={"folder": folder.path, "error": str(e)}
            )
            return SyncResult.failed(
                folder.name, classify(e), f"Could not open folder {folder.name}"
            )

        criteria = cursor.search_criteria()
        try:
            uids = await session.search(criteria)
        except Exception as e:
            logger.error(
                "Folder search failed",
                extra={"folder": folder.path, "criteria": criteria, "error": str(e)},
            )
            return SyncResult.failed(
                folder.name, classify(e), f"Search failed in {folder.name}"
            )

        if not uids:
            return SyncResult(
                folder=folder.name,
                success=True,
                warnings=[f"No new messages in {folder.name}"],
            )

        uids = self._cap(uids, folder, progress)

        for index, uid in enumerate(uids):
            try:
                await self._sync_message(session, folder, uid, progress)

            except Exception as e:
                classified = classify(e)
                progress.record_error(classified)

                if not session.is_ready:
                    # Session is gone; nothing further can be fetched
                    progress.error = classified
                    remaining = len(uids) - index - 1
                    progress.warnings.append(
                        f"Connection lost in {folder.name}; "
                        f"{remaining} messages not processed"
                    )
                    logger.error(
                        "Session lost during folder sync",
                        extra={"folder": folder.name, "uid": uid, "error": str(e)},
                    )
                    break

                logger.error(
                    "Failed to sync message",
                    extra={
                        "folder": folder.name,
                        "uid": uid,
                        "error_type": classified.kind.value,
                        "error": str(e),
                    },
                )

        if progress.missing_id == 1:
            progress.warnings.append(f"Message without Message-ID skipped in {folder.name}")
        elif progress.missing_id > 1:
            progress.warnings.append(
                f"{progress.missing_id} messages without Message-ID skipped in {folder.name}"
            )

        return progress.to_result(folder.name)

    def _cap(
        self, uids: List[str], folder: FolderDescriptor, progress: FolderProgress
    ) -> List[str]:
        """Keep the newest candidates; server order is oldest first."""
        if len(uids) <= self.max_candidates:
            return uids

        skipped = len(uids) - self.max_candidates
        progress.warnings.append(f"{skipped} older messages skipped in {folder.name}")
        logger.info(
            f"Capping folder pass at {self.max_candidates} messages",
            extra={"folder": folder.name, "found": len(uids), "skipped": skipped},
        )
        return uids[-self.max_candidates :]

    async def _identify(self, session: MailboxSession, uid: str) -> CandidateMessage:
        raw_headers = await session.fetch_headers(uid)
        return CandidateMessage(
            uid=uid, message_id=self._normalizer.extract_message_id(raw_headers)
        )

    async def _sync_message(
        self,
        session: MailboxSession,
        folder: FolderDescriptor,
        uid: str,
        progress: FolderProgress,
    ) -> None:
        """Process one candidate; raises on anything that counts as an error."""
        candidate = await self._identify(session, uid)

        if candidate.message_id is None:
            progress.missing_id += 1
            logger.warning(
                "Skipping message without Message-ID",
                extra={"folder": folder.name, "uid": uid},
            )
            return

        if await self._store.exists(self.mailbox_id, candidate.message_id):
            progress.already_stored += 1
            return

        raw_email = await session.fetch_full(candidate.uid)

        try:
            email = self._normalizer.normalize(
                raw_email, fallback_message_id=candidate.message_id
            )
        except MissingMessageIdError:
            progress.missing_id += 1
            return

        await self._store.insert(self.mailbox_id, folder.folder_id, email)
        progress.synced += 1

        logger.debug(
            "Stored message",
            extra={
                "folder": folder.name,
                "message_id": email.message_id,
                "preview": email.get_preview(60),
            },
        )
