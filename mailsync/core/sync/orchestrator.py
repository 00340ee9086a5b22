"""Sync orchestrator - runs every configured folder of one mailbox"""

from datetime import datetime, timezone
from functools import partial
from typing import Callable, List, Optional

from mailsync.core.database.repositories.base import SyncStore
from mailsync.core.email.imap.session import MailboxSession
from mailsync.core.email.parser import MessageNormalizer
from mailsync.core.models import (
    DiagnosticReport,
    FolderDescriptor,
    MailboxConfig,
    SyncCursor,
    SyncResult,
)
from mailsync.core.sync.classifier import classify
from mailsync.core.sync.diagnostics import build_report
from mailsync.core.sync.retry import RetryPolicy
from mailsync.core.sync.worker import FolderSyncWorker
from mailsync.utils.config import SyncSettings, get_settings
from mailsync.utils.logging import async_log_call, get_logger, init_logging, log_event

logger = get_logger(__name__)

SessionFactory = Callable[[MailboxConfig], MailboxSession]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncOrchestrator:
    """Sync a mailbox folder by folder and summarise the run.

    Each folder attempt gets a fresh session that is closed on every exit
    path. Folders run one after another in configuration order.
    """

    def __init__(
        self,
        store: SyncStore,
        session_factory: Optional[SessionFactory] = None,
        settings: Optional[SyncSettings] = None,
        retry_policy: Optional[RetryPolicy] = None,
        normalizer: Optional[MessageNormalizer] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialise sync orchestrator.

        Args:
            store: Persistence collaborator
            session_factory: Builds a session for a mailbox (default: MailboxSession)
            settings: Engine tunables (default: settings singleton)
            retry_policy: Retry policy per folder (default: built from settings)
            normalizer: MessageNormalizer shared by all folder passes
            clock: Returns the current UTC time (default: datetime.now)
        """
        self._store = store
        self._session_factory = session_factory or MailboxSession
        self.settings = settings or get_settings()
        init_logging().set_level(self.settings.log_level)
        self._retry = retry_policy or RetryPolicy(
            max_retries=self.settings.max_retries, delay=self.settings.retry_delay
        )
        self._normalizer = normalizer or MessageNormalizer()
        self._clock = clock or _utcnow

    @async_log_call
    async def run(
        self,
        mailbox: MailboxConfig,
        folders: List[FolderDescriptor],
        cursor: Optional[SyncCursor] = None,
    ) -> DiagnosticReport:
        """Sync the given folders and build the diagnostic report.

        Never raises for a failed run; failures are reported.

        Args:
            mailbox: Mailbox connection settings with decrypted credential
            folders: Folders to sync, in order; their bookkeeping is updated
            cursor: Last successful sync (default: none, full scan)

        Returns:
            DiagnosticReport for the run
        """
        cursor = cursor or SyncCursor(mailbox_id=mailbox.mailbox_id)
        started_at = self._clock()

        logger.info(
            "Starting mailbox sync",
            extra={
                "mailbox_id": mailbox.mailbox_id,
                "server": mailbox.host,
                "folders": len(folders),
                "criteria": cursor.search_criteria(),
            },
        )

        worker = FolderSyncWorker(
            self._store,
            mailbox.mailbox_id,
            normalizer=self._normalizer,
            max_candidates=self.settings.max_candidates,
            folder_timeout=self.settings.folder_timeout,
        )

        results: List[SyncResult] = []
        for folder in folders:
            result = await self._retry.run(
                partial(self._attempt, mailbox, worker, folder, cursor)
            )
            results.append(result)
            await self._update_folder(folder, result)

        total_synced = sum(result.synced for result in results)
        total_errors = sum(result.errors for result in results)

        new_cursor = cursor
        advanced = False
        if total_synced > 0 or total_errors == 0:
            advanced = await self._advance_cursor(mailbox.mailbox_id, started_at)
            if advanced:
                new_cursor = cursor.advanced_to(started_at)

        report = build_report(
            mailbox,
            results,
            started_at=started_at,
            finished_at=self._clock(),
            cursor=new_cursor,
            cursor_advanced=advanced,
        )

        log_event(
            "sync_completed",
            report.status_message,
            level="INFO" if total_errors == 0 else "WARNING",
            mailbox_id=mailbox.mailbox_id,
            total_synced=total_synced,
            total_errors=total_errors,
            folders=report.folders_processed,
            success_rate=report.success_rate,
            cursor_advanced=advanced,
        )

        return report

    async def _attempt(
        self,
        mailbox: MailboxConfig,
        worker: FolderSyncWorker,
        folder: FolderDescriptor,
        cursor: SyncCursor,
    ) -> SyncResult:
        """One try at a folder, on its own session."""
        try:
            session = self._session_factory(mailbox)
            async with session:
                return await worker.sync_folder(session, folder, cursor)

        except Exception as e:
            classified = classify(e)
            logger.error(
                "Folder sync attempt failed",
                extra={
                    "mailbox_id": mailbox.mailbox_id,
                    "folder": folder.name,
                    "error_type": classified.kind.value,
                    "error": classified.message,
                },
            )
            return SyncResult.failed(
                folder.name,
                classified,
                f"Could not sync {folder.name}: {classified.user_message}",
            )

    async def _update_folder(self, folder: FolderDescriptor, result: SyncResult) -> None:
        folder.message_count += result.synced
        folder.last_synced_at = self._clock()

        try:
            await self._store.update_folder_count(
                folder.folder_id, folder.message_count, folder.last_synced_at
            )
        except Exception as e:
            logger.error(
                "Failed to update folder bookkeeping",
                extra={"folder_id": folder.folder_id, "error": str(e)},
            )

    async def _advance_cursor(self, mailbox_id: str, timestamp: datetime) -> bool:
        try:
            await self._store.update_mailbox_cursor(mailbox_id, timestamp)
        except Exception as e:
            logger.error(
                "Failed to advance mailbox cursor",
                extra={"mailbox_id": mailbox_id, "error": str(e)},
            )
            return False
        return True
