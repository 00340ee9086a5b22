"""
Tests for the folder sync worker

Tests cover:
- Candidate cap and ordering
- Dedup against the store
- Per-message failure isolation
- Folder-level failures and timeouts
"""
from datetime import datetime, timezone

import pytest

from mailsync.core.email.parser import MessageNormalizer
from mailsync.core.models import ErrorKind, SyncCursor
from mailsync.core.sync.worker import FolderSyncWorker
from mailsync.utils.errors import NetworkError

from .helpers import FakeMailServer, FakeMessage, MessageTestHelper


@pytest.fixture
def server():
    return FakeMailServer()


@pytest.fixture
async def session(server, mailbox):
    session = server.session_factory(mailbox)
    await session.open()
    return session


@pytest.fixture
def worker(store):
    return FolderSyncWorker(store, "mbx-1")


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_syncs_all_new_messages(self, worker, session, server, store, inbox, cursor):
        server.add_messages("INBOX", 3)

        result = await worker.sync_folder(session, inbox, cursor)

        assert result.success
        assert result.synced == 3
        assert result.errors == 0
        assert result.error is None
        assert result.folder == "INBOX"
        assert sorted(store.message_ids("folder-inbox")) == [
            "msg-1@example.com",
            "msg-2@example.com",
            "msg-3@example.com",
        ]

    @pytest.mark.asyncio
    async def test_search_uses_cursor_criteria(self, worker, session, server, inbox):
        server.add_messages("INBOX", 1)
        cursor = SyncCursor("mbx-1", datetime(2026, 10, 3, 22, 15, tzinfo=timezone.utc))

        await worker.sync_folder(session, inbox, cursor)

        assert server.search_criteria == ["SINCE 03-Oct-2026"]

    @pytest.mark.asyncio
    async def test_empty_folder(self, worker, session, server, inbox, cursor):
        server.folders["INBOX"] = []

        result = await worker.sync_folder(session, inbox, cursor)

        assert result.success
        assert result.synced == 0
        assert result.warnings == ["No new messages in INBOX"]


class TestCandidateCap:
    @pytest.mark.asyncio
    async def test_more_than_fifty_keeps_newest(self, worker, session, server, store, inbox, cursor):
        """Test 60 candidates: 50 newest processed, 10 reported skipped"""
        server.add_messages("INBOX", 60)

        result = await worker.sync_folder(session, inbox, cursor)

        assert result.synced == 50
        assert "10 older messages skipped in INBOX" in result.warnings
        fetched = [uid for _, uid in server.full_fetches]
        assert fetched == [str(i) for i in range(11, 61)]
        assert ("mbx-1", "msg-10@example.com") not in store.messages

    @pytest.mark.asyncio
    async def test_custom_cap(self, store, session, server, inbox, cursor):
        server.add_messages("INBOX", 5)
        worker = FolderSyncWorker(store, "mbx-1", max_candidates=2)

        result = await worker.sync_folder(session, inbox, cursor)

        assert result.synced == 2
        assert "3 older messages skipped in INBOX" in result.warnings

    @pytest.mark.parametrize("max_candidates", [0, -5])
    def test_rejects_cap_below_one(self, store, max_candidates):
        with pytest.raises(ValueError):
            FolderSyncWorker(store, "mbx-1", max_candidates=max_candidates)


class TestDedup:
    @pytest.mark.asyncio
    async def test_second_pass_syncs_nothing(self, worker, server, mailbox, store, inbox, cursor):
        """Test idempotence: nothing new remotely, nothing stored twice"""
        server.add_messages("INBOX", 4)

        first = server.session_factory(mailbox)
        await first.open()
        await worker.sync_folder(first, inbox, cursor)

        second = server.session_factory(mailbox)
        await second.open()
        result = await worker.sync_folder(second, inbox, cursor)

        assert result.synced == 0
        assert result.errors == 0
        assert len(store.messages) == 4
        assert len(server.full_fetches) == 4

    @pytest.mark.asyncio
    async def test_existing_messages_are_not_fetched(self, worker, session, server, store, inbox, cursor):
        messages = server.add_messages("INBOX", 3)
        await store.insert("mbx-1", "folder-inbox", _stored("msg-2@example.com"))

        result = await worker.sync_folder(session, inbox, cursor)

        assert result.synced == 2
        assert ("INBOX", messages[1].uid) not in server.full_fetches

    @pytest.mark.asyncio
    async def test_dedup_is_per_mailbox(self, store, session, server, inbox, cursor):
        server.add_messages("INBOX", 1)
        await store.insert("other-mailbox", "f", _stored("msg-1@example.com"))

        result = await FolderSyncWorker(store, "mbx-1").sync_folder(session, inbox, cursor)

        assert result.synced == 1


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_one_unparseable_message(self, worker, session, server, store, inbox, cursor):
        """Test 10 candidates with #5 unparseable: 9 synced, 1 error"""
        messages = server.add_messages("INBOX", 10)
        messages[4].raw = b"\r\nnot a mail message, no header block\r\n"

        result = await worker.sync_folder(session, inbox, cursor)

        assert result.synced == 9
        assert result.errors == 1
        assert result.success
        assert result.error.kind is ErrorKind.PARSE
        assert "no header fields" in result.error.message
        assert len(store.messages) == 9
        assert ("mbx-1", "msg-5@example.com") not in store.messages

    @pytest.mark.asyncio
    async def test_empty_payload(self, worker, session, server, store, inbox, cursor):
        messages = server.add_messages("INBOX", 3)
        messages[1].raw = b""

        result = await worker.sync_folder(session, inbox, cursor)

        assert result.synced == 2
        assert result.errors == 1
        assert result.error.kind is ErrorKind.PARSE

    @pytest.mark.asyncio
    async def test_insert_failure_counts_as_error(self, worker, session, server, store, inbox, cursor):
        server.add_messages("INBOX", 3)
        store.fail_inserts.add("msg-2@example.com")

        result = await worker.sync_folder(session, inbox, cursor)

        assert result.synced == 2
        assert result.errors == 1

    @pytest.mark.asyncio
    async def test_missing_message_id_is_skipped_not_errored(self, worker, session, server, inbox, cursor):
        server.add_messages("INBOX", 2)
        server.folders["INBOX"].append(
            FakeMessage(
                uid="3",
                headers=MessageTestHelper.build_headers(message_id=None),
                raw=MessageTestHelper.build_message(message_id=None),
            )
        )

        result = await worker.sync_folder(session, inbox, cursor)

        assert result.synced == 2
        assert result.errors == 0
        assert "Message without Message-ID skipped in INBOX" in result.warnings
        assert ("INBOX", "3") not in server.full_fetches


class TestFolderFailures:
    @pytest.mark.asyncio
    async def test_open_failure(self, worker, session, server, inbox, cursor):
        server.select_failures["INBOX"] = [NetworkError("Connection reset by peer")]

        result = await worker.sync_folder(session, inbox, cursor)

        assert not result.success
        assert result.synced == 0
        assert result.errors == 1
        assert result.warnings == ["Could not open folder INBOX"]
        assert result.error.kind is ErrorKind.CONNECTION

    @pytest.mark.asyncio
    async def test_missing_folder(self, worker, session, inbox, cursor):
        """Test a folder the server does not know is not retryable"""
        result = await worker.sync_folder(session, inbox, cursor)

        assert result.errors == 1
        assert not result.error.retryable

    @pytest.mark.asyncio
    async def test_search_failure(self, worker, session, server, inbox, cursor):
        server.add_messages("INBOX", 2)
        server.search_failures["INBOX"] = NetworkError("Connection reset")

        result = await worker.sync_folder(session, inbox, cursor)

        assert not result.success
        assert result.errors == 1
        assert result.warnings == ["Search failed in INBOX"]

    @pytest.mark.asyncio
    async def test_session_lost_mid_folder(self, worker, session, server, inbox, cursor):
        """Test the loop stops when the session dies"""
        server.add_messages("INBOX", 10)
        server.die_on_uid = "5"

        result = await worker.sync_folder(session, inbox, cursor)

        assert result.synced == 4
        assert result.errors == 1
        assert result.error.kind is ErrorKind.TIMEOUT
        assert "Connection lost in INBOX; 5 messages not processed" in result.warnings
        assert len(server.full_fetches) == 4

    @pytest.mark.asyncio
    async def test_folder_timeout_returns_partial_result(self, store, session, server, inbox, cursor):
        """Test the folder bound force-closes the session and keeps progress"""
        server.add_messages("INBOX", 10)
        server.fetch_delay = 0.03
        worker = FolderSyncWorker(store, "mbx-1", folder_timeout=0.1)

        result = await worker.sync_folder(session, inbox, cursor)

        assert result.synced < 10
        assert result.synced == len(store.messages)
        assert result.errors == 0
        assert result.error is None
        assert any("stopped after" in warning for warning in result.warnings)
        assert session.aborted
        assert not session.is_ready


def _stored(message_id):
    return MessageNormalizer().normalize(MessageTestHelper.build_message(message_id))
