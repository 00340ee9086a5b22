"""
Test helpers: message builders and in-memory doubles for the session and store
"""
import asyncio
from collections import namedtuple
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

from mailsync.core.database.repositories.base import SyncStore
from mailsync.core.models import MailboxConfig, NormalizedEmail
from mailsync.utils.errors import (
    DatabaseError,
    DuplicateMessageError,
    IMAPError,
    NetworkTimeoutError,
    SessionClosedError,
)

# Same shape as aioimaplib's Response namedtuple
Response = namedtuple("Response", "result lines")


class MailboxTestHelper:
    """Helper methods for mailbox configuration"""

    @staticmethod
    def create_config(**kwargs):
        """Create a MailboxConfig with test defaults"""
        defaults = {
            "mailbox_id": "mbx-1",
            "host": "imap.example.com",
            "port": 993,
            "use_ssl": True,
            "username": "user@example.com",
            "password": "app-password",
        }
        defaults.update(kwargs)
        return MailboxConfig(**defaults)


class MessageTestHelper:
    """Helper methods for building raw RFC822 messages"""

    @staticmethod
    def build_headers(message_id: Optional[str] = "msg-1@example.com", subject="Test Subject"):
        lines = [
            "From: Alice Sender <alice@example.com>",
            "To: bob@example.com",
            f"Subject: {subject}",
            "Date: Mon, 12 Oct 2026 09:30:00 +0000",
        ]
        if message_id is not None:
            lines.append(f"Message-ID: <{message_id}>")
        return ("\r\n".join(lines) + "\r\n\r\n").encode()

    @staticmethod
    def build_message(
        message_id: Optional[str] = "msg-1@example.com",
        subject="Test Subject",
        body="Hello Bob,\r\nsee you tomorrow.",
    ):
        headers = MessageTestHelper.build_headers(message_id, subject)
        return (
            headers[:-2]
            + b"MIME-Version: 1.0\r\nContent-Type: text/plain; charset=utf-8\r\n\r\n"
            + body.encode()
            + b"\r\n"
        )


@dataclass
class FakeMessage:
    uid: str
    headers: bytes
    raw: bytes


class FakeMailServer:
    """Scripted remote mailbox shared by every session it hands out"""

    def __init__(self):
        self.folders: Dict[str, List[FakeMessage]] = {}
        self.open_failures: List[Optional[Exception]] = []
        self.select_failures: Dict[str, List[Exception]] = {}
        self.search_failures: Dict[str, Exception] = {}
        self.fetch_delay = 0.0
        self.die_on_uid: Optional[str] = None
        self.sessions: List["FakeSession"] = []
        self.search_criteria: List[str] = []
        self.full_fetches: List[Tuple[str, str]] = []

    def add_messages(self, path: str, count: int, start: int = 1, prefix: str = "msg"):
        """Append ``count`` well-formed messages with ascending UIDs"""
        messages = self.folders.setdefault(path, [])
        for i in range(start, start + count):
            message_id = f"{prefix}-{i}@example.com"
            messages.append(
                FakeMessage(
                    uid=str(i),
                    headers=MessageTestHelper.build_headers(message_id, f"Message {i}"),
                    raw=MessageTestHelper.build_message(message_id, f"Message {i}"),
                )
            )
        return messages

    def session_factory(self, config: MailboxConfig) -> "FakeSession":
        session = FakeSession(self, config)
        self.sessions.append(session)
        return session


class FakeSession:
    """Stands in for MailboxSession against a FakeMailServer"""

    def __init__(self, server: FakeMailServer, config: MailboxConfig):
        self.server = server
        self.config = config
        self.state = "new"
        self.closed = False
        self.aborted = False
        self.selected: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.state == "ready"

    async def open(self):
        failure = self.server.open_failures.pop(0) if self.server.open_failures else None
        if failure is not None:
            self.state = "error"
            raise failure
        self.state = "ready"
        return self

    async def close(self):
        self.closed = True
        self.state = "closed"

    def abort(self, reason=None):
        self.aborted = True
        self.state = "closed"

    async def __aenter__(self):
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _check(self):
        if not self.is_ready:
            raise SessionClosedError("IMAP session is closed")

    def _message(self, uid: str) -> FakeMessage:
        for message in self.server.folders[self.selected]:
            if message.uid == uid:
                return message
        raise IMAPError(f"No message data returned for UID {uid}")

    async def select_folder(self, path: str):
        self._check()
        failures = self.server.select_failures.get(path)
        if failures:
            raise failures.pop(0)
        if path not in self.server.folders:
            raise IMAPError("IMAP operation failed: select", details={"response": "NO Mailbox doesn't exist"})
        self.selected = path

    async def search(self, criteria: str) -> List[str]:
        self._check()
        self.server.search_criteria.append(criteria)
        if self.selected in self.server.search_failures:
            raise self.server.search_failures[self.selected]
        return [message.uid for message in self.server.folders[self.selected]]

    async def fetch_headers(self, uid: str) -> bytes:
        self._check()
        return self._message(uid).headers

    async def fetch_full(self, uid: str) -> bytes:
        self._check()
        if self.server.fetch_delay:
            await asyncio.sleep(self.server.fetch_delay)
        if uid == self.server.die_on_uid:
            self.state = "closed"
            raise NetworkTimeoutError("IMAP fetch message timed out")
        self.server.full_fetches.append((self.selected, uid))
        return self._message(uid).raw


class FakeStore(SyncStore):
    """In-memory SyncStore recording every call"""

    def __init__(self):
        self.messages: Dict[Tuple[str, str], Tuple[str, NormalizedEmail]] = {}
        self.folder_counts: Dict[str, Tuple[int, object]] = {}
        self.cursor_updates: List[Tuple[str, object]] = []
        self.fail_inserts = set()
        self.fail_folder_updates = False

    async def exists(self, mailbox_id, message_id):
        return (mailbox_id, message_id) in self.messages

    async def insert(self, mailbox_id, folder_id, email):
        if email.message_id in self.fail_inserts:
            raise DatabaseError("Failed to store message")
        key = (mailbox_id, email.message_id)
        if key in self.messages:
            raise DuplicateMessageError("Message already stored for this mailbox")
        self.messages[key] = (folder_id, email)

    async def update_folder_count(self, folder_id, count, timestamp):
        if self.fail_folder_updates:
            raise DatabaseError("Failed to update folder bookkeeping")
        self.folder_counts[folder_id] = (count, timestamp)

    async def update_mailbox_cursor(self, mailbox_id, timestamp):
        self.cursor_updates.append((mailbox_id, timestamp))

    def message_ids(self, folder_id=None):
        return [
            message_id
            for (_, message_id), (stored_folder, _) in self.messages.items()
            if folder_id is None or stored_folder == folder_id
        ]


class IMAPClientTestHelper:
    """Helper methods for faking an aioimaplib client"""

    @staticmethod
    def create_mock_client():
        """Create a mock aioimaplib client answering OK to everything"""
        client = MagicMock()
        client.wait_hello_from_server = AsyncMock()
        client.login = AsyncMock(return_value=Response("OK", [b"LOGIN completed"]))
        client.select = AsyncMock(return_value=Response("OK", [b"3 EXISTS", b"SELECT completed"]))
        client.uid_search = AsyncMock(return_value=Response("OK", [b"3 1 2", b"SEARCH completed"]))
        client.uid = AsyncMock(
            return_value=Response(
                "OK",
                [
                    b"1 FETCH (UID 1 BODY[] {%d}" % len(MessageTestHelper.build_message()),
                    bytearray(MessageTestHelper.build_message()),
                    b")",
                    b"FETCH completed",
                ],
            )
        )
        client.logout = AsyncMock(return_value=Response("OK", [b"LOGOUT completed"]))
        client.protocol.transport = MagicMock()
        return client
