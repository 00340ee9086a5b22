"""
Shared test fixtures and configuration for pytest
"""
import os
import tempfile

# Logs must land in a scratch directory before mailsync is first imported
os.environ.setdefault("MAILSYNC_HOME", tempfile.mkdtemp(prefix="mailsync-tests-"))

from pathlib import Path

import pytest

from mailsync.core.database import DatabaseConfig, EngineManager, SqlSyncStore
from mailsync.core.database.config import reset_config
from mailsync.core.models import FolderDescriptor, SyncCursor
from mailsync.utils.config import reset_settings

from .helpers import FakeStore, MailboxTestHelper


@pytest.fixture(autouse=True)
def clear_env_vars():
    """Clear engine environment overrides before each test"""
    env_vars = [
        'MAILSYNC_MAX_CANDIDATES', 'MAILSYNC_FOLDER_TIMEOUT',
        'MAILSYNC_MAX_RETRIES', 'MAILSYNC_RETRY_DELAY',
        'MAILSYNC_CONNECT_TIMEOUT', 'MAILSYNC_SESSION_TIMEOUT',
        'MAILSYNC_LOG_LEVEL', 'DB_POOL_SIZE', 'DB_QUERY_TIMEOUT',
    ]
    original = {}
    for var in env_vars:
        original[var] = os.environ.get(var)
        if var in os.environ:
            del os.environ[var]
    reset_settings()
    reset_config()

    yield

    for var, value in original.items():
        if value is not None:
            os.environ[var] = value
        elif var in os.environ:
            del os.environ[var]
    reset_settings()
    reset_config()


@pytest.fixture
def mailbox():
    """Mailbox configuration for a test account"""
    return MailboxTestHelper.create_config()


@pytest.fixture
def inbox():
    """INBOX folder descriptor"""
    return FolderDescriptor(folder_id="folder-inbox", name="INBOX", path="INBOX")


@pytest.fixture
def cursor():
    """Cursor of a mailbox that has never synced"""
    return SyncCursor(mailbox_id="mbx-1")


@pytest.fixture
def store():
    """In-memory sync store"""
    return FakeStore()


@pytest.fixture
async def sql_store():
    """SqlSyncStore on a temporary SQLite file"""
    with tempfile.TemporaryDirectory() as temp_dir:
        engine_mgr = EngineManager(Path(temp_dir) / "test_mailsync.db", config=DatabaseConfig())
        yield SqlSyncStore(engine_mgr)
        await engine_mgr.close()
