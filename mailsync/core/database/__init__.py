"""Database access layer - public API."""

from .base import create_engine, dispose_engine, metadata
from .config import DatabaseConfig, get_config, reset_config
from .engine_manager import EngineManager
from .models import ALL_TABLES, folders, mailboxes, messages
from .repositories import SqlSyncStore, SyncStore

__all__ = [
    "ALL_TABLES",
    "DatabaseConfig",
    "EngineManager",
    "SqlSyncStore",
    "SyncStore",
    "create_engine",
    "dispose_engine",
    "folders",
    "get_config",
    "mailboxes",
    "messages",
    "metadata",
    "reset_config",
]
