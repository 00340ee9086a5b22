from .base import SyncStore
from .sync_store import SqlSyncStore

__all__ = ["SyncStore", "SqlSyncStore"]
