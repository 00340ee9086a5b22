"""Synchronisation engine: classify, retry, sync folders, report.

Usage:
    >>> from mailsync.core.sync import SyncOrchestrator
    >>>
    >>> orchestrator = SyncOrchestrator(store)
    >>> report = await orchestrator.run(mailbox, folders, cursor)
    >>> print(report.status_message)
"""

from .classifier import classify, hint_for
from .diagnostics import (
    build_recommendations,
    build_report,
    format_status_message,
    health_status,
    provider_guidance,
    success_rate,
)
from .orchestrator import SyncOrchestrator
from .retry import RetryPolicy, is_retryable, with_retry
from .worker import FolderSyncWorker

__all__ = [
    "FolderSyncWorker",
    "RetryPolicy",
    "SyncOrchestrator",
    "build_recommendations",
    "build_report",
    "classify",
    "format_status_message",
    "health_status",
    "hint_for",
    "is_retryable",
    "provider_guidance",
    "success_rate",
    "with_retry",
]
