"""Diagnostics - run summaries, recommendations and health status."""

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from mailsync.core.models import (
    DiagnosticReport,
    ErrorKind,
    MailboxConfig,
    SyncCursor,
    SyncResult,
)
from mailsync.core.sync.classifier import hint_for

PROVIDER_GUIDANCE = {
    "gmail.com": "For Gmail, enable two-factor authentication and generate an app password.",
    "outlook.com": "For Outlook, use your regular password.",
    "yahoo.com": "For Yahoo, generate an app password.",
    "icloud.com": "For iCloud, generate an app password.",
    "aol.com": "For AOL, use your regular password.",
}

RECOMMENDATIONS = {
    ErrorKind.AUTHENTICATION: "Fix the authentication problem by checking your credentials.",
    ErrorKind.CONNECTION: "Check your internet connection and the server settings.",
    ErrorKind.TIMEOUT: "The server is responding slowly. Try again during off-peak hours.",
}

NOTHING_SYNCED = "No email was synchronised. Check your settings and permissions."

HEALTHY = "healthy"
WARNING = "warning"
ERROR = "error"

# Health thresholds
MAX_HEALTHY_ERRORS = 5
WARNING_AFTER = timedelta(hours=6)
ERROR_AFTER = timedelta(hours=24)


def success_rate(total_synced: int, total_errors: int) -> int:
    """Percentage of synced messages over everything attempted."""
    if total_errors == 0:
        return 100
    return round(total_synced / (total_synced + total_errors) * 100)


def provider_guidance(username: str) -> str:
    """Provider-specific login advice, keyed on the username's domain."""
    _, _, domain = username.lower().rpartition("@")
    return PROVIDER_GUIDANCE.get(
        domain, f"Check the IMAP settings documented by {domain or username}."
    )


def build_recommendations(
    kinds: Iterable[ErrorKind],
    total_synced: int,
    total_errors: int,
    username: str,
) -> List[str]:
    """Build user-facing recommendations for a run.

    Args:
        kinds: Error kinds seen during the run (duplicates are ignored)
        total_synced: Messages stored by the run
        total_errors: Errors counted by the run
        username: Mailbox login, used for provider guidance

    Returns:
        Recommendations, one per distinct kind, in first-seen order
    """
    recommendations: List[str] = []
    seen = set()

    for kind in kinds:
        if kind in seen:
            continue
        seen.add(kind)

        recommendations.append(RECOMMENDATIONS.get(kind) or hint_for(kind))
        if kind is ErrorKind.AUTHENTICATION:
            recommendations.append(provider_guidance(username))

    if total_synced == 0 and total_errors > 0:
        recommendations.append(NOTHING_SYNCED)

    return recommendations


def format_status_message(total_synced: int, total_errors: int) -> str:
    if total_errors == 0:
        return f"Sync succeeded: {total_synced} email(s) synchronised"
    if total_synced == 0:
        return "Sync failed: no email synchronised"
    return (
        f"Partial sync: {total_synced} email(s) synchronised, "
        f"{total_errors} error(s)"
    )


def health_status(
    last_sync: Optional[datetime],
    error_count: int,
    now: Optional[datetime] = None,
) -> str:
    """Classify mailbox health from its last sync time and recent errors.

    A mailbox that has never synced is in error.

    Returns:
        "healthy", "warning" or "error"
    """
    now = now or datetime.now(timezone.utc)
    if last_sync is None:
        return ERROR

    age = now - last_sync
    if error_count > MAX_HEALTHY_ERRORS or age > ERROR_AFTER:
        return ERROR
    if error_count > 0 or age > WARNING_AFTER:
        return WARNING
    return HEALTHY


def build_report(
    mailbox: MailboxConfig,
    results: List[SyncResult],
    started_at: datetime,
    finished_at: datetime,
    cursor: SyncCursor,
    cursor_advanced: bool,
) -> DiagnosticReport:
    """Assemble the DiagnosticReport for a finished run."""
    report = DiagnosticReport(
        mailbox_id=mailbox.mailbox_id,
        username=mailbox.username,
        provider=mailbox.provider,
        host=mailbox.host,
        port=mailbox.port,
        started_at=started_at,
        finished_at=finished_at,
        folder_results=list(results),
        cursor_advanced=cursor_advanced,
        cursor=cursor,
    )

    kinds = report.error_kinds
    report.has_auth_error = ErrorKind.AUTHENTICATION in kinds
    report.has_connection_error = ErrorKind.CONNECTION in kinds
    report.recommendations = build_recommendations(
        kinds, report.total_synced, report.total_errors, mailbox.username
    )
    report.status_message = format_status_message(
        report.total_synced, report.total_errors
    )
    return report
