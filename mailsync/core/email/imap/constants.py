"""IMAP constants and configuration values."""


class IMAPResponse:
    """Standard IMAP response codes."""

    OK = "OK"
    NO = "NO"
    BAD = "BAD"


class Timeouts:
    """Per-command timeout values for IMAP operations (in seconds)."""

    IMAP_SELECT = 10.0  # SELECT folder timeout
    IMAP_SEARCH = 30.0  # SEARCH operation timeout
    IMAP_FETCH = 30.0  # FETCH operation timeout (per message)
    IMAP_LOGOUT = 5.0  # LOGOUT on graceful close


class FetchParts:
    """FETCH item lists. BODY.PEEK leaves the \\Seen flag untouched."""

    HEADERS = "(BODY.PEEK[HEADER.FIELDS (MESSAGE-ID SUBJECT FROM TO CC DATE)])"
    FULL = "(BODY.PEEK[])"


class IMAPFolders:
    """Standard IMAP folder names."""

    INBOX = "INBOX"
