"""Email domain models"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class CandidateMessage:
    """A message found by a folder search, before the full fetch.

    ``uid`` is only meaningful inside the session that produced it;
    ``message_id`` comes from the headers and is what dedup keys on.
    """

    uid: str
    message_id: Optional[str] = None


@dataclass(frozen=True)
class NormalizedEmail:
    """Parsed email ready for persistence."""

    message_id: str
    subject: str
    sender_name: str
    sender_email: str
    sent_at: datetime
    received_at: datetime
    to: Tuple[str, ...] = field(default_factory=tuple)
    cc: Tuple[str, ...] = field(default_factory=tuple)
    bcc: Tuple[str, ...] = field(default_factory=tuple)
    text: str = ""
    html: str = ""

    def get_preview(self, max_length: int = 100) -> str:
        """Get a one-line preview of the body."""
        preview = " ".join((self.text or self.subject).split())
        if len(preview) <= max_length:
            return preview
        return preview[: max_length - 3] + "..."
