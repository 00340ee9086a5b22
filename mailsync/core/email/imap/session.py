"""IMAP session - one live, time-bounded connection to a single mailbox."""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

import aioimaplib

from mailsync.core.models.mailbox import MailboxConfig
from mailsync.core.models.sync import ClassifiedError
from mailsync.utils.errors import (
    IMAPError,
    InvalidCredentialsError,
    MailSyncError,
    NetworkError,
    NetworkTimeoutError,
    SessionClosedError,
)
from mailsync.utils.config import get_settings
from mailsync.utils.logging import get_logger

from .constants import FetchParts, IMAPFolders, IMAPResponse, Timeouts

logger = get_logger(__name__)

ClientFactory = Callable[[MailboxConfig], Any]
StateListener = Callable[["SessionState"], None]


class SessionState(Enum):
    """Lifecycle of a MailboxSession."""

    NEW = "new"
    READY = "ready"
    ERROR = "error"
    CLOSED = "closed"


def create_client(config: MailboxConfig) -> aioimaplib.IMAP4:
    """Create an aioimaplib client; the connection starts immediately."""
    client_cls = aioimaplib.IMAP4_SSL if config.use_ssl else aioimaplib.IMAP4
    timeout = config.connect_timeout or get_settings().connect_timeout
    return client_cls(host=config.host, port=config.port, timeout=timeout)


def _response_text(response: Any) -> str:
    lines = getattr(response, "lines", None) or []
    if not lines:
        return "No response"
    first = lines[0]
    if isinstance(first, (bytes, bytearray)):
        return bytes(first).decode("utf-8", errors="replace")
    return str(first)


def _extract_literal(lines: List[Any]) -> Optional[bytes]:
    """Return the message literal from a FETCH response.

    aioimaplib hands literals back as bytearray; status lines are bytes.
    """
    for line in lines:
        if isinstance(line, bytearray):
            return bytes(line)
    return None


class MailboxSession:
    """Owns one IMAP connection.

    ``open()`` is bounded by the mailbox's connect timeout. Once open, every
    command is bounded by the smaller of its own timeout and whatever is left
    of the session timeout. A timeout force-closes the transport; the session
    cannot be reused afterwards.

    Usage:
        async with MailboxSession(config) as session:
            await session.select_folder("INBOX")
            uids = await session.search("ALL")
    """

    def __init__(
        self,
        config: MailboxConfig,
        client_factory: Optional[ClientFactory] = None,
        on_state_change: Optional[StateListener] = None,
    ):
        settings = get_settings()
        self.config = config
        self.connect_timeout = config.connect_timeout or settings.connect_timeout
        self.session_timeout = config.session_timeout or settings.session_timeout
        self._client_factory = client_factory or create_client
        self._on_state_change = on_state_change
        self._client: Any = None
        self._state = SessionState.NEW
        self._deadline: Optional[float] = None
        self._selected_folder: Optional[str] = None
        self._lock = asyncio.Lock()
        self.last_error: Optional[MailSyncError] = None

    ## Lifecycle

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is SessionState.READY

    @property
    def selected_folder(self) -> Optional[str]:
        return self._selected_folder

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        self._state = state
        logger.debug(
            "IMAP session state changed",
            extra={"server": self.config.host, "state": state.value},
        )
        if self._on_state_change:
            self._on_state_change(state)

    async def open(self) -> "MailboxSession":
        """Connect and authenticate.

        Raises:
            InvalidCredentialsError: If the server rejects the login
            NetworkTimeoutError: If connect + login exceed connect_timeout
            NetworkError: If the connection cannot be established
        """
        if self._state is not SessionState.NEW:
            raise SessionClosedError(
                "IMAP session can only be opened once",
                details={"state": self._state.value},
            )

        config = self.config
        start_time = time.time()

        logger.info(
            "Connecting to IMAP server",
            extra={"server": config.host, "port": config.port, "ssl": config.use_ssl},
        )

        try:
            self._client = self._client_factory(config)
            await asyncio.wait_for(
                self._handshake(self._client), timeout=self.connect_timeout
            )

        except (asyncio.TimeoutError, aioimaplib.CommandTimeout) as e:
            logger.error(
                f"IMAP connection timed out after {time.time() - start_time:.2f}s"
            )
            raise self._fail(
                NetworkTimeoutError(
                    "IMAP connection timeout",
                    details={"server": config.host, "timeout": self.connect_timeout},
                )
            ) from e

        except MailSyncError as e:
            raise self._fail(e)

        except aioimaplib.AioImapException as e:
            error_msg = str(e).lower()
            if "authentication" in error_msg or "login" in error_msg:
                raise self._fail(
                    InvalidCredentialsError(
                        "IMAP authentication failed",
                        details={"server": config.host, "username": config.username},
                    )
                ) from e
            raise self._fail(
                NetworkError(
                    f"IMAP connection error: {e}", details={"server": config.host}
                )
            ) from e

        except Exception as e:
            raise self._fail(
                NetworkError(
                    f"Failed to connect to IMAP server: {e}",
                    details={"server": config.host},
                )
            ) from e

        self._deadline = asyncio.get_running_loop().time() + self.session_timeout
        self._set_state(SessionState.READY)

        logger.info(
            "IMAP connection established",
            extra={
                "server": config.host,
                "username": config.username,
                "duration_seconds": round(time.time() - start_time, 2),
            },
        )
        return self

    async def _handshake(self, client: Any) -> None:
        await client.wait_hello_from_server()

        response = await client.login(
            self.config.username, self.config.password.get_secret_value()
        )
        if response.result != IMAPResponse.OK:
            raise InvalidCredentialsError(
                "IMAP authentication failed",
                details={
                    "server": self.config.host,
                    "username": self.config.username,
                    "response": _response_text(response),
                },
            )

    def _fail(
        self, error: MailSyncError, state: SessionState = SessionState.ERROR
    ) -> MailSyncError:
        """Tear down the transport after a failure and return the error to raise."""
        self.last_error = error
        self._close_transport(self._client)
        self._client = None
        self._set_state(state)
        return error

    def abort(self, reason: Optional[MailSyncError] = None) -> None:
        """Force-close the transport without a LOGOUT round trip."""
        if self._state in (SessionState.ERROR, SessionState.CLOSED):
            return

        logger.warning(
            "Force-closing IMAP session",
            extra={"server": self.config.host, "reason": str(reason) if reason else None},
        )
        self._fail(
            reason or SessionClosedError("IMAP session aborted"), SessionState.CLOSED
        )

    async def close(self) -> None:
        """Close the session. Safe to call any number of times."""
        if self._state is SessionState.CLOSED:
            return

        client, self._client = self._client, None
        was_ready = self._state is SessionState.READY
        self._set_state(SessionState.CLOSED)

        if client is None:
            return

        if was_ready:
            try:
                await asyncio.wait_for(client.logout(), timeout=Timeouts.IMAP_LOGOUT)
                logger.debug("IMAP connection closed successfully")

            except Exception as e:
                logger.debug(f"Error closing IMAP connection: {e}")

        self._close_transport(client)

    @staticmethod
    def _close_transport(client: Any) -> None:
        protocol = getattr(client, "protocol", None)
        transport = getattr(protocol, "transport", None)
        if transport is not None:
            transport.close()

    ## Commands

    async def _command(
        self,
        operation: str,
        call: Callable[[Any], Awaitable[Any]],
        timeout: float,
    ) -> Any:
        """Run one IMAP command inside the session budget.

        Raises:
            SessionClosedError: If the session is not open
            NetworkTimeoutError: If the command or the session budget times out
            NetworkError: If the transport fails mid-command
            IMAPError: If the server answers NO or BAD
        """
        async with self._lock:
            if not self.is_ready:
                raise SessionClosedError(
                    f"Cannot {operation}: IMAP session is {self._state.value}",
                    details={"operation": operation, "state": self._state.value},
                )

            remaining = self._deadline - asyncio.get_running_loop().time()
            if remaining <= 0:
                error = NetworkTimeoutError(
                    "IMAP session timeout",
                    details={
                        "operation": operation,
                        "timeout": self.session_timeout,
                    },
                )
                self.abort(error)
                raise error

            try:
                response = await asyncio.wait_for(
                    call(self._client), timeout=min(timeout, remaining)
                )

            except (asyncio.TimeoutError, aioimaplib.CommandTimeout) as e:
                error = NetworkTimeoutError(
                    f"IMAP {operation} timed out",
                    details={"operation": operation, "server": self.config.host},
                )
                self.abort(error)
                raise error from e

            except (OSError, aioimaplib.AioImapException) as e:
                error = NetworkError(
                    f"IMAP {operation} failed: {e}",
                    details={"operation": operation, "server": self.config.host},
                )
                self._fail(error)
                raise error from e

        if response.result != IMAPResponse.OK:
            raise IMAPError(
                f"IMAP {operation} failed: {_response_text(response)}",
                details={
                    "operation": operation,
                    "response": _response_text(response),
                    "server": self.config.host,
                },
            )

        return response

    async def select_folder(self, path: str) -> None:
        """Select a folder for subsequent search/fetch calls.

        Args:
            path: Folder path on the server (e.g. "INBOX", "[Gmail]/Sent Mail")
        """
        await self._command(
            f"select {path}", lambda client: client.select(path), Timeouts.IMAP_SELECT
        )
        self._selected_folder = path
        logger.debug(f"Selected IMAP folder: {path}")

    async def search(self, criteria: str) -> List[str]:
        """Search the selected folder.

        Args:
            criteria: IMAP search criteria (e.g. "ALL", "SINCE 01-Oct-2026")

        Returns:
            Matching UIDs, oldest first
        """
        response = await self._command(
            "search", lambda client: client.uid_search(criteria), Timeouts.IMAP_SEARCH
        )

        uid_data = response.lines[0] if response.lines else b""
        if isinstance(uid_data, str):
            uid_data = uid_data.encode()

        uids = sorted(
            (int(token) for token in bytes(uid_data).split() if token.isdigit())
        )

        logger.debug(
            "UID search completed", extra={"criteria": criteria, "count": len(uids)}
        )
        return [str(uid) for uid in uids]

    async def fetch_headers(self, uid: str) -> bytes:
        """Fetch the identifying header fields of one message."""
        return await self._fetch(uid, FetchParts.HEADERS, "fetch headers")

    async def fetch_full(self, uid: str) -> bytes:
        """Fetch the complete RFC822 payload of one message."""
        return await self._fetch(uid, FetchParts.FULL, "fetch message")

    async def _fetch(self, uid: str, parts: str, operation: str) -> bytes:
        response = await self._command(
            operation,
            lambda client: client.uid("fetch", str(uid), parts),
            Timeouts.IMAP_FETCH,
        )

        payload = _extract_literal(response.lines)
        if payload is None:
            raise IMAPError(
                f"No message data returned for UID {uid}",
                details={"uid": uid, "operation": operation},
            )
        return payload

    ## Context Manager Helpers

    async def __aenter__(self) -> "MailboxSession":
        if self._state is SessionState.NEW:
            await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def probe_mailbox(
    config: MailboxConfig,
    folder: str = IMAPFolders.INBOX,
    client_factory: Optional[ClientFactory] = None,
) -> Optional[ClassifiedError]:
    """Check that a mailbox accepts a login and a folder selection.

    Returns:
        None when the mailbox is reachable, otherwise the classified failure
    """
    from mailsync.core.sync.classifier import classify

    session = MailboxSession(config, client_factory=client_factory)
    try:
        async with session:
            await session.select_folder(folder)
    except MailSyncError as e:
        logger.warning(
            "IMAP connection test failed",
            extra={"server": config.host, "error": str(e)},
        )
        return classify(e)

    logger.info("IMAP connection test succeeded", extra={"server": config.host})
    return None
