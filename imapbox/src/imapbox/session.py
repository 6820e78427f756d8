"""Stateful IMAP session with explicit readiness and single-reconnect recovery.

What:
  Own exactly one ``imapclient.IMAPClient`` connection, remember which folder
  it has selected, and expose :meth:`Session.ensure_ready` as the single
  idempotent "connected and on folder X" precondition used by every other
  component.

Why:
  IMAP is session oriented: a SELECT made for one caller silently changes the
  meaning of sequence numbers and searches for the next. Sockets also go stale
  behind NAT boxes and idle timeouts. Making readiness and retry an explicit
  contract keeps that policy testable instead of scattering "reconnect if
  needed" code across every method.

How:
  Connection parameters come from :class:`SessionConfig`, whose unset fields
  are filled from the runtime configuration. A re-entrant lock serialises
  ``ensure_ready`` plus the protocol call that follows it
  (:meth:`Session.run`). A ``NOOP`` probe runs before reusing a connection that
  has been idle for ``probe_interval`` seconds. Transport failures discard the
  connection; exactly one transparent reconnect is attempted per logical
  operation, and a second consecutive failure is raised as
  :class:`~imapbox.errors.MailboxConnectionError`. The message count of the
  selected folder is taken from ``EXISTS`` in the ``SELECT`` response and kept
  current from the untagged ``EXISTS``/``EXPUNGE`` replies of later commands.

Interfaces:
  :class:`SessionConfig`, :class:`Session`, :data:`TRANSPORT_ERRORS`.

Invariants & Safety:
  - If the transport is non-null and a folder is recorded, that folder is the
    one selected on the server.
  - The recorded folder never takes the value of a folder the server
    rejected.
  - Operations never run against a connection selected on another folder.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientAbortError, IMAPClientError

from .config.loader import get_runtime_config
from .errors import FolderSelectError, MailboxConnectionError, NotReadyError
from .utils.logging import JsonLogger, get_logger

T = TypeVar("T")

TRANSPORT_ERRORS = (IMAPClientAbortError, OSError)
"""Exceptions meaning the connection itself is gone (abort, reset, timeout)."""


@dataclass
class SessionConfig:
    """Server address, credentials and connection policy for one session.

    What:
      Captures everything needed to (re)establish a connection without asking
      the caller again.

    Why:
      A reconnect must re-authenticate and re-select on its own. Holding the
      credentials next to the policy knobs keeps :class:`Session` free of
      constructor sprawl.

    How:
      Optional fields left as ``None`` are resolved in :meth:`__post_init__`
      from :func:`imapbox.config.loader.get_runtime_config`.

    Attributes:
      host: IMAP hostname.
      username: Login credential.
      password: Password or app-specific token.
      port: IMAP port.
      ssl: Whether to use implicit TLS.
      timeout: Socket timeout in seconds; the only cancellation mechanism.
      probe_interval: Idle seconds after which a ``NOOP`` probe runs before a
        connection is reused. ``None`` disables probing.
      readonly: Select folders with ``EXAMINE`` instead of ``SELECT``.
    """

    host: str
    username: str
    password: str = field(repr=False)
    port: Optional[int] = None
    ssl: Optional[bool] = None
    timeout: Optional[float] = None
    probe_interval: Optional[float] = None
    readonly: bool = False

    def __post_init__(self) -> None:
        settings = get_runtime_config().imap
        if self.port is None:
            self.port = settings.port
        if self.ssl is None:
            self.ssl = settings.ssl
        if self.timeout is None:
            self.timeout = settings.timeout
        if self.probe_interval is None:
            self.probe_interval = settings.probe_interval

    @property
    def server(self) -> str:
        """``host:port`` string used in logs and folder references."""

        return f"{self.host}:{self.port}"


class Session:
    """One live IMAP connection plus the folder it has selected.

    What:
      Connects, authenticates, selects, probes, and tears down the underlying
      ``IMAPClient`` on demand.

    Why:
      Higher layers (folder catalog, locator, loader, mailbox) should only say
      which folder they need; they never decide whether to reconnect.

    How:
      The connection is opened lazily by :meth:`ensure_ready`. :meth:`run`
      wraps ``ensure_ready`` and one protocol call in the session lock and
      applies the single-reconnect policy. :meth:`disconnect` is idempotent.
    """

    def __init__(self, config: SessionConfig, *, logger: Optional[JsonLogger] = None):
        self._config = config
        self._client: Optional[IMAPClient] = None
        self._selected: Optional[str] = None
        self._writable = False
        self._exists: Optional[int] = None
        self._last_used = 0.0
        self._lost: Optional[str] = None
        self._lock = threading.RLock()
        self._log = logger or get_logger("imapbox.session")

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def __repr__(self) -> str:
        state = "connected" if self._client is not None else "disconnected"
        return f"<Session {self._config.username}@{self._config.server} {state} folder={self._selected!r}>"

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def server(self) -> str:
        return self._config.server

    @property
    def lock(self) -> threading.RLock:
        """Lock guarding every protocol exchange on this session."""

        return self._lock

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def selected_folder(self) -> Optional[str]:
        return self._selected

    @property
    def writable(self) -> bool:
        """Whether the current selection accepts flag changes and expunge."""

        return self._client is not None and self._selected is not None and self._writable

    @property
    def exists(self) -> Optional[int]:
        """Last known message count of the selected folder, ``None`` when unknown."""

        return self._exists if self._selected is not None else None

    @property
    def transport(self) -> IMAPClient:
        """Return the live ``IMAPClient`` for direct protocol calls.

        Raises:
          NotReadyError: If :meth:`ensure_ready` has not succeeded, or the
            connection has since been torn down.
        """

        if self._client is None:
            raise NotReadyError("Session transport requested before ensure_ready succeeded")
        return self._client

    def get_transport(self) -> IMAPClient:
        return self.transport

    def ensure_ready(self, folder: Optional[str] = None) -> None:
        """Guarantee a connected transport with ``folder`` selected.

        What:
          Disconnected: connect, log in, select. Connected elsewhere: select
          only. Connected on ``folder``: nothing, unless the idle probe finds
          the connection stale, in which case it reconnects once.

        Args:
          folder: Folder to select, or ``None`` when any authenticated state
            will do (folder listing).

        Raises:
          MailboxConnectionError: When connecting, logging in, or the single
            reconnect fails.
          FolderSelectError: When the server rejects ``folder``.
        """

        with self._lock:
            self._ensure(folder)

    def run(self, folder: Optional[str], operation: Callable[[IMAPClient], T]) -> T:
        """Run ``operation`` against the transport once ``folder`` is ready.

        What:
          Executes one logical operation as a critical section: readiness plus
          the protocol call.

        Why:
          IMAP allows one outstanding command per connection and a folder
          switch between readiness and the call would break the selection
          invariant. Holding the lock across both closes that window.

        How:
          A transport failure during ``operation`` discards the connection,
          reconnects once, and re-runs ``operation``. If readiness already
          needed a reconnect, or the re-run fails too, the failure surfaces as
          :class:`~imapbox.errors.MailboxConnectionError`. Protocol-level
          ``NO``/``BAD`` responses propagate unchanged for the caller to map.

        Args:
          folder: Folder the operation must run against.
          operation: Callable receiving the live ``IMAPClient``.

        Returns:
          Whatever ``operation`` returns.
        """

        with self._lock:
            reconnected = self._ensure(folder)
            try:
                return self._call(operation)
            except TRANSPORT_ERRORS as exc:
                self._discard(exc)
                if reconnected:
                    raise MailboxConnectionError(
                        f"IMAP transport to {self.server} failed again after reconnect: {exc}"
                    ) from exc
            self._ensure(folder)
            try:
                return self._call(operation)
            except TRANSPORT_ERRORS as exc:
                self._discard(exc)
                raise MailboxConnectionError(
                    f"IMAP transport to {self.server} failed twice in a row: {exc}"
                ) from exc

    def message_count(self, folder: str) -> int:
        """Return the number of messages in ``folder``.

        What:
          Selects ``folder`` if needed, then issues ``NOOP`` so the server
          reports any ``EXISTS``/``EXPUNGE`` changes since the selection.

        Why:
          ``STATUS`` is not meant for the currently selected mailbox, while
          ``EXISTS`` is exactly what the selection already tracks.
        """

        def poll(client: IMAPClient) -> int:
            _text, responses = client.noop()
            self.apply_untagged(responses)
            return self._exists or 0

        return self.run(folder, poll)

    def apply_untagged(self, responses: Any) -> None:
        """Fold untagged ``EXISTS``/``EXPUNGE`` replies into the tracked count.

        Accepts the ``(number, keyword)`` pairs ``IMAPClient`` returns from
        ``noop``, ``expunge`` and ``idle_check``; other entries are ignored.
        """

        for response in responses or ():
            if not isinstance(response, tuple) or len(response) < 2 or not isinstance(response[0], int):
                continue
            keyword = response[1]
            if keyword == b"EXISTS":
                self._exists = response[0]
            elif keyword == b"EXPUNGE" and self._exists:
                self._exists -= 1

    def disconnect(self) -> None:
        """Log out and release the transport. Safe to call repeatedly."""

        with self._lock:
            client = self._client
            self._client = None
            self._selected = None
            self._exists = None
            self._lost = None
            if client is None:
                return
            try:
                client.logout()
            except (IMAPClientError, OSError) as exc:
                self._log.warning("Logout failed, dropping transport", server=self.server, error=str(exc))
                self._shutdown(client)
            self._log.info("IMAP session closed", server=self.server)

    def _ensure(self, folder: Optional[str]) -> bool:
        """Bring the session to ``folder``; return whether it reconnected."""

        if self._client is not None and self._probe_due():
            self._probe()
        if self._client is None:
            reconnecting = self._lost is not None
            if reconnecting:
                self._log.warning("Reconnecting IMAP session", server=self.server, reason=self._lost)
            self._connect(folder)
            return reconnecting
        if folder is not None and folder != self._selected:
            try:
                self._select(folder)
            except MailboxConnectionError:
                self._log.warning("Reconnecting IMAP session", server=self.server, reason=self._lost)
                self._connect(folder)
                return True
        self._touch()
        return False

    def _call(self, operation: Callable[[IMAPClient], T]) -> T:
        result = operation(self.transport)
        self._touch()
        return result

    def _connect(self, folder: Optional[str]) -> None:
        cfg = self._config
        try:
            client = IMAPClient(cfg.host, port=cfg.port, ssl=cfg.ssl, timeout=cfg.timeout)
        except (IMAPClientError, OSError) as exc:
            self._log.error("IMAP connection failed", server=self.server, error=str(exc))
            raise MailboxConnectionError(f"Unable to connect to {self.server}: {exc}") from exc
        try:
            client.login(cfg.username, cfg.password)
        except (IMAPClientError, OSError) as exc:
            self._log.error("IMAP login rejected", server=self.server, username=cfg.username, error=str(exc))
            self._shutdown(client)
            raise MailboxConnectionError(
                f"Login for {cfg.username!r} on {self.server} failed: {exc}"
            ) from exc
        self._client = client
        self._selected = None
        self._lost = None
        self._touch()
        self._log.info("IMAP session opened", server=self.server, username=cfg.username)
        if folder is not None:
            self._select(folder)

    def _select(self, folder: str) -> None:
        """Select ``folder`` on the current transport.

        A failed ``SELECT`` leaves the server with no folder selected, so the
        recorded folder is cleared before the attempt.
        """

        client = self.transport
        self._selected = None
        try:
            response: Any = client.select_folder(folder, readonly=self._config.readonly)
        except TRANSPORT_ERRORS as exc:
            self._discard(exc)
            raise MailboxConnectionError(f"Transport lost while selecting {folder!r}: {exc}") from exc
        except IMAPClientError as exc:
            self._log.warning("Folder selection rejected", server=self.server, folder=folder, error=str(exc))
            raise FolderSelectError(folder, exc) from exc
        self._selected = folder
        self._writable = not self._config.readonly and bool(_response_value(response, b"READ-WRITE", True))
        exists = _response_value(response, b"EXISTS", None)
        self._exists = int(exists) if exists is not None else None
        self._touch()
        self._log.debug("Folder selected", server=self.server, folder=folder, writable=self._writable)

    def _probe_due(self) -> bool:
        interval = self._config.probe_interval
        return interval is not None and time.monotonic() - self._last_used >= interval

    def _probe(self) -> bool:
        try:
            _text, responses = self.transport.noop()
        except (IMAPClientError, OSError) as exc:
            self._log.warning("Liveness probe failed", server=self.server, error=str(exc))
            self._discard(exc)
            return False
        self.apply_untagged(responses)
        self._touch()
        return True

    def _discard(self, reason: BaseException) -> None:
        """Drop a connection known to be broken without a LOGOUT round-trip."""

        client = self._client
        self._client = None
        self._selected = None
        self._lost = f"{type(reason).__name__}: {reason}"
        if client is not None:
            self._log.warning("IMAP transport discarded", server=self.server, reason=self._lost)
            self._shutdown(client)

    def _shutdown(self, client: IMAPClient) -> None:
        try:
            client.shutdown()
        except OSError as exc:
            self._log.debug("Socket shutdown failed", server=self.server, error=str(exc))

    def _touch(self) -> None:
        self._last_used = time.monotonic()


def _response_value(response: Any, key: bytes, default: Any) -> Any:
    if isinstance(response, dict):
        return response.get(key, default)
    return default
