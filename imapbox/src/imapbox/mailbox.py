"""Mailbox façade: folder selection, counting, searching, fetching, expunging.

What:
  Compose :class:`~imapbox.session.Session`,
  :class:`~imapbox.folders.FolderCatalog`,
  :class:`~imapbox.search.MessageLocator` and
  :class:`~imapbox.loader.MessageLoader` behind one object.

Why:
  Application code should think in folders and messages, not in ``SELECT``
  state. Every read or mutating call here first asks the session to be ready on
  the active folder, so callers cannot forget the precondition.

How:
  :meth:`Mailbox.select_folder` only validates and records the folder; the
  protocol ``SELECT`` happens lazily inside the next operation's
  :meth:`~imapbox.session.Session.run`. Searches return a
  :class:`~imapbox.cursor.SearchCursor` of UIDs rather than messages.

Interfaces:
  :class:`Mailbox`.

Invariants & Safety:
  - A rejected ``select_folder`` never changes the active folder.
  - Folder-scoped calls without an active folder raise
    :class:`~imapbox.errors.NoFolderSelectedError`.
"""
from __future__ import annotations

from typing import Optional, Tuple

from imapclient.exceptions import IMAPClientError

from .cursor import SearchCursor
from .errors import FolderNotFoundError, NoFolderSelectedError
from .folders import FolderCatalog
from .loader import MessageLoader
from .message import Message, MessageIdentifier
from .search import MessageLocator, QueryLike, render_query
from .session import Session
from .utils.logging import JsonLogger, get_logger


class Mailbox:
    """High level view of one account reached through a :class:`Session`."""

    def __init__(
        self,
        session: Session,
        *,
        catalog: Optional[FolderCatalog] = None,
        loader: Optional[MessageLoader] = None,
        logger: Optional[JsonLogger] = None,
    ):
        self._session = session
        self._catalog = catalog or FolderCatalog()
        self._loader = loader or MessageLoader()
        self._locator = MessageLocator(session)
        self._folder: Optional[str] = None
        self._log = logger or get_logger("imapbox.mailbox")

    def __enter__(self) -> "Mailbox":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<Mailbox {self._session.config.username}@{self._session.server} folder={self._folder!r}>"

    @property
    def session(self) -> Session:
        return self._session

    @property
    def catalog(self) -> FolderCatalog:
        return self._catalog

    @property
    def folder(self) -> Optional[str]:
        return self._folder

    def get_folder(self) -> Optional[str]:
        return self._folder

    def get_folders(self) -> Tuple[str, ...]:
        """Return every folder on the account (cached after the first call)."""

        return self._catalog.list(self._session)

    def select_folder(self, name: str) -> "Mailbox":
        """Make ``name`` the active folder and return ``self`` for chaining.

        The name is checked against the folder catalog; the server-side
        ``SELECT`` is deferred to the next operation.

        Raises:
          FolderNotFoundError: If ``name`` is not an existing folder.
        """

        self._catalog.list(self._session)
        if not self._catalog.contains(name):
            raise FolderNotFoundError(name)
        self._folder = name
        return self

    def count(self) -> int:
        """Number of messages in the active folder, from the selection's ``EXISTS``."""

        return self._session.message_count(self._require_folder())

    def get_messages(self, query: QueryLike = None, reverse: bool = True) -> SearchCursor:
        """Search the active folder and return a cursor over matching UIDs.

        What:
          Runs a ``UID SEARCH`` with ``query`` (``ALL`` when omitted).

        Why:
          Returning UIDs keeps memory flat and keeps the cursor valid after
          expunges.

        Args:
          query: :class:`~imapbox.search.SearchQuery` or raw IMAP search text.
          reverse: Order most recently arrived first.

        Returns:
          A possibly empty :class:`~imapbox.cursor.SearchCursor`.
        """

        folder = self._require_folder()
        uids = self._locator.locate(folder, query, reverse=reverse)
        self._log.debug("Search completed", folder=folder, query=render_query(query), matches=len(uids))
        return SearchCursor(self._session, folder, uids, reverse=reverse, loader=self._loader)

    search = get_messages

    def get_message(self, msg_no: Optional[int] = None, uid: Optional[int] = None) -> Message:
        """Fetch one message by sequence number or UID, exactly one of them.

        Raises:
          InvalidIdentifierError: If both or neither are supplied.
          MessageNotFoundError: If the identifier no longer resolves.
        """

        identifier = MessageIdentifier.from_arguments(msg_no=msg_no, uid=uid)
        return self._loader.load(self._session, identifier, self._require_folder())

    def expunge(self) -> bool:
        """Permanently remove messages flagged ``\\Deleted`` in the active folder.

        Sequence numbers of the remaining messages may change afterwards;
        UIDs, and therefore existing cursors, stay valid.

        Returns:
          ``True`` on success, ``False`` when the server refuses the command.
        """

        folder = self._require_folder()

        def expunge(client) -> None:
            _text, responses = client.expunge()
            self._session.apply_untagged(responses)

        try:
            self._session.run(folder, expunge)
        except IMAPClientError as exc:
            self._log.warning("Expunge refused", folder=folder, error=str(exc))
            return False
        self._log.info("Expunge completed", folder=folder)
        return True

    def close(self) -> None:
        self._session.disconnect()

    def _require_folder(self) -> str:
        if self._folder is None:
            raise NoFolderSelectedError("Select a folder before running folder operations")
        return self._folder
