"""Lazily populated cache of the folders available on the server.

What:
  Query ``LIST "" *`` once, normalise the returned names, and answer
  membership questions without another round-trip.

Why:
  Folder selection is validated before any ``SELECT`` is attempted so a typo
  fails fast with :class:`~imapbox.errors.FolderNotFoundError` instead of a
  server ``NO``. The folder list rarely changes during a session, so one query
  per mailbox lifetime is enough.

How:
  :meth:`FolderCatalog.list` runs the listing through
  :meth:`~imapbox.session.Session.run`, decodes names, strips a leading
  ``{host:port}`` mailbox reference when a server echoes one, remembers the
  hierarchy delimiter, and freezes the result in a tuple.

Interfaces:
  :class:`FolderCatalog`.

Invariants & Safety:
  - Once populated, the cache is reused until :meth:`FolderCatalog.invalidate`.
  - The cached tuple is never mutated, so concurrent readers need no lock.
"""
from __future__ import annotations

from typing import Optional, Tuple

from .session import Session


def _decode(value: object) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


class FolderCatalog:
    """Populate-once folder list with a pure ``contains`` lookup."""

    def __init__(self) -> None:
        self._folders: Optional[Tuple[str, ...]] = None
        self._delimiter: Optional[str] = None

    @property
    def populated(self) -> bool:
        return self._folders is not None

    @property
    def delimiter(self) -> Optional[str]:
        """Hierarchy delimiter reported by ``LIST`` (``None`` until populated)."""

        return self._delimiter

    def list(self, session: Session) -> Tuple[str, ...]:
        """Return the cached folder names, querying the server on first use.

        What:
          Lists the full folder hierarchy rooted at the account.

        How:
          ``IMAPClient.list_folders`` yields ``(flags, delimiter, name)``
          triples. Names are decoded and any ``{server}`` prefix removed; order
          follows the server response.

        Raises:
          MailboxConnectionError: If the server cannot be reached.
        """

        if self._folders is not None:
            return self._folders
        listing = session.run(None, lambda client: client.list_folders())
        prefix = "{" + session.server + "}"
        names = []
        for _flags, delimiter, name in listing:
            if delimiter and self._delimiter is None:
                self._delimiter = _decode(delimiter)
            decoded = _decode(name)
            if decoded.startswith(prefix):
                decoded = decoded[len(prefix):]
            names.append(decoded)
        self._folders = tuple(names)
        return self._folders

    def contains(self, name: str) -> bool:
        """Pure lookup against the cache; ``False`` while unpopulated."""

        return self._folders is not None and name in self._folders

    def invalidate(self) -> None:
        """Drop the cache so the next :meth:`list` queries the server again."""

        self._folders = None
        self._delimiter = None
