"""Explicit flag mutations available on a fetched message.

What:
  Bind a message UID and its folder to the session so callers can delete,
  undelete, mark seen/unseen, and flag/unflag it.

Why:
  Messages are immutable snapshots; nothing is written back implicitly. Every
  mutation therefore goes through one small, audited surface that re-selects
  the message's own folder first and refuses actions the current flags do not
  permit (for instance anything on a read-only selection).

How:
  :class:`MessageActions` starts from the flags seen at fetch time and the
  writability of the selection. Each action is a ``UID STORE`` issued through
  :meth:`~imapbox.session.Session.run`; after a successful store the tracked
  flags and ``permitted`` are updated, so ``delete`` can be followed by
  ``undelete``. :meth:`perform` dispatches by name.

Interfaces:
  :data:`ACTION_NAMES`, :class:`MessageActions`.

Invariants & Safety:
  - Only UID-based stores are issued; sequence numbers are never used here.
  - Deletion only sets ``\\Deleted``; removal happens on
    :meth:`imapbox.mailbox.Mailbox.expunge`.
  - The owning :class:`~imapbox.message.Message` snapshot keeps its
    fetch-time flags; only the actions object tracks later stores.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, Tuple

from .errors import UnsupportedActionError
from .session import Session

SEEN = "\\Seen"
DELETED = "\\Deleted"
FLAGGED = "\\Flagged"

# name -> (flag, add?)
_STORES: Dict[str, Tuple[str, bool]] = {
    "delete": (DELETED, True),
    "undelete": (DELETED, False),
    "mark_seen": (SEEN, True),
    "mark_unseen": (SEEN, False),
    "flag": (FLAGGED, True),
    "unflag": (FLAGGED, False),
}

ACTION_NAMES: FrozenSet[str] = frozenset(_STORES)


class MessageActions:
    """Flag operations for one message, checked against its current flags."""

    def __init__(self, session: Session, folder: str, uid: int, flags: Iterable[str], *, writable: bool):
        self._session = session
        self._folder = folder
        self._uid = uid
        self._writable = writable
        self._flags = frozenset(flags)
        self._permitted = _permitted_for(self._flags, writable)

    def __repr__(self) -> str:
        return f"<MessageActions uid={self._uid} folder={self._folder!r} permitted={sorted(self._permitted)}>"

    @property
    def flags(self) -> FrozenSet[str]:
        """Flags as of the fetch plus every store issued through this object."""

        return self._flags

    @property
    def permitted(self) -> FrozenSet[str]:
        return self._permitted

    def perform(self, name: str) -> None:
        """Run the action called ``name``.

        Raises:
          UnsupportedActionError: If ``name`` is unknown or not permitted.
        """

        if name not in _STORES:
            raise UnsupportedActionError(f"Unknown message action: {name!r}")
        if name not in self._permitted:
            raise UnsupportedActionError(f"Action {name!r} is not permitted for UID {self._uid} in {self._folder!r}")
        flag, add = _STORES[name]
        self._store(flag, add)

    def delete(self) -> None:
        """Mark the message ``\\Deleted``; it disappears on the next expunge."""

        self.perform("delete")

    def undelete(self) -> None:
        self.perform("undelete")

    def mark_seen(self) -> None:
        self.perform("mark_seen")

    def mark_unseen(self) -> None:
        self.perform("mark_unseen")

    def flag(self) -> None:
        self.perform("flag")

    def unflag(self) -> None:
        self.perform("unflag")

    def add_flag(self, flag: str) -> None:
        """Set an arbitrary flag or keyword (e.g. ``$Forwarded``)."""

        if not self._writable:
            raise UnsupportedActionError(f"Folder {self._folder!r} is read-only")
        self._store(flag, True)

    def _store(self, flag: str, add: bool) -> None:
        uid = self._uid

        def operation(client):
            if add:
                return client.add_flags([uid], [flag])
            return client.remove_flags([uid], [flag])

        with self._session.lock:
            self._session.run(self._folder, operation)
            self._flags = self._flags | {flag} if add else self._flags - {flag}
            self._permitted = _permitted_for(self._flags, self._writable)


def _permitted_for(flags: FrozenSet[str], writable: bool) -> FrozenSet[str]:
    if not writable:
        return frozenset()
    permitted = set()
    permitted.add("undelete" if DELETED in flags else "delete")
    permitted.add("mark_unseen" if SEEN in flags else "mark_seen")
    permitted.add("unflag" if FLAGGED in flags else "flag")
    return frozenset(permitted)
