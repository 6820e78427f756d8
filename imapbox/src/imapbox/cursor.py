"""Lazy, restartable view over the UIDs returned by one search.

What:
  :class:`SearchCursor` captures the UID list of a search together with the
  folder and session it came from. Iterating yields identifiers; the
  :meth:`SearchCursor.messages` generator loads full messages one at a time.

Why:
  A mailbox may hold hundreds of thousands of messages. The cursor keeps only
  integers in memory and fetches a message when the caller asks for it.
  Because the identifiers are UIDs, the cursor stays valid after an expunge
  renumbers the folder.

How:
  The UID tuple is fixed at construction, so every ``iter()`` restarts from the
  first element without touching the network. Message loading goes through
  :class:`~imapbox.loader.MessageLoader`, which selects the cursor's folder on
  the session before each fetch.

Interfaces:
  :class:`SearchCursor`.
"""
from __future__ import annotations

from typing import Iterator, Optional, Tuple, Union

from .errors import MessageNotFoundError
from .loader import MessageLoader
from .message import Message, MessageIdentifier
from .session import Session


class SearchCursor:
    """Finite ordered sequence of UIDs bound to a session and folder snapshot."""

    def __init__(
        self,
        session: Session,
        folder: str,
        uids: Tuple[int, ...],
        *,
        reverse: bool = True,
        loader: Optional[MessageLoader] = None,
    ):
        self._session = session
        self._folder = folder
        self._uids = tuple(uids)
        self._reverse = reverse
        self._loader = loader or MessageLoader()

    def __repr__(self) -> str:
        return f"<SearchCursor folder={self._folder!r} matches={len(self._uids)} reverse={self._reverse}>"

    def __iter__(self) -> Iterator[MessageIdentifier]:
        return (MessageIdentifier.uid(uid) for uid in self._uids)

    def __len__(self) -> int:
        return len(self._uids)

    def __getitem__(self, index: Union[int, slice]) -> Union[MessageIdentifier, "SearchCursor"]:
        """Return one identifier, or a cursor over a slice of the UIDs."""

        if isinstance(index, slice):
            return SearchCursor(
                self._session, self._folder, self._uids[index], reverse=self._reverse, loader=self._loader
            )
        return MessageIdentifier.uid(self._uids[index])

    @property
    def folder(self) -> str:
        return self._folder

    @property
    def uids(self) -> Tuple[int, ...]:
        return self._uids

    @property
    def reverse(self) -> bool:
        return self._reverse

    def messages(self, *, skip_missing: bool = False) -> Iterator[Message]:
        """Yield one fully loaded :class:`Message` per UID, lazily.

        Args:
          skip_missing: Skip UIDs expunged since the search instead of raising
            :class:`~imapbox.errors.MessageNotFoundError`.
        """

        for identifier in self:
            try:
                yield self._loader.load(self._session, identifier, self._folder)
            except MessageNotFoundError:
                if not skip_missing:
                    raise
