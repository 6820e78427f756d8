"""Search criteria building and UID-based message location.

What:
  Provide :class:`SearchQuery`, an immutable predicate expressed as the
  criteria token lists consumed by ``imapclient`` search operations, and
  :class:`MessageLocator`, which turns a query into an ordered tuple of UIDs
  for one folder.

Why:
  Searching must never materialise messages; only identifiers are needed to
  build a cursor. Searching by UID keeps the result valid across later
  expunges, which renumber sequence numbers but never UIDs.

How:
  Builders append ``(keyword, value)`` tokens; values stay as Python strings,
  integers and dates so ``IMAPClient.search`` performs the quoting and date
  formatting. ``OR``/``NOT`` groups nest tuples, which ``imapclient`` wraps in
  parentheses. Criteria containing non-ASCII text are encoded as UTF-8 and
  sent with ``charset="UTF-8"``. Plain strings are passed through untouched.

Interfaces:
  :class:`SearchQuery`, :func:`search_arguments`, :func:`render_query`,
  :class:`MessageLocator`.

Invariants & Safety:
  - A falsy search response ("no results") is an empty tuple, never an error.
  - Reversal only reorders; it never changes membership.
  - Builder values travel as separate tokens, so user input cannot inject
    search keys.
"""
from __future__ import annotations

import shlex
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from imapclient.datetime_util import format_criteria_date

from .session import Session

SEARCH_CHARSET = "UTF-8"


@dataclass(frozen=True)
class SearchQuery:
    """Immutable IMAP search predicate.

    Combine queries with ``&`` (all criteria must match), :meth:`or_` and
    :meth:`not_`::

        SearchQuery.unseen() & SearchQuery.sender("alice@example.com")
    """

    criteria: Tuple[Any, ...] = ()

    def __str__(self) -> str:
        return _display(self.criteria) or "ALL"

    def __bool__(self) -> bool:
        return bool(self.criteria)

    def __and__(self, other: "SearchQuery") -> "SearchQuery":
        if not isinstance(other, SearchQuery):
            return NotImplemented
        return SearchQuery(self.criteria + other.criteria)

    def and_(self, *others: "SearchQuery") -> "SearchQuery":
        combined = self
        for other in others:
            combined = combined & other
        return combined

    def or_(self, other: "SearchQuery") -> "SearchQuery":
        return SearchQuery(("OR", self._group(), other._group()))

    def not_(self) -> "SearchQuery":
        return SearchQuery(("NOT", self._group()))

    def to_criteria(self) -> List[Any]:
        """Return the token list for ``IMAPClient.search``; nested groups become lists."""

        return _as_lists(self.criteria) or ["ALL"]

    def _group(self) -> Tuple[Any, ...]:
        return self.criteria or ("ALL",)

    @classmethod
    def raw(cls, text: str) -> "SearchQuery":
        """Tokenise a query written in the IMAP grammar.

        Quoted strings become single values and parenthesised groups become
        nested groups, so the result combines with the other builders. Pass
        the string itself to a search to send it completely untouched.

        Raises:
          ValueError: On unbalanced parentheses or quotes.
        """

        lexer = shlex.shlex(text, posix=True, punctuation_chars="()")
        lexer.whitespace_split = True
        lexer.commenters = ""
        stack: List[List[Any]] = [[]]
        for token in lexer:
            if token and set(token) <= {"(", ")"}:
                for char in token:
                    if char == "(":
                        stack.append([])
                    elif len(stack) == 1:
                        raise ValueError(f"Unbalanced parentheses in search query {text!r}")
                    else:
                        group = tuple(stack.pop())
                        stack[-1].append(group)
            else:
                stack[-1].append(token)
        if len(stack) != 1:
            raise ValueError(f"Unbalanced parentheses in search query {text!r}")
        return cls(tuple(stack[0]))

    @classmethod
    def _key(cls, *tokens: Any) -> "SearchQuery":
        return cls(tokens)

    @classmethod
    def all(cls) -> "SearchQuery":
        return cls._key("ALL")

    @classmethod
    def seen(cls) -> "SearchQuery":
        return cls._key("SEEN")

    @classmethod
    def unseen(cls) -> "SearchQuery":
        return cls._key("UNSEEN")

    @classmethod
    def flagged(cls) -> "SearchQuery":
        return cls._key("FLAGGED")

    @classmethod
    def unflagged(cls) -> "SearchQuery":
        return cls._key("UNFLAGGED")

    @classmethod
    def deleted(cls) -> "SearchQuery":
        return cls._key("DELETED")

    @classmethod
    def undeleted(cls) -> "SearchQuery":
        return cls._key("UNDELETED")

    @classmethod
    def answered(cls) -> "SearchQuery":
        return cls._key("ANSWERED")

    @classmethod
    def unanswered(cls) -> "SearchQuery":
        return cls._key("UNANSWERED")

    @classmethod
    def new(cls) -> "SearchQuery":
        return cls._key("NEW")

    @classmethod
    def old(cls) -> "SearchQuery":
        return cls._key("OLD")

    @classmethod
    def recent(cls) -> "SearchQuery":
        return cls._key("RECENT")

    @classmethod
    def sender(cls, address: str) -> "SearchQuery":
        return cls._key("FROM", address)

    @classmethod
    def to(cls, address: str) -> "SearchQuery":
        return cls._key("TO", address)

    @classmethod
    def cc(cls, address: str) -> "SearchQuery":
        return cls._key("CC", address)

    @classmethod
    def bcc(cls, address: str) -> "SearchQuery":
        return cls._key("BCC", address)

    @classmethod
    def subject(cls, text: str) -> "SearchQuery":
        return cls._key("SUBJECT", text)

    @classmethod
    def body(cls, text: str) -> "SearchQuery":
        return cls._key("BODY", text)

    @classmethod
    def text(cls, text: str) -> "SearchQuery":
        return cls._key("TEXT", text)

    @classmethod
    def keyword(cls, flag: str) -> "SearchQuery":
        return cls._key("KEYWORD", flag)

    @classmethod
    def unkeyword(cls, flag: str) -> "SearchQuery":
        return cls._key("UNKEYWORD", flag)

    @classmethod
    def header(cls, name: str, value: str) -> "SearchQuery":
        return cls._key("HEADER", name, value)

    @classmethod
    def since(cls, when: Union[date, datetime]) -> "SearchQuery":
        return cls._key("SINCE", _day(when))

    @classmethod
    def before(cls, when: Union[date, datetime]) -> "SearchQuery":
        return cls._key("BEFORE", _day(when))

    @classmethod
    def on(cls, when: Union[date, datetime]) -> "SearchQuery":
        return cls._key("ON", _day(when))

    @classmethod
    def from_filters(cls, filters: Mapping[str, object]) -> "SearchQuery":
        """Translate a filter mapping into a query.

        What:
          Supports ``since``, ``before`` (dates), ``unseen``, ``flagged``
          (booleans) and ``from``, ``subject`` (strings).

        How:
          ``None`` values are skipped; boolean toggles only emit their keyword
          when true. Criteria follow the mapping's iteration order.

        Raises:
          ValueError: For unsupported keys or values of the wrong type.
        """

        query = cls()
        for key, value in filters.items():
            if value is None:
                continue
            if key in ("since", "before") and isinstance(value, (date, datetime)):
                query &= cls.since(value) if key == "since" else cls.before(value)
            elif key in ("unseen", "flagged") and isinstance(value, bool):
                if value:
                    query &= cls._key(key.upper())
            elif key == "from" and isinstance(value, str):
                query &= cls.sender(value)
            elif key == "subject" and isinstance(value, str):
                query &= cls.subject(value)
            else:
                raise ValueError(f"Unsupported search filter {key!r}={value!r}")
        return query


QueryLike = Union[SearchQuery, str, None]


def _day(when: Union[date, datetime]) -> date:
    return when.date() if isinstance(when, datetime) else when


def _as_lists(tokens: Sequence[Any]) -> List[Any]:
    return [_as_lists(token) if isinstance(token, tuple) else token for token in tokens]


def _is_ascii(tokens: Sequence[Any]) -> bool:
    for token in tokens:
        if isinstance(token, (list, tuple)):
            if not _is_ascii(token):
                return False
        elif isinstance(token, str) and not token.isascii():
            return False
    return True


def _encode(tokens: Sequence[Any]) -> List[Any]:
    """Encode text tokens as UTF-8 bytes, nested groups included."""

    encoded: List[Any] = []
    for token in tokens:
        if isinstance(token, (list, tuple)):
            encoded.append(_encode(token))
        elif isinstance(token, str):
            encoded.append(token.encode(SEARCH_CHARSET))
        else:
            encoded.append(token)
    return encoded


def _display(tokens: Sequence[Any]) -> str:
    parts = []
    for token in tokens:
        if isinstance(token, (list, tuple)):
            parts.append(f"({_display(token)})")
        elif isinstance(token, date):
            parts.append(format_criteria_date(token).decode("ascii"))
        elif isinstance(token, str) and (not token or any(char in token for char in ' "()')):
            parts.append('"' + token.replace("\\", "\\\\").replace('"', '\\"') + '"')
        else:
            parts.append(str(token))
    return " ".join(parts)


def search_arguments(query: QueryLike) -> Tuple[Union[str, List[Any]], Optional[str]]:
    """Return the ``(criteria, charset)`` pair passed to ``IMAPClient.search``.

    Strings go through unchanged; ``imapclient`` sends them without quoting.
    Queries become token lists. Either form switches to UTF-8 when it carries
    non-ASCII text.
    """

    if isinstance(query, str):
        text = query.strip() or "ALL"
        return text, None if text.isascii() else SEARCH_CHARSET
    criteria = query.to_criteria() if isinstance(query, SearchQuery) else ["ALL"]
    if _is_ascii(criteria):
        return criteria, None
    return _encode(criteria), SEARCH_CHARSET


def render_query(query: QueryLike) -> str:
    """Readable form of ``query`` for logs; ``None`` means ``ALL``."""

    if query is None:
        return "ALL"
    if isinstance(query, SearchQuery):
        return str(query)
    return query.strip() or "ALL"


class MessageLocator:
    """Resolve a query to the ordered UIDs of one folder."""

    def __init__(self, session: Session):
        self._session = session

    def locate(self, folder: str, query: QueryLike = None, *, reverse: bool = True) -> Tuple[int, ...]:
        """Return matching UIDs, most recent first when ``reverse`` is true.

        UIDs are sorted ascending (arrival order) before the optional
        reversal so ordering does not depend on the server's response order.
        """

        criteria, charset = search_arguments(query)
        result: Optional[object] = self._session.run(folder, lambda client: client.search(criteria, charset))
        if not result:
            return ()
        uids = tuple(sorted(int(uid) for uid in result))  # type: ignore[union-attr]
        return uids[::-1] if reverse else uids
