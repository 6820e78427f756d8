"""Identifier and message value types.

What:
  Define :class:`MessageIdentifier` (sequence number or UID) and the immutable
  :class:`Message` snapshot assembled by :mod:`imapbox.loader`.

Why:
  Sequence numbers shift after every expunge while UIDs stay stable within a
  folder. Carrying the addressing mode next to the number makes it impossible
  to confuse the two at call sites, and lets cursors insist on UIDs.

How:
  Frozen dataclasses with tuple, frozenset and read-only mapping members so values can be shared
  between threads. Header convenience fields are resolved once from the
  lowercase header mapping.

Interfaces:
  :class:`Addressing`, :class:`MessageIdentifier`, :class:`MessageHeader`,
  :class:`MessageBody`, :class:`Attachment`, :class:`Message`.

Invariants & Safety:
  - Identifier values are positive integers.
  - A :class:`Message` is a snapshot: nothing is written back to the server
    unless one of its ``actions`` is invoked explicitly.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import parsedate_to_datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, FrozenSet, Mapping, Optional, Tuple

from .errors import InvalidIdentifierError

if TYPE_CHECKING:  # pragma: no cover
    from .actions import MessageActions


class Addressing(enum.Enum):
    """How a message number is interpreted by the server."""

    SEQUENCE = "sequence"
    UID = "uid"


@dataclass(frozen=True)
class MessageIdentifier:
    """Tagged union of sequence number and UID."""

    addressing: Addressing
    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int) or self.value <= 0:
            raise InvalidIdentifierError(f"Message identifiers must be positive integers, got {self.value!r}")

    def __str__(self) -> str:
        return f"{self.addressing.value}:{self.value}"

    @classmethod
    def uid(cls, value: int) -> "MessageIdentifier":
        return cls(Addressing.UID, value)

    @classmethod
    def sequence(cls, value: int) -> "MessageIdentifier":
        return cls(Addressing.SEQUENCE, value)

    @classmethod
    def from_arguments(cls, msg_no: Optional[int] = None, uid: Optional[int] = None) -> "MessageIdentifier":
        """Build an identifier from exactly one of ``msg_no`` and ``uid``.

        Raises:
          InvalidIdentifierError: If both or neither are supplied.
        """

        if (msg_no is None) == (uid is None):
            raise InvalidIdentifierError("Supply exactly one of a sequence number or a UID")
        if uid is not None:
            return cls.uid(uid)
        return cls.sequence(msg_no)  # type: ignore[arg-type]

    @property
    def is_uid(self) -> bool:
        return self.addressing is Addressing.UID


@dataclass(frozen=True)
class MessageHeader:
    """Header fields of a fetched message.

    ``fields`` keeps every header keyed by lowercase name behind a read-only
    mapping; it takes no part in hashing. The remaining attributes are
    shortcuts for the common ones.
    """

    fields: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.fields.get(name.lower(), default)

    @property
    def subject(self) -> str:
        return self.fields.get("subject", "")

    @property
    def sender(self) -> str:
        return self.fields.get("from", "")

    @property
    def to(self) -> str:
        return self.fields.get("to", "")

    @property
    def cc(self) -> str:
        return self.fields.get("cc", "")

    @property
    def message_id(self) -> str:
        return self.fields.get("message-id", "")

    @property
    def date(self) -> Optional[datetime]:
        """``Date`` header as an aware datetime, ``None`` when missing or malformed."""

        raw = self.fields.get("date")
        if not raw:
            return None
        try:
            return parsedate_to_datetime(raw)
        except (TypeError, ValueError):
            return None


@dataclass(frozen=True)
class MessageBody:
    plain: str = ""
    html: str = ""

    @property
    def text(self) -> str:
        """Plain text when present, otherwise the HTML source."""

        return self.plain or self.html


@dataclass(frozen=True)
class Attachment:
    """Opaque attachment payload; decoding beyond transfer encoding is left to callers."""

    filename: Optional[str]
    content_type: str
    payload: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class Message:
    """Fully assembled message as seen at fetch time."""

    identifier: MessageIdentifier
    uid: int
    folder: str
    header: MessageHeader
    body: MessageBody
    attachments: Tuple[Attachment, ...]
    flags: FrozenSet[str]
    actions: "MessageActions" = field(repr=False, compare=False)
    size: Optional[int] = None
    internal_date: Optional[datetime] = None

    @property
    def seen(self) -> bool:
        return "\\Seen" in self.flags

    @property
    def deleted(self) -> bool:
        return "\\Deleted" in self.flags

    @property
    def subject(self) -> str:
        return self.header.subject

    @property
    def permitted_actions(self) -> FrozenSet[str]:
        return self.actions.permitted
