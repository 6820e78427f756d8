"""Fetch one message and assemble it into an immutable :class:`Message`.

What:
  :class:`MessageLoader` resolves a :class:`~imapbox.message.MessageIdentifier`
  against a folder, fetches the raw message with its flags and metadata, and
  hands everything to :func:`build_message`.

Why:
  Assembling a message from header, body, attachment, and action helpers that
  each talk to the connection on their own makes the number of round-trips and
  the selected folder hard to reason about. One fetch plus one pure builder
  keeps both explicit.

How:
  ``BODY.PEEK[]`` is requested so loading never sets ``\\Seen``. UIDs are
  fetched in the client's UID mode. Sequence numbers are resolved against the
  current selection by switching ``use_uid`` off for that single fetch, inside
  the session's critical section. An empty response, or a server error that
  names an invalid message set (a sequence number past ``EXISTS``), means the
  identifier does not resolve. Any other server error propagates unchanged.

Interfaces:
  :data:`FETCH_ITEMS`, :class:`MessageLoader`, :func:`build_message`.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from imapclient.exceptions import IMAPClientError

from .actions import MessageActions
from .config.loader import get_runtime_config
from .errors import MessageNotFoundError
from .message import Attachment, Message, MessageBody, MessageHeader, MessageIdentifier
from .session import Session
from .utils.mime import ParsedParts, parse_message

FETCH_ITEMS = [b"BODY.PEEK[]", b"FLAGS", b"RFC822.SIZE", b"INTERNALDATE", b"UID"]
_BODY_KEYS = (b"BODY[]", b"RFC822")
_INVALID_MESSAGE_SET = re.compile(
    r"invalid\s*(message\s*set|messageset|sequence|uid)|no\s+such\s+message|out\s+of\s+range",
    re.IGNORECASE,
)


class MessageLoader:
    """Fetch-and-build for single messages.

    Args:
      max_body_bytes: Cap for each decoded body; defaults to the runtime
        configuration's ``message.max_body_bytes``.
    """

    def __init__(self, *, max_body_bytes: Optional[int] = None):
        if max_body_bytes is None:
            max_body_bytes = get_runtime_config().message.max_body_bytes
        self._max_body_bytes = max_body_bytes

    def load(self, session: Session, identifier: MessageIdentifier, folder: str) -> Message:
        """Fetch ``identifier`` from ``folder`` and assemble the message.

        Raises:
          MessageNotFoundError: If the server reports the identifier absent.
          MailboxConnectionError: If the transport cannot be recovered.
          IMAPClientError: For any other ``NO``/``BAD`` reply, unchanged.
        """

        def fetch(client) -> Tuple[Dict[Any, Dict[bytes, Any]], bool]:
            if identifier.is_uid:
                return client.fetch([identifier.value], FETCH_ITEMS), session.writable
            previous = client.use_uid
            client.use_uid = False
            try:
                return client.fetch([identifier.value], FETCH_ITEMS), session.writable
            finally:
                client.use_uid = previous

        try:
            response, writable = session.run(folder, fetch)
        except IMAPClientError as exc:
            if _INVALID_MESSAGE_SET.search(str(exc)):
                raise MessageNotFoundError(identifier, folder) from exc
            raise
        data = response.get(identifier.value) if response else None
        raw = _first(data, _BODY_KEYS) if data else None
        if raw is None:
            raise MessageNotFoundError(identifier, folder)

        uid = int(data.get(b"UID", identifier.value))
        flags = frozenset(_decode(flag) for flag in data.get(b"FLAGS", ()))
        return build_message(
            identifier,
            uid=uid,
            folder=folder,
            parts=parse_message(bytes(raw), max_body_bytes=self._max_body_bytes),
            flags=flags,
            actions=MessageActions(session, folder, uid, flags, writable=writable),
            size=data.get(b"RFC822.SIZE"),
            internal_date=data.get(b"INTERNALDATE"),
        )


def build_message(
    identifier: MessageIdentifier,
    *,
    uid: int,
    folder: str,
    parts: ParsedParts,
    flags: Iterable[str],
    actions: MessageActions,
    size: Optional[int] = None,
    internal_date: Optional[datetime] = None,
) -> Message:
    """Assemble a :class:`Message` from already-fetched pieces.

    Every dependency is passed in explicitly; nothing here touches the
    network, so the builder can be exercised without a session.
    """

    return Message(
        identifier=identifier,
        uid=uid,
        folder=folder,
        header=MessageHeader(fields=dict(parts.headers)),
        body=MessageBody(plain=parts.plain, html=parts.html),
        attachments=tuple(
            Attachment(filename=filename, content_type=content_type, payload=payload)
            for filename, content_type, payload in parts.attachments
        ),
        flags=frozenset(flags),
        actions=actions,
        size=int(size) if size is not None else None,
        internal_date=internal_date if isinstance(internal_date, datetime) else None,
    )


def _first(data: Dict[bytes, Any], keys: Tuple[bytes, ...]) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _decode(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)
