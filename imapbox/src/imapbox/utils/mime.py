"""MIME helpers that split a raw RFC822 payload into header, body and parts.

What:
  Turn the bytes returned by ``BODY[]`` fetches into a lowercase header
  mapping, bounded plain-text and HTML bodies, and opaque attachment payloads.

Why:
  :class:`~imapbox.loader.MessageLoader` needs a predictable representation
  regardless of how the mail was authored (single part, multipart/alternative,
  nested attachments, odd charsets). Attachment bodies stay opaque bytes.

How:
  Parse with :class:`~email.parser.BytesParser` and the default policy, walk
  the MIME tree once, classify each leaf as attachment or body text, and
  truncate decoded text on encoded byte boundaries.

Interfaces:
  :class:`ParsedParts`, :func:`parse_message`.

Invariants & Safety:
  - Text is decoded with ``errors="replace"`` so odd charsets never raise.
  - Truncation slices UTF-8 bytes and drops a split trailing code point.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from email import policy
from email.message import Message
from email.parser import BytesParser
from typing import Dict, List, Optional, Tuple


MAX_BODY_BYTES = 1_000_000
"""Default upper bound for each decoded body in bytes."""


@dataclass
class ParsedParts:
    """Intermediate result of :func:`parse_message`.

    Attributes:
      headers: Header values keyed by lowercase name (last occurrence wins).
      plain: First ``text/plain`` body, truncated.
      html: First ``text/html`` body, truncated.
      attachments: ``(filename, content_type, payload)`` triples in MIME order.
    """

    headers: Dict[str, str]
    plain: str = ""
    html: str = ""
    attachments: List[Tuple[Optional[str], str, bytes]] = field(default_factory=list)


def parse_message(raw: bytes, *, max_body_bytes: int = MAX_BODY_BYTES) -> ParsedParts:
    """Parse ``raw`` into :class:`ParsedParts`.

    What:
      Produces the header mapping, both text bodies, and the attachment list.

    How:
      Leaf parts with a ``Content-Disposition`` of ``attachment`` or a filename
      are attachments. Remaining ``text/plain`` and ``text/html`` leaves fill
      the first empty body slot of their type.

    Args:
      raw: Raw message bytes from an IMAP ``BODY[]`` fetch.
      max_body_bytes: Byte cap applied to each body.
    """

    message = BytesParser(policy=policy.default).parsebytes(raw)
    parsed = ParsedParts(headers={k.lower(): str(v) for k, v in message.items()})
    for part in message.walk():
        if part.is_multipart():
            continue
        if _is_attachment(part):
            parsed.attachments.append(
                (part.get_filename(), part.get_content_type(), _payload_bytes(part))
            )
            continue
        content_type = part.get_content_type()
        if content_type == "text/plain" and not parsed.plain:
            parsed.plain = _truncate(_decode_text(part), max_body_bytes)
        elif content_type == "text/html" and not parsed.html:
            parsed.html = _truncate(_decode_text(part), max_body_bytes)
    return parsed


def _is_attachment(part: Message) -> bool:
    disposition = part.get_content_disposition()
    if disposition == "attachment":
        return True
    if part.get_filename():
        return True
    return part.get_content_maintype() != "text" and disposition != "inline"


def _payload_bytes(part: Message) -> bytes:
    payload = part.get_payload(decode=True)
    return payload if isinstance(payload, bytes) else b""


def _decode_text(part: Message) -> str:
    payload = part.get_payload(decode=True)
    if not isinstance(payload, bytes):
        return str(part.get_payload())
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def _truncate(text: str, limit: int) -> str:
    """Clamp ``text`` to ``limit`` bytes when encoded as UTF-8."""

    encoded = text.encode("utf-8")
    if len(encoded) <= limit:
        return text
    return encoded[:limit].decode("utf-8", errors="ignore")
