"""
Module: imapbox.__init__

What:
  Public surface of imapbox, a client-side mailbox abstraction over IMAP that
  hides one long-lived protocol session behind a stable :class:`Mailbox`.

Why:
  Callers should import from the package root; the module split between
  session, catalog, search, loader and façade is an implementation detail.

Interfaces:
  - Mailbox, Session, SessionConfig
  - SearchQuery, SearchCursor, MessageIdentifier, Addressing
  - Message, MessageHeader, MessageBody, Attachment, MessageActions
  - MailboxError and its subclasses

Invariants:
  - Searches and cursors are UID based; sequence numbers are only accepted by
    :meth:`Mailbox.get_message`.
"""

from .actions import MessageActions
from .cursor import SearchCursor
from .errors import (
    FolderNotFoundError,
    FolderSelectError,
    InvalidIdentifierError,
    MailboxConnectionError,
    MailboxError,
    MessageNotFoundError,
    NoFolderSelectedError,
    NotReadyError,
    UnsupportedActionError,
)
from .folders import FolderCatalog
from .loader import MessageLoader
from .mailbox import Mailbox
from .message import Addressing, Attachment, Message, MessageBody, MessageHeader, MessageIdentifier
from .search import MessageLocator, SearchQuery
from .session import Session, SessionConfig

__all__ = [
    "Mailbox",
    "Session",
    "SessionConfig",
    "FolderCatalog",
    "MessageLocator",
    "MessageLoader",
    "SearchQuery",
    "SearchCursor",
    "MessageIdentifier",
    "Addressing",
    "Message",
    "MessageHeader",
    "MessageBody",
    "Attachment",
    "MessageActions",
    "MailboxError",
    "MailboxConnectionError",
    "FolderNotFoundError",
    "FolderSelectError",
    "NoFolderSelectedError",
    "MessageNotFoundError",
    "NotReadyError",
    "InvalidIdentifierError",
    "UnsupportedActionError",
]

__version__ = "0.1.0"
