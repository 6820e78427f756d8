"""Exception taxonomy shared by every imapbox component.

What:
  Define the error types raised by sessions, folder catalogs, loaders, and the
  mailbox façade.

Why:
  Callers must be able to tell a dead transport (retry the whole operation)
  from a wrong folder name (never retry) or a vanished message (refresh the
  search). Funnelling ``imapclient`` and socket failures into these types keeps
  that decision independent from the underlying library.

How:
  Every error derives from :class:`MailboxError`. Where a builtin category
  exists (``ConnectionError``, ``LookupError``, ``ValueError``) the error also
  inherits from it so generic handlers keep working.

Interfaces:
  :class:`MailboxError`, :class:`MailboxConnectionError`,
  :class:`FolderNotFoundError`, :class:`FolderSelectError`,
  :class:`NoFolderSelectedError`, :class:`MessageNotFoundError`,
  :class:`NotReadyError`, :class:`InvalidIdentifierError`,
  :class:`UnsupportedActionError`.
"""
from __future__ import annotations


class MailboxError(Exception):
    """Base class for all imapbox failures."""


class MailboxConnectionError(MailboxError, ConnectionError):
    """Transport unreachable, broken twice in a row, or login rejected.

    What:
      Raised by :meth:`imapbox.session.Session.ensure_ready` and
      :meth:`imapbox.session.Session.run` once the single transparent reconnect
      has been spent.

    Why:
      A persistent outage must reach the caller instead of being hidden behind
      unbounded retries. The caller may retry the whole operation.
    """


class FolderNotFoundError(MailboxError):
    """The folder name is absent from the server's folder list."""

    def __init__(self, folder: str):
        super().__init__(f"Folder does not exist: {folder!r}")
        self.folder = folder


class FolderSelectError(MailboxError):
    """The server refused to ``SELECT`` the folder (missing, no permission)."""

    def __init__(self, folder: str, reason: object = None):
        message = f"Unable to select folder {folder!r}"
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.folder = folder


class NoFolderSelectedError(MailboxError):
    """A folder-scoped operation was requested before ``select_folder``."""


class MessageNotFoundError(MailboxError, LookupError):
    """The identifier no longer resolves (expunged or never existed)."""

    def __init__(self, identifier: object, folder: object = None):
        message = f"Message {identifier} not found"
        if folder is not None:
            message = f"{message} in {folder!r}"
        super().__init__(message)
        self.identifier = identifier
        self.folder = folder


class NotReadyError(MailboxError, RuntimeError):
    """The transport was requested before the session was made ready.

    Indicates a bug in the calling component; retrying cannot fix it.
    """


class InvalidIdentifierError(MailboxError, ValueError):
    """Neither or both of sequence number and UID were supplied."""


class UnsupportedActionError(MailboxError, ValueError):
    """A message action is not permitted for the message's current state."""
