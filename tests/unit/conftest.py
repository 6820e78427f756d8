"""Pytest fixtures for unit tests requiring IMAP fakes.

What:
  Make ``tests/unit`` importable and expose a fake server, a session wired to
  it, and a mailbox on top of that session.

Why:
  Nearly every test drives the production :class:`~imapbox.session.Session`
  against the in-memory :class:`FakeImapServer`; sharing the wiring keeps each
  test focused on the behaviour it asserts.

How:
  ``monkeypatch`` replaces ``imapbox.session.IMAPClient`` with the server's
  ``connect`` method so every (re)connect yields a fresh
  :class:`FakeImapBackend` recorded on the server.

Interfaces:
  :func:`server`, :func:`session`, :func:`mailbox` (pytest fixtures).

Invariants & Safety:
  - Each test receives a fresh server; no state leaks between tests.
"""

import io
import sys
from pathlib import Path

import pytest

from imapbox.mailbox import Mailbox
from imapbox.session import Session, SessionConfig
from imapbox.utils.logging import JsonLogger

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeImapServer


@pytest.fixture
def server(monkeypatch: pytest.MonkeyPatch) -> FakeImapServer:
    """Fake server with ``INBOX``, ``Archive`` and ``Sent`` folders."""

    fake = FakeImapServer(folders=("INBOX", "Archive", "Sent"))
    monkeypatch.setattr("imapbox.session.IMAPClient", fake.connect)
    return fake


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def session(server: FakeImapServer, log_stream: io.StringIO):
    config = SessionConfig(host="imap.example.com", username="user", password="secret")
    with Session(config, logger=JsonLogger(stream=log_stream, component="test.session")) as live:
        yield live


@pytest.fixture
def mailbox(session: Session, log_stream: io.StringIO) -> Mailbox:
    return Mailbox(session, logger=JsonLogger(stream=log_stream, component="test.mailbox"))
