"""Folder catalog unit tests."""

import pytest
from imapclient.exceptions import IMAPClientAbortError

from imapbox.errors import MailboxConnectionError
from imapbox.folders import FolderCatalog


def test_list_returns_server_folders_in_order(session, server) -> None:
    catalog = FolderCatalog()

    assert catalog.list(session) == ("INBOX", "Archive", "Sent")
    assert catalog.populated
    assert catalog.delimiter == "/"


def test_list_is_cached_until_invalidated(session, server) -> None:
    catalog = FolderCatalog()
    catalog.list(session)
    catalog.list(session)
    assert server.count("list_folders") == 1

    catalog.invalidate()
    assert not catalog.populated
    catalog.list(session)
    assert server.count("list_folders") == 2


def test_listing_does_not_select_a_folder(session, server) -> None:
    FolderCatalog().list(session)

    assert server.count("select_folder") == 0
    assert session.selected_folder is None


def test_contains_is_false_before_population(session) -> None:
    catalog = FolderCatalog()
    assert catalog.contains("INBOX") is False

    catalog.list(session)
    assert catalog.contains("INBOX") is True
    assert catalog.contains("Archive") is True
    assert catalog.contains("inbox") is False
    assert catalog.contains("Nope") is False


def test_server_reference_prefix_is_stripped(session, server) -> None:
    server.folder_prefix = "{imap.example.com:993}"

    assert FolderCatalog().list(session) == ("INBOX", "Archive", "Sent")


def test_listing_survives_one_dropped_connection(session, server) -> None:
    session.ensure_ready()
    server.fail("list_folders", IMAPClientAbortError("socket error"))

    assert FolderCatalog().list(session) == ("INBOX", "Archive", "Sent")
    assert len(server.clients) == 2


def test_unreachable_server_leaves_catalog_unpopulated(session, server) -> None:
    server.connect_failures.append(OSError("refused"))
    catalog = FolderCatalog()

    with pytest.raises(MailboxConnectionError):
        catalog.list(session)

    assert not catalog.populated
