"""Test package marker for the imapbox suite.

What:
  Marks ``tests`` as a package so pytest resolves ``tests/conftest.py`` and
  ``tests/unit/conftest.py`` consistently.

How:
  The file exposes no symbols. Shared fixtures live in the conftest modules and
  the fake IMAP server in ``tests/unit/fakes.py``.
"""
