"""Pytest configuration shared by every suite.

What:
  Make the in-tree ``imapbox/src`` importable and apply a canned runtime
  configuration to every test.

Why:
  ``SessionConfig`` and ``MessageLoader`` read defaults from the cached runtime
  configuration. Without an explicit file and cache resets, tests would pick
  up whatever ``imapbox.yaml`` happens to exist on the machine.

How:
  Prepend the source directory to ``sys.path`` when present, point
  ``IMAPBOX_CONFIG_PATH`` at ``tests/data/config.yaml`` and clear the cache
  before and after each test.

Interfaces:
  :func:`runtime_config` (autouse pytest fixture).
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "imapbox" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from imapbox.config.loader import reset_runtime_config

CONFIG_PATH = Path(__file__).resolve().parent / "data" / "config.yaml"


@pytest.fixture(autouse=True)
def runtime_config(monkeypatch: pytest.MonkeyPatch):
    """Apply the canned configuration file for every test."""

    monkeypatch.setenv("IMAPBOX_CONFIG_PATH", str(CONFIG_PATH))
    reset_runtime_config()
    try:
        yield CONFIG_PATH
    finally:
        reset_runtime_config()
