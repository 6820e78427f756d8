"""Shared helpers for logging and MIME handling.

Interfaces:
  ``get_logger``, ``JsonLogger``, ``parse_message``, ``ParsedParts``.
"""

from .logging import JsonLogger, get_logger
from .mime import ParsedParts, parse_message

__all__ = [
    "get_logger",
    "JsonLogger",
    "parse_message",
    "ParsedParts",
]
