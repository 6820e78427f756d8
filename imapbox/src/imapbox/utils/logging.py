"""Structured JSON logging with redaction for imapbox components.

What:
  Offer a small facade over text streams so sessions and mailboxes emit JSON
  log lines with consistent fields and automatic removal of secrets and
  message content.

Why:
  Connection lifecycle problems (stale sockets, repeated reconnects, rejected
  selects) are diagnosed from logs after the fact. A fixed schema keeps those
  logs greppable, and redaction keeps credentials and mail content out of them.

How:
  :class:`JsonLogger` stores a target stream and a component label. Each call
  merges the canonical fields with a recursively redacted copy of the keyword
  arguments and writes one ``json.dump`` line, flushing immediately.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`.

Invariants & Safety:
  - Every entry carries ``ts`` (ISO8601, UTC), ``lvl``, ``msg``, ``component``.
  - ``password``, ``subject``, ``body`` and ``snippet`` are replaced with
    ``[redacted]`` at any nesting depth.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"password", "subject", "body", "snippet"})


@dataclass
class JsonLogger:
    """Structured JSON logger with automatic redaction.

    What:
      Emits single-line JSON entries with timestamp, severity, component and
      optional supplemental fields.

    How:
      :meth:`log` builds the payload; :meth:`debug`, :meth:`info`,
      :meth:`warning` and :meth:`error` are thin severity wrappers. Without an
      explicit stream, entries go to whatever ``sys.stderr`` is at write time.
    """

    stream: Optional[Any] = None
    component: str = "imapbox"

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Serialise ``message`` and redacted ``extra`` to the stream."""

        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        stream = self.stream if self.stream is not None else sys.stderr
        json.dump(payload, stream, separators=(",", ":"), default=str)
        stream.write("\n")
        stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a cautionary event such as a probe failure or a reconnect."""

        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log a failure that is about to be surfaced to the caller."""

        self.log("ERROR", message, extra=kwargs)

    @staticmethod
    def _redact(data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``data`` with :data:`SENSITIVE_KEYS` masked.

        Nested dictionaries are walked recursively so structure is preserved
        for downstream parsing.
        """

        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key in SENSITIVE_KEYS:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = JsonLogger._redact(value)
            else:
                result[key] = value
        return result


def get_logger(component: str) -> JsonLogger:
    """Construct a :class:`JsonLogger` bound to ``component``.

    Call sites go through this helper so the default stream and redaction
    rules can evolve in one place.
    """

    return JsonLogger(component=component)
