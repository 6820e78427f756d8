"""Structured logger tests."""

import io
import json

from imapbox.utils.logging import REDACTED, JsonLogger, get_logger


def test_entries_are_single_json_lines() -> None:
    stream = io.StringIO()
    logger = JsonLogger(stream=stream, component="imapbox.test")

    logger.info("Folder selected", folder="INBOX", writable=True)
    logger.warning("Liveness probe failed", error="broken pipe")

    lines = stream.getvalue().splitlines()
    assert len(lines) == 2
    first, second = (json.loads(line) for line in lines)
    assert first["lvl"] == "INFO"
    assert first["msg"] == "Folder selected"
    assert first["component"] == "imapbox.test"
    assert first["folder"] == "INBOX"
    assert first["writable"] is True
    assert "ts" in first
    assert second["lvl"] == "WARN"


def test_sensitive_fields_are_redacted_at_any_depth() -> None:
    stream = io.StringIO()
    JsonLogger(stream=stream).error(
        "Login rejected",
        password="hunter2",
        context={"subject": "Payroll", "nested": {"body": "secret text", "uid": 4}},
    )

    entry = json.loads(stream.getvalue())
    assert entry["password"] == REDACTED
    assert entry["context"]["subject"] == REDACTED
    assert entry["context"]["nested"] == {"body": REDACTED, "uid": 4}
    assert "hunter2" not in stream.getvalue()


def test_non_json_values_are_stringified() -> None:
    stream = io.StringIO()
    JsonLogger(stream=stream).debug("Odd value", value=b"bytes", path=object)

    entry = json.loads(stream.getvalue())
    assert entry["value"] == "b'bytes'"
    assert entry["path"] == "<class 'object'>"


def test_default_logger_writes_to_current_stderr(capsys) -> None:
    get_logger("imapbox.default").info("hello")

    entry = json.loads(capsys.readouterr().err)
    assert entry["component"] == "imapbox.default"
