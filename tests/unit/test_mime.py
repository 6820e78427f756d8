"""MIME splitting tests for :func:`imapbox.utils.mime.parse_message`."""

from email.message import EmailMessage

from imapbox.utils.mime import parse_message


def _raw(message: EmailMessage) -> bytes:
    return message.as_bytes()


def test_single_part_plain_text() -> None:
    message = EmailMessage()
    message["Subject"] = "Plain"
    message["X-Custom"] = "value"
    message.set_content("just text")

    parts = parse_message(_raw(message))

    assert parts.headers["subject"] == "Plain"
    assert parts.headers["x-custom"] == "value"
    assert parts.plain.strip() == "just text"
    assert parts.html == ""
    assert parts.attachments == []


def test_inline_image_without_filename_is_an_attachment() -> None:
    message = EmailMessage()
    message.set_content("see image")
    message.add_attachment(b"\x89PNG", maintype="image", subtype="png")

    parts = parse_message(_raw(message))

    assert parts.attachments == [(None, "image/png", b"\x89PNG")]


def test_text_attachment_is_not_used_as_body() -> None:
    message = EmailMessage()
    message.set_content("the body")
    message.add_attachment("notes in a file", filename="notes.txt")

    parts = parse_message(_raw(message))

    assert parts.plain.strip() == "the body"
    assert parts.attachments[0][0] == "notes.txt"
    assert parts.attachments[0][2].strip() == b"notes in a file"


def test_unknown_charset_falls_back_to_utf8() -> None:
    raw = (
        b"Subject: odd\r\n"
        b"Content-Type: text/plain; charset=x-unknown-charset\r\n"
        b"\r\n"
        b"caf\xc3\xa9\r\n"
    )

    assert parse_message(raw).plain.strip() == "café"


def test_truncation_drops_split_code_point() -> None:
    message = EmailMessage()
    message.set_content("é" * 10)

    parts = parse_message(_raw(message), max_body_bytes=5)

    assert parts.plain == "éé"
