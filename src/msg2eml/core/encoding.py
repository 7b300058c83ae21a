"""Header and body encodings (RFC 2045, RFC 2047, RFC 2231)."""

import base64
import re
import string
from typing import NamedTuple

from msg2eml.core.constants import (
    BASE64_LINE_LENGTH,
    CRLF,
    ENCODED_WORD_PREFIX,
    ENCODED_WORD_SUFFIX,
    MAX_ENCODED_WORD_LENGTH,
    QP_LINE_LENGTH,
)

# Bytes left unescaped by the RFC 2231 percent form
_FILENAME_SAFE_BYTES = frozenset((string.ascii_letters + string.digits + "._-").encode("ascii"))

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class FilenameParams(NamedTuple):
    """Content-Type ``name`` and Content-Disposition ``filename`` parameters."""

    name: str
    disposition: str


def is_ascii(text: str) -> bool:
    """Check that every character is 7-bit."""
    return all(ord(char) <= 127 for char in text)


def quote_string(value: str) -> str:
    """Return ``value`` as an RFC 5322 quoted string."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def encode_encoded_word(text: str) -> str:
    """Encode non-ASCII header text as RFC 2047 ``=?UTF-8?B?...?=`` words.

    ASCII text is returned unchanged. When a single encoded word would exceed
    75 characters, the text is split on character boundaries and each chunk
    is encoded separately; the words are joined with a single space.
    """
    if not text or is_ascii(text):
        return text

    word = _wrap_encoded_word(text)
    if len(word) <= MAX_ENCODED_WORD_LENGTH:
        return word

    return " ".join(_wrap_encoded_word(chunk) for chunk in _split_for_encoded_words(text))


def _wrap_encoded_word(text: str) -> str:
    payload = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return f"{ENCODED_WORD_PREFIX}{payload}{ENCODED_WORD_SUFFIX}"


def _base64_length(byte_count: int) -> int:
    return 4 * ((byte_count + 2) // 3)


def _split_for_encoded_words(text: str) -> list[str]:
    max_payload = MAX_ENCODED_WORD_LENGTH - len(ENCODED_WORD_PREFIX) - len(ENCODED_WORD_SUFFIX)

    chunks = []
    current = ""
    current_bytes = 0
    for char in text:
        char_bytes = len(char.encode("utf-8"))
        if current and _base64_length(current_bytes + char_bytes) > max_payload:
            chunks.append(current)
            current = ""
            current_bytes = 0
        current += char
        current_bytes += char_bytes

    if current:
        chunks.append(current)
    return chunks


def encode_display_name(name: str | None) -> str:
    """Quote an ASCII display name, or encode a non-ASCII one."""
    if not name:
        return ""
    if is_ascii(name):
        return quote_string(name)
    return encode_encoded_word(name)


def encode_percent_filename(filename: str) -> str:
    """Encode a filename in the RFC 2231 ``UTF-8''<percent-encoded>`` form."""
    encoded = "".join(
        chr(byte) if byte in _FILENAME_SAFE_BYTES else f"%{byte:02X}"
        for byte in filename.encode("utf-8")
    )
    return f"UTF-8''{encoded}"


def format_filename_params(filename: str) -> FilenameParams:
    """Build filename parameters, using RFC 2231 syntax for non-ASCII names."""
    if is_ascii(filename):
        quoted = quote_string(filename)
        return FilenameParams(name=f"name={quoted}", disposition=f"filename={quoted}")

    encoded = encode_percent_filename(filename)
    return FilenameParams(name=f"name*={encoded}", disposition=f"filename*={encoded}")


def encode_quoted_printable(text: str) -> str:
    """Encode text as UTF-8 quoted-printable with CRLF line breaks.

    Printable ASCII other than ``=`` passes through; every other byte is
    written as ``=XX``. Trailing spaces are escaped and long lines receive
    soft line breaks so no encoded line exceeds 76 characters.
    """
    return CRLF.join(_encode_qp_line(line.encode("utf-8")) for line in _LINE_BREAK.split(text))


def _encode_qp_line(data: bytes) -> str:
    last = len(data) - 1
    tokens = []
    for index, byte in enumerate(data):
        if byte == 0x20 and index == last:
            tokens.append("=20")
        elif 0x20 <= byte <= 0x7E and byte != 0x3D:
            tokens.append(chr(byte))
        else:
            tokens.append(f"={byte:02X}")

    lines = []
    current = ""
    for token in tokens:
        # Leave room for the trailing "=" of a soft line break
        if len(current) + len(token) > QP_LINE_LENGTH - 1:
            lines.append(f"{current}=")
            current = ""
        current += token
    lines.append(current)
    return CRLF.join(lines)


def encode_base64_lines(data: bytes) -> str:
    """Base64-encode ``data`` as CRLF-terminated lines of 76 characters."""
    encoded = base64.b64encode(data).decode("ascii")
    return "".join(
        f"{encoded[i:i + BASE64_LINE_LENGTH]}{CRLF}"
        for i in range(0, len(encoded), BASE64_LINE_LENGTH)
    )
