"""Body extraction from PidTagRtfCompressed.

The RTF may wrap an HTML or plain text body (``\\fromhtml1`` / ``\\fromtext``
encapsulation). Plain RTF is reduced to text with a small scanner.
"""

import html
import logging
import re
from dataclasses import dataclass

from compressed_rtf import decompress
from RTFDE.deencapsulate import DeEncapsulator

logger = logging.getLogger(__name__)

# Groups that never contain visible text
_SKIP_GROUP = re.compile(r"\\(?:\*\\)?(fonttbl|colortbl|stylesheet|info|pict|object|fldinst|fldrslt)")

_STYLE_BLOCK = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_SCRIPT_BLOCK = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class RtfBody:
    """Text recovered from RTF; ``html`` is set for encapsulated HTML."""

    text: str
    html: str | None = None


def extract_body(compressed_rtf: bytes | None) -> RtfBody | None:
    """Decompress RTF and extract an HTML or plain text body.

    Args:
        compressed_rtf: Raw PidTagRtfCompressed value.

    Returns:
        The extracted body, or None if there is nothing usable.
    """
    if not compressed_rtf:
        return None

    try:
        raw_rtf = decompress(bytes(compressed_rtf))
    except Exception as e:
        logger.debug(f"RTF decompression failed: {e}")
        return None

    try:
        return _deencapsulate(raw_rtf)
    except Exception as e:
        logger.debug(f"RTF is not encapsulated, scanning for plain text: {e}")

    text = extract_plain_text(raw_rtf.decode("latin-1"))
    return RtfBody(text=text) if text else None


def _deencapsulate(raw_rtf: bytes) -> RtfBody:
    rtf_obj = DeEncapsulator(raw_rtf)
    rtf_obj.deencapsulate()

    if rtf_obj.content_type == "html":
        body_html = _as_text(rtf_obj.html)
        return RtfBody(text=strip_html_tags(body_html), html=body_html)

    return RtfBody(text=_as_text(rtf_obj.text))


def _as_text(value: str | bytes) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def extract_plain_text(rtf: str) -> str:
    """Extract visible text from non-encapsulated RTF.

    Tracks group depth, drops groups such as font and color tables, maps
    ``\\par``/``\\line`` to newlines and ``\\tab`` to a tab, decodes
    ``\\'XX`` hex escapes and ignores every other control word.
    """
    out = []
    i = 0
    depth = 0
    skip_depth = 0
    length = len(rtf)

    while i < length:
        char = rtf[i]

        if char == "{":
            depth += 1
            if not skip_depth and _SKIP_GROUP.match(rtf, i + 1, i + 20):
                skip_depth = depth
            i += 1
        elif char == "}":
            if skip_depth == depth:
                skip_depth = 0
            depth -= 1
            i += 1
        elif skip_depth:
            i += 1
        elif char == "\\":
            i += 1
            if i >= length:
                break
            next_char = rtf[i]

            if next_char == "'":
                try:
                    out.append(chr(int(rtf[i + 1:i + 3], 16)))
                except ValueError:
                    pass
                i += 3
            elif next_char in "\\{}":
                out.append(next_char)
                i += 1
            elif next_char in "\r\n":
                i += 1
            elif not (next_char.isascii() and next_char.isalpha()):
                # Control symbol such as \~ or \*
                i += 1
            else:
                start = i
                while i < length and rtf[i].isascii() and rtf[i].isalpha():
                    i += 1
                control_word = rtf[start:i]
                if i < length and rtf[i] == "-":
                    i += 1
                while i < length and rtf[i].isdigit():
                    i += 1
                if i < length and rtf[i] == " ":
                    i += 1

                if control_word in ("par", "line"):
                    out.append("\n")
                elif control_word == "tab":
                    out.append("\t")
        else:
            if char not in "\r\n":
                out.append(char)
            i += 1

    return "".join(out).strip()


def strip_html_tags(body_html: str) -> str:
    """Reduce HTML to plain text for the text/plain alternative."""
    text = _STYLE_BLOCK.sub("", body_html)
    text = _SCRIPT_BLOCK.sub("", text)
    text = _TAG.sub("", text)
    text = html.unescape(text).replace("\xa0", " ")
    return _WHITESPACE.sub(" ", text).strip()
