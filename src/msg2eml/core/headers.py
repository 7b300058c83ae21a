"""RFC 5322 header folding and date formatting."""

from collections.abc import Iterator
from datetime import datetime, timezone

from msg2eml.core.constants import CRLF, HARD_LINE_LIMIT, MAX_HEADER_LINE_LENGTH

_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def fold_header(name: str, value: str, max_line_length: int = MAX_HEADER_LINE_LENGTH) -> str:
    """Render ``name: value``, folding lines longer than ``max_line_length``.

    Continuation lines start with a tab. Breaks happen at a space, or right
    after a comma that is followed by a space, and never inside an encoded
    word (``=?...?=``), an angle-bracket address or a quoted string. A token
    that cannot be broken is emitted whole, even past the soft limit; only
    the 998 character hard limit splits it.

    Args:
        name: Header field name.
        value: Already encoded header value.
        max_line_length: Soft line length limit.

    Returns:
        The header with CRLF-separated physical lines and no trailing CRLF.
    """
    header = f"{name}: {value}"
    if len(header) <= max_line_length:
        return header

    lines = []
    current = f"{name}: "
    remaining = value

    while remaining:
        budget = max_line_length - len(current)
        if len(remaining) <= budget:
            current += remaining
            break

        cut = _last_break_within(remaining, budget) or _first_break(remaining)
        if not cut:
            current += remaining
            break

        current += remaining[:cut].rstrip()
        remaining = remaining[cut:].lstrip()
        if remaining:
            lines.append(current)
            current = "\t"

    lines.append(current)
    return CRLF.join(piece for line in lines for piece in _split_hard(line))


def _break_points(text: str, any_comma: bool = False) -> Iterator[int]:
    """Yield break offsets that fall outside encoded words, addresses and quotes.

    A space yields its own offset (the space moves to the next line and is
    stripped); a comma yields the offset after it so it stays on the
    current line.
    """
    in_encoded_word = False
    in_angle = False
    in_quotes = False

    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        next_char = text[i + 1] if i + 1 < length else ""

        if char == "=" and next_char == "?" and not in_quotes:
            in_encoded_word = True
        elif in_encoded_word and char == "?" and next_char == "=":
            in_encoded_word = False
            i += 2
            continue

        if not in_encoded_word:
            if in_quotes:
                if char == "\\":
                    i += 2
                    continue
                if char == '"':
                    in_quotes = False
            elif char == '"' and not in_angle:
                in_quotes = True
            elif char == "<":
                in_angle = True
            elif char == ">" and in_angle:
                in_angle = False
            elif not in_angle:
                if char == " ":
                    yield i
                elif char == "," and (any_comma or next_char == " "):
                    yield i + 1
        i += 1


def _last_break_within(text: str, budget: int) -> int | None:
    best = None
    for position in _break_points(text):
        if position > budget:
            break
        if position > 0:
            best = position
    return best


def _first_break(text: str) -> int | None:
    for position in _break_points(text, any_comma=True):
        if position > 0:
            return position
    return None


def _split_hard(line: str) -> list[str]:
    if len(line) <= HARD_LINE_LIMIT:
        return [line]

    pieces = [line[:HARD_LINE_LIMIT]]
    rest = line[HARD_LINE_LIMIT:]
    step = HARD_LINE_LIMIT - 1
    pieces.extend(f"\t{rest[i:i + step]}" for i in range(0, len(rest), step))
    return pieces


def format_email_date(value: datetime) -> str:
    """Format a timestamp as ``Ddd, D Mon YYYY HH:MM:SS +0000`` in UTC.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return (
        f"{_DAYS[value.weekday()]}, {value.day} {_MONTHS[value.month - 1]} {value.year} "
        f"{value:%H:%M:%S} +0000"
    )
