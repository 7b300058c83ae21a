"""iCalendar (RFC 5545) output for meeting requests."""

import random
from datetime import datetime, timezone

from msg2eml.core.constants import (
    CRLF,
    ICAL_LINE_LENGTH,
    ICAL_PLACEHOLDER_ADDRESS,
    ICAL_PRODID,
    ICAL_UID_DOMAIN,
)
from msg2eml.core.models import CalendarEvent
from msg2eml.core.tokens import random_token


def is_calendar_message(message_class: str | None) -> bool:
    """Check for the IPM.Appointment message class and its subclasses."""
    if not message_class:
        return False
    normalized = message_class.lower()
    return normalized == "ipm.appointment" or normalized.startswith("ipm.appointment.")


def parse_attendee_string(attendees: str | None) -> list[str]:
    """Split a semicolon separated attendee list."""
    if not attendees:
        return []
    return [attendee.strip() for attendee in attendees.split(";") if attendee.strip()]


def format_ical_datetime(value: datetime) -> str:
    """Format as a UTC date-time, ``YYYYMMDDTHHMMSSZ``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def escape_ical_text(text: str) -> str:
    """Escape backslash, semicolon, comma and line breaks in TEXT values."""
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace("\r", "\\n")
    )


def fold_ical_line(line: str) -> str:
    """Fold a content line at 75 octets; continuation lines start with a space.

    Multi-byte UTF-8 sequences are never split.
    """
    if len(line.encode("utf-8")) <= ICAL_LINE_LENGTH:
        return line

    lines = []
    current = ""
    current_octets = 0
    limit = ICAL_LINE_LENGTH
    for char in line:
        char_octets = len(char.encode("utf-8"))
        if current_octets + char_octets > limit:
            lines.append(current)
            current = " "
            current_octets = 1
        current += char
        current_octets += char_octets
    lines.append(current)
    return CRLF.join(lines)


def generate_uid(rng: random.Random, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{int(now.timestamp() * 1000)}-{random_token(rng, 8)}@{ICAL_UID_DOMAIN}"


def _address_line(prop: str, value: str) -> str:
    if "@" in value:
        return f"{prop}:mailto:{value}"
    return f"{prop};CN={escape_ical_text(value)}:mailto:{ICAL_PLACEHOLDER_ADDRESS}"


def generate_vcalendar(
    event: CalendarEvent,
    subject: str,
    description: str,
    rng: random.Random,
    now: datetime | None = None,
) -> str:
    """Render a VCALENDAR with one VEVENT (METHOD:REQUEST).

    Args:
        event: Meeting times, location and participants.
        subject: Used as SUMMARY.
        description: Used as DESCRIPTION; omitted when empty.
        rng: Random source for the UID.
        now: DTSTAMP value, defaults to the current time.

    Returns:
        CRLF separated content lines without a trailing line break.
    """
    now = now or datetime.now(timezone.utc)

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{ICAL_PRODID}",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{generate_uid(rng, now)}",
        f"DTSTAMP:{format_ical_datetime(now)}",
        f"DTSTART:{format_ical_datetime(event.start_time)}",
        f"DTEND:{format_ical_datetime(event.end_time)}",
        f"SUMMARY:{escape_ical_text(subject)}",
    ]

    if description:
        lines.append(f"DESCRIPTION:{escape_ical_text(description)}")
    if event.location:
        lines.append(f"LOCATION:{escape_ical_text(event.location)}")
    if event.organizer:
        lines.append(_address_line("ORGANIZER", event.organizer))
    lines.extend(_address_line("ATTENDEE", attendee) for attendee in event.attendees)

    lines.extend(["END:VEVENT", "END:VCALENDAR"])
    return CRLF.join(fold_ical_line(line) for line in lines)
