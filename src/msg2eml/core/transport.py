"""Helpers for the raw transport header block preserved in MSG files.

Outlook keeps the Internet headers of received mail as one text property.
They are used as a fallback source for sender, recipient and date data, and
are copied into the converted document.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from msg2eml.core.constants import CRLF
from msg2eml.core.models import RecipientType

_FIELD_NAME = re.compile(r"^([!-9;-~]+)\s*:")
_ANGLE_ADDRESS = re.compile(r"^(.*?)\s*<([^>]+)>\s*$")
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass
class TransportAddress:
    """One entry of an address header; either part may be missing."""

    name: str | None = None
    email: str | None = None


@dataclass
class TransportRecipients:
    """Addresses from the To/Cc/Bcc transport headers."""

    to: list[TransportAddress] = field(default_factory=list)
    cc: list[TransportAddress] = field(default_factory=list)
    bcc: list[TransportAddress] = field(default_factory=list)

    def for_type(self, recipient_type: RecipientType) -> list[TransportAddress]:
        return getattr(self, recipient_type.value)

    @property
    def all(self) -> list[TransportAddress]:
        return [*self.to, *self.cc, *self.bcc]


def split_header_fields(block: str) -> list[list[str]]:
    """Group raw header lines into fields, keeping continuation lines."""
    fields: list[list[str]] = []
    for line in _LINE_BREAK.split(block):
        if line[:1] in (" ", "\t") and fields:
            fields[-1].append(line)
        elif line.strip():
            fields.append([line])
    return fields


def field_name(field_lines: list[str]) -> str | None:
    match = _FIELD_NAME.match(field_lines[0])
    return match.group(1) if match else None


def extract_header_value(block: str, name: str) -> str | None:
    """Return the unfolded value of the first ``name`` header, if non-empty."""
    wanted = name.lower()
    for field_lines in split_header_fields(block):
        found = field_name(field_lines)
        if found is None or found.lower() != wanted:
            continue
        first = field_lines[0].split(":", 1)[1]
        value = " ".join([first.strip()] + [line.strip() for line in field_lines[1:]])
        return value.strip() or None
    return None


def strip_generated_headers(block: str, generated: set[str]) -> str:
    """Drop header fields whose names are in ``generated`` (case-insensitive).

    Returns the remaining fields as CRLF-separated lines, without a trailing
    line break.
    """
    excluded = {name.lower() for name in generated}
    kept = []
    for field_lines in split_header_fields(block):
        name = field_name(field_lines)
        if name is not None and name.lower() in excluded:
            continue
        kept.extend(field_lines)
    return CRLF.join(kept)


def parse_address_list(value: str) -> list[TransportAddress]:
    """Parse an address header value into individual entries.

    Handles ``user@example.com``, ``"Display Name" <user@example.com>``,
    ``Display Name <user@example.com>`` and comma separated lists of those.
    """
    addresses = []
    for part in _split_addresses(value):
        match = _ANGLE_ADDRESS.match(part)
        if match:
            name = re.sub(r"^[\"']|[\"']$", "", match.group(1)).strip()
            addresses.append(TransportAddress(name=name or None, email=match.group(2).strip()))
        elif "@" in part:
            addresses.append(TransportAddress(email=part))
        else:
            addresses.append(TransportAddress(name=part))
    return addresses


def _split_addresses(value: str) -> list[str]:
    parts = []
    current = ""
    angle_depth = 0
    in_quotes = False

    for char in value:
        if char == '"' and not angle_depth:
            in_quotes = not in_quotes
        elif char == "<" and not in_quotes:
            angle_depth += 1
        elif char == ">" and not in_quotes:
            angle_depth = max(0, angle_depth - 1)

        if char == "," and not angle_depth and not in_quotes:
            parts.append(current.strip())
            current = ""
        else:
            current += char

    parts.append(current.strip())
    return [part for part in parts if part]


def parse_recipients_from_transport_headers(block: str) -> TransportRecipients:
    """Parse the To, Cc and Bcc headers of a transport header block."""
    recipients = TransportRecipients()
    for recipient_type in RecipientType:
        value = extract_header_value(block, recipient_type.value)
        if value:
            recipients.for_type(recipient_type).extend(parse_address_list(value))
    return recipients


def parse_date_from_transport_headers(block: str) -> datetime | None:
    """Parse the ``Date:`` header, returning an aware datetime or ``None``."""
    value = extract_header_value(block, "Date")
    if not value:
        return None

    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
