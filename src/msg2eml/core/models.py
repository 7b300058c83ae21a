"""Data models for msg2eml."""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum

from msg2eml.core.constants import RFC822_CONTENT_TYPE


class RecipientType(str, Enum):
    """Header a recipient is listed under."""

    TO = "to"
    CC = "cc"
    BCC = "bcc"


class Sensitivity(str, Enum):
    """Values of the Sensitivity header (RFC 2156)."""

    PERSONAL = "Personal"
    PRIVATE = "Private"
    COMPANY_CONFIDENTIAL = "Company-Confidential"


@dataclass
class Attachment:
    """Represents an email attachment."""

    filename: str
    content_type: str
    data: bytes
    content_id: str | None = None  # For inline images (cid:)
    is_embedded_message: bool = False

    @property
    def is_inline(self) -> bool:
        """Inline attachments are referenced from the HTML body by content id."""
        return bool(self.content_id)

    @property
    def is_rfc822(self) -> bool:
        """Embedded messages carry an already converted document."""
        return self.content_type.lower() == RFC822_CONTENT_TYPE

    @property
    def size_kb(self) -> float:
        """Return size in KB."""
        return len(self.data) / 1024

    @property
    def size_display(self) -> str:
        """Return human-readable size."""
        size_kb = self.size_kb
        if size_kb < 1024:
            return f"{size_kb:.1f} KB"
        return f"{size_kb / 1024:.1f} MB"


@dataclass
class Recipient:
    """A resolved recipient. ``email`` falls back to the display name."""

    name: str
    email: str
    type: RecipientType = RecipientType.TO


@dataclass
class MessageHeaders:
    """Optional RFC-mapped header fields. ``None`` means omit the header."""

    message_id: str | None = None
    in_reply_to: str | None = None
    references: str | None = None
    reply_to: str | None = None
    priority: int | None = None  # X-Priority, 1 (highest) to 5 (lowest)
    sensitivity: Sensitivity | None = None
    disposition_notification_to: str | None = None
    return_receipt_to: str | None = None
    transport_message_headers: str | None = None
    thread_index: str | None = None
    thread_topic: str | None = None
    keywords: list[str] | None = None
    list_help: str | None = None
    list_subscribe: str | None = None
    list_unsubscribe: str | None = None
    received_by_email: str | None = None
    received_by_name: str | None = None

    @property
    def is_empty(self) -> bool:
        """Check if no header field is present."""
        return all(getattr(self, f.name) in (None, []) for f in fields(self))


@dataclass
class CalendarEvent:
    """Meeting data for the text/calendar part."""

    start_time: datetime
    end_time: datetime
    location: str | None = None
    organizer: str | None = None
    attendees: list[str] = field(default_factory=list)


@dataclass
class SenderInfo:
    """One sender identity as read from the message properties."""

    email: str | None = None
    name: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.email and not self.name


@dataclass
class SenderResolution:
    """Resolved From/Sender identities."""

    from_: SenderInfo
    sender: SenderInfo | None = None
    is_on_behalf_of: bool = False


@dataclass
class ParsedMessage:
    """Represents parsed email data, ready for MIME assembly."""

    subject: str
    from_: str
    recipients: list[Recipient]
    date: datetime
    body: str
    body_html: str | None = None
    attachments: list[Attachment] = field(default_factory=list)
    headers: MessageHeaders | None = None
    calendar_event: CalendarEvent | None = None
    sender: str | None = None  # Only set for "on behalf of" messages

    @property
    def inline_attachments(self) -> list[Attachment]:
        """Get inline attachments (images embedded in body)."""
        return [att for att in self.attachments if att.is_inline]

    @property
    def regular_attachments(self) -> list[Attachment]:
        """Get regular file attachments."""
        return [att for att in self.attachments if not att.is_inline]

    @property
    def to(self) -> list[Recipient]:
        return [r for r in self.recipients if r.type == RecipientType.TO]

    @property
    def cc(self) -> list[Recipient]:
        return [r for r in self.recipients if r.type == RecipientType.CC]

    @property
    def bcc(self) -> list[Recipient]:
        return [r for r in self.recipients if r.type == RecipientType.BCC]
