"""MIME document assembly.

Chooses one of six multipart layouts from the message content and writes
the header block, boundaries, part headers and encoded bodies.
"""

import random
from datetime import datetime
from enum import Enum

from msg2eml.core.calendar import generate_vcalendar
from msg2eml.core.constants import BOUNDARY_LENGTH, BOUNDARY_PREFIX, CRLF
from msg2eml.core.encoding import (
    encode_base64_lines,
    encode_encoded_word,
    encode_quoted_printable,
    format_filename_params,
)
from msg2eml.core.headers import fold_header, format_email_date
from msg2eml.core.models import Attachment, MessageHeaders, ParsedMessage, Sensitivity
from msg2eml.core.recipients import format_recipient
from msg2eml.core.tokens import default_rng, random_token
from msg2eml.core.transport import strip_generated_headers

# Structural headers of the generated body, never copied from transport headers
_BODY_HEADERS = ("Content-Type", "Content-Transfer-Encoding")


class MimeStructure(Enum):
    """Multipart layouts, in selection priority order."""

    MIXED_RELATED_ALTERNATIVE = 1  # mixed > related > (alternative + inline) + regular
    RELATED_ALTERNATIVE = 2  # related > alternative + inline
    MIXED_ALTERNATIVE = 3  # mixed > alternative + regular
    ALTERNATIVE = 4  # alternative [text, html?, calendar?]
    MIXED_TEXT = 5  # mixed > text + attachments
    TEXT = 6  # bare text/plain


def select_structure(
    has_html: bool,
    has_calendar: bool,
    has_inline: bool,
    has_regular: bool,
) -> MimeStructure:
    """Pick the multipart layout for a message.

    Inline attachments only get a ``multipart/related`` wrapper when there is
    an HTML body to reference them; otherwise they travel as ordinary
    attachments.
    """
    needs_alternative = has_html or has_calendar
    has_regular = has_regular or (has_inline and not has_html)
    has_inline = has_inline and has_html

    if has_inline and has_regular:
        return MimeStructure.MIXED_RELATED_ALTERNATIVE
    if has_inline:
        return MimeStructure.RELATED_ALTERNATIVE
    if needs_alternative and has_regular:
        return MimeStructure.MIXED_ALTERNATIVE
    if needs_alternative:
        return MimeStructure.ALTERNATIVE
    if has_regular:
        return MimeStructure.MIXED_TEXT
    return MimeStructure.TEXT


def generate_boundary(rng: random.Random) -> str:
    return f"{BOUNDARY_PREFIX}{random_token(rng, BOUNDARY_LENGTH)}"


def map_to_x_priority(priority: int | None, importance: int | None) -> int | None:
    """Map MAPI priority/importance to the X-Priority scale.

    PidTagPriority (1 urgent, 0 normal, -1 non-urgent) is preferred over
    PidTagImportance (2 high, 1 normal, 0 low). Both map to 1, 3 and 5.
    """
    priority_map = {1: 1, 0: 3, -1: 5}
    importance_map = {2: 1, 1: 3, 0: 5}

    if priority in priority_map:
        return priority_map[priority]
    if importance in importance_map:
        return importance_map[importance]
    return None


def map_sensitivity(code: int | None) -> Sensitivity | None:
    """Map PidTagSensitivity; 0 (normal) and unknown values give no header."""
    return {
        1: Sensitivity.PERSONAL,
        2: Sensitivity.PRIVATE,
        3: Sensitivity.COMPANY_CONFIDENTIAL,
    }.get(code)


class MimeAssembler:
    """Writes a ParsedMessage as a CRLF-terminated RFC 5322 document.

    Args:
        rng: Random source for boundaries and calendar UIDs.
        now: Fixed DTSTAMP for calendar parts, mainly for tests.
    """

    def __init__(self, rng: random.Random | None = None, now: datetime | None = None):
        self.rng = rng or default_rng
        self.now = now

    def assemble(self, parsed: ParsedMessage) -> str:
        """Render the complete document (header block and body)."""
        inline = parsed.inline_attachments
        regular = parsed.regular_attachments
        structure = select_structure(
            has_html=bool(parsed.body_html),
            has_calendar=parsed.calendar_event is not None,
            has_inline=bool(inline),
            has_regular=bool(regular),
        )
        return self.build_headers(parsed) + self.build_body(parsed, structure)

    # Header block

    def build_headers(self, parsed: ParsedMessage) -> str:
        """Render every header line preceding Content-Type."""
        generated: list[tuple[str, str]] = [("From", parsed.from_)]
        if parsed.sender:
            generated.append(("Sender", parsed.sender))

        for name, recipients in (("To", parsed.to), ("Cc", parsed.cc), ("Bcc", parsed.bcc)):
            if recipients:
                generated.append((name, ", ".join(format_recipient(r) for r in recipients)))

        generated.append(("Subject", encode_encoded_word(parsed.subject)))
        generated.append(("Date", format_email_date(parsed.date)))
        generated.append(("MIME-Version", "1.0"))

        headers = parsed.headers
        transport_block = None
        if headers is not None:
            generated.extend(self._optional_headers(headers))
            transport_block = headers.transport_message_headers

        lines = [fold_header(name, value) for name, value in generated]

        if transport_block:
            excluded = {name for name, _ in generated} | set(_BODY_HEADERS)
            preserved = strip_generated_headers(transport_block, excluded)
            if preserved:
                lines.append(preserved)

        return "".join(f"{line}{CRLF}" for line in lines)

    def _optional_headers(self, headers: MessageHeaders) -> list[tuple[str, str]]:
        optional = [
            ("Message-ID", headers.message_id),
            ("In-Reply-To", headers.in_reply_to),
            ("References", headers.references),
            ("Reply-To", headers.reply_to),
            ("X-Priority", str(headers.priority) if headers.priority is not None else None),
            ("Sensitivity", headers.sensitivity.value if headers.sensitivity else None),
            ("Disposition-Notification-To", headers.disposition_notification_to),
            ("Return-Receipt-To", headers.return_receipt_to),
            ("Thread-Index", headers.thread_index),
            ("Thread-Topic", encode_encoded_word(headers.thread_topic or "")),
            ("Keywords", encode_encoded_word(", ".join(headers.keywords or []))),
            ("List-Help", headers.list_help),
            ("List-Subscribe", headers.list_subscribe),
            ("List-Unsubscribe", headers.list_unsubscribe),
        ]
        # With a transport block, its own Received/Delivered-To trail is kept instead
        if not headers.transport_message_headers:
            optional.append(("Delivered-To", headers.received_by_email))

        return [(name, value) for name, value in optional if value]

    # Body

    def build_body(self, parsed: ParsedMessage, structure: MimeStructure) -> str:
        """Render Content-Type, the blank separator line and the body."""
        if structure is MimeStructure.TEXT:
            return self.text_part(parsed.body)

        if structure is MimeStructure.ALTERNATIVE:
            return self.alternative_part(parsed)

        if structure is MimeStructure.MIXED_TEXT:
            return self._multipart(
                "mixed",
                [self.text_part(parsed.body) + CRLF]
                + [self.attachment_part(att, inline=False) for att in parsed.attachments],
            )

        if structure is MimeStructure.MIXED_ALTERNATIVE:
            # Without an HTML body, inline attachments are sent as regular ones
            return self._multipart(
                "mixed",
                [self.alternative_part(parsed)]
                + [self.attachment_part(att, inline=False) for att in parsed.attachments],
            )

        related = self._multipart(
            "related",
            [self.alternative_part(parsed)]
            + [self.attachment_part(att, inline=True) for att in parsed.inline_attachments],
        )
        if structure is MimeStructure.RELATED_ALTERNATIVE:
            return related

        return self._multipart(
            "mixed",
            [related]
            + [self.attachment_part(att, inline=False) for att in parsed.regular_attachments],
        )

    def _multipart(self, subtype: str, parts: list[str]) -> str:
        boundary = generate_boundary(self.rng)
        out = f'Content-Type: multipart/{subtype}; boundary="{boundary}"{CRLF}{CRLF}'
        for part in parts:
            out += f"--{boundary}{CRLF}{part}"
        return out + f"--{boundary}--{CRLF}"

    def alternative_part(self, parsed: ParsedMessage) -> str:
        """Text, then HTML and calendar alternatives when present."""
        parts = [self.text_part(parsed.body) + CRLF]
        if parsed.body_html:
            parts.append(self.html_part(parsed.body_html) + CRLF)
        if parsed.calendar_event is not None:
            parts.append(self.calendar_part(parsed) + CRLF)
        return self._multipart("alternative", parts)

    def text_part(self, body: str) -> str:
        return (
            f'Content-Type: text/plain; charset="utf-8"{CRLF}'
            f"Content-Transfer-Encoding: quoted-printable{CRLF}"
            f"{CRLF}"
            f"{encode_quoted_printable(body)}"
        )

    def html_part(self, body_html: str) -> str:
        return (
            f'Content-Type: text/html; charset="utf-8"{CRLF}'
            f"Content-Transfer-Encoding: quoted-printable{CRLF}"
            f"{CRLF}"
            f"{encode_quoted_printable(body_html)}"
        )

    def calendar_part(self, parsed: ParsedMessage) -> str:
        vcalendar = generate_vcalendar(
            parsed.calendar_event, parsed.subject, parsed.body, self.rng, now=self.now
        )
        return (
            f'Content-Type: text/calendar; charset="utf-8"; method=REQUEST{CRLF}'
            f"Content-Transfer-Encoding: 8bit{CRLF}"
            f"{CRLF}"
            f"{vcalendar}"
        )

    def attachment_part(self, attachment: Attachment, inline: bool) -> str:
        """Render one attachment.

        ``message/rfc822`` content is an already converted document and is
        inserted verbatim with 7bit encoding; everything else is base64.
        """
        params = format_filename_params(attachment.filename)
        part = fold_header("Content-Type", f"{attachment.content_type}; {params.name}") + CRLF

        if inline and attachment.content_id:
            part += f"Content-ID: <{attachment.content_id}>{CRLF}"
            part += fold_header("Content-Disposition", f"inline; {params.disposition}") + CRLF
        else:
            part += fold_header("Content-Disposition", f"attachment; {params.disposition}") + CRLF

        if attachment.is_rfc822:
            part += f"Content-Transfer-Encoding: 7bit{CRLF}{CRLF}"
            part += attachment.data.decode("utf-8", errors="replace")
            if not part.endswith(CRLF):
                part += CRLF
            return part

        part += f"Content-Transfer-Encoding: base64{CRLF}{CRLF}"
        part += encode_base64_lines(attachment.data)
        return part
