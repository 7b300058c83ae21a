"""MSG property extraction into a ParsedMessage."""

import base64
import logging
import mimetypes
from datetime import datetime, timezone

from msg2eml.core import properties as props
from msg2eml.core.calendar import is_calendar_message, parse_attendee_string
from msg2eml.core.constants import (
    DEFAULT_CONTENT_TYPE,
    EMBEDDED_FILENAME,
    NO_SUBJECT,
    RFC822_CONTENT_TYPE,
)
from msg2eml.core.exceptions import AttachmentError
from msg2eml.core.mime import map_sensitivity, map_to_x_priority
from msg2eml.core.models import (
    Attachment,
    CalendarEvent,
    MessageHeaders,
    ParsedMessage,
    SenderResolution,
)
from msg2eml.core.properties import AttachmentNode, PropertySource, safe_property
from msg2eml.core.recipients import parse_recipient
from msg2eml.core.rtf import extract_body
from msg2eml.core.sender import extract_sender_info, format_sender
from msg2eml.core.transport import (
    parse_date_from_transport_headers,
    parse_recipients_from_transport_headers,
)

logger = logging.getLogger(__name__)


def _as_utc(value) -> datetime | None:
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _as_text(value) -> str | None:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class MSGParser:
    """Parser for Outlook MSG property sources.

    Embedded messages are not followed here; the converter recurses into
    them and hands the finished documents back to ``embedded_attachment``.
    """

    def parse_source(self, source: PropertySource) -> ParsedMessage:
        """Extract every field of a message.

        Missing or unreadable properties fall back to placeholders, so this
        succeeds for any source that could be opened.

        Args:
            source: Message properties.

        Returns:
            ParsedMessage with regular attachments only.
        """
        transport_headers = safe_property(source, props.PID_TAG_TRANSPORT_MESSAGE_HEADERS)

        subject = safe_property(source, props.PID_TAG_SUBJECT) or NO_SUBJECT
        body, body_html = self._extract_bodies(source)

        resolution = extract_sender_info(source, transport_headers)
        from_ = format_sender(resolution.from_.email, resolution.from_.name)
        sender = None
        if resolution.is_on_behalf_of and resolution.sender is not None:
            sender = format_sender(resolution.sender.email, resolution.sender.name)

        transport_recipients = (
            parse_recipients_from_transport_headers(transport_headers) if transport_headers else None
        )
        recipients = [parse_recipient(node, transport_recipients) for node in source.recipients()]

        headers = self._extract_headers(source, resolution, transport_headers)

        return ParsedMessage(
            subject=subject,
            from_=from_,
            sender=sender,
            recipients=recipients,
            date=self._extract_date(source, transport_headers),
            body=body,
            body_html=body_html,
            attachments=self._parse_attachments(source),
            headers=None if headers.is_empty else headers,
            calendar_event=self._extract_calendar_event(source, resolution),
        )

    def _extract_bodies(self, source: PropertySource) -> tuple[str, str | None]:
        body = _as_text(safe_property(source, props.PID_TAG_BODY)) or ""
        body_html = _as_text(safe_property(source, props.PID_TAG_BODY_HTML)) or None

        if not body and not body_html:
            rtf_body = extract_body(safe_property(source, props.PID_TAG_RTF_COMPRESSED))
            if rtf_body:
                body = rtf_body.text
                body_html = rtf_body.html or None

        return body, body_html

    def _extract_date(self, source: PropertySource, transport_headers: str | None) -> datetime:
        """Delivery time, then submit time, then the transport Date header, then now."""
        for tag in (props.PID_TAG_MESSAGE_DELIVERY_TIME, props.PID_TAG_CLIENT_SUBMIT_TIME):
            value = _as_utc(safe_property(source, tag))
            if value is not None:
                return value

        if transport_headers:
            parsed = parse_date_from_transport_headers(transport_headers)
            if parsed is not None:
                return parsed

        logger.debug("No date property found, using the current time")
        return datetime.now(timezone.utc)

    def _extract_headers(
        self,
        source: PropertySource,
        resolution: SenderResolution,
        transport_headers: str | None,
    ) -> MessageHeaders:
        sender_email = resolution.from_.email

        headers = MessageHeaders(
            message_id=safe_property(source, props.PID_TAG_INTERNET_MESSAGE_ID) or None,
            in_reply_to=safe_property(source, props.PID_TAG_IN_REPLY_TO_ID) or None,
            references=safe_property(source, props.PID_TAG_INTERNET_REFERENCES) or None,
            reply_to=safe_property(source, props.PID_TAG_REPLY_RECIPIENT_NAMES) or None,
            priority=map_to_x_priority(
                safe_property(source, props.PID_TAG_PRIORITY),
                safe_property(source, props.PID_TAG_IMPORTANCE),
            ),
            sensitivity=map_sensitivity(safe_property(source, props.PID_TAG_SENSITIVITY)),
            transport_message_headers=transport_headers or None,
            thread_topic=safe_property(source, props.PID_TAG_CONVERSATION_TOPIC) or None,
            keywords=self._extract_keywords(source),
            list_help=safe_property(source, props.PID_TAG_LIST_HELP) or None,
            list_subscribe=safe_property(source, props.PID_TAG_LIST_SUBSCRIBE) or None,
            list_unsubscribe=safe_property(source, props.PID_TAG_LIST_UNSUBSCRIBE) or None,
            received_by_email=(
                safe_property(source, props.PID_TAG_RECEIVED_BY_SMTP_ADDRESS)
                or safe_property(source, props.PID_TAG_RECEIVED_BY_EMAIL_ADDRESS)
                or None
            ),
            received_by_name=safe_property(source, props.PID_TAG_RECEIVED_BY_NAME) or None,
        )

        # Receipts go back to the sender
        if sender_email:
            if safe_property(source, props.PID_TAG_READ_RECEIPT_REQUESTED):
                headers.disposition_notification_to = sender_email
            if safe_property(source, props.PID_TAG_ORIGINATOR_DELIVERY_REPORT_REQUESTED):
                headers.return_receipt_to = sender_email

        conversation_index = safe_property(source, props.PID_TAG_CONVERSATION_INDEX)
        if conversation_index:
            headers.thread_index = base64.b64encode(bytes(conversation_index)).decode("ascii")

        return headers

    def _extract_keywords(self, source: PropertySource) -> list[str] | None:
        categories = safe_property(source, props.PID_NAME_KEYWORDS)
        if not categories:
            return None
        if isinstance(categories, str):
            categories = [categories]
        keywords = [str(category).strip() for category in categories if str(category).strip()]
        return keywords or None

    def _extract_calendar_event(
        self, source: PropertySource, resolution: SenderResolution
    ) -> CalendarEvent | None:
        if not is_calendar_message(safe_property(source, props.PID_TAG_MESSAGE_CLASS)):
            return None

        start_time = _as_utc(safe_property(source, props.PID_LID_APPOINTMENT_START_WHOLE))
        end_time = _as_utc(safe_property(source, props.PID_LID_APPOINTMENT_END_WHOLE))
        if start_time is None or end_time is None:
            logger.debug("Appointment without start or end time, no calendar part")
            return None

        attendees = parse_attendee_string(
            safe_property(source, props.PID_LID_TO_ATTENDEES_STRING)
        ) + parse_attendee_string(safe_property(source, props.PID_LID_CC_ATTENDEES_STRING))

        # The sender organizes the meeting
        organizer = resolution.from_.email or resolution.from_.name

        return CalendarEvent(
            start_time=start_time,
            end_time=end_time,
            location=safe_property(source, props.PID_LID_LOCATION) or None,
            organizer=organizer or None,
            attendees=attendees,
        )

    def _parse_attachments(self, source: PropertySource) -> list[Attachment]:
        """Parse regular attachments, skipping the ones that cannot be read."""
        attachments = []
        for node in source.attachments():
            try:
                attachment = self.parse_attachment(node)
            except AttachmentError as e:
                logger.warning(f"Skipping attachment: {e}")
                continue
            if attachment:
                attachments.append(attachment)
        return attachments

    def parse_attachment(self, node: AttachmentNode) -> Attachment | None:
        """Parse a single attachment.

        Returns:
            The attachment, or None when it has no filename or no content.
        """
        filename = safe_property(node, props.PID_TAG_ATTACH_LONG_FILENAME) or safe_property(
            node, props.PID_TAG_ATTACH_FILENAME
        )
        if not filename:
            logger.debug("Dropping attachment without a filename")
            return None

        try:
            data = node.content()
        except Exception as e:
            raise AttachmentError(f"Failed to read attachment '{filename}': {e}") from e
        if not data:
            logger.debug(f"Dropping empty attachment {filename}")
            return None

        content_type = (
            safe_property(node, props.PID_TAG_ATTACH_MIME_TAG)
            or mimetypes.guess_type(filename)[0]
            or DEFAULT_CONTENT_TYPE
        )

        content_id = safe_property(node, props.PID_TAG_ATTACH_CONTENT_ID)
        if content_id:
            content_id = content_id.strip().strip("<>") or None

        return Attachment(
            filename=filename,
            content_type=content_type,
            data=bytes(data),
            content_id=content_id,
        )

    def embedded_attachment(self, handle: AttachmentNode, document: str) -> Attachment:
        """Wrap a converted embedded message as a ``message/rfc822`` attachment.

        Args:
            handle: The attachment that holds the embedded message.
            document: The embedded message, already converted.

        Returns:
            Attachment named after the original, with a ``.eml`` extension.
        """
        filename = (
            safe_property(handle, props.PID_TAG_ATTACH_LONG_FILENAME)
            or safe_property(handle, props.PID_TAG_ATTACH_FILENAME)
            or EMBEDDED_FILENAME
        )

        lowered = filename.lower()
        if lowered.endswith(".msg"):
            filename = f"{filename[:-4]}.eml"
        elif not lowered.endswith(".eml"):
            filename = f"{filename}.eml"

        return Attachment(
            filename=filename,
            content_type=RFC822_CONTENT_TYPE,
            data=document.encode("utf-8"),
            is_embedded_message=True,
        )
