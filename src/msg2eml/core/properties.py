"""MAPI property access on top of extract-msg.

The conversion engine reads typed property values through the small
``PropertySource`` protocol. ``ExtractMsgDocument`` implements it for
messages opened with extract-msg; tests provide in-memory fakes.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import extract_msg

from msg2eml.core.exceptions import MSGParseError

logger = logging.getLogger(__name__)


class PropertyKind(Enum):
    """How a property is stored in the compound document."""

    STRING = "string"
    BINARY = "binary"
    FIXED = "fixed"  # integers, booleans and timestamps
    NAMED = "named"  # PidLid/PidName properties, read through extract-msg attributes


@dataclass(frozen=True)
class PropertyTag:
    """A MAPI property: canonical name, ``IIIITTTT`` hex id and storage kind."""

    name: str
    property_id: str
    kind: PropertyKind
    attribute: str | None = None


def _string(name: str, property_id: str) -> PropertyTag:
    return PropertyTag(name, property_id, PropertyKind.STRING)


def _binary(name: str, property_id: str) -> PropertyTag:
    return PropertyTag(name, property_id, PropertyKind.BINARY)


def _fixed(name: str, property_id: str) -> PropertyTag:
    return PropertyTag(name, property_id, PropertyKind.FIXED)


def _named(name: str, property_id: str, attribute: str) -> PropertyTag:
    return PropertyTag(name, property_id, PropertyKind.NAMED, attribute)


# Message
PID_TAG_SUBJECT = _string("PidTagSubject", "0037001F")
PID_TAG_BODY = _string("PidTagBody", "1000001F")
PID_TAG_BODY_HTML = _binary("PidTagBodyHtml", "10130102")
PID_TAG_RTF_COMPRESSED = _binary("PidTagRtfCompressed", "10090102")
PID_TAG_MESSAGE_CLASS = _string("PidTagMessageClass", "001A001F")
PID_TAG_MESSAGE_DELIVERY_TIME = _fixed("PidTagMessageDeliveryTime", "0E060040")
PID_TAG_CLIENT_SUBMIT_TIME = _fixed("PidTagClientSubmitTime", "00390040")
PID_TAG_TRANSPORT_MESSAGE_HEADERS = _string("PidTagTransportMessageHeaders", "007D001F")

# Sender identities
PID_TAG_SENDER_NAME = _string("PidTagSenderName", "0C1A001F")
PID_TAG_SENDER_EMAIL_ADDRESS = _string("PidTagSenderEmailAddress", "0C1F001F")
PID_TAG_SENDER_SMTP_ADDRESS = _string("PidTagSenderSmtpAddress", "5D01001F")
PID_TAG_SENT_REPRESENTING_NAME = _string("PidTagSentRepresentingName", "0042001F")
PID_TAG_SENT_REPRESENTING_EMAIL_ADDRESS = _string("PidTagSentRepresentingEmailAddress", "0065001F")
PID_TAG_SENT_REPRESENTING_SMTP_ADDRESS = _string("PidTagSentRepresentingSmtpAddress", "5D02001F")
PID_TAG_RECEIVED_BY_NAME = _string("PidTagReceivedByName", "0040001F")
PID_TAG_RECEIVED_BY_EMAIL_ADDRESS = _string("PidTagReceivedByEmailAddress", "0076001F")
PID_TAG_RECEIVED_BY_SMTP_ADDRESS = _string("PidTagReceivedBySmtpAddress", "5D07001F")

# Internet headers
PID_TAG_INTERNET_MESSAGE_ID = _string("PidTagInternetMessageId", "1035001F")
PID_TAG_IN_REPLY_TO_ID = _string("PidTagInReplyToId", "1042001F")
PID_TAG_INTERNET_REFERENCES = _string("PidTagInternetReferences", "1039001F")
PID_TAG_REPLY_RECIPIENT_NAMES = _string("PidTagReplyRecipientNames", "0050001F")
PID_TAG_PRIORITY = _fixed("PidTagPriority", "00260003")
PID_TAG_IMPORTANCE = _fixed("PidTagImportance", "00170003")
PID_TAG_SENSITIVITY = _fixed("PidTagSensitivity", "00360003")
PID_TAG_READ_RECEIPT_REQUESTED = _fixed("PidTagReadReceiptRequested", "0029000B")
PID_TAG_ORIGINATOR_DELIVERY_REPORT_REQUESTED = _fixed(
    "PidTagOriginatorDeliveryReportRequested", "0023000B"
)
PID_TAG_CONVERSATION_INDEX = _binary("PidTagConversationIndex", "00710102")
PID_TAG_CONVERSATION_TOPIC = _string("PidTagConversationTopic", "0070001F")
PID_TAG_LIST_HELP = _string("PidTagListHelp", "1043001F")
PID_TAG_LIST_SUBSCRIBE = _string("PidTagListSubscribe", "1044001F")
PID_TAG_LIST_UNSUBSCRIBE = _string("PidTagListUnsubscribe", "1045001F")
PID_NAME_KEYWORDS = _named("PidNameKeywords", "Keywords", "categories")

# Appointments
PID_LID_APPOINTMENT_START_WHOLE = _named("PidLidAppointmentStartWhole", "820D", "appointmentStartWhole")
PID_LID_APPOINTMENT_END_WHOLE = _named("PidLidAppointmentEndWhole", "820E", "appointmentEndWhole")
PID_LID_LOCATION = _named("PidLidLocation", "8208", "location")
PID_LID_TO_ATTENDEES_STRING = _named("PidLidToAttendeesString", "823B", "toAttendeesString")
PID_LID_CC_ATTENDEES_STRING = _named("PidLidCcAttendeesString", "823C", "ccAttendeesString")

# Recipients
PID_TAG_DISPLAY_NAME = _string("PidTagDisplayName", "3001001F")
PID_TAG_EMAIL_ADDRESS = _string("PidTagEmailAddress", "3003001F")
PID_TAG_SMTP_ADDRESS = _string("PidTagSmtpAddress", "39FE001F")
PID_TAG_RECIPIENT_TYPE = _fixed("PidTagRecipientType", "0C150003")

# Attachments
PID_TAG_ATTACH_LONG_FILENAME = _string("PidTagAttachLongFilename", "3707001F")
PID_TAG_ATTACH_FILENAME = _string("PidTagAttachFilename", "3704001F")
PID_TAG_ATTACH_MIME_TAG = _string("PidTagAttachMimeTag", "370E001F")
PID_TAG_ATTACH_CONTENT_ID = _string("PidTagAttachContentId", "3712001F")


class PropertyNode(Protocol):
    """Anything that exposes MAPI properties (message, recipient, attachment)."""

    def get_property(self, tag: PropertyTag) -> Any: ...


class AttachmentNode(PropertyNode, Protocol):
    def content(self) -> bytes | None: ...


class PropertySource(PropertyNode, Protocol):
    """A message in the compound document. Every lookup may fail."""

    def recipients(self) -> list[PropertyNode]: ...

    def attachments(self) -> list[AttachmentNode]: ...

    def embedded_messages(self) -> list[AttachmentNode]: ...

    def extract_embedded_message(self, handle: AttachmentNode) -> "PropertySource": ...


class ExtractMsgNode:
    """Property access for any extract-msg object (message, recipient, attachment)."""

    def __init__(self, node):
        self.node = node

    def get_property(self, tag: PropertyTag) -> Any:
        if tag.kind is PropertyKind.NAMED:
            return getattr(self.node, tag.attribute, None)

        if tag.kind is PropertyKind.STRING:
            # extract-msg resolves the Unicode (001F) and 8-bit (001E) variants
            return self.node.getStringStream(f"__substg1.0_{tag.property_id[:4]}")

        if tag.kind is PropertyKind.BINARY:
            return self.node.getStream(f"__substg1.0_{tag.property_id}")

        if hasattr(self.node, "getPropertyVal"):
            return self.node.getPropertyVal(tag.property_id)

        prop = self.node.props.get(tag.property_id)
        return prop.value if prop is not None else None


class ExtractMsgAttachment(ExtractMsgNode):
    """An extract-msg attachment; embedded messages carry an MSG object as data."""

    def content(self) -> bytes | None:
        data = self.node.data
        return data if isinstance(data, bytes) else None

    @property
    def is_embedded_message(self) -> bool:
        try:
            return isinstance(self.node.data, extract_msg.MSGFile)
        except Exception:
            return False


class ExtractMsgDocument(ExtractMsgNode):
    """``PropertySource`` implementation for an opened extract-msg message."""

    def recipients(self) -> list[ExtractMsgNode]:
        return [ExtractMsgNode(recipient) for recipient in self.node.recipients or []]

    def _attachments(self) -> list[ExtractMsgAttachment]:
        return [ExtractMsgAttachment(att) for att in self.node.attachments or []]

    def attachments(self) -> list[ExtractMsgAttachment]:
        return [att for att in self._attachments() if not att.is_embedded_message]

    def embedded_messages(self) -> list[ExtractMsgAttachment]:
        return [att for att in self._attachments() if att.is_embedded_message]

    def extract_embedded_message(self, handle: ExtractMsgAttachment) -> "ExtractMsgDocument":
        return ExtractMsgDocument(handle.node.data)

    def close(self) -> None:
        self.node.close()

    def __enter__(self) -> "ExtractMsgDocument":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_msg(data: bytes) -> ExtractMsgDocument:
    """Open raw MSG bytes.

    Raises:
        MSGParseError: If the container cannot be read.
    """
    if not data:
        raise MSGParseError("Failed to open MSG file: empty input")

    try:
        msg = extract_msg.openMsg(data, strict=False)
    except Exception as e:
        raise MSGParseError(f"Failed to open MSG file: {e}") from e

    return ExtractMsgDocument(msg)


def safe_property(node: PropertyNode, tag: PropertyTag, default: Any = None) -> Any:
    """Look up ``tag``, treating a failing lookup as an absent property."""
    try:
        value = node.get_property(tag)
    except Exception as e:
        logger.debug(f"Could not read {tag.name}: {e}")
        return default
    return default if value is None else value
