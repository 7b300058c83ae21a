"""Core module for MSG to EML conversion."""

from msg2eml.core.converter import MSGToEMLConverter, convert, document_from_bytes, parse
from msg2eml.core.mime import MimeAssembler, MimeStructure
from msg2eml.core.models import (
    Attachment,
    CalendarEvent,
    MessageHeaders,
    ParsedMessage,
    Recipient,
    RecipientType,
    Sensitivity,
)
from msg2eml.core.parser import MSGParser

__all__ = [
    "MSGToEMLConverter",
    "MSGParser",
    "MimeAssembler",
    "MimeStructure",
    "ParsedMessage",
    "Attachment",
    "Recipient",
    "RecipientType",
    "MessageHeaders",
    "CalendarEvent",
    "Sensitivity",
    "parse",
    "convert",
    "document_from_bytes",
]
