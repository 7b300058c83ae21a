"""Tests for transport header helpers."""

from datetime import datetime, timezone

from msg2eml.core.models import RecipientType
from msg2eml.core.transport import (
    TransportAddress,
    extract_header_value,
    parse_address_list,
    parse_date_from_transport_headers,
    parse_recipients_from_transport_headers,
    strip_generated_headers,
)

HEADERS = (
    "Received: from mail.example.com by mx.example.org\r\n"
    "\twith SMTP id abc123\r\n"
    "From: \"Alice Smith\" <alice@example.com>\r\n"
    "To: Bob Jones <bob@example.com>,\r\n"
    " \"Carol, Jr.\" <carol@example.com>\r\n"
    "CC: dave@example.com\r\n"
    "Date: Mon, 15 Jan 2024 10:30:00 +0100\r\n"
    "Subject: Original\r\n"
    "X-Spam-Status: No"
)


class TestExtractHeaderValue:
    """Tests for extract_header_value."""

    def test_simple_value(self):
        assert extract_header_value(HEADERS, "Subject") == "Original"

    def test_case_insensitive(self):
        assert extract_header_value(HEADERS, "cc") == "dave@example.com"

    def test_folded_value_unfolded(self):
        assert extract_header_value(HEADERS, "Received") == (
            "from mail.example.com by mx.example.org with SMTP id abc123"
        )

    def test_lf_line_endings(self):
        block = HEADERS.replace("\r\n", "\n")
        assert extract_header_value(block, "Subject") == "Original"

    def test_missing(self):
        assert extract_header_value(HEADERS, "Reply-To") is None


class TestParseAddressList:
    """Tests for parse_address_list."""

    def test_shapes(self):
        addresses = parse_address_list(
            'plain@example.com, "Quoted Name" <q@example.com>, Bare Name <b@example.com>, <only@example.com>'
        )
        assert addresses == [
            TransportAddress(email="plain@example.com"),
            TransportAddress(name="Quoted Name", email="q@example.com"),
            TransportAddress(name="Bare Name", email="b@example.com"),
            TransportAddress(email="only@example.com"),
        ]

    def test_comma_inside_quotes(self):
        addresses = parse_address_list('"Doe, John" <john@example.com>, jane@example.com')
        assert [a.name for a in addresses] == ["Doe, John", None]
        assert [a.email for a in addresses] == ["john@example.com", "jane@example.com"]

    def test_name_only(self):
        assert parse_address_list("Undisclosed recipients") == [
            TransportAddress(name="Undisclosed recipients")
        ]


class TestParseRecipients:
    """Tests for parse_recipients_from_transport_headers."""

    def test_buckets(self):
        recipients = parse_recipients_from_transport_headers(HEADERS)
        assert [a.email for a in recipients.to] == ["bob@example.com", "carol@example.com"]
        assert [a.name for a in recipients.to] == ["Bob Jones", "Carol, Jr."]
        assert [a.email for a in recipients.cc] == ["dave@example.com"]
        assert recipients.bcc == []
        assert len(recipients.all) == 3
        assert recipients.for_type(RecipientType.CC) is recipients.cc


class TestParseDate:
    """Tests for parse_date_from_transport_headers."""

    def test_date_header(self):
        parsed = parse_date_from_transport_headers(HEADERS)
        assert parsed == datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)

    def test_invalid_date(self):
        assert parse_date_from_transport_headers("Date: not a date") is None

    def test_missing_date(self):
        assert parse_date_from_transport_headers("Subject: x") is None


class TestStripGeneratedHeaders:
    """Tests for strip_generated_headers."""

    def test_generated_names_removed_with_continuations(self):
        stripped = strip_generated_headers(HEADERS, {"from", "TO", "Subject", "Date", "Cc"})
        assert stripped == (
            "Received: from mail.example.com by mx.example.org\r\n"
            "\twith SMTP id abc123\r\n"
            "X-Spam-Status: No"
        )

    def test_lf_input_returns_crlf(self):
        stripped = strip_generated_headers("Received: a\nX-Test: b\n", set())
        assert stripped == "Received: a\r\nX-Test: b"
