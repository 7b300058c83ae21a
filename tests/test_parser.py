"""Tests for MSG property parsing."""

import base64
from datetime import datetime, timedelta, timezone

import pytest

from msg2eml.core import properties as props
from msg2eml.core.models import RecipientType, Sensitivity
from msg2eml.core.parser import MSGParser

from conftest import FakeAttachment, FakeNode, FakeSource

DELIVERY = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
SUBMIT = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def parser():
    return MSGParser()


def make_source(extra=None, recipients=None, attachments=None):
    properties = {
        props.PID_TAG_SUBJECT: "Quarterly report",
        props.PID_TAG_BODY: "Please find the report attached.",
        props.PID_TAG_SENDER_SMTP_ADDRESS: "alice@example.com",
        props.PID_TAG_SENDER_NAME: "Alice",
        props.PID_TAG_MESSAGE_DELIVERY_TIME: DELIVERY,
    }
    properties.update(extra or {})
    return FakeSource(properties, recipients=recipients, attachments=attachments)


class TestParseSource:
    """Tests for MSGParser.parse_source."""

    def test_basic_fields(self, parser):
        parsed = parser.parse_source(make_source())
        assert parsed.subject == "Quarterly report"
        assert parsed.from_ == '"Alice" <alice@example.com>'
        assert parsed.sender is None
        assert parsed.body == "Please find the report attached."
        assert parsed.body_html is None
        assert parsed.date == DELIVERY
        assert parsed.headers is None
        assert parsed.calendar_event is None

    def test_placeholders(self, parser):
        parsed = parser.parse_source(FakeSource())
        assert parsed.subject == "(No Subject)"
        assert parsed.from_ == "unknown@unknown.com"
        assert parsed.body == ""
        assert parsed.recipients == []
        assert parsed.date.tzinfo is not None

    def test_html_body_bytes_decoded(self, parser):
        parsed = parser.parse_source(make_source({props.PID_TAG_BODY_HTML: "<p>Café</p>".encode("utf-8")}))
        assert parsed.body_html == "<p>Café</p>"

    def test_rtf_used_when_no_body(self, parser, monkeypatch):
        from msg2eml.core import parser as parser_module
        from msg2eml.core.rtf import RtfBody

        monkeypatch.setattr(
            parser_module, "extract_body", lambda data: RtfBody(text="From RTF", html="<p>From RTF</p>")
        )
        parsed = parser.parse_source(
            make_source({props.PID_TAG_BODY: None, props.PID_TAG_RTF_COMPRESSED: b"rtf"})
        )
        assert parsed.body == "From RTF"
        assert parsed.body_html == "<p>From RTF</p>"

    def test_delegated_sender(self, parser):
        parsed = parser.parse_source(
            make_source({
                props.PID_TAG_SENDER_SMTP_ADDRESS: "assistant@x.com",
                props.PID_TAG_SENDER_NAME: "Assistant",
                props.PID_TAG_SENT_REPRESENTING_SMTP_ADDRESS: "boss@x.com",
                props.PID_TAG_SENT_REPRESENTING_NAME: "Boss",
            })
        )
        assert parsed.from_ == '"Boss" <boss@x.com>'
        assert parsed.sender == '"Assistant" <assistant@x.com>'

    def test_recipients_resolved_from_transport_headers(self, parser):
        recipients = [
            FakeNode({props.PID_TAG_DISPLAY_NAME: "Bob Jones", props.PID_TAG_RECIPIENT_TYPE: 1}),
            FakeNode({
                props.PID_TAG_DISPLAY_NAME: "Carol",
                props.PID_TAG_SMTP_ADDRESS: "carol@example.com",
                props.PID_TAG_RECIPIENT_TYPE: 2,
            }),
        ]
        transport = "To: Bob Jones <bob@example.com>\r\nCc: carol@example.com\r\n"
        parsed = parser.parse_source(
            make_source({props.PID_TAG_TRANSPORT_MESSAGE_HEADERS: transport}, recipients=recipients)
        )
        assert [(r.email, r.type) for r in parsed.recipients] == [
            ("bob@example.com", RecipientType.TO),
            ("carol@example.com", RecipientType.CC),
        ]
        assert parsed.headers.transport_message_headers == transport


class TestDateFallback:
    """Tests for the date fallback chain."""

    def test_submit_time_when_no_delivery_time(self, parser):
        parsed = parser.parse_source(
            make_source({props.PID_TAG_MESSAGE_DELIVERY_TIME: None, props.PID_TAG_CLIENT_SUBMIT_TIME: SUBMIT})
        )
        assert parsed.date == SUBMIT

    def test_transport_date(self, parser):
        parsed = parser.parse_source(
            make_source({
                props.PID_TAG_MESSAGE_DELIVERY_TIME: None,
                props.PID_TAG_TRANSPORT_MESSAGE_HEADERS: "Date: Tue, 16 Jan 2024 08:00:00 +0000\r\n",
            })
        )
        assert parsed.date == datetime(2024, 1, 16, 8, 0, tzinfo=timezone.utc)

    def test_current_time_last(self, parser):
        before = datetime.now(timezone.utc)
        parsed = parser.parse_source(make_source({props.PID_TAG_MESSAGE_DELIVERY_TIME: None}))
        assert before <= parsed.date <= datetime.now(timezone.utc) + timedelta(seconds=1)

    def test_naive_time_taken_as_utc(self, parser):
        parsed = parser.parse_source(
            make_source({props.PID_TAG_MESSAGE_DELIVERY_TIME: datetime(2024, 1, 15, 10, 30)})
        )
        assert parsed.date == DELIVERY


class TestHeaderExtraction:
    """Tests for the optional header fields."""

    def test_internet_headers(self, parser):
        parsed = parser.parse_source(
            make_source({
                props.PID_TAG_INTERNET_MESSAGE_ID: "<id@example.com>",
                props.PID_TAG_IN_REPLY_TO_ID: "<parent@example.com>",
                props.PID_TAG_INTERNET_REFERENCES: "<root@example.com>",
                props.PID_TAG_REPLY_RECIPIENT_NAMES: "replies@example.com",
                props.PID_TAG_CONVERSATION_TOPIC: "Quarterly report",
                props.PID_TAG_CONVERSATION_INDEX: b"\x01\x02\x03\x04",
                props.PID_TAG_LIST_UNSUBSCRIBE: "<mailto:unsub@example.com>",
                props.PID_TAG_RECEIVED_BY_SMTP_ADDRESS: "bob@example.com",
                props.PID_TAG_RECEIVED_BY_NAME: "Bob",
            })
        )
        headers = parsed.headers
        assert headers.message_id == "<id@example.com>"
        assert headers.in_reply_to == "<parent@example.com>"
        assert headers.references == "<root@example.com>"
        assert headers.reply_to == "replies@example.com"
        assert headers.thread_topic == "Quarterly report"
        assert headers.thread_index == base64.b64encode(b"\x01\x02\x03\x04").decode("ascii")
        assert headers.list_unsubscribe == "<mailto:unsub@example.com>"
        assert headers.received_by_email == "bob@example.com"
        assert headers.received_by_name == "Bob"

    @pytest.mark.parametrize(
        "priority, importance, expected",
        [(1, None, 1), (None, 0, 5), (0, 2, 3), (None, None, None)],
    )
    def test_priority(self, parser, priority, importance, expected):
        parsed = parser.parse_source(
            make_source({props.PID_TAG_PRIORITY: priority, props.PID_TAG_IMPORTANCE: importance})
        )
        assert (parsed.headers.priority if parsed.headers else None) == expected

    @pytest.mark.parametrize(
        "code, expected",
        [(0, None), (1, Sensitivity.PERSONAL), (2, Sensitivity.PRIVATE), (3, Sensitivity.COMPANY_CONFIDENTIAL)],
    )
    def test_sensitivity(self, parser, code, expected):
        parsed = parser.parse_source(make_source({props.PID_TAG_SENSITIVITY: code}))
        assert (parsed.headers.sensitivity if parsed.headers else None) is expected

    def test_receipts_use_sender_email(self, parser):
        parsed = parser.parse_source(
            make_source({
                props.PID_TAG_READ_RECEIPT_REQUESTED: True,
                props.PID_TAG_ORIGINATOR_DELIVERY_REPORT_REQUESTED: True,
            })
        )
        assert parsed.headers.disposition_notification_to == "alice@example.com"
        assert parsed.headers.return_receipt_to == "alice@example.com"

    def test_receipts_need_sender_email(self, parser):
        parsed = parser.parse_source(
            make_source({
                props.PID_TAG_SENDER_SMTP_ADDRESS: None,
                props.PID_TAG_READ_RECEIPT_REQUESTED: True,
            })
        )
        assert parsed.headers is None

    def test_keywords_from_categories(self, parser):
        parsed = parser.parse_source(make_source({props.PID_NAME_KEYWORDS: ["Red", " ", "Blue"]}))
        assert parsed.headers.keywords == ["Red", "Blue"]

    def test_failing_optional_lookup_is_skipped(self, parser):
        """One unreadable property does not affect the others."""
        parsed = parser.parse_source(
            make_source({
                props.PID_NAME_KEYWORDS: KeyError("named property missing"),
                props.PID_TAG_INTERNET_MESSAGE_ID: "<id@example.com>",
            })
        )
        assert parsed.headers.keywords is None
        assert parsed.headers.message_id == "<id@example.com>"


class TestCalendarExtraction:
    """Tests for appointment handling."""

    START = datetime(2024, 1, 15, 14, 0, tzinfo=timezone.utc)
    END = datetime(2024, 1, 15, 15, 0, tzinfo=timezone.utc)

    def test_appointment(self, parser):
        parsed = parser.parse_source(
            make_source({
                props.PID_TAG_MESSAGE_CLASS: "IPM.Appointment",
                props.PID_LID_APPOINTMENT_START_WHOLE: self.START,
                props.PID_LID_APPOINTMENT_END_WHOLE: self.END,
                props.PID_LID_LOCATION: "Room 1",
                props.PID_LID_TO_ATTENDEES_STRING: "bob@example.com; Carol",
                props.PID_LID_CC_ATTENDEES_STRING: "dave@example.com",
            })
        )
        event = parsed.calendar_event
        assert event.start_time == self.START
        assert event.end_time == self.END
        assert event.location == "Room 1"
        assert event.organizer == "alice@example.com"
        assert event.attendees == ["bob@example.com", "Carol", "dave@example.com"]

    def test_appointment_without_end(self, parser):
        parsed = parser.parse_source(
            make_source({
                props.PID_TAG_MESSAGE_CLASS: "IPM.Appointment",
                props.PID_LID_APPOINTMENT_START_WHOLE: self.START,
            })
        )
        assert parsed.calendar_event is None

    def test_note_is_not_appointment(self, parser):
        parsed = parser.parse_source(
            make_source({
                props.PID_TAG_MESSAGE_CLASS: "IPM.Note",
                props.PID_LID_APPOINTMENT_START_WHOLE: self.START,
                props.PID_LID_APPOINTMENT_END_WHOLE: self.END,
            })
        )
        assert parsed.calendar_event is None


class TestAttachments:
    """Tests for attachment parsing."""

    def test_long_filename_preferred(self, parser):
        node = FakeAttachment(
            {
                props.PID_TAG_ATTACH_LONG_FILENAME: "Quarterly report.pdf",
                props.PID_TAG_ATTACH_FILENAME: "QUARTE~1.PDF",
            },
            data=b"%PDF",
        )
        attachment = parser.parse_attachment(node)
        assert attachment.filename == "Quarterly report.pdf"
        assert attachment.content_type == "application/pdf"

    def test_short_filename_fallback(self, parser):
        node = FakeAttachment({props.PID_TAG_ATTACH_FILENAME: "NOTES.TXT"}, data=b"notes")
        assert parser.parse_attachment(node).filename == "NOTES.TXT"

    def test_missing_filename_dropped(self, parser):
        assert parser.parse_attachment(FakeAttachment({}, data=b"data")) is None

    def test_empty_content_dropped(self, parser):
        node = FakeAttachment({props.PID_TAG_ATTACH_FILENAME: "empty.txt"}, data=b"")
        assert parser.parse_attachment(node) is None

    def test_mime_tag_preferred(self, parser):
        node = FakeAttachment(
            {props.PID_TAG_ATTACH_FILENAME: "data.txt", props.PID_TAG_ATTACH_MIME_TAG: "text/csv"},
            data=b"a,b",
        )
        assert parser.parse_attachment(node).content_type == "text/csv"

    def test_unknown_extension(self, parser):
        node = FakeAttachment({props.PID_TAG_ATTACH_FILENAME: "blob.unknownext"}, data=b"x")
        assert parser.parse_attachment(node).content_type == "application/octet-stream"

    def test_content_id_brackets_stripped(self, parser):
        node = FakeAttachment(
            {props.PID_TAG_ATTACH_FILENAME: "logo.png", props.PID_TAG_ATTACH_CONTENT_ID: "<logo001>"},
            data=b"png",
        )
        attachment = parser.parse_attachment(node)
        assert attachment.content_id == "logo001"
        assert attachment.is_inline

    def test_unreadable_attachment_skipped(self, parser):
        attachments = [
            FakeAttachment({props.PID_TAG_ATTACH_FILENAME: "broken.bin"}, data=OSError("bad stream")),
            FakeAttachment({props.PID_TAG_ATTACH_FILENAME: "ok.txt"}, data=b"ok"),
        ]
        parsed = parser.parse_source(make_source(attachments=attachments))
        assert [a.filename for a in parsed.attachments] == ["ok.txt"]


class TestEmbeddedAttachment:
    """Tests for embedded_attachment."""

    @pytest.mark.parametrize(
        "properties, expected",
        [
            ({props.PID_TAG_ATTACH_LONG_FILENAME: "Forwarded.msg"}, "Forwarded.eml"),
            ({props.PID_TAG_ATTACH_FILENAME: "FWD.MSG"}, "FWD.eml"),
            ({props.PID_TAG_ATTACH_LONG_FILENAME: "already.eml"}, "already.eml"),
            ({props.PID_TAG_ATTACH_LONG_FILENAME: "Re: Meeting"}, "Re: Meeting.eml"),
            ({}, "embedded.eml"),
        ],
    )
    def test_filename(self, parser, properties, expected):
        attachment = parser.embedded_attachment(FakeAttachment(properties), "Subject: x\r\n\r\nbody")
        assert attachment.filename == expected

    def test_content(self, parser):
        attachment = parser.embedded_attachment(FakeAttachment(), "Subject: Café\r\n\r\nbody")
        assert attachment.content_type == "message/rfc822"
        assert attachment.is_embedded_message
        assert attachment.data == "Subject: Café\r\n\r\nbody".encode("utf-8")
