"""Shared fixtures and in-memory property sources."""

import random
from datetime import datetime, timezone

import pytest

from msg2eml.core.models import ParsedMessage


class FakeNode:
    """Property node backed by a dict of PropertyTag -> value.

    An exception instance as value is raised on lookup.
    """

    def __init__(self, properties=None):
        self.properties = dict(properties or {})

    def get_property(self, tag):
        value = self.properties.get(tag)
        if isinstance(value, Exception):
            raise value
        return value


class FakeAttachment(FakeNode):
    def __init__(self, properties=None, data=b""):
        super().__init__(properties)
        self.data = data

    def content(self):
        if isinstance(self.data, Exception):
            raise self.data
        return self.data


class FakeSource(FakeNode):
    """In-memory message; ``embedded`` pairs attachment handles with sub-sources."""

    def __init__(self, properties=None, recipients=None, attachments=None, embedded=None):
        super().__init__(properties)
        self._recipients = recipients or []
        self._attachments = attachments or []
        self._embedded = embedded or []

    def recipients(self):
        return list(self._recipients)

    def attachments(self):
        return list(self._attachments)

    def embedded_messages(self):
        return [handle for handle, _ in self._embedded]

    def extract_embedded_message(self, handle):
        for candidate, source in self._embedded:
            if candidate is handle:
                if isinstance(source, Exception):
                    raise source
                return source
        raise KeyError("unknown embedded message")


@pytest.fixture
def rng():
    """Seeded random source for reproducible boundaries and UIDs."""
    return random.Random(1234)


@pytest.fixture
def fixed_date():
    return datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_message(fixed_date):
    """Factory for ParsedMessage with sensible defaults."""

    def _make(**overrides):
        fields = {
            "subject": "Test Subject",
            "from_": "sender@example.com",
            "recipients": [],
            "date": fixed_date,
            "body": "Hello World",
        }
        fields.update(overrides)
        return ParsedMessage(**fields)

    return _make
