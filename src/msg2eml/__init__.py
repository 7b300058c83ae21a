"""Convert Outlook MSG files to RFC 5322 EML documents."""

__version__ = "0.1.0"
