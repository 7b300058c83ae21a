"""Process-wide constants used by the conversion engine."""

CRLF = "\r\n"

# Header folding (RFC 5322)
MAX_HEADER_LINE_LENGTH = 78
HARD_LINE_LIMIT = 998

# RFC 2047 encoded words are limited to 75 characters including the wrapper
ENCODED_WORD_PREFIX = "=?UTF-8?B?"
ENCODED_WORD_SUFFIX = "?="
MAX_ENCODED_WORD_LENGTH = 75

# Body transfer encodings (RFC 2045)
QP_LINE_LENGTH = 76
BASE64_LINE_LENGTH = 76

# Placeholders for missing properties
NO_SUBJECT = "(No Subject)"
UNKNOWN_SENDER = "unknown@unknown.com"
EMBEDDED_FILENAME = "embedded.eml"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
RFC822_CONTENT_TYPE = "message/rfc822"

# MIME boundaries
BOUNDARY_PREFIX = "----=_Part_"
BOUNDARY_LENGTH = 13

# iCalendar (RFC 5545)
ICAL_PRODID = "-//msg2eml//NONSGML v1.0//EN"
ICAL_LINE_LENGTH = 75
ICAL_PLACEHOLDER_ADDRESS = "noreply@unknown"
ICAL_UID_DOMAIN = "msg2eml"

# Batch defaults
DEFAULT_WORKERS = 4
