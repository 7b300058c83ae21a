"""Custom exceptions for msg2eml."""


class MSG2EMLError(Exception):
    """Base exception for msg2eml errors."""

    pass


class MSGParseError(MSG2EMLError):
    """Error opening or parsing an MSG file."""

    pass


class AttachmentError(MSG2EMLError):
    """Error handling attachment."""

    pass


class EMLWriteError(MSG2EMLError):
    """Error writing the converted EML document."""

    pass


class BatchProcessingError(MSG2EMLError):
    """Error during batch processing."""

    def __init__(self, message: str, failed_files: list[tuple[str, str]] | None = None):
        super().__init__(message)
        self.failed_files = failed_files or []
