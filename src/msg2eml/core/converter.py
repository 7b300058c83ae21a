"""Main converter orchestrating MSG parsing and EML assembly."""

import logging
import random
from pathlib import Path

from msg2eml.core.exceptions import EMLWriteError, MSGParseError
from msg2eml.core.mime import MimeAssembler
from msg2eml.core.models import ParsedMessage
from msg2eml.core.parser import MSGParser
from msg2eml.core.properties import PropertySource, open_msg

logger = logging.getLogger(__name__)


class MSGToEMLConverter:
    """Orchestrates conversion from MSG to EML.

    Args:
        rng: Random source for MIME boundaries and calendar UIDs. Pass a
            seeded ``random.Random`` for reproducible output.
    """

    def __init__(self, rng: random.Random | None = None):
        """Initialize converter with parser and assembler."""
        self.parser = MSGParser()
        self.assembler = MimeAssembler(rng)

    def parse(self, raw_bytes: bytes) -> ParsedMessage:
        """Parse raw MSG bytes, converting embedded messages along the way.

        Raises:
            MSGParseError: If the MSG container cannot be opened.
        """
        with open_msg(raw_bytes) as document:
            return self.parse_source(document)

    def convert(self, parsed: ParsedMessage) -> str:
        """Render a parsed message as an EML document."""
        return self.assembler.assemble(parsed)

    def document_from_bytes(self, raw_bytes: bytes) -> str:
        """Parse and convert raw MSG bytes in one step."""
        return self.convert(self.parse(raw_bytes))

    def parse_source(self, source: PropertySource) -> ParsedMessage:
        """Parse a message and attach its embedded messages as EML documents."""
        parsed = self.parser.parse_source(source)

        for handle in source.embedded_messages():
            try:
                embedded = source.extract_embedded_message(handle)
                document = self.convert_source(embedded)
            except Exception as e:
                logger.warning(f"Skipping embedded message that could not be converted: {e}")
                continue
            parsed.attachments.append(self.parser.embedded_attachment(handle, document))

        return parsed

    def convert_source(self, source: PropertySource) -> str:
        return self.convert(self.parse_source(source))

    def convert_file(
        self,
        msg_path: Path | str,
        output_dir: Path | str,
        output_filename: str | None = None,
    ) -> Path:
        """Convert an MSG file to an EML file.

        Args:
            msg_path: Path to the MSG file.
            output_dir: Directory for output files.
            output_filename: Optional custom filename for EML (without extension).

        Returns:
            Path to the generated EML file.

        Raises:
            MSGParseError: If the input is missing or cannot be parsed.
            EMLWriteError: If the output file cannot be written.
        """
        msg_path = Path(msg_path)
        output_dir = Path(output_dir)

        if not msg_path.exists():
            raise MSGParseError(f"File not found: {msg_path}")

        if not msg_path.suffix.lower() == ".msg":
            raise MSGParseError(f"Not an MSG file: {msg_path}")

        document = self.document_from_bytes(msg_path.read_bytes())

        eml_name = f"{output_filename or msg_path.stem}.eml"
        eml_path = output_dir / eml_name

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            eml_path.write_bytes(document.encode("utf-8"))
        except OSError as e:
            raise EMLWriteError(f"Failed to write {eml_path}: {e}") from e

        logger.info(f"Wrote {eml_path}")
        return eml_path


_default_converter = MSGToEMLConverter()


def parse(raw_bytes: bytes) -> ParsedMessage:
    return _default_converter.parse(raw_bytes)


def convert(parsed: ParsedMessage) -> str:
    return _default_converter.convert(parsed)


def document_from_bytes(raw_bytes: bytes) -> str:
    return _default_converter.document_from_bytes(raw_bytes)
