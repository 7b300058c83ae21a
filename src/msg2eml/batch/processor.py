"""Batch processing for MSG to EML conversion."""

import logging
import random
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from msg2eml.core.constants import DEFAULT_WORKERS
from msg2eml.core.converter import MSGToEMLConverter
from msg2eml.core.exceptions import BatchProcessingError

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Result of batch processing."""

    successful: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Total files processed."""
        return len(self.successful) + len(self.failed)

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total == 0:
            return 0.0
        return (self.success_count / self.total) * 100

    def raise_for_failures(self) -> None:
        """Raise BatchProcessingError if any file failed to convert."""
        if self.failed:
            raise BatchProcessingError(
                f"{self.failure_count} of {self.total} file(s) failed to convert",
                failed_files=[(str(path), error) for path, error in self.failed],
            )


class BatchProcessor:
    """Convert multiple MSG files concurrently.

    Conversions share no state besides the random source, so each file is
    handed to the pool as an independent task.
    """

    def __init__(self, max_workers: int = DEFAULT_WORKERS, rng: random.Random | None = None):
        """Initialize batch processor.

        Args:
            max_workers: Maximum number of concurrent workers.
            rng: Random source passed to the converter.
        """
        self.max_workers = max_workers
        self.converter = MSGToEMLConverter(rng)

    def find_msg_files(
        self,
        input_dir: Path | str,
        recursive: bool = False,
    ) -> list[Path]:
        """Find all MSG files in a directory.

        Args:
            input_dir: Directory to search.
            recursive: Whether to search subdirectories.

        Returns:
            Sorted list of MSG file paths.

        Raises:
            ValueError: If ``input_dir`` is not a directory.
        """
        input_dir = Path(input_dir)

        if not input_dir.is_dir():
            raise ValueError(f"Not a directory: {input_dir}")

        pattern = "**/*" if recursive else "*"
        return sorted(
            path for path in input_dir.glob(pattern)
            if path.is_file() and path.suffix.lower() == ".msg"
        )

    def process(
        self,
        msg_files: list[Path],
        output_dir: Path | str,
        progress_callback: Callable[[Path, bool, str | None], None] | None = None,
    ) -> BatchResult:
        """Process multiple MSG files.

        Args:
            msg_files: List of MSG file paths.
            output_dir: Output directory for EML files.
            progress_callback: Optional callback for progress updates.
                Called with (file_path, success, error_message).

        Returns:
            BatchResult with successful and failed conversions.
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        result = BatchResult()

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_file = {
                executor.submit(self.converter.convert_file, msg_file, output_dir): msg_file
                for msg_file in msg_files
            }

            for future in as_completed(future_to_file):
                msg_file = future_to_file[future]

                try:
                    eml_path = future.result()
                    result.successful.append(eml_path)

                    if progress_callback:
                        progress_callback(msg_file, True, None)

                except Exception as e:
                    error_msg = str(e)
                    logger.warning(f"Failed to convert {msg_file}: {error_msg}")
                    result.failed.append((msg_file, error_msg))

                    if progress_callback:
                        progress_callback(msg_file, False, error_msg)

        return result
