"""
Error Log
=========

Append-only in-memory buffer of timestamped failure records,
flushed to a flat text file once at the end of a run.
"""

from pathlib import Path
from typing import Any, List, Union
import threading

from tier_render.config.logging import get_logger
from tier_render.models.schemas import ErrorRecord

logger = get_logger(__name__)


def _describe(value: Any) -> str:
    try:
        text = str(value)
    except Exception:
        try:
            text = repr(value)
        except Exception:
            text = f"<unprintable {type(value).__name__}>"
    # One record per line in the flushed file
    return " ".join(text.splitlines()) or "<empty message>"


class ErrorLog:
    """Thread-safe, append-only failure log."""

    def __init__(self):
        self._records: List[ErrorRecord] = []
        self._lock = threading.Lock()
        self.logger = logger.bind(component="error_log")

    def record(self, path: Any, message: Any) -> ErrorRecord:
        """Append a timestamped record. Never raises on malformed input."""
        entry = ErrorRecord(path=_describe(path), message=_describe(message))
        with self._lock:
            self._records.append(entry)
        self.logger.debug("Error recorded", path=entry.path, message=entry.message)
        return entry

    @property
    def records(self) -> List[ErrorRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def flush(self, destination: Union[str, Path]) -> bool:
        """
        Write every record, one per line, to ``destination``.

        Returns:
            True if the file was written. Failures are logged, not raised.
        """
        destination = Path(destination)
        lines = [entry.to_line() for entry in self.records]
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")
        except OSError as e:
            self.logger.error(
                "Failed to write error log", destination=str(destination), error=str(e)
            )
            return False

        self.logger.info("Error log written", destination=str(destination), records=len(lines))
        return True
