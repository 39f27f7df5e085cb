"""Abstract base class for backup file writers."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Callable, TextIO

from scripts.userpool_backup.errors import WriterClosedError

logger = logging.getLogger("userpool_backup.writer")


class BaseWriter(ABC):
    """Streams user records into one sink through a format encoder.

    The writer owns the sink. ``end()`` lets the encoder emit its trailer,
    flushes and closes the sink, and only then runs the ``on_end`` callbacks,
    each exactly once.
    """

    FORMAT: str = ""
    # Passed to open(); csv needs newline="" to control line endings itself
    NEWLINE: str | None = None

    def __init__(self, sink: TextIO) -> None:
        self._sink = sink
        self._ended = False
        self._completed = False
        self._callbacks: list[Callable[[], None]] = []
        self.records_written = 0

    @classmethod
    def open(cls, path: str, **kwargs: Any) -> "BaseWriter":
        """Create the file at ``path`` (and its directory) and wrap it."""
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        sink = open(path, "w", encoding="utf-8", newline=cls.NEWLINE)
        try:
            return cls(sink, **kwargs)
        except Exception:
            sink.close()
            raise

    def write(self, user: dict[str, Any]) -> None:
        if self._ended:
            raise WriterClosedError(
                f"Cannot write user {user.get('Username')!r}: writer already ended"
            )
        self._encode(user)
        self.records_written += 1

    def on_end(self, callback: Callable[[], None]) -> None:
        """Register ``callback`` to run once the file is complete."""
        if self._completed:
            callback()
            return
        self._callbacks.append(callback)

    def end(self) -> None:
        """Finish encoding and close the sink. Calling it twice is a no-op.

        The sink is closed even when the trailer cannot be written; callbacks
        then do not run.
        """
        if self._ended:
            return
        self._ended = True
        try:
            self._finish()
            self._sink.flush()
        finally:
            self._sink.close()
        self._completed = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def abort(self) -> None:
        """Close the sink without a trailer; the partial file stays on disk."""
        if self._ended:
            return
        self._ended = True
        self._callbacks = []
        self._sink.close()
        logger.warning("Writer aborted after %d records", self.records_written,
                       extra={"records": self.records_written, "output_format": self.FORMAT})

    @abstractmethod
    def _encode(self, user: dict[str, Any]) -> None:
        """Serialise one record into the sink."""

    @abstractmethod
    def _finish(self) -> None:
        """Emit whatever the format needs after the last record."""
