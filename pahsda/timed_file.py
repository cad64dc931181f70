"""Replay an existing binary file gradually over a chosen time span."""

from __future__ import annotations

import os
import time
from typing import Callable, Optional

__all__ = ["POLL_INTERVAL", "TimedFileReader"]

# How often a consumer should poll for newly available bytes, in seconds.
POLL_INTERVAL = 0.1


class TimedFileReader:
    """Read-only file whose contents become available linearly over time.

    Consumers call :meth:`bytes_available` and then :meth:`read` with that count.
    """

    def __init__(self, path: "str | os.PathLike[str]", clock: Optional[Callable[[], float]] = None) -> None:
        self._file = open(path, "rb")
        self._clock = clock if clock is not None else time.monotonic
        self._time_to_read_ms = 60000
        self._file_size = 0
        self._start: Optional[float] = None

    @property
    def time_to_read_ms(self) -> int:
        return self._time_to_read_ms

    def set_time_to_read(self, seconds: int) -> None:
        """Set how long the whole file takes to become available."""
        if seconds <= 0:
            raise ValueError("time to read the file must be positive")
        self._time_to_read_ms = int(seconds * 1000)

    def start(self) -> None:
        """Begin releasing the file's bytes."""
        self._file_size = os.fstat(self._file.fileno()).st_size
        self._start = self._clock()

    def _elapsed_ms(self) -> int:
        if self._start is None:
            return self._time_to_read_ms
        elapsed = int((self._clock() - self._start) * 1000)
        return max(0, min(elapsed, self._time_to_read_ms))

    def bytes_available(self) -> int:
        """Bytes that may be read now given the elapsed time and current position."""
        by_time = self._elapsed_ms() * self._file_size // self._time_to_read_ms
        return max(0, min(by_time - self._file.tell(), self._file_size))

    def read(self, size: int) -> bytes:
        return self._file.read(size)

    def is_finished(self) -> bool:
        """True once the whole read time has elapsed after :meth:`start`."""
        return self._start is not None and self._elapsed_ms() >= self._time_to_read_ms

    def close(self) -> None:
        self._file.close()

    @property
    def closed(self) -> bool:
        return self._file.closed

    def __enter__(self) -> "TimedFileReader":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()