"""Bounded reading of process output streams."""

from __future__ import annotations

import threading
from typing import BinaryIO, Callable

from polyshell.errors import InvalidArgumentError, StreamTooLargeError

DEFAULT_READ_BUFFER_SIZE = 8192


def read_stream(
    stream: BinaryIO,
    max_bytes: int,
    buffer_size: int = DEFAULT_READ_BUFFER_SIZE,
    *,
    name: str = "stream",
) -> bytes:
    """Read a binary stream to end-of-file, refusing to exceed a size cap.

    Args:
        stream: Stream to read. ``read1`` is used when available so partial
            pipe output is consumed as soon as it arrives.
        max_bytes: Largest number of bytes accepted.
        buffer_size: Chunk size for each read.
        name: Stream name reported in errors.

    Returns:
        All bytes read.

    Raises:
        StreamTooLargeError: If more than ``max_bytes`` bytes are available.
    """

    if stream is None:
        raise InvalidArgumentError("Stream must not be None.")
    if max_bytes < 0 or buffer_size <= 0:
        raise InvalidArgumentError("Stream limits must be positive.")

    read = getattr(stream, "read1", stream.read)
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = read(buffer_size)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise StreamTooLargeError(name, max_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


def decode_output(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


class StreamDrainer(threading.Thread):
    """Daemon thread that drains one process stream into memory.

    The outcome is exposed through ``data`` and ``error`` once the thread has
    finished. ``on_overflow`` runs on the drain thread when the cap is hit so
    the producer can be stopped.
    """

    def __init__(
        self,
        stream: BinaryIO,
        name: str,
        max_bytes: int,
        buffer_size: int,
        on_overflow: Callable[[], None] | None = None,
    ) -> None:
        super().__init__(name=f"polyshell-drain-{name}", daemon=True)
        self._stream = stream
        self._stream_name = name
        self._max_bytes = max_bytes
        self._buffer_size = buffer_size
        self._on_overflow = on_overflow
        self.data = b""
        self.error: Exception | None = None

    def run(self) -> None:
        try:
            self.data = read_stream(
                self._stream,
                self._max_bytes,
                self._buffer_size,
                name=self._stream_name,
            )
        except StreamTooLargeError as exc:
            self.error = exc
            if self._on_overflow is not None:
                self._on_overflow()
        except (OSError, ValueError) as exc:
            self.error = exc
