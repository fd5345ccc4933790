"""
Frame-length-prefixed Opus container.

A file is a sequence of records, each a little-endian uint16 byte count followed
by that many bytes of Opus payload. There is no header; end of file at a record
boundary ends the stream.
"""

from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator

from .errors import DCAFormatError

logger = logging.getLogger(__name__)

FRAME_HEADER = struct.Struct("<H")
MAX_FRAME_SIZE = 0xFFFF
FRAME_DURATION_MS = 20


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def iter_frames(stream: BinaryIO) -> Iterator[bytes]:
    """
    Yield each Opus payload from a frame-length-prefixed stream.

    A short read of the length prefix is treated as end of file. A short read
    of a payload raises DCAFormatError.
    """
    index = 0
    while True:
        header = _read_exact(stream, FRAME_HEADER.size)
        if len(header) < FRAME_HEADER.size:
            if header:
                logger.debug("Ignoring %d trailing byte(s) after frame %d", len(header), index)
            return

        (length,) = FRAME_HEADER.unpack(header)
        if length == 0:
            continue

        payload = _read_exact(stream, length)
        if len(payload) < length:
            raise DCAFormatError(
                f"Frame {index} truncated: expected {length} bytes, got {len(payload)}"
            )
        index += 1
        yield payload


def load_frames(path: str | Path) -> list[bytes]:
    """Read a whole frame-length-prefixed file into memory."""
    with open(path, "rb") as f:
        return list(iter_frames(f))


def write_frames(stream: BinaryIO, frames: Iterable[bytes]) -> int:
    written = 0
    for i, frame in enumerate(frames):
        if len(frame) > MAX_FRAME_SIZE:
            raise DCAFormatError(f"Frame {i} is {len(frame)} bytes, max is {MAX_FRAME_SIZE}")
        stream.write(FRAME_HEADER.pack(len(frame)))
        stream.write(frame)
        written += FRAME_HEADER.size + len(frame)
    return written


def frames_duration(frames: list[bytes]) -> float:
    """Playback length in seconds, assuming 20 ms Opus frames."""
    return len(frames) * FRAME_DURATION_MS / 1000
