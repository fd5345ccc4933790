"""
Audio sources handed to discord.py's voice client.

Both sources return already-encoded Opus packets, so the voice client sends
them as-is. discord.py calls ``read()`` from its player thread every 20 ms and
stops when it gets an empty bytes object.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Sequence

import discord

from .errors import FFmpegProcessError
from .ogg import iter_opus_packets

logger = logging.getLogger(__name__)

# How long to give ffmpeg to exit once it has closed its output.
EXIT_TIMEOUT = 5.0


class BufferedOpusSource(discord.AudioSource):
    """Plays a pre-loaded list of Opus frames once."""

    def __init__(self, frames: Sequence[bytes]) -> None:
        self._frames = frames
        self._index = 0

    @property
    def frames_sent(self) -> int:
        return self._index

    def is_opus(self) -> bool:
        return True

    def read(self) -> bytes:
        if self._index >= len(self._frames):
            return b""
        frame = self._frames[self._index]
        self._index += 1
        return frame


class FFmpegOpusSource(discord.FFmpegOpusAudio):
    """
    discord.py's ffmpeg source with the Opus header packets filtered out.

    When the output ends on its own, ffmpeg's exit status is recorded before
    ``cleanup()`` kills the process, so :meth:`check_exit` can tell a failed
    transcode from one stopped by the player. A demux error raised by
    ``read()`` ends playback; the voice player passes it to ``after``.
    """

    def __init__(self, source: str, **kwargs) -> None:
        super().__init__(source, **kwargs)
        self._packet_iter = iter_opus_packets(self._stdout)
        self.returncode: int | None = None
        self.packets_sent = 0

    def read(self) -> bytes:
        packet = next(self._packet_iter, b"")
        if packet:
            self.packets_sent += 1
        elif self.returncode is None:
            try:
                self.returncode = self._process.wait(timeout=EXIT_TIMEOUT)
            except subprocess.TimeoutExpired:
                logger.warning("ffmpeg process %s did not exit after closing its output", self._process.pid)
        return packet

    def check_exit(self) -> None:
        """Raise FFmpegProcessError if ffmpeg reached the end of its output and failed."""
        if self.returncode:
            raise FFmpegProcessError(self.returncode)
