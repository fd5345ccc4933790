from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

import discord

from .errors import FFmpegNotFoundError
from .sources import FFmpegOpusSource

# discord.py's voice player sends one packet every 20 ms, so the encoder must match.
FRAME_DURATION_MS = 20


@dataclass
class FFmpegOptions:
    executable: str = "ffmpeg"
    bitrate: str = "96k"
    threads: int = 1
    loglevel: str = "error"
    vbr: str = "off"

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "FFmpegOptions":
        section = config.get("ffmpeg") or {}
        return cls(
            executable=section.get("executable", cls.executable),
            bitrate=str(section.get("bitrate", cls.bitrate)),
            threads=int(section.get("threads", cls.threads)),
            loglevel=section.get("loglevel", cls.loglevel),
            vbr=section.get("vbr", cls.vbr),
        )

    def bitrate_kbps(self) -> int:
        """`96k` -> 96, `96000` -> 96."""
        value = self.bitrate.lower()
        if value.endswith("k"):
            return int(value[:-1])
        return max(1, int(value) // 1000)

    def before_options(self) -> str:
        # Streaming is slow, so a single thread is usually all we need.
        return f"-hide_banner -threads {self.threads}"

    def output_options(self) -> str:
        # Constant bitrate keeps packet sizes steady.
        return f"-frame_duration {FRAME_DURATION_MS} -vbr {self.vbr} -loglevel {self.loglevel}"


def spawn_ffmpeg(input_path: str, options: FFmpegOptions | None = None) -> FFmpegOpusSource:
    """
    Start ffmpeg transcoding `input_path` to Ogg/Opus and return the audio source
    reading from it. stderr goes to our own stderr.
    """
    if not os.path.isfile(input_path):
        raise FileNotFoundError(2, "Input file not found", input_path)

    opts = options or FFmpegOptions()
    logging.debug("Spawning %s for %s (%d kbps)", opts.executable, input_path, opts.bitrate_kbps())
    try:
        return FFmpegOpusSource(
            input_path,
            bitrate=opts.bitrate_kbps(),
            executable=opts.executable,
            before_options=opts.before_options(),
            options=opts.output_options(),
        )
    except discord.ClientException as e:
        raise FFmpegNotFoundError(f"{opts.executable!r} could not be started: {e}") from e
