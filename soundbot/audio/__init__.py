from .dca import iter_frames, load_frames, write_frames, frames_duration
from .errors import (
    AudioError,
    DCAFormatError,
    OggFormatError,
    FFmpegError,
    FFmpegNotFoundError,
    FFmpegProcessError,
    VoiceError,
    AlreadyPlayingError,
    NoVoiceChannelError,
)
from .ffmpeg import FFmpegOptions, spawn_ffmpeg
from .ogg import iter_packets, iter_opus_packets
from .player import connect_voice, ensure_idle, play_source, play_frames, stream_file
from .sources import BufferedOpusSource, FFmpegOpusSource

__all__ = [
    "iter_frames",
    "load_frames",
    "write_frames",
    "frames_duration",
    "AudioError",
    "DCAFormatError",
    "OggFormatError",
    "FFmpegError",
    "FFmpegNotFoundError",
    "FFmpegProcessError",
    "VoiceError",
    "AlreadyPlayingError",
    "NoVoiceChannelError",
    "FFmpegOptions",
    "spawn_ffmpeg",
    "iter_packets",
    "iter_opus_packets",
    "connect_voice",
    "ensure_idle",
    "play_source",
    "play_frames",
    "stream_file",
    "BufferedOpusSource",
    "FFmpegOpusSource",
]
