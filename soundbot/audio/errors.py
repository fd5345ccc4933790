from __future__ import annotations

from typing import Tuple


class AudioError(Exception):
    """Base error for audio decoding and playback failures."""


class DCAFormatError(AudioError):
    pass


class OggFormatError(AudioError):
    pass


class FFmpegError(AudioError):
    pass


class FFmpegNotFoundError(FFmpegError):
    pass


class FFmpegProcessError(FFmpegError):
    def __init__(self, returncode: int, message: str | None = None) -> None:
        self.returncode = returncode
        super().__init__(message or f"ffmpeg exited with status {returncode}")


class VoiceError(AudioError):
    pass


class AlreadyPlayingError(VoiceError):
    pass


class NoVoiceChannelError(VoiceError):
    pass


def parse_error_message(error: Exception) -> str:
    """
    Map raw exceptions into short, human-readable messages.
    Used for admin notifications and logs.
    """
    s, t = str(error), type(error).__name__
    if isinstance(error, FFmpegNotFoundError):
        return f"❌ FFmpeg Missing: {s}"
    if isinstance(error, FFmpegProcessError):
        return f"❌ FFmpeg Failed: exit status {error.returncode}"
    if isinstance(error, (DCAFormatError, OggFormatError)):
        return f"❌ Corrupt Audio: {s.split(chr(10))[0][:100]}"
    if isinstance(error, FileNotFoundError):
        return f"❌ File Not Found: {getattr(error, 'filename', None) or s}"
    if isinstance(error, TimeoutError) or t in ("TimeoutError", "ConnectionClosed"):
        return "❌ Voice Timeout: Could not establish the voice connection."
    if "403" in s or t == "Forbidden":
        return "❌ Forbidden: Missing permission to join or speak in the voice channel."
    if "401" in s or "Unauthorized" in s or t == "LoginFailure":
        return "❌ Authentication Error: Invalid bot token."
    if t == "OpusNotLoaded":
        return "❌ Opus Missing: libopus could not be loaded."
    return f"❌ {t}: {s.split(chr(10))[0][:100]}"


def format_user_friendly_error(error: Exception) -> str:
    """
    Short, safe error message suitable for end users.
    """
    t = type(error).__name__
    if isinstance(error, AlreadyPlayingError):
        return "I'm already playing something in this server."
    if isinstance(error, NoVoiceChannelError):
        return "Join a voice channel first."
    if isinstance(error, (DCAFormatError, OggFormatError, FFmpegError, FileNotFoundError)):
        return "The audio could not be played. The admins have been notified."
    if isinstance(error, TimeoutError) or t == "ConnectionClosed":
        return "Could not connect to the voice channel, please try again."
    if t == "Forbidden":
        return "I don't have permission to join or speak in that channel."
    return "Something went wrong while running that command. The admins have been notified."


def error_messages(error: Exception) -> Tuple[str, str]:
    """
    Convenience helper returning (admin_message, user_message).
    """
    return parse_error_message(error), format_user_friendly_error(error)
