from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import discord

from .errors import AlreadyPlayingError
from .ffmpeg import FFmpegOptions, spawn_ffmpeg
from .sources import BufferedOpusSource

logger = logging.getLogger(__name__)

VOICE_CONNECT_TIMEOUT = 30.0


def ensure_idle(voice_client: discord.VoiceClient | None) -> None:
    if voice_client is not None and voice_client.is_playing():
        raise AlreadyPlayingError(f"Already playing in {voice_client.channel}")


async def connect_voice(
    channel: discord.VoiceChannel | discord.StageChannel,
    timeout: float = VOICE_CONNECT_TIMEOUT,
) -> discord.VoiceClient:
    """
    Join `channel` deafened, reusing the guild's voice connection if there is one.
    A connection that is playing elsewhere is not moved.
    """
    voice_client = channel.guild.voice_client
    if voice_client is not None and voice_client.is_connected():
        if voice_client.channel != channel:
            ensure_idle(voice_client)
            logger.info("Moving voice connection to %s", channel.name)
            await voice_client.move_to(channel)
        return voice_client

    logger.info("Joining voice channel %s (%s)", channel.name, channel.id)
    return await channel.connect(timeout=timeout, self_deaf=True, self_mute=False)


async def play_source(voice_client: discord.VoiceClient, source: discord.AudioSource) -> None:
    """
    Play `source` and wait until it finishes. Errors from the player thread
    are raised here.
    """
    ensure_idle(voice_client)

    loop = asyncio.get_running_loop()
    done: asyncio.Future[None] = loop.create_future()

    def _after(error: Exception | None) -> None:
        def _resolve() -> None:
            if done.done():
                return
            if error is not None:
                done.set_exception(error)
            else:
                done.set_result(None)

        loop.call_soon_threadsafe(_resolve)

    voice_client.play(source, after=_after)
    await done


async def play_frames(
    channel: discord.VoiceChannel | discord.StageChannel,
    frames: Sequence[bytes],
    delay: float = 0.25,
    disconnect: bool = True,
) -> None:
    """
    Join, wait `delay`, play the buffered frames, wait `delay` again, then leave.

    Raises AlreadyPlayingError without touching the connection if something
    else is playing, either before joining or once the first delay is over.
    """
    ensure_idle(channel.guild.voice_client)
    voice_client = await connect_voice(channel)
    await asyncio.sleep(delay)
    # no await between this check and play(), so playback below is ours
    ensure_idle(voice_client)
    try:
        await play_source(voice_client, BufferedOpusSource(frames))
        await asyncio.sleep(delay)
    finally:
        if disconnect:
            await voice_client.disconnect()


async def stream_file(
    voice_client: discord.VoiceClient,
    input_path: str,
    options: FFmpegOptions | None = None,
) -> int:
    """
    Transcode `input_path` through ffmpeg and relay it to voice.
    Returns the number of packets sent. Playback stopped early (`/stop`)
    is not an error; ffmpeg failing on its own is.
    """
    ensure_idle(voice_client)

    source = await asyncio.to_thread(spawn_ffmpeg, input_path, options)
    try:
        await play_source(voice_client, source)
    finally:
        source.cleanup()
    source.check_exit()
    logger.info("Streamed %d packets from %s", source.packets_sent, input_path)
    return source.packets_sent
