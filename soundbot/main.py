"""
Command-line entrypoint.

    soundbot [--config PATH] run            connect and serve commands (default)
    soundbot encode INPUT OUTPUT            transcode INPUT into a sound_file

To run the bot from the environment alone:
    APP_ID=... GUILD_ID=... BOT_TOKEN=... soundbot
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Any

import discord

from soundbot.audio.dca import frames_duration, write_frames
from soundbot.audio.errors import AudioError, parse_error_message
from soundbot.audio.ffmpeg import FFmpegOptions, spawn_ffmpeg
from soundbot.client import SoundBot
from soundbot.config.loader import get_config


def configure_logging() -> None:
    level = logging.DEBUG if os.environ.get("DEBUG") else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s: %(message)s")


async def shutdown(bot: SoundBot, sig: signal.Signals) -> None:
    logging.info("Received %s, shutting down", sig.name)
    await bot.close()


def install_signal_handlers(loop: asyncio.AbstractEventLoop, bot: SoundBot) -> set[asyncio.Task]:
    """
    Close `bot` on SIGINT/SIGTERM. Returns the set holding the pending shutdown
    tasks; the event loop keeps only weak references to tasks.
    """
    tasks: set[asyncio.Task] = set()

    def _on_signal(sig: signal.Signals) -> None:
        task = asyncio.create_task(shutdown(bot, sig))
        tasks.add(task)
        task.add_done_callback(tasks.discard)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
        except NotImplementedError:
            # e.g. Windows event loops
            pass
    return tasks


async def run_bot(config: dict[str, Any]) -> None:
    bot = SoundBot(config)
    shutdown_tasks = install_signal_handlers(asyncio.get_running_loop(), bot)

    async with bot:
        await bot.start(config["bot_token"])
    if shutdown_tasks:
        await asyncio.gather(*shutdown_tasks)


def encode_file(input_path: str, output_path: str, options: FFmpegOptions | None = None) -> int:
    """
    Transcode `input_path` with ffmpeg and write it as a frame-length-prefixed
    file. Returns the number of frames written.
    """
    source = spawn_ffmpeg(input_path, options)
    try:
        frames = list(iter(source.read, b""))
    finally:
        source.cleanup()
    source.check_exit()

    with open(output_path, "wb") as f:
        size = write_frames(f, frames)
    logging.info(
        "Wrote %d frames (%.2fs, %d bytes) to %s", len(frames), frames_duration(frames), size, output_path
    )
    return len(frames)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="soundbot", description="Discord bot that plays Opus audio in voice channels")
    parser.add_argument("--config", help="config file (default: $CONFIG_PATH or config.yaml)")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("run", help="connect to Discord and serve commands")
    encode = sub.add_parser("encode", help="transcode an audio file into a sound_file")
    encode.add_argument("input", help="any audio file ffmpeg can read")
    encode.add_argument("output", help="destination sound file")
    encode.add_argument("--ffmpeg", default="ffmpeg", help="ffmpeg executable (default: ffmpeg)")
    encode.add_argument("--bitrate", default="96k", help="Opus bitrate (default: 96k)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging()

    if args.command == "encode":
        options = FFmpegOptions(executable=args.ffmpeg, bitrate=args.bitrate)
        try:
            encode_file(args.input, args.output, options)
        except (AudioError, FileNotFoundError) as e:
            logging.error("Encode failed: %s", parse_error_message(e))
            sys.exit(1)
        return

    config = get_config(args.config)
    try:
        asyncio.run(run_bot(config))
    except KeyboardInterrupt:
        pass
    except discord.LoginFailure as e:
        logging.error("Failed to open gateway session: %s", e)
        sys.exit(1)
    except (AudioError, FileNotFoundError) as e:
        logging.error("Failed to load sound: %s", parse_error_message(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
