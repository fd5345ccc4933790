import asyncio
import io
import os
import signal
import tempfile
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import discord

from soundbot.audio.dca import load_frames
from soundbot.audio.errors import FFmpegProcessError, OggFormatError
from soundbot.main import encode_file, install_signal_handlers, main, parse_args, shutdown
from test_ogg import opus_stream, page
from test_player import fake_process, ffmpeg_source


class TestParseArgs(unittest.TestCase):
    def test_defaults_to_run(self):
        args = parse_args([])
        self.assertIsNone(args.command)
        self.assertIsNone(args.config)

    def test_encode_args(self):
        args = parse_args(["encode", "gong.wav", "gong.dca", "--bitrate", "64k"])
        self.assertEqual((args.command, args.input, args.output, args.bitrate), ("encode", "gong.wav", "gong.dca", "64k"))


class TestEncodeFile(unittest.TestCase):
    def test_writes_frame_length_prefixed_file(self):
        proc = fake_process(opus_stream(page([b"\xfc\x01", b"\xfc\x02"], sequence=2)))
        with tempfile.TemporaryDirectory() as tmp:
            out = os.path.join(tmp, "gong.dca")
            with patch("soundbot.main.spawn_ffmpeg", return_value=ffmpeg_source(proc)):
                self.assertEqual(encode_file("gong.wav", out), 2)
            self.assertEqual(load_frames(out), [b"\xfc\x01", b"\xfc\x02"])

    def test_ffmpeg_failure_writes_nothing(self):
        proc = fake_process(io.BytesIO(b""), returncode=1)
        with tempfile.TemporaryDirectory() as tmp:
            out = os.path.join(tmp, "gong.dca")
            with patch("soundbot.main.spawn_ffmpeg", return_value=ffmpeg_source(proc)):
                with self.assertRaises(FFmpegProcessError):
                    encode_file("gong.wav", out)
            self.assertFalse(os.path.exists(out))

    def test_demux_error_kills_ffmpeg_and_writes_nothing(self):
        proc = fake_process(io.BytesIO(b"not an ogg stream at all, sorry"), running=True)
        with tempfile.TemporaryDirectory() as tmp:
            out = os.path.join(tmp, "gong.dca")
            with patch("soundbot.main.spawn_ffmpeg", return_value=ffmpeg_source(proc)):
                with self.assertRaises(OggFormatError):
                    encode_file("gong.wav", out)
            self.assertFalse(os.path.exists(out))
        proc.kill.assert_called()

    def test_main_encode_failure_exits_1(self):
        with patch("soundbot.main.spawn_ffmpeg", side_effect=FileNotFoundError(2, "missing", "gong.wav")):
            with self.assertRaises(SystemExit) as cm:
                main(["encode", "gong.wav", "gong.dca"])
        self.assertEqual(cm.exception.code, 1)


class TestMainRun(unittest.TestCase):
    def test_login_failure_exits_1(self):
        with patch("soundbot.main.get_config", return_value={"bot_token": "bad"}), \
                patch("soundbot.main.run_bot", new=AsyncMock(side_effect=discord.LoginFailure("Improper token"))):
            with self.assertRaises(SystemExit) as cm:
                main(["run"])
        self.assertEqual(cm.exception.code, 1)

    def test_keyboard_interrupt_is_quiet(self):
        with patch("soundbot.main.get_config", return_value={"bot_token": "t"}), \
                patch("soundbot.main.run_bot", new=AsyncMock(side_effect=KeyboardInterrupt)):
            main([])

    def test_config_path_is_forwarded(self):
        with patch("soundbot.main.get_config", return_value={"bot_token": "t"}) as get_config, \
                patch("soundbot.main.run_bot", new=AsyncMock()):
            main(["--config", "custom.yaml", "run"])
        get_config.assert_called_once_with("custom.yaml")


class TestShutdown(unittest.IsolatedAsyncioTestCase):
    async def test_closes_bot(self):
        bot = MagicMock()
        bot.close = AsyncMock()
        await shutdown(bot, signal.SIGTERM)
        bot.close.assert_awaited_once()

    async def test_signal_handler_keeps_shutdown_task(self):
        bot = MagicMock()
        bot.close = AsyncMock()
        loop = MagicMock()
        tasks = install_signal_handlers(loop, bot)
        handled = {c.args[0]: c.args[1:] for c in loop.add_signal_handler.call_args_list}
        self.assertEqual(set(handled), {signal.SIGINT, signal.SIGTERM})

        callback, sig = handled[signal.SIGTERM]
        callback(sig)
        self.assertEqual(len(tasks), 1)
        await asyncio.gather(*tasks)
        bot.close.assert_awaited_once()
        await asyncio.sleep(0)
        self.assertEqual(tasks, set())

    async def test_signal_handlers_unsupported(self):
        loop = MagicMock()
        loop.add_signal_handler.side_effect = NotImplementedError
        self.assertEqual(install_signal_handlers(loop, MagicMock()), set())


if __name__ == "__main__":
    unittest.main()
