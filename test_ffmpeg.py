import os
import subprocess
import tempfile
import unittest
from unittest.mock import patch

from soundbot.audio.errors import FFmpegNotFoundError
from soundbot.audio.ffmpeg import FFmpegOptions, spawn_ffmpeg
from soundbot.audio.sources import FFmpegOpusSource
from test_ogg import opus_stream
from test_player import fake_process


def option_value(argv, flag):
    return argv[argv.index(flag) + 1]


class TestFFmpegOptions(unittest.TestCase):
    def test_defaults(self):
        opts = FFmpegOptions()
        self.assertEqual(opts.bitrate_kbps(), 96)
        self.assertEqual(opts.before_options(), "-hide_banner -threads 1")
        self.assertEqual(opts.output_options(), "-frame_duration 20 -vbr off -loglevel error")

    def test_options_from_config(self):
        cfg = {"ffmpeg": {"executable": "/usr/local/bin/ffmpeg", "bitrate": 64000, "threads": 2, "vbr": "on"}}
        opts = FFmpegOptions.from_config(cfg)
        self.assertEqual(opts, FFmpegOptions("/usr/local/bin/ffmpeg", "64000", 2, "error", "on"))
        self.assertEqual(opts.bitrate_kbps(), 64)
        self.assertIn("-threads 2", opts.before_options())

    def test_options_from_empty_config(self):
        self.assertEqual(FFmpegOptions.from_config({}), FFmpegOptions())

    def test_bitrate_suffix_is_case_insensitive(self):
        self.assertEqual(FFmpegOptions(bitrate="128K").bitrate_kbps(), 128)


class TestSpawn(unittest.TestCase):
    def setUp(self):
        fd, self.input_path = tempfile.mkstemp(suffix=".wav")
        os.close(fd)
        self.addCleanup(os.remove, self.input_path)

    def test_missing_input_checked_before_spawning(self):
        with patch.object(FFmpegOpusSource, "_spawn_process") as spawn:
            with self.assertRaises(FileNotFoundError):
                spawn_ffmpeg("/nonexistent/gong.wav")
        spawn.assert_not_called()

    def test_missing_executable(self):
        opts = FFmpegOptions(executable="definitely-not-ffmpeg")
        with self.assertRaises(FFmpegNotFoundError) as cm:
            spawn_ffmpeg(self.input_path, opts)
        self.assertIn("definitely-not-ffmpeg", str(cm.exception))

    def test_command_line(self):
        proc = fake_process(opus_stream(), running=True)
        with patch.object(FFmpegOpusSource, "_spawn_process", return_value=proc) as spawn:
            source = spawn_ffmpeg(self.input_path, FFmpegOptions(bitrate="64k", threads=2))
        self.assertIsInstance(source, FFmpegOpusSource)
        self.assertTrue(source.is_opus())
        argv = spawn.call_args.args[0]
        kwargs = spawn.call_args.kwargs
        self.assertEqual(argv[0], "ffmpeg")
        self.assertLess(argv.index("-hide_banner"), argv.index("-i"))
        self.assertEqual(option_value(argv, "-threads"), "2")
        self.assertEqual(option_value(argv, "-i"), self.input_path)
        self.assertEqual(option_value(argv, "-b:a"), "64k")
        self.assertEqual(option_value(argv, "-frame_duration"), "20")
        self.assertEqual(option_value(argv, "-vbr"), "off")
        self.assertEqual(argv[-1], "pipe:1")
        self.assertEqual(kwargs["stdout"], subprocess.PIPE)


if __name__ == "__main__":
    unittest.main()
