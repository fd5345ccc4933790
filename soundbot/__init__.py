"""
Top-level package for the Discord sound bot.

This package hosts:
- config loading and validation (YAML + environment overrides)
- Discord client, commands and event handlers
- audio containers (frame-length-prefixed files, Ogg/Opus from ffmpeg)
- voice playback helpers
"""
