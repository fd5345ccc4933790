"""
YAML configuration validator for config.yaml.

Validates structure, required fields, and common misconfigurations.
"""

from __future__ import annotations

import logging
import re
from typing import Any


logger = logging.getLogger(__name__)

SNOWFLAKE_MAX = 2**64 - 1
KNOWN_KEYS = {
    "bot_token",
    "app_id",
    "guild_id",
    "voice_channel_id",
    "command_prefix",
    "status_message",
    "sound_file",
    "stream_input",
    "play_delay",
    "ffmpeg",
    "permissions",
}
FFMPEG_LOGLEVELS = {"quiet", "panic", "fatal", "error", "warning", "info", "verbose", "debug", "trace"}
FFMPEG_VBR_MODES = {"on", "off", "constrained"}
_BITRATE_RE = re.compile(r"^\d+k?$")


class ConfigValidationError(Exception):
    """Raised when config validation fails."""
    pass


def parse_snowflake(value: Any, name: str) -> int:
    """
    Parse a Discord snowflake from an int or a decimal string.

    Raises ConfigValidationError naming the offending key.
    """
    if isinstance(value, bool):
        raise ConfigValidationError(f"Invalid snowflake for ${name}: {value!r}")
    if isinstance(value, int):
        snowflake = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        # isdigit() alone also accepts superscripts, which int() rejects
        snowflake = int(value.strip(), 10)
    else:
        raise ConfigValidationError(f"Invalid snowflake for ${name}: {value!r}")
    if not 0 < snowflake <= SNOWFLAKE_MAX:
        raise ConfigValidationError(f"Invalid snowflake for ${name}: {value!r} is out of range")
    return snowflake


def _check_snowflake(cfg: dict[str, Any], key: str, errors: list[str], required: bool) -> None:
    value = cfg.get(key)
    if value is None:
        if required:
            errors.append(f"Missing required key: '{key}' (or ${key.upper()})")
        return
    try:
        parse_snowflake(value, key.upper())
    except ConfigValidationError as e:
        errors.append(str(e))


def validate_config(cfg: dict[str, Any], config_path: str = "config.yaml") -> None:
    """
    Comprehensive validation of the merged configuration.

    Raises ConfigValidationError if validation fails.
    Logs detailed error messages before raising.

    Args:
        cfg: The loaded config dictionary (defaults and env overrides applied)
        config_path: Path to config file (for error messages)

    Raises:
        ConfigValidationError: If validation fails
    """
    errors = []
    warnings = []

    # ── Check root structure ────────────────────────────────────────────────
    if not isinstance(cfg, dict):
        errors.append(f"Config root must be a mapping, got {type(cfg).__name__}")
        cfg = {}

    for key in cfg:
        if key not in KNOWN_KEYS:
            warnings.append(f"Unknown top-level key '{key}' is ignored")

    # ── Credentials and IDs ─────────────────────────────────────────────────
    token = cfg.get("bot_token")
    if not token:
        errors.append("No bot token given (set 'bot_token' or $BOT_TOKEN)")
    elif not isinstance(token, str):
        errors.append(f"'bot_token' must be a string, got {type(token).__name__}")

    _check_snowflake(cfg, "app_id", errors, required=True)
    _check_snowflake(cfg, "guild_id", errors, required=True)
    _check_snowflake(cfg, "voice_channel_id", errors, required=False)

    # ── Commands ────────────────────────────────────────────────────────────
    prefix = cfg.get("command_prefix", "!")
    if not isinstance(prefix, str) or not prefix:
        errors.append("'command_prefix' must be a non-empty string")

    status = cfg.get("status_message")
    if status is not None and not isinstance(status, str):
        errors.append(f"'status_message' must be a string, got {type(status).__name__}")

    # ── Audio inputs ────────────────────────────────────────────────────────
    for key in ("sound_file", "stream_input"):
        value = cfg.get(key)
        if value is not None and (not isinstance(value, str) or not value):
            errors.append(f"'{key}' must be a non-empty path string")

    if not cfg.get("sound_file") and not cfg.get("stream_input"):
        warnings.append("Neither 'sound_file' nor 'stream_input' is set; the bot has nothing to play")

    delay = cfg.get("play_delay", 0.25)
    if isinstance(delay, bool) or not isinstance(delay, (int, float)):
        errors.append(f"'play_delay' must be a number, got {type(delay).__name__}")
    elif delay < 0:
        errors.append(f"'play_delay' must not be negative, got {delay}")

    # ── Validate ffmpeg section ─────────────────────────────────────────────
    if "ffmpeg" in cfg:
        ff = cfg["ffmpeg"]
        if not isinstance(ff, dict):
            errors.append(f"'ffmpeg' must be a mapping, got {type(ff).__name__}")
        else:
            executable = ff.get("executable", "ffmpeg")
            if not isinstance(executable, str) or not executable:
                errors.append("'ffmpeg.executable' must be a non-empty string")

            bitrate = str(ff.get("bitrate", "96k"))
            if not _BITRATE_RE.match(bitrate):
                errors.append(f"'ffmpeg.bitrate' must look like '96k' or '96000', got {bitrate!r}")

            threads = ff.get("threads", 1)
            if isinstance(threads, bool) or not isinstance(threads, int) or threads < 1:
                errors.append(f"'ffmpeg.threads' must be a positive integer, got {threads!r}")

            loglevel = ff.get("loglevel", "error")
            if loglevel not in FFMPEG_LOGLEVELS:
                errors.append(
                    f"'ffmpeg.loglevel' must be one of {', '.join(sorted(FFMPEG_LOGLEVELS))}, "
                    f"got {loglevel!r}"
                )

            vbr = ff.get("vbr", "off")
            if vbr not in FFMPEG_VBR_MODES:
                errors.append(
                    f"'ffmpeg.vbr' must be one of {', '.join(sorted(FFMPEG_VBR_MODES))}, got {vbr!r}"
                )

    # ── Validate permissions section ───────────────────────────────────────
    if "permissions" in cfg:
        perms = cfg["permissions"]
        if not isinstance(perms, dict):
            errors.append(
                f"'permissions' must be a mapping, got {type(perms).__name__}"
            )
        elif "users" in perms:
            users = perms["users"]
            if not isinstance(users, dict):
                errors.append(
                    f"'permissions.users' must be a mapping, got {type(users).__name__}"
                )
            elif "admin_ids" in users:
                ids = users["admin_ids"]
                if not isinstance(ids, list):
                    errors.append(
                        f"'permissions.users.admin_ids' must be a list, got {type(ids).__name__}"
                    )
                else:
                    for i, admin_id in enumerate(ids):
                        try:
                            parse_snowflake(admin_id, f"permissions.users.admin_ids[{i}]")
                        except ConfigValidationError as e:
                            errors.append(str(e))

    # ── Log warnings ────────────────────────────────────────────────────────
    for warning in warnings:
        logger.warning("Config warning: %s", warning)

    # ── Log errors and raise if any ─────────────────────────────────────────
    if errors:
        logger.error("=" * 70)
        logger.error("CONFIG VALIDATION FAILED (%s)", config_path)
        logger.error("=" * 70)
        for i, error in enumerate(errors, 1):
            logger.error("[%d] %s", i, error)
        logger.error("=" * 70)
        logger.error("Please fix the errors above and restart the bot.")
        logger.error("=" * 70)
        raise ConfigValidationError(f"Config validation failed with {len(errors)} error(s)")
