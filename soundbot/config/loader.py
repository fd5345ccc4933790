from __future__ import annotations

import copy
import logging
import os
import sys
from typing import Any

from dotenv import load_dotenv
import yaml

from .validator import validate_config, parse_snowflake, ConfigValidationError


DEFAULT_CONFIG_FILE = "config.yaml"
CONFIG_ENV_VAR = "CONFIG_PATH"

DEFAULTS: dict[str, Any] = {
    "voice_channel_id": None,
    "command_prefix": "!",
    "status_message": "",
    "sound_file": None,
    "stream_input": None,
    "play_delay": 0.25,
    "ffmpeg": {
        "executable": "ffmpeg",
        "bitrate": "96k",
        "threads": 1,
        "loglevel": "error",
        "vbr": "off",
    },
    "permissions": {"users": {"admin_ids": []}},
}

# env var -> config key (dotted for nested sections)
ENV_OVERRIDES = {
    "BOT_TOKEN": "bot_token",
    "APP_ID": "app_id",
    "GUILD_ID": "guild_id",
    "VOICE_CHANNEL_ID": "voice_channel_id",
    "SOUND_FILE": "sound_file",
    "STREAM_INPUT": "stream_input",
    "FFMPEG_PATH": "ffmpeg.executable",
}

SNOWFLAKE_KEYS = ("app_id", "guild_id", "voice_channel_id")


def get_config_path() -> str:
    """
    Resolve the config path, preferring an explicit environment override.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return env_path
    return DEFAULT_CONFIG_FILE


def _load_raw_config(cfg_path: str, required: bool) -> dict[str, Any]:
    try:
        with open(cfg_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        if required:
            logging.error("Config file not found: %s", cfg_path)
            sys.exit(1)
        logging.info("No %s found, using environment variables only", cfg_path)
        return {}
    except yaml.YAMLError as e:
        logging.error("YAML parsing error in %s: %s", cfg_path, e)
        sys.exit(1)

    if not isinstance(data, dict):
        logging.error("Config root must be a mapping, got %s", type(data).__name__)
        sys.exit(1)

    return data


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_env_overrides(cfg: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """
    Overlay the supported environment variables onto the config mapping.
    Empty variables are ignored.
    """
    env = os.environ if environ is None else environ
    out = copy.deepcopy(cfg)
    for var, key in ENV_OVERRIDES.items():
        value = env.get(var)
        if not value:
            continue
        section, _, leaf = key.rpartition(".")
        target = out
        if section:
            if not isinstance(out.get(section), dict):
                out[section] = {}
            target = out[section]
        target[leaf] = value
    return out


def _normalize_vbr(cfg: dict[str, Any]) -> None:
    # YAML 1.1 reads a bare `off` as False
    ff = cfg.get("ffmpeg")
    if isinstance(ff, dict) and isinstance(ff.get("vbr"), bool):
        ff["vbr"] = "on" if ff["vbr"] else "off"


def _coerce_snowflakes(cfg: dict[str, Any]) -> None:
    for key in SNOWFLAKE_KEYS:
        if cfg.get(key) is not None:
            cfg[key] = parse_snowflake(cfg[key], key.upper())
    admin_ids = cfg.get("permissions", {}).get("users", {}).get("admin_ids", [])
    cfg["permissions"]["users"]["admin_ids"] = [
        parse_snowflake(admin_id, "admin_id") for admin_id in admin_ids
    ]


def get_config(path: str | None = None) -> dict[str, Any]:
    """
    Public helper for loading configuration.

    - Respects CONFIG_PATH if set; an explicit path must exist.
    - Loads .env, then overlays BOT_TOKEN / APP_ID / GUILD_ID and friends.
    - Performs comprehensive validation.
    - Exits with error code 1 if validation fails.
    - Returns the merged dict with snowflakes as ints.
    """
    load_dotenv()
    explicit = path is not None or bool(os.environ.get(CONFIG_ENV_VAR))
    cfg_path = path or get_config_path()
    raw = _load_raw_config(cfg_path, required=explicit)

    cfg = apply_env_overrides(_merge(DEFAULTS, raw))
    _normalize_vbr(cfg)

    try:
        validate_config(cfg, cfg_path)
        _coerce_snowflakes(cfg)
    except ConfigValidationError:
        sys.exit(1)

    return cfg
