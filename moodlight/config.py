from __future__ import annotations

"""Configuration loader and typed config models."""

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import load_dotenv


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class HumeConfig:
    """Emotion streaming service connection settings."""
    api_key: str
    endpoint: str
    config_id: Optional[str]
    reconnect_base_seconds: float
    reconnect_max_seconds: float


@dataclass(frozen=True)
class HueConfig:
    """Hue bridge address, credentials, and retry policy."""
    bridge_ip: str
    app_key: str
    light_ids: List[str]
    max_attempts: int
    retry_base_seconds: float
    timeout_seconds: float
    verify_tls: bool


@dataclass(frozen=True)
class MicConfig:
    """Microphone capture settings."""
    sample_rate: int
    channels: int
    block_ms: int
    device: Optional[str]


@dataclass(frozen=True)
class WindowConfig:
    """Aggregation window and update pacing."""
    window_ms: int
    min_update_interval_ms: int


@dataclass(frozen=True)
class LoggingConfig:
    level: str


@dataclass(frozen=True)
class AppConfig:
    """Root configuration for the moodlight runner."""
    hume: HumeConfig
    hue: HueConfig
    mic: MicConfig
    window: WindowConfig
    logging: LoggingConfig


REQUIRED_ENV = (
    "HUME_API_KEY",
    "HUME_ENDPOINT",
    "HUE_BRIDGE_IP",
    "HUE_APP_KEY",
    "HUE_LIGHT_IDS",
)


def _get(d: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Return a key from a dict with a default."""
    return d[key] if key in d and d[key] is not None else default


def _split_ids(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.split(",")
    else:
        items = [str(x) for x in raw]
    return [item.strip() for item in items if item.strip()]


def _as_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    return bool(raw)


def load_env_file(path: Optional[str] = None) -> None:
    """Load a .env file into os.environ without overriding existing values."""
    if path:
        load_dotenv(dotenv_path=path, override=False)
    else:
        load_dotenv(override=False)


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load a YAML file (optional) and environment overrides into typed configuration."""
    env = os.environ if environ is None else environ

    raw: Dict[str, Any] = {}
    if path:
        if not os.path.isfile(path):
            raise ConfigError(f"config file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"config file must contain a mapping: {path}")

    hume_raw = _get(raw, "hume", {})
    hue_raw = _get(raw, "hue", {})
    mic_raw = _get(raw, "mic", {})
    win_raw = _get(raw, "window", {})
    log_raw = _get(raw, "logging", {})

    values = {
        "HUME_API_KEY": env.get("HUME_API_KEY") or _get(hume_raw, "api_key", ""),
        "HUME_ENDPOINT": env.get("HUME_ENDPOINT") or _get(hume_raw, "endpoint", ""),
        "HUE_BRIDGE_IP": env.get("HUE_BRIDGE_IP") or _get(hue_raw, "bridge_ip", ""),
        "HUE_APP_KEY": env.get("HUE_APP_KEY") or _get(hue_raw, "app_key", ""),
        "HUE_LIGHT_IDS": _split_ids(env.get("HUE_LIGHT_IDS") or _get(hue_raw, "light_ids")),
    }
    missing = [key for key in REQUIRED_ENV if not values[key]]
    if missing:
        raise ConfigError(f"Missing required env var(s): {', '.join(missing)}")

    hume_cfg = HumeConfig(
        api_key=str(values["HUME_API_KEY"]),
        endpoint=str(values["HUME_ENDPOINT"]),
        config_id=env.get("HUME_CONFIG_ID") or _get(hume_raw, "config_id"),
        reconnect_base_seconds=float(_get(hume_raw, "reconnect_base_seconds", 1.0)),
        reconnect_max_seconds=float(_get(hume_raw, "reconnect_max_seconds", 15.0)),
    )

    hue_cfg = HueConfig(
        bridge_ip=str(values["HUE_BRIDGE_IP"]),
        app_key=str(values["HUE_APP_KEY"]),
        light_ids=list(values["HUE_LIGHT_IDS"]),
        max_attempts=max(1, int(_get(hue_raw, "max_attempts", 3))),
        retry_base_seconds=float(_get(hue_raw, "retry_base_seconds", 0.5)),
        timeout_seconds=float(_get(hue_raw, "timeout_seconds", 5.0)),
        verify_tls=_as_bool(_get(hue_raw, "verify_tls", False)),
    )

    device = _get(mic_raw, "device")
    mic_cfg = MicConfig(
        sample_rate=int(_get(mic_raw, "sample_rate", 16000)),
        channels=int(_get(mic_raw, "channels", 1)),
        block_ms=int(_get(mic_raw, "block_ms", 100)),
        device=str(device) if device is not None else None,
    )

    win_cfg = WindowConfig(
        window_ms=int(_get(win_raw, "window_ms", 4000)),
        min_update_interval_ms=int(_get(win_raw, "min_update_interval_ms", 800)),
    )
    if win_cfg.window_ms <= 0:
        raise ConfigError(f"window.window_ms must be positive, got {win_cfg.window_ms}")

    log_cfg = LoggingConfig(level=str(_get(log_raw, "level", "INFO")).upper())

    return AppConfig(
        hume=hume_cfg,
        hue=hue_cfg,
        mic=mic_cfg,
        window=win_cfg,
        logging=log_cfg,
    )
