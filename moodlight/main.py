from __future__ import annotations

"""Runner: microphone -> emotion service -> sliding window -> Hue lights."""

import argparse
import logging
import os
import time
from typing import List, Optional

from moodlight.config import ConfigError, load_config, load_env_file
from moodlight.emotion_window import EmotionWindow
from moodlight.hue_client import HueClient
from moodlight.hume_client import HumeStreamClient
from moodlight.mic import MicrophoneError, MicrophoneStream
from moodlight.pipeline import EmotionLightPipeline


LOG = logging.getLogger("moodlight")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Drive Hue lights from live vocal emotion.")
    default_config = os.path.abspath("config.yaml")
    ap.add_argument(
        "--config",
        default=None,
        help=f"Path to YAML config. (default: {default_config} if present)",
    )
    ap.add_argument("--env-file", default=None, help="Path to a .env file with credentials.")
    ap.add_argument("--log-level", default=None, help="Override the configured log level.")
    ap.add_argument("--dry-run", action="store_true", help="Log light commands without contacting the bridge.")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the moodlight runner."""
    args = build_parser().parse_args(argv)

    load_env_file(args.env_file)
    config_path = args.config
    if config_path is None and os.path.isfile("config.yaml"):
        config_path = "config.yaml"

    try:
        cfg = load_config(config_path)
    except ConfigError as exc:
        _configure_logging(args.log_level or "INFO")
        LOG.error("%s", exc)
        return 1

    _configure_logging(args.log_level or cfg.logging.level)

    hue_client = None if args.dry_run else HueClient(cfg.hue)
    window = EmotionWindow(cfg.window.window_ms)
    pipeline = EmotionLightPipeline(
        window,
        hue_client,
        min_update_interval_ms=cfg.window.min_update_interval_ms,
    )

    hume_client = HumeStreamClient(
        cfg.hume,
        sample_rate=cfg.mic.sample_rate,
        on_emotion=pipeline.on_emotion,
        on_error=lambda exc: LOG.error("Hume error: %s", exc),
        on_connected=lambda: LOG.info("Hume connected."),
        on_disconnected=lambda: LOG.warning("Hume disconnected, attempting reconnect..."),
    )
    mic = MicrophoneStream(
        sample_rate=cfg.mic.sample_rate,
        channels=cfg.mic.channels,
        block_ms=cfg.mic.block_ms,
        device=cfg.mic.device,
        on_chunk=hume_client.send_audio,
    )

    exit_code = 0
    try:
        hume_client.start()
        mic.start()
        LOG.info("Running with %d light(s); press Ctrl+C to stop.", len(cfg.hue.light_ids))
        while True:
            time.sleep(1.0)
    except MicrophoneError as exc:
        LOG.error("%s", exc)
        exit_code = 1
    except KeyboardInterrupt:
        LOG.info("Shutting down...")
    finally:
        mic.stop()
        hume_client.stop()
        if hume_client.is_alive():
            hume_client.join(timeout=2.0)
        pipeline.stop()
        if hue_client is not None:
            hue_client.close()
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
