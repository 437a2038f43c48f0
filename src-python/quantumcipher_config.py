# quantumcipher_config.py
# QuantumCipher Matrix: settings + logging setup
#
# Settings are read from a JSON file (explicit path or $QUANTUMCIPHER_CONFIG).
# Any problem with the file falls back to defaults; the app always starts.

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

import quantumcipher as qc

CONFIG_ENV = "QUANTUMCIPHER_CONFIG"
LOG_LEVEL_ENV = "QUANTUMCIPHER_LOG_LEVEL"


class CipherSettings(BaseModel):
    debounce_ms: int = Field(default=300, ge=0)
    snapshot_version: str = qc.SNAPSHOT_VERSION
    space_color: str = qc.SPACE_COLOR
    log_level: str = "INFO"
    log_file: Optional[str] = None
    server_name: str = "127.0.0.1"
    server_port: int = Field(default=7860, ge=1, le=65535)
    sample_text: str = "QUANTUM CIPHER MATRIX"

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


def load_settings(path: Optional[Union[str, Path]] = None) -> CipherSettings:
    """Loads settings, falling back to defaults on any file or validation error."""
    if path is None:
        path = os.environ.get(CONFIG_ENV)

    loaded = {}
    if path:
        config_path = Path(path)
        if config_path.exists():
            logger.info(f"Loading configuration from: {config_path}")
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                logger.error(f"Failed to load config file {config_path}: {e}")
                loaded = {}
            if not isinstance(loaded, dict):
                logger.error(f"Config file {config_path} must contain a JSON object.")
                loaded = {}
        else:
            logger.warning(f"Config file not found: {config_path}. Using default settings.")
    else:
        logger.info("No config file given. Using default settings.")

    env_level = os.environ.get(LOG_LEVEL_ENV)
    if env_level:
        loaded["log_level"] = env_level.upper()

    try:
        return CipherSettings(**loaded)
    except ValidationError as e:
        logger.error(f"Configuration validation failed: {e}")
        logger.warning("Falling back to default configuration.")
        return CipherSettings()


def setup_logging(level: str = "INFO", verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Configures loguru sinks: colored stderr, plus an optional rotating file."""
    log_level = "DEBUG" if verbose else level

    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format="<level>{level: <8}</level> | <cyan>{name}:{function}:{line}</cyan> - <level>{message}</level>",
        colorize=True,
    )

    if not log_file:
        return

    try:
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {thread.name} | {name}:{function}:{line} - {message}",
            rotation="1 day",
            retention="7 days",
            encoding="utf-8",
        )
        logger.info(f"Logging initialized. Level: {log_level}. Log file: {log_file}")
    except OSError as e:
        logger.error(f"Could not configure file logging to {log_file}: {e}")
        logger.warning("File logging disabled.")
