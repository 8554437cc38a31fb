"""
Logging configuration.

We use a YAML logging config (`src/agriconnect/config/logging.yaml`) and then apply
runtime overrides from settings (e.g., `AGRICONNECT_LOG_LEVEL`).
"""

from __future__ import annotations

import logging.config

from agriconnect.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> None:
    """Configure the Python logging system from packaged YAML config + settings.

    `level` wins over the configured level (the CLI passes `--log-level` through here).
    """
    settings = get_settings()
    # Copy: the cached config is shared and dictConfig must not see our edits twice.
    config = {**get_logging_config()}
    config["root"] = dict(config.get("root", {}))
    config["handlers"] = {name: dict(h) for name, h in config.get("handlers", {}).items()}

    effective = (level or settings.app.log_level).upper()
    config["root"]["level"] = effective
    for handler in config["handlers"].values():
        if "level" in handler:
            handler["level"] = effective

    logging.config.dictConfig(config)
