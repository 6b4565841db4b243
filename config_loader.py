"""
config_loader.py — Unified configuration loader
================================================
Merges config.tech.yaml (infrastructure settings: server, database, locales,
logging) and config.content.yaml (site-owner overrides) into a single dict.

Precedence: config.content.yaml values overwrite config.tech.yaml values
on key collision. CONTENT_DB_PATH overrides db_path when set.
"""

import logging
import os
from pathlib import Path

import yaml

DEFAULTS = {
    "db_path": "db/content.db",
    "i18n": {
        "supported_locales": ["en", "ar"],
        "default_locale": "en",
        "labels": {"en": "English", "ar": "العربية"},
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    },
}


def load_config(root: Path | str | None = None) -> dict:
    """
    Load and merge config.tech.yaml + config.content.yaml on top of DEFAULTS.

    Args:
        root: Project root directory. Defaults to the directory containing
              this file (i.e. the project root).

    Returns:
        Merged configuration dict. Top-level sections are merged one level
        deep, so a file may override a single key of `i18n` or `logging`.
    """
    if root is None:
        root = Path(__file__).parent
    root = Path(root)

    merged: dict = {k: dict(v) if isinstance(v, dict) else v for k, v in DEFAULTS.items()}
    for name in ("config.tech.yaml", "config.content.yaml"):
        path = root / name
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}
            for key, value in data.items():
                if isinstance(value, dict) and isinstance(merged.get(key), dict):
                    merged[key].update(value)
                else:
                    merged[key] = value

    if os.environ.get("CONTENT_DB_PATH"):
        merged["db_path"] = os.environ["CONTENT_DB_PATH"]

    db_path = Path(merged["db_path"])
    merged["db_path"] = str(db_path if db_path.is_absolute() else root / db_path)
    return merged


def setup_logging(config: dict) -> None:
    """basicConfig from the `logging` section. Call once, from entry points only."""
    cfg = config.get("logging", {})
    logging.basicConfig(
        level=getattr(logging, str(cfg.get("level", "INFO")).upper(), logging.INFO),
        format=cfg.get("format", DEFAULTS["logging"]["format"]),
    )
