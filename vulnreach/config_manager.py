"""Configuration manager for vulnreach using TOML files."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import toml

from . import config

logger = logging.getLogger(__name__)


DEFAULT_WITNESS_CONFIG = {
    "max_workers": config.DEFAULT_MAX_WORKERS,
    "output": config.DEFAULT_OUTPUT,
}


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections).

    Returns an empty dict when the file is missing or cannot be parsed.
    """
    if not config.CONFIG_FILE.exists():
        return {}
    try:
        with open(config.CONFIG_FILE, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config.CONFIG_FILE, exc)
        return {}


def _save_full_config(payload: Dict[str, Any]) -> bool:
    """Write the entire config dict to the TOML file, preserving all sections."""
    config.ensure_base_dirs()
    try:
        with open(config.CONFIG_FILE, "w", encoding="utf-8") as f:
            toml.dump(payload, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", config.CONFIG_FILE, exc)
        return False


def load_witness_config() -> Dict[str, Any]:
    """Load the ``[witness]`` section merged over the defaults.

    Invalid values are replaced by their defaults.
    """
    section = load_full_config().get("witness", {})
    merged = {**DEFAULT_WITNESS_CONFIG, **section}

    workers = merged.get("max_workers")
    if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
        logger.warning("Invalid max_workers %r in config, using %d", workers, config.DEFAULT_MAX_WORKERS)
        merged["max_workers"] = config.DEFAULT_MAX_WORKERS
    if merged.get("output") not in config.OUTPUT_FORMATS:
        logger.warning("Invalid output %r in config, using %s", merged.get("output"), config.DEFAULT_OUTPUT)
        merged["output"] = config.DEFAULT_OUTPUT
    return merged


def save_witness_config(max_workers: Optional[int] = None, output: Optional[str] = None) -> bool:
    """Save witness settings to the config TOML.

    Only the given values are changed; other sections are preserved.

    Args:
        max_workers: Thread pool size used for the per-vulnerability searches
        output: Default report format, one of ``OUTPUT_FORMATS``

    Returns:
        True if saved successfully, False otherwise
    """
    if max_workers is not None and max_workers < 1:
        raise ValueError("max_workers must be at least 1")
    if output is not None and output not in config.OUTPUT_FORMATS:
        raise ValueError(f"output must be one of {', '.join(config.OUTPUT_FORMATS)}")

    payload = load_full_config()
    section = payload.setdefault("witness", {})
    if max_workers is not None:
        section["max_workers"] = max_workers
    if output is not None:
        section["output"] = output
    return _save_full_config(payload)


def clear_witness_config() -> bool:
    """Remove the ``[witness]`` section, resetting to defaults."""
    payload = load_full_config()
    payload.pop("witness", None)
    return _save_full_config(payload)
