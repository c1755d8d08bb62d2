"""Configuration paths and defaults for vulnreach."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("VULNREACH_HOME", str(Path.home() / ".vulnreach"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_MAX_WORKERS = 8
DEFAULT_OUTPUT = "text"
OUTPUT_FORMATS = ("text", "json")

# Exit status of `vulnreach witness` when at least one witness was found.
EXIT_VULNS_FOUND = 3


def ensure_base_dirs() -> None:
    """Create the base directory for local configuration if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
