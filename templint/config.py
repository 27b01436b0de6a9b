"""Default locations and settings for templint."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("TEMPLINT_HOME", str(Path.home() / ".templint"))).expanduser()
GLOBAL_CONFIG_FILE = BASE_DIR / "config.toml"
CONFIG_FILENAME = ".templint.toml"
TEMPLATE_EXTENSIONS = {".erb"}
DEFAULT_MAX_PASSES = 5
