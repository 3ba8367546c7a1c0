"""Palette and app-config sources embedded into every snapshot."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from mdgraph import config

logger = logging.getLogger("mdgraph")

_COLOR_KEY_PATTERN = re.compile(r"(\d+)")


class AppSettings:
    """JSON config file; the last successfully loaded value wins."""

    def __init__(self, path: Path):
        self.path = path
        self._value: dict[str, Any] = {}

    def current(self) -> dict[str, Any]:
        return self._value

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            self._value = {}
            return self._value
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Error loading config {self.path}: {e}")
            return self._value
        if not isinstance(data, dict):
            logger.error(f"Ignoring config {self.path}: expected a JSON object")
            return self._value
        self._value = data
        logger.info(f"Loaded {self.path.name}")
        return self._value


def _color_index(key: str) -> int:
    match = _COLOR_KEY_PATTERN.search(key)
    return int(match.group(1)) if match else 0


def _read_wal_colors(path: Path) -> Optional[list[str]]:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error(f"Could not load Pywal colors: {e}")
        return None
    colors = data.get("colors") if isinstance(data, dict) else None
    if not isinstance(colors, dict) or not colors:
        return None
    return [colors[key] for key in sorted(colors, key=_color_index)]


class PaletteSource:
    """Node color palette: pywal colors, then the config palette, then defaults."""

    def __init__(self, wal_path: Path, settings: AppSettings, default: Optional[list[str]] = None):
        self.wal_path = wal_path
        self.settings = settings
        self.default = list(default or config.DEFAULT_PALETTE)
        self._value: list[str] = list(self.default)

    def current(self) -> list[str]:
        return self._value

    def load(self) -> list[str]:
        colors = _read_wal_colors(self.wal_path)
        if colors:
            logger.info(f"Loaded {len(colors)} colors from Pywal")
            self._value = colors
            return self._value

        visuals = self.settings.current().get("visuals")
        palette = visuals.get("palette") if isinstance(visuals, dict) else None
        if isinstance(palette, list) and palette:
            logger.info("Using palette from config")
            self._value = list(palette)
            return self._value

        logger.info("Using default palette")
        self._value = list(self.default)
        return self._value
