"""mdgraph configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Corpus
WATCH_DIR = Path(os.getenv("MDGRAPH_WATCH_DIR", os.getcwd())).resolve()
DOCUMENT_EXTENSION = os.getenv("MDGRAPH_EXTENSION", ".md")
DEBOUNCE_MS = _env_int("MDGRAPH_DEBOUNCE_MS", 100)

# Watcher exclusions (hidden paths are always skipped)
IGNORED_DIRS = frozenset({"node_modules"})
IGNORED_FILES = frozenset({"README.md", "CHANGELOG.md", "CONTRIBUTING.md"})
IGNORED_FILE_PREFIXES = ("LICENSE",)

# Palette / app settings
CONFIG_PATH = Path(os.getenv("MDGRAPH_CONFIG_PATH", "config.json")).expanduser().resolve()
WAL_PATH = Path(
    os.getenv("MDGRAPH_WAL_PATH", str(Path.home() / ".cache" / "wal" / "colors.json"))
).expanduser().resolve()
DEFAULT_PALETTE = [
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#7f7f7f",
    "#bcbd22",
    "#17becf",
]

# Observability
OTEL_ENABLED = _env_bool("MDGRAPH_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("MDGRAPH_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("MDGRAPH_OTEL_SERVICE_NAME", "mdgraph")
PROM_PORT = _env_int("MDGRAPH_PROM_PORT", 0)

# Server settings
HOST = os.getenv("MDGRAPH_HOST", "127.0.0.1")
PORT = _env_int("MDGRAPH_PORT", 8000)
STATIC_DIR = Path(os.getenv("MDGRAPH_STATIC_DIR", "public"))
SEND_TIMEOUT_SECONDS = _env_int("MDGRAPH_SEND_TIMEOUT_SECONDS", 5)
OPEN_BROWSER = _env_bool("MDGRAPH_OPEN_BROWSER", True)
