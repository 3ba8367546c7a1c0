"""Command line entry point: serve the live graph for a directory."""
from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

import uvicorn

from mdgraph import config
from mdgraph.main import create_app

logger = logging.getLogger("mdgraph")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdgraph",
        description="Serve a live link graph of the markdown files under DIR.",
    )
    parser.add_argument("directory", nargs="?", default=os.getcwd(), help="watch root (default: cwd)")
    parser.add_argument("--host", default=config.HOST)
    parser.add_argument("--port", type=int, default=config.PORT)
    parser.add_argument("--debounce-ms", type=int, default=config.DEBOUNCE_MS)
    parser.add_argument("--no-browser", action="store_true", help="do not open a browser window")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    watch_root = Path(args.directory).expanduser().resolve()
    if not watch_root.is_dir():
        raise SystemExit(f"Not a directory: {watch_root}")

    app = create_app(
        watch_root,
        port=args.port,
        debounce_ms=args.debounce_ms,
        open_browser=config.OPEN_BROWSER and not args.no_browser,
    )
    logger.info(f"Server starting on http://localhost:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
