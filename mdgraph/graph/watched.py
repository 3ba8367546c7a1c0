"""Set of absolute document paths currently part of the corpus."""
from __future__ import annotations

from pathlib import Path
from typing import Iterator


class WatchedSet:
    """Insertion-ordered set of paths.

    Discovery order is the iteration order the resolver relies on, so it is
    kept stable: re-adding a known path does not move it.
    """

    def __init__(self) -> None:
        self._paths: dict[Path, None] = {}

    def add(self, path: Path) -> bool:
        if path in self._paths:
            return False
        self._paths[path] = None
        return True

    def discard(self, path: Path) -> bool:
        if path not in self._paths:
            return False
        del self._paths[path]
        return True

    def snapshot(self) -> tuple[Path, ...]:
        return tuple(self._paths)

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def __iter__(self) -> Iterator[Path]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._paths)
