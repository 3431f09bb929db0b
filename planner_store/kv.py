# -*- coding: utf-8 -*-
"""Key-value backends the entity store persists collections into."""
from __future__ import annotations

import logging
import os
import tempfile
import typing as t
from pathlib import Path

logger = logging.getLogger(__name__)


class KeyValueStore(t.Protocol):
    """Get/set-by-key string storage."""

    def get(self, key: str) -> t.Optional[str]:
        """Return the value stored under ``key``, or None if absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any prior value."""
        ...


class InMemoryKeyValueStore:
    """Dictionary-backed store, used in tests and for throwaway sessions."""

    def __init__(self, initial: t.Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> t.Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class FileKeyValueStore:
    """
    One file per key inside ``directory``.

    Keys like ``@courses`` map to ``courses.json``. Writes go to a temporary
    file that is then renamed over the target, so a crash mid-write leaves
    the previous value in place.
    """

    def __init__(self, directory: t.Union[str, Path]) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        name = key.lstrip("@") or "_"
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in name)
        return self.directory / f"{safe}.json"

    def get(self, key: str) -> t.Optional[str]:
        path = self.path_for(key)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{path.stem}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d bytes to %s", len(value), path)
