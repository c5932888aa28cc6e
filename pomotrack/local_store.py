"""Local durable key-value storage used when the remote store is unreachable.

Each key is one JSON file inside a directory, so a corrupt bucket never takes
the other buckets down with it. Writes go to a temporary file that is renamed
over the old one, so a reader sees either the previous or the new value.
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def sessions_key(date_str: str) -> str:
    """Storage key of the session bucket for a YYYY-MM-DD date."""
    return f"sessions-{date_str}"


class LocalStore:
    """JSON files keyed by name."""

    def __init__(self, directory: Path):
        """Initialize store.

        Args:
            directory: Directory holding one ``<key>.json`` file per key
        """
        self.directory = directory

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        """Read a value.

        Args:
            key: Storage key

        Returns:
            Decoded JSON value, or None when missing or unreadable
        """
        path = self._path(key)
        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable local data {path.name}: {e}")
            return None

    def set(self, key: str, value: Any) -> None:
        """Write a value atomically.

        Args:
            key: Storage key
            value: JSON-serializable value
        """
        path = self._path(key)
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(value, indent=2)

        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        """All stored keys, sorted."""
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))
