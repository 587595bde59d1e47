"""
Key-value storage backends for the session store.

Backends hold raw strings under string keys. Every failure is raised as
StorageError; deciding whether a failure matters is the store's job.
"""

import json
import os
import stat
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from .exceptions import StorageError


@runtime_checkable
class KeyValueStorage(Protocol):
    """
    Interface for durable session storage.

    Implementations must apply ``update`` as a single write so that
    several keys change together.
    """

    def get(self, key: str) -> Optional[str]:
        """
        Read one value.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageError: If the storage cannot be read
        """
        ...

    def update(self, values: Mapping[str, Optional[str]]) -> None:
        """
        Write several keys at once; a None value deletes the key.

        Raises:
            StorageError: If the storage cannot be written
        """
        ...


class MemoryStorage:
    """
    In-process storage.

    Used by tests and short-lived processes. Setting ``disabled`` makes
    every operation fail, the way a browser store does in private mode.
    """

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.disabled = False

    def get(self, key: str) -> Optional[str]:
        if self.disabled:
            raise StorageError("read", "storage disabled")
        return self._data.get(key)

    def update(self, values: Mapping[str, Optional[str]]) -> None:
        if self.disabled:
            raise StorageError("write", "storage disabled")
        for key, value in values.items():
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)


class FileStorage:
    """
    Storage backed by a JSON document on disk.

    The whole document is rewritten on every update through a temporary
    file and ``os.replace``, so readers see either the old or the new
    state. The file is readable by its owner only.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError("read", str(e)) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageError("read", f"corrupt session file: {e}") from e
        if not isinstance(data, dict):
            raise StorageError("read", "corrupt session file: not an object")
        return data

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def update(self, values: Mapping[str, Optional[str]]) -> None:
        try:
            data = self._load()
        except StorageError:
            # A corrupt document is replaced rather than blocking writes
            data = {}

        for key, value in values.items():
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle)
                os.chmod(tmp_name, stat.S_IRUSR | stat.S_IWUSR)  # 0o600
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError("write", str(e)) from e
