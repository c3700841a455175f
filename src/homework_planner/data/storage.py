from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson

from ..core import STORAGE_PREFIX, ensure_data_dir
from ..domain import MalformedValueError, StorageError

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class StorageUsage:
    used_bytes: int
    key_count: int


class KeyValueStore(ABC):
    """Namespaced mapping from short keys to JSON-serializable values.

    Each ``set`` replaces a single key atomically; nothing spans keys.
    """

    def __init__(self, prefix: str = STORAGE_PREFIX) -> None:
        self.prefix = prefix

    @abstractmethod
    def _read(self, full_key: str) -> Optional[bytes]:
        ...

    @abstractmethod
    def _write(self, full_key: str, payload: bytes) -> None:
        ...

    @abstractmethod
    def _delete(self, full_key: str) -> bool:
        ...

    @abstractmethod
    def _full_keys(self) -> List[str]:
        ...

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str, default: Any = None) -> Any:
        payload = self._read(self._full_key(key))
        if payload is None:
            return default
        try:
            return orjson.loads(payload)
        except orjson.JSONDecodeError as exc:
            raise MalformedValueError(f"Stored value for '{key}' is not valid JSON") from exc

    def set(self, key: str, value: Any) -> None:
        try:
            payload = orjson.dumps(value, option=orjson.OPT_INDENT_2)
        except TypeError as exc:
            raise StorageError(f"Value for '{key}' is not JSON serializable") from exc
        self._write(self._full_key(key), payload)

    def remove(self, key: str) -> bool:
        return self._delete(self._full_key(key))

    def keys(self) -> List[str]:
        return sorted(
            full_key[len(self.prefix):]
            for full_key in self._full_keys()
            if full_key.startswith(self.prefix)
        )

    def export_all(self) -> Dict[str, Any]:
        """Every stored value keyed by its short (prefix-stripped) name."""

        exported: Dict[str, Any] = {}
        for key in self.keys():
            try:
                value = self.get(key, _MISSING)
            except MalformedValueError:
                logger.warning("Skipping malformed key '%s' during export", key)
                continue
            if value is not _MISSING:
                exported[key] = value
        return exported

    def import_all(self, data: Dict[str, Any]) -> List[str]:
        """Overwrite the keys present in ``data`` and leave the others untouched."""

        if not isinstance(data, dict):
            raise StorageError("Imported data must be a JSON object")
        for key, value in data.items():
            self.set(str(key), value)
        return sorted(str(key) for key in data)

    def clear_all(self) -> int:
        removed = 0
        for key in self.keys():
            if self.remove(key):
                removed += 1
        return removed

    def usage(self) -> StorageUsage:
        used = 0
        keys = self.keys()
        for key in keys:
            full_key = self._full_key(key)
            used += len(full_key.encode("utf-8")) + len(self._read(full_key) or b"")
        return StorageUsage(used_bytes=used, key_count=len(keys))


class MemoryStore(KeyValueStore):
    """In-process store; values are kept serialized so callers never share objects."""

    def __init__(self, prefix: str = STORAGE_PREFIX) -> None:
        super().__init__(prefix)
        self._items: Dict[str, bytes] = {}

    def _read(self, full_key: str) -> Optional[bytes]:
        return self._items.get(full_key)

    def _write(self, full_key: str, payload: bytes) -> None:
        self._items[full_key] = payload

    def _delete(self, full_key: str) -> bool:
        return self._items.pop(full_key, None) is not None

    def _full_keys(self) -> List[str]:
        return list(self._items)


class JsonFileStore(KeyValueStore):
    """One JSON file per key inside ``directory``."""

    suffix = ".json"

    def __init__(self, directory: Optional[Path] = None, prefix: str = STORAGE_PREFIX) -> None:
        super().__init__(prefix)
        self._directory = ensure_data_dir(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, full_key: str) -> Path:
        return self._directory / f"{full_key}{self.suffix}"

    def _read(self, full_key: str) -> Optional[bytes]:
        path = self._path(full_key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Could not read {path}") from exc

    def _write(self, full_key: str, payload: bytes) -> None:
        path = self._path(full_key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{full_key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(payload + b"\n")
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Could not write {path}") from exc

    def _delete(self, full_key: str) -> bool:
        path = self._path(full_key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageError(f"Could not remove {path}") from exc
        return True

    def _full_keys(self) -> List[str]:
        return [
            path.name[: -len(self.suffix)]
            for path in self._directory.glob(f"*{self.suffix}")
            if path.is_file()
        ]


__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore", "StorageUsage"]
