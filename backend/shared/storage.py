"""File-backed key-value store.

Each key is stored as one UTF-8 file named ``<key>.json`` inside a data
directory. Files are written with owner-only permissions (0o600) inside an
owner-only directory (0o700).
"""

import asyncio
import contextlib
import os
import tempfile
from pathlib import Path

import structlog

from shared.dal.errors import CorruptDataError, StorageIOError
from shared.dal.kv_store import KeyValueStore

logger = structlog.get_logger()

# Owner-only directory permissions for the data directory.
_DATA_DIR_MODE = 0o700

# Owner-only file permissions for stored values.
_DATA_FILE_MODE = 0o600


class FileKeyValueStore(KeyValueStore):
    """Stores each key in its own file under data_dir.

    Writes go to a temp file in the same directory which is then renamed
    over the target, so readers never see a partial value.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir).resolve()
        self._lock = asyncio.Lock()

    def _path_for(self, key: str) -> Path:
        """Resolve the file path for key, rejecting path traversal attempts."""
        target = (self._data_dir / f"{key}.json").resolve()
        if not target.is_relative_to(self._data_dir) or target.parent != self._data_dir:
            raise ValueError(f"Path traversal rejected: '{key}' resolves outside data directory")
        return target

    async def get_item(self, key: str) -> str | None:
        target = self._path_for(key)
        try:
            return target.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            msg = f"Stored data for '{key}' at {target} is not valid UTF-8"
            raise CorruptDataError(msg, key=key) from exc
        except OSError as exc:
            msg = f"Failed to read key '{key}' from {target}"
            raise StorageIOError(msg, key=key) from exc

    async def set_item(self, key: str, value: str) -> None:
        target = self._path_for(key)
        async with self._lock:
            try:
                self._write_atomic(target, value.encode("utf-8"))
            except OSError as exc:
                msg = f"Failed to write key '{key}' to {target}"
                raise StorageIOError(msg, key=key) from exc
        logger.debug("stored value", key=key, path=str(target))

    async def remove_item(self, key: str) -> None:
        target = self._path_for(key)
        async with self._lock:
            try:
                target.unlink(missing_ok=True)
            except OSError as exc:
                msg = f"Failed to remove key '{key}' at {target}"
                raise StorageIOError(msg, key=key) from exc

    def _write_atomic(self, target: Path, content: bytes) -> None:
        """Create the directory lazily and write content via temp-file-then-rename."""
        self._data_dir.mkdir(mode=_DATA_DIR_MODE, parents=True, exist_ok=True)
        self._data_dir.chmod(_DATA_DIR_MODE)

        fd, tmp_path = tempfile.mkstemp(dir=str(self._data_dir), suffix=".tmp", prefix=".kv_")
        fd_owned = True
        try:
            with os.fdopen(fd, "wb") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _DATA_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(target)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
