"""Filesystem blob store for cached image bytes.

Blobs live in one flat directory under the cache root, one file per record id.
The directory is created lazily on the first write, at most once per store,
and every write is atomic.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import List

from UnsplashCache.errors import BlobIOError, BlobNotFoundError
from UnsplashCache.io_utils import SizeMismatchError, atomic_write_bytes

logger = logging.getLogger(__name__)

_FORBIDDEN_IDS = {"", ".", ".."}


def validate_blob_id(record_id: str) -> str:
    """Reject ids that would escape the cache directory.

    Raises:
        ValueError: If the id is empty, ``.``/``..``, contains a path
            separator or a NUL byte, or starts with the temp-file prefix.
    """
    if record_id in _FORBIDDEN_IDS:
        raise ValueError(f"Invalid blob id: {record_id!r}")
    if "/" in record_id or "\\" in record_id or "\x00" in record_id:
        raise ValueError(f"Blob id must not contain path separators: {record_id!r}")
    if record_id.startswith(".part-"):
        raise ValueError(f"Blob id collides with temporary files: {record_id!r}")
    return record_id


class AssetBlobStore:
    """Content storage keyed by record id.

    Attributes:
        root_dir: Directory holding one file per record id
    """

    def __init__(self, root_dir: str | os.PathLike[str]):
        self.root_dir = Path(root_dir).expanduser()
        self._root_lock = threading.Lock()
        self._root_ready = False

    def path_for(self, record_id: str) -> Path:
        return self.root_dir / validate_blob_id(record_id)

    def put(self, record_id: str, data: bytes) -> Path:
        """Store ``data`` under ``record_id``, replacing any previous blob.

        Raises:
            ValueError: If the id is not a valid blob name
            BlobIOError: If the directory or file cannot be written
        """
        path = self.path_for(record_id)
        self._ensure_root()
        try:
            written = atomic_write_bytes(str(path), [data], expected_len=len(data))
        except (OSError, SizeMismatchError) as e:
            raise BlobIOError(
                f"Could not save image {record_id}: {e}", record_id=record_id, path=str(path)
            ) from e
        logger.debug(f"Stored blob {record_id} ({written} bytes)")
        return path

    def get(self, record_id: str) -> bytes:
        """Return the bytes stored for ``record_id``.

        Raises:
            BlobNotFoundError: If no blob exists for the id
            BlobIOError: If the file exists but cannot be read
        """
        path = self.path_for(record_id)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"No blob for {record_id}", record_id=record_id) from e
        except OSError as e:
            raise BlobIOError(
                f"Could not read image {record_id}: {e}", record_id=record_id, path=str(path)
            ) from e

    def exists(self, record_id: str) -> bool:
        return self.path_for(record_id).is_file()

    def delete(self, record_id: str) -> bool:
        """Remove a blob; returns False if there was nothing to remove."""
        try:
            self.path_for(record_id).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise BlobIOError(f"Could not delete image {record_id}: {e}", record_id=record_id) from e
        return True

    def ids(self) -> List[str]:
        """Ids of all stored blobs, sorted; temporary files are ignored."""
        if not self.root_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.root_dir.iterdir()
            if entry.is_file() and not entry.name.startswith(".part-")
        )

    def _ensure_root(self) -> None:
        if self._root_ready:
            return
        with self._root_lock:
            if self._root_ready:
                return
            try:
                self.root_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise BlobIOError(
                    f"Could not create cache directory {self.root_dir}: {e}",
                    path=str(self.root_dir),
                ) from e
            logger.debug(f"Cache directory ready at {self.root_dir}")
            self._root_ready = True
