# === NAVMAP v1 ===
# {
#   "module": "UnsplashCache.io_utils",
#   "purpose": "Atomic file write utilities for cached image blobs",
#   "sections": [
#     {
#       "id": "sizemismatcherror",
#       "name": "SizeMismatchError",
#       "anchor": "class-sizemismatcherror",
#       "kind": "class"
#     },
#     {
#       "id": "atomic-write-bytes",
#       "name": "atomic_write_bytes",
#       "anchor": "function-atomic-write-bytes",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Atomic file write utilities for cached image blobs.

**Purpose**
-----------
A blob is either fully on disk or absent. Readers never observe a half-written
image, even if the process dies mid-write, so the ``downloaded`` flag in the
ledger can rely on the file being complete.

**Responsibilities**
--------------------
- Write byte chunks to a temporary file in the destination directory, fsync,
  then ``os.replace`` onto the final name
- Verify the byte count when the caller knows the expected size
- Remove the temporary file on any failure

**Integration Points**
----------------------
- Called by :class:`UnsplashCache.catalog.blobs.AssetBlobStore.put`
"""

from __future__ import annotations

import logging
import os
import tempfile
from typing import Iterable, Optional

__all__ = ["SizeMismatchError", "atomic_write_bytes"]

logger = logging.getLogger(__name__)


class SizeMismatchError(Exception):
    """Raised when the bytes written don't match the expected size.

    Attributes:
        expected: Expected byte count.
        actual: Bytes actually written before the check.
    """

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Size mismatch: expected {expected} bytes, got {actual} bytes")


def atomic_write_bytes(
    dest_path: str,
    chunks: Iterable[bytes],
    *,
    expected_len: Optional[int] = None,
) -> int:
    """Write ``chunks`` to ``dest_path`` atomically.

    Uses a temporary file + fsync + atomic rename so that either the whole file
    lands at ``dest_path`` or nothing does. The destination directory must
    already exist.

    Args:
        dest_path: Final file location.
        chunks: Iterable of byte chunks; empty chunks are skipped.
        expected_len: Expected total size; None skips verification.

    Returns:
        Number of bytes written.

    Raises:
        SizeMismatchError: If ``expected_len`` is given and differs from the
            bytes written. The temporary file is removed first.
        OSError: If file I/O fails (permission denied, disk full, etc.).
    """
    dest_dir = os.path.dirname(dest_path) or "."
    fd, tmp_path = tempfile.mkstemp(dir=dest_dir, prefix=".part-", suffix=".tmp")
    bytes_written = 0

    try:
        with os.fdopen(fd, "wb") as f:
            for chunk in chunks:
                if chunk:
                    f.write(chunk)
                    bytes_written += len(chunk)
            f.flush()
            os.fsync(f.fileno())

        if expected_len is not None and bytes_written != expected_len:
            raise SizeMismatchError(expected_len, bytes_written)

        os.replace(tmp_path, dest_path)
        _fsync_directory(dest_dir)
        return bytes_written

    except BaseException:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


def _fsync_directory(path: str) -> None:
    # O_DIRECTORY is POSIX only; directory fsync is skipped elsewhere.
    flags = getattr(os, "O_DIRECTORY", None)
    if flags is None:
        return
    dir_fd = os.open(path, flags)
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)
