"""Blob storage for attachment bytes.

A blob store persists raw bytes under an opaque storage key and knows nothing
about deals or attachments. Blobs are write-once: ``put`` always creates a new
key and a failed write leaves nothing behind under that key.

Two backends exist: ``LocalBlobStore`` (this module) for a persistent volume
and ``S3BlobStore`` (``deal_attachments.services.s3``) for S3/MinIO.
"""

import contextlib
import logging
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator

from deal_attachments.core.storage_keys import (
    InvalidStorageKeyError,
    build_storage_key,
    validate_storage_key,
)

logger = logging.getLogger(__name__)

# 1MB chunks for streaming reads and writes
CHUNK_SIZE = 1024 * 1024

# Temp files live inside the store root so the final rename stays on one filesystem
_INCOMING_DIR = ".incoming"


class BlobNotFoundError(LookupError):
    """Raised when no blob exists at a storage key."""

    def __init__(self, storage_key: str):
        self.storage_key = storage_key
        super().__init__(f"Blob not found: {storage_key}")


class BlobTooLargeError(ValueError):
    """Raised when a stream exceeds the allowed size while being written."""

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        super().__init__(f"Blob exceeds maximum size of {max_bytes} bytes")


@dataclass(frozen=True)
class StoredBlob:
    """Result of a successful put."""

    storage_key: str
    size_bytes: int


class LimitedReader:
    """Read-only file wrapper that counts bytes and enforces a size limit."""

    def __init__(self, fileobj: BinaryIO, max_bytes: int | None = None):
        self._fileobj = fileobj
        self.max_bytes = max_bytes
        self.bytes_read = 0
        self.exceeded = False

    def read(self, size: int = -1) -> bytes:
        chunk = self._fileobj.read(size)
        self.bytes_read += len(chunk)
        if self.max_bytes is not None and self.bytes_read > self.max_bytes:
            self.exceeded = True
            raise BlobTooLargeError(self.max_bytes)
        return chunk


class BlobStream:
    """An open blob, consumed by iterating over chunks.

    The underlying handle is opened before the stream is handed out, so a
    concurrent delete cannot turn an in-flight download into a partial read.
    """

    def __init__(self, fileobj, chunk_size: int = CHUNK_SIZE):
        self._fileobj = fileobj
        self.chunk_size = chunk_size
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        try:
            while chunk := self._fileobj.read(self.chunk_size):
                yield chunk
        finally:
            self.close()

    def read(self) -> bytes:
        """Read the whole blob and close the stream."""
        try:
            return self._fileobj.read()
        finally:
            self.close()

    def close(self) -> None:
        if not self.closed:
            self._fileobj.close()
            self.closed = True


class BlobStore(ABC):
    """Abstract base for blob storage backends."""

    @abstractmethod
    def put(
        self,
        data: BinaryIO,
        suggested_name: str | None,
        *,
        namespace: str,
        content_type: str | None = None,
        max_bytes: int | None = None,
    ) -> StoredBlob:
        """Write a stream under a newly generated key.

        Raises:
            BlobTooLargeError: If the stream is longer than max_bytes.
        """

    @abstractmethod
    def get(self, storage_key: str) -> BlobStream:
        """Open a blob for reading.

        Raises:
            BlobNotFoundError: If no blob exists at storage_key.
        """

    @abstractmethod
    def exists(self, storage_key: str) -> bool:
        """Whether a blob exists at storage_key."""

    @abstractmethod
    def delete(self, storage_key: str) -> None:
        """Delete a blob. Deleting a missing key is not an error."""


class LocalBlobStore(BlobStore):
    """Blob store backed by a directory on a persistent volume."""

    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, storage_key: str) -> Path:
        """Resolve a storage key to a path inside the root."""
        validate_storage_key(storage_key)
        path = (self.root / storage_key).resolve()
        if not path.is_relative_to(self.root):
            raise InvalidStorageKeyError(f"Storage key escapes store root: {storage_key}")
        return path

    def put(
        self,
        data: BinaryIO,
        suggested_name: str | None,
        *,
        namespace: str,
        content_type: str | None = None,
        max_bytes: int | None = None,
    ) -> StoredBlob:
        storage_key = build_storage_key(namespace, suggested_name)
        target = self._path_for(storage_key)
        if target.exists():
            raise FileExistsError(f"Blob already exists: {storage_key}")

        incoming = self.root / _INCOMING_DIR
        incoming.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=incoming)
        tmp_path = Path(tmp_name)
        reader = LimitedReader(data, max_bytes)

        published = False
        try:
            with os.fdopen(fd, "wb") as out:
                shutil.copyfileobj(reader, out, CHUNK_SIZE)
                out.flush()
                os.fsync(out.fileno())
            target.parent.mkdir(parents=True, exist_ok=True)
            # Atomic on POSIX: readers see either nothing or the complete file
            os.replace(tmp_path, target)
            published = True
        finally:
            if not published:
                tmp_path.unlink(missing_ok=True)

        logger.info(f"Stored blob: {storage_key} ({reader.bytes_read} bytes)")
        return StoredBlob(storage_key=storage_key, size_bytes=reader.bytes_read)

    def get(self, storage_key: str) -> BlobStream:
        path = self._path_for(storage_key)
        try:
            fileobj = path.open("rb")
        except FileNotFoundError as e:
            raise BlobNotFoundError(storage_key) from e
        return BlobStream(fileobj)

    def exists(self, storage_key: str) -> bool:
        return self._path_for(storage_key).is_file()

    def delete(self, storage_key: str) -> None:
        path = self._path_for(storage_key)
        path.unlink(missing_ok=True)

        # Prune the now empty per-upload directory
        with contextlib.suppress(OSError):
            path.parent.rmdir()

        logger.info(f"Deleted blob: {storage_key}")
