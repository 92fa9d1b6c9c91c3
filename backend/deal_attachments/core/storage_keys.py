"""Storage key generation and validation for attachment blobs.

Keys look like ``deals/{deal_id}/{random hex}/{file name}``. The random
segment makes every key unique regardless of the uploaded file name, so two
uploads of ``report.pdf`` to the same deal never collide. Callers outside the
blob store must treat keys as opaque.
"""

import re
import uuid
from pathlib import PurePosixPath
from urllib.parse import unquote

KEY_PREFIX = "deals"
MAX_FILE_NAME_LENGTH = 200
DEFAULT_FILE_NAME = "file"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._ -]+")
_NAMESPACE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


class InvalidStorageKeyError(ValueError):
    """Raised when a storage key or namespace fails validation."""

    pass


def sanitize_file_name(file_name: str | None) -> str:
    """Reduce a client supplied file name to a safe single path segment.

    Directory components are dropped, unsafe characters collapse to ``_``,
    and the stem is truncated so the extension survives.

    Args:
        file_name: Original file name from the upload.

    Returns:
        A non-empty file name safe to embed in a storage key.
    """
    if not file_name:
        return DEFAULT_FILE_NAME

    # Drop any directory part, including Windows style separators
    name = unquote(file_name).replace("\\", "/").split("/")[-1]
    name = name.replace("\x00", "")
    name = _UNSAFE_CHARS.sub("_", name).strip(" .")

    if not name:
        return DEFAULT_FILE_NAME

    if len(name) > MAX_FILE_NAME_LENGTH:
        path = PurePosixPath(name)
        suffix = path.suffix[:20]
        name = path.stem[: MAX_FILE_NAME_LENGTH - len(suffix)] + suffix

    return name


def deal_namespace(deal_id: int) -> str:
    """Namespace segment for a deal's blobs."""
    return str(deal_id)


def build_storage_key(namespace: str, suggested_name: str | None) -> str:
    """Build a fresh, collision resistant storage key.

    Args:
        namespace: Per-owner namespace (the deal id).
        suggested_name: File name to keep at the end of the key.

    Returns:
        A new storage key.

    Raises:
        InvalidStorageKeyError: If namespace contains invalid characters.
    """
    if not namespace or not _NAMESPACE_PATTERN.match(namespace):
        raise InvalidStorageKeyError(f"Invalid storage namespace: {namespace!r}")

    return f"{KEY_PREFIX}/{namespace}/{uuid.uuid4().hex}/{sanitize_file_name(suggested_name)}"


def validate_storage_key(storage_key: str) -> str:
    """Validate a storage key before it touches a backend.

    Args:
        storage_key: The key to validate.

    Returns:
        The key, unchanged.

    Raises:
        InvalidStorageKeyError: If the key is empty, absolute, or contains traversal.
    """
    if not storage_key:
        raise InvalidStorageKeyError("Storage key cannot be empty")

    if "\x00" in storage_key:
        raise InvalidStorageKeyError("Null bytes are not allowed in storage keys")

    if storage_key.startswith("/") or "\\" in storage_key:
        raise InvalidStorageKeyError(f"Invalid storage key: {storage_key}")

    parts = storage_key.split("/")
    if any(part in ("", ".", "..") for part in parts):
        raise InvalidStorageKeyError(f"Path traversal attempt detected: {storage_key}")

    return storage_key
