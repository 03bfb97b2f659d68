"""Read, write and bootstrap the favorites archive file.

Default location:
    ~/Library/Application Support/com.apple.sharedfilelist/
        com.apple.LSSharedFileList.FavoriteItems.sfl3

Writes go to a sibling .tmp file that is then renamed over the archive, so a
failed encode or write never leaves a half-written archive behind. There is
no locking: one sbedit process per invocation, last writer wins.
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Any

from sbedit.codec import decode, encode
from sbedit.errors import ArchiveIOError, StructureError
from sbedit.models import ITEMS_KEY, empty_archive

logger = logging.getLogger("sbedit.storage")

_CONTAINER_DIR = "com.apple.sharedfilelist"
_ARCHIVE_NAME = "com.apple.LSSharedFileList.FavoriteItems.sfl3"


def default_archive_path() -> Path:
    return Path.home() / "Library" / "Application Support" / _CONTAINER_DIR / _ARCHIVE_NAME


def read_archive(path: Path) -> dict[str, Any]:
    """Load and decode the archive. The root must be a map with an items array."""
    try:
        data = path.read_bytes()
    except OSError as exc:
        msg = f"unable to read {path}: {exc.strerror or exc}"
        raise ArchiveIOError(msg) from exc

    archive = decode(data)
    if not isinstance(archive, dict):
        msg = f"{path}: archive root is not a dictionary"
        raise StructureError(msg)
    if not isinstance(archive.get(ITEMS_KEY), list):
        msg = f"{path}: unable to read the items array"
        raise StructureError(msg)
    logger.debug("read %s (%d bytes, %d items)", path, len(data), len(archive[ITEMS_KEY]))
    return archive


def write_archive(path: Path, archive: dict[str, Any]) -> None:
    """Encode and atomically replace the archive file."""
    data = encode(archive)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_bytes(data)
        tmp.replace(path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp.unlink(missing_ok=True)
        msg = f"unable to write {path}: {exc.strerror or exc}"
        raise ArchiveIOError(msg) from exc
    logger.debug("wrote %s (%d bytes)", path, len(data))


def ensure_archive(path: Path) -> bool:
    """Write an empty archive if none exists. Returns True if one was created."""
    if path.exists():
        return False
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        msg = f"unable to create {path.parent}: {exc.strerror or exc}"
        raise ArchiveIOError(msg) from exc
    write_archive(path, empty_archive())
    logger.info("created empty archive at %s", path)
    return True
