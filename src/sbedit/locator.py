"""Location collaborator: turns paths into opaque tokens and back.

The favorites file stores each entry's target as an opaque "Bookmark" blob.
sbedit never looks inside a token; it only asks a Locator to mint one for a
path and to resolve one back to a path for display and comparison.

FileUrlLocator is the portable implementation (token = file:// URL bytes).
A platform bookmark encoder can be plugged in via the [locator] factory
setting, e.g. factory = "mypkg.bookmarks:BookmarkLocator".
"""

from __future__ import annotations

import importlib
import urllib.parse
from pathlib import Path
from typing import Protocol, runtime_checkable

from sbedit.errors import BookmarkError

DEFAULT_FACTORY = "sbedit.locator:FileUrlLocator"


@runtime_checkable
class Locator(Protocol):
    def encode_location(self, path: str) -> bytes:
        """Return a token for an absolute path. Raises BookmarkError."""
        ...

    def decode_location(self, token: bytes) -> tuple[str, bool]:
        """Return (absolute path, is_stale). Raises BookmarkError on corrupt tokens.

        A stale token still resolves to a best-effort path.
        """
        ...


class FileUrlLocator:
    """Tokens are UTF-8 file:// URLs. Targets must exist when a token is minted."""

    def encode_location(self, path: str) -> bytes:
        target = Path(path)
        if not target.is_absolute():
            msg = f"cannot create a bookmark for relative path {path}"
            raise BookmarkError(msg)
        if not target.exists():
            msg = f"cannot create a bookmark for {path}: no such file or directory"
            raise BookmarkError(msg)
        return target.as_uri().encode("utf-8")

    def decode_location(self, token: bytes) -> tuple[str, bool]:
        try:
            url = bytes(token).decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = "bookmark is not a file URL"
            raise BookmarkError(msg) from exc
        parts = urllib.parse.urlsplit(url)
        if parts.scheme != "file" or not parts.path:
            msg = f"bookmark is not a file URL: {url[:80]!r}"
            raise BookmarkError(msg)
        path = urllib.parse.unquote(parts.path)
        return path, not Path(path).exists()


def load_locator(factory: str = DEFAULT_FACTORY) -> Locator:
    """Instantiate a locator from a "module:attribute" import string."""
    module_name, _, attr = factory.partition(":")
    if not module_name or not attr:
        msg = f"locator factory must look like 'module:attribute', got {factory!r}"
        raise BookmarkError(msg)
    try:
        module = importlib.import_module(module_name)
        target = getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        msg = f"cannot load locator {factory!r}: {exc}"
        raise BookmarkError(msg) from exc
    locator = target() if callable(target) else target
    if not isinstance(locator, Locator):
        msg = f"{factory!r} does not provide encode_location/decode_location"
        raise BookmarkError(msg)
    return locator
