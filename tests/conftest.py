"""Shared fixtures: an in-memory locator and fresh archives."""

from __future__ import annotations

from typing import Any

import pytest

from sbedit.errors import BookmarkError
from sbedit.models import empty_archive
from sbedit.store import ItemStore


class FakeLocator:
    """Tokens are b"fake:" + path. Nothing touches the filesystem.

    Paths in `missing` cannot be bookmarked; paths in `stale` decode as stale.
    """

    def __init__(self) -> None:
        self.missing: set[str] = set()
        self.stale: set[str] = set()
        self.decoded = 0

    def encode_location(self, path: str) -> bytes:
        if path in self.missing:
            msg = f"cannot create a bookmark for {path}"
            raise BookmarkError(msg)
        return f"fake:{path}".encode()

    def decode_location(self, token: bytes) -> tuple[str, bool]:
        self.decoded += 1
        text = token.decode("utf-8", errors="replace")
        if not text.startswith("fake:"):
            msg = "corrupt bookmark"
            raise BookmarkError(msg)
        path = text.removeprefix("fake:")
        return path, path in self.stale


@pytest.fixture
def locator() -> FakeLocator:
    return FakeLocator()


@pytest.fixture
def archive() -> dict[str, Any]:
    return empty_archive()


@pytest.fixture
def store(archive: dict[str, Any], locator: FakeLocator) -> ItemStore:
    return ItemStore(archive, locator)


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Point HOME and the config/archive env vars into tmp_path."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("SBEDIT_ARCHIVE", raising=False)
    monkeypatch.setenv("SBEDIT_CONFIG", str(tmp_path / "sbedit.toml"))
    return home
