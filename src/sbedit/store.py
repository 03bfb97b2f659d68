"""Typed operations over the "items" array of a decoded favorites archive.

ItemStore is the public API:
    archive = read_archive(path)
    store = ItemStore(archive, FileUrlLocator())
    store.add("~/Projects")
    store.remove("/tmp/old")
    for entry in store.entries():
        print(entry.path)
    write_archive(path, archive)

The store keeps no copy of the list: every operation reads and mutates
archive["items"] in place, so the caller persists by encoding the same
archive object. Nothing here touches archive["properties"].

Duplicate detection and removal resolve every stored token through the
locator on each call. Lists are short (tens of items) and staleness is the
locator's business, so nothing is cached.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sbedit.errors import BookmarkError, PathError, SbeditError, StructureError
from sbedit.models import BARE_ITEM_NAME, ITEMS_KEY, Item, default_custom_properties, new_item_id

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from sbedit.locator import Locator

logger = logging.getLogger("sbedit.store")


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Expand ~, make absolute and collapse . / .. components.

    Symlinks are left alone. Raises PathError if the path cannot be made absolute.
    """
    raw = os.fspath(path)
    if not raw or "\x00" in raw:
        msg = f"invalid path: {raw!r}"
        raise PathError(msg)
    try:
        expanded = Path(raw).expanduser()
        return os.path.abspath(expanded)
    except (RuntimeError, OSError) as exc:
        msg = f"invalid path: {raw} ({exc})"
        raise PathError(msg) from exc


@dataclass
class Entry:
    """A stored item together with its resolved location."""

    path: str
    stale: bool
    item: Item


@dataclass
class BatchResult:
    """Outcome of add_many: one (path, Item or error) pair per input, in call order."""

    outcomes: list[tuple[str, Item | SbeditError]] = field(default_factory=list)

    @property
    def added(self) -> list[tuple[str, Item]]:
        return [(path, out) for path, out in self.outcomes if isinstance(out, Item)]

    @property
    def failures(self) -> list[tuple[str, SbeditError]]:
        return [(path, out) for path, out in self.outcomes if isinstance(out, SbeditError)]

    @property
    def ok(self) -> bool:
        """False only when no path could be added."""
        return bool(self.added)


class ItemStore:
    """Favorites list view over a decoded archive."""

    def __init__(self, archive: dict[str, Any], locator: Locator) -> None:
        if not isinstance(archive, dict):
            msg = "archive root is not a dictionary"
            raise StructureError(msg)
        self.archive = archive
        self.locator = locator

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _raw_items(self) -> list[Any]:
        items = self.archive.get(ITEMS_KEY)
        if not isinstance(items, list):
            msg = "unable to read the items array"
            raise StructureError(msg)
        return items

    def items(self) -> list[Item]:
        """Item views in stored order, skipping entries without a data Bookmark."""
        views = (Item.from_dict(raw) if isinstance(raw, dict) else None for raw in self._raw_items())
        return [item for item in views if item is not None]

    def tokens(self) -> Iterator[bytes]:
        """Location tokens in stored order."""
        for item in self.items():
            yield item.location_token

    def entries(self) -> Iterator[Entry]:
        """Resolve every item's token; tokens the locator rejects are skipped."""
        for _index, item, path, stale in self._resolved():
            yield Entry(path=path, stale=stale, item=item)

    def paths(self) -> Iterator[str]:
        for entry in self.entries():
            yield entry.path

    def _resolved(self) -> Iterator[tuple[int, Item, str, bool]]:
        for index, raw in enumerate(self._raw_items()):
            item = Item.from_dict(raw) if isinstance(raw, dict) else None
            if item is None:
                continue
            try:
                path, stale = self.locator.decode_location(item.location_token)
            except BookmarkError as exc:
                logger.warning("skipping item %s: %s", item.unique_id or index, exc)
                continue
            if stale:
                logger.debug("item %s is stale, resolved to %s", item.unique_id, path)
            yield index, item, os.path.normpath(path), stale

    def _find(self, canonical: str) -> int | None:
        """Index into the raw items array of the first entry resolving to canonical."""
        for index, _item, path, _stale in self._resolved():
            if path == canonical:
                return index
        return None

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def add(self, path: str | os.PathLike[str]) -> Item:
        """Append a new item for path. Raises PathError or BookmarkError.

        The archive is only mutated once every check has passed.
        """
        canonical = normalize_path(path)
        token = self.locator.encode_location(canonical)
        items = self._raw_items()

        if self._find(canonical) is not None:
            msg = f"item {canonical} already exists in the sidebar"
            raise PathError(msg)

        name = Path(canonical).name
        item = Item(
            unique_id=new_item_id(),
            location_token=token,
            visibility=0,
            custom_properties=None if name == BARE_ITEM_NAME else default_custom_properties(),
        )
        items.append(item.to_dict())
        logger.info("added %s (%s)", canonical, item.unique_id)
        return item

    def add_many(self, paths: Iterable[str | os.PathLike[str]]) -> BatchResult:
        """Add each path independently; one failure does not stop the rest."""
        result = BatchResult()
        for path in paths:
            try:
                outcome: Item | SbeditError = self.add(path)
            except SbeditError as exc:
                logger.info("could not add %s: %s", path, exc)
                outcome = exc
            result.outcomes.append((os.fspath(path), outcome))
        return result

    def remove(self, path: str | os.PathLike[str]) -> bool:
        """Remove the first item resolving to path. Returns False if none matched."""
        canonical = normalize_path(path)
        index = self._find(canonical)
        if index is None:
            logger.info("nothing to remove for %s", canonical)
            return False
        del self._raw_items()[index]
        logger.info("removed %s", canonical)
        return True

    def clear(self) -> None:
        """Replace the items array with an empty one."""
        self.archive[ITEMS_KEY] = []
