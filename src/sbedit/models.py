"""Data models for the favorites archive."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

# Top-level archive keys
ITEMS_KEY = "items"
PROPERTIES_KEY = "properties"
FORCE_TEMPLATE_ICONS = "com.apple.LSSharedFileList.ForceTemplateIcons"

# Item keys
UUID_KEY = "uuid"
BOOKMARK_KEY = "Bookmark"
VISIBILITY_KEY = "visibility"
CUSTOM_PROPERTIES_KEY = "CustomItemProperties"

ITEM_IS_HIDDEN = "com.apple.LSSharedFileList.ItemIsHidden"
DONT_SHOW_ON_REAPPEARANCE = "com.apple.finder.dontshowonreappearance"

# Finder hides a Desktop entry that carries CustomItemProperties.
BARE_ITEM_NAME = "Desktop"


def new_item_id() -> str:
    """Generate an item identifier in the platform's upper-case UUID form."""
    return str(uuid.uuid4()).upper()


def default_custom_properties() -> dict[str, Any]:
    return {
        ITEM_IS_HIDDEN: 1,
        DONT_SHOW_ON_REAPPEARANCE: 0,
    }


def empty_archive() -> dict[str, Any]:
    """The minimal archive written when no favorites file exists yet."""
    return {
        ITEMS_KEY: [],
        PROPERTIES_KEY: {FORCE_TEMPLATE_ICONS: True},
    }


@dataclass
class Item:
    """One favorite entry in the items array."""

    unique_id: str
    location_token: bytes
    visibility: int = 0                              # 0 = visible
    custom_properties: dict[str, Any] | None = field(default=None)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Item | None:
        """Build an Item view, or None if the entry has no data-typed Bookmark."""
        token = d.get(BOOKMARK_KEY)
        if not isinstance(token, (bytes, bytearray)):
            return None
        visibility = d.get(VISIBILITY_KEY, 0)
        props = d.get(CUSTOM_PROPERTIES_KEY)
        return cls(
            unique_id=str(d.get(UUID_KEY, "")),
            location_token=bytes(token),
            visibility=visibility if isinstance(visibility, int) and not isinstance(visibility, bool) else 0,
            custom_properties=props if isinstance(props, dict) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        if self.custom_properties is not None:
            d[CUSTOM_PROPERTIES_KEY] = self.custom_properties
        d[UUID_KEY] = self.unique_id
        d[VISIBILITY_KEY] = self.visibility
        d[BOOKMARK_KEY] = self.location_token
        return d
