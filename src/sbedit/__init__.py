"""Finder sidebar editor: keyed-archive codec plus a favorites item store.

The sidebar favorites live in a keyed archive (binary plist object table):

    com.apple.LSSharedFileList.FavoriteItems.sfl3
        items         [ {uuid, visibility, Bookmark, CustomItemProperties?}, ... ]
        properties    {com.apple.LSSharedFileList.ForceTemplateIcons: true, ...}

Read-modify-write cycle:
    archive = read_archive(path)          # codec.decode -> value tree
    ItemStore(archive, locator).add(p)    # mutates archive["items"] in place
    write_archive(path, archive)          # codec.encode -> tmp file -> rename
"""

from sbedit.codec import decode, encode
from sbedit.config import SbeditConfig, init_config, load_config
from sbedit.errors import (
    ArchiveIOError,
    BookmarkError,
    ConfigError,
    PathError,
    SbeditError,
    StructureError,
)
from sbedit.locator import FileUrlLocator, Locator, load_locator
from sbedit.models import Item, empty_archive
from sbedit.storage import default_archive_path, ensure_archive, read_archive, write_archive
from sbedit.store import BatchResult, Entry, ItemStore, normalize_path

__all__ = [
    "ArchiveIOError",
    "BatchResult",
    "BookmarkError",
    "ConfigError",
    "Entry",
    "FileUrlLocator",
    "Item",
    "ItemStore",
    "Locator",
    "PathError",
    "SbeditConfig",
    "SbeditError",
    "StructureError",
    "decode",
    "default_archive_path",
    "empty_archive",
    "encode",
    "ensure_archive",
    "init_config",
    "load_config",
    "load_locator",
    "normalize_path",
    "read_archive",
    "write_archive",
]
