"""Exception hierarchy for sbedit.

Library code raises these; only the CLI turns them into exit statuses.
"""

from __future__ import annotations


class SbeditError(Exception):
    """Base class for every error sbedit raises on purpose."""


class ArchiveIOError(SbeditError):
    """The archive file could not be read or written."""


class PathError(SbeditError):
    """A path could not be normalized, or is already in the list."""


class StructureError(SbeditError):
    """The archive is malformed: bad envelope, unknown class, cycle, missing items."""


class BookmarkError(SbeditError):
    """The location collaborator could not produce or read a token."""


class ConfigError(SbeditError):
    """sbedit.toml could not be parsed."""
