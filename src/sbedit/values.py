"""Value tree: the in-memory form of a decoded archive.

Values are plain Python objects:

    Map       dict (insertion order is the key order)
    Sequence  list
    Blob      bytes
    Text      str
    Integer   int (signed 64-bit)
    Real      float
    Boolean   bool
    Null      None
    Date      datetime (timezone aware)
    Uuid      uuid.UUID

Shared sub-objects are represented by the same Python object appearing more
than once in the tree. Cycles are never valid.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any, Union

from sbedit.errors import StructureError

Value = Union[
    dict[str, "Value"], list["Value"], bytes, str, int, float, bool, None, datetime, uuid.UUID
]

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class Kind(enum.Enum):
    MAP = "map"
    SEQUENCE = "sequence"
    BLOB = "blob"
    TEXT = "text"
    INTEGER = "integer"
    REAL = "real"
    BOOLEAN = "boolean"
    NULL = "null"
    DATE = "date"
    UUID = "uuid"


def kind_of(value: Any) -> Kind | None:
    """Return the variant of value, or None if it is not a supported value."""
    # bool before int: bool is an int subclass
    if value is None:
        return Kind.NULL
    if isinstance(value, bool):
        return Kind.BOOLEAN
    if isinstance(value, int):
        return Kind.INTEGER
    if isinstance(value, float):
        return Kind.REAL
    if isinstance(value, str):
        return Kind.TEXT
    if isinstance(value, (bytes, bytearray)):
        return Kind.BLOB
    if isinstance(value, dict):
        return Kind.MAP
    if isinstance(value, list):
        return Kind.SEQUENCE
    if isinstance(value, datetime):
        return Kind.DATE
    if isinstance(value, uuid.UUID):
        return Kind.UUID
    return None


def validate(value: Any) -> None:
    """Check that value is a well-formed tree. Raises StructureError if not.

    encode() runs this before building the object table. Shared sub-trees are
    walked once.
    """
    active: set[int] = set()
    checked: set[int] = set()

    def walk(node: Any, where: str) -> None:
        kind = kind_of(node)
        if kind is None:
            msg = f"unsupported value of type {type(node).__name__} at {where}"
            raise StructureError(msg)
        if kind is Kind.INTEGER and not INT64_MIN <= node <= INT64_MAX:
            msg = f"integer out of 64-bit range at {where}: {node}"
            raise StructureError(msg)
        if kind not in (Kind.MAP, Kind.SEQUENCE) or id(node) in checked:
            return
        if id(node) in active:
            msg = f"cyclic reference at {where}"
            raise StructureError(msg)
        active.add(id(node))
        if kind is Kind.MAP:
            for key, child in node.items():
                if not isinstance(key, str):
                    msg = f"map key {key!r} at {where} is not a string"
                    raise StructureError(msg)
                walk(child, f"{where}/{key}")
        else:
            for i, child in enumerate(node):
                walk(child, f"{where}[{i}]")
        active.discard(id(node))
        checked.add(id(node))

    walk(value, "$")


def tree_equal(a: Any, b: Any) -> bool:
    """Structural equality that also compares map key order and scalar kinds.

    Plain == treats True == 1 and ignores dict ordering; archives care about both.
    """
    kind = kind_of(a)
    if kind is not kind_of(b):
        return False
    if kind is Kind.MAP:
        if list(a.keys()) != list(b.keys()):
            return False
        return all(tree_equal(a[k], b[k]) for k in a)
    if kind is Kind.SEQUENCE:
        return len(a) == len(b) and all(tree_equal(x, y) for x, y in zip(a, b))
    if kind is Kind.BLOB:
        return bytes(a) == bytes(b)
    return a == b
