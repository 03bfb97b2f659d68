"""Keyed-archive codec: binary plist object table <-> value tree.

Container layout (a plist dictionary, usually bplist00):

    {
      "$archiver": "NSKeyedArchiver",
      "$version": 100000,
      "$top": {"root": UID(1)},
      "$objects": [
        "$null",                                   # UID 0 is nil
        {"NS.keys": [UID(2)], "NS.objects": [UID(3)], "$class": UID(4)},
        "items",
        {"NS.objects": [], "$class": UID(5)},
        {"$classname": "NSDictionary", "$classes": ["NSDictionary", "NSObject"]},
        ...
      ]
    }

Every collection member is a UID into $objects. Strings, numbers, booleans and
data sit in the table as plain plist values; everything else is a dictionary
tagged with a $class descriptor. Only the classes listed in _CLASS_KINDS are
understood.

decode() memoizes by UID so shared references come back as the same Python
object; encode() de-duplicates containers by identity, which writes them back
shared.
"""

from __future__ import annotations

import logging
import plistlib
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any
from xml.parsers.expat import ExpatError

from sbedit.errors import StructureError
from sbedit.values import Kind, Value, kind_of, validate

logger = logging.getLogger("sbedit.codec")

ARCHIVER = "NSKeyedArchiver"
ARCHIVE_VERSION = 100000
NULL_MARKER = "$null"

_APPLE_EPOCH = datetime(2001, 1, 1, tzinfo=UTC)

# class name -> value kind it decodes to
_CLASS_KINDS: dict[str, Kind] = {
    "NSDictionary": Kind.MAP,
    "NSMutableDictionary": Kind.MAP,
    "NSArray": Kind.SEQUENCE,
    "NSMutableArray": Kind.SEQUENCE,
    "NSData": Kind.BLOB,
    "NSMutableData": Kind.BLOB,
    "NSString": Kind.TEXT,
    "NSMutableString": Kind.TEXT,
    "NSNull": Kind.NULL,
    "NSDate": Kind.DATE,
    "NSUUID": Kind.UUID,
}

# class name used when encoding each container kind
_ENCODE_CLASSES: dict[Kind, str] = {
    Kind.MAP: "NSDictionary",
    Kind.SEQUENCE: "NSArray",
    Kind.DATE: "NSDate",
    Kind.UUID: "NSUUID",
}

_SCALAR_KINDS = frozenset({Kind.TEXT, Kind.INTEGER, Kind.REAL, Kind.BOOLEAN, Kind.BLOB})


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def decode(data: bytes) -> Value:
    """Decode archive bytes into a value tree. Raises StructureError."""
    try:
        plist = plistlib.loads(data)
    except (ValueError, ExpatError) as exc:
        msg = f"not a property list: {exc}"
        raise StructureError(msg) from exc

    objects, root = _read_envelope(plist)
    try:
        value = _Unarchiver(objects).resolve(root, "$top.root")
    except RecursionError as exc:
        msg = "archive nesting too deep"
        raise StructureError(msg) from exc
    logger.debug("decoded archive: %d table entries", len(objects))
    return value


def _read_envelope(plist: Any) -> tuple[list[Any], Any]:
    if not isinstance(plist, dict):
        msg = "archive envelope is not a dictionary"
        raise StructureError(msg)
    archiver = plist.get("$archiver")
    if archiver != ARCHIVER:
        msg = f"unknown archiver: {archiver!r}"
        raise StructureError(msg)
    version = plist.get("$version")
    if version != ARCHIVE_VERSION:
        msg = f"unsupported archive version: {version!r}"
        raise StructureError(msg)
    objects = plist.get("$objects")
    if not isinstance(objects, list) or not objects:
        msg = "archive has no object table"
        raise StructureError(msg)
    top = plist.get("$top")
    if not isinstance(top, dict) or "root" not in top:
        msg = "archive has no root reference"
        raise StructureError(msg)
    return objects, top["root"]


class _Unarchiver:
    """Materializes $objects entries on demand, rejecting cycles."""

    def __init__(self, objects: list[Any]) -> None:
        self.objects = objects
        self._done: dict[int, Value] = {}
        self._active: set[int] = set()

    def _index(self, ref: Any, where: str) -> int:
        if not isinstance(ref, plistlib.UID):
            msg = f"expected an object reference at {where}, got {type(ref).__name__}"
            raise StructureError(msg)
        if not 0 <= ref.data < len(self.objects):
            msg = f"object reference {ref.data} at {where} is out of range"
            raise StructureError(msg)
        return ref.data

    def resolve(self, ref: Any, where: str) -> Value:
        index = self._index(ref, where)
        if index in self._done:
            return self._done[index]
        if index in self._active:
            msg = f"cyclic reference to object {index} at {where}"
            raise StructureError(msg)

        self._active.add(index)
        try:
            value = self._materialize(index, where)
        finally:
            self._active.discard(index)
        self._done[index] = value
        return value

    def _materialize(self, index: int, where: str) -> Value:
        raw = self.objects[index]
        if index == 0 and raw == NULL_MARKER:
            return None
        if isinstance(raw, dict):
            return self._decode_object(raw, index)
        kind = kind_of(raw)
        if kind in _SCALAR_KINDS:
            return raw
        if kind is Kind.DATE:
            # plistlib hands back naive UTC datetimes
            return raw if raw.tzinfo else raw.replace(tzinfo=UTC)
        msg = f"object {index} at {where} has unsupported type {type(raw).__name__}"
        raise StructureError(msg)

    def _class_name(self, raw: dict[str, Any], index: int) -> str:
        if "$class" not in raw:
            msg = f"object {index} has no $class"
            raise StructureError(msg)
        cls_index = self._index(raw["$class"], f"object {index} $class")
        descriptor = self.objects[cls_index]
        name = descriptor.get("$classname") if isinstance(descriptor, dict) else None
        if not isinstance(name, str):
            msg = f"object {index} has an invalid class descriptor"
            raise StructureError(msg)
        return name

    def _decode_object(self, raw: dict[str, Any], index: int) -> Value:
        name = self._class_name(raw, index)
        kind = _CLASS_KINDS.get(name)
        if kind is None:
            msg = f"unknown class {name!r} for object {index}"
            raise StructureError(msg)

        if kind is Kind.MAP:
            return self._decode_map(raw, index)
        if kind is Kind.SEQUENCE:
            members = self._refs(raw, "NS.objects", index)
            return [self.resolve(ref, f"object {index}[{i}]") for i, ref in enumerate(members)]
        if kind is Kind.NULL:
            return None
        if kind is Kind.BLOB:
            return bytes(self._field(raw, "NS.data", bytes, index))
        if kind is Kind.TEXT:
            return self._field(raw, "NS.string", str, index)
        if kind is Kind.DATE:
            seconds = self._field(raw, "NS.time", (int, float), index)
            try:
                return _APPLE_EPOCH + timedelta(seconds=seconds)
            except (OverflowError, ValueError) as exc:
                msg = f"object {index} has an invalid NS.time: {seconds!r}"
                raise StructureError(msg) from exc
        raw_bytes = self._field(raw, "NS.uuidbytes", bytes, index)
        if len(raw_bytes) != 16:
            msg = f"object {index} has {len(raw_bytes)} uuid bytes, expected 16"
            raise StructureError(msg)
        return uuid.UUID(bytes=bytes(raw_bytes))

    def _decode_map(self, raw: dict[str, Any], index: int) -> dict[str, Value]:
        keys = self._refs(raw, "NS.keys", index)
        members = self._refs(raw, "NS.objects", index)
        if len(keys) != len(members):
            msg = f"object {index} has {len(keys)} keys but {len(members)} values"
            raise StructureError(msg)
        result: dict[str, Value] = {}
        for key_ref, value_ref in zip(keys, members):
            key = self.resolve(key_ref, f"object {index} key")
            if not isinstance(key, str):
                msg = f"object {index} has a non-string key {key!r}"
                raise StructureError(msg)
            if key in result:
                msg = f"object {index} has duplicate key {key!r}"
                raise StructureError(msg)
            result[key] = self.resolve(value_ref, f"object {index}/{key}")
        return result

    def _refs(self, raw: dict[str, Any], field: str, index: int) -> list[Any]:
        refs = raw.get(field, [])
        if not isinstance(refs, list):
            msg = f"object {index} field {field} is not an array"
            raise StructureError(msg)
        return refs

    def _field(self, raw: dict[str, Any], field: str, expected: Any, index: int) -> Any:
        value = raw.get(field)
        # bool is an int subclass, never a valid payload here
        if isinstance(value, bool) or not isinstance(value, expected):
            msg = f"object {index} field {field} is missing or has the wrong type"
            raise StructureError(msg)
        return value


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def encode(root: Value) -> bytes:
    """Encode a value tree as a binary keyed archive. Raises StructureError on bad trees."""
    archiver = _Archiver()
    try:
        validate(root)
        top = archiver.ref(root)
    except RecursionError as exc:
        msg = "value tree nesting too deep"
        raise StructureError(msg) from exc
    plist = {
        "$version": ARCHIVE_VERSION,
        "$archiver": ARCHIVER,
        "$top": {"root": top},
        "$objects": archiver.objects,
    }
    logger.debug("encoded archive: %d table entries", len(archiver.objects))
    return plistlib.dumps(plist, fmt=plistlib.FMT_BINARY, sort_keys=False)


class _Archiver:
    """Builds the $objects table in a single pre-order walk over a validated tree."""

    def __init__(self) -> None:
        self.objects: list[Any] = [NULL_MARKER]
        self._scalars: dict[tuple[type, Any], int] = {}
        self._containers: dict[int, int] = {}
        self._classes: dict[str, int] = {}

    def _append(self, entry: Any) -> int:
        self.objects.append(entry)
        return len(self.objects) - 1

    def ref(self, value: Value) -> plistlib.UID:
        kind = kind_of(value)
        if kind is Kind.NULL:
            return plistlib.UID(0)
        if kind in _SCALAR_KINDS:
            return plistlib.UID(self._scalar(value, kind))
        if kind is Kind.DATE:
            when = value if value.tzinfo else value.replace(tzinfo=UTC)
            seconds = (when - _APPLE_EPOCH).total_seconds()
            return plistlib.UID(self._tagged(kind, {"NS.time": seconds}))
        if kind is Kind.UUID:
            return plistlib.UID(self._tagged(kind, {"NS.uuidbytes": value.bytes}))
        return plistlib.UID(self._container(value, kind))

    def _scalar(self, value: Any, kind: Kind) -> int:
        if kind is Kind.BLOB:
            value = bytes(value)
        key = (type(value), value)
        index = self._scalars.get(key)
        if index is None:
            index = self._scalars[key] = self._append(value)
        return index

    def _tagged(self, kind: Kind, payload: dict[str, Any]) -> int:
        index = self._append(None)
        payload["$class"] = self._class_ref(_ENCODE_CLASSES[kind])
        self.objects[index] = payload
        return index

    def _container(self, value: Any, kind: Kind) -> int:
        ident = id(value)
        if ident in self._containers:
            return self._containers[ident]

        index = self._append(None)
        self._containers[ident] = index
        if kind is Kind.MAP:
            key_refs = [self.ref(key) for key in value]
            value_refs = [self.ref(child) for child in value.values()]
            entry: dict[str, Any] = {"NS.keys": key_refs, "NS.objects": value_refs}
        else:
            entry = {"NS.objects": [self.ref(child) for child in value]}
        entry["$class"] = self._class_ref(_ENCODE_CLASSES[kind])
        self.objects[index] = entry
        return index

    def _class_ref(self, name: str) -> plistlib.UID:
        index = self._classes.get(name)
        if index is None:
            index = self._classes[name] = self._append({"$classes": [name, "NSObject"], "$classname": name})
        return plistlib.UID(index)
