"""Named type catalog, emission ordering and the JSON parser-output contract."""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

logger = logging.getLogger("typeatlas.catalog")


class TypeKind(Enum):
    RECORD = "record"
    ALIAS = "alias"
    ENUMERATION = "enumeration"

    @property
    def wire_name(self) -> str:
        return _KIND_TO_WIRE[self]

    @classmethod
    def parse(cls, raw: str) -> "TypeKind":
        """Accept either the internal or the serialized spelling."""
        if raw in _WIRE_TO_KIND:
            return _WIRE_TO_KIND[raw]
        try:
            return cls(raw)
        except ValueError:
            raise ValueError(f"Unknown type kind: {raw!r}") from None


_KIND_TO_WIRE = {
    TypeKind.RECORD: "interface",
    TypeKind.ALIAS: "type",
    TypeKind.ENUMERATION: "enum",
}
_WIRE_TO_KIND = {v: k for k, v in _KIND_TO_WIRE.items()}


@dataclass(frozen=True)
class FieldDescriptor:
    """One field of a record type."""
    name: str
    type_ref: str
    required: bool = True
    description: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"name": self.name, "type": self.type_ref, "required": self.required}
        if self.description:
            d["description"] = self.description
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "FieldDescriptor":
        if not isinstance(d, dict) or "name" not in d:
            raise ValueError(f"Malformed field entry: {d!r}")
        return cls(
            name=d["name"],
            type_ref=d.get("type", "unknown"),
            required=bool(d.get("required", True)),
            description=d.get("description"),
        )


@dataclass(frozen=True)
class RecordType:
    """A named type: a record with fields, or an alias/enumeration of values."""
    name: str
    kind: TypeKind = TypeKind.RECORD
    fields: tuple = ()
    alternatives: tuple = ()
    parents: frozenset = field(default_factory=frozenset)
    description: Optional[str] = None

    def references(self) -> set[str]:
        """Field type refs of this type, as written."""
        return {f.type_ref for f in self.fields}

    def to_dict(self) -> dict:
        d = {"name": self.name, "kind": self.kind.wire_name}
        if self.kind is TypeKind.RECORD:
            d["fields"] = [f.to_dict() for f in self.fields]
        else:
            d["values"] = list(self.alternatives)
        if self.parents:
            d["extends"] = sorted(self.parents)
        if self.description:
            d["description"] = self.description
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "RecordType":
        if not isinstance(d, dict):
            raise ValueError(f"Type entry must be a mapping, got {type(d).__name__}")
        if "name" not in d:
            raise ValueError("Type entry without a name")
        return cls(
            name=d["name"],
            kind=TypeKind.parse(d.get("kind", "interface")),
            fields=tuple(FieldDescriptor.from_dict(f) for f in d.get("fields") or []),
            alternatives=tuple(str(v) for v in d.get("values") or []),
            parents=frozenset(d.get("extends") or []),
            description=d.get("description"),
        )


class Catalog:
    """Name -> RecordType, remembering insertion order.

    A name, once bound, keeps its first RecordType; later registrations
    under the same name are ignored.
    """

    def __init__(self):
        self._types: dict[str, RecordType] = {}

    def register(self, record: RecordType) -> RecordType:
        existing = self._types.get(record.name)
        if existing is not None:
            logger.debug("Type %s already registered, keeping first", record.name)
            return existing
        self._types[record.name] = record
        logger.debug("Registered %s %s", record.kind.value, record.name)
        return record

    def get(self, name: str) -> Optional[RecordType]:
        return self._types.get(name)

    def __contains__(self, name) -> bool:
        return name in self._types

    def __iter__(self):
        return iter(list(self._types.values()))

    def __len__(self) -> int:
        return len(self._types)

    @property
    def names(self) -> list[str]:
        return list(self._types)

    def snapshot(self) -> tuple:
        return tuple(self._types.values())


def order_types(types, root: Optional[str] = None) -> list[RecordType]:
    """Advisory emission order: root first, then fewest incoming refs first.

    Incoming references are counted from *other* types whose fields name
    the type directly. Ties keep insertion order. Cycles are not detected.
    """
    types = list(types)
    incoming = {
        t.name: sum(1 for other in types if other.name != t.name and t.name in other.references())
        for t in types
    }

    def sort_key(item):
        index, t = item
        is_root = 0 if root is not None and t.name == root else 1
        return (is_root, incoming[t.name], index)

    return [t for _, t in sorted(enumerate(types), key=sort_key)]


@dataclass
class ParserOutput:
    """Result of one inference run, handed to generators and renderers."""
    types: list
    root_type: str
    source: str = "parser"
    timestamp: str = ""

    def get(self, name: str) -> Optional[RecordType]:
        for t in self.types:
            if t.name == name:
                return t
        return None

    def to_dict(self) -> dict:
        return {
            "types": [t.to_dict() for t in self.types],
            "metadata": {
                "source": self.source,
                "timestamp": self.timestamp,
                "rootType": self.root_type,
            },
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, d: dict) -> "ParserOutput":
        if not isinstance(d, dict) or not isinstance(d.get("types"), list):
            raise ValueError("Parser output must be a mapping with a 'types' list")
        meta = d.get("metadata") or {}
        return cls(
            types=[RecordType.from_dict(t) for t in d["types"]],
            root_type=meta.get("rootType", ""),
            source=meta.get("source", "parser"),
            timestamp=meta.get("timestamp", ""),
        )

    @classmethod
    def load(cls, path: str) -> "ParserOutput":
        with open(path, "r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Malformed parser output {path}: {e}") from e
        return cls.from_dict(data)
