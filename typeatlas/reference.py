"""Reference schemas: pin well-known shapes to stable, caller-chosen names."""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

import yaml

from .fingerprint import COARSE_KINDS, coarse_kind

logger = logging.getLogger("typeatlas.reference")


@dataclass(frozen=True)
class ReferenceSchema:
    """A named shallow shape: field name -> declared kind."""
    name: str
    fields: dict = field(default_factory=dict)
    module: Optional[str] = None
    ts_type: Optional[str] = None
    description: Optional[str] = None

    def matches(self, record: dict) -> bool:
        """True if every declared field is present with the declared kind.

        Extra fields on the record are ignored. Declared kinds outside the
        coarse vocabulary (e.g. ``any``) only require the field to exist.
        """
        for fname, expected in self.fields.items():
            if fname not in record:
                return False
            if expected in COARSE_KINDS and coarse_kind(record[fname]) != expected:
                return False
        return True

    def to_dict(self) -> dict:
        d = {"fields": dict(self.fields)}
        if self.module:
            d["module"] = self.module
        if self.ts_type:
            d["type"] = self.ts_type
        if self.description:
            d["description"] = self.description
        return d


class ReferenceMatcher:
    """Tests sampled records against reference schemas in declaration order."""

    def __init__(self, schemas=None):
        self.schemas: list[ReferenceSchema] = list(schemas or [])

    @classmethod
    def from_file(cls, path: str) -> "ReferenceMatcher":
        return cls(load_reference_schemas(path))

    def __len__(self):
        return len(self.schemas)

    def __bool__(self):
        return bool(self.schemas)

    @property
    def names(self) -> list[str]:
        return [schema.name for schema in self.schemas]

    def get(self, name: str) -> Optional[ReferenceSchema]:
        for schema in self.schemas:
            if schema.name == name:
                return schema
        return None

    def match(self, record: dict) -> Optional[str]:
        """Name of the first schema contained in ``record``, or None."""
        for schema in self.schemas:
            if schema.matches(record):
                logger.debug("Record matched reference schema %s", schema.name)
                return schema.name
        return None


def parse_reference_data(data) -> list[ReferenceSchema]:
    """Build schemas from a decoded reference document.

    Accepts either a flat ``{Name: {field: kind}}`` hint map or a structured
    ``references:`` block where each entry carries ``fields`` plus optional
    ``module``, ``type`` and ``description``.
    """
    if data is None:
        return []
    if not isinstance(data, dict):
        raise ValueError("Reference document must be a mapping of type names")

    structured = "references" in data and isinstance(data["references"], dict)
    entries = data["references"] if structured else data

    schemas = []
    for name, entry in entries.items():
        if not isinstance(entry, dict):
            raise ValueError(f"Reference schema {name!r} must be a mapping")
        if structured:
            fields = entry.get("fields") or {}
            if not isinstance(fields, dict):
                raise ValueError(f"Reference schema {name!r}: 'fields' must be a mapping")
            schema = ReferenceSchema(
                name=str(name),
                fields={str(k): str(v) for k, v in fields.items()},
                module=entry.get("module"),
                ts_type=entry.get("type"),
                description=entry.get("description"),
            )
        else:
            schema = ReferenceSchema(
                name=str(name),
                fields={str(k): str(v) for k, v in entry.items()},
            )
        unknown_kinds = sorted(
            {k for k in schema.fields.values() if k not in COARSE_KINDS}
        )
        if unknown_kinds:
            logger.debug(
                "Reference schema %s declares presence-only kinds: %s",
                schema.name, ", ".join(unknown_kinds),
            )
        schemas.append(schema)
    return schemas


def load_reference_schemas(path: str) -> list[ReferenceSchema]:
    """Load reference schemas from a YAML or JSON file."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Reference file not found: {path}")
    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Malformed reference file {path}: {e}") from e
    schemas = parse_reference_data(data)
    logger.info("Loaded %d reference schemas from %s", len(schemas), path)
    return schemas
