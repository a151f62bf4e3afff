"""Recursive structural type inference over sampled API responses."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .catalog import Catalog, FieldDescriptor, ParserOutput, RecordType, TypeKind, order_types
from .fingerprint import ValueKind, classify, fingerprint
from .naming import NameAllocator, to_pascal_case
from .reference import ReferenceMatcher

logger = logging.getLogger("typeatlas.engine")

DEFAULT_ROOT_NAME = "ApiResponse"

# Primitive type expressions emitted by the engine
UNKNOWN = "unknown"
STRING = "string"
NUMBER = "number"
BOOLEAN = "boolean"
TEMPORAL = "Date"

_ISO8601_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?([+-]\d{2}:\d{2}|Z)$"
)


class InferenceDepthError(ValueError):
    """Raised when a sample nests deeper than the caller-imposed limit."""


@dataclass
class InferenceContext:
    """Mutable state owned by a single ``parse()`` call."""
    catalog: Catalog = field(default_factory=Catalog)
    names: NameAllocator = field(default_factory=NameAllocator)
    seen: dict = field(default_factory=dict)  # fingerprint -> allocated name
    max_depth: Optional[int] = None


def is_iso8601(value: str) -> bool:
    return bool(_ISO8601_RE.match(value))


class TypeInferrer:
    """Infers named record types from one sampled value tree.

    The inferrer itself only holds the read-only reference matcher; all
    per-run state lives in an ``InferenceContext`` created by ``parse()``,
    so one instance may serve several callers at once.
    """

    def __init__(self, references: Optional[ReferenceMatcher] = None, max_depth: Optional[int] = None):
        self.references = references or ReferenceMatcher()
        self.max_depth = max_depth

    def parse(self, value, root_name: str = DEFAULT_ROOT_NAME, source: str = "parser") -> ParserOutput:
        """Infer the whole tree and return the ordered parser output."""
        # Generated records never reuse a reference schema name.
        ctx = InferenceContext(
            names=NameAllocator(reserved=self.references.names),
            max_depth=self.max_depth,
        )
        root_type = self.infer(value, root_name, ctx)
        types = order_types(ctx.catalog, root=root_type)
        logger.info(
            "Inferred %d types (root %s, %d reference schemas)",
            len(types), root_type, len(self.references),
        )
        return ParserOutput(
            types=types,
            root_type=root_type,
            source=source,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def infer(self, value, name_hint: str, ctx: InferenceContext, depth: int = 0) -> str:
        """Return the type expression for ``value``, registering records in ``ctx``."""
        if ctx.max_depth is not None and depth > ctx.max_depth:
            raise InferenceDepthError(
                f"Sample nests deeper than {ctx.max_depth} levels at {name_hint!r}"
            )

        kind = classify(value)
        if kind is ValueKind.NULL:
            return UNKNOWN
        if kind is ValueKind.STRING:
            return TEMPORAL if is_iso8601(value) else STRING
        if kind is ValueKind.NUMBER:
            return NUMBER
        if kind is ValueKind.BOOLEAN:
            return BOOLEAN
        if kind is ValueKind.ARRAY:
            return self._infer_array(value, name_hint, ctx, depth)
        if kind is ValueKind.OBJECT:
            return self._infer_record(value, name_hint, ctx, depth)
        logger.debug("Unrecognized value of type %s at %s", type(value).__name__, name_hint)
        return UNKNOWN

    def _infer_array(self, value, name_hint, ctx, depth) -> str:
        # Only the first element is sampled; mixed arrays are not unioned.
        if not value:
            return f"{UNKNOWN}[]"
        element = self.infer(value[0], f"{name_hint}Item", ctx, depth + 1)
        return f"{element}[]"

    def _infer_record(self, value: dict, name_hint, ctx, depth) -> str:
        ref_name = self.references.match(value)
        if ref_name:
            return ref_name

        fp = fingerprint(value)
        if fp in ctx.seen:
            logger.debug("Fingerprint %s already named %s", fp, ctx.seen[fp])
            return ctx.seen[fp]

        name = ctx.names.allocate(name_hint)
        # Remember before descending so self-similar nesting resolves here.
        ctx.seen[fp] = name

        fields = []
        for key, val in value.items():
            type_ref = self.infer(val, to_pascal_case(key), ctx, depth + 1)
            fields.append(FieldDescriptor(
                name=str(key),
                type_ref=type_ref,
                required=val is not None,
            ))

        ctx.catalog.register(RecordType(name=name, kind=TypeKind.RECORD, fields=tuple(fields)))
        return name


def parse(value, root_name: str = DEFAULT_ROOT_NAME, references=None, max_depth=None) -> ParserOutput:
    """One-shot inference with a throwaway ``TypeInferrer``.

    ``references`` may be a ``ReferenceMatcher`` or a list of schemas.
    """
    if references is not None and not isinstance(references, ReferenceMatcher):
        references = ReferenceMatcher(references)
    return TypeInferrer(references=references, max_depth=max_depth).parse(value, root_name)
