"""Value classification and structural fingerprints for sampled records."""

from enum import Enum


class ValueKind(Enum):
    """Closed set of runtime kinds a sampled value can take."""
    NULL = "null"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    UNKNOWN = "unknown"


# Kind names a reference schema may declare and a fingerprint may contain
COARSE_KINDS = frozenset(
    k.value for k in ValueKind if k is not ValueKind.UNKNOWN
)


def classify(value) -> ValueKind:
    """Decide the kind of a sampled value.

    ``bool`` is tested before numbers because it subclasses ``int``.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.OBJECT
    return ValueKind.UNKNOWN


def coarse_kind(value) -> str:
    return classify(value).value


def fingerprint(record: dict) -> str:
    """Signature of a record built from its sorted (field, kind) pairs.

    Two records with the same field names and the same coarse kind per field
    share a fingerprint regardless of values or key order.
    """
    parts = sorted(f"{key}:{coarse_kind(val)}" for key, val in record.items())
    return "{" + "|".join(parts) + "}"
