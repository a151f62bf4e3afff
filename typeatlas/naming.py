"""Canonical type names derived from field-path hints."""

import re

FALLBACK_NAME = "Anonymous"

_WORD_SPLIT_RE = re.compile(r"[^A-Za-z0-9]+")


def to_pascal_case(hint: str) -> str:
    """Turn a field name or path hint into a PascalCase identifier.

    ``created_at`` -> ``CreatedAt``, ``user-id`` -> ``UserId``,
    ``userName`` -> ``UserName``.
    """
    words = [w for w in _WORD_SPLIT_RE.split(str(hint)) if w]
    name = "".join(w[:1].upper() + w[1:] for w in words)
    if not name:
        return FALLBACK_NAME
    if name[0].isdigit():
        return f"Type{name}"
    return name


class NameAllocator:
    """Hands out names unique within one inference run.

    The first use of a base gets the bare name; later uses append the
    base's occurrence count (``Address``, ``Address1``, ``Address2``). The
    count only goes up, and candidates already taken by another base are
    skipped. Names in ``reserved`` are never handed out.
    """

    def __init__(self, reserved=()):
        self._counters: dict[str, int] = {}
        self._taken: set[str] = set(reserved)

    def allocate(self, hint: str) -> str:
        base = to_pascal_case(hint)
        count = self._counters.get(base, 0)
        name = base if count == 0 else f"{base}{count}"
        while name in self._taken:
            count += 1
            name = f"{base}{count}"
        self._counters[base] = count + 1
        self._taken.add(name)
        return name

    def occurrences(self, hint: str) -> int:
        """How many counter values the base of ``hint`` has consumed."""
        return self._counters.get(to_pascal_case(hint), 0)

    @property
    def taken(self) -> frozenset:
        return frozenset(self._taken)
