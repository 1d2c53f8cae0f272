"""
Identifier generation.

Row identifiers are opaque strings assigned by services at creation time and
never reused.  The generator is injected alongside the Clock so tests can
produce predictable ids.
"""

import itertools
import re
import threading
import unicodedata
from abc import ABC, abstractmethod
from uuid import uuid4


class IdGenerator(ABC):
    """Produces globally unique opaque string identifiers."""

    @abstractmethod
    def new_id(self) -> str:
        ...


class UUIDGenerator(IdGenerator):
    """Production generator: random uuid4 strings."""

    def new_id(self) -> str:
        return str(uuid4())


class SequentialIdGenerator(IdGenerator):
    """
    Test generator returning ``{prefix}-000001``, ``{prefix}-000002``, ...

    Thread-safe so concurrency tests can share one instance.
    """

    def __init__(self, prefix: str = "id"):
        self._prefix = prefix
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def new_id(self) -> str:
        with self._lock:
            return f"{self._prefix}-{next(self._counter):06d}"


_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """
    Derive a stable kebab-case slug from a display name.

    Accents are folded to ASCII, every run of other characters becomes a
    single hyphen, and leading/trailing hyphens are dropped.

    Raises:
        ValueError: if nothing usable remains.
    """
    folded = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = _NON_SLUG.sub("-", folded.lower()).strip("-")
    if not slug:
        raise ValueError(f"Cannot derive an identifier from {name!r}")
    return slug
