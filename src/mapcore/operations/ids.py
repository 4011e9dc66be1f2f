"""Layer id generation for derived layers."""

from __future__ import annotations

import itertools
import uuid
from typing import Collection, Protocol


class IdSource(Protocol):
    """Produces candidate ids for new layers."""

    def next(self) -> str: ...


class UuidIdSource:
    """Random ids: ``<prefix><8 hex chars>``."""

    def __init__(self, prefix: str = "layer-") -> None:
        self.prefix = prefix

    def next(self) -> str:
        return f"{self.prefix}{uuid.uuid4().hex[:8]}"


class SequentialIdSource:
    """Deterministic ids: ``<prefix>1``, ``<prefix>2``, ..."""

    def __init__(self, prefix: str = "layer-", start: int = 1) -> None:
        self.prefix = prefix
        self._counter = itertools.count(start)

    def next(self) -> str:
        return f"{self.prefix}{next(self._counter)}"


def fresh_id(ids: IdSource, taken: Collection[str], attempts: int = 1000) -> str:
    """Draw ids until one is not in ``taken``.

    Raises:
        RuntimeError: If the source keeps returning taken ids.
    """
    for _ in range(attempts):
        candidate = ids.next()
        if candidate not in taken:
            return candidate
    raise RuntimeError(f"Could not generate a free layer id after {attempts} attempts")
