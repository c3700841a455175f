from __future__ import annotations

import re
from typing import Callable, Dict, Iterable, Mapping, Optional

_SUFFIX = re.compile(r"^(?P<prefix>[a-z]+)_(?P<number>\d+)$")


class IdGenerator:
    """Per-prefix counters producing ``task_0001`` style identifiers."""

    def __init__(self, seed: Optional[Mapping[str, int]] = None) -> None:
        self._counters: Dict[str, int] = {key: int(value) for key, value in (seed or {}).items()}

    @property
    def counters(self) -> Dict[str, int]:
        return dict(self._counters)

    def next_id(self, prefix: str) -> str:
        current = self._counters.get(prefix, 0) + 1
        self._counters[prefix] = current
        return f"{prefix}_{current:04d}"

    def factory(self, prefix: str) -> Callable[[], str]:
        return lambda: self.next_id(prefix)

    def advance_past(self, identifiers: Iterable[str]) -> None:
        """Make sure future ids never collide with ``identifiers``."""

        for identifier in identifiers:
            match = _SUFFIX.match(identifier)
            if not match:
                continue
            prefix = match.group("prefix")
            number = int(match.group("number"))
            if number > self._counters.get(prefix, 0):
                self._counters[prefix] = number

    def copy(self) -> "IdGenerator":
        return IdGenerator(self._counters)


__all__ = ["IdGenerator"]
