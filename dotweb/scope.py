from collections.abc import Mapping
from typing import Any, Dict, Iterator, Optional

SLOT_KEY = 'slot'


class Scope(Mapping):
    """
    Read-only identifier -> value mapping visible to one render invocation.

    A scope is never changed in place; extend() returns a new scope with the
    extra entries, leaving the caller's scope untouched.
    """

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = dict(values or {})

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Scope({self._values!r})"

    def extend(self, **entries: Any) -> 'Scope':
        merged = dict(self._values)
        merged.update(entries)
        return Scope(merged)
