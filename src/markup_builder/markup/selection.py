"""User-ordered field selection."""

from __future__ import annotations

from typing import Iterable, Iterator

from markup_builder.core.models import DiscoveredField


def _key_of(item: DiscoveredField | str) -> str:
    return item.key if isinstance(item, DiscoveredField) else str(item)


class FieldSelection:
    """Ordered list of selected field keys; the user's order wins over discovery rank."""

    def __init__(self, keys: Iterable[DiscoveredField | str] = ()) -> None:
        self._keys: list[str] = []
        for item in keys:
            self.select(item)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._keys)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._keys))

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, (DiscoveredField, str)):
            return _key_of(item) in self._keys
        return False

    def select(self, item: DiscoveredField | str) -> None:
        key = _key_of(item)
        if key and key not in self._keys:
            self._keys.append(key)

    def deselect(self, item: DiscoveredField | str) -> None:
        key = _key_of(item)
        if key in self._keys:
            self._keys.remove(key)

    def toggle(self, item: DiscoveredField | str) -> bool:
        """Flip the selection state of ``item`` and return the new state."""
        if item in self:
            self.deselect(item)
            return False
        self.select(item)
        return True

    def select_all(self, items: Iterable[DiscoveredField | str]) -> None:
        self._keys = []
        for item in items:
            self.select(item)

    def clear(self) -> None:
        self._keys = []

    def move(self, item: DiscoveredField | str, index: int) -> None:
        """Move a selected key to ``index`` (clamped to the list bounds)."""
        key = _key_of(item)
        if key not in self._keys:
            raise KeyError(key)
        self._keys.remove(key)
        position = max(0, min(index, len(self._keys)))
        self._keys.insert(position, key)
