from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any


class LowCardinalityKeyNames:
    URI = "uri"
    METHOD = "method"
    STATUS = "status"
    EXCEPTION = "exception"
    OUTCOME = "outcome"


class HighCardinalityKeyNames:
    URI_EXPANDED = "uri.expanded"
    CLIENT_NAME = "client.name"


@dataclass(frozen=True)
class KeyValue:
    key: str
    value: str

    @classmethod
    def of(cls, key: str, value: Any) -> KeyValue:
        return cls(key=key, value=str(value))


class KeyValues:
    """Immutable, ordered collection of tags with unique keys."""

    __slots__ = ("_items",)

    def __init__(self, items: tuple[KeyValue, ...] = ()) -> None:
        self._items = items

    @classmethod
    def of(cls, *pairs: KeyValue) -> KeyValues:
        # A repeated key keeps its first position and takes the last value.
        merged: dict[str, KeyValue] = {}
        for pair in pairs:
            merged[pair.key] = pair
        return cls(tuple(merged.values()))

    def and_(self, *pairs: KeyValue) -> KeyValues:
        return KeyValues.of(*self._items, *pairs)

    def get(self, key: str) -> str | None:
        for item in self._items:
            if item.key == key:
                return item.value
        return None

    def keys(self) -> list[str]:
        return [item.key for item in self._items]

    def to_dict(self) -> dict[str, str]:
        return {item.key: item.value for item in self._items}

    def __iter__(self) -> Iterator[KeyValue]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyValues):
            return NotImplemented
        return self._items == other._items

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        inner = ", ".join(f"{kv.key}={kv.value!r}" for kv in self._items)
        return f"KeyValues({inner})"
