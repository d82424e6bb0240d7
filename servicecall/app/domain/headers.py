"""Ordered, case-insensitive, multi-valued header collection."""
from __future__ import annotations

from typing import Iterable, Iterator, Mapping, MutableMapping

from servicecall.app.constants import HEADER


class HeaderSet(MutableMapping[str, str]):
    """Request or response headers.

    Keys compare case-insensitively but keep the case they were first set
    with. Indexing returns the first value of a key; ``get_all`` returns
    every value. Assigning ``None`` removes the key.
    """

    def __init__(self, headers: Mapping[str, str] | Iterable[tuple[str, str]] | None = None) -> None:
        self._items: list[tuple[str, str]] = []
        if headers is not None:
            self.put_all(headers)

    @staticmethod
    def _key(name: str) -> str:
        return name.lower()

    def __getitem__(self, name: str) -> str:
        key = self._key(name)
        for item_name, value in self._items:
            if self._key(item_name) == key:
                return value
        raise KeyError(name)

    def __setitem__(self, name: str, value: str | None) -> None:
        if value is None:
            self.pop(name, None)
            return
        key = self._key(name)
        position = None
        kept: list[tuple[str, str]] = []
        for item_name, item_value in self._items:
            if self._key(item_name) == key:
                if position is None:
                    position = len(kept)
                    name = item_name
                continue
            kept.append((item_name, item_value))
        if position is None:
            kept.append((name, str(value)))
        else:
            kept.insert(position, (name, str(value)))
        self._items = kept

    def __delitem__(self, name: str) -> None:
        key = self._key(name)
        kept = [(n, v) for n, v in self._items if self._key(n) != key]
        if len(kept) == len(self._items):
            raise KeyError(name)
        self._items = kept

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._items:
            key = self._key(name)
            if key not in seen:
                seen.add(key)
                yield name

    def __len__(self) -> int:
        return len({self._key(name) for name, _ in self._items})

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        key = self._key(name)
        return any(self._key(n) == key for n, _ in self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HeaderSet):
            return self._normalized() == other._normalized()
        if isinstance(other, Mapping):
            return self._normalized() == HeaderSet(other)._normalized()
        return NotImplemented

    def __repr__(self) -> str:
        return f"HeaderSet({self._items!r})"

    def _normalized(self) -> list[tuple[str, str]]:
        return [(self._key(n), v) for n, v in self._items]

    def add(self, name: str, value: str) -> None:
        """Append a value without replacing existing values of the key."""
        self._items.append((name, str(value)))

    def get_all(self, name: str) -> list[str]:
        key = self._key(name)
        return [v for n, v in self._items if self._key(n) == key]

    def multi_items(self) -> list[tuple[str, str]]:
        return list(self._items)

    def put_all(self, headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> None:
        """Replace each key present in ``headers``; multi-valued input keeps all its values."""
        if isinstance(headers, HeaderSet):
            pairs = headers.multi_items()
        elif isinstance(headers, Mapping):
            pairs = list(headers.items())
        else:
            pairs = list(headers)
        replaced: set[str] = set()
        for name, value in pairs:
            key = self._key(name)
            if key not in replaced:
                self[name] = value
                replaced.add(key)
            elif value is not None:
                self.add(name, value)

    def copy(self) -> "HeaderSet":
        clone = HeaderSet()
        clone._items = list(self._items)
        return clone

    @property
    def content_type(self) -> str | None:
        return self.get(HEADER.CONTENT_TYPE)

    @content_type.setter
    def content_type(self, value: str | None) -> None:
        self[HEADER.CONTENT_TYPE] = value

    @property
    def content_length(self) -> int | None:
        value = self.get(HEADER.CONTENT_LENGTH)
        return int(value) if value is not None else None

    @content_length.setter
    def content_length(self, value: int | None) -> None:
        self[HEADER.CONTENT_LENGTH] = None if value is None else str(value)

    @property
    def content_encoding(self) -> str | None:
        return self.get(HEADER.CONTENT_ENCODING)

    @content_encoding.setter
    def content_encoding(self, value: str | None) -> None:
        self[HEADER.CONTENT_ENCODING] = value

    @property
    def content_range(self) -> str | None:
        return self.get(HEADER.CONTENT_RANGE)

    @content_range.setter
    def content_range(self, value: str | None) -> None:
        self[HEADER.CONTENT_RANGE] = value

    @property
    def user_agent(self) -> str | None:
        return self.get(HEADER.USER_AGENT)

    @user_agent.setter
    def user_agent(self, value: str | None) -> None:
        self[HEADER.USER_AGENT] = value

    @property
    def location(self) -> str | None:
        return self.get(HEADER.LOCATION)

    @property
    def range(self) -> str | None:
        return self.get(HEADER.RANGE)

    @range.setter
    def range(self, value: str | None) -> None:
        self[HEADER.RANGE] = value
