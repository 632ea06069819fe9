"""Case-insensitive HTTP headers.

``Headers`` is the immutable inbound view over the raw ASGI byte pairs.
``MutableHeaders`` backs the outbound response, where ``set()`` replaces
any existing value the way a server's ``setHeader`` does.
"""

from collections.abc import Iterator, Mapping


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive request headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns every value sent under a name.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", raw)

    def __getitem__(self, key: str) -> str:
        key_lower = key.lower().encode("latin-1")
        for name, value in self._raw:
            if name.lower() == key_lower:
                return value.decode("latin-1")
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key_lower = key.lower().encode("latin-1")
        return any(name.lower() == key_lower for name, _ in self._raw)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._raw:
            key = name.decode("latin-1").lower()
            if key not in seen:
                seen.add(key)
                yield key

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        key_lower = key.lower().encode("latin-1")
        return [value.decode("latin-1") for name, value in self._raw if name.lower() == key_lower]


class MutableHeaders:
    """Outbound response headers, one value per case-insensitive name.

    Insertion order is preserved; replacing a header keeps its position.
    """

    __slots__ = ("_items",)

    def __init__(self) -> None:
        # lowercased name -> (name as given, value)
        self._items: dict[str, tuple[str, str]] = {}

    def set(self, name: str, value: str) -> None:
        """Set *name* to *value*.

        Raises:
            ValueError: If either part cannot go on the wire as latin-1
                or contains a line break.
        """
        for part in (name, value):
            try:
                part.encode("latin-1")
            except UnicodeEncodeError as exc:
                msg = f"Header {name!r} is not latin-1 encodable: {part!r}"
                raise ValueError(msg) from exc
            if "\r" in part or "\n" in part:
                msg = f"Header {name!r} contains a line break"
                raise ValueError(msg)
        self._items[name.lower()] = (name, value)

    def get(self, name: str, default: str | None = None) -> str | None:
        item = self._items.get(name.lower())
        return item[1] if item is not None else default

    def remove(self, name: str) -> None:
        self._items.pop(name.lower(), None)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"MutableHeaders({list(self)!r})"

    def raw(self) -> list[tuple[bytes, bytes]]:
        """Encode as ASGI header pairs with lowercased names."""
        return [
            (key.encode("latin-1"), value.encode("latin-1"))
            for key, (_, value) in self._items.items()
        ]
