"""Immutable, case-insensitive request headers.

Implements ``Mapping[str, str]`` and the ``MultiValueMapping`` protocol.
Stores raw byte pairs (the ASGI shape); decodes on access. Hosts that
hold headers as ``{name: [values]}`` use ``Headers.from_mapping``.
"""

from collections.abc import Iterable, Iterator, Mapping


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns all values for a header in arrival order
    (e.g. several ``If-None-Match`` lines).
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        object.__setattr__(self, "_raw", raw)

    @classmethod
    def from_mapping(cls, headers: Mapping[str, str | Iterable[str]] | None) -> Headers:
        """Build headers from ``{name: value}`` or ``{name: [values]}``.

        A plain string is one value; any other iterable contributes one
        pair per item, preserving order. Characters outside latin-1 become
        ``?``, as they could never arrive on the wire.
        """
        pairs: list[tuple[bytes, bytes]] = []
        for name, values in (headers or {}).items():
            if isinstance(values, str):
                values = (values,)
            key = name.encode("latin-1", "replace")
            pairs.extend((key, value.encode("latin-1", "replace")) for value in values)
        return cls(tuple(pairs))

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
        items = ", ".join(f"{k!r}: {self.get_list(k)!r}" for k in self)
        return f"Headers({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*, in the order they arrived."""
        key_lower = key.lower().encode("latin-1")
        return [value.decode("latin-1") for name, value in self._raw if name.lower() == key_lower]

    @property
    def raw(self) -> tuple[tuple[bytes, bytes], ...]:
        """Access raw header byte pairs for ASGI compatibility."""
        return self._raw
