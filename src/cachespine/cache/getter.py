"""Getter over the raw values fetched by ``get_multi``."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from cachespine.core.codec import JsonCodec
from cachespine.core.errors import CacheMissError


class ItemMapGetter:
    """
    Immutable key → raw value snapshot with lazy, per-key decoding.

    Holds no connection, so it can be handed to other components after the
    fetch. A decode failure on one key does not affect the others.
    """

    def __init__(
        self,
        items: Mapping[str, bytes | str | None],
        codec: JsonCodec | None = None,
    ) -> None:
        self._items = MappingProxyType(dict(items))
        self._codec = codec or JsonCodec()

    def get(self, key: str, target: Any = None) -> Any:
        """Decode the value fetched for ``key``.

        Raises:
            CacheMissError: ``key`` was not requested or had no value.
            CodecError: The value does not decode into ``target``.
        """
        raw = self._items.get(key)
        if raw is None:
            raise CacheMissError(f"Cache miss: {key!r}").with_context(key=key, operation="get_multi")
        return self._codec.decode(raw, target)

    def __contains__(self, key: object) -> bool:
        return self._items.get(key) is not None  # type: ignore[call-overload]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"ItemMapGetter(keys={list(self._items)!r})"
