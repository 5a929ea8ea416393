"""
Value codec shared by every backend.

Both backends store the bytes produced here, so a value read back from the
in-memory cache has exactly the shape it would have coming out of Redis
(tuples come back as lists, dataclasses as dicts, unless a ``target`` says
otherwise).

Example::

    codec = JsonCodec()
    data = codec.encode({"name": "Alice", "tags": ("a", "b")})
    codec.decode(data)                 # {'name': 'Alice', 'tags': ['a', 'b']}
    codec.decode(data, target=User)    # User(name='Alice', tags=['a', 'b'])
"""

from __future__ import annotations

import dataclasses
import json
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import CodecError


def _default(value: Any) -> Any:
    """``json.dumps`` hook for dataclasses and pydantic models."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


@lru_cache(maxsize=256)
def _adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


class JsonCodec:
    """JSON encoder/decoder with optional typed decoding via pydantic."""

    name = "json"

    def encode(self, value: Any) -> bytes:
        """Serialize ``value``; raises ``CodecError`` if it is not serializable."""
        try:
            text = json.dumps(value, default=_default, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise CodecError(f"Cannot encode value of type {type(value).__name__}", cause=exc) from exc
        return text.encode("utf-8")

    def decode(self, data: bytes | str, target: Any = None) -> Any:
        """Deserialize ``data``, validating it into ``target`` when given.

        Raises:
            CodecError: If ``data`` is not valid JSON or does not fit ``target``.
        """
        try:
            value = json.loads(data)
        except (TypeError, ValueError) as exc:
            raise CodecError("Stored value is not valid JSON", cause=exc) from exc

        if target is None:
            return value

        try:
            adapter = _adapter(target)
        except TypeError:
            # Unhashable targets (e.g. some parametrized generics) skip the cache.
            adapter = TypeAdapter(target)
        try:
            return adapter.validate_python(value)
        except PydanticValidationError as exc:
            raise CodecError(
                f"Stored value does not match {getattr(target, '__name__', target)!s}",
                cause=exc,
            ) from exc
