"""Tests for ``cachespine.core.codec.JsonCodec``."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import pytest
from pydantic import BaseModel

from cachespine.core.codec import JsonCodec
from cachespine.core.errors import CodecError


@dataclass
class Foo:
    bar: str


class User(BaseModel):
    name: str
    tags: list[str] = []


@pytest.fixture
def codec():
    return JsonCodec()


class TestEncode:
    def test_compact_bytes(self, codec):
        assert codec.encode({"a": [1, 2]}) == b'{"a":[1,2]}'

    def test_dataclass(self, codec):
        assert codec.encode(Foo(bar="baz")) == b'{"bar":"baz"}'

    def test_pydantic_model(self, codec):
        assert codec.encode(User(name="ann", tags=["x"])) == b'{"name":"ann","tags":["x"]}'

    def test_unserializable(self, codec):
        with pytest.raises(CodecError) as exc_info:
            codec.encode(object())
        assert isinstance(exc_info.value.cause, TypeError)

    def test_datetime_is_rejected(self, codec):
        with pytest.raises(CodecError):
            codec.encode({"at": datetime(2024, 1, 1)})


class TestDecode:
    def test_untyped(self, codec):
        assert codec.decode(b'{"a":1}') == {"a": 1}

    def test_accepts_str(self, codec):
        assert codec.decode('"hi"') == "hi"

    def test_into_dataclass(self, codec):
        assert codec.decode(b'{"bar":"baz"}', Foo) == Foo(bar="baz")

    def test_into_model(self, codec):
        assert codec.decode(b'{"name":"ann"}', User) == User(name="ann")

    def test_into_generic(self, codec):
        assert codec.decode(b'["1","2"]', list[int]) == [1, 2]

    def test_into_scalar(self, codec):
        assert codec.decode(b"42", int) == 42

    def test_target_mismatch(self, codec):
        with pytest.raises(CodecError, match="int"):
            codec.decode(b'"abc"', int)

    def test_invalid_json(self, codec):
        with pytest.raises(CodecError):
            codec.decode(b"{not json")
