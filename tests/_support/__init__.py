"""
Test support utilities for cachespine tests.

Helpers that are not fixtures themselves but are shared across test
modules (see ``conftest.py`` for the fixtures built on them).
"""

from __future__ import annotations

from .fake_redis import FakePipeline, FakeRedis

__all__ = ["FakeRedis", "FakePipeline"]
