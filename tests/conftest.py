"""
Shared fixtures: fakeredis-backed stores, a scripted generator and a
deferred drain scheduler so queue behaviour is deterministic.
"""

import fakeredis
import pytest
from doubles import DeferredScheduler, FakeGenerator, FakeValidator

from gemini_formula.repositories import RedisExpiringCache, RedisStateStore
from gemini_formula.services import GeminiService


@pytest.fixture
def redis_client():
    """In-memory Redis with string responses, isolated per test."""
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def cache_store(redis_client):
    return RedisExpiringCache(redis_client=redis_client, prefix="test:")


@pytest.fixture
def state_store(redis_client):
    return RedisStateStore(redis_client=redis_client)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def validator():
    return FakeValidator()


@pytest.fixture
def scheduler():
    return DeferredScheduler()


@pytest.fixture
def sleeps():
    """Records every blocking sleep instead of sleeping."""
    return []


@pytest.fixture
def make_service(generator, validator, state_store, cache_store, scheduler, sleeps):
    """Build GeminiService instances sharing the same fake Redis."""

    def _make(**overrides) -> GeminiService:
        options = {
            "generator": generator,
            "validator": validator,
            "state_store": state_store,
            "cache_store": cache_store,
            "scheduler": scheduler,
            "sleep": sleeps.append,
        }
        options.update(overrides)
        return GeminiService.create(**options)

    return _make


@pytest.fixture
def service(make_service):
    return make_service()
