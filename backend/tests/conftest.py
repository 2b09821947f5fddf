"""Shared fixtures: a controllable clock, both store backends, and an API client."""
import pytest
from fastapi.testclient import TestClient

from retainly import create_app
from retainly.db import MemoryCardStore, SqliteCardStore
from retainly.deps import get_clock

T0 = 1_700_000_000_000  # fixed epoch ms used as "now" throughout the tests


class FixedClock:
    def __init__(self, now: int = T0) -> None:
        self.now = now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now

    def __call__(self) -> int:
        return self.now


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture(params=["memory", "sqlite"])
def make_store(request, tmp_path, clock):
    """Factory for an unopened store; use it as `async with make_store() as store`."""

    def factory():
        if request.param == "memory":
            return MemoryCardStore(clock=clock)
        return SqliteCardStore(tmp_path / "cards.db", clock=clock)

    return factory


@pytest.fixture()
def client(clock):
    app = create_app(store=MemoryCardStore(clock=clock))
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
