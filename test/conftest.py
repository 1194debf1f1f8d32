import random

import pytest

from api import state
from dayshift.models import BlockKind, Flexibility, ScheduleBlock
from learning.duration_store import DurationLearningStore
from storage.learn_stats_store import InMemoryLearnStatsStore


def hhmm(s: str) -> int:
    h, m = map(int, s.split(":"))
    return h * 60 + m


@pytest.fixture
def make_block():
    def _make(id: str, start: str, end: str, **kwargs) -> ScheduleBlock:
        s, e = hhmm(start), hhmm(end)
        return ScheduleBlock(
            id=id,
            title=kwargs.pop("title", id.upper()),
            start_minute=s,
            duration_minutes=e - s,
            **kwargs,
        )
    return _make


def random_day(rng: random.Random, n: int):
    kinds = list(BlockKind)
    flex = list(Flexibility)
    return [
        ScheduleBlock(
            id=f"b{i}",
            title=f"block {i}",
            kind=rng.choice(kinds),
            flexibility=rng.choice(flex),
            start_minute=rng.randrange(0, 1200, 5),
            duration_minutes=rng.randint(1, 180),
            buffer_before_minutes=rng.choice([0, 0, 5, 15]),
            buffer_after_minutes=rng.choice([0, 0, 5, 15]),
        )
        for i in range(n)
    ]


@pytest.fixture
def learn_persistence():
    return InMemoryLearnStatsStore()


@pytest.fixture
def api_client(monkeypatch, learn_persistence):
    from fastapi.testclient import TestClient
    import api.main as main_mod

    monkeypatch.setattr(state, "days", {})
    monkeypatch.setattr(state, "pre_shift_snapshots", {})
    monkeypatch.setattr(state, "learning_store", DurationLearningStore(learn_persistence))
    return TestClient(main_mod.app)
