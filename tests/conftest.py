import os
import tempfile
from pathlib import Path

# Point the module-level ledger at a throwaway file before anything imports deps
os.environ.setdefault("DB_PATH", str(Path(tempfile.mkdtemp()) / "ledger.json"))

import pytest

from family_ledger.bot.dispatcher import Dispatcher
from family_ledger.cache.reference_cache import ReferenceCache
from family_ledger.db.repository import ExpenseRepository
from family_ledger.models.schemas import ExpenseSummary


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ReferenceCache(ttl_seconds=600, clock=clock)


@pytest.fixture
def repo(tmp_path):
    repository = ExpenseRepository(str(tmp_path / "ledger.json"))
    yield repository
    repository.close()


@pytest.fixture
def dispatcher(repo, cache):
    return Dispatcher(repo, cache)


@pytest.fixture
def make_summary():
    from datetime import datetime

    def _make(id: int, amount: int = 100, category: str = "lunch", note: str = ""):
        return ExpenseSummary(
            id=id,
            amount=amount,
            category=category,
            note=note,
            created_at=datetime(2024, 5, 15, 12, 0),
        )

    return _make
