from __future__ import annotations

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from backend.scoring.errors import StorageError
from backend.scoring.models import ScoreRecord
from backend.scoring.result_store import InMemoryResultStore, SqlResultStore


def _record(restaurant_id: str = "r1", compare_fun: float = 0.9, computed_at: float = 5.0) -> ScoreRecord:
    return ScoreRecord(
        restaurant_id=restaurant_id,
        compare_fun=compare_fun,
        ai_comment="Najesz się niewielkim kosztem",
        computed_at=computed_at,
    )


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        yield InMemoryResultStore()
    else:
        sql_store = SqlResultStore("sqlite://")
        yield sql_store
        sql_store.dispose()


def test_get_missing_returns_none(store):
    assert store.get("nope") is None


def test_put_then_get(store):
    store.put(_record())
    assert store.get("r1") == _record()


def test_put_replaces_previous_record(store):
    store.put(_record(compare_fun=0.4, computed_at=1.0))
    store.put(_record(compare_fun=0.9, computed_at=700.0))

    stored = store.get("r1")
    assert stored.compare_fun == 0.9
    assert stored.computed_at == 700.0
    assert store.stats()["records"] == 1


def test_delete(store):
    store.put(_record())
    assert store.delete("r1") is True
    assert store.delete("r1") is False
    assert store.get("r1") is None


def test_sql_store_persists_across_instances(tmp_path):
    url = f"sqlite:///{tmp_path / 'scores.db'}"
    first = SqlResultStore(url)
    first.put(_record("golden-plate", compare_fun=0.2))
    first.dispose()

    second = SqlResultStore(url)
    assert second.get("golden-plate").compare_fun == 0.2
    second.dispose()


def test_sql_store_wraps_backend_errors():
    store = SqlResultStore("sqlite://")
    failure = OperationalError("SELECT", {}, Exception("database is locked"))
    with patch.object(store, "_session_factory", side_effect=failure):
        with pytest.raises(StorageError):
            store.get("r1")
    store.dispose()
