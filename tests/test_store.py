from __future__ import annotations

import json
import threading

import pytest

from evidence_engine.config import EngineSettings
from evidence_engine.errors import StoreIOError
from evidence_engine.store import (
    InMemoryFingerprintRepository,
    JsonFileFingerprintRepository,
    SqlFingerprintRepository,
    build_repository,
)


def _fp(n: int) -> str:
    return format(n, "064b")


def test_in_memory_store_evicts_oldest_first():
    repo = InMemoryFingerprintRepository(limit=3)
    repo.append_bounded([_fp(1), _fp(2)])
    repo.append_bounded([_fp(3), _fp(4), _fp(5)])
    assert repo.read_all() == [_fp(3), _fp(4), _fp(5)]


def test_in_memory_store_trims_initial_contents():
    repo = InMemoryFingerprintRepository([_fp(i) for i in range(10)], limit=4)
    assert repo.read_all() == [_fp(i) for i in range(6, 10)]


def test_store_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        InMemoryFingerprintRepository(limit=0)


def test_concurrent_appends_never_exceed_bound_or_lose_writes():
    repo = InMemoryFingerprintRepository(limit=1000)

    def writer(offset: int):
        for i in range(50):
            repo.append_bounded([_fp(offset + i)])

    threads = [threading.Thread(target=writer, args=(t * 100,)) for t in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stored = repo.read_all()
    assert len(stored) == 400
    assert len(set(stored)) == 400


def test_json_store_missing_file_reads_empty(tmp_path):
    repo = JsonFileFingerprintRepository(tmp_path / "hashes.json")
    assert repo.read_all() == []


def test_json_store_persists_and_bounds(tmp_path):
    path = tmp_path / "nested" / "hashes.json"
    repo = JsonFileFingerprintRepository(path, limit=1000)
    for start in range(0, 1200, 100):
        repo.append_bounded([_fp(i) for i in range(start, start + 100)])

    stored = JsonFileFingerprintRepository(path).read_all()
    assert len(stored) == 1000
    assert stored[0] == _fp(200)
    assert stored[-1] == _fp(1199)
    assert isinstance(json.loads(path.read_text()), list)


def test_json_store_ignores_non_string_entries(tmp_path):
    path = tmp_path / "hashes.json"
    path.write_text(json.dumps([_fp(1), 42, None, "short"]))
    assert JsonFileFingerprintRepository(path).read_all() == [_fp(1), "short"]


def test_json_store_corrupt_file_raises_store_error(tmp_path):
    path = tmp_path / "hashes.json"
    path.write_text("{not json")
    with pytest.raises(StoreIOError):
        JsonFileFingerprintRepository(path).read_all()


def test_json_store_non_array_raises_store_error(tmp_path):
    path = tmp_path / "hashes.json"
    path.write_text(json.dumps({"hashes": []}))
    with pytest.raises(StoreIOError):
        JsonFileFingerprintRepository(path).read_all()


def test_json_store_unwritable_location_raises_store_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    repo = JsonFileFingerprintRepository(blocker / "hashes.json")
    with pytest.raises(StoreIOError):
        repo.append_bounded([_fp(1)])


def test_sql_store_keeps_newest_rows_in_order(tmp_path):
    repo = SqlFingerprintRepository(f"sqlite:///{tmp_path / 'hashes.db'}", limit=5)
    assert repo.read_all() == []
    repo.append_bounded([_fp(i) for i in range(4)])
    repo.append_bounded([_fp(i) for i in range(4, 8)])
    assert repo.read_all() == [_fp(i) for i in range(3, 8)]


def test_empty_append_is_a_no_op(tmp_path):
    path = tmp_path / "hashes.json"
    JsonFileFingerprintRepository(path).append_bounded([])
    assert not path.exists()


def test_build_repository_selects_backend(tmp_path):
    json_repo = build_repository(
        EngineSettings(verify_store_backend="json", verify_store_path=str(tmp_path / "h.json"), verify_store_limit=7)
    )
    assert isinstance(json_repo, JsonFileFingerprintRepository)
    assert json_repo.limit == 7
    assert isinstance(build_repository(EngineSettings(verify_store_backend="memory")), InMemoryFingerprintRepository)
    assert isinstance(
        build_repository(
            EngineSettings(verify_store_backend="sql", verify_store_database_url=f"sqlite:///{tmp_path / 'h.db'}")
        ),
        SqlFingerprintRepository,
    )
    with pytest.raises(ValueError):
        build_repository(EngineSettings(verify_store_backend="redis"))


def test_sql_store_trims_exactly_at_the_bound(tmp_path):
    repo = SqlFingerprintRepository(f"sqlite:///{tmp_path / 'hashes.db'}", limit=3)
    repo.append_bounded([_fp(i) for i in range(3)])
    assert repo.read_all() == [_fp(0), _fp(1), _fp(2)]
    repo.append_bounded([_fp(3)])
    assert repo.read_all() == [_fp(1), _fp(2), _fp(3)]
