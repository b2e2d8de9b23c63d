from __future__ import annotations

import json
from datetime import datetime

import pytest

from api.storage import FileRecordStore
from assess_core.records import key_for_result, key_for_test, load_result, load_test, new_record_id, save_test
from tests.conftest import build_test_config


def test_round_trip_and_index(tmp_path):
    store = FileRecordStore(tmp_path)
    config = build_test_config("test_5_abc")
    save_test(store, config)
    assert (tmp_path / "records" / "test_test_5_abc.json").exists()
    loaded = load_test(store, "test_5_abc")
    assert loaded.to_dict() == config.to_dict()
    index = json.loads((tmp_path / "records_index.json").read_text(encoding="utf-8"))
    assert index[key_for_test("test_5_abc")]["kind"] == "test"
    assert datetime.fromisoformat(index[key_for_test("test_5_abc")]["savedAt"]).tzinfo is not None


def test_missing_and_bad_keys(tmp_path):
    store = FileRecordStore(tmp_path)
    assert store.load("result_nothing") is None
    assert store.load("../etc/passwd") is None
    assert load_result(store, "nothing") is None
    with pytest.raises(ValueError):
        store.save("bad key!", {})


def test_unreadable_record_is_absent(tmp_path):
    store = FileRecordStore(tmp_path)
    path = tmp_path / "records" / f"{key_for_result('eval_1_x')}.json"
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")
    assert load_result(store, "eval_1_x") is None


def test_list_records_filters_and_sorts(tmp_path):
    store = FileRecordStore(tmp_path)
    store.save("result_a", {}, {"kind": "result", "testId": "t1", "createdAt": "2026-01-01"})
    store.save("result_b", {}, {"kind": "result", "testId": "t1", "createdAt": "2026-03-01"})
    store.save("result_c", {}, {"kind": "result", "testId": "t2", "createdAt": "2026-02-01"})
    store.save("test_t1", {}, {"kind": "test", "testId": "t1", "createdAt": "2026-01-01"})
    keys = [r["key"] for r in store.list_records(kind="result", test_id="t1")]
    assert keys == ["result_b", "result_a"]
    assert store.delete("result_b")
    assert not store.delete("result_b")
    assert [r["key"] for r in store.list_records(kind="result")] == ["result_c", "result_a"]


def test_record_ids():
    a, b = new_record_id("test"), new_record_id("test")
    assert a != b
    prefix, ms, suffix = a.split("_")
    assert prefix == "test" and ms.isdigit() and len(suffix) == 9
