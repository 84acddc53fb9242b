import json
import os
from datetime import datetime, timezone

import pytest

from app.errors import InvalidFilename, PayloadAbsent
from app.storage.payload_store import (
    build_filename,
    classify_filename,
    timestamp_from_filename,
)

RECEIVED = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


def test_build_filename_is_filesystem_safe():
    name = build_filename("order-created", RECEIVED)
    assert name == "order_created_2024-01-02T03-04-05-678Z.json"
    assert ":" not in name and name.count(".") == 1


def test_timestamp_and_type_from_filename():
    name = build_filename("order-updated", RECEIVED)
    assert timestamp_from_filename(name) == "2024-01-02T03:04:05.678Z"
    assert classify_filename(name) == "order-updated"
    assert classify_filename("order_created_x.json") == "order-created"
    assert timestamp_from_filename("notes.json") == "Unknown"


def test_store_pretty_prints_json(payload_store):
    body = b'{"number":"1001","total":"5.00"}'
    name = payload_store.store("order-created", RECEIVED, body)

    text = (payload_store.base_dir / name).read_text(encoding="utf-8")
    assert text == json.dumps({"number": "1001", "total": "5.00"}, indent=2)


def test_store_wraps_non_json(payload_store):
    name = payload_store.store("order-updated", RECEIVED, b"webhook_id=42")
    content, is_json = payload_store.read(name)
    assert is_json
    assert content == {"rawContent": "webhook_id=42"}


@pytest.mark.parametrize("body", [b"", b"   ", None])
def test_store_rejects_empty_body(payload_store, body):
    with pytest.raises(PayloadAbsent):
        payload_store.store("order-created", RECEIVED, body)
    assert list(payload_store.base_dir.iterdir()) == []


def test_store_then_read_round_trip(payload_store):
    value = {"number": "7", "line_items": [{"name": "Tea", "quantity": 3}], "meta": None}
    name = payload_store.store("order-created", RECEIVED, json.dumps(value).encode())
    content, is_json = payload_store.read(name)
    assert is_json and content == value


def test_store_leaves_no_temp_files(payload_store):
    payload_store.store("order-created", RECEIVED, b"{}")
    assert [p.name for p in payload_store.base_dir.iterdir() if p.name.startswith(".tmp_")] == []


def test_read_non_json_file_returns_text(payload_store):
    (payload_store.base_dir / "broken.json").write_text("{not json", encoding="utf-8")
    content, is_json = payload_store.read("broken.json")
    assert not is_json
    assert content == "{not json"


def test_read_missing_file(payload_store):
    with pytest.raises(FileNotFoundError):
        payload_store.read("order_created_nope.json")


@pytest.mark.parametrize("name", [
    "../secret.json",
    "..\\secret.json",
    "../../etc/passwd",
    "sub/file.json",
    "/etc/passwd",
    "..",
    "",
])
def test_read_rejects_traversal(payload_store, name):
    with pytest.raises(InvalidFilename):
        payload_store.read(name)


def test_list_payloads_sorted_newest_first(payload_store):
    older = payload_store.store("order-created", RECEIVED, b'{"a": 1}')
    newer = payload_store.store(
        "order-updated", RECEIVED.replace(second=9), b'{"a": 2}',
    )
    os.utime(payload_store.base_dir / older, (1_000_000, 1_000_000))
    os.utime(payload_store.base_dir / newer, (2_000_000, 2_000_000))
    (payload_store.base_dir / "readme.txt").write_text("ignored")

    rows = payload_store.list_payloads()
    assert [r.filename for r in rows] == [newer, older]
    assert rows[0].event_type == "order-updated"
    assert rows[0].label == "Order Updated"
    assert rows[1].timestamp == "2024-01-02T03:04:05.678Z"
    assert rows[1].size_kb.endswith(" KB")
    assert rows[0].as_dict()["type"] == "order-updated"
