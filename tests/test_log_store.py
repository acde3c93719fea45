"""Tests for the JSONL event log."""

import json

from runtime.store.log_store import LogStore


def test_appends_json_lines(tmp_path):
    store = LogStore(data_dir=str(tmp_path))

    store.log_event("turn_planned", {"key": "g:c:u", "action": "chat"})
    store.log_event("event_created", {"key": "g:c:u", "name": "Hangout"})

    files = list((tmp_path / "logs").glob("events_*.jsonl"))
    assert len(files) == 1

    records = [json.loads(line) for line in files[0].read_text(encoding="utf-8").splitlines()]
    assert [r["event_type"] for r in records] == ["turn_planned", "event_created"]
    assert records[1]["payload"] == {"key": "g:c:u", "name": "Hangout"}
    assert "timestamp" in records[0]
