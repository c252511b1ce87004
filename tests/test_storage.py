import json
from datetime import date

from alarms.rules import Custom, Daily, MonToSat, Once, Shift, Workdays
from alarms.storage import Alarm, load_alarms, load_settings, save_alarms, save_settings


def _sample_alarms():
    return [
        Alarm(id="al_once", hour=7, minute=30, label="Wake up", repeat=Once()),
        Alarm(id="al_daily", hour=22, minute=0, label="Sleep", repeat=Daily(), last_triggered_date=date(2025, 1, 5)),
        Alarm(id="al_work", hour=6, minute=45, label="Train", enabled=False, repeat=Workdays()),
        Alarm(id="al_sat", hour=8, minute=0, label="Shop", repeat=MonToSat()),
        Alarm(id="al_weekend", hour=10, minute=15, label="Run", repeat=Custom(frozenset({0, 6}))),
        Alarm(
            id="al_shift",
            hour=5,
            minute=0,
            label="Shift",
            repeat=Shift(start_date=date(2025, 1, 6), work_days=4, rest_days=2),
        ),
    ]


def test_store_roundtrip_preserves_order_and_fields(tmp_path):
    path = tmp_path / "nested" / "alarms.json"
    alarms = _sample_alarms()
    save_alarms(path, alarms)
    assert load_alarms(path) == alarms


def test_missing_file_loads_empty(tmp_path):
    assert load_alarms(tmp_path / "nope.json") == []


def test_corrupted_file_loads_empty(tmp_path):
    path = tmp_path / "alarms.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_alarms(path) == []


def test_bad_items_and_duplicate_ids_are_skipped(tmp_path):
    path = tmp_path / "alarms.json"
    payload = [
        {"id": "a", "hour": 7, "minute": 0, "repeat": {"type": "daily"}},
        {"id": "b", "hour": 25, "minute": 0},
        {"id": "c", "hour": 7, "minute": 0, "repeat": {"type": "shift"}},
        {"hour": 7, "minute": 0},
        {"id": "a", "hour": 9, "minute": 0},
        {"id": "d", "hour": 8, "minute": 5},
    ]
    path.write_text(json.dumps(payload), encoding="utf-8")
    alarms = load_alarms(path)
    assert [a.id for a in alarms] == ["a", "d"]
    assert alarms[0].repeat == Daily()
    assert alarms[1].repeat == Once()


def test_settings_roundtrip(tmp_path):
    path = tmp_path / "settings.json"
    assert load_settings(path) == {}
    save_settings(path, {"notification_style": "alternate"})
    assert load_settings(path) == {"notification_style": "alternate"}


def test_non_list_payload_loads_empty(tmp_path):
    path = tmp_path / "alarms.json"
    for raw in ("5", "true", '{"id": "a"}', "null"):
        path.write_text(raw, encoding="utf-8")
        assert load_alarms(path) == []
