import json

from claude_usage import store as store_module
from claude_usage.config import ALERT_THRESHOLDS, POLL_INTERVAL, Settings
from claude_usage.store import JsonFileStore, MemoryStore


def test_memory_store_get_set_delete():
    store = MemoryStore()
    assert store.get('a') is None

    store.set('a', '1')
    assert store.get('a') == '1'

    store.delete('a')
    store.delete('missing')
    assert store.get('a') is None


def test_json_file_store_persists(tmp_path):
    path = tmp_path / 'nested' / 'state.json'
    store = JsonFileStore(path)
    store.set('history', '[[1, 2]]')
    store.set('cycle_marker', '2025-01-01T00:00:00Z')
    store.delete('cycle_marker')

    reopened = JsonFileStore(path)
    assert reopened.get('history') == '[[1, 2]]'
    assert reopened.get('cycle_marker') is None
    assert json.loads(path.read_text()) == {'history': '[[1, 2]]'}


def test_json_file_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / 'state.json'
    path.write_text('{not json')
    assert JsonFileStore(path).get('history') is None

    path.write_text('["a list"]')
    assert JsonFileStore(path).get('history') is None

    path.write_text('{"history": 12, "settings": "{}"}')
    store = JsonFileStore(path)
    assert store.get('history') is None
    assert store.get('settings') == '{}'


def test_json_file_store_survives_write_failure(tmp_path):
    blocker = tmp_path / 'file'
    blocker.write_text('')
    store = JsonFileStore(blocker / 'state.json')

    store.set('a', '1')
    assert store.get('a') == '1'


def test_json_file_store_removes_temp_file_when_replace_fails(tmp_path, monkeypatch):
    def fail(src, dst):
        raise OSError('disk full')

    monkeypatch.setattr(store_module.os, 'replace', fail)
    store = JsonFileStore(tmp_path / 'state.json')
    store.set('a', '1')

    assert store.get('a') == '1'
    assert list(tmp_path.iterdir()) == []


def test_settings_defaults():
    settings = Settings.from_json(None)

    assert settings.base_interval == POLL_INTERVAL
    assert settings.adaptive_enabled
    assert settings.alert_thresholds == ALERT_THRESHOLDS
    assert settings.threshold_alerts and settings.reset_alerts and settings.show_status_icon


def test_settings_round_trip():
    settings = Settings(base_interval=60, adaptive_enabled=False, alert_thresholds=[50, 75])
    assert Settings.from_json(settings.to_json()) == settings


def test_settings_fall_back_field_by_field():
    raw = json.dumps({
        'base_interval': -5,
        'adaptive_enabled': 'yes',
        'alert_thresholds': [90, 70, 90],
        'reset_alerts': False,
    })
    settings = Settings.from_json(raw)

    assert settings.base_interval == POLL_INTERVAL
    assert settings.adaptive_enabled is True
    assert settings.alert_thresholds == [70, 90]
    assert settings.reset_alerts is False


def test_settings_corrupt_json():
    assert Settings.from_json('{oops') == Settings()
    assert Settings.from_json('[1]') == Settings()
    assert Settings.from_json('{"alert_thresholds": [0, 101]}').alert_thresholds == ALERT_THRESHOLDS
