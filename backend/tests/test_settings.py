from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from pokescan.services.settings import JsonFileSettings, MemorySettings  # type: ignore[import-not-found]


def test_json_settings_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    settings = JsonFileSettings(path, persist_enabled=True)
    settings.save_appraisal_cache({"appraisal0123": "great"})
    settings.set_candy_scan_enabled(True)

    reloaded = JsonFileSettings(path, persist_enabled=True)
    assert reloaded.load_appraisal_cache() == {"appraisal0123": "great"}
    assert reloaded.candy_scan_enabled is True

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["appraisalCache"] == {"appraisal0123": "great"}
    assert payload["candyScanEnabled"] is True


def test_json_settings_without_persistence_never_writes(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    settings = JsonFileSettings(path, persist_enabled=False)
    settings.save_appraisal_cache({"k": "v"})

    assert not path.exists()
    assert settings.load_appraisal_cache() == {"k": "v"}


def test_json_settings_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    settings = JsonFileSettings(path, persist_enabled=True)
    assert settings.load_appraisal_cache() == {}


def test_json_settings_drops_non_string_entries(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"appraisalCache": {"a": "text", "b": 3}}), encoding="utf-8")

    assert JsonFileSettings(path, persist_enabled=True).load_appraisal_cache() == {"a": "text"}


def test_candy_scan_flag_falls_back_to_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("POKESCAN_CANDY_SCAN_ENABLED", "true")
    settings = JsonFileSettings(tmp_path / "missing.json", persist_enabled=True)

    assert settings.candy_scan_enabled is True


def test_memory_settings_copies_snapshots() -> None:
    settings = MemorySettings()
    snapshot = {"a": "A"}
    settings.save_appraisal_cache(snapshot)
    snapshot["b"] = "B"

    assert settings.load_appraisal_cache() == {"a": "A"}
    assert settings.candy_scan_enabled is False


def test_json_settings_concurrent_saves_keep_newest_payload(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    settings = JsonFileSettings(path, persist_enabled=True)

    threads = [
        threading.Thread(target=settings.save_appraisal_cache, args=({f"k{idx}": str(idx)},))
        for idx in range(16)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    on_disk = json.loads(path.read_text(encoding="utf-8"))["appraisalCache"]
    assert on_disk == settings.load_appraisal_cache()
    assert not path.with_suffix(".tmp").exists()
