from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Mapping, Protocol

logger = logging.getLogger("pokescan.settings")

_TRUE_VALUES = {"1", "true", "yes", "on"}


class SettingsProvider(Protocol):
    """Persisted settings the scanner depends on."""

    @property
    def candy_scan_enabled(self) -> bool: ...

    def load_appraisal_cache(self) -> dict[str, str]: ...

    def save_appraisal_cache(self, snapshot: Mapping[str, str]) -> None: ...


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in _TRUE_VALUES


def _clean_mapping(raw: object) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    return {k: v for k, v in raw.items() if isinstance(k, str) and isinstance(v, str)}


class MemorySettings:
    def __init__(
        self,
        appraisal_cache: Mapping[str, str] | None = None,
        *,
        candy_scan_enabled: bool = False,
    ) -> None:
        self.appraisal_cache: dict[str, str] = dict(appraisal_cache or {})
        self.candy_scan_enabled = candy_scan_enabled
        self.save_count = 0

    def load_appraisal_cache(self) -> dict[str, str]:
        return dict(self.appraisal_cache)

    def save_appraisal_cache(self, snapshot: Mapping[str, str]) -> None:
        self.appraisal_cache = dict(snapshot)
        self.save_count += 1


class JsonFileSettings:
    """Settings stored in one JSON document on disk.

    Read/write problems are logged and otherwise ignored so a broken settings file
    never stops a scan.
    """

    def __init__(
        self,
        path: Path | str | None = None,
        *,
        persist_enabled: bool | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._path = Path(
            path
            or os.getenv(
                "POKESCAN_SETTINGS_PATH",
                Path(__file__).resolve().parents[3] / ".cache" / "settings.json",
            )
        )
        self._persist_enabled = (
            _env_flag("POKESCAN_SETTINGS_PERSIST", True)
            if persist_enabled is None
            else persist_enabled
        )
        self._payload = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def candy_scan_enabled(self) -> bool:
        stored = self._payload.get("candyScanEnabled")
        if isinstance(stored, bool):
            return stored
        return _env_flag("POKESCAN_CANDY_SCAN_ENABLED", False)

    def set_candy_scan_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._payload["candyScanEnabled"] = bool(enabled)
        self._save()

    def load_appraisal_cache(self) -> dict[str, str]:
        with self._lock:
            return _clean_mapping(self._payload.get("appraisalCache"))

    def save_appraisal_cache(self, snapshot: Mapping[str, str]) -> None:
        with self._lock:
            self._payload["appraisalCache"] = dict(snapshot)
        self._save()

    def _load(self) -> dict[str, object]:
        if not self._persist_enabled or not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except Exception as exc:  # noqa: BLE001
            logger.warning("failed to load settings: %s", exc)
            return {}
        if not isinstance(payload, dict):
            return {}
        logger.info("settings loaded: %s", self._path)
        return payload

    def _save(self) -> None:
        if not self._persist_enabled:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            # One writer at a time: the temp file is shared and the newest payload wins.
            with self._write_lock:
                with self._lock:
                    payload = dict(self._payload)
                temp_path = self._path.with_suffix(".tmp")
                temp_path.write_text(
                    json.dumps(payload, ensure_ascii=False),
                    encoding="utf-8",
                )
                temp_path.replace(self._path)
        except Exception as exc:  # noqa: BLE001
            logger.warning("failed to save settings: %s", exc)
