from __future__ import annotations

import json
import os
from pathlib import Path
from threading import Lock

from rapidfuzz import fuzz, process

DEFAULT_SPECIES_PATH = Path(__file__).resolve().parents[3] / "static" / "species.json"
MATCH_THRESHOLD = 72.0

_cache_lock = Lock()
_species_cache: dict[str, tuple[float, list[str]]] = {}


def species_path() -> Path:
    return Path(os.getenv("POKESCAN_SPECIES_PATH", "") or DEFAULT_SPECIES_PATH)


def load_species_names(path: Path | None = None) -> list[str]:
    """Species names from a JSON list (or ``{"species": [...]}``), reloaded on change."""
    path = path or species_path()
    cache_key = str(path)
    mtime = path.stat().st_mtime if path.exists() else -1.0

    with _cache_lock:
        cached = _species_cache.get(cache_key)
        if cached is not None and cached[0] == mtime:
            return cached[1]

    names: list[str] = []
    if path.exists():
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except Exception:
            loaded = []
        if isinstance(loaded, dict):
            loaded = loaded.get("species", [])
        if isinstance(loaded, list):
            names = [str(item).strip() for item in loaded if str(item or "").strip()]

    with _cache_lock:
        _species_cache[cache_key] = (mtime, names)
    return names


def resolve_species_names(
    *,
    names: list[str],
    species: list[str],
    threshold: float = MATCH_THRESHOLD,
) -> list[dict[str, object]]:
    """Match OCR'd names against the known species list.

    Names scoring below ``threshold`` keep the OCR text and are flagged low confidence.
    """
    resolved: list[dict[str, object]] = []
    for raw in names:
        text = str(raw or "").strip()
        if not text:
            continue

        match = process.extractOne(text, species, scorer=fuzz.WRatio) if species else None
        if match is None:
            resolved.append(
                {"name": text, "species": text, "confidence": 0.0, "low_confidence": True}
            )
            continue

        best, score, _ = match
        resolved.append(
            {
                "name": text,
                "species": str(best) if score >= threshold else text,
                "confidence": round(float(score) / 100.0, 4),
                "low_confidence": score < threshold,
            }
        )
    return resolved
