"""Labelled screenshot samples used by the regression test and the stats tool.

Manifest format::

    {"samples": [{"file": "weedle.png", "trainerLevel": 30, "extendedLayout": false,
                  "expected": {"name": "Weedle", "cp": 10, "hp": 40, "level": 4.5}}]}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from .scanner import ScanResult

DEFAULT_ASSETS_DIR = Path(__file__).resolve().parents[3] / "tests" / "assets" / "scan_samples"
DEFAULT_MANIFEST = DEFAULT_ASSETS_DIR / "manifest.json"


@dataclass
class ScanSample:
    file: str
    trainer_level: int
    extended_layout: bool = False
    expected: dict[str, object] = field(default_factory=dict)


def load_manifest(path: Path) -> list[ScanSample]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    raw_samples = payload.get("samples") if isinstance(payload, dict) else None
    if not isinstance(raw_samples, list):
        return []

    samples: list[ScanSample] = []
    for item in raw_samples:
        if not isinstance(item, dict):
            continue
        rel = item.get("file")
        expected = item.get("expected")
        if not isinstance(rel, str) or not rel.strip() or not isinstance(expected, dict):
            continue
        try:
            trainer_level = int(item.get("trainerLevel", 30))
        except (TypeError, ValueError):
            continue
        samples.append(
            ScanSample(
                file=rel.strip(),
                trainer_level=trainer_level,
                extended_layout=bool(item.get("extendedLayout", False)),
                expected=expected,
            )
        )
    return samples


def score_sample(sample: ScanSample, result: ScanResult) -> dict[str, bool]:
    """Per expected field, whether the scan got it right (case-insensitive for text)."""
    got = result.to_dict()
    hits: dict[str, bool] = {}
    for key, expected in sample.expected.items():
        if key not in got:
            continue
        actual = got[key]
        if isinstance(expected, str) and isinstance(actual, str):
            hits[key] = expected.strip().lower() == actual.strip().lower()
        else:
            hits[key] = expected == actual
    return hits
