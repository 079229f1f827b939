from __future__ import annotations

import argparse
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BACKEND_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from pokescan.services.image_ops import decode_screenshot  # noqa: E402
from pokescan.services.ocr_engine import (  # noqa: E402
    OcrDependencyError,
    OcrEngineUnavailableError,
)
from pokescan.services.sample_manifest import (  # noqa: E402
    DEFAULT_ASSETS_DIR,
    DEFAULT_MANIFEST,
    load_manifest,
    score_sample,
)
from pokescan.services.scanner import PokemonScanner  # noqa: E402
from pokescan.services.settings import MemorySettings  # noqa: E402
from pokescan.services.text_fixes import is_candy_word_first  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute per-field scan hit rates for a screenshot dataset.")
    parser.add_argument("--manifest", type=Path, default=DEFAULT_MANIFEST)
    parser.add_argument("--assets-dir", type=Path, default=DEFAULT_ASSETS_DIR)
    parser.add_argument("--tessdata", default=None, help="tessdata directory")
    parser.add_argument("--language", default="en")
    parser.add_argument("--min-ratio", type=float, default=0.75, help="minimum share of correct fields per image")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    manifest_path = args.manifest.resolve()
    assets_dir = args.assets_dir.resolve()

    if not manifest_path.exists():
        raise FileNotFoundError(f"manifest not found: {manifest_path}")

    samples = load_manifest(manifest_path)
    if not samples:
        raise RuntimeError("no samples found in manifest")

    ok_images = 0
    total_images = 0
    field_hits: dict[str, int] = {}
    field_totals: dict[str, int] = {}

    for sample in samples:
        image_path = assets_dir / sample.file
        if not image_path.exists():
            print(f"[SKIP] missing file: {image_path}")
            continue

        total_images += 1
        screenshot = decode_screenshot(image_path.read_bytes())
        height, width = screenshot.shape[:2]
        try:
            with PokemonScanner(
                args.tessdata,
                width,
                height,
                "Nidoran♀",
                "Nidoran♂",
                MemorySettings(candy_scan_enabled="candyAmount" in sample.expected),
                candy_word_first=is_candy_word_first(args.language),
            ) as scanner:
                result = scanner.scan(screenshot, sample.trainer_level, sample.extended_layout)
        except (OcrDependencyError, OcrEngineUnavailableError) as exc:
            print(f"[ERROR] OCR backend unavailable: {exc}")
            return

        hits = score_sample(sample, result)
        for field, hit in hits.items():
            field_totals[field] = field_totals.get(field, 0) + 1
            field_hits[field] = field_hits.get(field, 0) + int(hit)

        ratio = (sum(hits.values()) / len(hits)) if hits else 0.0
        image_ok = ratio >= args.min_ratio
        if image_ok:
            ok_images += 1
        misses = [field for field, hit in hits.items() if not hit]
        print(f"[{ 'PASS' if image_ok else 'FAIL' }] {sample.file} ratio={ratio:.2f} misses={misses}")

    image_rate = (ok_images / total_images) if total_images else 0.0
    print("\n=== Scan Success Stats ===")
    print(f"images_passed: {ok_images}/{total_images} ({image_rate:.2%})")
    for field in sorted(field_totals):
        total = field_totals[field]
        print(f"{field}: {field_hits[field]}/{total} ({field_hits[field] / total:.2%})")


if __name__ == "__main__":
    main()
