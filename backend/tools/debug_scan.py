from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BACKEND_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from pokescan.services.image_ops import decode_screenshot  # noqa: E402
from pokescan.services.ocr_engine import OcrDependencyError, OcrError  # noqa: E402
from pokescan.services.scanner import PokemonScanner  # noqa: E402
from pokescan.services.settings import MemorySettings  # noqa: E402
from pokescan.services.text_fixes import is_candy_word_first  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Dump field crops and the scan result for one detail-screen screenshot."
    )
    parser.add_argument("image", type=Path, help="Path to screenshot image")
    parser.add_argument("--trainer-level", type=int, default=30)
    parser.add_argument("--extended-layout", action="store_true")
    parser.add_argument("--language", default="en")
    parser.add_argument("--tessdata", default=None, help="tessdata directory")
    parser.add_argument("--candy-scan", action="store_true", help="also read candy amount")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=BACKEND_DIR / ".cache" / "scan_debug",
        help="Directory for debug outputs",
    )
    return parser.parse_args()


def _save_image(path: Path, image: object) -> None:
    try:
        import cv2  # type: ignore
    except Exception as exc:  # noqa: BLE001
        raise OcrDependencyError("opencv-python-headless is required to save debug images") from exc

    path.parent.mkdir(parents=True, exist_ok=True)
    ok = cv2.imwrite(str(path), cv2.cvtColor(image, cv2.COLOR_RGB2BGR))
    if not ok:
        raise RuntimeError(f"failed to write image: {path}")


def main() -> None:
    args = parse_args()
    image_path = args.image.resolve()
    output_dir = args.output_dir.resolve()

    if not image_path.exists():
        raise FileNotFoundError(f"image not found: {image_path}")

    screenshot = decode_screenshot(image_path.read_bytes())
    height, width = screenshot.shape[:2]

    with PokemonScanner(
        args.tessdata,
        width,
        height,
        "Nidoran♀",
        "Nidoran♂",
        MemorySettings(candy_scan_enabled=args.candy_scan),
        candy_word_first=is_candy_word_first(args.language),
    ) as scanner:
        crops = scanner.debug_crops(screenshot, args.extended_layout)
        for tag, images in crops.items():
            for kind, image in images.items():
                _save_image(output_dir / f"{tag}_{kind}.png", image)

        result = scanner.scan(screenshot, args.trainer_level, args.extended_layout)
        appraisal = scanner.get_appraisal_text(screenshot)

    print("[Layout]", "extended" if args.extended_layout else "standard")
    print("[Scan result]")
    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    print("[Appraisal]", appraisal)
    print("[Output files]", output_dir)


if __name__ == "__main__":
    try:
        main()
    except OcrError as exc:
        print(f"[ERROR] {exc}")
        raise SystemExit(1) from exc
