"""Reads creature statistics off a screenshot of the creature detail screen.

Each field is cut out of the screenshot, reduced to near-binary text by color
isolation and handed to tesseract. Recognized text is memoized per crop content so
repeated scans of the same screen skip OCR entirely.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Any, Callable

import numpy as np

from .image_ops import (
    crop_info_row,
    crop_region,
    cache_key,
    extended_height,
    is_only_white,
    replace_colors,
)
from .layouts import (
    APPRAISAL,
    EVOLUTION_AFFORDABLE,
    EVOLUTION_UNAFFORDABLE,
    GENDER_SPRITE,
    FieldRegion,
    Isolation,
    LayoutProfile,
    select_layout,
)
from .level_arc import ArcGeometry, DEFAULT_ARC, estimate_level
from .ocr_engine import OcrEngine, PageSegMode, TesseractSession
from .recognition_cache import MISSING, AppraisalCache, LruCache
from .settings import SettingsProvider
from .text_fixes import (
    FULLY_EVOLVED,
    clean_candy_name,
    clean_name,
    fix_nums_to_letters,
    parse_candy_amount,
    parse_cp,
    parse_evolution_cost,
    parse_hp,
)

logger = logging.getLogger("pokescan.scanner")

DEFAULT_GENDERED_SPECIES = "nidora"
# Average sprite colors: male ~ (136, 165, 117), female ~ (135, 190, 140).
FEMALE_GREEN_LIMIT = 175
FEMALE_BLUE_LIMIT = 130


class ScannerClosedError(RuntimeError):
    """Raised when a closed scanner is asked to recognize something."""


@dataclass
class ScanResult:
    level: float
    name: str
    type: str
    candy_name: str
    hp: int | None
    cp: int | None
    candy_amount: int | None
    evolution_cost: int | None
    unique_identifier: str
    hp_low_confidence: bool = False

    def to_dict(self) -> dict[str, object]:
        raw = asdict(self)
        return {
            "level": raw["level"],
            "name": raw["name"],
            "type": raw["type"],
            "candyName": raw["candy_name"],
            "hp": raw["hp"],
            "cp": raw["cp"],
            "candyAmount": raw["candy_amount"],
            "evolutionCost": raw["evolution_cost"],
            "uniqueIdentifier": raw["unique_identifier"],
            "hpLowConfidence": raw["hp_low_confidence"],
        }


class PokemonScanner:
    def __init__(
        self,
        data_path: str | None,
        width_pixels: int,
        height_pixels: int,
        female_name: str,
        male_name: str,
        settings: SettingsProvider,
        *,
        candy_word_first: bool = False,
        gendered_species: str = DEFAULT_GENDERED_SPECIES,
        arc_geometry: ArcGeometry = DEFAULT_ARC,
        ocr: OcrEngine | None = None,
    ) -> None:
        self.width_pixels = width_pixels
        self.height_pixels = height_pixels
        self.female_name = female_name
        self.male_name = male_name
        self.candy_word_first = candy_word_first
        self.gendered_species = gendered_species.lower()
        self.arc_geometry = arc_geometry
        self.candy_scan_enabled = bool(settings.candy_scan_enabled)

        self._ocr_lock = threading.Lock()
        self._ocr: OcrEngine | None = ocr if ocr is not None else TesseractSession(data_path)
        self._ocr_cache: LruCache[Any] = LruCache()
        self._appraisal_cache = AppraisalCache(settings)
        logger.info(
            "scanner ready screen=%dx%d candy_word_first=%s candy_scan=%s",
            width_pixels,
            height_pixels,
            candy_word_first,
            self.candy_scan_enabled,
        )

    def __enter__(self) -> "PokemonScanner":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._ocr is None

    def close(self) -> None:
        with self._ocr_lock:
            if self._ocr is None:
                logger.error("scanner already closed", stack_info=True)
                return
            self._ocr.end()
            self._ocr = None
        logger.info("scanner closed")

    def _check_open(self) -> None:
        if self._ocr is None:
            raise ScannerClosedError("scanner is closed")

    def _recognize(self, image: np.ndarray, mode: PageSegMode = PageSegMode.SINGLE_LINE) -> str:
        with self._ocr_lock:
            if self._ocr is None:
                raise ScannerClosedError("scanner is closed")
            self._ocr.set_page_seg_mode(mode)
            self._ocr.set_image(image)
            return self._ocr.get_utf8_text()

    def _cached(self, key: str, compute: Callable[[], Any]) -> Any:
        value = self._ocr_cache.get(key)
        if value is not MISSING:
            logger.debug("ocr cache hit key=%s", key)
            return value
        value = compute()
        self._ocr_cache.put(key, value)
        return value

    @staticmethod
    def _isolate(image: np.ndarray, isolation: Isolation, *, mutate: bool) -> np.ndarray:
        return replace_colors(
            image,
            isolation.keep,
            isolation.replace,
            isolation.distance,
            mutate=mutate,
            simple_background=isolation.simple_background,
        )

    def _crop(self, screenshot: np.ndarray, field: FieldRegion, layout: LayoutProfile) -> np.ndarray:
        base_height = extended_height(screenshot) if layout.height_ratio else None
        return crop_region(screenshot, field.region, base_height=base_height)

    def _keyed_crop(self, screenshot: np.ndarray, field: FieldRegion, layout: LayoutProfile) -> tuple[str, np.ndarray]:
        crop = self._crop(screenshot, field, layout)
        return cache_key(field.tag, crop), crop

    def _ocr_field(self, crop: np.ndarray, field: FieldRegion) -> str:
        return self._recognize(self._isolate(crop, field.isolation, mutate=True))

    def is_female(self, screenshot: np.ndarray) -> bool:
        sprite = crop_region(screenshot, GENDER_SPRITE).reshape(-1, 3).astype(np.int64)
        green_average = int(sprite[:, 1].sum()) // len(sprite)
        blue_average = int(sprite[:, 2].sum()) // len(sprite)
        return not (green_average < FEMALE_GREEN_LIMIT and blue_average < FEMALE_BLUE_LIMIT)

    def _gendered_name(self, screenshot: np.ndarray) -> str:
        return self.female_name if self.is_female(screenshot) else self.male_name

    def _resolve_gender(self, text: str, screenshot: np.ndarray) -> str:
        if self.gendered_species and self.gendered_species in text.lower():
            return self._gendered_name(screenshot)
        return text

    def read_name(self, screenshot: np.ndarray, layout: LayoutProfile) -> str:
        self._check_open()
        field = layout.pokemon_name
        key, crop = self._keyed_crop(screenshot, field, layout)

        def compute() -> str:
            return self._resolve_gender(clean_name(self._ocr_field(crop, field)), screenshot)

        return self._cached(key, compute)

    def read_type(self, screenshot: np.ndarray, layout: LayoutProfile) -> str:
        self._check_open()
        field = layout.pokemon_type
        key, crop = self._keyed_crop(screenshot, field, layout)
        return self._cached(key, lambda: fix_nums_to_letters(self._ocr_field(crop, field)))

    def read_candy_name(self, screenshot: np.ndarray, layout: LayoutProfile) -> str:
        self._check_open()
        field = layout.candy_name
        key, crop = self._keyed_crop(screenshot, field, layout)

        def compute() -> str:
            candy = clean_candy_name(self._ocr_field(crop, field), self.candy_word_first)
            return self._resolve_gender(candy, screenshot)

        return self._cached(key, compute)

    def read_hp(self, screenshot: np.ndarray, layout: LayoutProfile) -> tuple[int | None, bool]:
        self._check_open()
        field = layout.hp
        key, crop = self._keyed_crop(screenshot, field, layout)
        reading = parse_hp(self._cached(key, lambda: self._ocr_field(crop, field)))
        return reading.value, reading.low_confidence

    def read_cp(self, screenshot: np.ndarray, layout: LayoutProfile) -> int | None:
        self._check_open()
        field = layout.cp
        key, crop = self._keyed_crop(screenshot, field, layout)
        return parse_cp(self._cached(key, lambda: self._ocr_field(crop, field)))

    def read_candy_amount(self, screenshot: np.ndarray, layout: LayoutProfile) -> int | None:
        self._check_open()
        if not self.candy_scan_enabled:
            return None
        field = layout.candy_amount
        key, crop = self._keyed_crop(screenshot, field, layout)
        return parse_candy_amount(self._cached(key, lambda: self._ocr_field(crop, field)))

    def _read_evolution_cost_uncached(self, crop: np.ndarray) -> int | None:
        affordable = self._isolate(crop, EVOLUTION_AFFORDABLE, mutate=False)
        unaffordable = self._isolate(crop, EVOLUTION_UNAFFORDABLE, mutate=False)

        affordable_blank = is_only_white(affordable)
        unaffordable_blank = is_only_white(unaffordable)
        if affordable_blank and unaffordable_blank:
            return FULLY_EVOLVED

        text = self._recognize(unaffordable if affordable_blank else affordable)
        return parse_evolution_cost(text)

    def read_evolution_cost(self, screenshot: np.ndarray, layout: LayoutProfile) -> int | None:
        self._check_open()
        key, crop = self._keyed_crop(screenshot, layout.evolution_cost, layout)
        return self._cached(key, lambda: self._read_evolution_cost_uncached(crop))

    def read_unique_identifier(self, screenshot: np.ndarray) -> str:
        return self._recognize(crop_info_row(screenshot))

    def scan(
        self,
        screenshot: np.ndarray,
        trainer_level: int,
        use_extended_layout: bool = False,
    ) -> ScanResult:
        """Read every field of one detail screen.

        Fields are independent: an unreadable field comes back as ``None`` (or the
        raw text) without affecting the others. A region that does not fit the
        screenshot raises ``RegionOutOfBoundsError``.
        """
        self._check_open()
        layout = select_layout(use_extended_layout)

        img_h, img_w = screenshot.shape[:2]
        if (img_w, img_h) != (self.width_pixels, self.height_pixels):
            # The level arc is laid out for the configured screen, crops for the image.
            logger.warning(
                "screenshot size %dx%d differs from configured screen %dx%d; level may be wrong",
                img_w,
                img_h,
                self.width_pixels,
                self.height_pixels,
            )

        level = estimate_level(
            screenshot,
            trainer_level,
            width=self.width_pixels,
            height=self.height_pixels,
            geometry=self.arc_geometry,
        )
        name = self.read_name(screenshot, layout)
        pokemon_type = self.read_type(screenshot, layout)
        candy_name = self.read_candy_name(screenshot, layout)
        hp, hp_low_confidence = self.read_hp(screenshot, layout)
        cp = self.read_cp(screenshot, layout)
        candy_amount = self.read_candy_amount(screenshot, layout)
        evolution_cost = self.read_evolution_cost(screenshot, layout)
        unique_identifier = self.read_unique_identifier(screenshot)

        result = ScanResult(
            level=level,
            name=name,
            type=pokemon_type,
            candy_name=candy_name,
            hp=hp,
            cp=cp,
            candy_amount=candy_amount,
            evolution_cost=evolution_cost,
            unique_identifier=unique_identifier,
            hp_low_confidence=hp_low_confidence,
        )
        logger.debug("scan finished layout=%s result=%s", layout.name, result)
        return result

    def get_appraisal_text(self, screen: np.ndarray | None) -> str:
        """Appraisal dialog text as ``<cacheKey>#<text>``, or "" without a screen."""
        if screen is None:
            return ""
        self._check_open()

        bottom = crop_region(screen, APPRAISAL.region)
        key = cache_key(APPRAISAL.tag, bottom)
        text = self._appraisal_cache.get(key)
        if text is MISSING:
            isolated = self._isolate(bottom, APPRAISAL.isolation, mutate=True)
            text = self._recognize(isolated, PageSegMode.SINGLE_BLOCK)
            self._appraisal_cache.put(key, text)
        return f"{key}#{text}"

    def remove_entry_from_appraisal_cache(self, key: str) -> bool:
        self._check_open()
        removed = self._appraisal_cache.remove(key)
        logger.info("appraisal cache entry removed key=%s found=%s", key, removed)
        return removed

    def debug_crops(
        self,
        screenshot: np.ndarray,
        use_extended_layout: bool = False,
    ) -> dict[str, dict[str, np.ndarray]]:
        """Raw and isolated crop for every field, for layout tuning."""
        layout = select_layout(use_extended_layout)
        out: dict[str, dict[str, np.ndarray]] = {}
        for field in layout.fields():
            crop = self._crop(screenshot, field, layout)
            out[field.tag] = {
                "raw": crop,
                "isolated": self._isolate(crop, field.isolation, mutate=False),
            }
        evolution = out[layout.evolution_cost.tag]
        evolution["isolated_unaffordable"] = self._isolate(
            evolution["raw"], EVOLUTION_UNAFFORDABLE, mutate=False
        )
        info_row = crop_info_row(screenshot)
        out["identifier"] = {"raw": info_row, "isolated": info_row}
        bottom = crop_region(screenshot, APPRAISAL.region)
        out[APPRAISAL.tag] = {
            "raw": bottom,
            "isolated": self._isolate(bottom, APPRAISAL.isolation, mutate=False),
        }
        out["sprite"] = {
            "raw": crop_region(screenshot, GENDER_SPRITE),
            "isolated": crop_region(screenshot, GENDER_SPRITE),
        }
        return out
