import asyncio
import logging
import os
import threading
import time

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .services.image_ops import ImageInputError, RegionOutOfBoundsError, decode_screenshot
from .services.ocr_engine import (
    OcrDependencyError,
    OcrEngineUnavailableError,
    OcrError,
    inspect_ocr_runtime,
)
from .services.scanner import PokemonScanner, ScannerClosedError
from .services.settings import JsonFileSettings
from .services.species_names import load_species_names, resolve_species_names
from .services.text_fixes import is_candy_word_first

app = FastAPI(title="Pokescan API")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("pokescan.main")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


APP_HOST = os.getenv("HOST", "0.0.0.0")
APP_PORT = _env_int("PORT", 8000)
APP_VERSION = os.getenv("APP_VERSION", "dev")
OCR_MAX_UPLOAD_MB = _env_float("OCR_MAX_UPLOAD_MB", 8.0)
OCR_MAX_UPLOAD_BYTES = max(1, int(OCR_MAX_UPLOAD_MB * 1024 * 1024))
OCR_TIMEOUT_SECONDS = max(1.0, _env_float("OCR_TIMEOUT_SECONDS", 15.0))
TESSDATA_PATH = os.getenv("POKESCAN_TESSDATA_PATH", "").strip() or None
SCREEN_WIDTH = _env_int("POKESCAN_SCREEN_WIDTH", 1080)
SCREEN_HEIGHT = _env_int("POKESCAN_SCREEN_HEIGHT", 1920)
LANGUAGE = os.getenv("POKESCAN_LANGUAGE", "en")
FEMALE_NAME = os.getenv("POKESCAN_FEMALE_NAME", "Nidoran♀")
MALE_NAME = os.getenv("POKESCAN_MALE_NAME", "Nidoran♂")

_scanner_lock = threading.Lock()
_scanner: PokemonScanner | None = None


def build_scanner() -> PokemonScanner:
    return PokemonScanner(
        TESSDATA_PATH,
        SCREEN_WIDTH,
        SCREEN_HEIGHT,
        FEMALE_NAME,
        MALE_NAME,
        JsonFileSettings(),
        candy_word_first=is_candy_word_first(LANGUAGE),
    )


def get_scanner() -> PokemonScanner:
    global _scanner
    with _scanner_lock:
        if _scanner is None:
            _scanner = build_scanner()
        return _scanner


def _ocr_error(
    *,
    status_code: int,
    code: str,
    message: str,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "ok": False,
            "error": {
                "code": code,
                "message": message,
            },
        },
    )


@app.middleware("http")
async def request_log_middleware(request: Request, call_next):
    started = time.perf_counter()
    method = request.method
    path = request.url.path
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.exception(
            "request failed method=%s path=%s duration_ms=%.2f",
            method,
            path,
            elapsed_ms,
        )
        raise

    elapsed_ms = (time.perf_counter() - started) * 1000.0
    logger.info(
        "request method=%s path=%s status=%s duration_ms=%.2f",
        method,
        path,
        response.status_code,
        elapsed_ms,
    )
    return response


@app.on_event("startup")
def _startup_scanner() -> None:
    logger.info(
        "startup config host=%s port=%s version=%s",
        APP_HOST,
        APP_PORT,
        APP_VERSION,
    )
    logger.info(
        "startup config screen=%dx%d language=%s tessdata=%s",
        SCREEN_WIDTH,
        SCREEN_HEIGHT,
        LANGUAGE,
        TESSDATA_PATH or "(default)",
    )
    logger.info(
        "startup config ocr_max_upload_mb=%.2f ocr_timeout_seconds=%.2f",
        OCR_MAX_UPLOAD_MB,
        OCR_TIMEOUT_SECONDS,
    )
    try:
        get_scanner()
        logger.info("startup scanner ready")
    except OcrError as exc:
        logger.warning("scanner unavailable at startup: %s", exc)


@app.on_event("shutdown")
def _shutdown_scanner() -> None:
    global _scanner
    with _scanner_lock:
        if _scanner is not None:
            _scanner.close()
            _scanner = None


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@app.get("/api/ocr/runtime")
def ocr_runtime() -> dict[str, object]:
    return inspect_ocr_runtime()


def _form_bool(value: object) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


async def _read_upload(request: Request) -> tuple[bytes, dict[str, object]] | JSONResponse:
    content_type = (request.headers.get("content-type") or "").lower()
    if "multipart/form-data" not in content_type:
        return _ocr_error(
            status_code=400,
            code="INVALID_CONTENT_TYPE",
            message="multipart/form-data with 'image' field is required",
        )

    content_length_raw = (request.headers.get("content-length") or "").strip()
    if content_length_raw:
        try:
            content_length = int(content_length_raw)
            if content_length > OCR_MAX_UPLOAD_BYTES:
                return _ocr_error(
                    status_code=413,
                    code="FILE_TOO_LARGE",
                    message=f"image payload exceeds {OCR_MAX_UPLOAD_MB:.2f} MB limit",
                )
        except ValueError:
            pass

    try:
        form = await request.form()
    except Exception:  # noqa: BLE001
        logger.exception("ocr form parse failed")
        return _ocr_error(
            status_code=503,
            code="MULTIPART_UNAVAILABLE",
            message=(
                "multipart parser unavailable. Install dependency: "
                "pip install python-multipart"
            ),
        )

    image = form.get("image")
    if image is None:
        return _ocr_error(
            status_code=400,
            code="MISSING_IMAGE",
            message="image field is required",
        )

    image_content_type = str(getattr(image, "content_type", "")).lower()
    if image_content_type and not image_content_type.startswith("image/"):
        return _ocr_error(
            status_code=400,
            code="INVALID_IMAGE_TYPE",
            message="image file is required",
        )

    if hasattr(image, "read"):
        payload = await image.read()
    else:
        payload = str(image).encode("utf-8")
    if not payload:
        return _ocr_error(
            status_code=400,
            code="EMPTY_IMAGE",
            message="empty image payload",
        )
    if len(payload) > OCR_MAX_UPLOAD_BYTES:
        return _ocr_error(
            status_code=413,
            code="FILE_TOO_LARGE",
            message=f"image payload exceeds {OCR_MAX_UPLOAD_MB:.2f} MB limit",
        )

    fields = {key: value for key, value in form.items() if key != "image"}
    return payload, fields


async def _run_ocr(func, *args) -> object:
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args),
            timeout=OCR_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.exception("ocr timed out")
        return _ocr_error(
            status_code=504,
            code="OCR_TIMEOUT",
            message=f"ocr exceeded timeout {OCR_TIMEOUT_SECONDS:.2f}s",
        )
    except ImageInputError as exc:
        return _ocr_error(
            status_code=400,
            code="OCR_INPUT_ERROR",
            message=str(exc),
        )
    except RegionOutOfBoundsError as exc:
        logger.exception("scan region outside screenshot")
        return _ocr_error(
            status_code=400,
            code="REGION_OUT_OF_BOUNDS",
            message=str(exc),
        )
    except (OcrDependencyError, OcrEngineUnavailableError, ScannerClosedError) as exc:
        logger.exception("ocr engine unavailable")
        return _ocr_error(
            status_code=503,
            code="OCR_ENGINE_UNAVAILABLE",
            message=str(exc),
        )
    except Exception:
        logger.exception("unexpected ocr failure")
        return _ocr_error(
            status_code=500,
            code="OCR_UNKNOWN_ERROR",
            message="unexpected OCR failure",
        )


def _scan_payload(payload: bytes, trainer_level: int, extended_layout: bool) -> dict[str, object]:
    screenshot = decode_screenshot(payload)
    result = get_scanner().scan(screenshot, trainer_level, extended_layout)
    return result.to_dict()


def _appraisal_payload(payload: bytes) -> dict[str, object]:
    screenshot = decode_screenshot(payload)
    raw = get_scanner().get_appraisal_text(screenshot)
    cache_key, _, text = raw.partition("#")
    return {"cacheKey": cache_key, "text": text, "raw": raw}


@app.post("/api/ocr/scan", response_model=None)
async def ocr_scan(request: Request) -> object:
    upload = await _read_upload(request)
    if isinstance(upload, JSONResponse):
        return upload
    payload, fields = upload

    try:
        trainer_level = int(str(fields.get("trainerLevel") or ""))
    except ValueError:
        return _ocr_error(
            status_code=400,
            code="INVALID_TRAINER_LEVEL",
            message="'trainerLevel' must be an integer",
        )
    extended_layout = _form_bool(fields.get("extendedLayout"))

    result = await _run_ocr(_scan_payload, payload, trainer_level, extended_layout)
    if isinstance(result, JSONResponse):
        return result
    return {"ok": True, "result": result}


@app.post("/api/ocr/appraisal", response_model=None)
async def ocr_appraisal(request: Request) -> object:
    upload = await _read_upload(request)
    if isinstance(upload, JSONResponse):
        return upload
    payload, _ = upload

    result = await _run_ocr(_appraisal_payload, payload)
    if isinstance(result, JSONResponse):
        return result
    return {"ok": True, **result}


@app.delete("/api/ocr/appraisal-cache/{cacheKey}")
def remove_appraisal_entry(cacheKey: str) -> dict[str, object]:
    try:
        removed = get_scanner().remove_entry_from_appraisal_cache(cacheKey)
    except OcrError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {"ok": True, "removed": removed}


@app.post("/api/species/resolve-names")
async def resolve_species_names_api(payload: dict[str, object]) -> dict[str, object]:
    raw_names = payload.get("names")
    if not isinstance(raw_names, list):
        raise HTTPException(status_code=400, detail="'names' must be a list")

    names: list[str] = [str(item or "").strip() for item in raw_names]
    if not names:
        return {"resolved": []}

    species = load_species_names()
    if not species:
        raise HTTPException(status_code=503, detail="species list is empty")

    return {"resolved": resolve_species_names(names=names, species=species)}
