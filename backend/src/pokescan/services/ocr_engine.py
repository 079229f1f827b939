from __future__ import annotations

import logging
import shutil
import subprocess
from enum import IntEnum
from typing import Any, Protocol

import numpy as np

logger = logging.getLogger("pokescan.ocr")

DEFAULT_LANGUAGE = "eng"
CHAR_WHITELIST = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789/♀♂"


class OcrError(Exception):
    """Base exception for the OCR capability."""


class OcrDependencyError(OcrError):
    """Raised when a required OCR dependency is missing."""


class OcrEngineUnavailableError(OcrError):
    """Raised when OCR engine is installed but unavailable at runtime."""


class PageSegMode(IntEnum):
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7


class OcrEngine(Protocol):
    def set_page_seg_mode(self, mode: PageSegMode) -> None: ...

    def set_image(self, image: np.ndarray) -> None: ...

    def get_utf8_text(self) -> str: ...

    def end(self) -> None: ...


def _require_pytesseract() -> Any:
    try:
        import pytesseract  # type: ignore
    except Exception as exc:  # noqa: BLE001
        raise OcrDependencyError("pytesseract is required") from exc
    return pytesseract


class TesseractSession:
    """One configured tesseract session, reconfigured before every recognition.

    Not safe for concurrent use; the owner serializes calls.
    """

    def __init__(
        self,
        data_path: str | None = None,
        *,
        language: str = DEFAULT_LANGUAGE,
        whitelist: str = CHAR_WHITELIST,
        tesseract_cmd: str | None = None,
    ) -> None:
        self._pytesseract = _require_pytesseract()
        try:
            from PIL import Image  # type: ignore
        except Exception as exc:  # noqa: BLE001
            raise OcrDependencyError("Pillow is required") from exc
        self._image_cls = Image

        if tesseract_cmd:
            self._pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        try:
            version = self._pytesseract.get_tesseract_version()
        except self._pytesseract.TesseractNotFoundError as exc:
            raise OcrEngineUnavailableError(
                "pytesseract failed: tesseract is not installed or not in PATH"
            ) from exc

        self.language = language
        self.data_path = data_path
        self.whitelist = whitelist
        self._mode = PageSegMode.SINGLE_LINE
        self._image: Any | None = None
        self._ended = False
        logger.info("tesseract session ready version=%s lang=%s", version, language)

    def _config(self) -> str:
        parts = ["--oem 3", f"--psm {int(self._mode)}"]
        if self.data_path:
            parts.append(f'--tessdata-dir "{self.data_path}"')
        if self.whitelist:
            parts.append(f"-c tessedit_char_whitelist={self.whitelist}")
        return " ".join(parts)

    def set_page_seg_mode(self, mode: PageSegMode) -> None:
        self._mode = PageSegMode(mode)

    def set_image(self, image: np.ndarray) -> None:
        self._image = self._image_cls.fromarray(image)

    def get_utf8_text(self) -> str:
        if self._ended:
            raise OcrError("tesseract session already ended")
        if self._image is None:
            return ""
        try:
            text = self._pytesseract.image_to_string(
                self._image,
                lang=self.language,
                config=self._config(),
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("tesseract recognition failed: %s", exc)
            return ""
        return str(text or "").strip()

    def end(self) -> None:
        self._image = None
        self._ended = True


def inspect_ocr_runtime(language: str = DEFAULT_LANGUAGE) -> dict[str, object]:
    status: dict[str, object] = {
        "opencv": False,
        "pytesseract": False,
        "tesseract_cmd": "",
        "tesseract_version": "",
        "tesseract_langs": [],
        "errors": [],
    }

    errors: list[str] = []
    try:
        import cv2  # type: ignore # noqa: F401

        status["opencv"] = True
    except Exception as exc:  # noqa: BLE001
        errors.append(f"opencv unavailable: {exc}")

    try:
        pytesseract = _require_pytesseract()
        status["pytesseract"] = True
        tesseract_cmd = shutil.which("tesseract") or ""
        status["tesseract_cmd"] = tesseract_cmd
        if not tesseract_cmd:
            errors.append("tesseract binary not found in PATH")
        else:
            try:
                proc = subprocess.run(
                    [tesseract_cmd, "--version"],
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=5,
                )
                version_line = (proc.stdout or proc.stderr or "").splitlines()
                status["tesseract_version"] = version_line[0] if version_line else ""
            except Exception as exc:  # noqa: BLE001
                errors.append(f"failed to read tesseract version: {exc}")

            try:
                langs = pytesseract.get_languages(config="")
                status["tesseract_langs"] = list(langs)
                if language not in langs:
                    errors.append(f"{language} language pack missing")
            except Exception as exc:  # noqa: BLE001
                errors.append(f"failed to query tesseract languages: {exc}")
    except OcrDependencyError as exc:
        errors.append(f"pytesseract unavailable: {exc}")

    status["errors"] = errors
    return status
