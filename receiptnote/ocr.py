"""Receipt text recognition.

This module turns a receipt image (URL, base64 string or raw bytes) into a
single block of recognised text. It is the only asynchronous part of the
pipeline: :func:`submit_recognition` hands the work to an executor and
returns a future that resolves exactly once, with the text or with the
terminal error. The extraction engine is only invoked once that future has
resolved.

The OCR engine uses a local Tesseract backend by default. RapidOCR can be
selected with ``OCR_ENGINE=rapidocr`` and falls back to Tesseract on failure.
"""
from __future__ import annotations

import base64
import binascii
import importlib.util
import logging
import os
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from io import BytesIO
from typing import List, Optional, Tuple, Union

import numpy as np
import pytesseract
import requests
from PIL import Image, UnidentifiedImageError

_RAPIDOCR_AVAILABLE = importlib.util.find_spec("rapidocr_onnxruntime") is not None
if _RAPIDOCR_AVAILABLE:
    from rapidocr_onnxruntime import RapidOCR  # type: ignore
else:  # pragma: no cover - rapidocr is an optional extra
    RapidOCR = None  # type: ignore[assignment]

LOGGER = logging.getLogger(__name__)

ImageInput = Union[str, bytes, bytearray]

FETCH_TIMEOUT = 30
DEFAULT_LANGUAGE = "kor+eng"

_RAPIDOCR_ENGINE: Optional["RapidOCR"] = None
_EXECUTOR: Optional[ThreadPoolExecutor] = None


class ImageFetchError(RuntimeError):
    """Raised when the input image cannot be retrieved."""


class OCRServiceError(RuntimeError):
    """Raised when the OCR engine fails."""


class OCRDecodeError(RuntimeError):
    """Raised when the image cannot be decoded or contains no text."""


def recognize_text(
    image_input: ImageInput,
    *,
    engine: Optional[str] = None,
    language: Optional[str] = None,
) -> str:
    """Recognise the text on a receipt image.

    Lines are joined with ``\\n`` in reading order. Raises
    :class:`OCRDecodeError` (``no_text_found``) when nothing was recognised.
    """

    binary, source = _load_bytes(image_input)
    LOGGER.debug("Running OCR on %s (%d bytes)", source, len(binary))
    text = _perform_ocr(binary, engine=engine, language=language)
    if not text or not text.strip():
        raise OCRDecodeError("no_text_found")
    return text.strip()


def submit_recognition(
    image_input: ImageInput,
    executor: Optional[Executor] = None,
    *,
    engine: Optional[str] = None,
    language: Optional[str] = None,
) -> "Future[str]":
    """Schedule :func:`recognize_text` and return its future.

    The future carries either the recognised text or one of the OCR errors.
    No retries are attempted.
    """

    pool = executor or _default_executor()
    return pool.submit(recognize_text, image_input, engine=engine, language=language)


def _default_executor() -> ThreadPoolExecutor:
    global _EXECUTOR
    if _EXECUTOR is None:
        _EXECUTOR = ThreadPoolExecutor(max_workers=2, thread_name_prefix="ocr")
    return _EXECUTOR


def _load_bytes(image_input: ImageInput) -> Tuple[bytes, str]:
    if isinstance(image_input, (bytes, bytearray)):
        if not image_input:
            raise OCRDecodeError("empty_image")
        return bytes(image_input), "bytes"

    if isinstance(image_input, str):
        trimmed = image_input.strip()
        if trimmed.startswith("http://") or trimmed.startswith("https://"):
            try:
                response = requests.get(trimmed, timeout=FETCH_TIMEOUT)
                response.raise_for_status()
            except requests.RequestException as exc:
                raise ImageFetchError("fetch_failed") from exc
            return response.content, trimmed

        try:
            return base64.b64decode(trimmed, validate=True), "base64"
        except (binascii.Error, ValueError) as exc:
            raise OCRDecodeError("invalid_base64") from exc

    raise OCRDecodeError("unsupported_input_type")


def _perform_ocr(binary: bytes, *, engine: Optional[str] = None, language: Optional[str] = None) -> str:
    engine = (engine or os.getenv("OCR_ENGINE", "local")).strip().lower() or "local"
    if engine == "rapidocr":
        try:
            return _ocr_rapidocr(binary)
        except (OCRServiceError, OCRDecodeError) as exc:
            LOGGER.warning(
                "rapidocr_failed_falling_back: %s",
                exc,
                exc_info=LOGGER.isEnabledFor(logging.DEBUG),
            )
            return _ocr_local(binary, language=language)
    if engine == "local":
        return _ocr_local(binary, language=language)
    raise OCRServiceError(f"unknown_ocr_engine:{engine}")


def _ocr_local(binary: bytes, *, language: Optional[str] = None) -> str:
    image = _image_from_bytes(binary)
    language = (language or os.getenv("OCR_LANGUAGE", DEFAULT_LANGUAGE)).strip() or DEFAULT_LANGUAGE
    try:
        return pytesseract.image_to_string(image, lang=language)
    except pytesseract.TesseractNotFoundError as exc:
        raise OCRServiceError("tesseract_not_found") from exc
    except pytesseract.TesseractError as exc:
        raise OCRServiceError(f"tesseract_error:{exc}") from exc


def _ocr_rapidocr(binary: bytes) -> str:
    if not _RAPIDOCR_AVAILABLE or RapidOCR is None:
        raise OCRServiceError("rapidocr_not_installed")
    image = _image_from_bytes(binary)
    engine = _get_rapidocr()
    try:
        result, _ = engine(np.array(image))
    except Exception as exc:  # pragma: no cover - rapidocr runtime failure
        raise OCRServiceError("rapidocr_execution_failed") from exc
    if not result:
        raise OCRDecodeError("rapidocr_empty_result")
    texts: List[str] = []
    for entry in result:
        if isinstance(entry, (list, tuple)) and len(entry) >= 2:
            candidate = entry[1]
        else:
            candidate = entry
        if isinstance(candidate, (list, tuple)) and candidate:
            candidate = candidate[0]
        if isinstance(candidate, str) and candidate.strip():
            texts.append(candidate.strip())
    if not texts:
        raise OCRDecodeError("rapidocr_no_text")
    return "\n".join(texts)


def _get_rapidocr() -> "RapidOCR":
    global _RAPIDOCR_ENGINE
    if _RAPIDOCR_ENGINE is None:
        _RAPIDOCR_ENGINE = RapidOCR(det_use_cuda=False, rec_use_cuda=False, cls_use_cuda=False)
    return _RAPIDOCR_ENGINE


def _image_from_bytes(binary: bytes) -> "Image.Image":
    try:
        image = Image.open(BytesIO(binary))
        image.load()
    except UnidentifiedImageError as exc:
        raise OCRDecodeError("unsupported_image_format") from exc
    except OSError as exc:
        raise OCRDecodeError("image_open_failed") from exc
    return image.convert("RGB")


__all__ = [
    "ImageFetchError",
    "OCRDecodeError",
    "OCRServiceError",
    "recognize_text",
    "submit_recognition",
]
