"""FastAPI router definitions for the receipt extraction service."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Literal, Optional, Tuple

from fastapi import Depends, FastAPI, File, Header, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from . import model_store
from .classifier import ModelBundle, partial_train, predict_category
from .extraction import ExtractionResult, extract_receipt_info
from .ocr import ImageFetchError, OCRDecodeError, OCRServiceError, submit_recognition
from .security import verify_admin_token
from .settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    logging.getLogger().setLevel(get_settings().log_level)
    yield


app = FastAPI(title="ReceiptNote Extraction Service", lifespan=lifespan)

CategoryLabel = Literal["food", "medical", "other", "shopping", "transportation"]

MAX_UPLOAD_SIZE = 15 * 1024 * 1024
ALLOWED_MIME_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/heic",
    "image/tiff",
}


class ExtractRequest(BaseModel):
    text: str = ""


class ExtractResponse(BaseModel):
    extracted: Dict[str, Any]
    category: Dict[str, Any]


class IngestResponse(ExtractResponse):
    raw_text: str


class TrainingSample(BaseModel):
    text: str
    label: CategoryLabel


class TrainRequest(BaseModel):
    samples: List[TrainingSample]
    min_samples: int = Field(default=10, ge=1)


class TrainResponse(BaseModel):
    trained: int
    metrics: Dict[str, Any]
    model_version_id: Optional[str]

    model_config = {"protected_namespaces": ()}


class ModelCache:
    def __init__(self) -> None:
        self._category: Optional[Tuple[Optional[ModelBundle], Optional[str]]] = None

    def category(self, path: Path) -> Tuple[Optional[ModelBundle], Optional[str]]:
        if self._category is None:
            try:
                self._category = model_store.load_latest_model(path)
            except model_store.ModelStoreError as exc:
                LOGGER.warning("Ignoring unreadable category model at %s: %s", path, exc)
                self._category = (None, None)
        return self._category

    def refresh_category(self, path: Path) -> Tuple[Optional[ModelBundle], Optional[str]]:
        self._category = None
        return self.category(path)


model_cache = ModelCache()


def _categorise(raw_text: str, settings: Settings) -> Dict[str, Any]:
    model_bundle, version_id = model_cache.category(settings.model_path)
    label, score, alternatives = predict_category(raw_text, model_bundle)
    return {
        "pred": label,
        "confidence": score,
        "candidates": [{"label": name, "confidence": value} for name, value in alternatives],
        "model_version_id": version_id,
    }


def _build_response(raw_text: str, result: ExtractionResult, settings: Settings) -> Dict[str, Any]:
    return {
        "extracted": result.to_dict(),
        "category": _categorise(raw_text, settings),
    }


async def _read_upload(file: UploadFile) -> bytes:
    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="empty_file")
    if len(data) > MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="file_too_large")
    if file.content_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="unsupported_mime")
    return data


@app.post("/extract", response_model=ExtractResponse)
async def extract(payload: ExtractRequest, settings: Settings = Depends(get_settings)) -> ExtractResponse:
    result = extract_receipt_info(payload.text)
    return ExtractResponse(**_build_response(payload.text, result, settings))


@app.post("/ingest", response_model=IngestResponse)
async def ingest(
    file: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
) -> IngestResponse:
    data = await _read_upload(file)

    future = submit_recognition(data, engine=settings.ocr_engine, language=settings.ocr_language)
    try:
        raw_text = await asyncio.wrap_future(future)
    except ImageFetchError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="image_fetch_failed") from exc
    except OCRDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except OCRServiceError as exc:
        LOGGER.exception("OCR service error: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="ocr_service_error") from exc

    result = extract_receipt_info(raw_text)
    return IngestResponse(raw_text=raw_text, **_build_response(raw_text, result, settings))


@app.post("/train", response_model=TrainResponse)
async def train(
    payload: TrainRequest,
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> TrainResponse:
    verify_admin_token(authorization, settings)

    samples = [sample.model_dump() for sample in payload.samples]
    if len(samples) < payload.min_samples:
        return TrainResponse(
            trained=0,
            metrics={"skipped": True, "reason": "not_enough_samples", "n": len(samples)},
            model_version_id=None,
        )

    existing_model, _ = model_cache.category(settings.model_path)
    try:
        model_bundle, metrics = partial_train(samples, existing_model)
    except ValueError as exc:
        LOGGER.error("Category training failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="training_failed") from exc
    if model_bundle is None:
        return TrainResponse(trained=0, metrics=metrics, model_version_id=None)

    try:
        version_id = model_store.save_model(
            settings.model_path,
            model_bundle,
            model_store.generate_version_name(),
            metrics,
        )
    except model_store.ModelStoreError as exc:
        LOGGER.exception("Failed to persist category model: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="model_save_failed") from exc

    model_cache.refresh_category(settings.model_path)
    return TrainResponse(trained=len(samples), metrics=metrics, model_version_id=version_id)


__all__ = ["app"]
