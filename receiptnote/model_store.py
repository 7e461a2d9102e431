"""Persistence for the learned category model.

Models are pickled to a single file (``MODEL_PATH``). Each save replaces the
previous file atomically, so readers always observe a complete payload.
"""

from __future__ import annotations

import logging
import os
import pickle
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .classifier import ModelBundle

LOGGER = logging.getLogger(__name__)


class ModelStoreError(RuntimeError):
    """Raised when model persistence fails."""


def load_latest_model(path: Path) -> Tuple[Optional[ModelBundle], Optional[str]]:
    """Load the stored model bundle and its version name, if any."""

    if not path.exists():
        return None, None

    try:
        with path.open("rb") as handle:
            record = pickle.load(handle)
    except Exception as exc:
        LOGGER.error("Failed to deserialize model payload: %s", exc)
        raise ModelStoreError("invalid model payload") from exc

    if not isinstance(record, dict):
        raise ModelStoreError("unexpected model record")

    model = record.get("model")
    if isinstance(model, ModelBundle):
        return model, record.get("name")

    LOGGER.error("Unexpected model type: %s", type(model))
    raise ModelStoreError("unexpected model type")


def save_model(path: Path, model: ModelBundle, version_name: str, metrics: Dict[str, Any]) -> str:
    """Persist ``model`` under ``version_name`` and return the version name."""

    record = {
        "name": version_name,
        "metrics": metrics,
        "saved_at": datetime.now(timezone.utc).isoformat(),
        "model": model,
    }
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
        with os.fdopen(fd, "wb") as handle:
            pickle.dump(record, handle)
        os.replace(tmp_name, path)
    except (OSError, pickle.PicklingError) as exc:
        raise ModelStoreError("unable to save model") from exc

    LOGGER.info("Saved category model %s to %s", version_name, path)
    return version_name


def generate_version_name(prefix: str = "sgd-tfidf") -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M")
    return f"{prefix}-{timestamp}"


__all__ = ["load_latest_model", "save_model", "generate_version_name", "ModelStoreError"]
