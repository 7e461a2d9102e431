"""Application settings management for the receipt extraction service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

SUPPORTED_OCR_ENGINES = ("local", "rapidocr")
DEFAULT_OCR_LANGUAGE = "kor+eng"
DEFAULT_MODEL_PATH = "models/category.pkl"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    admin_token: Optional[str]
    ocr_engine: str
    ocr_language: str
    model_path: Path
    log_level: str

    @staticmethod
    def _optional_env(name: str, default: str) -> str:
        value = os.getenv(name)
        if value is None or not value.strip():
            return default
        return value.strip()

    @classmethod
    def load(cls) -> "Settings":
        _ensure_env_file_loaded()
        ocr_engine = cls._optional_env("OCR_ENGINE", "local").lower()
        if ocr_engine not in SUPPORTED_OCR_ENGINES:
            raise RuntimeError(f"OCR_ENGINE must be one of {', '.join(SUPPORTED_OCR_ENGINES)}")

        log_level = cls._optional_env("LOG_LEVEL", "INFO").upper()
        if log_level not in LOG_LEVELS:
            raise RuntimeError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

        return cls(
            admin_token=os.getenv("ADMIN_TOKEN", "").strip() or None,
            ocr_engine=ocr_engine,
            ocr_language=cls._optional_env("OCR_LANGUAGE", DEFAULT_OCR_LANGUAGE),
            model_path=Path(cls._optional_env("MODEL_PATH", DEFAULT_MODEL_PATH)),
            log_level=log_level,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.load()


def reset_settings_state() -> None:
    """Reset cached settings and environment file state (for tests)."""
    global _ENV_FILE_LOADED
    _ENV_FILE_LOADED = False
    get_settings.cache_clear()


_ENV_FILE_LOADED = False


def _ensure_env_file_loaded() -> None:
    global _ENV_FILE_LOADED
    if _ENV_FILE_LOADED:
        return
    candidates = [Path.cwd() / ".env", Path(__file__).resolve().parent.parent / ".env"]
    loaded = False
    for env_path in candidates:
        if env_path.exists():
            load_dotenv(dotenv_path=env_path, override=False)
            loaded = True
    if not loaded:
        load_dotenv(override=False)
    _ENV_FILE_LOADED = True


__all__ = ["Settings", "get_settings", "reset_settings_state"]
