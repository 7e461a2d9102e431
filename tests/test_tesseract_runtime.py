from __future__ import annotations

import io
import shutil

import pytest

Image = pytest.importorskip("PIL.Image")
ImageDraw = pytest.importorskip("PIL.ImageDraw")
pytesseract = pytest.importorskip("pytesseract")

from receiptnote.ocr import recognize_text  # noqa: E402

pytestmark = pytest.mark.skipif(
    shutil.which("tesseract") is None,
    reason="tesseract binary not available",
)


def _render(text: str) -> bytes:
    image = Image.new("L", (320, 120), color=255)
    draw = ImageDraw.Draw(image)
    draw.multiline_text((10, 15), text, fill=0, spacing=12)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def test_pytesseract_image_to_string_smoke() -> None:
    """Ensure pytesseract can call the native binary when available."""

    text = recognize_text(_render("Vanlee"), engine="local", language="eng")

    assert "vanlee" in text.lower()
