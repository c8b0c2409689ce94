from __future__ import annotations
from io import BytesIO
from pathlib import Path

from PIL import Image

from .models import OUTPUT_SIZES


class RenderFailure(RuntimeError):
    pass


def output_filename(fmt: str, event_id: str) -> str:
    return f"{fmt}-{event_id}.png"


def rasterize(img: Image.Image, fmt: str) -> bytes:
    """Encode a composed card as PNG, refusing anything that is not the exact format size."""
    expected = OUTPUT_SIZES[fmt]
    if img.size != expected:
        raise RenderFailure(f"{fmt} card is {img.size[0]}x{img.size[1]}, expected {expected[0]}x{expected[1]}")
    buf = BytesIO()
    try:
        img.save(buf, format="PNG")
    except (OSError, ValueError) as e:
        raise RenderFailure(f"Error generating image: {e}") from e
    return buf.getvalue()


def save_png(data: bytes, output_dir: str, fmt: str, event_id: str) -> Path:
    out = Path(output_dir) / output_filename(fmt, event_id)
    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(data)
    except OSError as e:
        raise RenderFailure(f"Could not write {out}: {e}") from e
    return out
