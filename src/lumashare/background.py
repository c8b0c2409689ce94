from __future__ import annotations

import logging
from io import BytesIO
from typing import List, Optional, Sequence, Tuple

import requests
from PIL import Image, ImageFilter, ImageOps

from .capabilities import RenderCapabilities
from .models import GradientStop
from .relay import RelayExhausted, first_success, relay_url

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_RELAYS = ["https://corsproxy.io/?{url}"]

BLUR_RADIUS = 22
OVERSCAN = 1.1
NO_BLUR_SHADE = 0.3

FALLBACK_GRADIENT = (
    GradientStop(0.0, (0x66, 0x7E, 0xEA)),
    GradientStop(1.0, (0x76, 0x4B, 0xA2)),
)


def _lerp_color(start: Tuple[int, int, int], end: Tuple[int, int, int], ratio: float) -> Tuple[int, int, int]:
    return tuple(int(round(s + (e - s) * ratio)) for s, e in zip(start, end))


def _color_at(stops: Sequence[GradientStop], t: float) -> Tuple[int, int, int]:
    if t <= stops[0].position:
        return stops[0].color
    if t >= stops[-1].position:
        return stops[-1].color
    for left, right in zip(stops, stops[1:]):
        if left.position <= t <= right.position:
            span = right.position - left.position
            ratio = 0.0 if span == 0 else (t - left.position) / span
            return _lerp_color(left.color, right.color, ratio)
    return stops[-1].color


def diagonal_gradient(size: Tuple[int, int], stops: Sequence[GradientStop]) -> Image.Image:
    """
    A 135° linear gradient: the first stop sits in the top-left corner and the
    last in the bottom-right. Position along the gradient is the projection onto
    the diagonal, (x*w + y*h) / (w*w + h*h), built from two ramps so no
    per-pixel Python loop is needed.
    """
    width, height = size
    ramp = Image.linear_gradient("L")
    vertical = ramp.resize(size, Image.Resampling.BILINEAR)
    horizontal = ramp.transpose(Image.Transpose.TRANSPOSE).resize(size, Image.Resampling.BILINEAR)
    t = Image.blend(horizontal, vertical, height * height / (width * width + height * height))

    colors = [_color_at(stops, i / 255) for i in range(256)]
    channels = [t.point([c[band] for c in colors]) for band in range(3)]
    return Image.merge("RGB", channels)


def cover_rect(
    image_w: int,
    image_h: int,
    canvas_w: int,
    canvas_h: int,
    overscan: float = OVERSCAN,
) -> Tuple[float, float, float, float]:
    """
    Where to draw an image so it covers the canvas: (x, y, width, height).

    The shorter side is matched to the canvas, the image is centered
    horizontally and pinned to the top so banner subjects stay in frame. The
    result is then grown by ``overscan`` around its own center to push blurred
    edges outside the canvas.
    """
    image_ratio = image_w / image_h
    canvas_ratio = canvas_w / canvas_h

    if image_ratio > canvas_ratio:
        draw_h = float(canvas_h)
        draw_w = canvas_h * image_ratio
        draw_x = (canvas_w - draw_w) / 2
    else:
        draw_w = float(canvas_w)
        draw_h = canvas_w / image_ratio
        draw_x = 0.0
    draw_y = 0.0

    scaled_w = draw_w * overscan
    scaled_h = draw_h * overscan
    return (
        draw_x - (scaled_w - draw_w) / 2,
        draw_y - (scaled_h - draw_h) / 2,
        scaled_w,
        scaled_h,
    )


class ImageLoader:
    """Downloads a source image through the image relays."""

    def __init__(
        self,
        relays: Optional[List[str]] = None,
        timeout: float = 15,
        user_agent: str = "lumashare/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.relays = list(DEFAULT_IMAGE_RELAYS if relays is None else relays)
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent})

    def load(self, image_url: str) -> Image.Image:
        def attempt(relay: str) -> Image.Image:
            resp = self._session.get(relay_url(relay, image_url), timeout=self.timeout)
            resp.raise_for_status()
            img = Image.open(BytesIO(resp.content))
            img.load()
            return ImageOps.exif_transpose(img).convert("RGB")

        return first_success(
            self.relays,
            attempt,
            retry_on=(requests.RequestException, OSError, Image.DecompressionBombError),
            what=f"image {image_url}",
        )


def render_background(
    size: Tuple[int, int],
    image_url: str,
    capabilities: RenderCapabilities,
    loader: ImageLoader,
    blur_radius: float = BLUR_RADIUS,
) -> Image.Image:
    """Fill ``size`` with a blurred cover-fit of the image, or the fallback gradient if it will not load."""
    width, height = size
    try:
        source = loader.load(image_url)
    except RelayExhausted as e:
        logger.warning("Could not load image for blur, using fallback gradient: %s", e)
        return diagonal_gradient(size, FALLBACK_GRADIENT)

    x, y, draw_w, draw_h = cover_rect(source.width, source.height, width, height)
    fitted = source.resize((max(1, round(draw_w)), max(1, round(draw_h))), Image.Resampling.LANCZOS)
    if capabilities.supports_blur:
        fitted = fitted.filter(ImageFilter.GaussianBlur(blur_radius))

    canvas = Image.new("RGB", size, "black")
    canvas.paste(fitted, (round(x), round(y)))

    if not capabilities.supports_blur:
        canvas = Image.blend(canvas, Image.new("RGB", size, "black"), alpha=NO_BLUR_SHADE)
    return canvas
