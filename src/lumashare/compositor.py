from __future__ import annotations
from dataclasses import dataclass
from functools import lru_cache
import logging
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from .background import ImageLoader, diagonal_gradient, render_background, BLUR_RADIUS
from .capabilities import RenderCapabilities
from .models import OUTPUT_SIZES, EventRecord, GradientStop, RenderSpec

logger = logging.getLogger(__name__)

IMAGE_TEMPLATE = "image"
DEFAULT_GRADIENT_TEMPLATE = "gradient-sunset"


def _hex(value: str) -> Tuple[int, int, int]:
    value = value.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def _stops(*pairs: Tuple[float, str]) -> Tuple[GradientStop, ...]:
    return tuple(GradientStop(pos, _hex(color)) for pos, color in pairs)


# template key -> gradient stops; the image template has none
TEMPLATES = {
    IMAGE_TEMPLATE: None,
    "gradient-sunset": _stops((0.0, "#667eea"), (0.5, "#764ba2"), (1.0, "#f093fb")),
    "gradient-ocean": _stops((0.0, "#0c0c0c"), (0.5, "#1a1a2e"), (1.0, "#16213e")),
    "gradient-fire": _stops((0.0, "#f12711"), (1.0, "#f5af19")),
    "gradient-mint": _stops((0.0, "#11998e"), (1.0, "#38ef7d")),
    "gradient-purple": _stops((0.0, "#4a00e0"), (1.0, "#8e2de2")),
}

PADDING = 60
BLOCK_GAP = 32
LINE_HEIGHT = 1.2
DATE_TRACKING = 0.1
OVERLAY_ALPHA = int(255 * 0.4)

# format -> (date/time size, title size)
FONT_SIZES = {
    "story": (42, 86),
    "post": (36, 72),
}

BRAND_FONT_SIZE = 28
BRAND_PAD_X = 32
BRAND_PAD_Y = 16
BRAND_RADIUS = 16
BRAND_MARGIN_RIGHT = 60
BRAND_MARGIN_BOTTOM = 50
BRAND_FILL = (255, 255, 255, int(255 * 0.2))

DEJAVU = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"
DEJAVU_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"


@dataclass(frozen=True)
class FontPaths:
    regular: str = DEJAVU
    bold: str = DEJAVU_BOLD


@lru_cache(maxsize=32)
def _load_font(path: str, size: int) -> ImageFont.ImageFont:
    try:
        return ImageFont.truetype(path, size)
    except OSError:
        logger.debug("Font %s not available; using Pillow default", path)
        return ImageFont.load_default(size)


def build_render_spec(fmt: str, record: EventRecord, template: str) -> RenderSpec:
    if fmt not in OUTPUT_SIZES:
        raise ValueError(f"Unknown format: {fmt!r}")
    width, height = OUTPUT_SIZES[fmt]

    if template == IMAGE_TEMPLATE and record.image_url:
        return RenderSpec(
            format=fmt,
            width=width,
            height=height,
            background_mode="image",
            overlay_visible=True,
            template=template,
        )

    gradient = TEMPLATES.get(template) or TEMPLATES[DEFAULT_GRADIENT_TEMPLATE]
    return RenderSpec(
        format=fmt,
        width=width,
        height=height,
        background_mode="gradient",
        overlay_visible=False,
        template=template,
        gradient=gradient,
    )


def _tracked_length(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont, tracking: float) -> float:
    return draw.textlength(text, font=font) + tracking * max(0, len(text) - 1)


def _wrap_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.ImageFont,
    max_width: float,
    tracking: float = 0.0,
) -> List[str]:
    words = text.split()
    lines: List[str] = []
    cur = ""
    for w in words:
        test = (cur + " " + w).strip()
        if _tracked_length(draw, test, font, tracking) <= max_width:
            cur = test
        else:
            if cur:
                lines.append(cur)
            cur = w
    if cur:
        lines.append(cur)
    return lines


def _draw_tracked(
    draw: ImageDraw.ImageDraw,
    x: float,
    y: float,
    text: str,
    font: ImageFont.ImageFont,
    fill: Tuple[int, int, int, int],
    tracking: float,
) -> None:
    if not tracking:
        draw.text((x, y), text, fill=fill, font=font)
        return
    for ch in text:
        draw.text((x, y), ch, fill=fill, font=font)
        x += draw.textlength(ch, font=font) + tracking


@dataclass
class _TextBlock:
    lines: List[str]
    font: ImageFont.ImageFont
    size: int
    fill: Tuple[int, int, int, int]
    tracking: float = 0.0

    @property
    def line_h(self) -> int:
        return int(round(self.size * LINE_HEIGHT))

    @property
    def height(self) -> int:
        return self.line_h * len(self.lines)


def _white(opacity: float) -> Tuple[int, int, int, int]:
    return (255, 255, 255, int(round(255 * opacity)))


def _draw_text_blocks(layer: Image.Image, spec: RenderSpec, record: EventRecord, fonts: FontPaths) -> None:
    d = ImageDraw.Draw(layer)
    small, large = FONT_SIZES[spec.format]
    font_small = _load_font(fonts.bold, small)
    font_body = _load_font(fonts.regular, small)
    font_title = _load_font(fonts.bold, large)
    max_width = spec.width - 2 * PADDING
    tracking = small * DATE_TRACKING

    blocks = [
        _TextBlock(
            _wrap_text(d, record.formatted_date.upper(), font_small, max_width, tracking),
            font_small, small, _white(0.9), tracking,
        ),
        _TextBlock(_wrap_text(d, record.title, font_title, max_width), font_title, large, _white(1.0)),
        _TextBlock(_wrap_text(d, record.formatted_time, font_body, max_width), font_body, small, _white(0.8)),
    ]
    blocks = [b for b in blocks if b.lines]

    total_h = sum(b.height for b in blocks) + BLOCK_GAP * max(0, len(blocks) - 1)
    y = max(PADDING, (spec.height - total_h) / 2)
    for block in blocks:
        for line in block.lines:
            line_w = _tracked_length(d, line, block.font, block.tracking)
            x = (spec.width - line_w) / 2
            _draw_tracked(d, x, y, line, block.font, block.fill, block.tracking)
            y += block.line_h
        y += BLOCK_GAP


def _draw_brand_label(layer: Image.Image, label: str, fonts: FontPaths) -> None:
    if not label:
        return
    d = ImageDraw.Draw(layer)
    font = _load_font(fonts.bold, BRAND_FONT_SIZE)
    text_w = d.textlength(label, font=font)
    text_h = int(round(BRAND_FONT_SIZE * LINE_HEIGHT))

    right = layer.width - BRAND_MARGIN_RIGHT
    bottom = layer.height - BRAND_MARGIN_BOTTOM
    left = right - text_w - 2 * BRAND_PAD_X
    top = bottom - text_h - 2 * BRAND_PAD_Y
    d.rounded_rectangle((left, top, right, bottom), radius=BRAND_RADIUS, fill=BRAND_FILL)

    # center the glyph box, not the advance box, inside the pill
    x0, y0, x1, y1 = d.textbbox((0, 0), label, font=font)
    tx = left + BRAND_PAD_X + (text_w - (x1 - x0)) / 2 - x0
    ty = top + BRAND_PAD_Y + (text_h - (y1 - y0)) / 2 - y0
    d.text((tx, ty), label, fill=(255, 255, 255, 255), font=font)


def compose_card(
    spec: RenderSpec,
    record: EventRecord,
    capabilities: RenderCapabilities,
    loader: Optional[ImageLoader] = None,
    fonts: Optional[FontPaths] = None,
    brand_label: str = "lu.ma",
    blur_radius: float = BLUR_RADIUS,
) -> Image.Image:
    """Lay out the share card for ``spec`` and return it as an RGB image of exactly spec.width x spec.height."""
    fonts = fonts or FontPaths()
    size = (spec.width, spec.height)

    if spec.background_mode == "image":
        # must be finished before the card is flattened
        background = render_background(size, record.image_url, capabilities, loader or ImageLoader(), blur_radius)
    else:
        background = diagonal_gradient(size, spec.gradient)

    card = background.convert("RGBA")
    if spec.overlay_visible:
        card = Image.alpha_composite(card, Image.new("RGBA", size, (0, 0, 0, OVERLAY_ALPHA)))

    text_layer = Image.new("RGBA", size, (255, 255, 255, 0))
    _draw_text_blocks(text_layer, spec, record, fonts)
    _draw_brand_label(text_layer, brand_label, fonts)
    card = Image.alpha_composite(card, text_layer)

    return card.convert("RGB")
