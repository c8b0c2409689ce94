import re
from io import BytesIO

import pytest
import responses
from PIL import Image

from lumashare import background
from lumashare.background import (
    FALLBACK_GRADIENT,
    ImageLoader,
    cover_rect,
    diagonal_gradient,
    render_background,
)
from lumashare.capabilities import RenderCapabilities
from lumashare.models import GradientStop
from lumashare.relay import RelayExhausted

BLUR = RenderCapabilities(supports_blur=True)
NO_BLUR = RenderCapabilities(supports_blur=False)


class StubLoader:
    def __init__(self, img=None, error=None):
        self.img = img
        self.error = error
        self.requested = []

    def load(self, image_url):
        self.requested.append(image_url)
        if self.error is not None:
            raise self.error
        return self.img


def _close(actual, expected, tolerance=4):
    return all(abs(a - e) <= tolerance for a, e in zip(actual, expected))


def test_cover_rect_wide_image_fills_height_and_centers_horizontally():
    x, y, w, h = cover_rect(2000, 1000, 1080, 1920, overscan=1.0)
    assert (x, y, w, h) == (-1380.0, 0.0, 3840.0, 1920.0)


def test_cover_rect_tall_image_fills_width_and_pins_top():
    x, y, w, h = cover_rect(1000, 4000, 1080, 1920, overscan=1.0)
    assert (x, y, w, h) == (0.0, 0.0, 1080.0, 4320.0)


def test_cover_rect_overscan_grows_around_fitted_center():
    x, y, w, h = cover_rect(1000, 4000, 1080, 1920)
    assert w == pytest.approx(1188.0)
    assert h == pytest.approx(4752.0)
    assert x == pytest.approx(-54.0)
    assert y == pytest.approx(-216.0)


def test_diagonal_gradient_runs_from_top_left_to_bottom_right():
    img = diagonal_gradient((1080, 1350), FALLBACK_GRADIENT)

    assert img.size == (1080, 1350)
    assert _close(img.getpixel((0, 0)), (0x66, 0x7E, 0xEA))
    assert _close(img.getpixel((1079, 1349)), (0x76, 0x4B, 0xA2))


def test_diagonal_gradient_bands_are_perpendicular_to_the_diagonal():
    black_to_white = (GradientStop(0.0, (0, 0, 0)), GradientStop(1.0, (255, 255, 255)))
    img = diagonal_gradient((1080, 1920), black_to_white)

    # (1079, 0) and (0, 607) sit on the same band of a 1080x1920 canvas
    top_right = img.getpixel((1079, 0))
    left_edge = img.getpixel((0, 607))
    assert _close(top_right, (61, 61, 61))
    assert _close(left_edge, top_right)


def test_unloadable_image_falls_back_to_gradient():
    loader = StubLoader(error=RelayExhausted("All 1 relays failed", [("relay", OSError("404"))]))

    img = render_background((1080, 1920), "https://img.test/missing.png", BLUR, loader)

    assert img.size == (1080, 1920)
    assert img.tobytes() == diagonal_gradient((1080, 1920), FALLBACK_GRADIENT).tobytes()
    assert img.getbbox() is not None


def test_loaded_image_covers_whole_canvas_with_blur(monkeypatch):
    radii = []
    real_blur = background.ImageFilter.GaussianBlur

    def recording_blur(radius):
        radii.append(radius)
        return real_blur(radius)

    monkeypatch.setattr(background.ImageFilter, "GaussianBlur", recording_blur)
    loader = StubLoader(img=Image.new("RGB", (800, 400), (200, 40, 40)))

    img = render_background((1080, 1350), "https://img.test/cover.png", BLUR, loader)

    assert radii == [22]
    assert img.size == (1080, 1350)
    for point in [(0, 0), (1079, 0), (540, 675), (0, 1349), (1079, 1349)]:
        assert _close(img.getpixel(point), (200, 40, 40))


def test_no_blur_platform_gets_dark_wash_instead(monkeypatch):
    def forbidden_blur(radius):
        raise AssertionError("blur must not be used")

    monkeypatch.setattr(background.ImageFilter, "GaussianBlur", forbidden_blur)
    loader = StubLoader(img=Image.new("RGB", (800, 400), (200, 40, 40)))

    img = render_background((1080, 1920), "https://img.test/cover.png", NO_BLUR, loader)

    assert _close(img.getpixel((540, 960)), (140, 28, 28), tolerance=2)


def _png_bytes(size=(60, 40), color=(10, 120, 200)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


@responses.activate
def test_image_loader_goes_through_relay_and_decodes():
    responses.add(responses.GET, re.compile(r"https://img-relay\.test/.*"), body=_png_bytes(), status=200)

    img = ImageLoader(relays=["https://img-relay.test/?{url}"]).load("https://images.lumacdn.com/a.png")

    assert img.size == (60, 40)
    assert img.mode == "RGB"
    assert "https%3A%2F%2Fimages.lumacdn.com%2Fa.png" in responses.calls[0].request.url


@responses.activate
def test_image_loader_treats_undecodable_body_as_relay_failure():
    responses.add(responses.GET, re.compile(r"https://img-relay\.test/.*"), body=b"<html>blocked</html>", status=200)
    responses.add(responses.GET, re.compile(r"https://img-backup\.test/.*"), body=_png_bytes(), status=200)

    img = ImageLoader(relays=["https://img-relay.test/?{url}", "https://img-backup.test/?{url}"]).load(
        "https://images.lumacdn.com/a.png"
    )

    assert img.size == (60, 40)


@responses.activate
def test_render_background_with_failing_relay_still_paints():
    responses.add(responses.GET, re.compile(r"https://img-relay\.test/.*"), status=404)

    loader = ImageLoader(relays=["https://img-relay.test/?{url}"])
    img = render_background((1080, 1350), "https://images.lumacdn.com/a.png", BLUR, loader)

    assert _close(img.getpixel((0, 0)), (0x66, 0x7E, 0xEA))
