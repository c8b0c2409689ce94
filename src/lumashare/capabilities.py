from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Optional

BLUR_MODES = ("auto", "always", "never")

# Canvas filters are unavailable on these devices; output aimed at them gets a dark wash instead of blur.
_NO_FILTER_PLATFORMS = re.compile(r"iPad|iPhone|iPod")


@dataclass(frozen=True)
class RenderCapabilities:
    supports_blur: bool


def detect_capabilities(user_agent: Optional[str] = None, mode: str = "auto") -> RenderCapabilities:
    if mode == "always":
        return RenderCapabilities(supports_blur=True)
    if mode == "never":
        return RenderCapabilities(supports_blur=False)
    if mode != "auto":
        raise ValueError(f"Unknown blur mode: {mode!r} (expected one of {', '.join(BLUR_MODES)})")
    return RenderCapabilities(supports_blur=not _NO_FILTER_PLATFORMS.search(user_agent or ""))
