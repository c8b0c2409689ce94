from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import yaml

from .background import BLUR_RADIUS, DEFAULT_IMAGE_RELAYS
from .compositor import DEJAVU, DEJAVU_BOLD, FontPaths
from .retriever import DEFAULT_DOCUMENT_RELAYS


@dataclass
class RelayConfig:
    document: List[str] = field(default_factory=lambda: list(DEFAULT_DOCUMENT_RELAYS))
    image: List[str] = field(default_factory=lambda: list(DEFAULT_IMAGE_RELAYS))
    timeout_seconds: float = 15.0
    user_agent: str = "lumashare/1.0"


@dataclass
class RenderConfig:
    blur: str = "auto"               # auto / always / never
    target_user_agent: str = ""
    blur_radius: float = BLUR_RADIUS
    brand_label: str = "lu.ma"


@dataclass
class AppConfig:
    timezone: str = "UTC"
    language: str = "auto"
    template: str = "image"
    output_dir: str = "."
    relays: RelayConfig = field(default_factory=RelayConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    fonts: FontPaths = field(default_factory=FontPaths)


def _timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone in config: {name!r}") from e
    return name


def load_config(path: str) -> AppConfig:
    p = Path(path)
    if not p.exists():
        return AppConfig()
    data: Dict[str, Any] = yaml.safe_load(p.read_text(encoding="utf-8")) or {}

    relays = data.get("relays", {})
    render = data.get("render", {})
    fonts = data.get("fonts", {})

    return AppConfig(
        timezone=_timezone(str(data.get("timezone", "UTC"))),
        language=str(data.get("language", "auto")),
        template=str(data.get("template", "image")),
        output_dir=str(data.get("output_dir", ".")),
        relays=RelayConfig(
            document=list(relays.get("document", DEFAULT_DOCUMENT_RELAYS)),
            image=list(relays.get("image", DEFAULT_IMAGE_RELAYS)),
            timeout_seconds=float(relays.get("timeout_seconds", 15)),
            user_agent=str(relays.get("user_agent", "lumashare/1.0")),
        ),
        render=RenderConfig(
            blur=str(render.get("blur", "auto")),
            target_user_agent=str(render.get("target_user_agent", "")),
            blur_radius=float(render.get("blur_radius", BLUR_RADIUS)),
            brand_label=str(render.get("brand_label", "lu.ma")),
        ),
        fonts=FontPaths(
            regular=str(fonts.get("regular", DEJAVU)),
            bold=str(fonts.get("bold", DEJAVU_BOLD)),
        ),
    )
