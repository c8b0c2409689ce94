from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from PIL import Image

from .background import ImageLoader
from .capabilities import RenderCapabilities
from .compositor import build_render_spec, compose_card
from .config import AppConfig
from .export import RenderFailure, rasterize, save_png
from .extractor import extract_event
from .formatter import LANGUAGES
from .locator import require_event_id
from .models import EventRecord
from .retriever import DocumentRetriever

logger = logging.getLogger(__name__)


class Session:
    """
    Holds the state one editing session works on: the last extracted event plus
    the selected template and language. Changing the language re-formats the
    stored record; changing the template only affects later renders.
    """

    def __init__(
        self,
        cfg: AppConfig,
        capabilities: RenderCapabilities,
        retriever: Optional[DocumentRetriever] = None,
        loader: Optional[ImageLoader] = None,
    ) -> None:
        self.cfg = cfg
        self.capabilities = capabilities
        self.tz = ZoneInfo(cfg.timezone)
        self.retriever = retriever or DocumentRetriever(
            relays=cfg.relays.document,
            timeout=cfg.relays.timeout_seconds,
            user_agent=cfg.relays.user_agent,
        )
        self.loader = loader or ImageLoader(
            relays=cfg.relays.image,
            timeout=cfg.relays.timeout_seconds,
            user_agent=cfg.relays.user_agent,
        )
        self.template = cfg.template
        self.language = cfg.language
        self.record: Optional[EventRecord] = None

    def load(self, link: str) -> EventRecord:
        event_id = require_event_id(link)
        html = self.retriever.fetch_document(event_id)
        self.record = extract_event(html, event_id, language=self.language, tz=self.tz)
        logger.info("Loaded %s: %r", event_id, self.record.title)
        return self.record

    def set_language(self, language: str) -> None:
        if language not in LANGUAGES:
            raise ValueError(f"Unsupported language: {language!r}")
        self.language = language
        if self.record is not None:
            self.record = self.record.with_language(language, self.tz)

    def set_template(self, template: str) -> None:
        self.template = template

    def render(self, fmt: str) -> Image.Image:
        if self.record is None:
            raise RenderFailure("No event loaded")
        spec = build_render_spec(fmt, self.record, self.template)
        try:
            return compose_card(
                spec,
                self.record,
                self.capabilities,
                loader=self.loader,
                fonts=self.cfg.fonts,
                brand_label=self.cfg.render.brand_label,
                blur_radius=self.cfg.render.blur_radius,
            )
        except (OSError, ValueError) as e:
            raise RenderFailure(f"Error generating image: {e}") from e

    def export(self, fmt: str, output_dir: Optional[str] = None) -> Path:
        img = self.render(fmt)
        data = rasterize(img, fmt)
        return save_png(data, output_dir or self.cfg.output_dir, fmt, self.record.event_id)
