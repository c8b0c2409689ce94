from __future__ import annotations
from dataclasses import dataclass, fields, replace
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from .formatter import format_event_datetime

DEFAULT_TITLE = "Event"

# format -> (width, height) in pixels
OUTPUT_SIZES = {
    "story": (1080, 1920),
    "post": (1080, 1350),
}


@dataclass(frozen=True)
class PartialEvent:
    """What a single extraction stage managed to find; any field may be missing."""
    title: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None
    image: Optional[str] = None
    location: Optional[str] = None

    def merge(self, later: "PartialEvent") -> "PartialEvent":
        # first non-empty wins per field
        values = {}
        for f in fields(self):
            mine = getattr(self, f.name)
            values[f.name] = mine if mine else getattr(later, f.name)
        return PartialEvent(**values)

    def is_complete(self) -> bool:
        return all(getattr(self, f.name) for f in fields(self))


@dataclass(frozen=True)
class EventRecord:
    event_id: str
    title: str
    raw_start: Optional[str]
    raw_end: Optional[str]
    formatted_date: str
    formatted_time: str
    image_url: str
    location: Optional[str] = None

    @classmethod
    def from_partial(cls, partial: PartialEvent, event_id: str, language: str, tz: ZoneInfo) -> "EventRecord":
        date_text, time_text = format_event_datetime(partial.start, partial.end, language, tz)
        return cls(
            event_id=event_id,
            title=(partial.title or "").strip() or DEFAULT_TITLE,
            raw_start=partial.start,
            raw_end=partial.end,
            formatted_date=date_text,
            formatted_time=time_text,
            image_url=partial.image or "",
            location=partial.location,
        )

    def with_language(self, language: str, tz: ZoneInfo) -> "EventRecord":
        date_text, time_text = format_event_datetime(self.raw_start, self.raw_end, language, tz)
        return replace(self, formatted_date=date_text, formatted_time=time_text)


@dataclass(frozen=True)
class GradientStop:
    position: float             # 0.0 .. 1.0 along the gradient line
    color: Tuple[int, int, int]


@dataclass(frozen=True)
class RenderSpec:
    format: str                 # "story" / "post"
    width: int
    height: int
    background_mode: str        # "image" / "gradient"
    overlay_visible: bool
    template: str
    gradient: Tuple[GradientStop, ...] = ()
