"""Turn a fetched event page into an EventRecord.

The page is read by an ordered cascade of strategies, most structured first:

1. schema.org linked data (``<script type="application/ld+json">``)
2. the embedded Next.js application state (``<script id="__NEXT_DATA__">``)
3. Open Graph tags and the document ``<title>``
4. a raw-text regex scan of the HTML

Each strategy is a pure function of the document returning a PartialEvent.
Results are merged left to right and a field set by an earlier strategy is
never overwritten. A strategy that blows up is logged and skipped.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup

from .formatter import AUTO
from .models import EventRecord, PartialEvent

logger = logging.getLogger(__name__)

_START_AT_RE = re.compile(r'"start_at":"([^"]+)"')
_COVER_RE = re.compile(r"images\.lumacdn\.com[^\"'\s]+event-covers[^\"'\s]+")


@dataclass(frozen=True)
class Document:
    text: str
    soup: BeautifulSoup

    @classmethod
    def parse(cls, text: str) -> "Document":
        return cls(text=text, soup=BeautifulSoup(text, "html.parser"))


Strategy = Callable[[Document], PartialEvent]


def _clean(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = " ".join(value.split())
    return value or None


def _is_event_type(value: Any) -> bool:
    if isinstance(value, list):
        return "Event" in value
    return value == "Event"


def _iter_linked_objects(data: Any) -> Iterator[dict]:
    if isinstance(data, list):
        for item in data:
            yield from _iter_linked_objects(item)
    elif isinstance(data, dict):
        yield data
        graph = data.get("@graph")
        if isinstance(graph, list):
            yield from _iter_linked_objects(graph)


def _first_image(value: Any) -> Optional[str]:
    if isinstance(value, list):
        return _first_image(value[0]) if value else None
    if isinstance(value, dict):
        return _clean(value.get("url"))
    return _clean(value)


def _linked_data_location(value: Any) -> Optional[str]:
    if not isinstance(value, dict):
        return None
    name = _clean(value.get("name"))
    if name:
        return name
    address = value.get("address")
    if isinstance(address, dict):
        return _clean(address.get("addressLocality"))
    return None


def from_linked_data(doc: Document) -> PartialEvent:
    for tag in doc.soup.select('script[type="application/ld+json"]'):
        try:
            data = json.loads(tag.string or "")
        except ValueError as e:
            logger.warning("Could not parse JSON-LD block: %s", e)
            continue

        for obj in _iter_linked_objects(data):
            if not _is_event_type(obj.get("@type")):
                continue
            return PartialEvent(
                title=_clean(obj.get("name")),
                start=_clean(obj.get("startDate")),
                end=_clean(obj.get("endDate")),
                image=_first_image(obj.get("image")),
                location=_linked_data_location(obj.get("location")),
            )
    return PartialEvent()


def from_app_state(doc: Document) -> PartialEvent:
    tag = doc.soup.find("script", id="__NEXT_DATA__")
    if tag is None:
        return PartialEvent()

    data = json.loads(tag.string or "")
    page_props = (data.get("props") or {}).get("pageProps") or {}
    event = page_props.get("event")
    if not isinstance(event, dict):
        return PartialEvent()

    geo = event.get("geo_address_info")
    city = _clean(geo.get("city")) if isinstance(geo, dict) else None
    return PartialEvent(
        title=_clean(event.get("name")),
        start=_clean(event.get("start_at")),
        end=_clean(event.get("end_at")),
        image=_clean(event.get("cover_url")),
        location=city or _clean(event.get("location")),
    )


def _meta_content(soup: BeautifulSoup, key: str) -> Optional[str]:
    tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
    if tag is None:
        return None
    return _clean(tag.get("content"))


def from_social_meta(doc: Document) -> PartialEvent:
    title = _meta_content(doc.soup, "og:title")
    if not title and doc.soup.title is not None:
        title = _clean(doc.soup.title.get_text())
    return PartialEvent(title=title, image=_meta_content(doc.soup, "og:image"))


def from_raw_text(doc: Document) -> PartialEvent:
    # Best effort only: tied to the current page markup.
    start_match = _START_AT_RE.search(doc.text)
    cover_match = _COVER_RE.search(doc.text)
    return PartialEvent(
        start=start_match.group(1) if start_match else None,
        image=f"https://{cover_match.group(0)}" if cover_match else None,
    )


STRATEGIES: List[Strategy] = [
    from_linked_data,
    from_app_state,
    from_social_meta,
    from_raw_text,
]


def run_cascade(doc: Document, strategies: Optional[List[Strategy]] = None) -> PartialEvent:
    merged = PartialEvent()
    for strategy in STRATEGIES if strategies is None else strategies:
        if merged.is_complete():
            break
        try:
            found = strategy(doc)
        except Exception as e:
            logger.warning("Extraction stage %s failed; continuing: %s", strategy.__name__, e)
            continue
        logger.debug("Stage %s found %s", strategy.__name__, found)
        merged = merged.merge(found)
    return merged


def extract_event(
    html: str,
    event_id: str,
    language: str = AUTO,
    tz: ZoneInfo = ZoneInfo("UTC"),
) -> EventRecord:
    partial = run_cascade(Document.parse(html))
    if not partial.title:
        logger.info("No title found for %s; using default", event_id)
    return EventRecord.from_partial(partial, event_id=event_id, language=language, tz=tz)
