from __future__ import annotations
import re
from typing import Optional
from urllib.parse import urlsplit

ACCEPTED_HOSTS = ("lu.ma", "luma.com")
SOURCE_URL = "https://lu.ma/{event_id}"

_EVENT_ID_RE = re.compile(r"[A-Za-z0-9_-]+")


class InvalidLink(ValueError):
    pass


def is_valid_host(host: str) -> bool:
    host = (host or "").lower()
    return any(accepted in host for accepted in ACCEPTED_HOSTS)


def extract_event_id(link: str) -> Optional[str]:
    """
    Return the event id for links like lu.ma/abc123, https://luma.com/abc123
    or the city-prefixed form luma.com/sf/abc123; None for anything else.
    """
    link = (link or "").strip()
    if not link:
        return None
    if not link.startswith("http"):
        link = "https://" + link

    try:
        parts = urlsplit(link)
        host = parts.hostname or ""
    except ValueError:
        return None

    if not is_valid_host(host):
        return None

    segments = [s for s in parts.path.split("/") if s]
    if not segments:
        return None

    candidate = segments[-1]
    if _EVENT_ID_RE.fullmatch(candidate):
        return candidate
    return None


def require_event_id(link: str) -> str:
    event_id = extract_event_id(link)
    if event_id is None:
        raise InvalidLink(
            "Invalid link. Use a lu.ma or luma.com link (e.g. lu.ma/abc123)"
            if (link or "").strip()
            else "Please enter a Luma link"
        )
    return event_id


def source_url(event_id: str) -> str:
    return SOURCE_URL.format(event_id=event_id)
