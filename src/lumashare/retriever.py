from __future__ import annotations

import logging
from typing import List, Optional

import requests

from .locator import source_url
from .relay import RelayExhausted, first_success, relay_url

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_RELAYS = [
    "https://api.allorigins.win/raw?url={url}",
    "https://corsproxy.io/?{url}",
    "https://api.codetabs.com/v1/proxy?quest={url}",
]

_DOCUMENT_MARKERS = ("<!doctype html", "<html")


class FetchExhausted(RelayExhausted):
    pass


class NotADocument(ValueError):
    pass


def looks_like_html(text: str) -> bool:
    head = text.lower()
    return any(marker in head for marker in _DOCUMENT_MARKERS)


class DocumentRetriever:
    """Fetches an event page through an ordered list of relays; the first usable response wins."""

    def __init__(
        self,
        relays: Optional[List[str]] = None,
        timeout: float = 15,
        user_agent: str = "lumashare/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.relays = list(DEFAULT_DOCUMENT_RELAYS if relays is None else relays)
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent})

    def fetch_document(self, event_id: str) -> str:
        target = source_url(event_id)

        def attempt(relay: str) -> str:
            resp = self._session.get(relay_url(relay, target), timeout=self.timeout)
            resp.raise_for_status()
            text = resp.text
            if not looks_like_html(text):
                raise NotADocument("Invalid response: not HTML")
            return text

        return first_success(
            self.relays,
            attempt,
            retry_on=(requests.RequestException, NotADocument),
            exhausted=FetchExhausted,
            what=f"event page {target}",
        )
