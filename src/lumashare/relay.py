from __future__ import annotations
import logging
from typing import Callable, Iterable, List, Optional, Tuple, Type, TypeVar
from urllib.parse import quote

logger = logging.getLogger(__name__)

C = TypeVar("C")
R = TypeVar("R")


class RelayExhausted(Exception):
    """Every candidate failed; ``errors`` keeps (candidate, error) pairs in attempt order."""

    def __init__(self, message: str, errors: List[Tuple[object, BaseException]]):
        super().__init__(message)
        self.errors = errors

    @property
    def last_error(self) -> Optional[BaseException]:
        return self.errors[-1][1] if self.errors else None


def relay_url(template: str, target_url: str) -> str:
    """Substitute the URL-encoded target into a relay template such as ``https://corsproxy.io/?{url}``."""
    encoded = quote(target_url, safe="")
    if "{url}" in template:
        return template.replace("{url}", encoded)
    return template + encoded


def first_success(
    candidates: Iterable[C],
    attempt: Callable[[C], R],
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    exhausted: Type[RelayExhausted] = RelayExhausted,
    what: str = "request",
) -> R:
    """
    Call ``attempt`` on each candidate in order and return the first result.

    Candidates are tried one at a time. A candidate whose attempt raises one of
    ``retry_on`` is logged and skipped; when none succeed ``exhausted`` is raised
    carrying every failure, with the last cause appended to its message.
    """
    errors: List[Tuple[object, BaseException]] = []
    for candidate in candidates:
        try:
            logger.info("Trying %s via %s", what, candidate)
            result = attempt(candidate)
        except retry_on as e:
            logger.warning("Relay %s failed for %s: %s", candidate, what, e)
            errors.append((candidate, e))
            continue
        logger.info("Fetched %s via %s", what, candidate)
        return result

    if not errors:
        raise exhausted(f"No relays configured for {what}", errors)
    raise exhausted(f"All {len(errors)} relays failed for {what}: {errors[-1][1]}", errors)
