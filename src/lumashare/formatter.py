from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from babel import Locale, UnknownLocaleError, default_locale
from babel.dates import format_date, format_time
from dateutil import parser as dtparse

logger = logging.getLogger(__name__)

AUTO = "auto"
FALLBACK_LOCALE = "en_US"

# short language code -> region-qualified locale
LOCALES = {
    "es": "es_ES",
    "en": "en_US",
    "pt": "pt_BR",
}

LANGUAGES = (AUTO, *LOCALES)

TIME_RANGE_SEPARATOR = " - "


def resolve_locale(language: str) -> Locale:
    """Map a language choice to a Babel locale; "auto" follows the process environment."""
    if language == AUTO:
        tag = default_locale("LC_TIME")
        # C and POSIX environments report en_US_POSIX
        if not tag or tag == "en_US_POSIX":
            tag = FALLBACK_LOCALE
    else:
        tag = LOCALES.get(language, language)
    try:
        return Locale.parse(tag)
    except (UnknownLocaleError, ValueError):
        logger.debug("Unknown locale %r, using %s", tag, FALLBACK_LOCALE)
        return Locale.parse(FALLBACK_LOCALE)


def _parse_instant(value: str, tz: ZoneInfo) -> datetime:
    dt = dtparse.isoparse(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def format_event_date(raw_start: Optional[str], language: str, tz: ZoneInfo) -> str:
    if not raw_start:
        return ""
    try:
        start = _parse_instant(raw_start, tz)
        return format_date(start, format="full", locale=resolve_locale(language))
    except (ValueError, OverflowError, TypeError) as e:
        logger.debug("Could not format date %r: %s", raw_start, e)
        return ""


def format_event_time(raw_start: Optional[str], raw_end: Optional[str], language: str, tz: ZoneInfo) -> str:
    if not raw_start:
        return ""
    try:
        locale = resolve_locale(language)
        text = format_time(_parse_instant(raw_start, tz), format="short", tzinfo=tz, locale=locale)
        if raw_end:
            end_text = format_time(_parse_instant(raw_end, tz), format="short", tzinfo=tz, locale=locale)
            text += TIME_RANGE_SEPARATOR + end_text
        return text
    except (ValueError, OverflowError, TypeError) as e:
        logger.debug("Could not format time %r/%r: %s", raw_start, raw_end, e)
        return ""


def format_event_datetime(
    raw_start: Optional[str],
    raw_end: Optional[str],
    language: str,
    tz: ZoneInfo,
) -> Tuple[str, str]:
    return (
        format_event_date(raw_start, language, tz),
        format_event_time(raw_start, raw_end, language, tz),
    )
