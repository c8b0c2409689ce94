from zoneinfo import ZoneInfo

from lumashare.formatter import (
    format_event_date,
    format_event_datetime,
    format_event_time,
    resolve_locale,
)

UTC = ZoneInfo("UTC")
START = "2025-03-15T18:00:00.000Z"
END = "2025-03-15T20:30:00.000Z"


def test_explicit_languages_map_to_region_locales():
    assert str(resolve_locale("es")) == "es_ES"
    assert str(resolve_locale("en")) == "en_US"
    assert str(resolve_locale("pt")) == "pt_BR"


def test_auto_follows_process_locale(monkeypatch):
    monkeypatch.delenv("LANGUAGE", raising=False)
    monkeypatch.setenv("LC_ALL", "pt_BR.UTF-8")

    assert str(resolve_locale("auto")) == "pt_BR"


def test_auto_falls_back_to_en_us_without_locale_env(monkeypatch):
    for name in ("LANGUAGE", "LC_ALL", "LC_TIME", "LANG"):
        monkeypatch.delenv(name, raising=False)

    assert str(resolve_locale("auto")) == "en_US"


def test_full_date_in_english_and_spanish():
    assert format_event_date(START, "en", UTC) == "Saturday, March 15, 2025"
    assert format_event_date(START, "es", UTC) == "sábado, 15 de marzo de 2025"


def test_time_range_uses_separator_and_locale_clock():
    assert format_event_time(START, END, "es", UTC) == "18:00 - 20:30"
    assert format_event_time(START, END, "pt", UTC) == "18:00 - 20:30"

    english = format_event_time(START, None, "en", UTC)
    assert english.startswith("6:00")
    assert english.endswith("PM")


def test_instants_are_shown_in_configured_timezone():
    tz = ZoneInfo("America/New_York")
    assert format_event_time(START, None, "es", tz) == "14:00"
    # late UTC evening is already the next day in Tokyo
    assert format_event_date("2025-03-15T22:00:00Z", "en", ZoneInfo("Asia/Tokyo")) == "Sunday, March 16, 2025"


def test_naive_instants_are_taken_as_local_time():
    tz = ZoneInfo("America/New_York")
    assert format_event_time("2025-03-15T18:00:00", None, "es", tz) == "18:00"


def test_missing_or_unparsable_input_yields_empty_strings():
    assert format_event_datetime(None, None, "en", UTC) == ("", "")
    assert format_event_datetime("", END, "en", UTC) == ("", "")
    assert format_event_datetime("not a date", None, "en", UTC) == ("", "")


def test_formatting_is_repeatable():
    first = format_event_datetime(START, END, "es", UTC)
    for _ in range(3):
        assert format_event_datetime(START, END, "es", UTC) == first


def test_auto_treats_c_locale_as_unset(monkeypatch):
    for name in ("LANGUAGE", "LC_ALL", "LC_TIME"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LANG", "C.UTF-8")

    assert str(resolve_locale("auto")) == "en_US"


def test_instants_without_a_date_are_rejected():
    assert format_event_datetime("18:00", None, "en", UTC) == ("", "")
    assert format_event_datetime("March 15", None, "en", UTC) == ("", "")
