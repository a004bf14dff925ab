import arrow
import pytest
import requests

from statusframe import sources
from statusframe.circadian import DEFAULT_LANDMARKS
from statusframe.sources import (
    HttpSettings,
    SourceStatus,
    fetch_art_slot,
    fetch_bike_counts,
    fetch_calendar_feed,
    fetch_transit,
    fetch_twilight,
    fetch_weather,
    gather_sources,
    minutes_until,
    parse_gbfs_counts,
    parse_open_meteo,
    parse_twilight,
)

from .conftest import PARIS, SAMPLE_FEED, FakeResponse

HTTP = HttpSettings(timeout=1, user_agent="test")
WEATHER_CFG = {"latitude": 48.85, "longitude": 2.35, "icon_base_url": "https://icons.example"}

OPEN_METEO = {
    "current": {"temperature_2m": 3.4, "weather_code": 61},
    "daily": {"precipitation_probability_max": [80], "precipitation_sum": [4.2]},
}

TWILIGHT = {
    "status": "OK",
    "results": {
        "sunrise": "2025-01-01T07:44:00+00:00",
        "sunset": "2025-01-01T16:04:00+00:00",
        "nautical_twilight_begin": "2025-01-01T06:26:00+00:00",
        "nautical_twilight_end": "2025-01-01T17:22:00+00:00",
    },
}


@pytest.fixture
def offline(monkeypatch):
    def refuse(*args, **kwargs):
        raise requests.ConnectionError("network disabled")

    monkeypatch.setattr(sources.requests, "get", refuse)


def _serve(monkeypatch, routes):
    calls = []

    def fake_get(url, params=None, headers=None, timeout=None):
        calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        for prefix, response in routes.items():
            if url.startswith(prefix):
                return response
        raise requests.ConnectionError(url)

    monkeypatch.setattr(sources.requests, "get", fake_get)
    return calls


def test_parse_open_meteo():
    reading = parse_open_meteo(OPEN_METEO)
    assert reading.temperature_c == pytest.approx(3.4)
    assert reading.weather_code == 61
    assert reading.precip_probability == 80
    assert reading.precip_sum_mm == pytest.approx(4.2)
    assert not parse_open_meteo({}).available


def test_fetch_weather_sends_location_and_timezone(monkeypatch):
    calls = _serve(monkeypatch, {sources.OPEN_METEO_URL: FakeResponse(OPEN_METEO)})
    result = fetch_weather(WEATHER_CFG, HTTP, PARIS)
    assert result.ok
    assert result.value.weather_code == 61
    assert calls[0]["params"]["timezone"] == PARIS
    assert calls[0]["headers"]["User-Agent"] == "test"
    assert calls[0]["timeout"] == 1


def test_weather_failure_yields_error_reading(offline):
    result = fetch_weather(WEATHER_CFG, HTTP, PARIS)
    assert result.status is SourceStatus.FAILED
    assert result.value.temperature_c == "ERR"


def test_http_error_status_is_a_failure(monkeypatch):
    _serve(monkeypatch, {sources.OPEN_METEO_URL: FakeResponse(OPEN_METEO, status=503)})
    assert fetch_weather(WEATHER_CFG, HTTP, PARIS).status is SourceStatus.FAILED


def test_parse_twilight_converts_to_local_clock():
    marks = parse_twilight(TWILIGHT, PARIS).as_strings()
    assert marks == {
        "sunrise": "08:44",
        "sunset": "17:04",
        "nautical_twilight_begin": "07:26",
        "nautical_twilight_end": "18:22",
    }
    with pytest.raises(ValueError):
        parse_twilight({"status": "INVALID_REQUEST", "results": {}}, PARIS)


def test_twilight_failure_uses_defaults(offline):
    now = arrow.Arrow(2025, 1, 1, 10, tzinfo=PARIS)
    result = fetch_twilight(WEATHER_CFG, HTTP, now)
    assert result.status is SourceStatus.FAILED
    assert result.value == DEFAULT_LANDMARKS


def test_minutes_until():
    now = arrow.Arrow(2025, 1, 1, 10, 0, tzinfo="UTC")
    deps = [
        {"when": now.shift(minutes=5).isoformat()},
        {"when": None, "plannedWhen": now.shift(seconds=90).isoformat()},
        {"when": now.shift(minutes=-2).isoformat()},
        {"when": now.shift(minutes=40).isoformat()},
        {"when": now.shift(minutes=20).isoformat()},
        {"when": "not a date"},
        {},
    ]
    assert minutes_until(deps, now) == (1, 5, 20)


def test_transit_not_configured():
    assert fetch_transit({}, HTTP, arrow.utcnow()).status is SourceStatus.NOT_CONFIGURED


def test_transit_missing_key(monkeypatch):
    monkeypatch.delenv("TRANSIT_API_KEY", raising=False)
    cfg = {"departures_url": "https://transit.example/departures", "api_key_env": "TRANSIT_API_KEY"}
    result = fetch_transit(cfg, HTTP, arrow.utcnow())
    assert result.status is SourceStatus.MISSING_KEY
    assert result.value == ()


def test_transit_sends_bearer_key(monkeypatch):
    now = arrow.utcnow()
    monkeypatch.setenv("TRANSIT_API_KEY", "s3cret")
    payload = {"departures": [{"when": now.shift(minutes=3, seconds=10).isoformat()}]}
    calls = _serve(monkeypatch, {"https://transit.example": FakeResponse(payload)})
    cfg = {"departures_url": "https://transit.example/departures", "api_key_env": "TRANSIT_API_KEY"}
    result = fetch_transit(cfg, HTTP, now)
    assert result.value == (3,)
    assert calls[0]["headers"]["Authorization"] == "Bearer s3cret"


def test_transit_rejects_unexpected_payload(monkeypatch):
    _serve(monkeypatch, {"https://transit.example": FakeResponse("oops")})
    result = fetch_transit({"departures_url": "https://transit.example/d"}, HTTP, arrow.utcnow())
    assert result.status is SourceStatus.FAILED


def test_gbfs_counts():
    data = {"data": {"stations": [
        {"station_id": "12", "num_bikes_available": 4},
        {"station_id": 7, "num_bikes_available": 0},
    ]}}
    stations = [{"id": 7, "name": "Gare"}, {"id": "12", "name": "Place"}, {"id": "99"}]
    assert parse_gbfs_counts(data, stations) == (("Gare", 0), ("Place", 4), ("99", None))


def test_bike_counts_limited_to_two_stations(monkeypatch):
    data = {"data": {"stations": [{"station_id": str(i), "num_bikes_available": i} for i in range(5)]}}
    _serve(monkeypatch, {"https://gbfs.example": FakeResponse(data)})
    cfg = {"status_url": "https://gbfs.example/station_status.json",
           "stations": [{"id": "1", "name": "A"}, {"id": "2", "name": "B"}, {"id": "3", "name": "C"}]}
    assert fetch_bike_counts(cfg, HTTP).value == (("A", 1), ("B", 2))


def test_bike_failure_keeps_station_names(offline):
    cfg = {"status_url": "https://gbfs.example/s.json", "stations": [{"id": "1", "name": "A"}]}
    result = fetch_bike_counts(cfg, HTTP)
    assert result.status is SourceStatus.FAILED
    assert result.value == (("A", None),)


def test_calendar_feed_from_file(tmp_path):
    path = tmp_path / "timetable.ics"
    path.write_text(SAMPLE_FEED, encoding="utf-8")
    assert fetch_calendar_feed({"file": str(path)}, HTTP).value == SAMPLE_FEED
    assert fetch_calendar_feed({}, HTTP).status is SourceStatus.NOT_CONFIGURED
    assert fetch_calendar_feed({"file": str(tmp_path / "missing.ics")}, HTTP).status is SourceStatus.FAILED


def test_art_slot_from_file_and_url(tmp_path, monkeypatch):
    path = tmp_path / "poster.jpg"
    path.write_bytes(b"\xff\xd8jpeg")
    slot = fetch_art_slot({"name": "poster", "file": str(path)}, HTTP).value
    assert slot.available
    assert slot.mime_type == "image/jpeg"

    _serve(monkeypatch, {"https://art.example": FakeResponse(content=b"png", headers={"Content-Type": "image/png; q=1"})})
    slot = fetch_art_slot({"name": "remote", "url": "https://art.example/a"}, HTTP).value
    assert (slot.data, slot.mime_type) == (b"png", "image/png")


def test_gather_sources_offline(offline, offline_config):
    offline_config["calendar"]["feeds"] = [{"url": "https://cal.example/a.ics"}]
    offline_config["art"]["slots"] = [{"name": "poster", "url": "https://art.example/p.png"}]
    data = gather_sources(offline_config, arrow.Arrow(2025, 1, 1, 10, tzinfo=PARIS), PARIS)
    assert data.feeds == [None]
    assert not data.weather.available
    assert data.weather_icon is None
    assert data.landmarks == DEFAULT_LANDMARKS
    assert data.departures == ()
    assert [a.available for a in data.art] == [False]
    assert data.statuses["weather"] is SourceStatus.FAILED
    assert data.statuses["weather_icon"] is SourceStatus.NOT_CONFIGURED
    assert data.statuses["twilight"] is SourceStatus.FAILED
    assert data.statuses["transit"] is SourceStatus.NOT_CONFIGURED
    assert data.statuses["calendar[0]"] is SourceStatus.FAILED
    assert data.statuses["art[0]"] is SourceStatus.FAILED


def test_weather_icon_follows_condition(monkeypatch):
    calls = _serve(monkeypatch, {
        sources.OPEN_METEO_URL: FakeResponse(OPEN_METEO),
        "https://icons.example": FakeResponse(content=b"<svg/>"),
    })
    weather, icon = sources._weather_with_icon(WEATHER_CFG, HTTP, PARIS)
    assert icon.value == b"<svg/>"
    assert calls[1]["url"] == "https://icons.example/rain.svg"
