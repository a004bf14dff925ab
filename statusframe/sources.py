"""
Remote and local inputs for one render.

Every fetcher returns a SourceResult carrying a usable value (the documented
placeholder when the fetch did not succeed) and a SourceStatus. Fetchers never
raise; callers decide what to log.
"""
from __future__ import annotations

import logging
import math
import mimetypes
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

import arrow
import requests

from statusframe.circadian import DEFAULT_LANDMARKS, TwilightLandmarks
from statusframe.models import ArtSlot, WeatherReading
from statusframe.weather import condition_for_code

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
SUNRISE_SUNSET_URL = "https://api.sunrise-sunset.org/json"
MAX_DEPARTURES = 3
MAX_BIKE_STATIONS = 2

T = TypeVar("T")


class SourceStatus(Enum):
    OK = "ok"
    NOT_CONFIGURED = "not_configured"
    MISSING_KEY = "missing_key"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceResult(Generic[T]):
    value: T
    status: SourceStatus = SourceStatus.OK
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status is SourceStatus.OK


@dataclass(frozen=True)
class HttpSettings:
    timeout: float = 8.0
    user_agent: str = "statusframe/1.0"

    @classmethod
    def from_config(cls, cfg: Dict) -> "HttpSettings":
        http = cfg.get("http", {}) or {}
        return cls(
            timeout=float(http.get("timeout", 8)),
            user_agent=str(http.get("user_agent", "statusframe/1.0")),
        )


def _get(url: str, http: HttpSettings, params=None, headers=None) -> requests.Response:
    merged = {"User-Agent": http.user_agent}
    merged.update(headers or {})
    r = requests.get(url, params=params, headers=merged, timeout=http.timeout)
    r.raise_for_status()
    return r


def fetch_text(url: str, http: HttpSettings, **kwargs) -> str:
    return _get(url, http, **kwargs).text


def fetch_json(url: str, http: HttpSettings, **kwargs) -> Any:
    return _get(url, http, **kwargs).json()


def fetch_bytes(url: str, http: HttpSettings, **kwargs) -> Tuple[bytes, str]:
    r = _get(url, http, **kwargs)
    mime = (r.headers.get("Content-Type") or "").split(";", 1)[0].strip()
    return r.content, mime


def read_file_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def read_file_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def _guard(name: str, default: T, fn: Callable[[], SourceResult[T]]) -> SourceResult[T]:
    try:
        return fn()
    except Exception as exc:
        logger.warning("%s fetch failed: %s", name, exc)
        return SourceResult(default, SourceStatus.FAILED, str(exc))


# -------- Calendar --------
def fetch_calendar_feed(feed: Dict, http: HttpSettings) -> SourceResult[Optional[str]]:
    name = feed.get("name") or feed.get("url") or feed.get("file") or "calendar"

    def _run() -> SourceResult[Optional[str]]:
        if feed.get("url"):
            return SourceResult(fetch_text(feed["url"], http))
        if feed.get("file"):
            return SourceResult(read_file_text(feed["file"]))
        return SourceResult(None, SourceStatus.NOT_CONFIGURED, "feed has neither url nor file")

    return _guard(f"calendar[{name}]", None, _run)


# -------- Weather --------
def parse_open_meteo(data: Dict) -> WeatherReading:
    current = data.get("current") or {}
    daily = data.get("daily") or {}
    temp = current.get("temperature_2m")
    code = current.get("weather_code")
    pop = (daily.get("precipitation_probability_max") or [None])[0]
    psum = (daily.get("precipitation_sum") or [None])[0]
    return WeatherReading(
        temperature_c=float(temp) if temp is not None else "ERR",
        weather_code=int(code) if code is not None else None,
        precip_probability=float(pop) if pop is not None else None,
        precip_sum_mm=float(psum) if psum is not None else None,
    )


def fetch_weather(weather_cfg: Dict, http: HttpSettings, tzname: str) -> SourceResult[WeatherReading]:
    def _run() -> SourceResult[WeatherReading]:
        params = {
            "latitude": weather_cfg["latitude"],
            "longitude": weather_cfg["longitude"],
            "current": "temperature_2m,weather_code",
            "daily": "precipitation_probability_max,precipitation_sum",
            "forecast_days": 1,
            "timezone": tzname,
        }
        return SourceResult(parse_open_meteo(fetch_json(OPEN_METEO_URL, http, params=params)))

    return _guard("weather", WeatherReading(), _run)


def fetch_weather_icon(weather_cfg: Dict, code: Optional[int], http: HttpSettings) -> SourceResult[Optional[bytes]]:
    base = (weather_cfg.get("icon_base_url") or "").rstrip("/")
    if not base:
        return SourceResult(None, SourceStatus.NOT_CONFIGURED)
    icon = condition_for_code(code).icon

    def _run() -> SourceResult[Optional[bytes]]:
        data, _ = fetch_bytes(f"{base}/{icon}.svg", http)
        return SourceResult(data or None)

    return _guard(f"icon[{icon}]", None, _run)


# -------- Twilight --------
def parse_twilight(data: Dict, tzinfo) -> TwilightLandmarks:
    if data.get("status") not in (None, "OK"):
        raise ValueError(f"twilight API status {data.get('status')}")
    results = data["results"]

    def _local(key: str) -> str:
        return arrow.get(results[key]).to(tzinfo).format("HH:mm")

    return TwilightLandmarks.from_strings({
        "sunrise": _local("sunrise"),
        "sunset": _local("sunset"),
        "nautical_twilight_begin": _local("nautical_twilight_begin"),
        "nautical_twilight_end": _local("nautical_twilight_end"),
    })


def fetch_twilight(weather_cfg: Dict, http: HttpSettings, now: arrow.Arrow) -> SourceResult[TwilightLandmarks]:
    def _run() -> SourceResult[TwilightLandmarks]:
        params = {
            "lat": weather_cfg["latitude"],
            "lng": weather_cfg["longitude"],
            "date": now.format("YYYY-MM-DD"),
            "formatted": 0,
        }
        return SourceResult(parse_twilight(fetch_json(SUNRISE_SUNSET_URL, http, params=params), now.tzinfo))

    return _guard("twilight", DEFAULT_LANDMARKS, _run)


# -------- Transit --------
def minutes_until(departures: List[Dict], now: arrow.Arrow, limit: int = MAX_DEPARTURES) -> Tuple[int, ...]:
    minutes = []
    for dep in departures:
        when = dep.get("when") or dep.get("plannedWhen")
        if not when:
            continue
        try:
            delta = (arrow.get(when) - now).total_seconds()
        except (ValueError, TypeError):
            continue
        if delta < 0:
            continue
        minutes.append(int(math.floor(delta / 60.0)))
    minutes.sort()
    return tuple(minutes[:limit])


def fetch_transit(transit_cfg: Dict, http: HttpSettings, now: arrow.Arrow) -> SourceResult[Tuple[int, ...]]:
    url = transit_cfg.get("departures_url")
    if not url:
        return SourceResult((), SourceStatus.NOT_CONFIGURED)
    headers = {}
    key_env = transit_cfg.get("api_key_env")
    if key_env:
        key = os.getenv(key_env)
        if not key:
            return SourceResult((), SourceStatus.MISSING_KEY, f"${key_env} is not set")
        headers["Authorization"] = f"Bearer {key}"

    def _run() -> SourceResult[Tuple[int, ...]]:
        data = fetch_json(url, http, headers=headers)
        if isinstance(data, dict):
            data = data.get("departures", [])
        if not isinstance(data, list):
            raise ValueError("departures payload is not a list")
        return SourceResult(minutes_until(data, now))

    return _guard("transit", (), _run)


# -------- Bike share (GBFS) --------
def _bike_stations(bike_cfg: Dict) -> List[Dict]:
    return list(bike_cfg.get("stations") or [])[:MAX_BIKE_STATIONS]


def parse_gbfs_counts(data: Dict, stations: List[Dict]) -> Tuple[Tuple[str, Optional[int]], ...]:
    rows = (data.get("data") or {}).get("stations") or []
    by_id = {str(r.get("station_id")): r for r in rows if isinstance(r, dict)}
    out = []
    for station in stations:
        row = by_id.get(str(station.get("id")))
        count = row.get("num_bikes_available") if row else None
        out.append((station.get("name") or str(station.get("id")), int(count) if count is not None else None))
    return tuple(out)


def fetch_bike_counts(bike_cfg: Dict, http: HttpSettings) -> SourceResult[Tuple[Tuple[str, Optional[int]], ...]]:
    stations = _bike_stations(bike_cfg)
    placeholder = tuple((s.get("name") or str(s.get("id")), None) for s in stations)
    url = bike_cfg.get("status_url")
    if not url or not stations:
        return SourceResult(placeholder, SourceStatus.NOT_CONFIGURED)

    def _run():
        return SourceResult(parse_gbfs_counts(fetch_json(url, http), stations))

    return _guard("bike", placeholder, _run)


# -------- Art --------
def fetch_art_slot(slot_cfg: Dict, http: HttpSettings) -> SourceResult[ArtSlot]:
    name = slot_cfg.get("name") or "art"
    empty = ArtSlot(name=name)

    def _run() -> SourceResult[ArtSlot]:
        if slot_cfg.get("url"):
            data, mime = fetch_bytes(slot_cfg["url"], http)
            mime = mime or mimetypes.guess_type(slot_cfg["url"])[0] or "image/png"
        elif slot_cfg.get("file"):
            data = read_file_bytes(slot_cfg["file"])
            mime = mimetypes.guess_type(slot_cfg["file"])[0] or "image/png"
        else:
            return SourceResult(empty, SourceStatus.NOT_CONFIGURED)
        return SourceResult(ArtSlot(name=name, data=data or None, mime_type=mime))

    return _guard(f"art[{name}]", empty, _run)


# -------- Gathering --------
@dataclass
class DashboardData:
    feeds: List[Optional[str]] = field(default_factory=list)
    weather: WeatherReading = field(default_factory=WeatherReading)
    weather_icon: Optional[bytes] = None
    landmarks: TwilightLandmarks = DEFAULT_LANDMARKS
    departures: Tuple[int, ...] = ()
    bike_counts: Tuple[Tuple[str, Optional[int]], ...] = ()
    art: List[ArtSlot] = field(default_factory=list)
    statuses: Dict[str, SourceStatus] = field(default_factory=dict)


def _weather_with_icon(weather_cfg: Dict, http: HttpSettings, tzname: str):
    weather = fetch_weather(weather_cfg, http, tzname)
    icon = fetch_weather_icon(weather_cfg, weather.value.weather_code, http)
    return weather, icon


def gather_sources(config: Dict, now: arrow.Arrow, tzname: str) -> DashboardData:
    """Run every fetch concurrently and join before returning."""
    http = HttpSettings.from_config(config)
    feeds_cfg = list((config.get("calendar") or {}).get("feeds") or [])
    weather_cfg = config.get("weather") or {}
    transit_cfg = config.get("transit") or {}
    bike_cfg = transit_cfg.get("bike") or {}
    art_cfg = list((config.get("art") or {}).get("slots") or [])

    workers = max(1, 4 + len(feeds_cfg) + len(art_cfg))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        feed_futures = [executor.submit(fetch_calendar_feed, f, http) for f in feeds_cfg]
        weather_future = executor.submit(_weather_with_icon, weather_cfg, http, tzname)
        twilight_future = executor.submit(fetch_twilight, weather_cfg, http, now)
        transit_future = executor.submit(fetch_transit, transit_cfg, http, now)
        bike_future = executor.submit(fetch_bike_counts, bike_cfg, http)
        art_futures = [executor.submit(fetch_art_slot, s, http) for s in art_cfg]

        feeds = [f.result() for f in feed_futures]
        weather, icon = weather_future.result()
        twilight = twilight_future.result()
        transit = transit_future.result()
        bikes = bike_future.result()
        art = [f.result() for f in art_futures]

    statuses: Dict[str, SourceStatus] = {
        "weather": weather.status,
        "weather_icon": icon.status,
        "twilight": twilight.status,
        "transit": transit.status,
        "bike": bikes.status,
    }
    for i, result in enumerate(feeds):
        statuses[f"calendar[{i}]"] = result.status
    for i, result in enumerate(art):
        statuses[f"art[{i}]"] = result.status

    return DashboardData(
        feeds=[r.value for r in feeds],
        weather=weather.value,
        weather_icon=icon.value,
        landmarks=twilight.value,
        departures=transit.value,
        bike_counts=bikes.value,
        art=[r.value for r in art],
        statuses=statuses,
    )
