"""
Statusboard renderer (clock + weather + day cycle + agenda + transit + art).
Each call gathers fresh inputs, composes the layout and rasterizes it.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Optional

import arrow
from arrow.locales import get_locale
from tzlocal import get_localzone

from statusframe.agenda import agenda_items
from statusframe.layout import LayoutConstants, PanelLayout, compose_layout
from statusframe.models import DashboardView, TransitSummary
from statusframe.render import rasterize, to_svg
from statusframe.sources import DashboardData, SourceStatus, gather_sources

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"
DEFAULT_ROTATION = 90
ROTATIONS = (0, 90, 180, 270)
LOCALE_ALIASES = {
    "deutsch": "de",
    "german": "de",
    "english": "en",
    "francais": "fr",
    "français": "fr",
    "french": "fr",
}


def _get_system_tz():
    try:
        return get_localzone()
    except Exception:
        logger.warning("Could not determine the system timezone, using UTC")
        return None


def _normalize_locale(value) -> str:
    if not value:
        return DEFAULT_LOCALE
    lower = str(value).strip().lower()
    locale = LOCALE_ALIASES.get(lower, lower)
    try:
        get_locale(locale)
    except ValueError:
        logger.warning("Unsupported locale %r, falling back to %s", value, DEFAULT_LOCALE)
        return DEFAULT_LOCALE
    return locale


def _normalize_rotation(value) -> int:
    try:
        rotation = int(value) % 360
    except (TypeError, ValueError):
        rotation = None
    if rotation not in ROTATIONS:
        logger.warning("Unsupported rotation %r, using %d", value, DEFAULT_ROTATION)
        return DEFAULT_ROTATION
    return rotation


def _tz_name(tzinfo) -> str:
    if tzinfo is None:
        return "UTC"
    return getattr(tzinfo, "key", None) or getattr(tzinfo, "zone", None) or str(tzinfo)


class StatusBoard:
    def __init__(self, config: Dict):
        display = config.get("display", {}) or {}
        self.config = config
        self.tzinfo = display.get("timezone") or _get_system_tz() or "UTC"
        self.tzname = _tz_name(self.tzinfo)
        self.locale = _normalize_locale(display.get("locale"))
        self.font_family = display.get("font_family")
        self.grayscale = bool(display.get("grayscale", True))
        self.gray_levels = int(display.get("gray_levels", 0) or 0)
        rotation = _normalize_rotation(display.get("rotation", DEFAULT_ROTATION))
        self.constants = replace(LayoutConstants(), rotation=rotation)

    def now(self) -> arrow.Arrow:
        return arrow.now(self.tzinfo)

    def gather(self, now: arrow.Arrow) -> DashboardData:
        data = gather_sources(self.config, now, self.tzname)
        self._log_statuses(data.statuses)
        return data

    def _log_statuses(self, statuses: Dict[str, SourceStatus]) -> None:
        for name, status in sorted(statuses.items()):
            if status is SourceStatus.FAILED:
                logger.warning("Source %s failed, using placeholder", name)
            elif status is SourceStatus.MISSING_KEY:
                logger.warning("Source %s skipped: API key missing", name)
            elif status is SourceStatus.NOT_CONFIGURED:
                logger.debug("Source %s not configured", name)

    def build_view(self, now: arrow.Arrow, data: DashboardData) -> DashboardView:
        return DashboardView(
            now=now,
            agenda=agenda_items(data.feeds, now, self.tzinfo, self.locale),
            weather=data.weather,
            landmarks=data.landmarks,
            transit=TransitSummary(departures=tuple(data.departures), bike_counts=tuple(data.bike_counts)),
            art=list(data.art),
            weather_icon=data.weather_icon,
            locale=self.locale,
        )

    def build_layout(self, now: Optional[arrow.Arrow] = None, data: Optional[DashboardData] = None) -> PanelLayout:
        now = (now or self.now()).to(self.tzinfo)
        if data is None:
            data = self.gather(now)
        return compose_layout(self.build_view(now, data), self.constants)

    def generate_svg(self, now: Optional[arrow.Arrow] = None, data: Optional[DashboardData] = None) -> str:
        return to_svg(self.build_layout(now, data), self.font_family)

    def generate_image(self, now: Optional[arrow.Arrow] = None, data: Optional[DashboardData] = None) -> bytes:
        layout = self.build_layout(now, data)
        return rasterize(layout, self.font_family, grayscale=self.grayscale, gray_levels=self.gray_levels)
