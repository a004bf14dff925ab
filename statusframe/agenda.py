from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Tuple

import arrow

from statusframe.ics import CalendarEvent, parse_feed

logger = logging.getLogger(__name__)

MAX_ITEMS = 3
MAX_TITLE_LENGTH = 25
PLACEHOLDER_TITLE = "NO UPCOMING EVENTS"
PLACEHOLDER_TIME = "—"

# Course-type abbreviations seen in university timetables.
TITLE_ABBREVIATIONS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"\bconf\.?\s*de\.?\s*m[ée]th\b\.?", re.IGNORECASE), "TD"),
]


@dataclass(frozen=True)
class AgendaItem:
    title: str
    time_label: str


PLACEHOLDER_ITEM = AgendaItem(title=PLACEHOLDER_TITLE, time_label=PLACEHOLDER_TIME)


def _capitalize_first(text: str) -> str:
    if not text:
        return text
    return text[0].upper() + text[1:]


def normalize_title(title: str) -> str:
    text = title or ""
    for pattern, replacement in TITLE_ABBREVIATIONS:
        text = pattern.sub(replacement, text)
    return text[:MAX_TITLE_LENGTH]


def effective_end(event: CalendarEvent) -> arrow.Arrow:
    # DTEND of an all-day event is exclusive.
    if event.all_day and event.end is not None:
        return event.end.shift(microseconds=-1000)
    return event.end or event.start


def time_label(event: CalendarEvent, tzinfo, locale: str = "en") -> str:
    start = event.start.to(tzinfo)
    weekday = _capitalize_first(start.format("dddd", locale=locale))
    if event.all_day:
        return f"{weekday} (All day)"
    return f"{weekday} {start.format('HH')}h{start.format('mm')}"


def collect_events(feeds: Iterable[Optional[str]], tzinfo) -> List[CalendarEvent]:
    events: List[CalendarEvent] = []
    for index, text in enumerate(feeds):
        if text is None:
            continue
        try:
            events.extend(parse_feed(text, tzinfo))
        except Exception:
            logger.warning("Skipping calendar feed #%d: parse failed", index, exc_info=True)
    return events


def select_events(
    feeds: Iterable[Optional[str]],
    now: arrow.Arrow,
    tzinfo="UTC",
    limit: int = MAX_ITEMS,
) -> List[CalendarEvent]:
    events = collect_events(feeds, tzinfo)
    upcoming = [e for e in events if not effective_end(e) < now]
    upcoming.sort(key=lambda e: e.start)
    return upcoming[:limit]


def to_agenda_items(events: Iterable[CalendarEvent], tzinfo, locale: str = "en") -> List[AgendaItem]:
    items = [
        AgendaItem(title=normalize_title(e.summary), time_label=time_label(e, tzinfo, locale))
        for e in events
    ]
    return items or [PLACEHOLDER_ITEM]


def agenda_items(
    feeds: Iterable[Optional[str]],
    now: arrow.Arrow,
    tzinfo="UTC",
    locale: str = "en",
) -> List[AgendaItem]:
    return to_agenda_items(select_events(feeds, now, tzinfo), tzinfo, locale)
