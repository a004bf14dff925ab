"""
Tolerant reader for iCalendar feeds: line unfolding and VEVENT extraction.
Only SUMMARY, DTSTART and DTEND are understood; everything else is skipped.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

import arrow

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Event"

_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_DATETIME_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})(Z?)$")


@dataclass(frozen=True)
class CalendarEvent:
    summary: str
    start: arrow.Arrow
    end: Optional[arrow.Arrow] = None
    all_day: bool = False


@dataclass
class _EventDraft:
    summary: Optional[str] = None
    start: Optional[arrow.Arrow] = None
    end: Optional[arrow.Arrow] = None
    all_day: bool = False

    def build(self) -> Optional[CalendarEvent]:
        if self.start is None:
            return None
        return CalendarEvent(
            summary=self.summary if self.summary is not None else DEFAULT_SUMMARY,
            start=self.start,
            end=self.end,
            all_day=self.all_day,
        )


class IcsProperty(Enum):
    SUMMARY = "SUMMARY"
    DTSTART = "DTSTART"
    DTEND = "DTEND"
    OTHER = None

    @classmethod
    def from_name(cls, name: str) -> "IcsProperty":
        try:
            return cls(name.upper())
        except ValueError:
            return cls.OTHER


def unfold_lines(text: str) -> List[str]:
    if not text:
        return []
    raw = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    lines: List[str] = []
    for line in raw:
        if not line:
            continue
        if line[0] in (" ", "\t"):
            # Continuation without a logical line to extend is dropped.
            if lines:
                lines[-1] += line[1:]
            continue
        lines.append(line)
    return lines


def parse_ics_date(value: str, tzinfo) -> Optional[arrow.Arrow]:
    """Parse a DTSTART/DTEND value. Returns None for unsupported forms."""
    value = (value or "").strip()
    m = _DATE_RE.match(value)
    if m:
        y, mo, d = (int(g) for g in m.groups())
        try:
            return arrow.Arrow(y, mo, d, tzinfo=tzinfo)
        except ValueError:
            return None
    m = _DATETIME_RE.match(value)
    if m:
        y, mo, d, hh, mm, ss = (int(g) for g in m.groups()[:6])
        tz = "UTC" if m.group(7) else tzinfo
        try:
            return arrow.Arrow(y, mo, d, hh, mm, ss, tzinfo=tz)
        except ValueError:
            return None
    return None


def is_date_only(value: str) -> bool:
    return bool(_DATE_RE.match((value or "").strip()))


def split_property(line: str):
    """Split a content line into (bare property name, value). None if no ':'."""
    if ":" not in line:
        return None
    head, value = line.split(":", 1)
    name = head.split(";", 1)[0].strip()
    return name, value


def _set_summary(draft: _EventDraft, value: str, tzinfo) -> None:
    draft.summary = value


def _set_start(draft: _EventDraft, value: str, tzinfo) -> None:
    parsed = parse_ics_date(value, tzinfo)
    if parsed is None:
        return
    draft.start = parsed
    draft.all_day = is_date_only(value)


def _set_end(draft: _EventDraft, value: str, tzinfo) -> None:
    parsed = parse_ics_date(value, tzinfo)
    if parsed is not None:
        draft.end = parsed


def _ignore(draft: _EventDraft, value: str, tzinfo) -> None:
    return None


_PROPERTY_HANDLERS: Dict[IcsProperty, Callable[[_EventDraft, str, object], None]] = {
    IcsProperty.SUMMARY: _set_summary,
    IcsProperty.DTSTART: _set_start,
    IcsProperty.DTEND: _set_end,
    IcsProperty.OTHER: _ignore,
}


def parse_events(lines: List[str], tzinfo="UTC") -> List[CalendarEvent]:
    events: List[CalendarEvent] = []
    draft: Optional[_EventDraft] = None
    for line in lines:
        stripped = line.strip()
        upper = stripped.upper()
        if upper == "BEGIN:VEVENT":
            if draft is not None:
                logger.debug("Discarding unterminated VEVENT")
            draft = _EventDraft()
            continue
        if upper == "END:VEVENT":
            if draft is not None:
                event = draft.build()
                if event is not None:
                    events.append(event)
            draft = None
            continue
        if draft is None:
            continue
        parts = split_property(line)
        if parts is None:
            continue
        name, value = parts
        _PROPERTY_HANDLERS[IcsProperty.from_name(name)](draft, value, tzinfo)
    return events


def parse_feed(text: str, tzinfo="UTC") -> List[CalendarEvent]:
    return parse_events(unfold_lines(text), tzinfo)
