"""
Day-cycle marker: maps a wall-clock time onto a rounded-rectangle track whose
four corners are pinned to sunrise, solar noon, sunset and midnight.

Coordinates follow SVG conventions (y grows downwards).
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import time
from typing import Dict, List, Mapping, Optional, Tuple

Point = Tuple[float, float]

NOON_MINUTES = 720.0
DAY_MINUTES = 1440.0

CORNER_ORDER = ("bottom_left", "top_left", "top_right", "bottom_right")


def parse_clock(value: str) -> time:
    hh, mm = str(value).strip().split(":")[:2]
    return time(int(hh), int(mm))


@dataclass(frozen=True)
class TwilightLandmarks:
    sunrise: time
    sunset: time
    nautical_twilight_begin: time
    nautical_twilight_end: time

    @classmethod
    def from_strings(cls, values: Mapping[str, str]) -> "TwilightLandmarks":
        return cls(
            sunrise=parse_clock(values["sunrise"]),
            sunset=parse_clock(values["sunset"]),
            nautical_twilight_begin=parse_clock(values["nautical_twilight_begin"]),
            nautical_twilight_end=parse_clock(values["nautical_twilight_end"]),
        )

    def as_strings(self) -> Dict[str, str]:
        return {
            "sunrise": self.sunrise.strftime("%H:%M"),
            "sunset": self.sunset.strftime("%H:%M"),
            "nautical_twilight_begin": self.nautical_twilight_begin.strftime("%H:%M"),
            "nautical_twilight_end": self.nautical_twilight_end.strftime("%H:%M"),
        }


DEFAULT_LANDMARKS = TwilightLandmarks(
    sunrise=time(7, 30),
    sunset=time(17, 30),
    nautical_twilight_begin=time(6, 30),
    nautical_twilight_end=time(18, 30),
)


def minutes_of_day(value) -> float:
    if hasattr(value, "time") and callable(value.time):
        value = value.time()
    return value.hour * 60 + value.minute + value.second / 60.0 + value.microsecond / 60e6


def _arc_fraction(elapsed: float, duration: float) -> float:
    if duration <= 0:
        return 0.0
    return min(1.0, max(0.0, elapsed / duration))


def circadian_progress(now, landmarks: TwilightLandmarks) -> float:
    """Fraction of a lap in [0, 1); 0 is sunrise, 0.25 noon, 0.5 sunset, 0.75 midnight."""
    m = minutes_of_day(now)
    sunrise = minutes_of_day(landmarks.sunrise)
    sunset = minutes_of_day(landmarks.sunset)
    if m < sunrise:
        quarter, fraction = 3, _arc_fraction(m, sunrise)
    elif m < NOON_MINUTES:
        quarter, fraction = 0, _arc_fraction(m - sunrise, NOON_MINUTES - sunrise)
    elif m < sunset:
        quarter, fraction = 1, _arc_fraction(m - NOON_MINUTES, sunset - NOON_MINUTES)
    else:
        quarter, fraction = 2, _arc_fraction(m - sunset, DAY_MINUTES - sunset)
    return ((quarter + fraction) * 0.25) % 1.0


@dataclass(frozen=True)
class Segment:
    kind: str  # "line" or "arc"
    length: float
    start: Point
    end: Point
    center: Optional[Point] = None
    radius: float = 0.0
    start_angle: float = 0.0
    end_angle: float = 0.0

    def point_at(self, t: float) -> Point:
        if self.kind == "arc":
            angle = self.start_angle + (self.end_angle - self.start_angle) * t
            cx, cy = self.center
            return (cx + self.radius * math.cos(angle), cy + self.radius * math.sin(angle))
        x0, y0 = self.start
        x1, y1 = self.end
        return (x0 + (x1 - x0) * t, y0 + (y1 - y0) * t)


def _line(start: Point, end: Point) -> Segment:
    return Segment("line", math.hypot(end[0] - start[0], end[1] - start[1]), start, end)


def _arc(center: Point, radius: float, start_deg: float) -> Segment:
    a0 = math.radians(start_deg)
    a1 = math.radians(start_deg + 90.0)
    cx, cy = center
    return Segment(
        "arc",
        math.pi * radius / 2.0,
        (cx + radius * math.cos(a0), cy + radius * math.sin(a0)),
        (cx + radius * math.cos(a1), cy + radius * math.sin(a1)),
        center=center,
        radius=radius,
        start_angle=a0,
        end_angle=a1,
    )


@dataclass(frozen=True)
class TrackGeometry:
    width: float
    height: float
    inset: float = 0.0
    corner_radius: float = 0.0
    x: float = 0.0
    y: float = 0.0

    @property
    def left(self) -> float:
        return self.x + self.inset

    @property
    def top(self) -> float:
        return self.y + self.inset

    @property
    def right(self) -> float:
        return self.x + self.width - self.inset

    @property
    def bottom(self) -> float:
        return self.y + self.height - self.inset

    @property
    def radius(self) -> float:
        half = min(self.right - self.left, self.bottom - self.top) / 2.0
        return max(0.0, min(self.corner_radius, half))

    @property
    def segments(self) -> List[Segment]:
        l, t, r, b, rad = self.left, self.top, self.right, self.bottom, self.radius
        return [
            _line((l, b - rad), (l, t + rad)),
            _arc((l + rad, t + rad), rad, 180.0),
            _line((l + rad, t), (r - rad, t)),
            _arc((r - rad, t + rad), rad, 270.0),
            _line((r, t + rad), (r, b - rad)),
            _arc((r - rad, b - rad), rad, 0.0),
            _line((r - rad, b), (l + rad, b)),
            _arc((l + rad, b - rad), rad, 90.0),
        ]

    @property
    def perimeter(self) -> float:
        return sum(s.length for s in self.segments)

    @property
    def start_point(self) -> Point:
        return (self.left, self.bottom - self.radius)

    def corner_anchors(self) -> Dict[str, Point]:
        """Track points where each corner arc meets the following edge."""
        l, t, r, b, rad = self.left, self.top, self.right, self.bottom, self.radius
        return {
            "bottom_left": (l, b - rad),
            "top_left": (l + rad, t),
            "top_right": (r, t + rad),
            "bottom_right": (r - rad, b),
        }

    def label_anchors(self) -> Dict[str, Point]:
        return {
            "bottom_left": (self.left, self.bottom),
            "top_left": (self.left, self.top),
            "top_right": (self.right, self.top),
            "bottom_right": (self.right, self.bottom),
        }

    def point_at_distance(self, distance: float) -> Point:
        travelled = 0.0
        for segment in self.segments:
            if segment.length > 0 and distance <= travelled + segment.length:
                return segment.point_at((distance - travelled) / segment.length)
            travelled += segment.length
        return self.start_point

    def point_at_progress(self, progress: float) -> Point:
        return self.point_at_distance((progress % 1.0) * self.perimeter)

    def path_data(self) -> str:
        l, t, r, b, rad = self.left, self.top, self.right, self.bottom, self.radius

        def arc(x, y):
            return f"A {rad:.2f} {rad:.2f} 0 0 1 {x:.2f} {y:.2f}"

        return " ".join([
            f"M {l:.2f} {b - rad:.2f}",
            f"L {l:.2f} {t + rad:.2f}",
            arc(l + rad, t),
            f"L {r - rad:.2f} {t:.2f}",
            arc(r, t + rad),
            f"L {r:.2f} {b - rad:.2f}",
            arc(r - rad, b),
            f"L {l + rad:.2f} {b:.2f}",
            arc(l, b - rad),
            "Z",
        ])


@dataclass(frozen=True)
class CircadianMarker:
    progress: float
    point: Point


def locate(now, landmarks: TwilightLandmarks, track: TrackGeometry) -> CircadianMarker:
    progress = circadian_progress(now, landmarks)
    return CircadianMarker(progress=progress, point=track.point_at_progress(progress))
