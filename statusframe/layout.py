"""
Panel layout for the status image.

The canvas is composed in landscape (640x460) as two fixed-width columns and
then emitted rotated by 90 degrees for the portrait-mounted panel. Every
panel box is absolute and computed from the constants in LayoutConstants and
the length of the agenda and transit lists.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from statusframe.agenda import PLACEHOLDER_ITEM, AgendaItem
from statusframe.circadian import CircadianMarker, TrackGeometry, locate
from statusframe.models import ArtSlot, DashboardView, TransitSummary
from statusframe.weather import condition_for_code, format_precipitation, format_temperature

LEFT_COLUMN = ("time", "weather", "circadian")
RIGHT_COLUMN = ("agenda", "transit", "imagery")


@dataclass(frozen=True)
class LayoutConstants:
    canvas_width: int = 640
    canvas_height: int = 460
    margin: int = 10
    gutter: int = 10
    padding: int = 12
    time_height: int = 90
    weather_height: int = 100
    agenda_height: int = 150
    transit_height: int = 110
    list_top_offset: int = 4
    agenda_line_height: int = 36
    agenda_entry_spacing: int = 42
    transit_line_height: int = 20
    transit_entry_spacing: int = 26
    track_inset: int = 14
    track_corner_radius: int = 28
    icon_size: int = 64
    rotation: int = 90

    @property
    def column_width(self) -> float:
        return (self.canvas_width - 2 * self.margin - self.gutter) / 2

    @property
    def column_height(self) -> float:
        return self.canvas_height - 2 * self.margin


@dataclass(frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    def overlaps(self, other: "Box") -> bool:
        return (
            self.x < other.right and other.x < self.right
            and self.y < other.bottom and other.y < self.bottom
        )


@dataclass(frozen=True)
class TextAnchor:
    x: float
    y: float  # baseline
    text: str
    size: int
    anchor: str = "start"
    weight: str = "normal"


@dataclass(frozen=True)
class ImageRef:
    box: Box
    data: bytes
    mime_type: str = "image/png"


@dataclass(frozen=True)
class Panel:
    role: str
    box: Box
    texts: Tuple[TextAnchor, ...] = ()
    images: Tuple[ImageRef, ...] = ()
    frames: Tuple[Box, ...] = ()
    track: Optional[TrackGeometry] = None
    marker: Optional[CircadianMarker] = None


@dataclass(frozen=True)
class PanelLayout:
    width: int
    height: int
    rotation: int
    panels: Tuple[Panel, ...] = field(default_factory=tuple)

    @property
    def output_size(self) -> Tuple[int, int]:
        if self.rotation % 180 == 90:
            return self.height, self.width
        return self.width, self.height

    def panel(self, role: str) -> Panel:
        for p in self.panels:
            if p.role == role:
                return p
        raise KeyError(role)

    def column(self, roles: Sequence[str]) -> List[Panel]:
        return [self.panel(r) for r in roles]


def stack_column(
    x: float,
    top: float,
    width: float,
    height: float,
    roles: Sequence[str],
    fixed: Dict[str, float],
    gutter: float,
) -> Dict[str, Box]:
    """Stack panels top to bottom; the single role missing from fixed takes the rest."""
    elastic = [r for r in roles if r not in fixed]
    if len(elastic) != 1:
        raise ValueError(f"column needs exactly one elastic panel, got {elastic}")
    used = sum(fixed[r] for r in roles if r in fixed) + gutter * (len(roles) - 1)
    elastic_h = max(0.0, height - used)
    boxes: Dict[str, Box] = {}
    y = top
    for role in roles:
        h = fixed.get(role, elastic_h)
        boxes[role] = Box(x, y, width, h)
        y += h + gutter
    return boxes


def list_block_top(box: Box, count: int, line_height: float, spacing: float, offset: float) -> float:
    count = max(1, count)
    block_h = line_height + spacing * (count - 1)
    return box.y + (box.height - block_h) / 2 + offset


def square_track(box: Box, inset: float, corner_radius: float) -> TrackGeometry:
    side = min(box.width, box.height)
    return TrackGeometry(
        width=side,
        height=side,
        inset=inset,
        corner_radius=corner_radius,
        x=box.x + (box.width - side) / 2,
        y=box.y + (box.height - side) / 2,
    )


def _time_panel(box: Box, view: DashboardView, c: LayoutConstants) -> Panel:
    now = view.now
    date_text = now.format("dddd D MMMM", locale=view.locale)
    date_text = date_text[:1].upper() + date_text[1:]
    return Panel(
        role="time",
        box=box,
        texts=(
            TextAnchor(box.center_x, box.y + 58, now.format("HH:mm"), 52, "middle", "bold"),
            TextAnchor(box.center_x, box.bottom - c.padding, date_text, 16, "middle"),
        ),
    )


def _weather_panel(box: Box, view: DashboardView, c: LayoutConstants) -> Panel:
    reading = view.weather
    condition = condition_for_code(reading.weather_code)
    icon_box = Box(box.x + c.padding, box.center_y - c.icon_size / 2, c.icon_size, c.icon_size)
    images: Tuple[ImageRef, ...] = ()
    if view.weather_icon:
        images = (ImageRef(icon_box, view.weather_icon, "image/svg+xml"),)
    text_x = icon_box.right + c.padding
    label = condition.label if reading.available else "Weather unavailable"
    return Panel(
        role="weather",
        box=box,
        texts=(
            TextAnchor(text_x, box.y + 50, format_temperature(reading), 40, "start", "bold"),
            TextAnchor(text_x, box.y + 72, label, 15),
            TextAnchor(text_x, box.y + 90, format_precipitation(reading), 15),
        ),
        images=images,
    )


def _circadian_panel(box: Box, view: DashboardView, c: LayoutConstants) -> Panel:
    track = square_track(box, c.track_inset, c.track_corner_radius)
    marker = locate(view.now, view.landmarks, track)
    marks = view.landmarks.as_strings()
    labels = track.label_anchors()
    pad = 8
    size = 13
    texts = [
        TextAnchor(labels["bottom_left"][0] + pad, labels["bottom_left"][1] - pad, marks["sunrise"], size),
        TextAnchor(labels["bottom_left"][0] + pad, labels["bottom_left"][1] - pad - size - 2,
                   marks["nautical_twilight_begin"], 11),
        TextAnchor(labels["top_left"][0] + pad, labels["top_left"][1] + pad + size, "12:00", size),
        TextAnchor(labels["top_right"][0] - pad, labels["top_right"][1] + pad + size, marks["sunset"], size, "end"),
        TextAnchor(labels["top_right"][0] - pad, labels["top_right"][1] + pad + 2 * size + 2,
                   marks["nautical_twilight_end"], 11, "end"),
        TextAnchor(labels["bottom_right"][0] - pad, labels["bottom_right"][1] - pad, "00:00", size, "end"),
    ]
    daylight = _daylight_minutes(view)
    texts.append(TextAnchor(
        track.x + track.width / 2,
        track.y + track.height / 2 + 6,
        f"{daylight // 60}h{daylight % 60:02d}",
        18,
        "middle",
        "bold",
    ))
    return Panel(role="circadian", box=box, texts=tuple(texts), track=track, marker=marker)


def _daylight_minutes(view: DashboardView) -> int:
    sr = view.landmarks.sunrise
    ss = view.landmarks.sunset
    return max(0, (ss.hour * 60 + ss.minute) - (sr.hour * 60 + sr.minute))


def _agenda_panel(box: Box, items: List[AgendaItem], c: LayoutConstants) -> Panel:
    items = list(items) or [PLACEHOLDER_ITEM]
    top = list_block_top(box, len(items), c.agenda_line_height, c.agenda_entry_spacing, c.list_top_offset)
    texts = []
    for i, item in enumerate(items):
        line_top = top + i * c.agenda_entry_spacing
        texts.append(TextAnchor(box.x + c.padding, line_top + 17, item.title, 17, "start", "bold"))
        texts.append(TextAnchor(box.x + c.padding, line_top + 34, item.time_label, 13))
    return Panel(role="agenda", box=box, texts=tuple(texts))


def _transit_panel(box: Box, transit: TransitSummary, c: LayoutConstants) -> Panel:
    half = box.width / 2
    departures = [f"{m} min" if m > 0 else "now" for m in transit.departures[:3]] or ["No departures"]
    top = list_block_top(box, len(departures), c.transit_line_height, c.transit_entry_spacing, c.list_top_offset)
    texts = [
        TextAnchor(box.x + c.padding, top + i * c.transit_entry_spacing + 16, text, 16, "start", "bold")
        for i, text in enumerate(departures)
    ]
    bikes = [f"{name}: {'?' if count is None else count}" for name, count in transit.bike_counts] or ["No bike data"]
    bike_top = list_block_top(box, len(bikes), c.transit_line_height, c.transit_entry_spacing, c.list_top_offset)
    texts.extend(
        TextAnchor(box.x + half + c.padding / 2, bike_top + i * c.transit_entry_spacing + 15, text, 14)
        for i, text in enumerate(bikes)
    )
    return Panel(role="transit", box=box, texts=tuple(texts))


def _imagery_panel(box: Box, slots: List[ArtSlot], c: LayoutConstants) -> Panel:
    if not slots:
        return Panel(
            role="imagery",
            box=box,
            texts=(TextAnchor(box.center_x, box.center_y + 5, "No artwork", 14, "middle"),),
        )
    n = len(slots)
    inner = Box(box.x + c.padding, box.y + c.padding, box.width - 2 * c.padding, box.height - 2 * c.padding)
    cell_w = max(0.0, (inner.width - c.gutter * (n - 1)) / n)
    images = []
    texts = []
    frames = []
    for i, slot in enumerate(slots):
        cell = Box(inner.x + i * (cell_w + c.gutter), inner.y, cell_w, max(0.0, inner.height))
        if slot.available:
            images.append(ImageRef(cell, slot.data, slot.mime_type))
        else:
            frames.append(cell)
            texts.append(TextAnchor(cell.center_x, cell.center_y + 5, slot.name, 13, "middle"))
    return Panel(role="imagery", box=box, texts=tuple(texts), images=tuple(images), frames=tuple(frames))


def compose_layout(view: DashboardView, constants: Optional[LayoutConstants] = None) -> PanelLayout:
    c = constants or LayoutConstants()
    col_w = c.column_width
    col_h = c.column_height
    left = stack_column(
        c.margin, c.margin, col_w, col_h, LEFT_COLUMN,
        {"time": c.time_height, "weather": c.weather_height}, c.gutter,
    )
    right = stack_column(
        c.margin + col_w + c.gutter, c.margin, col_w, col_h, RIGHT_COLUMN,
        {"agenda": c.agenda_height, "transit": c.transit_height}, c.gutter,
    )
    panels = (
        _time_panel(left["time"], view, c),
        _weather_panel(left["weather"], view, c),
        _circadian_panel(left["circadian"], view, c),
        _agenda_panel(right["agenda"], view.agenda, c),
        _transit_panel(right["transit"], view.transit, c),
        _imagery_panel(right["imagery"], view.art, c),
    )
    return PanelLayout(width=c.canvas_width, height=c.canvas_height, rotation=c.rotation, panels=panels)
