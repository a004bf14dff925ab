from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

import arrow

from statusframe.agenda import AgendaItem
from statusframe.circadian import DEFAULT_LANDMARKS, TwilightLandmarks

TEMPERATURE_ERROR = "ERR"


@dataclass(frozen=True)
class WeatherReading:
    temperature_c: Union[float, str] = TEMPERATURE_ERROR
    weather_code: Optional[int] = None
    precip_probability: Optional[float] = None
    precip_sum_mm: Optional[float] = None

    @property
    def available(self) -> bool:
        return self.temperature_c != TEMPERATURE_ERROR


@dataclass(frozen=True)
class TransitSummary:
    departures: Tuple[int, ...] = ()
    bike_counts: Tuple[Tuple[str, Optional[int]], ...] = ()


@dataclass(frozen=True)
class ArtSlot:
    name: str
    data: Optional[bytes] = None
    mime_type: str = "image/png"

    @property
    def available(self) -> bool:
        return bool(self.data)


@dataclass
class DashboardView:
    now: arrow.Arrow
    agenda: List[AgendaItem] = field(default_factory=list)
    weather: WeatherReading = field(default_factory=WeatherReading)
    landmarks: TwilightLandmarks = DEFAULT_LANDMARKS
    transit: TransitSummary = field(default_factory=TransitSummary)
    art: List[ArtSlot] = field(default_factory=list)
    weather_icon: Optional[bytes] = None
    locale: str = "en"
