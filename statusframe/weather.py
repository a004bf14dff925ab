from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from statusframe.models import TEMPERATURE_ERROR, WeatherReading


class WeatherCondition(Enum):
    CLEAR = ("Clear", "clear-day")
    PARTLY_CLOUDY = ("Partly cloudy", "partly-cloudy-day")
    OVERCAST = ("Overcast", "overcast")
    FOG = ("Fog", "fog")
    DRIZZLE = ("Drizzle", "drizzle")
    FREEZING_RAIN = ("Freezing rain", "sleet")
    RAIN = ("Rain", "rain")
    SNOW = ("Snow", "snow")
    SHOWERS = ("Showers", "partly-cloudy-day-rain")
    THUNDER = ("Thunder", "thunderstorms")
    UNKNOWN = ("Unknown", "not-available")

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def icon(self) -> str:
        return self.value[1]


# WMO weather interpretation codes as used by Open-Meteo.
WMO_CONDITIONS: Dict[int, WeatherCondition] = {
    0: WeatherCondition.CLEAR,
    1: WeatherCondition.CLEAR,
    2: WeatherCondition.PARTLY_CLOUDY,
    3: WeatherCondition.OVERCAST,
    45: WeatherCondition.FOG,
    48: WeatherCondition.FOG,
    51: WeatherCondition.DRIZZLE,
    53: WeatherCondition.DRIZZLE,
    55: WeatherCondition.DRIZZLE,
    56: WeatherCondition.FREEZING_RAIN,
    57: WeatherCondition.FREEZING_RAIN,
    61: WeatherCondition.RAIN,
    63: WeatherCondition.RAIN,
    65: WeatherCondition.RAIN,
    66: WeatherCondition.FREEZING_RAIN,
    67: WeatherCondition.FREEZING_RAIN,
    71: WeatherCondition.SNOW,
    73: WeatherCondition.SNOW,
    75: WeatherCondition.SNOW,
    77: WeatherCondition.SNOW,
    80: WeatherCondition.SHOWERS,
    81: WeatherCondition.SHOWERS,
    82: WeatherCondition.SHOWERS,
    85: WeatherCondition.SNOW,
    86: WeatherCondition.SNOW,
    95: WeatherCondition.THUNDER,
    96: WeatherCondition.THUNDER,
    99: WeatherCondition.THUNDER,
}


def condition_for_code(code: Optional[int]) -> WeatherCondition:
    if code is None:
        return WeatherCondition.UNKNOWN
    return WMO_CONDITIONS.get(int(code), WeatherCondition.UNKNOWN)


def format_temperature(reading: WeatherReading) -> str:
    if not reading.available:
        return TEMPERATURE_ERROR
    return f"{float(reading.temperature_c):.0f}°"


def format_precipitation(reading: WeatherReading) -> str:
    parts = []
    if reading.precip_probability is not None:
        parts.append(f"{float(reading.precip_probability):.0f}%")
    if reading.precip_sum_mm is not None:
        value = f"{float(reading.precip_sum_mm):.1f}".rstrip("0").rstrip(".")
        parts.append(f"{value or '0'} mm")
    return " · ".join(parts) if parts else "—"
