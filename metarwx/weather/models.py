"""Weather report data models."""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, Flag
from typing import Optional, List, Tuple

# Maximum number of sky condition layers kept per observation
MAX_SKY_CONDITIONS = 4

# Length bounds for free-text fields
MAX_RAW_TEXT_LENGTH = 511
MAX_WX_STRING_LENGTH = 63
STATION_ID_LENGTH = 4


class FlightCategory(Enum):
    """
    FAA flight category as reported by the data server.

    The category is taken verbatim from the source document and is never
    derived locally from ceiling and visibility.
    """

    VFR = "VFR"
    MVFR = "MVFR"
    IFR = "IFR"
    LIFR = "LIFR"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_text(cls, text: Optional[str]) -> 'FlightCategory':
        """Map source text to a category, case-sensitively."""
        if text and text != cls.UNKNOWN.value:
            try:
                return cls(text)
            except ValueError:
                pass
        return cls.UNKNOWN


class MetarType(Enum):
    """Type of observation report."""

    METAR = "METAR"
    SPECI = "SPECI"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_text(cls, text: Optional[str]) -> 'MetarType':
        if text and text != cls.UNKNOWN.value:
            try:
                return cls(text)
            except ValueError:
                pass
        return cls.UNKNOWN


class SkyCover(Enum):
    """Cloud layer density code."""

    SKC = "SKC"
    CLR = "CLR"
    CAVOK = "CAVOK"
    FEW = "FEW"
    SCT = "SCT"
    BKN = "BKN"
    OVC = "OVC"
    OVX = "OVX"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_text(cls, text: Optional[str]) -> 'SkyCover':
        if text and text != cls.UNKNOWN.value:
            try:
                return cls(text)
            except ValueError:
                pass
        return cls.UNKNOWN

    @property
    def code(self) -> str:
        """Short code used in compact sky summaries."""
        if self is SkyCover.UNKNOWN:
            return "???"
        return self.value


class QualityFlags(Flag):
    """
    Station health and correction indicators.

    Each member is independent; a report carries any combination of them.
    """

    NONE = 0
    CORRECTED = 0x1
    AUTO = 0x2
    AUTO_STATION = 0x4
    MAINTENANCE = 0x8
    NO_SIGNAL = 0x10
    NO_LIGHTNING = 0x20
    NO_FREEZING = 0x40
    NO_WEATHER = 0x80

    @property
    def codes(self) -> List[str]:
        """Short codes of the active flags, in canonical order."""
        return [code for flag, code in _QUALITY_CODES if flag in self]


_QUALITY_CODES: Tuple[Tuple[QualityFlags, str], ...] = (
    (QualityFlags.CORRECTED, "COR"),
    (QualityFlags.AUTO, "AUTO"),
    (QualityFlags.AUTO_STATION, "AUTOST"),
    (QualityFlags.MAINTENANCE, "MAINT"),
    (QualityFlags.NO_SIGNAL, "NOSIG"),
    (QualityFlags.NO_LIGHTNING, "NOLTN"),
    (QualityFlags.NO_FREEZING, "NOFRZ"),
    (QualityFlags.NO_WEATHER, "INOP"),
)


@dataclass(frozen=True)
class SkyCondition:
    """One cloud layer, bottom-to-top as received."""

    cover: SkyCover = SkyCover.UNKNOWN
    cloud_base_ft_agl: Optional[int] = None

    @property
    def summary(self) -> str:
        """Compact ``<COVER><base>`` token, e.g. ``BKN2500``."""
        if self.cover is SkyCover.CLR or not is_known(self.cloud_base_ft_agl):
            return self.cover.code
        return f"{self.cover.code}{self.cloud_base_ft_agl}"


def is_known(value) -> bool:
    """
    Return True if a record value is present.

    None is the absent marker. Non-finite floats (NaN, infinity) and negative
    integers (the legacy -1 marker) handed in directly are treated as absent
    as well.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, int):
        return value >= 0
    if isinstance(value, datetime):
        return value.timestamp() != 0
    return True


@dataclass(frozen=True)
class WeatherReport:
    """
    A METAR or SPECI observation mapped from the data server XML.

    Every value field defaults to None, meaning the element was absent from
    the source document. Records are built in one pass by
    MetarDocumentMapper and frozen afterwards.

    Attributes:
        raw_text: Original report text
        station_id: ICAO station code (4 characters, empty if absent)
        observation_time: Time of observation (UTC)
        latitude: Station latitude in decimal degrees
        longitude: Station longitude in decimal degrees
        temp_c: Temperature in Celsius
        dewpoint_c: Dewpoint in Celsius
        wind_dir_degrees: Wind direction, 0 for variable
        wind_speed_kt: Wind speed in knots, 0 for calm
        wind_gust_kt: Gust speed in knots
        visibility_statute_mi: Visibility in statute miles
        altim_in_hg: Altimeter setting in inches of mercury
        sea_level_pressure_mb: Sea-level pressure in millibars
        quality_flags: Station health indicators
        wx_string: Adverse weather codes, empty if none
        sky_conditions: Up to four cloud layers
        flight_category: Category as reported by the source
        metar_type: METAR or SPECI
    """

    # Identity
    raw_text: str = ""
    station_id: str = ""
    observation_time: Optional[datetime] = None
    metar_type: MetarType = MetarType.UNKNOWN

    # Position
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    elevation_m: Optional[float] = None

    # Temperature
    temp_c: Optional[float] = None
    dewpoint_c: Optional[float] = None
    max_t_c: Optional[float] = None
    min_t_c: Optional[float] = None
    max_t24hr_c: Optional[float] = None
    min_t24hr_c: Optional[float] = None

    # Wind
    wind_dir_degrees: Optional[int] = None
    wind_speed_kt: Optional[int] = None
    wind_gust_kt: Optional[int] = None

    # Visibility & clouds
    visibility_statute_mi: Optional[float] = None
    vert_vis_ft: Optional[int] = None
    sky_conditions: Tuple[SkyCondition, ...] = ()

    # Pressure
    altim_in_hg: Optional[float] = None
    sea_level_pressure_mb: Optional[float] = None
    three_hr_pressure_tendency_mb: Optional[float] = None

    # Precipitation
    precip_in: Optional[float] = None
    pcp3hr_in: Optional[float] = None
    pcp6hr_in: Optional[float] = None
    pcp24hr_in: Optional[float] = None
    snow_in: Optional[float] = None

    # Conditions
    quality_flags: QualityFlags = QualityFlags.NONE
    wx_string: str = ""
    flight_category: FlightCategory = FlightCategory.UNKNOWN

    def __post_init__(self):
        # frozen: bounds are applied once, here
        object.__setattr__(self, 'station_id', self.station_id[:STATION_ID_LENGTH])
        object.__setattr__(self, 'raw_text', self.raw_text[:MAX_RAW_TEXT_LENGTH])
        object.__setattr__(self, 'wx_string', self.wx_string[:MAX_WX_STRING_LENGTH])
        object.__setattr__(self, 'sky_conditions', tuple(self.sky_conditions)[:MAX_SKY_CONDITIONS])

    @property
    def sky_summary(self) -> str:
        """Space-joined compact sky conditions, e.g. ``FEW030 BKN250``."""
        return " ".join(sky.summary for sky in self.sky_conditions)

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON export."""
        def value(v):
            return v if is_known(v) else None

        return {
            'raw_text': self.raw_text,
            'station_id': self.station_id,
            'observation_time': self.observation_time.isoformat() if is_known(self.observation_time) else None,
            'metar_type': self.metar_type.value,
            'latitude': value(self.latitude),
            'longitude': value(self.longitude),
            'elevation_m': value(self.elevation_m),
            'temp_c': value(self.temp_c),
            'dewpoint_c': value(self.dewpoint_c),
            'max_t_c': value(self.max_t_c),
            'min_t_c': value(self.min_t_c),
            'max_t24hr_c': value(self.max_t24hr_c),
            'min_t24hr_c': value(self.min_t24hr_c),
            'wind_dir_degrees': value(self.wind_dir_degrees),
            'wind_speed_kt': value(self.wind_speed_kt),
            'wind_gust_kt': value(self.wind_gust_kt),
            'visibility_statute_mi': value(self.visibility_statute_mi),
            'vert_vis_ft': value(self.vert_vis_ft),
            'sky_conditions': [
                {'sky_cover': s.cover.value, 'cloud_base_ft_agl': value(s.cloud_base_ft_agl)}
                for s in self.sky_conditions
            ],
            'altim_in_hg': value(self.altim_in_hg),
            'sea_level_pressure_mb': value(self.sea_level_pressure_mb),
            'three_hr_pressure_tendency_mb': value(self.three_hr_pressure_tendency_mb),
            'precip_in': value(self.precip_in),
            'pcp3hr_in': value(self.pcp3hr_in),
            'pcp6hr_in': value(self.pcp6hr_in),
            'pcp24hr_in': value(self.pcp24hr_in),
            'snow_in': value(self.snow_in),
            'quality_control_flags': self.quality_flags.codes,
            'wx_string': self.wx_string,
            'flight_category': self.flight_category.value,
        }

    def __repr__(self) -> str:
        return f"WeatherReport({self.metar_type.value} {self.station_id} {self.flight_category.value})"
