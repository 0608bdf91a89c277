"""Map aviationweather.gov dataserver XML into WeatherReport records."""

import re
import logging
import xml.etree.ElementTree as ET
from datetime import timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from dateutil.parser import isoparse

from metarwx.weather.models import (
    WeatherReport,
    SkyCondition,
    SkyCover,
    FlightCategory,
    MetarType,
    QualityFlags,
    MAX_SKY_CONDITIONS,
)

logger = logging.getLogger(__name__)

# Observations live at response/data/METAR
METAR_PATH = "./data/METAR"
RESPONSE_TAG = "response"

_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_OBSERVATION_TIME = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:?\d{2})?$"
)


class MetarDocumentError(Exception):
    """Base exception for documents that cannot be mapped."""

    reason = "invalid document"

    def __init__(self, message: str = "", station: Optional[str] = None):
        super().__init__(message or self.reason)
        self.station = station


class DocumentParseError(MetarDocumentError):
    """The document is not well-formed XML."""

    reason = "invalid XML data"


class QueryContextError(MetarDocumentError):
    """The parsed document cannot be queried."""

    reason = "invalid XPath context"


class QueryCompileError(MetarDocumentError):
    """The observation path expression could not be evaluated."""

    reason = "invalid XPath expression"


def parse_float(text: Optional[str]) -> float:
    """
    Convert text to float using the longest numeric prefix.

    Text without a numeric prefix converts to 0.0.
    """
    match = _LEADING_FLOAT.match(text or "")
    if match is None:
        logger.warning("Malformed numeric value %r, using 0", text)
        return 0.0
    return float(match.group(1))


def parse_int(text: Optional[str]) -> int:
    """
    Convert text to int using the longest integer prefix.

    Text without an integer prefix (e.g. ``VRB``) converts to 0.
    """
    match = _LEADING_INT.match(text or "")
    if match is None:
        return 0
    return int(match.group(1))


def parse_observation_time(text: Optional[str]):
    """
    Parse a ``YYYY-MM-DDTHH:MM:SSZ`` timestamp into an aware UTC datetime.

    Fractional seconds and a numeric UTC offset are accepted in place of the
    plain ``Z`` form. Anything else (date-only, week dates, out-of-range
    values) gives None.
    """
    if not text or not _OBSERVATION_TIME.match(text.strip()):
        logger.debug("Unrecognised observation time %r", text)
        return None
    try:
        when = isoparse(text.strip())
        if when.tzinfo is None:
            return when.replace(tzinfo=timezone.utc)
        return when.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        logger.debug("Unparseable observation time %r", text)
        return None


def _text(text: Optional[str]) -> str:
    return text or ""


# element name -> (WeatherReport attribute, converter)
FIELD_PARSERS: Dict[str, Tuple[str, Callable[[Optional[str]], Any]]] = {
    'raw_text': ('raw_text', _text),
    'station_id': ('station_id', _text),
    'observation_time': ('observation_time', parse_observation_time),
    'latitude': ('latitude', parse_float),
    'longitude': ('longitude', parse_float),
    'temp_c': ('temp_c', parse_float),
    'dewpoint_c': ('dewpoint_c', parse_float),
    'wind_dir_degrees': ('wind_dir_degrees', parse_int),
    'wind_speed_kt': ('wind_speed_kt', parse_int),
    'wind_gust_kt': ('wind_gust_kt', parse_int),
    'visibility_statute_mi': ('visibility_statute_mi', parse_float),
    'altim_in_hg': ('altim_in_hg', parse_float),
    'sea_level_pressure_mb': ('sea_level_pressure_mb', parse_float),
    'wx_string': ('wx_string', _text),
    'flight_category': ('flight_category', FlightCategory.from_text),
    'three_hr_pressure_tendency_mb': ('three_hr_pressure_tendency_mb', parse_float),
    'maxT_c': ('max_t_c', parse_float),
    'minT_c': ('min_t_c', parse_float),
    'maxT24hr_c': ('max_t24hr_c', parse_float),
    'minT24hr_c': ('min_t24hr_c', parse_float),
    'precip_in': ('precip_in', parse_float),
    'pcp3hr_in': ('pcp3hr_in', parse_float),
    'pcp6hr_in': ('pcp6hr_in', parse_float),
    'pcp24hr_in': ('pcp24hr_in', parse_float),
    'snow_in': ('snow_in', parse_float),
    'vert_vis_ft': ('vert_vis_ft', parse_int),
    'metar_type': ('metar_type', MetarType.from_text),
    'elevation_m': ('elevation_m', parse_float),
}

QUALITY_FLAG_ELEMENTS: Dict[str, QualityFlags] = {
    'corrected': QualityFlags.CORRECTED,
    'auto': QualityFlags.AUTO,
    'auto_station': QualityFlags.AUTO_STATION,
    'maintenance_indicator': QualityFlags.MAINTENANCE,
    'maintenance_indicator_on': QualityFlags.MAINTENANCE,
    'no_signal': QualityFlags.NO_SIGNAL,
    'lightning_sensor_off': QualityFlags.NO_LIGHTNING,
    'freezing_rain_sensor_off': QualityFlags.NO_FREEZING,
    'present_weather_sensor_off': QualityFlags.NO_WEATHER,
}


def parse_document(document: Union[bytes, str, None]) -> ET.Element:
    """
    Parse raw dataserver output into an element tree root.

    Raises:
        DocumentParseError: If the document is empty or not well-formed
    """
    if document is None or not document.strip():
        raise DocumentParseError("empty document")
    try:
        return ET.fromstring(document)
    except ET.ParseError as e:
        raise DocumentParseError(str(e)) from e


class MetarDocumentMapper:
    """
    Map the METAR elements of a dataserver response into WeatherReport objects.

    Child elements are dispatched through FIELD_PARSERS; names not in the
    table are ignored so new schema elements do not break mapping.

    Example:
        mapper = MetarDocumentMapper()
        reports = mapper.map_document(xml_bytes, max_reports=10)
        for r in reports:
            print(r.station_id, r.flight_category)
    """

    def __init__(self, field_parsers: Optional[Dict[str, Tuple[str, Callable]]] = None):
        self._field_parsers = field_parsers if field_parsers is not None else FIELD_PARSERS

    def map_document(
        self,
        document: Union[bytes, str, ET.Element, None],
        max_reports: Optional[int] = None,
    ) -> List[WeatherReport]:
        """
        Map a document into at most max_reports records, in document order.

        Args:
            document: Raw XML or an already parsed root element
            max_reports: Maximum number of records to return (None for all)

        Returns:
            List of WeatherReport, empty if the document has no observations

        Raises:
            DocumentParseError: Malformed or empty input
            QueryContextError: Input is not a queryable element
            QueryCompileError: The observation path failed to evaluate
        """
        if isinstance(document, (bytes, str)) or document is None:
            root = parse_document(document)
        else:
            root = document

        elements = self.find_observations(root)
        if max_reports is not None:
            elements = elements[:max(max_reports, 0)]

        return [self.map_observation(element) for element in elements]

    @staticmethod
    def find_observations(root: ET.Element) -> List[ET.Element]:
        """Select all METAR elements under response/data."""
        if not isinstance(root, ET.Element):
            raise QueryContextError(f"cannot query {type(root).__name__}")

        try:
            if root.tag == RESPONSE_TAG:
                return root.findall(METAR_PATH)
            return root.findall(f".//{RESPONSE_TAG}/{METAR_PATH[2:]}")
        except SyntaxError as e:
            raise QueryCompileError(str(e)) from e

    def map_observation(self, element: ET.Element) -> WeatherReport:
        """Build one WeatherReport from a METAR element."""
        values: Dict[str, Any] = {}
        sky_conditions: List[SkyCondition] = []
        flags = QualityFlags.NONE

        for child in element:
            name = child.tag
            if name == 'sky_condition':
                if len(sky_conditions) < MAX_SKY_CONDITIONS:
                    sky_conditions.append(self._map_sky_condition(child))
                else:
                    logger.debug("Dropping sky condition %s beyond %d layers",
                                 dict(child.attrib), MAX_SKY_CONDITIONS)
            elif name == 'quality_control_flags':
                flags |= self._map_quality_flags(child)
            elif name in self._field_parsers:
                attribute, converter = self._field_parsers[name]
                values[attribute] = converter(child.text)

        return WeatherReport(
            sky_conditions=sky_conditions,
            quality_flags=flags,
            **values,
        )

    @staticmethod
    def _map_sky_condition(element: ET.Element) -> SkyCondition:
        cover = SkyCover.UNKNOWN
        base = None
        for name, value in element.attrib.items():
            if name == 'sky_cover':
                cover = SkyCover.from_text(value)
            elif name == 'cloud_base_ft_agl':
                base = parse_int(value)
        return SkyCondition(cover=cover, cloud_base_ft_agl=base)

    @staticmethod
    def _map_quality_flags(element: ET.Element) -> QualityFlags:
        flags = QualityFlags.NONE
        for child in element:
            flag = QUALITY_FLAG_ELEMENTS.get(child.tag)
            if flag is None:
                continue
            if (child.text or "").strip().lower() == "true":
                flags |= flag
        return flags
