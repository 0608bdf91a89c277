"""Render WeatherReport records as raw text, decoded narrative or templates."""

import re
import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, ROUND_HALF_UP, localcontext
from enum import Enum
from typing import Dict, Optional

from dateutil import tz

from metarwx import config
from metarwx.weather.analysis import WeatherAnalyzer, Severity
from metarwx.weather.models import (
    WeatherReport,
    FlightCategory,
    MetarType,
    QualityFlags,
    SkyCover,
    is_known,
)

logger = logging.getLogger(__name__)

UNKNOWN = "(unknown)"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# ANSI styles
RESET = "\033[0m"
RED = "\033[1;31m"
GREEN = "\033[1;32m"
YELLOW = "\033[1;33m"
BLUE = "\033[1;34m"
MAGENTA = "\033[1;35m"

SEVERITY_STYLES = {
    Severity.NORMAL: BLUE,
    Severity.CAUTION: RED,
    Severity.SEVERE: MAGENTA,
}

CATEGORY_STYLES = {
    FlightCategory.VFR: GREEN,
    FlightCategory.MVFR: BLUE,
    FlightCategory.IFR: RED,
    FlightCategory.LIFR: MAGENTA,
}

_PLACEHOLDER = re.compile(r"\{([A-Za-z0-9_]+)\}")


class OutputMode(Enum):
    """How a report is written out."""

    RAW = "raw"
    NARRATIVE = "narrative"
    TEMPLATE = "template"


@dataclass
class RenderOptions:
    """
    Options shared by the renderers.

    Attributes:
        color: Emit ANSI colour emphasis
        local_tz: Timezone for local times (system local zone if None)
        max_length: Maximum length of template output
    """

    color: bool = False
    local_tz: Optional[tzinfo] = None
    max_length: int = config.MAX_RENDER_LENGTH

    @property
    def timezone(self) -> tzinfo:
        return self.local_tz if self.local_tz is not None else tz.tzlocal()


# --- Value formatting ---

def style(text: str, ansi: Optional[str], color: bool) -> str:
    """Wrap text in an ANSI style when colour output is enabled."""
    if not color or not ansi:
        return text
    return f"{ansi}{text}{RESET}"


def round_half_up(value: float, places: int) -> str:
    """
    Format a float with round-half-up semantics.

    Ties round away from zero: 12.345 at 2 places gives "12.35".
    """
    exact = Decimal(str(value))
    quantum = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        # enough digits for the integer part plus the requested places
        ctx.prec = max(ctx.prec, exact.adjusted() + places + 2)
        rounded = exact.quantize(quantum, rounding=ROUND_HALF_UP)
    return format(rounded, "f")


def format_float(value: Optional[float], places: int = 1) -> str:
    if not is_known(value):
        return UNKNOWN
    return round_half_up(value, places)


def format_int(value: Optional[int]) -> str:
    if not is_known(value):
        return UNKNOWN
    return str(value)


def _format_time(when: datetime, zone: tzinfo) -> str:
    try:
        return when.astimezone(zone).strftime(TIME_FORMAT)
    except (OverflowError, ValueError) as e:
        logger.debug("Cannot show %r in %s: %s", when, zone, e)
        return UNKNOWN


def format_utc(when: Optional[datetime]) -> str:
    if not is_known(when):
        return UNKNOWN
    return _format_time(when, timezone.utc)


def format_local(when: Optional[datetime], local_tz: tzinfo) -> str:
    if not is_known(when):
        return UNKNOWN
    return _format_time(when, local_tz)


def celsius_to_fahrenheit(value: Optional[float]) -> Optional[float]:
    if not is_known(value):
        return None
    return value * 9.0 / 5.0 + 32.0


def flight_category_text(category: FlightCategory, color: bool) -> str:
    label = WeatherAnalyzer.flight_category_label(category)
    return style(label, CATEGORY_STYLES.get(category), color)


class NarrativeRenderer:
    """
    Decoded, multi-line description of a report.

    Lines for unknown values are left out. With colour enabled, hazardous
    wind, visibility and cloud layers are emphasised according to
    WeatherAnalyzer severity tiers.
    """

    def __init__(self, options: Optional[RenderOptions] = None):
        self.options = options or RenderOptions()

    def render(self, report: WeatherReport) -> str:
        lines = [
            self._header(report),
            f"(Local time: {format_local(report.observation_time, self.options.timezone)})",
        ]
        if QualityFlags.CORRECTED in report.quality_flags:
            lines.append(self._style("Corrected version", YELLOW))
        lines.append("")

        body = [
            self._wind(report),
            self._visibility(report),
            *self._sky(report),
            self._temperature("Temperature", report.temp_c),
            self._temperature("Dewpoint", report.dewpoint_c),
            self._pressure(report),
            self._adverse_weather(report),
            *self._notices(report),
            report.raw_text,
        ]
        lines.extend(f"\t{line}" for line in body if line is not None)
        return "\n".join(lines) + "\n"

    def _style(self, text: str, ansi: Optional[str]) -> str:
        return style(text, ansi, self.options.color)

    def _header(self, report: WeatherReport) -> str:
        return "{} ({}, {}) [{}] at {}".format(
            report.station_id,
            format_float(report.latitude, 2),
            format_float(report.longitude, 2),
            flight_category_text(report.flight_category, self.options.color),
            format_utc(report.observation_time),
        )

    def _wind(self, report: WeatherReport) -> Optional[str]:
        speed = report.wind_speed_kt
        if not is_known(speed):
            return None
        if speed == 0:
            return "Winds: Calm"

        speed_text = self._style(
            f"{speed} knots",
            RED if WeatherAnalyzer.wind_severity(speed).annotated else None,
        )
        direction = report.wind_dir_degrees
        if not is_known(direction) or direction == 0:
            text = f"Winds: Variable at {speed_text}"
        else:
            text = f"Winds: {direction}* at {speed_text}"

        gust = report.wind_gust_kt
        if is_known(gust) and gust > 0:
            gust_severity = WeatherAnalyzer.gust_severity(speed, gust)
            text += " " + self._style(
                f"gusting {gust} knots",
                RED if gust_severity.annotated else None,
            )
        return text

    def _visibility(self, report: WeatherReport) -> Optional[str]:
        visibility = report.visibility_statute_mi
        if not is_known(visibility):
            return None
        severity = WeatherAnalyzer.visibility_severity(visibility)
        value = self._style(f"{format_float(visibility)} miles", SEVERITY_STYLES.get(severity))
        return f"Visibility: {value}"

    def _sky(self, report: WeatherReport):
        for sky in report.sky_conditions:
            if sky.cover is SkyCover.CLR:
                yield "Sky condition: Clear"
                continue
            description = WeatherAnalyzer.sky_description(sky.cover)
            if not is_known(sky.cloud_base_ft_agl):
                yield f"Sky condition: {description}"
                continue
            severity = WeatherAnalyzer.cloud_base_severity(sky)
            layer = self._style(
                f"{description} at {sky.cloud_base_ft_agl} feet",
                SEVERITY_STYLES.get(severity),
            )
            yield f"Sky condition: {layer} above ground level"

    @staticmethod
    def _temperature(label: str, celsius: Optional[float]) -> Optional[str]:
        if not is_known(celsius):
            return None
        return "{}: {}*C ({}*F)".format(
            label,
            format_float(celsius),
            format_float(celsius_to_fahrenheit(celsius)),
        )

    @staticmethod
    def _pressure(report: WeatherReport) -> Optional[str]:
        altimeter = report.altim_in_hg
        if not is_known(altimeter):
            return None
        return "Pressure: {}\" Hg ({} mb)".format(
            format_float(altimeter, 2),
            format_float(altimeter * config.INHG_TO_MB),
        )

    def _adverse_weather(self, report: WeatherReport) -> Optional[str]:
        if not report.wx_string:
            return None
        return f"Adverse weather: {self._style(report.wx_string, YELLOW)}"

    def _notices(self, report: WeatherReport):
        flags = report.quality_flags
        if QualityFlags.MAINTENANCE in flags:
            yield f"{self._style('Warning', YELLOW)}: Station needs maintenance"
        if QualityFlags.NO_SIGNAL in flags:
            yield f"{self._style('Warning', RED)}: Station offline"
        if flags & (QualityFlags.AUTO | QualityFlags.AUTO_STATION):
            yield "Automated weather available."


class TemplateRenderer:
    """
    Substitute ``{name}`` placeholders with report values.

    All placeholder spans are located in a single scan of the template and
    replaced from a snapshot of rendered values, so text inserted for one
    placeholder is never itself substituted. Unrecognised placeholders are
    left as they are. Output beyond options.max_length is dropped.

    Example:
        renderer = TemplateRenderer()
        renderer.render("{station_id} {temp_c}", report)  # "KJFK 21.1"
    """

    def __init__(self, options: Optional[RenderOptions] = None):
        self.options = options or RenderOptions()

    def values(self, report: WeatherReport) -> Dict[str, str]:
        """Rendered text for every recognised placeholder name."""
        local_tz = self.options.timezone
        local_time = format_local(report.observation_time, local_tz)
        if local_time != UNKNOWN:
            local_time += " (local)"
        utc_time = format_utc(report.observation_time)
        if utc_time != UNKNOWN:
            utc_time += " (UTC)"

        sky = report.sky_summary
        metar_type = "SPECI" if report.metar_type is MetarType.SPECI else "METAR"

        return {
            'raw_text': report.raw_text,
            'station_id': report.station_id,
            'observation_time': utc_time,
            'observation_localtime': local_time,
            'observation_time_local': local_time,
            'latitude': format_float(report.latitude, 2),
            'longitude': format_float(report.longitude, 2),
            'temp_c': format_float(report.temp_c),
            'dewpoint_c': format_float(report.dewpoint_c),
            'temp_f': format_float(celsius_to_fahrenheit(report.temp_c)),
            'dewpoint_f': format_float(celsius_to_fahrenheit(report.dewpoint_c)),
            'wind_dir_degrees': format_int(report.wind_dir_degrees),
            'wind_speed_kt': format_int(report.wind_speed_kt),
            'wind_gust_kt': format_int(report.wind_gust_kt),
            'visibility_statute_mi': format_float(report.visibility_statute_mi),
            'altim_in_hg': format_float(report.altim_in_hg, 2),
            'sea_level_pressure_mb': format_float(report.sea_level_pressure_mb, 2),
            'wx_string': report.wx_string,
            'three_hr_pressure_tendency_mb': format_float(report.three_hr_pressure_tendency_mb, 2),
            'maxT_c': format_float(report.max_t_c),
            'minT_c': format_float(report.min_t_c),
            'maxT24hr_c': format_float(report.max_t24hr_c),
            'minT24hr_c': format_float(report.min_t24hr_c),
            'precip_in': format_float(report.precip_in),
            'pcp3hr_in': format_float(report.pcp3hr_in),
            'pcp6hr_in': format_float(report.pcp6hr_in),
            'pcp24hr_in': format_float(report.pcp24hr_in),
            'snow_in': format_float(report.snow_in),
            'vert_vis_ft': format_int(report.vert_vis_ft),
            'elevation_m': format_float(report.elevation_m),
            'quality_control_flags': " ".join(report.quality_flags.codes),
            'sky_condition': sky,
            'sky_conditions': sky,
            'metar_type': metar_type,
            'flight_category': flight_category_text(report.flight_category, self.options.color),
        }

    def render(self, template: str, report: WeatherReport) -> str:
        values = self.values(report)

        def substitute(match):
            return values.get(match.group(1), match.group(0))

        output = _PLACEHOLDER.sub(substitute, template)
        if len(output) > self.options.max_length:
            logger.debug("Truncating rendered output from %d to %d characters",
                         len(output), self.options.max_length)
            output = output[:self.options.max_length]
        return output


def render_report(
    report: WeatherReport,
    mode: OutputMode = OutputMode.RAW,
    template: Optional[str] = None,
    options: Optional[RenderOptions] = None,
) -> str:
    """
    Render a report in the requested mode.

    Args:
        report: Report to render
        mode: RAW, NARRATIVE or TEMPLATE
        template: Placeholder template (TEMPLATE mode, defaults to raw text)
        options: Colour, timezone and length options

    Returns:
        Rendered text
    """
    if mode is OutputMode.NARRATIVE:
        return NarrativeRenderer(options).render(report)
    if mode is OutputMode.TEMPLATE:
        return TemplateRenderer(options).render(template or config.DEFAULT_FORMAT, report)
    return report.raw_text
