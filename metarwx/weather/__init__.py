"""
Weather module for mapping and rendering METAR/SPECI observations.

Provides:
- WeatherReport: One observation mapped from the dataserver XML
- SkyCondition, SkyCover, FlightCategory, MetarType, QualityFlags: field types
- MetarDocumentMapper: XML document to WeatherReport records
- WeatherAnalyzer: Sky cover eligibility and display severity tiers
- NarrativeRenderer, TemplateRenderer: Decoded and templated output

Example:
    from metarwx.weather import MetarDocumentMapper, TemplateRenderer

    reports = MetarDocumentMapper().map_document(xml_bytes, max_reports=1)
    print(TemplateRenderer().render("{station_id} {flight_category}", reports[0]))
"""

from metarwx.weather.models import (
    WeatherReport,
    SkyCondition,
    SkyCover,
    FlightCategory,
    MetarType,
    QualityFlags,
)
from metarwx.weather.mapper import (
    MetarDocumentMapper,
    MetarDocumentError,
    DocumentParseError,
    QueryContextError,
    QueryCompileError,
    parse_document,
)
from metarwx.weather.analysis import WeatherAnalyzer, Severity
from metarwx.weather.render import (
    NarrativeRenderer,
    TemplateRenderer,
    RenderOptions,
    OutputMode,
    render_report,
)

__all__ = [
    'WeatherReport',
    'SkyCondition',
    'SkyCover',
    'FlightCategory',
    'MetarType',
    'QualityFlags',
    'MetarDocumentMapper',
    'MetarDocumentError',
    'DocumentParseError',
    'QueryContextError',
    'QueryCompileError',
    'parse_document',
    'WeatherAnalyzer',
    'Severity',
    'NarrativeRenderer',
    'TemplateRenderer',
    'RenderOptions',
    'OutputMode',
    'render_report',
]
