"""
METAR/SPECI retrieval and rendering.

This package fetches aviation weather observations from the aviationweather.gov
dataserver, maps them into WeatherReport records and renders them as raw text,
a decoded narrative or a user template.

The main public API includes:
- WeatherReport: Mapped observation
- MetarDocumentMapper: Dataserver XML to records
- WeatherAnalyzer: Severity classification for display
- TemplateRenderer / NarrativeRenderer: Output rendering
- AvWxSource: Cached dataserver fetcher
"""

__version__ = '0.1.0'
__all__ = [
    'WeatherReport',
    'MetarDocumentMapper',
    'WeatherAnalyzer',
    'TemplateRenderer',
    'NarrativeRenderer',
    'AvWxSource',
]

from metarwx.weather import (
    WeatherReport,
    MetarDocumentMapper,
    WeatherAnalyzer,
    TemplateRenderer,
    NarrativeRenderer,
)
from metarwx.sources import AvWxSource
