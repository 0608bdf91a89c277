import pytest
from pathlib import Path
from datetime import datetime, timezone

from metarwx.weather.models import (
    WeatherReport,
    SkyCondition,
    SkyCover,
    FlightCategory,
    MetarType,
    QualityFlags,
)


@pytest.fixture
def test_assets_dir() -> Path:
    """Return the path to the test assets directory."""
    return Path(__file__).parent / 'assets'


@pytest.fixture
def test_cache_dir(tmp_path) -> Path:
    """Return a temporary directory for cache testing."""
    return tmp_path / 'cache'


@pytest.fixture
def kjfk_document(test_assets_dir) -> bytes:
    """Dataserver response with two KJFK observations."""
    return (test_assets_dir / 'metars_kjfk.xml').read_bytes()


@pytest.fixture
def sample_report() -> WeatherReport:
    """A fully populated report."""
    return WeatherReport(
        raw_text="KJFK 181251Z 31012G22KT 10SM FEW050 BKN250 14/02 A3002",
        station_id="KJFK",
        observation_time=datetime(2026, 10, 18, 12, 51, tzinfo=timezone.utc),
        metar_type=MetarType.METAR,
        latitude=40.64,
        longitude=-73.76,
        elevation_m=4.0,
        temp_c=14.4,
        dewpoint_c=2.2,
        wind_dir_degrees=310,
        wind_speed_kt=12,
        wind_gust_kt=22,
        visibility_statute_mi=10.0,
        sky_conditions=[
            SkyCondition(SkyCover.FEW, 5000),
            SkyCondition(SkyCover.BKN, 25000),
        ],
        altim_in_hg=30.02,
        sea_level_pressure_mb=1016.6,
        quality_flags=QualityFlags.AUTO_STATION,
        flight_category=FlightCategory.VFR,
    )
