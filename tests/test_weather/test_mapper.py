"""Tests for MetarDocumentMapper: dataserver XML to WeatherReport."""

import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from metarwx.weather.mapper import (
    MetarDocumentMapper,
    DocumentParseError,
    QueryContextError,
    QueryCompileError,
    parse_float,
    parse_int,
    parse_observation_time,
)
from metarwx.weather.models import (
    FlightCategory,
    MetarType,
    QualityFlags,
    SkyCover,
    is_known,
)
from metarwx.weather.render import NarrativeRenderer, RenderOptions, TemplateRenderer


def wrap(*metars: str) -> str:
    """Build a dataserver response around METAR element bodies."""
    body = "".join(f"<METAR>{m}</METAR>" for m in metars)
    return f"<response><data num_results=\"{len(metars)}\">{body}</data></response>"


@pytest.fixture
def mapper():
    return MetarDocumentMapper()


class TestDocument:
    """Test document-level mapping and errors."""

    def test_two_observations_in_order(self, mapper, kjfk_document):
        reports = mapper.map_document(kjfk_document)
        assert len(reports) == 2
        assert reports[0].observation_time == datetime(2026, 10, 18, 12, 51, tzinfo=timezone.utc)
        assert reports[1].observation_time == datetime(2026, 10, 18, 11, 51, tzinfo=timezone.utc)

    def test_capacity_bounds_result(self, mapper, kjfk_document):
        reports = mapper.map_document(kjfk_document, max_reports=1)
        assert len(reports) == 1
        assert reports[0].metar_type == MetarType.METAR

    def test_zero_capacity(self, mapper, kjfk_document):
        assert mapper.map_document(kjfk_document, max_reports=0) == []

    def test_no_observations_is_empty_list(self, mapper):
        assert mapper.map_document(wrap()) == []

    def test_missing_data_element_is_empty_list(self, mapper):
        assert mapper.map_document("<response><errors/></response>") == []

    def test_nested_response(self, mapper):
        doc = f"<envelope>{wrap('<station_id>EGLL</station_id>')}</envelope>"
        reports = mapper.map_document(doc)
        assert [r.station_id for r in reports] == ["EGLL"]

    def test_malformed_xml(self, mapper):
        with pytest.raises(DocumentParseError) as exc_info:
            mapper.map_document("<response><data>")
        assert exc_info.value.reason == "invalid XML data"

    def test_empty_document(self, mapper):
        with pytest.raises(DocumentParseError):
            mapper.map_document(b"")
        with pytest.raises(DocumentParseError):
            mapper.map_document(None)

    def test_parsed_element_accepted(self, mapper):
        root = ET.fromstring(wrap("<station_id>LFPG</station_id>"))
        assert mapper.map_document(root)[0].station_id == "LFPG"

    def test_unqueryable_context(self, mapper):
        with pytest.raises(QueryContextError) as exc_info:
            mapper.map_document(12)
        assert exc_info.value.reason == "invalid XPath context"

    def test_query_compile_failure(self, mapper):
        root = ET.fromstring(wrap())
        with patch("metarwx.weather.mapper.METAR_PATH", "./data/METAR["):
            with pytest.raises(QueryCompileError):
                mapper.map_document(root)


class TestFields:
    """Test scalar field mapping."""

    def test_full_observation(self, mapper, kjfk_document):
        report = mapper.map_document(kjfk_document)[0]
        assert report.raw_text.startswith("KJFK 181251Z")
        assert report.station_id == "KJFK"
        assert report.latitude == pytest.approx(40.64)
        assert report.longitude == pytest.approx(-73.76)
        assert report.temp_c == pytest.approx(14.4)
        assert report.dewpoint_c == pytest.approx(2.2)
        assert report.wind_dir_degrees == 310
        assert report.wind_speed_kt == 12
        assert report.wind_gust_kt == 22
        assert report.visibility_statute_mi == pytest.approx(10.0)
        assert report.altim_in_hg == pytest.approx(30.020668)
        assert report.sea_level_pressure_mb == pytest.approx(1016.6)
        assert report.flight_category == FlightCategory.VFR
        assert report.metar_type == MetarType.METAR
        assert report.elevation_m == pytest.approx(4.0)

    def test_absent_fields_are_none(self, mapper):
        report = mapper.map_document(wrap("<station_id>KJFK</station_id>"))[0]
        assert report.temp_c is None
        assert report.wind_gust_kt is None
        assert report.vert_vis_ft is None
        assert report.observation_time is None
        assert report.wx_string == ""
        assert report.flight_category == FlightCategory.UNKNOWN

    def test_absent_field_renders_unknown(self, mapper):
        report = mapper.map_document(wrap("<station_id>KJFK</station_id>"))[0]
        assert TemplateRenderer().render("{station_id} {temp_c}", report) == "KJFK (unknown)"

    def test_station_id_truncated(self, mapper):
        report = mapper.map_document(wrap("<station_id>KJFKXX</station_id>"))[0]
        assert report.station_id == "KJFK"

    def test_unrecognized_elements_ignored(self, mapper):
        report = mapper.map_document(wrap(
            "<station_id>KJFK</station_id><new_field>7</new_field><temp_c>3</temp_c>"
        ))[0]
        assert report.station_id == "KJFK"
        assert report.temp_c == 3.0

    def test_extreme_temperatures(self, mapper):
        report = mapper.map_document(wrap(
            "<maxT_c>20.1</maxT_c><minT_c>10.2</minT_c>"
            "<maxT24hr_c>22.3</maxT24hr_c><minT24hr_c>8.4</minT24hr_c>"
        ))[0]
        assert report.max_t_c == pytest.approx(20.1)
        assert report.min_t_c == pytest.approx(10.2)
        assert report.max_t24hr_c == pytest.approx(22.3)
        assert report.min_t24hr_c == pytest.approx(8.4)

    def test_precipitation(self, mapper):
        report = mapper.map_document(wrap(
            "<precip_in>0.01</precip_in><pcp3hr_in>0.1</pcp3hr_in>"
            "<pcp6hr_in>0.25</pcp6hr_in><pcp24hr_in>1.5</pcp24hr_in><snow_in>2</snow_in>"
        ))[0]
        assert report.precip_in == pytest.approx(0.01)
        assert report.pcp3hr_in == pytest.approx(0.1)
        assert report.pcp6hr_in == pytest.approx(0.25)
        assert report.pcp24hr_in == pytest.approx(1.5)
        assert report.snow_in == pytest.approx(2.0)

    def test_variable_wind_direction_is_zero(self, mapper):
        report = mapper.map_document(wrap("<wind_dir_degrees>VRB</wind_dir_degrees>"))[0]
        assert report.wind_dir_degrees == 0

    def test_malformed_numeric_is_zero(self, mapper):
        report = mapper.map_document(wrap("<temp_c>n/a</temp_c>"))[0]
        assert report.temp_c == 0.0

    def test_visibility_plus_suffix(self, mapper):
        report = mapper.map_document(wrap("<visibility_statute_mi>10+</visibility_statute_mi>"))[0]
        assert report.visibility_statute_mi == 10.0

    def test_bad_observation_time_is_unknown(self, mapper):
        report = mapper.map_document(wrap("<observation_time>yesterday</observation_time>"))[0]
        assert report.observation_time is None

    def test_unknown_flight_category(self, mapper):
        report = mapper.map_document(wrap("<flight_category>XFR</flight_category>"))[0]
        assert report.flight_category == FlightCategory.UNKNOWN


class TestSkyConditions:
    """Test sky_condition attribute mapping."""

    def test_layers_in_order(self, mapper, kjfk_document):
        report = mapper.map_document(kjfk_document)[0]
        assert [(s.cover, s.cloud_base_ft_agl) for s in report.sky_conditions] == [
            (SkyCover.FEW, 5000),
            (SkyCover.BKN, 25000),
        ]

    def test_extra_layers_dropped(self, mapper):
        layers = "".join(
            f'<sky_condition sky_cover="BKN" cloud_base_ft_agl="{1000 * i}"/>' for i in range(1, 7)
        )
        report = mapper.map_document(wrap(layers))[0]
        assert len(report.sky_conditions) == 4
        assert report.sky_conditions[3].cloud_base_ft_agl == 4000

    def test_clear_without_base(self, mapper):
        report = mapper.map_document(wrap('<sky_condition sky_cover="CLR"/>'))[0]
        assert report.sky_conditions[0].cover == SkyCover.CLR
        assert report.sky_conditions[0].cloud_base_ft_agl is None

    def test_unrecognized_cover(self, mapper):
        report = mapper.map_document(wrap('<sky_condition sky_cover="NSC" cloud_base_ft_agl="100"/>'))[0]
        assert report.sky_conditions[0].cover == SkyCover.UNKNOWN
        assert report.sky_conditions[0].cloud_base_ft_agl == 100

    def test_cover_is_case_sensitive(self, mapper):
        report = mapper.map_document(wrap('<sky_condition sky_cover="ovc" cloud_base_ft_agl="500"/>'))[0]
        assert report.sky_conditions[0].cover == SkyCover.UNKNOWN

    def test_every_cover_code(self, mapper):
        for cover in SkyCover:
            if cover is SkyCover.UNKNOWN:
                continue
            report = mapper.map_document(wrap(f'<sky_condition sky_cover="{cover.value}"/>'))[0]
            assert report.sky_conditions[0].cover is cover


class TestQualityControlFlags:
    """Test quality_control_flags container mapping."""

    def test_flags_from_document(self, mapper, kjfk_document):
        second = mapper.map_document(kjfk_document)[1]
        assert second.quality_flags == QualityFlags.CORRECTED | QualityFlags.AUTO_STATION

    def test_true_case_insensitive(self, mapper):
        report = mapper.map_document(wrap(
            "<quality_control_flags><corrected>true</corrected><auto>True</auto></quality_control_flags>"
        ))[0]
        assert report.quality_flags == QualityFlags.CORRECTED | QualityFlags.AUTO

    def test_non_true_leaves_clear(self, mapper):
        report = mapper.map_document(wrap(
            "<quality_control_flags>"
            "<corrected>FALSE</corrected><auto></auto><no_signal>yes</no_signal>"
            "</quality_control_flags>"
        ))[0]
        assert report.quality_flags == QualityFlags.NONE

    def test_every_flag_element(self, mapper):
        names = [
            "corrected", "auto", "auto_station", "maintenance_indicator_on", "no_signal",
            "lightning_sensor_off", "freezing_rain_sensor_off", "present_weather_sensor_off",
        ]
        body = "".join(f"<{n}>TRUE</{n}>" for n in names)
        report = mapper.map_document(wrap(f"<quality_control_flags>{body}</quality_control_flags>"))[0]
        assert report.quality_flags == QualityFlags(0xFF)

    def test_unknown_flag_ignored(self, mapper):
        report = mapper.map_document(wrap(
            "<quality_control_flags><sensor_on_fire>TRUE</sensor_on_fire></quality_control_flags>"
        ))[0]
        assert report.quality_flags == QualityFlags.NONE


class TestConverters:
    """Test permissive text conversion helpers."""

    def test_parse_float(self):
        assert parse_float("12.5") == 12.5
        assert parse_float(" -3.25 ") == -3.25
        assert parse_float("12.5abc") == 12.5
        assert parse_float(".5") == 0.5
        assert parse_float("abc") == 0.0
        assert parse_float(None) == 0.0

    def test_parse_int(self):
        assert parse_int("250") == 250
        assert parse_int("12.7") == 12
        assert parse_int("VRB") == 0
        assert parse_int("") == 0

    def test_parse_observation_time(self):
        assert parse_observation_time("2026-10-18T12:51:00Z") == datetime(
            2026, 10, 18, 12, 51, tzinfo=timezone.utc
        )
        assert parse_observation_time("2026-13-40T00:00:00Z") is None
        assert parse_observation_time(None) is None

    def test_parse_observation_time_offsets(self):
        expected = datetime(2026, 10, 18, 12, 51, tzinfo=timezone.utc)
        assert parse_observation_time("2026-10-18T08:51:00-04:00") == expected
        assert parse_observation_time("2026-10-18T12:51:00") == expected
        assert parse_observation_time("2026-10-18T12:51:00.000Z") == expected

    def test_parse_observation_time_other_forms_rejected(self):
        assert parse_observation_time("2026-10-18") is None
        assert parse_observation_time("2026-W42-7") is None
        assert parse_observation_time("20261018T125100Z") is None
        assert parse_observation_time("2026-10-18T12:51Z") is None


class TestExtremeValues:
    """Test mapped values that are valid XML but unusual numbers or dates."""

    def test_overflowing_temperature_is_unknown(self, mapper):
        report = mapper.map_document(wrap("<station_id>KJFK</station_id><temp_c>1e999</temp_c>"))[0]
        assert not is_known(report.temp_c)
        assert TemplateRenderer().render("{temp_c}", report) == "(unknown)"
        assert "Temperature" not in NarrativeRenderer().render(report)

    def test_large_elevation_renders(self, mapper):
        report = mapper.map_document(wrap("<elevation_m>1e30</elevation_m>"))[0]
        assert TemplateRenderer().render("{elevation_m}", report) == "1" + "0" * 30 + ".0"

    def test_first_year_time(self, mapper):
        report = mapper.map_document(wrap("<observation_time>0001-01-01T00:00:00Z</observation_time>"))[0]
        options = RenderOptions(local_tz=timezone(timedelta(hours=-4)))
        assert TemplateRenderer(options).render("{observation_localtime}", report) == "(unknown)"
        assert "(Local time: (unknown))" in NarrativeRenderer(options).render(report)

    def test_date_only_time_is_unknown(self, mapper):
        report = mapper.map_document(wrap("<observation_time>2026-10-18</observation_time>"))[0]
        assert report.observation_time is None
