"""Weather analysis: sky cover eligibility and display severity tiers."""

from enum import Enum
from typing import Optional

from metarwx.weather.models import (
    FlightCategory,
    SkyCover,
    SkyCondition,
    is_known,
)

# Wind thresholds (knots)
WIND_SEVERE_KT = 10
GUST_SPREAD_SEVERE_KT = 5

# Visibility thresholds (statute miles)
VISIBILITY_ANNOTATE_BELOW_SM = 5.0
VISIBILITY_CAUTION_BELOW_SM = 3.0
VISIBILITY_SEVERE_BELOW_SM = 1.0

# Cloud base thresholds (feet AGL)
CLOUD_BASE_ANNOTATE_MAX_FT = 3000
CLOUD_BASE_CAUTION_BELOW_FT = 1000
CLOUD_BASE_SEVERE_BELOW_FT = 500


class Severity(Enum):
    """Display severity, from unannotated to severe."""

    NONE = 0
    NORMAL = 1
    CAUTION = 2
    SEVERE = 3

    @property
    def annotated(self) -> bool:
        return self is not Severity.NONE


_VFR_ELIGIBLE = frozenset({
    SkyCover.CAVOK,
    SkyCover.FEW,
    SkyCover.SCT,
    SkyCover.SKC,
    SkyCover.CLR,
})

_SKY_DESCRIPTIONS = {
    SkyCover.BKN: "Broken clouds",
    SkyCover.CAVOK: "Ceiling/visibility okay",
    SkyCover.FEW: "Few clouds",
    SkyCover.OVC: "Overcast",
    SkyCover.OVX: "Sky obscured",
    SkyCover.SCT: "Scattered clouds",
    SkyCover.SKC: "Sky clear",
    SkyCover.CLR: "Clear",
}

_CATEGORY_LABELS = {
    FlightCategory.VFR: "VFR",
    FlightCategory.MVFR: "MVFR",
    FlightCategory.IFR: "IFR",
    FlightCategory.LIFR: "LIFR",
}


class WeatherAnalyzer:
    """
    Severity classification of report fields for display.

    All methods are static: pure functions with no state. None of them
    computes a flight category; that value always comes from the source.
    """

    @staticmethod
    def is_vfr_eligible(cover: SkyCover) -> bool:
        """
        Whether a sky cover code is compatible with visual flight.

        True for CAVOK, FEW, SCT, SKC and CLR; False for BKN, OVC, OVX and
        UNKNOWN.
        """
        return cover in _VFR_ELIGIBLE

    @staticmethod
    def wind_severity(speed_kt: Optional[int]) -> Severity:
        """Steady wind is severe at 10 knots or more."""
        if not is_known(speed_kt):
            return Severity.NONE
        if speed_kt >= WIND_SEVERE_KT:
            return Severity.SEVERE
        return Severity.NONE

    @staticmethod
    def gust_severity(speed_kt: Optional[int], gust_kt: Optional[int]) -> Severity:
        """Gusts are severe when they exceed the steady speed by 5 knots or more."""
        if not is_known(gust_kt) or gust_kt <= 0:
            return Severity.NONE
        base = speed_kt if is_known(speed_kt) else 0
        if gust_kt - base >= GUST_SPREAD_SEVERE_KT:
            return Severity.SEVERE
        return Severity.NONE

    @staticmethod
    def visibility_severity(visibility_sm: Optional[float]) -> Severity:
        """
        Bucket visibility in statute miles.

        Only values below 5 SM are annotated:
            SEVERE:   vis < 1
            CAUTION:  1 <= vis < 3
            NORMAL:   3 <= vis < 5
        """
        if not is_known(visibility_sm) or visibility_sm >= VISIBILITY_ANNOTATE_BELOW_SM:
            return Severity.NONE
        if visibility_sm >= VISIBILITY_CAUTION_BELOW_SM:
            return Severity.NORMAL
        if visibility_sm >= VISIBILITY_SEVERE_BELOW_SM:
            return Severity.CAUTION
        return Severity.SEVERE

    @staticmethod
    def cloud_base_severity(sky: SkyCondition) -> Severity:
        """
        Bucket a cloud layer by base height.

        Only layers that are not VFR-eligible with a base at or below
        3000 ft are annotated:
            SEVERE:   base < 500
            CAUTION:  500 <= base < 1000
            NORMAL:   1000 <= base <= 3000
        """
        base = sky.cloud_base_ft_agl
        if WeatherAnalyzer.is_vfr_eligible(sky.cover) or not is_known(base):
            return Severity.NONE
        if base > CLOUD_BASE_ANNOTATE_MAX_FT:
            return Severity.NONE
        if base >= CLOUD_BASE_CAUTION_BELOW_FT:
            return Severity.NORMAL
        if base >= CLOUD_BASE_SEVERE_BELOW_FT:
            return Severity.CAUTION
        return Severity.SEVERE

    @staticmethod
    def flight_category_label(category: FlightCategory) -> str:
        """Display label for a flight category, ``???`` when unknown."""
        return _CATEGORY_LABELS.get(category, "???")

    @staticmethod
    def sky_description(cover: SkyCover) -> str:
        """Human readable description of a sky cover code."""
        return _SKY_DESCRIPTIONS.get(cover, "Unknown")
