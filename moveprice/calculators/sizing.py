from __future__ import annotations

import math
from decimal import ROUND_CEILING, Decimal
from typing import Any, Mapping, Optional

import structlog

from ..engine.context import q, to_decimal
from ..engine.tariffs import TariffLookupError, TariffSettings, sorted_thresholds, strict_decimal

D = Decimal

logger = structlog.get_logger(__name__)

# Default tiers (zonder auto-pricing tabellen)
DEFAULT_CREW_TIERS = ((D("800"), 2), (D("1500"), 3))
DEFAULT_CREW_MAX = 4
DEFAULT_TRUCK_CAPACITY_CUFT = D("1500")
DEFAULT_CUFT_PER_CREW_HOUR = D("50")


def _threshold_lookup(rows: Any, value_key: str, cubic_feet: D, *, table_name: str) -> int:
    pairs = sorted_thresholds(rows, value_key, table_name=table_name)
    for min_cuft, value in pairs:
        if min_cuft > cubic_feet:
            return int(value)
    # boven de hoogste drempel -> grootste entry
    return int(pairs[-1][1])


class SizingEstimator:
    """
    Crew size, truck count and job duration from move volume (cubic feet).
    Uses the auto-pricing tables when present, the default tiers otherwise.
    """

    def __init__(self, tariff_settings: Optional[TariffSettings] = None):
        self.tariff_settings = tariff_settings

    @property
    def _auto_pricing(self) -> Mapping[str, Any]:
        if self.tariff_settings is None:
            return {}
        return self.tariff_settings.auto_pricing or {}

    def required_crew(self, cubic_feet: Any) -> int:
        cuft = to_decimal(cubic_feet)
        rows = self._auto_pricing.get("crewRequired")
        if rows:
            try:
                return _threshold_lookup(rows, "crewSize", cuft, table_name="crewRequired")
            except (TariffLookupError, ValueError, TypeError) as e:
                logger.warning("tariff_resolution_fallback", table="crewRequired", reason=str(e))

        for limit, crew in DEFAULT_CREW_TIERS:
            if cuft < limit:
                return crew
        return DEFAULT_CREW_MAX

    def required_trucks(self, cubic_feet: Any) -> int:
        cuft = to_decimal(cubic_feet)
        rows = self._auto_pricing.get("trucksRequired")
        if rows:
            try:
                return _threshold_lookup(rows, "truckCount", cuft, table_name="trucksRequired")
            except (TariffLookupError, ValueError, TypeError) as e:
                logger.warning("tariff_resolution_fallback", table="trucksRequired", reason=str(e))

        trucks = (cuft / DEFAULT_TRUCK_CAPACITY_CUFT).to_integral_value(rounding=ROUND_CEILING)
        return max(1, int(trucks))

    def estimate_duration(self, cubic_feet: Any, crew_size: int) -> D:
        """Hours for the job; tariff path is capped at maxHoursPerJob."""
        cuft = to_decimal(cubic_feet)
        auto = self._auto_pricing

        if auto.get("crewAbility"):
            try:
                capacity = self._crew_capacity(auto["crewAbility"], crew_size)
                hours = cuft / capacity
                max_hours = auto.get("maxHoursPerJob")
                if max_hours is not None:
                    hours = min(hours, strict_decimal(max_hours, what="autoPricing.maxHoursPerJob"))
                return q(hours)
            except TariffLookupError as e:
                logger.warning("tariff_resolution_fallback", table="crewAbility", reason=str(e))

        crew = max(1, int(crew_size))
        return D(math.ceil(cuft / (DEFAULT_CUFT_PER_CREW_HOUR * crew)))

    @staticmethod
    def _crew_capacity(rows: Any, crew_size: int) -> D:
        for i, row in enumerate(rows):
            if isinstance(row, Mapping) and str(row.get("crewSize")) == str(crew_size):
                capacity = strict_decimal(row.get("maxCubicFeet"), what=f"crewAbility[{i}].maxCubicFeet")
                if capacity <= 0:
                    raise TariffLookupError(f"crewAbility[{i}]: capacity must be > 0")
                return capacity
        raise TariffLookupError(f"crewAbility: no entry for crew size {crew_size}")
