from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Tuple

D = Decimal

DAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class TariffLookupError(LookupError):
    """
    Internal signal: a tariff table/entry is missing or malformed.
    Never leaves the engine; callers catch it, log and fall back to legacy.
    """


@dataclass(frozen=True)
class TariffSettings:
    """
    Externally supplied rate tables (read-only for the engine).

    Expected shapes (camelCase, like the settings API delivers them):
      hourlyRates  = {"rates": {"2": {"monday": "120", ...}}, "minimumHours": {"monday": 2, ...}}
      packingRates = same shape as hourlyRates
      distanceRates = [{"minWeight": 0, "maxWeight": 5000, "ratePerPound": "0.95", "isActive": true}]
      handicaps = [{"name": "Stairs", "category": "stairs", "type": "per_unit", "percentage": 5, "isActive": true}]
      autoPricing = {"crewRequired": [...], "trucksRequired": [...], "crewAbility": [...], "maxHoursPerJob": 12}

    Every table is optional; lookups raise TariffLookupError instead of KeyError.
    """

    hourly_rates: Optional[Mapping[str, Any]] = None
    packing_rates: Optional[Mapping[str, Any]] = None
    distance_rates: Tuple[Mapping[str, Any], ...] = ()
    handicaps: Tuple[Mapping[str, Any], ...] = ()
    auto_pricing: Optional[Mapping[str, Any]] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_dict(d: Optional[Mapping[str, Any]]) -> "TariffSettings":
        # eigen kopie: tabellen van de caller mogen ons niet meer raken
        d = copy.deepcopy(dict(d or {}))
        return TariffSettings(
            hourly_rates=d.get("hourlyRates"),
            packing_rates=d.get("packingRates"),
            distance_rates=tuple(d.get("distanceRates") or ()),
            handicaps=tuple(d.get("handicaps") or ()),
            auto_pricing=d.get("autoPricing"),
            meta={k: v for k, v in d.items() if k in ("name", "version", "status")},
        )


def strict_decimal(value: Any, *, what: str) -> D:
    if value is None or isinstance(value, bool):
        raise TariffLookupError(f"{what}: missing or not a number ({value!r})")
    try:
        out = D(str(value))
    except (InvalidOperation, ValueError) as e:
        raise TariffLookupError(f"{what}: not a number ({value!r})") from e
    if not out.is_finite():
        raise TariffLookupError(f"{what}: not finite ({value!r})")
    return out


def day_key(moment: datetime) -> str:
    return DAY_NAMES[moment.weekday()]


def is_active(entry: Mapping[str, Any]) -> bool:
    return bool(entry.get("isActive", True))


def crew_day_rate(
    table: Optional[Mapping[str, Any]], crew_size: int, day: str, *, table_name: str
) -> Tuple[D, D]:
    """
    Returns (rate, minimum_hours) for crew size × day-of-week.
    Minimum hours default to 0 when the day has no floor configured.
    """
    if not isinstance(table, Mapping):
        raise TariffLookupError(f"{table_name}: table missing")

    rates = table.get("rates")
    if not isinstance(rates, Mapping):
        raise TariffLookupError(f"{table_name}: rates missing")

    # YAML/JSON keys kunnen int of str zijn
    crew_row = rates.get(str(crew_size), rates.get(crew_size))
    if not isinstance(crew_row, Mapping):
        raise TariffLookupError(f"{table_name}: no entry for crew size {crew_size}")

    if day not in crew_row:
        raise TariffLookupError(f"{table_name}: no {day} rate for crew size {crew_size}")
    rate = strict_decimal(crew_row[day], what=f"{table_name}.rates[{crew_size}].{day}")

    minimum_hours = D("0")
    floors = table.get("minimumHours")
    if isinstance(floors, Mapping) and floors.get(day) is not None:
        minimum_hours = strict_decimal(floors[day], what=f"{table_name}.minimumHours.{day}")

    return rate, minimum_hours


def weight_bracket_rate(brackets: Tuple[Mapping[str, Any], ...], weight: D) -> D:
    """First active bracket with minWeight <= weight < maxWeight (table order)."""
    if not brackets:
        raise TariffLookupError("distanceRates: table missing")

    for i, entry in enumerate(brackets):
        if not isinstance(entry, Mapping) or not is_active(entry):
            continue
        lo = strict_decimal(entry.get("minWeight"), what=f"distanceRates[{i}].minWeight")
        hi = strict_decimal(entry.get("maxWeight"), what=f"distanceRates[{i}].maxWeight")
        if lo <= weight < hi:
            return strict_decimal(entry.get("ratePerPound"), what=f"distanceRates[{i}].ratePerPound")

    raise TariffLookupError(f"distanceRates: no active bracket for weight {weight}")


def sorted_thresholds(
    rows: Any, value_key: str, *, table_name: str
) -> List[Tuple[D, Any]]:
    """(minCubicFeet, value) pairs sorted ascending; malformed rows raise."""
    if not isinstance(rows, (list, tuple)) or not rows:
        raise TariffLookupError(f"{table_name}: table missing")
    out: List[Tuple[D, Any]] = []
    for i, row in enumerate(rows):
        if not isinstance(row, Mapping) or row.get(value_key) is None:
            raise TariffLookupError(f"{table_name}[{i}]: malformed row")
        out.append(
            (strict_decimal(row.get("minCubicFeet"), what=f"{table_name}[{i}].minCubicFeet"), row[value_key])
        )
    return sorted(out, key=lambda pair: pair[0])
