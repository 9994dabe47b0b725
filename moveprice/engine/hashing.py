from __future__ import annotations

import hashlib
import json
import zlib
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict

import structlog

from .context import EstimateInput, LocationAccess, as_utc

D = Decimal

logger = structlog.get_logger(__name__)

FALLBACK_ALGORITHM = "crc32+adler32"


def _canonical_json(obj: Any) -> str:
    """Deterministic JSON string: sorted keys, no whitespace."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _fixed(value: D, places: str) -> str:
    return str(value.quantize(D(places), rounding=ROUND_HALF_UP))


def _plain(value: D) -> str:
    # 25 == 25.0 == 25.00 -> "25"
    n = value.normalize()
    return format(n, "f") if n != n.to_integral_value() else str(int(n))


def _access(loc: LocationAccess) -> Dict[str, Any]:
    return {
        "floorLevel": loc.floor_level,
        "elevatorAccess": loc.elevator_access,
        "longCarry": loc.long_carry,
        "parkingDistance": _plain(loc.parking_distance),
        "accessDifficulty": loc.access_difficulty,
        "stairsCount": loc.stairs_count or 0,
        "narrowHallways": bool(loc.narrow_hallways),
    }


class DeterministicHasher:
    """
    Stable fingerprint of the normalized input.

    Only pricing-relevant fields go in (customer id and addresses do not);
    numbers are normalized so 12 and 12.00 miles hash the same. Reproducible
    within one engine version; not meant to be portable across algorithms.
    """

    def __init__(self, rules_version: str, algorithm: str = "sha256"):
        self.rules_version = rules_version
        self.algorithm = algorithm
        self.degraded = False

        try:
            hashlib.new(algorithm)
        except (ValueError, TypeError):
            self.degraded = True
            logger.warning(
                "hash_degraded",
                requested=algorithm,
                fallback=FALLBACK_ALGORITHM,
            )

    def normalize(self, input: EstimateInput) -> Dict[str, Any]:
        move_day = as_utc(input.move_date).date().isoformat() if input.move_date else None
        return {
            "service": input.service,
            "moveDate": move_day,
            "distance": _fixed(input.distance, "0.01"),
            "totalWeight": int(input.total_weight.quantize(D("1"), rounding=ROUND_HALF_UP)),
            "totalVolume": _fixed(input.total_volume, "0.01"),
            "crewSize": input.crew_size,
            "pickup": _access(input.pickup),
            "delivery": _access(input.delivery),
            "specialItems": input.special_items.as_view(),
            "additionalServices": input.additional_services.as_view(),
            "isWeekend": input.is_weekend,
            "isHoliday": input.is_holiday,
            "seasonalPeriod": input.seasonal_period,
            "specialtyCrewRequired": input.specialty_crew_required,
            "rulesVersion": self.rules_version,
        }

    def hash(self, input: EstimateInput) -> str:
        data = _canonical_json(self.normalize(input)).encode("utf-8")

        if self.degraded:
            return f"{zlib.crc32(data):08x}{zlib.adler32(data):08x}"

        return hashlib.new(self.algorithm, data).hexdigest()
