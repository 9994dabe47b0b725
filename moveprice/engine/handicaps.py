from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

import structlog

from .conditions import ConditionEvaluator
from .context import (
    EstimateInput,
    HandicapType,
    LocationHandicap,
    ResolutionVia,
    q,
)
from .tariffs import TariffLookupError, TariffSettings, is_active, strict_decimal

D = Decimal

logger = structlog.get_logger(__name__)

STAIRS = "stairs"
ELEVATOR = "elevator"
LONG_CARRY = "long_carry"

TARIFF_CATEGORIES = (STAIRS, ELEVATOR, LONG_CARRY)


@dataclass(frozen=True)
class HandicapOutcome:
    impact: D
    updated_price: D
    via: ResolutionVia


def handicap_category(handicap: LocationHandicap) -> Optional[str]:
    """Category of a rule-side handicap, guessed from its id/name."""
    text = f"{handicap.id} {handicap.name}".lower()
    if STAIRS in text or "flight" in text:
        return STAIRS
    if ELEVATOR in text:
        return ELEVATOR
    if LONG_CARRY in text or "long carry" in text:
        return LONG_CARRY
    return None


def tariff_entry_category(entry: Mapping[str, Any]) -> Optional[str]:
    """Category of a tariff handicap row: explicit category, else name substring."""
    category = str(entry.get("category") or "").lower()
    if category in TARIFF_CATEGORIES:
        return category
    name = str(entry.get("name") or "").lower()
    if "flight" in name:
        return STAIRS
    if ELEVATOR in name:
        return ELEVATOR
    return None


def total_flights(input: EstimateInput) -> int:
    flights = (input.pickup.stairs_count or 0) + (input.delivery.stairs_count or 0)
    return max(1, flights)


class HandicapApplier:
    """
    Applies one location handicap to the running price.

    Tariff path first (percentage of the running price, matched heuristically
    on category/name), otherwise the legacy fixed amount and/or multiplier
    configured on the handicap itself.
    """

    def __init__(
        self,
        tariff_settings: Optional[TariffSettings] = None,
        evaluator: Optional[ConditionEvaluator] = None,
    ):
        self.tariff_settings = tariff_settings
        self.evaluator = evaluator or ConditionEvaluator()

    def should_apply(self, handicap: LocationHandicap, input: EstimateInput) -> bool:
        if not handicap.is_active:
            return False
        return self.evaluator.evaluate(handicap.conditions, input)

    def apply(
        self, handicap: LocationHandicap, input: EstimateInput, current_price: D
    ) -> HandicapOutcome:
        entry = self._find_tariff_entry(handicap)
        if entry is not None:
            try:
                return self._apply_tariff(entry, input, current_price)
            except TariffLookupError as e:
                logger.warning(
                    "tariff_resolution_fallback",
                    handicap_id=handicap.id,
                    reason=str(e),
                )

        return self.apply_legacy(handicap, input, current_price)

    def _find_tariff_entry(self, handicap: LocationHandicap) -> Optional[Mapping[str, Any]]:
        if self.tariff_settings is None or not self.tariff_settings.handicaps:
            return None

        category = handicap_category(handicap)
        if category is None:
            return None

        for entry in self.tariff_settings.handicaps:
            if not isinstance(entry, Mapping) or not is_active(entry):
                continue
            # fixed_fee rijen horen niet bij het percentage pad
            if str(entry.get("type") or "percentage") not in ("percentage", "per_unit"):
                continue
            if tariff_entry_category(entry) == category:
                return entry
        return None

    def _apply_tariff(
        self, entry: Mapping[str, Any], input: EstimateInput, current_price: D
    ) -> HandicapOutcome:
        name = entry.get("name") or entry.get("id") or "?"
        percentage = strict_decimal(
            entry.get("percentage", entry.get("value")), what=f"handicaps[{name}].percentage"
        )
        impact = current_price * (percentage / D("100"))

        if entry.get("type") == "per_unit" and tariff_entry_category(entry) == STAIRS:
            impact = impact * D(total_flights(input))

        impact = q(impact)
        return HandicapOutcome(
            impact=impact,
            updated_price=q(current_price + impact),
            via=ResolutionVia.TARIFF,
        )

    def apply_legacy(
        self, handicap: LocationHandicap, input: EstimateInput, current_price: D
    ) -> HandicapOutcome:
        impact = D("0")
        updated = current_price

        fixed = handicap.fixed_amount
        if fixed is not None and fixed > 0:
            if STAIRS in handicap.id:
                side = input.pickup if "pickup" in handicap.id else input.delivery
                # 0 of ontbrekend telt als 1 flight
                flights = side.stairs_count or 1
                impact = fixed * D(flights)
            else:
                impact = fixed
            updated = updated + impact

        if handicap.multiplier is not None and handicap.multiplier != D("1"):
            impact = impact + current_price * (handicap.multiplier - D("1"))
            updated = current_price * handicap.multiplier + (updated - current_price)

        return HandicapOutcome(
            impact=q(impact),
            updated_price=q(updated),
            via=ResolutionVia.LEGACY,
        )

    @staticmethod
    def handicap_type(handicap: LocationHandicap) -> HandicapType:
        has_pickup = any(c.field.startswith("pickup") for c in handicap.conditions)
        has_delivery = any(c.field.startswith("delivery") for c in handicap.conditions)

        if has_pickup and has_delivery:
            return HandicapType.BOTH
        if has_pickup:
            return HandicapType.PICKUP
        if has_delivery:
            return HandicapType.DELIVERY
        return HandicapType.BOTH
