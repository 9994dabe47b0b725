from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence, Tuple

from ..engine.context import (
    AppliedLocationHandicap,
    AppliedRule,
    EstimateInput,
    PriceBreakdown,
    q,
)

D = Decimal

# Bucket membership op rule id (substring match). Buckets mogen overlappen of
# iets missen: total komt altijd van final_price, niet van de som.
TRANSPORTATION_MARKERS: Tuple[str, ...] = ("distance",)
SPECIAL_SERVICE_MARKERS: Tuple[str, ...] = ("piano", "antique", "fragile")
SEASONAL_MARKERS: Tuple[str, ...] = ("weekend", "season")
MATERIAL_RULE_IDS: Tuple[str, ...] = ("packing_service_rate", "assembly_service")


def _sum(impacts: Iterable[D]) -> D:
    total = D("0")
    for x in impacts:
        total += x
    return total


def _matching(rules: Sequence[AppliedRule], markers: Tuple[str, ...]) -> D:
    return _sum(r.price_impact for r in rules if any(m in r.rule_id for m in markers))


class BreakdownComposer:
    """
    Partitions the applied impacts into display buckets.
    `subtotal` is the sum of the buckets; `total` is the authoritative final price.
    """

    def compose(
        self,
        input: EstimateInput,
        base_price: D,
        applied_rules: Sequence[AppliedRule],
        applied_handicaps: Sequence[AppliedLocationHandicap],
        final_price: D,
    ) -> PriceBreakdown:
        base_labor = base_price
        materials = _sum(r.price_impact for r in applied_rules if r.rule_id in MATERIAL_RULE_IDS)
        transportation = _matching(applied_rules, TRANSPORTATION_MARKERS)
        location_handicaps = _sum(h.price_impact for h in applied_handicaps)
        special_services = _matching(applied_rules, SPECIAL_SERVICE_MARKERS)
        seasonal_adjustment = _matching(applied_rules, SEASONAL_MARKERS)

        subtotal = (
            base_labor
            + materials
            + transportation
            + location_handicaps
            + special_services
            + seasonal_adjustment
        )

        return PriceBreakdown(
            base_labor=q(base_labor),
            materials=q(materials),
            transportation=q(transportation),
            location_handicaps=q(location_handicaps),
            special_services=q(special_services),
            seasonal_adjustment=q(seasonal_adjustment),
            subtotal=q(subtotal),
            taxes=q(D("0")),
            total=q(final_price),
        )
