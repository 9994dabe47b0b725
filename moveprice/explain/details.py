from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..engine.context import EstimateInput, PricingRule

D = Decimal


def _clean(s: str) -> str:
    # details gaan 1-op-1 naar UI/PDF: geen newlines/tabs
    return str(s).replace("\r", "").replace("\n", " ").replace("\t", " ").strip()


def _money(x: D) -> str:
    return f"${x:.2f}"


def _pct(fraction: D) -> str:
    return f"{(fraction * 100).normalize():f}%"


def _first_amount(rule: "PricingRule", action_type: str) -> Optional[D]:
    for action in rule.actions:
        if action.type == action_type:
            return action.amount
    return None


def rule_calculation_details(rule: "PricingRule", input: "EstimateInput", impact: D) -> str:
    """
    Human readable calculation line for an applied rule. Never empty.
    """
    fixed = _first_amount(rule, "add_fixed")
    pct = _first_amount(rule, "add_percentage")

    if rule.id == "crew_size_adjustment" and fixed is not None:
        extra = max(0, input.crew_size - 2)
        text = (
            f"{extra} extra crew × {_money(fixed)}/hour × "
            f"{input.estimated_duration} hours = {_money(impact)}"
        )
    elif rule.id == "fragile_items_surcharge" and fixed is not None:
        extra = max(0, input.special_items.fragile_items - 5)
        text = f"{extra} fragile items over 5 × {_money(fixed)} = {_money(impact)}"
    elif rule.id == "weight_heavy_surcharge" and pct is not None:
        text = f"{_pct(pct)} heavy shipment surcharge ({input.total_weight} lbs) = {_money(impact)}"
    elif rule.id == "weekend_surcharge" and pct is not None:
        text = f"{_pct(pct)} weekend surcharge applied = {_money(impact)}"
    elif rule.id == "peak_season_surcharge" and pct is not None:
        text = f"{_pct(pct)} peak season surcharge ({input.seasonal_period}) = {_money(impact)}"
    else:
        text = f"Applied {rule.name}: {_money(impact)}"

    return _clean(text) or f"Applied {rule.id}"
