# moveprice/schemas/estimate_output_v1.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from ..engine.context import (
    AppliedLocationHandicap,
    AppliedRule,
    EstimateResult,
    PriceBreakdown,
    as_utc,
)


def _jsonable(value: Any) -> Any:
    # Decimals als string: geen float drift in de payload
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _applied_rule(r: AppliedRule) -> Dict[str, Any]:
    return {
        "ruleId": r.rule_id,
        "ruleName": r.rule_name,
        "description": r.description,
        "conditionsMet": r.conditions_met,
        "priceImpact": str(r.price_impact),
        "calculationDetails": r.calculation_details,
    }


def _applied_handicap(h: AppliedLocationHandicap) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "handicapId": h.handicap_id,
        "name": h.name,
        "description": h.description,
        "type": h.type.value,
        "priceImpact": str(h.price_impact),
        "via": h.via.value,
    }
    if h.multiplier is not None:
        out["multiplier"] = str(h.multiplier)
    if h.fixed_amount is not None:
        out["fixedAmount"] = str(h.fixed_amount)
    return out


def _breakdown(b: PriceBreakdown) -> Dict[str, str]:
    return {
        "baseLabor": str(b.base_labor),
        "materials": str(b.materials),
        "transportation": str(b.transportation),
        "locationHandicaps": str(b.location_handicaps),
        "specialServices": str(b.special_services),
        "seasonalAdjustment": str(b.seasonal_adjustment),
        "subtotal": str(b.subtotal),
        "taxes": str(b.taxes),
        "total": str(b.total),
    }


def to_payload(result: EstimateResult) -> Dict[str, Any]:
    """JSON-safe camelCase rendering of an EstimateResult (money as strings)."""
    meta = result.metadata
    return {
        "estimateId": result.estimate_id,
        "input": _jsonable(result.input.field_view),
        "calculations": {
            "basePrice": str(result.base_price),
            "appliedRules": [_applied_rule(r) for r in result.applied_rules],
            "locationHandicaps": [_applied_handicap(h) for h in result.location_handicaps],
            "adjustments": _jsonable(result.adjustments),
            "finalPrice": str(result.final_price),
            "breakdown": _breakdown(result.breakdown),
        },
        "metadata": {
            "calculatedAt": as_utc(meta.calculated_at).isoformat(),
            "calculatedBy": meta.calculated_by,
            "rulesVersion": meta.rules_version,
            "deterministic": meta.deterministic,
            "hash": meta.hash,
            "basePriceVia": meta.base_price_via.value,
        },
    }


class EstimateOutputV1(BaseModel):
    """
    Output lock v1:
    - top-level fields are strict
    - the full engine output travels as-is in payload
    - no extra top-level fields allowed
    """

    model_config = ConfigDict(extra="forbid")

    version: Literal["v1"] = "v1"
    estimate_id: str
    engine_version: str
    status: Literal["ok"] = "ok"

    payload: Dict[str, Any]


def build_output_v1(
    result: EstimateResult, engine_version: Optional[str] = None
) -> EstimateOutputV1:
    return EstimateOutputV1(
        estimate_id=result.estimate_id,
        engine_version=engine_version or result.metadata.rules_version,
        payload=to_payload(result),
    )
