from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from functools import cached_property
from typing import Any, Dict, List, Mapping, Optional, Tuple

from dateutil.parser import isoparse

D = Decimal

CENT = D("0.01")


def q(x: D) -> D:
    """Money rounding used everywhere in the engine: 2 decimals, half-up."""
    return x.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, default: D = D("0")) -> D:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return D(str(value))
    except (InvalidOperation, ValueError):
        return default


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Accepts datetime, date (YAML loads unquoted dates as date) or ISO-8601 strings.
    Always returns an aware UTC datetime (or None for empty input).
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    return as_utc(isoparse(str(value)))


def _opt_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


# -----------------------------
# Enums
# -----------------------------


class ServiceType(str, Enum):
    LOCAL = "local"
    LONG_DISTANCE = "long_distance"
    STORAGE = "storage"
    PACKING_ONLY = "packing_only"


class HandicapType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    BOTH = "both"


class ResolutionVia(str, Enum):
    TARIFF = "tariff"
    LEGACY = "legacy"


# -----------------------------
# Input models
# -----------------------------


@dataclass(frozen=True)
class LocationAccess:
    address: str = ""
    floor_level: int = 0
    elevator_access: bool = False
    long_carry: bool = False  # > 75 ft
    parking_distance: D = D("0")  # ft from truck
    access_difficulty: str = "easy"  # easy | moderate | difficult | extreme
    stairs_count: Optional[int] = None
    narrow_hallways: Optional[bool] = None
    special_requirements: Tuple[str, ...] = ()

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "LocationAccess":
        d = d or {}
        narrow = d.get("narrowHallways")
        return LocationAccess(
            address=str(d.get("address") or ""),
            floor_level=int(d.get("floorLevel") or 0),
            elevator_access=bool(d.get("elevatorAccess", False)),
            long_carry=bool(d.get("longCarry", False)),
            parking_distance=to_decimal(d.get("parkingDistance")),
            access_difficulty=str(d.get("accessDifficulty") or "easy"),
            stairs_count=_opt_int(d.get("stairsCount")),
            narrow_hallways=None if narrow is None else bool(narrow),
            special_requirements=tuple(d.get("specialRequirements") or ()),
        )

    def as_view(self) -> Dict[str, Any]:
        view: Dict[str, Any] = {
            "address": self.address,
            "floorLevel": self.floor_level,
            "elevatorAccess": self.elevator_access,
            "longCarry": self.long_carry,
            "parkingDistance": self.parking_distance,
            "accessDifficulty": self.access_difficulty,
        }
        # optionele velden: afwezig == "missing" voor conditions (exists)
        if self.stairs_count is not None:
            view["stairsCount"] = self.stairs_count
        if self.narrow_hallways is not None:
            view["narrowHallways"] = self.narrow_hallways
        if self.special_requirements:
            view["specialRequirements"] = list(self.special_requirements)
        return view


@dataclass(frozen=True)
class SpecialItems:
    piano: bool = False
    antiques: bool = False
    artwork: bool = False
    fragile_items: int = 0
    valuable_items: int = 0

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "SpecialItems":
        d = d or {}
        return SpecialItems(
            piano=bool(d.get("piano", False)),
            antiques=bool(d.get("antiques", False)),
            artwork=bool(d.get("artwork", False)),
            fragile_items=int(d.get("fragileItems") or 0),
            valuable_items=int(d.get("valuableItems") or 0),
        )

    def as_view(self) -> Dict[str, Any]:
        return {
            "piano": self.piano,
            "antiques": self.antiques,
            "artwork": self.artwork,
            "fragileItems": self.fragile_items,
            "valuableItems": self.valuable_items,
        }


@dataclass(frozen=True)
class AdditionalServices:
    packing: bool = False
    unpacking: bool = False
    assembly: bool = False
    storage: bool = False
    cleaning: bool = False

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "AdditionalServices":
        d = d or {}
        return AdditionalServices(
            packing=bool(d.get("packing", False)),
            unpacking=bool(d.get("unpacking", False)),
            assembly=bool(d.get("assembly", False)),
            storage=bool(d.get("storage", False)),
            cleaning=bool(d.get("cleaning", False)),
        )

    def as_view(self) -> Dict[str, Any]:
        return {
            "packing": self.packing,
            "unpacking": self.unpacking,
            "assembly": self.assembly,
            "storage": self.storage,
            "cleaning": self.cleaning,
        }


@dataclass(frozen=True)
class EstimateInput:
    """
    Job intake for one estimate. Immutable per call.

    Quantities are Decimals: distance (miles), estimated_duration (hours),
    total_weight (lbs), total_volume (cubic feet).
    """

    customer_id: str
    move_date: Optional[datetime]
    service: str
    pickup: LocationAccess
    delivery: LocationAccess
    distance: D = D("0")
    estimated_duration: D = D("0")
    total_weight: D = D("0")
    total_volume: D = D("0")
    special_items: SpecialItems = field(default_factory=SpecialItems)
    additional_services: AdditionalServices = field(default_factory=AdditionalServices)
    is_weekend: bool = False
    is_holiday: bool = False
    seasonal_period: str = "standard"  # peak | standard | off_peak
    crew_size: int = 2
    specialty_crew_required: bool = False
    rooms: Tuple[Mapping[str, Any], ...] = ()

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "EstimateInput":
        """
        Parse a camelCase intake payload. Missing fields get neutral
        defaults so the InputValidator can report them instead of crashing here.
        """
        return EstimateInput(
            customer_id=str(d.get("customerId") or ""),
            move_date=parse_datetime(d.get("moveDate")),
            service=str(d.get("service") or ""),
            pickup=LocationAccess.from_dict(d.get("pickup") or {}),
            delivery=LocationAccess.from_dict(d.get("delivery") or {}),
            distance=to_decimal(d.get("distance")),
            estimated_duration=to_decimal(d.get("estimatedDuration")),
            total_weight=to_decimal(d.get("totalWeight")),
            total_volume=to_decimal(d.get("totalVolume")),
            special_items=SpecialItems.from_dict(d.get("specialItems") or {}),
            additional_services=AdditionalServices.from_dict(
                d.get("additionalServices") or {}
            ),
            is_weekend=bool(d.get("isWeekend", False)),
            is_holiday=bool(d.get("isHoliday", False)),
            seasonal_period=str(d.get("seasonalPeriod") or "standard"),
            crew_size=int(d.get("crewSize") or 0),
            specialty_crew_required=bool(d.get("specialtyCrewRequired", False)),
            rooms=tuple(d.get("rooms") or ()),
        )

    @cached_property
    def field_view(self) -> Dict[str, Any]:
        """
        camelCase view used by rule conditions (dot paths like 'pickup.stairsCount').
        Built once per input; treat as read-only.
        """
        return {
            "customerId": self.customer_id,
            "moveDate": self.move_date,
            "service": self.service,
            "pickup": self.pickup.as_view(),
            "delivery": self.delivery.as_view(),
            "distance": self.distance,
            "estimatedDuration": self.estimated_duration,
            "totalWeight": self.total_weight,
            "totalVolume": self.total_volume,
            "specialItems": self.special_items.as_view(),
            "additionalServices": self.additional_services.as_view(),
            "isWeekend": self.is_weekend,
            "isHoliday": self.is_holiday,
            "seasonalPeriod": self.seasonal_period,
            "crewSize": self.crew_size,
            "specialtyCrewRequired": self.specialty_crew_required,
            "rooms": list(self.rooms),
        }


# -----------------------------
# Configuration models (rules / handicaps)
# -----------------------------


class Operator(str, Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NIN = "nin"
    BETWEEN = "between"
    EXISTS = "exists"
    REGEX = "regex"


class LogicalOperator(str, Enum):
    AND = "and"
    OR = "or"


class ActionType(str, Enum):
    ADD_FIXED = "add_fixed"
    ADD_PERCENTAGE = "add_percentage"
    MULTIPLY = "multiply"
    SET_MINIMUM = "set_minimum"
    SET_MAXIMUM = "set_maximum"
    REPLACE = "replace"


@dataclass(frozen=True)
class RuleCondition:
    field: str
    operator: Operator
    value: Any = None
    logical_operator: Optional[LogicalOperator] = None

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "RuleCondition":
        logical = d.get("logicalOperator")
        return RuleCondition(
            field=str(d["field"]),
            operator=Operator(d["operator"]),
            value=d.get("value"),
            logical_operator=LogicalOperator(logical) if logical else None,
        )


@dataclass(frozen=True)
class RuleAction:
    type: str
    amount: D
    description: str = ""
    target_field: Optional[str] = None

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "RuleAction":
        return RuleAction(
            type=str(d["type"]),
            amount=to_decimal(d.get("amount")),
            description=str(d.get("description") or ""),
            target_field=d.get("targetField"),
        )


@dataclass(frozen=True)
class PricingRule:
    id: str
    name: str
    category: str
    priority: int
    conditions: Tuple[RuleCondition, ...] = ()
    actions: Tuple[RuleAction, ...] = ()
    is_active: bool = True
    applicable_services: Tuple[str, ...] = ()
    version: str = "1.0.0"
    description: str = ""
    effective_from: Optional[datetime] = None
    effective_to: Optional[datetime] = None
    tags: Tuple[str, ...] = ()

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "PricingRule":
        return PricingRule(
            id=str(d["id"]),
            name=str(d.get("name") or d["id"]),
            category=str(d.get("category") or ""),
            priority=int(d.get("priority", 0)),
            conditions=tuple(RuleCondition.from_dict(c) for c in d.get("conditions") or []),
            actions=tuple(RuleAction.from_dict(a) for a in d.get("actions") or []),
            is_active=bool(d.get("isActive", True)),
            applicable_services=tuple(str(s) for s in d.get("applicableServices") or []),
            version=str(d.get("version") or "1.0.0"),
            description=str(d.get("description") or ""),
            effective_from=parse_datetime(d.get("effectiveFrom")),
            effective_to=parse_datetime(d.get("effectiveTo")),
            tags=tuple(d.get("tags") or ()),
        )


@dataclass(frozen=True)
class LocationHandicap:
    id: str
    name: str
    conditions: Tuple[RuleCondition, ...] = ()
    multiplier: D = D("1.0")
    fixed_amount: Optional[D] = None
    is_active: bool = True
    description: str = ""

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "LocationHandicap":
        fixed = d.get("fixedAmount")
        multiplier = d.get("multiplier")
        return LocationHandicap(
            id=str(d["id"]),
            name=str(d.get("name") or d["id"]),
            conditions=tuple(RuleCondition.from_dict(c) for c in d.get("conditions") or []),
            multiplier=D("1.0") if multiplier is None else to_decimal(multiplier),
            fixed_amount=None if fixed is None else to_decimal(fixed),
            is_active=bool(d.get("isActive", True)),
            description=str(d.get("description") or ""),
        )


# -----------------------------
# Output models
# -----------------------------


@dataclass(frozen=True)
class ResolvedPrice:
    """Tagged result of a tariff-then-legacy resolution."""

    amount: D
    via: ResolutionVia
    detail: str = ""


@dataclass(frozen=True)
class AppliedRule:
    rule_id: str
    rule_name: str
    description: str
    price_impact: D
    calculation_details: str
    conditions_met: bool = True


@dataclass(frozen=True)
class AppliedLocationHandicap:
    handicap_id: str
    name: str
    description: str
    type: HandicapType
    price_impact: D
    via: ResolutionVia = ResolutionVia.LEGACY
    multiplier: Optional[D] = None
    fixed_amount: Optional[D] = None


@dataclass(frozen=True)
class PriceBreakdown:
    base_labor: D
    materials: D
    transportation: D
    location_handicaps: D
    special_services: D
    seasonal_adjustment: D
    subtotal: D
    taxes: D
    total: D

    def buckets(self) -> List[D]:
        return [
            self.base_labor,
            self.materials,
            self.transportation,
            self.location_handicaps,
            self.special_services,
            self.seasonal_adjustment,
        ]


@dataclass(frozen=True)
class EstimateMetadata:
    calculated_at: datetime
    calculated_by: str
    rules_version: str
    hash: str
    deterministic: bool = True
    base_price_via: ResolutionVia = ResolutionVia.LEGACY


@dataclass(frozen=True)
class EstimateResult:
    estimate_id: str
    input: EstimateInput
    base_price: D
    applied_rules: List[AppliedRule]
    location_handicaps: List[AppliedLocationHandicap]
    final_price: D
    breakdown: PriceBreakdown
    metadata: EstimateMetadata
    adjustments: List[Dict[str, Any]] = field(default_factory=list)
