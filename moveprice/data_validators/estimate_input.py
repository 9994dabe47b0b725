from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from ..engine.context import EstimateInput, ServiceType, as_utc

D = Decimal

LOCAL_MAX_MILES = D("50")


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    field: str
    message: str


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)


def validate_estimate_input(
    input: EstimateInput, *, now: Optional[datetime] = None
) -> ValidationResult:
    """
    Collects every violation (no short-circuit); never mutates the input.
    `now` is injectable so tests stay deterministic.
    """
    issues: List[ValidationIssue] = []

    def err(code: str, field_name: str, message: str) -> None:
        issues.append(ValidationIssue(code, field_name, message))

    # Required fields
    if not str(input.customer_id or "").strip():
        err("REQUIRED", "customerId", "Customer ID is required")
    if input.move_date is None:
        err("REQUIRED", "moveDate", "Move date is required")
    if not input.service:
        err("REQUIRED", "service", "Service type is required")

    # Numeric
    if input.total_weight <= 0:
        err("OUT_OF_RANGE", "totalWeight", "Total weight must be greater than 0")
    if input.total_volume <= 0:
        err("OUT_OF_RANGE", "totalVolume", "Total volume must be greater than 0")
    if input.distance < 0:
        err("OUT_OF_RANGE", "distance", "Distance cannot be negative")
    if input.crew_size < 1:
        err("OUT_OF_RANGE", "crewSize", "Crew size must be at least 1")
    if input.estimated_duration <= 0:
        err("OUT_OF_RANGE", "estimatedDuration", "Estimated duration must be greater than 0")

    # Addresses
    if not input.pickup.address.strip():
        err("REQUIRED", "pickup.address", "Pickup address is required")
    if not input.delivery.address.strip():
        err("REQUIRED", "delivery.address", "Delivery address is required")

    # Date: vergelijk op dag, een verhuizing vandaag is geldig
    if input.move_date is not None:
        today = as_utc(now or datetime.now(timezone.utc)).date()
        if as_utc(input.move_date).date() < today:
            err("IN_PAST", "moveDate", "Move date cannot be in the past")

    # Service vs distance
    if input.service == ServiceType.LONG_DISTANCE.value and input.distance <= LOCAL_MAX_MILES:
        err("SERVICE_MISMATCH", "distance", "Long distance moves must be over 50 miles")
    if input.service == ServiceType.LOCAL.value and input.distance > LOCAL_MAX_MILES:
        err("SERVICE_MISMATCH", "distance", "Local moves must be 50 miles or less")

    return ValidationResult(
        valid=len(issues) == 0,
        errors=[i.message for i in issues],
        issues=issues,
    )


class InputValidator:
    def validate(self, input: EstimateInput, *, now: Optional[datetime] = None) -> ValidationResult:
        return validate_estimate_input(input, now=now)
