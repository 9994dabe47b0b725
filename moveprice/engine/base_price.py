from __future__ import annotations

from decimal import Decimal
from typing import Optional

import structlog

from .context import EstimateInput, ResolutionVia, ResolvedPrice, ServiceType, q
from .errors import UnknownServiceError
from .tariffs import (
    TariffLookupError,
    TariffSettings,
    crew_day_rate,
    day_key,
    weight_bracket_rate,
)

D = Decimal

logger = structlog.get_logger(__name__)

# Legacy tarieven (vaste formules van voor de tariff tables)
LEGACY_LOCAL_HOURLY = D("150")  # 2-person crew
LEGACY_EXTRA_CREW_HOURLY = D("75")
LEGACY_PER_POUND = D("1.25")
LEGACY_STORAGE_PER_CUFT = D("8.0")
LEGACY_PACKING_HOURLY = D("85")


def _service(input: EstimateInput) -> ServiceType:
    try:
        return ServiceType(input.service)
    except ValueError:
        raise UnknownServiceError(input.service) from None


class BasePriceResolver:
    """
    Starting price per service type.

    Two explicit steps: try the tariff tables, and on any missing or malformed
    entry log `tariff_resolution_fallback` and use the legacy formula.
    The returned ResolvedPrice says which path produced the amount.
    """

    def __init__(self, tariff_settings: Optional[TariffSettings] = None):
        self.tariff_settings = tariff_settings

    def resolve(self, input: EstimateInput) -> ResolvedPrice:
        service = _service(input)

        if self.tariff_settings is not None and service != ServiceType.STORAGE:
            try:
                return self._resolve_tariff(service, input, self.tariff_settings)
            except TariffLookupError as e:
                logger.warning(
                    "tariff_resolution_fallback",
                    service=service.value,
                    reason=str(e),
                )

        return self.resolve_legacy(input)

    def _resolve_tariff(
        self, service: ServiceType, input: EstimateInput, tariffs: TariffSettings
    ) -> ResolvedPrice:
        if service == ServiceType.LOCAL:
            if input.move_date is None:
                raise TariffLookupError("no move date to derive day-of-week")
            day = day_key(input.move_date)
            rate, minimum_hours = crew_day_rate(
                tariffs.hourly_rates, input.crew_size, day, table_name="hourlyRates"
            )
            hours = max(input.estimated_duration, minimum_hours)
            return ResolvedPrice(
                amount=q(rate * hours),
                via=ResolutionVia.TARIFF,
                detail=f"{input.crew_size} crew {day} rate ${rate}/hour × {hours} hours (min {minimum_hours})",
            )

        if service == ServiceType.LONG_DISTANCE:
            rate = weight_bracket_rate(tariffs.distance_rates, input.total_weight)
            return ResolvedPrice(
                amount=q(input.total_weight * rate),
                via=ResolutionVia.TARIFF,
                detail=f"{input.total_weight} lbs × ${rate}/lb",
            )

        if service == ServiceType.PACKING_ONLY:
            if input.move_date is None:
                raise TariffLookupError("no move date to derive day-of-week")
            day = day_key(input.move_date)
            rate, _ = crew_day_rate(
                tariffs.packing_rates, input.crew_size, day, table_name="packingRates"
            )
            return ResolvedPrice(
                amount=q(rate * input.estimated_duration),
                via=ResolutionVia.TARIFF,
                detail=f"packing {day} rate ${rate}/hour × {input.estimated_duration} hours",
            )

        # storage heeft geen tariff tabel
        raise TariffLookupError(f"no tariff table for service {service.value}")

    def resolve_legacy(self, input: EstimateInput) -> ResolvedPrice:
        service = _service(input)

        if service == ServiceType.LOCAL:
            extra_crew = max(0, input.crew_size - 2)
            hourly = LEGACY_LOCAL_HOURLY + extra_crew * LEGACY_EXTRA_CREW_HOURLY
            amount = hourly * input.estimated_duration
            detail = f"${hourly}/hour × {input.estimated_duration} hours"
        elif service == ServiceType.LONG_DISTANCE:
            amount = input.total_weight * LEGACY_PER_POUND
            detail = f"{input.total_weight} lbs × ${LEGACY_PER_POUND}/lb"
        elif service == ServiceType.STORAGE:
            amount = input.total_volume * LEGACY_STORAGE_PER_CUFT
            detail = f"{input.total_volume} cu ft × ${LEGACY_STORAGE_PER_CUFT}"
        elif service == ServiceType.PACKING_ONLY:
            amount = LEGACY_PACKING_HOURLY * input.estimated_duration
            detail = f"${LEGACY_PACKING_HOURLY}/hour × {input.estimated_duration} hours"
        else:  # pragma: no cover - ServiceType is closed
            raise UnknownServiceError(input.service)

        return ResolvedPrice(amount=q(amount), via=ResolutionVia.LEGACY, detail=detail)
