from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

import structlog

from ..calculators.sizing import SizingEstimator
from ..core.settings import settings
from ..data_validators.estimate_input import InputValidator, ValidationResult
from ..explain.breakdown_composer import BreakdownComposer
from .base_price import BasePriceResolver
from .conditions import ConditionEvaluator
from .context import (
    AppliedLocationHandicap,
    AppliedRule,
    EstimateInput,
    EstimateMetadata,
    EstimateResult,
    LocationHandicap,
    PricingRule,
    q,
)
from .handicaps import HandicapApplier
from .hashing import DeterministicHasher
from .ids import Clock, IdGenerator, utc_now, uuid4_ids
from .rule_applier import RuleApplier
from .tariffs import TariffSettings

D = Decimal

logger = structlog.get_logger(__name__)


class DeterministicEstimator:
    """
    Deterministic estimate calculation.

    Configuration (rules sorted by priority, active handicaps, tariff settings)
    is fixed here and never mutated afterwards, so one instance can serve
    concurrent requests. Other rule sets => other instances.

    Flow per call:
      base price -> rules (ascending priority) -> location handicaps
      -> breakdown -> input hash -> result
    """

    def __init__(
        self,
        rules: Sequence[PricingRule],
        location_handicaps: Sequence[LocationHandicap],
        tariff_settings: Optional[TariffSettings] = None,
        *,
        rules_version: Optional[str] = None,
        hash_algorithm: Optional[str] = None,
        id_generator: IdGenerator = uuid4_ids,
        clock: Clock = utc_now,
    ):
        # stable sort: gelijke priority houdt configuratie-volgorde
        self.rules: Tuple[PricingRule, ...] = tuple(sorted(rules, key=lambda r: r.priority))
        self.location_handicaps: Tuple[LocationHandicap, ...] = tuple(
            h for h in location_handicaps if h.is_active
        )
        self.tariff_settings = tariff_settings
        self.version = rules_version or settings.RULES_VERSION

        self._id_generator = id_generator
        self._clock = clock

        evaluator = ConditionEvaluator()
        self.base_price_resolver = BasePriceResolver(tariff_settings)
        self.rule_applier = RuleApplier(evaluator)
        self.handicap_applier = HandicapApplier(tariff_settings, evaluator)
        self.breakdown_composer = BreakdownComposer()
        self.hasher = DeterministicHasher(
            self.version, hash_algorithm or settings.HASH_ALGORITHM
        )
        self.validator = InputValidator()
        self.sizing = SizingEstimator(tariff_settings)

        # fail fast op onbekende action types
        self.rule_applier.check_rules(self.rules)

    def calculate_estimate(
        self,
        input: EstimateInput,
        calculated_by: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> EstimateResult:
        input_hash = self.hasher.hash(input)

        resolved = self.base_price_resolver.resolve(input)
        base_price = resolved.amount
        current_price = base_price

        applied_rules: List[AppliedRule] = []
        for rule in self.rules:
            if not self.rule_applier.should_apply(rule, input):
                continue

            impact = self.rule_applier.apply(rule, input, current_price)
            current_price = current_price + impact

            applied_rules.append(
                AppliedRule(
                    rule_id=rule.id,
                    rule_name=rule.name,
                    description=rule.description,
                    price_impact=impact,
                    calculation_details=self.rule_applier.calculation_details(
                        rule, input, impact
                    ),
                )
            )

        applied_handicaps: List[AppliedLocationHandicap] = []
        for handicap in self.location_handicaps:
            if not self.handicap_applier.should_apply(handicap, input):
                continue

            outcome = self.handicap_applier.apply(handicap, input, current_price)
            current_price = outcome.updated_price

            applied_handicaps.append(
                AppliedLocationHandicap(
                    handicap_id=handicap.id,
                    name=handicap.name,
                    description=handicap.description,
                    type=self.handicap_applier.handicap_type(handicap),
                    price_impact=outcome.impact,
                    via=outcome.via,
                    multiplier=handicap.multiplier if handicap.multiplier != D("1") else None,
                    fixed_amount=handicap.fixed_amount or None,
                )
            )

        final_price = q(current_price)
        breakdown = self.breakdown_composer.compose(
            input, base_price, applied_rules, applied_handicaps, final_price
        )

        result = EstimateResult(
            estimate_id=self._id_generator(),
            input=input,
            base_price=base_price,
            applied_rules=applied_rules,
            location_handicaps=applied_handicaps,
            final_price=final_price,
            breakdown=breakdown,
            metadata=EstimateMetadata(
                calculated_at=now or self._clock(),
                calculated_by=calculated_by or settings.DEFAULT_CALCULATED_BY,
                rules_version=self.version,
                hash=input_hash,
                deterministic=True,
                base_price_via=resolved.via,
            ),
        )

        logger.info(
            "estimate_calculated",
            estimate_id=result.estimate_id,
            service=input.service,
            base_price=str(base_price),
            base_price_via=resolved.via.value,
            final_price=str(final_price),
            rules_applied=len(applied_rules),
            handicaps_applied=len(applied_handicaps),
            hash=input_hash,
        )
        return result

    def validate_input(
        self, input: EstimateInput, *, now: Optional[datetime] = None
    ) -> ValidationResult:
        return self.validator.validate(input, now=now)
