from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Optional

from ..action_types import ActionHandler, action_registry
from ..explain.details import rule_calculation_details
from .conditions import ConditionEvaluator
from .context import EstimateInput, PricingRule, as_utc, q
from .errors import UnknownActionTypeError

D = Decimal


class RuleApplier:
    """
    Applies one pricing rule: eligibility check + combined delta of its actions.

    Action types dispatch through the action registry. `check_rules` is called
    when an estimator is built so an unmodeled action type fails there instead
    of silently contributing nothing at calculation time.
    """

    def __init__(self, evaluator: Optional[ConditionEvaluator] = None):
        self.evaluator = evaluator or ConditionEvaluator()
        self._handlers: Dict[str, ActionHandler] = {
            name: cls() for name, cls in action_registry.items()
        }

    def check_rules(self, rules: Iterable[PricingRule]) -> None:
        for rule in rules:
            for action in rule.actions:
                if action.type not in self._handlers:
                    raise UnknownActionTypeError(
                        f"Unknown action type '{action.type}' in rule '{rule.id}'",
                        {"ruleId": rule.id, "actionType": action.type},
                    )

    def should_apply(self, rule: PricingRule, input: EstimateInput) -> bool:
        if not rule.is_active:
            return False

        if input.service not in rule.applicable_services:
            return False

        if input.move_date is not None:
            move_date = as_utc(input.move_date)
            if rule.effective_from is not None and move_date < rule.effective_from:
                return False
            if rule.effective_to is not None and move_date > rule.effective_to:
                return False

        return self.evaluator.evaluate(rule.conditions, input)

    def apply(self, rule: PricingRule, input: EstimateInput, current_price: D) -> D:
        """
        Combined delta of all actions, rounded to 2 decimals.
        Every action sees the same `current_price` snapshot.
        """
        total = D("0")

        for action in rule.actions:
            handler = self._handlers.get(action.type)
            if handler is None:
                raise UnknownActionTypeError(
                    f"Unknown action type '{action.type}' in rule '{rule.id}'",
                    {"ruleId": rule.id, "actionType": action.type},
                )

            outcome = handler.apply(rule, action, input, current_price)
            total = outcome.delta if outcome.replaces else total + outcome.delta

        return q(total)

    def calculation_details(self, rule: PricingRule, input: EstimateInput, impact: D) -> str:
        return rule_calculation_details(rule, input, impact)
