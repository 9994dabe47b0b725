from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Type

D = Decimal

if TYPE_CHECKING:
    from ..engine.context import EstimateInput, PricingRule, RuleAction


@dataclass(frozen=True)
class ActionOutcome:
    """
    Result of one action of a rule.
    - delta: signed price change (unrounded; the rule total is rounded once)
    - replaces: True => delta overrides everything accumulated so far for this rule
    """

    delta: D
    replaces: bool = False

    @staticmethod
    def add(delta: D) -> "ActionOutcome":
        return ActionOutcome(delta=delta)

    @staticmethod
    def replace(delta: D) -> "ActionOutcome":
        return ActionOutcome(delta=delta, replaces=True)


class ActionHandler:
    """
    Base class for all action types. Every handler implements
    apply(rule, action, input, current_price); current_price is the snapshot
    taken before the rule ran, shared by all actions of that rule.
    """

    type_name: str = "base"

    def apply(
        self,
        rule: "PricingRule",
        action: "RuleAction",
        input: "EstimateInput",
        current_price: D,
    ) -> ActionOutcome:
        raise NotImplementedError


# Registry: action type -> handler class
action_registry: Dict[str, Type[ActionHandler]] = {}


def register(handler_cls: Type[ActionHandler]) -> Type[ActionHandler]:
    """
    Decorator to register a handler by its type_name.
    Fails fast on duplicate registrations (useful during dev/reload).
    """
    key = getattr(handler_cls, "type_name", None)
    if not key or key == "base":
        raise ValueError(f"Action handler {handler_cls.__name__} has no type_name")

    if key in action_registry and action_registry[key] is not handler_cls:
        raise ValueError(
            f"Duplicate action registration for type '{key}': "
            f"{action_registry[key].__name__} vs {handler_cls.__name__}"
        )

    action_registry[key] = handler_cls
    return handler_cls
