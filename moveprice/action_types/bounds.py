from __future__ import annotations

from .base import D, ActionHandler, ActionOutcome, register

ZERO = D("0")


@register
class SetMinimumAction(ActionHandler):
    # raises toward a floor, never lowers
    type_name = "set_minimum"

    def apply(self, rule, action, input, current_price) -> ActionOutcome:
        return ActionOutcome.add(max(ZERO, action.amount - current_price))


@register
class SetMaximumAction(ActionHandler):
    # caps toward a ceiling, never raises
    type_name = "set_maximum"

    def apply(self, rule, action, input, current_price) -> ActionOutcome:
        excess = max(ZERO, current_price - action.amount)
        return ActionOutcome.add(ZERO - excess)
