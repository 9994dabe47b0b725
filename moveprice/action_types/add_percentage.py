from __future__ import annotations

from .base import ActionHandler, ActionOutcome, register


@register
class AddPercentageAction(ActionHandler):
    # amount is a fraction: 0.15 == 15%
    type_name = "add_percentage"

    def apply(self, rule, action, input, current_price) -> ActionOutcome:
        return ActionOutcome.add(current_price * action.amount)
