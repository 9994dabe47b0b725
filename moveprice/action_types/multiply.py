from __future__ import annotations

from .base import D, ActionHandler, ActionOutcome, register


@register
class MultiplyAction(ActionHandler):
    """
    targetField == 'totalWeight' -> weight × amount (per-pound style charge)
    otherwise                    -> current × (amount - 1)
    """

    type_name = "multiply"

    def apply(self, rule, action, input, current_price) -> ActionOutcome:
        if action.target_field == "totalWeight":
            return ActionOutcome.add(input.total_weight * action.amount)
        return ActionOutcome.add(current_price * (action.amount - D("1")))
