from __future__ import annotations

from .base import ActionHandler, ActionOutcome, register


@register
class ReplaceAction(ActionHandler):
    """
    Forces the price to exactly `amount`: the rule's combined delta becomes
    amount - current, discarding earlier actions of the same rule.
    """

    type_name = "replace"

    def apply(self, rule, action, input, current_price) -> ActionOutcome:
        return ActionOutcome.replace(action.amount - current_price)
