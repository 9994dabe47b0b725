from __future__ import annotations

from .base import D, ActionHandler, ActionOutcome, register

CREW_SIZE_ADJUSTMENT = "crew_size_adjustment"
FRAGILE_ITEMS_SURCHARGE = "fragile_items_surcharge"

BASE_CREW_SIZE = 2
FRAGILE_ITEMS_INCLUDED = 5


def extra_crew(input) -> int:
    return max(0, input.crew_size - BASE_CREW_SIZE)


def extra_fragile(input) -> int:
    return max(0, input.special_items.fragile_items - FRAGILE_ITEMS_INCLUDED)


@register
class AddFixedAction(ActionHandler):
    """
    Flat amount. Two rule ids scale the amount:
      crew_size_adjustment    -> amount × extra crew × duration
      fragile_items_surcharge -> amount × fragile items over 5
    """

    type_name = "add_fixed"

    def apply(self, rule, action, input, current_price) -> ActionOutcome:
        if rule.id == CREW_SIZE_ADJUSTMENT:
            return ActionOutcome.add(
                action.amount * D(extra_crew(input)) * input.estimated_duration
            )
        if rule.id == FRAGILE_ITEMS_SURCHARGE:
            return ActionOutcome.add(action.amount * D(extra_fragile(input)))
        return ActionOutcome.add(action.amount)
