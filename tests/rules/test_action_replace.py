from decimal import Decimal

from moveprice.engine.context import PricingRule, RuleAction
from moveprice.engine.rule_applier import RuleApplier


def _rule(*actions):
    return PricingRule(
        id="flat_rate",
        name="Flat rate",
        category="promotional",
        priority=99,
        actions=tuple(actions),
        applicable_services=("local",),
    )


def test_replace_forces_exact_price(sample_inputs):
    rule = _rule(RuleAction(type="replace", amount=Decimal("999")))

    impact = RuleApplier().apply(rule, sample_inputs["studio_local"], Decimal("600.00"))
    assert impact == Decimal("399.00")


def test_replace_discards_earlier_actions_of_same_rule(sample_inputs):
    rule = _rule(
        RuleAction(type="add_fixed", amount=Decimal("100")),
        RuleAction(type="replace", amount=Decimal("500")),
    )

    impact = RuleApplier().apply(rule, sample_inputs["studio_local"], Decimal("600.00"))
    assert impact == Decimal("-100.00")


def test_actions_after_replace_accumulate_again(sample_inputs):
    rule = _rule(
        RuleAction(type="replace", amount=Decimal("500")),
        RuleAction(type="add_fixed", amount=Decimal("25")),
    )

    impact = RuleApplier().apply(rule, sample_inputs["studio_local"], Decimal("600.00"))
    assert impact == Decimal("-75.00")
