from decimal import Decimal

from moveprice.action_types.bounds import SetMaximumAction, SetMinimumAction
from moveprice.engine.context import PricingRule, RuleAction
from moveprice.engine.rule_applier import RuleApplier


def _rule(action_type, amount):
    action = RuleAction(type=action_type, amount=Decimal(amount))
    return PricingRule(
        id=f"{action_type}_rule",
        name=action_type,
        category="base_pricing",
        priority=90,
        actions=(action,),
        applicable_services=("local",),
    ), action


def test_minimum_raises_to_floor(sample_inputs):
    rule, action = _rule("set_minimum", "400")
    out = SetMinimumAction().apply(rule, action, sample_inputs["studio_local"], Decimal("225"))

    assert out.delta == Decimal("175")


def test_minimum_never_lowers(sample_inputs):
    rule, action = _rule("set_minimum", "400")
    out = SetMinimumAction().apply(rule, action, sample_inputs["studio_local"], Decimal("600"))

    assert out.delta == Decimal("0")


def test_maximum_caps_price(sample_inputs):
    rule, action = _rule("set_maximum", "5000")
    out = SetMaximumAction().apply(rule, action, sample_inputs["studio_local"], Decimal("5200.50"))

    assert out.delta == Decimal("-200.50")


def test_maximum_never_raises_and_renders_plain_zero(sample_inputs):
    rule, action = _rule("set_maximum", "5000")

    impact = RuleApplier().apply(rule, sample_inputs["studio_local"], Decimal("600"))

    assert impact == Decimal("0.00")
    assert str(impact) == "0.00"
