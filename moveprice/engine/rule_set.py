from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from .context import LocationHandicap, PricingRule
from .errors import RuleSetError


def _duplicates(ids: Sequence[str]) -> List[str]:
    seen, dups = set(), []
    for rid in ids:
        if rid in seen and rid not in dups:
            dups.append(rid)
        seen.add(rid)
    return dups


@dataclass(frozen=True)
class RuleSet:
    rule_set_version: str
    pricing_rules: Tuple[PricingRule, ...]
    location_handicaps: Tuple[LocationHandicap, ...]

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "RuleSet":
        try:
            rules = tuple(PricingRule.from_dict(x) for x in d.get("pricingRules") or [])
            handicaps = tuple(
                LocationHandicap.from_dict(x) for x in d.get("locationHandicaps") or []
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RuleSetError(f"Malformed rule set entry: {e!r}") from e

        rule_set_version = str(d.get("ruleSetVersion") or d.get("version") or "1.0.0")

        # Cross-validation
        dups = _duplicates([r.id for r in rules])
        if dups:
            raise RuleSetError(f"Duplicate rule ids in ruleset: {dups}", {"ids": dups})

        dups = _duplicates([h.id for h in handicaps])
        if dups:
            raise RuleSetError(
                f"Duplicate handicap ids in ruleset: {dups}", {"ids": dups}
            )

        return RuleSet(
            rule_set_version=rule_set_version,
            pricing_rules=rules,
            location_handicaps=handicaps,
        )
