from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from jsonschema import ValidationError, validate

from ..core.settings import settings
from ..data_validators.estimate_input import ValidationResult
from .context import EstimateInput, EstimateResult, parse_datetime
from .errors import RuleSetError
from .estimator import DeterministicEstimator
from .rule_set import RuleSet
from .tariffs import TariffSettings

SCHEMA_PATH = Path(__file__).resolve().parents[1] / "rules" / "schemas" / "rule_set.schema.json"


def load_schema() -> Dict[str, Any]:
    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        return json.load(f)


def _timestamps_to_iso(value: Any) -> Any:
    # YAML turns unquoted timestamps into date/datetime; the schema wants strings
    if isinstance(value, dict):
        return {k: _timestamps_to_iso(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_timestamps_to_iso(v) for v in value]
    if isinstance(value, (date, datetime)):
        return parse_datetime(value).isoformat()
    return value


def load_ruleset_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Parse + schema-validate a rule set file. Raises RuleSetError."""
    ruleset_path = Path(path)

    try:
        with ruleset_path.open("r", encoding="utf-8") as f:
            d = yaml.safe_load(f)
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise RuleSetError(f"Invalid YAML in {ruleset_path}: {e}") from e

    if not isinstance(d, dict):
        raise RuleSetError(f"Rule set {ruleset_path} is not a mapping")
    d = _timestamps_to_iso(d)

    try:
        validate(instance=d, schema=load_schema())
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise RuleSetError(
            f"Rule set {ruleset_path} failed schema validation at {location}: {e.message}",
            {"path": location},
        ) from e

    return d


class EstimateEngine:
    """Rule set + estimator, built once; `calculate` is safe to call concurrently."""

    def __init__(
        self,
        ruleset_dict: Dict[str, Any],
        tariff_settings: Optional[TariffSettings] = None,
        **estimator_kwargs: Any,
    ):
        self.ruleset = RuleSet.from_dict(ruleset_dict)
        estimator_kwargs.setdefault("rules_version", self.ruleset.rule_set_version)
        self.estimator = DeterministicEstimator(
            self.ruleset.pricing_rules,
            self.ruleset.location_handicaps,
            tariff_settings,
            **estimator_kwargs,
        )

    @classmethod
    def from_yaml_file(
        cls,
        path: Optional[Union[str, Path]] = None,
        tariff_settings: Optional[TariffSettings] = None,
        **estimator_kwargs: Any,
    ) -> "EstimateEngine":
        """Loads `path`, or settings.RULESET_PATH when no path is given."""
        if path is None:
            path = settings.RULESET_PATH
        return cls(load_ruleset_file(path), tariff_settings, **estimator_kwargs)

    @property
    def version(self) -> str:
        return self.estimator.version

    def calculate(
        self,
        input: EstimateInput,
        calculated_by: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> EstimateResult:
        return self.estimator.calculate_estimate(input, calculated_by, now=now)

    def validate(self, input: EstimateInput, *, now: Optional[datetime] = None) -> ValidationResult:
        return self.estimator.validate_input(input, now=now)
