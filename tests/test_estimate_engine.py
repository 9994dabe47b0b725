from datetime import date, datetime, timezone

import pytest
import yaml

from moveprice.core.settings import DEFAULT_RULESET_PATH, settings
from moveprice.engine.errors import RuleSetError
from moveprice.engine.estimate_engine import EstimateEngine, load_ruleset_file
from moveprice.engine.rule_set import RuleSet


def _bundled():
    with open(DEFAULT_RULESET_PATH, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _write(tmp_path, data, name="rules.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_bundled_ruleset_loads(engine):
    assert engine.ruleset.rule_set_version == "1.0.0"
    assert engine.version == "1.0.0"
    assert len(engine.ruleset.pricing_rules) == 11
    assert len(engine.ruleset.location_handicaps) == 10
    # sorted by priority inside the estimator
    priorities = [r.priority for r in engine.estimator.rules]
    assert priorities == sorted(priorities)


def test_duplicate_rule_ids_rejected():
    data = _bundled()
    data["pricingRules"].append(dict(data["pricingRules"][0]))

    with pytest.raises(RuleSetError) as exc:
        RuleSet.from_dict(data)

    assert "crew_size_adjustment" in str(exc.value)
    assert exc.value.code == "INVALID_RULESET"


def test_duplicate_handicap_ids_rejected():
    data = _bundled()
    data["locationHandicaps"].append(dict(data["locationHandicaps"][0]))

    with pytest.raises(RuleSetError):
        RuleSet.from_dict(data)


def test_unknown_operator_is_a_ruleset_error():
    data = _bundled()
    data["pricingRules"][0]["conditions"][0]["operator"] = "approx"

    with pytest.raises(RuleSetError):
        RuleSet.from_dict(data)


def test_schema_violation_is_reported_with_location(tmp_path):
    data = _bundled()
    data["pricingRules"][1]["priority"] = 500

    with pytest.raises(RuleSetError) as exc:
        load_ruleset_file(_write(tmp_path, data))

    assert exc.value.meta["path"] == "pricingRules/1/priority"


def test_schema_requires_rule_fields(tmp_path):
    data = _bundled()
    del data["pricingRules"][0]["applicableServices"]

    with pytest.raises(RuleSetError):
        EstimateEngine.from_yaml_file(_write(tmp_path, data))


def test_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("pricingRules: [unclosed", encoding="utf-8")

    with pytest.raises(RuleSetError):
        load_ruleset_file(path)


def test_ruleset_must_be_a_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(RuleSetError):
        load_ruleset_file(path)


def test_rules_version_follows_ruleset(tmp_path, sample_inputs):
    data = _bundled()
    data["ruleSetVersion"] = "2.0.0"
    engine = EstimateEngine.from_yaml_file(_write(tmp_path, data))

    result = engine.calculate(sample_inputs["studio_local"])
    assert result.metadata.rules_version == "2.0.0"


def test_validate(engine, sample_inputs, fixed_now):
    assert engine.validate(sample_inputs["studio_local"], now=fixed_now).errors == [
        "Move date cannot be in the past"
    ]


def _with_window(data, rule_id, effective_from, effective_to):
    for rule in data["pricingRules"]:
        if rule["id"] == rule_id:
            rule["effectiveFrom"] = effective_from
            rule["effectiveTo"] = effective_to
    return data


def test_unquoted_yaml_timestamps_load(tmp_path):
    data = _with_window(
        _bundled(),
        "local_minimum_charge",
        datetime(2024, 1, 1, tzinfo=timezone.utc),
        date(2024, 6, 30),
    )
    path = _write(tmp_path, data)
    assert "effectiveTo: 2024-06-30\n" in path.read_text(encoding="utf-8")

    engine = EstimateEngine.from_yaml_file(path)

    rule = next(r for r in engine.ruleset.pricing_rules if r.id == "local_minimum_charge")
    assert rule.effective_from == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert rule.effective_to == datetime(2024, 6, 30, tzinfo=timezone.utc)


def test_effective_window_from_yaml_gates_rule(tmp_path, sample_inputs):
    move = sample_inputs["minimal_local"]  # moves 2024-12-05

    expired = EstimateEngine.from_yaml_file(
        _write(
            tmp_path,
            _with_window(
                _bundled(),
                "local_minimum_charge",
                datetime(2024, 1, 1, tzinfo=timezone.utc),
                date(2024, 6, 30),
            ),
            name="expired.yaml",
        )
    )
    result = expired.calculate(move)
    assert "local_minimum_charge" not in [r.rule_id for r in result.applied_rules]
    assert result.final_price < 400

    current = EstimateEngine.from_yaml_file(
        _write(
            tmp_path,
            _with_window(_bundled(), "local_minimum_charge", date(2024, 12, 1), date(2024, 12, 31)),
            name="current.yaml",
        )
    )
    result = current.calculate(move)
    assert "local_minimum_charge" in [r.rule_id for r in result.applied_rules]
    assert result.final_price == 400


def test_undecodable_file_is_a_ruleset_error(tmp_path):
    path = tmp_path / "latin1.yaml"
    path.write_bytes(b'ruleSetVersion: "caf\xe9"\n')

    with pytest.raises(RuleSetError):
        load_ruleset_file(path)


def test_default_path_comes_from_settings(monkeypatch, tmp_path):
    data = _bundled()
    data["ruleSetVersion"] = "3.0.0"
    monkeypatch.setattr(settings, "RULESET_PATH", _write(tmp_path, data))

    engine = EstimateEngine.from_yaml_file()

    assert engine.version == "3.0.0"
    assert len(engine.ruleset.pricing_rules) == 11
