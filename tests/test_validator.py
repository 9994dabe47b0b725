from datetime import datetime, timezone

from moveprice.data_validators.estimate_input import InputValidator, validate_estimate_input
from moveprice.engine.context import EstimateInput


def _validate(payload, now):
    return validate_estimate_input(EstimateInput.from_dict(payload), now=now)


def _future(payload):
    payload["moveDate"] = "2025-03-01"
    return payload


def test_valid_input_passes(payloads, fixed_now):
    out = _validate(_future(payloads["studio_local"]), fixed_now)

    assert out.valid is True
    assert out.errors == []
    assert out.issues == []


def test_required_fields(payloads, fixed_now):
    payload = _future(payloads["studio_local"])
    payload["customerId"] = ""
    del payload["moveDate"]
    payload["service"] = ""

    out = _validate(payload, fixed_now)

    assert out.valid is False
    assert out.errors == [
        "Customer ID is required",
        "Move date is required",
        "Service type is required",
    ]


def test_numeric_ranges(payloads, fixed_now):
    payload = _future(payloads["studio_local"])
    payload.update(totalWeight=0, totalVolume=-5, distance=-1, crewSize=0, estimatedDuration=0)

    out = _validate(payload, fixed_now)

    assert out.errors == [
        "Total weight must be greater than 0",
        "Total volume must be greater than 0",
        "Distance cannot be negative",
        "Crew size must be at least 1",
        "Estimated duration must be greater than 0",
    ]
    assert [i.field for i in out.issues] == [
        "totalWeight",
        "totalVolume",
        "distance",
        "crewSize",
        "estimatedDuration",
    ]


def test_addresses_required(payloads, fixed_now):
    payload = _future(payloads["studio_local"])
    payload["pickup"]["address"] = "   "
    payload["delivery"]["address"] = ""

    out = _validate(payload, fixed_now)

    assert out.errors == ["Pickup address is required", "Delivery address is required"]


def test_past_move_date(payloads, fixed_now):
    out = _validate(payloads["studio_local"], fixed_now)

    assert out.errors == ["Move date cannot be in the past"]
    assert out.issues[0].code == "IN_PAST"


def test_move_today_is_not_in_the_past(payloads, fixed_now):
    payload = payloads["studio_local"]
    payload["moveDate"] = "2025-01-01T08:00:00Z"  # earlier than fixed_now, same day

    assert _validate(payload, fixed_now).valid is True


def test_service_distance_constraints(payloads, fixed_now):
    local = _future(payloads["studio_local"])
    local["distance"] = 51
    assert _validate(local, fixed_now).errors == ["Local moves must be 50 miles or less"]

    long_distance = _future(payloads["long_distance_heavy"])
    long_distance["distance"] = 50
    assert _validate(long_distance, fixed_now).errors == ["Long distance moves must be over 50 miles"]

    local["distance"] = 50
    assert _validate(local, fixed_now).valid is True


def test_every_violation_is_reported_once(payloads, fixed_now):
    payload = payloads["studio_local"]  # past date
    payload.update(customerId="", totalWeight=0, crewSize=0, distance=80)

    out = _validate(payload, fixed_now)

    assert len(out.errors) == len(set(out.errors)) == 5
    assert "Local moves must be 50 miles or less" in out.errors


def test_validation_does_not_mutate_input(sample_inputs, fixed_now):
    input = sample_inputs["large_piano"]
    snapshot = repr(input)

    InputValidator().validate(input, now=fixed_now)

    assert repr(input) == snapshot


def test_default_clock_is_used_without_now(payloads):
    payload = payloads["studio_local"]
    payload["moveDate"] = datetime(2999, 1, 1, tzinfo=timezone.utc).isoformat()

    assert validate_estimate_input(EstimateInput.from_dict(payload)).valid is True
