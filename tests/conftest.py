from __future__ import annotations

import copy
from datetime import datetime, timezone

import pytest

import moveprice.action_types  # noqa: F401 (register all action types)

from moveprice.core.settings import DEFAULT_RULESET_PATH
from moveprice.engine.context import EstimateInput
from moveprice.engine.estimate_engine import EstimateEngine
from moveprice.engine.ids import SequentialIds
from moveprice.engine.tariffs import TariffSettings


def _location(**overrides):
    loc = {
        "address": "1 Test Street, Springfield, IL 62701",
        "floorLevel": 1,
        "elevatorAccess": False,
        "longCarry": False,
        "parkingDistance": 20,
        "accessDifficulty": "easy",
        "stairsCount": 0,
        "narrowHallways": False,
    }
    loc.update(overrides)
    return loc


def _special_items(**overrides):
    items = {"piano": False, "antiques": False, "artwork": False, "fragileItems": 0, "valuableItems": 0}
    items.update(overrides)
    return items


def _services(**overrides):
    services = {"packing": False, "unpacking": False, "assembly": False, "storage": False, "cleaning": False}
    services.update(overrides)
    return services


SAMPLE_PAYLOADS = {
    # studio apartment, one flight at pickup
    "studio_local": {
        "customerId": "customer-001",
        "moveDate": "2024-10-15",
        "service": "local",
        "pickup": _location(
            address="123 Main St, Apartment 2A, Springfield, IL 62701",
            floorLevel=2,
            parkingDistance=25,
            accessDifficulty="moderate",
            stairsCount=1,
        ),
        "delivery": _location(address="456 Oak Ave, Springfield, IL 62702", parkingDistance=15),
        "distance": 12,
        "estimatedDuration": 4,
        "totalWeight": 2500,
        "totalVolume": 400,
        "specialItems": _special_items(fragileItems=3, valuableItems=2),
        "additionalServices": _services(),
        "isWeekend": False,
        "isHoliday": False,
        "seasonalPeriod": "standard",
        "crewSize": 2,
        "specialtyCrewRequired": False,
    },
    # large local move: piano, stairs on both sides, weekend in peak season
    "large_piano": {
        "customerId": "customer-002",
        "moveDate": "2024-07-20",
        "service": "local",
        "pickup": _location(
            address="789 Elm Street, Springfield, IL 62703",
            floorLevel=3,
            longCarry=True,
            parkingDistance=85,
            accessDifficulty="difficult",
            stairsCount=3,
            narrowHallways=True,
        ),
        "delivery": _location(
            address="321 Pine Road, Springfield, IL 62704",
            floorLevel=2,
            parkingDistance=30,
            accessDifficulty="moderate",
            stairsCount=2,
        ),
        "distance": 8,
        "estimatedDuration": 8,
        "totalWeight": 6300,
        "totalVolume": 1100,
        "specialItems": _special_items(piano=True, antiques=True, fragileItems=8, valuableItems=5),
        "additionalServices": _services(packing=True, assembly=True),
        "isWeekend": True,
        "isHoliday": False,
        "seasonalPeriod": "peak",
        "crewSize": 4,
        "specialtyCrewRequired": True,
    },
    "long_distance_heavy": {
        "customerId": "customer-003",
        "moveDate": "2024-11-10",
        "service": "long_distance",
        "pickup": _location(address="100 First Ave, Springfield, IL 62701"),
        "delivery": _location(address="200 Lake Shore Dr, Denver, CO 80202", parkingDistance=35),
        "distance": 920,
        "estimatedDuration": 12,
        "totalWeight": 12500,
        "totalVolume": 2200,
        "specialItems": _special_items(fragileItems=2, valuableItems=3),
        "additionalServices": _services(packing=True, unpacking=True, assembly=True, storage=True),
        "isWeekend": False,
        "isHoliday": False,
        "seasonalPeriod": "standard",
        "crewSize": 3,
        "specialtyCrewRequired": False,
    },
    "weekend_challenge": {
        "customerId": "customer-004",
        "moveDate": "2024-09-14",
        "service": "local",
        "pickup": _location(
            address="55 Hill Rd, Springfield, IL 62705",
            floorLevel=4,
            longCarry=True,
            parkingDistance=120,
            accessDifficulty="extreme",
            stairsCount=4,
            narrowHallways=True,
            specialRequirements=["Narrow stairwell", "No parking permit area"],
        ),
        "delivery": _location(
            address="77 Tower Blvd, Springfield, IL 62706",
            floorLevel=3,
            elevatorAccess=True,
            parkingDistance=10,
        ),
        "distance": 15,
        "estimatedDuration": 6,
        "totalWeight": 4800,
        "totalVolume": 850,
        "specialItems": _special_items(antiques=True, artwork=True, fragileItems=12, valuableItems=8),
        "additionalServices": _services(packing=True),
        "isWeekend": True,
        "isHoliday": False,
        "seasonalPeriod": "standard",
        "crewSize": 3,
        "specialtyCrewRequired": False,
    },
    "minimal_local": {
        "customerId": "customer-005",
        "moveDate": "2024-12-05",
        "service": "local",
        "pickup": _location(address="9 Small St, Springfield, IL 62701", parkingDistance=10),
        "delivery": _location(address="11 Small St, Springfield, IL 62701", parkingDistance=15),
        "distance": 2,
        "estimatedDuration": 1.5,
        "totalWeight": 800,
        "totalVolume": 150,
        "specialItems": _special_items(),
        "additionalServices": _services(),
        "isWeekend": False,
        "isHoliday": False,
        "seasonalPeriod": "standard",
        "crewSize": 2,
        "specialtyCrewRequired": False,
    },
    "packing_only": {
        "customerId": "customer-006",
        "moveDate": "2024-10-25",
        "service": "packing_only",
        "pickup": _location(address="42 Same Street, Springfield, IL 62701"),
        "delivery": _location(address="42 Same Street, Springfield, IL 62701"),
        "distance": 0,
        "estimatedDuration": 6,
        "totalWeight": 2000,
        "totalVolume": 500,
        "specialItems": _special_items(artwork=True, fragileItems=15, valuableItems=5),
        "additionalServices": _services(packing=True),
        "isWeekend": False,
        "isHoliday": False,
        "seasonalPeriod": "standard",
        "crewSize": 2,
        "specialtyCrewRequired": False,
    },
}


WEEKDAY_RATES_CREW_2 = {
    "monday": "120",
    "tuesday": "120",
    "wednesday": "120",
    "thursday": "120",
    "friday": "120",
    "saturday": "140",
    "sunday": "140",
}

TARIFF_TABLES = {
    "name": "Springfield 2024",
    "version": "3",
    "hourlyRates": {
        "rates": {
            "2": WEEKDAY_RATES_CREW_2,
            "3": {day: "165" for day in WEEKDAY_RATES_CREW_2},
        },
        "minimumHours": {day: 3 for day in WEEKDAY_RATES_CREW_2},
    },
    "packingRates": {
        "rates": {"2": {day: "70" for day in WEEKDAY_RATES_CREW_2}},
    },
    "distanceRates": [
        {"minWeight": 0, "maxWeight": 5000, "ratePerPound": "1.10", "isActive": True},
        {"minWeight": 5000, "maxWeight": 10000, "ratePerPound": "0.95", "isActive": True},
        {"minWeight": 10000, "maxWeight": 100000, "ratePerPound": "0.80", "isActive": True},
    ],
    "handicaps": [
        {"name": "Stairs per flight", "category": "stairs", "type": "per_unit", "percentage": 5, "isActive": True},
        {"name": "Long carry", "category": "long_carry", "type": "percentage", "percentage": 10, "isActive": True},
    ],
    "autoPricing": {
        "crewRequired": [
            {"minCubicFeet": 800, "crewSize": 2},
            {"minCubicFeet": 1500, "crewSize": 3},
            {"minCubicFeet": 3000, "crewSize": 4},
        ],
        "trucksRequired": [
            {"minCubicFeet": 1500, "truckCount": 1},
            {"minCubicFeet": 3000, "truckCount": 2},
        ],
        "crewAbility": [
            {"crewSize": 2, "maxCubicFeet": 150},
            {"crewSize": 3, "maxCubicFeet": 225},
        ],
        "maxHoursPerJob": 10,
    },
}


@pytest.fixture
def fixed_now():
    return datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def payloads():
    # eigen kopie per test: tests mogen payloads aanpassen
    return copy.deepcopy(SAMPLE_PAYLOADS)


@pytest.fixture
def sample_inputs(payloads):
    return {name: EstimateInput.from_dict(p) for name, p in payloads.items()}


@pytest.fixture
def tariff_settings():
    return TariffSettings.from_dict(TARIFF_TABLES)


@pytest.fixture
def engine(fixed_now):
    # Uses the bundled YAML ruleset (also schema-validated)
    return EstimateEngine.from_yaml_file(
        DEFAULT_RULESET_PATH,
        id_generator=SequentialIds(),
        clock=lambda: fixed_now,
    )


@pytest.fixture
def tariff_engine(fixed_now, tariff_settings):
    return EstimateEngine.from_yaml_file(
        DEFAULT_RULESET_PATH,
        tariff_settings,
        id_generator=SequentialIds(),
        clock=lambda: fixed_now,
    )


@pytest.fixture
def estimator(engine):
    return engine.estimator
