import random

import pytest

from citystream.errors import UnknownDomainValue
from citystream.models.domain import DataCategory, MetricField, OwnerRole, ProviderType
from citystream.services import rules


@pytest.mark.parametrize("provider, expected", [
    ("IoT Sensor", [DataCategory.ENVIRONMENTAL, DataCategory.UTILITY]),
    ("Public Agency", [DataCategory.ENVIRONMENTAL, DataCategory.CITIZEN_SERVICE]),
    ("Traffic Camera", [DataCategory.TRAFFIC]),
    ("Utility Meter", [DataCategory.UTILITY]),
])
def test_candidate_categories(provider, expected):
    assert rules.candidate_categories(provider) == expected
    assert rules.candidate_categories(ProviderType(provider)) == expected


@pytest.mark.parametrize("category, expected", [
    (DataCategory.ENVIRONMENTAL, {MetricField.TEMPERATURE, MetricField.AQI}),
    (DataCategory.UTILITY, {MetricField.ENERGY}),
    (DataCategory.CITIZEN_SERVICE, {MetricField.TEMPERATURE, MetricField.AQI}),
    (DataCategory.TRAFFIC, {MetricField.TRAFFIC}),
])
def test_allowed_fields(category, expected):
    assert rules.allowed_fields(category) == expected


@pytest.mark.parametrize("category, expected", [
    ("Environmental", "role:Citizen OR role:CityAuthority OR role:Researcher AND attribute:sensitivity=public"),
    ("Utility", "role:CityAuthority OR role:Researcher AND attribute:sensitivity=private"),
    ("Citizen Service", "role:CityAuthority OR role:Researcher AND attribute:sensitivity=private"),
    ("Traffic", "role:CityAuthority OR role:Citizen AND attribute:sensitivity=public"),
    ("Weather", "role:CityAuthority"),
])
def test_policy_for(category, expected):
    assert rules.policy_for(category) == expected


@pytest.mark.parametrize("call", [
    lambda: rules.candidate_categories("Drone"),
    lambda: rules.allowed_fields("Weather"),
    lambda: rules.owner_role_for("Satellite", random.Random(0)),
])
def test_unknown_keys_fail_loudly(call):
    with pytest.raises(UnknownDomainValue):
        call()


def test_unknown_domain_value_carries_context():
    with pytest.raises(UnknownDomainValue) as exc:
        rules.candidate_categories("Drone")
    assert exc.value.kind == "provider"
    assert exc.value.value == "Drone"


@pytest.mark.parametrize("provider", ["Public Agency", "Traffic Camera", "Utility Meter"])
def test_non_iot_owner_is_city_authority(provider):
    rng = random.Random(3)
    assert {rules.owner_role_for(provider, rng) for _ in range(200)} == {OwnerRole.CITY_AUTHORITY}


def test_iot_owner_is_citizen_or_researcher():
    rng = random.Random(3)
    roles = [rules.owner_role_for(ProviderType.IOT_SENSOR, rng) for _ in range(400)]
    assert set(roles) == {OwnerRole.CITIZEN, OwnerRole.RESEARCHER}
    # equal probability, loosely
    assert 120 < roles.count(OwnerRole.CITIZEN) < 280
