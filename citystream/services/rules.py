"""
rules.py

Purpose:
  Static, read-only domain tables linking provider, category, allowed
  metric fields, access policy and data-owner role.

Contract:
  - Every lookup is total over the closed enums and raises
    `UnknownDomainValue` on anything else.
  - The only silent fallback is the access policy: an unmapped category
    gets `role:CityAuthority`.
"""
from __future__ import annotations

import random
from typing import Any, Dict, FrozenSet, List, Type

from citystream.errors import UnknownDomainValue
from citystream.models.domain import DataCategory, MetricField, OwnerRole, ProviderType


PROVIDER_CATEGORIES: Dict[ProviderType, List[DataCategory]] = {
    ProviderType.IOT_SENSOR: [DataCategory.ENVIRONMENTAL, DataCategory.UTILITY],
    ProviderType.PUBLIC_AGENCY: [DataCategory.ENVIRONMENTAL, DataCategory.CITIZEN_SERVICE],
    ProviderType.TRAFFIC_CAMERA: [DataCategory.TRAFFIC],
    ProviderType.UTILITY_METER: [DataCategory.UTILITY],
}

CATEGORY_FIELDS: Dict[DataCategory, FrozenSet[MetricField]] = {
    DataCategory.ENVIRONMENTAL: frozenset({MetricField.TEMPERATURE, MetricField.AQI}),
    DataCategory.UTILITY: frozenset({MetricField.ENERGY}),
    DataCategory.CITIZEN_SERVICE: frozenset({MetricField.TEMPERATURE, MetricField.AQI}),
    DataCategory.TRAFFIC: frozenset({MetricField.TRAFFIC}),
}

POLICY_PUBLIC_ALL = "role:Citizen OR role:CityAuthority OR role:Researcher AND attribute:sensitivity=public"
POLICY_PRIVATE = "role:CityAuthority OR role:Researcher AND attribute:sensitivity=private"
POLICY_TRAFFIC = "role:CityAuthority OR role:Citizen AND attribute:sensitivity=public"
POLICY_FALLBACK = "role:CityAuthority"

CATEGORY_POLICY: Dict[DataCategory, str] = {
    DataCategory.ENVIRONMENTAL: POLICY_PUBLIC_ALL,
    DataCategory.UTILITY: POLICY_PRIVATE,
    DataCategory.CITIZEN_SERVICE: POLICY_PRIVATE,
    DataCategory.TRAFFIC: POLICY_TRAFFIC,
}

IOT_OWNER_ROLES = (OwnerRole.CITIZEN, OwnerRole.RESEARCHER)


def coerce(enum_cls: Type[Any], value: Any, kind: str) -> Any:
    """Accept an enum member or its string value; anything else is fatal."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise UnknownDomainValue(kind, value) from None


def candidate_categories(provider: ProviderType | str) -> List[DataCategory]:
    p = coerce(ProviderType, provider, "provider")
    return list(PROVIDER_CATEGORIES[p])


def allowed_fields(category: DataCategory | str) -> FrozenSet[MetricField]:
    c = coerce(DataCategory, category, "category")
    return CATEGORY_FIELDS[c]


def policy_for(category: DataCategory | str) -> str:
    try:
        c = DataCategory(category)
    except ValueError:
        return POLICY_FALLBACK
    return CATEGORY_POLICY.get(c, POLICY_FALLBACK)


def owner_role_for(provider: ProviderType | str, rng: random.Random) -> OwnerRole:
    p = coerce(ProviderType, provider, "provider")
    if p is ProviderType.IOT_SENSOR:
        return IOT_OWNER_ROLES[0] if rng.random() < 0.5 else IOT_OWNER_ROLES[1]
    return OwnerRole.CITY_AUTHORITY
