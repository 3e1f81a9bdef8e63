"""
ABAC Rules - Typed Rule Configurations
======================================
Each rule type has exactly one configuration class. Raw JSON payloads
are parsed once per evaluation into these frozen variants; anything
malformed raises RuleConfigurationError, which the evaluator turns into
a failed (closed) rule.

Attribute references are normalized to ``source.Name`` where source is
``user``, ``resource``, ``env`` or ``subject``.
"""

from __future__ import annotations

import ipaddress
import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from abac.exceptions import RuleConfigurationError
from abac.rules.models import RuleLeaf, RuleType


# ══════════════════════════════════════════════════════════════
# OPERATORS
# ══════════════════════════════════════════════════════════════

class Operator:
    EQ = "=="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    IN = "in"
    NOT_IN = "notIn"

    ORDERING = frozenset({">", ">=", "<", "<="})
    EQUALITY = frozenset({"==", "!="})
    TEXT = frozenset({"contains", "startsWith", "endsWith"})
    MEMBERSHIP = frozenset({"in", "notIn"})


_OPERATOR_ALIASES = {
    "==": Operator.EQ,
    "=": Operator.EQ,
    "eq": Operator.EQ,
    "equals": Operator.EQ,
    "!=": Operator.NE,
    "<>": Operator.NE,
    "ne": Operator.NE,
    "notequals": Operator.NE,
    ">": Operator.GT,
    "gt": Operator.GT,
    "greaterthan": Operator.GT,
    ">=": Operator.GE,
    "gte": Operator.GE,
    "greaterthanorequal": Operator.GE,
    "<": Operator.LT,
    "lt": Operator.LT,
    "lessthan": Operator.LT,
    "<=": Operator.LE,
    "lte": Operator.LE,
    "lessthanorequal": Operator.LE,
    "contains": Operator.CONTAINS,
    "startswith": Operator.STARTS_WITH,
    "endswith": Operator.ENDS_WITH,
    "in": Operator.IN,
    "notin": Operator.NOT_IN,
}


def canonical_operator(raw: Any, allowed: frozenset[str] | None = None) -> str:
    if not isinstance(raw, str):
        raise ValueError("operator must be a string")
    operator = _OPERATOR_ALIASES.get(raw.strip().casefold())
    if operator is None:
        raise ValueError(f"unknown operator '{raw}'")
    if allowed is not None and operator not in allowed:
        raise ValueError(f"operator '{raw}' is not supported here")
    return operator


# ══════════════════════════════════════════════════════════════
# VALUE HELPERS
# ══════════════════════════════════════════════════════════════

def to_decimal(value: Any) -> Decimal | None:
    """Finite Decimal for numbers and numeric strings; None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        number = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None
    if not number.is_finite():
        return None
    return number


_SOURCES = ("user", "resource", "env", "subject")


def normalize_reference(raw: Any, default_source: str) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError("attribute reference must be a non-empty string")
    reference = raw.strip()
    head, dot, tail = reference.partition(".")
    if dot and head.casefold() in _SOURCES:
        if not tail.strip():
            raise ValueError(f"attribute reference '{raw}' has no attribute name")
        return f"{head.casefold()}.{tail.strip()}"
    return f"{default_source}.{reference}"


def _decimal_setting(config: Mapping[str, Any], key: str, required: bool = False) -> Decimal | None:
    if key not in config or config[key] is None:
        if required:
            raise ValueError(f"'{key}' is required")
        return None
    number = to_decimal(config[key])
    if number is None:
        raise ValueError(f"'{key}' must be a finite number")
    return number


def _hour_setting(raw: Any, key: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or not 0 <= raw <= 24:
        raise ValueError(f"'{key}' must be an hour between 0 and 24")
    return raw


_DAY_NAMES = {
    "mon": 0, "monday": 0,
    "tue": 1, "tuesday": 1,
    "wed": 2, "wednesday": 2,
    "thu": 3, "thursday": 3,
    "fri": 4, "friday": 4,
    "sat": 5, "saturday": 5,
    "sun": 6, "sunday": 6,
}


# ══════════════════════════════════════════════════════════════
# CONFIGURATION VARIANTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AttributeComparisonConfig:
    left: str
    operator: str
    right: str


@dataclass(frozen=True)
class PropertyMatchConfig:
    left: str
    operator: str
    right: str
    wildcard: str | None = None


@dataclass(frozen=True)
class ValueRangeConfig:
    """``fallback`` is read when ``attribute`` is absent (unprefixed names only)."""

    attribute: str
    minimum: Decimal | None
    maximum: Decimal | None
    fallback: str | None = None


@dataclass(frozen=True)
class ThresholdConfig:
    """ValueRange variant: above ``threshold``, ``required_attribute`` must reach ``min_value``."""

    attribute: str
    threshold: Decimal
    required_attribute: str
    min_value: Decimal


@dataclass(frozen=True)
class TimeRestrictionConfig:
    start_hour: int | None
    end_hour: int | None
    timezone: str
    allowed_days: frozenset[int] | None = None
    classification: str | None = None


@dataclass(frozen=True)
class LocationRestrictionConfig:
    networks: tuple[Union[ipaddress.IPv4Network, ipaddress.IPv6Network], ...]
    require_internal: bool = False


@dataclass(frozen=True)
class AttributeValueConfig:
    attribute: str
    operator: str
    expected: tuple[Any, ...]


RuleConfig = Union[
    AttributeComparisonConfig,
    PropertyMatchConfig,
    ValueRangeConfig,
    ThresholdConfig,
    TimeRestrictionConfig,
    LocationRestrictionConfig,
    AttributeValueConfig,
]


# ══════════════════════════════════════════════════════════════
# PARSERS (one per rule type)
# ══════════════════════════════════════════════════════════════

def _parse_attribute_comparison(config: Mapping[str, Any]) -> AttributeComparisonConfig:
    if "leftAttribute" in config:
        left = normalize_reference(config.get("leftAttribute"), "user")
        right = normalize_reference(config.get("rightProperty"), "resource")
    else:
        left = normalize_reference(config.get("userAttribute"), "user")
        right = normalize_reference(config.get("resourceProperty"), "resource")
    operator = canonical_operator(
        config.get("operator"),
        Operator.ORDERING | Operator.EQUALITY | Operator.TEXT,
    )
    return AttributeComparisonConfig(left=left, operator=operator, right=right)


def _parse_property_match(config: Mapping[str, Any]) -> PropertyMatchConfig:
    left = normalize_reference(config.get("userAttribute"), "user")
    right = normalize_reference(config.get("resourceProperty"), "resource")
    operator = canonical_operator(
        config.get("operator", Operator.EQ),
        Operator.EQUALITY | Operator.TEXT,
    )
    raw_wildcard = config.get("allowWildcard")
    if raw_wildcard is True:
        wildcard = "*"
    elif raw_wildcard is None or raw_wildcard is False:
        wildcard = None
    elif isinstance(raw_wildcard, str) and raw_wildcard.strip():
        wildcard = raw_wildcard.strip()
    else:
        raise ValueError("'allowWildcard' must be a bool or a non-empty string")
    return PropertyMatchConfig(left=left, operator=operator, right=right, wildcard=wildcard)


def _parse_value_range(config: Mapping[str, Any]) -> Union[ValueRangeConfig, ThresholdConfig]:
    raw_attribute = config.get("resourceProperty", config.get("attribute"))
    attribute = normalize_reference(raw_attribute, "resource")

    if "threshold" in config:
        return ThresholdConfig(
            attribute=attribute,
            threshold=_decimal_setting(config, "threshold", required=True),
            required_attribute=normalize_reference(config.get("requiredAttribute"), "user"),
            min_value=_decimal_setting(config, "minValue", required=True),
        )

    minimum = _decimal_setting(config, "min")
    maximum = _decimal_setting(config, "max")
    if minimum is None and maximum is None:
        raise ValueError("at least one of 'min' or 'max' is required")
    if minimum is not None and maximum is not None and minimum > maximum:
        raise ValueError("'min' must not exceed 'max'")
    fallback = None
    if attribute == f"resource.{raw_attribute.strip()}":
        fallback = f"user.{raw_attribute.strip()}"
    return ValueRangeConfig(attribute=attribute, minimum=minimum, maximum=maximum, fallback=fallback)


def _parse_time_restriction(config: Mapping[str, Any]) -> TimeRestrictionConfig:
    start_hour = end_hour = None
    hours = config.get("allowedHours")
    if hours is not None:
        if not isinstance(hours, Mapping):
            raise ValueError("'allowedHours' must be an object with 'start' and 'end'")
        start_hour = _hour_setting(hours.get("start"), "allowedHours.start")
        end_hour = _hour_setting(hours.get("end"), "allowedHours.end")
    elif "startHour" in config or "endHour" in config:
        start_hour = _hour_setting(config.get("startHour"), "startHour")
        end_hour = _hour_setting(config.get("endHour"), "endHour")

    timezone_name = config.get("timezone") or "UTC"
    if not isinstance(timezone_name, str):
        raise ValueError("'timezone' must be a string")
    try:
        ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"unknown timezone '{timezone_name}'") from exc

    allowed_days = None
    raw_days = config.get("allowedDays")
    if raw_days is not None:
        if isinstance(raw_days, str) or not isinstance(raw_days, list):
            raise ValueError("'allowedDays' must be a list")
        days: set[int] = set()
        for day in raw_days:
            if isinstance(day, str) and day.strip().casefold() in _DAY_NAMES:
                days.add(_DAY_NAMES[day.strip().casefold()])
            elif isinstance(day, int) and not isinstance(day, bool) and 0 <= day <= 6:
                days.add(day)
            else:
                raise ValueError(f"'allowedDays' entry '{day}' is not a weekday")
        allowed_days = frozenset(days)

    classification = config.get("resourceClassification")
    if classification is not None and (not isinstance(classification, str) or not classification.strip()):
        raise ValueError("'resourceClassification' must be a non-empty string")

    return TimeRestrictionConfig(
        start_hour=start_hour,
        end_hour=end_hour,
        timezone=timezone_name,
        allowed_days=allowed_days,
        classification=classification.strip() if classification else None,
    )


def _parse_location_restriction(config: Mapping[str, Any]) -> LocationRestrictionConfig:
    raw_networks = config.get("allowedNetworks", [])
    if isinstance(raw_networks, str) or not isinstance(raw_networks, list):
        raise ValueError("'allowedNetworks' must be a list of CIDR strings")
    networks = []
    for cidr in raw_networks:
        try:
            networks.append(ipaddress.ip_network(cidr, strict=False))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"'{cidr}' is not a valid CIDR") from exc

    require_internal = config.get("requireInternalNetwork", False)
    if not isinstance(require_internal, bool):
        raise ValueError("'requireInternalNetwork' must be a bool")
    if not networks and not require_internal:
        raise ValueError("'allowedNetworks' is empty and 'requireInternalNetwork' is not set")
    return LocationRestrictionConfig(networks=tuple(networks), require_internal=require_internal)


def _parse_attribute_value(config: Mapping[str, Any]) -> AttributeValueConfig:
    attribute = normalize_reference(config.get("attribute"), "user")

    if "values" in config:
        values = config["values"]
        if isinstance(values, str) or not isinstance(values, list) or not values:
            raise ValueError("'values' must be a non-empty list")
        operator = canonical_operator(
            config.get("operator", Operator.IN),
            Operator.MEMBERSHIP | Operator.EQUALITY,
        )
        operator = {Operator.EQ: Operator.IN, Operator.NE: Operator.NOT_IN}.get(operator, operator)
        return AttributeValueConfig(attribute=attribute, operator=operator, expected=tuple(values))

    if "value" not in config:
        raise ValueError("one of 'value' or 'values' is required")
    value = config["value"]
    operator = canonical_operator(config.get("operator", Operator.EQ))
    if isinstance(value, list):
        operator = {Operator.EQ: Operator.IN, Operator.NE: Operator.NOT_IN}.get(operator, operator)
        if operator not in Operator.MEMBERSHIP:
            raise ValueError(f"operator '{operator}' cannot compare against a list")
        return AttributeValueConfig(attribute=attribute, operator=operator, expected=tuple(value))
    if operator in Operator.MEMBERSHIP:
        raise ValueError(f"operator '{operator}' needs a list of values")
    if isinstance(value, (dict, list)):
        raise ValueError("'value' must be a scalar")
    return AttributeValueConfig(attribute=attribute, operator=operator, expected=(value,))


_PARSERS: dict[str, Callable[[Mapping[str, Any]], RuleConfig]] = {
    RuleType.ATTRIBUTE_COMPARISON: _parse_attribute_comparison,
    RuleType.PROPERTY_MATCH: _parse_property_match,
    RuleType.VALUE_RANGE: _parse_value_range,
    RuleType.TIME_RESTRICTION: _parse_time_restriction,
    RuleType.LOCATION_RESTRICTION: _parse_location_restriction,
    RuleType.ATTRIBUTE_VALUE: _parse_attribute_value,
}

_PARSERS_BY_FOLDED_NAME = {name.casefold(): parser for name, parser in _PARSERS.items()}


def parse_rule_config(rule: RuleLeaf) -> RuleConfig:
    """Parse a leaf's JSON configuration into its typed variant."""
    parser = _PARSERS_BY_FOLDED_NAME.get(rule.rule_type.casefold())
    if parser is None:
        raise RuleConfigurationError(rule.rule_id, f"unknown rule type '{rule.rule_type}'")

    try:
        raw = json.loads(rule.configuration) if rule.configuration.strip() else {}
    except ValueError as exc:
        raise RuleConfigurationError(rule.rule_id, f"configuration is not valid JSON ({exc})") from exc
    if not isinstance(raw, dict):
        raise RuleConfigurationError(rule.rule_id, "configuration must be a JSON object")

    try:
        return parser(raw)
    except ValueError as exc:
        raise RuleConfigurationError(rule.rule_id, str(exc)) from exc


def referenced_attributes(config: RuleConfig) -> tuple[str, ...]:
    """Attribute references a configuration reads, for diagnostics."""
    if isinstance(config, (AttributeComparisonConfig, PropertyMatchConfig)):
        return (config.left, config.right)
    if isinstance(config, ValueRangeConfig):
        return (config.attribute,)
    if isinstance(config, ThresholdConfig):
        return (config.attribute, config.required_attribute)
    if isinstance(config, TimeRestrictionConfig):
        if config.classification is not None:
            return ("resource.Classification",)
        return ()
    if isinstance(config, AttributeValueConfig):
        return (config.attribute,)
    return ()
