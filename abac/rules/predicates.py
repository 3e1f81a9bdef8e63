"""
ABAC Rules - Rule Predicates
============================
One pure predicate per configuration variant, dispatched through a
single table keyed by configuration class.

Absent attributes never match. Predicates never raise for data
problems; they report a failed result with a detail string (for
diagnostics and logs) and a generic message (safe to show the caller).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, get_args
from zoneinfo import ZoneInfo

from abac.context.environment import address_in_networks, hour_in_window
from abac.context.evaluation_context import EvaluationContext
from abac.rules.config import (
    AttributeComparisonConfig,
    AttributeValueConfig,
    LocationRestrictionConfig,
    Operator,
    PropertyMatchConfig,
    RuleConfig,
    ThresholdConfig,
    TimeRestrictionConfig,
    ValueRangeConfig,
    to_decimal,
)


@dataclass(frozen=True)
class PredicateResult:
    passed: bool
    detail: str
    message: str | None = None
    missing: tuple[str, ...] = ()


def _ok(detail: str) -> PredicateResult:
    return PredicateResult(passed=True, detail=detail)


def _fail(detail: str, message: str, missing: tuple[str, ...] = ()) -> PredicateResult:
    return PredicateResult(passed=False, detail=detail, message=message, missing=missing)


# ══════════════════════════════════════════════════════════════
# VALUE COMPARISON
# ══════════════════════════════════════════════════════════════

def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _values_equal(left: Any, right: Any) -> bool:
    left_number, right_number = to_decimal(left), to_decimal(right)
    if left_number is not None and right_number is not None:
        return left_number == right_number
    return _as_text(left).casefold() == _as_text(right).casefold()


def compare(left: Any, operator: str, right: Any) -> bool:
    """
    Numeric when both sides parse as finite numbers; otherwise string
    semantics. Equality and text operators ignore case; ordering is
    ordinal on the raw text. None on either side never matches.
    """
    if left is None or right is None:
        return False
    if isinstance(left, (list, tuple, dict)) or isinstance(right, (list, tuple, dict)):
        return False

    if operator == Operator.EQ:
        return _values_equal(left, right)
    if operator == Operator.NE:
        return not _values_equal(left, right)

    if operator in Operator.ORDERING:
        left_number, right_number = to_decimal(left), to_decimal(right)
        if left_number is not None and right_number is not None:
            a, b = left_number, right_number
        else:
            a, b = _as_text(left), _as_text(right)
        if operator == Operator.GT:
            return a > b
        if operator == Operator.GE:
            return a >= b
        if operator == Operator.LT:
            return a < b
        return a <= b

    left_text, right_text = _as_text(left).casefold(), _as_text(right).casefold()
    if operator == Operator.CONTAINS:
        return right_text in left_text
    if operator == Operator.STARTS_WITH:
        return left_text.startswith(right_text)
    if operator == Operator.ENDS_WITH:
        return left_text.endswith(right_text)
    return False


def _missing(context: EvaluationContext, *references: str) -> tuple[str, ...]:
    return tuple(ref for ref in references if context.resolve(ref) is None)


# ══════════════════════════════════════════════════════════════
# PREDICATES
# ══════════════════════════════════════════════════════════════

def _attribute_comparison(config: AttributeComparisonConfig, context: EvaluationContext) -> PredicateResult:
    message = f"Attribute comparison failed: {config.left} {config.operator} {config.right}"
    missing = _missing(context, config.left, config.right)
    if missing:
        return _fail(f"missing attribute(s): {', '.join(missing)}", message, missing)

    left, right = context.resolve(config.left), context.resolve(config.right)
    detail = f"{config.left} ({left}) {config.operator} {config.right} ({right})"
    if compare(left, config.operator, right):
        return _ok(detail)
    return _fail(detail, message)


def _property_match(config: PropertyMatchConfig, context: EvaluationContext) -> PredicateResult:
    message = "Property match failed"
    missing = _missing(context, config.left, config.right)
    if missing:
        return _fail(f"missing attribute(s): {', '.join(missing)}", message, missing)

    left, right = context.resolve(config.left), context.resolve(config.right)
    if config.wildcard is not None and _as_text(left).casefold() == config.wildcard.casefold():
        return _ok(f"wildcard match: {config.left}={config.wildcard}")

    detail = f"{config.left} ({left}) {config.operator} {config.right} ({right})"
    if compare(left, config.operator, right):
        return _ok(detail)
    return _fail(detail, message)


def _value_range(config: ValueRangeConfig, context: EvaluationContext) -> PredicateResult:
    low = "-inf" if config.minimum is None else str(config.minimum)
    high = "+inf" if config.maximum is None else str(config.maximum)
    message = f"Value must be between {low} and {high}"

    raw = context.resolve(config.attribute)
    if raw is None and config.fallback is not None:
        raw = context.resolve(config.fallback)
    if raw is None:
        return _fail(f"missing attribute: {config.attribute}", message, (config.attribute,))
    value = to_decimal(raw)
    if value is None:
        return _fail(f"{config.attribute} ({raw}) is not numeric", message)

    detail = f"{config.attribute} ({value}) in [{low}, {high}]"
    if config.minimum is not None and value < config.minimum:
        return _fail(detail, message)
    if config.maximum is not None and value > config.maximum:
        return _fail(detail, message)
    return _ok(detail)


def _threshold(config: ThresholdConfig, context: EvaluationContext) -> PredicateResult:
    message = (
        f"{config.attribute} over {config.threshold} requires "
        f"{config.required_attribute} of at least {config.min_value}"
    )
    raw = context.resolve(config.attribute)
    if raw is None:
        return _fail(f"missing attribute: {config.attribute}", message, (config.attribute,))
    value = to_decimal(raw)
    if value is None:
        return _fail(f"{config.attribute} ({raw}) is not numeric", message)

    if value <= config.threshold:
        return _ok(f"{config.attribute} ({value}) within threshold ({config.threshold})")

    raw_required = context.resolve(config.required_attribute)
    if raw_required is None:
        return _fail(
            f"{config.attribute} ({value}) exceeds threshold ({config.threshold}) "
            f"but {config.required_attribute} is not available",
            message,
            (config.required_attribute,),
        )
    required = to_decimal(raw_required)
    detail = (
        f"{config.attribute} ({value}) exceeds threshold ({config.threshold}); "
        f"{config.required_attribute} ({raw_required}) >= {config.min_value}"
    )
    if required is None or required < config.min_value:
        return _fail(detail, message)
    return _ok(detail)


def _time_restriction(config: TimeRestrictionConfig, context: EvaluationContext) -> PredicateResult:
    if config.classification is not None:
        classification = context.get_resource_attribute("Classification")
        if classification is None:
            classification = context.get_resource_attribute("Status")
        if classification is None or _as_text(classification).casefold() != config.classification.casefold():
            return _ok(f"not applicable: resource is not {config.classification}")

    if config.start_hour is None and config.allowed_days is None:
        if context.is_business_hours:
            return _ok("within business hours")
        return _fail("outside business hours", "This action is only allowed during business hours")

    local = context.request_time.astimezone(ZoneInfo(config.timezone))
    if config.allowed_days is not None and local.weekday() not in config.allowed_days:
        return _fail(
            f"{local:%A} ({config.timezone}) is not an allowed day",
            "This action is not allowed on this day",
        )

    if config.start_hour is not None:
        detail = (
            f"hour {local.hour} ({config.timezone}) in "
            f"[{config.start_hour}:00, {config.end_hour}:00)"
        )
        if not hour_in_window(local.hour, config.start_hour, config.end_hour):
            return _fail(
                detail,
                f"This action is only allowed between {config.start_hour}:00 "
                f"and {config.end_hour}:00 {config.timezone}",
            )
        return _ok(detail)
    return _ok(f"{local:%A} is an allowed day")


def _location_restriction(config: LocationRestrictionConfig, context: EvaluationContext) -> PredicateResult:
    message = "Access is not allowed from this network location"
    address = context.client_address
    if address is None:
        return _fail("client address unknown", message, ("env.clientAddress",))

    if config.require_internal and not context.is_internal_network:
        return _fail(f"{address} is not an internal address", message)
    if config.networks and not address_in_networks(address, config.networks):
        return _fail(f"{address} is outside allowed networks", message)
    return _ok(f"{address} is within allowed networks")


def _attribute_value(config: AttributeValueConfig, context: EvaluationContext) -> PredicateResult:
    message = f"Attribute check failed: {config.attribute}"
    actual = context.resolve(config.attribute)
    if actual is None:
        return _fail(f"missing attribute: {config.attribute}", message, (config.attribute,))

    candidates = list(actual) if isinstance(actual, (list, tuple)) else [actual]
    detail = f"{config.attribute} ({actual}) {config.operator} {list(config.expected)}"

    if config.operator in (Operator.IN, Operator.EQ):
        matched = any(_values_equal(c, e) for c in candidates for e in config.expected)
    elif config.operator in (Operator.NOT_IN, Operator.NE):
        matched = not any(_values_equal(c, e) for c in candidates for e in config.expected)
    else:
        matched = any(compare(c, config.operator, config.expected[0]) for c in candidates)

    if matched:
        return _ok(detail)
    return _fail(detail, message)


# ══════════════════════════════════════════════════════════════
# DISPATCH
# ══════════════════════════════════════════════════════════════

_PREDICATES: dict[type, Callable[[Any, EvaluationContext], PredicateResult]] = {
    AttributeComparisonConfig: _attribute_comparison,
    PropertyMatchConfig: _property_match,
    ValueRangeConfig: _value_range,
    ThresholdConfig: _threshold,
    TimeRestrictionConfig: _time_restriction,
    LocationRestrictionConfig: _location_restriction,
    AttributeValueConfig: _attribute_value,
}

_UNHANDLED = set(get_args(RuleConfig)) - set(_PREDICATES)
if _UNHANDLED:
    raise RuntimeError(
        f"rule configurations without a predicate: {sorted(c.__name__ for c in _UNHANDLED)}"
    )


def evaluate_predicate(config: RuleConfig, context: EvaluationContext) -> PredicateResult:
    return _PREDICATES[type(config)](config, context)
