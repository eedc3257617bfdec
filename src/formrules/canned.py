"""Canned custom rules.

Ready-to-use custom rules, referenced by name from schema declarations.
All of them are pure and pass on an empty value.

Available rules:
- strongPassword: 8+ chars with upper, lower, digit and special character
- creditCard: 13-19 digits passing the Luhn check
- noSurroundingWhitespace: No leading, trailing or doubled spaces

Available factories (configured with params):
- dateRange: Value must be after another date field
- fieldComparison: Compare with another field
- conditionalRequired: Required when another field has a given value
- conditionalRange: Numeric bounds when another field has a given value
"""

import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from formrules.messages import render, to_title_case
from formrules.registry import CustomRuleRegistry
from formrules.rules import UnparsableValue, is_empty, to_datetime, to_number
from formrules.types import CustomRuleFn, SchemaError


def _require_param(params: dict[str, Any], name: str, rule: str) -> Any:
    if name not in params or params[name] in (None, ""):
        raise SchemaError(f"Custom rule '{rule}' requires param '{name}'")
    return params[name]


# =============================================================================
# Plain Rules
# =============================================================================

_SPECIAL_CHARS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")


def strong_password(value: Any, data: Mapping[str, Any]) -> str | None:
    if is_empty(value):
        return None
    password = str(value)
    if (
        len(password) >= 8
        and re.search(r"[A-Z]", password)
        and re.search(r"[a-z]", password)
        and re.search(r"\d", password)
        and _SPECIAL_CHARS.search(password)
    ):
        return None
    return "Password must contain uppercase, lowercase, numbers, and special characters"


def credit_card(value: Any, data: Mapping[str, Any]) -> str | None:
    if is_empty(value):
        return None
    digits = re.sub(r"\D", "", str(value))
    if not 13 <= len(digits) <= 19 or not _luhn_valid(digits):
        return "Please enter a valid credit card number"
    return None


def _luhn_valid(digits: str) -> bool:
    total = 0
    for i, char in enumerate(reversed(digits)):
        digit = int(char)
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def no_surrounding_whitespace(value: Any, data: Mapping[str, Any]) -> str | None:
    if not isinstance(value, str) or is_empty(value):
        return None
    if value != value.strip():
        return "Value cannot start or end with spaces"
    if "  " in value:
        return "Value cannot contain consecutive spaces"
    return None


# =============================================================================
# Date Range
# =============================================================================


@dataclass
class DateRangeParams:
    """Parameters for the dateRange rule."""

    start_field: str
    allow_equal: bool = False
    message: str | None = None


def _date_range_factory(params: dict[str, Any]) -> CustomRuleFn:
    p = DateRangeParams(
        start_field=_require_param(params, "startField", "dateRange"),
        allow_equal=bool(params.get("allowEqual", False)),
        message=params.get("message"),
    )
    template = p.message or f"Must be after {to_title_case(p.start_field)}"

    def date_range(value: Any, data: Mapping[str, Any]) -> str | None:
        start = data.get(p.start_field)
        # Missing or unreadable dates are left to the fields' own rules
        if is_empty(value) or is_empty(start):
            return None
        try:
            end_at, end_by_day = to_datetime(value)
            start_at, start_by_day = to_datetime(start)
        except UnparsableValue:
            return None

        if end_by_day or start_by_day:
            end_at, start_at = end_at.date(), start_at.date()

        ok = end_at >= start_at if p.allow_equal else end_at > start_at
        return None if ok else render(template, value=value, start=start)

    return date_range


# =============================================================================
# Field Comparison
# =============================================================================


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
}

_OPERATOR_WORDS = {
    "eq": "equal to",
    "ne": "different from",
    "lt": "less than",
    "le": "at most",
    "gt": "greater than",
    "ge": "at least",
}


def _field_comparison_factory(params: dict[str, Any]) -> CustomRuleFn:
    other = _require_param(params, "field", "fieldComparison")
    op_name = params.get("operator", "eq")
    if op_name not in OPERATORS:
        raise SchemaError(
            f"Unknown comparison operator: {op_name}. "
            "Expected one of: " + ", ".join(OPERATORS)
        )
    compare = OPERATORS[op_name]
    template = params.get("message") or (
        f"Must be {_OPERATOR_WORDS[op_name]} {to_title_case(other)}"
    )

    def field_comparison(value: Any, data: Mapping[str, Any]) -> str | None:
        other_value = data.get(other)
        if is_empty(value) or is_empty(other_value):
            return None
        try:
            ok = compare(value, other_value)
        except TypeError:
            return f"Cannot compare {type(value).__name__} and {type(other_value).__name__}"
        return None if ok else render(template, value=value, other=other_value)

    return field_comparison


# =============================================================================
# Conditional Required
# =============================================================================


def _conditional_required_factory(params: dict[str, Any]) -> CustomRuleFn:
    other = _require_param(params, "field", "conditionalRequired")
    if "equals" not in params:
        raise SchemaError("Custom rule 'conditionalRequired' requires param 'equals'")
    expected = params["equals"]
    template = params.get("message") or "This field is required"

    def conditional_required(value: Any, data: Mapping[str, Any]) -> str | None:
        if data.get(other) != expected:
            return None
        return render(template, value=value) if is_empty(value) else None

    return conditional_required


# =============================================================================
# Conditional Range
# =============================================================================


def _conditional_range_factory(params: dict[str, Any]) -> CustomRuleFn:
    """Numeric bounds that apply only when another field equals a value.

    Params:
        field: The controlling field
        equals: Value of the controlling field that activates the bounds
        min, max: Bounds (at least one)
    """
    other = _require_param(params, "field", "conditionalRange")
    if "equals" not in params:
        raise SchemaError("Custom rule 'conditionalRange' requires param 'equals'")
    expected = params["equals"]
    low, high = params.get("min"), params.get("max")
    if low is None and high is None:
        raise SchemaError("Custom rule 'conditionalRange' requires 'min' or 'max'")
    try:
        low = to_number(low) if low is not None else None
        high = to_number(high) if high is not None else None
    except UnparsableValue:
        raise SchemaError("Custom rule 'conditionalRange' bounds must be numbers") from None

    def conditional_range(value: Any, data: Mapping[str, Any]) -> str | None:
        if data.get(other) != expected or is_empty(value):
            return None
        try:
            number = to_number(value)
        except UnparsableValue:
            # Type errors belong to the field's min/max rules
            return None
        if low is not None and number < low:
            return render(
                params.get("message") or "Must be at least {min} when {field} is {equals}",
                min=low, field=to_title_case(other), equals=expected, value=value,
            )
        if high is not None and number > high:
            return render(
                params.get("message") or "Must be at most {max} when {field} is {equals}",
                max=high, field=to_title_case(other), equals=expected, value=value,
            )
        return None

    return conditional_range


# =============================================================================
# Registration
# =============================================================================


def register_canned_rules() -> None:
    """Register all canned rules with the CustomRuleRegistry."""
    CustomRuleRegistry.register("strongPassword", strong_password)
    CustomRuleRegistry.register("creditCard", credit_card)
    CustomRuleRegistry.register("noSurroundingWhitespace", no_surrounding_whitespace)
    CustomRuleRegistry.register_factory("dateRange", _date_range_factory)
    CustomRuleRegistry.register_factory("fieldComparison", _field_comparison_factory)
    CustomRuleRegistry.register_factory("conditionalRequired", _conditional_required_factory)
    CustomRuleRegistry.register_factory("conditionalRange", _conditional_range_factory)
