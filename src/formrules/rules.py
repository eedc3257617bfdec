"""Rule evaluation.

Evaluates a single rule against a single field value:
- required: Value must be non-empty
- minLength/maxLength: String length bounds
- min/max: Numeric bounds (with explicit coercion)
- pattern: Regex search against the stringified value
- email, phone, url: Syntactic format checks
- date: Past/future and min/max date bounds
- custom: Pure function with access to the whole form

Every rule except ``required`` passes on an empty value, so optional
fields are only checked once the user has entered something.
"""

import copy
import logging
import math
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Callable, Mapping

from formrules import messages
from formrules.messages import DEFAULT_MESSAGES, render
from formrules.types import (
    GENERIC_ERROR,
    Custom,
    DateBound,
    DateRule,
    Max,
    MaxLength,
    Min,
    MinLength,
    Pattern,
    Rule,
    RuleKind,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Format Patterns
# =============================================================================

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

# Applied after stripping spaces, dashes and parentheses
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")

URL_PATTERN = re.compile(
    r"^https?://[^\s/$.?#].[^\s]*$",
    re.IGNORECASE
)

_PHONE_SEPARATORS = re.compile(r"[\s\-().]")

_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Timestamps above this are taken as milliseconds
_MILLISECOND_THRESHOLD = 10_000_000_000


class UnparsableValue(ValueError):
    """A value could not be coerced to the type a rule needs."""


# =============================================================================
# Helpers
# =============================================================================


def is_empty(value: Any) -> bool:
    """Check if a value is considered empty."""
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    if isinstance(value, (list, tuple, set, frozenset, dict)) and len(value) == 0:
        return True
    return False


def to_number(value: Any) -> float | Decimal | int:
    """Coerce a value to a finite number.

    Raises:
        UnparsableValue: ``"nan"`` for NaN/Infinity, ``"type"`` otherwise
    """
    if isinstance(value, bool):
        raise UnparsableValue("type")

    if isinstance(value, (int, float, Decimal)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise UnparsableValue("type") from None
    else:
        raise UnparsableValue("type")

    if isinstance(number, Decimal):
        if not number.is_finite():
            raise UnparsableValue("nan")
    elif isinstance(number, float) and not math.isfinite(number):
        raise UnparsableValue("nan")
    return number


def to_datetime(value: Any) -> tuple[datetime, bool]:
    """Coerce a value to an aware UTC datetime.

    Returns:
        (datetime, date_only) where date_only is True when the input
        carried no time component and should be compared by day.

    Raises:
        UnparsableValue: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        return _as_utc(value), False

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc), True

    if isinstance(value, bool):
        raise UnparsableValue(f"not a date: {value!r}")

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise UnparsableValue(f"not a date: {value!r}")
        seconds = value / 1000 if value > _MILLISECOND_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc), False
        except (OverflowError, OSError, ValueError) as e:
            raise UnparsableValue(str(e)) from None

    if isinstance(value, str):
        return _parse_date_string(value)

    # Date-like objects (pandas Timestamp, arrow, pendulum, ...)
    if callable(getattr(value, "timestamp", None)):
        try:
            seconds = value.timestamp()
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise UnparsableValue(str(e)) from None
        return to_datetime(seconds)
    if callable(getattr(value, "isoformat", None)):
        try:
            text = value.isoformat()
        except (TypeError, ValueError) as e:
            raise UnparsableValue(str(e)) from None
        if isinstance(text, str):
            return _parse_date_string(text)

    raise UnparsableValue(f"not a date: {type(value).__name__}")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_date_string(text: str) -> tuple[datetime, bool]:
    text = text.strip()

    us_match = _US_DATE.match(text)
    if us_match:
        month, day, year = (int(part) for part in us_match.groups())
        try:
            return datetime(year, month, day, tzinfo=timezone.utc), True
        except ValueError as e:
            raise UnparsableValue(str(e)) from None

    if _DATE_ONLY.match(text):
        try:
            parsed = date.fromisoformat(text)
        except ValueError as e:
            raise UnparsableValue(str(e)) from None
        return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc), True

    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(text)), False
    except ValueError as e:
        raise UnparsableValue(str(e)) from None


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Rule Evaluators
# =============================================================================


def _message(rule: Rule, default: str, label: str, value: Any, **params: Any) -> str:
    template = rule.message or default
    return render(template, label=label, value=value, **params)


def _eval_required(rule, value, form_data, label):
    if is_empty(value):
        return _message(rule, DEFAULT_MESSAGES[RuleKind.REQUIRED], label, value)
    return None


def _eval_min_length(rule: MinLength, value, form_data, label):
    if not isinstance(value, str) or is_empty(value):
        return None
    if len(value) < rule.length:
        return _message(
            rule, DEFAULT_MESSAGES[RuleKind.MIN_LENGTH], label, value,
            min_length=rule.length,
        )
    return None


def _eval_max_length(rule: MaxLength, value, form_data, label):
    if not isinstance(value, str) or is_empty(value):
        return None
    if len(value) > rule.length:
        return _message(
            rule, DEFAULT_MESSAGES[RuleKind.MAX_LENGTH], label, value,
            max_length=rule.length,
        )
    return None


def _coerce_number(value: Any, label: str) -> tuple[Any, str | None]:
    """Return (number, None) or (None, error message)."""
    try:
        return to_number(value), None
    except UnparsableValue as e:
        template = messages.NOT_FINITE if str(e) == "nan" else messages.NOT_A_NUMBER
        return None, render(template, label=label, value=value)


def _eval_min(rule: Min, value, form_data, label):
    if is_empty(value):
        return None
    number, error = _coerce_number(value, label)
    if error:
        return error
    if _compare(number, rule.bound) < 0:
        return _message(rule, DEFAULT_MESSAGES[RuleKind.MIN], label, value, min=rule.bound)
    return None


def _eval_max(rule: Max, value, form_data, label):
    if is_empty(value):
        return None
    number, error = _coerce_number(value, label)
    if error:
        return error
    if _compare(number, rule.bound) > 0:
        return _message(rule, DEFAULT_MESSAGES[RuleKind.MAX], label, value, max=rule.bound)
    return None


def _compare(a: Any, b: Any) -> int:
    """Three-way numeric compare that tolerates mixing Decimal and float."""
    if isinstance(a, Decimal) != isinstance(b, Decimal):
        a, b = Decimal(str(a)), Decimal(str(b))
    return (a > b) - (a < b)


def _eval_pattern(rule: Pattern, value, form_data, label):
    if is_empty(value):
        return None
    if not rule.regex.search(str(value)):
        return _message(
            rule, DEFAULT_MESSAGES[RuleKind.PATTERN], label, value,
            pattern=rule.regex.pattern,
        )
    return None


def _format_checker(kind: RuleKind, pattern: re.Pattern, clean: Callable[[str], str] | None = None):
    def check(rule, value, form_data, label):
        if is_empty(value):
            return None
        if isinstance(value, str):
            text = clean(value) if clean else value.strip()
            if pattern.match(text):
                return None
        return _message(rule, DEFAULT_MESSAGES[kind], label, value)

    return check


def _clean_phone(value: str) -> str:
    return _PHONE_SEPARATORS.sub("", value)


def _eval_date(rule: DateRule, value, form_data, label):
    if is_empty(value):
        return None

    try:
        moment, date_only = to_datetime(value)
    except UnparsableValue:
        return _message(rule, DEFAULT_MESSAGES[RuleKind.DATE], label, value)

    now = _now()
    if date_only:
        # A bare date is a calendar day in the user's local time zone
        entered, today = moment.date(), now.astimezone().date()
        is_past, is_future = entered < today, entered > today
    else:
        is_past, is_future = moment < now, moment > now

    if not rule.allow_past and is_past:
        return _message(rule, messages.DATE_IN_PAST, label, value)
    if not rule.allow_future and is_future:
        return _message(rule, messages.DATE_IN_FUTURE, label, value)

    if rule.min_date is not None:
        bound, bound_date_only = _bound(rule.min_date)
        if _before(moment, bound, date_only or bound_date_only):
            return _message(rule, messages.DATE_BEFORE_MIN, label, value, min_date=rule.min_date)

    if rule.max_date is not None:
        bound, bound_date_only = _bound(rule.max_date)
        if _before(bound, moment, date_only or bound_date_only):
            return _message(rule, messages.DATE_AFTER_MAX, label, value, max_date=rule.max_date)

    return None


def _bound(bound: DateBound) -> tuple[datetime, bool]:
    # Raises UnparsableValue for a bad bound; FormValidator contains it
    return to_datetime(bound)


def _before(a: datetime, b: datetime, by_day: bool) -> bool:
    if by_day:
        return a.date() < b.date()
    return a < b


def _eval_custom(rule: Custom, value, form_data, label):
    name = rule.name or getattr(rule.fn, "__name__", "custom")
    try:
        result = rule.fn(value, MappingProxyType(copy.deepcopy(dict(form_data))))
        if result is not None and not isinstance(result, str):
            raise TypeError(
                f"custom rule returned {type(result).__name__}, expected str or None"
            )
    except Exception:
        logger.exception("Custom rule '%s' failed for field '%s'", name, label)
        return GENERIC_ERROR

    if not result:
        return None
    if rule.message:
        return render(rule.message, label=label, value=value, error=result)
    return result


_EVALUATORS: dict[RuleKind, Callable[[Any, Any, Mapping[str, Any], str], str | None]] = {
    RuleKind.REQUIRED: _eval_required,
    RuleKind.MIN_LENGTH: _eval_min_length,
    RuleKind.MAX_LENGTH: _eval_max_length,
    RuleKind.MIN: _eval_min,
    RuleKind.MAX: _eval_max,
    RuleKind.PATTERN: _eval_pattern,
    RuleKind.EMAIL: _format_checker(RuleKind.EMAIL, EMAIL_PATTERN),
    RuleKind.PHONE: _format_checker(RuleKind.PHONE, PHONE_PATTERN, _clean_phone),
    RuleKind.URL: _format_checker(RuleKind.URL, URL_PATTERN),
    RuleKind.DATE: _eval_date,
    RuleKind.CUSTOM: _eval_custom,
}


# =============================================================================
# Public API
# =============================================================================


def evaluate(
    rule: Rule,
    value: Any,
    form_data: Mapping[str, Any],
    *,
    label: str = "This field",
) -> str | None:
    """Evaluate one rule against one value.

    Args:
        rule: The rule to evaluate
        value: The field's current value (may be None)
        form_data: The whole form, for cross-field custom rules
        label: Display name used in messages

    Returns:
        An error message, or None if the rule passes
    """
    try:
        evaluator = _EVALUATORS[rule.kind]
    except (AttributeError, KeyError):
        raise TypeError(f"Unsupported rule: {rule!r}") from None
    return evaluator(rule, value, form_data, label)
