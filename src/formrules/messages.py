"""Default messages and placeholder interpolation for rule failures."""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from formrules.types import RuleKind

DEFAULT_MESSAGES: dict[RuleKind, str] = {
    RuleKind.REQUIRED: "{label} is required",
    RuleKind.MIN_LENGTH: "{label} must be at least {min_length} characters",
    RuleKind.MAX_LENGTH: "{label} must be at most {max_length} characters",
    RuleKind.MIN: "{label} must be at least {min}",
    RuleKind.MAX: "{label} must be at most {max}",
    RuleKind.PATTERN: "{label} format is invalid",
    RuleKind.EMAIL: "{label} must be a valid email address",
    RuleKind.PHONE: "{label} must be a valid phone number",
    RuleKind.URL: "{label} must be a valid URL",
    RuleKind.DATE: "{label} must be a valid date",
}

NOT_A_NUMBER = "{label} must be a number"
NOT_FINITE = "{label} must be a finite number"
DATE_IN_PAST = "{label} cannot be in the past"
DATE_IN_FUTURE = "{label} cannot be in the future"
DATE_BEFORE_MIN = "{label} must be on or after {min_date}"
DATE_AFTER_MAX = "{label} must be on or before {max_date}"


class MessageInterpolator:
    """Interpolates values into message templates.

    Placeholders look like ``{name}``. Known names are replaced with a
    display form of their value; unknown placeholders are left as-is so
    a message containing literal braces survives untouched.
    """

    PATTERN = re.compile(r"\{(?P<name>\w+)\}")

    def interpolate(self, template: str, params: dict[str, Any]) -> str:
        def replace(match: re.Match) -> str:
            name = match.group("name")
            if name not in params:
                return match.group(0)
            return self._format_value(params[name])

        return self.PATTERN.sub(replace, template)

    def _format_value(self, value: Any) -> str:
        """Format a value for display."""
        if value is None:
            return ""
        if isinstance(value, bool):
            return "Yes" if value else "No"
        if isinstance(value, datetime):
            return value.strftime("%B %d, %Y %I:%M %p")
        if isinstance(value, date):
            return value.strftime("%B %d, %Y")
        if isinstance(value, Decimal):
            return f"{value:,}"
        if isinstance(value, float):
            if value.is_integer():
                return f"{int(value):,}"
            return f"{value:,.2f}"
        if isinstance(value, int):
            return f"{value:,}"
        if isinstance(value, (list, tuple)):
            return ", ".join(str(v) for v in value)
        return str(value)


def to_title_case(name: str) -> str:
    """Convert a camelCase or snake_case field name to Title Case."""
    spaced = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", name.replace("_", " "))
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split())


_interpolator = MessageInterpolator()


def render(template: str, **params: Any) -> str:
    """Interpolate ``params`` into ``template`` with the shared interpolator."""
    return _interpolator.interpolate(template, params)
