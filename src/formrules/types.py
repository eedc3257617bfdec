"""Core types for the formrules validation engine.

This module defines the foundational types shared by every layer:
- Rules: one immutable variant per rule kind (required, minLength, ...)
- FieldResult: outcome of validating a single field
- ValidationReport: outcome of validating a whole form
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, ClassVar, Mapping

# Custom rule signature: (value, form_data) -> error message or None
CustomRuleFn = Callable[[Any, Mapping[str, Any]], str | None]

DateBound = date | datetime | str

GENERIC_ERROR = "Validation error occurred"


class RuleKind(Enum):
    """The kind of a rule. Values match the schema declaration keys."""

    REQUIRED = "required"
    MIN_LENGTH = "minLength"
    MAX_LENGTH = "maxLength"
    MIN = "min"
    MAX = "max"
    PATTERN = "pattern"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    DATE = "date"
    CUSTOM = "custom"


class SchemaError(ValueError):
    """Raised when a schema declaration is invalid."""


# =============================================================================
# Rules
# =============================================================================


class Rule:
    """Base class for all rule variants.

    Every subclass is a frozen dataclass with a fixed field set and a
    ``kind`` class attribute used by the evaluator for dispatch.
    """

    kind: ClassVar[RuleKind]
    message: str | None


@dataclass(frozen=True)
class Required(Rule):
    kind: ClassVar[RuleKind] = RuleKind.REQUIRED

    message: str | None = None


@dataclass(frozen=True)
class MinLength(Rule):
    kind: ClassVar[RuleKind] = RuleKind.MIN_LENGTH

    length: int
    message: str | None = None


@dataclass(frozen=True)
class MaxLength(Rule):
    kind: ClassVar[RuleKind] = RuleKind.MAX_LENGTH

    length: int
    message: str | None = None


@dataclass(frozen=True)
class Min(Rule):
    kind: ClassVar[RuleKind] = RuleKind.MIN

    bound: int | float | Decimal
    message: str | None = None


@dataclass(frozen=True)
class Max(Rule):
    kind: ClassVar[RuleKind] = RuleKind.MAX

    bound: int | float | Decimal
    message: str | None = None


@dataclass(frozen=True)
class Pattern(Rule):
    kind: ClassVar[RuleKind] = RuleKind.PATTERN

    regex: re.Pattern
    message: str | None = None


@dataclass(frozen=True)
class Email(Rule):
    kind: ClassVar[RuleKind] = RuleKind.EMAIL

    message: str | None = None


@dataclass(frozen=True)
class Phone(Rule):
    kind: ClassVar[RuleKind] = RuleKind.PHONE

    message: str | None = None


@dataclass(frozen=True)
class Url(Rule):
    kind: ClassVar[RuleKind] = RuleKind.URL

    message: str | None = None


@dataclass(frozen=True)
class DateRule(Rule):
    """Date constraint.

    Attributes:
        allow_past: If false, dates before today are rejected
        allow_future: If false, dates after today are rejected
        min_date: Earliest accepted date (inclusive)
        max_date: Latest accepted date (inclusive)
    """

    kind: ClassVar[RuleKind] = RuleKind.DATE

    allow_past: bool = True
    allow_future: bool = True
    min_date: DateBound | None = None
    max_date: DateBound | None = None
    message: str | None = None


@dataclass(frozen=True)
class Custom(Rule):
    """A pure function rule with access to the whole form.

    The function receives the field value and a read-only deep copy of the
    form data, and returns an error message or None.
    """

    kind: ClassVar[RuleKind] = RuleKind.CUSTOM

    fn: CustomRuleFn
    name: str | None = None
    message: str | None = None


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class FieldResult:
    """Result of validating one field."""

    is_valid: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> "FieldResult":
        return cls(is_valid=True, error=None)

    @classmethod
    def fail(cls, message: str) -> "FieldResult":
        return cls(is_valid=False, error=message)

    def to_dict(self) -> dict[str, Any]:
        return {"isValid": self.is_valid, "error": self.error}


@dataclass
class ValidationReport:
    """Result of validating a whole form.

    Attributes:
        is_valid: True iff no field produced an error
        errors: Field name -> error message, for failing fields only
    """

    is_valid: bool
    errors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_errors(cls, errors: dict[str, str]) -> "ValidationReport":
        return cls(is_valid=len(errors) == 0, errors=dict(errors))

    def error_for(self, field_name: str) -> str | None:
        return self.errors.get(field_name)

    def summary(self) -> dict[str, Any]:
        """Short status line for display next to a save button."""
        count = len(self.errors)
        if count:
            plural = "s" if count > 1 else ""
            return {
                "status": "error",
                "message": f"{count} error{plural} must be fixed",
                "count": count,
            }
        return {"status": "success", "message": "Ready to save", "count": 0}

    def to_dict(self) -> dict[str, Any]:
        return {"isValid": self.is_valid, "errors": dict(self.errors)}
