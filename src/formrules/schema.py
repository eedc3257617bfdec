"""Field and form schemas.

A FieldSchema is an ordered tuple of rules bound to one field. A
FormSchema maps field names to FieldSchemas. Both are built once per
form definition and never change afterwards.

Declarations use the camelCase keys of the form definitions:

    FormSchema.from_dict({
        "title": {"required": True, "minLength": 3, "maxLength": 200},
        "email": {"email": True},
        "closeDate": {"required": True, "date": {"allowPast": False}},
        "probability": {"min": 0, "max": 100, "custom": check_stage},
    })

Rules built from a declaration always run in this order: required,
email, phone, url, minLength, maxLength, min, max, pattern, date, custom.
For a different order, give ``rules`` as an explicit list instead.
"""

import re
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from formrules.messages import to_title_case
from formrules.registry import CustomRuleRegistry
from formrules.rules import UnparsableValue, to_datetime
from formrules.types import (
    Custom,
    DateRule,
    Email,
    Max,
    MaxLength,
    Min,
    MinLength,
    Pattern,
    Phone,
    Required,
    Rule,
    RuleKind,
    SchemaError,
    Url,
)

_FLAG_KEYS = ("required", "email", "phone", "url")
_KNOWN_KEYS = {
    "label",
    "messages",
    "rules",
    "required",
    "email",
    "phone",
    "url",
    "minLength",
    "maxLength",
    "min",
    "max",
    "pattern",
    "date",
    "custom",
}
_DATE_KEYS = {"allowPast", "allowFuture", "minDate", "maxDate", "message"}


@dataclass(frozen=True)
class FieldSchema:
    """Ordered rules for one field.

    Attributes:
        name: Field name (key in the form data)
        rules: Rules in evaluation order
        label: Display name used in messages; derived from name if not set
    """

    name: str
    rules: tuple[Rule, ...] = ()
    label: str | None = None

    @property
    def display_name(self) -> str:
        return self.label or to_title_case(self.name)

    @property
    def is_required(self) -> bool:
        return any(rule.kind is RuleKind.REQUIRED for rule in self.rules)

    @classmethod
    def from_dict(cls, name: str, declaration: Mapping[str, Any]) -> "FieldSchema":
        """Build a FieldSchema from a declaration mapping.

        Raises:
            SchemaError: If the declaration is invalid
        """
        if not isinstance(declaration, MappingABC):
            raise SchemaError(
                f"Field '{name}': declaration must be a mapping, "
                f"got {type(declaration).__name__}"
            )

        unknown = set(declaration) - _KNOWN_KEYS
        if unknown:
            raise SchemaError(
                f"Field '{name}': unknown keys: {', '.join(sorted(map(str, unknown)))}"
            )

        label = declaration.get("label")
        if "rules" in declaration:
            if set(declaration) - {"rules", "label"}:
                raise SchemaError(
                    f"Field '{name}': 'rules' cannot be combined with rule keys"
                )
            return cls(name=name, rules=_explicit_rules(name, declaration["rules"]), label=label)

        messages = declaration.get("messages") or {}
        if not isinstance(messages, MappingABC):
            raise SchemaError(f"Field '{name}': 'messages' must be a mapping")

        rules: list[Rule] = []

        for key, rule_cls in zip(_FLAG_KEYS, (Required, Email, Phone, Url)):
            if declaration.get(key):
                rules.append(rule_cls(message=messages.get(key)))

        if declaration.get("minLength") is not None:
            rules.append(MinLength(
                _length(name, "minLength", declaration["minLength"]),
                message=messages.get("minLength"),
            ))
        if declaration.get("maxLength") is not None:
            rules.append(MaxLength(
                _length(name, "maxLength", declaration["maxLength"]),
                message=messages.get("maxLength"),
            ))
        if declaration.get("min") is not None:
            rules.append(Min(_bound(name, "min", declaration["min"]), message=messages.get("min")))
        if declaration.get("max") is not None:
            rules.append(Max(_bound(name, "max", declaration["max"]), message=messages.get("max")))

        if declaration.get("pattern") is not None:
            rules.append(Pattern(
                _compile(name, declaration["pattern"]),
                message=messages.get("pattern"),
            ))

        if declaration.get("date") is not None:
            rules.append(_date_rule(name, declaration["date"], messages.get("date")))

        if declaration.get("custom") is not None:
            rules.extend(_custom_rules(name, declaration["custom"], messages.get("custom")))

        return cls(name=name, rules=tuple(rules), label=label)


class FormSchema(MappingABC):
    """Read-only mapping of field name to FieldSchema.

    Iteration follows declaration order.
    """

    def __init__(self, fields: Mapping[str, FieldSchema] | None = None):
        self._fields = MappingProxyType(dict(fields or {}))

    def __getitem__(self, name: str) -> FieldSchema:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"FormSchema({list(self._fields)!r})"

    @classmethod
    def from_dict(cls, declaration: Mapping[str, Any]) -> "FormSchema":
        """Build a FormSchema from ``{field: declaration}``.

        Values may also be ready-made FieldSchemas or plain lists of rules.
        """
        if isinstance(declaration, FormSchema):
            return declaration
        if not isinstance(declaration, MappingABC):
            raise SchemaError(
                f"Form schema must be a mapping, got {type(declaration).__name__}"
            )

        fields: dict[str, FieldSchema] = {}
        for name, field_decl in declaration.items():
            if not isinstance(name, str) or not name:
                raise SchemaError(f"Field names must be non-empty strings, got {name!r}")
            if isinstance(field_decl, FieldSchema):
                if field_decl.name != name:
                    raise SchemaError(
                        f"Field '{name}' is bound to a schema for '{field_decl.name}'"
                    )
                fields[name] = field_decl
            elif isinstance(field_decl, (list, tuple)):
                fields[name] = FieldSchema(name=name, rules=_explicit_rules(name, field_decl))
            else:
                fields[name] = FieldSchema.from_dict(name, field_decl)
        return cls(fields)

    def required_fields(self) -> list[str]:
        return [name for name, schema in self._fields.items() if schema.is_required]


def as_form_schema(schema: "FormSchema | Mapping[str, Any]") -> FormSchema:
    """Accept a FormSchema or a plain declaration mapping."""
    if isinstance(schema, FormSchema):
        return schema
    return FormSchema.from_dict(schema)


# =============================================================================
# Declaration Helpers
# =============================================================================


def _explicit_rules(name: str, rules: Any) -> tuple[Rule, ...]:
    if not isinstance(rules, (list, tuple)):
        raise SchemaError(f"Field '{name}': 'rules' must be a list")
    for rule in rules:
        if not isinstance(rule, Rule):
            raise SchemaError(f"Field '{name}': {rule!r} is not a Rule")
        if isinstance(rule, DateRule):
            _check_date_bound(name, "minDate", rule.min_date)
            _check_date_bound(name, "maxDate", rule.max_date)
    return tuple(rules)


def _length(name: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SchemaError(f"Field '{name}': '{key}' must be a non-negative integer")
    return value


def _bound(name: str, key: str, value: Any) -> int | float | Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise SchemaError(f"Field '{name}': '{key}' must be a number")
    if value != value:  # NaN
        raise SchemaError(f"Field '{name}': '{key}' cannot be NaN")
    return value


def _compile(name: str, pattern: Any) -> re.Pattern:
    if isinstance(pattern, re.Pattern):
        return pattern
    if not isinstance(pattern, str):
        raise SchemaError(f"Field '{name}': 'pattern' must be a string or compiled regex")
    try:
        return re.compile(pattern)
    except re.error as e:
        raise SchemaError(f"Field '{name}': invalid pattern {pattern!r}: {e}") from None


def _check_date_bound(name: str, key: str, bound: Any) -> None:
    if bound is None:
        return
    try:
        to_datetime(bound)
    except UnparsableValue:
        raise SchemaError(f"Field '{name}': '{key}' is not a valid date: {bound!r}") from None


def _date_rule(name: str, options: Any, message: str | None) -> DateRule:
    if options is True:
        return DateRule(message=message)
    if not isinstance(options, MappingABC):
        raise SchemaError(f"Field '{name}': 'date' must be true or a mapping")

    unknown = set(options) - _DATE_KEYS
    if unknown:
        raise SchemaError(
            f"Field '{name}': unknown date options: {', '.join(sorted(map(str, unknown)))}"
        )

    for key in ("minDate", "maxDate"):
        _check_date_bound(name, key, options.get(key))

    return DateRule(
        allow_past=bool(options.get("allowPast", True)),
        allow_future=bool(options.get("allowFuture", True)),
        min_date=options.get("minDate"),
        max_date=options.get("maxDate"),
        message=options.get("message") or message,
    )


def _custom_rules(name: str, custom: Any, message: str | None) -> list[Custom]:
    items = custom if isinstance(custom, (list, tuple)) else [custom]
    return [_custom_rule(name, item, message) for item in items]


def _custom_rule(name: str, item: Any, message: str | None) -> Custom:
    if callable(item):
        return Custom(fn=item, name=getattr(item, "__name__", None), message=message)

    if isinstance(item, str):
        rule_name, params, item_message = item, None, None
    elif isinstance(item, MappingABC) and "type" in item:
        rule_name = item["type"]
        params = item.get("params")
        item_message = item.get("message")
        if params is not None and not isinstance(params, MappingABC):
            raise SchemaError(f"Field '{name}': custom rule params must be a mapping")
    else:
        raise SchemaError(
            f"Field '{name}': custom rule must be a callable, a registered name, "
            "or a mapping with 'type'"
        )

    if item_message and params is not None:
        params = {**params, "message": item_message}
        item_message = None

    try:
        fn = CustomRuleRegistry.create(rule_name, dict(params) if params is not None else None)
    except ValueError as e:
        raise SchemaError(f"Field '{name}': {e}") from None
    return Custom(fn=fn, name=rule_name, message=item_message or message)
