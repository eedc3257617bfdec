"""formrules - declarative field and form validation.

Forms declare rules per field; the engine evaluates them in order and
reports the first failure for each field:
- Field rules: required, minLength, maxLength, min, max, pattern
- Format rules: email, phone, url, date
- Custom rules: pure functions with read-only access to the whole form

Usage:
    from formrules import (
        FormController,
        FormSchema,
        register_canned_rules,
        validate,
    )

    # At application startup
    register_canned_rules()

    schema = FormSchema.from_dict({
        "title": {"required": True, "minLength": 3},
        "probability": {"min": 0, "max": 100},
    })
    report = validate({"title": "Q3 renewal", "probability": 40}, schema)
"""

from formrules.canned import register_canned_rules
from formrules.config import ConfigError, EngineConfig
from formrules.controller import FormClosedError, FormController, ValidationMode
from formrules.loader import FormDefinition, SchemaLoader, load_form
from formrules.messages import MessageInterpolator, to_title_case
from formrules.registry import CustomRuleRegistry, custom_rule
from formrules.rules import evaluate, is_empty
from formrules.schema import FieldSchema, FormSchema
from formrules.steps import MultiStepForm
from formrules.types import (
    GENERIC_ERROR,
    Custom,
    DateRule,
    Email,
    FieldResult,
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
    ValidationReport,
)
from formrules.validator import FormValidator, validate, validate_field

__all__ = [
    # Types
    "GENERIC_ERROR",
    "FieldResult",
    "Rule",
    "RuleKind",
    "SchemaError",
    "ValidationReport",
    # Rules
    "Custom",
    "DateRule",
    "Email",
    "Max",
    "MaxLength",
    "Min",
    "MinLength",
    "Pattern",
    "Phone",
    "Required",
    "Url",
    # Schema
    "FieldSchema",
    "FormSchema",
    "FormDefinition",
    "SchemaLoader",
    "load_form",
    # Validation
    "FormValidator",
    "evaluate",
    "is_empty",
    "validate",
    "validate_field",
    # Messages
    "MessageInterpolator",
    "to_title_case",
    # Custom rules
    "CustomRuleRegistry",
    "custom_rule",
    "register_canned_rules",
    # Forms
    "FormClosedError",
    "FormController",
    "MultiStepForm",
    "ValidationMode",
    # Config
    "ConfigError",
    "EngineConfig",
]
