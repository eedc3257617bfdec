"""Field and schema validation.

validate_field runs a field's rules in order and stops at the first
failure, so each field reports at most one message. validate runs every
field declared in the schema (and only those) and aggregates the
results into a ValidationReport. A rule that raises is logged and
reported as the generic error for its field.
"""

import logging
from typing import Any, Mapping

from formrules.rules import evaluate
from formrules.schema import FormSchema, as_form_schema
from formrules.types import GENERIC_ERROR, FieldResult, ValidationReport

logger = logging.getLogger(__name__)


class FormValidator:
    """Validator bound to one form schema.

    Stateless apart from the schema: calling validate twice with the
    same data yields equal reports.
    """

    def __init__(self, schema: FormSchema | Mapping[str, Any]):
        self.schema = as_form_schema(schema)

    def validate_field(
        self,
        field_name: str,
        value: Any,
        form_data: Mapping[str, Any] | None = None,
    ) -> FieldResult:
        """Validate one field.

        Args:
            field_name: The field to validate
            value: Value to check (need not equal form_data[field_name])
            form_data: Whole form, passed to cross-field custom rules

        Returns:
            FieldResult with the first failing rule's message, if any
        """
        field_schema = self.schema.get(field_name)
        if field_schema is None:
            return FieldResult.ok()

        data = form_data if form_data is not None else {field_name: value}
        label = field_schema.display_name

        try:
            for rule in field_schema.rules:
                message = evaluate(rule, value, data, label=label)
                if message is not None:
                    return FieldResult.fail(message)
        except Exception:
            logger.exception("Validation of field '%s' failed", field_name)
            return FieldResult.fail(GENERIC_ERROR)

        return FieldResult.ok()

    def validate(self, form_data: Mapping[str, Any]) -> ValidationReport:
        """Validate every field declared in the schema.

        Fields present in form_data but absent from the schema are not
        checked. Declared fields missing from form_data are validated as
        None.
        """
        errors: dict[str, str] = {}

        for field_name in self.schema:
            result = self.validate_field(field_name, form_data.get(field_name), form_data)
            if not result.is_valid:
                errors[field_name] = result.error or GENERIC_ERROR

        report = ValidationReport.from_errors(errors)
        logger.debug(
            "Validated %d field(s): %s",
            len(self.schema),
            "valid" if report.is_valid else f"{len(errors)} error(s)",
        )
        return report


def validate_field(
    field_name: str,
    value: Any,
    form_data: Mapping[str, Any] | None,
    schema: FormSchema | Mapping[str, Any],
) -> FieldResult:
    """Validate one field against a schema. See FormValidator.validate_field."""
    return FormValidator(schema).validate_field(field_name, value, form_data)


def validate(
    form_data: Mapping[str, Any],
    schema: FormSchema | Mapping[str, Any],
) -> ValidationReport:
    """Validate a whole form against a schema. See FormValidator.validate."""
    return FormValidator(schema).validate(form_data)
