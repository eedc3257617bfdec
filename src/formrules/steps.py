"""Multi-step (wizard) forms: one schema per step."""

from typing import Any, Mapping

from formrules.schema import FormSchema, as_form_schema
from formrules.validator import FormValidator


class MultiStepForm:
    """Tracks the current step of a wizard and each step's last errors.

    Example:
        wizard = MultiStepForm({
            "basics": {"title": {"required": True}},
            "deal": {"value": {"required": True, "min": 0}},
        })
        if wizard.advance(data):
            ...  # now on "deal"
    """

    def __init__(self, step_schemas: Mapping[str, FormSchema | Mapping[str, Any]]):
        if not step_schemas:
            raise ValueError("A multi-step form needs at least one step")
        self._validators = {
            name: FormValidator(as_form_schema(schema))
            for name, schema in step_schemas.items()
        }
        self.step_names: list[str] = list(self._validators)
        self.current_step = 0
        self.step_errors: dict[str, dict[str, str]] = {}

    @property
    def current_step_name(self) -> str:
        return self.step_names[self.current_step]

    @property
    def total_steps(self) -> int:
        return len(self.step_names)

    @property
    def is_first_step(self) -> bool:
        return self.current_step == 0

    @property
    def is_last_step(self) -> bool:
        return self.current_step == self.total_steps - 1

    def schema_for(self, step_name: str) -> FormSchema:
        return self._validators[step_name].schema

    def validate_step(self, step_name: str, data: Mapping[str, Any]) -> bool:
        """Validate one step's fields and remember its errors.

        Unknown steps are treated as valid.
        """
        validator = self._validators.get(step_name)
        if validator is None:
            return True
        report = validator.validate(data)
        self.step_errors[step_name] = dict(report.errors)
        return report.is_valid

    def has_step_errors(self, step_name: str) -> bool:
        return bool(self.step_errors.get(step_name))

    def go_to_step(self, index: int) -> None:
        if 0 <= index < self.total_steps:
            self.current_step = index

    def next_step(self) -> None:
        if not self.is_last_step:
            self.current_step += 1

    def prev_step(self) -> None:
        if not self.is_first_step:
            self.current_step -= 1

    def advance(self, data: Mapping[str, Any]) -> bool:
        """Validate the current step and move on only if it is valid."""
        if not self.validate_step(self.current_step_name, data):
            return False
        self.next_step()
        return True

    def validate_all(self, data: Mapping[str, Any]) -> bool:
        """Validate every step; True only if all of them pass."""
        results = [self.validate_step(name, data) for name in self.step_names]
        return all(results)

    def reset(self) -> None:
        self.current_step = 0
        self.step_errors.clear()
