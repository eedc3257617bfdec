"""Form controller: values, touched state and debounced re-validation.

The controller owns a form's data while it is open. It mirrors how a
form behaves in the UI:

- change(): store the value; if the field was already touched,
  re-validate it after a debounce window
- blur(): mark the field touched and validate it immediately
- submit(): validate everything, mark every field touched, and only
  call the submit handler when the form is valid

The validation mode decides when those events validate and which errors
are shown. See ValidationMode.

Debouncing uses the running asyncio event loop (``loop.call_later``).
Each field has at most one pending timer; a newer change cancels it, and
the timer validates whatever value is current when it fires.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Mapping

from formrules.config import EngineConfig
from formrules.rules import is_empty
from formrules.schema import FormSchema
from formrules.types import FieldResult, ValidationReport
from formrules.validator import FormValidator

logger = logging.getLogger(__name__)


class FormClosedError(RuntimeError):
    """Raised when a closed form controller is edited."""


class ValidationMode(str, Enum):
    """When a controller validates fields and shows their errors.

    ON_BLUR: validate on blur, re-validate touched fields on change
    ON_CHANGE: also validate untouched fields on change
    ON_SUBMIT: validate nothing until the first submit, then as ON_BLUR
    ALL: validate on change and blur, and show errors whether or not
        the field is touched
    """

    ON_CHANGE = "onChange"
    ON_BLUR = "onBlur"
    ON_SUBMIT = "onSubmit"
    ALL = "all"


class FormController:
    """Holds one open form's values, touched set and current errors.

    Attributes:
        values: Current form data
        touched: Fields the user has blurred or tried to submit
        errors: Latest error per field (visible or not)
        is_dirty: True once any value changed since open/reset
        is_validating: True while a validation pass is running
        mode: When fields validate and which errors are shown
    """

    def __init__(
        self,
        schema: FormSchema | Mapping[str, Any],
        values: Mapping[str, Any] | None = None,
        *,
        debounce_ms: int | None = None,
        mode: ValidationMode | str = ValidationMode.ON_BLUR,
        config: EngineConfig | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.validator = FormValidator(schema)
        self.schema = self.validator.schema

        config = config or EngineConfig()
        self.debounce_ms = config.debounce_ms if debounce_ms is None else debounce_ms
        if self.debounce_ms < 0:
            raise ValueError(f"debounce_ms must be >= 0, got {self.debounce_ms}")
        try:
            self.mode = ValidationMode(mode)
        except ValueError:
            raise ValueError(f"Unknown validation mode: {mode!r}") from None
        self._loop = loop

        self.values: dict[str, Any] = dict(values or {})
        self.touched: set[str] = set()
        self.errors: dict[str, str] = {}
        self.is_dirty = False
        self.is_validating = False
        self.submit_count = 0
        self.last_report: ValidationReport | None = None

        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._closed = False

    def __enter__(self) -> "FormController":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def change(self, field_name: str, value: Any) -> None:
        """Record a new value for a field."""
        self._ensure_open()
        self.values[field_name] = value
        self.is_dirty = True

        if self._validates_on_change(field_name):
            self._schedule(field_name)

    def update(self, values: Mapping[str, Any]) -> None:
        """Record several new values at once."""
        for field_name, value in values.items():
            self.change(field_name, value)

    def blur(self, field_name: str) -> FieldResult:
        """Mark a field touched and validate it without waiting."""
        self._ensure_open()
        self.touched.add(field_name)
        self._cancel(field_name)
        if self.mode is ValidationMode.ON_SUBMIT and not self.submit_count:
            return FieldResult.ok()
        return self._validate_field(field_name)

    def submit(self, on_submit: Callable[[dict[str, Any]], Any] | None = None) -> bool:
        """Validate the whole form and, if valid, hand the data to on_submit.

        Every schema field becomes touched so hidden errors show up.

        Returns:
            True if the form is valid
        """
        self._ensure_open()
        self._cancel_all()
        self.submit_count += 1

        self.is_validating = True
        try:
            report = self.validator.validate(self.values)
        finally:
            self.is_validating = False

        self.last_report = report
        self.touched.update(self.schema)
        self.errors = dict(report.errors)

        if not report.is_valid:
            logger.debug("Submit blocked: %s", ", ".join(report.errors))
            return False

        if on_submit is not None:
            on_submit(dict(self.values))
        return True

    def reset(self, values: Mapping[str, Any] | None = None) -> None:
        """Return to a pristine state, optionally for a different record."""
        self._cancel_all()
        self.values = dict(values or {})
        self.touched.clear()
        self.errors.clear()
        self.is_dirty = False
        self.is_validating = False
        self.submit_count = 0
        self.last_report = None
        self._closed = False

    def set_touched(self, field_name: str, touched: bool = True) -> None:
        """Mark a field touched (or untouched) without validating it."""
        if touched:
            self.touched.add(field_name)
        else:
            self.touched.discard(field_name)

    def clear_errors(self) -> None:
        """Drop every current error. Values and touched state are kept."""
        self.errors.clear()

    def clear_field_error(self, field_name: str) -> None:
        self.errors.pop(field_name, None)

    def close(self) -> None:
        """Cancel pending validations. The controller can no longer be edited."""
        self._cancel_all()
        self._closed = True

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def error_for(self, field_name: str) -> str | None:
        """The field's error, if it should be shown.

        Errors show once the field is touched, or always in ALL mode.
        """
        if not self._shows_error(field_name):
            return None
        return self.errors.get(field_name)

    def visible_errors(self) -> dict[str, str]:
        return {f: e for f, e in self.errors.items() if self._shows_error(f)}

    def is_touched(self, field_name: str) -> bool:
        return field_name in self.touched

    @property
    def is_valid(self) -> bool:
        """True if the latest validations found no errors."""
        return not self.errors

    @property
    def pending(self) -> set[str]:
        """Fields with a debounced validation still waiting to run."""
        return set(self._timers)

    def progress(self, required_weight: int = 70) -> int:
        """Completion percentage.

        Required fields account for ``required_weight`` percent and the
        other schema fields for the rest. If one group is empty the
        other counts for the whole.
        """
        if not 0 <= required_weight <= 100:
            raise ValueError("required_weight must be between 0 and 100")

        required = [f for f, s in self.schema.items() if s.is_required]
        optional = [f for f, s in self.schema.items() if not s.is_required]
        if not required and not optional:
            return 100
        if not required:
            required_weight = 0
        elif not optional:
            required_weight = 100

        score = 0.0
        if required:
            score += self._filled_ratio(required) * required_weight
        if optional:
            score += self._filled_ratio(optional) * (100 - required_weight)
        return round(score)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _filled_ratio(self, fields: list[str]) -> float:
        filled = sum(1 for f in fields if not is_empty(self.values.get(f)))
        return filled / len(fields)

    def _shows_error(self, field_name: str) -> bool:
        return self.mode is ValidationMode.ALL or field_name in self.touched

    def _validates_on_change(self, field_name: str) -> bool:
        if self.mode in (ValidationMode.ON_CHANGE, ValidationMode.ALL):
            return True
        if self.mode is ValidationMode.ON_SUBMIT and not self.submit_count:
            return False
        return field_name in self.touched

    def _ensure_open(self) -> None:
        if self._closed:
            raise FormClosedError("Form controller is closed")

    def _validate_field(self, field_name: str) -> FieldResult:
        self.is_validating = True
        try:
            result = self.validator.validate_field(
                field_name, self.values.get(field_name), self.values
            )
        finally:
            self.is_validating = False

        if result.is_valid:
            self.errors.pop(field_name, None)
        else:
            self.errors[field_name] = result.error
        return result

    def _schedule(self, field_name: str) -> None:
        self._cancel(field_name)

        if self.debounce_ms == 0:
            self._validate_field(field_name)
            return

        loop = self._get_loop()
        if loop is None:
            logger.debug("No running event loop, validating '%s' immediately", field_name)
            self._validate_field(field_name)
            return

        self._timers[field_name] = loop.call_later(
            self.debounce_ms / 1000, self._fire, field_name
        )

    def _fire(self, field_name: str) -> None:
        self._timers.pop(field_name, None)
        if self._closed:
            return
        self._validate_field(field_name)

    def _get_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _cancel(self, field_name: str) -> None:
        timer = self._timers.pop(field_name, None)
        if timer is not None:
            timer.cancel()

    def _cancel_all(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
