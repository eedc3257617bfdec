"""Tests for multi-step forms."""

import pytest

from formrules.steps import MultiStepForm


@pytest.fixture
def wizard() -> MultiStepForm:
    return MultiStepForm({
        "basics": {"name": {"required": True}},
        "deal": {"amount": {"required": True, "min": 0}},
        "review": {},
    })


class TestNavigation:
    def test_initial_state(self, wizard):
        assert wizard.step_names == ["basics", "deal", "review"]
        assert wizard.current_step_name == "basics"
        assert wizard.total_steps == 3
        assert wizard.is_first_step
        assert not wizard.is_last_step

    def test_next_and_prev_are_clamped(self, wizard):
        wizard.prev_step()
        assert wizard.current_step == 0
        wizard.next_step()
        wizard.next_step()
        wizard.next_step()
        assert wizard.current_step == 2
        assert wizard.is_last_step

    def test_go_to_step_ignores_out_of_range(self, wizard):
        wizard.go_to_step(1)
        assert wizard.current_step_name == "deal"
        wizard.go_to_step(7)
        wizard.go_to_step(-1)
        assert wizard.current_step == 1

    def test_requires_a_step(self):
        with pytest.raises(ValueError):
            MultiStepForm({})


class TestStepValidation:
    def test_advance_blocked_by_errors(self, wizard):
        assert wizard.advance({}) is False
        assert wizard.current_step_name == "basics"
        assert wizard.step_errors["basics"] == {"name": "Name is required"}
        assert wizard.has_step_errors("basics")

    def test_advance_when_valid(self, wizard):
        assert wizard.advance({"name": "Acme"}) is True
        assert wizard.current_step_name == "deal"
        assert not wizard.has_step_errors("basics")

    def test_step_only_checks_its_fields(self, wizard):
        assert wizard.validate_step("basics", {"name": "Acme", "amount": -1}) is True

    def test_unknown_step_is_valid(self, wizard):
        assert wizard.validate_step("shipping", {}) is True

    def test_validate_all(self, wizard):
        assert wizard.validate_all({"name": "Acme"}) is False
        assert wizard.step_errors["deal"] == {"amount": "Amount is required"}
        assert wizard.validate_all({"name": "Acme", "amount": 10}) is True

    def test_schema_for(self, wizard):
        assert list(wizard.schema_for("deal")) == ["amount"]

    def test_reset(self, wizard):
        wizard.advance({"name": "Acme"})
        wizard.advance({})
        wizard.reset()
        assert wizard.current_step == 0
        assert wizard.step_errors == {}
