"""Tests for the custom rule registry."""

import pytest

from formrules.registry import CustomRuleRegistry, custom_rule


def always_ok(value, data):
    return None


def always_bad(value, data):
    return "bad"


class TestRegister:
    def test_register_and_get(self):
        CustomRuleRegistry.register("test.ok", always_ok)
        assert CustomRuleRegistry.get("test.ok") is always_ok
        assert CustomRuleRegistry.is_registered("test.ok")

    def test_register_is_idempotent(self):
        CustomRuleRegistry.register("test.rule", always_ok)
        CustomRuleRegistry.register("test.rule", always_bad)
        assert CustomRuleRegistry.get("test.rule") is always_ok

    def test_get_unknown_lists_available(self):
        with pytest.raises(ValueError, match="not registered.*strongPassword"):
            CustomRuleRegistry.get("test.missing")

    def test_list_registered_is_sorted(self):
        names = CustomRuleRegistry.list_registered()
        assert names == sorted(names)
        assert "dateRange" in names
        assert "creditCard" in names

    def test_clear(self):
        CustomRuleRegistry.clear()
        assert CustomRuleRegistry.list_registered() == []


class TestFactories:
    def test_create_from_factory(self):
        def factory(params):
            limit = params["limit"]
            return lambda value, data: None if value <= limit else f"Over {limit}"

        CustomRuleRegistry.register_factory("test.limit", factory)
        fn = CustomRuleRegistry.create("test.limit", {"limit": 5})
        assert fn(3, {}) is None
        assert fn(9, {}) == "Over 5"

    def test_factory_takes_precedence(self):
        CustomRuleRegistry.register("test.both", always_ok)
        CustomRuleRegistry.register_factory("test.both", lambda params: always_bad)
        assert CustomRuleRegistry.create("test.both") is always_bad

    def test_factory_receives_copy_of_params(self):
        received = {}

        def factory(params):
            received["params"] = params
            params["mutated"] = True
            return always_ok

        CustomRuleRegistry.register_factory("test.copy", factory)
        params = {"a": 1}
        CustomRuleRegistry.create("test.copy", params)
        assert params == {"a": 1}
        assert received["params"]["a"] == 1

    def test_create_plain_rule(self):
        CustomRuleRegistry.register("test.ok", always_ok)
        assert CustomRuleRegistry.create("test.ok") is always_ok

    def test_plain_rule_rejects_params(self):
        CustomRuleRegistry.register("test.ok", always_ok)
        with pytest.raises(ValueError, match="does not accept params"):
            CustomRuleRegistry.create("test.ok", {"x": 1})

    def test_create_unknown(self):
        with pytest.raises(ValueError, match="not registered"):
            CustomRuleRegistry.create("test.nothing")


class TestDecorator:
    def test_custom_rule_registers(self):
        @custom_rule("test.decorated")
        def decorated(value, data):
            return None

        assert CustomRuleRegistry.get("test.decorated") is decorated

    def test_decorated_rule_usable_in_schema(self):
        from formrules.validator import FormValidator

        @custom_rule("test.budgetApproved")
        def budget_approved(value, data):
            if value and value > 10_000 and not data.get("approved"):
                return "Deals over 10,000 need approval"
            return None

        validator = FormValidator({"amount": {"custom": "test.budgetApproved"}})
        assert validator.validate({"amount": 50_000}).errors == {
            "amount": "Deals over 10,000 need approval"
        }
        assert validator.validate({"amount": 50_000, "approved": True}).is_valid
