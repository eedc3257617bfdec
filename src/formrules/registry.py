"""Custom rule registry.

Provides registration and lookup for named custom rules, so schema
declarations (including YAML documents) can reference them by name:
- Plain rules: ``(value, form_data) -> str | None``
- Factories: ``(params) -> rule function``, for rules configured per field
"""

from typing import Any, Callable

from formrules.types import CustomRuleFn

RuleFactory = Callable[[dict[str, Any]], CustomRuleFn]


class CustomRuleRegistry:
    """Registry for custom rules.

    Custom rules must be explicitly registered before a schema can refer
    to them by name. Canned rules are registered by the library via
    ``register_canned_rules()``; application rules are registered at
    startup, usually with the ``@custom_rule`` decorator.

    Example:
        @custom_rule("myapp.budgetApproved")
        def budget_approved(value, data):
            ...

        # Later, resolved from a schema declaration
        fn = CustomRuleRegistry.get("myapp.budgetApproved")
    """

    _rules: dict[str, CustomRuleFn] = {}
    _factories: dict[str, RuleFactory] = {}

    @classmethod
    def register(cls, name: str, fn: CustomRuleFn) -> None:
        """Register a rule function by name.

        Idempotent - re-registering the same name is a no-op.
        """
        if name in cls._rules:
            return
        cls._rules[name] = fn

    @classmethod
    def register_factory(cls, name: str, factory: RuleFactory) -> None:
        """Register a factory that builds a rule function from params.

        Idempotent - re-registering the same name is a no-op.
        """
        if name in cls._factories:
            return
        cls._factories[name] = factory

    @classmethod
    def get(cls, name: str) -> CustomRuleFn:
        """Get a registered rule function by name.

        Raises:
            ValueError: If the rule is not registered
        """
        if name not in cls._rules:
            raise ValueError(
                f"Custom rule '{name}' is not registered. "
                "Available rules: " + ", ".join(cls.list_registered())
            )
        return cls._rules[name]

    @classmethod
    def create(cls, name: str, params: dict[str, Any] | None = None) -> CustomRuleFn:
        """Resolve a rule function by name, configuring it from params.

        Factories take precedence over plain rules of the same name.

        Raises:
            ValueError: If the name is unknown, or a plain rule is given params
        """
        if name in cls._factories:
            return cls._factories[name](dict(params or {}))

        if name in cls._rules:
            if params:
                raise ValueError(f"Custom rule '{name}' does not accept params")
            return cls._rules[name]

        raise ValueError(
            f"Custom rule '{name}' is not registered. "
            "Available rules: " + ", ".join(cls.list_registered())
        )

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._rules or name in cls._factories

    @classmethod
    def list_registered(cls) -> list[str]:
        return sorted(set(cls._rules.keys()) | set(cls._factories.keys()))

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._rules.clear()
        cls._factories.clear()


def custom_rule(name: str) -> Callable[[CustomRuleFn], CustomRuleFn]:
    """Decorator that registers a custom rule function under ``name``."""

    def decorator(fn: CustomRuleFn) -> CustomRuleFn:
        CustomRuleRegistry.register(name, fn)
        return fn

    return decorator
