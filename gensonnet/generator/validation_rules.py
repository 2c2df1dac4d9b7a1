"""
Validation rule objects that feed the generated validation helpers.

Each rule represents one constraint taken from a field's ValidationRules.
A rule knows the parameters the Jsonnet helper library expects for it and
how to describe itself in the comments of a generated artifact.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from ..schema import ValidationRules


class ValidationRule(ABC):
    """Base class for all validation rules"""

    # Name of the check function in _validation.libsonnet
    RULE_NAME: str = ""

    def __init__(self, field_path: str, value: Any):
        """
        Initialize a validation rule.

        Args:
            field_path: Dotted path of the field relative to the resource spec
            value: The constraint value
        """
        self.field_path = field_path
        self.value = value

    def get_template_params(self) -> dict[str, Any]:
        """
        Parameters passed to the helper library for this rule.

        Returns:
            Mapping merged into the rules object of the field's check
        """
        return {self.RULE_NAME: self.value}

    @abstractmethod
    def describe(self) -> str:
        """Human readable form of the constraint."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.field_path!r}, {self.value!r})"


class MinLengthRule(ValidationRule):
    RULE_NAME = "minLength"

    def describe(self) -> str:
        return f"must be at least {self.value} characters long"


class MaxLengthRule(ValidationRule):
    RULE_NAME = "maxLength"

    def describe(self) -> str:
        return f"must be at most {self.value} characters long"


class PatternRule(ValidationRule):
    RULE_NAME = "pattern"

    def describe(self) -> str:
        return f"must match pattern {self.value}"


class MinimumRule(ValidationRule):
    """Lower bound, optionally exclusive."""

    RULE_NAME = "minimum"

    def __init__(self, field_path: str, value: Any, exclusive: bool = False):
        super().__init__(field_path, value)
        self.exclusive = exclusive

    def get_template_params(self) -> dict[str, Any]:
        params = {self.RULE_NAME: self.value}
        if self.exclusive:
            params["exclusiveMinimum"] = True
        return params

    def describe(self) -> str:
        return f"must be {'>' if self.exclusive else '>='} {self.value}"


class MaximumRule(ValidationRule):
    """Upper bound, optionally exclusive."""

    RULE_NAME = "maximum"

    def __init__(self, field_path: str, value: Any, exclusive: bool = False):
        super().__init__(field_path, value)
        self.exclusive = exclusive

    def get_template_params(self) -> dict[str, Any]:
        params = {self.RULE_NAME: self.value}
        if self.exclusive:
            params["exclusiveMaximum"] = True
        return params

    def describe(self) -> str:
        return f"must be {'<' if self.exclusive else '<='} {self.value}"


class MultipleOfRule(ValidationRule):
    RULE_NAME = "multipleOf"

    def describe(self) -> str:
        return f"must be a multiple of {self.value}"


class EnumRule(ValidationRule):
    """Allowed values, compared by their string form."""

    RULE_NAME = "enum"

    def get_template_params(self) -> dict[str, Any]:
        return {self.RULE_NAME: list(self.value)}

    def describe(self) -> str:
        return "must be one of: " + ", ".join(json.dumps(v) for v in self.value)


class RequiredFieldsRule(ValidationRule):
    """Fields that must be present on an object."""

    RULE_NAME = "required"

    def get_template_params(self) -> dict[str, Any]:
        return {self.RULE_NAME: list(self.value)}

    def describe(self) -> str:
        return "requires " + ", ".join(self.value)


def rules_for(field_path: str, rules: ValidationRules) -> list[ValidationRule]:
    """
    Build the rule objects for one field.

    Args:
        field_path: Dotted path of the field relative to the resource spec
        rules: The field's extracted constraints

    Returns:
        Rules in a fixed order (the order the helper evaluates them)
    """
    result: list[ValidationRule] = []
    if rules.required:
        result.append(RequiredFieldsRule(field_path, rules.required))
    if rules.min_length is not None:
        result.append(MinLengthRule(field_path, rules.min_length))
    if rules.max_length is not None:
        result.append(MaxLengthRule(field_path, rules.max_length))
    if rules.pattern is not None:
        result.append(PatternRule(field_path, rules.pattern))
    if rules.minimum is not None:
        result.append(MinimumRule(field_path, rules.minimum, bool(rules.exclusive_minimum)))
    if rules.maximum is not None:
        result.append(MaximumRule(field_path, rules.maximum, bool(rules.exclusive_maximum)))
    if rules.multiple_of is not None:
        result.append(MultipleOfRule(field_path, rules.multiple_of))
    if rules.enum_values:
        result.append(EnumRule(field_path, rules.enum_values))
    return result


def rule_params(rules: list[ValidationRule]) -> dict[str, Any]:
    """Combine the template parameters of several rules into one mapping."""
    params: dict[str, Any] = {}
    for rule in rules:
        params.update(rule.get_template_params())
    return params


RULE_CLASSES: dict[str, type[ValidationRule]] = {
    cls.RULE_NAME: cls
    for cls in (
        RequiredFieldsRule,
        MinLengthRule,
        MaxLengthRule,
        PatternRule,
        MinimumRule,
        MaximumRule,
        MultipleOfRule,
        EnumRule,
    )
}


def rules_from_params(field_path: str, params: dict[str, Any]) -> list[ValidationRule]:
    """
    Rebuild rule objects from a (possibly merged) parameter mapping.

    Keys that only qualify another rule, such as exclusiveMinimum, are
    folded into that rule.
    """
    result: list[ValidationRule] = []
    for name, cls in RULE_CLASSES.items():
        if name not in params:
            continue
        if cls is MinimumRule:
            result.append(MinimumRule(field_path, params[name], bool(params.get("exclusiveMinimum"))))
        elif cls is MaximumRule:
            result.append(MaximumRule(field_path, params[name], bool(params.get("exclusiveMaximum"))))
        else:
            result.append(cls(field_path, params[name]))
    return result
