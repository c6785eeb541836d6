"""
Conditional Rule Structures

Conditional logic attached to a component is a flat rule set:
each rule compares one other field's answer against a value and
names the action to take when the rule set as a whole is triggered.

ARCHITECTURAL RULE:
    These objects are structure only.
    Evaluation belongs in formrules.logic.
    Operators and actions are CLOSED enumerations: an unknown
    string is rejected when the rule is built, never at evaluation.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Tuple, Type, TypeVar

from formrules.errors import DefinitionError

E = TypeVar("E", bound=Enum)


class RuleOperator(Enum):
    """Comparison applied between a field's answer and the rule value."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


# Operators that take no comparison value
UNARY_OPERATORS = frozenset({RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY})


class RuleAction(Enum):
    """What a triggered rule set does to its owning component."""

    SHOW = "show"
    HIDE = "hide"
    REQUIRE = "require"
    OPTIONAL = "optional"
    ENABLE = "enable"
    DISABLE = "disable"


class LogicOperator(Enum):
    """How rule results inside one rule set are combined."""

    AND = "AND"
    OR = "OR"


def coerce_enum(enum_cls: Type[E], raw: Any, what: str) -> E:
    """
    Accept an enum member or its string value.

    Raises:
        DefinitionError: If the value is not a member of the closed set
    """
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)
    except (ValueError, TypeError):
        allowed = ", ".join(m.value for m in enum_cls)
        raise DefinitionError([f"Unknown {what} {raw!r} (expected one of: {allowed})"])


@dataclass(frozen=True)
class ConditionalRule:
    """
    One comparison inside a rule set.

    Example:
        Show "discount" when age is over 65:

        ConditionalRule(
            id="r1",
            field_id="age",
            operator=RuleOperator.GREATER_THAN,
            value="65",
            action=RuleAction.SHOW,
        )

    Properties:
        id: Rule identifier (unique within its rule set)
        field_id: Component whose answer is inspected
        operator: RuleOperator
        value: Comparison value; must be None for is_empty / is_not_empty
        action: RuleAction applied to the owning component

    IMPORTANT:
        field_id existence is NOT checked here.
        That needs the whole form and happens in formrules.model.Form.
    """

    id: str
    field_id: str
    operator: RuleOperator
    value: Any = None
    action: RuleAction = RuleAction.SHOW

    def __post_init__(self) -> None:
        problems = []
        if not self.id:
            problems.append("Rule id is required")
        if not self.field_id:
            problems.append(f"Rule {self.id!r}: field id is required")
        object.__setattr__(self, "operator", coerce_enum(RuleOperator, self.operator, "operator"))
        object.__setattr__(self, "action", coerce_enum(RuleAction, self.action, "action"))
        if self.operator in UNARY_OPERATORS and self.value is not None:
            problems.append(
                f"Rule {self.id!r}: value must be empty for {self.operator.value}"
            )
        if isinstance(self.value, list):
            object.__setattr__(self, "value", tuple(self.value))
        if problems:
            raise DefinitionError(problems)

    @classmethod
    def create(cls, field_id: str, operator: Any, value: Any, action: Any) -> "ConditionalRule":
        """Build a rule with a freshly generated short id."""
        return cls(
            id=uuid.uuid4().hex[:9],
            field_id=field_id,
            operator=operator,
            value=value,
            action=action,
        )


@dataclass(frozen=True)
class ConditionalLogic:
    """
    A rule set owned by exactly one component (its "target").

    Properties:
        rules: Rules evaluated against the response map
        operator: AND (all rules true) or OR (any rule true)

    An empty rule set evaluates to True but carries no action, so it
    never changes the target. The analyzer warns about it.
    """

    rules: Tuple[ConditionalRule, ...] = field(default_factory=tuple)
    operator: LogicOperator = LogicOperator.AND

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "operator", coerce_enum(LogicOperator, self.operator, "logic operator"))
        seen = set()
        for rule in self.rules:
            if rule.id in seen:
                raise DefinitionError([f"Duplicate rule id {rule.id!r}"])
            seen.add(rule.id)

    @property
    def field_ids(self) -> Tuple[str, ...]:
        """Component ids read by this rule set, in rule order."""
        return tuple(rule.field_id for rule in self.rules)

    @property
    def actions(self) -> Tuple[RuleAction, ...]:
        return tuple(rule.action for rule in self.rules)
