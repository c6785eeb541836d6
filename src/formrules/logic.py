"""
Conditional Logic Engine — decides which components apply.

For each component, resolve() computes three booleans from the
component's static flags and its (optional) rule set evaluated
against the current response map:

    visible   -> rendered and validated at all
    required  -> empty answers rejected
    enabled   -> input accepted by the rendering layer

COMBINATION POLICY:
    A rule set that is not triggered leaves the static flags alone.
    A triggered rule set applies its actions MOST-RESTRICTIVE-WINS:
        hide    beats show
        require beats optional
        disable beats enable
    regardless of rule order. A triggered `show` reveals a component
    whose static flag is hidden.

Each rule set is evaluated on its own: no cascading. A hidden
component's answer still feeds the rules that read it.

Every function here is pure and never raises on odd response data;
a comparison that cannot be made evaluates to False.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping

from formrules.model import CHOICE_KINDS, RATING_KINDS, TEMPORAL_KINDS, TEXT_KINDS, Component, ComponentKind
from formrules.rules import ConditionalLogic, ConditionalRule, LogicOperator, RuleAction, RuleOperator
from formrules.values import as_text, coerce_number, coerce_temporal, is_empty, strict_equals

ResponseMap = Mapping[str, Any]


@dataclass(frozen=True)
class ComponentState:
    """Resolved runtime flags of one component."""

    visible: bool
    required: bool
    enabled: bool


def _contains(value: Any, needle: Any) -> bool:
    if value is None or needle is None:
        return False
    if isinstance(value, (list, tuple)):
        # Multi-choice answers: membership, not substring
        target = as_text(needle)
        return any(as_text(item) == target for item in value)
    return as_text(needle) in as_text(value)


def _compare(value: Any, threshold: Any, greater: bool) -> bool:
    left: Any = coerce_number(value)
    right: Any = coerce_number(threshold)
    if left is None or right is None:
        # ISO dates and times order chronologically; never across the two
        left, right = coerce_temporal(value), coerce_temporal(threshold)
        if left is None or right is None or type(left) is not type(right):
            return False
    return left > right if greater else left < right


def evaluate_rule(rule: ConditionalRule, responses: ResponseMap) -> bool:
    """Evaluate a single rule against the response map."""
    value = responses.get(rule.field_id)
    op = rule.operator

    if op is RuleOperator.EQUALS:
        return strict_equals(value, rule.value)
    if op is RuleOperator.NOT_EQUALS:
        return not strict_equals(value, rule.value)
    if op is RuleOperator.CONTAINS:
        return _contains(value, rule.value)
    if op is RuleOperator.NOT_CONTAINS:
        return not _contains(value, rule.value)
    if op is RuleOperator.GREATER_THAN:
        return _compare(value, rule.value, greater=True)
    if op is RuleOperator.LESS_THAN:
        return _compare(value, rule.value, greater=False)
    if op is RuleOperator.IS_EMPTY:
        return is_empty(value)
    if op is RuleOperator.IS_NOT_EMPTY:
        return not is_empty(value)
    return False


def evaluate_conditional_logic(logic: ConditionalLogic, responses: ResponseMap) -> bool:
    """
    Combine a rule set's results with its AND / OR operator.

    An empty rule set is vacuously True.
    """
    if not logic.rules:
        return True
    results = (evaluate_rule(rule, responses) for rule in logic.rules)
    if logic.operator is LogicOperator.AND:
        return all(results)
    return any(results)


def resolve(component: Component, responses: ResponseMap) -> ComponentState:
    """
    Resolve visibility, requirement and enablement of a component.

    Without conditional logic this is always
    (is_visible, is_required, True), whatever the responses hold.
    """
    visible = component.is_visible
    required = component.is_required
    enabled = True

    logic = component.conditional_logic
    if logic is None or not evaluate_conditional_logic(logic, responses):
        return ComponentState(visible=visible, required=required, enabled=enabled)

    actions = set(logic.actions)
    if RuleAction.HIDE in actions:
        visible = False
    elif RuleAction.SHOW in actions:
        visible = True

    if RuleAction.REQUIRE in actions:
        required = True
    elif RuleAction.OPTIONAL in actions:
        required = False

    if RuleAction.DISABLE in actions:
        enabled = False
    elif RuleAction.ENABLE in actions:
        enabled = True

    if component.is_structural:
        required = False
    return ComponentState(visible=visible, required=required, enabled=enabled)


def resolve_all(components: Iterable[Component], responses: ResponseMap) -> Dict[str, ComponentState]:
    return {component.id: resolve(component, responses) for component in components}


def visible_components(components: Iterable[Component], responses: ResponseMap) -> List[Component]:
    return [c for c in components if resolve(c, responses).visible]


def required_components(components: Iterable[Component], responses: ResponseMap) -> List[Component]:
    return [c for c in components if resolve(c, responses).required]


def enabled_components(components: Iterable[Component], responses: ResponseMap) -> List[Component]:
    return [c for c in components if resolve(c, responses).enabled]


# =========================================================================
# AUTHORING HELPERS
# =========================================================================

_EQUALITY = [RuleOperator.EQUALS, RuleOperator.NOT_EQUALS]
_CONTAINMENT = [RuleOperator.CONTAINS, RuleOperator.NOT_CONTAINS]
_ORDERING = [RuleOperator.GREATER_THAN, RuleOperator.LESS_THAN]
_EMPTINESS = [RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY]


def available_operators(kind: ComponentKind) -> List[RuleOperator]:
    """
    Operators that make sense for rules reading a field of this kind.

    Used by authoring tools to build rule editors and by the analyzer
    to flag suspicious rules.
    """
    if kind in TEXT_KINDS:
        return _EQUALITY + _CONTAINMENT + _EMPTINESS
    if kind is ComponentKind.NUMBER or kind in RATING_KINDS or kind in TEMPORAL_KINDS:
        return _EQUALITY + _ORDERING + _EMPTINESS
    if kind is ComponentKind.MULTI_CHOICE:
        return _CONTAINMENT + _EMPTINESS
    if kind in CHOICE_KINDS:
        return _EQUALITY + _EMPTINESS
    if kind is ComponentKind.FILE:
        return list(_EMPTINESS)
    return _EQUALITY + _EMPTINESS


def available_actions() -> List[RuleAction]:
    return list(RuleAction)


def field_options(components: Iterable[Component]) -> List[Dict[str, str]]:
    """Components a rule may read from, as {id, label, kind} entries."""
    return [
        {"id": c.id, "label": c.label, "kind": c.kind.value}
        for c in components
        if not c.is_structural
    ]
