"""
Form Analyzer — design-time diagnostics for form authors.

This module provides lightweight analysis of Form objects:
    - Component inventory and page count
    - Rule dependency graph (which field drives which)
    - Dependency cycles
    - Warning flags for rules that are likely mistakes

IMPORTANT: This is read-only. It never changes the form and never
rejects it; structural errors are DefinitionErrors raised when the
Form is built. Everything reported here still loads and runs.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from formrules.logic import available_operators
from formrules.model import Form
from formrules.pages import page_of, segment
from formrules.rules import RuleAction

logger = logging.getLogger(__name__)

_CONFLICTS = (
    (RuleAction.SHOW, RuleAction.HIDE),
    (RuleAction.REQUIRE, RuleAction.OPTIONAL),
    (RuleAction.ENABLE, RuleAction.DISABLE),
)


def _find_cycles_dfs(graph: Dict[str, List[str]], start: str, visited: Set[str],
                     rec_stack: Set[str], path: List[str]) -> Optional[List[str]]:
    """DFS to find a cycle starting from a node."""
    visited.add(start)
    rec_stack.add(start)
    path.append(start)

    for neighbor in graph.get(start, []):
        if neighbor not in visited:
            cycle = _find_cycles_dfs(graph, neighbor, visited, rec_stack, path[:])
            if cycle:
                return cycle
        elif neighbor in rec_stack:
            cycle_start_idx = path.index(neighbor)
            return path[cycle_start_idx:] + [neighbor]

    rec_stack.remove(start)
    return None


@dataclass
class FormReport:
    """Analysis report for a form definition."""

    form_id: str
    total_components: int = 0
    total_pages: int = 0
    data_components: int = 0
    structural_components: int = 0

    # Coverage
    components_with_logic: int = 0
    components_with_validation: int = 0
    statically_required: int = 0

    # Rule graph: source field id -> ids of components whose rules read it
    dependents: Dict[str, List[str]] = field(default_factory=dict)
    has_cycles: bool = False
    cycle_example: Optional[List[str]] = None
    max_rules_per_component: int = 0

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def analyze_form(form: Form) -> FormReport:
    """
    Perform design-time analysis of a Form.

    Flags:
    - empty rule sets (vacuously true, never change the field)
    - rules reading structural components or their own component
    - operators that do not fit the kind of field they read
    - rules reading a field placed on a later page
    - conflicting actions inside one rule set
    - statically hidden components no rule can reveal
    - required components a rule can disable
    - dependency cycles between components

    Returns a FormReport with metrics and warnings.
    """
    report = FormReport(form_id=form.id)
    components = form.ordered()
    pages = segment(components)

    report.total_components = len(components)
    report.total_pages = len(pages)
    report.structural_components = sum(1 for c in components if c.is_structural)
    report.data_components = report.total_components - report.structural_components

    # =========================================================================
    # 1. COVERAGE
    # =========================================================================

    for component in components:
        if component.conditional_logic is not None:
            report.components_with_logic += 1
            report.max_rules_per_component = max(
                report.max_rules_per_component, len(component.conditional_logic.rules)
            )
        if component.validation_rules is not None:
            report.components_with_validation += 1
        if component.is_required:
            report.statically_required += 1

    # =========================================================================
    # 2. RULE CHECKS
    # =========================================================================

    by_id = {c.id: c for c in components}
    dependents: Dict[str, List[str]] = defaultdict(list)
    reads: Dict[str, List[str]] = defaultdict(list)

    for target in components:
        logic = target.conditional_logic
        if logic is None:
            continue

        if not logic.rules:
            report.add_warning(f"{target.id}: empty rule set never changes the field")
            continue

        actions = set(logic.actions)
        for first, second in _CONFLICTS:
            if first in actions and second in actions:
                report.add_warning(
                    f"{target.id}: rule set both {first.value}s and {second.value}s; "
                    f"{_restrictive(first, second).value} wins"
                )

        target_page = page_of(pages, target.id)
        for rule in logic.rules:
            source = by_id[rule.field_id]
            if target.id not in dependents[source.id]:
                dependents[source.id].append(target.id)

            if source.id == target.id:
                report.add_warning(f"{target.id}: rule {rule.id} reads its own answer")
                continue
            reads[target.id].append(source.id)
            if source.is_structural:
                report.add_warning(
                    f"{target.id}: rule {rule.id} reads {source.kind.value} {source.id}, which has no answer"
                )
                continue
            if rule.operator not in available_operators(source.kind):
                report.add_warning(
                    f"{target.id}: operator {rule.operator.value} is unusual for "
                    f"{source.kind.value} field {source.id}"
                )
            source_page = page_of(pages, source.id)
            if target_page is not None and source_page is not None and source_page > target_page:
                report.add_warning(
                    f"{target.id}: rule {rule.id} reads {source.id} from a later page "
                    f"({source_page + 1} > {target_page + 1})"
                )

        if not target.is_visible and RuleAction.SHOW not in actions:
            report.add_warning(f"{target.id}: hidden and no rule can show it")
        if (target.is_required or RuleAction.REQUIRE in actions) and RuleAction.DISABLE in actions:
            report.add_warning(f"{target.id}: required but a rule can disable it")

    for component in components:
        if component.conditional_logic is None and not component.is_visible:
            report.add_warning(f"{component.id}: hidden and no rule can show it")

    report.dependents = dict(dependents)

    # =========================================================================
    # 3. CYCLES
    # =========================================================================

    visited: Set[str] = set()
    for component_id in list(reads.keys()):
        if component_id not in visited:
            cycle = _find_cycles_dfs(reads, component_id, visited, set(), [])
            if cycle:
                report.has_cycles = True
                report.cycle_example = cycle
                break

    if report.has_cycles:
        report.add_warning(f"Rule cycle detected: {' -> '.join(report.cycle_example)}")

    logger.debug(
        "Analyzed form %s: %d components, %d pages, %d warnings",
        form.id, report.total_components, report.total_pages, len(report.warnings),
    )
    return report


def _restrictive(first: RuleAction, second: RuleAction) -> RuleAction:
    restrictive = {RuleAction.HIDE, RuleAction.REQUIRE, RuleAction.DISABLE}
    return first if first in restrictive else second
