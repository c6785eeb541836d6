"""
Graphviz DOT diagram generator for form definitions.

Converts a Form into Graphviz DOT format so authors can see which
answers drive which components.

Nodes are components, in order. Edges run from the field a rule reads
to the component the rule controls.

Supports multiple modes:
    - SIMPLE: Component order plus rule edges (no labels)
    - DETAILED: Rule edges labelled with operator, value and action
    - MANAGEMENT: DETAILED, with each page drawn as a cluster
"""

from enum import Enum
from typing import List

from formrules.model import Component, Form
from formrules.pages import segment
from formrules.rules import UNARY_OPERATORS, ConditionalRule
from formrules.values import as_text


class DotMode(Enum):
    """Visualization modes for DOT output."""
    SIMPLE = "simple"          # Order and dependencies
    DETAILED = "detailed"      # Include rule labels, flags
    MANAGEMENT = "management"  # Pages as clusters


def _escape_dot_string(s: str) -> str:
    """Escape special characters for DOT labels."""
    if not s:
        return '""'
    s = s.replace('\\', '\\\\')
    s = s.replace('"', '\\"')
    s = s.replace('\n', '\\n')
    return f'"{s}"'


def _escape_dot_id(identifier: str) -> str:
    """Escape/quote an identifier for DOT."""
    if identifier[0].isdigit() or not identifier.replace('_', '').isalnum():
        return _escape_dot_string(identifier)
    return identifier


def _rule_to_dot_label(rule: ConditionalRule) -> str:
    """Readable label for a rule edge, e.g. 'equals yes -> show'."""
    if rule.operator in UNARY_OPERATORS or rule.value is None:
        condition = rule.operator.value
    else:
        condition = f"{rule.operator.value} {as_text(rule.value)}"
    if len(condition) > 40:
        condition = condition[:37] + "..."
    return f"{condition} -> {rule.action.value}"


def _node_label(component: Component, detailed: bool) -> str:
    label = component.label
    if not detailed:
        return label
    flags = [component.kind.value]
    if component.is_required:
        flags.append("required")
    if not component.is_visible:
        flags.append("hidden")
    return label + "\n(" + ", ".join(flags) + ")"


def generate_dot(form: Form, mode: DotMode = DotMode.SIMPLE) -> str:
    """
    Generate Graphviz DOT format for a form.

    Args:
        form: Form object to visualize
        mode: Visualization mode (SIMPLE, DETAILED, MANAGEMENT)

    Returns:
        String containing DOT graph definition
    """
    detailed = mode in (DotMode.DETAILED, DotMode.MANAGEMENT)
    components = form.data_components()
    lines: List[str] = []

    # Header
    lines.append("digraph form {")
    lines.append("  rankdir=TB;")
    lines.append("  node [shape=box, style=filled, fillcolor=lightblue];")

    # =========================================================================
    # NODES
    # =========================================================================

    for component in components:
        node_id = _escape_dot_id(component.id)
        attrs = f"label={_escape_dot_string(_node_label(component, detailed))}"
        if component.conditional_logic is not None:
            attrs += ", fillcolor=lightyellow"
        if not component.is_visible:
            attrs += ", style=\"filled,dashed\""
        lines.append(f"  {node_id} [{attrs}];")

    # =========================================================================
    # EDGES (ORDER AND RULES)
    # =========================================================================

    for before, after in zip(components, components[1:]):
        lines.append(
            f"  {_escape_dot_id(before.id)} -> {_escape_dot_id(after.id)} [style=dotted, arrowhead=none];"
        )

    for target in components:
        if target.conditional_logic is None:
            continue
        for rule in target.conditional_logic.rules:
            if form.get_component(rule.field_id).is_structural:
                continue
            edge_attr = ""
            if detailed:
                edge_attr = f" [label={_escape_dot_string(_rule_to_dot_label(rule))}]"
            lines.append(
                f"  {_escape_dot_id(rule.field_id)} -> {_escape_dot_id(target.id)}{edge_attr};"
            )

    # =========================================================================
    # PAGES (MANAGEMENT MODE)
    # =========================================================================

    if mode == DotMode.MANAGEMENT:
        for page in segment(form.components):
            data_ids = [c.id for c in page.components if not c.is_structural]
            if not data_ids:
                continue
            title = page.title or f"Page {page.index + 1}"
            lines.append(f'  subgraph "cluster_page_{page.index}" {{')
            lines.append(f'    label={_escape_dot_string(title)};')
            lines.append('    style=filled;')
            lines.append('    color=lightgrey;')
            for component_id in data_ids:
                lines.append(f"    {_escape_dot_id(component_id)};")
            lines.append("  }")

    # Footer
    lines.append("}")

    return "\n".join(lines)


def save_dot_file(form: Form, filename: str, mode: DotMode = DotMode.SIMPLE) -> None:
    """
    Generate DOT and save to file.

    Args:
        form: Form to visualize
        filename: Output file path (.dot extension recommended)
        mode: Visualization mode
    """
    dot = generate_dot(form, mode=mode)
    with open(filename, 'w', encoding='utf-8') as f:
        f.write(dot)


__all__ = ["DotMode", "generate_dot", "save_dot_file"]
