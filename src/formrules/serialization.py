"""
Serialization helpers for form definitions and submissions.

Provides dict / JSON / YAML conversion via an explicit intermediate
dict representation. Wire keys are camelCase (orderIndex, fieldId,
validationRules, ...), the shape used by form definition sources.

Loading is where definition errors surface: every problem found in a
definition is collected and raised together as one DefinitionError.
"""
from __future__ import annotations

import json
import logging
from dataclasses import fields, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Type

import yaml

from formrules.errors import DefinitionError
from formrules.model import (
    KIND_CONFIG,
    ChoiceConfig,
    ChoiceOption,
    Component,
    ComponentConfig,
    ComponentKind,
    FileDescriptor,
    Form,
    Submission,
    SubmissionStatus,
    ValidationRules,
    default_config,
)
from formrules.rules import ConditionalLogic, ConditionalRule, coerce_enum

logger = logging.getLogger(__name__)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _require(d: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in d or d[key] is None:
        raise DefinitionError([f"{what} is missing {key!r}"])
    return d[key]


# =========================================================================
# RULES
# =========================================================================


def rule_to_dict(rule: ConditionalRule) -> Dict[str, Any]:
    value = list(rule.value) if isinstance(rule.value, tuple) else rule.value
    return {
        "id": rule.id,
        "fieldId": rule.field_id,
        "operator": rule.operator.value,
        "value": value,
        "action": rule.action.value,
    }


def rule_from_dict(d: Mapping[str, Any]) -> ConditionalRule:
    return ConditionalRule(
        id=_require(d, "id", "Rule"),
        field_id=_require(d, "fieldId", f"Rule {d.get('id')!r}"),
        operator=_require(d, "operator", f"Rule {d.get('id')!r}"),
        value=d.get("value"),
        action=_require(d, "action", f"Rule {d.get('id')!r}"),
    )


def logic_to_dict(logic: Optional[ConditionalLogic]) -> Optional[Dict[str, Any]]:
    if logic is None:
        return None
    return {"rules": [rule_to_dict(r) for r in logic.rules], "operator": logic.operator.value}


def logic_from_dict(d: Optional[Mapping[str, Any]]) -> Optional[ConditionalLogic]:
    if d is None:
        return None
    return ConditionalLogic(
        rules=tuple(rule_from_dict(r) for r in d.get("rules") or []),
        operator=d.get("operator", "AND"),
    )


# =========================================================================
# COMPONENTS
# =========================================================================


def rules_to_dict(rules: Optional[ValidationRules]) -> Optional[Dict[str, Any]]:
    if rules is None:
        return None
    return {
        _camel(f.name): getattr(rules, f.name)
        for f in fields(rules)
        if getattr(rules, f.name) is not None
    }


def rules_from_dict(d: Optional[Mapping[str, Any]]) -> Optional[ValidationRules]:
    if d is None:
        return None
    kwargs = {f.name: d.get(_camel(f.name)) for f in fields(ValidationRules)}
    return ValidationRules(**kwargs)


def config_to_dict(config: ComponentConfig) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in fields(config):
        value = getattr(config, f.name)
        if value is None:
            continue
        if f.name == "options":
            value = [{"value": o.value, "label": o.label, "disabled": o.disabled} for o in value]
        elif isinstance(value, tuple):
            value = list(value)
        out[_camel(f.name)] = value
    return out


def config_from_dict(kind: ComponentKind, d: Optional[Mapping[str, Any]]) -> ComponentConfig:
    """
    Build the typed config for a kind out of an open settings map.

    Keys the kind does not define (styling, legacy flags) are ignored.
    Missing keys take the kind's defaults.
    """
    base = default_config(kind)
    if not d:
        return base
    config_cls: Type = KIND_CONFIG[kind]
    kwargs: Dict[str, Any] = {}
    known = set()
    for f in fields(config_cls):
        key = _camel(f.name)
        known.add(key)
        if key in d and d[key] is not None:
            kwargs[f.name] = d[key]
    if config_cls is ChoiceConfig and isinstance(kwargs.get("options"), (list, tuple)):
        kwargs["options"] = tuple(_option_from_raw(o) for o in kwargs["options"])
    ignored = sorted(set(d) - known)
    if ignored:
        logger.debug("Ignoring %s config keys: %s", kind.value, ", ".join(ignored))
    return replace(base, **kwargs)


def _option_from_raw(raw: Any) -> ChoiceOption:
    if isinstance(raw, str):
        return ChoiceOption(value=raw, label=raw)
    if isinstance(raw, Mapping) and isinstance(raw.get("value"), str):
        return ChoiceOption(
            value=raw["value"],
            label=raw.get("label") or raw["value"],
            disabled=bool(raw.get("disabled", False)),
        )
    raise DefinitionError([f"Invalid choice option {raw!r}"])


def component_to_dict(c: Component) -> Dict[str, Any]:
    return {
        "id": c.id,
        "kind": c.kind.value,
        "config": config_to_dict(c.config),
        "validationRules": rules_to_dict(c.validation_rules),
        "conditionalLogic": logic_to_dict(c.conditional_logic),
        "isVisible": c.is_visible,
        "isRequired": c.is_required,
        "orderIndex": c.order_index,
    }


def component_from_dict(d: Mapping[str, Any]) -> Component:
    what = f"Component {d.get('id')!r}"
    # "type" is the legacy name of the kind key
    kind = coerce_enum(ComponentKind, d.get("kind", d.get("type")), "component kind")
    try:
        config = config_from_dict(kind, d.get("config"))
    except DefinitionError as exc:
        raise DefinitionError([f"{what}: {problem}" for problem in exc.problems])
    return Component(
        id=_require(d, "id", "Component"),
        kind=kind,
        config=config,
        validation_rules=rules_from_dict(d.get("validationRules", d.get("validation"))),
        conditional_logic=logic_from_dict(d.get("conditionalLogic")),
        is_visible=d.get("isVisible", True),
        is_required=d.get("isRequired", False),
        order_index=_require(d, "orderIndex", what),
    )


# =========================================================================
# FORMS
# =========================================================================


def form_to_dict(form: Form) -> Dict[str, Any]:
    return {
        "id": form.id,
        "title": form.title,
        "description": form.description,
        "metadata": form.metadata,
        "components": [component_to_dict(c) for c in form.ordered()],
    }


def form_from_dict(d: Mapping[str, Any]) -> Form:
    """
    Load a form definition.

    Raises:
        DefinitionError: With every problem found across all components
    """
    if not isinstance(d, Mapping):
        raise DefinitionError([f"Form definition must be a mapping, got {type(d).__name__}"])
    form_id = _require(d, "id", "Form")

    problems: List[str] = []
    components: List[Component] = []
    for index, raw in enumerate(d.get("components") or []):
        if not isinstance(raw, Mapping):
            problems.append(f"Component #{index} must be a mapping")
            continue
        try:
            components.append(component_from_dict(raw))
        except DefinitionError as exc:
            problems.extend(exc.problems)
    if problems:
        raise DefinitionError(problems)

    form = Form(
        id=form_id,
        title=d.get("title", ""),
        components=tuple(components),
        description=d.get("description"),
        metadata=dict(d.get("metadata") or {}),
    )
    logger.debug("Loaded form %s with %d components", form.id, len(form.components))
    return form


def form_to_json(form: Form) -> str:
    return json.dumps(form_to_dict(form), sort_keys=True)


def form_from_json(s: str) -> Form:
    try:
        d = json.loads(s)
    except json.JSONDecodeError as exc:
        raise DefinitionError([f"Invalid JSON: {exc}"])
    return form_from_dict(d)


def form_to_yaml(form: Form) -> str:
    return yaml.safe_dump(form_to_dict(form), sort_keys=False, allow_unicode=True)


def form_from_yaml(s: str) -> Form:
    try:
        d = yaml.safe_load(s)
    except yaml.YAMLError as exc:
        raise DefinitionError([f"Invalid YAML: {exc}"])
    return form_from_dict(d)


# =========================================================================
# SUBMISSIONS
# =========================================================================


def _plain_value(value: Any) -> Any:
    if isinstance(value, FileDescriptor):
        return {"name": value.name, "size": value.size, "mimeType": value.mime_type}
    if isinstance(value, (list, tuple)):
        return [_plain_value(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _plain_value(v) for k, v in value.items()}
    return value


def submission_to_dict(s: Submission) -> Dict[str, Any]:
    return {
        "id": s.id,
        "formId": s.form_id,
        "responseData": {k: _plain_value(v) for k, v in s.response_data.items()},
        "submittedAt": s.submitted_at.isoformat(),
        "status": s.status.value,
    }


def submission_from_dict(d: Mapping[str, Any]) -> Submission:
    return Submission(
        id=d["id"],
        form_id=d["formId"],
        response_data=dict(d.get("responseData") or {}),
        submitted_at=datetime.fromisoformat(d["submittedAt"]),
        status=SubmissionStatus(d.get("status", "partial")),
    )


def submission_to_json(s: Submission) -> str:
    return json.dumps(submission_to_dict(s), sort_keys=True)


def submission_from_json(s: str) -> Submission:
    return submission_from_dict(json.loads(s))
