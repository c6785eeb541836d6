"""
Validation Engine — per-field answer checks.

validate() checks one candidate value against one component's
constraints and returns a field-scoped FieldError, or None.

Check order (first failure wins):
    1. required
    2. absent and not required -> None
    3. min_length / max_length
    4. pattern (whole-value match)
    5. min / max (inclusive, numeric coercion)
    6. kind-specific checks (number, rating, choices, files, dates)

IMPORTANT: A failed business check is a VALUE, never an exception.
The engine only raises for programmer misuse (an unknown kind).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Callable, Dict, Mapping, Optional

from formrules.model import (
    RATING_KINDS,
    TEMPORAL_KINDS,
    TEXT_KINDS,
    Component,
    ComponentKind,
    FileDescriptor,
)
from formrules.values import coerce_number, is_empty

DEFAULT_MESSAGES: Dict[str, str] = {
    "required": "{label} is required",
    "min_length": "{label} must be at least {min_length} characters",
    "max_length": "{label} must be at most {max_length} characters",
    "pattern": "{label} has an invalid format",
    "not_a_number": "{label} must be a number",
    "min": "{label} must be at least {min}",
    "max": "{label} must be at most {max}",
    "rating_range": "{label} must be between {min_rating} and {max_rating}",
    "invalid_choice": "{label} contains an option that is not offered",
    "too_many_choices": "{label} allows at most {max_selections} selections",
    "invalid_file": "{label} contains an unreadable file",
    "too_many_files": "{label} allows at most {max_files} files",
    "file_too_large": "{name} is larger than {max_file_size} bytes",
    "file_type": "{name} has a type that is not allowed ({mime_type})",
    "invalid_date": "{label} must be a valid {kind}",
    "date_too_early": "{label} must not be before {min_date}",
    "date_too_late": "{label} must not be after {max_date}",
}


@dataclass(frozen=True)
class FieldError:
    """
    A recoverable, field-scoped validation failure.

    Properties:
        component_id: Field the error belongs to
        code: Stable error code (key of DEFAULT_MESSAGES)
        message: Rendered text for the respondent
        params: Values substituted into the message template
    """

    component_id: str
    code: str
    message: str
    params: Dict[str, Any] = field(default_factory=dict)


def render_message(code: str, params: Mapping[str, Any], messages: Optional[Mapping[str, str]] = None) -> str:
    template = None
    if messages:
        template = messages.get(code)
    if template is None:
        template = DEFAULT_MESSAGES.get(code, code)
    try:
        return template.format(**params)
    except (KeyError, IndexError, ValueError):
        # A caller-supplied template naming an unknown placeholder
        return DEFAULT_MESSAGES.get(code, code).format(**params)


class _Checker:
    """Builds FieldErrors for one component with shared params."""

    def __init__(self, component: Component, messages: Optional[Mapping[str, str]]):
        self.component = component
        self.messages = messages

    def error(self, code: str, **params: Any) -> "FieldError":
        params = {"label": self.component.label, "kind": self.component.kind.value, **params}
        return FieldError(
            component_id=self.component.id,
            code=code,
            message=render_message(code, params, self.messages),
            params=params,
        )


def validate(
    component: Component,
    value: Any,
    required: Optional[bool] = None,
    messages: Optional[Mapping[str, str]] = None,
) -> Optional[FieldError]:
    """
    Check a candidate answer against a component's constraints.

    Args:
        component: Component being answered
        value: Candidate value from the response map (None if absent)
        required: Requirement resolved by conditional logic;
            None falls back to the component's static flag
        messages: Optional template overrides keyed by error code

    Returns:
        FieldError for the first failing check, or None

    Raises:
        ValueError: If the component kind has no registered checks
    """
    kind_check = _KIND_CHECKS.get(component.kind)
    if kind_check is None:
        raise ValueError(f"No validation registered for component kind {component.kind!r}")
    if component.is_structural:
        return None

    check = _Checker(component, messages)
    if required is None:
        required = component.is_required

    if is_empty(value):
        if required:
            return check.error("required")
        return None

    rules = component.effective_rules

    if isinstance(value, str):
        if rules.min_length is not None and len(value) < rules.min_length:
            return check.error("min_length", min_length=rules.min_length)
        if rules.max_length is not None and len(value) > rules.max_length:
            return check.error("max_length", max_length=rules.max_length)
        if rules.pattern is not None and re.fullmatch(rules.pattern, value) is None:
            return check.error("pattern", pattern=rules.pattern)

    if rules.min is not None or rules.max is not None:
        number = coerce_number(value)
        if number is None:
            return check.error("not_a_number")
        if rules.min is not None and number < rules.min:
            return check.error("min", min=_plain(rules.min))
        if rules.max is not None and number > rules.max:
            return check.error("max", max=_plain(rules.max))

    return kind_check(check, component, value)


def _plain(number: float) -> Any:
    """Render 18.0 as 18 in messages."""
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


# =========================================================================
# KIND-SPECIFIC CHECKS
# =========================================================================


def _check_nothing(check: _Checker, component: Component, value: Any) -> Optional[FieldError]:
    return None


def _check_number(check: _Checker, component: Component, value: Any) -> Optional[FieldError]:
    if coerce_number(value) is None:
        return check.error("not_a_number")
    return None


def _check_rating(check: _Checker, component: Component, value: Any) -> Optional[FieldError]:
    config = component.config
    number = coerce_number(value)
    if number is None:
        return check.error("not_a_number")
    if not config.min_rating <= number <= config.max_rating:
        return check.error("rating_range", min_rating=config.min_rating, max_rating=config.max_rating)
    return None


def _check_single_choice(check: _Checker, component: Component, value: Any) -> Optional[FieldError]:
    allowed = component.config.option_values
    if not isinstance(value, str):
        return check.error("invalid_choice")
    if allowed and value not in allowed:
        return check.error("invalid_choice")
    return None


def _check_multi_choice(check: _Checker, component: Component, value: Any) -> Optional[FieldError]:
    config = component.config
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        return check.error("invalid_choice")
    if config.option_values and any(v not in config.option_values for v in value):
        return check.error("invalid_choice")
    if config.max_selections is not None and len(value) > config.max_selections:
        return check.error("too_many_choices", max_selections=config.max_selections)
    return None


def _mime_allowed(mime_type: str, allowed_types: Any) -> bool:
    for allowed in allowed_types:
        if allowed.endswith("/*"):
            if mime_type.startswith(allowed[:-1]):
                return True
        elif mime_type == allowed:
            return True
    return False


def _check_files(check: _Checker, component: Component, value: Any) -> Optional[FieldError]:
    config = component.config
    if not isinstance(value, (list, tuple)):
        value = [value]
    descriptors = [FileDescriptor.from_value(raw) for raw in value]
    if any(d is None for d in descriptors):
        return check.error("invalid_file")
    if len(descriptors) > config.max_files:
        return check.error("too_many_files", max_files=config.max_files)
    for descriptor in descriptors:
        if descriptor.size > config.max_file_size:
            return check.error("file_too_large", name=descriptor.name, max_file_size=config.max_file_size)
    for descriptor in descriptors:
        if config.allowed_types and not _mime_allowed(descriptor.mime_type, config.allowed_types):
            return check.error("file_type", name=descriptor.name, mime_type=descriptor.mime_type)
    return None


def _check_temporal(check: _Checker, component: Component, value: Any) -> Optional[FieldError]:
    config = component.config
    parse = date.fromisoformat if component.kind is ComponentKind.DATE else time.fromisoformat
    if not isinstance(value, str):
        return check.error("invalid_date")
    try:
        parsed = parse(value)
    except ValueError:
        return check.error("invalid_date")
    if config.min_date and parsed < parse(config.min_date):
        return check.error("date_too_early", min_date=config.min_date)
    if config.max_date and parsed > parse(config.max_date):
        return check.error("date_too_late", max_date=config.max_date)
    return None


_KIND_CHECKS: Dict[ComponentKind, Callable[[_Checker, Component, Any], Optional[FieldError]]] = {
    ComponentKind.NUMBER: _check_number,
    ComponentKind.DROPDOWN: _check_single_choice,
    ComponentKind.SINGLE_CHOICE: _check_single_choice,
    ComponentKind.MULTI_CHOICE: _check_multi_choice,
    ComponentKind.FILE: _check_files,
    ComponentKind.PAGE_BREAK: _check_nothing,
    ComponentKind.SECTION_HEADER: _check_nothing,
}
_KIND_CHECKS.update({kind: _check_nothing for kind in TEXT_KINDS})
_KIND_CHECKS.update({kind: _check_rating for kind in RATING_KINDS})
_KIND_CHECKS.update({kind: _check_temporal for kind in TEMPORAL_KINDS})
