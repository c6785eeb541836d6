"""
Core Form Model Objects

Defines the fundamental data structures of a form definition:
    - Components (fields and structural markers)
    - Per-kind configuration payloads (a tagged union keyed by kind)
    - Validation rules
    - Forms (root container)
    - Pages and Submissions (runtime artifacts)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about storage, transport or rendering
        - Are immutable once built (a form is shared read-only by sessions)
        - Represent structure, not behavior

    Form construction is the ONLY place structural validation of a
    definition happens. Nothing downstream re-checks it per render.
"""

from __future__ import annotations

import re
import warnings
from collections import Counter
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Type, Union

from formrules.errors import DefinitionError
from formrules.rules import ConditionalLogic, coerce_enum

__all__ = [
    "ComponentKind",
    "TextConfig",
    "NumberConfig",
    "ChoiceOption",
    "ChoiceConfig",
    "FileConfig",
    "DateConfig",
    "RatingConfig",
    "PageBreakConfig",
    "SectionHeaderConfig",
    "ComponentConfig",
    "ValidationRules",
    "FileDescriptor",
    "Component",
    "Form",
    "Page",
    "Submission",
    "SubmissionStatus",
    "DefinitionError",
    "default_config",
]


class ComponentKind(Enum):
    """
    Closed set of field types a form author can place.

    PAGE_BREAK and SECTION_HEADER are structural markers:
    they never carry an answer.
    """

    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    DROPDOWN = "dropdown"
    SINGLE_CHOICE = "single-choice"
    MULTI_CHOICE = "multi-choice"
    FILE = "file"
    DATE = "date"
    TIME = "time"
    RATING_STARS = "rating-stars"
    RATING_SCALE = "rating-scale"
    RATING_NPS = "rating-nps"
    PAGE_BREAK = "page-break"
    SECTION_HEADER = "section-header"

    @property
    def is_structural(self) -> bool:
        return self in (ComponentKind.PAGE_BREAK, ComponentKind.SECTION_HEADER)


TEXT_KINDS = frozenset({ComponentKind.TEXT, ComponentKind.TEXTAREA, ComponentKind.EMAIL, ComponentKind.PHONE})
CHOICE_KINDS = frozenset({ComponentKind.DROPDOWN, ComponentKind.SINGLE_CHOICE, ComponentKind.MULTI_CHOICE})
RATING_KINDS = frozenset({ComponentKind.RATING_STARS, ComponentKind.RATING_SCALE, ComponentKind.RATING_NPS})
TEMPORAL_KINDS = frozenset({ComponentKind.DATE, ComponentKind.TIME})


# =========================================================================
# PER-KIND CONFIGURATION
# =========================================================================


def _integer_problems(config: Any, names: Tuple[str, ...]) -> List[str]:
    problems = []
    for name in names:
        value = getattr(config, name)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            problems.append(f"{name} must be an integer, got {value!r}")
    return problems


def _sequence_problems(config: Any, name: str) -> List[str]:
    value = getattr(config, name)
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, (list, tuple)):
        return [f"{name} must be a list, got {value!r}"]
    return []


@dataclass(frozen=True)
class TextConfig:
    """Settings for text, textarea, email and phone fields."""

    label: str = ""
    placeholder: Optional[str] = None
    help_text: Optional[str] = None


@dataclass(frozen=True)
class NumberConfig:
    label: str = ""
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    step: Optional[float] = None


@dataclass(frozen=True)
class ChoiceOption:
    value: str
    label: str = ""
    disabled: bool = False


@dataclass(frozen=True)
class ChoiceConfig:
    """
    Settings for dropdown, single-choice and multi-choice fields.

    Properties:
        options: Allowed answers. Empty means "any string" (options are
            supplied at render time by the caller).
        max_selections: Upper bound on picked options (multi-choice only)
    """

    label: str = ""
    help_text: Optional[str] = None
    placeholder: Optional[str] = None
    options: Tuple[ChoiceOption, ...] = ()
    max_selections: Optional[int] = None

    def __post_init__(self) -> None:
        problems = _sequence_problems(self, "options") + _integer_problems(self, ("max_selections",))
        if problems:
            raise DefinitionError(problems)
        object.__setattr__(self, "options", tuple(self.options))
        if not all(isinstance(option, ChoiceOption) for option in self.options):
            raise DefinitionError(["options must be ChoiceOption entries"])

    @property
    def option_values(self) -> Tuple[str, ...]:
        return tuple(option.value for option in self.options)


@dataclass(frozen=True)
class FileConfig:
    """
    Settings for file fields.

    The engine never sees file bytes, only descriptors.
    allowed_types accepts exact MIME types and "type/*" wildcards.
    """

    label: str = ""
    help_text: Optional[str] = None
    allowed_types: Tuple[str, ...] = ("image/*", "application/pdf")
    max_file_size: int = 10 * 1024 * 1024
    max_files: int = 1

    def __post_init__(self) -> None:
        problems = _sequence_problems(self, "allowed_types")
        problems += _integer_problems(self, ("max_file_size", "max_files"))
        if problems:
            raise DefinitionError(problems)
        object.__setattr__(self, "allowed_types", tuple(self.allowed_types))
        if not all(isinstance(mime, str) for mime in self.allowed_types):
            raise DefinitionError(["allowed_types must be strings"])


@dataclass(frozen=True)
class DateConfig:
    """Settings for date and time fields. Bounds are ISO-8601 strings."""

    label: str = ""
    help_text: Optional[str] = None
    min_date: Optional[str] = None
    max_date: Optional[str] = None


@dataclass(frozen=True)
class RatingConfig:
    label: str = ""
    help_text: Optional[str] = None
    min_rating: int = 1
    max_rating: int = 5
    min_label: Optional[str] = None
    max_label: Optional[str] = None

    def __post_init__(self) -> None:
        problems = _integer_problems(self, ("min_rating", "max_rating"))
        if problems:
            raise DefinitionError(problems)


@dataclass(frozen=True)
class PageBreakConfig:
    title: Optional[str] = None
    description: Optional[str] = None
    show_progress: bool = True


@dataclass(frozen=True)
class SectionHeaderConfig:
    title: str = ""
    description: Optional[str] = None
    level: int = 2

    def __post_init__(self) -> None:
        problems = _integer_problems(self, ("level",))
        if problems:
            raise DefinitionError(problems)


ComponentConfig = Union[
    TextConfig,
    NumberConfig,
    ChoiceConfig,
    FileConfig,
    DateConfig,
    RatingConfig,
    PageBreakConfig,
    SectionHeaderConfig,
]


KIND_CONFIG: Dict[ComponentKind, Type] = {
    ComponentKind.TEXT: TextConfig,
    ComponentKind.TEXTAREA: TextConfig,
    ComponentKind.EMAIL: TextConfig,
    ComponentKind.PHONE: TextConfig,
    ComponentKind.NUMBER: NumberConfig,
    ComponentKind.DROPDOWN: ChoiceConfig,
    ComponentKind.SINGLE_CHOICE: ChoiceConfig,
    ComponentKind.MULTI_CHOICE: ChoiceConfig,
    ComponentKind.FILE: FileConfig,
    ComponentKind.DATE: DateConfig,
    ComponentKind.TIME: DateConfig,
    ComponentKind.RATING_STARS: RatingConfig,
    ComponentKind.RATING_SCALE: RatingConfig,
    ComponentKind.RATING_NPS: RatingConfig,
    ComponentKind.PAGE_BREAK: PageBreakConfig,
    ComponentKind.SECTION_HEADER: SectionHeaderConfig,
}


_RATING_BOUNDS = {
    ComponentKind.RATING_STARS: (1, 5),
    ComponentKind.RATING_SCALE: (1, 10),
    ComponentKind.RATING_NPS: (0, 10),
}


def default_config(kind: ComponentKind) -> ComponentConfig:
    """Config used when a component is declared without one."""
    if kind in _RATING_BOUNDS:
        low, high = _RATING_BOUNDS[kind]
        return RatingConfig(min_rating=low, max_rating=high)
    return KIND_CONFIG[kind]()


# =========================================================================
# VALIDATION RULES
# =========================================================================


@dataclass(frozen=True)
class ValidationRules:
    """
    Structured constraints on a field's answer.

    Properties:
        min_length / max_length: String length bounds (characters)
        pattern: Regular expression the WHOLE value must match
        min / max: Inclusive numeric bounds

    Every property is optional. None means "no constraint".
    """

    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None

    def __post_init__(self) -> None:
        problems = []
        for name in ("min_length", "max_length"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                problems.append(f"{name} must be an integer, got {value!r}")
        for name in ("min", "max"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                problems.append(f"{name} must be a number, got {value!r}")
        if self.pattern is not None and not isinstance(self.pattern, str):
            problems.append(f"pattern must be a string, got {self.pattern!r}")
        if problems:
            raise DefinitionError(problems)

        if self.pattern is not None:
            try:
                re.compile(self.pattern)
            except re.error as exc:
                problems.append(f"Invalid pattern {self.pattern!r}: {exc}")
        if self.min_length is not None and self.min_length < 0:
            problems.append("min_length must not be negative")
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            problems.append(f"min_length {self.min_length} exceeds max_length {self.max_length}")
        if self.min is not None and self.max is not None and self.min > self.max:
            problems.append(f"min {self.min} exceeds max {self.max}")
        if problems:
            raise DefinitionError(problems)

    def overlay(self, explicit: Optional["ValidationRules"]) -> "ValidationRules":
        """Return these rules with every non-None field of `explicit` on top."""
        if explicit is None:
            return self
        changes = {
            f.name: getattr(explicit, f.name)
            for f in fields(explicit)
            if getattr(explicit, f.name) is not None
        }
        return replace(self, **changes)


EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
PHONE_PATTERN = r"^[\+]?[1-9][\d]{0,15}$"

KIND_DEFAULT_RULES: Dict[ComponentKind, ValidationRules] = {
    ComponentKind.TEXT: ValidationRules(max_length=255),
    ComponentKind.TEXTAREA: ValidationRules(max_length=1000),
    ComponentKind.EMAIL: ValidationRules(pattern=EMAIL_PATTERN),
    ComponentKind.PHONE: ValidationRules(pattern=PHONE_PATTERN),
}


# =========================================================================
# COMPONENTS
# =========================================================================


@dataclass(frozen=True)
class FileDescriptor:
    """
    Metadata of one uploaded file as reported by the upload layer.

    Wire shape: {"name": str, "size": int, "mimeType": str}
    """

    name: str
    size: int
    mime_type: str

    @classmethod
    def from_value(cls, raw: Any) -> Optional["FileDescriptor"]:
        """
        Read a descriptor out of an untrusted response value.

        Returns None if the value does not look like a descriptor.
        """
        if isinstance(raw, FileDescriptor):
            return raw
        if not isinstance(raw, Mapping):
            return None
        name = raw.get("name")
        size = raw.get("size")
        mime_type = raw.get("mimeType", raw.get("mime_type"))
        if not isinstance(name, str) or not isinstance(mime_type, str):
            return None
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            return None
        return cls(name=name, size=size, mime_type=mime_type)


@dataclass(frozen=True)
class Component:
    """
    One form field or structural marker.

    Properties:
        id:
            Unique, stable identifier within the form
            Examples: "age", "email", "page-2"

        kind:
            ComponentKind (strings are accepted and coerced)

        config:
            Kind-specific settings; must be an instance of the config
            class registered for the kind. None means kind defaults.

        validation_rules:
            Optional ValidationRules layered over the kind's defaults

        conditional_logic:
            Optional ConditionalLogic overriding visibility,
            requirement and enablement at response time

        is_visible / is_required:
            Static defaults used when no conditional logic applies

        order_index:
            Sole ordering key; unique within a form

    ARCHITECTURAL RULE:
        - conditional_logic decides whether the field applies
        - validation_rules decide whether an answer is accepted
        - These are separate concerns
    """

    id: str
    kind: ComponentKind
    config: Optional[ComponentConfig] = None
    validation_rules: Optional[ValidationRules] = None
    conditional_logic: Optional[ConditionalLogic] = None
    is_visible: bool = True
    is_required: bool = False
    order_index: int = 0

    def __post_init__(self) -> None:
        kind = coerce_enum(ComponentKind, self.kind, "component kind")
        object.__setattr__(self, "kind", kind)
        if self.config is None:
            object.__setattr__(self, "config", default_config(kind))

        problems = []
        if not self.id:
            problems.append("Component id is required")
        expected = KIND_CONFIG[kind]
        if not isinstance(self.config, expected):
            problems.append(
                f"Component {self.id!r}: {kind.value} expects {expected.__name__}, "
                f"got {type(self.config).__name__}"
            )
        elif isinstance(self.config, RatingConfig) and self.config.min_rating > self.config.max_rating:
            problems.append(
                f"Component {self.id!r}: min_rating {self.config.min_rating} "
                f"exceeds max_rating {self.config.max_rating}"
            )
        elif isinstance(self.config, SectionHeaderConfig) and not 1 <= self.config.level <= 6:
            problems.append(f"Component {self.id!r}: heading level must be 1-6")
        elif isinstance(self.config, FileConfig) and self.config.max_files < 1:
            problems.append(f"Component {self.id!r}: max_files must be at least 1")
        elif isinstance(self.config, DateConfig):
            problems.extend(_temporal_bound_problems(self.id, kind, self.config))
        for name in ("is_visible", "is_required"):
            if not isinstance(getattr(self, name), bool):
                problems.append(f"Component {self.id!r}: {name} must be true or false, got {getattr(self, name)!r}")
        if kind.is_structural and self.is_required is True:
            problems.append(f"Component {self.id!r}: {kind.value} cannot be required")
        if isinstance(self.order_index, bool) or not isinstance(self.order_index, int):
            problems.append(f"Component {self.id!r}: order_index must be an integer")
        if problems:
            raise DefinitionError(problems)

    @property
    def is_structural(self) -> bool:
        return self.kind.is_structural

    @property
    def label(self) -> str:
        """Human-readable name, falling back to the id."""
        text = getattr(self.config, "label", None) or getattr(self.config, "title", None)
        return text or self.id

    @property
    def effective_rules(self) -> ValidationRules:
        """Kind defaults with the component's own rules layered on top."""
        base = KIND_DEFAULT_RULES.get(self.kind, ValidationRules())
        return base.overlay(self.validation_rules)


@dataclass(frozen=True)
class Form:
    """
    Root container for a form definition.

    This is THE artifact sessions run against. It is built once
    (at load or save time) and shared read-only afterwards.

    Properties:
        id: Form identifier
        title: Display title
        components: All components, in any order (order_index decides)
        description: Optional description
        metadata: Arbitrary key-value pairs (use sparingly)

    INVARIANTS (checked here, raising DefinitionError):
        - Component ids are unique
        - order_index values are unique
        - Every rule's field_id names a component of this form
    """

    id: str
    title: str = ""
    components: Tuple[Component, ...] = ()
    description: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", tuple(self.components))
        problems = _definition_problems(self.components)
        if problems:
            raise DefinitionError(problems)
        for component in self.components:
            logic = component.conditional_logic
            if logic is not None and not logic.rules:
                warnings.warn(
                    f"Component {component.id!r} has an empty rule set; it never changes the field",
                    UserWarning,
                )

    def get_component(self, component_id: str) -> Optional[Component]:
        """
        Retrieve a component by id.

        Returns:
            Component or None if not found
        """
        for component in self.components:
            if component.id == component_id:
                return component
        return None

    def ordered(self) -> List[Component]:
        """Components in document order."""
        return sorted(self.components, key=lambda c: c.order_index)

    def data_components(self) -> List[Component]:
        """Answer-bearing components in document order."""
        return [c for c in self.ordered() if not c.is_structural]


def _temporal_bound_problems(component_id: str, kind: ComponentKind, config: DateConfig) -> List[str]:
    parse = date.fromisoformat if kind is ComponentKind.DATE else time.fromisoformat
    parsed = {}
    problems = []
    for name in ("min_date", "max_date"):
        raw = getattr(config, name)
        if raw is None:
            continue
        try:
            parsed[name] = parse(raw)
        except (TypeError, ValueError):
            problems.append(f"Component {component_id!r}: {name} {raw!r} is not an ISO {kind.value}")
    if len(parsed) == 2 and parsed["min_date"] > parsed["max_date"]:
        problems.append(f"Component {component_id!r}: min_date is after max_date")
    return problems


def _definition_problems(components: Tuple[Component, ...]) -> List[str]:
    problems: List[str] = []

    id_counts = Counter(c.id for c in components)
    for component_id, count in sorted(id_counts.items()):
        if count > 1:
            problems.append(f"Duplicate component id {component_id!r}")

    index_counts = Counter(c.order_index for c in components)
    for index, count in sorted(index_counts.items()):
        if count > 1:
            holders = sorted(c.id for c in components if c.order_index == index)
            problems.append(f"Duplicate order_index {index} on {', '.join(holders)}")

    known = set(id_counts)
    for component in components:
        if component.conditional_logic is None:
            continue
        for rule in component.conditional_logic.rules:
            if rule.field_id not in known:
                problems.append(
                    f"Component {component.id!r}: rule {rule.id!r} references "
                    f"unknown field {rule.field_id!r}"
                )
    return problems


# =========================================================================
# RUNTIME ARTIFACTS
# =========================================================================


@dataclass(frozen=True)
class Page:
    """
    A contiguous run of components between page-break markers.

    Created transiently by formrules.pages.segment; never persisted.

    Properties:
        index: Zero-based page number
        components: Page content in document order (no page-breaks)
        marker: The page-break that opened this page, if any
    """

    index: int
    components: Tuple[Component, ...] = ()
    marker: Optional[Component] = None

    @property
    def title(self) -> Optional[str]:
        if self.marker is None:
            return None
        return self.marker.config.title

    @property
    def component_ids(self) -> Tuple[str, ...]:
        return tuple(c.id for c in self.components)

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components)

    def __len__(self) -> int:
        return len(self.components)


class SubmissionStatus(Enum):
    COMPLETED = "completed"
    PARTIAL = "partial"


@dataclass(frozen=True)
class Submission:
    """
    A respondent's answers, finalized or in progress.

    Properties:
        id: Stable per respondent session
        form_id: Form the answers belong to
        response_data: Snapshot of the response map
        submitted_at: When the snapshot was taken (UTC)
        status: COMPLETED once validated, PARTIAL for autosaves
    """

    id: str
    form_id: str
    response_data: Dict[str, Any]
    submitted_at: datetime
    status: SubmissionStatus
