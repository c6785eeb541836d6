"""
Form Templates — pre-built definitions an author can start from.

Templates are stored in the wire format (camelCase mappings) and are
only turned into Components on request, each time with fresh ids so
two forms made from one template never share component ids. Rules
inside a template refer to template-local ids and are rewritten to
the fresh ones.

Usage:
    template = get_template("general-contact")
    form = form_from_template(template)
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from formrules.model import Component, Form
from formrules.serialization import component_from_dict

PHONE_LOCAL_PATTERN = r"^09[0-9]{8}$"


class TemplateCategory(Enum):
    SURVEY = "survey"
    APPLICATION = "application"
    FEEDBACK = "feedback"
    REGISTRATION = "registration"
    CONTACT = "contact"
    EVENT = "event"


@dataclass(frozen=True)
class FormTemplate:
    """
    A named, categorised starting point for a new form.

    Properties:
        components: Component definitions in wire format
        settings: Presentation settings copied into the form metadata
        tags: Free keywords matched by search_templates()
    """

    id: str
    name: str
    description: str
    category: TemplateCategory
    components: Tuple[Mapping[str, Any], ...]
    settings: Mapping[str, Any] = field(default_factory=dict)
    tags: Tuple[str, ...] = ()


def _new_id() -> str:
    return uuid.uuid4().hex


def _field(field_id: str, kind: str, order_index: int, required: bool = False, **extra: Any) -> Dict[str, Any]:
    return {"id": field_id, "kind": kind, "orderIndex": order_index, "isRequired": required, **extra}


def _choices(*pairs: Tuple[str, str]) -> List[Dict[str, str]]:
    return [{"value": value, "label": label} for value, label in pairs]


_TEMPLATES: Tuple[FormTemplate, ...] = (
    FormTemplate(
        id="citizen-satisfaction",
        name="Citizen Satisfaction Survey",
        description="Measure how satisfied citizens are with public services",
        category=TemplateCategory.SURVEY,
        tags=("citizen", "services", "satisfaction", "government"),
        settings={"theme": "government", "allowSaveProgress": True, "showProgress": True},
        components=(
            _field("full_name", "text", 0, True,
                   config={"label": "Full name", "helpText": "As written on your ID card"},
                   validationRules={"minLength": 2, "maxLength": 100}),
            _field("email", "email", 1, True, config={"label": "Email", "placeholder": "example@email.com"}),
            _field("governorate", "dropdown", 2, True, config={
                "label": "Governorate",
                "options": _choices(
                    ("damascus", "Damascus"), ("aleppo", "Aleppo"), ("homs", "Homs"), ("hama", "Hama"),
                    ("latakia", "Latakia"), ("tartus", "Tartus"), ("idlib", "Idlib"), ("raqqa", "Raqqa"),
                    ("deir-ez-zor", "Deir ez-Zor"), ("hasaka", "Hasaka"), ("quneitra", "Quneitra"),
                    ("sweida", "Sweida"), ("daraa", "Daraa"),
                ),
            }),
            _field("service_quality", "rating-stars", 3, True,
                   config={"label": "How do you rate the quality of public services?", "maxRating": 5}),
            _field("services_used", "multi-choice", 4, True, config={
                "label": "Which services have you used recently?",
                "options": _choices(
                    ("id_renewal", "ID renewal"), ("license_renewal", "Driving licence renewal"),
                    ("municipal_services", "Municipal services"), ("health_services", "Health services"),
                    ("education_services", "Education services"), ("other", "Other"),
                ),
            }),
            _field("suggestions", "textarea", 5, config={"label": "How could we improve?"},
                   validationRules={"maxLength": 1000}),
        ),
    ),
    FormTemplate(
        id="business-registration",
        name="Business Registration",
        description="Register a company or commercial establishment",
        category=TemplateCategory.APPLICATION,
        tags=("business", "registration", "company", "commercial"),
        settings={"theme": "business", "allowSaveProgress": True, "showProgress": True},
        components=(
            _field("company_name", "text", 0, True, config={"label": "Company name"},
                   validationRules={"minLength": 2, "maxLength": 200}),
            _field("activity", "dropdown", 1, True, config={
                "label": "Type of activity",
                "options": _choices(
                    ("commercial", "Commercial"), ("industrial", "Industrial"), ("service", "Service"),
                    ("agricultural", "Agricultural"), ("tourism", "Tourism"), ("technology", "Technology"),
                ),
            }),
            _field("registry_number", "text", 2, True, config={"label": "Commercial registry number"},
                   validationRules={"pattern": r"^[0-9]+$"}),
            _field("manager_name", "text", 3, True, config={"label": "Responsible manager"},
                   validationRules={"minLength": 2, "maxLength": 100}),
            _field("email", "email", 4, True, config={"label": "Email", "placeholder": "company@example.com"}),
            _field("phone", "phone", 5, True, config={"label": "Phone", "placeholder": "09xxxxxxxx"},
                   validationRules={"pattern": PHONE_LOCAL_PATTERN}),
            _field("description", "textarea", 6, True, config={"label": "Describe the activity"},
                   validationRules={"minLength": 50, "maxLength": 1000}),
            _field("documents", "file", 7, True, config={
                "label": "Required documents",
                "allowedTypes": [
                    "application/pdf", "image/jpeg", "image/png", "application/msword",
                    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
                ],
                "maxFileSize": 5 * 1024 * 1024,
                "maxFiles": 5,
            }),
        ),
    ),
    FormTemplate(
        id="website-feedback",
        name="Website Feedback",
        description="Rate the user experience of a website",
        category=TemplateCategory.FEEDBACK,
        tags=("website", "rating", "experience", "user"),
        settings={"theme": "modern", "allowSaveProgress": False, "showProgress": False},
        components=(
            _field("ease_of_use", "rating-stars", 0, True, config={"label": "How easy is the site to use?"}),
            _field("speed", "rating-stars", 1, True, config={"label": "How fast does the site load?"}),
            _field("problems", "multi-choice", 2, config={
                "label": "Which problems did you run into?",
                "options": _choices(
                    ("slow_loading", "Slow loading"), ("navigation_issues", "Hard to navigate"),
                    ("design_issues", "Design problems"), ("content_issues", "Content problems"),
                    ("other", "Other"),
                ),
            }),
            _field("problem_details", "textarea", 3, isVisible=False,
                   config={"label": "Tell us what went wrong"}, validationRules={"maxLength": 500},
                   conditionalLogic={"operator": "AND", "rules": [
                       {"id": "show-details", "fieldId": "problems", "operator": "is_not_empty", "action": "show"},
                   ]}),
            _field("suggestions", "textarea", 4, config={"label": "How could we improve the site?"},
                   validationRules={"maxLength": 500}),
        ),
    ),
    FormTemplate(
        id="general-contact",
        name="General Contact",
        description="Get in touch with the ministry or organisation",
        category=TemplateCategory.CONTACT,
        tags=("contact", "inquiry", "complaint", "suggestion"),
        settings={"theme": "professional", "allowSaveProgress": False, "showProgress": False},
        components=(
            _field("full_name", "text", 0, True, config={"label": "Full name"},
                   validationRules={"minLength": 2, "maxLength": 100}),
            _field("email", "email", 1, True, config={"label": "Email", "placeholder": "example@email.com"}),
            _field("phone", "phone", 2, config={"label": "Phone", "placeholder": "09xxxxxxxx"},
                   validationRules={"pattern": PHONE_LOCAL_PATTERN},
                   conditionalLogic={"operator": "AND", "rules": [
                       {"id": "call-back", "fieldId": "inquiry_type", "operator": "equals",
                        "value": "complaint", "action": "require"},
                   ]}),
            _field("inquiry_type", "dropdown", 3, True, config={
                "label": "Type of inquiry",
                "options": _choices(
                    ("general", "General inquiry"), ("complaint", "Complaint"), ("suggestion", "Suggestion"),
                    ("information_request", "Information request"), ("other", "Other"),
                ),
            }),
            _field("message", "textarea", 4, True, config={"label": "Message"},
                   validationRules={"minLength": 10, "maxLength": 1000}),
        ),
    ),
    FormTemplate(
        id="event-registration",
        name="Event Registration",
        description="Sign up to take part in events and seminars",
        category=TemplateCategory.EVENT,
        tags=("event", "seminar", "registration", "participation"),
        settings={"theme": "event", "allowSaveProgress": True, "showProgress": True},
        components=(
            _field("full_name", "text", 0, True, config={"label": "Full name"},
                   validationRules={"minLength": 2, "maxLength": 100}),
            _field("email", "email", 1, True, config={"label": "Email", "placeholder": "example@email.com"}),
            _field("phone", "phone", 2, True, config={"label": "Phone", "placeholder": "09xxxxxxxx"},
                   validationRules={"pattern": PHONE_LOCAL_PATTERN}),
            _field("organisation", "text", 3, config={"label": "Organisation"}, validationRules={"maxLength": 200}),
            _field("position", "text", 4, config={"label": "Position"}, validationRules={"maxLength": 100}),
            _field("interests", "multi-choice", 5, config={
                "label": "Interests",
                "options": _choices(
                    ("technology", "Technology"), ("innovation", "Innovation"),
                    ("entrepreneurship", "Entrepreneurship"), ("sustainability", "Sustainability"),
                    ("education", "Education"), ("other", "Other"),
                ),
            }),
            _field("notes", "textarea", 6, config={"label": "Anything else we should know?"},
                   validationRules={"maxLength": 500}),
        ),
    ),
)


def all_templates() -> List[FormTemplate]:
    return list(_TEMPLATES)


def get_template(template_id: str) -> Optional[FormTemplate]:
    """Template with this id, or None."""
    for template in _TEMPLATES:
        if template.id == template_id:
            return template
    return None


def templates_by_category(category: Union[TemplateCategory, str]) -> List[FormTemplate]:
    value = category.value if isinstance(category, TemplateCategory) else category
    return [t for t in _TEMPLATES if t.category.value == value]


def template_categories() -> List[Dict[str, Any]]:
    """Categories that hold at least one template, with their counts."""
    out = []
    for category in TemplateCategory:
        count = len(templates_by_category(category))
        if count:
            out.append({"id": category.value, "count": count})
    return out


def search_templates(query: str) -> List[FormTemplate]:
    """
    Case-insensitive substring search over name, description and tags.

    An empty query matches every template.
    """
    needle = query.lower()
    return [
        t for t in _TEMPLATES
        if needle in t.name.lower()
        or needle in t.description.lower()
        or any(needle in tag.lower() for tag in t.tags)
    ]


def components_from_template(
    template: FormTemplate,
    id_factory: Optional[Callable[[], str]] = None,
) -> Tuple[Component, ...]:
    """
    Build the template's components with fresh ids.

    Rules reading another component of the template are rewritten to
    that component's new id.
    """
    id_factory = id_factory or _new_id
    new_ids = {raw["id"]: id_factory() for raw in template.components}
    components = []
    for raw in template.components:
        raw = copy.deepcopy(dict(raw))
        raw["id"] = new_ids[raw["id"]]
        for rule in (raw.get("conditionalLogic") or {}).get("rules", []):
            rule["fieldId"] = new_ids.get(rule["fieldId"], rule["fieldId"])
        components.append(component_from_dict(raw))
    return tuple(components)


def form_from_template(
    template: FormTemplate,
    form_id: Optional[str] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> Form:
    """New form titled after the template; its settings land in metadata."""
    id_factory = id_factory or _new_id
    return Form(
        id=form_id or id_factory(),
        title=template.name,
        components=components_from_template(template, id_factory),
        description=template.description,
        metadata={"template": template.id, **copy.deepcopy(dict(template.settings))},
    )
