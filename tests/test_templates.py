"""
Tests for form templates.

These tests verify:
    - Lookup by id, category and free-text search
    - Every template builds a valid form
    - Fresh component ids, with rules following the renamed ids
"""

import itertools

import pytest
from formrules.analyzer import analyze_form
from formrules.logic import resolve
from formrules.model import ComponentKind
from formrules.templates import (
    TemplateCategory,
    all_templates,
    components_from_template,
    form_from_template,
    get_template,
    search_templates,
    template_categories,
    templates_by_category,
)


def _counter(prefix: str = "c"):
    numbers = itertools.count(1)
    return lambda: f"{prefix}{next(numbers)}"


class TestLookup:
    """Test finding templates."""

    def test_get_template(self):
        template = get_template("general-contact")
        assert template.category is TemplateCategory.CONTACT
        assert get_template("missing") is None

    def test_templates_by_category(self):
        assert [t.id for t in templates_by_category(TemplateCategory.SURVEY)] == ["citizen-satisfaction"]
        assert [t.id for t in templates_by_category("event")] == ["event-registration"]
        assert templates_by_category("registration") == []

    def test_template_categories_skip_empty(self):
        categories = template_categories()
        assert {"id": "feedback", "count": 1} in categories
        assert "registration" not in [c["id"] for c in categories]

    @pytest.mark.parametrize("query, expected", [
        ("CONTACT", ["general-contact"]),
        ("seminar", ["event-registration"]),
        ("complaint", ["general-contact"]),
        ("website", ["website-feedback"]),
    ])
    def test_search(self, query, expected):
        assert [t.id for t in search_templates(query)] == expected

    def test_empty_search_matches_all(self):
        assert search_templates("") == all_templates()


class TestBuild:
    """Test building forms out of templates."""

    @pytest.mark.parametrize("template", all_templates(), ids=lambda t: t.id)
    def test_every_template_builds_a_clean_form(self, template):
        form = form_from_template(template)
        assert form.title == template.name
        assert len(form.components) == len(template.components)
        assert analyze_form(form).warnings == []

    def test_fresh_ids(self):
        template = get_template("event-registration")
        first = components_from_template(template)
        second = components_from_template(template)
        assert not {c.id for c in first} & {c.id for c in second}

    def test_rules_follow_renamed_ids(self):
        components = components_from_template(get_template("general-contact"), id_factory=_counter())
        by_label = {c.label: c for c in components}
        phone = by_label["Phone"]
        assert phone.conditional_logic.rules[0].field_id == by_label["Type of inquiry"].id == "c4"

        assert resolve(phone, {"c4": "complaint"}).required
        assert not resolve(phone, {"c4": "general"}).required

    def test_settings_in_metadata(self):
        form = form_from_template(get_template("website-feedback"), form_id="fb-1")
        assert form.id == "fb-1"
        assert form.metadata["template"] == "website-feedback"
        assert form.metadata["showProgress"] is False

    def test_file_template_config(self):
        components = components_from_template(get_template("business-registration"))
        documents = [c for c in components if c.kind is ComponentKind.FILE][0]
        assert documents.config.max_files == 5
        assert documents.config.max_file_size == 5 * 1024 * 1024
