"""
Tests for Core Form Model Objects

These tests verify:
    - Component creation with per-kind configs and defaults
    - Definition-time rejection of malformed components and forms
    - Validation rule layering over kind defaults
    - Retrieval and ordering methods
"""

import pytest
from formrules.errors import DefinitionError
from formrules.model import (
    ChoiceConfig,
    Component,
    ComponentKind,
    DateConfig,
    FileConfig,
    FileDescriptor,
    Form,
    NumberConfig,
    RatingConfig,
    SectionHeaderConfig,
    TextConfig,
    ValidationRules,
    default_config,
)
from formrules.rules import ConditionalLogic, ConditionalRule


def _rule(rule_id: str, field_id: str, action: str = "show") -> ConditionalRule:
    return ConditionalRule(id=rule_id, field_id=field_id, operator="is_not_empty", action=action)


class TestComponent:
    """Test Component objects."""

    def test_create_component(self):
        """Should create a component with a typed config."""
        c = Component(id="name", kind=ComponentKind.TEXT, config=TextConfig(label="Name"), order_index=0)
        assert c.id == "name"
        assert c.label == "Name"
        assert c.is_visible and not c.is_required

    def test_kind_string_coerced(self):
        c = Component(id="n", kind="number")
        assert c.kind is ComponentKind.NUMBER
        assert isinstance(c.config, NumberConfig)

    def test_unknown_kind_rejected(self):
        with pytest.raises(DefinitionError, match="component kind"):
            Component(id="x", kind="signature")

    def test_config_must_match_kind(self):
        """A text config on a rating field is a definition error."""
        with pytest.raises(DefinitionError, match="expects RatingConfig"):
            Component(id="r", kind=ComponentKind.RATING_STARS, config=TextConfig(label="Stars"))

    def test_label_falls_back_to_id(self):
        assert Component(id="age", kind="number").label == "age"

    def test_section_header_label_uses_title(self):
        c = Component(id="h", kind="section-header", config=SectionHeaderConfig(title="About you"))
        assert c.label == "About you"

    def test_structural_cannot_be_required(self):
        with pytest.raises(DefinitionError, match="cannot be required"):
            Component(id="pb", kind=ComponentKind.PAGE_BREAK, is_required=True)

    def test_rating_bounds_checked(self):
        with pytest.raises(DefinitionError, match="min_rating"):
            Component(id="r", kind="rating-scale", config=RatingConfig(min_rating=6, max_rating=3))

    def test_heading_level_checked(self):
        with pytest.raises(DefinitionError, match="heading level"):
            Component(id="h", kind="section-header", config=SectionHeaderConfig(title="T", level=7))

    def test_max_files_checked(self):
        with pytest.raises(DefinitionError, match="max_files"):
            Component(id="f", kind="file", config=FileConfig(max_files=0))

    def test_date_bounds_must_be_iso(self):
        with pytest.raises(DefinitionError, match="not an ISO date"):
            Component(id="d", kind="date", config=DateConfig(min_date="next tuesday"))

    def test_date_bounds_ordered(self):
        with pytest.raises(DefinitionError, match="after max_date"):
            Component(id="d", kind="date", config=DateConfig(min_date="2026-05-01", max_date="2026-01-01"))

    def test_time_bounds(self):
        c = Component(id="t", kind="time", config=DateConfig(min_date="09:00", max_date="17:30"))
        assert c.config.max_date == "17:30"

    def test_order_index_must_be_int(self):
        with pytest.raises(DefinitionError, match="order_index"):
            Component(id="x", kind="text", order_index="1")

    @pytest.mark.parametrize("flag", ["is_visible", "is_required"])
    def test_flags_must_be_bool(self, flag):
        with pytest.raises(DefinitionError, match=flag):
            Component(id="x", kind="text", **{flag: "false"})

    def test_components_are_immutable(self):
        c = Component(id="x", kind="text")
        with pytest.raises(Exception):
            c.is_required = True


class TestDefaultConfig:
    """Test per-kind default configuration."""

    @pytest.mark.parametrize("kind, bounds", [
        (ComponentKind.RATING_STARS, (1, 5)),
        (ComponentKind.RATING_SCALE, (1, 10)),
        (ComponentKind.RATING_NPS, (0, 10)),
    ])
    def test_rating_defaults(self, kind, bounds):
        config = default_config(kind)
        assert (config.min_rating, config.max_rating) == bounds

    def test_file_defaults(self):
        config = default_config(ComponentKind.FILE)
        assert config.max_files == 1
        assert config.max_file_size == 10 * 1024 * 1024
        assert "application/pdf" in config.allowed_types

    def test_choice_options_stored_as_tuple(self):
        config = ChoiceConfig(options=[])
        assert config.options == ()

    @pytest.mark.parametrize("make", [
        lambda: FileConfig(max_files="3"),
        lambda: FileConfig(max_file_size=2.5),
        lambda: FileConfig(allowed_types="image/png"),
        lambda: ChoiceConfig(max_selections=True),
        lambda: ChoiceConfig(options="abc"),
        lambda: RatingConfig(max_rating="5"),
        lambda: SectionHeaderConfig(level="2"),
    ])
    def test_config_types_checked(self, make):
        with pytest.raises(DefinitionError, match="must be"):
            make()


class TestValidationRules:
    """Test ValidationRules objects."""

    def test_inverted_length_rejected(self):
        with pytest.raises(DefinitionError, match="exceeds max_length"):
            ValidationRules(min_length=10, max_length=2)

    def test_inverted_range_rejected(self):
        with pytest.raises(DefinitionError, match="exceeds max"):
            ValidationRules(min=5, max=1)

    def test_bad_pattern_rejected(self):
        with pytest.raises(DefinitionError, match="Invalid pattern"):
            ValidationRules(pattern="([a-z")

    def test_wrong_types_rejected(self):
        with pytest.raises(DefinitionError):
            ValidationRules(min_length="3")
        with pytest.raises(DefinitionError):
            ValidationRules(max=True)

    def test_overlay_keeps_defaults(self):
        """Explicit rules override only the fields they set."""
        merged = ValidationRules(max_length=255).overlay(ValidationRules(min_length=2))
        assert merged.min_length == 2
        assert merged.max_length == 255

    def test_effective_rules_for_email(self):
        c = Component(id="e", kind="email")
        assert c.effective_rules.pattern is not None

    def test_effective_rules_override(self):
        c = Component(id="t", kind="text", validation_rules=ValidationRules(max_length=10))
        assert c.effective_rules.max_length == 10


class TestFileDescriptor:
    """Test reading descriptors from untrusted values."""

    def test_from_mapping(self):
        d = FileDescriptor.from_value({"name": "cv.pdf", "size": 1200, "mimeType": "application/pdf"})
        assert d == FileDescriptor(name="cv.pdf", size=1200, mime_type="application/pdf")

    def test_snake_case_key(self):
        d = FileDescriptor.from_value({"name": "a.png", "size": 1, "mime_type": "image/png"})
        assert d.mime_type == "image/png"

    @pytest.mark.parametrize("raw", [
        "cv.pdf",
        {"name": "cv.pdf"},
        {"name": "cv.pdf", "size": -1, "mimeType": "application/pdf"},
        {"name": "cv.pdf", "size": True, "mimeType": "application/pdf"},
    ])
    def test_malformed(self, raw):
        assert FileDescriptor.from_value(raw) is None


class TestForm:
    """Test Form root object."""

    def test_create_form(self):
        form = Form(id="f", title="Signup", components=[
            Component(id="b", kind="text", order_index=2),
            Component(id="a", kind="text", order_index=1),
        ])
        assert isinstance(form.components, tuple)
        assert [c.id for c in form.ordered()] == ["a", "b"]

    def test_get_component(self):
        form = Form(id="f", components=[Component(id="a", kind="text")])
        assert form.get_component("a").id == "a"
        assert form.get_component("zzz") is None

    def test_duplicate_ids_rejected(self):
        with pytest.raises(DefinitionError, match="Duplicate component id"):
            Form(id="f", components=[
                Component(id="a", kind="text", order_index=0),
                Component(id="a", kind="text", order_index=1),
            ])

    def test_duplicate_order_index_rejected(self):
        with pytest.raises(DefinitionError, match="Duplicate order_index 3"):
            Form(id="f", components=[
                Component(id="a", kind="text", order_index=3),
                Component(id="b", kind="text", order_index=3),
            ])

    def test_dangling_rule_reference_rejected(self):
        target = Component(
            id="b", kind="text", order_index=1,
            conditional_logic=ConditionalLogic(rules=[_rule("r1", "ghost")]),
        )
        with pytest.raises(DefinitionError, match="unknown field 'ghost'"):
            Form(id="f", components=[Component(id="a", kind="text", order_index=0), target])

    def test_all_problems_reported(self):
        """Every problem is collected, not just the first."""
        with pytest.raises(DefinitionError) as exc_info:
            Form(id="f", components=[
                Component(id="a", kind="text", order_index=0),
                Component(id="a", kind="text", order_index=0),
            ])
        assert len(exc_info.value.problems) == 2

    def test_empty_rule_set_warns(self):
        with pytest.warns(UserWarning, match="empty rule set"):
            Form(id="f", components=[
                Component(id="a", kind="text", conditional_logic=ConditionalLogic()),
            ])

    def test_data_components_skip_markers(self):
        form = Form(id="f", components=[
            Component(id="h", kind="section-header", order_index=0),
            Component(id="a", kind="text", order_index=1),
            Component(id="pb", kind="page-break", order_index=2),
            Component(id="b", kind="number", order_index=3),
        ])
        assert [c.id for c in form.data_components()] == ["a", "b"]
