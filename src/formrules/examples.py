"""
Example form builder for demos and tests.

Builds a three-page event registration form with:
    - text, email, number, choice, rating, date and file fields
    - section header and page-break markers
    - conditional show / require rules driven by earlier answers
"""
from formrules.model import (
    ChoiceConfig,
    ChoiceOption,
    Component,
    ComponentKind,
    DateConfig,
    FileConfig,
    Form,
    NumberConfig,
    PageBreakConfig,
    RatingConfig,
    SectionHeaderConfig,
    TextConfig,
    ValidationRules,
)
from formrules.rules import ConditionalLogic, ConditionalRule, LogicOperator, RuleAction, RuleOperator


def _options(*values: str):
    return tuple(ChoiceOption(value=v, label=v.replace("-", " ").capitalize()) for v in values)


def build_example_registration_form(event_date: str = "2026-11-20") -> Form:
    components = [
        # Page 1: about you
        Component(
            id="about",
            kind=ComponentKind.SECTION_HEADER,
            config=SectionHeaderConfig(title="About you", level=2),
            order_index=0,
        ),
        Component(
            id="full_name",
            kind=ComponentKind.TEXT,
            config=TextConfig(label="Full name"),
            validation_rules=ValidationRules(min_length=2),
            is_required=True,
            order_index=1,
        ),
        Component(
            id="email",
            kind=ComponentKind.EMAIL,
            config=TextConfig(label="Email"),
            is_required=True,
            order_index=2,
        ),
        Component(
            id="age",
            kind=ComponentKind.NUMBER,
            config=NumberConfig(label="Age"),
            validation_rules=ValidationRules(min=0, max=120),
            is_required=True,
            order_index=3,
        ),
        # Page 2: attendance
        Component(
            id="attendance_page",
            kind=ComponentKind.PAGE_BREAK,
            config=PageBreakConfig(title="Attendance"),
            order_index=4,
        ),
        Component(
            id="attendance",
            kind=ComponentKind.SINGLE_CHOICE,
            config=ChoiceConfig(label="How will you attend?", options=_options("in-person", "online")),
            is_required=True,
            order_index=5,
        ),
        Component(
            id="dietary",
            kind=ComponentKind.MULTI_CHOICE,
            config=ChoiceConfig(
                label="Dietary requirements",
                options=_options("vegetarian", "vegan", "gluten-free", "other"),
                max_selections=3,
            ),
            conditional_logic=ConditionalLogic(
                rules=(
                    ConditionalRule(
                        id="dietary-in-person",
                        field_id="attendance",
                        operator=RuleOperator.EQUALS,
                        value="in-person",
                        action=RuleAction.SHOW,
                    ),
                ),
            ),
            is_visible=False,
            order_index=6,
        ),
        Component(
            id="dietary_notes",
            kind=ComponentKind.TEXTAREA,
            config=TextConfig(label="Tell us more about your diet"),
            conditional_logic=ConditionalLogic(
                rules=(
                    ConditionalRule(
                        id="notes-other-show",
                        field_id="dietary",
                        operator=RuleOperator.CONTAINS,
                        value="other",
                        action=RuleAction.SHOW,
                    ),
                    ConditionalRule(
                        id="notes-other-require",
                        field_id="dietary",
                        operator=RuleOperator.CONTAINS,
                        value="other",
                        action=RuleAction.REQUIRE,
                    ),
                ),
            ),
            is_visible=False,
            order_index=7,
        ),
        Component(
            id="arrival_date",
            kind=ComponentKind.DATE,
            config=DateConfig(label="Arrival date", max_date=event_date),
            conditional_logic=ConditionalLogic(
                rules=(
                    ConditionalRule(
                        id="arrival-show",
                        field_id="attendance",
                        operator=RuleOperator.EQUALS,
                        value="in-person",
                        action=RuleAction.SHOW,
                    ),
                    ConditionalRule(
                        id="arrival-require",
                        field_id="attendance",
                        operator=RuleOperator.EQUALS,
                        value="in-person",
                        action=RuleAction.REQUIRE,
                    ),
                ),
            ),
            is_visible=False,
            order_index=8,
        ),
        Component(
            id="senior_discount",
            kind=ComponentKind.DROPDOWN,
            config=ChoiceConfig(label="Apply the senior discount?", options=_options("yes", "no")),
            conditional_logic=ConditionalLogic(
                rules=(
                    ConditionalRule(
                        id="senior-age",
                        field_id="age",
                        operator=RuleOperator.GREATER_THAN,
                        value=64,
                        action=RuleAction.SHOW,
                    ),
                ),
            ),
            is_visible=False,
            order_index=9,
        ),
        # Page 3: feedback
        Component(
            id="feedback_page",
            kind=ComponentKind.PAGE_BREAK,
            config=PageBreakConfig(title="Feedback"),
            order_index=10,
        ),
        Component(
            id="satisfaction",
            kind=ComponentKind.RATING_STARS,
            config=RatingConfig(label="How was registering?", min_rating=1, max_rating=5),
            order_index=11,
        ),
        Component(
            id="comments",
            kind=ComponentKind.TEXTAREA,
            config=TextConfig(label="Anything else?"),
            conditional_logic=ConditionalLogic(
                rules=(
                    ConditionalRule(
                        id="low-score",
                        field_id="satisfaction",
                        operator=RuleOperator.LESS_THAN,
                        value=3,
                        action=RuleAction.REQUIRE,
                    ),
                    ConditionalRule(
                        id="online-only",
                        field_id="attendance",
                        operator=RuleOperator.EQUALS,
                        value="online",
                        action=RuleAction.REQUIRE,
                    ),
                ),
                operator=LogicOperator.AND,
            ),
            order_index=12,
        ),
        Component(
            id="id_document",
            kind=ComponentKind.FILE,
            config=FileConfig(label="Student ID", allowed_types=("application/pdf", "image/*"), max_files=1),
            order_index=13,
        ),
    ]
    return Form(
        id="event-registration",
        title="Event Registration",
        components=tuple(components),
        description="Register for the annual meetup",
        metadata={"owner": "events"},
    )
