"""
Tests for the Submission State Machine.

Tests verify that FormSession:
    - Validates only the visible components of the current page on next()
    - Moves back without validation
    - Re-validates the whole form on submit and lands on the first failing page
    - Autosaves partial snapshots and reports when a save is due
    - Rejects moves its current state forbids
"""

from datetime import datetime, timedelta, timezone

import pytest
from formrules.config import EngineSettings
from formrules.model import Component, ComponentKind, Form, PageBreakConfig, SubmissionStatus, TextConfig
from formrules.rules import ConditionalLogic, ConditionalRule, RuleAction, RuleOperator
from formrules.session import FormSession, SessionError, SessionState

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock for autosave timing."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def build_form() -> Form:
    """Two pages: name / age on page 0; a conditional field and notes on page 1."""
    return Form(id="signup", title="Signup", components=[
        Component(id="name", kind="text", config=TextConfig(label="Name"), is_required=True, order_index=0),
        Component(id="age", kind="number", order_index=1),
        Component(id="pb", kind=ComponentKind.PAGE_BREAK, config=PageBreakConfig(title="More"), order_index=2),
        Component(
            id="guardian",
            kind="text",
            is_visible=False,
            conditional_logic=ConditionalLogic(rules=[
                ConditionalRule(id="minor-show", field_id="age", operator=RuleOperator.LESS_THAN,
                                value=18, action=RuleAction.SHOW),
                ConditionalRule(id="minor-require", field_id="age", operator=RuleOperator.LESS_THAN,
                                value=18, action=RuleAction.REQUIRE),
            ]),
            order_index=3,
        ),
        Component(id="notes", kind="textarea", order_index=4),
    ])


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(clock):
    return FormSession(build_form(), clock=clock, id_factory=lambda: "sub-1")


class TestNavigation:
    """Test next() and previous()."""

    def test_initial_state(self, session):
        assert session.state is SessionState.FILLING
        assert session.page_index == 0
        assert session.page_count == 2
        assert session.is_first_page and not session.is_last_page
        assert session.progress == 50.0

    def test_next_blocked_by_errors(self, session):
        result = session.next()
        assert not result.ok
        assert result.state is SessionState.FILLING
        assert result.page_index == 0
        assert result.errors["name"].code == "required"

    def test_next_advances_when_valid(self, session):
        session.set_answer("name", "Ada")
        result = session.next()
        assert result.ok
        assert result.page_index == 1
        assert session.is_last_page
        assert session.progress == 100.0

    def test_set_answer_clears_field_error(self, session):
        session.next()
        assert "name" in session.errors
        session.set_answer("name", "Ada")
        assert "name" not in session.errors

    def test_previous_does_not_validate(self, session):
        session.set_answer("name", "Ada")
        session.next()
        session.set_answer("notes", "x" * 2000)
        result = session.previous()
        assert result.ok
        assert result.page_index == 0
        assert result.errors == {}

    def test_previous_on_first_page(self, session):
        result = session.previous()
        assert not result.ok
        assert result.page_index == 0

    def test_hidden_field_not_validated(self, session):
        """A hidden required-when-visible field never blocks navigation."""
        session.set_answer("name", "Ada")
        session.set_answer("age", 30)
        session.next()
        assert [c.id for c in session.visible_components()] == ["notes"]
        result = session.next()
        assert result.ok
        assert result.state is SessionState.SUBMITTED

    def test_revealed_field_becomes_required(self, session):
        session.set_answer("name", "Ada")
        session.set_answer("age", 12)
        session.next()
        states = session.states()
        assert states["guardian"].visible and states["guardian"].required
        result = session.next()
        assert not result.ok
        assert result.errors["guardian"].code == "required"


class TestSubmit:
    """Test submission."""

    def test_next_on_last_page_submits(self, session, clock):
        session.set_answer("name", "Ada")
        session.next()
        clock.advance(5)
        result = session.next()
        assert result.ok
        assert result.state is SessionState.SUBMITTED
        submission = result.submission
        assert submission.id == "sub-1"
        assert submission.form_id == "signup"
        assert submission.status is SubmissionStatus.COMPLETED
        assert submission.response_data == {"name": "Ada"}
        assert submission.submitted_at == START + timedelta(seconds=5)
        assert session.progress == 100.0

    def test_submit_revalidates_earlier_pages(self, session):
        """An answer changed on a later page can make an earlier page invalid."""
        session.set_answer("name", "Ada")
        session.next()
        session.set_answer("name", "")
        result = session.submit()
        assert not result.ok
        assert result.state is SessionState.FILLING
        assert result.page_index == 0
        assert "name" in result.errors
        assert result.submission is None

    def test_submit_lands_on_first_failing_page(self, session):
        session.set_answer("age", 10)
        result = session.submit()
        assert set(result.errors) == {"name", "guardian"}
        assert result.page_index == 0

    def test_submit_failure_on_later_page(self, session):
        session.set_answer("name", "Ada")
        session.set_answer("age", 10)
        result = session.submit()
        assert set(result.errors) == {"guardian"}
        assert result.page_index == 1

    def test_submission_is_a_snapshot(self, session):
        session.set_answer("name", "Ada")
        result = session.submit()
        session.responses["name"] = "Changed"
        assert result.submission.response_data["name"] == "Ada"

    def test_drop_hidden_answers(self, clock):
        settings = EngineSettings(drop_hidden_answers=True)
        session = FormSession(build_form(), settings=settings, clock=clock)
        session.set_answer("name", "Ada")
        session.set_answer("age", 40)
        session.set_answer("guardian", "Someone")
        result = session.submit()
        assert result.ok
        assert "guardian" not in result.submission.response_data

    def test_hidden_answers_kept_by_default(self, session):
        session.set_answer("name", "Ada")
        session.set_answer("age", 40)
        session.set_answer("guardian", "Someone")
        assert session.submit().submission.response_data["guardian"] == "Someone"

    def test_no_changes_after_submission(self, session):
        session.set_answer("name", "Ada")
        session.submit()
        with pytest.raises(SessionError):
            session.set_answer("name", "Bob")
        with pytest.raises(SessionError):
            session.next()
        with pytest.raises(SessionError):
            session.previous()
        with pytest.raises(SessionError):
            session.submit()

    def test_custom_messages(self, clock):
        settings = EngineSettings(messages={"required": "Please answer {label}"})
        session = FormSession(build_form(), settings=settings, clock=clock)
        result = session.next()
        assert result.errors["name"].message == "Please answer Name"


class TestAnswers:
    """Test set_answer() guards."""

    def test_unknown_component(self, session):
        with pytest.raises(SessionError, match="Unknown component"):
            session.set_answer("nope", 1)

    def test_structural_component(self, session):
        with pytest.raises(SessionError, match="does not take answers"):
            session.set_answer("pb", "x")

    def test_shared_response_map(self, clock):
        responses = {"name": "Ada"}
        session = FormSession(build_form(), responses=responses, clock=clock)
        session.set_answer("age", 30)
        assert responses == {"name": "Ada", "age": 30}


class TestAutosave:
    """Test partial snapshots and autosave timing."""

    def test_autosave_snapshot(self, session, clock):
        session.set_answer("name", "Ad")
        partial = session.autosave()
        assert partial.status is SubmissionStatus.PARTIAL
        assert partial.id == "sub-1"
        assert partial.response_data == {"name": "Ad"}
        assert not session.is_dirty
        assert session.last_saved_at == START

    def test_autosave_skips_validation(self, session):
        session.set_answer("age", "not a number")
        assert session.autosave().response_data == {"age": "not a number"}

    def test_autosave_due_after_idle_interval(self, session, clock):
        assert not session.autosave_due()
        session.set_answer("name", "A")
        clock.advance(29)
        assert not session.autosave_due()
        clock.advance(1)
        assert session.autosave_due()

    def test_interval_restarts_on_each_answer(self, session, clock):
        session.set_answer("name", "A")
        clock.advance(20)
        session.set_answer("name", "Ad")
        clock.advance(20)
        assert not session.autosave_due()
        clock.advance(10)
        assert session.autosave_due()

    def test_not_due_after_save(self, session, clock):
        session.set_answer("name", "A")
        clock.advance(60)
        session.autosave()
        assert not session.autosave_due()

    def test_custom_interval(self, clock):
        session = FormSession(build_form(), settings=EngineSettings(autosave_interval_seconds=5), clock=clock)
        session.set_answer("name", "A")
        clock.advance(5)
        assert session.autosave_due()

    def test_no_autosave_after_submit(self, session):
        session.set_answer("name", "Ada")
        session.submit()
        assert not session.autosave_due()
        with pytest.raises(SessionError):
            session.autosave()


class TestResume:
    """Test resuming from a partial submission."""

    def test_resume_restores_answers(self, session, clock):
        session.set_answer("name", "Ada")
        partial = session.autosave()
        resumed = FormSession.resume(build_form(), partial, clock=clock)
        assert resumed.responses == {"name": "Ada"}
        assert resumed.submission_id == "sub-1"
        assert resumed.last_saved_at == START
        assert resumed.page_index == 0
        assert resumed.next().ok

    def test_resume_completed_rejected(self, session):
        session.set_answer("name", "Ada")
        completed = session.submit().submission
        with pytest.raises(SessionError, match="already completed"):
            FormSession.resume(build_form(), completed)

    def test_resume_other_form_rejected(self, session):
        partial = session.autosave()
        other = Form(id="other", components=[Component(id="x", kind="text")])
        with pytest.raises(SessionError, match="belongs to form"):
            FormSession.resume(other, partial)


def test_single_page_form_progress():
    form = Form(id="one", components=[Component(id="x", kind="text")])
    session = FormSession(form)
    assert session.page_count == 1
    assert session.progress == 100.0
    result = session.next()
    assert result.ok
    assert result.state is SessionState.SUBMITTED


def test_submit_revalidates_everything():
    """Only the later-page answer given: submit fails and returns to page 0."""
    form = Form(id="two-pages", components=[
        Component(id="A", kind="text", is_required=True, order_index=0),
        Component(id="pb", kind=ComponentKind.PAGE_BREAK, order_index=1),
        Component(
            id="B",
            kind="text",
            order_index=2,
            conditional_logic=ConditionalLogic(rules=[
                ConditionalRule(id="b-req", field_id="A", operator=RuleOperator.EQUALS,
                                value="yes", action=RuleAction.REQUIRE),
            ]),
        ),
    ])
    session = FormSession(form)
    session.set_answer("B", "answered")
    result = session.submit()
    assert not result.ok
    assert result.state is SessionState.FILLING
    assert result.page_index == 0
    assert set(result.errors) == {"A"}
    assert result.errors["A"].code == "required"
