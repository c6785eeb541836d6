"""
Submission State Machine — drives one respondent through a form.

States:

    FILLING(page) --next--> VALIDATING --clean, more pages--> FILLING(page + 1)
                                       --errors-----------> FILLING(page)
                                       --clean, last page-> SUBMITTING
    FILLING(page) --submit-----------------------------> SUBMITTING
    SUBMITTING --all visible fields valid--> SUBMITTED
               --any error--> SUBMIT_FAILED --> FILLING(first page with an error)

ARCHITECTURAL RULE:
    Transitions must be explicit. Every allowed move is listed in
    _TRANSITIONS; anything else is a programmer error (SessionError).

A session belongs to exactly one respondent and is not thread-shared.
The Form it runs against is immutable and may be shared by many
sessions. Validation failures are returned as values; only misuse of
the state machine raises.
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from formrules.config import EngineSettings
from formrules.logic import ComponentState, resolve
from formrules.model import Component, Form, Page, Submission, SubmissionStatus
from formrules.pages import page_of, segment
from formrules.validation import FieldError, validate

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Raised when the session is driven in a way its state forbids."""
    pass


class SessionState(Enum):
    FILLING = "filling"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    SUBMIT_FAILED = "submit_failed"


_TRANSITIONS: Dict[SessionState, frozenset] = {
    SessionState.FILLING: frozenset({SessionState.VALIDATING, SessionState.SUBMITTING}),
    SessionState.VALIDATING: frozenset({SessionState.FILLING, SessionState.SUBMITTING}),
    SessionState.SUBMITTING: frozenset({SessionState.SUBMITTED, SessionState.SUBMIT_FAILED}),
    SessionState.SUBMIT_FAILED: frozenset({SessionState.FILLING}),
    SessionState.SUBMITTED: frozenset(),
}


@dataclass(frozen=True)
class StepResult:
    """
    Outcome of a navigation attempt.

    Properties:
        ok: Whether the requested move happened
        state: Session state after the attempt
        page_index: Page shown after the attempt
        errors: Field errors surfaced by the attempt, keyed by component id
        submission: The completed Submission when the form was submitted
    """

    ok: bool
    state: SessionState
    page_index: int
    errors: Dict[str, FieldError] = field(default_factory=dict)
    submission: Optional[Submission] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class FormSession:
    """
    One respondent's walk through a multi-page form.

    Args:
        form: Validated form definition
        responses: Response map to read (and write via set_answer);
            a fresh dict when omitted
        settings: EngineSettings; defaults when omitted
        clock: Returns "now" as an aware datetime (injectable for tests)
        id_factory: Returns the submission id for this session
    """

    def __init__(
        self,
        form: Form,
        responses: Optional[Dict[str, Any]] = None,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.form = form
        self.pages: List[Page] = segment(form.components)
        self.responses: Dict[str, Any] = responses if responses is not None else {}
        self.settings = settings or EngineSettings()
        self._clock = clock or _utcnow
        self.submission_id = (id_factory or _new_id)()

        self.state = SessionState.FILLING
        self.page_index = 0
        self.errors: Dict[str, FieldError] = {}
        self.submission: Optional[Submission] = None

        self.is_dirty = False
        self.last_saved_at: Optional[datetime] = None
        self._last_change_at: Optional[datetime] = None

        logger.debug(
            "Session %s started on form %s (%d pages)",
            self.submission_id, form.id, len(self.pages),
        )

    @classmethod
    def resume(
        cls,
        form: Form,
        partial: Submission,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "FormSession":
        """
        Continue a session from an autosaved partial submission.

        The session keeps the partial's id so the next autosave or the
        final submission replaces the same record. It starts on page 0.

        Raises:
            SessionError: If the snapshot is completed or belongs to another form
        """
        if partial.status is not SubmissionStatus.PARTIAL:
            raise SessionError(f"Submission {partial.id} is already completed")
        if partial.form_id != form.id:
            raise SessionError(f"Submission {partial.id} belongs to form {partial.form_id}, not {form.id}")
        session = cls(
            form,
            responses=copy.deepcopy(partial.response_data),
            settings=settings,
            clock=clock,
            id_factory=lambda: partial.id,
        )
        session.last_saved_at = partial.submitted_at
        return session

    # =====================================================================
    # VIEW
    # =====================================================================

    @property
    def current_page(self) -> Page:
        return self.pages[self.page_index]

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def is_first_page(self) -> bool:
        return self.page_index == 0

    @property
    def is_last_page(self) -> bool:
        return self.page_index == len(self.pages) - 1

    @property
    def progress(self) -> float:
        """Percentage of pages reached, as shown by a progress bar."""
        if self.state is SessionState.SUBMITTED or len(self.pages) <= 1:
            return 100.0
        return (self.page_index + 1) / len(self.pages) * 100

    def states(self) -> Dict[str, ComponentState]:
        """Resolved flags for every component on the current page."""
        return {c.id: resolve(c, self.responses) for c in self.current_page.components}

    def visible_components(self) -> List[Component]:
        """Components of the current page the rendering layer should show."""
        return [c for c in self.current_page.components if resolve(c, self.responses).visible]

    # =====================================================================
    # ANSWERS
    # =====================================================================

    def set_answer(self, component_id: str, value: Any) -> None:
        """
        Record an answer and clear that field's error.

        Raises:
            SessionError: If the form is already submitted or the
                component is unknown / structural
        """
        if self.state is SessionState.SUBMITTED:
            raise SessionError("Cannot change answers after submission")
        component = self.form.get_component(component_id)
        if component is None:
            raise SessionError(f"Unknown component {component_id!r}")
        if component.is_structural:
            raise SessionError(f"Component {component_id!r} does not take answers")

        self.responses[component_id] = value
        self.errors.pop(component_id, None)
        self.is_dirty = True
        self._last_change_at = self._clock()

    # =====================================================================
    # NAVIGATION
    # =====================================================================

    def next(self) -> StepResult:
        """
        Validate the current page and move forward.

        On the last page a clean pass continues into submission.
        """
        self._require_filling("next")
        self._transition(SessionState.VALIDATING)

        errors = self._validate(self.current_page.components)
        if errors:
            self.errors = errors
            self._transition(SessionState.FILLING)
            logger.debug(
                "Session %s: page %d has %d error(s)",
                self.submission_id, self.page_index, len(errors),
            )
            return self._result(False)

        for component in self.current_page.components:
            self.errors.pop(component.id, None)

        if not self.is_last_page:
            self.page_index += 1
            self._transition(SessionState.FILLING)
            return self._result(True)

        self._transition(SessionState.SUBMITTING)
        return self._finalize()

    def previous(self) -> StepResult:
        """Move back one page without validating anything."""
        self._require_filling("previous")
        if self.page_index == 0:
            return self._result(False)
        self.page_index -= 1
        logger.debug("Session %s: back to page %d", self.submission_id, self.page_index)
        return self._result(True)

    def submit(self) -> StepResult:
        """
        Validate every visible component on every page, then submit.

        Conditional rules may have changed what is required on pages
        the respondent already left, so the whole form is re-checked.
        """
        self._require_filling("submit")
        self._transition(SessionState.SUBMITTING)
        return self._finalize()

    # =====================================================================
    # AUTOSAVE
    # =====================================================================

    def autosave(self) -> Submission:
        """
        Snapshot the response map as a partial submission.

        Runs no validation. Scheduling and persistence belong to
        the caller.

        Raises:
            SessionError: If the form is already submitted
        """
        if self.state is SessionState.SUBMITTED:
            raise SessionError("Cannot autosave a submitted session")
        now = self._clock()
        snapshot = Submission(
            id=self.submission_id,
            form_id=self.form.id,
            response_data=copy.deepcopy(self.responses),
            submitted_at=now,
            status=SubmissionStatus.PARTIAL,
        )
        self.is_dirty = False
        self.last_saved_at = now
        logger.info("Session %s autosaved (%d answers)", self.submission_id, len(self.responses))
        return snapshot

    def autosave_due(self, now: Optional[datetime] = None) -> bool:
        """
        True when unsaved changes have been idle for the autosave interval.

        The interval restarts with every answer, so a respondent who
        keeps typing is not interrupted by saves.
        """
        if self.state is SessionState.SUBMITTED or not self.is_dirty:
            return False
        now = now or self._clock()
        idle = (now - self._last_change_at).total_seconds()
        return idle >= self.settings.autosave_interval_seconds

    # =====================================================================
    # INTERNALS
    # =====================================================================

    def _validate(self, components: Iterable[Component]) -> Dict[str, FieldError]:
        errors: Dict[str, FieldError] = {}
        for component in components:
            if component.is_structural:
                continue
            state = resolve(component, self.responses)
            if not state.visible:
                # Invisible components are exempt even when required
                continue
            error = validate(
                component,
                self.responses.get(component.id),
                required=state.required,
                messages=self.settings.messages,
            )
            if error is not None:
                errors[component.id] = error
        return errors

    def _finalize(self) -> StepResult:
        errors = self._validate(self.form.ordered())
        if errors:
            self.errors = errors
            self._transition(SessionState.SUBMIT_FAILED)
            failing_pages = [page_of(self.pages, component_id) for component_id in errors]
            self.page_index = min(index for index in failing_pages if index is not None)
            self._transition(SessionState.FILLING)
            logger.info(
                "Session %s: submit rejected, %d error(s), back to page %d",
                self.submission_id, len(errors), self.page_index,
            )
            return self._result(False)

        self.errors = {}
        self.submission = Submission(
            id=self.submission_id,
            form_id=self.form.id,
            response_data=self._payload(),
            submitted_at=self._clock(),
            status=SubmissionStatus.COMPLETED,
        )
        self.is_dirty = False
        self._transition(SessionState.SUBMITTED)
        logger.info("Session %s submitted form %s", self.submission_id, self.form.id)
        return self._result(True)

    def _payload(self) -> Dict[str, Any]:
        payload = copy.deepcopy(self.responses)
        if self.settings.drop_hidden_answers:
            for component in self.form.components:
                if component.id in payload and not resolve(component, self.responses).visible:
                    del payload[component.id]
        return payload

    def _require_filling(self, action: str) -> None:
        if self.state is not SessionState.FILLING:
            raise SessionError(f"Cannot {action} while {self.state.value}")

    def _transition(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise SessionError(f"Illegal transition {self.state.value} -> {target.value}")
        logger.debug("Session %s: %s -> %s", self.submission_id, self.state.value, target.value)
        self.state = target

    def _result(self, ok: bool) -> StepResult:
        return StepResult(
            ok=ok,
            state=self.state,
            page_index=self.page_index,
            errors=dict(self.errors),
            submission=self.submission if self.state is SessionState.SUBMITTED else None,
        )
