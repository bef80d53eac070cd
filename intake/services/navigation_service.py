"""Step navigation state machine for a single intake session."""

from typing import Any

from intake.config import settings
from intake.exceptions import (
    DraftTransportError,
    InvalidTransitionError,
    StepValidationError,
)
from intake.models.intake import (
    ADDRESS_PARTS,
    AdvanceResult,
    AdvanceStatus,
    Agent,
    FieldKind,
    FollowUpRule,
    QuizInsight,
    SessionState,
    StepDescriptor,
)
from intake.models.quiz import FundabilityResult
from intake.services.draft_service import DraftPersistenceManager
from intake.services.normalization import (
    match_option,
    normalize_address_part,
    normalize_input,
    parse_checkbox,
)
from intake.services.scoring_service import QUIZ_QUESTIONS, FundabilityScoringService
from intake.services.step_registry import PayloadShape
from intake.services.validation_service import validate_follow_up_value, validate_step
from intake.utils.logger import LoggerMixin

QUIZ_QUESTION_IDS = frozenset(q.id for q in QUIZ_QUESTIONS)


class IntakeSession(LoggerMixin):
    """Drives one user through the steps of an intake variant.

    States are ``at-step``, ``showing-follow-up``, ``terminal-consent`` and
    ``submitted``. Forward moves validate the current step and commit the
    draft; ``back`` never validates or commits. Only one commit runs at a
    time: a forward move requested while one is in flight is dropped.
    """

    def __init__(
        self,
        persistence: DraftPersistenceManager,
        block_on_commit_failure: bool | None = None,
    ):
        self.persistence = persistence
        self.variant = persistence.variant
        self.block_on_commit_failure = (
            settings.block_navigation_on_commit_failure
            if block_on_commit_failure is None
            else block_on_commit_failure
        )
        self.form_state: dict[str, Any] = {}
        self.consent_given = False
        self.step_index = 0
        self.state = self._resting_state()
        self._pending_follow_up: FollowUpRule | None = None
        self._in_flight = False

    @property
    def current_step(self) -> StepDescriptor:
        return self.variant.steps[self.step_index]

    @property
    def draft_id(self) -> str | None:
        return self.persistence.identity

    @property
    def pending_follow_up(self) -> FollowUpRule | None:
        return self._pending_follow_up

    @property
    def is_busy(self) -> bool:
        return self._in_flight

    @property
    def progress_percent(self) -> float:
        return (self.step_index + 1) / len(self.variant.steps) * 100

    async def start(self) -> None:
        """Resume a cached draft, if any, into the form state."""
        record = await self.persistence.load_identity()
        if record is None:
            return
        self.form_state = self.persistence.hydrate(record)
        if self.persistence.is_record_completed(record):
            self.consent_given = True
        if self.variant.resume_at_saved_step:
            self.step_index = self._saved_step_index(record)
            self.state = self._resting_state()
            self.logger.info(
                "Resuming at saved step",
                variant=self.variant.name,
                step=self.current_step.key,
            )

    def update_field(self, key: str, raw: Any) -> Any:
        """Normalize a keystroke value and store it under ``key``."""
        self._ensure_open()
        try:
            field = self.variant.field(key)
        except KeyError:
            value = self._normalize_address_part(key, raw)
        else:
            if field.kind == FieldKind.ADDRESS_GROUP:
                raise KeyError(f"Address group {key} is written part by part")
            value = normalize_input(field, raw)
            if field.kind == FieldKind.TERMINAL_CONSENT:
                self.consent_given = value
        self.form_state[key] = value
        return value

    def set_consent(self, given: bool) -> None:
        self._ensure_open()
        self.consent_given = parse_checkbox(given)

    def attach_agent(self, agent: Agent | None) -> None:
        """Attribute every later commit to ``agent``."""
        self.persistence.agent = agent

    def insight(self) -> QuizInsight | None:
        """Feedback for the yes/no answer on the current quiz step, if any."""
        if self.variant.payload_shape != PayloadShape.QUIZ:
            return None
        key = self.current_step.key
        answer = self.form_state.get(key)
        if key not in QUIZ_QUESTION_IDS or not answer:
            return None
        return FundabilityScoringService.insight_for(key, answer)

    def fundability(self) -> FundabilityResult:
        if self.variant.payload_shape != PayloadShape.QUIZ:
            raise InvalidTransitionError(
                f"{self.variant.name} does not compute a fundability score"
            )
        return FundabilityScoringService.score(self.form_state)

    async def advance(self) -> AdvanceResult:
        self._ensure_open()
        if self._in_flight:
            return self._busy()
        if self.state == SessionState.SHOWING_FOLLOW_UP:
            raise InvalidTransitionError("Answer the follow-up question first")

        step = self.current_step
        issue = validate_step(step, self.form_state, self.consent_given)
        if issue is not None:
            self.logger.info(
                "Step validation failed",
                step=step.key,
                field=issue.field_key,
                code=issue.code.value,
            )
            raise StepValidationError(issue)

        if step.is_terminal:
            return await self._submit()

        rule = self._matching_follow_up(step)
        if rule is not None:
            self._pending_follow_up = rule
            self.state = SessionState.SHOWING_FOLLOW_UP
            return self._result(AdvanceStatus.FOLLOW_UP)

        return await self._commit_and_move()

    async def resolve_follow_up(self, value: Any) -> AdvanceResult:
        self._ensure_open()
        if self._in_flight:
            return self._busy()
        if self.state != SessionState.SHOWING_FOLLOW_UP:
            raise InvalidTransitionError("No follow-up question is showing")

        rule = self._pending_follow_up
        value = match_option(rule.options, "" if value is None else str(value))
        issue = validate_follow_up_value(rule, value)
        if issue is not None:
            raise StepValidationError(issue)

        self.form_state[rule.target_key] = value
        result = await self._commit_and_move()
        self._pending_follow_up = None
        return result

    def back(self) -> int:
        """Step back without validating or committing."""
        self._ensure_open()
        if self._in_flight:
            return self.step_index
        if self.state == SessionState.SHOWING_FOLLOW_UP:
            # closes the follow-up and returns to its parent question
            self._pending_follow_up = None
        elif self.step_index > 0:
            self.step_index -= 1
        self.state = self._resting_state()
        return self.step_index

    async def _commit_and_move(self) -> AdvanceResult:
        commit_error = None
        if self.variant.partial_saves:
            self._in_flight = True
            try:
                await self.persistence.commit(
                    self.form_state, is_final=False, step_index=self.step_index
                )
            except DraftTransportError as e:
                if self.block_on_commit_failure:
                    raise
                commit_error = str(e)
                self.logger.warning(
                    "Progress not saved, continuing",
                    step=self.current_step.key,
                    error=commit_error,
                )
            finally:
                self._in_flight = False

        self.step_index += 1
        self.state = self._resting_state()
        return self._result(AdvanceStatus.ADVANCED, commit_error=commit_error)

    async def _submit(self) -> AdvanceResult:
        self._in_flight = True
        try:
            await self.persistence.commit(
                self.form_state, is_final=True, step_index=self.step_index
            )
        finally:
            self._in_flight = False

        self.state = SessionState.SUBMITTED
        self.logger.info(
            "Application submitted", variant=self.variant.name, draft_id=self.draft_id
        )
        return self._result(AdvanceStatus.SUBMITTED)

    def _matching_follow_up(self, step: StepDescriptor) -> FollowUpRule | None:
        for field in step.fields:
            if field.follow_up is not None and field.follow_up.matches(
                self.form_state.get(field.key)
            ):
                return field.follow_up
        return None

    def _normalize_address_part(self, key: str, raw: Any) -> str:
        prefix, _, part = key.partition("_")
        if part in ADDRESS_PARTS:
            for field in self.variant.iter_fields():
                if field.kind == FieldKind.ADDRESS_GROUP and field.group_prefix.value == prefix:
                    return normalize_address_part(part, "" if raw is None else str(raw))
        raise KeyError(f"Unknown field: {key}")

    def _saved_step_index(self, record) -> int:
        # currentStep is 1-based; anything unusable starts from the top
        saved = record.get("currentStep")
        if isinstance(saved, bool) or not isinstance(saved, int) or saved < 1:
            return 0
        return min(saved, len(self.variant.steps)) - 1

    def _resting_state(self) -> SessionState:
        if self.step_index == self.variant.terminal_index:
            return SessionState.TERMINAL_CONSENT
        return SessionState.AT_STEP

    def _ensure_open(self) -> None:
        if self.state == SessionState.SUBMITTED:
            raise InvalidTransitionError("The application has already been submitted")

    def _busy(self) -> AdvanceResult:
        self.logger.debug("Ignoring navigation while a commit is in flight")
        return self._result(AdvanceStatus.BUSY)

    def _result(self, status: AdvanceStatus, commit_error: str | None = None) -> AdvanceResult:
        return AdvanceResult(
            status=status,
            state=self.state,
            step_index=self.step_index,
            draft_id=self.draft_id,
            commit_error=commit_error,
        )
