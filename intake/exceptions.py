"""Exception hierarchy for the guided-intake engine."""

from intake.models.intake import ValidationIssue


class IntakeError(Exception):
    """Base class for every error raised by the intake engine."""


class RegistryConfigurationError(IntakeError):
    """A step registry or scoring table violates its invariants."""


class UnsupportedFieldKindError(IntakeError):
    """A field kind reached a dispatch point that does not handle it."""

    def __init__(self, kind):
        super().__init__(f"Unsupported field kind: {kind!r}")
        self.kind = kind


class StepValidationError(IntakeError, ValueError):
    """The current step failed validation; nothing was committed."""

    def __init__(self, issue: ValidationIssue):
        super().__init__(issue.message)
        self.issue = issue

    @property
    def code(self):
        return self.issue.code

    @property
    def field_key(self) -> str:
        return self.issue.field_key


class InvalidTransitionError(IntakeError):
    """The requested transition is not allowed from the current state."""


class DraftTransportError(IntakeError):
    """A create, update or read call to the draft backend failed.

    Transport errors are recoverable: the form state is left untouched and a
    retry reuses the same draft identity.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DraftNotFoundError(DraftTransportError):
    """The backend has no draft for the given identity."""

    def __init__(self, identity: str):
        super().__init__(f"Draft {identity} not found", status_code=404)
        self.identity = identity
