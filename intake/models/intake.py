from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FieldKind(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    DATE = "date"
    NUMBER = "number"
    CURRENCY = "currency"
    SINGLE_SELECT = "single-select"
    MULTI_OPTION_CARD = "multi-option-card"
    ADDRESS_GROUP = "address-group"
    CHECKBOX = "checkbox"
    TERMINAL_CONSENT = "terminal-consent"


class MaskKind(str, Enum):
    TAX_ID = "tax-id"
    SSN = "ssn"
    PHONE = "phone"
    CURRENCY = "currency"
    POSTAL_CODE = "postal-code"


class AddressPrefix(str, Enum):
    BUSINESS = "business"
    OWNER = "owner"


ADDRESS_PARTS = ("street", "unit", "city", "state", "zip")


class FollowUpRule(BaseModel):
    """Conditional sub-question shown when the parent answer matches."""

    model_config = ConfigDict(frozen=True)

    trigger_answers: frozenset[str] = Field(
        ..., description="Answers (case-insensitive) that open the follow-up"
    )
    target_key: str = Field(..., description="Form-state key for the refinement")
    question: str
    options: tuple[str, ...] = ()
    insight: str = ""

    def matches(self, answer: Any) -> bool:
        if not isinstance(answer, str):
            return False
        return answer.strip().casefold() in {
            trigger.casefold() for trigger in self.trigger_answers
        }


class FieldDescriptor(BaseModel):
    """A single collected value and the rules that shape it."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    kind: FieldKind
    required: bool = False
    mask: MaskKind | None = None
    options: tuple[str, ...] = ()
    group_prefix: AddressPrefix | None = None
    max_value: int | None = Field(
        default=None, description="Numeric cap; larger input is clamped"
    )
    exact_digits: int | None = Field(
        default=None, description="Required digit count of the masked value"
    )
    min_length: int | None = Field(
        default=None, description="Fewest characters accepted for free text"
    )
    follow_up: FollowUpRule | None = None

    def address_key(self, part: str) -> str:
        return f"{self.group_prefix.value}_{part}"


class StepDescriptor(BaseModel):
    """One screen of the guided intake: a field or a grouped field-set."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    fields: tuple[FieldDescriptor, ...]

    @property
    def is_terminal(self) -> bool:
        return any(f.kind == FieldKind.TERMINAL_CONSENT for f in self.fields)


class AddressParts(BaseModel):
    street: str = ""
    unit: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""


class IssueCode(str, Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    OUT_OF_RANGE = "out_of_range"
    ADDRESS_INCOMPLETE = "address_incomplete"
    ZIP_LENGTH = "zip_length"
    SELECTION_REQUIRED = "selection_required"
    CONSENT_REQUIRED = "consent_required"


class ValidationIssue(BaseModel):
    code: IssueCode
    field_key: str
    title: str
    message: str


class SessionState(str, Enum):
    AT_STEP = "at-step"
    SHOWING_FOLLOW_UP = "showing-follow-up"
    TERMINAL_CONSENT = "terminal-consent"
    SUBMITTED = "submitted"


class AdvanceStatus(str, Enum):
    ADVANCED = "advanced"
    FOLLOW_UP = "follow-up"
    SUBMITTED = "submitted"
    BUSY = "busy"


class AdvanceResult(BaseModel):
    status: AdvanceStatus
    state: SessionState
    step_index: int
    draft_id: str | None = None
    commit_error: str | None = Field(
        default=None,
        description="Non-final commit failure reported while navigation proceeded",
    )


class QuizInsight(BaseModel):
    title: str
    content: str
    is_positive: bool


class Agent(BaseModel):
    name: str
    email: str
    ghl_id: str | None = None


class ApplicationPayload(BaseModel):
    """Wire shape of a draft record (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    email: str | None = None
    full_name: str | None = None
    phone: str | None = None
    business_name: str | None = None
    industry: str | None = None
    ein: str | None = None
    time_in_business: str | None = None
    monthly_revenue: str | None = None
    average_monthly_revenue: str | None = None
    credit_score: str | None = None
    requested_amount: str | None = None
    use_of_funds: str | None = None
    business_address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    ownership: str | None = None
    business_type: str | None = None
    has_outstanding_loans: bool | None = None
    outstanding_loans_amount: str | None = None
    bank_name: str | None = None

    legal_business_name: str | None = None
    doing_business_as: str | None = None
    company_website: str | None = None
    business_start_date: str | None = None
    state_of_incorporation: str | None = None
    do_you_process_credit_cards: str | None = None
    mca_balance_amount: str | None = None
    mca_balance_bank_name: str | None = None

    social_security_number: str | None = None
    fico_score_exact: str | None = None
    date_of_birth: str | None = None
    owner_address1: str | None = Field(default=None, alias="ownerAddress1")
    owner_address2: str | None = Field(default=None, alias="ownerAddress2")
    owner_city: str | None = None
    owner_state: str | None = None
    owner_zip: str | None = None
    business_email: str | None = None

    company_email: str | None = None
    business_street_address: str | None = None
    business_csz: str | None = None
    owner_csz: str | None = None
    personal_credit_score_range: str | None = None

    applicant_signature: str | None = None

    agent_name: str | None = None
    agent_email: str | None = None
    agent_ghl_id: str | None = None

    quiz_source: str | None = None
    quiz_answers: str | None = None
    consent_marketing: bool | None = None

    agent_view_url: str | None = None
    current_step: int | None = None
    is_completed: bool | None = None
    is_full_application_completed: bool | None = None


class ApplicationRecord(ApplicationPayload):
    id: str
    current_step: int = 1
    is_completed: bool = False
    is_full_application_completed: bool = False


class HealthResponse(BaseModel):
    status: str = Field(default="ok")
