"""Ordered step definitions for every intake variant."""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from intake.exceptions import RegistryConfigurationError
from intake.models.intake import (
    AddressPrefix,
    FieldDescriptor,
    FieldKind,
    MaskKind,
    StepDescriptor,
)
from intake.services.scoring_service import NO, QUIZ_QUESTIONS, YES

US_STATES = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
)  # fmt: skip

INDUSTRIES = (
    "Automotive",
    "Construction",
    "Transportation",
    "Health Services",
    "Utilities and Home Services",
    "Hospitality",
    "Entertainment and Recreation",
    "Retail Stores",
    "Professional Services",
    "Restaurants & Food Services",
    "Other",
)

FUNDING_PURPOSE_OPTIONS = (
    "Working Capital",
    "Equipment Purchase",
    "Inventory",
    "Expansion",
    "Payroll",
    "Marketing & Advertising",
    "Debt Consolidation",
    "Emergency Expenses",
    "Other",
)

YES_NO = (YES, NO)


class PayloadShape(str, Enum):
    APPLICATION = "application"
    QUIZ = "quiz"
    INTAKE_FORM = "intake-form"


class IntakeVariant(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    steps: tuple[StepDescriptor, ...]
    payload_shape: PayloadShape
    completion_flag: str
    partial_saves: bool = True
    sign_on_submit: bool = True
    clear_identity_on_submit: bool = False
    resume_at_saved_step: bool = False
    reuse_existing_signature: bool = False

    @property
    def terminal_index(self) -> int:
        return len(self.steps) - 1

    def field(self, key: str) -> FieldDescriptor:
        for step in self.steps:
            for field in step.fields:
                if field.key == key:
                    return field
        raise KeyError(key)

    def iter_fields(self):
        for step in self.steps:
            yield from step.fields


def _single(key: str, label: str, kind: FieldKind, **kwargs) -> StepDescriptor:
    return StepDescriptor(
        key=key,
        label=label,
        fields=(FieldDescriptor(key=key, label=label, kind=kind, **kwargs),),
    )


def _address(key: str, label: str, prefix: AddressPrefix) -> FieldDescriptor:
    return FieldDescriptor(
        key=key,
        label=label,
        kind=FieldKind.ADDRESS_GROUP,
        required=True,
        group_prefix=prefix,
    )


LEGAL_BUSINESS_NAME = FieldDescriptor(
    key="legal_business_name", label="Legal Business Name", kind=FieldKind.TEXT, required=True
)
COMPANY_EMAIL = FieldDescriptor(
    key="company_email", label="Company Email", kind=FieldKind.EMAIL, required=True
)
COMPANY_WEBSITE = FieldDescriptor(
    key="company_website", label="Website (Optional)", kind=FieldKind.TEXT
)
BUSINESS_START_DATE = FieldDescriptor(
    key="business_start_date", label="Business Start Date", kind=FieldKind.DATE, required=True
)
STATE_OF_INCORPORATION = FieldDescriptor(
    key="state_of_incorporation",
    label="State of Incorporation",
    kind=FieldKind.SINGLE_SELECT,
    options=US_STATES,
    required=True,
)
PROCESSES_CREDIT_CARDS = FieldDescriptor(
    key="do_you_process_credit_cards",
    label="Do you process credit cards?",
    kind=FieldKind.SINGLE_SELECT,
    options=YES_NO,
    required=True,
)
REQUESTED_AMOUNT = FieldDescriptor(
    key="requested_loan_amount",
    label="Requested Amount",
    kind=FieldKind.CURRENCY,
    mask=MaskKind.CURRENCY,
    required=True,
)
MCA_BALANCE_AMOUNT = FieldDescriptor(
    key="mca_balance_amount",
    label="Current MCA Balance (if any)",
    kind=FieldKind.CURRENCY,
    mask=MaskKind.CURRENCY,
)
MCA_BALANCE_BANK_NAME = FieldDescriptor(
    key="mca_balance_bank_name", label="MCA Bank Name", kind=FieldKind.TEXT
)
FULL_NAME = FieldDescriptor(
    key="full_name", label="Full Name", kind=FieldKind.TEXT, required=True
)
OWNER_EMAIL = FieldDescriptor(
    key="email", label="Direct Email", kind=FieldKind.EMAIL, required=True
)
OWNER_PHONE = FieldDescriptor(
    key="phone", label="Mobile Phone", kind=FieldKind.TEL, mask=MaskKind.PHONE, required=True
)
OWNERSHIP_PERCENTAGE = FieldDescriptor(
    key="ownership_percentage",
    label="Ownership %",
    kind=FieldKind.NUMBER,
    required=True,
    max_value=100,
)
DATE_OF_BIRTH = FieldDescriptor(
    key="date_of_birth", label="Date of Birth", kind=FieldKind.DATE, required=True
)
CREDIT_SCORE = FieldDescriptor(
    key="personal_credit_score_range", label="Est. FICO Score", kind=FieldKind.NUMBER
)
BUSINESS_ADDRESS = _address("business_address", "Business Address", AddressPrefix.BUSINESS)
OWNER_ADDRESS = _address("owner_address", "Home Address", AddressPrefix.OWNER)
CONSENT = FieldDescriptor(
    key="consent", label="Click to Sign & Get Funded", kind=FieldKind.TERMINAL_CONSENT
)


FULL_APPLICATION_STEPS = (
    StepDescriptor(
        key="business_name",
        label="Business Name",
        fields=(
            LEGAL_BUSINESS_NAME,
            FieldDescriptor(
                key="doing_business_as", label="DBA (if applicable)", kind=FieldKind.TEXT
            ),
        ),
    ),
    StepDescriptor(
        key="company_contact",
        label="Company Contact",
        fields=(COMPANY_EMAIL, COMPANY_WEBSITE),
    ),
    StepDescriptor(
        key="business_origin",
        label="Business Origin",
        fields=(BUSINESS_START_DATE, STATE_OF_INCORPORATION),
    ),
    StepDescriptor(
        key="business_details",
        label="Business Details",
        fields=(
            FieldDescriptor(
                key="ein",
                label="Tax ID (EIN)",
                kind=FieldKind.TEXT,
                mask=MaskKind.TAX_ID,
                required=True,
            ),
            PROCESSES_CREDIT_CARDS,
        ),
    ),
    _single(
        "industry",
        "Choose your business industry",
        FieldKind.MULTI_OPTION_CARD,
        options=INDUSTRIES,
        required=True,
    ),
    StepDescriptor(key="business_address", label="Business Address", fields=(BUSINESS_ADDRESS,)),
    StepDescriptor(
        key="financing_request",
        label="Financing Request",
        fields=(REQUESTED_AMOUNT, MCA_BALANCE_AMOUNT, MCA_BALANCE_BANK_NAME),
    ),
    StepDescriptor(
        key="owner_profile",
        label="Owner Profile",
        fields=(FULL_NAME, OWNER_EMAIL, OWNER_PHONE, OWNERSHIP_PERCENTAGE),
    ),
    StepDescriptor(
        key="identity_verification",
        label="Identity Verification",
        fields=(
            FieldDescriptor(
                key="social_security",
                label="Social Security Number",
                kind=FieldKind.TEXT,
                mask=MaskKind.SSN,
                required=True,
            ),
            DATE_OF_BIRTH,
            CREDIT_SCORE,
        ),
    ),
    StepDescriptor(key="owner_address", label="Home Address", fields=(OWNER_ADDRESS,)),
    StepDescriptor(key="signature", label="Click to Sign & Get Funded", fields=(CONSENT,)),
)


AGENT_APPLICATION_STEPS = (
    StepDescriptor(
        key="business_information",
        label="Business Information",
        fields=(
            LEGAL_BUSINESS_NAME,
            FieldDescriptor(
                key="doing_business_as", label="DBA", kind=FieldKind.TEXT, required=True
            ),
            COMPANY_EMAIL,
            COMPANY_WEBSITE,
            BUSINESS_START_DATE,
            FieldDescriptor(
                key="ein",
                label="Tax ID (EIN)",
                kind=FieldKind.TEXT,
                mask=MaskKind.TAX_ID,
                required=True,
                exact_digits=9,
            ),
            FieldDescriptor(
                key="industry",
                label="Industry",
                kind=FieldKind.SINGLE_SELECT,
                options=INDUSTRIES,
                required=True,
            ),
            STATE_OF_INCORPORATION,
            PROCESSES_CREDIT_CARDS,
            BUSINESS_ADDRESS,
            REQUESTED_AMOUNT,
            MCA_BALANCE_AMOUNT,
            MCA_BALANCE_BANK_NAME,
        ),
    ),
    StepDescriptor(
        key="owner_information",
        label="Owner Information",
        fields=(
            FULL_NAME,
            OWNER_EMAIL,
            OWNER_PHONE,
            FieldDescriptor(
                key="social_security",
                label="Social Security Number",
                kind=FieldKind.TEXT,
                mask=MaskKind.SSN,
                required=True,
                exact_digits=9,
            ),
            OWNER_ADDRESS,
            DATE_OF_BIRTH,
            OWNERSHIP_PERCENTAGE,
            CREDIT_SCORE,
            CONSENT,
        ),
    ),
)


FUNDING_QUIZ_STEPS = tuple(
    _single(
        q.id,
        q.question,
        FieldKind.SINGLE_SELECT,
        options=YES_NO,
        required=True,
        follow_up=q.follow_up,
    )
    for q in QUIZ_QUESTIONS
) + (
    _single(
        "industry",
        "What industry is your business in?",
        FieldKind.MULTI_OPTION_CARD,
        options=INDUSTRIES,
        required=True,
    ),
    _single(
        "funding_purpose",
        "What will you use the funding for?",
        FieldKind.MULTI_OPTION_CARD,
        options=FUNDING_PURPOSE_OPTIONS,
        required=True,
    ),
    StepDescriptor(
        key="contact",
        label="See your fundability score",
        fields=(
            FULL_NAME,
            FieldDescriptor(
                key="business_name", label="Business Name", kind=FieldKind.TEXT, required=True
            ),
            FieldDescriptor(
                key="email", label="Email", kind=FieldKind.EMAIL, required=True
            ),
            FieldDescriptor(
                key="phone",
                label="Phone",
                kind=FieldKind.TEL,
                mask=MaskKind.PHONE,
                required=True,
                exact_digits=10,
            ),
            FieldDescriptor(
                key="consent_marketing",
                label="I agree to receive marketing and promotional messages",
                kind=FieldKind.CHECKBOX,
            ),
            FieldDescriptor(
                key="consent_transactional",
                label="I agree to receive messages about my request",
                kind=FieldKind.TERMINAL_CONSENT,
            ),
        ),
    ),
)


BUSINESS_TYPES = (
    "Sole Proprietorship",
    "Partnership",
    "LLC",
    "Corporation",
    "S-Corporation",
    "Non-Profit",
)

INTAKE_FORM_INDUSTRIES = (
    "Retail",
    "Restaurant/Food Service",
    "Healthcare",
    "Construction",
    "Professional Services",
    "Manufacturing",
    "Technology",
    "Transportation",
    "Real Estate",
    "Wholesale",
    "Other",
)

TIME_IN_BUSINESS_OPTIONS = (
    "Less than 6 months",
    "6-12 months",
    "1-2 years",
    "2-3 years",
    "3-5 years",
    "5+ years",
)

OWNERSHIP_OPTIONS = ("100%", "75-99%", "50-74%", "25-49%", "Less than 25%")

CREDIT_SCORE_RANGES = ("750+", "700-749", "650-699", "600-649", "550-599", "Below 550")


# Five auto-saving pages; the address page is stored flat rather than as CSZ.
INTAKE_FORM_STEPS = (
    StepDescriptor(
        key="contact",
        label="Let's Get Started",
        fields=(
            FieldDescriptor(
                key="email", label="Email Address", kind=FieldKind.EMAIL, required=True
            ),
            FULL_NAME,
            FieldDescriptor(
                key="phone",
                label="Phone Number",
                kind=FieldKind.TEL,
                mask=MaskKind.PHONE,
                required=True,
                exact_digits=10,
            ),
        ),
    ),
    StepDescriptor(
        key="business",
        label="Tell Us About Your Business",
        fields=(
            FieldDescriptor(
                key="business_name", label="Business Name", kind=FieldKind.TEXT, required=True
            ),
            FieldDescriptor(
                key="business_type",
                label="Business Type",
                kind=FieldKind.SINGLE_SELECT,
                options=BUSINESS_TYPES,
                required=True,
            ),
            FieldDescriptor(
                key="industry",
                label="Industry",
                kind=FieldKind.SINGLE_SELECT,
                options=INTAKE_FORM_INDUSTRIES,
                required=True,
            ),
            FieldDescriptor(
                key="ein", label="EIN (Optional)", kind=FieldKind.TEXT, mask=MaskKind.TAX_ID
            ),
            FieldDescriptor(
                key="time_in_business",
                label="Time in Business",
                kind=FieldKind.SINGLE_SELECT,
                options=TIME_IN_BUSINESS_OPTIONS,
                required=True,
            ),
            FieldDescriptor(
                key="ownership",
                label="Ownership Percentage",
                kind=FieldKind.SINGLE_SELECT,
                options=OWNERSHIP_OPTIONS,
                required=True,
            ),
        ),
    ),
    StepDescriptor(
        key="financial",
        label="Financial Information",
        fields=(
            FieldDescriptor(
                key="monthly_revenue",
                label="Monthly Revenue",
                kind=FieldKind.CURRENCY,
                mask=MaskKind.CURRENCY,
                required=True,
            ),
            FieldDescriptor(
                key="average_monthly_revenue",
                label="Average Monthly Revenue",
                kind=FieldKind.CURRENCY,
                mask=MaskKind.CURRENCY,
                required=True,
            ),
            FieldDescriptor(
                key="credit_score",
                label="Credit Score Range",
                kind=FieldKind.SINGLE_SELECT,
                options=CREDIT_SCORE_RANGES,
                required=True,
            ),
            FieldDescriptor(
                key="has_outstanding_loans",
                label="I have outstanding business loans",
                kind=FieldKind.CHECKBOX,
            ),
            FieldDescriptor(
                key="outstanding_loans_amount",
                label="Outstanding Loans Amount",
                kind=FieldKind.CURRENCY,
                mask=MaskKind.CURRENCY,
            ),
        ),
    ),
    StepDescriptor(
        key="funding",
        label="Funding Details",
        fields=(
            REQUESTED_AMOUNT,
            FieldDescriptor(
                key="use_of_funds",
                label="Use of Funds",
                kind=FieldKind.TEXT,
                required=True,
                min_length=10,
            ),
            FieldDescriptor(key="bank_name", label="Business Bank", kind=FieldKind.TEXT),
        ),
    ),
    StepDescriptor(
        key="business_address",
        label="Business Address",
        fields=(
            BUSINESS_ADDRESS,
            FieldDescriptor(
                key="terms_consent",
                label="I agree to the Privacy Policy and Terms of Service",
                kind=FieldKind.TERMINAL_CONSENT,
            ),
        ),
    ),
)


def validate_registry(steps: tuple[StepDescriptor, ...]) -> None:
    """Check the structural invariants of a step sequence.

    Keys are unique, address groups carry a prefix, and exactly one
    terminal-consent field exists as the last field of the last step.
    """
    if not steps:
        raise RegistryConfigurationError("A variant needs at least one step")

    seen: set[str] = set()
    consent_positions = []
    for step_index, step in enumerate(steps):
        for field_index, field in enumerate(step.fields):
            if field.key in seen:
                raise RegistryConfigurationError(f"Duplicate field key: {field.key}")
            seen.add(field.key)
            if field.kind == FieldKind.ADDRESS_GROUP and field.group_prefix is None:
                raise RegistryConfigurationError(
                    f"Address group {field.key} has no group prefix"
                )
            if field.kind == FieldKind.TERMINAL_CONSENT:
                consent_positions.append((step_index, field_index))

    if len(consent_positions) != 1:
        raise RegistryConfigurationError(
            f"Expected exactly one terminal-consent field, found {len(consent_positions)}"
        )
    last_step = len(steps) - 1
    if consent_positions[0] != (last_step, len(steps[last_step].fields) - 1):
        raise RegistryConfigurationError("The terminal-consent field must come last")


def _variant(**kwargs) -> IntakeVariant:
    variant = IntakeVariant(**kwargs)
    validate_registry(variant.steps)
    return variant


FULL_APPLICATION = _variant(
    name="full-application",
    steps=FULL_APPLICATION_STEPS,
    payload_shape=PayloadShape.APPLICATION,
    completion_flag="isFullApplicationCompleted",
)

AGENT_APPLICATION = _variant(
    name="agent-application",
    steps=AGENT_APPLICATION_STEPS,
    payload_shape=PayloadShape.APPLICATION,
    completion_flag="isFullApplicationCompleted",
    clear_identity_on_submit=True,
    reuse_existing_signature=True,
)

FUNDING_QUIZ = _variant(
    name="funding-quiz",
    steps=FUNDING_QUIZ_STEPS,
    payload_shape=PayloadShape.QUIZ,
    completion_flag="isCompleted",
    partial_saves=False,
    sign_on_submit=False,
)

INTAKE_FORM = _variant(
    name="intake-form",
    steps=INTAKE_FORM_STEPS,
    payload_shape=PayloadShape.INTAKE_FORM,
    completion_flag="isCompleted",
    sign_on_submit=False,
    resume_at_saved_step=True,
)

VARIANTS = {
    v.name: v for v in (FULL_APPLICATION, AGENT_APPLICATION, FUNDING_QUIZ, INTAKE_FORM)
}
