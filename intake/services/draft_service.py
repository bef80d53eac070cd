"""Draft identity, hydration of form state, and commits to the backend."""

import json
from collections.abc import Mapping
from typing import Any

from intake.config import settings
from intake.exceptions import DraftNotFoundError, DraftTransportError
from intake.models.intake import ADDRESS_PARTS, AddressParts, Agent, FieldKind
from intake.services.address_service import compose, compose_street, decompose
from intake.services.backend_client import DraftBackend
from intake.services.identity_store import DraftIdentityStore
from intake.services.normalization import (
    canonicalize,
    mask_currency,
    mask_phone,
    mask_ssn,
    mask_tax_id,
)
from intake.services.step_registry import IntakeVariant, PayloadShape
from intake.utils.logger import LoggerMixin, log_draft_commit

# Steps before this index report currentStep=1 to the backend, later ones 2.
SECOND_PAGE_STEP_INDEX = 4

# Form key -> backend fields, newest first.
APPLICATION_FALLBACKS: dict[str, tuple[str, ...]] = {
    "legal_business_name": ("legalBusinessName", "businessName"),
    "doing_business_as": ("doingBusinessAs", "businessName"),
    "company_website": ("companyWebsite",),
    "business_start_date": ("businessStartDate",),
    "ein": ("ein",),
    "company_email": ("companyEmail", "businessEmail", "email"),
    "state_of_incorporation": ("stateOfIncorporation", "state"),
    "do_you_process_credit_cards": ("doYouProcessCreditCards",),
    "industry": ("industry",),
    "business_street": ("businessStreetAddress", "businessAddress"),
    "requested_loan_amount": ("requestedAmount",),
    "mca_balance_amount": ("mcaBalanceAmount",),
    "mca_balance_bank_name": ("mcaBalanceBankName",),
    "full_name": ("fullName",),
    "email": ("email",),
    "social_security": ("socialSecurityNumber",),
    "phone": ("phone",),
    "personal_credit_score_range": (
        "personalCreditScoreRange",
        "ficoScoreExact",
        "creditScore",
    ),
    "owner_street": ("ownerAddress1", "businessAddress"),
    "owner_unit": ("ownerAddress2",),
    "date_of_birth": ("dateOfBirth",),
    "ownership_percentage": ("ownership", "ownerPercentage"),
}

# Legacy flat address fields used when no CSZ string was stored.
LEGACY_ADDRESS_FIELDS = {
    "business": ("businessCsz", "city", "state", "zipCode"),
    "owner": ("ownerCsz", "ownerCity", "ownerState", "ownerZip"),
}


def _currency_from_remote(value: Any) -> str:
    # decimal columns come back as "50000.00"; only whole dollars are shown
    text = str(value).split(".", 1)[0]
    return mask_currency(text)


HYDRATION_FORMATTERS = {
    "ein": mask_tax_id,
    "social_security": mask_ssn,
    "phone": mask_phone,
    "requested_loan_amount": _currency_from_remote,
    "mca_balance_amount": _currency_from_remote,
}

APPLICATION_EXPORT_NAMES = {
    "legal_business_name": "legalBusinessName",
    "doing_business_as": "doingBusinessAs",
    "company_website": "companyWebsite",
    "business_start_date": "businessStartDate",
    "ein": "ein",
    "company_email": "companyEmail",
    "state_of_incorporation": "stateOfIncorporation",
    "do_you_process_credit_cards": "doYouProcessCreditCards",
    "industry": "industry",
    "requested_loan_amount": "requestedAmount",
    "mca_balance_amount": "mcaBalanceAmount",
    "mca_balance_bank_name": "mcaBalanceBankName",
    "full_name": "fullName",
    "email": "email",
    "social_security": "socialSecurityNumber",
    "phone": "phone",
    "personal_credit_score_range": "personalCreditScoreRange",
    "date_of_birth": "dateOfBirth",
    "ownership_percentage": "ownership",
}

REVENUE_MIDPOINTS = {
    "$15,000 - $25,000": 20000,
    "$25,000 - $50,000": 37500,
    "$50,000 - $100,000": 75000,
    "$100,000 - $250,000": 175000,
    "$250,000+": 300000,
}

# Intake-form key -> backend field; the address page is written flat.
INTAKE_FORM_FIELDS = {
    "email": "email",
    "full_name": "fullName",
    "phone": "phone",
    "business_name": "businessName",
    "business_type": "businessType",
    "industry": "industry",
    "ein": "ein",
    "time_in_business": "timeInBusiness",
    "ownership": "ownership",
    "monthly_revenue": "monthlyRevenue",
    "average_monthly_revenue": "averageMonthlyRevenue",
    "credit_score": "creditScore",
    "outstanding_loans_amount": "outstandingLoansAmount",
    "requested_loan_amount": "requestedAmount",
    "use_of_funds": "useOfFunds",
    "bank_name": "bankName",
}

INTAKE_FORM_FORMATTERS = {
    "ein": mask_tax_id,
    "phone": mask_phone,
    "monthly_revenue": _currency_from_remote,
    "average_monthly_revenue": _currency_from_remote,
    "outstanding_loans_amount": _currency_from_remote,
    "requested_loan_amount": _currency_from_remote,
}

QUIZ_DEFAULT_REQUESTED_AMOUNT = "50000"
QUIZ_SOURCE = "fundability-quiz"


def _first(record: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = record.get(name)
        if value not in (None, ""):
            return value
    return ""


def _stored_address(record: Mapping[str, Any], prefix: str) -> AddressParts:
    csz_name, city_name, state_name, zip_name = LEGACY_ADDRESS_FIELDS[prefix]
    csz = record.get(csz_name)
    if not csz:
        city, state, zip_code = (record.get(n) for n in (city_name, state_name, zip_name))
        if city and state and zip_code:
            csz = compose(AddressParts(city=city, state=state, zip=zip_code))
    return decompose(csz)


def hydrate_application(record: Mapping[str, Any]) -> dict[str, Any]:
    """Map a stored application record onto full/agent form state."""
    form_state: dict[str, Any] = {}
    for key, names in APPLICATION_FALLBACKS.items():
        value = _first(record, names)
        formatter = HYDRATION_FORMATTERS.get(key)
        if value and formatter is not None:
            value = formatter(str(value))
        form_state[key] = str(value) if value != "" else ""
    form_state["business_unit"] = ""

    for prefix in LEGACY_ADDRESS_FIELDS:
        parts = _stored_address(record, prefix)
        form_state[f"{prefix}_city"] = parts.city
        form_state[f"{prefix}_state"] = parts.state
        form_state[f"{prefix}_zip"] = parts.zip
    return form_state


def hydrate_quiz(record: Mapping[str, Any]) -> dict[str, Any]:
    phone = _first(record, ("phone",))
    return {
        "full_name": _first(record, ("fullName",)),
        "business_name": _first(record, ("businessName", "legalBusinessName")),
        "email": _first(record, ("email",)),
        "phone": mask_phone(str(phone)) if phone else "",
        "industry": _first(record, ("industry",)),
        "funding_purpose": _first(record, ("useOfFunds",)),
        "consent_marketing": record.get("consentMarketing") is True,
    }


def hydrate_intake_form(record: Mapping[str, Any]) -> dict[str, Any]:
    form_state: dict[str, Any] = {}
    for key, name in INTAKE_FORM_FIELDS.items():
        value = record.get(name)
        if value in (None, ""):
            form_state[key] = ""
            continue
        formatter = INTAKE_FORM_FORMATTERS.get(key)
        form_state[key] = formatter(str(value)) if formatter is not None else str(value)
    form_state["has_outstanding_loans"] = record.get("hasOutstandingLoans") is True

    parts = _stored_address(record, "business")
    form_state["business_street"] = _first(
        record, ("businessAddress", "businessStreetAddress")
    )
    form_state["business_unit"] = ""
    form_state["business_city"] = parts.city
    form_state["business_state"] = parts.state
    form_state["business_zip"] = parts.zip
    return form_state


def address_parts(form_state: Mapping[str, Any], prefix: str) -> AddressParts:
    return AddressParts(
        **{part: str(form_state.get(f"{prefix}_{part}") or "") for part in ADDRESS_PARTS}
    )


def build_application_payload(
    variant: IntakeVariant, form_state: Mapping[str, Any], step_index: int
) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for field in variant.iter_fields():
        wire_name = APPLICATION_EXPORT_NAMES.get(field.key)
        if wire_name is None:
            continue
        value = canonicalize(field, form_state.get(field.key, ""))
        if field.kind == FieldKind.CURRENCY and not value:
            continue
        payload[wire_name] = value

    business = address_parts(form_state, "business")
    payload["businessStreetAddress"] = compose_street(business.street, business.unit)
    payload["city"] = business.city
    payload["state"] = business.state
    payload["zipCode"] = business.zip
    business_csz = compose(business)
    if business_csz is not None:
        payload["businessCsz"] = business_csz

    owner = address_parts(form_state, "owner")
    payload["ownerAddress1"] = owner.street
    payload["ownerAddress2"] = owner.unit
    payload["ownerCity"] = owner.city
    payload["ownerState"] = owner.state
    payload["ownerZip"] = owner.zip
    owner_csz = compose(owner)
    if owner_csz is not None:
        payload["ownerCsz"] = owner_csz

    payload["currentStep"] = 2 if step_index >= SECOND_PAGE_STEP_INDEX else 1
    return payload


def build_quiz_payload(
    variant: IntakeVariant, form_state: Mapping[str, Any], step_index: int
) -> dict[str, Any]:
    """Translate quiz answers into an application record."""

    def answered_yes(key: str) -> bool:
        return str(form_state.get(key, "")).casefold() == "yes"

    revenue_range = form_state.get("revenue_amount")
    if answered_yes("revenue_15k") and revenue_range:
        monthly_revenue = REVENUE_MIDPOINTS.get(revenue_range, 15000)
    else:
        monthly_revenue = 10000

    time_in_business = form_state.get("business_age") or (
        "6-12 months" if answered_yes("six_months_old") else "Less than 3 months"
    )
    credit_score = form_state.get("credit_range") or (
        "550 - 650" if answered_yes("credit_above_550") else "550 and below"
    )

    return {
        "email": form_state.get("email", ""),
        "fullName": form_state.get("full_name", ""),
        "phone": canonicalize(variant.field("phone"), form_state.get("phone", "")),
        "businessName": form_state.get("business_name", ""),
        "requestedAmount": QUIZ_DEFAULT_REQUESTED_AMOUNT,
        "timeInBusiness": time_in_business,
        "industry": form_state.get("industry", ""),
        "monthlyRevenue": str(monthly_revenue),
        "averageMonthlyRevenue": str(monthly_revenue),
        "creditScore": credit_score,
        "personalCreditScoreRange": credit_score,
        "useOfFunds": form_state.get("funding_purpose", ""),
        "quizSource": QUIZ_SOURCE,
        "consentMarketing": form_state.get("consent_marketing") is True,
        "quizAnswers": json.dumps(
            {
                "onlineBank": form_state.get("online_bank", ""),
                "whichOnlineBank": form_state.get("which_online_bank", ""),
                "existingPositions": form_state.get("existing_positions", ""),
                "positionCount": form_state.get("position_count", ""),
                "consistentDeposits": form_state.get("consistent_deposits", ""),
                "nsfOverdrafts": form_state.get("nsf_overdrafts", ""),
            }
        ),
        "currentStep": 2 if step_index >= SECOND_PAGE_STEP_INDEX else 1,
    }


def build_intake_form_payload(
    variant: IntakeVariant, form_state: Mapping[str, Any], step_index: int
) -> dict[str, Any]:
    """Map intake-form answers; ``currentStep`` names the page to resume on."""
    payload: dict[str, Any] = {}
    for field in variant.iter_fields():
        wire_name = INTAKE_FORM_FIELDS.get(field.key)
        if wire_name is None:
            continue
        value = canonicalize(field, form_state.get(field.key, ""))
        if field.kind == FieldKind.CURRENCY and not value:
            continue
        payload[wire_name] = value
    payload["hasOutstandingLoans"] = form_state.get("has_outstanding_loans") is True

    business = address_parts(form_state, "business")
    payload["businessAddress"] = compose_street(business.street, business.unit)
    payload["city"] = business.city
    payload["state"] = business.state
    payload["zipCode"] = business.zip

    # leaving page n (1-based) saves n + 1; the last page saves itself
    payload["currentStep"] = min(step_index + 2, len(variant.steps))
    return payload


class DraftPersistenceManager(LoggerMixin):
    """Owns the draft identity and moves form state to and from the backend.

    The identity store is injected so the manager can be exercised without any
    client environment. Commits are full-payload upserts: the first successful
    commit creates the draft and caches its identity, later ones update it.
    """

    def __init__(
        self,
        variant: IntakeVariant,
        backend: DraftBackend,
        identity_store: DraftIdentityStore,
        agent: Agent | None = None,
        signature_sentinel: str | None = None,
    ):
        self.variant = variant
        self.backend = backend
        self.identity_store = identity_store
        self.agent = agent
        self.signature_sentinel = signature_sentinel or settings.signature_sentinel
        self._identity: str | None = None
        self.existing_signature: str | None = None

    @property
    def identity(self) -> str | None:
        return self._identity

    async def load_identity(self) -> Mapping[str, Any] | None:
        """Resume the cached draft; returns the remote record or None."""
        identity = self.identity_store.load()
        if not identity:
            self._identity = None
            return None

        self._identity = identity
        try:
            record = await self.backend.read(identity)
        except DraftNotFoundError:
            self.logger.warning(
                "Cached draft no longer exists, starting a new one", draft_id=identity
            )
            self.identity_store.clear()
            self._identity = None
            return None

        self.existing_signature = record.get("applicantSignature") or None
        self.logger.info("Loaded existing draft", draft_id=identity, variant=self.variant.name)
        return record

    def hydrate(self, record: Mapping[str, Any]) -> dict[str, Any]:
        match self.variant.payload_shape:
            case PayloadShape.APPLICATION:
                return hydrate_application(record)
            case PayloadShape.QUIZ:
                return hydrate_quiz(record)
            case PayloadShape.INTAKE_FORM:
                return hydrate_intake_form(record)
            case _:
                raise ValueError(f"Unknown payload shape: {self.variant.payload_shape}")

    def is_record_completed(self, record: Mapping[str, Any]) -> bool:
        return bool(record.get(self.variant.completion_flag))

    def build_payload(
        self, form_state: Mapping[str, Any], is_final: bool = False, step_index: int = 0
    ) -> dict[str, Any]:
        match self.variant.payload_shape:
            case PayloadShape.APPLICATION:
                payload = build_application_payload(self.variant, form_state, step_index)
            case PayloadShape.QUIZ:
                payload = build_quiz_payload(self.variant, form_state, step_index)
            case PayloadShape.INTAKE_FORM:
                payload = build_intake_form_payload(self.variant, form_state, step_index)
            case _:
                raise ValueError(f"Unknown payload shape: {self.variant.payload_shape}")

        if is_final:
            payload[self.variant.completion_flag] = True
            if self.variant.sign_on_submit:
                payload["applicantSignature"] = self._signature()

        if self.agent is not None:
            payload["agentName"] = self.agent.name
            payload["agentEmail"] = self.agent.email
            payload["agentGhlId"] = self.agent.ghl_id
        return payload

    def _signature(self) -> str:
        if self.variant.reuse_existing_signature and self.existing_signature:
            return self.existing_signature
        return self.signature_sentinel

    async def commit(
        self, form_state: Mapping[str, Any], is_final: bool = False, step_index: int = 0
    ) -> str:
        """Create or update the draft and return its identity.

        Raises DraftTransportError on failure; neither the form state nor the
        cached identity is changed in that case.
        """
        payload = self.build_payload(form_state, is_final=is_final, step_index=step_index)
        commit_logger = log_draft_commit(
            variant=self.variant.name,
            draft_id=self._identity,
            is_final=is_final,
            step_index=step_index,
        )

        try:
            if self._identity is None:
                record = await self.backend.create(payload)
                identity = record.get("id") if isinstance(record, Mapping) else None
                if not identity:
                    raise DraftTransportError("Backend did not return a draft identity")
                self._identity = str(identity)
                self.identity_store.save(self._identity)
                commit_logger.info("Draft created", draft_id=self._identity)
            else:
                await self.backend.update(self._identity, payload)
                commit_logger.info("Draft updated")
        except DraftTransportError as e:
            commit_logger.error("Draft commit failed", error=str(e))
            raise

        if is_final and self.variant.clear_identity_on_submit:
            self.identity_store.clear()
            commit_logger.info("Cleared draft identity after final submission")

        return self._identity
