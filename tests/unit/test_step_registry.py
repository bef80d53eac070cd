"""Unit tests for the intake variant registries."""

import pytest

from intake.exceptions import RegistryConfigurationError
from intake.models.intake import FieldDescriptor, FieldKind, StepDescriptor
from intake.services.step_registry import (
    AGENT_APPLICATION,
    FULL_APPLICATION,
    FUNDING_QUIZ,
    INTAKE_FORM,
    VARIANTS,
    validate_registry,
)


def _step(key: str, *fields: FieldDescriptor) -> StepDescriptor:
    return StepDescriptor(key=key, label=key, fields=fields)


CONSENT = FieldDescriptor(key="consent", label="Sign", kind=FieldKind.TERMINAL_CONSENT)
NAME = FieldDescriptor(key="name", label="Name", kind=FieldKind.TEXT, required=True)


class TestVariants:
    """Test cases for the shipped variants."""

    def test_variants_are_registered_by_name(self):
        assert set(VARIANTS) == {
            "full-application",
            "agent-application",
            "funding-quiz",
            "intake-form",
        }

    def test_full_application_has_eleven_steps(self):
        assert len(FULL_APPLICATION.steps) == 11
        assert FULL_APPLICATION.steps[-1].is_terminal
        assert not any(step.is_terminal for step in FULL_APPLICATION.steps[:-1])

    def test_agent_application_is_two_pages(self):
        assert len(AGENT_APPLICATION.steps) == 2
        assert AGENT_APPLICATION.field("ein").exact_digits == 9
        assert AGENT_APPLICATION.field("social_security").exact_digits == 9
        assert AGENT_APPLICATION.clear_identity_on_submit
        assert AGENT_APPLICATION.reuse_existing_signature

    def test_quiz_only_saves_at_the_end(self):
        assert FUNDING_QUIZ.partial_saves is False
        assert FUNDING_QUIZ.completion_flag == "isCompleted"
        assert FUNDING_QUIZ.field("revenue_15k").follow_up.target_key == "revenue_amount"
        assert FUNDING_QUIZ.field("consent_marketing").kind == FieldKind.CHECKBOX
        assert not FUNDING_QUIZ.field("consent_marketing").required

    def test_intake_form_is_five_resumable_pages(self):
        assert [step.key for step in INTAKE_FORM.steps] == [
            "contact",
            "business",
            "financial",
            "funding",
            "business_address",
        ]
        assert INTAKE_FORM.resume_at_saved_step
        assert not INTAKE_FORM.sign_on_submit
        assert not FULL_APPLICATION.resume_at_saved_step

    def test_unknown_field_raises(self):
        with pytest.raises(KeyError):
            FULL_APPLICATION.field("nope")

    @pytest.mark.parametrize("variant", list(VARIANTS.values()), ids=list(VARIANTS))
    def test_shipped_registries_are_valid(self, variant):
        validate_registry(variant.steps)


class TestValidateRegistry:
    """Test cases for registry invariants."""

    def test_duplicate_keys_rejected(self):
        with pytest.raises(RegistryConfigurationError, match="Duplicate"):
            validate_registry((_step("a", NAME), _step("b", NAME, CONSENT)))

    def test_address_group_needs_prefix(self):
        address = FieldDescriptor(key="addr", label="Address", kind=FieldKind.ADDRESS_GROUP)
        with pytest.raises(RegistryConfigurationError, match="prefix"):
            validate_registry((_step("a", address), _step("b", CONSENT)))

    def test_consent_must_exist(self):
        with pytest.raises(RegistryConfigurationError, match="exactly one"):
            validate_registry((_step("a", NAME),))

    def test_consent_must_be_last(self):
        with pytest.raises(RegistryConfigurationError, match="last"):
            validate_registry((_step("a", CONSENT), _step("b", NAME)))

    def test_empty_registry_rejected(self):
        with pytest.raises(RegistryConfigurationError):
            validate_registry(())
