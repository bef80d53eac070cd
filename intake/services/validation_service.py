"""Per-field validators run before a step is allowed to advance."""

import re
from collections.abc import Mapping
from typing import Any

from intake.exceptions import UnsupportedFieldKindError
from intake.models.intake import (
    FieldDescriptor,
    FieldKind,
    IssueCode,
    StepDescriptor,
    ValidationIssue,
)
from intake.services.normalization import POSTAL_CODE_DIGITS, strip_non_digits

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


def _issue(code: IssueCode, field: FieldDescriptor, title: str, message: str) -> ValidationIssue:
    return ValidationIssue(code=code, field_key=field.key, title=title, message=message)


def _check_value(field: FieldDescriptor, value: Any) -> ValidationIssue | None:
    if field.required and is_blank(value):
        return _issue(
            IssueCode.MISSING, field, "Missing Information", f"Please fill out {field.label}"
        )
    if is_blank(value):
        return None

    if field.kind == FieldKind.EMAIL and not is_valid_email(str(value).strip()):
        return _issue(
            IssueCode.MALFORMED, field, "Invalid Email", f"Invalid email for {field.label}"
        )
    if field.exact_digits is not None:
        if len(strip_non_digits(str(value))) != field.exact_digits:
            return _issue(
                IssueCode.MALFORMED,
                field,
                f"Invalid {field.label}",
                f"{field.label} must be exactly {field.exact_digits} digits",
            )
    if field.min_length is not None and len(str(value).strip()) < field.min_length:
        return _issue(
            IssueCode.MALFORMED,
            field,
            f"Invalid {field.label}",
            f"{field.label} must be at least {field.min_length} characters",
        )
    if field.max_value is not None:
        digits = strip_non_digits(str(value))
        if digits and int(digits) > field.max_value:
            return _issue(
                IssueCode.OUT_OF_RANGE,
                field,
                "Out of Range",
                f"{field.label} cannot be more than {field.max_value}",
            )
    if field.kind == FieldKind.SINGLE_SELECT and field.options and value not in field.options:
        return _issue(
            IssueCode.MALFORMED,
            field,
            "Invalid Selection",
            f"Please choose one of the listed options for {field.label}",
        )
    return None


def _check_address(field: FieldDescriptor, form_state: Mapping[str, Any]) -> ValidationIssue | None:
    street = form_state.get(field.address_key("street"))
    city = form_state.get(field.address_key("city"))
    state = form_state.get(field.address_key("state"))
    zip_code = form_state.get(field.address_key("zip"))

    if any(is_blank(part) for part in (street, city, state, zip_code)):
        return _issue(
            IssueCode.ADDRESS_INCOMPLETE,
            field,
            "Incomplete Address",
            "Please fill out all address fields.",
        )
    zip_code = str(zip_code).strip()
    if len(zip_code) != POSTAL_CODE_DIGITS or not zip_code.isdigit():
        return _issue(
            IssueCode.ZIP_LENGTH,
            field,
            "Invalid Zip Code",
            "Zip code must be exactly 5 digits.",
        )
    return None


def validate_field(
    field: FieldDescriptor, form_state: Mapping[str, Any], consent_given: bool = False
) -> ValidationIssue | None:
    value = form_state.get(field.key)
    match field.kind:
        case FieldKind.ADDRESS_GROUP:
            return _check_address(field, form_state)
        case FieldKind.TERMINAL_CONSENT:
            if not consent_given:
                return _issue(
                    IssueCode.CONSENT_REQUIRED,
                    field,
                    "Action Required",
                    "Please check the box to accept the terms.",
                )
            return None
        case FieldKind.CHECKBOX:
            if field.required and value is not True:
                return _issue(
                    IssueCode.MISSING,
                    field,
                    "Action Required",
                    f"Please check {field.label}",
                )
            return None
        case FieldKind.MULTI_OPTION_CARD:
            if is_blank(value):
                return _issue(
                    IssueCode.SELECTION_REQUIRED,
                    field,
                    "Required",
                    f"Please make a selection for {field.label}",
                )
            return None
        case (
            FieldKind.TEXT
            | FieldKind.EMAIL
            | FieldKind.TEL
            | FieldKind.DATE
            | FieldKind.NUMBER
            | FieldKind.CURRENCY
            | FieldKind.SINGLE_SELECT
        ):
            return _check_value(field, value)
        case _:
            raise UnsupportedFieldKindError(field.kind)


def validate_step(
    step: StepDescriptor, form_state: Mapping[str, Any], consent_given: bool = False
) -> ValidationIssue | None:
    """Return the first failing rule of the step, or None when it passes."""
    for field in step.fields:
        issue = validate_field(field, form_state, consent_given)
        if issue is not None:
            return issue
    return None


def validate_follow_up_value(rule, value: Any) -> ValidationIssue | None:
    field = FieldDescriptor(key=rule.target_key, label=rule.question, kind=FieldKind.TEXT)
    if is_blank(value):
        return _issue(IssueCode.MISSING, field, "Required", "Please choose an option to continue.")
    if rule.options and value not in rule.options:
        return _issue(
            IssueCode.MALFORMED,
            field,
            "Invalid Selection",
            "Please choose one of the listed options.",
        )
    return None
