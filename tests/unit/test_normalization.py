"""Unit tests for input masks and field normalization."""

import pytest

from intake.exceptions import UnsupportedFieldKindError
from intake.models.intake import FieldDescriptor, FieldKind, MaskKind
from intake.services.normalization import (
    apply_mask,
    canonicalize,
    clamp_numeric,
    mask_currency,
    mask_phone,
    mask_postal_code,
    mask_ssn,
    mask_tax_id,
    normalize_address_part,
    normalize_input,
    strip_non_digits,
)


class TestMasks:
    """Test cases for the individual maskers."""

    def test_tax_id(self):
        assert mask_tax_id("12") == "12"
        assert mask_tax_id("123") == "12-3"
        assert mask_tax_id("12-3456789") == "12-3456789"
        assert mask_tax_id("1234567890123") == "12-3456789"

    def test_ssn_progressive_format(self):
        assert mask_ssn("123") == "123"
        assert mask_ssn("12345") == "123-45"
        assert mask_ssn("123456789") == "123-45-6789"
        assert mask_ssn("abc123 45 6789xyz") == "123-45-6789"

    @pytest.mark.parametrize("raw", ["", "1", "1234", "123456", "123456789", "98-76-54"])
    def test_ssn_idempotent_and_digit_preserving(self, raw):
        once = mask_ssn(raw)
        assert mask_ssn(once) == once
        assert strip_non_digits(once) == strip_non_digits(raw)

    def test_phone(self):
        assert mask_phone("512") == "512"
        assert mask_phone("512555") == "512-555"
        assert mask_phone("(512) 555-0100") == "512-555-0100"
        assert mask_phone("51255501009999") == "512-555-0100"

    def test_currency(self):
        assert mask_currency("") == ""
        assert mask_currency("abc") == ""
        assert mask_currency("1234") == "$1,234"
        assert mask_currency("1000000") == "$1,000,000"

    @pytest.mark.parametrize("raw", ["", "7", "50000", "$1,234,567"])
    def test_currency_idempotent(self, raw):
        once = mask_currency(raw)
        assert mask_currency(once) == once

    def test_postal_code_keeps_five_digits(self):
        assert mask_postal_code("78701-1234") == "78701"
        assert mask_postal_code("787") == "787"

    def test_clamp_numeric(self):
        assert clamp_numeric("150") == "100"
        assert clamp_numeric("55%") == "55"
        assert clamp_numeric("") == ""

    def test_empty_input_gives_empty_output(self):
        for mask in MaskKind:
            assert apply_mask(mask, "") == ""


class TestNormalizeInput:
    """Test cases for per-kind normalization."""

    def test_mask_takes_priority(self):
        field = FieldDescriptor(key="ein", label="EIN", kind=FieldKind.TEXT, mask=MaskKind.TAX_ID)
        assert normalize_input(field, "123456789") == "12-3456789"

    def test_number_with_cap_is_clamped(self):
        field = FieldDescriptor(key="pct", label="Ownership", kind=FieldKind.NUMBER, max_value=100)
        assert normalize_input(field, "250") == "100"

    def test_select_snaps_to_option_casing(self):
        field = FieldDescriptor(
            key="cards", label="Cards", kind=FieldKind.SINGLE_SELECT, options=("Yes", "No")
        )
        assert normalize_input(field, " yes ") == "Yes"
        assert normalize_input(field, "maybe") == "maybe"

    def test_consent_becomes_bool(self):
        field = FieldDescriptor(key="consent", label="Sign", kind=FieldKind.TERMINAL_CONSENT)
        assert normalize_input(field, True) is True
        assert normalize_input(field, None) is False

    def test_consent_strings_are_parsed(self):
        field = FieldDescriptor(key="consent", label="Sign", kind=FieldKind.TERMINAL_CONSENT)
        assert normalize_input(field, "false") is False
        assert normalize_input(field, "False") is False
        assert normalize_input(field, "true") is True
        assert normalize_input(field, " TRUE ") is True
        assert normalize_input(field, "") is False

    def test_checkbox_is_parsed_like_consent(self):
        field = FieldDescriptor(key="optin", label="Opt in", kind=FieldKind.CHECKBOX)
        assert normalize_input(field, "false") is False
        assert normalize_input(field, False) is False
        assert normalize_input(field, "true") is True

    def test_address_group_is_not_normalized_whole(self):
        field = FieldDescriptor(
            key="business_address", label="Address", kind=FieldKind.ADDRESS_GROUP
        )
        with pytest.raises(UnsupportedFieldKindError):
            normalize_input(field, "100 Congress Ave")

    def test_address_parts(self):
        assert normalize_address_part("zip", "78701-0001") == "78701"
        assert normalize_address_part("city", "Austin") == "Austin"

    def test_canonicalize_strips_masks(self):
        phone = FieldDescriptor(key="phone", label="Phone", kind=FieldKind.TEL, mask=MaskKind.PHONE)
        amount = FieldDescriptor(key="amount", label="Amount", kind=FieldKind.CURRENCY)
        name = FieldDescriptor(key="name", label="Name", kind=FieldKind.TEXT)
        assert canonicalize(phone, "512-555-0100") == "5125550100"
        assert canonicalize(amount, "$75,000") == "75000"
        assert canonicalize(name, "Acme") == "Acme"
