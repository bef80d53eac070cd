"""Input masks: raw keystrokes to canonical display form and back.

Every masker is pure, accepts an empty string and returns an empty string,
never raises, and is idempotent on its own output.
"""

import re
from typing import Any

from intake.exceptions import UnsupportedFieldKindError
from intake.models.intake import FieldDescriptor, FieldKind, MaskKind

_NON_DIGITS = re.compile(r"\D")

TAX_ID_DIGITS = 9
SSN_DIGITS = 9
PHONE_DIGITS = 10
POSTAL_CODE_DIGITS = 5


def strip_non_digits(value: str) -> str:
    return _NON_DIGITS.sub("", value or "")


def parse_checkbox(raw: Any) -> bool:
    """Only True or the string ``"true"`` (any case) count as checked."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        return raw.strip().casefold() == "true"
    return False


def mask_tax_id(value: str) -> str:
    """Format an EIN as ``NN-NNNNNNN``; two digits or fewer stay bare."""
    digits = strip_non_digits(value)[:TAX_ID_DIGITS]
    if len(digits) <= 2:
        return digits
    return f"{digits[:2]}-{digits[2:]}"


def mask_ssn(value: str) -> str:
    digits = strip_non_digits(value)[:SSN_DIGITS]
    if len(digits) <= 3:
        return digits
    if len(digits) <= 5:
        return f"{digits[:3]}-{digits[3:]}"
    return f"{digits[:3]}-{digits[3:5]}-{digits[5:]}"


def mask_phone(value: str) -> str:
    digits = strip_non_digits(value)[:PHONE_DIGITS]
    if len(digits) <= 3:
        return digits
    if len(digits) <= 6:
        return f"{digits[:3]}-{digits[3:]}"
    return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"


def mask_currency(value: str) -> str:
    """Format whole dollars, e.g. ``1234`` -> ``$1,234``."""
    digits = strip_non_digits(value)
    if not digits:
        return ""
    return f"${int(digits):,}"


def mask_postal_code(value: str) -> str:
    return strip_non_digits(value)[:POSTAL_CODE_DIGITS]


def clamp_numeric(value: str, cap: int = 100) -> str:
    """Keep digits only and replace anything above ``cap`` with ``cap``."""
    digits = strip_non_digits(value)
    if digits and int(digits) > cap:
        return str(cap)
    return digits


MASKERS = {
    MaskKind.TAX_ID: mask_tax_id,
    MaskKind.SSN: mask_ssn,
    MaskKind.PHONE: mask_phone,
    MaskKind.CURRENCY: mask_currency,
    MaskKind.POSTAL_CODE: mask_postal_code,
}


def apply_mask(mask: MaskKind, value: str) -> str:
    return MASKERS[mask](value)


def match_option(options, value: str) -> str:
    """Snap a choice to the casing of the listed option it matches."""
    folded = value.strip().casefold()
    for option in options:
        if option.casefold() == folded:
            return option
    return value


def normalize_address_part(part: str, value: str) -> str:
    if part == "zip":
        return mask_postal_code(value)
    return value or ""


def normalize_input(field: FieldDescriptor, raw: Any) -> Any:
    """Turn a raw keystroke value into the display form stored in FormState."""
    if field.mask is not None:
        return apply_mask(field.mask, "" if raw is None else str(raw))

    match field.kind:
        case FieldKind.CURRENCY:
            return mask_currency("" if raw is None else str(raw))
        case FieldKind.NUMBER:
            text = "" if raw is None else str(raw)
            if field.max_value is not None:
                return clamp_numeric(text, field.max_value)
            return strip_non_digits(text)
        case FieldKind.TERMINAL_CONSENT | FieldKind.CHECKBOX:
            return parse_checkbox(raw)
        case FieldKind.SINGLE_SELECT | FieldKind.MULTI_OPTION_CARD:
            return match_option(field.options, "" if raw is None else str(raw))
        case FieldKind.TEXT | FieldKind.EMAIL | FieldKind.TEL | FieldKind.DATE:
            return "" if raw is None else str(raw)
        case FieldKind.ADDRESS_GROUP:
            # address groups are written part by part, see normalize_address_part
            raise UnsupportedFieldKindError(field.kind)
        case _:
            raise UnsupportedFieldKindError(field.kind)


def canonicalize(field: FieldDescriptor, value: Any) -> Any:
    """Strip the display mask back to the storage form."""
    if value is None:
        return None
    if field.mask is not None or field.kind == FieldKind.CURRENCY:
        return strip_non_digits(str(value))
    return value
