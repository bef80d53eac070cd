"""Mapping between structured address parts and the legacy CSZ string.

The storage backend keeps addresses as a single ``"City, ST 12345"`` string.
Decomposition is best-effort and not round-trip safe: a city containing a
comma decomposes differently from what was composed. Only the text between
the first and second comma is read for state and zip. A state/zip section
with extra tokens keeps only the first two. Downstream consumers rely on this
exact behavior, so it is kept as is.
"""

from typing import Any

from intake.models.intake import AddressParts


def compose(parts: AddressParts) -> str | None:
    """Return ``"{city}, {state} {zip}"``, or None when city or state is empty."""
    if not parts.city or not parts.state:
        return None
    return f"{parts.city}, {parts.state} {parts.zip}"


def decompose(csz: Any) -> AddressParts:
    """Split a CSZ string into city/state/zip; malformed input gives empty parts."""
    if not isinstance(csz, str) or "," not in csz:
        return AddressParts()

    city, _, remainder = csz.partition(",")
    tokens = remainder.split(",", 1)[0].split()
    return AddressParts(
        city=city.strip(),
        state=tokens[0] if tokens else "",
        zip=tokens[1] if len(tokens) > 1 else "",
    )


def compose_street(street: str, unit: str) -> str:
    if unit:
        return f"{street} {unit}"
    return street
