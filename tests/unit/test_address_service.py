"""Unit tests for CSZ address composition."""

from intake.models.intake import AddressParts
from intake.services.address_service import compose, compose_street, decompose


class TestAddressService:
    """Test cases for compose/decompose."""

    def test_compose(self):
        parts = AddressParts(city="Austin", state="TX", zip="78701")
        assert compose(parts) == "Austin, TX 78701"

    def test_compose_requires_city_and_state(self):
        assert compose(AddressParts(city="Austin", zip="78701")) is None
        assert compose(AddressParts(state="TX", zip="78701")) is None

    def test_decompose(self):
        parts = decompose("Austin, TX 78701")
        assert (parts.city, parts.state, parts.zip) == ("Austin", "TX", "78701")

    def test_round_trip(self):
        for parts in (
            AddressParts(city="Austin", state="TX", zip="78701"),
            AddressParts(city="New York", state="NY", zip="10001"),
        ):
            result = decompose(compose(parts))
            assert (result.city, result.state, result.zip) == (
                parts.city,
                parts.state,
                parts.zip,
            )

    def test_city_with_comma_does_not_round_trip(self):
        parts = AddressParts(city="Washington, DC", state="DC", zip="20001")
        result = decompose(compose(parts))
        assert result.city == "Washington"
        assert result.state == "DC"
        assert result.zip == ""

    def test_text_after_second_comma_is_ignored(self):
        parts = decompose("Austin, TX, 78701")
        assert (parts.city, parts.state, parts.zip) == ("Austin", "TX", "")

    def test_malformed_input_gives_empty_parts(self):
        for csz in (None, "", "Austin TX 78701", 12345):
            parts = decompose(csz)
            assert (parts.city, parts.state, parts.zip) == ("", "", "")

    def test_missing_zip(self):
        parts = decompose("Austin, TX")
        assert (parts.city, parts.state, parts.zip) == ("Austin", "TX", "")

    def test_compose_street(self):
        assert compose_street("100 Congress Ave", "Suite 200") == "100 Congress Ave Suite 200"
        assert compose_street("100 Congress Ave", "") == "100 Congress Ave"
