"""Tests for regulation validation and numeric normalization."""

from datetime import date
from decimal import Decimal

import pytest

from fishregs.schemas.regulation import CombinedRegulation, ProtectedSlotRegulation
from fishregs.services.normalization.regulation_validator import (
    RegulationValidator,
    extract_size_inches,
    infer_water_type,
    parse_protected_slot,
    parse_season,
)
from fishregs.services.normalization.species import canonicalize_species_name


@pytest.fixture
def validator() -> RegulationValidator:
    return RegulationValidator()


class TestRegulationValidator:
    """Test suite for RegulationValidator."""

    def test_slot_with_exception_count(self, validator):
        result = validator.validate(
            ProtectedSlotRegulation(species="Northern Pike", protected_slot="28-36 inches (1 fish allowed)")
        )

        assert result.is_valid
        assert result.protected_slot.min_inches == Decimal("28")
        assert result.protected_slot.max_inches == Decimal("36")
        assert result.protected_slot.exceptions == 1

    def test_daily_above_possession_is_a_warning(self, validator):
        result = validator.validate(CombinedRegulation(species="Walleye", daily_limit=6, possession_limit=3))

        assert result.is_valid
        assert result.warnings == ["Daily limit 6 exceeds possession limit 3"]
        assert result.cleaned.daily_limit == 6

    def test_negative_limits_are_cleared(self, validator):
        result = validator.validate(CombinedRegulation(species="Walleye", daily_limit=-1, possession_limit=-2))

        assert result.cleaned.daily_limit is None
        assert result.cleaned.possession_limit is None
        assert len(result.warnings) == 2

    def test_inverted_slot_is_ignored(self, validator):
        result = validator.validate(
            ProtectedSlotRegulation(species="Walleye", protected_slot="36-28 inches (2 fish over 36)")
        )

        assert result.protected_slot.min_inches is None
        assert result.protected_slot.max_inches is None
        assert result.protected_slot.exceptions == 2
        assert "slot ignored" in result.warnings[0]

    def test_oversized_lengths_are_cleared(self, validator):
        result = validator.validate(
            CombinedRegulation(species="Walleye", minimum_size="1000 inches", maximum_size="24 inches")
        )

        assert result.is_valid
        assert result.minimum_size is None
        assert result.maximum_size == Decimal("24")
        assert result.warnings == ["Minimum size 1000 is out of range; ignored"]

    def test_oversized_slot_is_ignored(self, validator):
        result = validator.validate(
            ProtectedSlotRegulation(species="Northern Pike", protected_slot="24-1000 inches (1 fish allowed)")
        )

        assert result.protected_slot.min_inches is None
        assert result.protected_slot.max_inches is None
        assert result.protected_slot.exceptions == 1
        assert result.warnings == ["Protected slot maximum 1000 is out of range; slot ignored"]

    def test_blank_species_is_an_error(self, validator):
        result = validator.validate(CombinedRegulation(species="   ", daily_limit=2))

        assert not result.is_valid
        assert result.errors == ["Species name is required"]

    def test_whitespace_is_collapsed(self, validator):
        regulation = CombinedRegulation(
            species="Northern   Pike", minimum_size=" 15\n inches ", maximum_size="  ", notes=" "
        )

        result = validator.validate(regulation)

        assert result.cleaned.species == "Northern Pike"
        assert result.cleaned.minimum_size == "15 inches"
        assert result.cleaned.maximum_size is None
        assert result.cleaned.notes is None
        assert result.minimum_size == Decimal("15")
        assert regulation.species == "Northern   Pike"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("15 inches", Decimal("15")),
        ('20.5"', Decimal("20.5")),
        ("minimum 12 in", Decimal("12")),
        ("no size limit", None),
        (None, None),
    ],
)
def test_extract_size_inches(text, expected):
    assert extract_size_inches(text) == expected


def test_parse_protected_slot_without_exception():
    slot = parse_protected_slot("17 - 26 inches")

    assert (slot.min_inches, slot.max_inches, slot.exceptions) == (Decimal("17"), Decimal("26"), None)


class TestParseSeason:
    """Test suite for parse_season."""

    def test_close_date_rolls_into_next_year(self):
        season = parse_season("Open May 10 - Feb 22", 2026)

        assert season.open_date == date(2026, 5, 10)
        assert season.close_date == date(2027, 2, 22)
        assert season.is_year_round is False

    def test_same_year_range(self):
        season = parse_season("June 1 through September 30", 2026)

        assert season.open_date == date(2026, 6, 1)
        assert season.close_date == date(2026, 9, 30)

    @pytest.mark.parametrize("text", ["Continuous", "open all year", None, "  "])
    def test_year_round(self, text):
        assert parse_season(text, 2026).is_year_round is True

    def test_unreadable_season(self):
        season = parse_season("Closed during spawning", 2026)

        assert season.open_date is None
        assert season.is_year_round is False


@pytest.mark.parametrize(
    "name,expected",
    [
        ("MISSISSIPPI RIVER", "river"),
        ("GULL LAKE FLOWAGE", "reservoir"),
        ("TROUT CREEK", "stream"),
        ("MILL POND", "pond"),
        ("TEST LAKE ALPHA", "lake"),
    ],
)
def test_infer_water_type(name, expected):
    assert infer_water_type(name) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("pike", "Northern Pike"),
        ("NORTHERN  PIKE", "Northern Pike"),
        ("muskie", "Muskellunge"),
        ("tiger trout", "Tiger Trout"),
        ("  ", ""),
    ],
)
def test_canonicalize_species_name(raw, expected):
    assert canonicalize_species_name(raw) == expected
