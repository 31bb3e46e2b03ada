"""Tests for the typed regulation schema."""

import pytest

from fishregs.schemas.regulation import (
    CatchAndReleaseRegulation,
    CombinedRegulation,
    DailyLimitRegulation,
    ProtectedSlotRegulation,
    RegulationType,
    normalize_regulation_type,
    parse_lake_regulation,
    parse_special_regulation,
)
from fishregs.schemas.results import LakeRegulationExtractionResult, RegulationBatchResult


class TestParseSpecialRegulation:
    """Test suite for parse_special_regulation."""

    def test_tagged_variant_is_selected(self):
        warnings = []

        item = parse_special_regulation(
            {"species": "Walleye", "regulationType": "DailyLimit", "dailyLimit": 6, "possessionLimit": 12},
            warnings,
        )

        assert isinstance(item, DailyLimitRegulation)
        assert item.daily_limit == 6
        assert item.possession_limit == 12
        assert warnings == []

    def test_unknown_type_becomes_combined_with_warning(self):
        warnings = []

        item = parse_special_regulation(
            {"species": "Walleye", "regulationType": "Experimental", "dailyLimit": 2}, warnings, "TEST LAKE"
        )

        assert isinstance(item, CombinedRegulation)
        assert warnings == ["TEST LAKE: unknown regulation type 'Experimental', treated as Combined"]

    def test_missing_type_is_combined_without_warning(self):
        warnings = []

        item = parse_special_regulation({"species": "Walleye", "dailyLimit": 2}, warnings)

        assert item.regulation_type == "Combined"
        assert warnings == []

    def test_loose_values_are_coerced(self):
        warnings = []

        item = parse_special_regulation(
            {
                "species": " Northern Pike ",
                "regulation_type": "protected slot",
                "dailyLimit": "3 fish",
                "protectedSlot": 26,
                "notes": ["Spearing allowed", None, "Check dates"],
            },
            warnings,
        )

        assert isinstance(item, ProtectedSlotRegulation)
        assert item.species == "Northern Pike"
        assert item.daily_limit == 3
        assert item.protected_slot == "26"
        assert item.notes == "Spearing allowed; Check dates"

    def test_unreadable_limit_is_warned_and_dropped(self):
        warnings = []

        item = parse_special_regulation(
            {"species": "Walleye", "regulationType": "Combined", "dailyLimit": "none"}, warnings, "TEST LAKE"
        )

        assert item.daily_limit is None
        assert warnings == ["TEST LAKE: could not read daily_limit from 'none'"]

    def test_variant_without_key_field_is_warned(self):
        warnings = []

        item = parse_special_regulation({"species": "Walleye", "regulationType": "DailyLimit"}, warnings)

        assert item is not None
        assert warnings == ["DailyLimit regulation for Walleye has no dailyLimit"]

    def test_catch_and_release_is_forced(self):
        item = parse_special_regulation(
            {"species": "Muskellunge", "regulationType": "CatchAndRelease", "catchAndRelease": "no"}, []
        )

        assert isinstance(item, CatchAndReleaseRegulation)
        assert item.catch_and_release is True

    def test_unknown_keys_are_warned(self):
        warnings = []

        parse_special_regulation(
            {"species": "Walleye", "regulationType": "Seasonal", "waterTemp": "cold"}, warnings, "TEST LAKE"
        )

        assert warnings == ["TEST LAKE: ignored unknown fields waterTemp"]

    def test_malformed_item_is_dropped(self):
        warnings = []

        item = parse_special_regulation({"species": "Walleye", "regulationType": "SizeLimit", "minimumSize": {}}, warnings)

        assert item is None
        assert warnings[-1].startswith("dropped malformed regulation")

    def test_non_object_is_skipped(self):
        warnings = []

        assert parse_special_regulation("Walleye 6", warnings, "TEST LAKE") is None
        assert warnings == ["TEST LAKE: skipped non-object regulation item"]


class TestParseLakeRegulation:
    """Test suite for parse_lake_regulation."""

    def test_full_payload(self):
        lake = parse_lake_regulation(
            {
                "lakeName": "Test Lake Alpha",
                "county": "Mock County",
                "regulations": {
                    "specialRegulations": [
                        {"species": "Walleye", "regulationType": "DailyLimit", "dailyLimit": 6},
                        {"species": "walleye", "regulationType": "SizeLimit", "minimumSize": "15 inches"},
                        {"species": "Northern Pike", "regulationType": "ProtectedSlot", "protectedSlot": "24-36"},
                    ],
                    "generalNotes": "Experimental regulation",
                    "isExperimental": True,
                },
            }
        )

        assert lake.lake_name == "Test Lake Alpha"
        assert lake.county == "Mock County"
        assert len(lake.regulations.special_regulations) == 3
        assert lake.regulations.is_experimental is True
        assert lake.regulations.general_notes == "Experimental regulation"
        assert lake.species_names == ["Walleye", "Northern Pike"]
        assert lake.warnings == []

    def test_flattened_payload_and_defaults(self):
        lake = parse_lake_regulation(
            {"specialRegulations": [{"species": "Walleye", "regulationType": "DailyLimit", "dailyLimit": 4}]},
            default_name="TEST LAKE BETA",
            default_county="Sample County",
        )

        assert lake.lake_name == "TEST LAKE BETA"
        assert lake.county == "Sample County"
        assert lake.regulations.special_regulations[0].daily_limit == 4

    def test_special_regulations_not_a_list(self):
        lake = parse_lake_regulation(
            {"lakeName": "TEST LAKE", "regulations": {"specialRegulations": "Walleye 6"}}
        )

        assert lake.regulations.special_regulations == []
        assert lake.warnings == ["TEST LAKE: specialRegulations is not a list"]

    def test_loose_detail_values_are_coerced(self):
        lake = parse_lake_regulation(
            {
                "lakeName": "TEST LAKE",
                "regulations": {
                    "specialRegulations": [{"species": "Walleye", "regulationType": "Seasonal"}],
                    "lastUpdated": 2025,
                    "isExperimental": "false",
                    "generalNotes": ["Experimental", "Check signage"],
                },
            }
        )

        assert lake.regulations.last_updated == "2025"
        assert lake.regulations.is_experimental is False
        assert lake.regulations.general_notes == "Experimental; Check signage"
        assert lake.warnings == []

    def test_object_detail_values_are_warned_and_dropped(self):
        lake = parse_lake_regulation(
            {
                "lakeName": "TEST LAKE",
                "regulations": {
                    "specialRegulations": [{"species": "Walleye", "regulationType": "Seasonal"}],
                    "lastUpdated": {"year": 2025},
                    "isExperimental": "yes",
                },
            }
        )

        assert lake.regulations.last_updated is None
        assert lake.regulations.is_experimental is True
        assert len(lake.regulations.special_regulations) == 1
        assert lake.warnings == ["TEST LAKE: ignored malformed lastUpdated"]

    @pytest.mark.parametrize("payload", [None, [], "text", 5])
    def test_non_object_returns_none(self, payload):
        assert parse_lake_regulation(payload) is None

    def test_camel_case_dump(self):
        lake = parse_lake_regulation(
            {"lakeName": "TEST LAKE", "specialRegulations": [{"species": "Walleye", "regulationType": "Seasonal"}]}
        )

        dumped = lake.model_dump(by_alias=True)

        assert dumped["lakeName"] == "TEST LAKE"
        assert dumped["regulations"]["specialRegulations"][0]["regulationType"] == "Seasonal"
        assert "warnings" not in dumped


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("DailyLimit", RegulationType.DAILY_LIMIT),
        ("daily_limit", RegulationType.DAILY_LIMIT),
        ("Protected Slot", RegulationType.PROTECTED_SLOT),
        ("slot", RegulationType.PROTECTED_SLOT),
        ("catch-and-release", RegulationType.CATCH_AND_RELEASE),
        ("Experimental", None),
        (None, None),
    ],
)
def test_normalize_regulation_type(raw, expected):
    assert normalize_regulation_type(raw) is expected


class TestBatchResult:
    """Test suite for the batch result wire contract."""

    def test_wire_form_is_camel_case(self):
        result = RegulationBatchResult(is_success=True, regulations_created=3, processing_time=1.5)

        wire = result.to_wire()

        assert wire["isSuccess"] is True
        assert wire["regulationsCreated"] == 3
        assert wire["processingTime"] == 1.5
        assert set(wire) == {
            "isSuccess", "totalLakesProcessed", "totalRegulationsExtracted", "waterBodiesCreated",
            "waterBodiesUpdated", "regulationsCreated", "regulationsUpdated", "fishSpeciesCreated",
            "processingWarnings", "processingErrors", "processingTime", "errorMessage",
        }

    def test_wire_form_round_trips_for_status_responses(self):
        wire = RegulationBatchResult.failed("Processing cancelled", 2.0, ["slow"]).to_wire()

        restored = RegulationBatchResult.model_validate(wire)

        assert restored.is_success is False
        assert restored.error_message == "Processing cancelled"
        assert restored.processing_warnings == ["slow"]

    def test_failed_extraction_defaults(self):
        result = LakeRegulationExtractionResult()

        assert result.is_success is False
        assert result.extracted_regulations == []
