"""Tests for the lake regulation extraction service."""

import asyncio
import json
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from fishregs.core import llm_client
from fishregs.core.exceptions import APIClientError, ProcessingCancelledError, ValidationError
from fishregs.core.llm_client import OpenRouterClient
from fishregs.services.extraction import lake_regulation_extractor
from fishregs.services.extraction.entry_segmenter import RegulationEntry
from fishregs.services.extraction.lake_regulation_extractor import (
    NO_ENTRIES_WARNING,
    LakeRegulationExtractionService,
)


@pytest.fixture
def entry() -> RegulationEntry:
    return RegulationEntry(
        name="TEST LAKE ALPHA",
        county="Mock County",
        text="Walleye: daily limit 6, possession limit 12.",
    )


@pytest.fixture
def service(mock_llm_client) -> LakeRegulationExtractionService:
    return LakeRegulationExtractionService(llm_client=mock_llm_client, delay_seconds=0)


class TestExtractEntry:
    """Test suite for extract_entry."""

    @pytest.mark.asyncio
    async def test_sends_entry_with_fixed_instruction(self, service, mock_llm_client, entry):
        await service.extract_entry(entry)

        kwargs = mock_llm_client.generate_content.await_args.kwargs
        assert kwargs["system_instruction"] == LakeRegulationExtractionService.EXTRACTION_PROMPT
        assert "Water body: TEST LAKE ALPHA" in kwargs["contents"]
        assert "County: Mock County" in kwargs["contents"]
        assert entry.text in kwargs["contents"]
        assert kwargs["generation_config"]["response_mime_type"] == "application/json"

    @pytest.mark.asyncio
    async def test_segmented_name_is_authoritative(self, service, entry):
        regulation = await service.extract_entry(entry)

        assert regulation.lake_name == "TEST LAKE ALPHA"
        assert regulation.county == "Mock County"
        assert regulation.regulations.special_regulations[0].daily_limit == 6
        assert regulation.regulations.special_regulations[0].possession_limit == 12

    @pytest.mark.asyncio
    async def test_code_fences_are_stripped(self, service, mock_llm_client, entry):
        payload = {"specialRegulations": [{"species": "Walleye", "regulationType": "DailyLimit", "dailyLimit": 4}]}
        mock_llm_client.generate_content.side_effect = None
        mock_llm_client.generate_content.return_value = f"```json\n{json.dumps(payload)}\n```"

        regulation = await service.extract_entry(entry)

        assert regulation.regulations.special_regulations[0].daily_limit == 4

    @pytest.mark.asyncio
    async def test_single_item_array_is_unwrapped(self, service, mock_llm_client, entry):
        payload = [{"lakeName": "TEST LAKE ALPHA", "specialRegulations": [{"species": "Walleye"}]}]
        mock_llm_client.generate_content.side_effect = None
        mock_llm_client.generate_content.return_value = json.dumps(payload)

        regulation = await service.extract_entry(entry)

        assert regulation.species_names == ["Walleye"]

    @pytest.mark.asyncio
    async def test_unparseable_completion_returns_none(self, service, mock_llm_client, entry):
        mock_llm_client.generate_content.side_effect = None
        mock_llm_client.generate_content.return_value = "Sorry, I cannot help with that."

        assert await service.extract_entry(entry) is None

    @pytest.mark.asyncio
    async def test_completion_failure_returns_none(self, service, mock_llm_client, entry):
        mock_llm_client.generate_content.side_effect = APIClientError("rate limited")

        assert await service.extract_entry(entry) is None


class TestExtractBatch:
    """Test suite for extract_batch and the service entry point."""

    @pytest.mark.asyncio
    async def test_batch_counts_and_warnings(self, service):
        entries = [
            RegulationEntry("TEST LAKE ALPHA", "Mock County", "Walleye: daily limit 6."),
            RegulationEntry("TEST LAKE UNKNOWN", "Mock County", "Text the model cannot read."),
            RegulationEntry("TEST LAKE BETA", "Sample County", "Northern pike slot."),
        ]

        result = await service.extract_batch(entries)

        assert result.is_success is True
        assert result.total_lakes_processed == 3
        assert [lake.lake_name for lake in result.extracted_regulations] == ["TEST LAKE ALPHA", "TEST LAKE BETA"]
        assert result.total_regulations_extracted == 4
        assert "Failed to extract regulations for TEST LAKE UNKNOWN" in result.processing_warnings

    @pytest.mark.asyncio
    async def test_entry_warnings_are_collected(self, service, mock_llm_client, entry):
        mock_llm_client.generate_content.side_effect = None
        mock_llm_client.generate_content.return_value = json.dumps(
            {"specialRegulations": [{"species": "Walleye", "regulationType": "Trophy"}]}
        )

        result = await service.extract_batch([entry])

        assert result.processing_warnings == [
            "TEST LAKE ALPHA: unknown regulation type 'Trophy', treated as Combined"
        ]

    @pytest.mark.asyncio
    async def test_pacing_delay_after_each_entry(self, mock_llm_client, entry, monkeypatch):
        sleep = AsyncMock()
        monkeypatch.setattr(asyncio, "sleep", sleep)
        service = LakeRegulationExtractionService(llm_client=mock_llm_client, delay_seconds=0.1)

        await service.extract_batch([entry, entry])

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.1)

    @pytest.mark.asyncio
    async def test_cancellation_between_entries(self, service, mock_llm_client, entry):
        cancel_event = asyncio.Event()

        async def generate_content(contents, system_instruction=None, generation_config=None):
            cancel_event.set()
            return "{}"

        mock_llm_client.generate_content.side_effect = generate_content

        with pytest.raises(ProcessingCancelledError):
            await service.extract_batch([entry, entry, entry], cancel_event=cancel_event)

        assert mock_llm_client.generate_content.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_section_is_structural_failure(self, service, mock_llm_client):
        result = await service.extract_regulations("General regulations only, no special waters listed.")

        assert result.is_success is False
        assert "Waters With Experimental and Special Regulations" in result.error_message
        assert result.extracted_regulations == []
        mock_llm_client.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_section_without_entries_is_warned(self, service, mock_llm_client):
        text = "WATERS WITH EXPERIMENTAL AND SPECIAL REGULATIONS\nSee the online map for current rules.\n"

        result = await service.extract_regulations(text)

        assert result.is_success is True
        assert result.total_lakes_processed == 0
        assert result.processing_warnings == [NO_ENTRIES_WARNING]
        mock_llm_client.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_extract_regulations_end_to_end(self, service, regulation_text):
        result = await service.extract_regulations(regulation_text)

        assert result.is_success is True
        assert result.total_lakes_processed == 2
        assert result.total_regulations_extracted == 4
        assert result.processing_time >= 0

    @pytest.mark.asyncio
    async def test_none_text_is_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.extract_regulations(None)


class TestMalformedCompletions:
    """A bad completion for one entry is a warning, never a batch failure."""

    @pytest.fixture
    def entries(self):
        return [
            RegulationEntry("TEST LAKE ALPHA", "Mock County", "Walleye: daily limit 6."),
            RegulationEntry("TEST LAKE BETA", "Sample County", "Walleye: daily limit 4."),
        ]

    @pytest.mark.asyncio
    async def test_non_json_http_body_skips_entry(self, entries):
        valid = json.dumps(
            {"specialRegulations": [{"species": "Walleye", "regulationType": "DailyLimit", "dailyLimit": 4}]}
        )
        responses = iter([
            httpx.Response(200, text="<html>gateway</html>"),
            httpx.Response(200, json={"choices": [{"message": {"content": valid}}]}),
        ])
        real_client = httpx.AsyncClient
        transport = httpx.MockTransport(lambda request: next(responses))
        client = OpenRouterClient(api_key="or-key", max_retries=1)
        service = LakeRegulationExtractionService(llm_client=client, delay_seconds=0)

        with patch.object(
            llm_client.httpx, "AsyncClient", lambda **kwargs: real_client(transport=transport, **kwargs)
        ):
            result = await service.extract_batch(entries)

        assert result.is_success is True
        assert [lake.lake_name for lake in result.extracted_regulations] == ["TEST LAKE BETA"]
        assert result.processing_warnings == ["Failed to extract regulations for TEST LAKE ALPHA"]

    @pytest.mark.asyncio
    async def test_drifted_detail_fields_do_not_abort_batch(self, service, mock_llm_client, entries):
        mock_llm_client.generate_content.side_effect = [
            json.dumps({
                "regulations": {
                    "specialRegulations": [{"species": "Walleye", "regulationType": "DailyLimit", "dailyLimit": 6}],
                    "lastUpdated": 2025,
                    "generalNotes": {"text": "see signage"},
                }
            }),
            json.dumps({"specialRegulations": [{"species": "Walleye", "regulationType": "DailyLimit", "dailyLimit": 4}]}),
        ]

        result = await service.extract_batch(entries)

        assert [lake.lake_name for lake in result.extracted_regulations] == ["TEST LAKE ALPHA", "TEST LAKE BETA"]
        assert result.extracted_regulations[0].regulations.last_updated == "2025"
        assert result.processing_warnings == ["TEST LAKE ALPHA: ignored malformed generalNotes"]

    @pytest.mark.asyncio
    async def test_parse_failure_returns_none(self, service, entries, monkeypatch):
        monkeypatch.setattr(
            lake_regulation_extractor, "parse_lake_regulation", Mock(side_effect=TypeError("bad shape"))
        )

        assert await service.extract_entry(entries[0]) is None
