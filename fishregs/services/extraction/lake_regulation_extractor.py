"""Lake regulation extraction service.

Each water-body entry of the special regulations section is sent to the
completion service with a fixed JSON schema and parsed into a typed
``LakeRegulation``.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

from fishregs.core.exceptions import (
    APIClientError,
    ProcessingCancelledError,
    SectionNotFoundError,
    ValidationError,
)
from fishregs.schemas.regulation import LakeRegulation, parse_lake_regulation
from fishregs.schemas.results import LakeRegulationExtractionResult
from fishregs.services.base_service import BaseService
from fishregs.services.extraction.entry_segmenter import EntrySegmenter, RegulationEntry
from fishregs.utils.json_parser import parse_json_safely
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_DELAY_SECONDS = 0.1
NO_ENTRIES_WARNING = "No water body entries found in the special regulations section"


class LakeRegulationExtractionService(BaseService):
    """Extracts structured regulations for each water body entry.

    Entries are processed sequentially with a pacing delay between completion
    calls. A failed entry is reported as a warning and never aborts the batch.

    Attributes:
        llm_client: Client exposing ``generate_content``
        segmenter: Entry segmenter for the special regulations section
        delay_seconds: Pause after each entry
    """

    EXTRACTION_PROMPT = """You are an expert at reading state fishing regulation booklets.

You receive the special regulations for ONE water body. Extract every
species-specific rule into the JSON structure below.

**regulationType must be one of:**
- DailyLimit: a daily bag limit
- PossessionLimit: a possession limit
- SizeLimit: a minimum and/or maximum length
- ProtectedSlot: a protected length range that must be released
- CatchAndRelease: the species must be released
- Seasonal: a season opening, closing or closure
- Combined: several of the above in one rule

**Return ONLY valid JSON** (no code fences, no explanations):
{
  "lakeName": "TEST LAKE ALPHA",
  "county": "Mock County",
  "regulations": {
    "specialRegulations": [
      {
        "species": "Walleye",
        "regulationType": "Combined",
        "dailyLimit": 6,
        "possessionLimit": 12,
        "minimumSize": "15 inches",
        "maximumSize": null,
        "protectedSlot": "20-24 inches (1 fish over 24 inches allowed)",
        "seasonInfo": "May 10 - Feb 22",
        "catchAndRelease": false,
        "notes": "Only one walleye over 24 inches"
      }
    ],
    "generalNotes": null,
    "isExperimental": false
  }
}

**Important:**
- One item per species and rule; repeat the species if it has several rules
- Use null for missing values
- dailyLimit and possessionLimit are integers, not strings
- Keep sizes and seasons as written, including units
- Set isExperimental to true only if the text calls the regulation experimental
"""

    def __init__(
        self,
        llm_client: Any,
        segmenter: Optional[EntrySegmenter] = None,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        generation_config: Optional[Dict[str, Any]] = None,
    ):
        super().__init__()
        self.llm_client = llm_client
        self.segmenter = segmenter or EntrySegmenter()
        self.delay_seconds = delay_seconds
        self.generation_config = {
            "temperature": 0.1,
            "max_output_tokens": 2000,
            **(generation_config or {}),
            "response_mime_type": "application/json",
        }

    def _build_user_message(self, entry: RegulationEntry) -> str:
        return (
            f"Water body: {entry.name}\n"
            f"County: {entry.county}\n\n"
            f"Regulation text:\n{entry.text}"
        )

    async def extract_entry(self, entry: RegulationEntry) -> Optional[LakeRegulation]:
        """Extract one entry.

        Returns:
            The parsed regulation, or None when the completion failed or could
            not be parsed
        """
        try:
            completion = await self.llm_client.generate_content(
                contents=self._build_user_message(entry),
                system_instruction=self.EXTRACTION_PROMPT,
                generation_config=self.generation_config,
            )
        except APIClientError as e:
            LOGGER.warning(f"Completion failed for {entry.name}: {e}", extra={"county": entry.county})
            return None

        parsed = parse_json_safely(completion)
        if isinstance(parsed, list) and len(parsed) == 1:
            parsed = parsed[0]

        try:
            regulation = parse_lake_regulation(parsed, default_name=entry.name, default_county=entry.county)
        except (TypeError, ValueError) as e:
            LOGGER.warning(f"Malformed completion for {entry.name}: {e}", extra={"county": entry.county})
            return None

        if regulation is None:
            LOGGER.warning(
                f"Could not parse completion for {entry.name}",
                extra={"preview": (completion or "")[:200]},
            )
            return None

        # The segmented name is authoritative; models sometimes retitle entries
        regulation.lake_name = entry.name
        if not regulation.county:
            regulation.county = entry.county
        return regulation

    async def extract_batch(
        self,
        entries: List[RegulationEntry],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> LakeRegulationExtractionResult:
        """Extract all entries sequentially.

        Raises:
            ProcessingCancelledError: If ``cancel_event`` is set between entries
        """
        started = time.monotonic()
        result = LakeRegulationExtractionResult()

        for entry in entries:
            if cancel_event is not None and cancel_event.is_set():
                raise ProcessingCancelledError("Processing cancelled")

            regulation = await self.extract_entry(entry)
            result.total_lakes_processed += 1
            if regulation is None:
                result.processing_warnings.append(f"Failed to extract regulations for {entry.name}")
            else:
                result.extracted_regulations.append(regulation)
                result.total_regulations_extracted += len(regulation.regulations.special_regulations)
                result.processing_warnings.extend(regulation.warnings)

            if self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

        result.is_success = True
        result.processing_time = time.monotonic() - started
        LOGGER.info(
            f"Extracted regulations for {len(result.extracted_regulations)} lakes",
            extra={
                "entries": len(entries),
                "regulations": result.total_regulations_extracted,
                "warnings": len(result.processing_warnings),
            },
        )
        return result

    def validate(self, text: str, cancel_event: Optional[asyncio.Event] = None):
        if text is None:
            raise ValidationError("Regulation text is required")

    async def run(
        self,
        text: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> LakeRegulationExtractionResult:
        """Segment the document text and extract every entry."""
        started = time.monotonic()
        LOGGER.info("Starting lake regulation extraction", extra={"text_length": len(text)})

        try:
            entries = self.segmenter.segment(text)
        except SectionNotFoundError as e:
            LOGGER.warning(e.message)
            return LakeRegulationExtractionResult(
                is_success=False,
                error_message=e.message,
                processing_time=time.monotonic() - started,
            )

        result = await self.extract_batch(entries, cancel_event=cancel_event)
        if not entries:
            LOGGER.warning("Special regulations section contained no water body entries")
            result.processing_warnings.append(NO_ENTRIES_WARNING)
        result.processing_time = time.monotonic() - started
        return result

    async def extract_regulations(
        self,
        text: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> LakeRegulationExtractionResult:
        """Public entry point; delegates to ``BaseService.execute``."""
        return await self.execute(text, cancel_event=cancel_event)
