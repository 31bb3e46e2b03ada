"""Regulation population service.

Merges extracted lake regulations into the relational store. Each lake is
written inside its own savepoint and committed on its own, so a failure or a
cancellation never undoes lakes that were already stored.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fishregs.core.exceptions import AppError, ProcessingCancelledError, ValidationError
from fishregs.repositories.fish_species_repository import FishSpeciesRepository
from fishregs.repositories.fishing_regulation_repository import FishingRegulationRepository
from fishregs.repositories.lookup_repository import CountyRepository
from fishregs.repositories.water_body_repository import WaterBodyRepository
from fishregs.schemas.regulation import LakeRegulation, RegulationType
from fishregs.schemas.results import LakeRegulationExtractionResult, RegulationPopulationResult
from fishregs.services.base_service import BaseService
from fishregs.services.normalization.regulation_validator import (
    RegulationValidationResult,
    RegulationValidator,
    infer_water_type,
    parse_season,
)
from fishregs.services.normalization.species import canonicalize_species_name
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class _LakeOutcome:
    water_body_created: bool = False
    regulations_created: int = 0
    regulations_updated: int = 0
    species_created: int = 0
    warnings: List[str] = field(default_factory=list)


def _unique(values) -> List[Any]:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def _first(values) -> Any:
    return next((value for value in values if value is not None), None)


class RegulationPopulationService(BaseService):
    """Resolves reference records and upserts per-species regulations.

    Attributes:
        session: Async session; this service owns its commit boundaries
        validator: Per-regulation cleaning and checks
    """

    def __init__(self, session: AsyncSession, validator: Optional[RegulationValidator] = None):
        super().__init__()
        self.session = session
        self.validator = validator or RegulationValidator()
        self.counties = CountyRepository(session)
        self.water_bodies = WaterBodyRepository(session)
        self.species = FishSpeciesRepository(session)
        self.regulations = FishingRegulationRepository(session)

    async def populate(
        self,
        extraction: LakeRegulationExtractionResult,
        state_id: int,
        regulation_year: int,
        source_document_id: Optional[UUID] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RegulationPopulationResult:
        return await self.execute(
            extraction,
            state_id,
            regulation_year,
            source_document_id=source_document_id,
            cancel_event=cancel_event,
        )

    def validate(self, extraction, state_id, regulation_year, **kwargs):
        if extraction is None:
            raise ValidationError("Extraction result is required")
        if not 1900 <= regulation_year <= 2100:
            raise ValidationError(f"Invalid regulation year: {regulation_year}")

    async def run(
        self,
        extraction: LakeRegulationExtractionResult,
        state_id: int,
        regulation_year: int,
        source_document_id: Optional[UUID] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RegulationPopulationResult:
        """Populate the store from one extraction result.

        Raises:
            ProcessingCancelledError: If ``cancel_event`` is set between lakes
        """
        started = time.monotonic()
        result = RegulationPopulationResult()

        if not extraction.is_success:
            result.processing_errors.append(
                f"Cannot process failed extraction: {extraction.error_message}"
            )
            return result

        LOGGER.info(
            f"Starting population for {len(extraction.extracted_regulations)} lakes",
            extra={"state_id": state_id, "regulation_year": regulation_year},
        )

        for lake in extraction.extracted_regulations:
            if cancel_event is not None and cancel_event.is_set():
                raise ProcessingCancelledError("Processing cancelled")

            result.lakes_processed += 1
            try:
                async with self.session.begin_nested():
                    outcome = await self.populate_lake(lake, state_id, regulation_year, source_document_id)
                await self.session.commit()
            except (SQLAlchemyError, AppError) as e:
                await self.session.rollback()
                message = e.message if isinstance(e, AppError) else str(e).split("\n")[0]
                LOGGER.warning(
                    f"Failed to populate lake {lake.lake_name}: {message}",
                    exc_info=True,
                )
                result.processing_errors.append(f"Lake {lake.lake_name}: {message}")
                continue

            if outcome.water_body_created:
                result.water_bodies_created += 1
            else:
                result.water_bodies_updated += 1
            result.regulations_created += outcome.regulations_created
            result.regulations_updated += outcome.regulations_updated
            result.fish_species_created += outcome.species_created
            result.processing_warnings.extend(outcome.warnings)

        result.processing_time = time.monotonic() - started
        LOGGER.info(
            "Population completed",
            extra={
                "lakes": result.lakes_processed,
                "water_bodies_created": result.water_bodies_created,
                "regulations_created": result.regulations_created,
                "regulations_updated": result.regulations_updated,
                "errors": len(result.processing_errors),
            },
        )
        return result

    async def populate_lake(
        self,
        lake: LakeRegulation,
        state_id: int,
        regulation_year: int,
        source_document_id: Optional[UUID] = None,
    ) -> _LakeOutcome:
        """Write one lake. The caller owns the transaction boundary."""
        if not lake.lake_name or not lake.lake_name.strip():
            raise ValidationError("Lake name cannot be empty")

        outcome = _LakeOutcome()

        county_id = None
        if lake.county:
            county, _ = await self.counties.get_or_create(state_id, lake.county)
            county_id = county.id

        water_body, created = await self.water_bodies.get_or_create(
            state_id,
            lake.lake_name,
            water_type=infer_water_type(lake.lake_name),
            county_id=county_id,
        )
        outcome.water_body_created = created
        if not created:
            updates = {"county_id": county_id} if county_id and water_body.county_id is None else {}
            await self.water_bodies.update(water_body, **updates)

        candidates: Dict[str, List[RegulationValidationResult]] = {}
        for regulation in lake.regulations.special_regulations:
            validation = self.validator.validate(regulation)
            if not validation.is_valid:
                outcome.warnings.extend(f"{lake.lake_name}: {error}" for error in validation.errors)
                continue
            outcome.warnings.extend(f"{lake.lake_name}: {warning}" for warning in validation.warnings)
            name = canonicalize_species_name(validation.cleaned.species)
            candidates.setdefault(name, []).append(validation)

        if not candidates:
            outcome.warnings.append(f"No species found in regulations for {lake.lake_name}")
            return outcome

        for species_name, validations in candidates.items():
            species, species_created = await self.species.get_or_create(species_name)
            if species_created:
                outcome.species_created += 1

            values = self._build_values(validations, regulation_year, source_document_id)
            if (
                values["daily_limit"]
                and values["possession_limit"]
                and values["daily_limit"] > values["possession_limit"]
                and len(validations) > 1
            ):
                outcome.warnings.append(
                    f"{lake.lake_name}: {species_name} daily limit {values['daily_limit']} "
                    f"exceeds possession limit {values['possession_limit']}"
                )

            _, regulation_created = await self.regulations.upsert_active(
                water_body.id,
                species.id,
                regulation_year,
                values,
                create_values={
                    "effective_date": date(regulation_year, 1, 1),
                    "expiration_date": date(regulation_year, 12, 31),
                    "review_status": "pending",
                },
            )
            if regulation_created:
                outcome.regulations_created += 1
            else:
                outcome.regulations_updated += 1

        outcome.warnings = _unique(outcome.warnings)
        return outcome

    def _build_values(
        self,
        validations: List[RegulationValidationResult],
        regulation_year: int,
        source_document_id: Optional[UUID],
    ) -> Dict[str, Any]:
        """Merge one species' regulation items into the mutable column values."""
        cleaned = [v.cleaned for v in validations]
        types = _unique(item.regulation_type for item in cleaned)
        slot = next((v.protected_slot for v in validations if v.protected_slot.min_inches is not None), None)
        season_texts = _unique(item.season_info for item in cleaned)
        season = parse_season(season_texts[0] if season_texts else None, regulation_year)
        size_notes = _unique(
            text
            for item in cleaned
            for text in (item.minimum_size, item.maximum_size, item.protected_slot)
        )

        return {
            "source_document_id": source_document_id,
            "regulation_type": types[0] if len(types) == 1 else RegulationType.COMBINED.value,
            "daily_limit": _first(item.daily_limit for item in cleaned),
            "possession_limit": _first(item.possession_limit for item in cleaned),
            "minimum_size": _first(v.minimum_size for v in validations),
            "maximum_size": _first(v.maximum_size for v in validations),
            "size_limit_notes": "; ".join(size_notes) or None,
            "protected_slot_min": slot.min_inches if slot else None,
            "protected_slot_max": slot.max_inches if slot else None,
            "protected_slot_exceptions": _first(v.protected_slot.exceptions for v in validations),
            "season_open_date": season.open_date,
            "season_close_date": season.close_date,
            "is_year_round": season.is_year_round,
            "season_notes": "; ".join(season_texts) or None,
            "catch_and_release_only": any(item.catch_and_release for item in cleaned),
            "special_regulations": _unique(item.notes for item in cleaned),
        }
