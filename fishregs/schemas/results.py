from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fishregs.schemas.regulation import LakeRegulation


class _CamelResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LakeRegulationExtractionResult(_CamelResult):
    """Outcome of extracting regulations from one document's entries."""

    is_success: bool = Field(False, description="False only on structural failure")
    extracted_regulations: List[LakeRegulation] = Field(default_factory=list)
    error_message: Optional[str] = Field(None, description="Structural failure reason")
    total_lakes_processed: int = Field(0, description="Entries extracted into a record")
    total_regulations_extracted: int = Field(0, description="Sum of special regulations over all lakes")
    processing_time: float = Field(0.0, description="Elapsed seconds")
    processing_warnings: List[str] = Field(default_factory=list)


class RegulationPopulationResult(_CamelResult):
    """Counters and diagnostics from merging extracted lakes into the store."""

    lakes_processed: int = 0
    water_bodies_created: int = 0
    water_bodies_updated: int = 0
    regulations_created: int = 0
    regulations_updated: int = 0
    fish_species_created: int = 0
    processing_time: float = 0.0
    processing_warnings: List[str] = Field(default_factory=list)
    processing_errors: List[str] = Field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return not self.processing_errors


class RegulationBatchResult(_CamelResult):
    """Wire contract returned for one processing job."""

    is_success: bool = Field(..., description="Whether the batch completed without errors")
    total_lakes_processed: int = 0
    total_regulations_extracted: int = 0
    water_bodies_created: int = 0
    water_bodies_updated: int = 0
    regulations_created: int = 0
    regulations_updated: int = 0
    fish_species_created: int = 0
    processing_warnings: List[str] = Field(default_factory=list)
    processing_errors: List[str] = Field(default_factory=list)
    processing_time: float = Field(0.0, description="Elapsed seconds for the whole job")
    error_message: Optional[str] = None

    @classmethod
    def failed(cls, message: str, processing_time: float = 0.0, warnings: Optional[List[str]] = None):
        return cls(
            is_success=False,
            error_message=message,
            processing_time=processing_time,
            processing_warnings=list(warnings or []),
        )

    @classmethod
    def combine(
        cls,
        extraction: LakeRegulationExtractionResult,
        population: RegulationPopulationResult,
        processing_time: float,
    ) -> "RegulationBatchResult":
        return cls(
            is_success=extraction.is_success and population.is_success,
            total_lakes_processed=extraction.total_lakes_processed,
            total_regulations_extracted=extraction.total_regulations_extracted,
            water_bodies_created=population.water_bodies_created,
            water_bodies_updated=population.water_bodies_updated,
            regulations_created=population.regulations_created,
            regulations_updated=population.regulations_updated,
            fish_species_created=population.fish_species_created,
            processing_warnings=extraction.processing_warnings + population.processing_warnings,
            processing_errors=list(population.processing_errors),
            processing_time=processing_time,
            error_message=extraction.error_message,
        )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class DocumentUploadResponse(_CamelResult):
    document_id: str = Field(..., description="Created regulation document id")
    workflow_id: Optional[str] = Field(None, description="Temporal workflow id, if one was started")
    status: str = Field(..., description="Document processing status")
    message: str = Field(..., description="Human-readable status message")


class DocumentStatusResponse(_CamelResult):
    document_id: str
    file_name: str
    document_type: str
    regulation_year: int
    processing_status: str
    processing_started_at: Optional[str] = None
    processing_completed_at: Optional[str] = None
    processing_error: Optional[str] = None
    result: Optional[RegulationBatchResult] = None
