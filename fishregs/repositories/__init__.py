from fishregs.repositories.base_repository import BaseRepository
from fishregs.repositories.fish_species_repository import FishSpeciesRepository
from fishregs.repositories.fishing_regulation_repository import FishingRegulationRepository
from fishregs.repositories.lookup_repository import CountyRepository, StateRepository
from fishregs.repositories.regulation_document_repository import RegulationDocumentRepository
from fishregs.repositories.water_body_repository import WaterBodyRepository, normalize_water_body_name

__all__ = [
    "BaseRepository",
    "CountyRepository",
    "FishSpeciesRepository",
    "FishingRegulationRepository",
    "RegulationDocumentRepository",
    "StateRepository",
    "WaterBodyRepository",
    "normalize_water_body_name",
]
