"""Typed schema for regulations returned by the completion service.

The model answers in camelCase JSON. Each special regulation is a variant
tagged by ``regulationType``. Malformed values and unknown keys are reported as
warnings through the validation context and never fail the whole lake.
"""

import re
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel, to_snake


class RegulationType(str, Enum):
    DAILY_LIMIT = "DailyLimit"
    POSSESSION_LIMIT = "PossessionLimit"
    SIZE_LIMIT = "SizeLimit"
    PROTECTED_SLOT = "ProtectedSlot"
    CATCH_AND_RELEASE = "CatchAndRelease"
    SEASONAL = "Seasonal"
    COMBINED = "Combined"


_TYPE_LOOKUP = {member.value.lower(): member for member in RegulationType}
_TYPE_LOOKUP.update({
    "slot": RegulationType.PROTECTED_SLOT,
    "protectedslotlimit": RegulationType.PROTECTED_SLOT,
    "baglimit": RegulationType.DAILY_LIMIT,
    "sizelimits": RegulationType.SIZE_LIMIT,
    "minimumsize": RegulationType.SIZE_LIMIT,
    "catchrelease": RegulationType.CATCH_AND_RELEASE,
    "season": RegulationType.SEASONAL,
})

_INTEGER = re.compile(r"-?\d+")


def _warn(info: ValidationInfo, message: str) -> None:
    if info.context is not None and "warnings" in info.context:
        info.context["warnings"].append(message)


def _label(info: ValidationInfo) -> str:
    if info.context and info.context.get("lake_name"):
        return f"{info.context['lake_name']}: "
    return ""


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, dict):
        raise ValueError("expected text, got an object")
    if isinstance(value, list):
        value = "; ".join(str(v) for v in value if v is not None)
    text = str(value).strip()
    return text or None


def _as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "y", "1")
    return bool(value)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SpecialRegulationBase(_CamelModel):
    """Fields shared by every regulation variant."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    species: str = ""
    daily_limit: Optional[int] = None
    possession_limit: Optional[int] = None
    minimum_size: Optional[str] = None
    maximum_size: Optional[str] = None
    protected_slot: Optional[str] = None
    season_info: Optional[str] = None
    catch_and_release: bool = False
    notes: Optional[str] = None

    @field_validator("species", mode="before")
    @classmethod
    def _species_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("daily_limit", "possession_limit", mode="before")
    @classmethod
    def _limit(cls, value: Any, info: ValidationInfo) -> Optional[int]:
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            _warn(info, f"{_label(info)}ignored boolean {info.field_name}")
            return None
        if isinstance(value, (int, float)):
            return int(value)
        match = _INTEGER.search(str(value))
        if match:
            return int(match.group())
        _warn(info, f"{_label(info)}could not read {info.field_name} from '{value}'")
        return None

    @field_validator("minimum_size", "maximum_size", "protected_slot", "season_info", "notes", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return _as_text(value)

    @field_validator("catch_and_release", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        return _as_flag(value)


class DailyLimitRegulation(SpecialRegulationBase):
    regulation_type: Literal["DailyLimit"] = "DailyLimit"

    @model_validator(mode="after")
    def _has_limit(self, info: ValidationInfo):
        if self.daily_limit is None:
            _warn(info, f"{_label(info)}DailyLimit regulation for {self.species or 'unknown species'} has no dailyLimit")
        return self


class PossessionLimitRegulation(SpecialRegulationBase):
    regulation_type: Literal["PossessionLimit"] = "PossessionLimit"

    @model_validator(mode="after")
    def _has_limit(self, info: ValidationInfo):
        if self.possession_limit is None:
            _warn(info, f"{_label(info)}PossessionLimit regulation for {self.species or 'unknown species'} has no possessionLimit")
        return self


class SizeLimitRegulation(SpecialRegulationBase):
    regulation_type: Literal["SizeLimit"] = "SizeLimit"

    @model_validator(mode="after")
    def _has_size(self, info: ValidationInfo):
        if not self.minimum_size and not self.maximum_size:
            _warn(info, f"{_label(info)}SizeLimit regulation for {self.species or 'unknown species'} has no size")
        return self


class ProtectedSlotRegulation(SpecialRegulationBase):
    regulation_type: Literal["ProtectedSlot"] = "ProtectedSlot"

    @model_validator(mode="after")
    def _has_slot(self, info: ValidationInfo):
        if not self.protected_slot:
            _warn(info, f"{_label(info)}ProtectedSlot regulation for {self.species or 'unknown species'} has no protectedSlot")
        return self


class CatchAndReleaseRegulation(SpecialRegulationBase):
    regulation_type: Literal["CatchAndRelease"] = "CatchAndRelease"
    catch_and_release: bool = True

    @model_validator(mode="after")
    def _release_only(self):
        self.catch_and_release = True
        return self


class SeasonalRegulation(SpecialRegulationBase):
    regulation_type: Literal["Seasonal"] = "Seasonal"


class CombinedRegulation(SpecialRegulationBase):
    regulation_type: Literal["Combined"] = "Combined"


SpecialRegulation = Annotated[
    Union[
        DailyLimitRegulation,
        PossessionLimitRegulation,
        SizeLimitRegulation,
        ProtectedSlotRegulation,
        CatchAndReleaseRegulation,
        SeasonalRegulation,
        CombinedRegulation,
    ],
    Field(discriminator="regulation_type"),
]

SPECIAL_REGULATION_ADAPTER = TypeAdapter(SpecialRegulation)

_KNOWN_ITEM_KEYS = {
    "species", "regulationType", "dailyLimit", "possessionLimit", "minimumSize",
    "maximumSize", "protectedSlot", "seasonInfo", "catchAndRelease", "notes",
}


class LakeRegulationDetails(_CamelModel):
    special_regulations: List[SpecialRegulation] = Field(default_factory=list)
    general_notes: Optional[str] = None
    is_experimental: bool = False
    last_updated: Optional[str] = None


class LakeRegulation(_CamelModel):
    """Extracted regulations for one water body."""
    lake_name: str
    county: str = ""
    regulations: LakeRegulationDetails = Field(default_factory=LakeRegulationDetails)
    warnings: List[str] = Field(default_factory=list, exclude=True)

    @property
    def species_names(self) -> List[str]:
        """Distinct non-blank species names in first-seen order."""
        seen: Dict[str, str] = {}
        for regulation in self.regulations.special_regulations:
            key = regulation.species.lower()
            if regulation.species and key not in seen:
                seen[key] = regulation.species
        return list(seen.values())


def normalize_regulation_type(raw: Any) -> Optional[RegulationType]:
    """Map loose type labels (``daily_limit``, ``Daily Limit``) onto the enum."""
    if raw is None:
        return None
    key = re.sub(r"[^a-z]", "", str(raw).lower())
    return _TYPE_LOOKUP.get(key)


def parse_special_regulation(
    item: Any, warnings: List[str], lake_name: str = ""
) -> Optional[SpecialRegulationBase]:
    """Validate one raw item into its tagged variant.

    Unknown types fall back to ``Combined``. Items that still fail validation
    are dropped with a warning.
    """
    prefix = f"{lake_name}: " if lake_name else ""
    if not isinstance(item, dict):
        warnings.append(f"{prefix}skipped non-object regulation item")
        return None

    data = dict(item)
    raw_type = data.get("regulationType", data.get("regulation_type"))
    regulation_type = normalize_regulation_type(raw_type)
    if regulation_type is None:
        if raw_type not in (None, ""):
            warnings.append(f"{prefix}unknown regulation type '{raw_type}', treated as Combined")
        regulation_type = RegulationType.COMBINED
    data.pop("regulation_type", None)
    data["regulationType"] = regulation_type.value

    unknown = sorted(key for key in data if to_camel(key) not in _KNOWN_ITEM_KEYS)
    if unknown:
        warnings.append(f"{prefix}ignored unknown fields {', '.join(unknown)}")

    try:
        return SPECIAL_REGULATION_ADAPTER.validate_python(
            data, context={"warnings": warnings, "lake_name": lake_name}
        )
    except ValidationError as e:
        warnings.append(f"{prefix}dropped malformed regulation: {e.errors()[0].get('msg', str(e))}")
        return None


def parse_lake_regulation(data: Any, default_name: str = "", default_county: str = "") -> Optional[LakeRegulation]:
    """Build a ``LakeRegulation`` from parsed completion JSON.

    Returns None when the payload is not an object.
    """
    if not isinstance(data, dict):
        return None

    warnings: List[str] = []
    lake_name = str(data.get("lakeName") or data.get("lake_name") or default_name).strip()
    county = str(data.get("county") or default_county or "").strip()

    details = data.get("regulations")
    if not isinstance(details, dict):
        # Some completions flatten the regulations object into the top level
        details = data

    raw_items = details.get("specialRegulations", details.get("special_regulations")) or []
    if not isinstance(raw_items, list):
        warnings.append(f"{lake_name}: specialRegulations is not a list")
        raw_items = []

    special_regulations = []
    for item in raw_items:
        parsed = parse_special_regulation(item, warnings, lake_name)
        if parsed is not None:
            special_regulations.append(parsed)

    return LakeRegulation(
        lake_name=lake_name,
        county=county,
        regulations=LakeRegulationDetails(
            special_regulations=special_regulations,
            general_notes=_detail_text(details, "generalNotes", warnings, lake_name),
            is_experimental=_as_flag(details.get("isExperimental", details.get("is_experimental", False))),
            last_updated=_detail_text(details, "lastUpdated", warnings, lake_name),
        ),
        warnings=warnings,
    )


def _detail_text(details: Dict[str, Any], key: str, warnings: List[str], lake_name: str) -> Optional[str]:
    value = details.get(key, details.get(to_snake(key)))
    try:
        return _as_text(value)
    except ValueError:
        warnings.append(f"{lake_name}: ignored malformed {key}")
        return None
