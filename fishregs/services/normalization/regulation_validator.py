"""Validation and numeric normalization of extracted regulations.

Errors block persistence of a single regulation. Warnings are persisted
alongside it and reported in the batch result.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from fishregs.schemas.regulation import SpecialRegulationBase

SIZE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:inch|inches|in)?", re.IGNORECASE)
SLOT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)\s*(?:inch|inches|in)?", re.IGNORECASE)
SLOT_EXCEPTION_PATTERN = re.compile(r"\((\d+)\s+fish", re.IGNORECASE)

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_MONTH = r"(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?"
SEASON_RANGE_PATTERN = re.compile(
    rf"{_MONTH}\s+(\d{{1,2}})(?:,\s*\d{{4}})?\s*(?:-|–|—|to|through|thru)\s*{_MONTH}\s+(\d{{1,2}})",
    re.IGNORECASE,
)
YEAR_ROUND_PATTERN = re.compile(r"\b(?:continuous|year[\s-]round|all year|open all year)\b", re.IGNORECASE)

# Size and slot columns are NUMERIC(5, 2)
MAX_LENGTH_INCHES = Decimal("999.99")

_WATER_TYPE_WORDS = (
    ("reservoir", ("RESERVOIR", "FLOWAGE")),
    ("river", ("RIVER",)),
    ("stream", ("CREEK", "STREAM", "BROOK")),
    ("pond", ("POND",)),
)


@dataclass
class ProtectedSlot:
    min_inches: Optional[Decimal] = None
    max_inches: Optional[Decimal] = None
    exceptions: Optional[int] = None


@dataclass
class SeasonInfo:
    open_date: Optional[date] = None
    close_date: Optional[date] = None
    is_year_round: bool = False


@dataclass
class RegulationValidationResult:
    """Cleaned regulation plus the numeric values derived from it."""
    cleaned: SpecialRegulationBase
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    minimum_size: Optional[Decimal] = None
    maximum_size: Optional[Decimal] = None
    protected_slot: ProtectedSlot = field(default_factory=ProtectedSlot)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def clean_size_string(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return " ".join(value.split())


def extract_size_inches(text: Optional[str]) -> Optional[Decimal]:
    """Return the first decimal number in ``text``, ignoring unit words."""
    if not text:
        return None
    match = SIZE_PATTERN.search(text)
    if not match:
        return None
    try:
        return Decimal(match.group(1))
    except InvalidOperation:
        return None


def parse_protected_slot(text: Optional[str]) -> ProtectedSlot:
    """Parse ``"<low>-<high> inches (<N> fish ...)"`` into its parts.

    >>> parse_protected_slot("28-36 inches (1 fish allowed)")
    ProtectedSlot(min_inches=Decimal('28'), max_inches=Decimal('36'), exceptions=1)
    """
    slot = ProtectedSlot()
    if not text:
        return slot

    match = SLOT_PATTERN.search(text)
    if match:
        slot.min_inches = Decimal(match.group(1))
        slot.max_inches = Decimal(match.group(2))

    exception = SLOT_EXCEPTION_PATTERN.search(text)
    if exception:
        slot.exceptions = int(exception.group(1))
    return slot


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_season(text: Optional[str], year: int) -> SeasonInfo:
    """Read an open/close range such as ``"May 10 - Feb 22"``.

    A close date earlier than the open date falls in the following year.
    Text without a season is treated as year round.
    """
    if not text or not text.strip():
        return SeasonInfo(is_year_round=True)

    if YEAR_ROUND_PATTERN.search(text):
        return SeasonInfo(is_year_round=True)

    match = SEASON_RANGE_PATTERN.search(text)
    if not match:
        return SeasonInfo()

    open_date = _safe_date(year, _MONTHS[match.group(1).lower()], int(match.group(2)))
    close_date = _safe_date(year, _MONTHS[match.group(3).lower()], int(match.group(4)))
    if open_date and close_date and close_date < open_date:
        close_date = _safe_date(year + 1, close_date.month, close_date.day)
    return SeasonInfo(open_date=open_date, close_date=close_date)


def infer_water_type(name: str) -> str:
    """Guess the water type from words in the name; defaults to ``lake``."""
    upper = (name or "").upper()
    for water_type, words in _WATER_TYPE_WORDS:
        if any(re.search(rf"\b{word}\b", upper) for word in words):
            return water_type
    return "lake"


class RegulationValidator:
    """Cleans one extracted regulation and checks its limits and sizes."""

    def validate(self, regulation: SpecialRegulationBase) -> RegulationValidationResult:
        cleaned = regulation.model_copy(
            update={
                "species": " ".join((regulation.species or "").split()),
                "minimum_size": clean_size_string(regulation.minimum_size),
                "maximum_size": clean_size_string(regulation.maximum_size),
                "protected_slot": clean_size_string(regulation.protected_slot),
                "season_info": (regulation.season_info or "").strip() or None,
                "notes": (regulation.notes or "").strip() or None,
            }
        )
        result = RegulationValidationResult(cleaned=cleaned)

        if not cleaned.species:
            result.errors.append("Species name is required")

        # Negative limits would violate the store's check constraints
        if cleaned.daily_limit is not None and cleaned.daily_limit < 0:
            result.warnings.append(f"Daily limit is negative: {cleaned.daily_limit}")
            cleaned.daily_limit = None
        if cleaned.possession_limit is not None and cleaned.possession_limit < 0:
            result.warnings.append(f"Possession limit is negative: {cleaned.possession_limit}")
            cleaned.possession_limit = None

        if (
            cleaned.daily_limit
            and cleaned.possession_limit
            and cleaned.daily_limit > cleaned.possession_limit
        ):
            result.warnings.append(
                f"Daily limit {cleaned.daily_limit} exceeds possession limit {cleaned.possession_limit}"
            )

        result.minimum_size = self._bounded(extract_size_inches(cleaned.minimum_size), "Minimum size", result)
        result.maximum_size = self._bounded(extract_size_inches(cleaned.maximum_size), "Maximum size", result)

        slot = parse_protected_slot(cleaned.protected_slot)
        if slot.max_inches is not None and slot.max_inches > MAX_LENGTH_INCHES:
            result.warnings.append(f"Protected slot maximum {slot.max_inches} is out of range; slot ignored")
            slot = ProtectedSlot(exceptions=slot.exceptions)
        if slot.min_inches is not None and slot.max_inches is not None and slot.min_inches >= slot.max_inches:
            result.warnings.append(
                f"Protected slot minimum {slot.min_inches} is not below maximum {slot.max_inches}; slot ignored"
            )
            slot = ProtectedSlot(exceptions=slot.exceptions)
        result.protected_slot = slot

        return result

    @staticmethod
    def _bounded(
        value: Optional[Decimal], label: str, result: RegulationValidationResult
    ) -> Optional[Decimal]:
        if value is not None and value > MAX_LENGTH_INCHES:
            result.warnings.append(f"{label} {value} is out of range; ignored")
            return None
        return value
