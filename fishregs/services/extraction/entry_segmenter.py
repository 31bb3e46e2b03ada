"""Segmentation of the special regulations section into per-water-body entries.

Parsing is best effort with two tiers: a multi-line ``NAME (AREA) text`` pattern,
then a line scanner used when the first tier finds too few entries.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from fishregs.core.exceptions import SectionNotFoundError
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_START_PATTERNS = (
    r"WATERS WITH EXPERIMENTAL AND\s*SPECIAL REGULATIONS",
    r"Special Regulations\s*Lakes \(County\)",
)
DEFAULT_END_MARKERS = ("BORDER WATERS", "BOWFISHING, SPEARING", "DARK HOUSE SPEARING", "ILLUSTRATED FISH")
DEFAULT_FOOTER_PATTERNS = (
    r"Page \d+.*?888-MINNDNR",
    r"\d+\s+\d{4} Minnesota Fishing Regulations.*?888-MINNDNR",
)
DEFAULT_EXCLUDED_NAMES = ("National Wildlife", "Voyageurs")
DEFAULT_MIN_PRIMARY_ENTRIES = 10

MIN_NAME_LENGTH = 3
MIN_BODY_LENGTH = 10

_NAME = r"[A-Z][A-Z \t\-,&.'’\d]+"
_JOINED_NAME = (
    rf"{_NAME}(?:[ \t]+(?:including|and|near|Chain|chain|CHAIN)[ \t]+[A-Z \t\-,&.'’\d]*)*"
)
# Optional bullet or "NEW—" prefix on changed entries
_MARKER = r"(?:[⁕ \t]*NEW[ \t]*[—–-]+[ \t]*|⁕[ \t]*)?"
ENTRY_PATTERN = re.compile(
    rf"^({_MARKER}{_JOINED_NAME})[ \t]*\(([^)\n]+)\)\s+(.+?)(?=^{_MARKER}{_NAME}[ \t]*\([^)\n]+\)|\Z)",
    re.MULTILINE | re.DOTALL,
)
HEADER_LINE_PATTERN = re.compile(rf"^({_MARKER}{_NAME})[ \t]*\(([^)]+)\)\s*(.*)$")
# Title-case headers ("Test Lake Alpha (Mock County)"); two words minimum so species
# lines inside an entry body are not read as headers
_TITLE_WORD = r"[A-Z][A-Za-z’'.\-&\d]*"
_TITLE_NAME = rf"{_TITLE_WORD}(?:[ \t]+(?:{_TITLE_WORD}|of|the|and|on|de|du|la|le))+"
TITLE_HEADER_LINE_PATTERN = re.compile(
    rf"^({_MARKER}{_TITLE_NAME})[ \t]*\(([A-Z][A-Za-z .,’'\-&]*)\)\s*(.*)$"
)
# Strips the bullet and "NEW—" markers that flag changed regulations
NEW_MARKER_PATTERN = re.compile(r"^[⁕\s]*(?:NEW[ \t]*[—–-]+)?[⁕\s]*")


@dataclass
class RegulationEntry:
    """Raw text describing one water body's special regulations."""
    name: str
    county: str
    text: str


def _collapse(text: str) -> str:
    return " ".join(text.split())


class EntrySegmenter:
    """Locates the special regulations section and splits it into entries."""

    def __init__(
        self,
        start_patterns: Sequence[str] = DEFAULT_START_PATTERNS,
        end_markers: Sequence[str] = DEFAULT_END_MARKERS,
        footer_patterns: Sequence[str] = DEFAULT_FOOTER_PATTERNS,
        excluded_names: Sequence[str] = DEFAULT_EXCLUDED_NAMES,
        min_primary_entries: int = DEFAULT_MIN_PRIMARY_ENTRIES,
    ):
        self.start_patterns = [re.compile(p, re.IGNORECASE) for p in start_patterns]
        self.end_patterns = [
            re.compile(rf"^[ \t]*{re.escape(marker)}[ \t]*$", re.IGNORECASE | re.MULTILINE)
            for marker in end_markers
        ]
        self.footer_patterns = [re.compile(p, re.IGNORECASE) for p in footer_patterns]
        self.excluded_names = list(excluded_names)
        self.min_primary_entries = min_primary_entries

    def segment(self, text: str) -> List[RegulationEntry]:
        """Locate the section and parse its entries.

        Raises:
            SectionNotFoundError: If no start marker is present
        """
        section = self.locate_section(text)
        entries = self.parse_entries(section)

        if len(entries) < self.min_primary_entries:
            LOGGER.info(
                f"Primary pattern found {len(entries)} entries, using line scanner",
                extra={"threshold": self.min_primary_entries},
            )
            entries = self.parse_entries_by_line(section)

        LOGGER.info(f"Parsed {len(entries)} lake entries")
        return entries

    def _find_start(self, text: str) -> Optional[re.Match]:
        for pattern in self.start_patterns:
            matches = list(pattern.finditer(text))
            if matches:
                # The first occurrence is the table of contents
                return matches[-1]
        return None

    def locate_section(self, text: str) -> str:
        """Return the cleaned text between the section start and the next section."""
        start_match = self._find_start(text or "")
        if start_match is None:
            raise SectionNotFoundError(
                "Could not find 'Waters With Experimental and Special Regulations' section"
            )

        start = start_match.end()
        end = len(text)
        for pattern in self.end_patterns:
            end_match = pattern.search(text, start)
            if end_match:
                end = min(end, end_match.start())

        section = text[start:end]
        for pattern in self.footer_patterns:
            section = pattern.sub("", section)

        LOGGER.info(
            "Located special regulations section",
            extra={"start": start, "end": end, "characters": len(section.strip())},
        )
        return section

    def _clean_name(self, raw_name: str) -> str:
        return _collapse(NEW_MARKER_PATTERN.sub("", raw_name.strip()))

    def _is_entry(self, name: str, body: str) -> bool:
        lowered = name.lower()
        if any(excluded.lower() in lowered for excluded in self.excluded_names):
            return False
        return len(name) >= MIN_NAME_LENGTH and len(body) >= MIN_BODY_LENGTH

    def parse_entries(self, section: str) -> List[RegulationEntry]:
        """Primary tier: multi-line ``NAME (AREA) text`` blocks."""
        entries = []
        for match in ENTRY_PATTERN.finditer(section):
            name = self._clean_name(match.group(1))
            county = _collapse(match.group(2))
            body = _collapse(match.group(3))
            if self._is_entry(name, body):
                entries.append(RegulationEntry(name=name, county=county, text=body))
        return entries

    def parse_entries_by_line(self, section: str) -> List[RegulationEntry]:
        """Fallback tier: a header line starts an entry, other lines extend it.

        Accepts title-case headers as well as the all-caps form.
        """
        entries: List[RegulationEntry] = []
        name: Optional[str] = None
        county = ""
        body: List[str] = []

        def flush():
            if name and body:
                text = _collapse(" ".join(body))
                if self._is_entry(name, text):
                    entries.append(RegulationEntry(name=name, county=county, text=text))

        for line in self._lines(section):
            header = HEADER_LINE_PATTERN.match(line) or TITLE_HEADER_LINE_PATTERN.match(line)
            if header:
                flush()
                name = self._clean_name(header.group(1))
                county = _collapse(header.group(2))
                body = [header.group(3).strip()] if header.group(3).strip() else []
            elif name:
                body.append(line)

        flush()
        return entries

    @staticmethod
    def _lines(section: str) -> Iterable[str]:
        for line in section.splitlines():
            stripped = line.strip()
            if stripped:
                yield stripped
