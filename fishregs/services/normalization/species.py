"""Species name canonicalization."""

SPECIES_SYNONYMS = {
    "lake trout": "Lake Trout",
    "laketrout": "Lake Trout",
    "salmon": "Salmon",
    "coho salmon": "Coho Salmon",
    "coho": "Coho Salmon",
    "chinook salmon": "Chinook Salmon",
    "chinook": "Chinook Salmon",
    "northern pike": "Northern Pike",
    "pike": "Northern Pike",
    "walleye": "Walleye",
    "bass": "Largemouth Bass",
    "largemouth bass": "Largemouth Bass",
    "smallmouth bass": "Smallmouth Bass",
    "muskie": "Muskellunge",
    "muskellunge": "Muskellunge",
    "brook trout": "Brook Trout",
    "brown trout": "Brown Trout",
    "rainbow trout": "Rainbow Trout",
    "steelhead": "Steelhead",
    "perch": "Yellow Perch",
    "yellow perch": "Yellow Perch",
    "bluegill": "Bluegill",
    "sunfish": "Bluegill",
    "crappie": "Crappie",
    "black crappie": "Black Crappie",
    "white crappie": "White Crappie",
}


def canonicalize_species_name(name: str) -> str:
    """Map a raw species name onto its canonical common name.

    Known synonyms are matched case-insensitively; anything else is title-cased.
    Blank input returns an empty string.
    """
    if not name or not name.strip():
        return ""

    cleaned = " ".join(name.split())
    mapped = SPECIES_SYNONYMS.get(cleaned.lower())
    if mapped:
        return mapped
    return cleaned.lower().title()
