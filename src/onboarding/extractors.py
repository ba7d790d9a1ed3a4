"""
Attribute Extractors.

Deterministic text -> structured value parsers, one per attribute kind.
Each returns None when it cannot parse. Patterns are tried in a fixed
priority order; the first one that yields a valid value wins.
"""

import re
from datetime import date

from .state import Location, OccupancyFrequency, UsagePattern

# =============================================================================
# Location
# =============================================================================

POSTAL_CODE_RE = re.compile(r"^\d{5}(?:-\d{4})?$")
REGION_RE = re.compile(r"^[A-Za-z]{2}$")

STREET_SUFFIXES = {
    "street", "st",
    "drive", "dr",
    "road", "rd",
    "avenue", "ave", "av",
    "lane", "ln",
    "court", "ct",
    "way",
    "boulevard", "blvd",
    "place", "pl",
    "circle", "cir",
    "terrace", "ter",
    "highway", "hwy",
    "parkway", "pkwy",
    "trail", "trl",
    "route", "rte",
}

# Punctuation allowed to trail a token ("St.", "Springfield;")
_TOKEN_STRIP = ".,;:"


def _clean(token: str) -> str:
    return token.strip(_TOKEN_STRIP)


def _find_region_postal(tokens: list[str]) -> tuple[int, int] | None:
    """
    Locate (region_index, postal_index) in tokens.

    The postal code is the last 5-digit token; the region is the closest
    2-letter alphabetic token before it.
    """
    for postal_idx in range(len(tokens) - 1, -1, -1):
        if POSTAL_CODE_RE.match(_clean(tokens[postal_idx])):
            break
    else:
        return None

    for region_idx in range(postal_idx - 1, -1, -1):
        if REGION_RE.match(_clean(tokens[region_idx])):
            return region_idx, postal_idx
    return None


def _split_region_postal(segment: str) -> tuple[str, str]:
    """Split "IL 62704" style text into (region, postal_code)."""
    tokens = segment.split()
    found = _find_region_postal(tokens)
    if found:
        region_idx, postal_idx = found
        return _clean(tokens[region_idx]).upper(), _clean(tokens[postal_idx])

    postal = ""
    words = []
    for token in tokens:
        if not postal and POSTAL_CODE_RE.match(_clean(token)):
            postal = _clean(token)
        else:
            words.append(_clean(token))
    region = " ".join(w for w in words if w)
    if REGION_RE.match(region):
        region = region.upper()
    return region, postal


def _trim_street_lead(street: str) -> str:
    """Drop a lead-in like "It's at" before the house number."""
    tokens = street.split()
    for i, token in enumerate(tokens):
        if token[:1].isdigit():
            return " ".join(tokens[i:])
    return street


def _looks_like_street(street: str) -> bool:
    """A house number or a street suffix; rules out "well, I guess, maybe"."""
    tokens = street.split()
    return any(t[:1].isdigit() for t in tokens) or any(
        _clean(t).lower() in STREET_SUFFIXES for t in tokens[1:]
    )


def _parse_comma_delimited(text: str) -> Location | None:
    segments = [s.strip() for s in text.split(",") if s.strip()]
    if len(segments) < 2:
        return None

    street = _trim_street_lead(segments[0])
    if not _looks_like_street(street):
        return None

    if len(segments) >= 3:
        city = segments[1]
        region, postal = _split_region_postal(" ".join(segments[2:]))
    else:
        # "123 Main St, Springfield IL 62704": city shares the segment
        tokens = segments[1].split()
        found = _find_region_postal(tokens)
        if not found:
            return None
        region_idx, postal_idx = found
        city = " ".join(_clean(t) for t in tokens[:region_idx])
        region = _clean(tokens[region_idx]).upper()
        postal = _clean(tokens[postal_idx])

    city = _clean(city)
    if not city:
        return None
    return Location(street=street, city=city, region=region, postal_code=postal)


def _parse_space_delimited(text: str) -> Location | None:
    tokens = text.split()
    found = _find_region_postal(tokens)
    if not found:
        return None
    region_idx, postal_idx = found

    before = tokens[:region_idx]
    street_end = None
    for i, token in enumerate(before):
        if i > 0 and _clean(token).lower() in STREET_SUFFIXES:
            street_end = i + 1
            break

    if street_end is None:
        # No suffix keyword: the house number and a word or two
        street_end = min(3, len(before) - 1)
        if street_end < 1:
            return None

    street = _trim_street_lead(" ".join(_clean(t) for t in before[:street_end]))
    city = " ".join(_clean(t) for t in before[street_end:]).strip()
    if not city:
        return None

    return Location(
        street=street,
        city=city,
        region=_clean(tokens[region_idx]).upper(),
        postal_code=_clean(tokens[postal_idx]),
    )


def extract_location(text: str) -> Location | None:
    """
    Parse a US-style address.

    Tries a comma-delimited parse ("street, city, ST 12345") first, then a
    space-delimited parse keyed on the region + postal code tokens.
    Returns None unless street, city and region were all found.
    """
    if not text or not text.strip():
        return None
    for parse in (_parse_comma_delimited, _parse_space_delimited):
        location = parse(text)
        if location is not None and location.is_complete:
            return location
    return None


# =============================================================================
# Age
# =============================================================================

MAX_AGE = 200
MIN_BUILD_YEAR = 1800

BUILT_IN_RE = re.compile(r"\bbuilt\s+(?:in\s+|around\s+|circa\s+|about\s+)?(\d{4})\b", re.IGNORECASE)
YEARS_OLD_RE = re.compile(r"\b(\d{1,3})\s*(?:years?\s+old|yrs?\b)", re.IGNORECASE)
YEAR_RE = re.compile(r"\b(\d{4})\b")
INTEGER_RE = re.compile(r"\b(\d{1,3})\b")


def _age_from_year(year: int, current_year: int) -> int | None:
    if MIN_BUILD_YEAR <= year <= current_year:
        age = current_year - year
        if 0 <= age <= MAX_AGE:
            return age
    return None


def _age_in_range(value: int) -> int | None:
    return value if 0 <= value <= MAX_AGE else None


def extract_age(text: str, current_year: int | None = None) -> int | None:
    """
    Parse the house age in years.

    Priority:
    1. "built in 1985" / "built 1985"
    2. "40 years old" / "40 yrs"
    3. a bare year in [1800, current year]
    4. any bare integer in [0, 200]
    """
    if not text:
        return None
    if current_year is None:
        current_year = date.today().year

    for match in BUILT_IN_RE.finditer(text):
        age = _age_from_year(int(match.group(1)), current_year)
        if age is not None:
            return age

    for match in YEARS_OLD_RE.finditer(text):
        age = _age_in_range(int(match.group(1)))
        if age is not None:
            return age

    for match in YEAR_RE.finditer(text):
        age = _age_from_year(int(match.group(1)), current_year)
        if age is not None:
            return age

    for match in INTEGER_RE.finditer(text):
        age = _age_in_range(int(match.group(1)))
        if age is not None:
            return age

    return None


# =============================================================================
# Yes / No
# =============================================================================

NEGATION_MARKERS = {
    "no", "not", "don't", "doesn't", "haven't", "hasn't",
    "nah", "nope", "none", "never", "dont", "doesnt", "without",
}

AFFIRMATION_MARKERS = {
    "yes", "yeah", "yep", "yup", "sure", "have", "has", "does", "is", "are",
    "do", "definitely", "absolutely", "correct",
}

_WORD_RE = re.compile(r"[a-z']+")


def extract_yes_no(text: str) -> bool | None:
    """
    Parse a yes/no answer.

    Negation is checked first: "don't have heating" contains both "have"
    and "don't" and means no.
    """
    if not text:
        return None
    normalized = text.strip().lower().replace("’", "'")
    words = set(_WORD_RE.findall(normalized))

    if words & NEGATION_MARKERS:
        return False
    if words & AFFIRMATION_MARKERS:
        return True
    return None


# =============================================================================
# Usage Pattern
# =============================================================================

# Order matters: "biweekly" contains "weekly"
FREQUENCY_TERMS: list[tuple[str, OccupancyFrequency]] = [
    ("biweekly", OccupancyFrequency.BIWEEKLY),
    ("bi-weekly", OccupancyFrequency.BIWEEKLY),
    ("daily", OccupancyFrequency.DAILY),
    ("weekly", OccupancyFrequency.WEEKLY),
    ("monthly", OccupancyFrequency.MONTHLY),
    ("seasonally", OccupancyFrequency.SEASONALLY),
    ("rarely", OccupancyFrequency.RARELY),
]


def extract_usage_pattern(text: str) -> UsagePattern | None:
    """Match the occupancy-frequency vocabulary by case-insensitive substring."""
    if not text:
        return None
    lowered = text.lower()

    for term, frequency in FREQUENCY_TERMS:
        if term in lowered:
            return UsagePattern(
                occupancy_frequency=frequency,
                seasonal="season" in lowered,
            )
    return None
