"""
Party detection and category mapping.

Single home for every keyword table used to classify events:
- Party detection: strong party terms and day-party terms
- Party subcategories, resolved in a fixed priority order
- Provider category vocabularies mapped to canonical categories
- Keyword fallback when a provider gives no usable category

Party and subcategory keywords match as case-insensitive substrings.
The category fallback matches at word starts so that short terms such as
"vs" or "art" do not fire inside unrelated words.
"""

import re
from datetime import datetime, time
from functools import lru_cache
from typing import Optional, Union

from .models import Category, Event, PartySubcategory


STRONG_PARTY_KEYWORDS = [
    "party", "parties", "nightclub", "club night", "dance party", "rave", "dj set",
    "nightlife", "night life", "bottle service", "vip table", "dance floor",
    "after party", "afterparty", "after-party", "happy hour", "happy-hour", "mixer",
    "mingle", "speed dating", "singles night", "gala", "masquerade", "ladies night",
    "silent disco", "headphone party", "speakeasy", "bar crawl", "pub crawl",
    "open bar", "edm", "techno", "house music", "disco", "dance night",
]

DAY_PARTY_KEYWORDS = [
    "day party", "day-party", "dayparty", "pool party", "day club", "dayclub",
    "daytime", "day time", "garden party", "patio party", "beach party",
    "afternoon party", "outdoor party", "terrace party", "day drinking",
]

# Checked in this order; the first subcategory with a keyword hit wins.
SUBCATEGORY_KEYWORDS: list[tuple[PartySubcategory, list[str]]] = [
    ("immersive", [
        "immersive", "interactive party", "experiential", "art party",
        "projection", "themed experience",
    ]),
    ("silent", ["silent disco", "silent party", "silent rave", "headphone party"]),
    ("popup", [
        "pop-up", "popup", "pop up", "secret party", "secret location",
        "underground party", "warehouse party", "speakeasy", "hidden venue",
    ]),
    ("rooftop", ["rooftop", "roof top", "skyline", "terrace party", "sky bar", "skybar"]),
    ("brunch", ["brunch", "bottomless mimosa", "mimosa", "boozy brunch"]),
    ("day-party", DAY_PARTY_KEYWORDS),
    ("club", [
        "club", "nightclub", "dj set", "dance floor", "bottle service", "vip table",
        "rave", "edm", "techno", "house music", "after party", "afterparty", "after-party",
    ]),
    ("networking", [
        "networking", "mixer", "happy hour", "happy-hour", "professional", "meetup",
        "meet-up", "industry night", "speed dating", "singles",
    ]),
    ("celebration", [
        "birthday", "anniversary", "graduation", "bachelor", "bachelorette", "gala",
        "celebration", "launch party", "release party", "opening party",
        "new year", "halloween", "masquerade", "holiday party",
    ]),
    ("social", ["social", "mingle", "gathering", "community party", "block party"]),
]

SUBCATEGORY_PRIORITY: tuple[str, ...] = tuple(name for name, _ in SUBCATEGORY_KEYWORDS) + ("general",)

# Canonical category -> keywords for the text fallback; party is decided by classify()
CATEGORY_KEYWORDS: list[tuple[Category, list[str]]] = [
    ("music", [
        "concert", "live music", "band", "tour", "festival", "jazz", "orchestra",
        "symphony", "hip hop", "hip-hop", "rock", "country music", "singer",
        "acoustic", "dj", "album", "music",
    ]),
    ("sports", [
        "game", "match", "tournament", "championship", "vs", "vs.", "marathon",
        "race", "basketball", "football", "soccer", "baseball", "hockey", "tennis",
        "golf", "boxing", "ufc", "wrestling", "5k",
    ]),
    ("arts", [
        "theatre", "theater", "gallery", "museum", "exhibit", "exhibition", "art",
        "comedy", "stand-up", "ballet", "opera", "dance performance", "poetry",
        "film", "screening", "broadway", "musical",
    ]),
    ("family", [
        "kids", "children", "family", "toddler", "storytime", "story time",
        "all ages", "zoo", "puppet",
    ]),
    ("food", [
        "food", "wine", "beer", "tasting", "dinner", "culinary", "chef",
        "brewery", "cocktail", "food truck", "farmers market", "whiskey",
    ]),
]

TICKETMASTER_SEGMENTS: dict[str, Category] = {
    "music": "music",
    "sports": "sports",
    "arts & theatre": "arts",
    "arts": "arts",
    "theatre": "arts",
    "film": "arts",
    "family": "family",
    "family & education": "family",
    "food": "food",
    "food & drink": "food",
    "miscellaneous": "other",
}

PREDICTHQ_CATEGORIES: dict[str, Category] = {
    "concerts": "music",
    "festivals": "music",
    "sports": "sports",
    "performing-arts": "arts",
    "community": "arts",
    "expos": "arts",
    "conferences": "other",
    "academic": "family",
    "school-holidays": "family",
    "food-drink": "food",
}

PREDICTHQ_PARTY_LABELS = {"nightlife", "party", "club", "dance", "social"}

# Canonical category -> provider search vocabulary
TICKETMASTER_SEGMENT_NAMES: dict[str, str] = {
    "music": "Music",
    "sports": "Sports",
    "arts": "Arts & Theatre",
    "family": "Family",
    "party": "Music",
}

PREDICTHQ_SEARCH_CATEGORIES: dict[str, list[str]] = {
    "music": ["concerts", "festivals"],
    "sports": ["sports"],
    "arts": ["performing-arts", "community", "expos"],
    "family": ["community", "festivals"],
    "food": ["food-drink", "festivals"],
    "party": ["concerts", "festivals", "community", "performing-arts"],
    "other": ["community", "conferences", "expos"],
}


def has_keyword(text: str, keywords: list[str]) -> bool:
    """True if any keyword occurs anywhere in text, ignoring case."""
    if not text:
        return False
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


@lru_cache(maxsize=None)
def _word_pattern(keywords: tuple[str, ...]) -> re.Pattern:
    alternation = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"(?<![a-z0-9])(?:{alternation})", re.IGNORECASE)


def has_word(text: str, keywords: list[str]) -> bool:
    """True if any keyword occurs in text at a word start."""
    if not text:
        return False
    return _word_pattern(tuple(keywords)).search(text) is not None


def _hour_of(time_of_day: Union[datetime, time, str, None]) -> Optional[int]:
    if time_of_day is None:
        return None
    if isinstance(time_of_day, (datetime, time)):
        return time_of_day.hour
    try:
        return int(str(time_of_day).split(":")[0])
    except ValueError:
        return None


def subcategory_for_hour(hour: Optional[int]) -> Optional[PartySubcategory]:
    """Time-of-day bias when no subcategory keyword matched.

    Windows include their start hour and exclude their end hour: club runs
    from 21:00 up to but not including 04:00.
    """
    if hour is None:
        return None
    if 10 <= hour < 14:
        return "brunch"
    if 14 <= hour < 17:
        return "day-party"
    if 17 <= hour < 21:
        return "networking"
    if hour >= 21 or hour < 4:
        return "club"
    return None


def is_party(title: str, description: str = "") -> bool:
    text = f"{title or ''} {description or ''}"
    return has_keyword(text, STRONG_PARTY_KEYWORDS) or has_keyword(text, DAY_PARTY_KEYWORDS)


def detect_subcategory(
    title: str,
    description: str = "",
    time_of_day: Union[datetime, time, str, None] = None,
) -> PartySubcategory:
    """Resolve a party subcategory. Keywords beat the time heuristic."""
    text = f"{title or ''} {description or ''}"
    for name, keywords in SUBCATEGORY_KEYWORDS:
        if has_keyword(text, keywords):
            return name
    return subcategory_for_hour(_hour_of(time_of_day)) or "general"


def classify(
    title: str,
    description: str = "",
    time_of_day: Union[datetime, time, str, None] = None,
) -> tuple[bool, Optional[PartySubcategory]]:
    """Decide whether an event is a party and, if so, which kind.

    Returns:
        (is_party, subcategory); subcategory is None when not a party
    """
    if not is_party(title, description):
        return False, None
    return True, detect_subcategory(title, description, time_of_day)


def categorize_text(title: str, description: str = "") -> Category:
    """Keyword fallback for events whose provider category did not map."""
    if is_party(title, description):
        return "party"
    text = f"{title or ''} {description or ''}"
    for category, keywords in CATEGORY_KEYWORDS:
        if has_word(text, keywords):
            return category
    return "other"


def map_provider_category(provider: str, value: Optional[str], labels: tuple[str, ...] = ()) -> Optional[Category]:
    """Look up a provider's category vocabulary. None means no direct mapping."""
    if provider == "predicthq" and PREDICTHQ_PARTY_LABELS.intersection(l.lower() for l in labels):
        return "party"
    if not value:
        return None
    key = value.strip().lower()
    if provider == "ticketmaster":
        return TICKETMASTER_SEGMENTS.get(key)
    if provider == "predicthq":
        return PREDICTHQ_CATEGORIES.get(key)
    return None


def resolve_category(
    provider: str,
    value: Optional[str],
    title: str,
    description: str = "",
    labels: tuple[str, ...] = (),
) -> Category:
    """Provider mapping first, keyword inspection of the text otherwise."""
    mapped = map_provider_category(provider, value, labels)
    if mapped is not None and mapped != "other":
        return mapped
    fallback = categorize_text(title, description)
    if fallback != "other":
        return fallback
    return mapped or "other"


def tag(event: Event) -> Event:
    """Apply party classification to a normalized event.

    The classifier overrides the provider category when it detects a party.
    Only provider text is inspected; a synthesized description is ignored.
    """
    party, subcategory = classify(event.title, event.provider_description, event.start)
    if party:
        return event.model_copy(update={"category": "party", "party_subcategory": subcategory})
    if event.category == "party":
        fallback = subcategory_for_hour(_hour_of(event.start)) or "general"
        return event.model_copy(update={"party_subcategory": fallback})
    if event.party_subcategory is not None:
        return event.model_copy(update={"party_subcategory": None})
    return event
