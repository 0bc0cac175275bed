"""Query Normalizer.

Turns a free-text prompt (English or Turkish) plus optional structured
filters into a NormalizedQuery. Pure and deterministic: no I/O, no clock.
"""

import logging
import re

from discovery.orchestrator.schemas import NormalizedQuery, SearchFilters
from discovery.utils.place_terms import (
    CATEGORY_TERMS,
    DEFAULT_KEYWORD,
    DIETARY_TERMS,
    FILLER_PHRASES,
    LOCATION_NAMES,
    PRICE_TERMS,
    SUBSTITUTIONS,
    TOURISM_TAGS,
)

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[^\w\s'\-]")
_WHITESPACE = re.compile(r"\s+")


def _phrase_pattern(phrase: str) -> re.Pattern:
    return re.compile(rf"(?<!\w){re.escape(phrase)}(?!\w)")


_FILLER_PATTERNS = [_phrase_pattern(p) for p in sorted(FILLER_PHRASES, key=len, reverse=True)]
_SUBSTITUTION_PATTERNS = [
    (_phrase_pattern(src), dst)
    for src, dst in sorted(SUBSTITUTIONS.items(), key=lambda kv: len(kv[0]), reverse=True)
]
_PRICE_PATTERNS = [(_phrase_pattern(p), tier) for p, tier in PRICE_TERMS]
_LOCATION_PATTERNS = [(_phrase_pattern(name), name) for name in LOCATION_NAMES]
_MULTIWORD_DIETARY = [(_phrase_pattern(p), tag) for p, tag in DIETARY_TERMS.items() if " " in p]


def normalize(
    prompt: str | None,
    locale: str = "en",
    filters: SearchFilters | None = None,
) -> NormalizedQuery:
    """Normalize a raw prompt into search terms, tags, location hint and price tier."""
    text = _clean(prompt or "", locale)
    tokens = text.split()

    tags = _extract_tags(tokens)
    dietary = _extract_dietary(text, tokens)
    price_tier = _extract_price(text)
    location = _extract_location(text)

    if filters is not None:
        for category in filters.categories:
            tag = CATEGORY_TERMS.get(category.strip().lower(), category.strip().lower())
            if tag and tag not in tags:
                tags.append(tag)
        for item in filters.dietary:
            term = DIETARY_TERMS.get(item.strip().lower(), item.strip().lower())
            if term and term not in dietary:
                dietary.append(term)
        if filters.budget is not None:
            price_tier = filters.budget

    is_default = not tags
    terms = DEFAULT_KEYWORD.split() if is_default else list(tags)
    terms.extend(d for d in dietary if d not in terms)

    result = NormalizedQuery(
        keyword=" ".join(terms),
        location_hint=location,
        tags=tuple(tags),
        price_tier=price_tier,
        tourism_intent=any(t in TOURISM_TAGS for t in tags),
        is_default=is_default,
    )
    logger.debug(
        "Prompt normalized | original=%s | keyword=%s | location=%s | price=%s",
        (prompt or "")[:80], result.keyword, location, price_tier,
    )
    return result


def broaden_keywords(keyword: str | None) -> str:
    """Broaden a keyword string after a zero-result search."""
    if not keyword or not keyword.strip():
        return "restaurant cafe tourist_attraction"

    terms = keyword.split()
    if "restaurant" in terms or "cafe" in terms:
        extra = ["tourist_attraction", "point_of_interest"]
    else:
        extra = ["restaurant", "cafe"]
    return " ".join(terms + [t for t in extra if t not in terms])


# ═══════════════ HELPERS ═══════════════

def _lower(text: str, locale: str) -> str:
    text = text.replace("İ", "i")
    if locale == "tr":
        text = text.replace("I", "ı")
    return text.lower()


def _clean(prompt: str, locale: str) -> str:
    text = _lower(prompt, locale)
    text = _PUNCTUATION.sub(" ", text)
    for pattern in _FILLER_PATTERNS:
        text = pattern.sub(" ", text)
    for pattern, replacement in _SUBSTITUTION_PATTERNS:
        text = pattern.sub(replacement, text)
    return _WHITESPACE.sub(" ", text).strip()


def _extract_tags(tokens: list[str]) -> list[str]:
    tags: list[str] = []
    for token in tokens:
        tag = CATEGORY_TERMS.get(token)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _extract_dietary(text: str, tokens: list[str]) -> list[str]:
    found: list[str] = []
    for pattern, term in _MULTIWORD_DIETARY:
        if pattern.search(text) and term not in found:
            found.append(term)
    for token in tokens:
        term = DIETARY_TERMS.get(token)
        # Dietary words that are also category tags already reach the keyword
        if term and term not in found and token not in CATEGORY_TERMS:
            found.append(term)
    return found


def _extract_price(text: str) -> int | None:
    for pattern, tier in _PRICE_PATTERNS:
        if pattern.search(text):
            return tier
    return None


def _extract_location(text: str) -> str | None:
    for pattern, name in _LOCATION_PATTERNS:
        if pattern.search(text):
            return name.title()
    return None
