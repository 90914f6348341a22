"""Resale platform name extraction from free text."""

from __future__ import annotations

import re
from typing import List

KNOWN_PLATFORMS = (
    "Grailed",
    "Depop",
    "eBay",
    "Poshmark",
    "Vinted",
    "Vestiaire Collective",
    "The RealReal",
    "StockX",
    "GOAT",
    "Stadium Goods",
    "Mercari",
    "Etsy",
    "Facebook Marketplace",
    "Instagram",
    "Craigslist",
    "Carousell",
)

SEPARATORS = re.compile(r"[,;]|\sand\s|\sor\s", re.IGNORECASE)
MAX_FRAGMENT_LENGTH = 30
MAX_FRAGMENTS = 5


def find_known_platforms(text: str) -> List[str]:
    """Return known platforms mentioned in `text`, ordered by first appearance."""
    lowered = text.lower()
    hits = []
    for index, platform in enumerate(KNOWN_PLATFORMS):
        position = lowered.find(platform.lower())
        if position != -1:
            hits.append((position, index, platform))
    hits.sort()
    return list(dict.fromkeys(platform for _, _, platform in hits))


def split_platform_fragments(text: str) -> List[str]:
    """Split a free-form list into short fragments, keeping at most five."""
    fragments = [part.strip() for part in SEPARATORS.split(text)]
    fragments = [part for part in fragments if 0 < len(part) < MAX_FRAGMENT_LENGTH]
    return fragments[:MAX_FRAGMENTS]


def extract_platform_names(text: str) -> List[str]:
    """Best-effort list of resale platform names from a candidate string.

    Known platform names win. Otherwise short comma/semicolon/and/or separated
    fragments are returned. If neither yields anything, the stripped candidate
    text itself is returned unchanged as the only entry.
    """
    candidate = (text or "").strip()
    if not candidate:
        return []

    known = find_known_platforms(candidate)
    if known:
        return known

    fragments = split_platform_fragments(candidate)
    if fragments:
        return fragments

    return [candidate]
