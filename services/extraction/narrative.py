"""Regex extraction of descriptive fields from the vision model's narrative.

The narrative is whatever the model wrote in answer to the master prompt:
loosely organized under numbered section headings ("3. ERA & DATING") but
with no guaranteed format. Each field is described by a `FieldRule` in
`FIELD_RULES`: a scope (a section or the whole text), an ordered list of
patterns, and a post-processing function. The first pattern that yields a
non-empty value wins; nothing here raises, a miss leaves the field unset.
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Pattern, Sequence, Tuple

from models.analysis_models import (
    RARITY_TIERS,
    AdditionalObservations,
    ConditionResult,
    DetailedFeatures,
    EraResult,
)
from services.extraction.platforms import extract_platform_names

_FLAGS = re.IGNORECASE | re.MULTILINE

# Known numbered sections; the number itself is not checked.
SECTION_LABELS: Dict[str, str] = {
    "brand": r"BRAND\s+IDENTIFICATION(?:\s*(?:&|AND)\s*AUTHENTICATION)?",
    "pricing": r"PRICING\s+ESTIMATION",
    "era": r"ERA\s*(?:&|AND)\s*DATING",
    "features": r"DETAILED\s+FEATURES",
    "rarity": r"RARITY(?:\s*\(NEW\))?",
    "observations": r"ADDITIONAL\s+OBSERVATIONS",
}

_HEADING_PREFIX = r"^[ \t]*(?:#{1,6}[ \t]*)?(?:\*\*)?[ \t]*\d{1,2}\.[ \t]*(?:\*\*)?[ \t]*"
_SECTION_HEADINGS: Dict[str, Pattern[str]] = {
    key: re.compile(_HEADING_PREFIX + label, _FLAGS) for key, label in SECTION_LABELS.items()
}
# Any numbered all-caps heading, or a markdown header line, ends a section.
_GENERIC_HEADING = re.compile(_HEADING_PREFIX + r"[A-Z][A-Z&/ ]*[A-Z]\b", re.MULTILINE)
_MARKDOWN_HEADING = re.compile(r"^[ \t]*#{1,6}[ \t]", re.MULTILINE)

DEFAULT_ERA_CLASSIFICATION = "Modern"
DEFAULT_ERA_RATIONALE = "Based on style and condition indicators"
DEFAULT_RARITY = "common"
DEFAULT_CONDITION = ConditionResult(
    score=3,
    description="Good condition based on visual analysis",
    tags=["pre-owned", "wearable"],
)
CONDITION_SCORES = {"new": 5, "excellent": 4, "good": 3, "fair": 2, "poor": 1}

DECADE = re.compile(r"\b(1[89]\d0s|20\d0s)\b", re.IGNORECASE)
RARITY = re.compile(r"\b(" + "|".join(RARITY_TIERS) + r")\b", re.IGNORECASE)
NEEDS_MORE_IMAGES = re.compile(
    r"upload.*photo.*(?:neck\s+tag|care\s+label|close-up\s+stitching)", re.IGNORECASE
)


def find_section(narrative: str, key: str) -> Optional[str]:
    """Return the text under the first heading for `key`, or None if absent.

    The section runs from just after the heading label (so a value written on
    the heading line itself is kept) to the next heading or end of text.
    """
    if not narrative:
        return None
    heading = _SECTION_HEADINGS[key].search(narrative)
    if heading is None:
        return None

    start = heading.end()
    line_end = narrative.find("\n", start)
    next_line = len(narrative) if line_end == -1 else line_end + 1

    end = len(narrative)
    boundaries = [_GENERIC_HEADING, _MARKDOWN_HEADING, *_SECTION_HEADINGS.values()]
    for boundary in boundaries:
        found = boundary.search(narrative, next_line)
        if found and found.start() < end:
            end = found.start()
    return narrative[start:end]


def clean_value(value: str) -> Optional[str]:
    """Strip whitespace and stray markdown markers; return None when empty."""
    cleaned = value.replace("**", "").strip().strip("*_:-–").strip()
    return cleaned or None


def clean_paragraph(value: str) -> Optional[str]:
    lines = [clean_value(line) for line in value.splitlines()]
    joined = "\n".join(line for line in lines if line)
    return joined or None


@dataclass(frozen=True)
class FieldRule:
    """How to extract one narrative field."""

    name: str
    patterns: Tuple[Pattern[str], ...]
    section: Optional[str] = None
    search_whole_narrative: bool = False
    post: Callable[[str], Optional[str]] = clean_value

    def scopes(self, narrative: str) -> List[str]:
        scopes: List[str] = []
        if self.section is not None:
            section_text = find_section(narrative, self.section)
            if section_text is not None:
                scopes.append(section_text)
        if self.section is None or self.search_whole_narrative:
            scopes.append(narrative)
        return scopes

    def apply(self, narrative: str) -> Optional[str]:
        for scope in self.scopes(narrative or ""):
            for pattern in self.patterns:
                match = pattern.search(scope)
                if match is None:
                    continue
                value = self.post(match.group(1))
                if value:
                    return value
        return None


def _labelled_line(label: str) -> Tuple[Pattern[str], Pattern[str]]:
    """Patterns for `Label: value` at the start of a line, then anywhere."""
    return (
        re.compile(r"^[ \t>*•\-]*(?:\*\*)?" + label + r"(?:\*\*)?[ \t]*[:\-–][ \t]*(?:\*\*)?[ \t]*(.+?)[ \t]*$", _FLAGS),
        re.compile(r"\b" + label + r"[ \t]*:[ \t]*(.+?)[ \t]*$", _FLAGS),
    )


def _paragraph_after(label: str, terminators: Sequence[str]) -> Pattern[str]:
    stop = "|".join([r"\n[ \t]*\n", *terminators, r"\Z"])
    return re.compile(label + r"[:*\s]+(.+?)(?=" + stop + ")", re.IGNORECASE | re.DOTALL)


_CULTURAL = r"cultural(?:\s+(?:or|and|&)\s+historical)?\s+significance"
_INVESTMENT = r"investment\s+potential"
_RESALE = r"resale\s+platforms?"


def _lower(value: str) -> Optional[str]:
    cleaned = clean_value(value)
    return cleaned.lower() if cleaned else None


FIELD_RULES: Dict[str, FieldRule] = {
    rule.name: rule
    for rule in (
        FieldRule("rarity", (RARITY,), section="rarity", search_whole_narrative=True, post=_lower),
        FieldRule("decade", (DECADE,), section="era"),
        FieldRule(
            "material",
            _labelled_line(r"materials?(?:\s+composition)?(?:\s+(?:and|&)\s+fabric\s+quality)?"),
            section="features",
        ),
        FieldRule(
            "color",
            _labelled_line(r"colou?rs?(?:\s+(?:and|&)\s+pattern(?:\s+description)?)?"),
            section="features",
        ),
        FieldRule("pattern", _labelled_line(r"patterns?"), section="features"),
        FieldRule("size", _labelled_line(r"sizes?(?:\s+information)?(?:\s+visible)?"), section="features"),
        FieldRule("care_instructions", _labelled_line(r"care\s+instructions?"), section="features"),
        FieldRule(
            "country_of_manufacture",
            _labelled_line(r"country\s+of\s+(?:manufacture|origin)")
            + (re.compile(r"\bmade\s+in\s+([A-Z][A-Za-z .]*?)(?:[.,;)]|$)", _FLAGS),),
            section="features",
        ),
        FieldRule(
            "condition",
            (
                re.compile(
                    r"condition(?:\s+assessment)?(?:\*\*)?[ \t]*[:\-–]?[ \t]*(?:very\s+|like\s+)?(new|excellent|good|fair|poor)\b", _FLAGS
                ),
            ),
            section="features",
            post=_lower,
        ),
        FieldRule(
            "brand_name",
            (re.compile(r"^[ \t>*•\-]*(?:\*\*)?brand(?:\s+name)?(?:\*\*)?[ \t]*[:\-–][ \t*]*([^\n*(]+)", _FLAGS),),
            section="brand",
        ),
        FieldRule(
            "brand_confidence",
            (re.compile(r"confidence(?:\s+level)?[^\d\n]{0,20}?(\d{1,3})\s*%?", _FLAGS),),
            section="brand",
        ),
        FieldRule(
            "cultural_significance",
            (_paragraph_after(_CULTURAL, [_INVESTMENT, _RESALE]),),
            section="observations",
            post=clean_paragraph,
        ),
        FieldRule(
            "investment_potential",
            (_paragraph_after(_INVESTMENT, [_RESALE, _CULTURAL]),),
            section="observations",
            post=clean_paragraph,
        ),
        FieldRule(
            "resale_platforms",
            (_paragraph_after(_RESALE, [_INVESTMENT, _CULTURAL]),),
            section="observations",
            post=clean_paragraph,
        ),
    )
}


def extract_field(name: str, narrative: str) -> Optional[str]:
    """Apply the rule registered for `name` to `narrative`."""
    return FIELD_RULES[name].apply(narrative)


def extract_rarity(narrative: str) -> str:
    return extract_field("rarity", narrative) or DEFAULT_RARITY


def extract_era(narrative: str) -> EraResult:
    """Classification is the first line of the era section; the rest is the rationale."""
    section = find_section(narrative, "era")
    if section is None:
        return EraResult(classification=DEFAULT_ERA_CLASSIFICATION, rationale=DEFAULT_ERA_RATIONALE)

    lines = [line for line in (clean_value(raw.lstrip("•-* \t")) for raw in section.splitlines()) if line]
    classification = lines[0] if lines else DEFAULT_ERA_CLASSIFICATION
    rationale = "\n".join(lines[1:]) or DEFAULT_ERA_RATIONALE
    return EraResult(
        classification=classification,
        rationale=rationale,
        decade=extract_field("decade", narrative),
    )


def extract_detailed_features(narrative: str) -> Optional[DetailedFeatures]:
    names = ("material", "color", "pattern", "size", "care_instructions", "country_of_manufacture")
    values = {name: extract_field(name, narrative) for name in names}
    if not any(values.values()):
        return None
    return DetailedFeatures(**values)


def extract_condition(narrative: str) -> ConditionResult:
    word = extract_field("condition", narrative)
    if word is None:
        return DEFAULT_CONDITION.model_copy(deep=True)
    return ConditionResult(
        score=CONDITION_SCORES[word],
        description=f"{word.capitalize()} condition",
        tags=["new", "unworn"] if word == "new" else ["pre-owned", word],
    )


def extract_additional_observations(narrative: str) -> Optional[AdditionalObservations]:
    cultural = extract_field("cultural_significance", narrative)
    investment = extract_field("investment_potential", narrative)
    platform_text = extract_field("resale_platforms", narrative)
    platforms = extract_platform_names(platform_text) if platform_text else []
    if not (cultural or investment or platforms):
        return None
    return AdditionalObservations(
        cultural_significance=cultural,
        investment_potential=investment,
        resale_platforms=platforms or None,
    )


def extract_brand_mention(narrative: str) -> Tuple[Optional[str], Optional[int]]:
    """Return the brand name and confidence stated in the brand section, if any."""
    name = extract_field("brand_name", narrative)
    confidence = extract_field("brand_confidence", narrative)
    return name, int(confidence) if confidence is not None else None


def needs_more_images(narrative: str) -> bool:
    return bool(NEEDS_MORE_IMAGES.search(narrative or ""))


# Keyword summaries of the narrative, kept alongside the raw text.
LABEL_PATTERNS = (
    re.compile(r"\b(cotton|polyester|wool|silk|denim|leather|linen|nylon)\b", re.IGNORECASE),
    re.compile(r"\b(t-shirt|shirt|jacket|jeans|pants|hoodie|sweater|dress|skirt)\b", re.IGNORECASE),
    re.compile(r"\b(vintage|retro|modern|contemporary|classic)\b", re.IGNORECASE),
)
OCR_PATTERNS = (
    re.compile(r"tags?\s*(?:shows?|reads?|says?|contains?)[\s:]+[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"labels?\s*(?:shows?|reads?|says?|contains?)[\s:]+[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"texts?\s*(?:visible|found|detected)[\s:]+[\"']([^\"']+)[\"']", re.IGNORECASE),
)
LOGO_PATTERNS = (
    re.compile(r"\b(nike|adidas|supreme|gucci|levi'?s|zara|north face|puma|reebok|jordan)\b", re.IGNORECASE),
    re.compile(r"logos?\s*(?:shows?|displays?|features?)[\s:]+(\w+)", re.IGNORECASE),
)


def _unique_lower(matches: List[str]) -> List[str]:
    return list(dict.fromkeys(match.strip().lower() for match in matches if match.strip()))


def extract_labels(narrative: str) -> List[str]:
    return _unique_lower([m for pattern in LABEL_PATTERNS for m in pattern.findall(narrative or "")])


def extract_ocr_text(narrative: str) -> str:
    return "; ".join(m for pattern in OCR_PATTERNS for m in pattern.findall(narrative or ""))


def extract_logos(narrative: str) -> List[str]:
    return _unique_lower([m for pattern in LOGO_PATTERNS for m in pattern.findall(narrative or "")])


@dataclass
class VisionResult:
    """The narrative answer plus keyword summaries pulled from it."""

    raw_text: str
    labels: List[str] = field(default_factory=list)
    ocr_text: str = ""
    logos: List[str] = field(default_factory=list)

    @classmethod
    def from_text(cls, raw_text: str) -> "VisionResult":
        return cls(
            raw_text=raw_text,
            labels=extract_labels(raw_text),
            ocr_text=extract_ocr_text(raw_text),
            logos=extract_logos(raw_text),
        )

    def brand_alternatives(self, brand_name: str) -> List[str]:
        """Detected logos other than `brand_name`, title-cased."""
        chosen = (brand_name or "").strip().lower()
        return [string.capwords(logo) for logo in self.logos if logo != chosen]
