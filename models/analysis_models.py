"""Structured analysis result returned to clients and stored with each session.

Attributes are snake_case in Python and serialize to camelCase JSON keys via
`model_dump(by_alias=True)`.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

VERDICTS = ("AUTHENTIC", "LIKELY AUTHENTIC", "QUESTIONABLE", "COUNTERFEIT")
RARITY_TIERS = ("common", "uncommon", "rare", "epic", "legendary", "mythic")

Rarity = Literal["common", "uncommon", "rare", "epic", "legendary", "mythic"]


class CamelModel(BaseModel):
    """Base model serializing attributes with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthenticityAssessment(CamelModel):
    score: int
    confidence: int
    # Known tokens are listed in VERDICTS; anything else the model says is kept as-is.
    verdict: str
    explanation: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)
    authenticity_markers: List[str] = Field(default_factory=list)
    detected_brand: Optional[str] = None


class BrandResult(CamelModel):
    name: str
    confidence: int
    alternatives: List[str] = Field(default_factory=list)


class ConditionResult(CamelModel):
    score: int
    description: str
    tags: List[str] = Field(default_factory=list)


class EraResult(CamelModel):
    classification: str
    rationale: str
    decade: Optional[str] = None


class CurrencyAmount(CamelModel):
    inr: int
    usd: int


class PriceRange(CamelModel):
    low: int
    median: int
    high: int


class MarketPrice(CamelModel):
    inr: PriceRange
    usd: PriceRange


class PriceEstimate(CamelModel):
    retail_price: Optional[CurrencyAmount] = None
    current_market_price: MarketPrice
    confidence: int
    reasoning: Optional[str] = None
    market_insights: Optional[str] = None


class DetailedFeatures(CamelModel):
    material: Optional[str] = None
    color: Optional[str] = None
    pattern: Optional[str] = None
    size: Optional[str] = None
    care_instructions: Optional[str] = None
    country_of_manufacture: Optional[str] = None


class AdditionalObservations(CamelModel):
    cultural_significance: Optional[str] = None
    investment_potential: Optional[str] = None
    resale_platforms: Optional[List[str]] = None


class AnalysisResult(CamelModel):
    """Everything the service knows about one submitted item."""

    authenticity: AuthenticityAssessment
    brand: BrandResult
    condition: ConditionResult
    era: EraResult
    price_estimate: PriceEstimate
    rarity: Optional[Rarity] = None
    detailed_features: Optional[DetailedFeatures] = None
    additional_observations: Optional[AdditionalObservations] = None
    thumbnails: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    needs_more_images: bool = False

    def to_api(self) -> dict:
        """Return the camelCase JSON-ready representation without empty optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)
