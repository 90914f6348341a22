"""Submission pipeline: narrative, then authenticity, then price, then assembly.

Each stage consumes the typed output of the one before it. The price stage
depends on the authenticity result because its prompt embeds that summary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from models.analysis_models import (
    AnalysisResult,
    AuthenticityAssessment,
    BrandResult,
    PriceEstimate,
)
from models.uploaded_image import UploadedImage
from services.extraction import narrative as narrative_fields
from services.extraction.narrative import VisionResult

LOGGER = logging.getLogger(__name__)

LOW_SCORE_THRESHOLD = 70
DEFAULT_BRAND_CONFIDENCE = 50
STANDARD_WARNINGS = (
    "This is an automated AI estimate - not a legal authenticity certificate.",
    "For high-value items, consult a professional authenticator.",
)


@dataclass
class PipelineOutput:
    vision: VisionResult
    authenticity: AuthenticityAssessment
    price: PriceEstimate


class AnalysisPipeline:
    """Runs the model stages for one submission, strictly in order."""

    def __init__(self, gateway) -> None:
        if gateway is None:
            raise ValueError("A model gateway is required.")
        self.gateway = gateway

    async def narrative_stage(self, images: Sequence[UploadedImage]) -> VisionResult:
        LOGGER.info("Analyzing %d image(s) with the master prompt", len(images))
        return await self.gateway.analyze(images)

    async def authenticity_stage(
        self, images: Sequence[UploadedImage], vision: VisionResult
    ) -> AuthenticityAssessment:
        LOGGER.info("Computing authenticity score")
        return await self.gateway.score_authenticity(images, vision)

    async def price_stage(
        self,
        images: Sequence[UploadedImage],
        vision: VisionResult,
        authenticity: AuthenticityAssessment,
        location: Optional[str],
    ) -> PriceEstimate:
        LOGGER.info("Estimating price")
        return await self.gateway.estimate_price(images, vision, authenticity, location)

    async def run(self, images: Sequence[UploadedImage], location: Optional[str] = None) -> PipelineOutput:
        vision = await self.narrative_stage(images)
        authenticity = await self.authenticity_stage(images, vision)
        price = await self.price_stage(images, vision, authenticity, location)
        return PipelineOutput(vision=vision, authenticity=authenticity, price=price)


def build_brand(vision: VisionResult, authenticity: AuthenticityAssessment) -> BrandResult:
    """Brand stated in the narrative wins over the authenticity call's detected brand."""
    name, confidence = narrative_fields.extract_brand_mention(vision.raw_text)
    name = name or authenticity.detected_brand or "Unknown"
    if confidence is None:
        # A zero from the authenticity call means it gave no usable confidence.
        confidence = authenticity.confidence or DEFAULT_BRAND_CONFIDENCE
    return BrandResult(name=name, confidence=confidence, alternatives=vision.brand_alternatives(name))


def build_warnings(vision: VisionResult, authenticity: AuthenticityAssessment) -> List[str]:
    warnings = list(STANDARD_WARNINGS)
    if authenticity.score < LOW_SCORE_THRESHOLD:
        warnings.append("Low authenticity score detected. Please verify before purchase.")
    if authenticity.red_flags:
        warnings.append(f"Red flags detected: {', '.join(authenticity.red_flags)}")
    if not vision.raw_text.strip():
        warnings.append("The detailed analysis came back empty; descriptive fields use default values.")
    return warnings


def assemble_analysis(output: PipelineOutput, thumbnails: Sequence[str] = ()) -> AnalysisResult:
    """Combine the model outputs and narrative-derived fields into one result."""
    text = output.vision.raw_text
    return AnalysisResult(
        authenticity=output.authenticity,
        brand=build_brand(output.vision, output.authenticity),
        condition=narrative_fields.extract_condition(text),
        era=narrative_fields.extract_era(text),
        price_estimate=output.price,
        rarity=narrative_fields.extract_rarity(text),
        detailed_features=narrative_fields.extract_detailed_features(text),
        additional_observations=narrative_fields.extract_additional_observations(text),
        thumbnails=list(thumbnails),
        warnings=build_warnings(output.vision, output.authenticity),
        needs_more_images=narrative_fields.needs_more_images(text),
    )
