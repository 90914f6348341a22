"""Calls to the external vision and chat models using OpenAI's Responses API."""

import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from config import AppConfig
from models.analysis_models import AuthenticityAssessment, PriceEstimate
from models.uploaded_image import UploadedImage
from services.errors import UpstreamModelError
from services.extraction.narrative import VisionResult
from services.extraction.structured import authenticity_from_text, price_from_text
from services.openai.media_inputs import build_inputs
from services.openai.prompts import (
    CHAT_SYSTEM_PROMPT,
    MASTER_ANALYSIS_PROMPT,
    authenticity_prompt,
    price_prompt,
)
from services.openai.response_parser import extract_text, extract_usage

LOGGER = logging.getLogger(__name__)

NARRATIVE_MAX_TOKENS = 4096
JSON_MAX_TOKENS = 2048
CHAT_MAX_TOKENS = 1024
CHAT_FALLBACK_REPLY = "I apologize, I could not generate a response."


class ModelGateway:
    """Owns the three model calls per submission and the one call per chat turn.

    Each call is a single attempt with a fixed timeout; failures surface as
    `UpstreamModelError`. The gateway holds no mutable state.
    """

    def __init__(self, client: AsyncOpenAI, config: Optional[AppConfig] = None) -> None:
        """Initialize the gateway with an OpenAI async client."""
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.config = config or AppConfig()

    async def analyze(self, images: Sequence[UploadedImage]) -> VisionResult:
        """Run the master analysis prompt over all images and return the narrative."""
        text = await self._create_text(
            "analysis",
            build_inputs(MASTER_ANALYSIS_PROMPT, images),
            model=self.config.vision_model,
            timeout=self.config.analyze_timeout,
            max_output_tokens=NARRATIVE_MAX_TOKENS,
        )
        vision = VisionResult.from_text(text)
        LOGGER.info("Narrative received: %d chars, labels=%s, logos=%s", len(text), vision.labels, vision.logos)
        return vision

    async def score_authenticity(
        self, images: Sequence[UploadedImage], vision: VisionResult
    ) -> AuthenticityAssessment:
        """Ask for the authenticity JSON block, grounded on the narrative.

        Raises:
            UpstreamModelError: If the call fails.
            ModelResponseUnparseable: If the answer holds no usable JSON.
        """
        text = await self._create_text(
            "authenticity",
            build_inputs(authenticity_prompt(vision.raw_text), images),
            model=self.config.vision_model,
            timeout=self.config.json_timeout,
            max_output_tokens=JSON_MAX_TOKENS,
        )
        return authenticity_from_text(text)

    async def estimate_price(
        self,
        images: Sequence[UploadedImage],
        vision: VisionResult,
        authenticity: AuthenticityAssessment,
        location: Optional[str] = None,
    ) -> PriceEstimate:
        """Ask for the price JSON block, grounded on the narrative and authenticity result."""
        prompt = price_prompt(vision.raw_text, authenticity, location or self.config.default_location)
        text = await self._create_text(
            "price",
            build_inputs(prompt, images),
            model=self.config.vision_model,
            timeout=self.config.json_timeout,
            max_output_tokens=JSON_MAX_TOKENS,
        )
        return price_from_text(text)

    async def chat(self, message: str, context: str) -> str:
        """Answer a follow-up question; `context` already embeds `message` and the transcript."""
        prompt = context or message
        text = await self._create_text(
            "chat",
            build_inputs(prompt, system_prompt=CHAT_SYSTEM_PROMPT),
            model=self.config.chat_model,
            timeout=self.config.chat_timeout,
            max_output_tokens=CHAT_MAX_TOKENS,
        )
        return text.strip() or CHAT_FALLBACK_REPLY

    async def _create_text(
        self,
        purpose: str,
        inputs: List[Dict[str, Any]],
        *,
        model: str,
        timeout: float,
        max_output_tokens: int,
    ) -> str:
        """Send one Responses API request and return its output text."""
        start = time.time()
        try:
            response = await self.client.responses.create(
                model=model,
                input=inputs,
                max_output_tokens=max_output_tokens,
                timeout=timeout,
            )
        except openai.APITimeoutError as exc:
            LOGGER.error("OpenAI %s call timed out after %.0fs", purpose, timeout)
            raise UpstreamModelError(f"{purpose} request timed out after {timeout:.0f}s") from exc
        except openai.APIStatusError as exc:
            LOGGER.error("OpenAI %s call failed with status %s: %s", purpose, exc.status_code, exc.message)
            raise UpstreamModelError(exc.message, status_code=exc.status_code) from exc
        except openai.OpenAIError as exc:
            LOGGER.error("OpenAI %s call failed: %s", purpose, exc)
            raise UpstreamModelError(str(exc)) from exc

        usage = extract_usage(response)
        LOGGER.info(
            "OpenAI %s call finished in %.2fs (input_tokens=%s, output_tokens=%s)",
            purpose,
            time.time() - start,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return extract_text(response)
