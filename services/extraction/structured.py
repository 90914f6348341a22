"""Build typed authenticity and price results from the model's JSON answers."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from models.analysis_models import (
    AuthenticityAssessment,
    CurrencyAmount,
    MarketPrice,
    PriceEstimate,
    PriceRange,
)
from services.errors import ModelResponseUnparseable
from services.extraction.json_blocks import parse_json_block

LOGGER = logging.getLogger(__name__)

INR_TO_USD = 0.012
DEFAULT_VERDICT = "QUESTIONABLE"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounding up."""
    return int(math.floor(value + 0.5))


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _required_int(data: Dict[str, Any], key: str, raw_text: str, what: str) -> int:
    number = _number(data.get(key))
    if number is None:
        raise ModelResponseUnparseable(f"{what} response is missing a numeric '{key}'", raw_text)
    return round_half_up(number)


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, Iterable):
        return []
    items = [str(item).strip() for item in value if item is not None]
    return [item for item in items if item]


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _load(raw_text: str, what: str) -> Dict[str, Any]:
    result = parse_json_block(raw_text)
    if not result.ok:
        LOGGER.error("Unparseable %s response: %s\nRaw text: %r", what.lower(), result.error, raw_text)
        raise ModelResponseUnparseable(f"Could not parse JSON from {what.lower()} response: {result.error}", raw_text)
    if result.repaired:
        LOGGER.info("%s JSON needed normalization before parsing", what)
    return result.value


def authenticity_from_text(raw_text: str) -> AuthenticityAssessment:
    """Parse the authenticity call's answer.

    Raises:
        ModelResponseUnparseable: If no usable JSON object can be recovered.
    """
    data = _load(raw_text, "Authenticity")

    verdict = data.get("verdict")
    verdict = str(verdict).strip() if verdict not in (None, "") else DEFAULT_VERDICT

    detected_brand = _optional_text(data.get("detectedBrand"))
    if detected_brand == "Unknown":
        detected_brand = None

    return AuthenticityAssessment(
        score=_required_int(data, "score", raw_text, "Authenticity"),
        confidence=_required_int(data, "confidence", raw_text, "Authenticity"),
        verdict=verdict,
        explanation=_string_list(data.get("explanation")),
        red_flags=_unique(_string_list(data.get("redFlags"))),
        authenticity_markers=_unique(_string_list(data.get("authenticityMarkers"))),
        detected_brand=detected_brand,
    )


def price_from_text(raw_text: str) -> PriceEstimate:
    """Parse the price call's answer into INR and USD ranges.

    The low <= median <= high ordering is not corrected here; a violation is
    logged and passed through as the model produced it.
    """
    data = _load(raw_text, "Price")

    low = _required_int(data, "current_low_inr", raw_text, "Price")
    median = _required_int(data, "current_median_inr", raw_text, "Price")
    high = _required_int(data, "current_high_inr", raw_text, "Price")
    if not low <= median <= high:
        LOGGER.warning("Model returned an unordered price range: low=%s median=%s high=%s", low, median, high)

    inr_low = _number(data.get("current_low_inr"))
    inr_median = _number(data.get("current_median_inr"))
    inr_high = _number(data.get("current_high_inr"))

    retail_price = None
    retail_inr = _number(data.get("retail_price_inr"))
    if retail_inr is not None and retail_inr > 0:
        retail_usd = _number(data.get("retail_price_usd"))
        if retail_usd is None or retail_usd <= 0:
            retail_usd = retail_inr * INR_TO_USD
        retail_price = CurrencyAmount(inr=round_half_up(retail_inr), usd=round_half_up(retail_usd))

    return PriceEstimate(
        retail_price=retail_price,
        current_market_price=MarketPrice(
            inr=PriceRange(low=low, median=median, high=high),
            usd=PriceRange(
                low=round_half_up(inr_low * INR_TO_USD),
                median=round_half_up(inr_median * INR_TO_USD),
                high=round_half_up(inr_high * INR_TO_USD),
            ),
        ),
        confidence=_required_int(data, "confidence", raw_text, "Price"),
        reasoning=_optional_text(data.get("reasoning")),
        market_insights=_optional_text(data.get("marketInsights")),
    )
