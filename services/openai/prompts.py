"""Prompt templates for narrative analysis, authenticity, pricing, and chat."""

from __future__ import annotations

from typing import Iterable

from models.analysis_models import AnalysisResult, AuthenticityAssessment
from models.session_models import ConversationTurn

MASTER_ANALYSIS_PROMPT = """You are an expert fashion authentication specialist and vintage clothing appraiser with deep knowledge of luxury brands, streetwear, and historical fashion. Analyze the provided clothing item image(s) thoroughly and provide a detailed assessment.

Analysis Requirements:

1. BRAND IDENTIFICATION & AUTHENTICATION
- Brand: <brand name>
- Confidence: <0-100>%
- Examine logo placement, font, spacing, and proportions
- Check stitching quality, patterns, and thread color
- Verify hardware (zippers, buttons, rivets) against brand standards
- Look for authentication tags, care labels, and serial numbers
- Identify ANY red flags or counterfeit indicators
- State clearly: AUTHENTIC, LIKELY AUTHENTIC, QUESTIONABLE, or COUNTERFEIT

2. PRICING ESTIMATION
- Estimated original retail value and current market value
- Consider condition, rarity, and demand
- Note if it is a collectible or limited edition piece

3. ERA & DATING
- First line: the production era or decade in a few words (for example "Late 1990s vintage")
- Following lines: dating rationale (tags, style, materials), seasonal collection if identifiable

4. DETAILED FEATURES
Write each on its own line as "Label: value":
- Material: composition and fabric quality
- Color: main colors
- Pattern: pattern description
- Condition: one of new, excellent, good, fair, poor
- Size: visible size information
- Care Instructions: as printed on the care label
- Country of Manufacture: as printed on the tag

5. RARITY
Classify the item as exactly one of: Common, Uncommon, Rare, Epic, Legendary, Mythic

6. ADDITIONAL OBSERVATIONS

Cultural or Historical Significance:
A brief paragraph about cultural importance.

Investment Potential:
A brief paragraph about investment value.

Resale Platforms:
Only platform names separated by commas (for example Grailed, Depop, eBay, Poshmark). No full sentences.

Produce plain text only: no Markdown headers, code fences, bold or italics markers.

If the images do NOT show neck tags, care labels, or authenticity labels, include this exact line:
"Upload a photo of neck tags, care labels, and close-up stitching for more accurate authentication."

Brand authentication is the highest priority. Do not guess: if you are unsure, explain which details you need to see to make a determination."""

AUTHENTICITY_PROMPT_TEMPLATE = """You are an expert clothing authenticator with years of experience identifying genuine vs counterfeit items.

PREVIOUS ANALYSIS:
{analysis}

Based on the images and analysis above, evaluate the authenticity of this clothing item.

Positive indicators: correct logo placement, stitching and quality; authentic tags with proper formatting, serial numbers and care instructions; high-quality materials and construction; correct fonts and spacing on labels; brand-specific hardware; age-appropriate wear for vintage items; holographic tags, NFC chips, or other security features.

Negative indicators: poor logo quality, incorrect placement or misspellings; cheap materials or sloppy stitching; missing or incorrect tags; wrong fonts; text like "replica", "inspired by", "AAA quality"; misaligned patterns or prints.

Red flags: obvious counterfeiting signs; tags with the wrong country of origin; fake or missing serial numbers; suspiciously perfect condition for claimed vintage items.

Respond with ONLY this JSON object (no markdown, no extra text):
{{
  "score": <number 0-100>,
  "verdict": "<AUTHENTIC|LIKELY AUTHENTIC|QUESTIONABLE|COUNTERFEIT>",
  "detectedBrand": "<brand name or 'Unknown'>",
  "confidence": <number 0-100>,
  "explanation": ["<reason 1>", "<reason 2>", "<reason 3>"],
  "redFlags": ["<red flag 1>"],
  "authenticityMarkers": ["<positive marker 1>"]
}}

Score guide:
- 85-100: AUTHENTIC
- 70-84: LIKELY AUTHENTIC
- 30-69: QUESTIONABLE
- 0-29: COUNTERFEIT"""

PRICE_PROMPT_TEMPLATE = """You are an expert clothing appraiser with deep knowledge of fashion markets, brand values, and resale pricing.

PREVIOUS ANALYSIS:
{analysis}
{authenticity}

The seller is located in {location}. Price for that market.

Based on the images and analysis above, estimate BOTH the original retail price AND the current market value of this item, considering brand reputation, actual visible condition, authenticity, era and vintage value, material quality, current demand, and rarity.

Respond with ONLY this JSON object (no markdown, no extra text):
{{
  "retail_price_inr": <original retail price in INR or 0 if unknown>,
  "retail_price_usd": <original retail price in USD or 0 if unknown>,
  "current_low_inr": <number>,
  "current_median_inr": <number>,
  "current_high_inr": <number>,
  "reasoning": "<2-3 sentence explanation of key price factors>",
  "confidence": <number 0-100>,
  "marketInsights": "<brief note on market demand and selling tips>"
}}

Rules:
- Prices must be realistic for the resale market
- Low = quick-sale price, Median = fair market value, High = premium buyer price
- If authenticity is questionable, significantly reduce prices"""

CHAT_SYSTEM_PROMPT = "You are an expert fashion authenticator helping a user understand their item."


def authenticity_prompt(analysis_text: str) -> str:
    """Return the authenticity prompt embedding the narrative analysis."""
    return AUTHENTICITY_PROMPT_TEMPLATE.format(analysis=analysis_text or "No prior analysis available.")


def authenticity_summary(authenticity: AuthenticityAssessment) -> str:
    """Summarize an authenticity result for inclusion in the price prompt."""
    lines = [
        "AUTHENTICITY ASSESSMENT:",
        f"- Authenticity Score: {authenticity.score}/100",
        f"- Verdict: {authenticity.verdict or 'N/A'}",
        f"- Detected Brand: {authenticity.detected_brand or 'Unknown'}",
        f"- Confidence: {authenticity.confidence}%",
        f"- Key Points: {', '.join(authenticity.explanation) or 'N/A'}",
    ]
    if authenticity.red_flags:
        lines.append(f"- Red Flags: {', '.join(authenticity.red_flags)}")
    return "\n".join(lines)


def price_prompt(analysis_text: str, authenticity: AuthenticityAssessment, location: str) -> str:
    """Return the price prompt embedding the narrative and authenticity context."""
    return PRICE_PROMPT_TEMPLATE.format(
        analysis=analysis_text or "No prior analysis available.",
        authenticity="\n" + authenticity_summary(authenticity),
        location=location,
    )


def analysis_summary(analysis: AnalysisResult) -> str:
    """Return the short item summary the chat model is grounded on."""
    lines = [
        "Item Analysis Summary:",
        f"- Brand: {analysis.brand.name}",
        f"- Authenticity Score: {analysis.authenticity.score}/100",
        f"- Verdict: {analysis.authenticity.verdict or 'N/A'}",
        f"- Condition: {analysis.condition.description} ({analysis.condition.score}/5)",
        f"- Era: {analysis.era.classification}",
    ]
    price = analysis.price_estimate
    if price.retail_price:
        lines.append(f"- Original Retail Price: ₹{price.retail_price.inr} / ${price.retail_price.usd}")
    market = price.current_market_price
    lines.append(f"- Current Market Value: ₹{market.inr.median} / ${market.usd.median}")
    if analysis.rarity:
        lines.append(f"- Rarity: {analysis.rarity.upper()}")
    return "\n".join(lines)


def chat_context(analysis: AnalysisResult, conversation: Iterable[ConversationTurn], message: str) -> str:
    """Build the full chat prompt: item summary, transcript so far, and the new question."""
    parts = [analysis_summary(analysis), "", "Previous conversation:"]
    parts.extend(f"{turn.role}: {turn.content}" for turn in conversation)
    parts.extend(["", f"User's new question: {message}"])
    return "\n".join(parts)
