import asyncio
import io
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from config import AppConfig
from main import create_app
from services.analysis_pipeline import PipelineOutput, assemble_analysis
from services.extraction.narrative import VisionResult
from services.extraction.structured import authenticity_from_text, price_from_text
from services.sessions.session_store import InMemorySessionStore

NARRATIVE = """1. BRAND IDENTIFICATION & AUTHENTICATION
Brand: Levi's
Confidence: 85%
The red tab and leather patch are consistent with genuine Levi's denim.

2. PRICING ESTIMATION
Typical resale value is moderate.

3. ERA & DATING
1990s vintage
Single-stitch hems and the care tag format point to the 1990s.

4. DETAILED FEATURES
Material: 100% cotton denim
Color: Medium stonewash blue
Pattern: Solid
Size: 32x34
Care Instructions: Machine wash cold
Country of Manufacture: USA
Condition: Excellent, light fading at the knees

5. RARITY
Rare

6. ADDITIONAL OBSERVATIONS
Cultural Significance: Classic 501 cut worn widely in 90s streetwear.

Investment Potential: Likely to hold value as vintage denim demand grows.

Resale Platforms: Grailed, Depop or eBay
"""

AUTHENTICITY_JSON = """Here is the assessment:
```json
{
  "score": 82,
  "confidence": 78,
  "verdict": "LIKELY AUTHENTIC",
  "explanation": ["Stitching is consistent with the era", "Red tab placement is correct"],
  "redFlags": [],
  "authenticityMarkers": ["Red tab", "Leather patch"],
  "detectedBrand": "Levi's"
}
```"""

PRICE_JSON = """{
  "retail_price_inr": 4999,
  "retail_price_usd": 60,
  "current_low_inr": 1000,
  "current_median_inr": 2000,
  "current_high_inr": 3000,
  "confidence": 70,
  "reasoning": "Vintage 501s in good shape sell steadily.",
  "marketInsights": "Demand for 90s denim is rising."
}"""


class FakeResponses:
    """Stands in for `client.responses`, answering from a queue."""

    def __init__(self) -> None:
        self.queue: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    def push(self, *answers: Any) -> None:
        self.queue.extend(answers)

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if not self.queue:
            raise AssertionError("Unexpected model call")
        answer = self.queue.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return SimpleNamespace(output_text=answer, output=[], usage=None)


class FakeOpenAIClient:
    def __init__(self) -> None:
        self.responses = FakeResponses()
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_image_bytes(fmt: str = "PNG", size=(64, 48), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def prompt_text(call: Dict[str, Any]) -> str:
    """Return the user prompt text of a recorded Responses API call."""
    user_message = [item for item in call["input"] if item["role"] == "user"][0]
    return user_message["content"][0]["text"]


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_client() -> FakeOpenAIClient:
    return FakeOpenAIClient()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        openai_api_key="test-key",
        upload_dir=tmp_path / "uploads",
        database_dir=str(tmp_path / "db"),
        sweep_interval_seconds=3_600,
        log_level="DEBUG",
    )


@pytest.fixture
def session_store(clock: FakeClock) -> InMemorySessionStore:
    return InMemorySessionStore(ttl_seconds=3_600, clock=clock)


@pytest.fixture
def client(config, fake_client, session_store):
    app = create_app(config, openai_client=fake_client, session_store=session_store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def unconfigured_client(tmp_path: Path, session_store):
    config = AppConfig(openai_api_key=None, upload_dir=tmp_path / "uploads")
    app = create_app(config, session_store=session_store)
    with TestClient(app) as test_client:
        yield test_client


def run(coro):
    return asyncio.run(coro)


def sample_analysis():
    output = PipelineOutput(
        vision=VisionResult.from_text(NARRATIVE),
        authenticity=authenticity_from_text(AUTHENTICITY_JSON),
        price=price_from_text(PRICE_JSON),
    )
    return assemble_analysis(output, ["/uploads/thumb_sample.jpg"])
