"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import re
import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Any, Dict, List

from conti.clients.base import ConsistencyExtractor, ImageGenerationClient
from conti.core.config import BatchEngineConfig
from conti.models.image import GeneratedImage, ImageDimensions

SHOT_PATTERN = re.compile(r"Shot (\d+):")


def shot_number_of(prompt: str) -> int:
    return int(SHOT_PATTERN.search(prompt).group(1))


class FakeImageClient(ImageGenerationClient):
    """
    Image provider double.

    ``failures`` maps a shot number to how many calls for that shot fail
    before it succeeds (float("inf") for never).
    """

    def __init__(self, failures: Dict[int, float] = None, fail_all: bool = False):
        self.failures = dict(failures or {})
        self.fail_all = fail_all
        self.calls: List[Dict[str, Any]] = []

    def calls_for(self, shot_number: int) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["shot_number"] == shot_number]

    async def generate_image(self, prompt, style, quality, aspect_ratio):
        shot_number = shot_number_of(prompt)
        self.calls.append({
            "shot_number": shot_number,
            "prompt": prompt,
            "style": style,
            "quality": quality,
            "aspect_ratio": aspect_ratio,
        })

        if self.fail_all:
            raise RuntimeError(f"provider unavailable for shot {shot_number}")
        remaining = self.failures.get(shot_number, 0)
        if remaining > 0:
            self.failures[shot_number] = remaining - 1
            raise RuntimeError(f"provider rejected shot {shot_number}")

        return GeneratedImage(
            image_url=f"https://cdn.example.test/shot-{shot_number}.png",
            cost_usd=0.03,
            processing_time_ms=1500,
            dimensions=ImageDimensions(width=1920, height=1080),
            model="test-model",
            image_id=f"img-{shot_number}",
        )


class FakeConsistencyExtractor(ConsistencyExtractor):
    """Extractor double; rewrites prompts with a visible marker."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.extract_calls: List[Dict[str, Any]] = []
        self.features = {"palette": "warm", "characters": ["MARA"]}

    async def extract_features(self, image_url, prompt, style):
        self.extract_calls.append({"image_url": image_url, "prompt": prompt, "style": style})
        if self.fail:
            raise RuntimeError("vision model timeout")
        return self.features

    def apply_consistency_to_prompt(self, prompt, features, shot_number):
        return f"{prompt} [consistent:{features['palette']}]"


class RecordingSleep:
    """Sleep replacement that records requested delays and returns at once."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class EventLog:
    """Collects every orchestrator event in emission order."""

    EVENTS = (
        "progress",
        "shotCompleted",
        "shotFailed",
        "batchCompleted",
        "consistencyExtracted",
        "completed",
        "error",
    )

    def __init__(self):
        self.entries: List[tuple] = []

    def attach(self, orchestrator) -> "EventLog":
        for name in self.EVENTS:
            orchestrator.on(name, self._recorder(name))
        return self

    def _recorder(self, name):
        def record(*args):
            self.entries.append((name,) + args)
        return record

    def of(self, name: str) -> List[tuple]:
        return [entry[1:] for entry in self.entries if entry[0] == name]

    def names(self) -> List[str]:
        return [entry[0] for entry in self.entries]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def shot_payloads() -> List[Dict[str, Any]]:
    """Twelve camelCase shot payloads as sent by the web application."""
    return [
        {
            "shotNumber": n,
            "prompt": f"Shot {n}: MARA crosses the harbour at dusk, frame {n}",
            "style": "pencil",
            "quality": "standard",
            "aspectRatio": "16:9",
        }
        for n in range(1, 13)
    ]


@pytest.fixture
def request_payload(shot_payloads) -> Dict[str, Any]:
    """Valid batch request with default options."""
    return {"storyId": "story-42", "shots": shot_payloads}


@pytest.fixture
def engine_config() -> BatchEngineConfig:
    return BatchEngineConfig()


@pytest.fixture
def image_client() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def extractor() -> FakeConsistencyExtractor:
    return FakeConsistencyExtractor()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()
