"""
Conti Shot Runner

Generates a single storyboard shot and records its outcome. Shared by the
reference-shot step, the batch scheduler and the sequential fallback so all
three report shots the same way.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from conti.clients.base import ConsistencyExtractor, ImageGenerationClient
from conti.core.config import BatchEngineConfig
from conti.core.constants import BatchEvent
from conti.core.logging_config import get_logger
from conti.core.retry import RetryPolicy, shot_retry_config
from conti.models.image import (
    ImageDimensions,
    StoryboardImage,
    create_placeholder_image,
    create_storyboard_image,
)
from conti.models.request import ShotSpec
from conti.pipelines.events import BatchEventEmitter
from conti.pipelines.progress_tracker import ProgressTracker

logger = get_logger("pipelines.shot_runner")

# Recorded in appliedFeatures when the prompt was rewritten with reference features
CONSISTENCY_PROMPT_FEATURE = "reference_prompt"


def describe_error(error: BaseException) -> str:
    """Non-empty, human readable message for an exception."""
    message = str(error).strip()
    return message or error.__class__.__name__


class ShotRunner:
    """Runs one shot through the retry policy and reports its result."""

    def __init__(
        self,
        image_client: ImageGenerationClient,
        consistency_extractor: Optional[ConsistencyExtractor],
        config: BatchEngineConfig,
        events: BatchEventEmitter,
        tracker: ProgressTracker,
        sleep: Callable[[float], Awaitable[Any]],
    ):
        self._client = image_client
        self._extractor = consistency_extractor
        self._config = config
        self._events = events
        self._tracker = tracker
        self._sleep = sleep
        self._attempts: Dict[int, int] = {}

    def reset(self) -> None:
        self._attempts.clear()

    def attempts_for(self, shot_number: int) -> int:
        return self._attempts.get(shot_number, 0)

    def build_prompt(self, shot: ShotSpec, features: Any) -> Tuple[str, Tuple[str, ...]]:
        """Prompt to send for a shot, plus the consistency features applied."""
        if features is None or self._extractor is None:
            return shot.prompt, ()
        prompt = self._extractor.apply_consistency_to_prompt(shot.prompt, features, shot.shot_number)
        return prompt, (CONSISTENCY_PROMPT_FEATURE,)

    async def generate(
        self,
        shot: ShotSpec,
        features: Any,
        max_retries: int
    ) -> StoryboardImage:
        """
        Generate one shot, retrying with backoff.

        Raises the provider's last error once attempts are exhausted.
        """
        self._attempts[shot.shot_number] = 1
        self._tracker.mark_processing(shot.shot_number)

        prompt, applied = self.build_prompt(shot, features)
        policy = RetryPolicy(
            shot_retry_config(
                max_retries,
                base_delay=self._config.retry_base_delay_seconds,
                max_delay=self._config.retry_max_delay_seconds,
            ),
            sleep=self._sleep,
        )

        def count_retry(error: Exception, failed_attempt: int) -> None:
            self._attempts[shot.shot_number] = failed_attempt + 2

        generated = await policy.call(
            self._client.generate_image,
            prompt=prompt,
            style=shot.style,
            quality=shot.quality,
            aspect_ratio=shot.aspect_ratio,
            on_retry=count_retry,
            label=f"Shot {shot.shot_number}",
        )
        attempts = self._attempts[shot.shot_number]
        logger.info(f"Shot {shot.shot_number} generated (attempt {attempts}/{policy.max_attempts})")

        return create_storyboard_image(
            shot,
            generated,
            attempts=attempts,
            applied_features=applied,
            default_consistency_score=self._config.default_consistency_score,
        )

    def record_success(self, image: StoryboardImage) -> StoryboardImage:
        self._events.emit(BatchEvent.SHOT_COMPLETED, image.shot_number, image)
        self._tracker.record_shot(image)
        return image

    def record_failure(self, shot: ShotSpec, error: BaseException) -> StoryboardImage:
        """Replace a failed shot with a placeholder and report it."""
        message = describe_error(error)
        logger.error(f"Shot {shot.shot_number} failed: {message}")

        placeholder = create_placeholder_image(
            shot,
            error=message,
            model=self._config.placeholder_model,
            dimensions=ImageDimensions(
                width=self._config.placeholder_width,
                height=self._config.placeholder_height,
            ),
            attempts=max(self.attempts_for(shot.shot_number), 1),
        )
        self._events.emit(BatchEvent.SHOT_FAILED, shot.shot_number, message)
        self._tracker.record_shot(placeholder)
        return placeholder
