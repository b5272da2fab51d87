"""
Conti Sequential Fallback

Last-resort path for a batch that could not be run concurrently: shots are
rendered one at a time, single attempt each, with a fixed pause between
consecutive shots.
"""

from typing import Any, Awaitable, Callable, List, Sequence

from conti.core.exceptions import BatchAbortedError
from conti.core.logging_config import get_logger
from conti.models.image import StoryboardImage
from conti.models.request import ShotSpec
from conti.pipelines.shot_runner import ShotRunner

logger = get_logger("pipelines.sequential_fallback")


class SequentialFallback:
    """Renders shots one by one; a failing shot becomes a placeholder."""

    def __init__(
        self,
        runner: ShotRunner,
        sleep: Callable[[float], Awaitable[Any]],
        is_aborted: Callable[[], bool],
        interval: float = 5.0,
    ):
        self._runner = runner
        self._sleep = sleep
        self._is_aborted = is_aborted
        self.interval = interval

    async def process(
        self,
        story_id: str,
        shots: Sequence[ShotSpec],
        features: Any = None
    ) -> List[StoryboardImage]:
        """
        Render ``shots`` in order and return one image per shot.

        Raises:
            BatchAbortedError: abort() was requested between shots
        """
        images: List[StoryboardImage] = []

        for index, shot in enumerate(shots):
            if index > 0:
                await self._sleep(self.interval)
            if self._is_aborted():
                raise BatchAbortedError(story_id)

            logger.info(f"[{story_id}] Sequential shot {shot.shot_number} ({index + 1}/{len(shots)})")
            try:
                image = await self._runner.generate(shot, features, max_retries=0)
            except Exception as e:
                images.append(self._runner.record_failure(shot, e))
            else:
                images.append(self._runner.record_success(image))

        return images
