"""
Conti Batch Scheduler

Renders the non-reference shots in fixed-size batches.

Within a batch every shot runs as its own task, started at a fixed stagger
offset so the provider never sees a burst; the batch is joined with
settle-all semantics so one failing shot never cancels its siblings.
Batches run strictly one after another with a rate-limiting pause between
them. If a batch as a whole cannot be run, its unfinished shots can be
handed to the sequential fallback.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Sequence

from conti.core.constants import (
    BatchEvent,
    PROGRESS_BATCHES_SPAN,
    PROGRESS_BATCHES_STARTED,
)
from conti.core.exceptions import BatchAbortedError, BatchOrchestrationError
from conti.core.logging_config import get_logger
from conti.models.image import StoryboardImage
from conti.models.request import BatchOptions, ShotSpec
from conti.pipelines.events import BatchEventEmitter
from conti.pipelines.progress_tracker import ProgressTracker
from conti.pipelines.sequential_fallback import SequentialFallback
from conti.pipelines.shot_runner import ShotRunner, describe_error

logger = get_logger("pipelines.batch_scheduler")


def split_into_batches(shots: Sequence[ShotSpec], batch_size: int) -> List[List[ShotSpec]]:
    """Consecutive batches of ``batch_size``; the last one may be smaller."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    return [
        list(shots[i:i + batch_size])
        for i in range(0, len(shots), batch_size)
    ]


class BatchScheduler:
    """
    Schedules shot generation in staggered, rate-limited batches.

    Features:
    - Consecutive fixed-size batches
    - Staggered task starts inside a batch
    - Settle-all join (per-shot failures become placeholders)
    - Inter-batch delay
    - Sequential fallback for batch-level failures
    """

    def __init__(
        self,
        runner: ShotRunner,
        fallback: SequentialFallback,
        events: BatchEventEmitter,
        tracker: ProgressTracker,
        sleep: Callable[[float], Awaitable[Any]],
        is_aborted: Callable[[], bool],
        stagger_interval: float = 2.0,
    ):
        self._runner = runner
        self._fallback = fallback
        self._events = events
        self._tracker = tracker
        self._sleep = sleep
        self._is_aborted = is_aborted
        self.stagger_interval = stagger_interval

    async def run(
        self,
        story_id: str,
        shots: Sequence[ShotSpec],
        options: BatchOptions,
        features: Any = None
    ) -> List[StoryboardImage]:
        """
        Render ``shots`` and return one image per shot, in shot order.

        Args:
            story_id: Story being rendered, for logs and abort errors
            shots: Ordered shots to render
            options: Run options (batch size, delay, retries, fallback)
            features: Consistency features from the reference shot, or None

        Raises:
            BatchAbortedError: abort() was requested
            BatchOrchestrationError: a batch failed as a whole and the
                sequential fallback is disabled
        """
        batches = split_into_batches(shots, options.batch_size)
        total = len(batches)
        images: List[StoryboardImage] = []

        logger.info(
            f"[{story_id}] Rendering {len(shots)} shots in {total} batches "
            f"(batch_size={options.batch_size})"
        )

        for index, batch in enumerate(batches):
            self._check_abort(story_id)
            batch_number = index + 1

            logger.info(
                f"[{story_id}] Batch {batch_number}/{total}: shots "
                f"{batch[0].shot_number}-{batch[-1].shot_number}"
            )
            self._tracker.update(
                current_batch=batch_number,
                total_batches=total,
                progress=PROGRESS_BATCHES_STARTED + (index / total) * PROGRESS_BATCHES_SPAN,
            )

            collected: Dict[int, StoryboardImage] = {}
            try:
                await self._run_batch(story_id, batch, features, options.max_retries, collected)
            except BatchAbortedError:
                raise
            except Exception as e:
                logger.error(f"[{story_id}] Batch {batch_number} failed as a whole: {describe_error(e)}")
                if not options.fallback_to_sequential:
                    raise BatchOrchestrationError(batch_number, describe_error(e)) from e

                remaining = [shot for shot in batch if shot.shot_number not in collected]
                logger.info(
                    f"[{story_id}] Falling back to sequential processing for "
                    f"{len(remaining)} shot(s)"
                )
                for image in await self._fallback.process(story_id, remaining, features):
                    collected[image.shot_number] = image

            self._check_abort(story_id)
            images.extend(collected[shot.shot_number] for shot in batch)
            self._events.emit(BatchEvent.BATCH_COMPLETED, batch_number)

            if index < total - 1:
                logger.info(
                    f"[{story_id}] Waiting {options.delay_between_batches_seconds:.1f}s before next batch"
                )
                await self._sleep(options.delay_between_batches_seconds)

        return images

    async def _run_batch(
        self,
        story_id: str,
        batch: List[ShotSpec],
        features: Any,
        max_retries: int,
        collected: Dict[int, StoryboardImage]
    ) -> None:
        """Run one batch and record every settled shot into ``collected``."""
        outcomes = await self._settle_batch(story_id, batch, features, max_retries)
        for shot, outcome in zip(batch, outcomes):
            collected[shot.shot_number] = self._record_outcome(shot, outcome)

    async def _settle_batch(
        self,
        story_id: str,
        batch: List[ShotSpec],
        features: Any,
        max_retries: int
    ) -> list:
        """Launch one staggered task per shot and wait for all of them."""
        tasks = [
            self._staggered_shot(story_id, shot, index, features, max_retries)
            for index, shot in enumerate(batch)
        ]
        return await asyncio.gather(*tasks, return_exceptions=True)

    async def _staggered_shot(
        self,
        story_id: str,
        shot: ShotSpec,
        index: int,
        features: Any,
        max_retries: int
    ) -> StoryboardImage:
        if index > 0:
            await self._sleep(index * self.stagger_interval)
        if self._is_aborted():
            raise BatchAbortedError(story_id)
        return await self._runner.generate(shot, features, max_retries)

    def _record_outcome(self, shot: ShotSpec, outcome: Any) -> StoryboardImage:
        if isinstance(outcome, BatchAbortedError):
            raise outcome
        if isinstance(outcome, BaseException):
            return self._runner.record_failure(shot, outcome)
        return self._runner.record_success(outcome)

    def _check_abort(self, story_id: str) -> None:
        if self._is_aborted():
            raise BatchAbortedError(story_id)
