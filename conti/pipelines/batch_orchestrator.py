"""
Conti Batch Orchestrator

Public entry point of the storyboard batch engine.

A run renders the reference shot (shot 1) alone, optionally derives
consistency features from it, then hands the remaining 11 shots to the
BatchScheduler. Progress and per-shot outcomes are published as events;
the run ends with a BatchResult or a raised error.

Usage:
    orchestrator = StoryboardBatchOrchestrator(image_client, extractor)
    orchestrator.on("progress", lambda progress: print(progress.progress))
    result = await orchestrator.process_batch(request_payload)
"""

import asyncio
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from conti.clients.base import ConsistencyExtractor, ImageGenerationClient
from conti.core.config import BatchEngineConfig, get_config
from conti.core.constants import (
    ABORT_EVENT_MESSAGE,
    ABORT_MESSAGE,
    BatchEvent,
    BatchPhase,
    CANCELLED_MESSAGE,
    PROGRESS_BATCHES_STARTED,
    PROGRESS_CONSISTENCY_DONE,
    PROGRESS_DONE,
    PROGRESS_FINALIZING,
    PROGRESS_REFERENCE_DONE,
    PROGRESS_REFERENCE_STARTED,
)
from conti.core.exceptions import BatchAbortedError, BatchInProgressError, ConsistencyExtractionError
from conti.core.logging_config import get_logger
from conti.models.image import StoryboardImage
from conti.models.progress import BatchProgress
from conti.models.request import BatchProcessingRequest, ShotSpec, parse_batch_request
from conti.models.result import BatchResult, build_batch_result
from conti.pipelines.batch_scheduler import BatchScheduler
from conti.pipelines.events import BatchEventEmitter, EventHandler, EventName
from conti.pipelines.progress_tracker import ProgressTracker
from conti.pipelines.sequential_fallback import SequentialFallback
from conti.pipelines.shot_runner import ShotRunner, describe_error

logger = get_logger("pipelines.orchestrator")


class StoryboardBatchOrchestrator:
    """
    Renders a 12-shot storyboard with a consistency reference and batching.

    Features:
    - Reference shot first, consistency features reused by later shots
    - Staggered, rate-limited batches with per-shot retries
    - Partial-failure tolerance (failed shots become placeholders)
    - Sequential fallback for batch-level failures
    - Progress and per-shot events, cooperative abort

    Only one run may be in flight per orchestrator.
    """

    def __init__(
        self,
        image_client: ImageGenerationClient,
        consistency_extractor: Optional[ConsistencyExtractor] = None,
        config: Optional[BatchEngineConfig] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self.config = config or get_config()
        self._extractor = consistency_extractor
        self._sleep = sleep or asyncio.sleep

        self._events = BatchEventEmitter()
        self._tracker = ProgressTracker(
            self._events,
            estimated_seconds_per_shot=self.config.estimated_seconds_per_shot,
        )
        self._runner = ShotRunner(
            image_client,
            consistency_extractor,
            self.config,
            self._events,
            self._tracker,
            self._sleep,
        )
        self._fallback = SequentialFallback(
            self._runner,
            self._sleep,
            self._is_aborted,
            interval=self.config.sequential_interval_seconds,
        )
        self._scheduler = BatchScheduler(
            self._runner,
            self._fallback,
            self._events,
            self._tracker,
            self._sleep,
            self._is_aborted,
            stagger_interval=self.config.stagger_interval_seconds,
        )

        self._processing = False
        self._aborted = False

    # =========================================================================
    # EVENTS
    # =========================================================================

    def on(self, event: EventName, handler: EventHandler) -> EventHandler:
        """Subscribe to a run event. Multiple handlers per event are allowed."""
        return self._events.on(event, handler)

    def off(self, event: EventName, handler: EventHandler) -> bool:
        return self._events.off(event, handler)

    # =========================================================================
    # STATE
    # =========================================================================

    def get_current_progress(self) -> Optional[BatchProgress]:
        """Snapshot of the latest run's progress, or None before the first run."""
        progress = self._tracker.progress
        return progress.snapshot() if progress else None

    def is_currently_processing(self) -> bool:
        return self._processing

    def abort(self) -> None:
        """
        Cooperatively stop the active run.

        Progress moves to failed, one error event is emitted and the run's
        remaining events are suppressed. Provider calls already in flight are
        not cancelled; the run stops at its next scheduling point.
        """
        if not self._processing or self._aborted:
            return

        story_id = self._tracker.progress.story_id if self._tracker.progress else "?"
        logger.warning(f"[{story_id}] Abort requested")

        self._aborted = True
        self._tracker.fail(ABORT_MESSAGE)
        self._events.emit(BatchEvent.ERROR, ABORT_EVENT_MESSAGE)
        self._events.mute()

    def _is_aborted(self) -> bool:
        return self._aborted

    # =========================================================================
    # RUN
    # =========================================================================

    async def process_batch(
        self,
        request: Union[BatchProcessingRequest, Mapping[str, Any]]
    ) -> BatchResult:
        """
        Render all 12 shots of a storyboard.

        Args:
            request: BatchProcessingRequest or its raw (camelCase) payload

        Returns:
            BatchResult with one image per shot, placeholders for failures

        Raises:
            RequestValidationError: request does not match the schema
            BatchInProgressError: another run is in flight
            BatchAbortedError: abort() was called during the run
            BatchOrchestrationError: a batch failed and fallback is disabled
        """
        request = parse_batch_request(request)

        if self._processing:
            active = self._tracker.progress.story_id if self._tracker.progress else None
            raise BatchInProgressError(active)

        self._processing = True
        self._aborted = False
        self._events.unmute()
        self._runner.reset()

        story_id = request.story_id
        options = request.options
        logger.info(
            f"[{story_id}] Starting storyboard batch "
            f"(batch_size={options.batch_size}, max_retries={options.max_retries}, "
            f"consistency={'on' if options.maintain_consistency else 'off'})"
        )

        try:
            self._tracker.start(
                story_id,
                [shot.shot_number for shot in request.shots],
                options.batch_size,
            )
            self._check_abort(story_id)

            reference, features = await self._render_reference(request)
            self._check_abort(story_id)

            self._tracker.update(phase=BatchPhase.PROCESSING_BATCHES, progress=PROGRESS_BATCHES_STARTED)
            remaining = await self._scheduler.run(
                story_id,
                request.remaining_shots,
                options,
                features,
            )
            self._check_abort(story_id)

            self._tracker.update(phase=BatchPhase.FINALIZING, progress=PROGRESS_FINALIZING)
            result = build_batch_result(
                story_id,
                [reference] + remaining,
                total_shots=len(request.shots),
                consistency_features=features,
            )
            self._tracker.update(phase=BatchPhase.COMPLETED, progress=PROGRESS_DONE)

            logger.info(
                f"[{story_id}] Batch finished: {result.status.value} "
                f"({result.summary.successful_shots}/{result.summary.total_shots} shots, "
                f"${result.summary.total_cost:.4f})"
            )
            self._events.emit(BatchEvent.COMPLETED, result)
            await self._events.drain()
            return result

        except asyncio.CancelledError:
            if self._aborted:
                logger.warning(f"[{story_id}] Batch aborted")
            else:
                logger.warning(f"[{story_id}] Batch cancelled")
                self._fail_run(CANCELLED_MESSAGE)
            await self._events.drain()
            raise

        except Exception as e:
            if self._aborted:
                logger.warning(f"[{story_id}] Batch aborted")
            else:
                message = describe_error(e)
                logger.error(f"[{story_id}] Batch failed: {message}")
                self._fail_run(message)
            await self._events.drain()
            raise

        finally:
            self._processing = False

    async def _render_reference(self, request: BatchProcessingRequest):
        """
        Render shot 1 and derive consistency features from it.

        Returns:
            (image, features); features is None when consistency is off,
            shot 1 failed or extraction failed.
        """
        story_id = request.story_id
        options = request.options
        shot = request.reference_shot

        self._tracker.update(phase=BatchPhase.EXTRACTING_CONSISTENCY, progress=PROGRESS_REFERENCE_STARTED)
        self._check_abort(story_id)
        logger.info(f"[{story_id}] Rendering reference shot {shot.shot_number}")

        try:
            image = await self._runner.generate(shot, None, options.max_retries)
        except Exception as e:
            image = self._runner.record_failure(shot, e)
            logger.warning(f"[{story_id}] Reference shot failed; continuing without consistency")
        else:
            self._runner.record_success(image)
            self._tracker.update(progress=PROGRESS_REFERENCE_DONE)
        self._check_abort(story_id)

        features = None
        if options.maintain_consistency and image.is_completed:
            features = await self._extract_features(story_id, shot, image)

        self._tracker.update(progress=PROGRESS_CONSISTENCY_DONE, consistency_features=features)
        return image, features

    async def _extract_features(
        self,
        story_id: str,
        shot: ShotSpec,
        image: StoryboardImage
    ) -> Any:
        if self._extractor is None:
            logger.warning(f"[{story_id}] No consistency extractor configured; skipping")
            return None

        try:
            features = await self._request_features(shot, image)
        except ConsistencyExtractionError as e:
            logger.warning(f"[{story_id}] {e}")
            return None

        logger.info(f"[{story_id}] Consistency features extracted from shot {shot.shot_number}")
        self._events.emit(BatchEvent.CONSISTENCY_EXTRACTED, features)
        return features

    async def _request_features(self, shot: ShotSpec, image: StoryboardImage) -> Any:
        """
        Ask the extractor for features of the rendered reference image.

        Raises:
            ConsistencyExtractionError: wrapping whatever the extractor raised
        """
        try:
            return await self._extractor.extract_features(image.image_url, shot.prompt, shot.style)
        except Exception as e:
            raise ConsistencyExtractionError(
                f"Consistency extraction failed: {describe_error(e)}",
                {"shot_number": shot.shot_number, "image_url": image.image_url},
            ) from e

    def _fail_run(self, message: str) -> None:
        """Move progress to failed and emit the run's single error event."""
        if self._tracker.is_terminal:
            return
        self._tracker.fail(message)
        self._events.emit(BatchEvent.ERROR, message)

    def _check_abort(self, story_id: str) -> None:
        if self._aborted:
            raise BatchAbortedError(story_id)
