"""
Tests for Batch Scheduler and Sequential Fallback

Tests for conti/pipelines/batch_scheduler.py and
conti/pipelines/sequential_fallback.py
"""

import pytest

from conti.core.config import BatchEngineConfig
from conti.core.constants import BatchPhase
from conti.core.exceptions import BatchAbortedError, BatchOrchestrationError
from conti.models.request import BatchOptions, parse_batch_request
from conti.pipelines.batch_scheduler import BatchScheduler, split_into_batches
from conti.pipelines.events import BatchEventEmitter
from conti.pipelines.progress_tracker import ProgressTracker
from conti.pipelines.sequential_fallback import SequentialFallback
from conti.pipelines.shot_runner import ShotRunner


class Engine:
    """Scheduler wired to the shared fakes, the way the orchestrator wires it."""

    def __init__(self, client, extractor, sleep):
        self.aborted = False
        self.events = BatchEventEmitter()
        self.received = []
        for name in ("shotCompleted", "shotFailed", "batchCompleted"):
            self.events.on(name, self._recorder(name))

        self.tracker = ProgressTracker(self.events)
        self.runner = ShotRunner(client, extractor, BatchEngineConfig(), self.events, self.tracker, sleep)
        self.fallback = SequentialFallback(self.runner, sleep, lambda: self.aborted, interval=5.0)
        self.scheduler = BatchScheduler(
            self.runner,
            self.fallback,
            self.events,
            self.tracker,
            sleep,
            lambda: self.aborted,
            stagger_interval=2.0,
        )

    def _recorder(self, name):
        def record(*args):
            self.received.append((name,) + args)
        return record

    def of(self, name):
        return [entry[1:] for entry in self.received if entry[0] == name]


@pytest.fixture
def request_model(request_payload):
    return parse_batch_request(request_payload)


@pytest.fixture
def engine(image_client, extractor, recording_sleep, request_model):
    engine = Engine(image_client, extractor, recording_sleep)
    engine.tracker.start(request_model.story_id, [s.shot_number for s in request_model.shots], 3)
    engine.tracker.update(phase=BatchPhase.PROCESSING_BATCHES, progress=25)
    return engine


class TestSplitIntoBatches:
    """Tests for batch splitting."""

    def test_last_batch_smaller(self, request_model):
        batches = split_into_batches(request_model.remaining_shots, 3)

        assert [[s.shot_number for s in batch] for batch in batches] == [
            [2, 3, 4], [5, 6, 7], [8, 9, 10], [11, 12],
        ]

    def test_batch_size_one(self, request_model):
        assert len(split_into_batches(request_model.remaining_shots, 1)) == 11

    def test_invalid_size(self, request_model):
        with pytest.raises(ValueError):
            split_into_batches(request_model.remaining_shots, 0)


class TestBatchScheduler:
    """Tests for BatchScheduler."""

    @pytest.mark.asyncio
    async def test_all_shots_succeed(self, engine, image_client, request_model, recording_sleep):
        images = await engine.scheduler.run(
            request_model.story_id, request_model.remaining_shots, BatchOptions(), None
        )

        assert [image.shot_number for image in images] == list(range(2, 13))
        assert all(image.is_completed for image in images)
        assert engine.of("batchCompleted") == [(1,), (2,), (3,), (4,)]
        assert len(engine.of("shotCompleted")) == 11
        assert engine.tracker.progress.completed_shots == 11
        # stagger 2s/4s inside full batches, 2s in the last, 12s between batches
        assert recording_sleep.calls.count(12.0) == 3
        assert recording_sleep.calls.count(2.0) == 4
        assert recording_sleep.calls.count(4.0) == 3

    @pytest.mark.asyncio
    async def test_progress_per_batch(self, engine, request_model):
        seen = []
        engine.events.on("progress", lambda p: seen.append((p.current_batch, p.progress)))

        await engine.scheduler.run(request_model.story_id, request_model.remaining_shots, BatchOptions(), None)

        starts = sorted({entry for entry in seen if entry[0]})
        assert (1, 25.0) in starts
        assert (2, 41.25) in starts
        assert engine.tracker.progress.total_batches == 4

    @pytest.mark.asyncio
    async def test_consistency_applied_to_prompts(self, engine, image_client, extractor, request_model):
        images = await engine.scheduler.run(
            request_model.story_id, request_model.remaining_shots, BatchOptions(), extractor.features
        )

        assert all(call["prompt"].endswith("[consistent:warm]") for call in image_client.calls)
        assert images[0].consistency.applied_features == ("reference_prompt",)

    @pytest.mark.asyncio
    async def test_failed_shot_becomes_placeholder(self, engine, image_client, request_model, recording_sleep):
        image_client.failures[5] = float("inf")

        images = await engine.scheduler.run(
            request_model.story_id, request_model.remaining_shots, BatchOptions(maxRetries=2), None
        )

        failed = [image for image in images if not image.is_completed]
        assert [image.shot_number for image in failed] == [5]
        assert failed[0].retry_count == 2
        assert len(image_client.calls_for(5)) == 3
        assert engine.of("shotFailed") == [(5, "provider rejected shot 5")]
        assert recording_sleep.calls.count(1.0) == 1
        # siblings in the same batch were not cancelled
        assert all(image.is_completed for image in images if image.shot_number in (6, 7))

    @pytest.mark.asyncio
    async def test_retry_recovers(self, engine, image_client, request_model):
        image_client.failures[3] = 1

        images = await engine.scheduler.run(
            request_model.story_id, request_model.remaining_shots, BatchOptions(), None
        )

        assert all(image.is_completed for image in images)
        assert images[1].metadata.attempts == 2

    @pytest.mark.asyncio
    async def test_batch_failure_falls_back(self, engine, image_client, request_model, recording_sleep):
        original = engine.scheduler._settle_batch

        async def crash_second_batch(story_id, batch, features, max_retries):
            if batch[0].shot_number == 5:
                raise RuntimeError("event loop hiccup")
            return await original(story_id, batch, features, max_retries)

        engine.scheduler._settle_batch = crash_second_batch

        images = await engine.scheduler.run(
            request_model.story_id, request_model.remaining_shots, BatchOptions(), None
        )

        assert [image.shot_number for image in images] == list(range(2, 13))
        assert all(image.is_completed for image in images)
        for n in (5, 6, 7):
            assert len(image_client.calls_for(n)) == 1
        assert recording_sleep.calls.count(5.0) == 2
        assert engine.of("batchCompleted") == [(1,), (2,), (3,), (4,)]

    @pytest.mark.asyncio
    async def test_batch_failure_without_fallback(self, engine, request_model):
        async def crash(*args):
            raise RuntimeError("event loop hiccup")

        engine.scheduler._settle_batch = crash

        with pytest.raises(BatchOrchestrationError) as exc_info:
            await engine.scheduler.run(
                request_model.story_id,
                request_model.remaining_shots,
                BatchOptions(fallbackToSequential=False),
                None,
            )

        assert exc_info.value.details["batch_number"] == 1
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_abort_before_next_batch(self, engine, image_client, request_model):
        engine.events.on("batchCompleted", lambda number: setattr(engine, "aborted", True))

        with pytest.raises(BatchAbortedError):
            await engine.scheduler.run(
                request_model.story_id, request_model.remaining_shots, BatchOptions(), None
            )

        assert sorted(call["shot_number"] for call in image_client.calls) == [2, 3, 4]


class TestSequentialFallback:
    """Tests for SequentialFallback."""

    @pytest.mark.asyncio
    async def test_single_attempt_with_spacing(self, engine, image_client, request_model, recording_sleep):
        image_client.failures[3] = 1
        shots = request_model.remaining_shots[:3]

        images = await engine.fallback.process(request_model.story_id, shots, None)

        assert [image.shot_number for image in images] == [2, 3, 4]
        assert [image.is_completed for image in images] == [True, False, True]
        assert len(image_client.calls_for(3)) == 1
        assert images[1].retry_count == 0
        assert recording_sleep.calls == [5.0, 5.0]

    @pytest.mark.asyncio
    async def test_every_shot_reported(self, engine, image_client, request_model):
        image_client.fail_all = True

        images = await engine.fallback.process(request_model.story_id, request_model.remaining_shots[:2], None)

        assert len(images) == 2
        assert [entry[0] for entry in engine.of("shotFailed")] == [2, 3]
        assert engine.tracker.progress.failed_shots == 2

    @pytest.mark.asyncio
    async def test_abort_between_shots(self, engine, image_client, request_model):
        engine.events.on("shotCompleted", lambda *args: setattr(engine, "aborted", True))

        with pytest.raises(BatchAbortedError):
            await engine.fallback.process(request_model.story_id, request_model.remaining_shots[:3], None)

        assert len(image_client.calls) == 1

    @pytest.mark.asyncio
    async def test_empty_input(self, engine, recording_sleep):
        assert await engine.fallback.process("story-1", [], None) == []
        assert recording_sleep.calls == []
