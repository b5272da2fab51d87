"""
Conti Progress Tracker

Owns the BatchProgress of one run and its phase state machine. Every
mutation stamps ``updated_at`` and emits one full ``progress`` snapshot.
"""

import math
from typing import Any, Optional

from conti.core.constants import (
    BatchEvent,
    BatchPhase,
    PHASE_ORDER,
    PROGRESS_START,
    ShotStatus,
    TERMINAL_PHASES,
)
from conti.core.exceptions import InvalidPhaseTransitionError
from conti.core.logging_config import get_logger
from conti.models.image import StoryboardImage, utc_now_iso
from conti.models.progress import BatchProgress, ShotProgress
from conti.pipelines.events import BatchEventEmitter

logger = get_logger("pipelines.progress")

_UNSET = object()


def can_transition(current: BatchPhase, target: BatchPhase) -> bool:
    """Phases only move forward; processing_batches may repeat; failed is reachable from any live phase."""
    if current in TERMINAL_PHASES:
        return False
    if target == BatchPhase.FAILED:
        return True
    if target == current:
        return target == BatchPhase.PROCESSING_BATCHES
    return PHASE_ORDER.index(target) > PHASE_ORDER.index(current)


class ProgressTracker:
    """
    Phase state machine plus progress counters for a single run.

    Features:
    - Strictly forward phase transitions
    - Per-shot status stubs
    - Snapshot emission after every change
    - Remaining-time estimate from settled shots
    """

    def __init__(
        self,
        events: BatchEventEmitter,
        estimated_seconds_per_shot: int = 30
    ):
        self._events = events
        self._seconds_per_shot = estimated_seconds_per_shot
        self._progress: Optional[BatchProgress] = None

    @property
    def progress(self) -> Optional[BatchProgress]:
        return self._progress

    @property
    def phase(self) -> Optional[BatchPhase]:
        return self._progress.current_phase if self._progress else None

    @property
    def is_terminal(self) -> bool:
        return self._progress is not None and self._progress.current_phase in TERMINAL_PHASES

    def start(
        self,
        story_id: str,
        shot_numbers: list,
        batch_size: int
    ) -> BatchProgress:
        """Replace any previous run's progress with a fresh one and emit it."""
        now = utc_now_iso()
        remaining = max(len(shot_numbers) - 1, 0)
        self._progress = BatchProgress(
            story_id=story_id,
            started_at=now,
            updated_at=now,
            total_shots=len(shot_numbers),
            total_batches=math.ceil(remaining / batch_size) if remaining else 0,
            current_phase=BatchPhase.INITIALIZING,
            progress=PROGRESS_START,
            estimated_time_remaining=len(shot_numbers) * self._seconds_per_shot,
            results=[ShotProgress(shot_number=n) for n in shot_numbers],
        )
        self._emit()
        return self._progress

    def update(
        self,
        phase: Optional[BatchPhase] = None,
        progress: Optional[float] = None,
        current_batch: Optional[int] = None,
        total_batches: Optional[int] = None,
        consistency_features: Any = _UNSET,
        error: Optional[str] = None,
    ) -> None:
        """Apply a set of field changes as one mutation (one progress event)."""
        if self._progress is None or self.is_terminal:
            return

        if phase is not None:
            self._check_transition(phase)
            self._progress.current_phase = phase
        if progress is not None:
            self._progress.progress = max(0.0, min(100.0, float(progress)))
        if current_batch is not None:
            self._progress.current_batch = current_batch
        if total_batches is not None:
            self._progress.total_batches = total_batches
        if consistency_features is not _UNSET:
            self._progress.consistency_features = consistency_features
        if error is not None:
            self._progress.error = error

        self._emit()

    def mark_processing(self, shot_number: int) -> None:
        self._set_shot(shot_number, status=ShotStatus.PROCESSING)

    def record_shot(self, image: StoryboardImage) -> None:
        """Count a settled shot and fill in its stub."""
        if self._progress is None or self.is_terminal:
            return

        if image.is_completed:
            self._progress.completed_shots += 1
        else:
            self._progress.failed_shots += 1

        stub = self._progress.result_for(image.shot_number)
        if stub is not None:
            stub.status = ShotStatus.COMPLETED if image.is_completed else ShotStatus.FAILED
            stub.image_url = image.image_url
            stub.error = image.error
            stub.processing_time_ms = image.metadata.processing_time_ms
            stub.cost_usd = image.metadata.cost_usd

        unsettled = self._progress.total_shots - self._progress.settled_shots
        self._progress.estimated_time_remaining = max(unsettled, 0) * self._seconds_per_shot
        self._emit()

    def fail(self, error: str) -> None:
        """Move to failed; progress resets to 0 like any aborted run."""
        self.update(phase=BatchPhase.FAILED, progress=0, error=error)

    def _set_shot(self, shot_number: int, status: ShotStatus) -> None:
        if self._progress is None or self.is_terminal:
            return
        stub = self._progress.result_for(shot_number)
        if stub is None or stub.status == status:
            return
        stub.status = status
        self._emit()

    def _check_transition(self, target: BatchPhase) -> None:
        current = self._progress.current_phase
        if not can_transition(current, target):
            raise InvalidPhaseTransitionError(current.value, target.value)
        if current != target:
            logger.debug(f"[{self._progress.story_id}] phase {current.value} -> {target.value}")

    def _emit(self) -> None:
        self._progress.updated_at = utc_now_iso()
        self._events.emit(BatchEvent.PROGRESS, self._progress.snapshot())
