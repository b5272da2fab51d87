"""
Batch Progress Model

Mutable progress record for one batch run. Only the progress tracker mutates
it; everything handed to observers is a snapshot copy.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from conti.core.constants import BatchPhase, ShotStatus, TOTAL_SHOTS


@dataclass
class ShotProgress:
    """Per-shot stub inside a progress snapshot."""
    shot_number: int
    status: ShotStatus = ShotStatus.PENDING
    image_url: Optional[str] = None
    error: Optional[str] = None
    processing_time_ms: Optional[int] = None
    cost_usd: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "shotNumber": self.shot_number,
            "status": self.status.value,
        }
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        if self.error is not None:
            data["error"] = self.error
        if self.processing_time_ms is not None:
            data["processingTime"] = self.processing_time_ms
        if self.cost_usd is not None:
            data["cost"] = self.cost_usd
        return data


@dataclass
class BatchProgress:
    """Progress of a running (or just finished) batch."""
    story_id: str
    started_at: str
    updated_at: str
    total_shots: int = TOTAL_SHOTS
    completed_shots: int = 0
    failed_shots: int = 0
    current_batch: int = 0
    total_batches: int = 0
    current_phase: BatchPhase = BatchPhase.INITIALIZING
    progress: float = 0.0
    estimated_time_remaining: int = 0  # seconds
    results: List[ShotProgress] = field(default_factory=list)
    consistency_features: Any = None
    error: Optional[str] = None

    @property
    def settled_shots(self) -> int:
        return self.completed_shots + self.failed_shots

    def result_for(self, shot_number: int) -> Optional[ShotProgress]:
        for result in self.results:
            if result.shot_number == shot_number:
                return result
        return None

    def snapshot(self) -> "BatchProgress":
        """Copy safe to hand to observers; features are shared, not copied."""
        return replace(self, results=[replace(result) for result in self.results])

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "storyId": self.story_id,
            "totalShots": self.total_shots,
            "completedShots": self.completed_shots,
            "failedShots": self.failed_shots,
            "currentBatch": self.current_batch,
            "totalBatches": self.total_batches,
            "currentPhase": self.current_phase.value,
            "progress": self.progress,
            "estimatedTimeRemaining": self.estimated_time_remaining,
            "results": [result.to_dict() for result in self.results],
            "startedAt": self.started_at,
            "updatedAt": self.updated_at,
        }
        if self.consistency_features is not None:
            data["consistencyFeatures"] = self.consistency_features
        if self.error is not None:
            data["error"] = self.error
        return data
