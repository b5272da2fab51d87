"""
Batch Result Model

Terminal, immutable outcome of a batch run.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from conti.core.constants import BatchStatus
from conti.models.image import StoryboardImage, utc_now_iso


@dataclass(frozen=True)
class BatchSummary:
    """Aggregate numbers for a run."""
    total_shots: int
    successful_shots: int
    failed_shots: int
    total_cost: float
    total_processing_time_ms: int
    average_consistency_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalShots": self.total_shots,
            "successfulShots": self.successful_shots,
            "failedShots": self.failed_shots,
            "totalCost": self.total_cost,
            "totalProcessingTime": self.total_processing_time_ms,
            "averageConsistencyScore": self.average_consistency_score,
        }


@dataclass(frozen=True)
class ShotError:
    """A shot that ended as a placeholder."""
    shot_number: int
    error: str
    retry_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shotNumber": self.shot_number,
            "error": self.error,
            "retryCount": self.retry_count,
        }


@dataclass(frozen=True)
class BatchResult:
    """Outcome of a finished run."""
    story_id: str
    status: BatchStatus
    images: Tuple[StoryboardImage, ...]
    summary: BatchSummary
    errors: Tuple[ShotError, ...]
    completed_at: str
    consistency_features: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "storyId": self.story_id,
            "status": self.status.value,
            "images": [image.to_dict() for image in self.images],
            "summary": self.summary.to_dict(),
            "errors": [error.to_dict() for error in self.errors],
            "completedAt": self.completed_at,
        }
        if self.consistency_features is not None:
            data["consistencyFeatures"] = self.consistency_features
        return data


def average_consistency_score(images: Sequence[StoryboardImage]) -> float:
    """Mean of the positive consistency scores among completed images."""
    scores = [
        image.consistency.score
        for image in images
        if image.is_completed and image.consistency.score > 0
    ]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def resolve_status(successful: int, total: int) -> BatchStatus:
    if successful == total:
        return BatchStatus.COMPLETED
    if successful == 0:
        return BatchStatus.FAILED
    return BatchStatus.PARTIAL


def build_batch_result(
    story_id: str,
    images: Sequence[StoryboardImage],
    total_shots: int,
    consistency_features: Any = None,
) -> BatchResult:
    """
    Summarize a run's images into a BatchResult.

    Args:
        story_id: Story the storyboard belongs to
        images: One image per shot, in any order
        total_shots: Expected number of shots
        consistency_features: Features used during the run, if any
    """
    ordered = tuple(sorted(images, key=lambda image: image.shot_number))
    successful: List[StoryboardImage] = [image for image in ordered if image.is_completed]
    failed: List[StoryboardImage] = [image for image in ordered if not image.is_completed]

    summary = BatchSummary(
        total_shots=total_shots,
        successful_shots=len(successful),
        failed_shots=total_shots - len(successful),
        total_cost=sum(image.metadata.cost_usd or 0.0 for image in ordered),
        total_processing_time_ms=sum(image.metadata.processing_time_ms or 0 for image in ordered),
        average_consistency_score=average_consistency_score(successful),
    )

    errors = tuple(
        ShotError(
            shot_number=image.shot_number,
            error=image.error or "Unknown error",
            retry_count=image.retry_count,
        )
        for image in failed
    )

    return BatchResult(
        story_id=story_id,
        status=resolve_status(summary.successful_shots, total_shots),
        images=ordered,
        summary=summary,
        errors=errors,
        completed_at=utc_now_iso(),
        consistency_features=consistency_features,
    )
