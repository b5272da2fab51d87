"""
Storyboard Image Model

One rendered (or failed) storyboard frame. Instances are frozen: a shot's
image is created once, either from a provider response or as a placeholder.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
import uuid

from conti.core.constants import (
    AspectRatio,
    ImageStatus,
    PLACEHOLDER_URL_TEMPLATE,
    ShotQuality,
    ShotStyle,
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ImageDimensions:
    """Pixel size of an image."""
    width: int
    height: int

    def to_dict(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class ConsistencyInfo:
    """How consistent a frame is with the reference shot."""
    score: float = 0.0
    applied_features: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "consistencyScore": self.score,
            "appliedFeatures": list(self.applied_features),
        }


@dataclass(frozen=True)
class ImageMetadata:
    """Generation bookkeeping for a frame."""
    generated_at: str
    processing_time_ms: int
    cost_usd: float
    dimensions: ImageDimensions
    model: str
    attempts: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generatedAt": self.generated_at,
            "processingTimeMs": self.processing_time_ms,
            "costUsd": self.cost_usd,
            "dimensions": self.dimensions.to_dict(),
            "model": self.model,
            "attempts": self.attempts,
        }


@dataclass(frozen=True)
class StoryboardImage:
    """Final per-shot result."""
    id: str
    shot_number: int
    image_url: str
    prompt: str
    style: ShotStyle
    quality: ShotQuality
    aspect_ratio: AspectRatio
    status: ImageStatus
    consistency: ConsistencyInfo
    metadata: ImageMetadata
    error: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == ImageStatus.COMPLETED

    @property
    def retry_count(self) -> int:
        return max(self.metadata.attempts - 1, 0)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "shotNumber": self.shot_number,
            "imageUrl": self.image_url,
            "prompt": self.prompt,
            "style": self.style.value,
            "quality": self.quality.value,
            "aspectRatio": self.aspect_ratio.value,
            "status": self.status.value,
            "consistency": self.consistency.to_dict(),
            "metadata": self.metadata.to_dict(),
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class GeneratedImage:
    """What an image provider returns for a single successful generation."""
    image_url: str
    cost_usd: float
    processing_time_ms: int
    dimensions: ImageDimensions
    model: str
    image_id: Optional[str] = None
    consistency_score: Optional[float] = None


def create_storyboard_image(
    shot,
    generated: GeneratedImage,
    attempts: int = 1,
    applied_features: Tuple[str, ...] = (),
    default_consistency_score: float = 0.8,
) -> StoryboardImage:
    """Build a completed frame from a provider response."""
    score = generated.consistency_score
    if score is None:
        score = default_consistency_score

    return StoryboardImage(
        id=generated.image_id or f"shot-{shot.shot_number}-{uuid.uuid4().hex[:12]}",
        shot_number=shot.shot_number,
        image_url=generated.image_url,
        prompt=shot.prompt,
        style=shot.style,
        quality=shot.quality,
        aspect_ratio=shot.aspect_ratio,
        status=ImageStatus.COMPLETED,
        consistency=ConsistencyInfo(score=score, applied_features=tuple(applied_features)),
        metadata=ImageMetadata(
            generated_at=utc_now_iso(),
            processing_time_ms=generated.processing_time_ms,
            cost_usd=generated.cost_usd,
            dimensions=generated.dimensions,
            model=generated.model,
            attempts=attempts,
        ),
    )


def create_placeholder_image(
    shot,
    error: str,
    model: str,
    dimensions: ImageDimensions,
    attempts: int = 1,
) -> StoryboardImage:
    """
    Build the failed-shot record that keeps a storyboard at 12 entries.

    Args:
        shot: ShotSpec the placeholder stands in for
        error: Reason the shot failed; never empty
        model: Model name recorded in metadata
        dimensions: Nominal frame size
        attempts: Generation attempts spent before giving up
    """
    return StoryboardImage(
        id=f"placeholder-{shot.shot_number}-{uuid.uuid4().hex[:12]}",
        shot_number=shot.shot_number,
        image_url=PLACEHOLDER_URL_TEMPLATE.format(shot_number=shot.shot_number),
        prompt=shot.prompt,
        style=shot.style,
        quality=ShotQuality.DRAFT,
        aspect_ratio=shot.aspect_ratio,
        status=ImageStatus.FAILED,
        consistency=ConsistencyInfo(score=0.0, applied_features=()),
        metadata=ImageMetadata(
            generated_at=utc_now_iso(),
            processing_time_ms=0,
            cost_usd=0.0,
            dimensions=dimensions,
            model=model,
            attempts=attempts,
        ),
        error=error or "Unknown error",
    )
