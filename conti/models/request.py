"""
Batch Request Models

Pydantic schema for a 12-shot storyboard batch request. Field aliases match
the camelCase payloads sent by the web application; snake_case names are
accepted as well.
"""

from typing import Any, Dict, List, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from conti.core.constants import (
    AspectRatio,
    DEFAULT_BATCH_DELAY_MS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_RETRIES,
    MAX_BATCH_DELAY_MS,
    MAX_BATCH_SIZE,
    MAX_PROMPT_LENGTH,
    MAX_RETRIES,
    MIN_BATCH_DELAY_MS,
    MIN_BATCH_SIZE,
    MIN_RETRIES,
    ShotQuality,
    ShotStyle,
    TOTAL_SHOTS,
)
from conti.core.exceptions import RequestValidationError


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class ShotSpec(_CamelModel):
    """One of the 12 shots to render."""
    shot_number: int = Field(ge=1, le=TOTAL_SHOTS, strict=True)
    prompt: str = Field(min_length=1, max_length=MAX_PROMPT_LENGTH)
    style: ShotStyle
    quality: ShotQuality = ShotQuality.STANDARD
    aspect_ratio: AspectRatio = AspectRatio.WIDESCREEN


class BatchOptions(_CamelModel):
    """Per-run tuning knobs."""
    maintain_consistency: bool = Field(default=True, strict=True)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=MIN_BATCH_SIZE, le=MAX_BATCH_SIZE, strict=True)
    delay_between_batches: int = Field(
        default=DEFAULT_BATCH_DELAY_MS, ge=MIN_BATCH_DELAY_MS, le=MAX_BATCH_DELAY_MS, strict=True
    )  # milliseconds
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=MIN_RETRIES, le=MAX_RETRIES, strict=True)
    fallback_to_sequential: bool = Field(default=True, strict=True)

    @property
    def delay_between_batches_seconds(self) -> float:
        return self.delay_between_batches / 1000


class BatchProcessingRequest(_CamelModel):
    """A validated request to render a full storyboard."""
    story_id: str = Field(min_length=1)
    shots: List[ShotSpec] = Field(min_length=TOTAL_SHOTS, max_length=TOTAL_SHOTS)
    options: BatchOptions = Field(default_factory=BatchOptions)

    @field_validator("shots")
    @classmethod
    def _shot_numbers_cover_storyboard(cls, shots: List[ShotSpec]) -> List[ShotSpec]:
        numbers = sorted(shot.shot_number for shot in shots)
        expected = list(range(1, TOTAL_SHOTS + 1))
        if numbers != expected:
            missing = sorted(set(expected) - set(numbers))
            raise ValueError(
                f"shot numbers must be exactly 1..{TOTAL_SHOTS} "
                f"(missing: {missing or 'none'}, duplicates present: {len(set(numbers)) != len(numbers)})"
            )
        return sorted(shots, key=lambda shot: shot.shot_number)

    @property
    def reference_shot(self) -> ShotSpec:
        return self.shots[0]

    @property
    def remaining_shots(self) -> List[ShotSpec]:
        return self.shots[1:]


def parse_batch_request(
    data: Union[BatchProcessingRequest, Mapping[str, Any]]
) -> BatchProcessingRequest:
    """
    Validate raw request data.

    Raises:
        RequestValidationError: with pydantic's error list in ``errors``
    """
    if isinstance(data, BatchProcessingRequest):
        return data
    try:
        return BatchProcessingRequest.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(
            [_plain_error(error) for error in e.errors()]
        ) from e


def _plain_error(error: Dict[str, Any]) -> Dict[str, Any]:
    # pydantic's ctx may hold exception objects, which do not serialize
    return {
        "loc": tuple(error.get("loc", ())),
        "msg": error.get("msg", ""),
        "type": error.get("type", ""),
    }
