"""
Conti Models

Request schema, per-shot images, progress and result records.
"""

from .request import (
    ShotSpec,
    BatchOptions,
    BatchProcessingRequest,
    parse_batch_request,
)
from .image import (
    ImageDimensions,
    ConsistencyInfo,
    ImageMetadata,
    StoryboardImage,
    GeneratedImage,
    create_storyboard_image,
    create_placeholder_image,
)
from .progress import ShotProgress, BatchProgress
from .result import (
    BatchSummary,
    ShotError,
    BatchResult,
    build_batch_result,
)

__all__ = [
    'ShotSpec',
    'BatchOptions',
    'BatchProcessingRequest',
    'parse_batch_request',
    'ImageDimensions',
    'ConsistencyInfo',
    'ImageMetadata',
    'StoryboardImage',
    'GeneratedImage',
    'create_storyboard_image',
    'create_placeholder_image',
    'ShotProgress',
    'BatchProgress',
    'BatchSummary',
    'ShotError',
    'BatchResult',
    'build_batch_result',
]
