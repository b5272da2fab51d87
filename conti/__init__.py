"""
Conti - Storyboard Batch Image Generation

Renders 12-shot storyboards against a third-party image generation service:
a reference shot first, consistency features carried into the remaining
shots, staggered rate-limited batches, per-shot retries and a sequential
fallback when a batch cannot run.

Version: 1.0.0
"""

__version__ = "1.0.0"
__project__ = "Conti Storyboard"

from pathlib import Path

# Load environment variables before config is resolved
from conti.core.env_loader import ensure_env_loaded
ensure_env_loaded()

PACKAGE_ROOT = Path(__file__).parent

from .clients import ImageGenerationClient, ConsistencyExtractor
from .models import BatchProcessingRequest, BatchResult, BatchProgress, StoryboardImage
from .pipelines import StoryboardBatchOrchestrator

__all__ = [
    "__version__",
    "__project__",
    "PACKAGE_ROOT",
    "ImageGenerationClient",
    "ConsistencyExtractor",
    "BatchProcessingRequest",
    "BatchResult",
    "BatchProgress",
    "StoryboardImage",
    "StoryboardBatchOrchestrator",
]
