"""
Conti Collaborator Contracts

Abstract interfaces for the services the batch engine depends on but does
not implement: the image provider and the consistency feature extractor.
"""

from abc import ABC, abstractmethod
from typing import Any

from conti.core.constants import AspectRatio, ShotQuality, ShotStyle
from conti.models.image import GeneratedImage

# Opaque to the engine; produced and consumed by the extractor only
ConsistencyFeatures = Any


class ImageGenerationClient(ABC):
    """
    Generates one image per call.

    Implementations raise any exception on a non-success response; the
    engine treats every exception as a failed attempt.
    """

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        style: ShotStyle,
        quality: ShotQuality,
        aspect_ratio: AspectRatio,
    ) -> GeneratedImage:
        """Render ``prompt`` and return the provider's result."""
        pass


class ConsistencyExtractor(ABC):
    """Derives reusable visual features from a reference frame."""

    @abstractmethod
    async def extract_features(
        self,
        image_url: str,
        prompt: str,
        style: ShotStyle,
    ) -> ConsistencyFeatures:
        """Analyse the reference image. May raise; failures are non-fatal."""
        pass

    @abstractmethod
    def apply_consistency_to_prompt(
        self,
        prompt: str,
        features: ConsistencyFeatures,
        shot_number: int,
    ) -> str:
        """Rewrite ``prompt`` so shot ``shot_number`` carries the features."""
        pass
