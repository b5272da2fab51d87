"""
Conti Clients

Contracts for the external image provider and consistency extractor.
"""

from .base import ImageGenerationClient, ConsistencyExtractor, ConsistencyFeatures

__all__ = [
    'ImageGenerationClient',
    'ConsistencyExtractor',
    'ConsistencyFeatures',
]
