"""
Conti Pipelines Module

Batch generation pipeline for 12-shot storyboards.

Main Entry Point:
- StoryboardBatchOrchestrator: reference shot, consistency, batches, result

Building Blocks:
- BatchScheduler: staggered, rate-limited batches with settle-all joins
- SequentialFallback: one-shot-at-a-time degraded path
- ProgressTracker: phase state machine and progress snapshots
- ShotRunner: single-shot generation through the retry policy
- BatchEventEmitter: multi-subscriber run events
"""

from .events import BatchEventEmitter
from .progress_tracker import ProgressTracker, can_transition
from .shot_runner import ShotRunner
from .sequential_fallback import SequentialFallback
from .batch_scheduler import BatchScheduler, split_into_batches
from .batch_orchestrator import StoryboardBatchOrchestrator

__all__ = [
    'BatchEventEmitter',
    'ProgressTracker',
    'can_transition',
    'ShotRunner',
    'SequentialFallback',
    'BatchScheduler',
    'split_into_batches',
    'StoryboardBatchOrchestrator',
]
