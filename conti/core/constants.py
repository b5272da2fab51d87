"""
Conti Constants

Global constants used throughout the storyboard batch engine.
"""

from enum import Enum

# =============================================================================
# VERSION INFO
# =============================================================================
VERSION = "1.0.0"
PROJECT_NAME = "Conti Storyboard"

# =============================================================================
# STORYBOARD SHAPE
# =============================================================================

# A storyboard is always 12 shots; shot 1 is the consistency reference
TOTAL_SHOTS = 12
REFERENCE_SHOT_NUMBER = 1
MAX_PROMPT_LENGTH = 1000

# =============================================================================
# SHOT ENUMS
# =============================================================================

class ShotStyle(str, Enum):
    """Drawing style of a storyboard frame."""
    PENCIL = "pencil"
    ROUGH = "rough"
    MONOCHROME = "monochrome"
    COLORED = "colored"


class ShotQuality(str, Enum):
    """Rendering quality requested from the image provider."""
    DRAFT = "draft"
    STANDARD = "standard"
    HIGH = "high"


class AspectRatio(str, Enum):
    """Frame aspect ratio."""
    WIDESCREEN = "16:9"
    STANDARD = "4:3"
    SQUARE = "1:1"
    VERTICAL = "9:16"


class ImageStatus(str, Enum):
    """Final status of a generated storyboard image."""
    COMPLETED = "completed"
    FAILED = "failed"


class ShotStatus(str, Enum):
    """Per-shot status inside a progress snapshot."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

# =============================================================================
# BATCH RUN STATE
# =============================================================================

class BatchPhase(str, Enum):
    """Phases of a batch run, in execution order."""
    INITIALIZING = "initializing"
    EXTRACTING_CONSISTENCY = "extracting_consistency"
    PROCESSING_BATCHES = "processing_batches"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_PHASES = frozenset({BatchPhase.COMPLETED, BatchPhase.FAILED})

PHASE_ORDER = [
    BatchPhase.INITIALIZING,
    BatchPhase.EXTRACTING_CONSISTENCY,
    BatchPhase.PROCESSING_BATCHES,
    BatchPhase.FINALIZING,
    BatchPhase.COMPLETED,
]


class BatchStatus(str, Enum):
    """Outcome of a finished batch run."""
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class BatchEvent(str, Enum):
    """Event names emitted by the orchestrator."""
    PROGRESS = "progress"
    SHOT_COMPLETED = "shotCompleted"
    SHOT_FAILED = "shotFailed"
    BATCH_COMPLETED = "batchCompleted"
    CONSISTENCY_EXTRACTED = "consistencyExtracted"
    COMPLETED = "completed"
    ERROR = "error"

# =============================================================================
# PROGRESS CHECKPOINTS (percent)
# =============================================================================
PROGRESS_START = 0
PROGRESS_REFERENCE_STARTED = 5
PROGRESS_REFERENCE_DONE = 15
PROGRESS_CONSISTENCY_DONE = 20
PROGRESS_BATCHES_STARTED = 25
PROGRESS_BATCHES_SPAN = 65
PROGRESS_FINALIZING = 95
PROGRESS_DONE = 100

# =============================================================================
# REQUEST LIMITS (milliseconds where noted)
# =============================================================================
MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 6
DEFAULT_BATCH_SIZE = 3

MIN_BATCH_DELAY_MS = 5000
MAX_BATCH_DELAY_MS = 30000
DEFAULT_BATCH_DELAY_MS = 12000

MIN_RETRIES = 0
MAX_RETRIES = 3
DEFAULT_MAX_RETRIES = 2

ABORT_MESSAGE = "User aborted"
ABORT_EVENT_MESSAGE = "Processing aborted by user"
CANCELLED_MESSAGE = "Processing cancelled"
PLACEHOLDER_URL_TEMPLATE = "/images/placeholder-error-shot-{shot_number}.png"
