"""
Conti Custom Exceptions

Custom exception classes for error handling throughout the storyboard batch engine.
"""


class ContiError(Exception):
    """Base exception for all Conti errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(ContiError):
    """Raised when there's an issue with configuration."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""
    pass


# =============================================================================
# BATCH RUN ERRORS
# =============================================================================

class BatchError(ContiError):
    """Base exception for batch run errors."""
    pass


class RequestValidationError(BatchError):
    """Raised when a batch request does not match the request schema."""

    def __init__(self, errors: list):
        message = f"Invalid batch request: {len(errors)} error(s)"
        super().__init__(message, {"errors": errors})
        self.errors = errors

    def __str__(self):
        lines = [self.message]
        for error in self.errors:
            location = ".".join(str(part) for part in error.get("loc", ()))
            lines.append(f"  {location or '<request>'}: {error.get('msg', '')}")
        return "\n".join(lines)


class BatchInProgressError(BatchError):
    """Raised when process_batch is called while another run is active."""

    def __init__(self, story_id: str = None):
        message = "Another storyboard batch is already being processed"
        super().__init__(message, {"active_story_id": story_id} if story_id else None)


class BatchAbortedError(BatchError):
    """Raised inside a run once abort() has been requested."""

    def __init__(self, story_id: str):
        super().__init__(f"Batch for story '{story_id}' was aborted", {"story_id": story_id})


class BatchOrchestrationError(BatchError):
    """Raised when a batch cannot be scheduled as a whole."""

    def __init__(self, batch_number: int, reason: str):
        message = f"Batch {batch_number} failed: {reason}"
        super().__init__(message, {"batch_number": batch_number, "reason": reason})


class InvalidPhaseTransitionError(BatchError):
    """Raised when progress is moved to a phase that cannot follow the current one."""

    def __init__(self, current: str, target: str):
        message = f"Cannot move batch phase from '{current}' to '{target}'"
        super().__init__(message, {"current": current, "target": target})


# =============================================================================
# GENERATION ERRORS
# =============================================================================

class GenerationError(ContiError):
    """Base exception for collaborator-side generation errors."""
    pass


class ConsistencyExtractionError(GenerationError):
    """Raised when consistency features cannot be derived from a reference image."""
    pass
