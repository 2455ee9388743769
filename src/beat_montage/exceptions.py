"""
Beat Montage Exception Hierarchy

All exceptions inherit from MontageError for easy catching.

Synchronous errors (InvalidRequest, SourceUnavailable, CapacityExceeded)
reach the caller before a run exists. Everything raised inside the
background workflow is logged and reduced to a generic failed status.

Usage:
    from beat_montage.exceptions import InvalidRequest, RenderFailure

    try:
        run_id = manager.submit(payload)
    except InvalidRequest as e:
        return jsonify({"status": "error", "message": str(e)}), 400
"""


class MontageError(Exception):
    """Base exception for all Beat Montage errors."""
    pass


# =============================================================================
# Submission Errors
# =============================================================================

class InvalidRequest(MontageError):
    """Malformed or missing submission fields."""
    pass


class SourceUnavailable(MontageError):
    """Referenced source video or music track is missing or unreadable."""
    pass


class CapacityExceeded(MontageError):
    """Too many runs in flight to accept another submission."""
    pass


# =============================================================================
# Analysis Errors
# =============================================================================

class AnalysisFailure(MontageError):
    """The external video analysis call failed."""
    pass


class AnalysisParseError(AnalysisFailure):
    """Analysis returned text that is not a JSON array of clips."""
    pass


# =============================================================================
# Rendering Errors
# =============================================================================

class RenderFailure(MontageError):
    """The external renderer failed to produce the montage."""
    pass


class FFmpegError(RenderFailure):
    """FFmpeg command failed."""

    def __init__(self, message: str, command: str = None, stderr: str = None):
        super().__init__(message)
        self.command = command
        self.stderr = stderr


# =============================================================================
# Run Lookup Errors
# =============================================================================

class RunNotFound(MontageError):
    """No run with this id (never existed or already cleaned up)."""
    pass


class RunNotReady(MontageError):
    """Run exists but has no finished montage to hand out."""
    pass


class UnsafePathError(MontageError):
    """Result path escapes the output directory."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(MontageError):
    """Invalid configuration or missing required settings."""
    pass
