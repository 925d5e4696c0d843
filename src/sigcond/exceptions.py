"""
Custom exception hierarchy for the sigcond conditioning pipeline.

Every error carries a human-readable message plus a details dict so callers
can log or inspect the offending values. All errors propagate to the caller;
the pipeline never salvages a partial result.
"""

from typing import Optional, Dict, Any


# ============================================================================
# Base Exception
# ============================================================================

class SigcondError(Exception):
    """
    Base exception for all sigcond errors.

    All custom exceptions inherit from this to allow catching all
    pipeline-specific errors with a single except clause.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Args:
            message: Human-readable error description
            details: Optional dict with additional context (values, names, etc.)
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error with details if available"""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} [{details_str}]"
        return self.message


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(SigcondError):
    """Raised when a recognized stage has missing or malformed parameters"""
    pass


class ConfigValidationError(ConfigurationError):
    """Raised when a stage descriptor contains invalid values"""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration value for '{field}': {reason}",
            details={"field": field, "value": value, "reason": reason}
        )


class UnknownStageError(ConfigurationError):
    """Raised in strict mode when a stage kind has no handler"""

    def __init__(self, kind: str, known_kinds: list):
        super().__init__(
            f"Unknown stage kind '{kind}' (expected one of: {', '.join(known_kinds)})",
            details={"kind": kind}
        )


# ============================================================================
# Input Errors
# ============================================================================

class DimensionMismatchError(SigcondError):
    """Raised when the signal row count differs from the time vector length"""

    def __init__(self, signal_rows: int, time_length: int):
        super().__init__(
            f"Signal has {signal_rows} samples but time vector has {time_length} points",
            details={"signal_rows": signal_rows, "time_length": time_length}
        )


class SampleRateUndefinedError(SigcondError):
    """Raised when no positive sampling rate can be derived from the time vector"""

    def __init__(self, reason: str, n_points: Optional[int] = None):
        details = {"reason": reason}
        if n_points is not None:
            details["n_points"] = n_points

        super().__init__(
            f"Sample rate undefined: {reason}",
            details=details
        )


# ============================================================================
# Processing Errors
# ============================================================================

class ProcessingError(SigcondError):
    """Base class for numerical processing errors"""
    pass


class FilterDesignError(ProcessingError):
    """Raised when a filter-chain entry cannot be realized as a stable filter"""

    def __init__(self, filter_name: str, reason: str):
        super().__init__(
            f"Filter design failed for '{filter_name}': {reason}",
            details={"filter_name": filter_name, "reason": reason}
        )


class FilterApplicationError(ProcessingError):
    """Raised when a designed filter cannot be applied to the signal"""

    def __init__(self, filter_name: str, reason: str):
        super().__init__(
            f"Applying filter '{filter_name}' failed: {reason}",
            details={"filter_name": filter_name, "reason": reason}
        )


# ============================================================================
# Utility Functions
# ============================================================================

def format_error_chain(error: Exception) -> str:
    """
    Format exception chain for logging.

    Args:
        error: Exception to format

    Returns:
        Multi-line string with full error chain
    """
    lines = [f"Error: {type(error).__name__}: {str(error)}"]

    if isinstance(error, SigcondError) and error.details:
        lines.append("Details:")
        for key, value in error.details.items():
            lines.append(f"  {key}: {value}")

    if error.__cause__ is not None:
        lines.append("\nCaused by:")
        lines.append(format_error_chain(error.__cause__))

    return "\n".join(lines)
