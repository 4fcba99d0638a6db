from __future__ import annotations


class ProcwatchError(Exception):
    """Base error for execution-related failures."""


class ConfigurationError(ProcwatchError):
    """Raised when an invocation is described inconsistently; nothing was run."""


class ExecutionError(ProcwatchError):
    """Raised when launching or running a unit of work fails."""
