"""
Abstract runner interface for executing a unit of work.

Implementations subclass `Runner` and provide a `run` method that executes a
`CommandSpec` with its streams wired by a `Redirector` and returns an
`ExecutionResult`. Whether a timeout or the environment settings are honored
depends on the implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from procwatch.pipeline.redirector import Redirector
from procwatch.pipeline.result import ExecutionResult
from procwatch.pipeline.spec import CommandSpec


class Runner(ABC):
    """
    Abstract base class for runners.

    Args:
        base_dir: Directory used when a spec has no working directory.
    """

    forked: bool = True

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()

    def check(self, spec: CommandSpec) -> None:
        """
        Validates `spec` for this runner without side effects.

        Raises:
            ConfigurationError: if the spec cannot be run by this runner.
        """
        spec.validate(fork=self.forked)

    @abstractmethod
    def run(self, spec: CommandSpec, redirector: Redirector) -> ExecutionResult:
        """
        Execute a unit of work.

        Args:
            spec: What to run.
            redirector: An opened redirector for the invocation's streams.

        Returns:
            The normalized completion result.
        """
        raise NotImplementedError
