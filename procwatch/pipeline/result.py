# procwatch/pipeline/result.py
"""
Completion values produced by the runners.

Forked and same-runtime execution both end in an `ExecutionResult`. A
same-runtime call additionally produces `Completed` or `RequestedExit`, which
is how invoked code asks for a specific exit status without terminating the
host interpreter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Completed:
    """The entry point returned normally."""
    exit_code: int = 0


@dataclass(frozen=True)
class RequestedExit:
    """The entry point asked for the process to exit with `code`."""
    code: int

    @property
    def exit_code(self) -> int:
        return self.code


Outcome = Union[Completed, RequestedExit]


def to_outcome(value: object) -> Outcome:
    """
    Map an entry point's return value to an outcome.

    `None` means the call completed, an `int` is an exit request for that
    status, and outcome instances pass through unchanged.
    """
    if value is None:
        return Completed()
    if isinstance(value, (Completed, RequestedExit)):
        return value
    # bool is an int subclass but never an exit status
    if isinstance(value, int) and not isinstance(value, bool):
        return RequestedExit(int(value))
    raise TypeError(
        f"Entry point returned {type(value).__name__}; expected None, int, "
        "Completed or RequestedExit"
    )


@dataclass(frozen=True)
class ExecutionResult:
    """
    Normalized completion of one invocation.

    Attributes:
        exit_code: Exit status; negative values mean the process was ended by
            a signal.
        timed_out: The watchdog expired before the process exited.
        killed: The watchdog issued a kill.
        forked: The unit of work ran as a separate OS process.
    """
    exit_code: int
    timed_out: bool = False
    killed: bool = False
    forked: bool = True

    @classmethod
    def from_outcome(cls, outcome: Outcome) -> "ExecutionResult":
        return cls(exit_code=outcome.exit_code, forked=False)


def is_failure(result: ExecutionResult) -> bool:
    """Returns True for any non-zero exit status, including kill signals."""
    return result.exit_code != 0
