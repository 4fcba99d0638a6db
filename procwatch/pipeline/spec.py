# procwatch/pipeline/spec.py
"""
Immutable descriptions of a single invocation.

A `CommandSpec` says what to run and with which environment; a
`RedirectionSpec` says where its standard streams come from and go to. Both
are built once by the caller and only read afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple

from procwatch.errors import ConfigurationError


def _freeze(values: Optional[Iterable]) -> Tuple[str, ...]:
    return tuple(str(v) for v in (values or ()))


@dataclass(frozen=True)
class EnvironmentSpec:
    """
    Environment for a forked child.

    With `replace_inherited` the child sees exactly `variables`; otherwise the
    current environment is copied and overridden key by key.
    """
    variables: Mapping[str, str] = field(default_factory=dict)
    replace_inherited: bool = False

    @classmethod
    def from_entries(cls, entries: Iterable[str], replace_inherited: bool = False) -> "EnvironmentSpec":
        """Builds a spec from ``NAME=VALUE`` strings."""
        variables: Dict[str, str] = {}
        for entry in entries:
            name, sep, value = str(entry).partition("=")
            if not sep or not name:
                raise ConfigurationError(f"Environment entry must look like NAME=VALUE: {entry!r}")
            variables[name] = value
        return cls(variables=variables, replace_inherited=replace_inherited)

    @property
    def is_empty(self) -> bool:
        return not self.variables and not self.replace_inherited

    def entries(self) -> Tuple[str, ...]:
        return tuple(f"{k}={v}" for k, v in self.variables.items())

    def build(self, inherited: Mapping[str, str]) -> Dict[str, str]:
        env = {} if self.replace_inherited else dict(inherited)
        env.update({str(k): str(v) for k, v in self.variables.items()})
        return env


@dataclass(frozen=True)
class CommandSpec:
    """
    One unit of work.

    Exactly one of `command`, `artifact` or `entry_point` must be set:

    - command: an external executable followed by its leading arguments.
    - artifact: a runnable script or zipapp, run by the interpreter.
    - entry_point: ``"package.module:function"``; a bare module name means
      its ``main`` function. The function receives the argument list.

    `timeout_ms` is only honored when the work is forked.
    """
    command: Tuple[str, ...] = ()
    artifact: Optional[Path] = None
    entry_point: Optional[str] = None
    arguments: Tuple[str, ...] = ()
    working_directory: Optional[Path] = None
    environment: EnvironmentSpec = field(default_factory=EnvironmentSpec)
    classpath: Tuple[Path, ...] = ()
    system_properties: Mapping[str, str] = field(default_factory=dict)
    interpreter: Optional[str] = None
    interpreter_args: Tuple[str, ...] = ()
    timeout_ms: Optional[int] = None

    def __post_init__(self) -> None:
        # Normalize sequences so callers may pass lists.
        object.__setattr__(self, "command", _freeze(self.command))
        object.__setattr__(self, "arguments", _freeze(self.arguments))
        object.__setattr__(self, "interpreter_args", _freeze(self.interpreter_args))
        object.__setattr__(self, "classpath", tuple(Path(p) for p in self.classpath))
        object.__setattr__(
            self, "system_properties", {str(k): str(v) for k, v in dict(self.system_properties).items()}
        )
        if self.artifact is not None:
            object.__setattr__(self, "artifact", Path(self.artifact))
        if self.working_directory is not None:
            object.__setattr__(self, "working_directory", Path(self.working_directory))

    @property
    def entry_kind(self) -> Optional[str]:
        kinds = self._entry_kinds()
        return kinds[0] if len(kinds) == 1 else None

    def _entry_kinds(self) -> Tuple[str, ...]:
        kinds = []
        if self.command:
            kinds.append("command")
        if self.artifact is not None:
            kinds.append("artifact")
        if self.entry_point:
            kinds.append("entry_point")
        return tuple(kinds)

    def validate(self, fork: bool) -> None:
        """
        Checks that the spec can be run in the requested mode.

        Raises:
            ConfigurationError: if no entry or more than one entry is set, if
                a command or artifact is requested without forking, or if the
                timeout is not positive.
        """
        kinds = self._entry_kinds()
        if not kinds:
            raise ConfigurationError("One of command, artifact or entry_point must be set.")
        if len(kinds) > 1:
            raise ConfigurationError(
                f"Cannot use {' and '.join(kinds)} in the same invocation."
            )
        if not fork and kinds[0] != "entry_point":
            raise ConfigurationError(
                f"Cannot run {kinds[0].replace('_', ' ')} in the same runtime. Please set fork to true."
            )
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ConfigurationError(f"timeout_ms must be positive, got {self.timeout_ms}")

    def describe(self) -> str:
        """Human readable form used in debug logs."""
        if self.command:
            head = " ".join(self.command)
        elif self.artifact is not None:
            head = f"artifact {self.artifact}"
        else:
            head = f"entry point {self.entry_point}"
        if self.arguments:
            head += " " + " ".join(self.arguments)
        return head


@dataclass(frozen=True)
class RedirectionSpec:
    """
    Stream wiring for one invocation.

    Input comes from `input_file`, `input_string`, or nowhere. Output and
    error each go to the console (default), a file, or a named property that
    receives the captured text once the invocation completes. `append`
    applies to both file sinks. With `log_error` the error stream is sent to
    the host log instead of following redirected output.
    """
    input_file: Optional[Path] = None
    input_string: Optional[str] = None
    output_file: Optional[Path] = None
    output_property: Optional[str] = None
    error_file: Optional[Path] = None
    error_property: Optional[str] = None
    append: bool = False
    log_error: bool = False

    def __post_init__(self) -> None:
        for name in ("input_file", "output_file", "error_file"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, Path(value))

    def validate(self) -> None:
        if self.input_file is not None and self.input_string is not None:
            raise ConfigurationError("The input file and input string are mutually exclusive.")
        if self.output_file is not None and self.output_property:
            raise ConfigurationError("Output can go to a file or a property, not both.")
        if self.error_file is not None and self.error_property:
            raise ConfigurationError("Error output can go to a file or a property, not both.")
