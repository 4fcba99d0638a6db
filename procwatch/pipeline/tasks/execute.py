# procwatch/pipeline/tasks/execute.py
"""
Task that runs a command, artifact or entry point described in the `exec`
block of a run configuration.

Example::

    exec:
      entry_point: mypkg.tools:main
      args: [--verbose, input.txt]
      fork: true
      timeout_ms: 60000
      dir: work
      env: {LANG: C}
      output: logs/tool.out
      append: true
      fail_on_error: false
      result_property: tool.rc
"""

from __future__ import annotations

import shlex
from typing import Any, Dict, List, Mapping, Optional, Tuple

from procwatch.errors import ConfigurationError
from procwatch.pipeline.policy import FailurePolicy, execute
from procwatch.pipeline.spec import CommandSpec, EnvironmentSpec, RedirectionSpec
from procwatch.utils.config import get_bool, section
from procwatch.utils.logging import get_logger

from .base import Task, TaskContext

log = get_logger(__name__)


def _string_list(value: Any, key: str, deprecated_string: bool = True) -> List[str]:
    """
    Reads a list of strings. A single string is split with shell rules; for
    argument lists that form is deprecated.
    """
    if value is None:
        return []
    if isinstance(value, str):
        if deprecated_string:
            log.warning("The '%s' string form is deprecated. Please use a list.", key)
        return shlex.split(value)
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    raise ConfigurationError(f"'{key}' must be a list of strings")


def _environment(block: Mapping[str, Any]) -> EnvironmentSpec:
    replace = get_bool(block, "new_environment", False)
    env = block.get("env")
    if env is None:
        return EnvironmentSpec(replace_inherited=replace)
    if isinstance(env, dict):
        return EnvironmentSpec(
            variables={str(k): "" if v is None else str(v) for k, v in env.items()},
            replace_inherited=replace,
        )
    if isinstance(env, (list, tuple)):
        return EnvironmentSpec.from_entries(env, replace_inherited=replace)
    raise ConfigurationError("'env' must be a mapping or a list of NAME=VALUE strings")


def _timeout(block: Mapping[str, Any]) -> Optional[int]:
    value = block.get("timeout_ms")
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"'timeout_ms' must be an integer, got {value!r}") from exc


class ExecTask(Task):
    """Runs one invocation under the configured failure policy."""

    name = "exec"

    def prepare(self, cfg: Dict[str, Any]) -> Tuple[Tuple[CommandSpec, RedirectionSpec], Dict[str, Any]]:
        block = section(cfg, "exec")
        if not block:
            raise ConfigurationError("Configuration must contain an 'exec' block.")

        spec = CommandSpec(
            command=_string_list(block.get("command"), "command", deprecated_string=False),
            artifact=block.get("artifact"),
            entry_point=block.get("entry_point"),
            arguments=_string_list(block.get("args"), "args"),
            working_directory=block.get("dir"),
            environment=_environment(block),
            classpath=_string_list(block.get("classpath"), "classpath", deprecated_string=False),
            system_properties={str(k): str(v) for k, v in (block.get("system_properties") or {}).items()},
            interpreter=block.get("interpreter"),
            interpreter_args=_string_list(block.get("interpreter_args"), "interpreter_args"),
            timeout_ms=_timeout(block),
        )
        redirection = RedirectionSpec(
            input_file=block.get("input"),
            input_string=block.get("input_string"),
            output_file=block.get("output"),
            output_property=block.get("output_property"),
            error_file=block.get("error"),
            error_property=block.get("error_property"),
            append=get_bool(block, "append", False),
            log_error=get_bool(block, "log_error", False),
        )
        params = {
            "fork": get_bool(block, "fork", False),
            "policy": FailurePolicy(
                fail_on_error=get_bool(block, "fail_on_error", False),
                result_property=block.get("result_property"),
            ),
        }
        return (spec, redirection), params

    def run(self, ctx: TaskContext, inputs: Tuple[CommandSpec, RedirectionSpec], params: Dict[str, Any]) -> int:
        spec, redirection = inputs
        report = execute(
            spec,
            redirection,
            fork=params["fork"],
            policy=params["policy"],
            properties=ctx.properties,
            base_dir=ctx.base_dir,
        )
        if report.result is not None and report.result.timed_out:
            log.info("Invocation of %s timed out.", spec.describe())
        return report.status
