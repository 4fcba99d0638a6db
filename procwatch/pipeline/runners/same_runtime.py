# procwatch/pipeline/runners/same_runtime.py
"""
Runs an entry point inside the current interpreter.

No process is spawned, so several settings of a `CommandSpec` cannot apply:
the timeout, working directory, environment and interpreter options are
ignored and a warning is logged for each. The timeout in particular is NOT
enforced; a long-running entry point runs to completion.

System properties and classpath entries are installed as overlays for the
duration of the call and restored afterwards on every exit path. The overlays
and the swapped standard streams are process-wide state, so invocations are
serialized on `SAME_RUNTIME_LOCK`; running entry points from several threads
at once only makes them wait for each other.
"""

from __future__ import annotations

from procwatch.errors import ExecutionError
from procwatch.pipeline.entry_points import resolve_entry_point
from procwatch.pipeline.properties import (
    SAME_RUNTIME_LOCK,
    module_path_overlay,
    system_property_overlay,
)
from procwatch.pipeline.redirector import Redirector
from procwatch.pipeline.result import ExecutionResult, Outcome, to_outcome
from procwatch.pipeline.runners.base import Runner
from procwatch.pipeline.spec import CommandSpec
from procwatch.utils.logging import get_logger

log = get_logger(__name__)


class SameRuntimeInvoker(Runner):
    """Calls ``entry_point(arguments)`` synchronously on the calling thread."""

    forked = False

    def warn_ignored_settings(self, spec: CommandSpec) -> None:
        if spec.timeout_ms is not None:
            log.warning(
                "Timeout of %d ms is NOT enforced when running in the same runtime; "
                "set fork to true to enforce it.",
                spec.timeout_ms,
            )
        if spec.interpreter_args:
            log.warning("Interpreter args ignored when the same runtime is used.")
        if spec.interpreter:
            log.warning("Interpreter ignored when the same runtime is used.")
        if spec.working_directory is not None:
            log.warning("Working directory ignored when the same runtime is used.")
        if not spec.environment.is_empty:
            log.warning("Changes to environment variables are ignored when the same runtime is used.")

    def invoke(self, spec: CommandSpec, redirector: Redirector) -> Outcome:
        """
        Calls the entry point and returns how it ended.

        Returns:
            `Completed` when the function returned nothing, `RequestedExit`
            when it returned an exit status.

        Raises:
            ConfigurationError: if the spec is not an entry point.
            ExecutionError: if the entry point cannot be resolved or raises.
        """
        self.check(spec)
        self.warn_ignored_settings(spec)
        log.debug("Running in same runtime: %s", spec.describe())

        redirector.open()
        try:
            with SAME_RUNTIME_LOCK:
                with module_path_overlay(spec.classpath), system_property_overlay(spec.system_properties):
                    function = resolve_entry_point(spec.entry_point)
                    try:
                        with redirector.same_runtime():
                            value = function(list(spec.arguments))
                    except SystemExit as exc:
                        raise ExecutionError(
                            f"Entry point '{spec.entry_point}' raised SystemExit({exc.code!r}); "
                            "return an exit status or RequestedExit instead"
                        ) from exc
                    except ExecutionError:
                        raise
                    except Exception as exc:
                        raise ExecutionError(f"Entry point '{spec.entry_point}' failed: {exc}") from exc
            redirector.complete()
        finally:
            redirector.close()

        try:
            return to_outcome(value)
        except TypeError as exc:
            raise ExecutionError(str(exc)) from exc

    def run(self, spec: CommandSpec, redirector: Redirector) -> ExecutionResult:
        return ExecutionResult.from_outcome(self.invoke(spec, redirector))
