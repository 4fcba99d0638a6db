# procwatch/pipeline/policy.py
"""
Failure policy applied around an invocation.

With ``fail_on_error`` a failed launch or a failing exit status aborts the
caller by raising `ExecutionError`. Without it the failure is logged at error
level and the caller's control flow continues as if the invocation returned
0, while the real exit status, when there is one, is still published under
``result_property``. Configuration errors are always raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from procwatch.errors import ExecutionError
from procwatch.pipeline.properties import PropertyStore
from procwatch.pipeline.redirector import Redirector
from procwatch.pipeline.result import ExecutionResult, is_failure
from procwatch.pipeline.runners.base import Runner
from procwatch.pipeline.runners.forked import ProcessLauncher
from procwatch.pipeline.runners.same_runtime import SameRuntimeInvoker
from procwatch.pipeline.spec import CommandSpec, RedirectionSpec
from procwatch.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class FailurePolicy:
    fail_on_error: bool = False
    result_property: Optional[str] = None


@dataclass(frozen=True)
class InvocationReport:
    """
    Outcome as seen by the caller's control flow.

    A recovered failure reports status 0 even though `result`, when present,
    holds the real exit status.
    """
    result: Optional[ExecutionResult] = None
    recovered: bool = False

    @property
    def status(self) -> int:
        if self.recovered or self.result is None:
            return 0
        return self.result.exit_code


def runner_for(fork: bool, base_dir: Optional[Path] = None) -> Runner:
    return ProcessLauncher(base_dir) if fork else SameRuntimeInvoker(base_dir)


def _publish_result(policy: FailurePolicy, properties: Optional[PropertyStore], exit_code: int) -> None:
    if policy.result_property and properties is not None:
        properties.publish(policy.result_property, str(exit_code))


def execute(
    spec: CommandSpec,
    redirection: Optional[RedirectionSpec] = None,
    *,
    fork: bool = False,
    policy: FailurePolicy = FailurePolicy(),
    properties: Optional[PropertyStore] = None,
    base_dir: Optional[Path] = None,
) -> InvocationReport:
    """
    Runs `spec` in the chosen mode and applies `policy` to the outcome.

    Raises:
        ConfigurationError: always, before anything is opened or spawned.
        ExecutionError: only when ``policy.fail_on_error`` is set.
    """
    redirection = redirection or RedirectionSpec()
    runner = runner_for(fork, base_dir)
    runner.check(spec)
    redirection.validate()

    try:
        with Redirector(redirection, base_dir=runner.base_dir, properties=properties) as redirector:
            result = runner.run(spec, redirector)
    except ExecutionError as exc:
        if policy.fail_on_error:
            raise
        log.error("%s", exc)
        return InvocationReport(result=None, recovered=True)

    recovered = False
    if is_failure(result):
        if policy.fail_on_error:
            raise ExecutionError(f"Process returned: {result.exit_code}")
        log.error("Result: %d", result.exit_code)
        recovered = True
    _publish_result(policy, properties, result.exit_code)
    return InvocationReport(result=result, recovered=recovered)
