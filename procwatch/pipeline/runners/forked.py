# procwatch/pipeline/runners/forked.py
"""
Runs a unit of work as a separate OS process.

The calling thread blocks in `Popen.wait()` while the redirector's threads
drain the child's streams and an optional watchdog races the child's exit.
The result is built only after the watchdog has been stopped (so any kill
has already happened) and every stream has been drained.
"""

from __future__ import annotations

import json
import os
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from procwatch.errors import ConfigurationError, ExecutionError
from procwatch.pipeline.redirector import Redirector
from procwatch.pipeline.result import ExecutionResult
from procwatch.pipeline.runners.base import Runner
from procwatch.pipeline.runners.watchdog import Watchdog, kill_process_tree
from procwatch.pipeline.spec import CommandSpec
from procwatch.utils.logging import get_logger

log = get_logger(__name__)

BOOTSTRAP_MODULE = "procwatch.bootstrap"


@dataclass
class ProcessHandle:
    """A spawned child together with the redirector wired to it."""
    process: subprocess.Popen
    argv: List[str]
    cwd: Path
    redirector: Redirector


class ProcessLauncher(Runner):
    """
    Spawns and supervises one child process per call to `run`.

    The child never shares the parent's working directory or environment
    object: both are passed to `Popen` explicitly, so concurrent launches
    cannot observe each other's settings.
    """

    forked = True

    def _absolute(self, path: Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else (self.base_dir / path)

    def resolve_working_directory(self, spec: CommandSpec) -> Path:
        if spec.working_directory is None:
            return self.base_dir
        directory = self._absolute(spec.working_directory)
        if not directory.is_dir():
            raise ConfigurationError(f"{directory} is not a valid directory")
        return directory

    def check(self, spec: CommandSpec) -> None:
        super().check(spec)
        self.resolve_working_directory(spec)
        if spec.artifact is not None and not self._absolute(spec.artifact).is_file():
            raise ConfigurationError(f"Artifact {self._absolute(spec.artifact)} does not exist")

    def build_argv(self, spec: CommandSpec) -> List[str]:
        if spec.command:
            if spec.classpath or spec.system_properties or spec.interpreter_args:
                log.debug("Classpath, system properties and interpreter args do not apply to external commands.")
            return [*spec.command, *spec.arguments]

        interpreter = spec.interpreter or sys.executable
        if not interpreter:
            raise ExecutionError("Cannot determine the Python interpreter to launch.")

        payload: Dict[str, object] = {
            "classpath": [str(self._absolute(p)) for p in spec.classpath],
            "properties": dict(spec.system_properties),
        }
        if spec.artifact is not None:
            payload["artifact"] = str(self._absolute(spec.artifact))
        else:
            payload["entry_point"] = spec.entry_point
        return [
            interpreter,
            *spec.interpreter_args,
            "-m",
            BOOTSTRAP_MODULE,
            json.dumps(payload, sort_keys=True),
            *spec.arguments,
        ]

    def build_environment(self, spec: CommandSpec) -> Optional[Dict[str, str]]:
        """Returns the child's environment, or None to inherit ours unchanged."""
        environment = spec.environment
        if environment.is_empty:
            return None
        for entry in environment.entries():
            log.debug("Setting environment variable: %s", entry)
        return environment.build(os.environ)

    def launch(self, spec: CommandSpec, redirector: Redirector) -> ProcessHandle:
        """
        Spawns the child and starts draining its streams.

        Raises:
            ConfigurationError: if the spec is inconsistent or its working
                directory is invalid. Nothing is spawned in that case.
            ExecutionError: if the OS refuses to start the process.
        """
        self.check(spec)
        cwd = self.resolve_working_directory(spec)
        argv = self.build_argv(spec)
        env = self.build_environment(spec)
        redirector.open()

        popen_kwargs: Dict[str, object] = dict(redirector.popen_kwargs())
        if os.name == "nt":
            popen_kwargs["creationflags"] = int(getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0))
        else:
            # New session so the watchdog can kill the whole tree.
            popen_kwargs["start_new_session"] = True

        log.debug("Executing '%s' in %s", shlex.join(argv), cwd)
        process: Optional[subprocess.Popen] = None
        try:
            try:
                process = subprocess.Popen(argv, cwd=str(cwd), env=env, **popen_kwargs)
            except OSError as exc:
                raise ExecutionError(f"Could not launch '{argv[0]}': {exc}") from exc
            redirector.start(process)
        except BaseException:
            if process is not None:
                kill_process_tree(process)
                process.wait()
            redirector.close()
            raise
        return ProcessHandle(process=process, argv=argv, cwd=cwd, redirector=redirector)

    def create_watchdog(self, spec: CommandSpec) -> Optional[Watchdog]:
        if spec.timeout_ms is None:
            return None
        return Watchdog(spec.timeout_ms)

    def await_completion(self, handle: ProcessHandle, watchdog: Optional[Watchdog] = None) -> ExecutionResult:
        """
        Blocks until the child exits, either on its own or because the
        watchdog killed it, and until all of its output has been drained.
        """
        process = handle.process
        try:
            try:
                exit_code = process.wait()
            finally:
                if watchdog is not None:
                    watchdog.stop()
        except BaseException:
            # Interrupted while waiting: do not leave the child behind.
            kill_process_tree(process)
            process.wait()
            handle.redirector.close()
            raise

        timed_out = watchdog is not None and watchdog.timed_out
        killed = watchdog is not None and watchdog.killed
        handle.redirector.complete(killed=killed)
        if timed_out:
            log.warning("Timeout: killed the sub-process after %d ms", watchdog.timeout_ms)

        result = ExecutionResult(exit_code=exit_code, timed_out=timed_out, killed=killed, forked=True)
        log.debug("Process %s finished: %s", process.pid, result)
        return result

    def run(self, spec: CommandSpec, redirector: Redirector) -> ExecutionResult:
        handle = self.launch(spec, redirector)
        watchdog = self.create_watchdog(spec)
        if watchdog is not None:
            watchdog.start(handle.process)
        return self.await_completion(handle, watchdog)
