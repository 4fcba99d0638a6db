# procwatch/pipeline/redirector.py
"""
Binds the standard streams of a unit of work to files, strings, captured
properties or the host log.

Usage in forked mode::

    with Redirector(redirection, base_dir=base, properties=store) as redirector:
        process = subprocess.Popen(argv, **redirector.popen_kwargs())
        redirector.start(process)
        process.wait()
        redirector.complete()

Every piped output stream is drained by its own thread, so a full pipe on one
stream never stalls the other or the child. A literal input string is fed by
a separate thread and the pipe is closed once the string is written.
`complete()` returns only after every drain has seen end-of-stream; captured
values are readable from that point on.
"""

from __future__ import annotations

import io
import subprocess
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Dict, Iterator, List, Optional

from procwatch.errors import ConfigurationError, ExecutionError
from procwatch.pipeline.properties import PropertyStore
from procwatch.pipeline.spec import RedirectionSpec
from procwatch.utils.logging import get_logger

log = get_logger(__name__)

_CHUNK_SIZE = 64 * 1024
# How long drains may keep running after the watchdog killed the child.
# Grandchildren that inherited a pipe can hold it open indefinitely.
_KILLED_DRAIN_GRACE_SECONDS = 2.0


class _FileWriter:
    """The single writer for one resolved output path."""

    def __init__(self, path: Path, append: bool) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._closed = False
        path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(path, "ab" if append else "wb")

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> None:
        with self._lock:
            if self._closed:
                return
            self._fh.write(data)

    def close(self) -> None:
        with self._lock:
            if not self._closed:
                self._closed = True
                self._fh.close()


class Sink:
    """Destination for bytes from one stream."""

    def write(self, data: bytes) -> None:
        raise NotImplementedError

    def finish(self) -> None:
        """Called once draining has ended."""


class FileSink(Sink):
    def __init__(self, writer: _FileWriter) -> None:
        self.writer = writer

    def write(self, data: bytes) -> None:
        self.writer.write(data)


class CaptureSink(Sink):
    """Accumulates everything written; readable once draining has ended."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._buffer = bytearray()
        self._lock = threading.Lock()
        self._done = False

    def write(self, data: bytes) -> None:
        with self._lock:
            if not self._done:
                self._buffer.extend(data)

    def finish(self) -> None:
        with self._lock:
            self._done = True

    @property
    def value(self) -> bytes:
        with self._lock:
            if not self._done:
                raise RuntimeError(f"Captured stream '{self.name}' is not available before completion.")
            return bytes(self._buffer)

    @property
    def text(self) -> str:
        return self.value.decode("utf-8", errors="replace")


class LogSink(Sink):
    """
    Sends each complete line to the host log at warning level.

    While held, lines are queued and only logged by `release()`. The
    same-runtime redirection holds the sink for as long as ``sys.stderr`` is
    swapped, since host log handlers may write to the swapped stream, which
    would feed their records back into captured output or into this sink.
    """

    def __init__(self, label: str) -> None:
        self.label = label
        self._pending = b""
        self._held = False
        self._queued: List[bytes] = []
        self._lock = threading.Lock()

    def hold(self) -> None:
        with self._lock:
            self._held = True

    def release(self) -> None:
        with self._lock:
            self._held = False
            queued, self._queued = self._queued, []
        for line in queued:
            self._emit(line)

    def write(self, data: bytes) -> None:
        with self._lock:
            self._pending += data
            *lines, self._pending = self._pending.split(b"\n")
            if self._held:
                self._queued.extend(lines)
                return
        for line in lines:
            self._emit(line)

    def finish(self) -> None:
        with self._lock:
            rest, self._pending = self._pending, b""
            if rest and self._held:
                self._queued.append(rest)
                return
        if rest:
            self._emit(rest)

    def _emit(self, line: bytes) -> None:
        log.warning("[%s] %s", self.label, line.decode("utf-8", errors="replace").rstrip("\r"))


class _SinkBinaryStream(io.RawIOBase):
    def __init__(self, sink: Sink) -> None:
        self._sink = sink

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        data = bytes(data)
        self._sink.write(data)
        return len(data)


class _SinkTextStream(io.TextIOBase):
    """Text stream installed as sys.stdout/sys.stderr for same-runtime calls."""

    def __init__(self, sink: Sink, encoding: str = "utf-8") -> None:
        self._sink = sink
        self._encoding = encoding
        self.buffer = _SinkBinaryStream(sink)

    @property
    def encoding(self) -> str:
        return self._encoding

    def writable(self) -> bool:
        return True

    def write(self, text: str) -> int:
        self._sink.write(text.encode(self._encoding, errors="replace"))
        return len(text)


class Redirector:
    """
    Opens, wires and finalizes the streams of one invocation.

    Args:
        spec: The stream configuration.
        base_dir: Directory that relative file paths are resolved against.
        properties: Store receiving captured output once `complete()` runs.
    """

    def __init__(
        self,
        spec: RedirectionSpec,
        base_dir: Optional[Path] = None,
        properties: Optional[PropertyStore] = None,
    ) -> None:
        self.spec = spec
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self.properties = properties
        self.output_sink: Optional[Sink] = None
        self.error_sink: Optional[Sink] = None
        self._writers: Dict[Path, _FileWriter] = {}
        self._input_file: Optional[IO[bytes]] = None
        self._threads: List[threading.Thread] = []
        self._errors: List[ExecutionError] = []
        self._opened = False
        self._completed = False

    def __enter__(self) -> "Redirector":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _resolve(self, path: Path) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = self.base_dir / path
        return path.resolve()

    def _file_sink(self, path: Path) -> FileSink:
        resolved = self._resolve(path)
        writer = self._writers.get(resolved)
        if writer is None:
            try:
                writer = _FileWriter(resolved, append=self.spec.append)
            except OSError as exc:
                raise ExecutionError(f"Cannot write to {resolved}: {exc}") from exc
            self._writers[resolved] = writer
            log.debug("Output file %s opened (append=%s)", resolved, self.spec.append)
        return FileSink(writer)

    def open(self) -> "Redirector":
        """Opens input and output files. The append mode is decided here, once."""
        if self._opened:
            return self
        spec = self.spec
        spec.validate()
        self._opened = True
        try:
            if spec.input_file is not None:
                source = self._resolve(spec.input_file)
                if not source.is_file():
                    raise ConfigurationError(f"Cannot read from input file {source}")
                self._input_file = open(source, "rb")

            if spec.output_file is not None:
                self.output_sink = self._file_sink(spec.output_file)
            elif spec.output_property:
                self.output_sink = CaptureSink(spec.output_property)

            if spec.error_file is not None:
                self.error_sink = self._file_sink(spec.error_file)
            elif spec.error_property:
                self.error_sink = CaptureSink(spec.error_property)
            elif spec.log_error:
                self.error_sink = LogSink("stderr")
            elif self.output_sink is not None:
                # Unredirected errors follow redirected output.
                self.error_sink = self.output_sink
        except BaseException:
            self.close()
            raise
        return self

    @property
    def errors_merged(self) -> bool:
        return self.error_sink is not None and self.error_sink is self.output_sink

    def popen_kwargs(self) -> Dict[str, object]:
        """Standard stream arguments for `subprocess.Popen`."""
        if self._input_file is not None:
            stdin: object = self._input_file
        elif self.spec.input_string is not None:
            stdin = subprocess.PIPE
        else:
            stdin = subprocess.DEVNULL

        stdout = subprocess.PIPE if self.output_sink is not None else None
        if self.errors_merged:
            stderr: object = subprocess.STDOUT
        elif self.error_sink is not None:
            stderr = subprocess.PIPE
        else:
            stderr = None
        return {"stdin": stdin, "stdout": stdout, "stderr": stderr}

    def start(self, process: subprocess.Popen) -> None:
        """Starts the drain and feeder threads for a freshly spawned process."""
        if process.stdout is not None and self.output_sink is not None:
            self._spawn(self._drain, process.stdout, self.output_sink, "stdout")
        if process.stderr is not None and self.error_sink is not None:
            self._spawn(self._drain, process.stderr, self.error_sink, "stderr")
        if process.stdin is not None and self.spec.input_string is not None:
            self._spawn(self._feed, process.stdin, self.spec.input_string.encode("utf-8"), "stdin")

    def _spawn(self, target, stream, arg, label: str) -> None:
        thread = threading.Thread(
            target=target, args=(stream, arg, label), name=f"procwatch-{label}", daemon=True
        )
        self._threads.append(thread)
        thread.start()

    def _drain(self, stream: IO[bytes], sink: Sink, label: str) -> None:
        try:
            while True:
                chunk = stream.read1(_CHUNK_SIZE)
                if not chunk:
                    break
                sink.write(chunk)
        except (OSError, ValueError) as exc:
            self._errors.append(ExecutionError(f"Failed to read {label} of the child: {exc}"))
        finally:
            stream.close()

    def _feed(self, stream: IO[bytes], data: bytes, label: str) -> None:
        try:
            try:
                stream.write(data)
            finally:
                stream.close()
        except BrokenPipeError:
            log.debug("Child closed its %s before all input was written", label)
        except OSError as exc:
            self._errors.append(ExecutionError(f"Failed to write {label} of the child: {exc}"))

    def complete(self, killed: bool = False) -> None:
        """
        Waits for every drain to finish, then finalizes the sinks.

        When the child was killed the drains get a bounded grace period; any
        still running afterwards are abandoned and their late writes dropped.

        Raises:
            ExecutionError: if reading or writing a stream failed.
        """
        if self._completed:
            return
        timeout = _KILLED_DRAIN_GRACE_SECONDS if killed else None
        for thread in self._threads:
            thread.join(timeout)
            if thread.is_alive():
                log.warning("%s is still open after the kill; abandoning it", thread.name)
        self._completed = True
        self._finish_sinks()
        self.close()
        if self._errors:
            raise self._errors[0]

    def _finish_sinks(self) -> None:
        sinks = [self.output_sink] if self.errors_merged else [self.output_sink, self.error_sink]
        for sink in sinks:
            if sink is None:
                continue
            sink.finish()
            if isinstance(sink, CaptureSink) and self.properties is not None:
                self.properties.publish(sink.name, sink.text)

    def close(self) -> None:
        """Releases every file handle. Safe to call more than once."""
        for writer in self._writers.values():
            try:
                writer.close()
            except OSError as exc:
                self._errors.append(ExecutionError(f"Failed to close {writer.path}: {exc}"))
        if self._input_file is not None:
            self._input_file.close()
            self._input_file = None

    @contextmanager
    def same_runtime(self) -> Iterator[None]:
        """
        Swaps ``sys.stdin``/``sys.stdout``/``sys.stderr`` for the configured
        streams while an entry point runs in this interpreter.
        """
        saved = sys.stdin, sys.stdout, sys.stderr
        stdin_wrapper: Optional[io.TextIOWrapper] = None
        held = [sink for sink in {self.output_sink, self.error_sink} if isinstance(sink, LogSink)]
        for sink in held:
            sink.hold()
        try:
            if self._input_file is not None:
                stdin_wrapper = io.TextIOWrapper(self._input_file, encoding="utf-8")
                sys.stdin = stdin_wrapper
            elif self.spec.input_string is not None:
                sys.stdin = io.StringIO(self.spec.input_string)
            if self.output_sink is not None:
                sys.stdout = _SinkTextStream(self.output_sink)
            if self.error_sink is not None:
                sys.stderr = _SinkTextStream(self.error_sink)
            yield
        finally:
            sys.stdin, sys.stdout, sys.stderr = saved
            if stdin_wrapper is not None:
                # Leave the underlying file for close() to release.
                stdin_wrapper.detach()
            for sink in held:
                sink.release()
