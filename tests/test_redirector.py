import logging
import subprocess
import sys

import pytest

from procwatch.errors import ConfigurationError
from procwatch.pipeline.properties import PropertyStore
from procwatch.pipeline.redirector import CaptureSink, FileSink, LogSink, Redirector
from procwatch.pipeline.spec import RedirectionSpec


def test_capture_is_unavailable_before_completion():
    sink = CaptureSink("out")
    sink.write(b"partial")
    with pytest.raises(RuntimeError, match="not available"):
        sink.value
    sink.finish()
    assert sink.value == b"partial"
    assert sink.text == "partial"


def test_writes_after_finish_are_dropped():
    sink = CaptureSink("out")
    sink.write(b"a")
    sink.finish()
    sink.write(b"late")
    assert sink.value == b"a"


def test_log_sink_emits_whole_lines(caplog):
    sink = LogSink("stderr")
    with caplog.at_level(logging.WARNING, logger="procwatch"):
        sink.write(b"first li")
        sink.write(b"ne\nsecond")
        assert [r.getMessage() for r in caplog.records] == ["[stderr] first line"]
        sink.finish()
    assert [r.getMessage() for r in caplog.records] == ["[stderr] first line", "[stderr] second"]


def test_missing_input_file_fails_before_outputs_are_opened(tmp_path):
    out = tmp_path / "out.txt"
    out.write_text("keep me")
    spec = RedirectionSpec(input_file="absent.txt", output_file=out)
    with pytest.raises(ConfigurationError, match="Cannot read from input file"):
        Redirector(spec, base_dir=tmp_path).open()
    assert out.read_text() == "keep me"


def test_relative_output_resolved_against_base_dir(tmp_path):
    redirector = Redirector(RedirectionSpec(output_file="logs/run.txt"), base_dir=tmp_path).open()
    try:
        assert isinstance(redirector.output_sink, FileSink)
        assert redirector.output_sink.writer.path == (tmp_path / "logs" / "run.txt").resolve()
    finally:
        redirector.close()


def test_same_file_for_output_and_error_shares_one_writer(tmp_path):
    spec = RedirectionSpec(output_file=tmp_path / "both.txt", error_file="both.txt")
    with Redirector(spec, base_dir=tmp_path) as redirector:
        assert redirector.output_sink.writer is redirector.error_sink.writer
        assert not redirector.errors_merged


def test_popen_kwargs_for_console_streams(tmp_path):
    with Redirector(RedirectionSpec(), base_dir=tmp_path) as redirector:
        kwargs = redirector.popen_kwargs()
    assert kwargs == {"stdin": subprocess.DEVNULL, "stdout": None, "stderr": None}


def test_popen_kwargs_merge_errors_into_redirected_output(tmp_path):
    with Redirector(RedirectionSpec(output_property="out"), base_dir=tmp_path) as redirector:
        kwargs = redirector.popen_kwargs()
        assert redirector.errors_merged
    assert kwargs["stdout"] is subprocess.PIPE
    assert kwargs["stderr"] is subprocess.STDOUT


def test_popen_kwargs_keep_logged_errors_separate(tmp_path):
    spec = RedirectionSpec(output_property="out", log_error=True, input_string="x")
    with Redirector(spec, base_dir=tmp_path) as redirector:
        kwargs = redirector.popen_kwargs()
        assert isinstance(redirector.error_sink, LogSink)
    assert kwargs["stdin"] is subprocess.PIPE
    assert kwargs["stderr"] is subprocess.PIPE


def test_same_runtime_swaps_and_restores_streams(tmp_path):
    store = PropertyStore()
    spec = RedirectionSpec(input_string="typed", output_property="out", error_property="err")
    saved = sys.stdin, sys.stdout, sys.stderr
    with Redirector(spec, base_dir=tmp_path, properties=store) as redirector:
        with redirector.same_runtime():
            data = sys.stdin.read()
            print(f"got {data}")
            sys.stderr.write("warned")
        assert (sys.stdin, sys.stdout, sys.stderr) == saved
        redirector.complete()

    assert store.get("out") == "got typed\n"
    assert store.get("err") == "warned"


def test_same_runtime_streams_restored_on_error(tmp_path):
    saved = sys.stdout
    with Redirector(RedirectionSpec(output_property="out"), base_dir=tmp_path) as redirector:
        with pytest.raises(ValueError):
            with redirector.same_runtime():
                raise ValueError("inside")
    assert sys.stdout is saved


def test_same_runtime_reads_input_file(tmp_path):
    (tmp_path / "in.txt").write_text("line\n")
    store = PropertyStore()
    spec = RedirectionSpec(input_file="in.txt", output_property="out")
    with Redirector(spec, base_dir=tmp_path, properties=store) as redirector:
        with redirector.same_runtime():
            sys.stdout.write(sys.stdin.readline().upper())
        redirector.complete()
    assert store.get("out") == "LINE\n"


def test_complete_is_idempotent(tmp_path):
    store = PropertyStore()
    with Redirector(RedirectionSpec(output_property="out"), base_dir=tmp_path, properties=store) as redirector:
        redirector.complete()
        redirector.complete()
    assert store.get("out") == ""


def test_log_sink_is_held_while_streams_are_swapped(tmp_path, caplog):
    spec = RedirectionSpec(output_property="out", log_error=True)
    with caplog.at_level(logging.WARNING, logger="procwatch"):
        with Redirector(spec, base_dir=tmp_path) as redirector:
            with redirector.same_runtime():
                sys.stderr.write("held line\npartial")
                assert caplog.records == []
            assert [r.getMessage() for r in caplog.records] == ["[stderr] held line"]
            redirector.complete()

    assert [r.getMessage() for r in caplog.records] == ["[stderr] held line", "[stderr] partial"]
