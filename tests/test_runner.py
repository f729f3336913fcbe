import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest

from converter.errors import ConversionCancelled, ConversionFailed, ToolNotFound
from converter.models import Command
from converter.runner import ProcessRunner, _parse_ffmpeg_progress, _parse_ytdlp_progress


def python_command(code: str, **kwargs) -> Command:
    return Command("python", sys.executable, ("-c", textwrap.dedent(code)), **kwargs)


@pytest.fixture
def runner():
    return ProcessRunner(poll_interval=0.02, estimate_step=0.05, estimate_cap=0.9)


def test_returns_stdout_and_ends_at_one(runner):
    seen: list[float] = []
    out = runner.run(python_command("""
        import time
        time.sleep(0.4)
        print("done")
    """), seen.append)

    assert out.strip() == "done"
    assert seen[-1] == 1.0
    assert seen == sorted(seen)
    assert all(value <= 0.9 for value in seen[:-1])
    assert len(seen) > 2


def test_nonzero_exit_carries_stderr(runner):
    with pytest.raises(ConversionFailed) as excinfo:
        runner.run(python_command("""
            import sys
            sys.stderr.write("boom")
            sys.exit(3)
        """))
    assert str(excinfo.value) == "Conversion failed: boom"
    assert excinfo.value.tool == "python"


def test_silent_failure_reports_exit_code(runner):
    with pytest.raises(ConversionFailed, match="exited with code 2"):
        runner.run(python_command("import sys; sys.exit(2)"))


def test_missing_executable(runner, tmp_path):
    command = Command("nosuchtool", str(tmp_path / "nosuchtool"), ())
    with pytest.raises(ToolNotFound, match="nosuchtool not found"):
        runner.run(command)


def test_missing_working_directory(runner, tmp_path):
    with pytest.raises(FileNotFoundError):
        runner.run(python_command("print(1)", cwd=tmp_path / "gone"))


def test_runs_in_working_directory(runner, tmp_path):
    out = runner.run(python_command("import os; print(os.getcwd())", cwd=tmp_path))
    assert Path(out.strip()).resolve() == tmp_path.resolve()


def test_large_output_does_not_deadlock(runner):
    out = runner.run(python_command("""
        import sys
        sys.stdout.write("x" * 500_000)
        sys.stderr.write("y" * 500_000)
    """))
    assert len(out) == 500_000


def test_cancel_terminates_running_process(runner):
    timer = threading.Timer(0.2, runner.cancel)
    timer.start()
    started = time.monotonic()
    with pytest.raises(ConversionCancelled):
        runner.run(python_command("import time; time.sleep(30)"))
    assert time.monotonic() - started < 5
    assert runner.cancelled


def test_cancelled_runner_refuses_new_work(runner):
    runner.cancel()
    with pytest.raises(ConversionCancelled):
        runner.run(python_command("print(1)"))


def test_measured_progress_from_download_lines(runner):
    seen: list[float] = []
    runner.run(python_command("""
        import time
        for pct in ("10.0", "55.5", "100.0"):
            print(f"[download]  {pct}% of 3.00MiB at 1.00MiB/s", flush=True)
            time.sleep(0.15)
    """, progress_format="yt-dlp"), seen.append)

    assert 0.555 in seen
    assert max(seen[:-1]) <= 0.99
    assert seen[-1] == 1.0
    assert seen == sorted(seen)


def test_ffmpeg_progress_parser():
    assert _parse_ffmpeg_progress("out_time=00:00:05.000000", 10.0) == 0.5
    assert _parse_ffmpeg_progress("out_time=00:01:00.000000", 10.0) == 1.0
    assert _parse_ffmpeg_progress("out_time=N/A", 10.0) is None
    assert _parse_ffmpeg_progress("out_time=00:00:05.000000", 0.0) is None
    assert _parse_ffmpeg_progress("frame=12", 10.0) is None


def test_ytdlp_progress_parser():
    assert _parse_ytdlp_progress("[download]  42.0% of 10.00MiB", 0.0) == 0.42
    assert _parse_ytdlp_progress("[download] Destination: x.mp4", 0.0) is None
