import json
import os
import threading
import time
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from converter.config import ConverterConfig  # noqa: E402
from converter.errors import ConversionCancelled, ConversionFailed  # noqa: E402
from converter.models import Command  # noqa: E402
from converter.remote import RemoteFetcher  # noqa: E402

REMOTE_TITLE = "Remote Clip"


class FakeRunner:
    """
    Drop-in for ProcessRunner that never spawns anything.

    Every command is recorded on the factory. Commands that name an output
    (``*_converted.*``) get that file written; a yt-dlp download drops a
    video into its ``-o`` directory; ``--dump-json`` returns canned metadata.
    """

    def __init__(self, factory: "FakeRunnerFactory"):
        self._factory = factory
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def run(self, command: Command, on_progress=None) -> str:
        factory = self._factory
        factory.record(command)
        if self._cancelled.is_set():
            raise ConversionCancelled()

        with factory.lock:
            factory.active += 1
            factory.max_active = max(factory.max_active, factory.active)
        factory.started.set()
        try:
            if factory.block:
                while not factory.release.is_set():
                    if self._cancelled.is_set():
                        raise ConversionCancelled()
                    time.sleep(0.01)
            elif factory.delay:
                time.sleep(factory.delay)

            if command.tool in factory.fail_tools:
                raise ConversionFailed(f"{command.tool} exploded", tool=command.tool)

            if on_progress is not None:
                on_progress(0.3)
                on_progress(0.6)
                on_progress(1.0)
            return self._produce(command)
        finally:
            with factory.lock:
                factory.active -= 1

    def _produce(self, command: Command) -> str:
        args = list(command.args)
        if command.tool == "yt-dlp":
            if "--dump-json" in args:
                return json.dumps({"title": REMOTE_TITLE, "duration": 125, "uploader": "someone"})
            if self._factory.download_nothing:
                return ""
            template = Path(args[args.index("-o") + 1])
            (template.parent / f"{REMOTE_TITLE}.mp4").write_bytes(b"video")
            return ""

        for arg in args:
            if "_converted." in arg:
                Path(arg).write_bytes(b"converted")
        return ""


class FakeRunnerFactory:

    def __init__(self):
        self.commands: list[Command] = []
        self.runners: list[FakeRunner] = []
        self.fail_tools: set[str] = set()
        self.block = False
        self.delay = 0.0
        self.download_nothing = False
        self.release = threading.Event()
        self.started = threading.Event()
        self.lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def __call__(self) -> FakeRunner:
        runner = FakeRunner(self)
        self.runners.append(runner)
        return runner

    def record(self, command: Command) -> None:
        with self.lock:
            self.commands.append(command)

    def tools(self) -> list[str]:
        return [c.tool for c in self.commands]


@pytest.fixture
def config(tmp_path):
    return ConverterConfig(output_dir=tmp_path / "out", staging_dir=tmp_path / "staging")


@pytest.fixture
def runner_factory():
    factory = FakeRunnerFactory()
    yield factory
    factory.release.set()


@pytest.fixture
def fetcher(config, runner_factory):
    return RemoteFetcher(config, runner_factory=runner_factory)


@pytest.fixture
def make_file(tmp_path):
    """Create an input file under tmp_path/in and return its Path."""
    def _make(name: str, content: bytes = b"data") -> Path:
        path = tmp_path / "in" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path
    return _make
