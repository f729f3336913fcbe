import shutil
import tarfile
from pathlib import Path

import pytest

from converter.errors import UnsupportedFormat
from converter.output import OutputPathResolver
from converter.runner import ProcessRunner
from converter.strategies.archive import ArchiveStrategy
from converter.strategies.base import CommandStrategy, FormatStrategy


@pytest.fixture
def staging(tmp_path):
    return tmp_path / "staging"


@pytest.fixture
def strategy(tmp_path, staging):
    return ArchiveStrategy(OutputPathResolver(tmp_path / "out"), staging)


def test_zip_to_7z_extracts_then_creates_inside_staging(strategy, staging, tmp_path):
    plan = strategy.build_plan(Path("/in/archive.zip"), "7z")

    extract_dir, = plan.staged
    assert extract_dir.parent == staging
    assert extract_dir.is_dir()

    extract, create = plan.commands
    assert extract.tool == "unzip"
    assert list(extract.args) == ["-q", "-o", "/in/archive.zip", "-d", str(extract_dir)]
    assert extract.cwd is None

    assert create.tool == "7z"
    assert list(create.args) == ["a", "-y", str(tmp_path / "out" / "archive_converted.7z"), "*"]
    assert create.cwd == extract_dir
    assert plan.output == tmp_path / "out" / "archive_converted.7z"


@pytest.mark.parametrize("name, expected", [
    ("a.7z", ["x", "/in/a.7z", "-o{dest}", "-y"]),
    ("a.tar", ["-xf", "/in/a.tar", "-C", "{dest}"]),
    ("a.tar.gz", ["-xzf", "/in/a.tar.gz", "-C", "{dest}"]),
    ("a.tgz", ["-xzf", "/in/a.tgz", "-C", "{dest}"]),
    ("a.bz2", ["-xjf", "/in/a.bz2", "-C", "{dest}"]),
    ("a.rar", ["x", "-o+", "/in/a.rar", "{dest}/"]),
])
def test_extract_commands(strategy, tmp_path, name, expected):
    dest = tmp_path / "dest"
    command = strategy.build_extract_command(Path("/in") / name, dest)
    assert list(command.args) == [arg.format(dest=dest) for arg in expected]


@pytest.mark.parametrize("target, tool, expected", [
    ("zip", "zip", ["-r", "-q", "{out}", "."]),
    ("tar", "tar", ["-cf", "{out}", "."]),
    ("tar.gz", "tar", ["-czf", "{out}", "."]),
])
def test_create_commands_run_in_source_dir(strategy, tmp_path, target, tool, expected):
    out = tmp_path / f"x.{target}"
    command = strategy.build_create_command(tmp_path / "src", target, out)
    assert command.tool == tool
    assert command.cwd == tmp_path / "src"
    assert list(command.args) == [arg.format(out=out) for arg in expected]


def test_unknown_source_archive_leaves_no_staging(strategy, staging):
    with pytest.raises(UnsupportedFormat):
        strategy.build_plan(Path("/in/a.cab"), "zip")
    assert list(staging.iterdir()) == []


def test_output_named_after_original_archive(strategy):
    plan = strategy.build_plan(Path("/in/backup.tar.gz"), "zip")
    assert plan.output.name == "backup_converted.zip"
    shutil.rmtree(plan.staged[0])


def test_archive_is_planned_not_single_command(strategy):
    assert isinstance(strategy, FormatStrategy)
    assert not isinstance(strategy, CommandStrategy)
    assert not hasattr(strategy, "build_command")


@pytest.mark.skipif(shutil.which("tar") is None, reason="tar not installed")
def test_tar_gz_to_tar_round_trip(strategy, tmp_path):
    content = tmp_path / "content"
    (content / "docs").mkdir(parents=True)
    (content / "docs" / "readme.txt").write_text("hello")
    (content / "top.txt").write_text("top")

    source = tmp_path / "in" / "bundle.tar.gz"
    source.parent.mkdir()
    with tarfile.open(source, "w:gz") as archive:
        archive.add(content / "docs", arcname="docs")
        archive.add(content / "top.txt", arcname="top.txt")

    plan = strategy.build_plan(source, "tar")
    runner = ProcessRunner(poll_interval=0.01)
    for command in plan.commands:
        runner.run(command)

    with tarfile.open(plan.output) as result:
        names = {name.lstrip("./") for name in result.getnames()}
    assert {"docs/readme.txt", "top.txt"} <= names
    assert source.exists()
    shutil.rmtree(plan.staged[0])
