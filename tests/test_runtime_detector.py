from pathlib import Path

import pytest

from pyprovision.core.errors import ExecutableNotFoundError
from pyprovision.core.runtime_detector import RuntimeDetector, conventional_dirs, parse_version

from helpers import FakeExecutor, make_detector


def responding(versions):
    """Handler where only the listed executables answer ``--version``."""
    def handle(command, args, working_dir):
        assert args == ["--version"]
        if command not in versions:
            raise ExecutableNotFoundError(f"Executable not found: {command}", command, args)
        answer = versions[command]
        if isinstance(answer, int):
            return answer, [], ["boom"]
        return 0, [answer], []
    return handle


@pytest.mark.parametrize("output, expected", [
    ("Python 3.12.6", "3.12.6"),
    ("Python 3.11.2\n", "3.11.2"),
    ("Python 3.13.0rc1", "3.13.0rc1"),
    ("Python 2.7", "2.7"),
    ("python: command not found", None),
    ("", None),
])
def test_parse_version(output, expected):
    assert parse_version(output) == expected


def test_conventional_dirs_on_windows_prefer_newest():
    dirs = conventional_dirs(windows=True)

    assert dirs[0] == Path("C:\\Python312")
    assert Path("C:\\Program Files\\Python311") in dirs
    assert any("AppData" in str(d) for d in dirs)


def test_candidate_order_target_then_conventional_then_search_path(tmp_path):
    target = tmp_path / "python"
    conventional = tmp_path / "usr-bin"
    detector = make_detector(
        FakeExecutor(responding({})),
        which=lambda name: "/usr/bin/python3" if name == "python3" else None,
        search_dirs=[conventional],
    )

    assert detector.candidate_paths(target) == [
        target / "bin" / "python3",
        target / "bin" / "python",
        conventional / "python3",
        conventional / "python",
        Path("/usr/bin/python3"),
    ]


def test_candidate_paths_have_no_duplicates(tmp_path):
    bin_dir = tmp_path / "bin"
    detector = make_detector(
        FakeExecutor(responding({})),
        which=lambda name: str(bin_dir / name),
        search_dirs=[bin_dir],
    )

    candidates = detector.candidate_paths()
    assert len(candidates) == len(set(candidates))


def test_explicit_executable_is_the_only_target_candidate(tmp_path):
    exe = tmp_path / "custom-python"
    exe.write_text("")
    detector = make_detector(FakeExecutor(responding({})))

    assert detector.target_candidates(exe) == [exe]
    assert detector.target_candidates("") == []


def test_windows_target_candidate_is_python_exe():
    detector = RuntimeDetector(FakeExecutor(responding({})), windows=True, search_dirs=[],
                               which=lambda name: None)

    assert detector.target_candidates("C:\\Python") == [Path("C:\\Python") / "python.exe"]


@pytest.mark.asyncio
async def test_target_path_wins_over_search_path(tmp_path):
    target = tmp_path / "python"
    target_exe = target / "bin" / "python3"
    executor = FakeExecutor(responding({
        str(target_exe): "Python 3.12.6",
        "/usr/bin/python3": "Python 3.11.2",
    }))
    detector = make_detector(executor, which=lambda name: "/usr/bin/python3")

    runtime = await detector.detect_any(target)

    assert runtime is not None
    assert runtime.path == target_exe
    assert runtime.version == "3.12.6"


@pytest.mark.asyncio
async def test_falls_back_to_search_path(tmp_path):
    executor = FakeExecutor(responding({"/usr/bin/python3": "Python 3.11.2"}))
    detector = make_detector(executor, which=lambda name: "/usr/bin/python3" if name == "python3" else None)

    runtime = await detector.detect_any(tmp_path / "missing")

    assert runtime.path == Path("/usr/bin/python3")
    assert runtime.version == "3.11.2"


@pytest.mark.asyncio
async def test_probe_ignores_search_path(tmp_path):
    executor = FakeExecutor(responding({"/usr/bin/python3": "Python 3.11.2"}))
    detector = make_detector(executor, which=lambda name: "/usr/bin/python3")

    assert await detector.probe(tmp_path / "missing") is None
    assert all(call.command != "/usr/bin/python3" for call in executor.calls)


@pytest.mark.asyncio
async def test_failing_and_unparseable_candidates_are_skipped(tmp_path):
    first = tmp_path / "a" / "python3"
    second = tmp_path / "b" / "python3"
    third = tmp_path / "c" / "python3"
    executor = FakeExecutor(responding({
        str(first): 1,
        str(second): "not a version",
        str(third): "Python 3.10.12",
    }))
    detector = make_detector(executor)

    runtime = await detector.detect([first, second, third])

    assert runtime.path == third
    assert [call.command for call in executor.calls] == [str(first), str(second), str(third)]


@pytest.mark.asyncio
async def test_version_reported_on_stderr_is_accepted(tmp_path):
    exe = tmp_path / "python2"

    def handle(command, args, working_dir):
        return 0, [], ["Python 2.7.18"]

    detector = make_detector(FakeExecutor(handle))
    runtime = await detector.detect([exe])

    assert runtime.version == "2.7.18"


@pytest.mark.asyncio
async def test_nothing_found_returns_none(tmp_path):
    detector = make_detector(FakeExecutor(responding({})))

    assert await detector.detect_any(tmp_path / "python") is None
