import pytest

from pyprovision.core.errors import ExecutableNotFoundError
from pyprovision.core.repository import RepositoryAcquirer, derive_repo_name
from pyprovision.models.installation import FailureKind

from helpers import FakeHost

REPO_URL = "https://github.com/example/astrofiler-gui.git"


@pytest.mark.parametrize("url, expected", [
    ("https://github.com/gordtulloch/astrofiler-gui.git", "astrofiler-gui"),
    ("https://github.com/gordtulloch/astrofiler-gui", "astrofiler-gui"),
    ("https://github.com/gordtulloch/astrofiler-gui/", "astrofiler-gui"),
    ("git@github.com:gordtulloch/astrofiler-gui.git", "astrofiler-gui"),
    ("git@host:repo.git", "repo"),
    ("  https://example.com/tools.git  ", "tools"),
])
def test_derive_repo_name(url, expected):
    assert derive_repo_name(url) == expected


@pytest.mark.asyncio
async def test_clone_into_derived_directory(tmp_path):
    host = FakeHost(tmp_path)
    root = tmp_path / "apps"
    acquirer = RepositoryAcquirer(host.executor)

    result = await acquirer.clone(REPO_URL, root)

    assert result.success
    assert result.value == root / "astrofiler-gui"
    assert (result.value / "main.py").exists()
    [call] = host.git_calls()
    assert call.args == ["clone", "--progress", REPO_URL, str(root / "astrofiler-gui")]
    assert call.working_dir == str(root)


@pytest.mark.asyncio
async def test_existing_clone_is_reused(tmp_path):
    host = FakeHost(tmp_path)
    target = tmp_path / "apps" / "astrofiler-gui"
    (target / ".git").mkdir(parents=True)
    (target / "main.py").write_text("")
    acquirer = RepositoryAcquirer(host.executor)

    result = await acquirer.clone(REPO_URL, tmp_path / "apps")

    assert result.success
    assert result.value == target
    assert host.git_calls() == []


@pytest.mark.asyncio
async def test_non_empty_non_repository_destination_fails_without_running_git(tmp_path):
    host = FakeHost(tmp_path)
    target = tmp_path / "apps" / "astrofiler-gui"
    target.mkdir(parents=True)
    (target / "notes.txt").write_text("keep me")
    acquirer = RepositoryAcquirer(host.executor)

    result = await acquirer.clone(REPO_URL, tmp_path / "apps")

    assert result.failure.kind == FailureKind.PROCESS_FAILURE
    assert result.failure.exit_code is None
    assert host.git_calls() == []
    assert (target / "notes.txt").read_text() == "keep me"


@pytest.mark.asyncio
async def test_regular_file_at_destination_fails_without_running_git(tmp_path):
    host = FakeHost(tmp_path)
    (tmp_path / "apps").mkdir()
    target = tmp_path / "apps" / "astrofiler-gui"
    target.write_text("not a directory")
    acquirer = RepositoryAcquirer(host.executor)

    result = await acquirer.clone(REPO_URL, tmp_path / "apps")

    assert result.failure.kind == FailureKind.PROCESS_FAILURE
    assert result.failure.exit_code is None
    assert host.git_calls() == []
    assert target.read_text() == "not a directory"


@pytest.mark.asyncio
async def test_empty_existing_destination_is_cloned_into(tmp_path):
    host = FakeHost(tmp_path)
    (tmp_path / "apps" / "astrofiler-gui").mkdir(parents=True)
    acquirer = RepositoryAcquirer(host.executor)

    result = await acquirer.clone(REPO_URL, tmp_path / "apps")

    assert result.success
    assert len(host.git_calls()) == 1


@pytest.mark.asyncio
async def test_git_failure_is_transport_failure_with_exit_code(tmp_path):
    host = FakeHost(tmp_path, git_exit=128)
    acquirer = RepositoryAcquirer(host.executor)

    result = await acquirer.clone(REPO_URL, tmp_path / "apps")

    assert result.failure.kind == FailureKind.TRANSPORT_FAILURE
    assert result.failure.exit_code == 128
    assert "could not read from remote repository" in result.failure.message


@pytest.mark.asyncio
async def test_missing_git_is_prerequisite_failure(tmp_path):
    host = FakeHost(tmp_path)

    def no_git(command, args, working_dir):
        raise ExecutableNotFoundError("Executable not found: git", command, args)

    host.executor.handler = no_git
    acquirer = RepositoryAcquirer(host.executor)

    result = await acquirer.clone(REPO_URL, tmp_path / "apps")

    assert result.failure.kind == FailureKind.PREREQUISITE_MISSING


@pytest.mark.parametrize("url, root", [("", "apps"), (REPO_URL, ""), ("https://example.com/.git", "apps")])
@pytest.mark.asyncio
async def test_missing_inputs_are_prerequisite_failures(tmp_path, url, root):
    host = FakeHost(tmp_path)
    acquirer = RepositoryAcquirer(host.executor)

    result = await acquirer.clone(url, str(tmp_path / root) if root else "")

    assert result.failure.kind == FailureKind.PREREQUISITE_MISSING
    assert host.git_calls() == []
