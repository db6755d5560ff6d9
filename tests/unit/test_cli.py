"""Tests for the haystack command line."""

import hashlib
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from typer.testing import CliRunner

import haystack.pile
from haystack.cli import app
from haystack.errors import CloneError

REPO_URL = "https://example/repo"
HEAD = hashlib.sha1(b"v1").hexdigest()


class FakeGitClient:
    """Fake GitClient that serves a single two-file repository."""

    files = {"a.txt": b"foo", "b.txt": b"bar"}

    def __init__(self, logger=None) -> None:
        pass

    async def clone(self, url: str, target_dir: Path, depth: int = 1) -> None:
        if url != REPO_URL:
            raise CloneError(url, "repository not found")
        for rel_path, content in self.files.items():
            (target_dir / rel_path).write_bytes(content)

    async def latest_commit(self, repo_dir: Path) -> str:
        return HEAD

    async def list_files(self, repo_dir: Path) -> AsyncIterator[str]:
        for rel_path in self.files:
            yield rel_path


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def connection(tmp_path: Path) -> str:
    return str(tmp_path / "pile.db")


@pytest.fixture(autouse=True)
def fake_git(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(haystack.pile, "GitClient", FakeGitClient)


def _stdout_lines(result) -> list[str]:
    return [line for line in result.stdout.splitlines() if line.strip()]


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "haystack" in result.stdout


def test_help_lists_commands(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    for command in ("add-repo", "list-repos", "search-repos"):
        assert command in result.output


def test_unknown_command_fails(runner: CliRunner) -> None:
    result = runner.invoke(app, ["frobnicate"])

    assert result.exit_code != 0


def test_add_repo_reports_indexed(runner: CliRunner, connection: str) -> None:
    result = runner.invoke(app, ["--connection", connection, "add-repo", REPO_URL])

    assert result.exit_code == 0
    assert f"indexed {REPO_URL} at {HEAD} (2 files)" in result.stdout


def test_add_repo_twice_reports_unchanged(runner: CliRunner, connection: str) -> None:
    runner.invoke(app, ["--connection", connection, "add-repo", REPO_URL])

    result = runner.invoke(app, ["--connection", connection, "add-repo", REPO_URL])

    assert result.exit_code == 0
    assert f"{REPO_URL} unchanged at {HEAD}" in result.stdout


def test_list_repos_after_add(runner: CliRunner, connection: str) -> None:
    runner.invoke(app, ["--connection", connection, "add-repo", REPO_URL])

    result = runner.invoke(app, ["--connection", connection, "list-repos"])

    assert result.exit_code == 0
    assert REPO_URL in _stdout_lines(result)


def test_search_repos_prints_url_and_path(runner: CliRunner, connection: str) -> None:
    runner.invoke(app, ["-c", connection, "add-repo", REPO_URL])

    result = runner.invoke(app, ["-c", connection, "search-repos", "FOO"])

    assert result.exit_code == 0
    assert f"{REPO_URL}\ta.txt" in _stdout_lines(result)
    assert f"{REPO_URL}\tb.txt" not in _stdout_lines(result)


def test_connection_from_environment(runner: CliRunner, connection: str) -> None:
    env = {"HAYSTACK_CONNECTION": connection}
    runner.invoke(app, ["add-repo", REPO_URL], env=env)

    result = runner.invoke(app, ["list-repos"], env=env)

    assert REPO_URL in _stdout_lines(result)


def test_in_memory_pile_is_discarded_between_runs(runner: CliRunner) -> None:
    runner.invoke(app, ["add-repo", REPO_URL])

    result = runner.invoke(app, ["list-repos"])

    assert result.exit_code == 0
    assert REPO_URL not in _stdout_lines(result)


def test_clone_failure_exits_nonzero(runner: CliRunner, connection: str) -> None:
    result = runner.invoke(app, ["--connection", connection, "add-repo", "https://example/missing"])

    assert result.exit_code == 1


def test_unopenable_store_exits_nonzero(runner: CliRunner, tmp_path: Path) -> None:
    connection = str(tmp_path / "missing-dir" / "pile.db")

    result = runner.invoke(app, ["--connection", connection, "list-repos"])

    assert result.exit_code == 1


def test_non_sqlite_connection_exits_nonzero(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--connection", "postgresql+asyncpg://user@host/db", "list-repos"])

    assert result.exit_code == 1
