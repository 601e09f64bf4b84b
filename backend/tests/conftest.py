"""Pytest fixtures for backend tests."""

import shutil
import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from support import FakeGitClient, GitRepo


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def git_repo(temp_dir: Path) -> GitRepo:
    """A repository whose ``main`` holds one pushed commit (``init``)."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")

    repo = GitRepo(temp_dir)
    repo.run("init", "-q", "--bare", str(repo.remote), cwd=temp_dir)
    repo.run("init", "-q", str(repo.path), cwd=temp_dir)
    repo.run("remote", "add", "origin", str(repo.remote))
    repo.commit("init", {"README.md": "hello\n"})
    repo.push()
    return repo


@pytest.fixture
def fake_git() -> FakeGitClient:
    """Branch ``feature`` with commits c1 "init", c2 "add test", c3 "fix bug"."""
    return FakeGitClient(["init", "add test", "fix bug"])
