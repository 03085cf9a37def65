"""Shared fixtures: throwaway git repositories with pinned commit dates."""

import os
import shutil
import subprocess
from pathlib import Path

import pytest


class GitRepo:
    """Small driver for building test repositories with the git CLI."""

    def __init__(self, path: Path):
        self.path = path

    def git(self, *args: str, date: str | None = None) -> str:
        env = dict(os.environ, GIT_CONFIG_NOSYSTEM="1")
        if date:
            env["GIT_AUTHOR_DATE"] = date
            env["GIT_COMMITTER_DATE"] = date
        result = subprocess.run(
            ["git", "-c", "commit.gpgsign=false", *args],
            cwd=self.path, capture_output=True, text=True, env=env, check=True,
        )
        return result.stdout.strip()

    def init(self) -> "GitRepo":
        self.git("init", "-q")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")
        self.git("config", "user.name", "Test User")
        self.git("config", "user.email", "test@example.com")
        return self

    def write(self, rel: str, content: str | bytes) -> Path:
        fpath = self.path / rel
        fpath.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            fpath.write_bytes(content)
        else:
            fpath.write_text(content)
        return fpath

    def commit(self, message: str, date: str, files: dict | None = None, author: str | None = None) -> str:
        """Write files, stage everything and commit at a fixed date. Returns the hash."""
        for rel, content in (files or {}).items():
            self.write(rel, content)
        self.git("add", "-A")
        args = ["commit", "-q", "--allow-empty", "-m", message]
        if author:
            args.append(f"--author={author}")
        self.git(*args, date=date)
        return self.git("rev-parse", "HEAD")


@pytest.fixture(autouse=True)
def _isolate_git(tmp_path, monkeypatch):
    """Keep git from discovering a repository above the test directory."""
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))


@pytest.fixture
def git_repo(tmp_path):
    """An initialized, empty repository on branch main."""
    if shutil.which("git") is None:
        pytest.skip("git not found")
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    return GitRepo(repo_dir).init()
