"""Git history queries via the git CLI.

Every call runs one git subprocess. A failing call raises GitError so
callers can decide whether the failure is fatal or just drops one item.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 60  # seconds per git invocation
DETACHED_HEAD = "HEAD (detached)"

# Unit separator; never appears in names, emails or hashes
_SEP = "\x1f"


class GitError(Exception):
    """A git command failed."""


@dataclass(frozen=True)
class CommitInfo:
    """One entry of the commit log."""

    hash: str
    author_name: str
    author_email: str
    timestamp: datetime  # author date, in the author's timezone


@dataclass
class BranchList:
    """Local and remote-tracking branches, without HEAD aliases."""

    names: list[str] = field(default_factory=list)
    current: str = ""


class GitClient:
    """Read-only access to one repository's history."""

    def __init__(self, repo_path: str | Path):
        self.repo_path = Path(repo_path)

    def _run(self, *args: str) -> str:
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.repo_path, capture_output=True, text=True, timeout=GIT_TIMEOUT,
            )
        except subprocess.TimeoutExpired:
            raise GitError(f"git {args[0]} timed out after {GIT_TIMEOUT}s")
        if result.returncode != 0:
            raise GitError(f"git {' '.join(args)} failed: {result.stderr.strip()[:200]}")
        return result.stdout

    def is_work_tree(self) -> bool:
        """Check the path is inside a git work tree.

        Raises FileNotFoundError when git itself is not installed.
        """
        try:
            return self._run("rev-parse", "--is-inside-work-tree").strip() == "true"
        except GitError:
            return False

    def has_commits(self) -> bool:
        try:
            self._run("rev-parse", "--verify", "--quiet", "HEAD")
            return True
        except GitError:
            return False

    def log(self) -> list[CommitInfo]:
        """Full history reachable from HEAD, newest first. Empty for a fresh repo."""
        if not self.has_commits():
            return []

        output = self._run("log", f"--format=%H{_SEP}%an{_SEP}%ae{_SEP}%aI")
        commits = []
        for line in output.splitlines():
            if not line:
                continue
            parts = line.split(_SEP)
            if len(parts) != 4:
                logger.debug("Unexpected git log line: %r", line)
                continue
            commits.append(CommitInfo(
                hash=parts[0],
                author_name=parts[1],
                author_email=parts[2],
                timestamp=datetime.fromisoformat(parts[3]),
            ))
        return commits

    def branches(self) -> BranchList:
        """All local and remote-tracking branches and the checked-out one."""
        output = self._run(
            "for-each-ref",
            f"--format=%(refname:short){_SEP}%(symref)",
            "refs/heads", "refs/remotes",
        )
        names = []
        for line in output.splitlines():
            if not line:
                continue
            name, _, symref = line.partition(_SEP)
            # origin/HEAD and friends point at another branch
            if symref or name == "HEAD" or name.endswith("/HEAD") or "->" in name:
                continue
            names.append(name)
        return BranchList(names=names, current=self.current_branch())

    def current_branch(self) -> str:
        try:
            return self._run("symbolic-ref", "--short", "-q", "HEAD").strip()
        except GitError:
            return DETACHED_HEAD

    def changed_files(self, commit: str) -> list[str]:
        """Names of the files a commit touches."""
        output = self._run("show", "--name-only", "--format=", commit)
        return [line for line in output.splitlines() if line.strip()]

    def last_commit_time(self, ref: str) -> datetime:
        """Author date of the newest commit on a branch."""
        output = self._run("log", "-1", "--format=%aI", ref, "--").strip()
        if not output:
            raise GitError(f"No commits on {ref}")
        return datetime.fromisoformat(output)
