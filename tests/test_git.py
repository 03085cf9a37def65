"""Tests for the git CLI wrapper, against real throwaway repositories."""

from datetime import datetime, timedelta, timezone

import pytest

from repo_doctor.git import DETACHED_HEAD, GitClient, GitError


class TestGitClient:
    def test_not_a_repository(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        assert GitClient(plain).is_work_tree() is False

    def test_empty_repository(self, git_repo):
        client = GitClient(git_repo.path)
        assert client.is_work_tree() is True
        assert client.has_commits() is False
        assert client.log() == []
        assert client.current_branch() == "main"
        assert client.branches().names == []

    def test_log_newest_first(self, git_repo):
        first = git_repo.commit("first", "2024-01-01T10:00:00+00:00", {"a.txt": "a"})
        second = git_repo.commit(
            "second", "2024-01-03T10:00:00+02:00", {"b.txt": "b"},
            author="Other Dev <other@example.com>",
        )
        log = GitClient(git_repo.path).log()

        assert [c.hash for c in log] == [second, first]
        assert log[0].author_email == "other@example.com"
        assert log[0].author_name == "Other Dev"
        assert log[1].author_email == "test@example.com"
        assert log[0].timestamp == datetime(2024, 1, 3, 10, tzinfo=timezone(timedelta(hours=2)))
        assert log[0].timestamp.utcoffset() == timedelta(hours=2)

    def test_branches_skip_head_aliases(self, git_repo):
        sha = git_repo.commit("init", "2024-01-01T10:00:00+00:00", {"a.txt": "a"})
        git_repo.git("branch", "feature")
        git_repo.git("update-ref", "refs/remotes/origin/main", sha)
        git_repo.git("update-ref", "refs/remotes/origin/feature", sha)
        git_repo.git("symbolic-ref", "refs/remotes/origin/HEAD", "refs/remotes/origin/main")

        branches = GitClient(git_repo.path).branches()
        assert sorted(branches.names) == ["feature", "main", "origin/feature", "origin/main"]
        assert branches.current == "main"

    def test_branch_names_ending_in_head_are_kept(self, git_repo):
        git_repo.commit("init", "2024-01-01T10:00:00+00:00", {"a.txt": "a"})
        git_repo.git("branch", "AHEAD")
        git_repo.git("branch", "fix/detached-HEAD")

        branches = GitClient(git_repo.path).branches()
        assert sorted(branches.names) == ["AHEAD", "fix/detached-HEAD", "main"]

    def test_detached_head(self, git_repo):
        sha = git_repo.commit("init", "2024-01-01T10:00:00+00:00", {"a.txt": "a"})
        git_repo.git("checkout", "-q", "--detach", sha)
        assert GitClient(git_repo.path).current_branch() == DETACHED_HEAD

    def test_changed_files(self, git_repo):
        git_repo.commit("init", "2024-01-01T10:00:00+00:00", {"a.txt": "a"})
        sha = git_repo.commit(
            "three files", "2024-01-02T10:00:00+00:00",
            {"a.txt": "changed", "b.txt": "b", "dir/c.txt": "c"},
        )
        assert sorted(GitClient(git_repo.path).changed_files(sha)) == ["a.txt", "b.txt", "dir/c.txt"]

    def test_last_commit_time(self, git_repo):
        git_repo.commit("init", "2024-01-01T10:00:00+00:00", {"a.txt": "a"})
        git_repo.git("branch", "old")
        git_repo.commit("next", "2024-02-01T10:00:00+00:00", {"b.txt": "b"})
        client = GitClient(git_repo.path)

        assert client.last_commit_time("old") == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
        assert client.last_commit_time("main") == datetime(2024, 2, 1, 10, tzinfo=timezone.utc)

    def test_unknown_ref_raises(self, git_repo):
        git_repo.commit("init", "2024-01-01T10:00:00+00:00", {"a.txt": "a"})
        with pytest.raises(GitError):
            GitClient(git_repo.path).last_commit_time("no-such-branch")
