"""Repository analyzer - collects metrics and derives the health score.

Five independent collectors (basic counts, commit activity, file
composition, branch staleness, security) run concurrently, each building its
own result. Issues, recommendations and the score are then pure functions of
the merged metrics.
"""

from __future__ import annotations

import logging
import math
import threading
from collections import Counter
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .format import format_bytes, format_date, pluralize
from .git import CommitInfo, GitClient, GitError
from .models import (
    AnalysisOptions,
    BasicMetrics,
    BranchMetrics,
    CommitMetrics,
    FileMetrics,
    Grade,
    Issue,
    LargeFile,
    LargestCommit,
    Priority,
    Recommendation,
    RepositoryHealth,
    RepositoryMetrics,
    SecurityMetrics,
    Severity,
    StaleBranch,
)
from .scanner import (
    SecurityScanner,
    check_cancelled,
    is_binary_file,
    iter_repo_files,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
LARGEST_COMMIT_WINDOW = 100  # most recent commits inspected for the largest commit
PATTERN_WINDOW = 30  # most recent commits used for the weekday pattern
MIN_COMMITS_FOR_PATTERN = 10
TOP_N = 10
STALE_BRANCH_LIMIT = 5
LOW_ACTIVITY_THRESHOLD = 0.1
NO_EXTENSION = "no extension"

# Score deductions per issue and bonus per good practice
SEVERITY_PENALTY = {
    Severity.CRITICAL: 15,
    Severity.WARNING: 5,
    Severity.INFO: 2,
}
BONUS = 5


class RepositoryError(ValueError):
    """The analysis target is not a usable git repository."""

    def __init__(self, path: str | Path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{reason}: {path}")


@dataclass
class CollectorResult:
    """Output of one collector plus how many items it had to drop."""

    name: str
    value: Any
    skipped: int = 0
    failed: bool = False  # nothing could be measured


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RepositoryAnalyzer:
    """Analyze one repository. Create a new analyzer per run."""

    def __init__(
        self,
        options: AnalysisOptions | None = None,
        git: GitClient | None = None,
        now: Callable[[], datetime] = _utcnow,
        cancel_event: threading.Event | None = None,
    ):
        self.options = options or AnalysisOptions()
        self.root = Path(self.options.path).resolve()
        self.git = git or GitClient(self.root)
        self.now = now
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        """Ask running collectors to stop at their next checkpoint."""
        self.cancel_event.set()

    def analyze(self) -> RepositoryHealth:
        """Run every collector and derive issues, recommendations and score."""
        self._validate_repository()

        history = self._load_history()
        results = self._collect(history)
        metrics = RepositoryMetrics(
            basic=results["basic"].value,
            commits=results["commits"].value,
            files=results["files"].value,
            security=results["security"].value,
            branches=results["branches"].value,
        )
        skipped = {name: r.skipped for name, r in results.items() if r.skipped}
        if skipped:
            logger.info("Skipped unreadable items: %s", skipped)

        issues = identify_issues(metrics, self.options)
        recommendations = generate_recommendations(metrics)
        score = calculate_health_score(
            metrics, issues, branches_listed=not results["branches"].failed
        )

        return RepositoryHealth(
            score=score,
            grade=Grade.from_score(score),
            metrics=metrics,
            issues=issues,
            recommendations=recommendations,
            skipped=skipped,
            repository=str(self.root),
            analyzed_at=self.now().isoformat(),
        )

    # --- Orchestration ---

    def _validate_repository(self) -> None:
        if not self.root.is_dir():
            raise RepositoryError(self.root, "Not a directory")
        try:
            is_repo = self.git.is_work_tree()
        except FileNotFoundError:
            raise RepositoryError(self.root, "git executable not found")
        if not is_repo:
            raise RepositoryError(self.root, "Not a git repository")

    def _load_history(self) -> list[CommitInfo]:
        try:
            return self.git.log()
        except GitError as e:
            logger.warning("Could not read commit history: %s", e)
            return []

    def _collect(self, history: list[CommitInfo]) -> dict[str, CollectorResult]:
        collectors: list[Callable[[], CollectorResult]] = [
            lambda: self.collect_basic(history),
            lambda: self.collect_commits(history),
            self.collect_files,
            self.collect_branches,
            self.collect_security,
        ]
        with ThreadPoolExecutor(max_workers=len(collectors)) as executor:
            futures = [executor.submit(collector) for collector in collectors]
            try:
                results = [future.result() for future in futures]
            except BaseException:
                # Stop the remaining collectors before the pool joins them
                self.cancel()
                raise
        return {result.name: result for result in results}

    def _check_cancelled(self) -> None:
        check_cancelled(self.cancel_event)

    # --- Collectors ---

    def collect_basic(self, history: list[CommitInfo]) -> CollectorResult:
        """Commit, branch, file and contributor counts."""
        skipped = 0
        try:
            total_branches = len(self.git.branches().names)
        except GitError as e:
            logger.debug("Branch listing failed: %s", e)
            total_branches = 0
            skipped += 1

        walk_errors: list[OSError] = []
        total_files = 0
        for _ in iter_repo_files(self.root, on_error=walk_errors.append):
            self._check_cancelled()
            total_files += 1
        skipped += len(walk_errors)

        basic = BasicMetrics(
            total_commits=len(history),
            total_branches=total_branches,
            total_files=total_files,
            contributors=len({c.author_email for c in history}),
        )
        if history:
            basic.repository_age = self._repository_age(history[-1].timestamp)
            basic.last_commit_date = format_date(history[0].timestamp)
        return CollectorResult("basic", basic, skipped)

    def collect_commits(self, history: list[CommitInfo]) -> CollectorResult:
        """Average rate, frequency bucket, largest commit and weekday pattern."""
        if not history:
            return CollectorResult("commits", CommitMetrics())

        newest = history[0].timestamp
        oldest = history[-1].timestamp
        days = max(1.0, (newest - oldest).total_seconds() / SECONDS_PER_DAY)
        average = len(history) / days

        largest = LargestCommit()
        skipped = 0
        if self.options.deep:
            largest, skipped = self._find_largest_commit(history)

        commits = CommitMetrics(
            average_commits_per_day=round(average, 2),
            commit_frequency=commit_frequency(average),
            largest_commit=largest,
            commit_pattern=commit_pattern(history),
        )
        return CollectorResult("commits", commits, skipped)

    def collect_files(self) -> CollectorResult:
        """Size, type breakdown and large files of the working tree."""
        if self.options.skip_files:
            return CollectorResult("files", FileMetrics())

        max_size = self.options.max_file_size_bytes
        file_types: Counter = Counter()
        large_files: list[LargeFile] = []
        total_size = 0
        binary_count = 0
        walk_errors: list[OSError] = []
        skipped = 0

        for fpath, rel_file in iter_repo_files(self.root, on_error=walk_errors.append):
            self._check_cancelled()
            try:
                size = fpath.stat().st_size
            except OSError as e:
                logger.debug("Cannot stat %s: %s", rel_file, e)
                skipped += 1
                continue

            ext = fpath.suffix.lower() or NO_EXTENSION
            file_types[ext] += 1
            total_size += size
            if is_binary_file(fpath.name):
                binary_count += 1
            if size > max_size:
                large_files.append(LargeFile(path=rel_file, size=format_bytes(size), size_bytes=size))

        large_files.sort(key=lambda f: f.size_bytes, reverse=True)
        files = FileMetrics(
            total_size=format_bytes(total_size),
            total_size_bytes=total_size,
            large_files=large_files[:TOP_N],
            large_file_count=len(large_files),
            file_types=dict(file_types),
            binary_files=binary_count,
        )
        return CollectorResult("files", files, skipped + len(walk_errors))

    def collect_branches(self) -> CollectorResult:
        """Split branches into stale and active by their last commit date."""
        try:
            branch_list = self.git.branches()
        except GitError as e:
            logger.debug("Branch listing failed: %s", e)
            return CollectorResult("branches", BranchMetrics(), 1, failed=True)

        now = self.now()
        threshold = self.options.stale_branch_days
        stale: list[StaleBranch] = []
        active = 0
        skipped = 0

        for name in branch_list.names:
            self._check_cancelled()
            try:
                last_commit = self.git.last_commit_time(name)
            except GitError as e:
                logger.debug("Skipping branch %s: %s", name, e)
                skipped += 1
                continue

            days_old = (now - last_commit).total_seconds() / SECONDS_PER_DAY
            if days_old > threshold:
                stale.append(StaleBranch(
                    name=name,
                    last_commit=format_date(last_commit),
                    days_old=math.floor(days_old),
                ))
            else:
                active += 1

        stale.sort(key=lambda b: b.days_old, reverse=True)
        branches = BranchMetrics(
            total_branches=len(branch_list.names),
            stale_branches=stale[:TOP_N],
            stale_branch_count=len(stale),
            active_branches=active,
            default_branch=branch_list.current,
        )
        return CollectorResult("branches", branches, skipped)

    def collect_security(self) -> CollectorResult:
        if self.options.skip_security:
            return CollectorResult("security", SecurityMetrics())
        scanner = SecurityScanner(self.root, cancel_event=self.cancel_event)
        return CollectorResult("security", scanner.scan(), scanner.skipped)

    # --- Helpers ---

    def _find_largest_commit(self, history: list[CommitInfo]) -> tuple[LargestCommit, int]:
        """Largest commit among the most recent ones; earlier (newer) wins ties."""
        largest = LargestCommit()
        skipped = 0
        for commit in history[:LARGEST_COMMIT_WINDOW]:
            self._check_cancelled()
            try:
                file_count = len(self.git.changed_files(commit.hash))
            except GitError as e:
                logger.debug("Skipping commit %s: %s", commit.hash[:7], e)
                skipped += 1
                continue
            if file_count > largest.files:
                largest = LargestCommit(
                    hash=commit.hash[:7],
                    files=file_count,
                    date=format_date(commit.timestamp),
                )
        return largest, skipped

    def _repository_age(self, first_commit: datetime) -> str:
        days = (self.now() - first_commit).total_seconds() / SECONDS_PER_DAY
        return repository_age(days)


def repository_age(days: float) -> str:
    """'12 days', '4 months' or '2.3 years'."""
    if days < 30:
        return f"{math.floor(max(days, 0))} days"
    if days < 365:
        return f"{math.floor(days / 30)} months"
    return f"{days / 365:.1f} years"


def commit_frequency(average_per_day: float) -> str:
    if average_per_day >= 5:
        return "Very active"
    if average_per_day >= 1:
        return "Active"
    if average_per_day >= 0.5:
        return "Moderate"
    if average_per_day >= 0.1:
        return "Low"
    return "Very low"


def commit_pattern(history: list[CommitInfo]) -> str:
    """Weekday/weekend tendency of the most recent commits."""
    if not history:
        return "No activity"
    if len(history) < MIN_COMMITS_FOR_PATTERN:
        return "Too few commits to analyze"

    recent = history[:PATTERN_WINDOW]
    weekday_commits = sum(1 for c in recent if c.timestamp.weekday() < 5)
    ratio = weekday_commits / len(recent)
    if ratio > 0.7:
        return "Most active on weekdays"
    if ratio < 0.3:
        return "Most active on weekends"
    return "Consistent activity throughout week"


def identify_issues(metrics: RepositoryMetrics, options: AnalysisOptions) -> list[Issue]:
    """Every problem condition that holds, in category order."""
    issues: list[Issue] = []

    secrets = len(metrics.security.potential_secrets)
    if secrets > 0:
        issues.append(Issue(
            severity=Severity.CRITICAL,
            category="Security",
            message=f"Found {pluralize(secrets, 'potential secret')} in code",
            details="Secrets should never be committed to version control",
        ))

    sensitive = len(metrics.security.sensitive_files)
    if sensitive > 0:
        issues.append(Issue(
            severity=Severity.WARNING,
            category="Security",
            message=f"Found {pluralize(sensitive, 'sensitive file')}",
            details="Files like .env should be in .gitignore",
        ))

    large = metrics.files.large_file_count
    if large > 0:
        issues.append(Issue(
            severity=Severity.WARNING,
            category="Performance",
            message=f"Found {pluralize(large, 'large file')} (>{options.max_file_size_mb:g}MB)",
            details="Large files slow down cloning and operations",
        ))

    stale = metrics.branches.stale_branch_count
    if stale > STALE_BRANCH_LIMIT:
        issues.append(Issue(
            severity=Severity.INFO,
            category="Maintenance",
            message=f"Found {pluralize(stale, 'stale branch', 'stale branches')}",
            details=f"Branches inactive for >{options.stale_branch_days} days",
        ))

    average = metrics.commits.average_commits_per_day
    if average < LOW_ACTIVITY_THRESHOLD:
        issues.append(Issue(
            severity=Severity.INFO,
            category="Activity",
            message=(
                f"Low commit frequency ({average:g} commits/day, "
                f"below {LOW_ACTIVITY_THRESHOLD:g})"
            ),
            details="Repository appears to be inactive",
        ))

    return issues


def generate_recommendations(metrics: RepositoryMetrics) -> list[Recommendation]:
    """Suggested actions, computed independently of the issue list."""
    recommendations: list[Recommendation] = []

    if metrics.security.potential_secrets:
        recommendations.append(Recommendation(
            priority=Priority.HIGH,
            title="Remove secrets from code",
            description="Secrets were detected in your repository",
            action="Use environment variables and add sensitive files to .gitignore",
        ))

    large = metrics.files.large_file_count
    if large > 0:
        recommendations.append(Recommendation(
            priority=Priority.MEDIUM,
            title="Reduce repository size",
            description=f"{pluralize(large, 'large file')} detected",
            action="Consider using Git LFS for large binary files",
        ))

    stale = metrics.branches.stale_branch_count
    if stale > STALE_BRANCH_LIMIT:
        recommendations.append(Recommendation(
            priority=Priority.LOW,
            title="Clean up stale branches",
            description=f"{pluralize(stale, 'branch', 'branches')} haven't been updated recently",
            action="Delete merged or abandoned branches",
        ))

    if metrics.basic.contributors < 2:
        recommendations.append(Recommendation(
            priority=Priority.LOW,
            title="Encourage collaboration",
            description="Repository has limited contributors",
            action="Add CONTRIBUTING.md and welcome new contributors",
        ))

    return recommendations


def calculate_health_score(
    metrics: RepositoryMetrics,
    issues: list[Issue],
    branches_listed: bool = True,
) -> int:
    """100 minus issue penalties plus good-practice bonuses, clamped to 0-100.

    The no-stale-branches bonus needs a successful branch listing.
    """
    score = 100
    for issue in issues:
        score -= SEVERITY_PENALTY[issue.severity]

    if metrics.commits.average_commits_per_day > 1:
        score += BONUS
    if metrics.basic.contributors > 3:
        score += BONUS
    if branches_listed and metrics.branches.stale_branch_count == 0:
        score += BONUS

    return max(0, min(100, score))


def analyze_repo(
    target: AnalysisOptions | str | Path = ".",
    cancel_event: threading.Event | None = None,
) -> RepositoryHealth:
    """Analyze a repository given its options or just its path."""
    if isinstance(target, AnalysisOptions):
        options = target
    else:
        options = AnalysisOptions(path=str(target))
    return RepositoryAnalyzer(options, cancel_event=cancel_event).analyze()
