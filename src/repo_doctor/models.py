"""Data model for repository health analysis.

Every value here is created fresh by one analysis run and is plain data:
no open handles, no back references. ``RepositoryHealth.to_dict()`` is the
JSON form written by ``repo-doctor analyze --format json`` and
``RepositoryHealth.from_dict()`` reads it back, validating as it goes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ReportFormatError(ValueError):
    """A serialized report does not have the expected shape."""


class Severity(Enum):
    """Severity of an issue or a security finding."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class Priority(Enum):
    """Priority of a recommendation."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Grade(Enum):
    """Letter grade for the overall health score."""

    A = "A"  # 90-100
    B = "B"  # 80-89
    C = "C"  # 70-79
    D = "D"  # 60-69
    F = "F"  # Below 60

    @classmethod
    def from_score(cls, score: float) -> Grade:
        """Convert a numeric score to a letter grade."""
        if score >= 90:
            return cls.A
        elif score >= 80:
            return cls.B
        elif score >= 70:
            return cls.C
        elif score >= 60:
            return cls.D
        else:
            return cls.F

    @property
    def color(self) -> str:
        """Rich color used to display this grade."""
        colors = {
            Grade.A: "green",
            Grade.B: "blue",
            Grade.C: "yellow",
            Grade.D: "yellow",
            Grade.F: "red",
        }
        return colors.get(self, "white")


@dataclass(frozen=True)
class AnalysisOptions:
    """Resolved configuration for one analysis run."""

    path: str = "."
    deep: bool = True
    skip_security: bool = False
    skip_files: bool = False
    max_file_size_mb: float = 10
    stale_branch_days: int = 90

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)


# --- Validation helpers for from_dict ---


def _field(data: Any, key: str, expected: type | tuple[type, ...], where: str) -> Any:
    if not isinstance(data, dict):
        raise ReportFormatError(f"{where}: expected an object, got {type(data).__name__}")
    if key not in data:
        raise ReportFormatError(f"{where}.{key}: missing")
    value = data[key]
    if not isinstance(value, expected) or (isinstance(value, bool) and expected is not bool):
        raise ReportFormatError(
            f"{where}.{key}: unexpected type {type(value).__name__}"
        )
    return value


def _optional(data: dict, key: str, expected: type | tuple[type, ...], where: str, default: Any = None) -> Any:
    if data.get(key) is None:
        return default
    return _field(data, key, expected, where)


def _enum(enum_cls: type[Enum], value: Any, where: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        raise ReportFormatError(f"{where}: invalid value {value!r}") from None


def _str_list(data: dict, key: str, where: str) -> list[str]:
    items = _field(data, key, list, where)
    for i, item in enumerate(items):
        if not isinstance(item, str):
            raise ReportFormatError(f"{where}.{key}[{i}]: expected a string")
    return list(items)


def _object_list(data: dict, key: str, where: str) -> list[tuple[dict, str]]:
    items = _field(data, key, list, where)
    return [(item, f"{where}.{key}[{i}]") for i, item in enumerate(items)]


# --- Security ---


@dataclass(frozen=True)
class SecurityFinding:
    """One pattern match in a scanned file."""

    file: str
    line: int
    type: str
    match: str
    severity: Severity

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "type": self.type,
            "match": self.match,
            "severity": self.severity.value,
        }

    @classmethod
    def from_dict(cls, data: dict, where: str = "finding") -> SecurityFinding:
        return cls(
            file=_field(data, "file", str, where),
            line=_field(data, "line", int, where),
            type=_field(data, "type", str, where),
            match=_field(data, "match", str, where),
            severity=_enum(Severity, _field(data, "severity", str, where), f"{where}.severity"),
        )


@dataclass
class SecurityMetrics:
    """Findings of the security scanner."""

    potential_secrets: list[SecurityFinding] = field(default_factory=list)
    sensitive_files: list[str] = field(default_factory=list)
    exposed_keys: list[SecurityFinding] = field(default_factory=list)

    @property
    def total_issues(self) -> int:
        return len(self.potential_secrets) + len(self.sensitive_files) + len(self.exposed_keys)

    def to_dict(self) -> dict[str, Any]:
        return {
            "potentialSecrets": [f.to_dict() for f in self.potential_secrets],
            "sensitiveFiles": list(self.sensitive_files),
            "exposedKeys": [f.to_dict() for f in self.exposed_keys],
        }

    @classmethod
    def from_dict(cls, data: dict, where: str = "security") -> SecurityMetrics:
        return cls(
            potential_secrets=[
                SecurityFinding.from_dict(item, w)
                for item, w in _object_list(data, "potentialSecrets", where)
            ],
            sensitive_files=_str_list(data, "sensitiveFiles", where),
            exposed_keys=[
                SecurityFinding.from_dict(item, w)
                for item, w in _object_list(data, "exposedKeys", where)
            ],
        )


# --- Collector snapshots ---


@dataclass
class BasicMetrics:
    """Repository-wide counts."""

    total_commits: int = 0
    total_branches: int = 0
    total_files: int = 0
    repository_age: str = "0 days"
    last_commit_date: str = "No commits"
    contributors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalCommits": self.total_commits,
            "totalBranches": self.total_branches,
            "totalFiles": self.total_files,
            "repositoryAge": self.repository_age,
            "lastCommitDate": self.last_commit_date,
            "contributors": self.contributors,
        }

    @classmethod
    def from_dict(cls, data: dict, where: str = "basic") -> BasicMetrics:
        return cls(
            total_commits=_field(data, "totalCommits", int, where),
            total_branches=_field(data, "totalBranches", int, where),
            total_files=_field(data, "totalFiles", int, where),
            repository_age=_field(data, "repositoryAge", str, where),
            last_commit_date=_field(data, "lastCommitDate", str, where),
            contributors=_field(data, "contributors", int, where),
        )


@dataclass
class LargestCommit:
    """The commit touching the most files among those inspected."""

    hash: str = ""
    files: int = 0
    date: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"hash": self.hash, "files": self.files, "date": self.date}

    @classmethod
    def from_dict(cls, data: dict, where: str = "largestCommit") -> LargestCommit:
        return cls(
            hash=_field(data, "hash", str, where),
            files=_field(data, "files", int, where),
            date=_field(data, "date", str, where),
        )


@dataclass
class CommitMetrics:
    """Commit activity over the repository history."""

    average_commits_per_day: float = 0
    commit_frequency: str = "No commits"
    largest_commit: LargestCommit = field(default_factory=LargestCommit)
    commit_pattern: str = "No activity"

    def to_dict(self) -> dict[str, Any]:
        return {
            "averageCommitsPerDay": self.average_commits_per_day,
            "commitFrequency": self.commit_frequency,
            "largestCommit": self.largest_commit.to_dict(),
            "commitPattern": self.commit_pattern,
        }

    @classmethod
    def from_dict(cls, data: dict, where: str = "commits") -> CommitMetrics:
        return cls(
            average_commits_per_day=_field(data, "averageCommitsPerDay", (int, float), where),
            commit_frequency=_field(data, "commitFrequency", str, where),
            largest_commit=LargestCommit.from_dict(
                _field(data, "largestCommit", dict, where), f"{where}.largestCommit"
            ),
            commit_pattern=_field(data, "commitPattern", str, where),
        )


@dataclass
class LargeFile:
    """A working-tree file above the size threshold."""

    path: str
    size: str
    size_bytes: int

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "size": self.size, "sizeBytes": self.size_bytes}

    @classmethod
    def from_dict(cls, data: dict, where: str = "largeFile") -> LargeFile:
        return cls(
            path=_field(data, "path", str, where),
            size=_field(data, "size", str, where),
            size_bytes=_field(data, "sizeBytes", int, where),
        )


@dataclass
class FileMetrics:
    """Working-tree composition. All zero when file analysis is skipped."""

    total_size: str = "0 B"
    total_size_bytes: int = 0
    large_files: list[LargeFile] = field(default_factory=list)
    large_file_count: int = 0
    file_types: dict[str, int] = field(default_factory=dict)
    binary_files: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSize": self.total_size,
            "totalSizeBytes": self.total_size_bytes,
            "largeFiles": [f.to_dict() for f in self.large_files],
            "largeFileCount": self.large_file_count,
            "fileTypes": dict(self.file_types),
            "binaryFiles": self.binary_files,
        }

    @classmethod
    def from_dict(cls, data: dict, where: str = "files") -> FileMetrics:
        large_files = [
            LargeFile.from_dict(item, w) for item, w in _object_list(data, "largeFiles", where)
        ]
        file_types = _field(data, "fileTypes", dict, where)
        for ext, count in file_types.items():
            if not isinstance(count, int) or isinstance(count, bool):
                raise ReportFormatError(f"{where}.fileTypes[{ext!r}]: expected an integer")
        return cls(
            total_size=_field(data, "totalSize", str, where),
            total_size_bytes=_optional(data, "totalSizeBytes", int, where, default=0),
            large_files=large_files,
            large_file_count=_optional(
                data, "largeFileCount", int, where, default=len(large_files)
            ),
            file_types=dict(file_types),
            binary_files=_field(data, "binaryFiles", int, where),
        )


@dataclass
class StaleBranch:
    """A branch whose last commit is older than the stale threshold."""

    name: str
    last_commit: str
    days_old: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "lastCommit": self.last_commit, "daysOld": self.days_old}

    @classmethod
    def from_dict(cls, data: dict, where: str = "staleBranch") -> StaleBranch:
        return cls(
            name=_field(data, "name", str, where),
            last_commit=_field(data, "lastCommit", str, where),
            days_old=_field(data, "daysOld", int, where),
        )


@dataclass
class BranchMetrics:
    """Branch counts and staleness."""

    total_branches: int = 0
    stale_branches: list[StaleBranch] = field(default_factory=list)
    stale_branch_count: int = 0
    active_branches: int = 0
    default_branch: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalBranches": self.total_branches,
            "staleBranches": [b.to_dict() for b in self.stale_branches],
            "staleBranchCount": self.stale_branch_count,
            "activeBranches": self.active_branches,
            "defaultBranch": self.default_branch,
        }

    @classmethod
    def from_dict(cls, data: dict, where: str = "branches") -> BranchMetrics:
        stale = [
            StaleBranch.from_dict(item, w) for item, w in _object_list(data, "staleBranches", where)
        ]
        return cls(
            total_branches=_field(data, "totalBranches", int, where),
            stale_branches=stale,
            stale_branch_count=_optional(data, "staleBranchCount", int, where, default=len(stale)),
            active_branches=_field(data, "activeBranches", int, where),
            default_branch=_field(data, "defaultBranch", str, where),
        )


@dataclass
class RepositoryMetrics:
    """All collector snapshots of one run."""

    basic: BasicMetrics = field(default_factory=BasicMetrics)
    commits: CommitMetrics = field(default_factory=CommitMetrics)
    files: FileMetrics = field(default_factory=FileMetrics)
    security: SecurityMetrics = field(default_factory=SecurityMetrics)
    branches: BranchMetrics = field(default_factory=BranchMetrics)

    def to_dict(self) -> dict[str, Any]:
        return {
            "basic": self.basic.to_dict(),
            "commits": self.commits.to_dict(),
            "files": self.files.to_dict(),
            "security": self.security.to_dict(),
            "branches": self.branches.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict, where: str = "metrics") -> RepositoryMetrics:
        return cls(
            basic=BasicMetrics.from_dict(_field(data, "basic", dict, where), f"{where}.basic"),
            commits=CommitMetrics.from_dict(_field(data, "commits", dict, where), f"{where}.commits"),
            files=FileMetrics.from_dict(_field(data, "files", dict, where), f"{where}.files"),
            security=SecurityMetrics.from_dict(
                _field(data, "security", dict, where), f"{where}.security"
            ),
            branches=BranchMetrics.from_dict(
                _field(data, "branches", dict, where), f"{where}.branches"
            ),
        )


# --- Derived views ---


@dataclass(frozen=True)
class Issue:
    """A problem detected in the repository."""

    severity: Severity
    category: str
    message: str
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "category": self.category,
            "message": self.message,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: dict, where: str = "issue") -> Issue:
        return cls(
            severity=_enum(Severity, _field(data, "severity", str, where), f"{where}.severity"),
            category=_field(data, "category", str, where),
            message=_field(data, "message", str, where),
            details=_optional(data, "details", str, where),
        )


@dataclass(frozen=True)
class Recommendation:
    """A suggested action for improving repository health."""

    priority: Priority
    title: str
    description: str
    action: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "priority": self.priority.value,
            "title": self.title,
            "description": self.description,
            "action": self.action,
        }

    @classmethod
    def from_dict(cls, data: dict, where: str = "recommendation") -> Recommendation:
        return cls(
            priority=_enum(Priority, _field(data, "priority", str, where), f"{where}.priority"),
            title=_field(data, "title", str, where),
            description=_field(data, "description", str, where),
            action=_field(data, "action", str, where),
        )


@dataclass
class RepositoryHealth:
    """Complete result of one analysis run."""

    score: int
    grade: Grade
    metrics: RepositoryMetrics
    issues: list[Issue] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    skipped: dict[str, int] = field(default_factory=dict)
    repository: str = ""
    analyzed_at: str = ""

    def issues_by_severity(self, severity: Severity) -> list[Issue]:
        return [i for i in self.issues if i.severity == severity]

    @property
    def has_critical_issues(self) -> bool:
        return bool(self.issues_by_severity(Severity.CRITICAL))

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "grade": self.grade.value,
            "repository": self.repository,
            "analyzedAt": self.analyzed_at,
            "issues": [i.to_dict() for i in self.issues],
            "metrics": self.metrics.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "skipped": dict(self.skipped),
        }

    @classmethod
    def from_dict(cls, data: dict) -> RepositoryHealth:
        """Rebuild a result from its JSON form, rejecting anything inconsistent."""
        where = "report"
        score = _field(data, "score", int, where)
        if not 0 <= score <= 100:
            raise ReportFormatError(f"{where}.score: {score} is outside 0-100")
        grade = _enum(Grade, _field(data, "grade", str, where), f"{where}.grade")
        if grade != Grade.from_score(score):
            raise ReportFormatError(
                f"{where}.grade: {grade.value} does not match score {score}"
            )

        skipped = _optional(data, "skipped", dict, where, default={})
        for name, count in skipped.items():
            if not isinstance(count, int) or isinstance(count, bool):
                raise ReportFormatError(f"{where}.skipped[{name!r}]: expected an integer")

        return cls(
            score=score,
            grade=grade,
            metrics=RepositoryMetrics.from_dict(_field(data, "metrics", dict, where)),
            issues=[Issue.from_dict(item, w) for item, w in _object_list(data, "issues", where)],
            recommendations=[
                Recommendation.from_dict(item, w)
                for item, w in _object_list(data, "recommendations", where)
            ],
            skipped=dict(skipped),
            repository=_optional(data, "repository", str, where, default=""),
            analyzed_at=_optional(data, "analyzedAt", str, where, default=""),
        )
