"""JSON and Markdown reports for repository health results.

The JSON report is the persisted form of a run; ``load_report`` reads it
back for ``repo-doctor report`` without re-running the analysis.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from .models import RepositoryHealth, ReportFormatError, Severity

PROJECT_URL = "https://github.com/consigcody94/repo-doctor"

PRIORITY_MARKERS = {"high": "🔴", "medium": "🟡", "low": "🔵"}
SEVERITY_SECTIONS = (
    (Severity.CRITICAL, "Critical", "❌"),
    (Severity.WARNING, "Warnings", "⚠️"),
    (Severity.INFO, "Info", "ℹ️"),
)


def generate_json_report(health: RepositoryHealth, pretty: bool = True) -> str:
    """Serialize a result to JSON."""
    return json.dumps(health.to_dict(), indent=2 if pretty else None, ensure_ascii=False)


def load_report(path: str | Path) -> RepositoryHealth:
    """Read a JSON report written by ``generate_json_report``.

    Raises:
        OSError: the file cannot be read
        ReportFormatError: the file is not a valid report
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ReportFormatError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ReportFormatError(f"{path}: expected a JSON object at top level")
    return RepositoryHealth.from_dict(data)


def generate_markdown_report(health: RepositoryHealth, generated_at: datetime | None = None) -> str:
    """Render a result as a Markdown document."""
    generated_at = generated_at or datetime.now(timezone.utc)
    metrics = health.metrics
    lines = []

    lines.append("# Repository Health Report\n")
    lines.append(f"**Generated:** {generated_at.isoformat()}\n")
    if health.repository:
        lines.append(f"**Repository:** `{health.repository}`\n")
    lines.append(f"## Overall Health: {health.grade.value} ({health.score}/100)\n")

    basic = metrics.basic
    lines.append("## 📊 Basic Metrics\n")
    lines.append(f"- **Total Commits:** {basic.total_commits}")
    lines.append(f"- **Total Branches:** {basic.total_branches}")
    lines.append(f"- **Total Files:** {basic.total_files}")
    lines.append(f"- **Contributors:** {basic.contributors}")
    lines.append(f"- **Repository Age:** {basic.repository_age}")
    lines.append(f"- **Last Commit:** {basic.last_commit_date}\n")

    commits = metrics.commits
    lines.append("## 📝 Commit Activity\n")
    lines.append(f"- **Average Commits/Day:** {commits.average_commits_per_day:g}")
    lines.append(f"- **Commit Frequency:** {commits.commit_frequency}")
    lines.append(f"- **Commit Pattern:** {commits.commit_pattern}")
    largest = commits.largest_commit
    if largest.hash:
        lines.append(f"- **Largest Commit:** {largest.hash} ({largest.files} files, {largest.date})")
    lines.append("")

    files = metrics.files
    lines.append("## 📁 File Analysis\n")
    lines.append(f"- **Total Size:** {files.total_size}")
    lines.append(f"- **Binary Files:** {files.binary_files}\n")
    if files.large_files:
        lines.append("### Large Files\n")
        for large in files.large_files:
            lines.append(f"- `{large.path}` ({large.size})")
        lines.append("")
    top_types = sorted(files.file_types.items(), key=lambda x: -x[1])[:10]
    if top_types:
        lines.append("### File Types\n")
        for ext, count in top_types:
            lines.append(f"- **{ext}:** {count} files")
        lines.append("")

    security = metrics.security
    lines.append("## 🔒 Security Scan\n")
    if security.total_issues == 0:
        lines.append("✅ No security issues detected\n")
    else:
        if security.potential_secrets:
            lines.append(f"### ⚠️ Potential Secrets ({len(security.potential_secrets)})\n")
            for finding in security.potential_secrets:
                lines.append(f"- **{finding.type}** in `{finding.file}:{finding.line}`")
            lines.append("")
        if security.exposed_keys:
            lines.append(f"### ⚠️ Exposed Keys ({len(security.exposed_keys)})\n")
            for finding in security.exposed_keys:
                lines.append(f"- **{finding.type}** in `{finding.file}:{finding.line}`")
            lines.append("")
        if security.sensitive_files:
            lines.append(f"### ⚠️ Sensitive Files ({len(security.sensitive_files)})\n")
            for path in security.sensitive_files:
                lines.append(f"- `{path}`")
            lines.append("")

    branches = metrics.branches
    lines.append("## 🌿 Branch Analysis\n")
    lines.append(f"- **Total Branches:** {branches.total_branches}")
    lines.append(f"- **Active Branches:** {branches.active_branches}")
    lines.append(f"- **Stale Branches:** {branches.stale_branch_count}")
    lines.append(f"- **Default Branch:** {branches.default_branch}\n")
    if branches.stale_branches:
        lines.append("### Stale Branches\n")
        for branch in branches.stale_branches:
            lines.append(f"- **{branch.name}** ({branch.days_old} days old)")
        lines.append("")

    if health.issues:
        lines.append("## ⚠️ Issues Found\n")
        for severity, heading, marker in SEVERITY_SECTIONS:
            group = health.issues_by_severity(severity)
            if not group:
                continue
            lines.append(f"### {heading} ({len(group)})\n")
            for issue in group:
                lines.append(f"- {marker} **{issue.message}**")
                if issue.details:
                    lines.append(f"  - {issue.details}")
            lines.append("")

    if health.recommendations:
        lines.append("## 💡 Recommendations\n")
        for i, rec in enumerate(health.recommendations, 1):
            lines.append(f"### {i}. {rec.title} {PRIORITY_MARKERS[rec.priority.value]}\n")
            lines.append(f"{rec.description}\n")
            lines.append(f"**Action:** {rec.action}\n")

    lines.append("---\n")
    lines.append(f"*Generated by [repo-doctor]({PROJECT_URL})*\n")

    return "\n".join(lines)


def write_report(content: str, output_path: str | Path) -> Path:
    """Write a rendered report, creating parent directories."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
