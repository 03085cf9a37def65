"""Security scanner - walks the working tree looking for exposed credentials.

Files are classified as sensitive by name and as binary by extension; text
files are matched line by line against the secret pattern table. A file
that cannot be read never aborts the scan: it is skipped and counted.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterator
from pathlib import Path

from .models import SecurityFinding, SecurityMetrics
from .patterns import PatternCategory, iter_matches

logger = logging.getLogger(__name__)

MAX_MATCH_LENGTH = 50

# Pruned at any depth, matched by exact directory name
IGNORE_DIRS = {
    ".git", ".hg", ".svn",
    "node_modules", "bower_components", "vendor", ".venv", "venv", "__pycache__",
    "dist", "build", "out", ".next", ".nuxt", "target",
    "coverage", ".nyc_output", "htmlcov",
}

# Suffixes of the path relative to the repository root
SENSITIVE_FILES = (
    ".env", ".env.local", ".env.development", ".env.staging", ".env.production",
    "credentials.json", "secrets.yml", "secrets.yaml", "secrets.json",
    "id_rsa", "id_dsa", "id_ecdsa", "id_ed25519",
    ".npmrc", ".pypirc", ".netrc", ".pgpass", ".htpasswd",
    "config/database.yml", "config/secrets.yml",
    ".pem", ".p12", ".pfx", ".keystore", ".jks",
)

BINARY_EXTENSIONS = (
    ".exe", ".dll", ".so", ".dylib", ".bin", ".dat", ".o", ".a", ".lib", ".class", ".jar",
    ".pyc", ".pyo", ".wasm",
    ".zip", ".tar", ".gz", ".bz2", ".xz", ".rar", ".7z",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".tiff",
    ".woff", ".woff2", ".ttf", ".otf", ".eot",
    ".mp3", ".mp4", ".wav", ".mov", ".avi",
    ".p12", ".pfx", ".jks", ".keystore",
)


class AnalysisCancelled(Exception):
    """The analysis was cancelled before it finished."""


def check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelled("Analysis cancelled")


def is_sensitive_file(rel_path: str) -> bool:
    return rel_path.endswith(SENSITIVE_FILES)


def is_binary_file(name: str) -> bool:
    return name.lower().endswith(BINARY_EXTENSIONS)


def iter_repo_files(
    root: Path,
    on_error: Callable[[OSError], None] | None = None,
) -> Iterator[tuple[Path, str]]:
    """Yield (path, posix path relative to root) for every file outside IGNORE_DIRS.

    Entries are visited in sorted order so repeated walks agree.
    """
    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        # Skip ignored directories
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORE_DIRS)
        for fname in sorted(filenames):
            fpath = Path(dirpath) / fname
            yield fpath, fpath.relative_to(root).as_posix()


def _excerpt(text: str) -> str:
    if len(text) > MAX_MATCH_LENGTH:
        return text[:MAX_MATCH_LENGTH] + "..."
    return text


class SecurityScanner:
    """Scan a directory tree for secrets, private keys and sensitive files."""

    def __init__(self, root: str | Path, cancel_event: threading.Event | None = None):
        self.root = Path(root)
        self.cancel_event = cancel_event
        self.skipped = 0

    def scan(self) -> SecurityMetrics:
        """Scan every reachable file. Only cancellation is raised to the caller."""
        metrics = SecurityMetrics()
        self.skipped = 0

        for fpath, rel_file in iter_repo_files(self.root, on_error=self._on_walk_error):
            check_cancelled(self.cancel_event)

            if is_sensitive_file(rel_file):
                metrics.sensitive_files.append(rel_file)

            if is_binary_file(fpath.name):
                continue

            for finding, category in self._scan_file(fpath, rel_file):
                if category is PatternCategory.PRIVATE_KEY:
                    metrics.exposed_keys.append(finding)
                else:
                    metrics.potential_secrets.append(finding)

        logger.debug(
            "Security scan of %s: %d secrets, %d keys, %d sensitive files, %d skipped",
            self.root,
            len(metrics.potential_secrets),
            len(metrics.exposed_keys),
            len(metrics.sensitive_files),
            self.skipped,
        )
        return metrics

    def scan_file(self, fpath: Path, rel_file: str) -> list[SecurityFinding]:
        """Return every finding in a single text file."""
        return [finding for finding, _ in self._scan_file(fpath, rel_file)]

    def _scan_file(
        self, fpath: Path, rel_file: str
    ) -> list[tuple[SecurityFinding, PatternCategory]]:
        try:
            content = fpath.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.skipped += 1
            logger.debug("Skipping unreadable file %s: %s", rel_file, e)
            return []

        results = []
        for line_number, line in enumerate(content.split("\n"), start=1):
            for pattern, match in iter_matches(line):
                finding = SecurityFinding(
                    file=rel_file,
                    line=line_number,
                    type=pattern.name,
                    match=_excerpt(match.group(0)),
                    severity=pattern.severity,
                )
                results.append((finding, pattern.category))
        return results

    def _on_walk_error(self, error: OSError) -> None:
        self.skipped += 1
        logger.debug("Cannot list %s: %s", error.filename, error)
