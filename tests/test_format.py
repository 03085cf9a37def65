"""Tests for display helpers."""

from datetime import datetime, timezone

import pytest

from repo_doctor.format import calculate_grade, format_bytes, format_date, format_days_ago, pluralize
from repo_doctor.models import Grade


class TestFormatBytes:
    @pytest.mark.parametrize(
        "num_bytes,expected",
        [
            (0, "0 B"),
            (512, "512 B"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (1024 * 1024, "1 MB"),
            (1024 * 1024 + 1, "1 MB"),
            (int(2.5 * 1024**3), "2.5 GB"),
            (3 * 1024**4, "3 TB"),
        ],
    )
    def test_format(self, num_bytes, expected):
        assert format_bytes(num_bytes) == expected


class TestFormatDaysAgo:
    @pytest.mark.parametrize(
        "days,expected",
        [
            (0, "today"),
            (1, "yesterday"),
            (3, "3 days ago"),
            (7, "1 weeks ago"),
            (14, "2 weeks ago"),
            (30, "1 months ago"),
            (90, "3 months ago"),
            (365, "1 years ago"),
        ],
    )
    def test_format(self, days, expected):
        assert format_days_ago(days) == expected


class TestCalculateGrade:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (100, Grade.A),
            (90, Grade.A),
            (89, Grade.B),
            (80, Grade.B),
            (79, Grade.C),
            (70, Grade.C),
            (69, Grade.D),
            (60, Grade.D),
            (59, Grade.F),
            (0, Grade.F),
        ],
    )
    def test_boundaries(self, score, expected):
        assert calculate_grade(score) == expected


def test_format_date():
    assert format_date(datetime(2024, 3, 7, 23, 59, tzinfo=timezone.utc)) == "2024-03-07"


class TestPluralize:
    def test_singular(self):
        assert pluralize(1, "file") == "1 file"

    def test_plural(self):
        assert pluralize(0, "file") == "0 files"
        assert pluralize(3, "file") == "3 files"

    def test_explicit_plural(self):
        assert pluralize(1, "branch", "branches") == "1 branch"
        assert pluralize(2, "branch", "branches") == "2 branches"
