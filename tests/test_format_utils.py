"""
Test size and time formatting helpers
"""

from datetime import timedelta
from pathlib import Path

import pytest

from video_shrinker.utils.format_utils import (
    contains_any_extensions,
    format_timedelta,
    formatted_size,
    parse_size,
)


@pytest.mark.parametrize("value,expected", [
    (123456, 123456),
    ("123456", 123456),
    ("4GB", 4 * 1000 ** 3),
    ("4 GiB", 4 * 1024 ** 3),
    ("700MiB", 700 * 1024 ** 2),
    ("1.5kb", 1500),
    ("2T", 2 * 1000 ** 4),
    ("10 B", 10),
])
def test_parse_size(value, expected):
    assert parse_size(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "4 XB", "-5", -1, True, "1.2.3GB"])
def test_parse_size_rejects_invalid(value):
    with pytest.raises(ValueError):
        parse_size(value)


@pytest.mark.parametrize("size,expected", [
    (0, "0 B"),
    (512, "512 B"),
    (1536, "1.50 KiB"),
    (2 * 1024 ** 2, "2 MiB"),
    (4 * 1000 ** 3, "3.73 GiB"),
    (-10, "0 B"),
])
def test_formatted_size(size, expected):
    assert formatted_size(size) == expected


def test_format_timedelta():
    assert format_timedelta(timedelta(seconds=7261)) == "02:01:01"
    assert format_timedelta("not a timedelta") == "00:00:00"


def test_contains_any_extensions():
    assert contains_any_extensions(Path("show.TS"), [".ts"])
    assert contains_any_extensions(Path("show.ts"), ["ts"])
    assert not contains_any_extensions(Path("show.mkv"), [".ts"])
    assert not contains_any_extensions(Path("show.ts"), [])


@pytest.mark.parametrize("text", ["4 GiB", "700 MiB", "1.50 KiB"])
def test_formatted_size_reads_back(text):
    assert formatted_size(parse_size(text)) == text
