"""
This module contains helper functions for formatting data into human-readable strings,
and for reading human-written sizes back into bytes. These functions are used
throughout the application, particularly in logging and configuration.
"""

import re
from datetime import timedelta
from pathlib import Path
from typing import Iterable

_SIZE_UNITS = {
    "": 1,
    "B": 1,
    "K": 1000, "KB": 1000, "KIB": 1024,
    "M": 1000 ** 2, "MB": 1000 ** 2, "MIB": 1024 ** 2,
    "G": 1000 ** 3, "GB": 1000 ** 3, "GIB": 1024 ** 3,
    "T": 1000 ** 4, "TB": 1000 ** 4, "TIB": 1024 ** 4,
}


def format_timedelta(td_object: timedelta) -> str:
    """
    Formats a timedelta object into a "HH:MM:SS" string.

    Args:
        td_object: The timedelta object to format.

    Returns:
        A string representing the timedelta in HH:MM:SS format.
        For example, a timedelta of 7261 seconds becomes "02:01:01".
        Returns "00:00:00" if the input is not a valid timedelta object.
    """
    if not isinstance(td_object, timedelta):
        return "00:00:00"

    total_seconds = int(td_object.total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def formatted_size(size_bytes: int) -> str:
    """
    Converts a size in bytes to a human-readable string in binary units (B, KiB, MiB, GiB, TiB).

    The labels match the binary units `parse_size` accepts, so a threshold
    configured as "4GiB" is logged as "4 GiB" (and "4GB" as "3.73 GiB").

    Args:
        size_bytes: The size of the file in bytes.

    Returns:
        A formatted string with the appropriate unit.
        For example, 1536 becomes "1.50 KiB", and 2097152 becomes "2 MiB".
    """
    if size_bytes < 0:
        size_bytes = 0

    units = ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]
    factor = 1024.0

    if size_bytes == 0:
        return "0 B"

    # Iterate through units until the size is less than the next factor of 1024.
    for unit in units:
        if size_bytes < factor:
            if unit == "B":
                return f"{size_bytes} {unit}"
            else:
                # Clean up ".00" for whole numbers (e.g., "2.00 MiB" -> "2 MiB").
                return f"{size_bytes:.2f} {unit}".replace(".00", "")
        size_bytes /= factor

    return f"{size_bytes:.2f} {units[-1]}".replace(".00", "")


def parse_size(value) -> int:
    """
    Parses a size given as an integer or a string like "4GB", "700 MiB" or "123456".

    Decimal units (KB, MB, GB, TB) are powers of 1000 and binary units
    (KiB, MiB, GiB, TiB) are powers of 1024.

    Raises:
        ValueError: If the value is negative or cannot be parsed.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid size: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Size must be non-negative: {value}")
        return value

    match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)\s*", str(value))
    if not match:
        raise ValueError(f"Invalid size: {value!r}")
    number, unit = match.groups()
    multiplier = _SIZE_UNITS.get(unit.upper())
    if multiplier is None:
        raise ValueError(f"Unknown size unit '{unit}' in {value!r}")
    return int(float(number) * multiplier)


def contains_any_extensions(file_path_obj: Path, extensions_to_check: Iterable[str]) -> bool:
    """
    Checks if a file's extension is present in a given list (case-insensitive).

    Args:
        file_path_obj: A `pathlib.Path` object for the file to check.
        extensions_to_check: File extensions, with or without the leading dot.

    Returns:
        True if the file's extension is in the list, False otherwise.
    """
    normalized_extensions = {
        ext.lower() if ext.startswith(".") else f".{ext.lower()}"
        for ext in extensions_to_check
    }
    if not normalized_extensions:
        return False
    return file_path_obj.suffix.lower() in normalized_extensions
