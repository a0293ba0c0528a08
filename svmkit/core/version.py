"""
Dotted version parsing and ordering.

Versions are split on "." into a tuple of non-negative integers. Tuples compare
component by component over the shared prefix, and when that prefix is equal
the longer tuple is greater ("17.0" < "17.0.2"). Strings that do not parse fall
back to plain string comparison.

Parsing is strict: a component that is not a run of ASCII digits makes the
whole string unparsable. Pre-release tags such as "1.2.0-rc1" are therefore
never coerced to a numeric value.
"""

from typing import Iterable, List, Tuple

from svmkit.core.exceptions import InvalidVersionError

ParsedVersion = Tuple[int, ...]

PRERELEASE_MARKERS = ("rc", "alpha", "beta")


def _strip_v(version: str) -> str:
    if version.startswith("v"):
        return version[1:]
    return version


def parse_version(version: str) -> ParsedVersion:
    """
    Parse a dotted version string.

    One leading 'v' is ignored, so "v18.1.0" and "18.1.0" parse the same.

    Args:
        version: Version string such as "1.21.3"

    Returns:
        Tuple of integer components

    Raises:
        InvalidVersionError: If any component is not numeric

    Example:
        >>> parse_version("v16.20.2")
        (16, 20, 2)
    """
    parts = _strip_v(version).split(".")
    result = []
    for part in parts:
        if not (part.isascii() and part.isdigit()):
            raise InvalidVersionError(version)
        result.append(int(part))
    return tuple(result)


def try_parse_version(version: str):
    """Parse a version, returning None instead of raising."""
    try:
        return parse_version(version)
    except InvalidVersionError:
        return None


def compare_parsed(a: ParsedVersion, b: ParsedVersion) -> int:
    """Compare two parsed versions, returning -1, 0 or 1."""
    # Tuple ordering already breaks shared-prefix ties by length.
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def compare_versions(a: str, b: str) -> int:
    """
    Compare two version strings.

    Falls back to plain string comparison when either side does not parse.

    Returns:
        -1 if a < b, 0 if equal, 1 if a > b
    """
    parsed_a = try_parse_version(a)
    parsed_b = try_parse_version(b)
    if parsed_a is None or parsed_b is None:
        if a == b:
            return 0
        return 1 if a > b else -1
    return compare_parsed(parsed_a, parsed_b)


def _sort_key(version: str):
    parsed = try_parse_version(version)
    if parsed is None:
        return (0, (), version)
    return (1, parsed, version)


def sort_versions_desc(versions: Iterable[str]) -> List[str]:
    """
    Sort versions newest first.

    Parsable versions come first in numeric order, unparsable ones follow in
    descending string order. The input is not modified.
    """
    return sorted(versions, key=_sort_key, reverse=True)


def is_stable(version: str) -> bool:
    """Return True if the version carries no pre-release marker."""
    lowered = version.lower()
    return not any(marker in lowered for marker in PRERELEASE_MARKERS)


__all__ = [
    "ParsedVersion",
    "parse_version",
    "try_parse_version",
    "compare_parsed",
    "compare_versions",
    "sort_versions_desc",
    "is_stable",
]
