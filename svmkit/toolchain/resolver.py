"""
Version request resolution.

Turns a fuzzy request ("17", "v16", "1.21", "latest") into one concrete
catalog entry. Candidate lists must already be sorted newest first: the
fallback rules pick the *first* stable entry, so an unsorted list silently
yields the wrong answer.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from svmkit.core.version import compare_parsed, is_stable, try_parse_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrefixHandler:
    """
    Per-ecosystem version prefix policy.

    Attributes:
        add: Turn a bare version into the catalog spelling
        remove: Turn a catalog spelling into the bare version
        has: Whether a version already carries the prefix
    """

    add: Callable[[str], str]
    remove: Callable[[str], str]
    has: Callable[[str], bool]

    def strip_prefix(self) -> str:
        """
        Get the literal prefix string handed to resolve_version.

        This is the first character of the catalog spelling of a dummy
        version, or '' when the handler adds nothing.
        """
        probe = self.add("0")
        if probe != "0" and self.has(probe):
            return probe[0]
        return ""


def _identity(version: str) -> str:
    return version


IDENTITY_PREFIX = PrefixHandler(add=_identity, remove=_identity, has=lambda v: True)


def letter_prefix(prefix: str) -> PrefixHandler:
    """
    Build a handler for a literal prefix such as 'v'.

    Example:
        >>> handler = letter_prefix("v")
        >>> handler.add("20.11.0"), handler.remove("v20.11.0")
        ('v20.11.0', '20.11.0')
    """

    def add(version: str) -> str:
        return version if version.startswith(prefix) else prefix + version

    def remove(version: str) -> str:
        return version[len(prefix):] if version.startswith(prefix) else version

    return PrefixHandler(add=add, remove=remove, has=lambda v: v.startswith(prefix))


def _strip(version: str, prefix: str) -> str:
    if prefix and version.startswith(prefix):
        return version[len(prefix):]
    return version


def _strip_v(version: str) -> str:
    return version[1:] if version.startswith("v") else version


def _first_stable(candidates: Sequence[str]) -> str:
    for candidate in candidates:
        if is_stable(candidate):
            return candidate
    return candidates[0]


def resolve_version(
    requested: str, candidates: Sequence[str], prefix: str = ""
) -> Tuple[str, bool]:
    """
    Pick the best catalog entry for a version request.

    Rules are tried in order and the first hit wins:
      1. exact match once `prefix` is stripped from both sides
      2. for requests of at most two characters, the first candidate
         starting with "<request>."
      3. exact match with a leading 'v' also stripped
      4. unparsable request: first stable candidate, else the first one
      5. greatest parsable candidate that is <= the request
      6. nothing <= the request: first stable candidate, else the first one

    Args:
        requested: Version as typed by the user
        candidates: Catalog entries, newest first
        prefix: Literal prefix carried by catalog entries (e.g. 'v')

    Returns:
        (chosen candidate, found). found is False only for an empty list.

    Example:
        >>> resolve_version("17", ["17.0.2", "16.0.1"])
        ('17.0.2', True)
    """
    if not candidates:
        return "", False

    normalized = _strip(requested, prefix)
    stripped = [_strip(c, prefix) for c in candidates]

    for candidate, bare in zip(candidates, stripped):
        if bare == normalized:
            return candidate, True

    if len(normalized) <= 2:
        for candidate, bare in zip(candidates, stripped):
            if bare.startswith(normalized + ".") or bare == normalized:
                return candidate, True

    if normalized.startswith("v"):
        no_v = normalized[1:]
        for candidate, bare in zip(candidates, stripped):
            if _strip_v(bare) == no_v:
                return candidate, True

    target = try_parse_version(_strip_v(normalized))
    if target is None:
        logger.debug(f"Treating unparsable request '{requested}' as a wildcard")
        return _first_stable(candidates), True

    best = ""
    best_parts = None
    for candidate, bare in zip(candidates, stripped):
        parts = try_parse_version(_strip_v(bare))
        if parts is None:
            continue
        if compare_parsed(parts, target) > 0:
            continue
        if best_parts is None or compare_parsed(parts, best_parts) > 0:
            best, best_parts = candidate, parts

    if best:
        return best, True

    logger.debug(f"No candidate at or below '{requested}', using first stable entry")
    return _first_stable(candidates), True


def next_older_version(current: str, candidates: Sequence[str]) -> Tuple[str, bool]:
    """
    Get the entry that follows `current` in a newest-first list.

    Returns:
        (older version, True), or ('', False) if current is last or absent
    """
    for index, candidate in enumerate(candidates):
        if candidate == current and index + 1 < len(candidates):
            return candidates[index + 1], True
    return "", False


def filter_newest_per_line(versions: List[str], depth: int) -> List[str]:
    """
    Keep the newest version of each release line.

    A release line is the first `depth` numeric components (1 for
    "newest per major", 2 for "newest per minor"). Input must be newest
    first; unparsable entries are dropped.

    Example:
        >>> filter_newest_per_line(["1.22.1", "1.22.0", "1.21.6"], 2)
        ['1.22.1', '1.21.6']
    """
    seen = set()
    result = []
    for version in versions:
        parts = try_parse_version(version)
        if parts is None:
            continue
        line = parts[:depth]
        if line in seen:
            continue
        seen.add(line)
        result.append(version)
    return result


__all__ = [
    "PrefixHandler",
    "IDENTITY_PREFIX",
    "letter_prefix",
    "resolve_version",
    "next_older_version",
    "filter_newest_per_line",
]
