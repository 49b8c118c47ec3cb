"""
Mapper file discovery.

Ant-style include/exclude patterns relative to a base directory:
``**`` matches any number of directories, ``*`` any run of characters
within one path segment and ``?`` a single character. Version-control and
editor scratch files are always excluded.
"""

from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Pattern
import logging
import re


logger = logging.getLogger(__name__)

DEFAULT_INCLUDE = "**/*.xml"

DEFAULT_EXCLUDES = (
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    "**/CVS/**",
    "**/.svn/**",
    "**/.git/**",
    "**/.hg/**",
    "**/.bzr/**",
    "**/.DS_Store",
)


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Pattern:
    """Translate an Ant-style pattern into a regular expression."""
    pattern = pattern.replace("\\", "/").strip()
    if pattern.endswith("/"):
        pattern += "**"

    regex = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            regex.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            regex.append(".*")
            i += 2
        elif pattern[i] == "*":
            regex.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            regex.append("[^/]")
            i += 1
        else:
            regex.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(regex) + r"\Z")


def matches(pattern: str, relative_path: str) -> bool:
    """True if ``relative_path`` (posix separators) matches ``pattern``."""
    return compile_pattern(pattern).match(relative_path) is not None


def _matches_any(patterns: Iterable[str], relative_path: str) -> bool:
    return any(matches(pattern, relative_path) for pattern in patterns)


def find_files(base: Path, includes: Iterable[str], excludes: Iterable[str] = ()) -> List[str]:
    """
    List files under ``base`` matching ``includes`` and no exclude.

    Args:
        base: Directory to search
        includes: Include patterns; empty means ``**/*.xml``
        excludes: Exclude patterns, applied together with DEFAULT_EXCLUDES

    Returns:
        Relative posix paths, sorted so scans are reproducible
    """
    includes = list(includes) or [DEFAULT_INCLUDE]
    excludes = list(excludes) + list(DEFAULT_EXCLUDES)

    found = []
    for path in base.rglob("*"):
        if not path.is_file():
            continue
        relative = path.relative_to(base).as_posix()
        if _matches_any(includes, relative) and not _matches_any(excludes, relative):
            found.append(relative)
    return sorted(found)
