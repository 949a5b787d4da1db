"""
File finder module: expands the configured glob pattern into paths.

The pattern is re-evaluated on every call so each connection sees the
filesystem as it is at the moment it is served.

Matching follows the classic shell dialect one path element at a time:
``*`` and ``?`` match any character except the separator (leading dots
included), ``[...]`` is a character class negated by ``^`` or ``!``, and
``\\`` escapes the next character. Matches are ordered element by element,
so every entry of a directory sorts before the entries of a sibling whose
name merely extends it.
"""

import os
import re
from typing import Iterator, List, Optional, Pattern, Tuple

from globfeed.app_logger import AppLogger, LogContext, resolve_logger
from globfeed.errors import PatternError

MAGIC_CHARS = "*?[\\"


def validate_pattern(pattern: str) -> None:
    """
    Check the syntax of a shell-style glob pattern.

    Args:
        pattern: The glob pattern to check

    Raises:
        PatternError: On an unterminated or empty character class, a range
            without an upper bound, an unescaped '-' starting a class
            item, or a trailing escape character
    """
    _translate(pattern, pattern)


def has_magic(text: str) -> bool:
    return any(c in text for c in MAGIC_CHARS)


def compile_element(pattern: str, element: str) -> Pattern[str]:
    """Compile one path element of ``pattern`` into a regular expression."""
    return re.compile(_translate(pattern, element), re.DOTALL)


def _translate(pattern: str, text: str) -> str:
    parts = []
    i, n = 0, len(text)
    while i < n:
        c = text[i]
        if c == "*":
            parts.append(".*")
        elif c == "?":
            parts.append(".")
        elif c == "\\":
            if i + 1 >= n:
                raise PatternError(pattern, "trailing escape character")
            parts.append(re.escape(text[i + 1]))
            i += 1
        elif c == "[":
            cls, i = _translate_class(pattern, text, i)
            parts.append(cls)
            continue
        else:
            parts.append(re.escape(c))
        i += 1
    return "".join(parts)


def _translate_class(pattern: str, text: str, start: int) -> Tuple[str, int]:
    n = len(text)
    j = start + 1
    negate = j < n and text[j] in "^!"
    if negate:
        j += 1
    if j < n and text[j] == "]":
        raise PatternError(pattern, "empty character class")

    items = []
    while True:
        if j >= n:
            raise PatternError(pattern, "unterminated character class")
        if text[j] == "]":
            break
        lo, j = _class_char(pattern, text, j)
        hi = lo
        if j < n and text[j] == "-":
            j += 1
            if j >= n:
                raise PatternError(pattern, "unterminated character class")
            if text[j] == "]":
                raise PatternError(pattern, "character range missing upper bound")
            hi, j = _class_char(pattern, text, j)
        if lo == hi:
            items.append(re.escape(lo))
        elif lo < hi:
            items.append(f"{re.escape(lo)}-{re.escape(hi)}")
        # a reversed range matches nothing

    if not items:
        return ("." if negate else "(?!)"), j + 1
    return f"[{'^' if negate else ''}{''.join(items)}]", j + 1


def _class_char(pattern: str, text: str, j: int) -> Tuple[str, int]:
    c = text[j]
    if c == "\\":
        if j + 1 >= len(text):
            raise PatternError(pattern, "trailing escape character")
        return text[j + 1], j + 2
    if c == "-":
        raise PatternError(pattern, "unescaped '-' in character class")
    return c, j + 1


def _sort_key(path: str) -> List[str]:
    return path.split(os.sep)


class GlobFileFinder:
    """
    Responsible for turning the glob pattern into an ordered list of files.

    With ``recursive`` set, a ``**`` path element matches any number of
    directory levels, including none.
    """

    def __init__(self, recursive: bool = False, logger: Optional[AppLogger] = None):
        """
        Initialise the file finder.

        Args:
            recursive: Let ``**`` match any number of directories
            logger: Optional AppLogger, defaults to the process logger
        """
        self.recursive = recursive
        self._logger = resolve_logger(logger)
        self._context = LogContext(component="GlobFileFinder")

    def validate_pattern(self, pattern: str) -> None:
        """Raise PatternError if ``pattern`` is malformed."""
        validate_pattern(pattern)

    def enumerate(self, pattern: str) -> List[str]:
        """
        Expand the pattern into matching paths.

        Args:
            pattern: Shell-style glob pattern

        Returns:
            Matching paths ordered directory level by directory level, empty
            if nothing matches. Directories are never returned since they
            carry no content.

        Raises:
            PatternError: If the pattern is malformed
        """
        validate_pattern(pattern)
        matches = dict.fromkeys(self._glob(os.path.expanduser(pattern)))
        files = sorted((p for p in matches if not os.path.isdir(p)), key=_sort_key)
        self._logger.debug(
            "Pattern expanded",
            context=self._context.for_operation("enumerate"),
            pattern=pattern,
            file_count=len(files),
        )
        return files

    def _glob(self, pattern: str) -> List[str]:
        if not has_magic(pattern):
            return [pattern] if os.path.lexists(pattern) else []

        dirname, basename = os.path.split(pattern)
        if not dirname:
            dirs = [""]
        elif has_magic(dirname):
            dirs = [d for d in self._glob(dirname) if os.path.isdir(d)]
        else:
            dirs = [dirname]

        if self.recursive and basename == "**":
            return [path for d in dirs for path in self._walk(d) if path]

        regex = compile_element(pattern, basename)
        return [
            os.path.join(d, name)
            for d in dirs
            for name in self._list_dir(d)
            if regex.fullmatch(name)
        ]

    def _walk(self, directory: str) -> Iterator[str]:
        yield directory
        for name in self._list_dir(directory):
            path = os.path.join(directory, name)
            if os.path.isdir(path) and not os.path.islink(path):
                yield from self._walk(path)
            else:
                yield path

    def _list_dir(self, directory: str) -> List[str]:
        # Unreadable directories contribute no matches
        try:
            with os.scandir(directory or os.curdir) as entries:
                return sorted(entry.name for entry in entries)
        except OSError:
            return []
