"""
Exception hierarchy for globfeed.

Errors fall into two groups. Per-file errors (OpenError, CopyError) are
recovered where they happen: logged, and only the affected file is lost.
Process-level errors (ConfigError, ListenerError, PatternError, AcceptError)
propagate to the server boundary, which logs them and exits.
"""

from typing import Optional


class GlobFeedError(Exception):
    """Base class for all globfeed errors."""


class ConfigError(GlobFeedError):
    """A required setting is missing or invalid."""


class PatternError(GlobFeedError, ValueError):
    """The glob pattern is syntactically malformed."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Bad file globbing pattern {pattern!r}: {reason}")


class ListenerError(GlobFeedError, OSError):
    """The unix socket listener could not be created."""


class AcceptError(GlobFeedError, OSError):
    """Accepting a connection failed, including after the listener was closed."""


class OpenError(GlobFeedError, OSError):
    """A matched file could not be opened."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        super().__init__(f"Error opening {path!r}: {cause}")


class CopyError(GlobFeedError, OSError):
    """Copying a file's bytes failed part way through."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        super().__init__(f"Error copying from {path!r}: {cause}")
