"""
Globfeed - serves the files matching a glob pattern over a unix socket.

Every client connecting to the socket receives the raw concatenation of all
files currently matching the configured pattern, in sorted order, after which
the server closes the connection.
"""

__version__ = "1.0.0"

from .content_source import ContentSource, ContentStream
from .errors import (
    AcceptError,
    ConfigError,
    CopyError,
    GlobFeedError,
    ListenerError,
    OpenError,
    PatternError,
)
from .file_finder import GlobFileFinder
from .server import GlobFeedServer

__all__ = [
    "__version__",
    "AcceptError",
    "ConfigError",
    "ContentSource",
    "ContentStream",
    "CopyError",
    "GlobFeedError",
    "GlobFeedServer",
    "GlobFileFinder",
    "ListenerError",
    "OpenError",
    "PatternError",
]
