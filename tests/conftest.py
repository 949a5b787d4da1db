"""
Shared test fixtures and configuration for globfeed tests.
"""

import logging
import os
import shutil
import socket
import tempfile
import threading
import time
from pathlib import Path
from typing import Callable, Generator, List

import pytest

from globfeed.app_logger import NullAppLogger, set_default_logger
from globfeed.connection_acceptor import ConnectionAcceptor
from globfeed.content_source import ContentSource
from globfeed.errors import AcceptError
from globfeed.file_finder import GlobFileFinder
from globfeed.socket_resource import SocketResource


def pytest_addoption(parser):
    """Add command line options to enable specific test categories."""
    parser.addoption(
        "--enable-slow",
        action="store_true",
        default=False,
        help="Enable tests marked with @pytest.mark.slow (skipped by default)",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (>5 seconds) - skipped by default, use --enable-slow",
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless enabled by flag or environment."""
    enable_slow = config.getoption("--enable-slow") or os.getenv(
        "ENABLE_SLOW_TESTS", ""
    ).lower() in ("true", "1", "yes")

    if not enable_slow:
        skip_slow = pytest.mark.skip(
            reason="Use --enable-slow or set ENABLE_SLOW_TESTS=true to run slow tests"
        )
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def quiet_default_logger() -> Generator[None, None, None]:
    """Keep components from configuring console logging during tests."""
    set_default_logger(NullAppLogger())
    yield
    set_default_logger(None)
    logger = logging.getLogger("globfeed")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def null_logger() -> NullAppLogger:
    return NullAppLogger()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for testing.

    Yields:
        Path to the temporary directory
    """
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_files(temp_dir: Path) -> List[Path]:
    """
    Create ``a.txt`` ("AB"), ``b.txt`` ("CD") and ``c.txt`` ("EF") plus a
    non-matching ``notes.log`` and a ``sub.txt`` directory.

    Returns:
        The matching files in sorted order
    """
    files = []
    for name, content in (("a.txt", b"AB"), ("b.txt", b"CD"), ("c.txt", b"EF")):
        path = temp_dir / name
        path.write_bytes(content)
        files.append(path)

    (temp_dir / "notes.log").write_bytes(b"not served")
    (temp_dir / "sub.txt").mkdir()
    return files


@pytest.fixture
def txt_pattern(temp_dir: Path) -> str:
    return str(temp_dir / "*.txt")


@pytest.fixture
def socket_path() -> Generator[str, None, None]:
    """A short unix socket path (sun_path is limited to ~104 bytes)."""
    directory = tempfile.mkdtemp(prefix="gf-")
    try:
        yield os.path.join(directory, "feed.sock")
    finally:
        shutil.rmtree(directory, ignore_errors=True)


def wait_for(condition: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll ``condition`` until true or ``timeout`` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


def read_all(path: str, timeout: float = 5.0) -> bytes:
    """Connect to a unix socket and read until the server closes it."""
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as client:
        client.settimeout(timeout)
        client.connect(path)
        chunks = []
        while True:
            chunk = client.recv(65536)
            if not chunk:
                return b"".join(chunks)
            chunks.append(chunk)


class AcceptorHarness:
    """Runs a ConnectionAcceptor's serve loop on a background thread."""

    def __init__(self, pattern: str, socket_path: str, logger):
        self.socket_path = socket_path
        self.fatal_errors: List[BaseException] = []
        self.serve_error: List[BaseException] = []
        self.socket_resource = SocketResource(logger=logger)
        self.acceptor = ConnectionAcceptor(
            pattern,
            self.socket_resource,
            GlobFileFinder(logger=logger),
            ContentSource(logger=logger),
            fatal_handler=self.fatal_errors.append,
            logger=logger,
        )
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self) -> None:
        try:
            self.acceptor.serve(self.socket_path)
        except AcceptError as e:
            self.serve_error.append(e)

    def start(self) -> "AcceptorHarness":
        self._thread.start()
        assert wait_for(self.socket_resource.is_listening), "listener never came up"
        return self

    def stop(self) -> None:
        self.socket_resource.terminate()
        self._thread.join(timeout=5.0)

    def is_alive(self) -> bool:
        return self._thread.is_alive()


@pytest.fixture
def serve_pattern(socket_path: str, null_logger):
    """Factory starting an acceptor for a pattern; stopped on teardown."""
    harnesses: List[AcceptorHarness] = []

    def start(pattern: str) -> AcceptorHarness:
        harness = AcceptorHarness(pattern, socket_path, null_logger).start()
        harnesses.append(harness)
        return harness

    yield start
    for harness in harnesses:
        harness.stop()
