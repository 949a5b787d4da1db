"""
Tests for the CLI interface.
"""

import tomllib
from pathlib import Path
from typing import List
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from globfeed import __version__
from globfeed.cli import main

PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


class TestCliVersion:
    """Test CLI version handling."""

    def test_version_matches_pyproject(self):
        with open(PYPROJECT, "rb") as f:
            pyproject = tomllib.load(f)

        assert __version__ == pyproject["project"]["version"]

    def test_version_option(self):
        result = CliRunner().invoke(main, ["--version"])

        assert result.exit_code == 0
        assert result.output.strip() == f"globfeed version {__version__}"

    def test_version_bypasses_required_options(self):
        result = CliRunner().invoke(main, ["--verbose", "--version"])

        assert result.exit_code == 0
        assert "You must provide" not in result.output


class TestCliRequiredOptions:
    """Missing settings exit with status 1 and a usage message."""

    def test_missing_name(self):
        result = CliRunner().invoke(main, ["--pattern", "*.txt"])

        assert result.exit_code == 1
        assert "You must provide a name" in result.output
        assert "Usage:" in result.output

    def test_missing_pattern(self):
        result = CliRunner().invoke(main, ["--name", "/tmp/feed.sock"])

        assert result.exit_code == 1
        assert "You must provide a pattern" in result.output

    def test_missing_both_reports_name_first(self):
        result = CliRunner().invoke(main, [])

        assert result.exit_code == 1
        assert "You must provide a name" in result.output
        assert "You must provide a pattern" not in result.output


class TestCliServe:
    """The CLI hands its options to GlobFeedServer."""

    @patch("globfeed.cli.GlobFeedServer")
    def test_options_reach_server(self, mock_server):
        mock_server.return_value.run.return_value = 1

        result = CliRunner().invoke(
            main,
            [
                "-n",
                "/tmp/feed.sock",
                "-p",
                "/data/*.log",
                "--recursive",
                "--mask-copy-errors",
                "--chunk-size",
                "4096",
            ],
        )

        assert result.exit_code == 1
        mock_server.assert_called_once_with(
            "/tmp/feed.sock",
            "/data/*.log",
            recursive=True,
            propagate_copy_errors=False,
            chunk_size=4096,
        )
        mock_server.return_value.run.assert_called_once_with()

    @patch("globfeed.cli.GlobFeedServer")
    def test_environment_fallbacks(self, mock_server):
        mock_server.return_value.run.return_value = 1

        result = CliRunner().invoke(
            main, [], env={"GLOBFEED_NAME": "/tmp/env.sock", "GLOBFEED_PATTERN": "*.md"}
        )

        assert result.exit_code == 1
        args, _ = mock_server.call_args
        assert args == ("/tmp/env.sock", "*.md")

    def test_chunk_size_must_be_positive(self):
        result = CliRunner().invoke(main, ["-n", "x", "-p", "y", "--chunk-size", "0"])

        assert result.exit_code == 2


class TestCliList:
    """The --list option prints current matches."""

    def test_list_prints_matches(self, txt_pattern: str, sample_files: List[Path]):
        result = CliRunner().invoke(main, ["--pattern", txt_pattern, "--list"])

        assert result.exit_code == 0
        assert result.output.splitlines() == [str(p) for p in sample_files]

    def test_list_rejects_malformed_pattern(self, temp_dir: Path):
        result = CliRunner().invoke(main, ["--pattern", str(temp_dir / "[x"), "--list"])

        assert result.exit_code == 1
        assert "Bad file globbing pattern" in result.output

    def test_list_requires_pattern(self):
        result = CliRunner().invoke(main, ["--list"])

        assert result.exit_code == 1
        assert "You must provide a pattern" in result.output
