"""
Unit tests for the command-line interface.
"""

import pytest

from sockhttp.__main__ import build_parser, main


class TestArgumentParser:

    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.host == "localhost"
        assert args.port == 4221
        assert args.directory is None
        assert args.dir is None
        assert args.log_level == "INFO"
        assert args.log_format == "text"

    def test_directory_flag(self):
        args = build_parser().parse_args(["--directory", "/tmp/data"])
        assert args.directory == "/tmp/data"

    def test_directory_positional(self):
        args = build_parser().parse_args(["/tmp/data"])
        assert args.dir == "/tmp/data"

    def test_log_level_upper_cased(self):
        args = build_parser().parse_args(["-l", "debug"])
        assert args.log_level == "DEBUG"

    def test_invalid_log_format(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-format", "xml"])


def test_main_invalid_port(capsys):
    assert main(["--port", "70000"]) == 1
    assert "Invalid port" in capsys.readouterr().err
