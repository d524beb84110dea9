"""Command line entry point tests."""

from __future__ import annotations

import logging
import sys

import pytest

from procwire.app import LAUNCH_FAILURE_EXIT_CODE, build_parser, main

IS_WINDOWS = sys.platform == "win32"


class TestParser:
    """Test argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args(["--", "echo", "hi"])
        assert args.redirect_stderr is False
        assert args.forward_stdin is False
        assert args.cwd is None
        assert args.env == []
        assert args.clean_env is False

    def test_repeatable_env(self):
        args = build_parser().parse_args(["-e", "A=1", "--env", "B=2", "--", "echo"])
        assert args.env == ["A=1", "B=2"]


class TestMain:
    """Test running commands through main()."""

    @pytest.mark.timeout(10)
    def test_mirrors_output_and_exit_code(self, child_script, capsys):
        code = main(["--", *child_script, "--stdout", "out", "--stderr", "err", "--exit-code", "4"])
        captured = capsys.readouterr()

        assert code == 4
        assert captured.out == "out"
        assert captured.err.endswith("err")

    @pytest.mark.timeout(10)
    def test_redirect_stderr(self, child_script, capsys):
        code = main(["--redirect-stderr", "--", *child_script, "--stderr", "err"])
        captured = capsys.readouterr()

        assert code == 0
        assert captured.out == "err"

    @pytest.mark.timeout(10)
    def test_env_assignment(self, child_script, capsys):
        main(["-e", "PROCWIRE_TEST_VAR=set", "--", *child_script, "--print-env", "PROCWIRE_TEST_VAR"])
        assert capsys.readouterr().out == "PROCWIRE_TEST_VAR=set\n"

    @pytest.mark.timeout(10)
    def test_clean_env(self, child_script, capsys, monkeypatch):
        monkeypatch.setenv("PROCWIRE_TEST_VAR", "inherited")
        main(["--clean-env", "--", *child_script, "--print-env", "PROCWIRE_TEST_VAR"])
        assert capsys.readouterr().out == "PROCWIRE_TEST_VAR unset\n"

    @pytest.mark.timeout(10)
    def test_cwd(self, child_script, capsys, temp_workspace):
        main(["--cwd", str(temp_workspace), "--", *child_script, "--print-cwd"])
        assert capsys.readouterr().out.strip().endswith(temp_workspace.name)

    def test_launch_failure(self, temp_workspace, caplog):
        missing = str(temp_workspace / "no-such-program")
        with caplog.at_level(logging.ERROR, logger="procwire"):
            code = main(["--", missing])

        assert code == LAUNCH_FAILURE_EXIT_CODE
        assert "Failed to launch" in caplog.text

    def test_no_command(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_only_separator(self):
        with pytest.raises(SystemExit):
            main(["--"])

    def test_invalid_env(self, child_script):
        with pytest.raises(SystemExit) as exc_info:
            main(["-e", "NOEQUALS", "--", *child_script])
        assert exc_info.value.code == 2
