"""Tests for ProcessRunner, using the current interpreter as the child process."""

from __future__ import annotations

import subprocess
import sys
from unittest.mock import patch

import pytest

from cargo_bounds.exceptions import OracleSpawnError
from cargo_bounds.runner import ProcessRunner


class TestProcessRunner:
    def test_success(self, tmp_path):
        code, output = ProcessRunner(cwd=tmp_path).run([sys.executable, "-c", "print('ok')"])
        assert code == 0
        assert output == "ok"

    def test_exit_code_and_merged_stderr(self, tmp_path):
        script = "import sys; print('out'); sys.stderr.write('err\\n'); sys.stderr.flush(); sys.exit(3)"
        code, output = ProcessRunner(cwd=tmp_path).run([sys.executable, "-c", script])
        assert code == 3
        assert "out" in output
        assert "err" in output

    def test_streams_lines(self, tmp_path):
        lines = []
        ProcessRunner(cwd=tmp_path).run(
            [sys.executable, "-c", "print('a'); print('b')"], on_line=lines.append
        )
        assert lines == ["a", "b"]

    def test_runs_in_cwd(self, tmp_path):
        _, output = ProcessRunner(cwd=tmp_path).run(
            [sys.executable, "-c", "import os; print(os.getcwd())"]
        )
        assert output == str(tmp_path.resolve())

    def test_env_overlay(self, tmp_path):
        _, output = ProcessRunner(cwd=tmp_path).run(
            [sys.executable, "-c", "import os; print(os.environ['CARGO_TARGET_DIR'])"],
            env={"CARGO_TARGET_DIR": "/tmp/bounds-target"},
        )
        assert output == "/tmp/bounds-target"

    def test_missing_executable(self, tmp_path):
        with pytest.raises(OracleSpawnError) as exc_info:
            ProcessRunner(cwd=tmp_path).run(["definitely-not-a-real-binary-xyz"])
        assert exc_info.value.argv == ["definitely-not-a-real-binary-xyz"]

    @pytest.mark.parametrize("interruption", [KeyboardInterrupt(), SystemExit(143)])
    def test_child_killed_when_interrupted(self, tmp_path, interruption):
        """An exception while streaming output leaves no child running."""
        started = []
        real_popen = subprocess.Popen

        def spawn(*args, **kwargs):
            started.append(real_popen(*args, **kwargs))
            return started[-1]

        def on_line(line):
            raise interruption

        script = "import time; print('Compiling serde', flush=True); time.sleep(60)"
        with patch("cargo_bounds.runner.subprocess.Popen", side_effect=spawn):
            with pytest.raises(type(interruption)):
                ProcessRunner(cwd=tmp_path).run([sys.executable, "-c", script], on_line=on_line)

        assert started[0].poll() is not None
