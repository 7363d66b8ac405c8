"""Process runner for oracle commands."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Mapping
from pathlib import Path

import structlog

from cargo_bounds.exceptions import OracleSpawnError

log = structlog.get_logger("cargo_bounds.runner")

LineCallback = Callable[[str], None]


class ProcessRunner:
    """Run a command to completion and return ``(exit_code, combined_output)``.

    stdout and stderr are merged; each line is handed to *on_line* as it
    arrives.  There is no timeout: a wedged command wedges the caller.  If
    reading is interrupted, by Ctrl-C for instance, the child is killed and
    reaped before the exception propagates.
    """

    def __init__(self, cwd: Path | str | None = None) -> None:
        self.cwd = Path(cwd) if cwd is not None else None

    def run(
        self,
        argv: list[str],
        env: Mapping[str, str] | None = None,
        on_line: LineCallback | None = None,
    ) -> tuple[int, str]:
        merged_env = {**os.environ, **env} if env else None
        try:
            proc = subprocess.Popen(
                argv,
                cwd=str(self.cwd) if self.cwd else None,
                env=merged_env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise OracleSpawnError(argv, exc.strerror or str(exc)) from exc

        lines: list[str] = []
        with proc:
            try:
                for line in proc.stdout:
                    line = line.rstrip("\n")
                    lines.append(line)
                    if on_line is not None:
                        on_line(line)
            except BaseException:
                # the child must be gone before the caller restores Cargo.lock
                proc.kill()
                proc.wait()
                raise
            exit_code = proc.wait()
        log.debug("runner.exited", argv=argv, exit_code=exit_code)
        return exit_code, "\n".join(lines)
