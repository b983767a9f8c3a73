# SPDX-License-Identifier: MIT
"""Blocking external command runner.

Every build stage is an external process that must finish before the
next one starts. Commands are shell strings because configure and make
take their variables as NAME='value' words:

    shell = Shell().cd(source_dir)
    shell.exec("./buildconf --force")
    shell.exec("make -j8 EXTRA_CFLAGS='-g -Os' cli")

A non-zero exit status raises BuildCommandError; there is no retry and
no timeout.
"""

from __future__ import annotations

import copy
import logging
import subprocess
from collections.abc import Mapping
from pathlib import Path

from spbuild.core.environment import EnvVarSet
from spbuild.core.errors import BuildCommandError, FileSystemError

logger = logging.getLogger(__name__)


class Shell:
    """Runs shell commands in a working directory, failing fast.

    Attributes:
        cwd: Directory commands run in (None means the current one).
    """

    def __init__(self, cwd: Path | str | None = None) -> None:
        self.cwd: Path | None = Path(cwd) if cwd is not None else None

    def cd(self, path: Path | str) -> Shell:
        """Return a shell bound to path; self is left unchanged."""
        bound = copy.copy(self)
        bound.cwd = Path(path)
        return bound

    def exec(self, command: str, env: Mapping[str, str] | None = None) -> Shell:
        """Run command and raise if it exits non-zero.

        Args:
            command: Shell command line.
            env: Extra variables layered over the inherited environment.

        Returns:
            self, so calls can be chained.

        Raises:
            BuildCommandError: If the command exits non-zero.
            FileSystemError: If the working directory does not exist.
        """
        logger.info("Running: %s", command)
        logger.debug("  cwd=%s", self.cwd or Path.cwd())
        returncode, _ = self._run(command, env=env, capture=False)
        if returncode != 0:
            raise BuildCommandError(command, returncode, cwd=self._cwd_str())
        return self

    def exec_with_result(
        self, command: str, env: Mapping[str, str] | None = None
    ) -> tuple[int, str]:
        """Run command and return (exit status, stdout) without raising."""
        logger.debug("Probing: %s", command)
        return self._run(command, env=env, capture=True)

    def _cwd_str(self) -> str | None:
        return str(self.cwd) if self.cwd is not None else None

    def _run(
        self,
        command: str,
        *,
        env: Mapping[str, str] | None,
        capture: bool,
    ) -> tuple[int, str]:
        environ = EnvVarSet(env).as_environ() if env is not None else None
        if self.cwd is not None and not self.cwd.is_dir():
            raise FileSystemError("working directory does not exist", str(self.cwd))
        try:
            result = subprocess.run(
                command,
                shell=True,
                cwd=self.cwd,
                env=environ,
                capture_output=capture,
                text=True,
            )
        except OSError as e:
            raise BuildCommandError(command, 127, cwd=self._cwd_str()) from e
        return result.returncode, (result.stdout or "") if capture else ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(cwd={self.cwd})"
