# SPDX-License-Identifier: MIT
"""Run freshly built binaries to catch silent miscompilation.

Only possible when the build host can execute the target architecture,
i.e. when host and target arch are the same string. Any failure is
fatal.
"""

from __future__ import annotations

import logging
import shlex
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from spbuild.core.errors import SanityCheckError
from spbuild.core.targets import BuildTarget, selected_targets
from spbuild.util.commands import concat

if TYPE_CHECKING:
    from spbuild.builders.linux import LinuxBuilder

logger = logging.getLogger(__name__)

HELLO_CODE = "echo 'hello';"


class SanityChecker:
    """Executes each built SAPI with a minimal self check."""

    def __init__(self, builder: LinuxBuilder) -> None:
        self.builder = builder

    def should_run(self) -> bool:
        """True if the host can run what was built."""
        return self.builder.platform.arch == self.builder.toolchain.arch

    def run(self, mask: BuildTarget) -> bool:
        """Check every SAPI in mask.

        Returns:
            False if the checks were skipped, True if they ran.

        Raises:
            SanityCheckError: If a binary fails.
        """
        if not self.should_run():
            logger.info(
                "Skipping sanity check: host arch %s cannot run %s binaries",
                self.builder.platform.arch,
                self.builder.toolchain.arch,
            )
            return False

        checks = {
            BuildTarget.CLI: self.check_cli,
            BuildTarget.FPM: self.check_fpm,
            BuildTarget.MICRO: self.check_micro,
            BuildTarget.EMBED: self.check_embed,
        }
        for target in selected_targets(mask):
            checks[target]()
        return True

    def _expect(self, target: str, command: str, expected: str | None) -> None:
        returncode, output = self.builder.shell.exec_with_result(command)
        if returncode != 0:
            raise SanityCheckError(target, f"exit code {returncode}: {output.strip()}")
        if expected is not None and output.strip() != expected:
            raise SanityCheckError(target, output.strip())
        logger.info("Sanity check passed: %s", target)

    def check_cli(self) -> None:
        php = self.builder.paths.build_bin / "php"
        command = f"{shlex.quote(str(php))} -n -r {shlex.quote(HELLO_CODE)}"
        self._expect("cli", command, "hello")

    def check_fpm(self) -> None:
        fpm = self.builder.paths.build_bin / "php-fpm"
        self._expect("fpm", f"{shlex.quote(str(fpm))} -n -v", None)

    def check_micro(self) -> None:
        sfx = self.builder.paths.build_bin / "micro.sfx"
        with tempfile.TemporaryDirectory(prefix="spbuild-micro-") as tmp:
            script = Path(tmp) / "hello.php"
            script.write_text(f"<?php {HELLO_CODE}")
            exe = concat([sfx, script], Path(tmp) / "hello")
            exe.chmod(0o755)
            self._expect("micro", shlex.quote(str(exe)), "hello")

    def check_embed(self) -> None:
        logger.info("Sanity check skipped: embed has no executable")
