# SPDX-License-Identifier: MIT
"""Bootstrap and configure the interpreter source tree.

The pipeline runs, in order and stopping at the first failure:

1. patch point before-buildconf
2. ./buildconf --force
3. patch point before-configure
4. version probe
5. ./configure with the composed arguments
6. patch point before-make
7. make clean

Argument composition is kept in plain functions so it can be tested
without running anything.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from spbuild.builders.patches import PatchPoint
from spbuild.core.errors import UnsupportedVersionError
from spbuild.core.flags import join_flags
from spbuild.core.targets import BuildTarget
from spbuild.core.versions import MICRO_MIN_VERSION_ID, gated_flags

if TYPE_CHECKING:
    from spbuild.builders.linux import LinuxBuilder
    from spbuild.core.environment import EnvVarSet

logger = logging.getLogger(__name__)

# Start from nothing; SAPIs and extensions are switched on explicitly.
BASELINE_ARGS: tuple[str, ...] = (
    "--prefix=",
    "--with-valgrind=no",
    "--enable-shared=no",
    "--enable-static=yes",
    "--disable-all",
    "--disable-cgi",
    "--disable-phpdbg",
)

# (target, argument when selected, argument when not selected)
SAPI_ARGS: tuple[tuple[BuildTarget, str, str], ...] = (
    (BuildTarget.CLI, "--enable-cli", "--disable-cli"),
    (BuildTarget.FPM, "--enable-fpm", "--disable-fpm"),
    (BuildTarget.EMBED, "--enable-embed=static", "--disable-embed"),
    (BuildTarget.MICRO, "--enable-micro=all-static", "--disable-micro"),
)


def sapi_args(mask: BuildTarget) -> list[str]:
    """Enable exactly the SAPIs in mask, disable the rest."""
    return [
        enable if (mask & target) == target else disable
        for target, enable, disable in SAPI_ARGS
    ]


def check_micro_version(mask: BuildTarget, version_id: int) -> None:
    """Fail if micro is requested on a version that cannot build it.

    Raises:
        UnsupportedVersionError: If MICRO is in mask and the version is
            below 8.0.0.
    """
    if mask & BuildTarget.MICRO and version_id < MICRO_MIN_VERSION_ID:
        raise UnsupportedVersionError("micro SAPI", MICRO_MIN_VERSION_ID, version_id)


def compose_configure_args(
    mask: BuildTarget,
    version_id: int,
    options: Mapping[str, Any],
    extension_args: Sequence[str],
    env: EnvVarSet,
) -> list[str]:
    """Return the ./configure arguments as an ordered token list.

    Args:
        mask: Selected SAPIs.
        version_id: Interpreter version id of the source tree.
        options: Build options (feature toggles are read from here).
        extension_args: Per-extension configure arguments.
        env: Variables appended as trailing NAME=value arguments.
    """
    args = [*BASELINE_ARGS, *sapi_args(mask)]
    args.extend(gated_flags(version_id, options))
    args.extend(arg for arg in extension_args if arg)
    if len(env):
        args.append(env.to_shell())
    return args


class ConfigurePipeline:
    """Runs bootstrap, patch hooks and configure for a builder."""

    def __init__(self, builder: LinuxBuilder) -> None:
        self.builder = builder

    def run(self, mask: BuildTarget, env: EnvVarSet) -> int:
        """Run every configure stage.

        Args:
            mask: Selected SAPIs.
            env: Environment passed to ./configure.

        Returns:
            The interpreter version id that was configured.

        Raises:
            UnsupportedVersionError: If MICRO is selected below 8.0.0.
            BuildCommandError: If any external step fails.
        """
        builder = self.builder
        shell = builder.shell.cd(builder.paths.php_source)

        builder.patcher.dispatch(PatchPoint.BEFORE_BUILDCONF, builder)
        shell.exec("./buildconf --force")
        builder.patcher.dispatch(PatchPoint.BEFORE_CONFIGURE, builder)

        version_id = builder.php_version_id
        check_micro_version(mask, version_id)

        args = compose_configure_args(
            mask,
            version_id,
            builder.options,
            builder.make_extension_args(),
            env,
        )
        shell.exec(
            join_flags([builder.toolchain.ld_library_path_prefix, "./configure", *args])
        )

        builder.patcher.dispatch(PatchPoint.BEFORE_MAKE, builder)
        shell.exec("make clean")
        return version_id
