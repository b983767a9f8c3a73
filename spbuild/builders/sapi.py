# SPDX-License-Identifier: MIT
"""Per-SAPI build steps.

Every SAPI builds the same way against the configured source tree:

1. fix the shared Makefile in place (//lib -> /lib),
2. make -j<cpus> with EXTRA_CFLAGS, EXTRA_LIBS, EXTRA_LDFLAGS_PROGRAM,
3. strip the artifact unless no-strip is set,
4. copy it to buildroot/bin.

MICRO and EMBED add their own twists on top of that scaffold. The
executors share one source tree and one Makefile, so they must run one
after the other; BuildContext carries what they share.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from spbuild.builders.configure import check_micro_version
from spbuild.builders.patches import micro_patch
from spbuild.core.environment import EnvVarSet
from spbuild.core.flags import COMPILER_PASSTHROUGH, join_flags, prefix_flags
from spbuild.core.targets import BuildTarget
from spbuild.util.commands import copy, replace_in_file

if TYPE_CHECKING:
    from pathlib import Path

    from spbuild.builders.linux import LinuxBuilder

logger = logging.getLogger(__name__)

# Compiler flags every SAPI is built with.
BASE_EXTRA_CFLAGS: tuple[str, ...] = ("-g", "-Os", "-fno-ident", "-fPIE")

# Extensions whose presence requires a micro source patch.
MICRO_PATCHED_EXTENSIONS: tuple[str, ...] = ("phar",)


@dataclass(frozen=True)
class BuildContext:
    """Values computed once per build and shared by every SAPI.

    Attributes:
        mask: Selected SAPIs.
        version_id: Configured interpreter version id.
        extra_libs: Complete EXTRA_LIBS string.
        linker_flags: Linker override tokens ('-Xcompiler -fuse-ld=lld'
            or empty).
    """

    mask: BuildTarget
    version_id: int
    extra_libs: str
    linker_flags: tuple[str, ...] = ()


class SapiBuilder:
    """Shared scaffold for building one SAPI.

    Subclasses set the class attributes and override the hooks they
    need.
    """

    target: ClassVar[BuildTarget] = BuildTarget.NONE
    # make goal building the SAPI
    make_goal: ClassVar[str] = ""
    # artifact path relative to the source tree, None if nothing to deploy
    artifact: ClassVar[str | None] = None
    # file name under buildroot/bin
    deploy_name: ClassVar[str | None] = None

    def __init__(self, builder: LinuxBuilder, context: BuildContext) -> None:
        self.builder = builder
        self.context = context

    @property
    def name(self) -> str:
        return self.target.label

    def extra_cflags(self) -> list[str]:
        return [
            *BASE_EXTRA_CFLAGS,
            *prefix_flags(COMPILER_PASSTHROUGH, self.builder.flags.tune_c_flags),
        ]

    def extra_ldflags(self) -> list[str]:
        return [*self.context.linker_flags, "-all-static"]

    def make_vars(self) -> EnvVarSet:
        return EnvVarSet(
            {
                "EXTRA_CFLAGS": join_flags(self.extra_cflags()),
                "EXTRA_LIBS": self.context.extra_libs,
                "EXTRA_LDFLAGS_PROGRAM": join_flags(self.extra_ldflags()),
            }
        )

    def make_command(self) -> str:
        return join_flags(
            ["make", f"-j{self.builder.concurrency}", self.make_vars().to_shell(), self.make_goal]
        )

    def fix_makefile(self) -> None:
        replace_in_file(self.builder.paths.makefile, "//lib", "/lib")

    def compile(self) -> None:
        self.fix_makefile()
        self.builder.shell.cd(self.builder.paths.php_source).exec(self.make_command())

    @property
    def artifact_path(self) -> Path | None:
        if self.artifact is None:
            return None
        return self.builder.paths.php_source / self.artifact

    @property
    def deployed_path(self) -> Path | None:
        if self.deploy_name is None:
            return None
        return self.builder.paths.build_bin / self.deploy_name

    def strip(self) -> None:
        artifact = self.artifact_path
        if artifact is None or self.builder.options.flag("no-strip"):
            return
        self.builder.shell.cd(artifact.parent).exec(f"strip --strip-all {artifact.name}")

    def deploy(self) -> None:
        artifact = self.artifact_path
        dest = self.deployed_path
        if artifact is None or dest is None:
            return
        logger.info("Deploying %s to %s", artifact.name, dest)
        copy(artifact, dest, mode=0o755)

    def build(self) -> None:
        logger.info("building %s", self.name)
        self.compile()
        self.strip()
        self.deploy()


class CliBuilder(SapiBuilder):
    target = BuildTarget.CLI
    make_goal = "cli"
    artifact = "sapi/cli/php"
    deploy_name = "php"


class FpmBuilder(SapiBuilder):
    target = BuildTarget.FPM
    make_goal = "fpm"
    artifact = "sapi/fpm/php-fpm"
    deploy_name = "php-fpm"


class MicroBuilder(SapiBuilder):
    """phpmicro self-extracting stub (micro.sfx).

    Needs 8.0 or later. With phar compiled in, a source patch is applied
    for the duration of the build and reverted afterwards.
    """

    target = BuildTarget.MICRO
    make_goal = "micro"
    artifact = "sapi/micro/micro.sfx"
    deploy_name = "micro.sfx"

    def extra_cflags(self) -> list[str]:
        flags = super().extra_cflags()
        if self.builder.options.flag("with-micro-fake-cli"):
            flags.append("-DPHP_MICRO_FAKE_CLI")
        return flags

    def extra_ldflags(self) -> list[str]:
        return [*self.builder.flags.arch_c_flags, *super().extra_ldflags()]

    def patch_names(self) -> list[str]:
        registry = self.builder.registry
        return [ext for ext in MICRO_PATCHED_EXTENSIONS if registry.has_extension(ext)]

    def build(self) -> None:
        check_micro_version(self.context.mask | self.target, self.context.version_id)
        with micro_patch(self.builder.patcher, self.patch_names(), self.context.version_id):
            super().build()


class EmbedBuilder(SapiBuilder):
    """libphp for embedding, installed into the build root.

    When micro is built in the same tree, the Makefile's overall target
    is micro's; it is pointed back at libphp.la first.
    """

    target = BuildTarget.EMBED
    make_goal = "install"

    def make_command(self) -> str:
        return join_flags(
            [
                "make",
                f"INSTALL_ROOT={self.builder.paths.build_root}",
                f"-j{self.builder.concurrency}",
                self.make_vars().to_shell(),
                self.make_goal,
            ]
        )

    def compile(self) -> None:
        if self.context.mask & BuildTarget.MICRO:
            replace_in_file(
                self.builder.paths.makefile,
                "OVERALL_TARGET =",
                "OVERALL_TARGET = libphp.la",
            )
        super().compile()


SAPI_BUILDERS: dict[BuildTarget, type[SapiBuilder]] = {
    BuildTarget.CLI: CliBuilder,
    BuildTarget.FPM: FpmBuilder,
    BuildTarget.MICRO: MicroBuilder,
    BuildTarget.EMBED: EmbedBuilder,
}
