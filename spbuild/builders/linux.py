# SPDX-License-Identifier: MIT
"""Linux build session.

A LinuxBuilder resolves everything a build needs exactly once, when it
is created: options with their defaults, the toolchain, probed compiler
flags and the environment sets. build_php() then runs configure and the
selected SAPIs strictly one after the other.

Example:
    builder = LinuxBuilder(
        {"arch": "x86_64", "enable-zts": True},
        paths=BuildPaths.at("/work"),
        registry=registry,
    )
    builder.build_php(BuildTarget.CLI | BuildTarget.MICRO)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from functools import cached_property
from typing import Any

from spbuild.builders.configure import ConfigurePipeline
from spbuild.builders.paths import BuildPaths
from spbuild.builders.patches import SourcePatcher
from spbuild.builders.sanity import SanityChecker
from spbuild.builders.sapi import MICRO_PATCHED_EXTENSIONS, SAPI_BUILDERS, BuildContext
from spbuild.configure.config import Configure
from spbuild.core.environment import (
    EnvVarSet,
    make_configure_env,
    make_php_env,
    make_pkgconf_env,
)
from spbuild.core.errors import ConfigureError
from spbuild.core.extensions import LibraryLookup, LibrarySpec, make_autoconf_args
from spbuild.core.flags import COMPILER_PASSTHROUGH, append_flags, prefix_flags
from spbuild.core.options import BuildOptions
from spbuild.core.targets import BuildTarget, selected_targets
from spbuild.core.versions import format_version_id, read_version_id
from spbuild.toolchains.cmake import write_cmake_toolchain
from spbuild.toolchains.musl import resolve_toolchain
from spbuild.toolchains.tuning import CLANG_FAMILY, compiler_family, compose_flags
from spbuild.util.commands import make_dirs
from spbuild.util.shell import Shell

logger = logging.getLogger(__name__)

LLD_FLAGS: tuple[str, ...] = (COMPILER_PASSTHROUGH, "-fuse-ld=lld")


class LinuxBuilder:
    """Builds static interpreter binaries on Linux.

    Attributes:
        options: Resolved build options (defaults applied).
        toolchain: Resolved compilers and search paths.
        flags: Probed arch and tuning flags.
        pkgconf_env: PKG_CONFIG / PKG_CONFIG_PATH for every stage.
        configure_env: Environment for configure-style library builds.
        concurrency: Parallel make jobs.
    """

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        paths: BuildPaths,
        registry: LibraryLookup,
        patcher: SourcePatcher | None = None,
        shell: Shell | None = None,
        config: Configure | None = None,
        version_probe: Callable[[], int] | None = None,
    ) -> None:
        self.paths = paths
        self.registry = registry
        self.shell = shell or Shell()
        self.config = config or Configure(build_dir=paths.build_root)
        self.patcher = patcher or SourcePatcher(paths.php_source, self.shell)
        self._version_probe = version_probe
        self.platform = self.config.platform

        self.options, self.toolchain = resolve_toolchain(
            BuildOptions(options), self.platform
        )
        self.concurrency = self.platform.cpu_count
        self.flags = compose_flags(self.toolchain, self.config)

        self.pkgconf_env = make_pkgconf_env(paths)
        self.configure_env = make_configure_env(self.pkgconf_env, self.toolchain, paths)

        # some libraries cannot create these themselves
        make_dirs(paths.pkgconfig_dir)
        make_dirs(paths.build_include)

        self.cmake_toolchain_file = write_cmake_toolchain(
            paths, self.toolchain, self.flags.cflags, self.flags.cxxflags
        )

    @cached_property
    def php_version_id(self) -> int:
        """Version id of the interpreter source, probed once."""
        if self._version_probe is not None:
            vid = self._version_probe()
        else:
            vid = read_version_id(self.paths.php_source)
        logger.info("PHP source version %s", format_version_id(vid))
        return vid

    @cached_property
    def linker_flags(self) -> tuple[str, ...]:
        """Use lld when building with clang and lld is installed."""
        if compiler_family(self.toolchain.cc) != CLANG_FAMILY:
            return ()
        if self.config.find_program("lld") is None:
            return ()
        return LLD_FLAGS

    def required_tools(self, targets: Sequence[BuildTarget]) -> list[str]:
        """External programs the selected targets will run."""
        tools = ["make"]
        strips = any(SAPI_BUILDERS[t].artifact is not None for t in targets)
        if strips and not self.options.flag("no-strip"):
            tools.append("strip")
        if BuildTarget.MICRO in targets and any(
            self.registry.has_extension(ext) for ext in MICRO_PATCHED_EXTENSIONS
        ):
            tools.append("patch")
        return tools

    def check_tools(self, targets: Sequence[BuildTarget]) -> None:
        """Raise ToolNotFoundError for the first required tool not on PATH."""
        for tool in self.required_tools(targets):
            self.config.find_program(tool, required=True)

    def make_autoconf_args(self, name: str, specs: Sequence[LibrarySpec]) -> str:
        """Configure arguments for an extension's optional libraries."""
        return make_autoconf_args(name, specs, self.registry)

    def make_extension_args(self) -> list[str]:
        """Configure arguments of every enabled extension, in order.

        Each extension contributes its own arguments followed by one
        argument per optional library it can use.
        """
        args: list[str] = []
        for ext in self.registry.extensions():
            if ext.args:
                args.append(ext.args)
            if ext.libs:
                args.append(self.make_autoconf_args(ext.name, ext.libs))
        return args

    def compose_extra_libs(self) -> str:
        """EXTRA_LIBS for the final link.

        Caller extra-libs first, then every static archive (each behind
        -Xcompiler in bloat mode), then libstdc++ if any extension is
        C++.
        """
        lib_files = [f for f in self.registry.all_static_lib_files() if f]
        if self.options.flag("bloat"):
            archives = prefix_flags(COMPILER_PASSTHROUGH, lib_files)
        else:
            archives = lib_files
        cpp = ["-lstdc++"] if self.registry.has_cpp_extension() else []
        return append_flags(self.options.get("extra-libs", ""), archives, cpp)

    def php_env(self) -> EnvVarSet:
        return make_php_env(
            self.pkgconf_env, self.toolchain, self.flags.cflags, self.paths
        )

    def build_php(self, mask: BuildTarget | int) -> list[BuildTarget]:
        """Configure the source tree and build every SAPI in mask.

        Returns:
            The SAPIs that were built, in build order.

        Raises:
            ConfigureError: On an empty mask or unsupported combination.
            ToolNotFoundError: If make, strip or patch is not on PATH.
            BuildCommandError: If any external step fails.
            SanityCheckError: If a built binary does not run.
        """
        mask = BuildTarget(mask)
        targets = selected_targets(mask)
        if not targets:
            raise ConfigureError("no build target selected")
        self.check_tools(targets)

        extra_libs = self.compose_extra_libs()
        linker_flags = self.linker_flags
        version_id = ConfigurePipeline(self).run(mask, self.php_env())

        context = BuildContext(
            mask=mask,
            version_id=version_id,
            extra_libs=extra_libs,
            linker_flags=linker_flags,
        )
        for target in targets:
            SAPI_BUILDERS[target](self, context).build()

        SanityChecker(self).run(mask)
        return targets

    def __repr__(self) -> str:
        return (
            f"LinuxBuilder(arch={self.toolchain.arch}, cc={self.toolchain.cc}, "
            f"root={self.paths.root})"
        )
