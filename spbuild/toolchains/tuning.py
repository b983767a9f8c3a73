# SPDX-License-Identifier: MIT
"""Architecture and tuning flags for the resolved compilers.

Two kinds of flags are derived here:

- arch flags tell the compiler which architecture to target. A
  prefixed GCC cross compiler already knows, clang needs --target when
  the target differs from the host.
- tune flags are optional optimizations. Each candidate is probed
  against the compiler and silently dropped if rejected.

C and C++ flags are derived separately because the two compilers can
come from different families.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from spbuild.core.errors import ConfigureError
from spbuild.core.flags import merge_flags
from spbuild.toolchains.musl import arch_to_gnu

if TYPE_CHECKING:
    from spbuild.configure.config import Configure
    from spbuild.toolchains.musl import ToolchainSpec

logger = logging.getLogger(__name__)

GCC_FAMILY = "gcc"
CLANG_FAMILY = "clang"

# Candidate tuning flags per GNU arch, before probing. CPU-specific
# -mtune values would tie binaries to the build host; see decision 5
# in DESIGN.md.
TUNE_CFLAGS: dict[str, tuple[str, ...]] = {
    "x86_64": ("-mtune=generic",),
    "aarch64": ("-mtune=generic",),
}


_VERSION_SUFFIX = re.compile(r"-\d+(\.\d+)*$")


def compiler_family(compiler: str) -> str:
    """Classify a compiler command as 'gcc' or 'clang'.

    Raises:
        ConfigureError: If the family cannot be told from the name.

    Examples:
        >>> compiler_family("x86_64-linux-musl-gcc")
        'gcc'
        >>> compiler_family("/usr/bin/clang++")
        'clang'
        >>> compiler_family("gcc-13")
        'gcc'
    """
    name = compiler.split()[-1] if compiler.strip() else compiler
    name = _VERSION_SUFFIX.sub("", name)
    if name.endswith(("clang", "clang++")):
        return CLANG_FAMILY
    if name.endswith(("gcc", "g++", "cc", "c++")):
        return GCC_FAMILY
    raise ConfigureError(f"compiler {compiler!r} is not supported")


def arch_cflags(compiler: str, arch: str, host_arch: str) -> list[str]:
    """Candidate flags selecting the target architecture.

    Raises:
        UnsupportedArchError: If arch cannot be mapped.
        ConfigureError: If the compiler family is unknown.
    """
    if host_arch == arch:
        return []
    gnu_arch = arch_to_gnu(arch)
    if compiler_family(compiler) == CLANG_FAMILY:
        return [f"--target={gnu_arch}-unknown-linux"]
    return []


def tune_cflags(arch: str) -> list[str]:
    """Candidate tuning flags for arch, not yet probed."""
    return list(TUNE_CFLAGS[arch_to_gnu(arch)])


def filter_accepted(flags: list[str], compiler: str, config: Configure) -> list[str]:
    """Keep only the flags compiler accepts, preserving order."""
    accepted: list[str] = []
    for flag in flags:
        if config.check_flag(compiler, flag):
            accepted.append(flag)
        else:
            logger.debug("Dropping %s: not accepted by %s", flag, compiler)
    return accepted


@dataclass(frozen=True)
class CompilerFlags:
    """Probed flags for a build session.

    Attributes:
        arch_c_flags: Target selection flags for the C compiler.
        arch_cxx_flags: Target selection flags for the C++ compiler.
        tune_c_flags: Tuning flags the C compiler accepted.
    """

    arch_c_flags: tuple[str, ...]
    arch_cxx_flags: tuple[str, ...]
    tune_c_flags: tuple[str, ...]

    @property
    def cflags(self) -> str:
        return " ".join(self.arch_c_flags)

    @property
    def cxxflags(self) -> str:
        return " ".join(self.arch_cxx_flags)


def compose_flags(
    toolchain: ToolchainSpec,
    config: Configure,
    extra_tune: list[str] | None = None,
) -> CompilerFlags:
    """Derive arch and tuning flags for toolchain.

    Args:
        toolchain: The resolved toolchain.
        config: Configure context used for probing.
        extra_tune: Additional tuning candidates, probed like the rest.
    """
    host_arch = config.platform.arch
    arch_c = arch_cflags(toolchain.cc, toolchain.arch, host_arch)
    arch_cxx = arch_cflags(toolchain.cxx, toolchain.arch, host_arch)

    candidates = tune_cflags(toolchain.arch)
    merge_flags(candidates, extra_tune or [])

    flags = CompilerFlags(
        arch_c_flags=tuple(filter_accepted(arch_c, toolchain.cc, config)),
        arch_cxx_flags=tuple(filter_accepted(arch_cxx, toolchain.cxx, config)),
        tune_c_flags=tuple(filter_accepted(candidates, toolchain.cc, config)),
    )
    logger.debug("Compiler flags: %s", flags)
    return flags
