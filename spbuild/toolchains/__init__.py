# SPDX-License-Identifier: MIT
"""Toolchain resolution and compiler flag derivation."""

from spbuild.toolchains.cmake import write_cmake_toolchain
from spbuild.toolchains.musl import (
    MUSL_CROSS_ROOT,
    ToolchainSpec,
    arch_to_gnu,
    resolve_toolchain,
)
from spbuild.toolchains.tuning import CompilerFlags, compiler_family, compose_flags

__all__ = [
    "MUSL_CROSS_ROOT",
    "ToolchainSpec",
    "arch_to_gnu",
    "resolve_toolchain",
    "CompilerFlags",
    "compiler_family",
    "compose_flags",
    "write_cmake_toolchain",
]
