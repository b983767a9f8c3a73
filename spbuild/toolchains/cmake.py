# SPDX-License-Identifier: MIT
"""CMake toolchain file for library recipes built with CMake."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from spbuild.core.errors import FileSystemError
from spbuild.util.commands import make_dirs

if TYPE_CHECKING:
    from spbuild.builders.paths import BuildPaths
    from spbuild.toolchains.musl import ToolchainSpec


def render_cmake_toolchain(
    system_name: str,
    toolchain: ToolchainSpec,
    cflags: str,
    cxxflags: str,
    build_root: Path,
) -> str:
    """Return the text of a toolchain file.

    Package lookups are confined to build_root so libraries only find
    each other, never the host's copies.
    """
    lines = [
        f"SET(CMAKE_SYSTEM_NAME {system_name})",
        f"SET(CMAKE_SYSTEM_PROCESSOR {toolchain.arch})",
        f"SET(CMAKE_C_COMPILER {toolchain.cc})",
        f"SET(CMAKE_CXX_COMPILER {toolchain.cxx})",
        f"SET(CMAKE_AR {toolchain.ar})",
        f'SET(CMAKE_C_FLAGS "{cflags}")',
        f'SET(CMAKE_CXX_FLAGS "{cxxflags}")',
        f'SET(CMAKE_FIND_ROOT_PATH "{build_root}")',
        f'SET(CMAKE_PREFIX_PATH "{build_root}")',
        "SET(CMAKE_FIND_ROOT_PATH_MODE_PROGRAM NEVER)",
        "SET(CMAKE_FIND_ROOT_PATH_MODE_LIBRARY ONLY)",
        "SET(CMAKE_FIND_ROOT_PATH_MODE_INCLUDE ONLY)",
        "SET(CMAKE_FIND_ROOT_PATH_MODE_PACKAGE ONLY)",
        f'SET(PKG_CONFIG_EXECUTABLE "{build_root / "bin" / "pkg-config"}")',
    ]
    return "\n".join(lines) + "\n"


def write_cmake_toolchain(
    paths: BuildPaths,
    toolchain: ToolchainSpec,
    cflags: str,
    cxxflags: str,
    system_name: str = "Linux",
) -> Path:
    """Write source/toolchain.cmake and return its path."""
    target = paths.source / "toolchain.cmake"
    make_dirs(target.parent)
    text = render_cmake_toolchain(
        system_name, toolchain, cflags, cxxflags, paths.build_root
    )
    try:
        target.write_text(text)
    except OSError as e:
        raise FileSystemError(f"cannot write toolchain file ({e.strerror})", str(target)) from e
    return target
