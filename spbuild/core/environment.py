# SPDX-License-Identifier: MIT
"""Environment variable sets passed to external build stages.

An EnvVarSet is an ordered, immutable mapping of variable name to value.
Insertion order is preserved and a name appears at most once, so the
serialized form is identical from run to run:

    env = EnvVarSet({"CC": "gcc", "CFLAGS": "-O2 -g"})
    env.to_shell()   # "CC=gcc CFLAGS='-O2 -g'"

The serialized string is used as an invocation prefix for shell commands
and as trailing VAR=value arguments for ./configure and make.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from spbuild.builders.paths import BuildPaths
    from spbuild.toolchains.musl import ToolchainSpec

# Link libraries every static PHP link needs.
BASE_LIBS = "-ldl -lpthread"


class EnvVarSet(Mapping[str, str]):
    """Ordered, read-only set of environment variables."""

    __slots__ = ("_items",)

    def __init__(self, items: Mapping[str, str] | None = None) -> None:
        self._items: dict[str, str] = {}
        for key, value in (items or {}).items():
            self._items[key] = str(value)

    def __getitem__(self, key: str) -> str:
        return self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def extend(self, items: Mapping[str, str]) -> EnvVarSet:
        """Return a new set with items added after the existing ones.

        A key that already exists keeps its position and takes the new
        value.
        """
        merged = dict(self._items)
        for key, value in items.items():
            merged[key] = str(value)
        return EnvVarSet(merged)

    def to_shell(self) -> str:
        """Serialize as space separated NAME=value words, quoted for sh."""
        return " ".join(
            f"{key}={shlex.quote(value)}" for key, value in self._items.items()
        )

    def as_environ(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        """Return a full environment dict for subprocess env=."""
        environ = dict(os.environ if base is None else base)
        environ.update(self._items)
        return environ

    def __str__(self) -> str:
        return self.to_shell()

    def __repr__(self) -> str:
        return f"EnvVarSet({self._items!r})"


def extend_path(directory: str, inherited: str | None = None) -> str:
    """Prepend directory to the inherited PATH without discarding it."""
    if inherited is None:
        inherited = os.environ.get("PATH", "")
    if not inherited:
        return directory
    return f"{directory}:{inherited}"


def make_pkgconf_env(paths: BuildPaths) -> EnvVarSet:
    """pkg-config locator and search path, shared by every stage."""
    return EnvVarSet(
        {
            "PKG_CONFIG": str(paths.build_bin / "pkg-config"),
            "PKG_CONFIG_PATH": str(paths.pkgconfig_dir),
        }
    )


def make_configure_env(
    pkgconf_env: EnvVarSet,
    toolchain: ToolchainSpec,
    paths: BuildPaths,
    inherited_path: str | None = None,
) -> EnvVarSet:
    """Environment for configure-style library builds.

    Adds compiler selection and a PATH that finds tools installed into
    the build root first.
    """
    return pkgconf_env.extend(
        {
            "CC": toolchain.cc,
            "CXX": toolchain.cxx,
            "AR": toolchain.ar,
            "LD": toolchain.ld,
            "PATH": extend_path(str(paths.build_bin), inherited_path),
        }
    )


def make_php_env(
    pkgconf_env: EnvVarSet,
    toolchain: ToolchainSpec,
    cflags: str,
    paths: BuildPaths,
    inherited_path: str | None = None,
) -> EnvVarSet:
    """Environment appended to the interpreter's own ./configure call."""
    return pkgconf_env.extend(
        {
            "CC": toolchain.cc,
            "CXX": toolchain.cxx,
            "AR": toolchain.ar,
            "LD": toolchain.ld,
            "CFLAGS": cflags,
            "LIBS": BASE_LIBS,
            "PATH": extend_path(str(paths.build_bin), inherited_path),
        }
    )
