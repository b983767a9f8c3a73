# SPDX-License-Identifier: MIT
"""Shared fixtures: a recording shell, a fake host and a fake compiler."""

from __future__ import annotations

from pathlib import Path

import pytest

from spbuild.builders.linux import LinuxBuilder
from spbuild.builders.paths import BuildPaths
from spbuild.configure.config import Configure, ProgramInfo
from spbuild.configure.platform import Platform
from spbuild.core.errors import ToolNotFoundError
from spbuild.core.registry import LibraryRegistry, StaticLibrary
from spbuild.util.shell import Shell

GLIBC_X86_64 = Platform(os="linux", arch="x86_64", libc="glibc", cpu_count=4)
MUSL_X86_64 = Platform(os="linux", arch="x86_64", libc="musl", cpu_count=2)
GLIBC_AARCH64 = Platform(os="linux", arch="aarch64", libc="glibc", cpu_count=8)

PHP_VERSION_H = """\
#define PHP_MAJOR_VERSION 8
#define PHP_MINOR_VERSION 2
#define PHP_RELEASE_VERSION 0
#define PHP_VERSION "8.2.0"
#define PHP_VERSION_ID {vid}
"""

MAKEFILE = """\
OVERALL_TARGET = $(SAPI_CLI_PATH)
LDFLAGS = -L//lib
"""


class RecordingShell(Shell):
    """Shell that records commands instead of running them.

    Attributes:
        commands: (cwd, command) pairs in execution order; shared by
            every shell derived with cd().
        failures: command substring -> exit status to report.
        results: command substring -> (exit status, stdout) for
            exec_with_result().
    """

    def __init__(self, cwd: Path | str | None = None) -> None:
        super().__init__(cwd)
        self.commands: list[tuple[str | None, str]] = []
        self.failures: dict[str, int] = {}
        self.results: dict[str, tuple[int, str]] = {}

    def _run(self, command, *, env, capture):
        self.commands.append((self._cwd_str(), command))
        for needle, returncode in self.failures.items():
            if needle in command:
                return returncode, ""
        for needle, result in self.results.items():
            if needle in command:
                return result
        return 0, ""

    @property
    def executed(self) -> list[str]:
        return [command for _, command in self.commands]

    def index_of(self, needle: str) -> int:
        for i, command in enumerate(self.executed):
            if needle in command:
                return i
        raise AssertionError(f"no command containing {needle!r}: {self.executed}")


class FakeConfigure(Configure):
    """Configure whose compiler accepts only the listed flags.

    Attributes:
        accepted: Flags check_flag() reports as accepted.
        programs: Program names find_program() reports as installed.
    """

    def __init__(self, build_dir: Path, platform: Platform, accepted=None) -> None:
        super().__init__(build_dir=build_dir, platform=platform)
        self.accepted = set(accepted or [])
        self.programs = {"make", "strip", "patch"}
        self.probed: list[tuple[str, str]] = []

    def find_program(self, name, *, version_flag="--version", required=False):
        if name in self.programs:
            return ProgramInfo(Path("/usr/bin") / name)
        if required:
            raise ToolNotFoundError(name)
        return None

    def check_flag(self, compiler: str, flag: str) -> bool:
        self.probed.append((compiler, flag))
        return flag in self.accepted


def make_source_tree(paths: BuildPaths, vid: int = 80200) -> None:
    """Create the files a configured php-src tree would have."""
    src = paths.php_source
    (src / "main").mkdir(parents=True, exist_ok=True)
    (src / "main" / "php_version.h").write_text(PHP_VERSION_H.format(vid=vid))
    (src / "Makefile").write_text(MAKEFILE)
    for artifact in ("sapi/cli/php", "sapi/fpm/php-fpm", "sapi/micro/micro.sfx"):
        path = src / artifact
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x7fELF")
    patches = src / "sapi" / "micro" / "patches"
    patches.mkdir(parents=True, exist_ok=True)
    (patches / "phar.patch").write_text("--- a\n+++ b\n")


@pytest.fixture
def shell() -> RecordingShell:
    shell = RecordingShell()
    shell.results["-n -r"] = (0, "hello\n")
    shell.results["/hello"] = (0, "hello")
    return shell


@pytest.fixture
def paths(tmp_path: Path) -> BuildPaths:
    paths = BuildPaths.at(tmp_path)
    make_source_tree(paths)
    return paths


@pytest.fixture
def registry(paths: BuildPaths) -> LibraryRegistry:
    registry = LibraryRegistry()
    registry.add_library(
        StaticLibrary(
            name="zlib",
            lib_dir=paths.build_lib,
            include_dir=paths.build_include,
            static_libs=["libz.a"],
        )
    )
    registry.add_extension("zlib", "--with-zlib")
    return registry


@pytest.fixture
def config(tmp_path: Path) -> FakeConfigure:
    return FakeConfigure(tmp_path / "cache", GLIBC_X86_64, accepted=["-mtune=generic"])


@pytest.fixture
def make_builder(paths, registry, shell, config):
    """Factory for LinuxBuilder sessions wired to the fakes above."""

    def factory(options=None, **kwargs):
        kwargs.setdefault("paths", paths)
        kwargs.setdefault("registry", registry)
        kwargs.setdefault("shell", shell)
        kwargs.setdefault("config", config)
        return LinuxBuilder(options, **kwargs)

    return factory
