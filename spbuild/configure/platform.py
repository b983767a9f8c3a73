# SPDX-License-Identifier: MIT
"""Build host detection.

Only facts about the machine running the build live here: its
architecture, its C library flavor and how many CPUs it has. The target
architecture is a build option and may differ.
"""

from __future__ import annotations

import glob
import os
import platform as _platform
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


@dataclass(frozen=True)
class Platform:
    """Description of the build host.

    Attributes:
        os: Lower-case system name ('linux', 'darwin', ...).
        arch: Machine name as reported by uname ('x86_64', 'aarch64').
        libc: 'musl', 'glibc' or '' when unknown.
        cpu_count: Number of CPUs available for parallel jobs.
    """

    os: str
    arch: str
    libc: str
    cpu_count: int

    @property
    def is_linux(self) -> bool:
        return self.os == "linux"

    @property
    def is_musl(self) -> bool:
        return self.libc == "musl"


def _read_os_release(path: Path = Path("/etc/os-release")) -> dict[str, str]:
    """Parse /etc/os-release into a dict; empty if unreadable."""
    result: dict[str, str] = {}
    try:
        text = path.read_text()
    except OSError:
        return result
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            result[key.strip()] = value.strip().strip('"')
    return result


def detect_libc() -> str:
    """Detect the host's C library flavor.

    Alpine is always musl. Elsewhere the dynamic loader decides: a
    ld-musl-*.so.1 loader means musl, otherwise Python's own libc probe
    is trusted.
    """
    if _read_os_release().get("ID") == "alpine":
        return "musl"
    if glob.glob("/lib/ld-musl-*.so.1"):
        return "musl"
    lib, _ = _platform.libc_ver()
    return lib


def detect_cpu_count() -> int:
    """CPUs this process may run on (at least 1)."""
    if hasattr(os, "sched_getaffinity"):
        return max(1, len(os.sched_getaffinity(0)))
    return os.cpu_count() or 1


@lru_cache(maxsize=1)
def get_platform() -> Platform:
    """Return the (cached) description of the build host."""
    return Platform(
        os=_platform.system().lower(),
        arch=_platform.machine(),
        libc=detect_libc(),
        cpu_count=detect_cpu_count(),
    )
