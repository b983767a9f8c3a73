# SPDX-License-Identifier: MIT
"""Interpreter version ids and version-gated configure flags.

Versions are compared as integer ids in the PHP_VERSION_ID form:
major * 10000 + minor * 100 + patch, so "8.1.0" is 80100.

Flags whose availability depends on the version or on an option are
declared once in a table of VersionGate entries and evaluated together,
instead of being scattered through the configure step as inline branches.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from spbuild.core.errors import ConfigureError, FileSystemError
from spbuild.core.options import option_flag

# phpmicro only builds against 8.0 and later.
MICRO_MIN_VERSION_ID = 80000

_VERSION_ID_RE = re.compile(r"^\s*#\s*define\s+PHP_VERSION_ID\s+(\d+)", re.MULTILINE)


def version_id(version: str | int) -> int:
    """Convert "8.2.0" (or an existing id) into a version id.

    Missing components count as zero, trailing labels such as
    "-dev" or "RC1" are ignored.

    Raises:
        ConfigureError: If the string does not start with a number.

    Examples:
        >>> version_id("8.2.0")
        80200
        >>> version_id("7.4")
        70400
        >>> version_id(80112)
        80112
    """
    if isinstance(version, int):
        return version
    match = re.match(r"^\s*(\d+)(?:\.(\d+))?(?:\.(\d+))?", version)
    if match is None:
        raise ConfigureError(f"invalid version string: {version!r}")
    major, minor, patch = (int(part or 0) for part in match.groups())
    return major * 10000 + minor * 100 + patch


def format_version_id(vid: int) -> str:
    """Inverse of version_id: 80105 -> "8.1.5"."""
    return f"{vid // 10000}.{vid // 100 % 100}.{vid % 100}"


def read_version_id(php_source: Path | str) -> int:
    """Read PHP_VERSION_ID from a source tree's main/php_version.h.

    Raises:
        FileSystemError: If the header is missing or has no version id.
    """
    header = Path(php_source) / "main" / "php_version.h"
    try:
        text = header.read_text()
    except OSError as e:
        raise FileSystemError(f"cannot read version header ({e.strerror})", str(header)) from e
    match = _VERSION_ID_RE.search(text)
    if match is None:
        raise FileSystemError("no PHP_VERSION_ID found", str(header))
    return int(match.group(1))


@dataclass(frozen=True)
class VersionGate:
    """A flag emitted only inside a version range and/or behind an option.

    Attributes:
        flag: The argument emitted when the gate is open.
        min_version: Inclusive lower bound, or None for no bound.
        max_version: Exclusive upper bound, or None for no bound.
        option: Option that must be truthy, or None.
    """

    flag: str
    min_version: int | None = None
    max_version: int | None = None
    option: str | None = None

    def is_open(self, vid: int, options: Mapping[str, Any]) -> bool:
        if self.min_version is not None and vid < self.min_version:
            return False
        if self.max_version is not None and vid >= self.max_version:
            return False
        if self.option is not None:
            return option_flag(self.option, options.get(self.option, False))
        return True


# Evaluated in order; emitted flags keep this order.
CONFIGURE_GATES: tuple[VersionGate, ...] = (
    VersionGate("--disable-opcache-jit", option="disable-opcache-jit"),
    VersionGate("--enable-json", max_version=80000),
    VersionGate("--enable-zts", option="enable-zts"),
    VersionGate("--disable-zend-signals", option="enable-zts"),
    VersionGate(
        "--enable-zend-max-execution-timers", min_version=80100, option="enable-zts"
    ),
)


def gated_flags(
    vid: int,
    options: Mapping[str, Any],
    gates: tuple[VersionGate, ...] = CONFIGURE_GATES,
) -> list[str]:
    """Return the flags of every open gate, in table order."""
    return [gate.flag for gate in gates if gate.is_open(vid, options)]
