# SPDX-License-Identifier: MIT
"""Flag handling utilities for spbuild.

Compiler flags and configure arguments are kept as ordered lists of
tokens while they are being composed, and turned into a single string
only at the point where an external command needs one. Keeping the
structured form makes composition testable without caring about
whitespace.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

# libtool passes flags prefixed with this straight to the compiler driver.
COMPILER_PASSTHROUGH = "-Xcompiler"


def split_flags(value: str | Iterable[str] | None) -> list[str]:
    """Turn a flag string or iterable into a list of non-empty tokens.

    Examples:
        >>> split_flags("-g  -Os ")
        ['-g', '-Os']
        >>> split_flags(["-g", "", "-Os"])
        ['-g', '-Os']
        >>> split_flags(None)
        []
    """
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return [token for token in value if token]


def join_flags(*groups: str | Iterable[str] | None) -> str:
    """Serialize groups of flags into one space separated string.

    Empty groups and empty tokens are dropped, so the result never has
    leading, trailing or doubled spaces.

    Examples:
        >>> join_flags(["-g", "-Os"], "", None, "-fPIE")
        '-g -Os -fPIE'
    """
    tokens: list[str] = []
    for group in groups:
        tokens.extend(split_flags(group))
    return " ".join(tokens)


def prefix_flags(prefix: str, flags: Iterable[str]) -> list[str]:
    """Return flags with each one preceded by prefix.

    Empty entries are skipped.

    Examples:
        >>> prefix_flags("-Xcompiler", ["-march=x", "", "-O2"])
        ['-Xcompiler', '-march=x', '-Xcompiler', '-O2']
    """
    result: list[str] = []
    for flag in flags:
        if flag:
            result.append(prefix)
            result.append(flag)
    return result


def append_flags(existing: str | None, *extra: str | Iterable[str] | None) -> str:
    """Append flags to an existing flag string without reordering it.

    Unlike merge_flags, nothing is de-duplicated: caller supplied text is
    kept verbatim and the extra groups follow it.

    Examples:
        >>> append_flags("-lfoo", ["/a/libz.a"], "-lstdc++")
        '-lfoo /a/libz.a -lstdc++'
        >>> append_flags("", [])
        ''
    """
    return join_flags(existing, *extra)


def merge_flags(existing: list[str], new: Iterable[str]) -> None:
    """Merge new flags into existing list, avoiding duplicates.

    This modifies `existing` in place, adding flags from `new` that
    aren't already present. Order of first occurrence is preserved.

    Examples:
        >>> existing = ["-O2", "-g"]
        >>> merge_flags(existing, ["-g", "-fPIE"])
        >>> existing
        ['-O2', '-g', '-fPIE']
    """
    seen = set(existing)
    for flag in new:
        if flag and flag not in seen:
            seen.add(flag)
            existing.append(flag)
