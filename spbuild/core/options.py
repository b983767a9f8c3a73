# SPDX-License-Identifier: MIT
"""Build options with set-if-absent semantics.

BuildOptions is an immutable mapping from option name to value. It is
produced by an OptionsBuilder, which layers values in two passes:

    builder = OptionsBuilder(user_options)
    builder.set_default("cc", "gcc")       # only if the caller gave no "cc"
    options = builder.build()

A value supplied by the caller always wins over a computed default.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from spbuild.core.errors import ConfigureError

# Option keys understood by the builder.
KNOWN_OPTIONS: frozenset[str] = frozenset(
    [
        "cc",
        "cxx",
        "ar",
        "ld",
        "library_path",
        "ld_library_path",
        "arch",
        "gnu-arch",
        "extra-libs",
        "bloat",
        "enable-zts",
        "disable-opcache-jit",
        "no-strip",
        "with-micro-fake-cli",
    ]
)

BOOLEAN_OPTIONS: frozenset[str] = frozenset(
    ["bloat", "enable-zts", "disable-opcache-jit", "no-strip", "with-micro-fake-cli"]
)

_TRUE_STRINGS = frozenset(["1", "true", "yes", "on"])
_FALSE_STRINGS = frozenset(["0", "false", "no", "off", ""])


def parse_bool(value: Any) -> bool:
    """Interpret an option value as a boolean.

    Accepts real booleans and the usual command-line spellings
    (1/0, true/false, yes/no, on/off).

    Raises:
        ValueError: If a string value is not a recognized spelling.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"not a boolean value: {value!r}")


def option_flag(key: str, value: Any) -> bool:
    """parse_bool for a named option.

    Raises:
        ConfigureError: If value is not a recognized spelling.
    """
    try:
        return parse_bool(value)
    except ValueError as e:
        raise ConfigureError(f"option {key}: {e}") from e


class BuildOptions(Mapping[str, Any]):
    """Read-only view of resolved build options.

    Example:
        options = OptionsBuilder({"arch": "x86_64"}).build()
        options.get("arch")            # 'x86_64'
        options.flag("enable-zts")     # False
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: Mapping[str, Any] = MappingProxyType(dict(data or {}))
        # reject bad boolean spellings before any stage runs
        for key in BOOLEAN_OPTIONS & self._data.keys():
            option_flag(key, self._data[key])

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def flag(self, key: str) -> bool:
        """Return an option as a boolean, False when absent."""
        if key not in self._data:
            return False
        return option_flag(key, self._data[key])

    def derive(self) -> OptionsBuilder:
        """Start a new builder whose caller layer is this option set."""
        return OptionsBuilder(self._data)

    def __repr__(self) -> str:
        return f"BuildOptions({dict(self._data)!r})"


class OptionsBuilder:
    """Accumulates option values before freezing them into BuildOptions.

    The caller-supplied options are stored first. Defaults are only
    applied to keys the caller did not set, so a default can never
    clobber caller intent. Explicit overrides (used when the builder
    itself computes a replacement, e.g. an extended extra-libs string)
    go through override().
    """

    def __init__(self, options: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(options or {})

    def set_default(self, key: str, value: Any) -> OptionsBuilder:
        """Set key to value unless it is already present."""
        if key not in self._values:
            self._values[key] = value
        return self

    def override(self, key: str, value: Any) -> OptionsBuilder:
        """Replace key unconditionally."""
        self._values[key] = value
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def build(self) -> BuildOptions:
        return BuildOptions(self._values)


def unknown_options(options: Mapping[str, Any]) -> list[str]:
    """Return option names that no stage of the build understands."""
    return sorted(key for key in options if key not in KNOWN_OPTIONS)
