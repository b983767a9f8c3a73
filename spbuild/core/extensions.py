# SPDX-License-Identifier: MIT
"""Turn library requirements into configure arguments.

An extension that can optionally use a library asks for it with a
LibrarySpec. Each spec is looked up in the library registry:

- present: the library's own descriptor produces the enable argument
  (typically FOO_CFLAGS=... FOO_LIBS=... for autoconf),
- absent: the LibrarySpec's disable argument is used, or --with-<name>=no.

Arguments come out in exactly the order the specs went in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Library(Protocol):
    """Capability descriptor of a library that has been built."""

    @property
    def name(self) -> str: ...

    def make_autoconf_env(self, prefix: str | None = None) -> str:
        """Return the argument that enables this library in ./configure.

        Args:
            prefix: Override for the autoconf variable prefix
                (defaults to the upper-cased library name).
        """
        ...

    def static_lib_files(self) -> list[str]:
        """Absolute paths of the static archives to link."""
        ...


@runtime_checkable
class LibraryLookup(Protocol):
    """What the builder needs from the library/extension subsystem."""

    def get_lib(self, name: str) -> Library | None: ...

    def has_extension(self, name: str) -> bool: ...

    def has_cpp_extension(self) -> bool: ...

    def all_static_lib_files(self) -> list[str]: ...

    def extensions(self) -> list[Extension]: ...


@dataclass(frozen=True)
class LibrarySpec:
    """A requirement on an optional library.

    Attributes:
        name: Library name as known to the registry.
        disable_args: Argument used when the library is absent.
            Defaults to --with-<name>=no.
        prefix: Prefix override handed to the library descriptor.
    """

    name: str
    disable_args: str | None = None
    prefix: str | None = None

    @property
    def disable_argument(self) -> str:
        return self.disable_args or f"--with-{self.name}=no"


@dataclass(frozen=True)
class Extension:
    """An enabled extension.

    Attributes:
        name: Extension name (e.g., 'curl').
        args: Its own configure arguments.
        libs: Optional libraries it can use, in argument order.
        cpp: True if linking it needs libstdc++.
    """

    name: str
    args: str = ""
    libs: tuple[LibrarySpec, ...] = ()
    cpp: bool = False


def autoconf_arg_list(
    owner: str,
    specs: Iterable[LibrarySpec],
    registry: LibraryLookup,
) -> list[str]:
    """Return one configure argument per spec, in input order.

    Args:
        owner: Name of the extension asking, used for log messages.
        specs: Library requirements.
        registry: Where presence is looked up.
    """
    args: list[str] = []
    for spec in specs:
        lib = registry.get_lib(spec.name)
        if lib is not None:
            logger.info("%s with %s support", owner, spec.name)
            args.append(lib.make_autoconf_env(spec.prefix))
        else:
            logger.info("%s without %s support", owner, spec.name)
            args.append(spec.disable_argument)
    return args


def make_autoconf_args(
    owner: str,
    specs: Sequence[LibrarySpec],
    registry: LibraryLookup,
) -> str:
    """Space-joined form of autoconf_arg_list(), trailing space trimmed."""
    return " ".join(autoconf_arg_list(owner, specs, registry)).rstrip()
