# SPDX-License-Identifier: MIT
"""A simple library registry backed by plain data.

The real dependency graph and library recipes live outside spbuild. This
registry records their results: which libraries were built into the
build root, which archives each produced, and which extensions are
enabled. It can be filled from the [libraries] and [extensions] tables
of an option file:

    [libraries.zlib]
    static-libs = ["libz.a"]

    [libraries.openssl]
    static-libs = ["libssl.a", "libcrypto.a"]
    cpp = false

    [extensions]
    phar = "--enable-phar"
    openssl = "--with-openssl --with-openssl-dir=/buildroot"

    [extensions.curl]
    args = "--with-curl"
    libs = ["zlib", { name = "zstd", disable = "--without-zstd" }]

An extension's libs are optional dependencies. Each one becomes either
the library's autoconf variables or its disable argument, depending on
whether the library was built.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from spbuild.core.errors import ConfigureError
from spbuild.core.extensions import Extension, LibrarySpec


@dataclass
class StaticLibrary:
    """A library installed into the build root.

    Attributes:
        name: Library name (e.g., 'zlib').
        lib_dir: Directory holding the static archives.
        include_dir: Directory holding the headers.
        static_libs: Archive file names, in link order.
        cpp: True if linking it needs libstdc++.
    """

    name: str
    lib_dir: Path
    include_dir: Path
    static_libs: list[str] = field(default_factory=list)
    cpp: bool = False

    def static_lib_files(self) -> list[str]:
        return [str(self.lib_dir / lib) for lib in self.static_libs]

    def make_autoconf_env(self, prefix: str | None = None) -> str:
        if prefix is None:
            prefix = self.name.upper().replace("-", "_")
        libs = " ".join(self.static_lib_files())
        return f'{prefix}_CFLAGS="-I{self.include_dir}" {prefix}_LIBS="{libs}"'


class LibraryRegistry:
    """In-memory LibraryLookup implementation.

    Libraries keep their registration order, which is also the order
    their archives are linked in. Extensions keep theirs too, which is
    the order their arguments reach ./configure.
    """

    def __init__(self) -> None:
        self._libs: dict[str, StaticLibrary] = {}
        self._extensions: dict[str, Extension] = {}

    def add_library(self, lib: StaticLibrary) -> None:
        self._libs[lib.name] = lib

    def add_extension(
        self,
        name: str,
        args: str = "",
        *,
        libs: Iterable[LibrarySpec] = (),
        cpp: bool = False,
    ) -> None:
        self._extensions[name] = Extension(name, args, tuple(libs), cpp)

    def get_lib(self, name: str) -> StaticLibrary | None:
        return self._libs.get(name)

    def has_extension(self, name: str) -> bool:
        return name in self._extensions

    def has_cpp_extension(self) -> bool:
        if any(ext.cpp for ext in self._extensions.values()):
            return True
        return any(lib.cpp for lib in self._libs.values())

    def all_static_lib_files(self) -> list[str]:
        files: list[str] = []
        for lib in self._libs.values():
            files.extend(lib.static_lib_files())
        return files

    def extensions(self) -> list[Extension]:
        return list(self._extensions.values())

    @classmethod
    def from_config(
        cls,
        data: Mapping[str, Any],
        *,
        lib_dir: Path,
        include_dir: Path,
    ) -> LibraryRegistry:
        """Build a registry from option-file tables.

        Args:
            data: Parsed document with optional 'libraries' and
                'extensions' tables.
            lib_dir: Default archive directory.
            include_dir: Default header directory.

        Raises:
            ConfigureError: If a table has the wrong shape.
        """
        registry = cls()
        libraries = data.get("libraries", {})
        if not isinstance(libraries, Mapping):
            raise ConfigureError("[libraries] must be a table")
        for name, entry in libraries.items():
            if not isinstance(entry, Mapping):
                raise ConfigureError(f"[libraries.{name}] must be a table")
            registry.add_library(
                StaticLibrary(
                    name=name,
                    lib_dir=Path(entry.get("lib-dir", lib_dir)),
                    include_dir=Path(entry.get("include-dir", include_dir)),
                    static_libs=list(entry.get("static-libs", [])),
                    cpp=bool(entry.get("cpp", False)),
                )
            )

        extensions = data.get("extensions", {})
        if not isinstance(extensions, Mapping):
            raise ConfigureError("[extensions] must be a table")
        cpp_extensions = set(data.get("cpp-extensions", []))
        for name, entry in extensions.items():
            if isinstance(entry, Mapping):
                libs = entry.get("libs", [])
                if not isinstance(libs, list):
                    raise ConfigureError(f"[extensions.{name}] libs must be a list")
                registry.add_extension(
                    name,
                    str(entry.get("args", "")),
                    libs=tuple(_library_spec(name, lib) for lib in libs),
                    cpp=bool(entry.get("cpp", False)) or name in cpp_extensions,
                )
            else:
                registry.add_extension(name, str(entry), cpp=name in cpp_extensions)
        return registry

    def __repr__(self) -> str:
        return (
            f"LibraryRegistry(libs=[{', '.join(self._libs)}], "
            f"extensions=[{', '.join(self._extensions)}])"
        )


def _library_spec(owner: str, entry: Any) -> LibrarySpec:
    if isinstance(entry, str):
        return LibrarySpec(entry)
    if not isinstance(entry, Mapping) or "name" not in entry:
        raise ConfigureError(
            f"[extensions.{owner}] libs entries must be names or tables with a name"
        )
    return LibrarySpec(
        name=str(entry["name"]),
        disable_args=entry.get("disable"),
        prefix=entry.get("prefix"),
    )
