# SPDX-License-Identifier: MIT
"""Directory layout of a build session."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class BuildPaths:
    """Well-known directories below a work directory.

    Layout:
        <root>/buildroot/{bin,lib,include}   installed artifacts
        <root>/source/php-src                interpreter source tree
    """

    root: Path

    @classmethod
    def at(cls, root: Path | str) -> BuildPaths:
        return cls(Path(root).absolute())

    @property
    def build_root(self) -> Path:
        return self.root / "buildroot"

    @property
    def build_bin(self) -> Path:
        return self.build_root / "bin"

    @property
    def build_lib(self) -> Path:
        return self.build_root / "lib"

    @property
    def build_include(self) -> Path:
        return self.build_root / "include"

    @property
    def pkgconfig_dir(self) -> Path:
        return self.build_lib / "pkgconfig"

    @property
    def source(self) -> Path:
        return self.root / "source"

    @property
    def php_source(self) -> Path:
        return self.source / "php-src"

    @property
    def makefile(self) -> Path:
        return self.php_source / "Makefile"
