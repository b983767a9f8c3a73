# SPDX-License-Identifier: MIT
"""
spbuild: builds statically linked PHP binaries.

spbuild resolves a musl toolchain, probes compiler flags, configures a
PHP source tree and builds any combination of the cli, fpm, micro and
embed SAPIs from it, one after the other.
"""

from __future__ import annotations

__version__ = "0.1.0"

# Re-export commonly used classes for convenient imports
from spbuild.builders.linux import LinuxBuilder  # noqa: E402
from spbuild.builders.paths import BuildPaths  # noqa: E402
from spbuild.core.errors import SpbuildError  # noqa: E402
from spbuild.core.extensions import Extension, LibrarySpec  # noqa: E402
from spbuild.core.options import BuildOptions, OptionsBuilder  # noqa: E402
from spbuild.core.registry import LibraryRegistry, StaticLibrary  # noqa: E402
from spbuild.core.targets import BuildTarget, parse_targets  # noqa: E402

# Public API exports
__all__ = [
    "__version__",
    # Session
    "LinuxBuilder",
    "BuildPaths",
    # Options and targets
    "BuildOptions",
    "OptionsBuilder",
    "BuildTarget",
    "parse_targets",
    # Libraries
    "Extension",
    "LibrarySpec",
    "LibraryRegistry",
    "StaticLibrary",
    # Errors
    "SpbuildError",
]
