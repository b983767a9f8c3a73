# SPDX-License-Identifier: MIT
"""musl toolchain resolution.

Static binaries are linked against musl. On a musl host (Alpine) the
system compilers already produce musl objects and are used unprefixed.
Everywhere else a musl-cross-make toolchain installed under
/usr/local/musl is used, with its tools prefixed by the GNU triple:

    x86_64-linux-musl-gcc, x86_64-linux-musl-g++, x86_64-linux-musl-ar

Every value computed here is only a default: an option the caller set
explicitly is never replaced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from spbuild.core.errors import UnsupportedArchError

if TYPE_CHECKING:
    from spbuild.configure.platform import Platform
    from spbuild.core.options import BuildOptions

logger = logging.getLogger(__name__)

# Installation root of musl-cross-make toolchains.
MUSL_CROSS_ROOT = "/usr/local/musl"

_GNU_ARCH: dict[str, str] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}


def arch_to_gnu(arch: str) -> str:
    """Map an architecture name to its GNU triple component.

    Raises:
        UnsupportedArchError: If the name is not known.

    Examples:
        >>> arch_to_gnu("amd64")
        'x86_64'
        >>> arch_to_gnu("arm64")
        'aarch64'
    """
    try:
        return _GNU_ARCH[arch.lower()]
    except KeyError:
        raise UnsupportedArchError(arch) from None


def _strip_assignment(value: str, name: str) -> str:
    """Accept both "/path" and "NAME=/path" spellings of a path option."""
    prefix = f"{name}="
    return value[len(prefix):] if value.startswith(prefix) else value


@dataclass(frozen=True)
class ToolchainSpec:
    """Resolved compiler, archiver and linker for one build session.

    Attributes:
        cc: C compiler command.
        cxx: C++ compiler command.
        ar: Archiver command.
        ld: Linker command.
        library_path: Link-time library directory ('' when not needed).
        ld_library_path: Run-time library directory ('' when not needed).
        arch: Target architecture as requested.
        gnu_arch: Canonical GNU form of arch.
        native: True if the host's own compilers are used.
    """

    cc: str
    cxx: str
    ar: str
    ld: str
    library_path: str
    ld_library_path: str
    arch: str
    gnu_arch: str
    native: bool

    @property
    def ld_library_path_prefix(self) -> str:
        """LD_LIBRARY_PATH=... assignment for command prefixes, or ''."""
        if not self.ld_library_path:
            return ""
        return f"LD_LIBRARY_PATH={self.ld_library_path}"

    @property
    def library_path_prefix(self) -> str:
        """LIBRARY_PATH=... assignment for command prefixes, or ''."""
        if not self.library_path:
            return ""
        return f"LIBRARY_PATH={self.library_path}"


def resolve_toolchain(
    options: BuildOptions, platform: Platform
) -> tuple[BuildOptions, ToolchainSpec]:
    """Fill in toolchain defaults and resolve the ToolchainSpec.

    Args:
        options: Caller options; they take precedence over defaults.
        platform: The build host.

    Returns:
        The options with defaults applied, and the resolved spec.

    Raises:
        UnsupportedArchError: If the architecture cannot be mapped.
    """
    builder = options.derive()
    builder.set_default("arch", platform.arch)
    arch = str(builder.get("arch"))
    builder.set_default("gnu-arch", arch_to_gnu(arch))
    gnu_arch = str(builder.get("gnu-arch"))

    native = platform.is_musl
    if native:
        builder.set_default("cc", "gcc")
        builder.set_default("cxx", "g++")
        builder.set_default("ar", "ar")
        builder.set_default("ld", "ld.gold")
        builder.set_default("library_path", "")
        builder.set_default("ld_library_path", "")
    else:
        triple = f"{gnu_arch}-linux-musl"
        lib_dir = f"{MUSL_CROSS_ROOT}/{triple}/lib"
        builder.set_default("cc", f"{triple}-gcc")
        builder.set_default("cxx", f"{triple}-g++")
        builder.set_default("ar", f"{triple}-ar")
        builder.set_default("ld", f"{MUSL_CROSS_ROOT}/{triple}/bin/ld.gold")
        builder.set_default("library_path", lib_dir)
        builder.set_default("ld_library_path", lib_dir)

    resolved = builder.build()
    spec = ToolchainSpec(
        cc=str(resolved["cc"]),
        cxx=str(resolved["cxx"]),
        ar=str(resolved["ar"]),
        ld=str(resolved["ld"]),
        library_path=_strip_assignment(str(resolved["library_path"]), "LIBRARY_PATH"),
        ld_library_path=_strip_assignment(
            str(resolved["ld_library_path"]), "LD_LIBRARY_PATH"
        ),
        arch=arch,
        gnu_arch=gnu_arch,
        native=native,
    )
    logger.info(
        "Using %s toolchain for %s: cc=%s cxx=%s",
        "native musl" if native else "musl-cross",
        arch,
        spec.cc,
        spec.cxx,
    )
    return resolved, spec
