# SPDX-License-Identifier: MIT
"""Configure context for spbuild.

The Configure class provides the context for the setup phase of a build
session: platform detection, program discovery, compiler flag probes,
and a small JSON cache so probes are not repeated across runs.
"""

from __future__ import annotations

import json
import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from spbuild.configure.platform import Platform, get_platform
from spbuild.core.errors import ToolNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ProgramInfo:
    """Information about a found program.

    Attributes:
        path: Path to the program executable.
        version: Version string if detected.
    """

    path: Path
    version: str | None = None


class Configure:
    """Context for the setup phase.

    Example:
        config = Configure(build_dir=Path("buildroot"))

        if config.check_flag("gcc", "-march=native"):
            ...

        config.save()

    Attributes:
        platform: The detected build host.
        build_dir: Directory holding the cache file.
    """

    def __init__(
        self,
        *,
        build_dir: Path | str = "buildroot",
        cache_file: str = "spbuild_config.json",
        platform: Platform | None = None,
    ) -> None:
        """Create a configure context.

        Args:
            build_dir: Directory for the cache file.
            cache_file: Name of the cache file within build_dir.
            platform: Host description; detected when omitted.
        """
        self.platform = platform or get_platform()
        self.build_dir = Path(build_dir)
        self._cache_file = cache_file
        self._cache: dict[str, Any] = {}
        self._programs: dict[str, ProgramInfo] = {}

        self._load_cache()

    def _cache_path(self) -> Path:
        return self.build_dir / self._cache_file

    def _load_cache(self) -> None:
        """Load probe results from the cache file if it exists."""
        cache_path = self._cache_path()
        if cache_path.exists():
            try:
                with open(cache_path) as f:
                    self._cache = json.load(f)
            except (json.JSONDecodeError, OSError):
                logger.debug("Ignoring unreadable cache %s", cache_path)
                self._cache = {}

    def save(self, path: Path | None = None) -> None:
        """Save probe results to the cache file.

        Args:
            path: Optional path override for cache file.
        """
        cache_path = path or self._cache_path()
        cache_path.parent.mkdir(parents=True, exist_ok=True)

        with open(cache_path, "w") as f:
            json.dump(self._cache, f, indent=2, sort_keys=True, default=str)
            f.write("\n")

    def get(self, key: str, default: Any = None) -> Any:
        return self._cache.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._cache[key] = value

    def find_program(
        self,
        name: str,
        *,
        version_flag: str = "--version",
        required: bool = False,
    ) -> ProgramInfo | None:
        """Find a program on PATH.

        Args:
            name: Program name (e.g., 'gcc', 'lld').
            version_flag: Flag to get version (for version detection).
            required: If True, raise error if not found.

        Returns:
            ProgramInfo if found, None otherwise.

        Raises:
            ToolNotFoundError: If required and not found.
        """
        if name in self._programs:
            return self._programs[name]

        found = shutil.which(name)
        if found is None:
            if required:
                raise ToolNotFoundError(name)
            return None

        info = ProgramInfo(
            path=Path(found),
            version=self._get_program_version(Path(found), version_flag),
        )
        self._programs[name] = info
        return info

    def _get_program_version(self, path: Path, version_flag: str) -> str | None:
        """Try to get the version of a program."""
        try:
            result = subprocess.run(
                [str(path), version_flag],
                capture_output=True,
                text=True,
                timeout=5,
            )
            if result.returncode == 0:
                for line in result.stdout.split("\n"):
                    line = line.strip()
                    if line:
                        return line
            return None
        except (subprocess.TimeoutExpired, OSError):
            return None

    def check_flag(self, compiler: str, flag: str) -> bool:
        """Check whether compiler accepts flag.

        The compiler preprocesses an empty C translation unit with the
        flag added; any failure, including the compiler not starting at
        all, means the flag is rejected. Results are cached.

        Args:
            compiler: Compiler command, possibly with arguments.
            flag: Flag to test.

        Returns:
            True if the compiler accepted the flag.
        """
        cache_key = f"flag:{compiler}:{flag}"
        cached = self.get(cache_key)
        if isinstance(cached, bool):
            return cached

        cmd = [*shlex.split(compiler), "-E", "-x", "c", "-", flag]
        try:
            result = subprocess.run(
                cmd,
                input="",
                capture_output=True,
                text=True,
            )
            accepted = result.returncode == 0
        except OSError:
            accepted = False

        logger.debug("Flag probe %s %s: %s", compiler, flag, accepted)
        self.set(cache_key, accepted)
        return accepted

    def __repr__(self) -> str:
        return (
            f"Configure(platform={self.platform.os}/{self.platform.arch}, "
            f"build_dir={self.build_dir})"
        )
