# SPDX-License-Identifier: MIT
"""Source patch hooks.

The patches themselves belong to the library/extension subsystem. The
build pipeline only says *when* they may run, by dispatching three
named points:

    before-buildconf   before ./buildconf regenerates configure
    before-configure   before ./configure runs
    before-make        after configure, before anything is compiled

Callbacks are registered per point and called in registration order
with the running builder.

The micro SAPI additionally needs a temporary source patch while the
phar extension is compiled in. micro_patch() applies it for the
duration of a with-block and always reverses it afterwards.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from spbuild.core.errors import FileSystemError, SpbuildError

if TYPE_CHECKING:
    from spbuild.util.shell import Shell

logger = logging.getLogger(__name__)


class PatchPoint(str, Enum):
    """Pipeline points at which source patches may be applied."""

    BEFORE_BUILDCONF = "before-buildconf"
    BEFORE_CONFIGURE = "before-configure"
    BEFORE_MAKE = "before-make"


PatchHook = Callable[[Any], None]


class SourcePatcher:
    """Dispatches patch hooks and applies micro SAPI patches.

    Attributes:
        php_source: Root of the interpreter source tree.
    """

    def __init__(self, php_source: Path, shell: Shell) -> None:
        self.php_source = Path(php_source)
        self._shell = shell
        self._hooks: dict[PatchPoint, list[PatchHook]] = {
            point: [] for point in PatchPoint
        }

    def register(self, point: PatchPoint | str, hook: PatchHook) -> None:
        """Add hook to run at point."""
        self._hooks[PatchPoint(point)].append(hook)

    def dispatch(self, point: PatchPoint, builder: Any) -> None:
        """Run every hook registered for point."""
        hooks = self._hooks[point]
        logger.debug("Patch point %s: %d hook(s)", point.value, len(hooks))
        for hook in hooks:
            hook(builder)

    def find_micro_patch(self, name: str, version_id: int) -> Path:
        """Locate the micro patch file for name.

        A file specific to the interpreter's major.minor version
        (e.g. phar_82.patch) wins over the generic one (phar.patch).

        Raises:
            FileSystemError: If neither file exists.
        """
        patch_dir = self.php_source / "sapi" / "micro" / "patches"
        major_minor = f"{version_id // 10000}{version_id // 100 % 100}"
        for candidate in (f"{name}_{major_minor}.patch", f"{name}.patch"):
            path = patch_dir / candidate
            if path.is_file():
                return path
        raise FileSystemError("micro patch not found", str(patch_dir / f"{name}.patch"))

    def patch_micro(
        self, names: list[str], version_id: int, reverse: bool = False
    ) -> bool:
        """Apply (or with reverse=True, revert) micro patches.

        Returns:
            True if at least one patch was processed.
        """
        if not names:
            return False
        files = [self.find_micro_patch(name, version_id) for name in names]
        flag = " -R" if reverse else ""
        shell = self._shell.cd(self.php_source)
        for path in files:
            logger.info("%s micro patch %s", "Reverting" if reverse else "Applying", path.name)
            shell.exec(f"patch -p1{flag} < {shlex.quote(str(path))}")
        return True


@contextmanager
def micro_patch(
    patcher: SourcePatcher, names: list[str], version_id: int
) -> Iterator[bool]:
    """Apply micro patches for the duration of a with-block.

    The patch is reverted on every exit path, including an exception
    from the block. If that revert fails too, its error is logged and
    the block's exception propagates. If applying the patch fails, the
    error propagates before the block runs and no revert is attempted.

    Yields:
        True if a patch was applied.
    """
    applied = patcher.patch_micro(names, version_id)
    try:
        yield applied
    except BaseException:
        if applied:
            try:
                patcher.patch_micro(names, version_id, reverse=True)
            except SpbuildError:
                # the block's error is the one worth reporting
                logger.error("Could not revert micro patch", exc_info=True)
        raise
    else:
        if applied:
            patcher.patch_micro(names, version_id, reverse=True)
