# SPDX-License-Identifier: MIT
"""Filesystem helpers used by build stages.

All helpers raise FileSystemError instead of OSError so the pipeline
reports filesystem problems in its own error taxonomy.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from spbuild.core.errors import FileSystemError

logger = logging.getLogger(__name__)


def make_dirs(path: Path | str) -> Path:
    """Create path and any missing parents; existing dirs are fine."""
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileSystemError(f"cannot create directory ({e.strerror})", str(path)) from e
    return path


def copy(src: Path | str, dest: Path | str, *, mode: int | None = None) -> Path:
    """Copy a file, creating parent directories as needed.

    Args:
        src: File to copy.
        dest: Destination file path.
        mode: Permission bits to set on the copy.
    """
    dest_path = Path(dest)
    make_dirs(dest_path.parent)
    try:
        shutil.copy2(src, dest_path)
        if mode is not None:
            dest_path.chmod(mode)
    except OSError as e:
        raise FileSystemError(f"cannot copy {src} ({e.strerror})", str(dest_path)) from e
    return dest_path


def concat(sources: list[Path | str], dest: Path | str) -> Path:
    """Concatenate multiple files into one."""
    dest_path = Path(dest)
    make_dirs(dest_path.parent)
    try:
        with open(dest_path, "wb") as out:
            for src in sources:
                with open(src, "rb") as f:
                    out.write(f.read())
    except OSError as e:
        raise FileSystemError(f"cannot concatenate ({e.strerror})", str(dest_path)) from e
    return dest_path


def replace_in_file(path: Path | str, old: str, new: str) -> int:
    """Replace every occurrence of old with new, in place.

    Returns:
        Number of replacements made.
    """
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise FileSystemError(f"cannot read file ({e.strerror})", str(path)) from e
    count = text.count(old)
    if count:
        try:
            path.write_text(text.replace(old, new))
        except OSError as e:
            raise FileSystemError(f"cannot write file ({e.strerror})", str(path)) from e
    logger.debug("Replaced %d occurrence(s) of %r in %s", count, old, path)
    return count
