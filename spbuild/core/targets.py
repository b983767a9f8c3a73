# SPDX-License-Identifier: MIT
"""Build target selection.

A build can produce any combination of four SAPIs. The selection is a
bitmask so callers can combine targets freely:

    mask = BuildTarget.CLI | BuildTarget.FPM
"""

from __future__ import annotations

from enum import IntFlag

from spbuild.core.errors import ConfigureError


class BuildTarget(IntFlag):
    """Bitmask over the buildable SAPIs."""

    NONE = 0
    CLI = 1
    FPM = 2
    MICRO = 4
    EMBED = 8
    ALL = CLI | FPM | MICRO | EMBED

    @property
    def label(self) -> str:
        """Lower-case name of a single target."""
        return (self.name or "none").lower()


# Targets always build in this order; they share one source tree.
BUILD_ORDER: tuple[BuildTarget, ...] = (
    BuildTarget.CLI,
    BuildTarget.FPM,
    BuildTarget.MICRO,
    BuildTarget.EMBED,
)


def selected_targets(mask: BuildTarget | int) -> list[BuildTarget]:
    """Return the single targets contained in mask, in build order."""
    mask = BuildTarget(mask)
    return [target for target in BUILD_ORDER if (mask & target) == target]


def parse_targets(spec: str) -> BuildTarget:
    """Parse a comma separated target list such as "cli,fpm" or "all".

    Raises:
        ConfigureError: If a name is not a known target.
    """
    mask = BuildTarget.NONE
    for raw in spec.split(","):
        name = raw.strip().lower()
        if not name:
            continue
        if name == "all":
            mask |= BuildTarget.ALL
            continue
        try:
            target = BuildTarget[name.upper()]
        except KeyError:
            valid = ", ".join(t.label for t in BUILD_ORDER)
            raise ConfigureError(
                f"unknown build target {name!r} (valid: {valid}, all)"
            ) from None
        if target in (BuildTarget.NONE, BuildTarget.ALL):
            raise ConfigureError(f"unknown build target {name!r}")
        mask |= target
    return mask
