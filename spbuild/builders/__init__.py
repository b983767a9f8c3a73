# SPDX-License-Identifier: MIT
"""Configure, SAPI build and sanity check stages."""

from spbuild.builders.configure import ConfigurePipeline, compose_configure_args
from spbuild.builders.linux import LinuxBuilder
from spbuild.builders.paths import BuildPaths
from spbuild.builders.patches import PatchPoint, SourcePatcher, micro_patch
from spbuild.builders.sanity import SanityChecker
from spbuild.builders.sapi import (
    SAPI_BUILDERS,
    BuildContext,
    CliBuilder,
    EmbedBuilder,
    FpmBuilder,
    MicroBuilder,
    SapiBuilder,
)

__all__ = [
    "ConfigurePipeline",
    "compose_configure_args",
    "LinuxBuilder",
    "BuildPaths",
    "PatchPoint",
    "SourcePatcher",
    "micro_patch",
    "SanityChecker",
    "SAPI_BUILDERS",
    "BuildContext",
    "SapiBuilder",
    "CliBuilder",
    "FpmBuilder",
    "MicroBuilder",
    "EmbedBuilder",
]
