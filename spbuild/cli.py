# SPDX-License-Identifier: MIT
"""Command-line interface for spbuild."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import tomllib
from pathlib import Path
from typing import Any

from spbuild.builders.linux import LinuxBuilder
from spbuild.builders.paths import BuildPaths
from spbuild.core.errors import ConfigureError, SpbuildError
from spbuild.core.options import BOOLEAN_OPTIONS, option_flag, unknown_options
from spbuild.core.registry import LibraryRegistry
from spbuild.core.targets import parse_targets

# Set up logging
logger = logging.getLogger("spbuild")

# Environment variable holding a JSON object of options.
VARS_ENV = "SPBUILD_VARS"


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt)


def parse_variables(args: list[str]) -> tuple[dict[str, str], list[str]]:
    """Parse KEY=value arguments from a list.

    Args:
        args: List of arguments.

    Returns:
        Tuple of (variables dict, remaining args).
    """
    variables: dict[str, str] = {}
    remaining: list[str] = []

    for arg in args:
        if "=" in arg and not arg.startswith("-"):
            key, _, value = arg.partition("=")
            if key:  # Valid KEY=value
                variables[key] = value
            else:
                remaining.append(arg)
        else:
            remaining.append(arg)

    return variables, remaining


def load_option_file(path: Path | None) -> dict[str, Any]:
    """Load an option file (TOML).

    Raises:
        ConfigureError: If the file is missing or not valid TOML.
    """
    if path is None:
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        raise ConfigureError(f"option file not found: {path}") from None
    except tomllib.TOMLDecodeError as e:
        raise ConfigureError(f"invalid option file {path}: {e}") from e


def env_options() -> dict[str, Any]:
    """Options from the SPBUILD_VARS environment variable."""
    raw = os.environ.get(VARS_ENV)
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigureError(f"{VARS_ENV} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigureError(f"{VARS_ENV} must be a JSON object")
    return data


def collect_options(
    file_data: dict[str, Any], variables: dict[str, str]
) -> dict[str, Any]:
    """Merge option sources, highest precedence last.

    Precedence (highest to lowest):
        1. Command line: KEY=value
        2. Option file [options] table
        3. SPBUILD_VARS environment variable
    """
    options: dict[str, Any] = {}
    options.update(env_options())
    file_options = file_data.get("options", {})
    if not isinstance(file_options, dict):
        raise ConfigureError("[options] must be a table")
    options.update(file_options)
    options.update(variables)

    for key in BOOLEAN_OPTIONS & options.keys():
        options[key] = option_flag(key, options[key])
    for key in unknown_options(options):
        logger.warning("Ignoring unknown option %r", key)
        del options[key]
    return options


def _make_builder(args: argparse.Namespace) -> LinuxBuilder:
    variables, remaining = parse_variables(getattr(args, "extra", []))
    if remaining:
        raise ConfigureError(f"unexpected arguments: {' '.join(remaining)}")
    option_file = Path(args.option_file) if args.option_file else None
    file_data = load_option_file(option_file)
    options = collect_options(file_data, variables)

    paths = BuildPaths.at(args.work_dir)
    registry = LibraryRegistry.from_config(
        file_data, lib_dir=paths.build_lib, include_dir=paths.build_include
    )
    return LinuxBuilder(options, paths=paths, registry=registry)


def cmd_build(args: argparse.Namespace) -> int:
    """Configure and build the selected SAPIs."""
    setup_logging(args.verbose, args.debug)

    try:
        mask = parse_targets(args.build_target)
        builder = _make_builder(args)
        built = builder.build_php(mask)
        builder.config.save()
    except SpbuildError as e:
        logger.error("%s", e)
        return 1

    logger.info("Built: %s", ", ".join(t.label for t in built))
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Show the resolved toolchain, flags and environment."""
    setup_logging(args.verbose, args.debug)

    try:
        builder = _make_builder(args)
    except SpbuildError as e:
        logger.error("%s", e)
        return 1

    tc = builder.toolchain
    print(f"arch:            {tc.arch} ({tc.gnu_arch})")
    print(f"toolchain:       {'native musl' if tc.native else 'musl-cross'}")
    print(f"cc:              {tc.cc}")
    print(f"cxx:             {tc.cxx}")
    print(f"ar:              {tc.ar}")
    print(f"ld:              {tc.ld}")
    print(f"ld library path: {tc.ld_library_path or '(none)'}")
    print(f"arch cflags:     {builder.flags.cflags or '(none)'}")
    print(f"tune cflags:     {' '.join(builder.flags.tune_c_flags) or '(none)'}")
    print(f"jobs:            {builder.concurrency}")
    print(f"configure env:   {builder.configure_env.to_shell()}")
    return 0


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser."""
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")
    parser.add_argument(
        "-W",
        "--work-dir",
        default=".",
        help="Directory holding buildroot/ and source/ (default: .)",
    )
    parser.add_argument(
        "-f", "--option-file", help="TOML file with [options] and [libraries]"
    )
    parser.add_argument(
        "extra",
        nargs="*",
        help="Build options (KEY=value)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the spbuild CLI."""
    parser = argparse.ArgumentParser(
        prog="spbuild",
        description="Build statically linked PHP binaries.",
        epilog="Run 'spbuild <command> --help' for command-specific help.",
    )
    from spbuild import __version__

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # spbuild build
    build_parser = subparsers.add_parser("build", help="Configure and build PHP")
    build_parser.add_argument(
        "-t",
        "--build-target",
        default="cli",
        help="Comma separated SAPIs: cli, fpm, micro, embed, all (default: cli)",
    )
    add_common_args(build_parser)
    build_parser.set_defaults(func=cmd_build)

    # spbuild info
    info_parser = subparsers.add_parser(
        "info", help="Show the resolved toolchain and flags"
    )
    add_common_args(info_parser)
    info_parser.set_defaults(func=cmd_info)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
