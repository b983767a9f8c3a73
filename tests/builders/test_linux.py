# SPDX-License-Identifier: MIT
"""End-to-end tests for spbuild.builders.linux with a recording shell."""

import pytest

from spbuild.builders.linux import LLD_FLAGS
from spbuild.core.errors import (
    ConfigureError,
    SanityCheckError,
    ToolNotFoundError,
    UnsupportedVersionError,
)
from spbuild.core.extensions import LibrarySpec
from spbuild.core.registry import LibraryRegistry, StaticLibrary
from spbuild.core.targets import BuildTarget


def make_commands(shell):
    return [cmd for cmd in shell.executed if cmd.startswith("make ") and cmd != "make clean"]


class TestConstruction:
    def test_prepares_build_root(self, make_builder, paths):
        builder = make_builder()
        assert paths.pkgconfig_dir.is_dir()
        assert paths.build_include.is_dir()
        assert builder.cmake_toolchain_file.is_file()

    def test_options_resolved_once(self, make_builder):
        builder = make_builder({"arch": "x86_64"})
        assert builder.options["cc"] == "x86_64-linux-musl-gcc"
        assert builder.toolchain.cc == "x86_64-linux-musl-gcc"
        assert builder.concurrency == 4

    def test_configure_env(self, make_builder, paths):
        env = make_builder().configure_env
        assert env["CC"] == "x86_64-linux-musl-gcc"
        assert env["PKG_CONFIG_PATH"] == str(paths.pkgconfig_dir)
        assert env["PATH"].startswith(f"{paths.build_bin}:")

    def test_unsupported_arch(self, make_builder):
        with pytest.raises(ConfigureError, match="unsupported arch"):
            make_builder({"arch": "s390x"})

    def test_repr(self, make_builder):
        assert "x86_64-linux-musl-gcc" in repr(make_builder())


class TestVersionProbe:
    def test_reads_source_tree(self, make_builder):
        assert make_builder().php_version_id == 80200

    def test_custom_probe_called_once(self, make_builder):
        calls = []

        def probe():
            calls.append(1)
            return 80300

        builder = make_builder(version_probe=probe)
        assert builder.php_version_id == 80300
        assert builder.php_version_id == 80300
        assert calls == [1]


class TestLinkerFlags:
    def test_gcc_never_uses_lld(self, make_builder, config):
        config.programs.add("lld")
        assert make_builder().linker_flags == ()

    def test_clang_with_lld(self, make_builder, config):
        config.programs.add("lld")
        builder = make_builder({"cc": "clang", "cxx": "clang++"})
        assert builder.linker_flags == LLD_FLAGS == ("-Xcompiler", "-fuse-ld=lld")

    def test_clang_without_lld(self, make_builder):
        builder = make_builder({"cc": "clang", "cxx": "clang++"})
        assert builder.linker_flags == ()

    def test_versioned_clang_with_lld(self, make_builder, config):
        config.programs.add("lld")
        builder = make_builder({"cc": "clang-17", "cxx": "clang++-17"})
        assert builder.linker_flags == LLD_FLAGS


class TestVersionedCompilers:
    def test_gcc(self, make_builder):
        builder = make_builder({"cc": "gcc-13", "cxx": "g++-13"})
        assert builder.flags.arch_c_flags == ()
        assert builder.flags.tune_c_flags == ("-mtune=generic",)

    def test_clang(self, make_builder):
        builder = make_builder({"cc": "clang-17", "cxx": "clang++-17"})
        assert builder.toolchain.cc == "clang-17"
        assert builder.flags.arch_c_flags == ()


class TestRequiredTools:
    def test_default(self, make_builder):
        assert make_builder().required_tools([BuildTarget.CLI]) == ["make", "strip"]

    def test_no_strip(self, make_builder):
        builder = make_builder({"no-strip": True})
        assert builder.required_tools([BuildTarget.CLI]) == ["make"]

    def test_embed_is_never_stripped(self, make_builder):
        assert make_builder().required_tools([BuildTarget.EMBED]) == ["make"]

    def test_micro_with_phar_needs_patch(self, make_builder, registry):
        registry.add_extension("phar", "--enable-phar")
        tools = make_builder().required_tools([BuildTarget.MICRO])
        assert tools == ["make", "strip", "patch"]

    def test_micro_without_phar(self, make_builder):
        assert "patch" not in make_builder().required_tools([BuildTarget.MICRO])

    def test_missing_make_fails_before_any_command(self, make_builder, config, shell):
        config.programs.discard("make")
        with pytest.raises(ToolNotFoundError, match="make"):
            make_builder().build_php(BuildTarget.CLI)
        assert shell.executed == []

    def test_missing_strip_ignored_with_no_strip(self, make_builder, config, shell):
        config.programs.discard("strip")
        make_builder({"no-strip": True}).build_php(BuildTarget.CLI)
        assert make_commands(shell)


def test_bad_boolean_option_fails_before_any_command(make_builder, shell):
    with pytest.raises(ConfigureError, match="option no-strip"):
        make_builder({"no-strip": "maybe"})
    assert shell.executed == []


class TestExtraLibs:
    def test_archives(self, make_builder, paths):
        assert make_builder().compose_extra_libs() == str(paths.build_lib / "libz.a")

    def test_caller_libs_first(self, make_builder, paths):
        libs = make_builder({"extra-libs": "-lfoo"}).compose_extra_libs()
        assert libs == f"-lfoo {paths.build_lib / 'libz.a'}"

    def test_bloat(self, make_builder, paths):
        libs = make_builder({"bloat": True}).compose_extra_libs()
        assert libs == f"-Xcompiler {paths.build_lib / 'libz.a'}"

    def test_cpp_last(self, make_builder, registry):
        registry.add_extension("intl", "--enable-intl", cpp=True)
        assert make_builder().compose_extra_libs().endswith(" -lstdc++")

    def test_empty(self, make_builder):
        builder = make_builder(registry=LibraryRegistry())
        assert builder.compose_extra_libs() == ""


def test_autoconf_args_via_builder(make_builder, paths):
    builder = make_builder()
    args = builder.make_autoconf_args("swoole", [LibrarySpec("zlib"), LibrarySpec("zstd")])
    assert args == (
        f'ZLIB_CFLAGS="-I{paths.build_include}" '
        f'ZLIB_LIBS="{paths.build_lib / "libz.a"}" --with-zstd=no'
    )


class TestBuildPhp:
    def test_zts_cli_build(self, make_builder, shell, paths):
        builder = make_builder({"arch": "x86_64", "enable-zts": True})
        built = builder.build_php(BuildTarget.CLI)

        assert built == [BuildTarget.CLI]
        configure = shell.executed[shell.index_of("./configure")]
        assert "--enable-zts --disable-zend-signals --enable-zend-max-execution-timers" in (
            configure
        )
        assert "--enable-json" not in configure
        assert "--enable-cli --disable-fpm --disable-embed --disable-micro" in configure

        makes = make_commands(shell)
        assert len(makes) == 1
        assert makes[0].endswith(" cli")
        assert "strip --strip-all php" in shell.executed
        assert (paths.build_bin / "php").exists()
        # sanity check ran last
        assert shell.executed[-1].endswith("-n -r 'echo '\"'\"'hello'\"'\"';'")

    def test_no_strip(self, make_builder, shell):
        make_builder({"no-strip": True}).build_php(BuildTarget.CLI)
        assert not any(cmd.startswith("strip") for cmd in shell.executed)

    def test_all_targets_in_order(self, make_builder, shell, paths):
        built = make_builder().build_php(BuildTarget.ALL)
        assert built == [
            BuildTarget.CLI,
            BuildTarget.FPM,
            BuildTarget.MICRO,
            BuildTarget.EMBED,
        ]
        goals = [cmd.rsplit(" ", 1)[-1] for cmd in make_commands(shell)]
        assert goals == ["cli", "fpm", "micro", "install"]
        assert "OVERALL_TARGET = libphp.la" in paths.makefile.read_text()
        assert (paths.build_bin / "micro.sfx").exists()

    def test_stages_run_sequentially(self, make_builder, shell):
        make_builder().build_php(BuildTarget.CLI | BuildTarget.FPM)
        order = [
            shell.index_of("./buildconf --force"),
            shell.index_of("./configure"),
            shell.index_of("make clean"),
            shell.index_of("make -j4 "),
        ]
        assert order == sorted(order)
        assert make_commands(shell)[-1].endswith(" fpm")

    def test_extra_libs_passed_to_make(self, make_builder, shell, paths):
        make_builder({"extra-libs": "-lfoo"}).build_php(BuildTarget.CLI)
        make = make_commands(shell)[0]
        assert f"EXTRA_LIBS='-lfoo {paths.build_lib / 'libz.a'}'" in make

    def test_empty_mask(self, make_builder, shell):
        with pytest.raises(ConfigureError, match="no build target"):
            make_builder().build_php(BuildTarget.NONE)
        assert shell.executed == []

    def test_micro_on_php7(self, make_builder, shell):
        builder = make_builder(version_probe=lambda: 70400)
        with pytest.raises(UnsupportedVersionError):
            builder.build_php(BuildTarget.MICRO)
        assert "./configure" not in " ".join(shell.executed)
        assert make_commands(shell) == []

    def test_php7_cli_enables_json(self, make_builder, shell):
        builder = make_builder(version_probe=lambda: 70400)
        builder.build_php(BuildTarget.CLI)
        assert "--enable-json" in shell.executed[shell.index_of("./configure")]

    def test_cross_build_skips_sanity(self, make_builder, shell):
        make_builder({"arch": "aarch64"}).build_php(BuildTarget.CLI)
        assert not any("-n -r" in cmd for cmd in shell.executed)
        assert "aarch64-linux-musl-gcc" in shell.executed[shell.index_of("./configure")]

    def test_sanity_failure_is_fatal(self, make_builder, shell):
        shell.results["-n -r"] = (0, "")
        with pytest.raises(SanityCheckError):
            make_builder().build_php(BuildTarget.CLI)


def test_static_library_in_registry_is_linked(make_builder, registry, shell, paths):
    registry.add_library(
        StaticLibrary("openssl", paths.build_lib, paths.build_include, ["libssl.a", "libcrypto.a"])
    )
    make_builder().build_php(BuildTarget.CLI)
    make = make_commands(shell)[0]
    assert make.index("libz.a") < make.index("libssl.a") < make.index("libcrypto.a")


class TestExtensionArgs:
    def test_plain_extensions(self, make_builder, registry):
        registry.add_extension("ctype")
        registry.add_extension("phar", "--enable-phar")
        assert make_builder().make_extension_args() == ["--with-zlib", "--enable-phar"]

    def test_library_args_follow_extension_args(self, make_builder, registry, paths):
        registry.add_extension(
            "curl",
            "--with-curl",
            libs=(LibrarySpec("zlib"), LibrarySpec("zstd", disable_args="--without-zstd")),
        )
        args = make_builder().make_extension_args()
        assert args[1:] == [
            "--with-curl",
            f'ZLIB_CFLAGS="-I{paths.build_include}" '
            f'ZLIB_LIBS="{paths.build_lib / "libz.a"}" --without-zstd',
        ]

    def test_configure_gets_library_args_in_order(self, make_builder, registry, shell, paths):
        registry.add_extension(
            "curl",
            "--with-curl",
            libs=(LibrarySpec("zlib"), LibrarySpec("zstd", disable_args="--without-zstd")),
        )
        make_builder().build_php(BuildTarget.CLI)
        configure = shell.executed[shell.index_of("./configure")]
        expected = (
            f'--with-curl ZLIB_CFLAGS="-I{paths.build_include}" '
            f'ZLIB_LIBS="{paths.build_lib / "libz.a"}" --without-zstd'
        )
        assert expected in configure
        assert configure.index("--with-zlib") < configure.index("--with-curl")

    def test_from_option_file(self, make_builder, shell, paths):
        data = {
            "libraries": {"zlib": {"static-libs": ["libz.a"]}},
            "extensions": {
                "curl": {
                    "args": "--with-curl",
                    "libs": ["zlib", {"name": "zstd", "disable": "--without-zstd"}],
                },
            },
        }
        registry = LibraryRegistry.from_config(
            data, lib_dir=paths.build_lib, include_dir=paths.build_include
        )
        make_builder(registry=registry).build_php(BuildTarget.CLI)
        configure = shell.executed[shell.index_of("./configure")]
        assert "--with-curl ZLIB_CFLAGS=" in configure
        assert "--without-zstd" in configure
