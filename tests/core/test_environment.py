# SPDX-License-Identifier: MIT
"""Tests for spbuild.core.environment."""

import pytest

from spbuild.builders.paths import BuildPaths
from spbuild.core.environment import (
    BASE_LIBS,
    EnvVarSet,
    extend_path,
    make_configure_env,
    make_php_env,
    make_pkgconf_env,
)
from spbuild.toolchains.musl import ToolchainSpec

TOOLCHAIN = ToolchainSpec(
    cc="x86_64-linux-musl-gcc",
    cxx="x86_64-linux-musl-g++",
    ar="x86_64-linux-musl-ar",
    ld="/usr/local/musl/x86_64-linux-musl/bin/ld.gold",
    library_path="/usr/local/musl/x86_64-linux-musl/lib",
    ld_library_path="/usr/local/musl/x86_64-linux-musl/lib",
    arch="x86_64",
    gnu_arch="x86_64",
    native=False,
)


@pytest.fixture
def work_paths(tmp_path):
    return BuildPaths.at(tmp_path)


class TestEnvVarSet:
    def test_preserves_insertion_order(self):
        env = EnvVarSet({"B": "2", "A": "1"})
        assert list(env) == ["B", "A"]

    def test_to_shell_quotes_values(self):
        env = EnvVarSet({"CC": "gcc", "CFLAGS": "-O2 -g"})
        assert env.to_shell() == "CC=gcc CFLAGS='-O2 -g'"

    def test_to_shell_empty_value(self):
        assert EnvVarSet({"CFLAGS": ""}).to_shell() == "CFLAGS=''"

    def test_str_is_shell_form(self):
        env = EnvVarSet({"CC": "gcc"})
        assert str(env) == "CC=gcc"

    def test_extend_returns_new_set(self):
        base = EnvVarSet({"A": "1"})
        extended = base.extend({"B": "2"})
        assert list(base) == ["A"]
        assert list(extended) == ["A", "B"]

    def test_extend_existing_key_keeps_position(self):
        env = EnvVarSet({"A": "1", "B": "2"}).extend({"A": "3", "C": "4"})
        assert list(env.items()) == [("A", "3"), ("B", "2"), ("C", "4")]

    def test_values_are_strings(self):
        env = EnvVarSet({"JOBS": 4})  # type: ignore[dict-item]
        assert env["JOBS"] == "4"

    def test_as_environ_layers_over_base(self):
        env = EnvVarSet({"CC": "clang"})
        environ = env.as_environ({"CC": "gcc", "HOME": "/root"})
        assert environ == {"CC": "clang", "HOME": "/root"}

    def test_serialization_is_stable(self):
        items = {"PKG_CONFIG": "/b/pkg-config", "CC": "gcc", "CFLAGS": "-a -b"}
        assert EnvVarSet(items).to_shell() == EnvVarSet(items).to_shell()


class TestExtendPath:
    def test_prepends(self):
        assert extend_path("/b/bin", "/usr/bin:/bin") == "/b/bin:/usr/bin:/bin"

    def test_empty_inherited(self):
        assert extend_path("/b/bin", "") == "/b/bin"

    def test_reads_process_path(self, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin")
        assert extend_path("/b/bin") == "/b/bin:/usr/bin"


class TestMakeEnvs:
    def test_pkgconf_env(self, work_paths):
        env = make_pkgconf_env(work_paths)
        assert list(env) == ["PKG_CONFIG", "PKG_CONFIG_PATH"]
        assert env["PKG_CONFIG"] == str(work_paths.build_bin / "pkg-config")
        assert env["PKG_CONFIG_PATH"] == str(work_paths.pkgconfig_dir)

    def test_configure_env(self, work_paths):
        env = make_configure_env(
            make_pkgconf_env(work_paths), TOOLCHAIN, work_paths, "/usr/bin"
        )
        assert list(env) == [
            "PKG_CONFIG",
            "PKG_CONFIG_PATH",
            "CC",
            "CXX",
            "AR",
            "LD",
            "PATH",
        ]
        assert env["CC"] == "x86_64-linux-musl-gcc"
        assert env["PATH"] == f"{work_paths.build_bin}:/usr/bin"

    def test_php_env(self, work_paths):
        env = make_php_env(
            make_pkgconf_env(work_paths), TOOLCHAIN, "", work_paths, "/usr/bin"
        )
        assert env["CFLAGS"] == ""
        assert env["LIBS"] == BASE_LIBS == "-ldl -lpthread"
        assert env["LD"] == TOOLCHAIN.ld
        assert env["PATH"].endswith(":/usr/bin")
        assert "LIBS='-ldl -lpthread'" in env.to_shell()
