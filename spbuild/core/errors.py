# SPDX-License-Identifier: MIT
"""Custom exceptions for spbuild.

All spbuild exceptions inherit from SpbuildError, which includes
optional context information for better error messages.

Errors fall into three families:
- ConfigureError: the requested build cannot be expressed (bad arch,
  unsupported compiler, feature missing for the interpreter version).
- FileSystemError: a required path cannot be created, read or rewritten.
- BuildRuntimeError: an external tool failed, is missing, or built
  something that does not run.
"""

from __future__ import annotations

from collections.abc import Sequence


class SpbuildError(Exception):
    """Base class for all spbuild exceptions.

    Attributes:
        message: The error message.
        location: Optional context (stage or file) where the error occurred.
    """

    def __init__(
        self,
        message: str,
        location: str | None = None,
    ) -> None:
        self.message = message
        self.location = location
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class ConfigureError(SpbuildError):
    """Error while resolving the build configuration.

    Raised when options are contradictory, a compiler family is not
    supported, or a feature is unavailable for the requested version.
    """


class UnsupportedArchError(ConfigureError):
    """Architecture name has no canonical GNU triple form.

    Attributes:
        arch: The architecture name that could not be mapped.
    """

    def __init__(self, arch: str, location: str | None = None) -> None:
        self.arch = arch
        super().__init__(f"unsupported arch: {arch}", location)


class UnsupportedVersionError(ConfigureError):
    """Feature requires a newer interpreter version.

    Attributes:
        feature: What was requested.
        required: Minimum version id.
        actual: Version id of the source tree.
    """

    def __init__(
        self,
        feature: str,
        required: int,
        actual: int,
        location: str | None = None,
    ) -> None:
        self.feature = feature
        self.required = required
        self.actual = actual
        super().__init__(
            f"{feature} requires version id >= {required}, got {actual}", location
        )


class FileSystemError(SpbuildError):
    """A filesystem operation failed.

    Attributes:
        path: The path involved.
    """

    def __init__(
        self, message: str, path: str, location: str | None = None
    ) -> None:
        self.path = path
        super().__init__(f"{message}: {path}", location)


class BuildRuntimeError(SpbuildError):
    """An external tool failed, is missing, or produced a broken artifact."""


class BuildCommandError(BuildRuntimeError):
    """External command exited with a non-zero status.

    Attributes:
        command: The command that was run.
        returncode: Its exit status.
        cwd: Working directory it ran in.
    """

    def __init__(
        self,
        command: str | Sequence[str],
        returncode: int,
        cwd: str | None = None,
        location: str | None = None,
    ) -> None:
        if not isinstance(command, str):
            command = " ".join(command)
        self.command = command
        self.returncode = returncode
        self.cwd = cwd
        super().__init__(
            f"command failed with exit code {returncode}: {command}", location
        )


class ToolNotFoundError(BuildRuntimeError):
    """Required tool was not found.

    Attributes:
        tool: The name of the tool that was not found.
    """

    def __init__(self, tool: str, location: str | None = None) -> None:
        self.tool = tool
        super().__init__(f"tool not found: {tool}", location)


class SanityCheckError(BuildRuntimeError):
    """A freshly built binary failed its self check.

    Attributes:
        target: Name of the target that failed.
        output: Whatever the binary printed.
    """

    def __init__(
        self,
        target: str,
        output: str,
        location: str | None = None,
    ) -> None:
        self.target = target
        self.output = output
        super().__init__(f"{target} sanity check failed: {output!r}", location)
