"""Exception hierarchy for dolly.

All errors raised by the build system derive from DollyError so the CLI can
report them uniformly:

- ManifestError: dolly.toml is missing or lacks a required field
- ResolutionError: module tree could not be built (carries every issue found)
- BuildError: the external compiler exited with a non-zero status
- TestExecutionError: a test bench executable could not be started or timed out
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from .modules.issues import ResolutionIssue


class DollyError(Exception):
    """Base class for all dolly errors."""


class ManifestError(DollyError):
    """Raised when the project manifest cannot be loaded."""


class ManifestNotFoundError(ManifestError):
    """Raised when no dolly.toml exists at or above the search path."""

    def __init__(self, search_root: Path, message: Optional[str] = None):
        self.search_root = search_root
        super().__init__(message or f"dolly.toml not found in {search_root} or any parent directory")


class ManifestMalformedError(ManifestError):
    """Raised when dolly.toml cannot be parsed or misses a required field."""

    def __init__(self, manifest_path: Path, detail: str):
        self.manifest_path = manifest_path
        self.detail = detail
        super().__init__(f"{manifest_path}: {detail}")


class ResolutionError(DollyError):
    """Raised when the module tree cannot be resolved.

    Structural problems found in sibling directives are collected during a
    single pass, so one ResolutionError may carry several issues.

    Attributes:
        issues: Every problem found during resolution, in discovery order
    """

    def __init__(self, issues: Sequence["ResolutionIssue"], message: Optional[str] = None):
        self.issues = list(issues)
        if message is None:
            lines = [f"Module resolution failed with {len(self.issues)} issue(s):"]
            lines.extend(f"  {issue.format()}" for issue in self.issues)
            message = "\n".join(lines)
        super().__init__(message)


class RootModuleNotFoundError(ResolutionError):
    """Raised when the root module source file does not exist."""

    def __init__(self, root_path: Path):
        self.root_path = root_path
        super().__init__([], f"Root module not found: {root_path}")


class BuildError(DollyError):
    """Raised when the external compiler exits with a non-zero status.

    Attributes:
        top_module_name: Top module that was being compiled
        exit_code: Compiler exit code (-1 if it never produced one)
        captured_output: Combined stdout/stderr of the compiler
    """

    def __init__(self, top_module_name: str, exit_code: int, captured_output: str):
        self.top_module_name = top_module_name
        self.exit_code = exit_code
        self.captured_output = captured_output
        super().__init__(f"Build of {top_module_name} failed (exit code {exit_code})")


class TestExecutionError(DollyError):
    """Raised when a test bench executable could not run to completion.

    Attributes:
        reason: Short description (e.g. "timed out after 60.0s")
        output: Whatever output was captured before the failure
    """

    __test__ = False  # not a pytest test class

    def __init__(self, reason: str, output: str = ""):
        self.reason = reason
        self.output = output
        super().__init__(reason)
