"""Pytest configuration and shared fixtures for dolly tests.

Provides:
- make_project: writes a dolly project (manifest + sources) under tmp_path
- FakeToolchain: in-memory Toolchain so no test needs a real bsc
"""

import sys
from pathlib import Path
from typing import Callable, Optional, Union

import pytest

from dolly.errors import BuildError
from dolly.subprocess_utils import ProcessOutput

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


@pytest.fixture(autouse=True)
def _restore_stdio():  # noqa: PT004
    """Ensure stdout/stderr are restored if a test closed them."""
    yield

    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__


@pytest.fixture
def simple_example() -> Path:
    """Path to the bundled examples/simple project."""
    return EXAMPLES_DIR / "simple"


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a project: make_project("Simple", {"src/Simple.bsv": "..."})."""

    def _make(name: str = "Simple", files: Optional[dict[str, str]] = None, version: str = "0.1.0") -> Path:
        root = tmp_path / "project"
        root.mkdir(exist_ok=True)
        (root / "dolly.toml").write_text(f'[package]\nname = "{name}"\nversion = "{version}"\n')
        for rel, content in (files or {}).items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return root

    return _make


RunOutcome = Union[ProcessOutput, Exception]


class FakeToolchain:
    """Toolchain double keyed by top module name.

    Args:
        run_outcomes: top module -> ProcessOutput to return, or exception to raise
        build_failures: top modules whose compilation raises BuildError
    """

    def __init__(
        self,
        run_outcomes: Optional[dict[str, RunOutcome]] = None,
        build_failures: Optional[set[str]] = None,
    ) -> None:
        self.run_outcomes = run_outcomes or {}
        self.build_failures = build_failures or set()
        self.verilog_calls: list[tuple[list[Path], str, Path, list[Path]]] = []
        self.sim_calls: list[tuple[list[Path], str, Path, list[Path]]] = []
        self.run_calls: list[tuple[Path, float]] = []

    def compile_verilog(self, files, top_module, output_dir, search_dirs=()):
        self.verilog_calls.append((list(files), top_module, output_dir, list(search_dirs)))
        if top_module in self.build_failures:
            raise BuildError(top_module, 1, f"Error: unbound variable {top_module}")
        artifact = output_dir / f"{top_module}.v"
        artifact.write_text(f"module {top_module}();\nendmodule\n")
        return artifact

    def compile_simulation(self, files, top_module, output_dir, search_dirs=()):
        self.sim_calls.append((list(files), top_module, output_dir, list(search_dirs)))
        if top_module in self.build_failures:
            raise BuildError(top_module, 1, f"Error: unbound variable {top_module}")
        executable = output_dir / top_module
        executable.write_text("#!/bin/sh\n")
        return executable

    def run(self, executable, timeout):
        self.run_calls.append((executable, timeout))
        outcome = self.run_outcomes.get(executable.name, ProcessOutput(exit_code=0, output=">>>PASS\n"))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def fake_toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def toolchain_factory() -> type[FakeToolchain]:
    """The FakeToolchain class, for tests that need custom outcomes."""
    return FakeToolchain
