"""Toolchain capability used by the build orchestrator and test runner.

The Toolchain protocol hides the external compiler and simulator behind
three calls so orchestration logic can be tested against a fake:

- compile_verilog(): sources -> synthesizable <top>.v
- compile_simulation(): sources -> simulation executable
- run(): executable -> captured output

BscToolchain implements it with the Bluespec compiler (bsc).
"""

import logging
import os
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from .config import DEFAULT_COMPILER
from .errors import BuildError, TestExecutionError
from .subprocess_utils import ProcessOutput, run_with_timeout

logger = logging.getLogger(__name__)


@runtime_checkable
class Toolchain(Protocol):
    """Protocol for compiling and running Bluespec designs."""

    def compile_verilog(
        self, files: Sequence[Path], top_module: str, output_dir: Path, search_dirs: Sequence[Path]
    ) -> Path:
        """Compile sources to Verilog.

        Args:
            files: Source files in compile order
            top_module: Module to generate
            output_dir: Directory for all build products (must exist)
            search_dirs: Additional package search directories

        Returns:
            Path to the generated <top_module>.v

        Raises:
            BuildError: If compilation fails
        """
        ...

    def compile_simulation(
        self, files: Sequence[Path], top_module: str, output_dir: Path, search_dirs: Sequence[Path]
    ) -> Path:
        """Compile and link sources into a simulation executable.

        Returns:
            Path to the executable

        Raises:
            BuildError: If compilation or linking fails
        """
        ...

    def run(self, executable: Path, timeout: float) -> ProcessOutput:
        """Run a simulation executable and capture its output.

        Raises:
            TestExecutionError: If the executable cannot be started
        """
        ...


class BscToolchain:
    """Toolchain backed by the Bluespec compiler.

    Args:
        compiler: bsc executable name or path
        timeout: Wall-clock limit in seconds for each compiler invocation
    """

    def __init__(self, compiler: str = DEFAULT_COMPILER, timeout: float = 600.0) -> None:
        self.compiler = compiler
        self.timeout = timeout

    @staticmethod
    def _search_path(files: Sequence[Path], search_dirs: Sequence[Path]) -> str:
        dirs: list[str] = []
        for d in [f.parent for f in files] + list(search_dirs):
            entry = str(d.resolve())
            if entry not in dirs:
                dirs.append(entry)
        # '+' keeps bsc's standard library path
        return ":".join(dirs + ["+"])

    def _invoke(self, args: list[str], top_module: str, output_dir: Path) -> ProcessOutput:
        cmd = [self.compiler, *args]
        try:
            result = run_with_timeout(cmd, cwd=output_dir, timeout=self.timeout)
        except OSError as e:
            raise BuildError(top_module, -1, f"Failed to start {self.compiler}: {e}") from e

        if result.timed_out:
            raise BuildError(top_module, -1, f"{result.output}\n{self.compiler} timed out after {self.timeout}s")
        if result.exit_code != 0:
            raise BuildError(top_module, result.exit_code, result.output)
        return result

    def compile_verilog(
        self, files: Sequence[Path], top_module: str, output_dir: Path, search_dirs: Sequence[Path] = ()
    ) -> Path:
        out = str(output_dir.resolve())
        args = [
            "-u", "-verilog",
            "-g", top_module,
            "-bdir", out, "-vdir", out, "-info-dir", out,
            "-p", self._search_path(files, search_dirs),
            *[str(f.resolve()) for f in files],
        ]
        logger.info(f"Compiling {top_module} to Verilog ({len(files)} file(s))")
        self._invoke(args, top_module, output_dir)

        artifact = output_dir / f"{top_module}.v"
        if not artifact.is_file():
            raise BuildError(top_module, 0, f"{self.compiler} reported success but {artifact} was not generated")
        return artifact

    def compile_simulation(
        self, files: Sequence[Path], top_module: str, output_dir: Path, search_dirs: Sequence[Path] = ()
    ) -> Path:
        out = str(output_dir.resolve())
        compile_args = [
            "-u", "-sim",
            "-g", top_module,
            "-bdir", out, "-simdir", out, "-info-dir", out,
            "-p", self._search_path(files, search_dirs),
            *[str(f.resolve()) for f in files],
        ]
        logger.info(f"Compiling {top_module} for simulation ({len(files)} file(s))")
        self._invoke(compile_args, top_module, output_dir)

        executable = output_dir / top_module
        link_args = ["-sim", "-e", top_module, "-o", str(executable.resolve()), "-bdir", out, "-simdir", out]
        self._invoke(link_args, top_module, output_dir)
        return executable

    def run(self, executable: Path, timeout: float) -> ProcessOutput:
        if not os.access(executable, os.X_OK):
            raise TestExecutionError(f"Simulation executable not found: {executable}")
        try:
            return run_with_timeout([str(executable.resolve())], cwd=executable.parent, timeout=timeout)
        except OSError as e:
            raise TestExecutionError(f"Failed to start {executable}: {e}") from e
