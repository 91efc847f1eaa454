"""
Command-line interface for dolly.

This module provides the `dolly` CLI tool for building and testing
Bluespec SystemVerilog projects.
"""

import argparse
import logging
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from . import __version__
from .build import BuildOrchestrator
from .config import RunConfig
from .errors import BuildError, DollyError, ManifestError, ResolutionError
from .modules import resolve
from .output import TimedLogger, init_timer, log, log_artifact, log_detail, log_error, log_header, set_verbose
from .project import Project, init_project
from .testing import TestRunner, discover
from .testing.models import TestBench, TestResult
from .testing.report_display import print_report
from .toolchain import BscToolchain

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    project_dir: Path
    top_modules: list[str] = field(default_factory=list)
    verbose: bool = False


@dataclass
class TestArgs:
    """Arguments for the test command."""

    __test__ = False

    project_dir: Path
    pattern: Optional[str] = None
    jobs: Optional[int] = None
    timeout: Optional[float] = None
    verbose: bool = False


def setup_logging(level_name: str) -> None:
    """Send diagnostic logging to stderr at the given level."""
    level = getattr(logging, level_name.upper(), logging.WARNING)
    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(h, "_dolly", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
        handler._dolly = True  # type: ignore[attr-defined]
        root.addHandler(handler)


def _print_failure(title: str, detail: str) -> None:
    print()
    print(f"\033[1;31m✗ {title}\033[0m")
    if detail:
        print()
        print(detail)


def _load_project(project_dir: Path) -> Project:
    with TimedLogger("Loading project", phase=(1, 3)):
        project = Project.load(project_dir)
        log_detail(f"Package: {project.name} v{project.manifest.version}")
        log_detail(f"Root: {project.root_path}", verbose_only=True)
    return project


def build_command(args: BuildArgs, config: RunConfig) -> int:
    """Build the project's top module(s) to Verilog.

    Examples:
        dolly build                   # Build the root module's top module
        dolly build --top mkSimple    # Build a specific top module
        dolly -C path/to/proj build   # Build another project
    """
    try:
        project = _load_project(args.project_dir)

        with TimedLogger("Resolving modules", phase=(2, 3)):
            tree = resolve(project.root_path, project.name)
            log_detail(f"{len(tree)} module(s)")
            for node in tree.nodes():
                log_detail(f"{node.qualified_name}: {node.file_path}", indent=8, verbose_only=True)

        top_modules = args.top_modules or [tree.root.top_module]
        orchestrator = BuildOrchestrator(BscToolchain(config.compiler, config.compile_timeout), project.target_dir)

        for top in top_modules:
            with TimedLogger(f"Building {top}", phase=(3, 3)):
                artifact = orchestrator.build(tree, top)
                log_artifact(artifact.output_path)

        print()
        print("\033[1;32m✓ Build successful!\033[0m")
        return 0

    except BuildError as e:
        _print_failure(str(e), e.captured_output)
        return 1
    except (ManifestError, ResolutionError) as e:
        _print_failure("Build failed", str(e))
        return 1


class _ConsoleTestCallback:
    """Prints one line per finished test bench."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def on_start(self, testbench: TestBench) -> None:
        with self._lock:
            log_detail(f"Running {testbench.build_key} ({testbench.top_module_name})", verbose_only=True)

    def on_result(self, result: TestResult) -> None:
        suffix = f" - {result.reason}" if result.reason else ""
        with self._lock:
            log_detail(f"{result.testbench.build_key}: {result.status.value.upper()}{suffix}")


def test_command(args: TestArgs, config: RunConfig) -> int:
    """Discover and run all test benches.

    Exit code is 0 only if every test bench passed.

    Examples:
        dolly test                  # Run all test benches
        dolly test Simple           # Only benches whose name contains "Simple"
        dolly test -j 4 -t 30       # 4 in parallel, 30s timeout each
    """
    config = config.with_overrides(test_timeout=args.timeout, jobs=args.jobs, verbose=args.verbose)
    try:
        project = _load_project(args.project_dir)

        with TimedLogger("Discovering test benches", phase=(2, 3)):
            tree = resolve(project.root_path, project.name)
            testbenches = discover(tree, project.root_path)
            if args.pattern:
                testbenches = [tb for tb in testbenches if args.pattern in tb.build_key]
            log_detail(f"{len(testbenches)} test bench(es)")

        runner = TestRunner(
            toolchain=BscToolchain(config.compiler, config.compile_timeout),
            target_dir=project.target_dir,
            timeout=config.test_timeout,
            jobs=config.jobs,
            search_dirs=tree.source_dirs(),
            callback=_ConsoleTestCallback(),
        )
        with TimedLogger("Running test benches", phase=(3, 3)):
            report = runner.run_all(testbenches)

    except (ManifestError, ResolutionError) as e:
        _print_failure("Test run failed", str(e))
        return 1

    print()
    print_report(report, Console(), show_output=config.verbose)
    return report.exit_code


def clean_command(project_dir: Path) -> int:
    """Remove the project's target/ directory."""
    try:
        project = Project.load(project_dir)
    except ManifestError as e:
        _print_failure("Clean failed", str(e))
        return 1
    if project.clean():
        log(f"Removed {project.target_dir}")
    else:
        log("Nothing to clean")
    return 0


def init_command(path: Path) -> int:
    """Create a new project with a module and a passing test bench."""
    try:
        manifest = init_project(path)
    except DollyError as e:
        _print_failure("Init failed", str(e))
        return 1
    log(f"Created project {manifest.package_name} in {path}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dolly",
        description="Build and test Bluespec SystemVerilog projects",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-C",
        "--project-dir",
        type=Path,
        default=Path("."),
        help="Start the project search here instead of the current directory",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Compile the project to Verilog")
    build_parser.add_argument(
        "--top",
        dest="top_modules",
        action="append",
        default=[],
        metavar="NAME",
        help="Top module to build (repeatable; default: the root module's top module)",
    )

    test_parser = subparsers.add_parser("test", help="Run unit and integration test benches")
    test_parser.add_argument("pattern", nargs="?", help="Only run benches whose name contains PATTERN")
    test_parser.add_argument("-j", "--jobs", type=int, help="Test benches to run in parallel")
    test_parser.add_argument("-t", "--timeout", type=float, help="Timeout per test bench run in seconds")

    subparsers.add_parser("clean", help="Remove build output")

    init_parser = subparsers.add_parser("init", help="Create a new project")
    init_parser.add_argument("path", type=Path, help="Directory for the new project")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, dispatch a command, and return its exit code."""
    parser = create_parser()
    parsed = parser.parse_args(argv)

    try:
        config = RunConfig.from_env()
    except ValueError as e:
        parser.error(str(e))

    setup_logging(config.log_level)
    init_timer(sys.stdout)
    set_verbose(parsed.verbose)
    log_header("dolly", __version__)

    try:
        if parsed.command == "build":
            return build_command(BuildArgs(parsed.project_dir, parsed.top_modules, parsed.verbose), config)
        if parsed.command == "test":
            args = TestArgs(parsed.project_dir, parsed.pattern, parsed.jobs, parsed.timeout, parsed.verbose)
            return test_command(args, config)
        if parsed.command == "clean":
            return clean_command(parsed.project_dir)
        return init_command(parsed.path)

    except KeyboardInterrupt:
        print()
        print("\033[1;33m✗ Interrupted\033[0m")
        return 130

    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        log_error(f"{type(e).__name__}: {e}")
        if parsed.verbose:
            import traceback

            print()
            print("Traceback:")
            print(traceback.format_exc())
        return 1


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
