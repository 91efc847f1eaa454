"""Run configuration for dolly commands.

Values come from (lowest to highest priority): built-in defaults, DOLLY_*
environment variables, then command-line flags.

Environment variables:
    DOLLY_BSC: Bluespec compiler executable (default: bsc)
    DOLLY_TEST_TIMEOUT: Timeout for each simulation run in seconds (default: 60)
    DOLLY_COMPILE_TIMEOUT: Timeout for each compiler invocation in seconds (default: 600)
    DOLLY_JOBS: Number of test benches run in parallel (default: CPU count)
    DOLLY_LOG: Log level name for diagnostic logging (default: WARNING)
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

DEFAULT_COMPILER = "bsc"
DEFAULT_TEST_TIMEOUT = 60.0
DEFAULT_COMPILE_TIMEOUT = 600.0
DEFAULT_LOG_LEVEL = "WARNING"


def _default_jobs() -> int:
    return os.cpu_count() or 1


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    if not env.get(name):
        return default
    value = float(env[name])
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class RunConfig:
    """Settings shared by the build and test commands.

    Attributes:
        compiler: Bluespec compiler executable
        test_timeout: Wall-clock limit in seconds for each simulation run
        compile_timeout: Wall-clock limit in seconds for each compiler invocation
        jobs: Maximum test benches run concurrently
        verbose: Show captured output and detailed progress
        log_level: Level name for the logging module
    """

    compiler: str = DEFAULT_COMPILER
    test_timeout: float = DEFAULT_TEST_TIMEOUT
    compile_timeout: float = DEFAULT_COMPILE_TIMEOUT
    jobs: int = 1
    verbose: bool = False
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RunConfig":
        """Build a config from DOLLY_* environment variables.

        Raises:
            ValueError: If a numeric variable cannot be parsed or is not positive
        """
        env = os.environ if environ is None else environ

        test_timeout = _positive_float(env, "DOLLY_TEST_TIMEOUT", DEFAULT_TEST_TIMEOUT)
        compile_timeout = _positive_float(env, "DOLLY_COMPILE_TIMEOUT", DEFAULT_COMPILE_TIMEOUT)

        jobs = _default_jobs()
        if env.get("DOLLY_JOBS"):
            jobs = int(env["DOLLY_JOBS"])
            if jobs < 1:
                raise ValueError(f"DOLLY_JOBS must be at least 1, got {jobs}")

        return cls(
            compiler=env.get("DOLLY_BSC") or DEFAULT_COMPILER,
            test_timeout=test_timeout,
            compile_timeout=compile_timeout,
            jobs=jobs,
            log_level=(env.get("DOLLY_LOG") or DEFAULT_LOG_LEVEL).upper(),
        )

    def with_overrides(
        self,
        test_timeout: Optional[float] = None,
        jobs: Optional[int] = None,
        verbose: Optional[bool] = None,
    ) -> "RunConfig":
        """Return a copy with the given command-line values applied."""
        changes: dict = {}
        if test_timeout is not None:
            changes["test_timeout"] = test_timeout
        if jobs is not None:
            changes["jobs"] = jobs
        if verbose:
            changes["verbose"] = True
        return replace(self, **changes)
