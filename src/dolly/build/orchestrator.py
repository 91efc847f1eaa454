"""
Build orchestration for dolly projects.

Collects the transitive source set of a resolved module tree and compiles it
once with the designated top module, writing to target/<top>/<top>.v.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from ..errors import BuildError
from ..modules.models import ModuleTree
from ..toolchain import Toolchain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildArtifact:
    """Output of a successful build."""

    top_module_name: str
    output_path: Path
    build_time: float = 0.0


def artifact_path(target_dir: Path, top_module_name: str) -> Path:
    """Deterministic artifact location: target/<top>/<top>.v."""
    return target_dir / top_module_name / f"{top_module_name}.v"


class BuildOrchestrator:
    """
    Compiles a module tree into a synthesizable Verilog artifact.

    Example usage:
        orchestrator = BuildOrchestrator(BscToolchain(), project.target_dir)
        artifact = orchestrator.build(tree, "mkSimple")
    """

    def __init__(self, toolchain: Toolchain, target_dir: Path):
        """
        Initialize orchestrator.

        Args:
            toolchain: Compiler capability
            target_dir: Root of all build output (usually <project>/target)
        """
        self.toolchain = toolchain
        self.target_dir = target_dir

    def build(
        self,
        module_tree: ModuleTree,
        top_module_name: str,
        search_dirs: Sequence[Path] = (),
    ) -> BuildArtifact:
        """Compile every file reachable from the tree.

        Args:
            module_tree: Resolved module tree
            top_module_name: Module to synthesize
            search_dirs: Extra package search directories

        Returns:
            BuildArtifact pointing at target/<top>/<top>.v

        Raises:
            BuildError: If the compiler fails (never retried)
        """
        start_time = time.time()
        files = module_tree.source_files()
        expected = artifact_path(self.target_dir, top_module_name)
        output_dir = expected.parent
        output_dir.mkdir(parents=True, exist_ok=True)

        logger.debug(f"Building {top_module_name} from {len(files)} file(s) into {output_dir}")
        produced = self.toolchain.compile_verilog(files, top_module_name, output_dir, list(search_dirs))

        if produced.resolve() != expected.resolve():
            raise BuildError(top_module_name, 0, f"Compiler wrote {produced}, expected {expected}")

        build_time = time.time() - start_time
        logger.info(f"Built {top_module_name} in {build_time:.2f}s -> {expected}")
        return BuildArtifact(top_module_name=top_module_name, output_path=expected, build_time=build_time)
