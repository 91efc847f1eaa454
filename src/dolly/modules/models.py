"""Module tree data model.

A ModuleNode is one Bluespec source file treated as a module. Children are
kept in directive order because bsc argument order can matter.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

DEFAULT_TOP_MODULE = "mkTopModule"
SOURCE_EXTENSION = ".bsv"
TESTBENCH_SUFFIX = "_tb"


@dataclass
class ModuleNode:
    """A module discovered through directives.

    Attributes:
        identifier: Bluespec package name (the file stem); unique across a tree
        file_path: Source file path
        path_segments: Identifiers from the root down to this module
        children: Submodules in directive order
        top_module_override: Explicit `//!topmodule` value, if any
    """

    identifier: str
    file_path: Path
    path_segments: tuple[str, ...]
    children: list["ModuleNode"] = field(default_factory=list)
    top_module_override: Optional[str] = None

    @property
    def top_module(self) -> str:
        """Effective top module name for this file."""
        return self.top_module_override or DEFAULT_TOP_MODULE

    @property
    def qualified_name(self) -> str:
        return "/".join(self.path_segments)

    @property
    def directory(self) -> Path:
        return self.file_path.parent

    def walk(self) -> Iterator["ModuleNode"]:
        """Pre-order traversal (self first, then children in order)."""
        yield self
        for child in self.children:
            yield from child.walk()

    def walk_postorder(self) -> Iterator["ModuleNode"]:
        """Post-order traversal (dependencies before their parents)."""
        for child in self.children:
            yield from child.walk_postorder()
        yield self


def testbench_path_for(module_path: Path) -> Path:
    """Sibling test bench path for a module file (Foo.bsv -> Foo_tb.bsv)."""
    return module_path.with_name(f"{module_path.stem}{TESTBENCH_SUFFIX}{module_path.suffix}")


def submodule_path(parent_dir: Path, name: str) -> Path:
    """Expected source path of submodule `name` declared in `parent_dir`."""
    return parent_dir / name / f"{name}{SOURCE_EXTENSION}"


@dataclass
class ModuleTree:
    """A resolved module tree rooted at one source file."""

    root: ModuleNode

    def __len__(self) -> int:
        return sum(1 for _ in self.root.walk())

    def nodes(self) -> list[ModuleNode]:
        return list(self.root.walk())

    def find(self, identifier: str) -> Optional[ModuleNode]:
        for node in self.root.walk():
            if node.identifier == identifier:
                return node
        return None

    def source_files(self) -> list[Path]:
        """Every source file in compile order, deduplicated by identifier.

        Dependencies come before the modules that declare them; siblings keep
        their directive order.
        """
        seen: set[str] = set()
        files: list[Path] = []
        for node in self.root.walk_postorder():
            if node.identifier in seen:
                continue
            seen.add(node.identifier)
            files.append(node.file_path)
        return files

    def source_dirs(self) -> list[Path]:
        """Distinct directories holding the tree's files, in pre-order."""
        dirs: list[Path] = []
        for node in self.root.walk():
            if node.directory not in dirs:
                dirs.append(node.directory)
        return dirs
