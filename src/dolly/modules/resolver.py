"""Module tree resolution.

Starting from a root source file, the resolver follows `//!submodule`
directives recursively. Submodule `<id>` declared in a file living in
directory D is expected at `D/<id>/<id>.bsv`.

Problems in sibling directives (missing files, duplicates, cycles, malformed
lines) are collected over the whole pass and raised together as a single
ResolutionError. Only a missing root file aborts immediately.
"""

import logging
from pathlib import Path
from typing import Optional

from ..errors import ResolutionError, RootModuleNotFoundError
from .directives import Malformed, SubmoduleDeclared, scan_file, select_top_module
from .issues import (
    CyclicModuleReference,
    DuplicateModule,
    IssueCollector,
    MalformedDirective,
    SubmoduleNotFound,
)
from .models import SOURCE_EXTENSION, ModuleNode, ModuleTree, submodule_path

logger = logging.getLogger(__name__)


def root_module_path(project_root: Path, package_name: str) -> Path:
    """Path of the package root module: src/<package_name>.bsv."""
    return project_root / "src" / f"{package_name}{SOURCE_EXTENSION}"


class ModuleResolver:
    """Builds a ModuleTree from directive-annotated source files.

    The resolver keeps the identifiers currently being resolved on an
    explicit stack, so a cycle is reported with its exact path instead of
    recursing forever. Each call to resolve_file() starts from a clean state;
    resolving the same files twice yields structurally identical trees.

    Example usage:
        resolver = ModuleResolver()
        tree = resolver.resolve_file(Path("src/Simple.bsv"))
        for node in tree.nodes():
            print(node.identifier, node.file_path)
    """

    def __init__(self) -> None:
        self._collector = IssueCollector()
        self._by_identifier: dict[str, ModuleNode] = {}
        self._resolving: list[str] = []
        self._resolving_paths: set[Path] = set()

    def resolve_file(self, root_path: Path, identifier: Optional[str] = None) -> ModuleTree:
        """Resolve the tree rooted at a source file.

        Args:
            root_path: Root source file
            identifier: Root identifier (defaults to the file stem)

        Returns:
            The resolved ModuleTree

        Raises:
            RootModuleNotFoundError: If root_path does not exist
            ResolutionError: If any issue was found anywhere in the tree
        """
        if not root_path.is_file():
            raise RootModuleNotFoundError(root_path)

        self._collector = IssueCollector()
        self._by_identifier = {}
        self._resolving = []
        self._resolving_paths = set()

        root_id = identifier or root_path.stem
        logger.debug(f"Resolving module tree from {root_path}")
        root = self._resolve_node(root_path, root_id, (root_id,))

        if self._collector.has_issues():
            raise ResolutionError(self._collector.issues)

        tree = ModuleTree(root)
        logger.debug(f"Resolved {len(tree)} module(s) from {root_path}")
        return tree

    def _resolve_node(self, path: Path, identifier: str, segments: tuple[str, ...]) -> ModuleNode:
        node = ModuleNode(identifier=identifier, file_path=path, path_segments=segments)
        self._by_identifier[identifier] = node

        self._resolving.append(identifier)
        resolved_path = path.resolve()
        self._resolving_paths.add(resolved_path)
        try:
            logger.debug(f"Processing module {identifier} ({path})")
            events = scan_file(path)
            node.top_module_override = select_top_module(events, path)

            for event in events:
                if isinstance(event, Malformed):
                    self._collector.add(MalformedDirective(file=path, line=event.line, text=event.text))
                elif isinstance(event, SubmoduleDeclared):
                    child = self._resolve_child(node, event.name)
                    if child is not None:
                        node.children.append(child)
        finally:
            self._resolving.pop()
            self._resolving_paths.discard(resolved_path)

        return node

    def _resolve_child(self, parent: ModuleNode, name: str) -> Optional[ModuleNode]:
        child_path = submodule_path(parent.directory, name)

        if name in self._resolving:
            start = self._resolving.index(name)
            self._collector.add(CyclicModuleReference(cycle=tuple(self._resolving[start:]) + (name,)))
            return None

        existing = self._by_identifier.get(name)
        if existing is not None:
            if existing.file_path.resolve() == child_path.resolve():
                logger.warning(f"Submodule '{name}' declared more than once in {parent.file_path}")
            else:
                self._collector.add(
                    DuplicateModule(identifier=name, existing_path=existing.file_path, conflicting_path=child_path)
                )
            return None

        if not child_path.is_file():
            self._collector.add(SubmoduleNotFound(parent=parent.identifier, name=name, expected_path=child_path))
            return None

        # Symlinked directories can bring a file back under a new name
        if child_path.resolve() in self._resolving_paths:
            self._collector.add(CyclicModuleReference(cycle=tuple(self._resolving) + (name,)))
            return None

        return self._resolve_node(child_path, name, parent.path_segments + (name,))


def resolve(project_root: Path, package_name: str) -> ModuleTree:
    """Resolve the module tree of a project's root package.

    Args:
        project_root: Directory holding dolly.toml
        package_name: Package name from the manifest

    Returns:
        The resolved ModuleTree
    """
    return ModuleResolver().resolve_file(root_module_path(project_root, package_name), package_name)
