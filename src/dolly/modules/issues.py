"""Resolution issues - structured problems found while resolving modules.

Issues are collected during a full resolution pass instead of aborting on
the first one, so a single run reports every missing submodule, duplicate,
cycle, and malformed directive at once.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmoduleNotFound:
    """A submodule directive points at a file that does not exist."""

    parent: str
    name: str
    expected_path: Path

    def format(self) -> str:
        return f"Submodule '{self.name}' declared by '{self.parent}' not found (expected {self.expected_path})"


@dataclass(frozen=True)
class DuplicateModule:
    """The same module identifier resolves to two different files."""

    identifier: str
    existing_path: Path
    conflicting_path: Path

    def format(self) -> str:
        return f"Duplicate module '{self.identifier}': {self.existing_path} and {self.conflicting_path}"


@dataclass(frozen=True)
class CyclicModuleReference:
    """A module transitively declares itself as a submodule.

    Attributes:
        cycle: Identifiers along the cycle, first and last entries equal
    """

    cycle: tuple[str, ...]

    def format(self) -> str:
        return "Cyclic module reference: " + " -> ".join(self.cycle)


@dataclass(frozen=True)
class MalformedDirective:
    """A directive prefix was found without a usable argument."""

    file: Path
    line: int
    text: str

    def format(self) -> str:
        return f"Malformed directive at {self.file}:{self.line}: {self.text.strip()}"


ResolutionIssue = Union[SubmoduleNotFound, DuplicateModule, CyclicModuleReference, MalformedDirective]


class IssueCollector:
    """Collects resolution issues in the order they are found."""

    def __init__(self) -> None:
        self.issues: list[ResolutionIssue] = []

    def add(self, issue: ResolutionIssue) -> None:
        """Record an issue and log it.

        Args:
            issue: Resolution issue to record
        """
        self.issues.append(issue)
        logger.debug(f"Resolution issue: {issue.format()}")

    def has_issues(self) -> bool:
        return bool(self.issues)
