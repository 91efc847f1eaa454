"""Directive scanner for Bluespec source files.

Module structure is declared inside ordinary comments:

    //!submodule another_module
    //!topmodule mkSimple_tb

The scanner turns the lines of a file into an ordered stream of typed
events. It does no filesystem work beyond reading the file, so the matching
rules can be tested on plain strings.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

logger = logging.getLogger(__name__)

SUBMODULE = "submodule"
TOPMODULE = "topmodule"

_DIRECTIVE_RE = re.compile(r"//!(submodule|topmodule)\b(.*)$")
_IDENTIFIER_RE = re.compile(r"\w+")


@dataclass(frozen=True)
class SubmoduleDeclared:
    """`//!submodule <name>` found on a line (1-based)."""

    name: str
    line: int


@dataclass(frozen=True)
class TopModuleOverride:
    """`//!topmodule <name>` found on a line (1-based)."""

    name: str
    line: int


@dataclass(frozen=True)
class Malformed:
    """A directive prefix with a missing or invalid argument."""

    kind: str
    line: int
    text: str


DirectiveEvent = Union[SubmoduleDeclared, TopModuleOverride, Malformed]


def parse_directive(text: str, line: int) -> Optional[DirectiveEvent]:
    """Parse a single source line.

    Args:
        text: Line contents
        line: 1-based line number, carried into the event

    Returns:
        The directive event, or None if the line holds no directive
    """
    match = _DIRECTIVE_RE.search(text)
    if match is None:
        return None

    kind, rest = match.group(1), match.group(2)
    tokens = rest.split()
    if not tokens or _IDENTIFIER_RE.fullmatch(tokens[0]) is None:
        return Malformed(kind=kind, line=line, text=text)

    if kind == SUBMODULE:
        return SubmoduleDeclared(name=tokens[0], line=line)
    return TopModuleOverride(name=tokens[0], line=line)


def scan_lines(lines: Iterable[str]) -> Iterator[DirectiveEvent]:
    """Yield directive events in line order."""
    for number, text in enumerate(lines, start=1):
        event = parse_directive(text, number)
        if event is not None:
            yield event


def scan_file(path: Path) -> list[DirectiveEvent]:
    """Read a source file and return its directive events in order.

    Raises:
        OSError: If the file cannot be read
    """
    text = path.read_text(encoding="utf-8", errors="replace")
    return list(scan_lines(text.splitlines()))


def select_top_module(events: Iterable[DirectiveEvent], source: Path) -> Optional[str]:
    """Pick the top module override declared by a file.

    A file with several topmodule directives is ambiguous; a warning is
    logged and no override is returned, so callers fall back to the default.

    Args:
        events: Directive events of the file
        source: File the events came from (for the warning)

    Returns:
        The single override, or None
    """
    names = [e.name for e in events if isinstance(e, TopModuleOverride)]
    if len(names) > 1:
        logger.warning(f"Multiple top modules specified in {source}: {', '.join(names)}")
        return None
    return names[0] if names else None
