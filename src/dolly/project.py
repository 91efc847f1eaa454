"""Project manifest handling.

A dolly project is a directory holding dolly.toml:

    [package]
    name = "Simple"
    version = "0.1.0"

The root module lives at src/<name>.bsv, integration test benches under
tests/, and build output under target/.
"""

import logging
import re
import shutil
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import DollyError, ManifestMalformedError, ManifestNotFoundError
from .modules.models import SOURCE_EXTENSION, TESTBENCH_SUFFIX

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "dolly.toml"


@dataclass(frozen=True)
class Manifest:
    """Contents of the [package] table of dolly.toml."""

    package_name: str
    version: str


def parse_manifest(manifest_path: Path) -> Manifest:
    """Parse dolly.toml.

    Args:
        manifest_path: Path to the manifest file

    Returns:
        Parsed Manifest

    Raises:
        ManifestNotFoundError: If the file does not exist
        ManifestMalformedError: If the file is not valid TOML or misses a field
    """
    if not manifest_path.is_file():
        raise ManifestNotFoundError(manifest_path.parent, f"Manifest not found: {manifest_path}")

    logger.debug(f"Parsing project file {manifest_path}")
    try:
        with open(manifest_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ManifestMalformedError(manifest_path, f"invalid TOML: {e}") from e

    package = data.get("package")
    if not isinstance(package, dict):
        raise ManifestMalformedError(manifest_path, "missing [package] table")

    fields = {}
    for key in ("name", "version"):
        value = package.get(key)
        if not isinstance(value, str) or not value:
            raise ManifestMalformedError(manifest_path, f"[package] requires a string '{key}'")
        fields[key] = value

    return Manifest(package_name=fields["name"], version=fields["version"])


def find_project_file(start: Path) -> Path:
    """Find dolly.toml in start or the nearest ancestor.

    Args:
        start: Directory to begin the search from

    Returns:
        Absolute path to dolly.toml

    Raises:
        ManifestNotFoundError: If no ancestor holds a manifest, or the first
            match is not a regular file
    """
    full_path = start.resolve()
    for ancestor in (full_path, *full_path.parents):
        candidate = ancestor / MANIFEST_FILENAME
        logger.debug(f"Looking for project: {candidate}")
        if candidate.exists():
            if candidate.is_file():
                logger.debug(f"Project found: {candidate}")
                return candidate
            raise ManifestNotFoundError(start, f"{candidate} is not a regular file")
    raise ManifestNotFoundError(start)


@dataclass(frozen=True)
class Project:
    """A loaded project: its manifest plus the directory it lives in."""

    manifest: Manifest
    root_path: Path

    @classmethod
    def load(cls, search_root: Optional[Path] = None) -> "Project":
        """Locate and load the project containing search_root (default: cwd)."""
        manifest_path = find_project_file(search_root or Path.cwd())
        return cls(manifest=parse_manifest(manifest_path), root_path=manifest_path.parent)

    @property
    def name(self) -> str:
        return self.manifest.package_name

    @property
    def src_dir(self) -> Path:
        return self.root_path / "src"

    @property
    def tests_dir(self) -> Path:
        return self.root_path / "tests"

    @property
    def target_dir(self) -> Path:
        return self.root_path / "target"

    @property
    def root_module_path(self) -> Path:
        return self.src_dir / f"{self.name}{SOURCE_EXTENSION}"

    def clean(self) -> bool:
        """Remove target/. Returns True if anything was removed."""
        if not self.target_dir.exists():
            return False
        shutil.rmtree(self.target_dir)
        logger.info(f"Removed {self.target_dir}")
        return True


def to_upper_camel(text: str) -> str:
    """Convert a directory name like 'my-first_project' to 'MyFirstProject'."""
    words = re.findall(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])", text)
    return "".join(w[:1].upper() + w[1:].lower() for w in words)


_MANIFEST_TEMPLATE = """[package]
name = "{name}"
version = "0.1.0"
"""

_MODULE_TEMPLATE = """interface {name};
    method Bool isWorking;
endinterface

module mk{name}({name});
    method Bool isWorking;
        return True;
    endmethod
endmodule
"""

_TESTBENCH_TEMPLATE = """//!topmodule mk{name}_tb
import {name}::*;

module mk{name}_tb(Empty);
    {name} my_module <- mk{name};

    rule run_it;
        // Required for test to pass.
        $display(">>>PASS");
        $finish();
    endrule
endmodule
"""


def init_project(new_project_path: Path) -> Manifest:
    """Scaffold a new project with a module and a passing test bench.

    Args:
        new_project_path: Directory to create; must not exist yet

    Returns:
        Manifest of the new project

    Raises:
        DollyError: If the path already exists or yields no usable name
    """
    if new_project_path.exists():
        raise DollyError(f"Unable to initialize new project: {new_project_path} already exists")

    name = to_upper_camel(new_project_path.name)
    if not name:
        raise DollyError(f"Cannot derive a package name from {new_project_path.name!r}")

    (new_project_path / "src").mkdir(parents=True)
    (new_project_path / "tests").mkdir()

    (new_project_path / MANIFEST_FILENAME).write_text(_MANIFEST_TEMPLATE.format(name=name), encoding="utf-8")
    (new_project_path / ".gitignore").write_text("**/target\n", encoding="utf-8")
    (new_project_path / "src" / f"{name}{SOURCE_EXTENSION}").write_text(
        _MODULE_TEMPLATE.format(name=name), encoding="utf-8"
    )
    (new_project_path / "tests" / f"{name}{TESTBENCH_SUFFIX}{SOURCE_EXTENSION}").write_text(
        _TESTBENCH_TEMPLATE.format(name=name), encoding="utf-8"
    )

    logger.info(f"Initialized project {name} in {new_project_path}")
    return Manifest(package_name=name, version="0.1.0")
