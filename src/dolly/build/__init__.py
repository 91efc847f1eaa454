"""Build orchestration."""

from .orchestrator import BuildArtifact, BuildOrchestrator, artifact_path

__all__ = ["BuildArtifact", "BuildOrchestrator", "artifact_path"]
