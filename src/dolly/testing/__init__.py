"""Test bench discovery and execution."""

from .discovery import discover
from .models import PASS_MARKER, Report, TestBench, TestKind, TestResult, TestStatus
from .runner import TestRunner

__all__ = [
    "PASS_MARKER",
    "Report",
    "TestBench",
    "TestKind",
    "TestResult",
    "TestRunner",
    "TestStatus",
    "discover",
]
