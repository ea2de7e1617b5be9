"""Boop validation — test-suite detection and execution."""

from boop.validation.detector import ProjectType, ToolchainConfig, detect_toolchain
from boop.validation.runner import ShellTestSuiteRunner

__all__ = [
    "ProjectType",
    "ShellTestSuiteRunner",
    "ToolchainConfig",
    "detect_toolchain",
]
