"""Test command detection for projects under review."""

import json
import logging
import tomllib
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ProjectType(StrEnum):
    """Supported project types."""

    PYTHON = "python"
    TYPESCRIPT = "typescript"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class ToolchainConfig(BaseModel):
    """Detected project toolchain: type plus the command that runs its tests."""

    project_type: ProjectType
    test_command: str | None = None


def _python_test_command(pyproject_path: Path, prefix: str) -> str | None:
    try:
        with open(pyproject_path, "rb") as f:
            pyproject = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.debug("Unreadable %s: %s", pyproject_path, exc)
        return None

    tool = pyproject.get("tool", {})
    if "pytest" in tool:
        return f"{prefix}pytest"
    return None


def _node_test_command(package_json_path: Path) -> str | None:
    try:
        package_json = json.loads(package_json_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.debug("Unreadable %s: %s", package_json_path, exc)
        return None

    scripts = package_json.get("scripts", {}) if isinstance(package_json, dict) else {}
    if "test" in scripts:
        return "npm test"
    return None


def detect_toolchain(project_root: Path) -> ToolchainConfig:
    """Auto-detect how to run a project's tests from its config files.

    Python projects (pyproject.toml with a ``[tool.pytest]`` table) run
    ``pytest`` (``uv run pytest`` when uv.lock is present); Node projects with
    a ``test`` script run ``npm test``. Mixed projects prefer the Python
    command.

    Args:
        project_root: Root directory of the project

    Returns:
        ToolchainConfig (test_command is None when nothing was detected)
    """
    pyproject_path = project_root / "pyproject.toml"
    package_json_path = project_root / "package.json"

    has_python = pyproject_path.exists()
    has_typescript = package_json_path.exists()

    if has_python and has_typescript:
        project_type = ProjectType.MIXED
    elif has_python:
        project_type = ProjectType.PYTHON
    elif has_typescript:
        project_type = ProjectType.TYPESCRIPT
    else:
        return ToolchainConfig(project_type=ProjectType.UNKNOWN)

    test_cmd = None
    if has_python:
        prefix = "uv run " if (project_root / "uv.lock").exists() else ""
        test_cmd = _python_test_command(pyproject_path, prefix)
    if has_typescript and test_cmd is None:
        test_cmd = _node_test_command(package_json_path)

    return ToolchainConfig(project_type=project_type, test_command=test_cmd)
