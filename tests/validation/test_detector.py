"""Tests for test-command detection."""

import json
from pathlib import Path

from boop.validation.detector import ProjectType, ToolchainConfig, detect_toolchain

PYTEST_PYPROJECT = """
[project]
name = "demo"

[tool.pytest.ini_options]
testpaths = ["tests"]
"""


class TestProjectType:
    """Test ProjectType enum."""

    def test_all_project_types_defined(self) -> None:
        assert ProjectType.PYTHON == "python"
        assert ProjectType.TYPESCRIPT == "typescript"
        assert ProjectType.MIXED == "mixed"
        assert ProjectType.UNKNOWN == "unknown"


class TestDetectToolchain:
    """Test detect_toolchain."""

    def test_python_with_pytest(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(PYTEST_PYPROJECT)
        assert detect_toolchain(tmp_path) == ToolchainConfig(
            project_type=ProjectType.PYTHON, test_command="pytest"
        )

    def test_python_with_uv_lock(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(PYTEST_PYPROJECT)
        (tmp_path / "uv.lock").write_text("")
        assert detect_toolchain(tmp_path).test_command == "uv run pytest"

    def test_python_without_pytest(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "demo"\n')
        config = detect_toolchain(tmp_path)
        assert config.project_type == ProjectType.PYTHON
        assert config.test_command is None

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text("[project\nname=")
        assert detect_toolchain(tmp_path).test_command is None

    def test_node_with_test_script(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text(json.dumps({"scripts": {"test": "vitest run"}}))
        config = detect_toolchain(tmp_path)
        assert config.project_type == ProjectType.TYPESCRIPT
        assert config.test_command == "npm test"

    def test_node_without_test_script(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text(json.dumps({"scripts": {"build": "tsc"}}))
        assert detect_toolchain(tmp_path).test_command is None

    def test_mixed_prefers_python(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(PYTEST_PYPROJECT)
        (tmp_path / "package.json").write_text(json.dumps({"scripts": {"test": "jest"}}))
        config = detect_toolchain(tmp_path)
        assert config.project_type == ProjectType.MIXED
        assert config.test_command == "pytest"

    def test_mixed_falls_back_to_node(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "demo"\n')
        (tmp_path / "package.json").write_text(json.dumps({"scripts": {"test": "jest"}}))
        assert detect_toolchain(tmp_path).test_command == "npm test"

    def test_unknown(self, tmp_path: Path) -> None:
        config = detect_toolchain(tmp_path)
        assert config.project_type == ProjectType.UNKNOWN
        assert config.test_command is None
