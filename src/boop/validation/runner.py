"""ShellTestSuiteRunner — runs the project's test command as a subprocess."""

import logging
import os
import subprocess
import time
from pathlib import Path

from boop.review.models import TestSuiteResult
from boop.validation.detector import detect_toolchain

logger = logging.getLogger(__name__)

_OUTPUT_TAIL_CHARS = 20_000


class ShellTestSuiteRunner:
    """Runs a shell test command in the project directory.

    Safe to call repeatedly: every call is an independent subprocess.
    """

    __test__ = False

    def __init__(
        self,
        command: str | None = None,
        timeout_seconds: int = 600,
        env: dict[str, str] | None = None,
    ) -> None:
        """Initialize runner.

        Args:
            command: Test command (auto-detected per project when None)
            timeout_seconds: Timeout for one test run
            env: Extra environment variables
        """
        self.command = command
        self.timeout_seconds = timeout_seconds
        self.env = env

    def resolve_command(self, project_dir: Path) -> str | None:
        """Configured command, or the one detected for ``project_dir``."""
        if self.command:
            return self.command
        return detect_toolchain(project_dir).test_command

    def run(self, project_dir: Path) -> TestSuiteResult:
        """Run the test suite and report pass/fail with combined output.

        A project without a detectable test command fails: fixes are never
        committed without a regression guard. A timeout or spawn failure
        also fails.
        """
        command = self.resolve_command(project_dir)
        if not command:
            logger.warning("No test command configured or detected in %s", project_dir)
            return TestSuiteResult(passed=False, output="No test command detected")

        run_env = os.environ.copy()
        # Let uv pick up the project's own venv rather than ours.
        run_env.pop("VIRTUAL_ENV", None)
        if self.env:
            run_env.update(self.env)

        start_time = time.time()
        try:
            result = subprocess.run(
                command,
                shell=True,
                cwd=project_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                env=run_env,
            )
        except subprocess.TimeoutExpired:
            return TestSuiteResult(
                passed=False, output=f"Test suite timeout after {self.timeout_seconds}s"
            )
        except OSError as exc:
            return TestSuiteResult(passed=False, output=f"Test suite error: {exc}")

        duration_ms = int((time.time() - start_time) * 1000)
        passed = result.returncode == 0
        logger.info("%s %s in %dms", command, "passed" if passed else "failed", duration_ms)

        output = (result.stdout or "") + (result.stderr or "")
        return TestSuiteResult(passed=passed, output=output[-_OUTPUT_TAIL_CHARS:])
