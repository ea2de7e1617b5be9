"""ClaudeCliAgent — coding agent backed by the ``claude`` CLI."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from boop.review.ports import CodingAgentRun

logger = logging.getLogger(__name__)


class ClaudeCliAgent:
    """Runs ``claude --print`` non-interactively with the prompt on stdin.

    The agent edits files in ``project_dir`` directly; it must not commit.
    """

    def __init__(self, executable: str = "claude") -> None:
        self.executable = executable

    def build_command(self, model: str | None = None) -> list[str]:
        """Command line for one non-interactive run."""
        cmd = [
            self.executable,
            "--print",
            "--dangerously-skip-permissions",
            "--no-session-persistence",
        ]
        if model:
            cmd += ["--model", model]
        return cmd

    def apply(
        self,
        prompt: str,
        project_dir: Path,
        *,
        model: str | None = None,
        timeout_seconds: int = 300,
    ) -> CodingAgentRun:
        """Run the agent once.

        Returns:
            CodingAgentRun with success=False on timeout, spawn failure or a
            non-zero exit (output then carries the error text)
        """
        try:
            result = subprocess.run(
                self.build_command(model),
                input=prompt,
                cwd=project_dir,
                capture_output=True,
                text=True,
                timeout=timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            return CodingAgentRun(
                success=False, output=f"Coding agent timeout after {timeout_seconds}s"
            )
        except OSError as exc:
            return CodingAgentRun(success=False, output=f"Coding agent failed to start: {exc}")

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            return CodingAgentRun(success=False, output=f"Exit code {result.returncode}: {stderr}")

        return CodingAgentRun(success=True, output=result.stdout or "")
