"""Boop executor — applies fixes to the working tree and commits them."""

from boop.executor.coding_agent import ClaudeCliAgent
from boop.executor.fixer import commit_message, fix_findings
from boop.executor.git import GitClient

__all__ = [
    "ClaudeCliAgent",
    "GitClient",
    "commit_message",
    "fix_findings",
]
