"""Exception hierarchy.

Business outcomes of the review loop (test failures, aborts, stuck loops) are
reported through LoopResult values, not exceptions. These errors cover the
cases that must stop an invocation or signal a programming error.
"""


class BoopError(Exception):
    """Base class for all boop errors."""


class ArtifactWriteError(BoopError):
    """Raised when a per-iteration review artifact cannot be persisted."""


class GitError(BoopError):
    """Raised when a git subprocess exits non-zero."""
