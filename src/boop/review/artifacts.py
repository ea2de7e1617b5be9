"""IterationArtifactStore — per-iteration audit trail under .boop/reviews/."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from boop.errors import ArtifactWriteError
from boop.review.models import (
    AgentReport,
    FixBatchResult,
    IterationRecord,
    VerificationResult,
)


class IterationArtifact(BaseModel):
    """On-disk form of one iteration (camelCase keys)."""

    iteration: int
    agents: list[AgentReport]
    verification: VerificationResult
    fix_result: FixBatchResult | None = Field(default=None, alias="fixResult")
    tests_pass: bool = Field(alias="testsPass")
    unresolved_ids: list[str] = Field(default_factory=list, alias="unresolvedIds")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, record: IterationRecord) -> IterationArtifact:
        return cls(
            iteration=record.iteration,
            agents=record.agent_results,
            verification=record.verification,
            fix_result=record.fix_result,
            tests_pass=record.tests_pass,
            unresolved_ids=record.unresolved_ids,
        )


class IterationArtifactStore:
    """Writes ``.boop/reviews/epic-<n>/iteration-<i>.json``."""

    def __init__(self, project_dir: Path, epic_number: int) -> None:
        self.project_dir = project_dir
        self.epic_number = epic_number
        self.reviews_dir = project_dir / ".boop" / "reviews" / f"epic-{epic_number}"

    def path_for(self, iteration: int) -> Path:
        return self.reviews_dir / f"iteration-{iteration}.json"

    def save(self, record: IterationRecord) -> Path:
        """Persist one iteration record.

        Raises:
            ArtifactWriteError: If the directory or file cannot be written.
                The audit trail is required, so this stops the loop.
        """
        artifact = IterationArtifact.from_record(record)
        path = self.path_for(record.iteration)
        try:
            self.reviews_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(artifact.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
        except OSError as exc:
            raise ArtifactWriteError(f"Could not write review artifact {path}: {exc}") from exc
        return path
