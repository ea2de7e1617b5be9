"""Tests for per-iteration review artifacts."""

import json
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from boop.errors import ArtifactWriteError
from boop.review.artifacts import IterationArtifact, IterationArtifactStore
from boop.review.models import (
    AgentReport,
    Finding,
    FixBatchResult,
    FixResult,
    IterationRecord,
    TestSuiteResult,
    VerificationResult,
)


@pytest.fixture
def record(make_finding: Callable[..., Finding]) -> IterationRecord:
    finding = make_finding(line_range=(1, 2))
    return IterationRecord(
        iteration=2,
        agent_results=[AgentReport(agent_id="code-quality", success=True, findings=[finding])],
        verification=VerificationResult.from_partition([finding], []),
        fix_result=FixBatchResult(
            results=[FixResult(finding=finding, fixed=True, commit_sha="abc1234", attempts=1)],
            fixed=[finding],
            final_test_result=TestSuiteResult(passed=True, output="ok"),
        ),
        tests_pass=True,
        unresolved_ids=[],
        unresolved=[],
    )


class TestIterationArtifactStore:
    """Test IterationArtifactStore."""

    def test_path_layout(self, tmp_path: Path) -> None:
        store = IterationArtifactStore(tmp_path, 4)
        assert store.path_for(2) == tmp_path / ".boop" / "reviews" / "epic-4" / "iteration-2.json"

    def test_save_writes_camel_case(self, tmp_path: Path, record: IterationRecord) -> None:
        path = IterationArtifactStore(tmp_path, 1).save(record)

        data = json.loads(path.read_text())
        assert data["iteration"] == 2
        assert data["testsPass"] is True
        assert data["unresolvedIds"] == []
        assert data["agents"][0]["agentId"] == "code-quality"
        assert data["agents"][0]["findings"][0]["lineRange"] == {"start": 1, "end": 2}
        assert data["fixResult"]["results"][0]["commitSha"] == "abc1234"
        assert data["fixResult"]["finalTestResult"]["passed"] is True
        assert data["verification"]["stats"]["verified"] == 1

    def test_saved_artifact_validates(self, tmp_path: Path, record: IterationRecord) -> None:
        path = IterationArtifactStore(tmp_path, 1).save(record)

        loaded = IterationArtifact.model_validate_json(path.read_text())

        assert loaded.iteration == 2
        assert loaded.fix_result is not None
        assert loaded.fix_result.results[0].commit_sha == "abc1234"

    def test_each_iteration_own_file(self, tmp_path: Path, record: IterationRecord) -> None:
        store = IterationArtifactStore(tmp_path, 1)
        for i in (1, 2):
            store.save(record.model_copy(update={"iteration": i}))
        assert sorted(p.name for p in store.reviews_dir.iterdir()) == [
            "iteration-1.json",
            "iteration-2.json",
        ]

    def test_write_failure_raises(self, tmp_path: Path, record: IterationRecord) -> None:
        store = IterationArtifactStore(tmp_path, 1)
        with patch.object(Path, "write_text", side_effect=PermissionError("read-only")):
            with pytest.raises(ArtifactWriteError, match="read-only"):
                store.save(record)
