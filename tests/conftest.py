"""Shared test fixtures."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from pydantic_ai import models

from boop.review.models import Finding, LineRange, Severity


@pytest.fixture(autouse=True)
def _prevent_real_api_calls() -> Iterator[None]:
    """Safety: block real API calls in all tests."""
    original = models.ALLOW_MODEL_REQUESTS
    models.ALLOW_MODEL_REQUESTS = False
    yield
    models.ALLOW_MODEL_REQUESTS = original


@pytest.fixture(autouse=True)
def _isolate_review_rules(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep learned review rules out of the real home directory."""
    monkeypatch.setenv("BOOP_MEMORY_DIR", str(tmp_path / "boop-memory"))


MakeFinding = Callable[..., Finding]


@pytest.fixture
def make_finding() -> MakeFinding:
    """Factory for findings with sensible defaults."""

    def _make(
        id: str = "cq-1",
        title: str = "Unchecked error",
        severity: Severity | str = Severity.HIGH,
        source: str = "code-quality",
        description: str = "",
        file: str | None = "src/app.py",
        line_range: tuple[int, int] | None = None,
    ) -> Finding:
        return Finding(
            id=id,
            title=title,
            severity=Severity(severity),
            source=source,
            description=description,
            file=file,
            line_range=LineRange(start=line_range[0], end=line_range[1]) if line_range else None,
        )

    return _make
