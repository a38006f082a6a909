"""Global test configuration — shared fixtures.

This conftest provides:

1. **Clock** — ``NOW`` is the pinned "current time" every detector and
   service fixture uses, so day arithmetic is deterministic.

2. **Shared I/O-boundary fixtures** — ``posting_history``, ``feedback_store`` and
   ``analysis_store`` (real ChromaDB backed by ``tmp_path``) and
   ``mock_judge`` (AuthenticityJudge with the Ollama call stubbed).

3. **Factories** — ``make_record`` builds PostingRecords relative to
   ``NOW``; ``service`` wires the real stores and detectors to the
   stubbed judge.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest

from ghostjob_detector.judge import AuthenticityJudge, Judgement
from ghostjob_detector.patterns.detector import PatternDetector
from ghostjob_detector.patterns.fleet import FleetAggregator
from ghostjob_detector.service import GhostJobService
from ghostjob_detector.storage.analyses import AnalysisStore
from ghostjob_detector.storage.feedback import FeedbackStore
from ghostjob_detector.storage.history import ChromaPostingHistory, PostingRecord

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

# A realistic description long enough that small edits keep similarity above 0.85
JD_BACKEND = (
    "We are looking for a Senior Backend Engineer to design, build and operate "
    "the services behind our payments platform. You will own APIs written in "
    "Python and Go, work with PostgreSQL and Kafka, and partner with product "
    "managers to ship reliable features. Five or more years of experience with "
    "distributed systems is required. Competitive salary and equity."
)

JD_UNRELATED = (
    "Join our retail floor team as a part-time Sales Associate. Greet customers, "
    "restock shelves, operate the register and keep the store tidy. Weekend "
    "availability needed; no prior experience necessary."
)

FAKE_JUDGEMENT = Judgement(
    authenticity_score=7,
    red_flags=["No salary range"],
    green_flags=["Specific tech stack"],
    reasoning="Mostly specific, some boilerplate.",
)


@pytest.fixture
def posting_history(tmp_path: Path) -> ChromaPostingHistory:
    """Real ChromaDB posting history in a per-test temp directory."""
    return ChromaPostingHistory(persist_dir=str(tmp_path / "chroma"))


@pytest.fixture
def analysis_store(tmp_path: Path) -> AnalysisStore:
    """Real ChromaDB analysis store sharing the per-test directory."""
    return AnalysisStore(persist_dir=str(tmp_path / "chroma"))


@pytest.fixture
def feedback_store(tmp_path: Path) -> FeedbackStore:
    """Real ChromaDB feedback store sharing the per-test directory."""
    return FeedbackStore(persist_dir=str(tmp_path / "chroma"))


@pytest.fixture
def mock_judge() -> AuthenticityJudge:
    """AuthenticityJudge with stubbed I/O — no Ollama connection needed.

    Uses ``AuthenticityJudge.__new__`` so ``__init__`` never creates an
    ``ollama.AsyncClient``.
    """
    judge = AuthenticityJudge.__new__(AuthenticityJudge)
    judge.base_url = "http://localhost:11434"
    judge.llm_model = "mistral:7b"
    judge.judge = AsyncMock(return_value=FAKE_JUDGEMENT)  # type: ignore[method-assign]
    judge.health_check = AsyncMock()  # type: ignore[method-assign]
    return judge


@pytest.fixture
def make_record() -> Callable[..., PostingRecord]:
    """Factory fixture — build a PostingRecord dated relative to ``NOW``.

    Usage::

        record = make_record(company_name="acme", days_ago=100)
        record = make_record(days_ago=30, open_days=None)   # no last_seen
    """
    counter = {"n": 0}

    def _factory(
        *,
        company_name: str = "acme",
        job_title: str = "Backend Engineer",
        location: str = "Remote",
        job_description: str = JD_BACKEND,
        days_ago: float = 0,
        open_days: float | None = 0,
        similar_job_ids: tuple[str, ...] = (),
        owner_id: str = "anonymous",
    ) -> PostingRecord:
        counter["n"] += 1
        first_seen = NOW - timedelta(days=days_ago)
        last_seen = None if open_days is None else first_seen + timedelta(days=open_days)
        return PostingRecord(
            id=f"rec-{counter['n']}",
            company_name=company_name,
            job_title=job_title,
            location=location,
            job_description=job_description,
            first_seen=first_seen,
            last_seen=last_seen,
            similar_job_ids=similar_job_ids,
            owner_id=owner_id,
        )

    return _factory


@pytest.fixture
def detector(posting_history: ChromaPostingHistory) -> PatternDetector:
    """PatternDetector on the real store with the clock pinned to ``NOW``."""
    return PatternDetector(posting_history, clock=lambda: NOW)


@pytest.fixture
def service(
    posting_history: ChromaPostingHistory,
    analysis_store: AnalysisStore,
    feedback_store: FeedbackStore,
    mock_judge: AuthenticityJudge,
    detector: PatternDetector,
) -> GhostJobService:
    """GhostJobService with real stores and a stubbed judge."""
    return GhostJobService(
        judge=mock_judge,
        analyses=analysis_store,
        history=posting_history,
        detector=detector,
        fleet=FleetAggregator(posting_history),
        feedback=feedback_store,
        clock=lambda: NOW,
    )
