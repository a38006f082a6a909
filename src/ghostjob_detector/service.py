"""Request-level operations exposed to callers (CLI, HTTP glue, tests).

:class:`GhostJobService` owns input validation and the ownership check,
and wires the judge, the stores and the detectors together.  Every
collaborator is passed in, so tests can hand it fakes;
:func:`build_service` constructs the production set from settings once
at process start.

``analyze_job`` mirrors a full submission: judge the text, score the
posting against its company's history, then store the analysis and the
posting record.  A failure at any step propagates as an
:class:`~ghostjob_detector.errors.ActionableError` and leaves neither
record behind; no partial response is assembled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from ghostjob_detector.errors import ActionableError
from ghostjob_detector.storage.feedback import MAX_RATING, MIN_RATING
from ghostjob_detector.storage.history import ANONYMOUS_OWNER

if TYPE_CHECKING:
    from collections.abc import Callable

    from ghostjob_detector.config import Settings
    from ghostjob_detector.judge import AuthenticityJudge
    from ghostjob_detector.patterns.detector import PatternDetector, PatternResult
    from ghostjob_detector.patterns.fleet import CompanySuspicionEntry, FleetAggregator
    from ghostjob_detector.storage.analyses import AnalysisRecord, AnalysisStore
    from ghostjob_detector.storage.feedback import Feedback, FeedbackStore
    from ghostjob_detector.storage.history import PostingHistory, PostingRecord

logger = logging.getLogger(__name__)


@dataclass
class JobAnalysis:
    """Combined judge + pattern result for one submitted posting."""

    analysis: AnalysisRecord
    patterns: PatternResult

    def to_dict(self) -> dict[str, Any]:
        pattern_dict = self.patterns.to_dict()
        return {
            **self.analysis.to_dict(),
            "patternRecordId": pattern_dict["id"],
            "patterns": pattern_dict["patterns"],
            "similarJobs": pattern_dict["similarJobs"],
        }


def validate_posting(job_title: str, company: str, job_description: str) -> None:
    """Raise INVALID_INPUT unless title, company and description are all non-blank."""
    missing = [
        name
        for name, value in (
            ("job_title", job_title),
            ("company", company),
            ("job_description", job_description),
        )
        if not value or not value.strip()
    ]
    if missing:
        raise ActionableError.invalid_input(
            field_name=", ".join(missing),
            reason="job title, company, and description are required",
        )


class GhostJobService:
    """Entry points for analysing postings and reporting on companies."""

    def __init__(
        self,
        *,
        judge: AuthenticityJudge,
        analyses: AnalysisStore,
        history: PostingHistory,
        detector: PatternDetector,
        fleet: FleetAggregator,
        feedback: FeedbackStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._judge = judge
        self._analyses = analyses
        self._feedback = feedback
        self._history = history
        self._detector = detector
        self._fleet = fleet
        self._clock = clock or (lambda: datetime.now(UTC))

    async def analyze_job(
        self,
        *,
        job_title: str,
        company: str,
        location: str,
        job_description: str,
        owner_id: str = ANONYMOUS_OWNER,
    ) -> JobAnalysis:
        """Judge a posting, run pattern detection, and store both results.

        Nothing is written until the judge has answered and the history
        has been read.  If the posting record cannot be stored, the
        analysis written just before it is deleted again.
        """
        validate_posting(job_title, company, job_description)

        judgement = await self._judge.judge(job_title, company, location, job_description)
        pending = self._detector.evaluate(company, job_title, location, job_description, owner_id)
        analysis = self._analyses.record(
            judgement,
            job_title=job_title,
            company=company,
            location=location,
            job_description=job_description,
            created_at=self._clock(),
            owner_id=owner_id,
        )
        try:
            patterns = self._detector.commit(pending)
        except ActionableError:
            self._discard_analysis(analysis.id)
            raise
        return JobAnalysis(analysis=analysis, patterns=patterns)

    def _discard_analysis(self, analysis_id: str) -> None:
        try:
            self._analyses.remove(analysis_id)
        except ActionableError as exc:
            # The caller sees the original failure, not this one
            logger.error("Could not remove orphaned analysis %s: %s", analysis_id, exc.error)

    def analyze_pattern(
        self,
        *,
        company: str,
        job_title: str,
        location: str,
        job_description: str,
        owner_id: str = ANONYMOUS_OWNER,
    ) -> PatternResult:
        """Pattern detection only, without consulting the judge."""
        validate_posting(job_title, company, job_description)
        return self._detector.detect(company, job_title, location, job_description, owner_id)

    def list_suspicious_companies(self) -> list[CompanySuspicionEntry]:
        return self._fleet.list_suspicious_companies()

    def get_analysis(self, analysis_id: str, requester_id: str) -> AnalysisRecord:
        """Fetch an analysis for its owner.

        Raises NOT_FOUND for unknown ids and ACCESS_DENIED when
        *requester_id* did not submit it.
        """
        analysis = self._analyses.get(analysis_id)
        if analysis.owner_id != requester_id:
            logger.warning(
                "Denied analysis %s to %s (owner %s)",
                analysis_id,
                requester_id,
                analysis.owner_id,
            )
            raise ActionableError.access_denied("analysis", analysis_id, requester_id)
        return analysis

    def get_analysis_history(self, owner_id: str) -> list[AnalysisRecord]:
        return self._analyses.history_for(owner_id)

    def submit_feedback(
        self,
        analysis_id: str,
        user_id: str,
        rating: int,
        comments: str = "",
        outcome: str | None = None,
    ) -> Feedback:
        """Record a user's rating of one of their analyses.

        *rating* must be an integer from 1 to 5 (INVALID_INPUT otherwise).
        The analysis must exist (NOT_FOUND) and belong to *user_id*
        (ACCESS_DENIED).  Rejected submissions store nothing.
        """
        if (
            isinstance(rating, bool)
            or not isinstance(rating, int)
            or not MIN_RATING <= rating <= MAX_RATING
        ):
            raise ActionableError.invalid_input(
                field_name="rating",
                reason=f"must be an integer between {MIN_RATING} and {MAX_RATING}, got {rating!r}",
            )
        self.get_analysis(analysis_id, user_id)
        return self._feedback.record(
            analysis_id,
            user_id=user_id,
            rating=rating,
            comments=comments,
            outcome=outcome or None,
            created_at=self._clock(),
        )

    def get_feedback(self, analysis_id: str, requester_id: str) -> list[Feedback]:
        """Feedback left on an analysis, visible to the analysis owner only."""
        self.get_analysis(analysis_id, requester_id)
        return self._feedback.for_analysis(analysis_id)

    def get_posting(self, record_id: str) -> PostingRecord:
        return self._history.get(record_id)


def build_service(settings: Settings) -> GhostJobService:
    """Construct the production service and its collaborators from *settings*."""
    from ghostjob_detector.judge import AuthenticityJudge
    from ghostjob_detector.patterns.detector import PatternDetector
    from ghostjob_detector.patterns.fleet import FleetAggregator
    from ghostjob_detector.storage.analyses import AnalysisStore
    from ghostjob_detector.storage.feedback import FeedbackStore
    from ghostjob_detector.storage.history import ChromaPostingHistory

    history = ChromaPostingHistory(persist_dir=settings.chroma.persist_dir)
    patterns = settings.patterns
    return GhostJobService(
        judge=AuthenticityJudge(
            base_url=settings.ollama.base_url,
            llm_model=settings.ollama.llm_model,
        ),
        analyses=AnalysisStore(persist_dir=settings.chroma.persist_dir),
        history=history,
        detector=PatternDetector(
            history,
            similarity_threshold=patterns.similarity_threshold,
            suspicious_open_days=patterns.suspicious_open_days,
            recycled_threshold=patterns.recycled_threshold,
            high_frequency_days=patterns.high_frequency_days,
            high_frequency_count=patterns.high_frequency_count,
        ),
        fleet=FleetAggregator(
            history,
            min_similar_ids=settings.fleet.min_similar_ids,
            page_size=settings.fleet.page_size,
        ),
        feedback=FeedbackStore(persist_dir=settings.chroma.persist_dir),
    )
