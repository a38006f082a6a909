"""Company posting-pattern detection and confidence scoring.

Given a new posting and the company's stored history, the detector
derives three signals, converts them into findings and a confidence
score, and records the posting:

1. **Posting frequency** — the average gap in days between consecutive
   ``first_seen`` dates.  A company that posts every few days, many
   times over, is likely keeping listings warm rather than hiring.

2. **Recycled descriptions** — every prior description is compared with
   the new one; those scoring strictly above ``similarity_threshold``
   are the same job re-posted.  More than ``recycled_threshold`` of
   them flags the description as recycled.

3. **Duration open** — the longest span between any prior posting's
   ``first_seen`` and its ``last_seen`` (or *now* when it has none).

Confidence starts at 10 and each triggered rule deducts a fixed amount.
The rules are independent and stack.  The result is clamped to 1–10.

The posting is then stored.  Prior postings it matched are "seen again",
so their ``last_seen`` is extended to now in the same write.  Their own
``similar_job_ids`` are left alone.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from ghostjob_detector.patterns.similarity import description_similarity, is_similar
from ghostjob_detector.storage.history import ANONYMOUS_OWNER, PostingRecord
from ghostjob_detector.text import normalize_company_name

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ghostjob_detector.storage.history import PostingHistory

logger = logging.getLogger(__name__)

MAX_CONFIDENCE = 10
MIN_CONFIDENCE = 1

# Deductions per triggered rule
_LONG_OPEN_PENALTY = 2
_RECYCLED_PENALTY = 2
_HIGH_FREQUENCY_PENALTY = 1

_SECONDS_PER_DAY = 86_400


@dataclass
class PatternSummary:
    """Metrics and findings for one company at analysis time."""

    recent_posting_count: int = 0
    similar_job_count: int = 0
    longest_open_days: int = 0
    average_posting_frequency_days: int = 0
    recycled_descriptions: bool = False
    suspicious_patterns: list[str] = field(default_factory=list)
    confidence_score: int = MAX_CONFIDENCE

    def to_dict(self) -> dict[str, Any]:
        return {
            "recentPostingCount": self.recent_posting_count,
            "similarJobCount": self.similar_job_count,
            "longestOpenDays": self.longest_open_days,
            "averagePostingFrequencyDays": self.average_posting_frequency_days,
            "recycledDescriptions": self.recycled_descriptions,
            "suspiciousPatterns": list(self.suspicious_patterns),
            "confidenceScore": self.confidence_score,
        }


@dataclass(frozen=True)
class SimilarJob:
    """A prior posting whose description matched the new one."""

    id: str
    job_title: str
    similarity: int
    first_seen: datetime
    last_seen: datetime | None


@dataclass
class PatternResult:
    """Outcome of one detection: the stored posting id plus what was found."""

    id: str
    company_name: str
    summary: PatternSummary
    similar_jobs: list[SimilarJob]
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "companyName": self.company_name,
            "patterns": self.summary.to_dict(),
            "similarJobs": [
                {
                    "id": job.id,
                    "jobTitle": job.job_title,
                    "similarity": job.similarity,
                    "firstSeen": job.first_seen.isoformat(),
                    "lastSeen": job.last_seen.isoformat() if job.last_seen else None,
                }
                for job in self.similar_jobs
            ],
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class PendingDetection:
    """An evaluated posting whose history write has not happened yet."""

    result: PatternResult
    record: PostingRecord
    touched: list[PostingRecord]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's ``round`` uses banker's rounding (``round(2.5) == 2``);
    scores here round ``x.5`` up.
    """
    return math.floor(value + 0.5)


def days_between(start: datetime, end: datetime) -> int:
    """Whole days between two instants, rounded up; order does not matter."""
    seconds = abs((end - start).total_seconds())
    return math.ceil(seconds / _SECONDS_PER_DAY)


def average_posting_gap_days(history: Sequence[PostingRecord]) -> int:
    """Mean gap between consecutive ``first_seen`` dates; 0 with fewer than two."""
    if len(history) < 2:
        return 0
    ordered = sorted(history, key=lambda r: r.first_seen)
    total = sum(
        days_between(earlier.first_seen, later.first_seen)
        for earlier, later in zip(ordered, ordered[1:])
    )
    return round_half_up(total / (len(ordered) - 1))


def summarize_patterns(
    job_description: str,
    history: Sequence[PostingRecord],
    *,
    now: datetime,
    similarity_threshold: float = 0.85,
    suspicious_open_days: int = 90,
    recycled_threshold: int = 3,
    high_frequency_days: int = 7,
    high_frequency_count: int = 5,
) -> tuple[PatternSummary, list[SimilarJob]]:
    """Compute the :class:`PatternSummary` for a posting against *history*.

    Pure: reads nothing and writes nothing.  Returns the summary and the
    prior postings found similar, in history order.
    """
    summary = PatternSummary(recent_posting_count=len(history))
    summary.average_posting_frequency_days = average_posting_gap_days(history)

    similar_jobs: list[SimilarJob] = []
    for posting in history:
        score = description_similarity(job_description, posting.job_description)
        if is_similar(score, similarity_threshold):
            similar_jobs.append(
                SimilarJob(
                    id=posting.id,
                    job_title=posting.job_title,
                    similarity=round_half_up(score * 100),
                    first_seen=posting.first_seen,
                    last_seen=posting.last_seen,
                )
            )

        open_days = days_between(posting.first_seen, posting.last_seen or now)
        summary.longest_open_days = max(summary.longest_open_days, open_days)

    summary.similar_job_count = len(similar_jobs)

    confidence = MAX_CONFIDENCE

    if summary.longest_open_days > suspicious_open_days:
        summary.suspicious_patterns.append(
            f"Position open for {summary.longest_open_days} days without being filled"
        )
        confidence -= _LONG_OPEN_PENALTY

    if summary.similar_job_count > recycled_threshold:
        summary.recycled_descriptions = True
        summary.suspicious_patterns.append(
            f"Multiple similar job postings ({summary.similar_job_count}) detected"
        )
        confidence -= _RECYCLED_PENALTY

    if (
        summary.average_posting_frequency_days < high_frequency_days
        and summary.recent_posting_count > high_frequency_count
    ):
        summary.suspicious_patterns.append("Unusually high frequency of new job postings")
        confidence -= _HIGH_FREQUENCY_PENALTY

    summary.confidence_score = max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))
    return summary, similar_jobs


class PatternDetector:
    """Reads a company's history, scores the new posting, and records it.

    Thresholds default to the production values and are normally taken
    from :class:`~ghostjob_detector.config.PatternsConfig`.  *clock* is
    injectable so tests can pin "now".
    """

    def __init__(
        self,
        history: PostingHistory,
        *,
        similarity_threshold: float = 0.85,
        suspicious_open_days: int = 90,
        recycled_threshold: int = 3,
        high_frequency_days: int = 7,
        high_frequency_count: int = 5,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._history = history
        self.similarity_threshold = similarity_threshold
        self.suspicious_open_days = suspicious_open_days
        self.recycled_threshold = recycled_threshold
        self.high_frequency_days = high_frequency_days
        self.high_frequency_count = high_frequency_count
        self._clock = clock or (lambda: datetime.now(UTC))

    def evaluate(
        self,
        company: str,
        job_title: str,
        location: str,
        job_description: str,
        owner_id: str = ANONYMOUS_OWNER,
    ) -> PendingDetection:
        """Read the company's history and score the posting without writing.

        Pass the result to :meth:`commit` to store it.
        """
        company_name = normalize_company_name(company)
        history = self._history.query_by_company(company_name)
        now = self._clock()

        summary, similar_jobs = summarize_patterns(
            job_description,
            history,
            now=now,
            similarity_threshold=self.similarity_threshold,
            suspicious_open_days=self.suspicious_open_days,
            recycled_threshold=self.recycled_threshold,
            high_frequency_days=self.high_frequency_days,
            high_frequency_count=self.high_frequency_count,
        )

        record = PostingRecord.create(
            company_name=company_name,
            job_title=job_title,
            location=location,
            job_description=job_description,
            seen_at=now,
            similar_job_ids=[job.id for job in similar_jobs],
            owner_id=owner_id,
        )
        similar_ids = {job.id for job in similar_jobs}
        touched = [
            posting.seen_again(now) for posting in history if posting.id in similar_ids
        ]

        return PendingDetection(
            result=PatternResult(
                id=record.id,
                company_name=company_name,
                summary=summary,
                similar_jobs=similar_jobs,
                timestamp=now,
            ),
            record=record,
            touched=touched,
        )

    def commit(self, pending: PendingDetection) -> PatternResult:
        """Store an evaluated posting and its refreshed priors in one write."""
        self._history.append(pending.record, touched=pending.touched)

        summary = pending.result.summary
        logger.info(
            "Patterns for '%s': %d prior, %d similar, confidence %d%s",
            pending.result.company_name,
            summary.recent_posting_count,
            summary.similar_job_count,
            summary.confidence_score,
            f" ({'; '.join(summary.suspicious_patterns)})" if summary.suspicious_patterns else "",
        )
        return pending.result

    def detect(
        self,
        company: str,
        job_title: str,
        location: str,
        job_description: str,
        owner_id: str = ANONYMOUS_OWNER,
    ) -> PatternResult:
        """Analyse one posting against its company's history and store it.

        Exactly one write reaches the history store.  If the read or the
        write fails, STORE_UNAVAILABLE propagates and nothing is returned.
        """
        pending = self.evaluate(company, job_title, location, job_description, owner_id)
        return self.commit(pending)
