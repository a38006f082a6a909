"""Cross-company suspicion report.

Folds over every stored posting that was found similar to more than
``min_similar_ids`` earlier postings, grouping by normalized company.
The store is read a page at a time; only the per-company tallies are
held in memory.

Per company::

    base  = min(10, similar_postings_count / 2)
    bonus = (1 - title_ratio) * 5   if title_ratio < 0.5 and posting_count > 5
    score = round(base + bonus)

where ``title_ratio`` is distinct titles over postings: many postings
under few titles looks like one evergreen role.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ghostjob_detector.patterns.detector import round_half_up

if TYPE_CHECKING:
    from ghostjob_detector.storage.history import PostingHistory, PostingRecord

logger = logging.getLogger(__name__)

_MAX_BASE_SCORE = 10
_TITLE_RATIO_CUTOFF = 0.5
_TITLE_BONUS_MIN_POSTINGS = 5
_TITLE_BONUS_WEIGHT = 5


@dataclass
class CompanySuspicionEntry:
    """One company's row in the suspicion report."""

    company_name: str
    posting_count: int
    similar_postings_count: int
    locations: list[str]
    titles: list[str]
    suspicion_score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "companyName": self.company_name,
            "postingCount": self.posting_count,
            "similarPostingsCount": self.similar_postings_count,
            "locations": self.locations,
            "titles": self.titles,
            "suspicionScore": self.suspicion_score,
        }


@dataclass
class _CompanyTally:
    posting_count: int = 0
    similar_postings_count: int = 0
    locations: set[str] = field(default_factory=set)
    titles: set[str] = field(default_factory=set)

    def add(self, record: PostingRecord) -> None:
        self.posting_count += 1
        self.similar_postings_count += len(record.similar_job_ids)
        self.locations.add(record.location)
        self.titles.add(record.job_title)


def suspicion_score(similar_postings_count: int, posting_count: int, distinct_titles: int) -> int:
    """Score one company; see the module docstring for the formula."""
    score = min(_MAX_BASE_SCORE, similar_postings_count / 2)
    if posting_count > 0:
        title_ratio = distinct_titles / posting_count
        if title_ratio < _TITLE_RATIO_CUTOFF and posting_count > _TITLE_BONUS_MIN_POSTINGS:
            score += (1 - title_ratio) * _TITLE_BONUS_WEIGHT
    return round_half_up(score)


class FleetAggregator:
    """Ranks companies by how much they recycle postings."""

    def __init__(
        self,
        history: PostingHistory,
        *,
        min_similar_ids: int = 3,
        page_size: int = 500,
    ) -> None:
        self._history = history
        self.min_similar_ids = min_similar_ids
        self.page_size = page_size

    def list_suspicious_companies(self) -> list[CompanySuspicionEntry]:
        """Return report rows sorted by ``suspicion_score``, highest first.

        Ties keep first-seen company order (the sort is stable).
        """
        tallies: dict[str, _CompanyTally] = {}
        scanned = 0
        for record in self._history.iter_records(
            min_similar=self.min_similar_ids,
            page_size=self.page_size,
        ):
            tallies.setdefault(record.company_name, _CompanyTally()).add(record)
            scanned += 1

        entries = [
            CompanySuspicionEntry(
                company_name=name,
                posting_count=tally.posting_count,
                similar_postings_count=tally.similar_postings_count,
                locations=sorted(tally.locations),
                titles=sorted(tally.titles),
                suspicion_score=suspicion_score(
                    tally.similar_postings_count,
                    tally.posting_count,
                    len(tally.titles),
                ),
            )
            for name, tally in tallies.items()
        ]
        entries.sort(key=lambda e: e.suspicion_score, reverse=True)

        logger.info(
            "Suspicion report: %d companies from %d flagged postings",
            len(entries),
            scanned,
        )
        return entries
