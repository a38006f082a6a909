"""Posting-pattern analysis — similarity, per-company detection, fleet report."""

from ghostjob_detector.patterns.detector import (
    PatternDetector,
    PatternResult,
    PatternSummary,
    SimilarJob,
)
from ghostjob_detector.patterns.fleet import CompanySuspicionEntry, FleetAggregator
from ghostjob_detector.patterns.similarity import description_similarity

__all__ = [
    "CompanySuspicionEntry",
    "FleetAggregator",
    "PatternDetector",
    "PatternResult",
    "PatternSummary",
    "SimilarJob",
    "description_similarity",
]
