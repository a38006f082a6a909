"""Persistence layer — posting history, stored analyses and feedback on ChromaDB."""

from ghostjob_detector.storage.analyses import AnalysisRecord, AnalysisStore
from ghostjob_detector.storage.feedback import Feedback, FeedbackStore
from ghostjob_detector.storage.history import (
    ANONYMOUS_OWNER,
    ChromaPostingHistory,
    PostingHistory,
    PostingRecord,
)

__all__ = [
    "ANONYMOUS_OWNER",
    "AnalysisRecord",
    "AnalysisStore",
    "ChromaPostingHistory",
    "Feedback",
    "FeedbackStore",
    "PostingHistory",
    "PostingRecord",
]
