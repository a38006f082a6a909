"""User feedback on stored analyses.

A user who acted on an analysis rates how useful it was (1-5) and may
add comments and an ``outcome`` such as "interviewed" or "never heard
back".  Each submission is its own record in a ChromaDB
collection next to the analyses; comments are the document, everything
else is metadata.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import chromadb

from ghostjob_detector.errors import ActionableError

logger = logging.getLogger(__name__)

_COLLECTION = "feedback"
_LOOKUP_ONLY_EMBEDDING = [1.0]

MIN_RATING = 1
MAX_RATING = 5


@dataclass(frozen=True)
class Feedback:
    """One rating of one analysis by one user."""

    id: str
    analysis_id: str
    user_id: str
    rating: int
    comments: str
    outcome: str | None
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "analysisId": self.analysis_id,
            "userId": self.user_id,
            "rating": self.rating,
            "comments": self.comments,
            "outcome": self.outcome,
            "timestamp": self.created_at.isoformat(),
        }


class FeedbackStore:
    """Persists feedback and lists it per analysis.

    Usage::

        feedback = FeedbackStore(persist_dir="./data/chroma_db")
        entry = feedback.record(analysis_id, user_id="user-1", rating=4, ...)
        feedback.for_analysis(analysis_id)
    """

    def __init__(self, persist_dir: str, *, collection_name: str = _COLLECTION) -> None:
        self.persist_dir = persist_dir
        self.collection_name = collection_name
        self._client = chromadb.PersistentClient(path=persist_dir)

    def record(
        self,
        analysis_id: str,
        *,
        user_id: str,
        rating: int,
        comments: str,
        outcome: str | None,
        created_at: datetime,
    ) -> Feedback:
        """Store one feedback entry and return it with its new id."""
        entry = Feedback(
            id=uuid.uuid4().hex,
            analysis_id=analysis_id,
            user_id=user_id,
            rating=rating,
            comments=comments,
            outcome=outcome,
            created_at=created_at,
        )
        metadata: dict[str, str | int] = {
            "analysis_id": analysis_id,
            "user_id": user_id,
            "rating": rating,
            "created_at": created_at.isoformat(),
        }
        # Chroma metadata values cannot be None
        if outcome is not None:
            metadata["outcome"] = outcome

        try:
            self._collection().upsert(
                ids=[entry.id],
                documents=[comments],
                embeddings=[_LOOKUP_ONLY_EMBEDDING],  # type: ignore[arg-type]
                metadatas=[metadata],  # type: ignore[arg-type]
            )
        except Exception as exc:
            raise ActionableError.store_unavailable("record_feedback", str(exc)) from exc

        logger.info(
            "Stored feedback %s on analysis %s (rating %d)", entry.id, analysis_id, rating
        )
        return entry

    def for_analysis(self, analysis_id: str) -> list[Feedback]:
        """Every feedback entry on *analysis_id*, oldest first."""
        try:
            result = self._collection().get(
                where={"analysis_id": analysis_id},
                include=["documents", "metadatas"],
            )
        except Exception as exc:
            raise ActionableError.store_unavailable("feedback_for_analysis", str(exc)) from exc

        ids = result.get("ids") or []
        documents = result.get("documents") or [""] * len(ids)
        metadatas = result.get("metadatas") or [{}] * len(ids)

        entries = []
        for feedback_id, document, meta in zip(ids, documents, metadatas, strict=True):
            meta = meta or {}
            outcome = meta.get("outcome")
            entries.append(
                Feedback(
                    id=feedback_id,
                    analysis_id=str(meta.get("analysis_id", analysis_id)),
                    user_id=str(meta.get("user_id", "")),
                    rating=int(meta.get("rating", 0)),
                    comments=document or "",
                    outcome=None if outcome is None else str(outcome),
                    created_at=datetime.fromisoformat(str(meta["created_at"])),
                )
            )
        entries.sort(key=lambda e: e.created_at)
        return entries

    def _collection(self) -> chromadb.Collection:
        return self._client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine"},
        )
