"""Stored authenticity analyses, one per judged posting.

Kept in their own ChromaDB collection next to the posting history.
The full job description is the document; the judge's verdict and the
submitting user are metadata (flags serialised as JSON lists).  Lookups
are by id or by owner, newest first.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import chromadb

from ghostjob_detector.errors import ActionableError
from ghostjob_detector.judge import Judgement
from ghostjob_detector.storage.history import ANONYMOUS_OWNER

logger = logging.getLogger(__name__)

_COLLECTION = "analyses"
_LOOKUP_ONLY_EMBEDDING = [1.0]


@dataclass(frozen=True)
class AnalysisRecord:
    """One judged posting, as returned to its owner."""

    id: str
    owner_id: str
    job_title: str
    company: str
    location: str
    job_description: str
    judgement: Judgement
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.owner_id,
            "jobTitle": self.job_title,
            "company": self.company,
            "location": self.location,
            "jobDescription": self.job_description,
            **self.judgement.to_dict(),
            "timestamp": self.created_at.isoformat(),
        }


class AnalysisStore:
    """Persists judge results and serves per-user history.

    Usage::

        analyses = AnalysisStore(persist_dir="./data/chroma_db")
        record = analyses.record(judgement, job_title=..., company=..., ...)
        analyses.get(record.id)
        analyses.history_for("user-1")
        analyses.remove(record.id)
    """

    def __init__(self, persist_dir: str, *, collection_name: str = _COLLECTION) -> None:
        self.persist_dir = persist_dir
        self.collection_name = collection_name
        self._client = chromadb.PersistentClient(path=persist_dir)

    def record(
        self,
        judgement: Judgement,
        *,
        job_title: str,
        company: str,
        location: str,
        job_description: str,
        created_at: datetime,
        owner_id: str = ANONYMOUS_OWNER,
    ) -> AnalysisRecord:
        """Store one analysis and return it with its new id."""
        record = AnalysisRecord(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            job_title=job_title,
            company=company,
            location=location,
            job_description=job_description,
            judgement=judgement,
            created_at=created_at,
        )
        try:
            self._collection().upsert(
                ids=[record.id],
                documents=[job_description],
                embeddings=[_LOOKUP_ONLY_EMBEDDING],  # type: ignore[arg-type]
                metadatas=[_to_metadata(record)],  # type: ignore[arg-type]
            )
        except Exception as exc:
            raise ActionableError.store_unavailable("record_analysis", str(exc)) from exc

        logger.info("Stored analysis %s for %s (owner %s)", record.id, company, owner_id)
        return record

    def get(self, analysis_id: str) -> AnalysisRecord:
        """Fetch one analysis; NOT_FOUND for unknown ids."""
        try:
            result = self._collection().get(
                ids=[analysis_id],
                include=["documents", "metadatas"],
            )
        except Exception as exc:
            raise ActionableError.store_unavailable("get_analysis", str(exc)) from exc

        records = _records_from_result(result)
        if not records:
            raise ActionableError.not_found("analysis", analysis_id)
        return records[0]

    def history_for(self, owner_id: str) -> list[AnalysisRecord]:
        """All analyses submitted by *owner_id*, newest first."""
        try:
            result = self._collection().get(
                where={"owner_id": owner_id},
                include=["documents", "metadatas"],
            )
        except Exception as exc:
            raise ActionableError.store_unavailable("analysis_history", str(exc)) from exc

        records = _records_from_result(result)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def remove(self, analysis_id: str) -> None:
        """Delete one analysis.  Unknown ids are a no-op."""
        try:
            self._collection().delete(ids=[analysis_id])
        except Exception as exc:
            raise ActionableError.store_unavailable("remove_analysis", str(exc)) from exc

        logger.info("Removed analysis %s", analysis_id)

    def _collection(self) -> chromadb.Collection:
        return self._client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine"},
        )


def _to_metadata(record: AnalysisRecord) -> dict[str, str | int | float]:
    return {
        "owner_id": record.owner_id,
        "job_title": record.job_title,
        "company": record.company,
        "location": record.location,
        "authenticity_score": record.judgement.authenticity_score,
        "red_flags": json.dumps(record.judgement.red_flags),
        "green_flags": json.dumps(record.judgement.green_flags),
        "reasoning": record.judgement.reasoning,
        "created_at": record.created_at.isoformat(),
    }


def _records_from_result(result: Any) -> list[AnalysisRecord]:
    ids = result.get("ids") or []
    documents = result.get("documents") or [""] * len(ids)
    metadatas = result.get("metadatas") or [{}] * len(ids)

    records: list[AnalysisRecord] = []
    for analysis_id, document, meta in zip(ids, documents, metadatas, strict=True):
        meta = meta or {}
        records.append(
            AnalysisRecord(
                id=analysis_id,
                owner_id=str(meta.get("owner_id", ANONYMOUS_OWNER)),
                job_title=str(meta.get("job_title", "")),
                company=str(meta.get("company", "")),
                location=str(meta.get("location", "")),
                job_description=document or "",
                judgement=Judgement(
                    authenticity_score=int(meta.get("authenticity_score", 0)),
                    red_flags=json.loads(str(meta.get("red_flags", "[]"))),
                    green_flags=json.loads(str(meta.get("green_flags", "[]"))),
                    reasoning=str(meta.get("reasoning", "")),
                ),
                created_at=datetime.fromisoformat(str(meta["created_at"])),
            )
        )
    return records
