"""Posting history — append/query access to every observed job posting.

:class:`PostingHistory` is the interface the pattern detector and fleet
report depend on; :class:`ChromaPostingHistory` is the production
implementation on an embedded ChromaDB collection.

Records are looked up by metadata (company name, similar-id count),
never by vector, so every record carries the same one-dimensional
placeholder embedding.  The description lives in the ChromaDB document
field; the remaining fields are scalar metadata:

  - ``similar_job_ids`` is serialised as a JSON list (ChromaDB metadata
    only holds scalars) with ``similar_count`` alongside it so the fleet
    scan can filter server-side
  - an empty ``last_seen`` means the posting has no recorded last sighting
"""

from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

import chromadb

from ghostjob_detector.errors import ActionableError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

ANONYMOUS_OWNER = "anonymous"

_COLLECTION = "postings"
_LOOKUP_ONLY_EMBEDDING = [1.0]
_DEFAULT_PAGE_SIZE = 500


@dataclass(frozen=True)
class PostingRecord:
    """One stored observation of a job posting.

    ``similar_job_ids`` points at *earlier* records found similar when
    this one was analysed.  Older records are never back-linked to newer
    ones; the relation is a one-way annotation, not a symmetric graph.
    """

    id: str
    company_name: str
    job_title: str
    location: str
    job_description: str
    first_seen: datetime
    last_seen: datetime | None
    similar_job_ids: tuple[str, ...] = ()
    owner_id: str = ANONYMOUS_OWNER

    def __post_init__(self) -> None:
        if self.last_seen is not None and self.last_seen < self.first_seen:
            raise ValueError(
                f"Posting {self.id}: last_seen {self.last_seen.isoformat()} "
                f"precedes first_seen {self.first_seen.isoformat()}"
            )

    @classmethod
    def create(
        cls,
        *,
        company_name: str,
        job_title: str,
        location: str,
        job_description: str,
        seen_at: datetime,
        similar_job_ids: Iterable[str] = (),
        owner_id: str = ANONYMOUS_OWNER,
    ) -> PostingRecord:
        """Build a brand-new record first and last seen at *seen_at*."""
        return cls(
            id=uuid.uuid4().hex,
            company_name=company_name,
            job_title=job_title,
            location=location,
            job_description=job_description,
            first_seen=seen_at,
            last_seen=seen_at,
            similar_job_ids=tuple(similar_job_ids),
            owner_id=owner_id,
        )

    def seen_again(self, seen_at: datetime) -> PostingRecord:
        """Return a copy whose ``last_seen`` is extended to *seen_at*.

        ``last_seen`` only ever moves forward.
        """
        if self.last_seen is not None and self.last_seen >= seen_at:
            return self
        return replace(self, last_seen=max(seen_at, self.first_seen))


class PostingHistory(ABC):
    """Storage interface for posting records.

    ``append`` must be durable and all-or-nothing: once it returns the
    batch is visible to ``query_by_company``; if it raises, none of it is.
    Read and write failures raise STORE_UNAVAILABLE.
    """

    @abstractmethod
    def query_by_company(self, company_name: str) -> list[PostingRecord]:
        """All records for a normalized company name, oldest ``first_seen`` first."""
        ...

    @abstractmethod
    def append(
        self,
        record: PostingRecord,
        *,
        touched: Iterable[PostingRecord] = (),
    ) -> None:
        """Store *record*, plus updated copies of existing records, in one write."""
        ...

    @abstractmethod
    def get(self, record_id: str) -> PostingRecord:
        """Fetch one record; NOT_FOUND for unknown ids."""
        ...

    @abstractmethod
    def iter_records(
        self,
        *,
        min_similar: int | None = None,
        page_size: int = _DEFAULT_PAGE_SIZE,
    ) -> Iterator[PostingRecord]:
        """Stream records page by page.

        With *min_similar*, only records with **more than** that many
        similar ids are yielded.
        """
        ...

    @abstractmethod
    def count(self) -> int:
        """Total number of stored records."""
        ...


class ChromaPostingHistory(PostingHistory):
    """Posting history on a ChromaDB persistent collection.

    Usage::

        history = ChromaPostingHistory(persist_dir="./data/chroma_db")
        records = history.query_by_company("acme")
        history.append(new_record, touched=[extended_prior])
    """

    def __init__(self, persist_dir: str, *, collection_name: str = _COLLECTION) -> None:
        self.persist_dir = persist_dir
        self.collection_name = collection_name
        self._client = chromadb.PersistentClient(path=persist_dir)
        logger.debug("ChromaDB posting history initialized at %s", persist_dir)

    # -- Reads ---------------------------------------------------------------

    def query_by_company(self, company_name: str) -> list[PostingRecord]:
        try:
            result = self._collection().get(
                where={"company_name": company_name},
                include=["documents", "metadatas"],
            )
        except Exception as exc:
            raise ActionableError.store_unavailable("query_by_company", str(exc)) from exc

        records = _records_from_result(result)
        records.sort(key=lambda r: r.first_seen)
        logger.debug("Loaded %d prior postings for '%s'", len(records), company_name)
        return records

    def get(self, record_id: str) -> PostingRecord:
        try:
            result = self._collection().get(
                ids=[record_id],
                include=["documents", "metadatas"],
            )
        except Exception as exc:
            raise ActionableError.store_unavailable("get", str(exc)) from exc

        records = _records_from_result(result)
        if not records:
            raise ActionableError.not_found("posting", record_id)
        return records[0]

    def iter_records(
        self,
        *,
        min_similar: int | None = None,
        page_size: int = _DEFAULT_PAGE_SIZE,
    ) -> Iterator[PostingRecord]:
        where: dict[str, Any] | None = None
        if min_similar is not None:
            where = {"similar_count": {"$gt": min_similar}}

        offset = 0
        while True:
            try:
                page = self._collection().get(
                    where=where,
                    limit=page_size,
                    offset=offset,
                    include=["documents", "metadatas"],
                )
            except Exception as exc:
                raise ActionableError.store_unavailable("iter_records", str(exc)) from exc

            records = _records_from_result(page)
            yield from records
            if len(records) < page_size:
                return
            offset += page_size

    def count(self) -> int:
        try:
            return self._collection().count()
        except Exception as exc:
            raise ActionableError.store_unavailable("count", str(exc)) from exc

    # -- Writes --------------------------------------------------------------

    def append(
        self,
        record: PostingRecord,
        *,
        touched: Iterable[PostingRecord] = (),
    ) -> None:
        batch = [record, *touched]
        try:
            self._collection().upsert(
                ids=[r.id for r in batch],
                documents=[r.job_description for r in batch],
                embeddings=[_LOOKUP_ONLY_EMBEDDING for _ in batch],  # type: ignore[arg-type]
                metadatas=[_to_metadata(r) for r in batch],  # type: ignore[arg-type]
            )
        except Exception as exc:
            raise ActionableError.store_unavailable("append", str(exc)) from exc

        logger.info(
            "Stored posting %s for '%s' (%d prior postings touched)",
            record.id,
            record.company_name,
            len(batch) - 1,
        )

    # -- Internal helpers ----------------------------------------------------

    def _collection(self) -> chromadb.Collection:
        return self._client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine"},
        )


def _to_metadata(record: PostingRecord) -> dict[str, str | int | float]:
    return {
        "company_name": record.company_name,
        "job_title": record.job_title,
        "location": record.location,
        "first_seen": record.first_seen.isoformat(),
        "last_seen": record.last_seen.isoformat() if record.last_seen else "",
        "similar_job_ids": json.dumps(list(record.similar_job_ids)),
        "similar_count": len(record.similar_job_ids),
        "owner_id": record.owner_id,
    }


def _records_from_result(result: Any) -> list[PostingRecord]:
    """Rebuild records from a ChromaDB ``get`` result."""
    ids = result.get("ids") or []
    documents = result.get("documents") or [""] * len(ids)
    metadatas = result.get("metadatas") or [{}] * len(ids)

    records: list[PostingRecord] = []
    for record_id, document, meta in zip(ids, documents, metadatas, strict=True):
        meta = meta or {}
        last_seen = str(meta.get("last_seen", ""))
        records.append(
            PostingRecord(
                id=record_id,
                company_name=str(meta.get("company_name", "")),
                job_title=str(meta.get("job_title", "")),
                location=str(meta.get("location", "")),
                job_description=document or "",
                first_seen=datetime.fromisoformat(str(meta["first_seen"])),
                last_seen=datetime.fromisoformat(last_seen) if last_seen else None,
                similar_job_ids=tuple(json.loads(str(meta.get("similar_job_ids", "[]")))),
                owner_id=str(meta.get("owner_id", ANONYMOUS_OWNER)),
            )
        )
    return records
