"""FastAPI entrypoint for ingest/query/trace endpoints."""

from __future__ import annotations

import uuid
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from loguru import logger
from pydantic import BaseModel, Field

from hybrid_rag.config import Settings
from hybrid_rag.errors import (
    ContentBlockedError,
    GenerationError,
    IndexingError,
    RetrievalError,
)
from hybrid_rag.ingest.chunker import OverlapChunker
from hybrid_rag.ingest.parser import TextExtractor
from hybrid_rag.ingest.pipeline import IngestPipeline
from hybrid_rag.llm.service import LanguageModel
from hybrid_rag.obs.logging import setup_logger
from hybrid_rag.obs.tracing import RouteTraceStore, Timer
from hybrid_rag.retrieval.embedder import HashingEmbedder
from hybrid_rag.retrieval.retriever import ChunkRetriever
from hybrid_rag.retrieval.vector_store import InMemoryVectorIndex
from hybrid_rag.routing.catalog import InMemoryDocumentCatalog, InMemoryProfileStore
from hybrid_rag.routing.router import HybridRouter


class IngestRequest(BaseModel):
    path: str = Field(min_length=1)
    owner_id: str = Field(min_length=1)
    file_id: str | None = None
    name: str | None = None


class QueryRequest(BaseModel):
    query: str = Field(min_length=1)
    owner_id: str = Field(min_length=1)
    file_id: str | None = None


class ProfileRequest(BaseModel):
    profile: str = ""


_settings = Settings()
setup_logger(_settings.log_level)

app = FastAPI(title="Hybrid RAG Router", version="0.1.0")

_extractor = TextExtractor()
_index = InMemoryVectorIndex(HashingEmbedder())
_catalog = InMemoryDocumentCatalog()
_profiles = InMemoryProfileStore()
_ingest_pipeline = IngestPipeline(
    _extractor, OverlapChunker(_settings.chunking), _index, _catalog
)

_llm = LanguageModel.from_settings(_settings)
_router = HybridRouter(
    llm=_llm,
    retriever=ChunkRetriever(_index, _settings.retrieval),
    catalog=_catalog,
    extractor=_extractor,
    profiles=_profiles,
    retrieval_config=_settings.retrieval,
    summary_config=_settings.summary,
)
_trace_store = RouteTraceStore()


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "llm_available": _llm.available,
        "indexed_chunks": len(_index),
    }


@app.post("/documents")
def ingest(request: IngestRequest) -> dict[str, Any]:
    file_id = request.file_id or str(uuid.uuid4())
    try:
        result = _ingest_pipeline.ingest_file(
            request.path,
            owner_id=request.owner_id,
            file_id=file_id,
            source_name=request.name,
        )
    except IndexingError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return {"file_id": file_id, "chunksAdded": result.chunks_added, "message": result.message}


@app.delete("/documents/{file_id}")
def delete_document(file_id: str, owner_id: str) -> dict[str, Any]:
    removed = _ingest_pipeline.remove_file(file_id, owner_id)
    return {"file_id": file_id, "chunksRemoved": removed}


@app.put("/users/{owner_id}/profile")
def set_profile(owner_id: str, request: ProfileRequest) -> dict[str, Any]:
    _profiles.set_profile(owner_id, request.profile)
    return {"owner_id": owner_id, "profile": request.profile}


@app.post("/query")
def query(request: QueryRequest) -> dict[str, Any]:
    try:
        with Timer() as timer:
            result = _router.route(request.query, request.owner_id, request.file_id)
    except ContentBlockedError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except GenerationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except RetrievalError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    trace = _trace_store.record(
        query=request.query,
        owner_id=request.owner_id,
        file_id=request.file_id,
        result=result,
        latency_ms=timer.elapsed_ms,
    )
    logger.info(f"Routed query as {result.search_type.value} in {timer.elapsed_ms:.1f} ms")
    return {**result.to_payload(), "trace_id": trace.trace_id}


@app.get("/traces")
def traces(limit: int = 20) -> dict[str, Any]:
    records = [asdict(record) for record in _trace_store.list_recent(limit=limit)]
    return {"items": records}


@app.get("/traces/{trace_id}")
def trace_detail(trace_id: str) -> dict[str, Any]:
    try:
        record = _trace_store.get(trace_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return asdict(record)


@app.get("/metrics")
def metrics() -> dict[str, Any]:
    return _trace_store.summary()
