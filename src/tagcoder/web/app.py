"""FastAPI application exposing extraction and tag analysis."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from tagcoder import __version__
from tagcoder.analysis.orchestrator import AnalysisOrchestrator, RunStatus
from tagcoder.config import AppConfig, build_provider_config
from tagcoder.errors import ConfigurationError, DocumentParseError
from tagcoder.export import build_export
from tagcoder.ingestion.pdf_loader import extract_document
from tagcoder.models import Document, Tag
from tagcoder.tags.collection import analysis_summary

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="tagcoder", version=__version__)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# One orchestrator per process so its progress flag guards against overlapping runs.
orchestrator = AnalysisOrchestrator(delay=AppConfig().request_delay)


class DocumentPayload(BaseModel):
    name: str
    content: str
    page_count: int = 0


class TagPayload(BaseModel):
    id: str | None = None
    name: str
    description: str = ""
    status: str | None = None
    quotes: List[str] = Field(default_factory=list)
    fingerprint: str | None = None


class ProviderPayload(BaseModel):
    api_key: str
    provider: str = "openai"
    model: str | None = None
    endpoint: str | None = None


class AnalyzePayload(BaseModel):
    document: DocumentPayload
    tags: List[TagPayload]
    provider: ProviderPayload


class SummaryPayload(BaseModel):
    tags: List[TagPayload]


def _to_tags(payloads: List[TagPayload]) -> List[Tag]:
    try:
        return [Tag.from_dict(payload.model_dump()) for payload in payloads]
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid tag: {exc}") from exc


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.post("/extract")
async def extract(file: UploadFile = File(...)) -> dict[str, Any]:
    data = await file.read()
    name = file.filename or "document.pdf"
    try:
        document = await asyncio.to_thread(extract_document, data, name)
    except DocumentParseError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {"name": document.name, "content": document.content, "page_count": document.page_count}


@app.post("/tags/summary")
async def tags_summary(payload: SummaryPayload) -> dict[str, int]:
    pending, up_to_date, total = analysis_summary(_to_tags(payload.tags))
    return {"needs_analysis": pending, "up_to_date": up_to_date, "total": total}


@app.post("/analyze")
async def analyze(payload: AnalyzePayload) -> dict[str, Any]:
    try:
        config = build_provider_config(
            payload.provider.api_key,
            payload.provider.provider,
            payload.provider.model,
            payload.provider.endpoint,
        )
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    document = Document(
        name=payload.document.name,
        content=payload.document.content,
        page_count=payload.document.page_count,
    )
    tags = _to_tags(payload.tags)

    try:
        outcome = await asyncio.to_thread(orchestrator.start_analysis, document, tags, config)
    except Exception as exc:  # pragma: no cover
        LOGGER.exception("Analysis failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    if outcome.status is RunStatus.ALREADY_RUNNING:
        raise HTTPException(status_code=409, detail=outcome.notices[0].message)
    if outcome.status is RunStatus.PRECONDITION_FAILED:
        raise HTTPException(status_code=422, detail=outcome.notices[0].message)

    return {
        "status": outcome.status.value,
        "tags": [tag.to_dict() for tag in outcome.tags],
        "progress": outcome.progress.to_dict(),
        "notices": [
            {"kind": notice.kind.value, "message": notice.message, "tag_id": notice.tag_id}
            for notice in outcome.notices
        ],
        "export": build_export(document.name, outcome.tags),
    }
