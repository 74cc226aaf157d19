"""Client for the RAG document service: search, upload and knowledge-base management."""

import logging
from pathlib import PurePath
from typing import Any, TypedDict, cast
from urllib.parse import quote

from src.clients.http import service_request
from src.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 5

SUPPORTED_CONTENT_TYPES = frozenset(
    {
        "application/pdf",
        "text/plain",
        "text/markdown",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)
SUPPORTED_SUFFIXES = frozenset({".txt", ".md"})


class DocumentMetadata(TypedDict, total=False):
    source: str
    content: str


class RetrievedDocument(TypedDict, total=False):
    metadata: DocumentMetadata
    score: float


class RagResponse(TypedDict, total=False):
    answer: str
    retrieved_documents: list[RetrievedDocument]
    confidence: float
    query_type: str
    metadata: dict[str, Any]


class UploadResponse(TypedDict, total=False):
    success: bool
    chunks_indexed: int


class DocumentList(TypedDict, total=False):
    sources: list[str]
    count: int


def is_supported_document(filename: str, content_type: str | None) -> bool:
    """Accept known document MIME types, or plain text/markdown by extension."""
    if content_type in SUPPORTED_CONTENT_TYPES:
        return True
    return PurePath(filename).suffix.lower() in SUPPORTED_SUFFIXES


def _rag_url(path: str) -> str:
    return f"{get_settings().rag_url}{path}"


async def query_rag(query: str, max_results: int = DEFAULT_MAX_RESULTS) -> RagResponse:
    """Search the knowledge base and return the raw answer payload."""
    logger.info("RAG query (max_results=%d): %.200s", max_results, query)
    data = await service_request(
        "POST",
        _rag_url("/rag/query"),
        json={"query": query, "max_results": max_results},
        failure_message="Search failed",
    )
    return cast(RagResponse, data if isinstance(data, dict) else {})


async def upload_document(filename: str, content: bytes, content_type: str | None = None) -> UploadResponse:
    """Upload one file for indexing as multipart form data."""
    logger.info("Uploading %s (%d bytes) to RAG", filename, len(content))
    data = await service_request(
        "POST",
        _rag_url("/rag/upload"),
        files={"file": (filename, content, content_type or "application/octet-stream")},
        failure_message="Failed to upload document",
    )
    return cast(UploadResponse, data if isinstance(data, dict) else {})


async def get_documents() -> DocumentList:
    data = await service_request("GET", _rag_url("/rag/documents"))
    return cast(DocumentList, data if isinstance(data, dict) else {})


async def delete_document(filename: str) -> Any:
    """Delete one indexed document by filename."""
    return await service_request(
        "DELETE",
        _rag_url(f"/rag/documents/{quote(filename, safe='')}"),
        failure_message="Failed to delete document",
    )


async def delete_all_documents() -> Any:
    return await service_request("DELETE", _rag_url("/rag/documents"), failure_message="Failed to delete all documents")


async def get_stats() -> Any:
    return await service_request("GET", _rag_url("/rag/stats"))
