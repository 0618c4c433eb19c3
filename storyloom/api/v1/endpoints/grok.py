"""
Direct access to the generation API: status, connection test, chat, one-off
generation and small batches.

Every route requires authentication and counts against the per-user AI limit.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from storyloom.api.deps import get_generation_client, limit_ai_requests
from storyloom.core.config import settings
from storyloom.core.exceptions import AppError, ServiceUnavailableError, ValidationError
from storyloom.models.user import User
from storyloom.schemas.common import envelope, error_envelope
from storyloom.schemas.grok import BatchItem, BatchRequest, ChatRequest, GenerateRequest
from storyloom.services.generation_client import GenerationClient

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(limit_ai_requests)])

GENERATION_TYPES = ("chapter", "summary", "enhancement", "integration", "analysis", "general")
MAX_BATCH_SIZE = 10


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_available(client: GenerationClient) -> None:
    if not client.is_available:
        raise ServiceUnavailableError("Grok AI service is not available")


@router.get("/status")
def get_status(generation_client: GenerationClient = Depends(get_generation_client)):
    service_status = {
        "available": generation_client.is_available,
        "model": generation_client.model,
        "maxTokens": generation_client.max_tokens,
        "temperature": generation_client.temperature,
        "features": {
            "enhanceContent": True,
            "integrateThoughts": True,
            "generateSummaries": True,
            "generateChapters": True,
            "analyzeWriting": True,
            "chat": True,
        },
        "timestamp": _now(),
    }
    if not generation_client.is_available:
        return JSONResponse(
            status_code=503,
            content=error_envelope(
                "Grok AI service is not available", data={"status": service_status}
            ),
        )
    return envelope({"status": service_status}, message="Grok AI service is available")


@router.post("/test")
async def test_connection(generation_client: GenerationClient = Depends(get_generation_client)):
    report = await generation_client.test_connection()
    if not report.success:
        logger.warning("Grok API connection test failed")
        return JSONResponse(
            status_code=503,
            content=error_envelope(
                "Grok API connection failed",
                error=None if settings.is_production else report.error,
                data={"available": False, "timestamp": report.timestamp},
            ),
        )

    return envelope(
        {
            "response": report.message,
            "model": report.model,
            "timestamp": report.timestamp,
            "available": True,
        },
        message="Grok API connection successful",
    )


@router.post("/chat")
async def chat(
    payload: ChatRequest,
    generation_client: GenerationClient = Depends(get_generation_client),
):
    message = (payload.message or "").strip()
    if not message:
        raise ValidationError("Message is required")
    _require_available(generation_client)

    response = await generation_client.chat(
        payload.message, language=payload.language, context=payload.context
    )
    return envelope(
        {
            "response": response,
            "metadata": {
                "language": payload.language,
                "messageLength": len(payload.message),
                "responseLength": len(response),
                "timestamp": _now(),
            },
        },
        message="Chat response generated successfully",
    )


async def _generate(client: GenerationClient, payload: GenerateRequest) -> dict:
    options = {
        "language": payload.language,
        "max_tokens": payload.max_tokens,
        "temperature": payload.temperature,
    }
    kind = payload.type

    if kind == "chapter":
        if not payload.title:
            raise ValidationError("Chapter title is required for chapter generation")
        result = await client.generate_chapter(
            payload.title, payload.outline or payload.prompt, **options
        )
    elif kind == "summary":
        result = await client.summarize_content(payload.prompt, **options)
    elif kind == "enhancement":
        result = await client.enhance_content(
            payload.title or "Content Enhancement", payload.prompt, **options
        )
    elif kind == "integration":
        if not payload.current_content or not payload.new_thought:
            raise ValidationError(
                "Current content and new thought are required for integration"
            )
        result = await client.integrate_thought(
            payload.current_content, payload.new_thought, **options
        )
    elif kind == "analysis":
        result = await client.analyze_writing(payload.prompt, **options)
    else:
        result = await client.generate_chapter("Generated Content", payload.prompt, **options)
    return result.to_dict()


@router.post("/generate")
async def generate_content(
    payload: GenerateRequest,
    generation_client: GenerationClient = Depends(get_generation_client),
):
    """One-off generation, routed by ``type``."""
    if not payload.prompt or not payload.prompt.strip():
        raise ValidationError("Prompt is required")
    if payload.type not in GENERATION_TYPES:
        raise ValidationError(
            "Invalid generation type",
            errors=[f"Type must be one of: {', '.join(GENERATION_TYPES)}"],
        )
    _require_available(generation_client)

    content = await _generate(generation_client, payload)
    logger.info("Generated %s content", payload.type)
    return envelope(
        {
            "content": content,
            "metadata": {
                "type": payload.type,
                "language": payload.language,
                "promptLength": len(payload.prompt),
                "timestamp": _now(),
            },
        },
        message=f"{payload.type} content generated successfully",
    )


BATCH_CONTEXT_FIELDS = ("language", "length", "tone", "bookTitle", "genre", "previousChapter")


def _batch_context(item: BatchItem) -> dict[str, Any]:
    context = item.context
    for name in BATCH_CONTEXT_FIELDS:
        value = context.get(name)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"Context field '{name}' must be a string")
    return context


async def _run_batch_item(client: GenerationClient, index: int, item: BatchItem) -> dict:
    context = _batch_context(item)
    language = context.get("language", "en")

    if item.type == "enhance":
        result = await client.enhance_content(
            item.title or f"Content {index + 1}",
            item.content,
            book_title=context.get("bookTitle"),
            genre=context.get("genre"),
            language=language,
            previous_chapter=context.get("previousChapter"),
        )
    elif item.type == "summarize":
        if not item.content:
            raise ValidationError("Content is required")
        result = await client.summarize_content(
            item.content, language=language, length=context.get("length", "medium")
        )
    elif item.type == "integrate":
        if not item.current_content or not item.new_thought:
            raise ValidationError("Current content and new thought are required")
        result = await client.integrate_thought(
            item.current_content,
            item.new_thought,
            language=language,
            tone=context.get("tone", "narrative"),
        )
    else:
        raise ValidationError(f"Unsupported request type: {item.type}")
    return result.to_dict()


def _batch_error(exc: AppError) -> str:
    if exc.detail and not settings.is_production:
        return str(exc.detail)
    return exc.message


@router.post("/batch")
async def batch_process(
    payload: BatchRequest,
    current_user: User = Depends(limit_ai_requests),
    generation_client: GenerationClient = Depends(get_generation_client),
):
    """Run up to ten sub-requests in order; a failing item never stops the rest."""
    if not payload.requests:
        raise ValidationError("Requests array is required and must not be empty")
    if len(payload.requests) > MAX_BATCH_SIZE:
        raise ValidationError(f"Maximum {MAX_BATCH_SIZE} requests allowed per batch")
    _require_available(generation_client)

    results = []
    for index, item in enumerate(payload.requests):
        try:
            data = await _run_batch_item(generation_client, index, item)
        except AppError as exc:
            results.append({"index": index, "success": False, "error": _batch_error(exc)})
        except Exception:
            logger.exception("Batch item %d failed unexpectedly", index)
            results.append({"index": index, "success": False, "error": "Internal error"})
        else:
            results.append({"index": index, "success": True, "data": data})

    failed = sum(1 for result in results if not result["success"])
    logger.info(
        "Processed batch of %d requests for user %s (%d errors)",
        len(results),
        current_user.id,
        failed,
    )
    return envelope(
        {
            "results": results,
            "summary": {
                "total": len(results),
                "successful": len(results) - failed,
                "failed": failed,
            },
        },
        message="Batch processing completed",
    )
