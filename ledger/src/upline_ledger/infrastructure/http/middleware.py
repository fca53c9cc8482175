from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from fastapi import Request
from opentelemetry import context as otel_context

from upline_commons.observability.tracing import attach_baggage

logger = logging.getLogger("upline_ledger.http")

REQUEST_ID_HEADER = "x-request-id"
_BODY_LOG_LIMIT = 1024


async def request_logging_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Any]],
) -> Any:
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    context = {
        "request_id": request_id,
        "request_line": _format_request_line(request),
        "method": request.method,
        "path": request.url.path,
    }

    token = attach_baggage({"request_id": request_id})
    try:
        body = await request.body()
        logger.info(
            "request_received",
            extra={"data": {**context, "body": _truncate_body(body)}},
        )

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", extra={"data": context})
            raise
    finally:
        otel_context.detach(token)

    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    level = logging.WARNING if response.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "request_completed",
        extra={"data": {**context, "status_code": response.status_code, "duration_ms": duration_ms}},
    )
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def _format_request_line(request: Request) -> str:
    query = request.url.query
    if query:
        return f"{request.method} {request.url.path}?{query}"
    return f"{request.method} {request.url.path}"


def _truncate_body(body: bytes, limit: int = _BODY_LOG_LIMIT) -> str:
    if not body:
        return ""
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        return f"<binary data: {len(body)} bytes>"
    if len(text) <= limit:
        return text
    return text[:limit] + "... (truncated)"


__all__ = ["REQUEST_ID_HEADER", "request_logging_middleware"]
