from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from pydantic import ValidationError

from .buffer_store import BufferStore, MessageRejected, RejectReason
from .config import settings
from .logging_metrics import (
    correlation_id,
    metrics_router,
    observe_request,
    record_admission,
    route_label,
    set_ready,
    set_unready,
    setup_logging,
)
from .models import Message
from .security import require_api_key

log = logging.getLogger(__name__)

# Single process-wide buffer; created at import, lives for the process lifetime
store = BufferStore(settings.buffer_config())

REJECT_STATUS = {
    RejectReason.MESSAGE_TOO_LARGE: 413,
    RejectReason.AUTHOR_QUOTA_EXCEEDED: 429,
}


def get_store() -> BufferStore:
    return store


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    setup_logging(settings.log_level)
    settings.validate()
    cfg = store.config
    log.info(
        f"buffer ready: queue_size={cfg.queue_size} max_message_size={cfg.max_message_size} "
        f"max_author_count={cfg.max_author_count} max_age={cfg.max_age:.0f}s"
    )
    set_ready()
    yield
    set_unready()


app = FastAPI(title="Shoutbox", version="0.1.0", lifespan=lifespan)
app.include_router(metrics_router)

# OTel instrumentation (safe if exporter unset)
try:
    FastAPIInstrumentor.instrument_app(app)
except Exception as e:
    log.warning(f"OTel instrumentation failed: {e}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.middleware("http")
async def correlation_mw(request: Request, call_next):  # type: ignore[no-untyped-def]
    cid = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
    token = correlation_id.set(cid)
    try:
        response = await call_next(request)
        response.headers["x-correlation-id"] = cid
        return response
    finally:
        correlation_id.reset(token)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    start = time.perf_counter()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        elapsed = time.perf_counter() - start
        observe_request(route_label(request.scope), request.method, status, elapsed)


@app.exception_handler(Exception)
async def unhandled(_request: Request, exc: Exception):  # type: ignore[no-untyped-def]
    log.exception("Unhandled error")
    return JSONResponse({"code": "ERR_UNKNOWN", "message": str(exc)}, status_code=500)


@app.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "ok"


# Everything under /message sits behind the api key gate. The gate is a
# router dependency so it runs before the body is read.
messages_router = APIRouter(dependencies=[Depends(require_api_key)])


@messages_router.post("/message", status_code=201)
async def add_message(request: Request, buf: BufferStore = Depends(get_store)) -> Response:
    raw = await request.body()
    try:
        message = Message.model_validate_json(raw)
    except ValidationError as e:
        detail = e.errors(include_url=False, include_context=False, include_input=False)
        raise HTTPException(status_code=422, detail=detail)

    try:
        count = await buf.append(message)
    except MessageRejected as rej:
        record_admission(len(buf), rej.reason)
        if rej.reason is RejectReason.MESSAGE_TOO_LARGE:
            log.error(f"message too large: author={rej.author} length={rej.length}")
        else:
            log.error(f"too many messages: author={rej.author}")
        return Response(status_code=REJECT_STATUS[rej.reason])

    record_admission(count)
    log.debug(f"added message: count={count}")
    return Response(status_code=201)


@messages_router.get("/message", response_model=list[Message])
async def get_messages(buf: BufferStore = Depends(get_store)) -> list[Message]:
    messages = await buf.snapshot()
    log.debug(f"returning messages: count={len(messages)}")
    return messages


app.include_router(messages_router)


def main() -> None:
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
        factory=False,
    )


if __name__ == "__main__":
    main()
