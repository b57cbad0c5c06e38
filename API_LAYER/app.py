# API_LAYER/app.py
import asyncio
from contextlib import asynccontextmanager
from typing import Any, Dict

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from configurations.config import CLEANUP_INTERVAL_SECONDS, DEBUG, PORT
from core.log_format import configure_logging
from services.message_processor import MessageProcessor, build_message_processor

# -----------------------------
# Structured Logging Setup
# -----------------------------
logger = configure_logging()

# -----------------------------
# Metrics
# -----------------------------
metrics_lock = asyncio.Lock()
request_counters = {
    "total": 0,
    "replies": 0,
    "errors": 0,
}


# -----------------------------
# Pydantic Models
# -----------------------------
class UserRequest(BaseModel):
    user_key: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


class UserReply(BaseModel):
    reply: str


# -----------------------------
# Housekeeping
# -----------------------------
async def sweep_expired_state(processor: MessageProcessor, interval: float) -> None:
    """Periodic memory hygiene; expiry itself is always checked lazily on access."""
    while True:
        await asyncio.sleep(interval)
        try:
            processor.gate.cleanup_expired()
            processor.window.cleanup_inactive()
        except Exception:
            logger.exception("❌ [SWEEP] cleanup failed")


# -----------------------------
# Startup / Shutdown
# -----------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    processor = build_message_processor()
    app.state.processor = processor
    sweeper = asyncio.create_task(
        sweep_expired_state(processor, CLEANUP_INTERVAL_SECONDS)
    )
    logger.info("✅ Finance assistant ready")

    yield

    sweeper.cancel()
    close = getattr(processor.dispatcher.backend, "aclose", None)
    if close is not None:
        await close()
    logger.info("✅ Finance assistant stopped")


# -----------------------------
# FastAPI App
# -----------------------------
app = FastAPI(title="Finance Assistant API", version="1.0", lifespan=lifespan)


def get_processor(request: Request) -> MessageProcessor:
    processor = getattr(request.app.state, "processor", None)
    if processor is None:
        raise HTTPException(status_code=503, detail="Assistant not initialised")
    return processor


# -----------------------------
# API Endpoints
# -----------------------------
@app.get("/")
async def root():
    return {"message": "Finance Assistant API is running."}


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics(processor: MessageProcessor = Depends(get_processor)) -> Dict[str, Any]:
    async with metrics_lock:
        snapshot = request_counters.copy()
    snapshot["pending_confirmations"] = processor.pending_count()
    return snapshot


@app.post("/process", response_model=UserReply)
async def process_request(
    request: UserRequest,
    processor: MessageProcessor = Depends(get_processor),
):
    async with metrics_lock:
        request_counters["total"] += 1

    logger.info(
        f"[REQUEST_START] user_key={request.user_key}, text_length={len(request.text)}"
    )
    try:
        reply = await processor.process_message(request.user_key, request.text)
    except Exception as e:
        async with metrics_lock:
            request_counters["errors"] += 1
        logger.exception(f"[ERROR] user_key={request.user_key}, exception={e}")
        raise HTTPException(
            status_code=500,
            detail=str(e) if DEBUG else "An unexpected error occurred",
        )

    async with metrics_lock:
        request_counters["replies"] += 1
    return UserReply(reply=reply)


# -----------------------------
# Entrypoint
# -----------------------------
if __name__ == "__main__":
    uvicorn.run("API_LAYER.app:app", host="0.0.0.0", port=PORT, workers=1)
