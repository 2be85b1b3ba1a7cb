"""
HTTP API adapter for the Artbreaker image service.

Architectural role:
- Expose the painting catalog, file upload, and image edit operations over HTTP.
- Enforce adapter-level input validation.
- Delegate upload/generation work to `artbreaker.image.service`.
- Render progress callbacks as SSE frames (the progress sink).

Endpoint responsibilities:
- `GET /v1/paintings`: list catalog paintings with resolved URLs.
- `POST /v1/uploads`: validate and upload one image file.
- `POST /v1/edits`: run one generation; JSON result or SSE progress stream.

API request lifecycle (`POST /v1/edits`):
1. Validate `source` and `prompt`.
2. Build a `GenerationRequest` and a fresh service instance.
3. Run the blocking generation in a worker thread.
4. Non-stream: return `{image_url, timestamp}`.
   Stream: forward every progress update as `data:` frame, then a terminal
   frame, then `[DONE]`.

Error handling strategy:
- Validation and upload rejections -> HTTP 400.
- Service/protocol failures -> HTTP 502.
- Transport failures -> HTTP 503.
- Timeouts -> HTTP 504.
- In stream mode failures become a `{"status": "failed"}` frame because the
  response status has already been sent.
- A client disconnect sets the cancellation token so polling stops.

Side effects:
- Emits debug output only when `DEBUG == "true"`.
- Loads environment variables at import time via `load_dotenv()`.
"""

from dotenv import load_dotenv

load_dotenv()

import asyncio
import json
import os
import threading
import time

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from artbreaker.image.catalog import PAINTINGS
from artbreaker.image.errors import (
    ArtbreakerError,
    ConfigurationError,
    GenerationInProgressError,
    GenerationTimeoutError,
    TransportError,
    UploadRejectedError,
)
from artbreaker.image.models import GenerationRequest
from artbreaker.image.provider_config import (
    DEFAULT_MODEL,
    DEFAULT_OUTPUT_FORMAT,
    MAX_UPLOAD_SIZE_BYTES,
)
from artbreaker.image.service import ImageGenerationService

app = FastAPI()
# Sensitive request/response debug logging is opt-in.
DEBUG = os.getenv("DEBUG") == "true"


def build_service() -> ImageGenerationService:
    """Return a fresh service; one per request keeps generations independent."""
    return ImageGenerationService()


# ============================================================
# Request Schema
# ============================================================

class EditRequest(BaseModel):
    source: str = ""
    prompt: str = ""
    model: str = DEFAULT_MODEL
    output_format: str = DEFAULT_OUTPUT_FORMAT
    enable_translation: bool = True
    stream: bool = False


# ============================================================
# Error Mapping
# ============================================================

def error_status(err: Exception) -> int:
    """Map a core failure to the HTTP status returned to clients."""
    if isinstance(err, (UploadRejectedError, ValueError)):
        return 400
    if isinstance(err, GenerationInProgressError):
        return 409
    if isinstance(err, GenerationTimeoutError):
        return 504
    if isinstance(err, TransportError):
        return 503
    if isinstance(err, ConfigurationError):
        return 500
    return 502


def error_response(err: Exception) -> JSONResponse:
    return JSONResponse(status_code=error_status(err), content={"error": str(err)})


# ============================================================
# Catalog
# ============================================================

@app.get("/v1/paintings")
def list_paintings():
    return {"object": "list", "data": [painting.to_dict() for painting in PAINTINGS]}


# ============================================================
# Upload
# ============================================================

@app.post("/v1/uploads")
async def upload(file: UploadFile = File(...)):
    """
    Upload one image and return the created asset.

    Input validation behavior:
    - Missing filename -> HTTP 400.
    - Type/size rejections from the service -> HTTP 400.
    """
    if not file.filename:
        return JSONResponse(status_code=400, content={"error": "No file provided"})

    # One byte past the limit is enough for the service to reject oversize files.
    file_bytes = await file.read(MAX_UPLOAD_SIZE_BYTES + 1)

    try:
        service = build_service()
        asset = await asyncio.to_thread(
            service.upload_asset, file_bytes, file.filename, file.content_type
        )
    except (ArtbreakerError, ValueError) as err:
        if DEBUG:
            print("Upload failed:", repr(err))
        return error_response(err)

    return asset.to_dict()


# ============================================================
# Image Edits
# ============================================================

@app.post("/v1/edits")
async def create_edit(body: EditRequest, request: Request):
    """
    Run one image edit.

    Input validation behavior:
    - Empty `source` or `prompt` -> HTTP 400.

    Determinism considerations:
    - Timestamps are wall-clock milliseconds.
    - Frame count depends on how many status observations the poller receives.
    """
    if not body.source.strip():
        return JSONResponse(status_code=400, content={"error": "No source image provided"})
    if not body.prompt.strip():
        return JSONResponse(status_code=400, content={"error": "No prompt provided"})

    generation_request = GenerationRequest(
        source_ref=body.source.strip(),
        prompt=body.prompt.strip(),
        model=body.model,
        output_format=body.output_format,
        enable_translation=body.enable_translation,
    )

    if DEBUG:
        print("\n==== API DEBUG START ====")
        print("Source:", generation_request.source_ref)
        print("Model:", generation_request.model)
        print("Stream:", body.stream)

    try:
        service = build_service()
    except ArtbreakerError as err:
        return error_response(err)

    if not body.stream:
        try:
            image_url = await asyncio.to_thread(service.generate, generation_request)
        except (ArtbreakerError, ValueError) as err:
            if DEBUG:
                print("Generation failed:", repr(err))
            return error_response(err)

        return {"image_url": image_url, "timestamp": int(time.time() * 1000)}

    return StreamingResponse(
        stream_edit(service, generation_request, request, threading.Event()),
        media_type="text/event-stream",
    )


# ============================================================
# SSE Progress Stream
# ============================================================

async def stream_edit(service, generation_request, request, cancel_event):
    """
    Yield SSE frames: progress updates, a terminal frame, then `[DONE]`.

    The blocking generation runs in a worker thread; progress callbacks are
    handed back to the event loop with `call_soon_threadsafe`.

    Side effects:
    - Sets `cancel_event` when the client disconnects before the worker finishes,
      so the poller stops querying.
    """
    loop = asyncio.get_running_loop()
    frames: asyncio.Queue = asyncio.Queue()

    def on_progress(update):
        loop.call_soon_threadsafe(frames.put_nowait, update.to_dict())

    async def run_generation():
        try:
            image_url = await asyncio.to_thread(
                service.generate, generation_request, on_progress, cancel_event
            )
            final = {
                "status": "completed",
                "progress": 100,
                "image_url": image_url,
                "timestamp": int(time.time() * 1000),
            }
        except (ArtbreakerError, ValueError) as err:
            final = {"status": "failed", "message": str(err)}
        await frames.put(final)
        await frames.put(None)

    worker = asyncio.create_task(run_generation())

    try:
        while True:
            if await request.is_disconnected():
                if DEBUG:
                    print("Client disconnected during stream.")
                return

            frame = await frames.get()
            if frame is None:
                break

            if DEBUG:
                print("Streaming frame:", frame)
            yield f"data: {json.dumps(frame)}\n\n"

        yield "data: [DONE]\n\n"
    except (asyncio.CancelledError, BrokenPipeError, ConnectionResetError):
        if DEBUG:
            print("Streaming cancelled by client.")
        return
    finally:
        if not worker.done():
            cancel_event.set()
