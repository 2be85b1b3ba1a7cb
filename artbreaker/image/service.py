"""Upload/submit/poll orchestration used by the API and CLI adapters.

Role in pipeline:
    - `upload_asset` validates a local file, uploads it, and returns an
      `UploadedAsset` whose URL can be used as a generation source.
    - `generate` resolves the source reference, submits the task, polls it to a
      terminal state, and returns the result image URL.

State machine (per service instance):
    idle -> submitting -> polling -> {succeeded | failed}

    Only one `generate` call may be in flight per instance; a concurrent call
    (from any thread) fails a non-blocking lock acquire and is rejected with
    `GenerationInProgressError` rather than queued. Callers that need
    parallel generations use one service per generation.

Error handling strategy:
    - Exceptions from the transport and poller are intentionally propagated.
    - Only local upload validation raises here (`UploadRejectedError`).
"""

import logging
import mimetypes
import os
import random
import string
import threading
import time
from enum import Enum

from artbreaker.image.catalog import resolve_source_url
from artbreaker.image.client import FluxKontextClient
from artbreaker.image.errors import GenerationInProgressError, UploadRejectedError
from artbreaker.image.models import GenerationRequest, UploadedAsset
from artbreaker.image.poller import ProgressCallback, TaskPoller
from artbreaker.image.provider_config import (
    ALLOWED_UPLOAD_TYPES,
    DEFAULT_MODEL,
    DEFAULT_OUTPUT_FORMAT,
    MAX_UPLOAD_SIZE_BYTES,
    MAX_UPLOAD_SIZE_MB,
    PAINTINGS_BASE_URL,
)

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


class GenerationState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _asset_id(timestamp: int) -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"uploaded-{timestamp}-{suffix}"


def _asset_title(file_name: str) -> str:
    return os.path.basename(file_name).split(".")[0] or "Upload"


class ImageGenerationService:
    """Sequence resolve/upload -> submit -> poll for one generation at a time.

    Args:
        client: Transport client; built from configuration when omitted.
        poller: Task poller; built around `client` when omitted.
        paintings_base_url: Location relative source references resolve against.
    """

    def __init__(self, client=None, poller=None, paintings_base_url: str = PAINTINGS_BASE_URL):
        self.client = client or FluxKontextClient()
        self.poller = poller or TaskPoller(self.client)
        self.paintings_base_url = paintings_base_url
        self.state = GenerationState.IDLE
        self._in_flight = threading.Lock()

    def upload_asset(self, file_bytes: bytes, file_name: str, content_type: str | None = None) -> UploadedAsset:
        """Validate and upload a local image file.

        Args:
            file_bytes: Raw file content.
            file_name: Original file name (used for type guessing and the title).
            content_type: Declared MIME type; guessed from `file_name` if omitted.

        Returns:
            The created `UploadedAsset`.

        Failure handling:
            - Unsupported type or oversize file -> `UploadRejectedError`
              (no network call is made).
            - Transport/service/protocol failures propagate from the client.
        """
        content_type = content_type or mimetypes.guess_type(file_name)[0]
        if content_type not in ALLOWED_UPLOAD_TYPES:
            raise UploadRejectedError(
                "Unsupported file format. Please upload a JPG, PNG or WEBP image."
            )
        if len(file_bytes) > MAX_UPLOAD_SIZE_BYTES:
            raise UploadRejectedError(
                f"File too large. Please upload an image smaller than {MAX_UPLOAD_SIZE_MB}MB."
            )

        url = self.client.upload_image(file_bytes, file_name, content_type=content_type)
        timestamp = int(time.time() * 1000)

        return UploadedAsset(
            id=_asset_id(timestamp),
            file_name=file_name,
            url=url,
            title=_asset_title(file_name),
            timestamp=timestamp,
        )

    def generate(
        self,
        request: GenerationRequest,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> str:
        """Run one generation end to end and return the result image URL.

        Raises:
            GenerationInProgressError: another `generate` is already in flight.
            ValueError: empty source reference.
            Any failure from submission or polling, unchanged.
        """
        if not self._in_flight.acquire(blocking=False):
            raise GenerationInProgressError("A generation is already in progress")

        try:
            self.state = GenerationState.SUBMITTING
            try:
                input_image = resolve_source_url(request.source_ref, self.paintings_base_url)
                task_id = self.client.submit_task(request, input_image=input_image)
                logger.info("Submitted task %s (model=%s)", task_id, request.model)

                self.state = GenerationState.POLLING
                task = self.poller.wait_for_completion(
                    task_id, on_progress=on_progress, cancel_event=cancel_event
                )
            except BaseException:
                self.state = GenerationState.FAILED
                raise

            self.state = GenerationState.SUCCEEDED
            return task.result_url
        finally:
            self._in_flight.release()


def generate_image(
    source_ref: str,
    prompt: str,
    model: str = DEFAULT_MODEL,
    output_format: str = DEFAULT_OUTPUT_FORMAT,
    enable_translation: bool = True,
    on_progress: ProgressCallback | None = None,
) -> str:
    """Generate an edited image with a service built from configuration.

    Returns:
        URL of the generated image.
    """
    request = GenerationRequest(
        source_ref=source_ref,
        prompt=prompt,
        model=model,
        output_format=output_format,
        enable_translation=enable_translation,
    )
    return ImageGenerationService().generate(request, on_progress=on_progress)
