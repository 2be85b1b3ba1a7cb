"""FLUX.1-Kontext HTTP transport client.

Processing flow:
    1. Resolve endpoint/credential configuration from `provider_config`.
    2. Issue exactly one HTTP round trip per logical operation
       (upload, submit, status query).
    3. Validate the `{code, msg, data}` envelope.
    4. Return the extracted value or raise a typed failure.

Error handling strategy:
    - Connection/DNS/read-timeout failures -> `TransportError`.
    - Non-2xx status or non-success envelope code -> `ServiceError`, using the
      server-supplied message when one is present.
    - Missing required fields in a well-formed response -> `ProtocolError`.
    - Unparseable JSON error bodies degrade to a generic HTTP-status message.

Security considerations:
    - The bearer credential is attached to every call and never logged.
    - Request payloads are not logged.
"""

import logging
import time

import requests

from artbreaker.image.errors import ConfigurationError, ProtocolError, ServiceError, TransportError
from artbreaker.image.models import GenerationRequest, TaskStatus
from artbreaker.image.provider_config import (
    KONTEXT_BASE_URL,
    KONTEXT_KEY_FILE,
    KONTEXT_UPLOAD_PATH,
    KONTEXT_UPLOAD_URL,
    REQUEST_TIMEOUT_SECONDS,
    SUCCESS_CODE,
    load_key,
)
from artbreaker.image.status import map_success_flag

logger = logging.getLogger(__name__)

TRANSIENT_EXCEPTIONS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.ChunkedEncodingError,
)

# Upload responses have moved the delivered URL around over time; order matters.
UPLOAD_URL_FIELDS = (
    ("data", "downloadUrl"),
    ("data", "fileUrl"),
    ("data", "url"),
    ("fileUrl",),
    ("url",),
)


def _dig(payload, path):
    """Follow `path` through nested dicts, returning `None` on any miss."""
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def extract_upload_url(result: dict) -> str:
    """Return the delivered file URL from an upload envelope.

    Fields are tried in `UPLOAD_URL_FIELDS` order; the first non-empty string wins.

    Raises:
        ProtocolError: when none of the known fields carries a URL.
    """
    for path in UPLOAD_URL_FIELDS:
        value = _dig(result, path)
        if isinstance(value, str) and value:
            return value

    raise ProtocolError("Upload succeeded but no file URL was found in the response")


def _json_or_none(response):
    try:
        return response.json()
    except ValueError:
        return None


# Upload errors carry their detail in `msg`; task endpoints put it in `error`.
UPLOAD_MESSAGE_KEYS = ("msg", "error", "message")
TASK_MESSAGE_KEYS = ("error", "msg", "message")


def _server_message(body, keys=TASK_MESSAGE_KEYS):
    if not isinstance(body, dict):
        return None
    for key in keys:
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _as_progress(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


class FluxKontextClient:
    """Thin transport over the FLUX.1-Kontext REST API.

    Args:
        api_key: Bearer credential. Resolved through `load_key` when omitted.
        base_url: Task API root (`/generate`, `/record-info` live below it).
        upload_url: File-stream upload endpoint.
        upload_path: Remote directory uploads are stored under.
        timeout: Per-request timeout in seconds.
        session: Optional `requests.Session`-compatible object.

    Raises:
        ConfigurationError: when no API key can be resolved.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = KONTEXT_BASE_URL,
        upload_url: str = KONTEXT_UPLOAD_URL,
        upload_path: str = KONTEXT_UPLOAD_PATH,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session=None,
    ) -> None:
        api_key = api_key or load_key(KONTEXT_KEY_FILE)
        if not api_key:
            raise ConfigurationError(
                f"Kontext API key missing: set KONTEXT_API_KEY or provide {KONTEXT_KEY_FILE}"
            )
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.upload_url = upload_url
        self.upload_path = upload_path
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, json_body: bool = False) -> dict:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _send(self, method: str, url: str, **kwargs):
        """Perform one request, converting transport failures to `TransportError`."""
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except TRANSIENT_EXCEPTIONS as err:
            raise TransportError(f"Request to {url} could not be completed: {err}") from err
        except requests.exceptions.RequestException as err:
            raise ServiceError(f"Request to {url} failed: {err}") from err

    @staticmethod
    def _parse_success_body(response) -> dict:
        body = _json_or_none(response)
        if not isinstance(body, dict):
            raise ProtocolError(
                f"Invalid API response: expected a JSON object (HTTP {response.status_code})"
            )
        return body

    @staticmethod
    def _raise_for_status(response, fallback: str, message_keys=TASK_MESSAGE_KEYS) -> None:
        if response.ok:
            return
        body = _json_or_none(response)
        logger.error("Kontext API responded with HTTP %s", response.status_code)
        raise ServiceError(
            _server_message(body, message_keys) or fallback,
            status_code=response.status_code,
            code=body.get("code") if isinstance(body, dict) else None,
        )

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def upload_image(self, file_bytes: bytes, file_name: str, content_type: str | None = None) -> str:
        """Upload raw image bytes and return the remote URL.

        Args:
            file_bytes: File content; read once and not retained.
            file_name: Original file name, prefixed with a millisecond timestamp
                remotely to avoid collisions.
            content_type: Optional MIME type for the multipart part.

        Returns:
            URL of the delivered file.
        """
        remote_name = f"{int(time.time() * 1000)}-{file_name}"
        files = {"file": (file_name, file_bytes, content_type or "application/octet-stream")}
        data = {"uploadPath": self.upload_path, "fileName": remote_name}

        response = self._send(
            "POST", self.upload_url, headers=self._headers(), files=files, data=data
        )
        self._raise_for_status(
            response, f"Upload failed: HTTP {response.status_code}", UPLOAD_MESSAGE_KEYS
        )
        result = self._parse_success_body(response)

        if result.get("success") is not True or result.get("code") != SUCCESS_CODE:
            raise ServiceError(
                f"Upload failed: {result.get('msg') or 'Unknown error'}",
                status_code=response.status_code,
                code=result.get("code"),
            )

        file_url = extract_upload_url(result)
        logger.info("Uploaded %s", file_name)
        return file_url

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    def submit_task(self, request: GenerationRequest, input_image: str | None = None) -> str:
        """Submit an edit task and return the service-issued task id.

        Args:
            request: Generation parameters.
            input_image: Resolved absolute source URL; defaults to
                `request.source_ref`.
        """
        payload = request.to_payload(input_image or request.source_ref)
        response = self._send(
            "POST",
            f"{self.base_url}/generate",
            headers=self._headers(json_body=True),
            json=payload,
        )
        self._raise_for_status(response, f"HTTP {response.status_code}: {response.reason}")
        result = self._parse_success_body(response)

        if result.get("code") != SUCCESS_CODE:
            raise ServiceError(
                f"Generation failed: {result.get('msg') or 'Unknown error'}",
                status_code=response.status_code,
                code=result.get("code"),
            )

        task_id = _dig(result, ("data", "taskId"))
        if not task_id:
            raise ProtocolError("Invalid API response: missing taskId in data field")

        return str(task_id)

    # ------------------------------------------------------------------
    # Status query
    # ------------------------------------------------------------------

    def get_task_status(self, task_id: str) -> TaskStatus:
        """Fetch and parse the current status of a task."""
        response = self._send(
            "GET",
            f"{self.base_url}/record-info",
            headers=self._headers(),
            params={"taskId": task_id},
        )
        self._raise_for_status(response, f"HTTP {response.status_code}: {response.reason}")
        result = self._parse_success_body(response)

        if result.get("code") != SUCCESS_CODE:
            raise ServiceError(
                f"Status query failed: {result.get('msg') or 'Unknown error'}",
                status_code=response.status_code,
                code=result.get("code"),
            )

        data = result.get("data")
        if not isinstance(data, dict):
            raise ProtocolError("Invalid API response: missing data field")

        image_url = _dig(data, ("response", "resultImageUrl"))
        return TaskStatus(
            task_id=str(data.get("taskId") or task_id),
            state=map_success_flag(data.get("successFlag")),
            image_url=image_url if isinstance(image_url, str) and image_url else None,
            error=data.get("errorMessage") or data.get("msg") or None,
            progress=_as_progress(data.get("progress")),
            raw=data,
        )
