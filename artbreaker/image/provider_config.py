"""Provider/runtime configuration for the FLUX.1-Kontext image layer.

Architectural role:
    Centralizes endpoint selection, polling budgets, and credential lookup for
    `artbreaker.image.client`, `artbreaker.image.poller`, and
    `artbreaker.image.service`.

Determinism:
    Deterministic for a fixed process environment and key files. Values are resolved
    at import time (plus runtime key-file reads in `load_key`).

Failure behavior:
    Missing key material is represented as `None`; `client.FluxKontextClient`
    converts it into a `ConfigurationError` at construction time.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Remote service endpoints.
KONTEXT_BASE_URL = os.getenv("KONTEXT_BASE_URL", "https://api.kie.ai/api/v1/flux/kontext")
KONTEXT_UPLOAD_URL = os.getenv(
    "KONTEXT_UPLOAD_URL", "https://kieai.redpandaai.co/api/file-stream-upload"
)
KONTEXT_UPLOAD_PATH = os.getenv("KONTEXT_UPLOAD_PATH", "images/user-uploads")
KONTEXT_KEY_FILE = os.getenv("KONTEXT_KEY_FILE", "config/kontext.key")

# Generation defaults forwarded on every submission.
DEFAULT_MODEL = os.getenv("KONTEXT_MODEL", "flux-kontext-pro")
DEFAULT_OUTPUT_FORMAT = os.getenv("KONTEXT_OUTPUT_FORMAT", "jpeg")

# Polling budget (seconds).
POLL_INTERVAL_SECONDS = float(os.getenv("KONTEXT_POLL_INTERVAL", "3"))
TASK_TIMEOUT_SECONDS = float(os.getenv("KONTEXT_TIMEOUT", "300"))
REQUEST_TIMEOUT_SECONDS = float(os.getenv("KONTEXT_REQUEST_TIMEOUT", "60"))

# Catalog paintings are served from the front-end origin.
PUBLIC_ORIGIN = os.getenv("PUBLIC_ORIGIN", "http://localhost:5173").rstrip("/")
PAINTINGS_BASE_URL = f"{PUBLIC_ORIGIN}/images/paintings/"

# Upload constraints applied before any network call.
MAX_UPLOAD_SIZE_MB = 10
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024
ALLOWED_UPLOAD_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}

# Result code the service uses for success envelopes.
SUCCESS_CODE = 200


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/kontext.key` -> `KONTEXT_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Configured key file path or `None`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - `None` path returns `None`.
        - Missing file returns `None`.
        - Empty file returns `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value:
        return env_value.strip()
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None
