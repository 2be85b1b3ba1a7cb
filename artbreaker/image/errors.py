"""Typed failures raised by the image task lifecycle client.

Propagation policy:
    - `client` raises these for every classified failure.
    - `poller` retries `TransportError` and aborts on everything else.
    - `service` lets the first terminal failure reach the caller untouched.
    - API adapters are the only layer that turns them into user-facing output.
"""


class ArtbreakerError(RuntimeError):
    """Base class for all failures raised by the image layer."""


class ConfigurationError(ArtbreakerError):
    """Required configuration (for example the API key) is missing."""


class TransportError(ArtbreakerError):
    """The request could not be completed (DNS, refused connection, timeout)."""


class ServiceError(ArtbreakerError):
    """A received response reports failure.

    Attributes:
        status_code: HTTP status of the response, when known.
        code: Envelope result code, when present.
    """

    def __init__(self, message, status_code=None, code=None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class TaskFailedError(ServiceError):
    """The remote task finished with a failure completion flag."""

    def __init__(self, message, task_id=None):
        super().__init__(message)
        self.task_id = task_id


class ProtocolError(ArtbreakerError):
    """A well-formed response is missing a required field."""


class UploadRejectedError(ArtbreakerError, ValueError):
    """A file failed local validation before upload."""


class GenerationTimeoutError(ArtbreakerError, TimeoutError):
    """Polling exceeded the timeout ceiling without reaching a terminal state."""


class GenerationCancelledError(ArtbreakerError):
    """Polling was cancelled through the caller's cancellation token."""


class GenerationInProgressError(ArtbreakerError):
    """`generate` was called while the same service already had one in flight."""


class InvalidTransition(ArtbreakerError):
    """A status observation was applied to a task already in a terminal state."""
