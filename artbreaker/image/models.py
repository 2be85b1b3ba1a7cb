"""Data contracts for the image task lifecycle.

Architectural role:
    Defines the value types exchanged between the transport (`client`), the status
    mapper (`status`), the poller, the orchestrator (`service`), and API adapters.

Ownership:
    - `GenerationRequest` is supplied by callers and never mutated.
    - `GenerationTask` is produced by `service` on submit and replaced (not mutated)
      by `status.advance` for every observation.
    - `UploadedAsset` is returned to callers and owned by them afterwards.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from artbreaker.image.provider_config import DEFAULT_MODEL, DEFAULT_OUTPUT_FORMAT


class TaskState(str, Enum):
    """Closed set of lifecycle states a task may occupy."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.COMPLETED, TaskState.FAILED)


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable description of one image edit.

    Attributes:
        source_ref: Absolute URL, catalog painting id, or painting file name.
        prompt: Free-text creative instruction.
        model: Remote model identifier.
        output_format: Output image encoding requested from the service.
        enable_translation: Whether the service may translate the prompt.
    """

    source_ref: str
    prompt: str
    model: str = DEFAULT_MODEL
    output_format: str = DEFAULT_OUTPUT_FORMAT
    enable_translation: bool = True

    def to_payload(self, input_image: str) -> dict:
        """Build the submission body for an already-resolved source URL."""
        return {
            "inputImage": input_image,
            "prompt": self.prompt,
            "model": self.model or DEFAULT_MODEL,
            "enableTranslation": self.enable_translation is not False,
            "outputFormat": self.output_format or DEFAULT_OUTPUT_FORMAT,
        }


@dataclass(frozen=True)
class TaskStatus:
    """One parsed status observation returned by the status query."""

    task_id: str
    state: TaskState
    image_url: str | None = None
    error: str | None = None
    progress: float | None = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class GenerationTask:
    """Current view of one remote task."""

    task_id: str
    state: TaskState = TaskState.PENDING
    progress: float | None = None
    result_url: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class UploadedAsset:
    """A user file that now lives on the remote file service."""

    id: str
    file_name: str
    url: str
    title: str
    timestamp: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ProgressUpdate:
    """Payload delivered to progress callbacks and rendered by adapters."""

    status: TaskState
    progress: float | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value}
        if self.progress is not None:
            data["progress"] = self.progress
        if self.message is not None:
            data["message"] = self.message
        return data
