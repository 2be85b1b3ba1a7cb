"""Status mapping and task state transitions.

Architectural role:
    Pure functions shared by the poller and the API adapters:
    - `map_success_flag` turns the service's raw `successFlag` into a `TaskState`.
    - `advance` applies one observation to a task and returns the new task value.
    - `describe_progress` renders an observation as a `ProgressUpdate`.

Determinism:
    Every function here is side-effect free and deterministic.
"""

from dataclasses import replace

from artbreaker.image.errors import InvalidTransition, ProtocolError
from artbreaker.image.models import GenerationTask, ProgressUpdate, TaskState, TaskStatus

GENERIC_FAILURE_MESSAGE = (
    "Generation failed, please adjust your prompt and try again. "
    "The prompt may be inappropriate or too complex."
)
MISSING_RESULT_MESSAGE = "Task completed but no image URL was returned"

_FLAG_STATES = {
    1: TaskState.COMPLETED,
    0: TaskState.PROCESSING,
    3: TaskState.FAILED,
}

_STATE_RANK = {
    TaskState.PENDING: 0,
    TaskState.PROCESSING: 1,
    TaskState.COMPLETED: 2,
    TaskState.FAILED: 2,
}

_PROGRESS_MESSAGES = {
    TaskState.PENDING: "Task submitted, waiting to be processed...",
    TaskState.PROCESSING: "The AI is creating your masterpiece...",
    TaskState.COMPLETED: "Generation complete!",
}


def map_success_flag(value) -> TaskState:
    """Map a raw completion flag to a lifecycle state.

    `1` -> completed, `0` -> processing, `3` -> failed, anything else
    (including `None`, strings, non-integral floats, and booleans) -> pending.
    JSON numbers such as `1.0` compare equal to their integer value.
    """
    # bool is an int subclass; True must not read as 1.
    if isinstance(value, bool):
        return TaskState.PENDING
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        return TaskState.PENDING
    return _FLAG_STATES.get(value, TaskState.PENDING)


def advance(task: GenerationTask, observation: TaskStatus) -> GenerationTask:
    """Apply one status observation to a task.

    Args:
        task: Current task value.
        observation: Parsed status returned by the status query.

    Returns:
        A new `GenerationTask`; the input is never mutated.

    Transition rules:
        - Terminal tasks reject further observations (`InvalidTransition`).
        - States only move forward along pending -> processing -> terminal; an
          observation ranked below the current state keeps the current state while
          still refreshing progress.
        - A completed observation must carry a result URL (`ProtocolError`).
    """
    if task.state.is_terminal:
        raise InvalidTransition(
            f"Task {task.task_id} is already {task.state.value}; "
            f"cannot apply {observation.state.value}"
        )

    state = observation.state
    if _STATE_RANK[state] < _STATE_RANK[task.state]:
        state = task.state

    progress = observation.progress if observation.progress is not None else task.progress

    if state is TaskState.COMPLETED:
        if not observation.image_url:
            raise ProtocolError(MISSING_RESULT_MESSAGE)
        return replace(task, state=state, progress=100, result_url=observation.image_url)

    if state is TaskState.FAILED:
        return replace(
            task,
            state=state,
            progress=progress,
            error=observation.error or GENERIC_FAILURE_MESSAGE,
        )

    return replace(task, state=state, progress=progress)


def describe_progress(observation: TaskStatus) -> ProgressUpdate:
    """Render an observation the way the front-end progress indicator expects."""
    state = observation.state

    if state is TaskState.PENDING:
        return ProgressUpdate(state, progress=10, message=_PROGRESS_MESSAGES[state])

    if state is TaskState.PROCESSING:
        return ProgressUpdate(
            state,
            progress=observation.progress or 50,
            message=_PROGRESS_MESSAGES[state],
        )

    if state is TaskState.COMPLETED:
        return ProgressUpdate(state, progress=100, message=_PROGRESS_MESSAGES[state])

    return ProgressUpdate(state, message=observation.error or GENERIC_FAILURE_MESSAGE)
