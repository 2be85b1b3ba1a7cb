from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from artbreaker.image.models import TaskState, TaskStatus


def make_response(status_code=200, body=None, text=None, reason="OK"):
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    if text is None:
        text = json.dumps(body)
    response._content = text.encode("utf-8")
    return response


class FakeSession:
    """Replays queued responses (or raises queued exceptions) and records calls."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedStatusClient:
    """Transport stand-in whose status queries follow a fixed script.

    Script entries are `TaskStatus` values or exceptions to raise. When the script
    runs out the last entry repeats.
    """

    def __init__(self, script, task_id="task-1", upload_url="https://files.example/u.png"):
        self.script = list(script)
        self.task_id = task_id
        self.upload_url = upload_url
        self.status_calls = 0
        self.submitted = []
        self.uploaded = []
        self.submit_error = None

    def submit_task(self, request, input_image=None):
        self.submitted.append((request, input_image))
        if self.submit_error is not None:
            raise self.submit_error
        return self.task_id

    def get_task_status(self, task_id):
        index = min(self.status_calls, len(self.script) - 1)
        self.status_calls += 1
        outcome = self.script[index]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def upload_image(self, file_bytes, file_name, content_type=None):
        self.uploaded.append((file_bytes, file_name, content_type))
        return self.upload_url


def status(state, image_url=None, error=None, progress=None, task_id="task-1"):
    return TaskStatus(
        task_id=task_id,
        state=TaskState(state),
        image_url=image_url,
        error=error,
        progress=progress,
    )


@pytest.fixture
def clock():
    return FakeClock()
