import pytest
import requests

from artbreaker.image.client import FluxKontextClient, extract_upload_url
from artbreaker.image.errors import ConfigurationError, ProtocolError, ServiceError, TransportError
from artbreaker.image.models import GenerationRequest, TaskState
from conftest import FakeSession, make_response

BASE_URL = "https://api.example/flux/kontext"
UPLOAD_URL = "https://files.example/upload"


def build_client(*outcomes):
    session = FakeSession(*outcomes)
    client = FluxKontextClient(
        api_key="test-key",
        base_url=BASE_URL,
        upload_url=UPLOAD_URL,
        upload_path="images/user-uploads",
        timeout=5,
        session=session,
    )
    return client, session


def upload_envelope(data=None, **top_level):
    body = {"success": True, "code": 200, "msg": "ok", "data": data or {}}
    body.update(top_level)
    return body


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------

def test_missing_api_key_raises(monkeypatch, tmp_path):
    monkeypatch.delenv("KONTEXT_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ConfigurationError):
        FluxKontextClient(session=FakeSession())


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setenv("KONTEXT_API_KEY", "env-key")
    session = FakeSession(make_response(body={"code": 200, "data": {"taskId": "abc"}}))
    client = FluxKontextClient(base_url=BASE_URL, session=session)

    client.submit_task(GenerationRequest("https://img/a.jpg", "make it blue"))

    assert session.calls[0]["headers"]["Authorization"] == "Bearer env-key"


# ------------------------------------------------------------------
# Upload
# ------------------------------------------------------------------

def test_upload_prefers_download_url():
    body = upload_envelope(
        {"downloadUrl": "https://d/1.png", "fileUrl": "https://f/1.png"},
        url="https://top/1.png",
    )
    client, session = build_client(make_response(body=body))

    assert client.upload_image(b"png-bytes", "cat.png", "image/png") == "https://d/1.png"

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == UPLOAD_URL
    assert call["headers"] == {"Authorization": "Bearer test-key"}
    assert call["files"]["file"] == ("cat.png", b"png-bytes", "image/png")
    assert call["data"]["uploadPath"] == "images/user-uploads"
    assert call["data"]["fileName"].endswith("-cat.png")
    assert call["timeout"] == 5


def test_upload_uses_secondary_field_when_primary_missing():
    body = upload_envelope({"fileUrl": "https://f/1.png", "url": "https://u/1.png"})
    client, _ = build_client(make_response(body=body))

    assert client.upload_image(b"x", "cat.png") == "https://f/1.png"


@pytest.mark.parametrize(
    "result, expected",
    [
        ({"data": {"url": "https://data-url"}, "fileUrl": "https://top-file"}, "https://data-url"),
        ({"data": {}, "fileUrl": "https://top-file", "url": "https://top-url"}, "https://top-file"),
        ({"data": None, "url": "https://top-url"}, "https://top-url"),
        ({"data": {"downloadUrl": ""}, "url": "https://top-url"}, "https://top-url"),
    ],
)
def test_extract_upload_url_fallback_order(result, expected):
    assert extract_upload_url(result) == expected


def test_upload_without_any_url_is_protocol_error():
    client, _ = build_client(make_response(body=upload_envelope({"fileId": "1"})))

    with pytest.raises(ProtocolError):
        client.upload_image(b"x", "cat.png")


def test_upload_unsuccessful_envelope():
    body = {"success": False, "code": 400, "msg": "quota exceeded"}
    client, _ = build_client(make_response(body=body))

    with pytest.raises(ServiceError, match="Upload failed: quota exceeded"):
        client.upload_image(b"x", "cat.png")


def test_upload_http_error_with_unparseable_body_uses_generic_message():
    client, _ = build_client(make_response(502, text="<html>bad gateway</html>", reason="Bad Gateway"))

    with pytest.raises(ServiceError) as excinfo:
        client.upload_image(b"x", "cat.png")

    assert str(excinfo.value) == "Upload failed: HTTP 502"
    assert excinfo.value.status_code == 502


def test_upload_http_error_prefers_msg_over_error_field():
    body = {"code": 413, "msg": "File exceeds the storage quota", "error": "Payload Too Large"}
    client, _ = build_client(make_response(413, body=body, reason="Payload Too Large"))

    with pytest.raises(ServiceError, match="^File exceeds the storage quota$"):
        client.upload_image(b"x", "cat.png")


def test_upload_connection_failure_is_transport_error():
    client, _ = build_client(requests.exceptions.ConnectionError("dns failure"))

    with pytest.raises(TransportError):
        client.upload_image(b"x", "cat.png")


# ------------------------------------------------------------------
# Submit
# ------------------------------------------------------------------

def test_submit_sends_payload_and_returns_task_id():
    client, session = build_client(make_response(body={"code": 200, "msg": "ok", "data": {"taskId": "t-42"}}))
    request = GenerationRequest("mona-lisa", "add sunglasses", enable_translation=False)

    task_id = client.submit_task(request, input_image="https://site/images/paintings/mona.jpg")

    assert task_id == "t-42"
    call = session.calls[0]
    assert call["url"] == f"{BASE_URL}/generate"
    assert call["headers"]["Content-Type"] == "application/json"
    assert call["json"] == {
        "inputImage": "https://site/images/paintings/mona.jpg",
        "prompt": "add sunglasses",
        "model": "flux-kontext-pro",
        "enableTranslation": False,
        "outputFormat": "jpeg",
    }


def test_submit_non_success_code():
    client, _ = build_client(make_response(body={"code": 402, "msg": "Insufficient credits"}))

    with pytest.raises(ServiceError, match="Generation failed: Insufficient credits") as excinfo:
        client.submit_task(GenerationRequest("https://img/a.jpg", "p"))

    assert excinfo.value.code == 402


def test_submit_missing_task_id_is_protocol_error():
    client, _ = build_client(make_response(body={"code": 200, "data": {}}))

    with pytest.raises(ProtocolError):
        client.submit_task(GenerationRequest("https://img/a.jpg", "p"))


def test_submit_http_error_passes_server_message_through():
    client, _ = build_client(make_response(401, body={"error": "Invalid API key"}, reason="Unauthorized"))

    with pytest.raises(ServiceError, match="^Invalid API key$"):
        client.submit_task(GenerationRequest("https://img/a.jpg", "p"))


def test_submit_http_error_prefers_error_field_over_msg():
    body = {"code": 400, "msg": "Bad Request", "error": "prompt contains unsupported characters"}
    client, _ = build_client(make_response(400, body=body, reason="Bad Request"))

    with pytest.raises(ServiceError, match="^prompt contains unsupported characters$"):
        client.submit_task(GenerationRequest("https://img/a.jpg", "p"))


def test_submit_http_error_without_json_body():
    client, _ = build_client(make_response(500, text="", reason="Internal Server Error"))

    with pytest.raises(ServiceError, match=r"^HTTP 500: Internal Server Error$"):
        client.submit_task(GenerationRequest("https://img/a.jpg", "p"))


def test_submit_success_with_non_json_body_is_protocol_error():
    client, _ = build_client(make_response(200, text="not json"))

    with pytest.raises(ProtocolError):
        client.submit_task(GenerationRequest("https://img/a.jpg", "p"))


# ------------------------------------------------------------------
# Status
# ------------------------------------------------------------------

def test_status_parses_nested_payload():
    body = {
        "code": 200,
        "data": {
            "taskId": "t-1",
            "successFlag": 1,
            "response": {"resultImageUrl": "https://r/out.jpg"},
            "progress": 100,
        },
    }
    client, session = build_client(make_response(body=body))

    result = client.get_task_status("t-1")

    assert result.state is TaskState.COMPLETED
    assert result.image_url == "https://r/out.jpg"
    assert result.progress == 100
    assert session.calls[0]["method"] == "GET"
    assert session.calls[0]["url"] == f"{BASE_URL}/record-info"
    assert session.calls[0]["params"] == {"taskId": "t-1"}


def test_status_failed_uses_error_message():
    body = {"code": 200, "data": {"successFlag": 3, "errorMessage": "Content flagged"}}
    client, _ = build_client(make_response(body=body))

    result = client.get_task_status("t-1")

    assert result.state is TaskState.FAILED
    assert result.error == "Content flagged"
    assert result.task_id == "t-1"


def test_status_missing_data_is_protocol_error():
    client, _ = build_client(make_response(body={"code": 200}))

    with pytest.raises(ProtocolError):
        client.get_task_status("t-1")


def test_status_bad_code():
    client, _ = build_client(make_response(body={"code": 404, "msg": "task not found"}))

    with pytest.raises(ServiceError, match="Status query failed: task not found"):
        client.get_task_status("t-1")


def test_status_http_error_prefers_error_field_over_msg():
    body = {"msg": "Not Found", "error": "Task t-1 has expired"}
    client, _ = build_client(make_response(404, body=body, reason="Not Found"))

    with pytest.raises(ServiceError, match="^Task t-1 has expired$"):
        client.get_task_status("t-1")


def test_status_read_timeout_is_transport_error():
    client, _ = build_client(requests.exceptions.ReadTimeout("timed out"))

    with pytest.raises(TransportError):
        client.get_task_status("t-1")
