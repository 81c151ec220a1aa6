import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from app.api.v1 import order as order_api
from app.main import app
from app.schemas.order import OrderStartResponse
from app.services.order_types import ErrorKind, PendingSafetyCheck, RunResult, RunStatus

URL = "/api/v1/order/start"


@pytest.fixture
def captured(monkeypatch):
    """Replace the action loop with a stub returning a preset RunResult."""
    state = {"requests": [], "result": RunResult(status=RunStatus.COMPLETED, turn_id="resp_1", screenshot_b64="S", logs=[])}

    async def fake_run_order(request):
        state["requests"].append(request)
        return state["result"]

    monkeypatch.setattr(order_api, "run_order", fake_run_order)
    return state


@pytest.fixture
def client():
    return TestClient(app)


def test_request_fields_are_mapped_from_camel_case(client, captured):
    resp = client.post(URL, json={
        "prompt": "find cheapest mouse",
        "startUrl": "https://amazon.com",
        "allowDomains": ["www.Amazon.com", "bestbuy.com"],
        "sessionId": "resp_0",
        "acknowledgedSafetyIds": ["sc_1"],
    })
    assert resp.status_code == 200
    (request,) = captured["requests"]
    assert request.prompt == "find cheapest mouse"
    assert request.start_url == "https://amazon.com"
    assert request.allowed_domains == ["amazon.com", "bestbuy.com"]
    assert request.prior_session_id == "resp_0"
    assert request.acknowledged_safety_ids == frozenset({"sc_1"})


def test_defaults_when_optional_fields_are_null(client, captured):
    client.post(URL, json={"prompt": "p", "allowDomains": None, "sessionId": None, "acknowledgedSafetyIds": None})
    (request,) = captured["requests"]
    assert request.start_url == "https://bing.com"
    assert request.allowed_domains == []


def test_completed_response(client, captured):
    captured["result"] = RunResult(status=RunStatus.COMPLETED, turn_id="resp_9", screenshot_b64="IMG", logs=["wait"])
    resp = client.post(URL, json={"prompt": "p"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "completed", "sessionId": "resp_9", "lastScreenshotBase64": "IMG", "logs": ["wait"]}


def test_needs_ack_response(client, captured):
    captured["result"] = RunResult(
        status=RunStatus.NEEDS_ACKNOWLEDGEMENT,
        turn_id="resp_2",
        screenshot_b64="IMG",
        logs=["click (1,2) left"],
        safety_checks=[PendingSafetyCheck(id="sc_1", code="sensitive_domain", message="Confirm purchase")],
    )
    body = client.post(URL, json={"prompt": "p"}).json()
    assert body["status"] == "needs_ack"
    assert body["sessionId"] == "resp_2"
    assert body["safetyChecks"] == [{"id": "sc_1", "code": "sensitive_domain", "message": "Confirm purchase"}]
    assert body["logs"] == ["click (1,2) left"]


def test_blocked_response_is_policy_stop(client, captured):
    captured["result"] = RunResult(
        status=RunStatus.BLOCKED,
        turn_id="resp_3",
        screenshot_b64="IMG",
        logs=[],
        blocked_url="https://evil.example/",
        message="Blocked domain: https://evil.example/",
    )
    resp = client.post(URL, json={"prompt": "p"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "error"
    assert body["message"] == "Blocked domain: https://evil.example/"
    assert body["blockedUrl"] == "https://evil.example/"
    assert body["lastScreenshotBase64"] == "IMG"


@pytest.mark.parametrize(
    "kind,code",
    [(ErrorKind.INVALID_REQUEST, 400), (ErrorKind.CONFIGURATION, 500), (ErrorKind.RUN, 500)],
)
def test_error_status_codes(client, captured, kind, code):
    captured["result"] = RunResult.failure(kind, "boom")
    resp = client.post(URL, json={"prompt": "p"})
    assert resp.status_code == code
    body = resp.json()
    assert body == {"status": "error", "message": "boom"}
    assert "lastScreenshotBase64" not in body


def test_missing_prompt_is_400_without_stub(client):
    # real loop: fails validation before any browser or service is touched
    resp = client.post(URL, json={"startUrl": "https://bing.com"})
    assert resp.status_code == 400
    assert resp.json() == {"status": "error", "message": "Missing prompt"}


def test_empty_body_is_400(client):
    resp = client.post(URL)
    assert resp.status_code == 400


def test_health_reports_dependencies(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["dependencies"]["openai"]["ok"] is True
    assert body["status"] in ("healthy", "degraded")
    assert resp.headers["X-Request-ID"]


def test_needs_ack_omits_missing_check_fields(client, captured):
    captured["result"] = RunResult(
        status=RunStatus.NEEDS_ACKNOWLEDGEMENT,
        turn_id="resp_2",
        screenshot_b64="IMG",
        safety_checks=[PendingSafetyCheck(id="sc_1")],
    )
    body = client.post(URL, json={"prompt": "p"}).json()
    assert body["safetyChecks"] == [{"id": "sc_1"}]


def test_response_status_is_restricted_to_wire_values():
    with pytest.raises(ValidationError):
        OrderStartResponse(status="blocked")
