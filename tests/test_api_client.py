import asyncio

import pytest
import requests
from requests.cookies import RequestsCookieJar

from scamshield.remote.api_client import CSRF_HEADER, ApiClient, ApiError, AsyncApiClient
from scamshield.schemas import ChatMessagePayload, ReportPayload


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeHttp:
    """Records requests; answers from a {(method, path): FakeResponse} table."""

    def __init__(self, routes=None, csrf_cookie=None, csrf_error=None):
        self.cookies = RequestsCookieJar()
        if csrf_cookie:
            self.cookies.set("scamshield_csrf", csrf_cookie)
        self.routes = routes or {}
        self.csrf_error = csrf_error
        self.requests = []
        self.csrf_fetches = 0

    def get(self, url, timeout=None):
        self.csrf_fetches += 1
        if self.csrf_error:
            raise self.csrf_error
        return self.routes.get(("GET", "/api/csrf-token"), FakeResponse(404, {}))

    def request(self, method, url, json=None, headers=None, timeout=None):
        path = url.replace("http://api.test", "")
        self.requests.append({"method": method, "path": path, "json": json, "headers": headers})
        return self.routes.get((method, path), FakeResponse(404, {"error": "Not found"}))


def make_client(http):
    return ApiClient(base_url="http://api.test/", timeout=3, session=http)


VERDICT_BODY = {"verdict": "HIGH_RISK", "score": 88, "reasons": ["r1"], "sources": ["s1"], "key": "k"}


def test_csrf_token_from_cookie():
    http = FakeHttp({("POST", "/api/verdict"): FakeResponse(200, VERDICT_BODY)}, csrf_cookie="tok123")
    response = make_client(http).submit_verdict("wallet", "0xabc")

    assert response.verdict == "HIGH_RISK"
    assert response.score == 88
    assert http.csrf_fetches == 0
    sent = http.requests[0]
    assert sent["headers"][CSRF_HEADER] == "tok123"
    assert sent["json"] == {"type": "wallet", "value": "0xabc"}


def test_csrf_token_fetched_when_cookie_missing():
    http = FakeHttp({
        ("GET", "/api/csrf-token"): FakeResponse(200, {"token": "fresh"}),
        ("POST", "/api/verdict"): FakeResponse(200, VERDICT_BODY),
    })
    make_client(http).submit_verdict("wallet", "0xabc", chain="bsc")

    assert http.csrf_fetches == 1
    assert http.requests[0]["headers"][CSRF_HEADER] == "fresh"
    assert http.requests[0]["json"]["chain"] == "bsc"


def test_request_proceeds_without_csrf_when_fetch_fails():
    http = FakeHttp(
        {("GET", "/api/playbook"): FakeResponse(200, {"recoveryTasks": [], "playbook": {}})},
        csrf_error=requests.exceptions.ConnectionError("refused"),
    )
    playbook = make_client(http).get_playbook()

    assert playbook.recoveryTasks == []
    assert CSRF_HEADER not in http.requests[0]["headers"]


def test_non_success_raises_api_error_with_server_message():
    http = FakeHttp({("POST", "/api/ai/chat"): FakeResponse(429, {"error": "Daily limit of 30 requests reached."})},
                    csrf_cookie="t")
    with pytest.raises(ApiError) as exc:
        make_client(http).send_chat_message([ChatMessagePayload(role="user", content="hi")])

    assert str(exc.value) == "Daily limit of 30 requests reached."
    assert exc.value.status_code == 429


def test_non_json_error_body_uses_status_text():
    http = FakeHttp({("POST", "/api/warning-card"): FakeResponse(500, None)}, csrf_cookie="t")
    with pytest.raises(ApiError, match="Request failed: 500"):
        make_client(http).request_json("POST", "/api/warning-card", {})


def test_report_endpoint_selection():
    reports = {"forBank": "b", "forPolice": "p", "forPlatform": "x", "mode": "template"}
    http = FakeHttp({
        ("POST", "/api/report/generate"): FakeResponse(200, reports),
        ("POST", "/api/report/generate-ai"): FakeResponse(200, reports),
    }, csrf_cookie="t")
    client = make_client(http)
    payload = ReportPayload(
        incidentTitle="t", scamType="Unknown", occurredAt="2025-01-01T00:00:00+00:00",
        channel="Telegram", suspects=["@x"], losses="Unknown", actionsTaken=[], extraNotes="",
    )

    assert client.generate_reports(payload).forBank == "b"
    client.generate_reports(payload, ai=True)

    assert [r["path"] for r in http.requests] == ["/api/report/generate", "/api/report/generate-ai"]
    assert http.requests[0]["json"]["suspects"] == ["@x"]


def test_chat_request_body_shape():
    http = FakeHttp({("POST", "/api/ai/chat"): FakeResponse(200, {"message": "hello", "options": [
        {"text": "Check a wallet", "action": "check_wallet"}]})}, csrf_cookie="t")
    response = make_client(http).send_chat_message([
        ChatMessagePayload(role="assistant", content="greeting"),
        ChatMessagePayload(role="user", content="hi"),
    ])

    assert http.requests[0]["json"] == {"messages": [
        {"role": "assistant", "content": "greeting"},
        {"role": "user", "content": "hi"},
    ]}
    assert response.options[0].action == "check_wallet"
    assert response.error is None


def test_async_client_runs_calls_off_loop():
    http = FakeHttp({("POST", "/api/recovery-progress"): FakeResponse(200, {"progress": 45})}, csrf_cookie="t")
    client = AsyncApiClient(make_client(http))

    response = asyncio.run(client.update_recovery_progress(["bank_freeze"]))

    assert response.progress == 45
    assert http.requests[0]["json"] == {"completedTaskIds": ["bank_freeze"]}
