"""
ScamShield API Client
======================
Thin JSON-over-HTTP wrapper around the ScamShield endpoints the
interaction core depends on:

    POST /api/verdict            - risk verdict for a wallet or handle
    GET  /api/playbook           - emergency playbook + recovery tasks
    POST /api/report/generate    - bank / police / platform report drafts
    POST /api/report/generate-ai - same, AI-written
    POST /api/warning-card       - shareable warning page + image
    POST /api/ai/chat            - assistant reply for a chat history
    POST /api/recovery-progress  - recovery checklist progress

Every mutating request carries an X-CSRF-Token header. The token is read
from the scamshield_csrf cookie when the session already has it, otherwise
fetched once from /api/csrf-token. Failing to get a token is not an
error; the request simply goes out without one and the server decides.

Non-2xx responses raise ApiError with the server's "error" text.
Transport problems surface as requests.exceptions.RequestException.
Callers in the core catch both; this module never swallows them.

ApiClient is synchronous (requests). AsyncApiClient runs the same calls
in worker threads so the event loop stays free while a request is out.
"""

import asyncio
import logging
from typing import Any

import requests

from scamshield import config
from scamshield.schemas import (
    ChatMessagePayload, ChatRequest, ChatResponse, PlaybookResponse,
    RecoveryProgressRequest, RecoveryProgressResponse, ReportPayload,
    ReportsResponse, VerdictRequest, VerdictResponse, WarningCardRequest,
    WarningCardResponse,
)

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"


class ApiError(Exception):
    """Non-success response from the ScamShield API."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class ApiClient:
    """Synchronous client bound to one requests.Session (one browser tab)."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None,
                 session: requests.Session | None = None):
        self.base_url = (base_url if base_url is not None else config.API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else config.REQUEST_TIMEOUT
        self.http = session or requests.Session()

    # ---------- CSRF ----------

    def _csrf_token(self) -> str | None:
        token = self.http.cookies.get(config.CSRF_COOKIE_NAME)
        if token:
            return token

        try:
            response = self.http.get(f"{self.base_url}/api/csrf-token", timeout=self.timeout)
            if response.ok:
                token = response.json().get("token")
        except (requests.exceptions.RequestException, ValueError) as e:
            # Proceed without a token, same as the browser does
            logger.debug(f"[API] CSRF token fetch failed: {e}")
            return None

        return token or None

    # ---------- TRANSPORT ----------

    def request_json(self, method: str, path: str, body: Any = None) -> dict:
        """
        Send one JSON request and return the decoded body.

        Raises:
            ApiError: on any non-2xx status
            requests.exceptions.RequestException: on transport failure
        """
        headers = {"Content-Type": "application/json"}
        csrf = self._csrf_token()
        if csrf:
            headers[CSRF_HEADER] = csrf

        url = f"{self.base_url}{path}"
        response = self.http.request(method, url, json=body, headers=headers, timeout=self.timeout)

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not response.ok:
            message = data.get("error") or f"Request failed: {response.status_code}"
            logger.warning(f"[API] {method} {path} → {response.status_code}: {message}")
            raise ApiError(message, response.status_code)

        logger.debug(f"[API] {method} {path} → {response.status_code}")
        return data

    # ---------- ENDPOINTS ----------

    def submit_verdict(self, kind: str, value: str, chain: str | None = None) -> VerdictResponse:
        body = VerdictRequest(type=kind, value=value, chain=chain).model_dump(exclude_none=True)
        return VerdictResponse.model_validate(self.request_json("POST", "/api/verdict", body))

    def get_playbook(self) -> PlaybookResponse:
        return PlaybookResponse.model_validate(self.request_json("GET", "/api/playbook"))

    def generate_reports(self, payload: ReportPayload, ai: bool = False) -> ReportsResponse:
        path = "/api/report/generate-ai" if ai else "/api/report/generate"
        return ReportsResponse.model_validate(self.request_json("POST", path, payload.model_dump()))

    def create_warning_card(self, payload: WarningCardRequest) -> WarningCardResponse:
        data = self.request_json("POST", "/api/warning-card", payload.model_dump())
        return WarningCardResponse.model_validate(data)

    def send_chat_message(self, messages: list[ChatMessagePayload]) -> ChatResponse:
        body = ChatRequest(messages=messages).model_dump()
        return ChatResponse.model_validate(self.request_json("POST", "/api/ai/chat", body))

    def update_recovery_progress(self, completed_task_ids: list[str]) -> RecoveryProgressResponse:
        body = RecoveryProgressRequest(completedTaskIds=completed_task_ids).model_dump()
        return RecoveryProgressResponse.model_validate(
            self.request_json("POST", "/api/recovery-progress", body)
        )


class AsyncApiClient:
    """
    Awaitable facade over ApiClient.

    Each call runs in a worker thread via asyncio.to_thread; responses
    come back on the event loop, where all core state is mutated.
    """

    def __init__(self, client: ApiClient | None = None):
        self.client = client or ApiClient()

    async def submit_verdict(self, kind: str, value: str, chain: str | None = None) -> VerdictResponse:
        return await asyncio.to_thread(self.client.submit_verdict, kind, value, chain)

    async def get_playbook(self) -> PlaybookResponse:
        return await asyncio.to_thread(self.client.get_playbook)

    async def generate_reports(self, payload: ReportPayload, ai: bool = False) -> ReportsResponse:
        return await asyncio.to_thread(self.client.generate_reports, payload, ai)

    async def create_warning_card(self, payload: WarningCardRequest) -> WarningCardResponse:
        return await asyncio.to_thread(self.client.create_warning_card, payload)

    async def send_chat_message(self, messages: list[ChatMessagePayload]) -> ChatResponse:
        return await asyncio.to_thread(self.client.send_chat_message, messages)

    async def update_recovery_progress(self, completed_task_ids: list[str]) -> RecoveryProgressResponse:
        return await asyncio.to_thread(self.client.update_recovery_progress, completed_task_ids)
