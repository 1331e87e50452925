"""
Async HTTP client for the assessment service, with retry logic and error mapping.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx

from assessment.config import settings
from assessment.logger import setup_logger
from assessment.utils.exceptions import (
    InvalidStateError,
    SessionNotFoundError,
    TransientIOError,
)

logger = setup_logger(__name__)


class AssessmentClient:
    """
    Talks to the session service over HTTP.

    Network failures, timeouts and 5xx/429 responses are retried with
    exponential backoff and surface as ``TransientIOError``. A 404 maps to
    ``SessionNotFoundError`` and a rejected advance to ``InvalidStateError``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Args:
            base_url: Service root, e.g. http://localhost:3000
            timeout: Per-request timeout in seconds
            max_retries: Maximum attempts per call
            backoff: Base delay for exponential backoff, in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.max_retries = max_retries or settings.max_retries
        self.backoff = backoff
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.service_url,
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "AssessmentClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def fetch_config(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/config")

    async def start(self) -> Dict[str, Any]:
        return await self._request("POST", "/api/start")

    async def status(self, user_id: str) -> Dict[str, Any]:
        return await self._request(
            "GET", "/api/status", params={"userId": user_id}, session_id=user_id
        )

    async def advance(self, user_id: str) -> Dict[str, Any]:
        """
        Request one transition.

        Not retried: a lost response may still have advanced the session, and
        a blind retry would skip a question. The caller re-polls status instead.
        """
        return await self._request(
            "POST",
            "/api/advance",
            json={"userId": user_id},
            session_id=user_id,
            retry=False,
        )

    async def submit_response(
        self,
        user_id: str,
        section: str,
        question_id: str,
        response_type: str,
        response_data: Any,
        time_taken: int,
        auto_submitted: bool,
    ) -> Dict[str, Any]:
        """
        Store an answer. ``response_data`` is text, or raw bytes for audio.
        """
        data = {
            "userId": user_id,
            "section": section,
            "questionId": question_id,
            "responseType": response_type,
            "timeTaken": str(time_taken),
            "autoSubmitted": "true" if auto_submitted else "false",
        }
        files = None
        if response_type == "audio":
            files = {"audio": ("response.webm", response_data, "audio/webm")}
        else:
            data["responseData"] = response_data
        return await self._request("POST", "/api/response", data=data, files=files)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _request(
        self,
        method: str,
        path: str,
        session_id: Optional[str] = None,
        retry: bool = True,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        attempts = self.max_retries if retry else 1
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                resp = await self._client.request(method, path, **kwargs)
            except (httpx.TimeoutException, httpx.TransportError) as e:
                last_error = e
                logger.warning(
                    f"⚠️ {method} {path} failed (attempt {attempt}/{attempts}): {e}"
                )
            else:
                if resp.status_code == 404:
                    raise SessionNotFoundError(session_id)
                if resp.status_code in (400, 409) and path == "/api/advance":
                    raise InvalidStateError(session_id)
                if resp.status_code == 429 or resp.is_server_error:
                    last_error = httpx.HTTPStatusError(
                        f"HTTP {resp.status_code}", request=resp.request, response=resp
                    )
                    logger.warning(
                        f"⚠️ {method} {path} HTTP {resp.status_code} (attempt {attempt}/{attempts})"
                    )
                else:
                    resp.raise_for_status()
                    return resp.json()

            if attempt < attempts:
                await asyncio.sleep(self.backoff * 2 ** (attempt - 1))

        raise TransientIOError(f"{method} {path} failed: {last_error}")
