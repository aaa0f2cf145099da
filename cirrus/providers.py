"""
cirrus/providers.py
-----------------------------------------------------------------------------
Analysis providers: the external collaborators an audit job is sent to.

Every provider implements one coroutine::

    async def generate(contents: str, config: AuditConfig) -> Mapping

and either returns the decoded JSON reply or raises ``BoundaryError``.
Replies are not validated here; that is ``cirrus.interpreter``'s job.

Two implementations ship:

GeminiProvider
    Calls the Gemini REST API directly.

    POST {base}/v1beta/models/{model}:generateContent
    {
        "contents":          [{"role": "user", "parts": [{"text": "<payload>"}]}],
        "systemInstruction": {"parts": [{"text": "<directive>"}]},
        "generationConfig":  {"temperature": 0.1},
        "tools":             [{"google_search": {}}]
    }

RelayProvider
    POSTs ``{"contents", "model", "config"}`` to a relay endpoint (for
    example a serverless function that holds the API key) and expects
    ``{"text", "sources"}`` back, or ``{"error"}`` with a non-2xx status.

Why async?
----------
The boundary call is the one suspension point of a job.  Using
``httpx.AsyncClient`` keeps the event loop free so the session can still be
read (``is_auditing`` polling) and edited while a job is in flight.

Error mapping
-------------
Timeouts, connection failures, non-2xx statuses and undecodable bodies all
become ``BoundaryError`` with a human-readable message.  401/403 and 429 get
dedicated messages for bad credentials and exhausted quota.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

from cirrus import config as settings
from cirrus.errors import BoundaryError
from cirrus.schema import AuditConfig

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Transport settings
# -----------------------------------------------------------------------------

_CONNECT_TIMEOUT: float = 10.0

# Grounded generation over a whole codebase can take minutes.
_READ_TIMEOUT: float = 300.0


def _timeout() -> httpx.Timeout:
    return httpx.Timeout(connect=_CONNECT_TIMEOUT, read=_READ_TIMEOUT, write=30.0, pool=5.0)


class AnalysisProvider(Protocol):
    """The boundary interface an orchestrator depends on."""

    name: str

    async def generate(self, contents: str, config: AuditConfig) -> Mapping[str, Any]: ...


# -----------------------------------------------------------------------------
# Shared HTTP plumbing
# -----------------------------------------------------------------------------


def _error_detail(response: httpx.Response) -> str:
    """Best-effort human-readable message from an error response body."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, Mapping):
        error = data.get("error")
        if isinstance(error, Mapping) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return response.text[:200]


def _status_error(response: httpx.Response) -> BoundaryError:
    status = response.status_code
    if status in (401, 403):
        message = "Invalid Google AI API key. Please check server configuration."
    elif status == 429:
        message = "API quota exceeded. Please check your Google Cloud quota."
    else:
        message = f"Analysis provider returned HTTP {status}: {_error_detail(response)}"
    return BoundaryError(message, status_code=status)


async def _post_json(
    url: str,
    body: dict,
    *,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """POST *body* as JSON and return the decoded reply, or raise BoundaryError."""
    try:
        async with httpx.AsyncClient(timeout=_timeout(), transport=transport) as client:
            response = await client.post(url, json=body, headers=headers)
    except httpx.TimeoutException as exc:
        raise BoundaryError("Analysis provider request timed out.") from exc
    except httpx.RequestError as exc:
        raise BoundaryError(
            f"Could not reach analysis provider: {type(exc).__name__}: {exc}"
        ) from exc

    if response.is_error:
        error = _status_error(response)
        logger.warning("Provider call to %s failed: %s", url, error.message)
        raise error

    try:
        return response.json()
    except ValueError as exc:
        raise BoundaryError("Analysis provider returned malformed JSON.") from exc


# -----------------------------------------------------------------------------
# Providers
# -----------------------------------------------------------------------------


class GeminiProvider:
    """Direct Gemini ``generateContent`` call with Google Search grounding."""

    name = "gemini"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.GOOGLE_AI_API_KEY
        self.base_url = (base_url or settings.GEMINI_API_BASE).rstrip("/")
        self._transport = transport

    def build_body(self, contents: str, config: AuditConfig) -> dict:
        body: dict = {
            "contents": [{"role": "user", "parts": [{"text": contents}]}],
            "systemInstruction": {"parts": [{"text": config.system_instruction}]},
            "generationConfig": {"temperature": config.temperature},
        }
        if config.search_grounding:
            body["tools"] = [{"google_search": {}}]
        return body

    async def generate(self, contents: str, config: AuditConfig) -> Mapping[str, Any]:
        # Checked per call so the app can start without a key and report the
        # problem as a job error instead of failing at import.
        if not self.api_key:
            raise BoundaryError("API key not configured on server")
        url = f"{self.base_url}/v1beta/models/{config.model}:generateContent"
        return await _post_json(
            url,
            self.build_body(contents, config),
            headers={"x-goog-api-key": self.api_key},
            transport=self._transport,
        )


class RelayProvider:
    """Forward jobs to a relay endpoint that owns the credentials."""

    name = "relay"

    def __init__(self, url: str, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.url = url
        self._transport = transport

    async def generate(self, contents: str, config: AuditConfig) -> Mapping[str, Any]:
        body = {
            "contents": contents,
            "model": config.model,
            "config": {
                "temperature": config.temperature,
                "systemInstruction": config.system_instruction,
                "searchGrounding": config.search_grounding,
            },
        }
        return await _post_json(self.url, body, transport=self._transport)


def build_provider() -> AnalysisProvider:
    """Pick the provider from the environment: relay if configured, else Gemini."""
    if settings.RELAY_URL:
        logger.info("Using relay analysis provider at %s", settings.RELAY_URL)
        return RelayProvider(settings.RELAY_URL)
    if not settings.GOOGLE_AI_API_KEY:
        logger.warning("GOOGLE_AI_API_KEY is not set; audit jobs will fail until it is")
    return GeminiProvider()
