"""HTTP client for the basketball statistics provider."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

import httpx

from nightly_scores.config import ResolutionContext
from nightly_scores.models import ProviderResponse


logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-apisports-key"
MISSING_API_KEY = "Missing API key"
INVALID_JSON = "Invalid JSON response."
BODY_PREVIEW_CHARS = 500


def _normalize_errors(raw: Any) -> tuple[str, ...]:
    """The provider reports errors as a list, an object, or an empty object."""

    if not raw:
        return ()
    if isinstance(raw, Mapping):
        return tuple(f"{key}: {value}" for key, value in raw.items())
    if isinstance(raw, (list, tuple)):
        return tuple(str(item) for item in raw if item not in (None, ""))
    return (str(raw),)


def _parse_results(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


class UpstreamClient:
    """Authenticated GET requests against the provider.

    ``fetch`` never raises for transport, HTTP or decoding problems; those are
    reported through ``ProviderResponse.errors`` so the resolver can move on to
    its next strategy.
    """

    def __init__(
        self,
        context: ResolutionContext,
        *,
        transport: httpx.BaseTransport | None = None,
    ):
        self.context = context
        self._client: httpx.Client | None = None
        if context.has_credential:
            self._client = httpx.Client(
                base_url=context.base_url,
                headers={API_KEY_HEADER: context.api_key},
                timeout=context.timeout,
                transport=transport,
            )

    def __enter__(self) -> "UpstreamClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def fetch(self, endpoint: str, params: Mapping[str, Any] | None = None) -> ProviderResponse:
        endpoint = "/" + str(endpoint).lstrip("/")
        params = dict(params or {})

        if self._client is None:
            logger.debug("Skipping GET %s: missing API key", endpoint)
            return ProviderResponse.failure(MISSING_API_KEY)

        logger.info("GET %s params=%s", endpoint, params)
        try:
            response = self._client.get(endpoint, params=params)
        except httpx.HTTPError as exc:
            logger.warning("Transport error for %s: %s", endpoint, exc)
            return ProviderResponse.failure(str(exc) or exc.__class__.__name__)

        if not response.is_success:
            preview = response.text[:BODY_PREVIEW_CHARS]
            logger.warning(
                "Non-2xx response for %s code=%s body=%s",
                endpoint,
                response.status_code,
                preview,
            )
            return ProviderResponse.failure(
                f"Non-2xx response code: {response.status_code} body: {preview}"
            )

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Invalid JSON for %s", endpoint)
            return ProviderResponse.failure(INVALID_JSON)

        if not isinstance(data, dict):
            logger.warning("Unexpected JSON body for %s: %s", endpoint, type(data).__name__)
            return ProviderResponse(payload={"response": data})

        rows = data.get("response")
        result = ProviderResponse(
            errors=_normalize_errors(data.get("errors")),
            response=rows if isinstance(rows, list) else [],
            results=_parse_results(data.get("results")),
            payload=data,
        )
        if result.errors:
            logger.warning("Provider errors for %s: %s", endpoint, "; ".join(result.errors))
        else:
            logger.info("OK %s items=%d", endpoint, len(result.response))
        return result
