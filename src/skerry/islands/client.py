"""HTTP client for the SSR service.

Synchronous: the orchestrator runs inside one page render and blocks on
these calls. Every call has its own read timeout; connection failures
are retried a small bounded number of times with doubling backoff.
Read timeouts and oversized payloads are never retried.

Error contract:

- ``render_one`` never raises; every failure is a ``RenderFailure``.
- ``render_batch`` and ``render_tree`` raise ``TransportError`` (or
  ``PayloadTooLargeError``) when the call fails wholesale, so the
  orchestrator can fall back to individual renders. Component failures
  inside a successful call come back as ``RenderFailure`` values.
"""

import json
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import httpx

from skerry.config import IslandsConfig
from skerry.errors import PayloadTooLargeError, RenderError, TransportError
from skerry.islands.types import (
    RenderFailure,
    RenderOutcome,
    RenderRequest,
    outcome_from_wire,
)

logger = logging.getLogger("skerry.client")

METADATA_HEADER = "X-Skerry-Metadata"

# Status the service uses for a component failure with a {error, kind} body
COMPONENT_FAILURE_STATUS = 422

_RETRYABLE = (httpx.ConnectError, httpx.ConnectTimeout, httpx.RemoteProtocolError)


class SSRClient:
    """Talks to the SSR service over HTTP+JSON.

    Usage::

        with SSRClient(IslandsConfig(ssr_url="http://ssr:5175")) as client:
            outcome = client.render_one("/app/components/Badge.kida", {"name": "Ada"})
    """

    def __init__(
        self,
        config: IslandsConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config if config is not None else IslandsConfig()
        self._client = httpx.Client(
            base_url=self.config.ssr_url,
            transport=transport,
            timeout=self._timeout(self.config.ssr_timeout),
        )
        self._sleep = sleep

    # -- Operations --

    def render_one(
        self,
        path: str | None,
        props: Mapping[str, Any],
        *,
        component: str | None = None,
        include_metadata: bool = False,
    ) -> RenderOutcome:
        headers = {METADATA_HEADER: "1"} if include_metadata else None
        try:
            response = self._post(
                "/render",
                {"componentPath": path, "props": dict(props)},
                read_timeout=self.config.ssr_timeout,
                headers=headers,
                component=component,
            )
            return self._decode_outcome(response, component=component)
        except RenderError as exc:
            logger.debug("Render of %s failed: %s", component or path, exc.message)
            return RenderFailure.from_error(exc)

    def render_batch(self, requests: Sequence[RenderRequest]) -> list[RenderOutcome]:
        """Render independent components in one round trip, order preserved."""
        body = {
            "specs": [
                {"componentPath": request.reference.path, "props": request.flat_props()}
                for request in requests
            ]
        }
        response = self._post("/batch-render", body, read_timeout=self.config.batch_timeout)
        if not response.is_success:
            raise TransportError(_status_message("Batch render", response))

        data = _json_body(response)
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list) or len(results) != len(requests):
            msg = f"Malformed batch response: expected {len(requests)} results"
            raise TransportError(msg)
        return [_decode_entry(entry) for entry in results]

    def render_tree(self, request: RenderRequest) -> RenderOutcome:
        """Render a nested component tree as one composition."""
        response = self._post(
            "/render-tree",
            {"tree": request.to_wire()},
            read_timeout=self.config.batch_timeout,
            component=request.name,
        )
        return self._decode_outcome(response, component=request.name)

    def infer_props(self, source: str) -> list[str]:
        """Prop names a component declares. Advisory: failures give ``[]``."""
        try:
            response = self._post(
                "/infer-props", {"source": source}, read_timeout=self.config.ssr_timeout
            )
            if not response.is_success:
                raise TransportError(_status_message("Props inference", response))
            data = _json_body(response)
        except RenderError as exc:
            logger.warning("Props inference failed: %s", exc.message)
            return []
        keys = data.get("keys") if isinstance(data, dict) else None
        if not isinstance(keys, list):
            return []
        return [key for key in keys if isinstance(key, str)]

    def health(self) -> dict[str, Any]:
        try:
            response = self._client.get("/health")
        except httpx.HTTPError as exc:
            msg = f"SSR service unreachable at {self.config.ssr_url}: {exc}"
            raise TransportError(msg) from exc
        if not response.is_success:
            raise TransportError(_status_message("Health check", response))
        data = _json_body(response)
        if not isinstance(data, dict):
            raise TransportError("Malformed health response")
        return data

    def clear_bundle_cache(self) -> int:
        """Ask the service to drop its compiled bundles. Returns the count."""
        response = self._post("/clear-cache", {}, read_timeout=self.config.ssr_timeout)
        if not response.is_success:
            raise TransportError(_status_message("Clear cache", response))
        data = _json_body(response)
        return int(data.get("cleared", 0)) if isinstance(data, dict) else 0

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SSRClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- Transport --

    def _timeout(self, read: float) -> httpx.Timeout:
        return httpx.Timeout(read, connect=self.config.connect_timeout)

    def _post(
        self,
        path: str,
        body: Mapping[str, Any],
        *,
        read_timeout: float,
        headers: Mapping[str, str] | None = None,
        component: str | None = None,
    ) -> httpx.Response:
        payload = json.dumps(body, separators=(",", ":"), default=str).encode("utf-8")
        limit = self.config.max_payload_bytes
        if len(payload) > limit:
            raise PayloadTooLargeError(
                f"Payload too large: {len(payload)} bytes exceeds limit of {limit}",
                size=len(payload),
                limit=limit,
                component=component,
            )

        request_headers = {"content-type": "application/json", **(headers or {})}
        attempt = 0
        while True:
            try:
                response = self._client.post(
                    path,
                    content=payload,
                    headers=request_headers,
                    timeout=self._timeout(read_timeout),
                )
                break
            except _RETRYABLE as exc:
                if attempt >= self.config.retry_attempts:
                    msg = f"SSR service unreachable at {self.config.ssr_url}: {exc}"
                    raise TransportError(msg, component=component) from exc
                delay = self.config.retry_delay * (2**attempt)
                attempt += 1
                logger.warning(
                    "SSR connection failed (%s), retry %d/%d in %.2fs",
                    type(exc).__name__,
                    attempt,
                    self.config.retry_attempts,
                    delay,
                )
                self._sleep(delay)
            except httpx.TimeoutException as exc:
                msg = f"SSR request to {path} timed out after {read_timeout}s"
                raise TransportError(msg, component=component) from exc
            except httpx.HTTPError as exc:
                msg = f"SSR request to {path} failed: {exc}"
                raise TransportError(msg, component=component) from exc

        if response.status_code == 413:
            raise PayloadTooLargeError(
                _error_message(response) or "Payload too large",
                size=len(payload),
                limit=limit,
                component=component,
            )
        return response

    @staticmethod
    def _decode_outcome(response: httpx.Response, *, component: str | None) -> RenderOutcome:
        if not (response.is_success or response.status_code == COMPONENT_FAILURE_STATUS):
            raise TransportError(_status_message("Render", response), component=component)
        return _decode_entry(_json_body(response))


def _decode_entry(entry: Any) -> RenderOutcome:
    if not isinstance(entry, dict):
        raise TransportError("Malformed render result: expected an object")
    try:
        return outcome_from_wire(entry)
    except ValueError as exc:
        raise TransportError(f"Malformed render result: {exc}") from exc


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise TransportError(f"Malformed JSON from SSR service ({response.status_code})") from exc


def _error_message(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return None


def _status_message(operation: str, response: httpx.Response) -> str:
    detail = _error_message(response) or response.reason_phrase
    return f"{operation} failed with HTTP {response.status_code}: {detail}"
