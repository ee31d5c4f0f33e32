"""Synchronous HTTP transport for the Lemmy API.

One :class:`LemmyTransport` is bound to one instance.  For every request it:

1. adds ``Authorization: Bearer <jwt>`` when a session credential is given;
2. returns the parsed JSON body (or the raw bytes) on ``2xx``;
3. retries ``429`` (honouring ``Retry-After``), ``5xx`` and network
   failures according to its :class:`RetryPolicy`;
4. raises the matching :class:`BlissError` for any other ``4xx``, carrying
   Lemmy's ``{"error": "..."}`` code.

Relation mutations are paced by the executor; the transport has no token
bucket of its own.
"""

from __future__ import annotations

import json as _json
import sys
import time
from typing import Any

import httpx

from lemmybliss.config import BlissConfig
from lemmybliss.errors import (
    BlissAuthError,
    BlissNetworkError,
    BlissNotFoundError,
    BlissPermissionError,
    BlissRetryExhaustedError,
    BlissValidationError,
)
from lemmybliss.observability import NoopMetricsHook, get_logger

from .retries import RETRYABLE_STATUSES, RetryPolicy

log = get_logger("lemmybliss.transport")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    """Return ``Retry-After`` in seconds, or ``None`` if absent or not numeric."""
    try:
        return float(response.headers["retry-after"])
    except (KeyError, ValueError):
        return None


def _lemmy_error(response: httpx.Response) -> str:
    """Return Lemmy's ``{"error": "..."}`` code, or a slice of the body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)[:500]
    return str(body)[:500]


# Non-retryable statuses with a dedicated error class; the rest of 4xx is
# a validation error.
_STATUS_ERRORS: dict[int, tuple[type, str]] = {
    401: (BlissAuthError, "Authentication failed"),
    403: (BlissPermissionError, "Permission denied"),
    404: (BlissNotFoundError, "Resource not found"),
}


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the :class:`BlissError` subclass matching a non-retryable 4xx."""
    status = response.status_code
    lemmy_error = _lemmy_error(response)
    context: dict[str, Any] = {"status_code": status, "lemmy_error": lemmy_error}
    error_cls, label = _STATUS_ERRORS.get(status, (BlissValidationError, f"Client error {status}"))
    if status == 403:
        context["operation"] = f"{method} {path}"
    elif status == 404:
        context["path"] = path
    raise error_cls(message=f"{label} on {method} {path}: {lemmy_error}", context=context)


def _dump_payload(
    method: str,
    url: str,
    payload: Any,
    response_status: int | None,
    response_body: Any | None,
    secret: str | None = None,
) -> None:
    """Write a redacted request/response summary to stderr."""
    from lemmybliss.utils.redact import redact

    dump = {
        "method": method,
        "url": url,
        "request_body": payload,
        "response_status": response_status,
        "response_body": response_body,
    }
    dump = {key: value for key, value in dump.items() if value is not None}
    print(_json.dumps(redact(dump, secret), indent=2, default=str), file=sys.stderr)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class LemmyTransport:
    """Synchronous HTTP transport bound to one Lemmy instance.

    Parameters
    ----------
    instance:
        Instance root URL, e.g. ``"https://lemmy.example/"``.
    config:
        A :class:`BlissConfig` controlling retries, timeouts and dumps.
    client:
        Optional pre-built :class:`httpx.Client` (tests pass one wired to
        an :class:`httpx.MockTransport`).  Its ``base_url`` is rebound to
        the instance's API root.
    """

    def __init__(
        self,
        instance: str,
        config: BlissConfig,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self._retry = RetryPolicy.from_config(config)
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self.instance = instance if instance.endswith("/") else instance + "/"
        api_root = self.instance.rstrip("/") + config.api_base.rstrip("/") + "/"
        if client is None:
            client = httpx.Client(
                headers={"User-Agent": config.user_agent},
                timeout=httpx.Timeout(config.timeout_seconds),
                proxy=config.http_proxy,
                follow_redirects=True,
            )
        client.base_url = api_root
        self._client = client

    # -- public API --------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        *,
        jwt: str | None = None,
        **kwargs: Any,
    ) -> dict:
        """Execute a JSON request against the Lemmy API.

        Parameters
        ----------
        method:
            HTTP method.
        path:
            API path relative to the API root (e.g. ``"site"``), or an
            absolute URL for endpoints outside ``/api/v3``.
        jwt:
            Session credential; adds the bearer header when given.
        **kwargs:
            Forwarded to :meth:`httpx.Client.request` (``json=``,
            ``params=``, ``files=``, ``headers=``).

        Returns
        -------
        dict
            Parsed JSON response body (``{}`` for empty bodies).

        Raises
        ------
        BlissAuthError
            On 401 responses.
        BlissPermissionError
            On 403 responses.
        BlissNotFoundError
            On 404 responses.
        BlissValidationError
            On 400 and other non-retryable 4xx responses.
        BlissRetryExhaustedError
            When every attempt got a retryable status.
        BlissNetworkError
            When the last attempt failed at the network level, or a
            success response is not a JSON object.
        """
        response = self._send(method, path, jwt=jwt, **kwargs)
        if not response.content:
            return {}
        try:
            result = response.json()
        except ValueError as exc:
            raise BlissNetworkError(
                message=f"Invalid JSON in response to {method} {path}",
                context={"url": str(response.url), "status_code": response.status_code},
                cause=exc,
            ) from exc
        if not isinstance(result, dict):
            raise BlissNetworkError(
                message=f"Unexpected JSON body in response to {method} {path}",
                context={"url": str(response.url)},
            )
        return result

    def request_bytes(self, method: str, url: str, **kwargs: Any) -> bytes:
        """Execute an unauthenticated request and return the raw body."""
        return self._send(method, url, jwt=None, **kwargs).content

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> LemmyTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- internals ---------------------------------------------------------

    def _send(
        self,
        method: str,
        path: str,
        *,
        jwt: str | None,
        **kwargs: Any,
    ) -> httpx.Response:
        if jwt is not None:
            kwargs["headers"] = {
                **(kwargs.get("headers") or {}),
                "Authorization": f"Bearer {jwt}",
            }

        attempt = 0
        while True:
            started = time.monotonic()
            try:
                response = self._client.request(method, path, **kwargs)
            except httpx.TransportError as exc:
                self._on_network_error(method, path, exc, attempt)
                attempt += 1
                continue

            tags = {"method": method, "status": str(response.status_code)}
            self._metrics.increment("lemmybliss.requests_total", tags=tags)
            self._metrics.timing(
                "lemmybliss.request_duration_ms",
                (time.monotonic() - started) * 1000,
                tags=tags,
            )
            if self._config.debug_dump_payload:
                self._emit_debug_dump(method, response, kwargs, jwt)

            status = response.status_code
            if 200 <= status < 300:
                return response
            if status not in RETRYABLE_STATUSES:
                _raise_for_status(response, method, path)
            if not self._retry.can_retry(attempt, status_code=status):
                raise BlissRetryExhaustedError(
                    message=(
                        f"All {attempt + 1} attempts exhausted for {method} {path} "
                        f"(last status: {status})"
                    ),
                    context={"attempts": attempt + 1, "last_status_code": status},
                )

            retry_after = _parse_retry_after(response) if status == 429 else None
            reason = "rate_limited" if status == 429 else "server_error"
            log.warning(
                "Retrying %s %s after status %d", method, path, status,
                extra={
                    "extra_fields": {
                        "op": "request",
                        "reason": reason,
                        "retry_after": retry_after,
                        "attempt": attempt + 1,
                    }
                },
            )
            self._metrics.increment(
                "lemmybliss.retries_total", tags={"method": method, "reason": reason},
            )
            time.sleep(self._retry.delay(attempt, retry_after))
            attempt += 1

    def _on_network_error(
        self,
        method: str,
        path: str,
        exc: Exception,
        attempt: int,
    ) -> None:
        """Sleep before the next attempt, or raise once retries run out."""
        self._metrics.increment(
            "lemmybliss.requests_total", tags={"method": method, "status": "error"},
        )
        log.warning(
            "Network error on %s %s: %s", method, path, exc,
            extra={"extra_fields": {"op": "request", "attempt": attempt + 1}},
        )
        if not self._retry.can_retry(attempt, exception=exc):
            raise BlissNetworkError(
                message=f"Network error on {method} {path}: {exc}",
                context={"url": path, "attempt": attempt + 1},
                cause=exc,
            ) from exc
        self._metrics.increment(
            "lemmybliss.retries_total", tags={"method": method, "reason": "network_error"},
        )
        time.sleep(self._retry.delay(attempt))

    def _emit_debug_dump(
        self,
        method: str,
        response: httpx.Response,
        kwargs: dict[str, Any],
        jwt: str | None,
    ) -> None:
        payload = kwargs.get("json") or kwargs.get("params")
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text[:1000]
        else:
            body = f"<{len(response.content)} bytes {content_type}>"
        _dump_payload(method, str(response.url), payload, response.status_code, body, secret=jwt)
