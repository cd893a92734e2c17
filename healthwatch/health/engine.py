"""Probe engine — builds the configured health request and classifies the response.

Building the request can fail (bad method, bad header, unreadable body file,
bad URL); those raise RequestBuildError and are not retried. Anything that
goes wrong after the request is built is folded into a failed ProbeResult.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass

import httpx

from .models import FileBody, Grace, Request, StringBody

logger = logging.getLogger(__name__)

# RFC 9110 token: method names and header field names
_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
# Visible ASCII and horizontal tab
_HEADER_VALUE = re.compile(r"[\t\x20-\x7e]*")


# ── Errors ───────────────────────────────────────────────────────────────────


class RequestBuildError(Exception):
    """Raised when the health request cannot be constructed from the config."""


class InvalidMethodError(RequestBuildError):
    """The method is not a valid HTTP token."""


class InvalidHeaderError(RequestBuildError):
    """A header name or value contains characters not allowed in HTTP headers."""


class BodyUnreadableError(RequestBuildError):
    """The body file could not be read as UTF-8 text."""


class InvalidURLError(RequestBuildError):
    """The URL cannot be parsed or is not an absolute http(s) URL."""


# ── Models ───────────────────────────────────────────────────────────────────


@dataclass
class ProbeResult:
    """Verdict of a single health probe."""

    ok: bool
    latency_ms: float
    status_code: int | None = None
    message: str = ""


# ── Client / request building ────────────────────────────────────────────────


def create_client(grace: Grace) -> httpx.AsyncClient:
    """Build the shared HTTP client. Only the connect phase is time-limited."""
    timeout = httpx.Timeout(None, connect=grace.timeout.total_seconds())
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


def _resolve_body(request: Request) -> bytes | None:
    body = request.body
    if isinstance(body, StringBody):
        return body.text.encode("utf-8")
    if isinstance(body, FileBody):
        try:
            return body.path.read_text(encoding="utf-8").encode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise BodyUnreadableError(f"Could not read body file {body.path}: {e}") from e
    return None


def build_request(request: Request, client: httpx.AsyncClient) -> httpx.Request:
    """Turn the configured Request into an httpx.Request. Raises RequestBuildError."""
    if not _TOKEN.fullmatch(request.method):
        raise InvalidMethodError(f"Invalid HTTP method: {request.method!r}")

    headers: list[tuple[str, str]] = []
    for name, value in request.header_items():
        if not _TOKEN.fullmatch(name):
            raise InvalidHeaderError(f"Invalid header name: {name!r}")
        if not _HEADER_VALUE.fullmatch(value):
            raise InvalidHeaderError(f"Invalid value for header {name!r}: {value!r}")
        headers.append((name, value))

    content = _resolve_body(request)

    try:
        url = httpx.URL(request.url)
    except httpx.InvalidURL as e:
        raise InvalidURLError(f"Invalid URL {request.url!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise InvalidURLError(f"Invalid URL {request.url!r}: expected an absolute http(s) URL")

    return client.build_request(request.method, url, headers=headers, content=content)


# ── Probe ────────────────────────────────────────────────────────────────────


async def probe(request: Request, client: httpx.AsyncClient) -> ProbeResult:
    """Send one health request. Build errors propagate; everything else is a verdict."""
    health_request = build_request(request, client)

    t0 = time.perf_counter()
    try:
        resp = await client.send(health_request, stream=True)
    except httpx.TimeoutException as e:
        latency = (time.perf_counter() - t0) * 1000
        return ProbeResult(
            ok=False, latency_ms=round(latency, 1),
            message=f"Timed out: {type(e).__name__}: {e}",
        )
    except httpx.HTTPError as e:
        latency = (time.perf_counter() - t0) * 1000
        return ProbeResult(
            ok=False, latency_ms=round(latency, 1),
            message=f"Connection error: {type(e).__name__}: {e}",
        )
    try:
        latency = (time.perf_counter() - t0) * 1000
        logger.debug(
            "Health response: %s %s -> %d (%.1fms)",
            health_request.method, health_request.url, resp.status_code, latency,
        )

        # Verdict comes from the status line alone; only 4xx / 5xx count as failure
        return ProbeResult(
            ok=not resp.is_error, latency_ms=round(latency, 1), status_code=resp.status_code,
            message=f"{resp.status_code} {resp.reason_phrase}",
        )
    finally:
        await resp.aclose()
