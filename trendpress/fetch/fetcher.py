"""
HTTP access for source feeds, linked article pages and provider APIs.

Uses a shared httpx.AsyncClient per scrape. Transport errors and 5xx
responses are retried with linear backoff; timeouts are not retried within
the same run, the unit is reported failed and picked up by the next run.
"""

from __future__ import annotations

from dataclasses import dataclass
import asyncio
import json
from typing import Any

import httpx

from ..errors import MalformedOutput, ProviderError
from ..utils.limiter import RateLimiter, domain_key


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
    """

    url: str
    status_code: int | None
    text: str | None
    error: str | None

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


def build_client(timeout: float, user_agent: str, trust_env: bool) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        headers={
            "User-Agent": user_agent,
            "Accept": "application/rss+xml, application/xml, text/html;q=0.9, */*;q=0.8",
        },
        follow_redirects=True,
        trust_env=trust_env,
    )


async def fetch_url(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    retries: int,
    limiter: RateLimiter | None = None,
) -> FetchResult:
    """Fetch a URL with retry logic and a hard deadline per attempt.

    Args:
        client: Shared async client
        url: The URL to fetch
        timeout: Deadline in seconds for one attempt
        retries: Number of retry attempts after initial failure
        limiter: Optional per-domain rate limiter

    Returns:
        FetchResult with text on success or error message on failure
    """
    last_error: str | None = None
    status_code: int | None = None

    for attempt in range(retries + 1):
        if limiter is not None:
            await limiter.acquire_async(domain_key(url))
        try:
            resp = await asyncio.wait_for(client.get(url), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            return FetchResult(url=url, status_code=None, text=None, error=f"Timeout: {type(exc).__name__}")
        except httpx.HTTPError as exc:
            last_error = f"{type(exc).__name__}: {exc}"
        else:
            status_code = resp.status_code
            if resp.status_code < 400:
                return FetchResult(url=url, status_code=resp.status_code, text=resp.text, error=None)
            last_error = f"HTTP {resp.status_code}"
            if resp.status_code < 500:
                break
        if attempt < retries:
            # Linear backoff: 0.5s, 1.0s, 1.5s...
            await asyncio.sleep(0.5 * (attempt + 1))

    return FetchResult(url=url, status_code=status_code, text=None, error=last_error)


def post_json(
    provider: str,
    url: str,
    payload: dict[str, Any],
    timeout: float,
    trust_env: bool,
    params: dict[str, str] | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """POST a JSON payload to a provider API and return the decoded body.

    Every failure mode (timeout, transport error, HTTP status, undecodable
    body) is raised as ProviderError so callers never see httpx exceptions.
    """
    try:
        with httpx.Client(timeout=timeout, trust_env=trust_env) as client:
            resp = client.post(url, params=params, headers=headers, json=payload)
            resp.raise_for_status()
            return resp.json()
    except httpx.TimeoutException as exc:
        raise ProviderError(provider, f"timed out after {timeout}s", reason="timeout") from exc
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        reason = "quota" if status == 429 else "http_status"
        raise ProviderError(provider, f"HTTP {status}", reason=reason) from exc
    except httpx.HTTPError as exc:
        raise ProviderError(provider, f"{type(exc).__name__}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise MalformedOutput(provider, "response body is not JSON") from exc
