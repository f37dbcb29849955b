"""Request construction and sending for a single test exchange."""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

import httpx

from litmus.errors import RequestBuildError, RoundTripError
from litmus.logic.redirects import NO_REDIRECT, RedirectPolicy

logger = logging.getLogger(__name__)


def build_request(
    client: httpx.Client,
    method: str,
    path: str,
    *,
    query: Any = None,
    body: Optional[bytes] = None,
    content_type: str,
    setup: Optional[Callable[[httpx.Request], Any]] = None,
) -> httpx.Request:
    """Build the request and hand it to `setup` before it goes on the wire."""
    if not isinstance(method, str) or not method.strip() or any(c.isspace() for c in method):
        raise RequestBuildError(f"failed to create request: invalid method {method!r}")
    try:
        request = client.build_request(
            method.upper(),
            path,
            params=query or None,
            content=body,
            headers={"Content-Type": content_type},
        )
    except (httpx.InvalidURL, httpx.UnsupportedProtocol, TypeError, ValueError) as exc:
        raise RequestBuildError(f"failed to create request: {exc}") from exc
    if setup is not None:
        try:
            setup(request)
        except Exception as exc:
            raise RequestBuildError(f"failed to create request: setup hook raised {exc!r}") from exc
    return request


def send(
    client: httpx.Client,
    request: httpx.Request,
    *,
    redirect: Optional[RedirectPolicy] = None,
    max_redirects: int = 10,
) -> httpx.Response:
    """Send `request`, consulting `redirect` before following any 3xx.

    The final response body is fully read before returning.
    """
    policy = redirect or NO_REDIRECT
    history: List[httpx.Response] = []
    try:
        response = client.send(request, follow_redirects=False)
        while response.is_redirect and response.next_request is not None:
            next_request = response.next_request
            if not policy(next_request, list(history)):
                break
            if len(history) >= max_redirects:
                raise RoundTripError(f"failed to execute request: stopped after {max_redirects} redirects")
            history.append(response)
            logger.info("client.redirect", extra={"location": str(next_request.url)})
            response = client.send(next_request, follow_redirects=False)
        response.read()
    except httpx.HTTPError as exc:
        raise RoundTripError(f"failed to execute request: {exc}") from exc
    except RoundTripError:
        raise
    except Exception as exc:
        raise RoundTripError(f"failed to execute request: redirect policy raised {exc!r}") from exc
    response.history = history
    return response


__all__ = ["build_request", "send"]
