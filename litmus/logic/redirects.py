"""Redirect policies.

A policy is called with the request a 3xx response points at and the
responses seen so far; it returns True to follow. Exceptions it raises
abort the exchange.
"""

from __future__ import annotations

from typing import Callable, Sequence

import httpx

RedirectPolicy = Callable[[httpx.Request, Sequence[httpx.Response]], bool]


def NO_REDIRECT(request: httpx.Request, history: Sequence[httpx.Response]) -> bool:
    """Never follow; the 3xx response itself is returned."""
    return False


def follow_redirects(request: httpx.Request, history: Sequence[httpx.Response]) -> bool:
    """Always follow (bounded by the client's max_redirects)."""
    return True


__all__ = ["RedirectPolicy", "NO_REDIRECT", "follow_redirects"]
