"""Fluent query-parameter builder.

    query = begin_query().add("page", "2").add("tag", "a").add("tag", "b").end_query()

Keys may repeat; insertion order is kept on the wire.
"""

from __future__ import annotations

from typing import List, Tuple

import httpx


class Values:
    def __init__(self) -> None:
        self._pairs: List[Tuple[str, str]] = []

    def add(self, key: str, value: object) -> "Values":
        self._pairs.append((str(key), str(value)))
        return self

    def end_query(self) -> httpx.QueryParams:
        return httpx.QueryParams(self._pairs)

    def encode(self) -> str:
        return str(self.end_query())


def begin_query() -> Values:
    return Values()


__all__ = ["Values", "begin_query"]
