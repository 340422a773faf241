"""
modiopy.pagination
------------------

ListStream turns a paged mod.io listing into one lazy iterator.

The first page is fetched on the first pull. Its ``total`` fixes how many items
the stream yields; the ``total`` of later pages is ignored. Follow-up pages are
requested one at a time, only once the buffered items of the previous page are
used up, by rewriting the ``_offset`` query parameter of the last URL.

A failed fetch is raised at the pull that triggered it and ends the stream.
Streams cannot be rewound; build a new one to start again from the first page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Generic, Iterator, List, Optional, TypeVar

from .types_models import MODIOLIST
from .utils import redact_url, set_query_param

if TYPE_CHECKING:
    from .client import Modio

logger = logging.getLogger(__name__)

T = TypeVar("T")

OFFSET_PARAM = "_offset"


@dataclass
class CursorState(Generic[T]):
    """
    Progress through a listing.

    Attributes
    ----------
    url : str
        URL of the last fetched page (query included).
    buffer : List[T]
        Items not yielded yet, in reverse order so the next one is popped from the end.
    offset : int
        Offset of the last fetched page.
    limit : int
        Page size reported by the first page.
    remaining : int
        Items still to yield; starts at the first page's total.
    """
    url: str
    buffer: List[T] = field(default_factory=list)
    offset: int = 0
    limit: int = 0
    remaining: int = 0


class ListStream(Iterator[T]):
    """
    Forward-only iterator over every entry of a listing.

    Parameters
    ----------
    client : Modio
        Client used for the page requests.
    path : str
        Listing path (or absolute URL), optionally with query parameters.
    decode : Optional[Callable]
        Converts a single raw entry (e.g. MODINFO.from_dict).

    Example
    -------
    >>> for mod in ListStream(modio, "/games/5/mods", MODINFO.from_dict):
    ...     print(mod.name)
    """

    def __init__(self, client: "Modio", path: str, decode: Optional[Callable[[Any], T]] = None):
        self._client = client
        self._path = path
        self._decode = MODIOLIST.parser(decode)
        self._cursor: Optional[CursorState[T]] = None
        self._finished = False

    def __iter__(self) -> "ListStream[T]":
        return self

    def __next__(self) -> T:
        if self._finished:
            raise StopIteration
        try:
            return self.step()
        except BaseException:
            # exhaustion, fetch errors and cancellation all end the stream
            self._finished = True
            self._cursor = None
            raise

    def step(self) -> T:
        """Advance the cursor by one item, fetching the next page if the buffer is empty."""
        if self._cursor is None:
            self._cursor = self._first_page()

        cursor = self._cursor
        if cursor.remaining <= 0:
            raise StopIteration

        if cursor.buffer:
            cursor.remaining -= 1
            return cursor.buffer.pop()

        next_url = set_query_param(cursor.url, OFFSET_PARAM, cursor.offset + cursor.limit)
        url, page = self._fetch(next_url)
        if not page.items:
            logger.warning("listing %s returned an empty page with %d items outstanding",
                           redact_url(url), cursor.remaining)
            raise StopIteration

        items = list(page.items)
        first = items.pop(0)
        items.reverse()
        cursor.url = url
        cursor.buffer = items
        cursor.offset += cursor.limit
        cursor.remaining -= 1
        return first

    def _first_page(self) -> CursorState[T]:
        url, page = self._fetch(self._path)
        buffer = list(page.items)
        buffer.reverse()
        return CursorState(url=url, buffer=buffer, offset=page.offset, limit=page.limit, remaining=page.total)

    def _fetch(self, url: str):
        logger.debug("fetching listing page %s", redact_url(url))
        return self._client._request("GET", url, None, self._decode)
