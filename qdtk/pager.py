"""Cursor-driven paging over the scroll API"""

import logging
import time
from typing import Callable, Iterator, Optional

from qdtk.errors import TransportError
from qdtk.models import Page, Record

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 5.0


class CursorPager:
    """Pulls successive pages of a collection until the server says stop.

    Only one page is fetched at a time and nothing is prefetched. The pager
    knows nothing about result limits; consumers stop iterating when they
    have enough.
    """

    def __init__(
        self,
        client,
        collection: str,
        page_size: int = 100,
        with_payload: bool = True,
        with_vectors: bool = False,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retries: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.collection = collection
        self.page_size = page_size
        self.with_payload = with_payload
        self.with_vectors = with_vectors
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self.sleep = sleep
        self.pages_fetched = 0
        self._started = False

    def pages(self) -> Iterator[Page]:
        """Yield pages in server order. Can only be iterated once."""
        if self._started:
            raise RuntimeError(f"pager for '{self.collection}' already consumed")
        self._started = True
        return self._iter_pages()

    __iter__ = pages

    def _iter_pages(self) -> Iterator[Page]:
        offset = None
        while True:
            result = self._fetch(offset)
            points = result.get("points") or []

            # An empty page ends the scroll even if a cursor came with it
            if not points:
                return

            page = Page(
                records=[Record.from_point(p) for p in points],
                next_offset=result.get("next_page_offset"),
            )
            del result, points
            self.pages_fetched += 1
            logger.debug(
                "%s: page %d with %d points, next offset %r",
                self.collection,
                self.pages_fetched,
                len(page),
                page.next_offset,
            )
            yield page

            # Only one page may be alive while the next one is fetched
            offset = page.next_offset
            del page
            if offset is None:
                return

    def _fetch(self, offset):
        """One scroll call, retrying in place while it times out"""
        attempts = 0
        while True:
            try:
                return self.client.scroll(
                    self.collection,
                    limit=self.page_size,
                    with_payload=self.with_payload,
                    with_vector=self.with_vectors,
                    offset=offset,
                )
            except TransportError as e:
                if not e.timeout:
                    raise
                attempts += 1
                if self.max_retries is not None and attempts > self.max_retries:
                    raise
                logger.warning(
                    "Timeout on '%s', retrying in %gs... (attempt %d)",
                    self.collection,
                    self.retry_delay,
                    attempts,
                )
                self.sleep(self.retry_delay)
