"""Payload text search over a scrolled collection"""

import logging
from dataclasses import dataclass, field
from typing import List

from qdtk.matcher import DEFAULT_MAX_DEPTH, Query, matches
from qdtk.models import Record

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 10
DEFAULT_SCAN_LIMIT = 10000
DEFAULT_PREVIEW_SIZE = 100


@dataclass
class SearchResult:
    matches: List[Record] = field(default_factory=list)
    scanned: int = 0


def search_collection(
    pager,
    query: Query,
    limit: int = DEFAULT_SEARCH_LIMIT,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> SearchResult:
    """Scan records from ``pager`` until ``limit`` matches or ``scan_limit`` records.

    Both bounds are checked after every record, so the scan stops mid-page
    and never pulls a page it does not need. A bound of 0 or less is unbounded.
    """
    result = SearchResult()
    pages = pager.pages()
    try:
        for page in pages:
            for record in page.records:
                result.scanned += 1
                if matches(record.payload, query, max_depth):
                    result.matches.append(record)

                if limit > 0 and len(result.matches) >= limit:
                    return result
                if scan_limit > 0 and result.scanned >= scan_limit:
                    return result
            page = record = None
        return result
    finally:
        pages.close()
        logger.debug(
            "searched %d documents, found %d matches",
            result.scanned,
            len(result.matches),
        )


def preview_collection(client, collection: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[Record]:
    """First page of a collection, used when there is no query text.

    The scroll API rejects a zero limit, so an unbounded limit falls back to
    one default-sized page.
    """
    if limit <= 0:
        limit = DEFAULT_PREVIEW_SIZE
    result = client.scroll(collection, limit=limit, with_payload=True, with_vector=False)
    return [Record.from_point(p) for p in result.get("points") or []]
