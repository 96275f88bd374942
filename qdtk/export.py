"""Streaming export of collections as newline-delimited JSON"""

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Callable, Dict, List, Optional

from qdtk.errors import EncodingError, RequestError, TransportError
from qdtk.models import Record
from qdtk.pager import DEFAULT_RETRY_DELAY, CursorPager

logger = logging.getLogger(__name__)

ALL_COLLECTIONS = ("*", "all")

ProgressCallback = Callable[[int, Optional[int]], None]
# (collection, points reported by the server, points that will be dumped)
StartCallback = Callable[[str, Optional[int], Optional[int]], None]


def is_all_collections(name: str) -> bool:
    return name.lower() in ALL_COLLECTIONS


class Projection(Enum):
    FULL = "full"
    PAYLOAD_ONLY = "payload"


@dataclass
class ExportOptions:
    limit: int = 0  # 0 = unlimited
    batch_size: int = 100
    with_vectors: bool = False
    projection: Projection = Projection.FULL
    retry_delay: float = DEFAULT_RETRY_DELAY
    max_retries: Optional[int] = None


@dataclass
class CollectionResult:
    name: str
    exported: int = 0
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ExportSummary:
    collections: List[CollectionResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(c.exported for c in self.collections)

    @property
    def failed(self) -> List[CollectionResult]:
        return [c for c in self.collections if not c.ok]


class JsonLinesSink:
    """Writes one JSON document per line to a binary stream.

    Each line is written as soon as it is produced; nothing is buffered
    here beyond the stream's own buffering.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.written = 0

    def write(self, document) -> None:
        try:
            line = json.dumps(document, ensure_ascii=False, allow_nan=False)
            data = line.encode("utf-8") + b"\n"
        except (TypeError, ValueError) as e:
            raise EncodingError(f"failed to encode point: {e}") from e
        self.stream.write(data)
        self.written += 1


def project(record: Record, collection: str, projection: Projection) -> Dict:
    if projection is Projection.PAYLOAD_ONLY:
        return record.payload

    document = {
        "_collection": collection,
        "_id": record.id,
        "payload": record.payload,
    }
    if record.vector is not None:
        document["vector"] = record.vector
    return document


def export_collection(
    client,
    collection: str,
    sink: JsonLinesSink,
    options: Optional[ExportOptions] = None,
    progress: Optional[ProgressCallback] = None,
    sleep: Optional[Callable[[float], None]] = None,
    on_start: Optional[StartCallback] = None,
) -> int:
    """Stream one collection into ``sink``; returns the number of points written"""
    options = options or ExportOptions()

    info = client.collection_info(collection)
    total_points = info.get("points_count")

    expected = total_points
    if options.limit > 0 and (expected is None or options.limit < expected):
        expected = options.limit

    if on_start is not None:
        on_start(collection, total_points, expected)

    if total_points == 0:
        logger.info("%s: empty collection, skipping", collection)
        return 0

    pager = CursorPager(
        client,
        collection,
        page_size=options.batch_size,
        with_payload=True,
        with_vectors=options.with_vectors,
        retry_delay=options.retry_delay,
        max_retries=options.max_retries,
        sleep=sleep or time.sleep,
    )

    dumped = 0
    pages = pager.pages()
    try:
        for page in pages:
            for record in page.records:
                if options.limit > 0 and dumped >= options.limit:
                    break
                sink.write(project(record, collection, options.projection))
                dumped += 1
            page = record = None

            if progress is not None:
                progress(dumped, expected)

            if options.limit > 0 and dumped >= options.limit:
                break
    finally:
        pages.close()

    logger.debug("%s: dumped %d points in %d pages", collection, dumped, pager.pages_fetched)
    return dumped


def export_all(
    client,
    sink: JsonLinesSink,
    options: Optional[ExportOptions] = None,
    progress: Optional[ProgressCallback] = None,
    on_collection: Optional[Callable[[str], None]] = None,
    sleep: Optional[Callable[[float], None]] = None,
    on_start: Optional[StartCallback] = None,
    collections: Optional[List[str]] = None,
) -> ExportSummary:
    """Export every collection, one after the other, in listing order.

    A collection that fails with a request or transport error is recorded
    in the summary and the next one proceeds. Authentication and encoding
    errors abort the whole run. ``collections`` defaults to the server's
    listing.
    """
    summary = ExportSummary()

    if collections is None:
        collections = client.list_collections()

    for name in collections:
        if on_collection is not None:
            on_collection(name)

        result = CollectionResult(name)
        summary.collections.append(result)
        before = sink.written
        try:
            result.exported = export_collection(
                client,
                name,
                sink,
                options,
                progress=progress,
                sleep=sleep,
                on_start=on_start,
            )
        except (RequestError, TransportError) as e:
            result.exported = sink.written - before
            result.error = e
            logger.error("%s: %s", name, e)

    return summary
