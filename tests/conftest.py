import logging

import pytest

from qdtk.errors import TransportError

QDRANT_URL = "http://qdrant.test:6333"


def make_points(start: int, count: int, **extra):
    return [
        {"id": i, "payload": {"name": f"item-{i}", **extra}}
        for i in range(start, start + count)
    ]


class FakeScrollClient:
    """Stands in for QdrantClient.scroll with a scripted list of results.

    Each entry is either a scroll result dict or an exception to raise.
    """

    def __init__(self, results, info=None):
        self.results = list(results)
        self.info = info if info is not None else {"points_count": None}
        self.requests = []

    def scroll(self, collection, limit, with_payload=True, with_vector=False, offset=None):
        self.requests.append(
            {
                "collection": collection,
                "limit": limit,
                "with_payload": with_payload,
                "with_vector": with_vector,
                "offset": offset,
            }
        )
        if not self.results:
            raise AssertionError("scrolled past the last scripted page")
        item = self.results.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def collection_info(self, collection):
        return self.info


def paged(total: int, page_size: int):
    """Scroll results for ``total`` points split into pages, integer cursors"""
    results = []
    for start in range(0, total, page_size):
        count = min(page_size, total - start)
        next_offset = start + count if start + count < total else None
        results.append({"points": make_points(start, count), "next_page_offset": next_offset})
    return results


def timeout_error():
    return TransportError("timeout: read timed out", timeout=True)


@pytest.fixture(autouse=True)
def reset_qdtk_logger():
    yield
    package_logger = logging.getLogger("qdtk")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def no_config(tmp_path, monkeypatch):
    """Isolate tests from real config files and environment"""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    for name in ("QDRANT_URL", "QDTK_URL", "QDRANT_API_KEY", "QDTK_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    return home, work
