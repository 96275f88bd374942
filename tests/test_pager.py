import logging

import pytest

from qdtk.errors import AuthenticationError, RequestError, TransportError
from qdtk.pager import CursorPager

from conftest import FakeScrollClient, make_points, paged, timeout_error


def collect(pager):
    return [[r.id for r in page.records] for page in pager.pages()]


def test_stops_after_page_without_cursor():
    client = FakeScrollClient(paged(5, 2))
    pager = CursorPager(client, "docs", page_size=2)

    assert collect(pager) == [[0, 1], [2, 3], [4]]
    assert len(client.requests) == 3
    assert client.results == []


def test_cursor_round_trips_verbatim():
    cursors = [{"uuid": "6f1c"}, "b7e2-cursor"]
    client = FakeScrollClient(
        [
            {"points": make_points(0, 1), "next_page_offset": cursors[0]},
            {"points": make_points(1, 1), "next_page_offset": cursors[1]},
            {"points": make_points(2, 1), "next_page_offset": None},
        ]
    )

    list(CursorPager(client, "docs", page_size=1).pages())

    assert [r["offset"] for r in client.requests] == [None, cursors[0], cursors[1]]


def test_zero_cursor_is_not_exhaustion():
    client = FakeScrollClient(
        [
            {"points": make_points(0, 1), "next_page_offset": 0},
            {"points": make_points(1, 1), "next_page_offset": None},
        ]
    )

    assert collect(CursorPager(client, "docs", page_size=1)) == [[0], [1]]
    assert client.requests[1]["offset"] == 0


def test_empty_page_with_cursor_ends_sequence():
    client = FakeScrollClient(
        [
            {"points": make_points(0, 2), "next_page_offset": 2},
            {"points": [], "next_page_offset": 2},
            {"points": make_points(2, 2), "next_page_offset": None},
        ]
    )

    assert collect(CursorPager(client, "docs", page_size=2)) == [[0, 1]]
    assert len(client.requests) == 2


def test_empty_collection_yields_nothing():
    client = FakeScrollClient([{"points": [], "next_page_offset": None}])

    assert collect(CursorPager(client, "docs")) == []


def test_request_flags():
    client = FakeScrollClient(paged(1, 10))

    list(CursorPager(client, "docs", page_size=10, with_vectors=True).pages())

    assert client.requests[0] == {
        "collection": "docs",
        "limit": 10,
        "with_payload": True,
        "with_vector": True,
        "offset": None,
    }


def test_records_are_built_from_points():
    client = FakeScrollClient(
        [
            {
                "points": [
                    {"id": "a1", "payload": {"k": "v"}, "vector": [0.1, 0.2]},
                    {"id": 7, "payload": None},
                ],
                "next_page_offset": None,
            }
        ]
    )

    (page,) = list(CursorPager(client, "docs").pages())

    assert page.records[0].id == "a1"
    assert page.records[0].vector == [0.1, 0.2]
    assert page.records[1].payload == {}
    assert page.records[1].vector is None
    assert page.next_offset is None


def test_timeout_is_retried_in_place(caplog):
    caplog.set_level(logging.WARNING, logger="qdtk")
    sleeps = []
    client = FakeScrollClient(
        [
            {"points": make_points(0, 1), "next_page_offset": "next"},
            timeout_error(),
            timeout_error(),
            {"points": make_points(1, 1), "next_page_offset": None},
        ]
    )
    pager = CursorPager(client, "docs", page_size=1, retry_delay=0.25, sleep=sleeps.append)

    assert collect(pager) == [[0], [1]]
    assert sleeps == [0.25, 0.25]
    # retries reuse the same cursor
    assert [r["offset"] for r in client.requests] == [None, "next", "next", "next"]
    assert "retrying" in caplog.text


def test_default_retry_delay_is_five_seconds():
    sleeps = []
    client = FakeScrollClient([timeout_error(), {"points": [], "next_page_offset": None}])

    list(CursorPager(client, "docs", sleep=sleeps.append).pages())

    assert sleeps == [5.0]


def test_retry_ceiling_reraises_timeout():
    sleeps = []
    client = FakeScrollClient([timeout_error(), timeout_error(), timeout_error()])
    pager = CursorPager(client, "docs", max_retries=2, sleep=sleeps.append)

    with pytest.raises(TransportError) as exc:
        list(pager.pages())

    assert exc.value.timeout
    assert len(sleeps) == 2


@pytest.mark.parametrize(
    "error",
    [
        TransportError("connection refused"),
        RequestError(500, "boom"),
        AuthenticationError(401),
    ],
)
def test_other_errors_propagate_without_retry(error):
    sleeps = []
    client = FakeScrollClient([{"points": make_points(0, 1), "next_page_offset": 1}, error])
    pages = CursorPager(client, "docs", page_size=1, sleep=sleeps.append).pages()

    assert len(next(pages)) == 1
    with pytest.raises(type(error)):
        next(pages)
    assert sleeps == []


def test_pager_is_not_restartable():
    pager = CursorPager(FakeScrollClient(paged(2, 2)), "docs")
    list(pager.pages())

    with pytest.raises(RuntimeError):
        pager.pages()


def test_pages_are_fetched_lazily():
    client = FakeScrollClient(paged(6, 2))
    pages = CursorPager(client, "docs", page_size=2).pages()

    assert client.requests == []
    next(pages)
    assert len(client.requests) == 1
