import threading
import time
from concurrent.futures import Future

import requests

from osm_landscape.elevation.transport import HttpTileRequest, HttpTileTransport, RequestStatus


def _response(status_code: int, content: bytes = b"") -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = content
    return response


def _wait(request, timeout_s: float = 5.0):
    deadline = time.monotonic() + timeout_s
    while request.status == RequestStatus.PROCESSING and time.monotonic() < deadline:
        time.sleep(0.01)
    return request.status


def test_pending_future_is_processing():
    request = HttpTileRequest("https://tiles.test/0/0/0.png", Future())
    assert request.status == RequestStatus.PROCESSING
    assert request.status_code is None


def test_only_2xx_succeeds():
    ok = Future()
    ok.set_result(_response(200, b"png"))
    request = HttpTileRequest("u", ok)
    assert request.status == RequestStatus.SUCCEEDED
    assert request.content == b"png"

    missing = Future()
    missing.set_result(_response(404))
    request = HttpTileRequest("u", missing)
    assert request.status == RequestStatus.FAILED
    assert request.status_code == 404
    assert request.failure_reason() == "HTTP 404"


def test_connection_error_fails():
    future = Future()
    future.set_exception(requests.ConnectionError("refused"))
    request = HttpTileRequest("u", future)
    assert request.status == RequestStatus.FAILED
    assert request.failure_reason().startswith("connection failure")


def test_cancelled_request_fails():
    request = HttpTileRequest("u", Future())
    request.cancel()
    assert request.status == RequestStatus.FAILED
    assert request.failure_reason() == "cancelled"


def test_transport_runs_requests_on_worker_threads(monkeypatch):
    calls = []
    # Holds each GET until both workers are busy
    both_busy = threading.Barrier(2, timeout=5.0)

    def fake_get(session, url, timeout):
        both_busy.wait()
        calls.append((threading.get_ident(), session, session.headers["User-Agent"], url, timeout))
        return _response(200, b"tile")

    monkeypatch.setattr(requests.Session, "get", fake_get)
    urls = [f"https://tiles.test/2/{x}/0.png" for x in range(4)]

    with HttpTileTransport(max_workers=2, timeout=3.0, user_agent="test-agent") as transport:
        tile_requests = [transport.get(url) for url in urls]
        transport.pump()

        assert [_wait(request) for request in tile_requests] == [RequestStatus.SUCCEEDED] * 4
        assert all(request.content == b"tile" for request in tile_requests)

    assert sorted(call[3] for call in calls) == urls
    assert {(call[2], call[4]) for call in calls} == {("test-agent", 3.0)}
    sessions_by_thread = {}
    for thread_id, session, *_ in calls:
        sessions_by_thread.setdefault(thread_id, set()).add(id(session))
    # Two worker threads, each reusing one session of its own
    assert len(sessions_by_thread) == 2
    assert all(len(sessions) == 1 for sessions in sessions_by_thread.values())
    assert len(set.union(*sessions_by_thread.values())) == 2
