"""
Elevation tile transport

Non-blocking HTTP GETs for the cooperative tile driver. Requests run on a
small thread pool; the driver polls their status and never waits on them.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import List, Optional, Protocol, runtime_checkable

import requests
from loguru import logger


class RequestStatus(Enum):
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@runtime_checkable
class TileRequest(Protocol):
    """An issued GET request"""

    @property
    def status(self) -> RequestStatus: ...

    @property
    def content(self) -> bytes: ...

    def failure_reason(self) -> str: ...

    def cancel(self) -> None: ...


@runtime_checkable
class TileTransport(Protocol):
    """Issues tile requests; pump() is serviced once per driver iteration"""

    def get(self, url: str) -> TileRequest: ...

    def pump(self) -> None: ...


class HttpTileRequest:
    """GET running on the transport's thread pool"""

    def __init__(self, url: str, future: Future):
        self.url = url
        self._future = future
        self._cancelled = False

    @property
    def status(self) -> RequestStatus:
        if self._cancelled or self._future.cancelled():
            return RequestStatus.FAILED
        if not self._future.done():
            return RequestStatus.PROCESSING
        if self._future.exception() is not None:
            return RequestStatus.FAILED
        response = self._future.result()
        # Only 2xx counts as success
        if 200 <= response.status_code < 300:
            return RequestStatus.SUCCEEDED
        return RequestStatus.FAILED

    @property
    def status_code(self) -> Optional[int]:
        if not self._future.done() or self._future.cancelled() or self._future.exception() is not None:
            return None
        return self._future.result().status_code

    @property
    def content(self) -> bytes:
        return self._future.result().content

    def failure_reason(self) -> str:
        if self._cancelled or self._future.cancelled():
            return "cancelled"
        if not self._future.done():
            return "still processing"
        error = self._future.exception()
        if error is not None:
            return f"connection failure: {error}"
        return f"HTTP {self._future.result().status_code}"

    def cancel(self) -> None:
        # A request already running completes in the background; its result is dropped
        self._cancelled = True
        self._future.cancel()


class HttpTileTransport:
    """Thread pool of GET workers, each with its own requests.Session"""

    def __init__(self, max_workers: int = 10, timeout: float = 10.0, user_agent: str = "OSMLandscapeImporter/1.0"):
        self.timeout = timeout
        self.user_agent = user_agent
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="elevation-tile")

    def _session(self) -> requests.Session:
        # requests.Session is not thread safe; one per worker thread
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": self.user_agent})
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def get(self, url: str) -> HttpTileRequest:
        logger.debug(f"GET {url}")
        return HttpTileRequest(url, self._executor.submit(self._fetch, url))

    def _fetch(self, url: str) -> requests.Response:
        return self._session().get(url, timeout=self.timeout)

    def pump(self) -> None:
        # Worker threads make progress on their own
        pass

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
