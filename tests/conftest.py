import io
import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from osm_landscape.elevation.transport import RequestStatus


TEST_URL_TEMPLATE = "https://tiles.test/terrarium/{z}/{x}/{y}.png"


def terrarium_png(elevation, mode="RGBA", size=None) -> bytes:
    """Encode meters as a terrarium PNG. `elevation` is a 2D array or a scalar with `size`."""
    if np.isscalar(elevation):
        elevation = np.full((size, size), elevation, dtype=np.float64)
    raw = np.asarray(elevation, dtype=np.float64) + 32768.0
    whole = np.floor(raw)
    r = (whole // 256).astype(np.uint8)
    g = (whole % 256).astype(np.uint8)
    b = np.round((raw - whole) * 256).astype(np.uint8)
    a = np.full_like(r, 255)
    channels = {"RGBA": [r, g, b, a], "RGB": [r, g, b]}[mode]
    buffer = io.BytesIO()
    Image.fromarray(np.dstack(channels)).save(buffer, format="PNG")
    return buffer.getvalue()


def tile_key_from_url(url: str):
    z, x, y = url.rsplit(".", 1)[0].split("/")[-3:]
    return int(z), int(x), int(y)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRequest:
    def __init__(self, url: str, issued_at: float):
        self.url = url
        self.issued_at = issued_at
        self.status = RequestStatus.PROCESSING
        self.content = b""
        self.status_code = None
        self.cancel_calls = 0

    def failure_reason(self) -> str:
        return f"HTTP {self.status_code}"

    def cancel(self) -> None:
        self.cancel_calls += 1


class FakeTransport:
    """
    Completes requests on pump().

    `responses` maps (z, x, y) -> (status_code, body, delay_s); missing keys
    never complete.
    """

    def __init__(self, clock: FakeClock, responses=None):
        self.clock = clock
        self.responses = responses or {}
        self.requests = []
        self.pumps = 0

    def get(self, url: str) -> FakeRequest:
        request = FakeRequest(url, self.clock())
        self.requests.append(request)
        return request

    def pump(self) -> None:
        self.pumps += 1
        for request in self.requests:
            if request.status != RequestStatus.PROCESSING or request.cancel_calls:
                continue
            response = self.responses.get(tile_key_from_url(request.url))
            if response is None:
                continue
            status_code, body, delay_s = response
            if self.clock() - request.issued_at < delay_s:
                continue
            request.status_code = status_code
            request.content = body
            request.status = RequestStatus.SUCCEEDED if 200 <= status_code < 300 else RequestStatus.FAILED


class RecordingProgress:
    def __init__(self, cancel_after_checks=None):
        self.frames = []
        self.checks = 0
        self.cancel_after_checks = cancel_after_checks

    def enter_frame(self, fraction: float, message: str) -> None:
        self.frames.append((fraction, message))

    def user_cancelled(self) -> bool:
        self.checks += 1
        return self.cancel_after_checks is not None and self.checks > self.cancel_after_checks

    @property
    def completed(self) -> float:
        return sum(fraction for fraction, _ in self.frames)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep(clock):
    calls = []

    def _sleep(seconds):
        calls.append(seconds)
        clock.advance(seconds)

    _sleep.calls = calls
    return _sleep
