"""
Shared fixtures: synthetic frames, a scriptable camera, fake AI/weather/map
collaborators and a Flask test app wired to them.
"""

import io
import time
import threading

import numpy as np
import pytest
import requests
from PIL import Image

from plantcare.exceptions import CameraUnavailableError
from plantcare.scan import CameraSource, ExternalAnalysisBridge, IntervalFrameClock, build_scheduler
from plantcare.scan.frame import make_frame

GREEN = (40, 160, 40)
YELLOW_GREEN = (160, 200, 50)
BLACK = (0, 0, 0)


def solid_frame(color, width=160, height=160):
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:, :] = color
    return make_frame(pixels)


def quadrant_frame():
    """160x160 healthy green leaf with a yellowed top-left 80x80 quadrant."""
    pixels = np.zeros((160, 160, 3), dtype=np.uint8)
    pixels[:, :] = GREEN
    pixels[0:80, 0:80] = YELLOW_GREEN
    return make_frame(pixels)


def png_bytes(frame):
    buffer = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(frame[:, :, :3])).save(buffer, format='PNG')
    return buffer.getvalue()


def wait_for(predicate, timeout=3.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class FakeCamera(CameraSource):
    """Camera that serves a fixed frame (or nothing)."""

    def __init__(self, frame=None, fail=False):
        self.frame = frame
        self.fail = fail
        self.opened = False
        self.release_count = 0

    def open(self):
        if self.fail:
            raise CameraUnavailableError()
        self.opened = True

    def read(self):
        return self.frame if self.opened else None

    def release(self):
        self.opened = False
        self.release_count += 1

    @property
    def is_open(self):
        return self.opened


class CountingAnalyzer:
    """Wraps an analyzer and counts analyze() calls."""

    def __init__(self, analyzer):
        self.inner = analyzer
        self.calls = 0
        self._lock = threading.Lock()

    @property
    def profile(self):
        return self.inner.profile

    @property
    def classifier(self):
        return self.inner.classifier

    def analyze(self, frame, **kwargs):
        with self._lock:
            self.calls += 1
        return self.inner.analyze(frame, **kwargs)


class FakeVisionClient:
    """VisionClient stand-in; optionally blocks until ``gate`` is set."""

    def __init__(self, reply="Early blight\nModerate\nBrown rings on leaves\nRemove infected leaves\nSpray copper fungicide",
                 error=None, gate=None):
        self.reply = reply
        self.error = error
        self.gate = gate
        self.calls = []

    def generate(self, prompt, image_base64=None, mime_type='image/jpeg'):
        self.calls.append({'prompt': prompt, 'image': image_base64, 'mime_type': mime_type})
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """requests.Session stand-in recording calls and replaying responses."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def _handle(self, method, url, **kwargs):
        self.calls.append({'method': method, 'url': url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        return self._handle('GET', url, **kwargs)

    def post(self, url, **kwargs):
        return self._handle('POST', url, **kwargs)

    def request(self, method, url, **kwargs):
        return self._handle(method, url, **kwargs)


@pytest.fixture
def camera():
    return FakeCamera(frame=quadrant_frame())


@pytest.fixture
def vision_client():
    return FakeVisionClient()


@pytest.fixture
def scheduler(camera, vision_client):
    sched = build_scheduler(
        profile_name='fixed',
        bridge=ExternalAnalysisBridge(vision_client),
        camera_factory=lambda: camera,
        clock=IntervalFrameClock(fps=500)
    )
    sched.analyzer = CountingAnalyzer(sched.analyzer)
    yield sched
    sched.close()


@pytest.fixture
def app(scheduler):
    from plantcare.app import create_app

    app = create_app('testing')
    app.config['SCAN_SCHEDULER'].close()
    app.config['SCAN_SCHEDULER'] = scheduler
    app.config['ANALYSIS_BRIDGE'] = scheduler.bridge
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
