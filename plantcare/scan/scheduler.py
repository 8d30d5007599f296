"""
Capture scheduler
=================
Owns the camera for one scan session and drives the live scan loop:

    IDLE --start_camera--> CAMERA_ACTIVE <--start/pause--> SCANNING
      ^                                                        |
      +------------------------stop_camera---------------------+

While SCANNING a worker thread repeats ``read newest frame -> analyze ->
render -> wait for next frame tick``. A tick without a ready frame is
skipped. Pausing lets the in-flight tick finish and freezes the last
detections; stopping releases the camera, clears detections and the
overlay, and guarantees no further analyzer calls once it returns.

AI diagnoses run on a single-worker executor, never on the scan thread.
A result that arrives after its session was stopped or replaced is dropped.
"""

import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from plantcare.constants import DEFAULT_LANGUAGE, DEFAULT_SENSITIVITY, get_message
from plantcare.exceptions import (
    CameraAlreadyActiveError,
    CameraUnavailableError,
    DiagnosisError,
    ScannerStateError
)
from plantcare.scan.analyzer import ColorStatisticsAnalyzer
from plantcare.scan.camera import IntervalFrameClock, OpenCVCamera
from plantcare.scan.classifier import SeverityClassifier
from plantcare.scan.frame import frame_size
from plantcare.scan.profiles import get_profile
from plantcare.scan.renderer import OverlayRenderer

logger = logging.getLogger(__name__)

HISTORY_SIZE = 10
JOIN_TIMEOUT = 5.0


class ScannerState(str, Enum):
    IDLE = 'idle'
    CAMERA_ACTIVE = 'camera_active'
    SCANNING = 'scanning'


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CaptureScheduler:
    """
    Camera lifecycle and scan loop for a single scan session at a time.

    Args:
        camera_factory: Callable returning a fresh (unopened) CameraSource
        analyzer: ColorStatisticsAnalyzer
        renderer: OverlayRenderer
        bridge: ExternalAnalysisBridge (optional; diagnoses disabled if None)
        clock: Frame clock with ``wait(stop_event) -> bool``
        language: Language of labels and error messages
    """

    def __init__(
        self,
        camera_factory: Callable,
        analyzer,
        renderer,
        bridge=None,
        clock=None,
        language: str = DEFAULT_LANGUAGE
    ):
        self.camera_factory = camera_factory
        self.analyzer = analyzer
        self.renderer = renderer
        self.bridge = bridge
        self.clock = clock or IntervalFrameClock()
        self.language = language

        self._lock = threading.Lock()
        self._camera_lock = threading.Lock()

        self._state = ScannerState.IDLE
        self._session_id = 0
        self._camera = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

        self._detections = []
        self._frame_size = None
        self._tick_count = 0
        self._last_tick_at = None

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='plantcare-diagnosis')
        self._diagnosis_future = None
        self._last_diagnosis = None
        self._last_error = None
        self._history = deque(maxlen=HISTORY_SIZE)
        self._closed = False

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> ScannerState:
        return self._state

    @property
    def session_id(self) -> int:
        return self._session_id

    @property
    def is_active(self) -> bool:
        return self._state != ScannerState.IDLE

    @property
    def is_scanning(self) -> bool:
        return self._state == ScannerState.SCANNING

    @property
    def detections(self):
        with self._lock:
            return list(self._detections)

    @property
    def is_analyzing(self) -> bool:
        future = self._diagnosis_future
        return future is not None and not future.done()

    # =========================================================================
    # Camera lifecycle
    # =========================================================================

    def start_camera(self) -> int:
        """
        Acquire the camera. Returns the new session id.

        Raises:
            CameraAlreadyActiveError: A stream is already open
            CameraUnavailableError: The device could not be opened
        """
        with self._lock:
            if self._closed:
                raise ScannerStateError("Scheduler is closed", language=self.language)
            if self._state != ScannerState.IDLE:
                raise CameraAlreadyActiveError(language=self.language)

            camera = self.camera_factory()
            try:
                camera.open()
            except CameraUnavailableError as e:
                logger.warning(f"Camera start failed: {e}")
                raise CameraUnavailableError(language=self.language) from e

            self._camera = camera
            self._session_id += 1
            self._state = ScannerState.CAMERA_ACTIVE
            self._detections = []
            self._frame_size = None
            self._tick_count = 0
            self._last_diagnosis = None
            self._last_error = None
            self.renderer.attach()

            logger.info(f"Camera started (session {self._session_id})")
            return self._session_id

    def stop_camera(self):
        """
        Release the camera and clear the session. Idempotent.

        Once this returns, the scan loop has exited and the analyzer will
        not be called again for this session.
        """
        with self._lock:
            if self._state == ScannerState.IDLE and self._camera is None:
                return

            camera = self._camera
            thread = self._thread
            stop_event = self._stop_event
            if stop_event is not None:
                stop_event.set()

            self._state = ScannerState.IDLE
            self._camera = None
            self._thread = None
            self._stop_event = None
            self._detections = []
            self._frame_size = None

        try:
            self._join_loop(thread)
        finally:
            if camera is not None:
                with self._camera_lock:
                    camera.release()
            self.renderer.clear()
            self.renderer.detach()
            logger.info(f"Camera stopped (session {self._session_id})")

    # =========================================================================
    # Scan loop control
    # =========================================================================

    def start_scan(self) -> ScannerState:
        with self._lock:
            if self._state == ScannerState.IDLE:
                raise ScannerStateError(language=self.language)
            if self._state == ScannerState.SCANNING:
                return self._state

            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run_loop,
                args=(self._session_id, stop_event),
                name=f'plantcare-scan-{self._session_id}',
                daemon=True
            )
            self._stop_event = stop_event
            self._thread = thread
            self._state = ScannerState.SCANNING
            thread.start()

            logger.info(f"Scanning started (session {self._session_id})")
            return self._state

    def pause_scan(self) -> ScannerState:
        """Stop issuing ticks; the last detections stay on screen."""
        with self._lock:
            if self._state == ScannerState.IDLE:
                raise ScannerStateError(language=self.language)
            if self._state != ScannerState.SCANNING:
                return self._state

            thread = self._thread
            stop_event = self._stop_event
            if stop_event is not None:
                stop_event.set()
            self._thread = None
            self._stop_event = None
            self._state = ScannerState.CAMERA_ACTIVE

        self._join_loop(thread)
        logger.info(f"Scanning paused (session {self._session_id})")
        return ScannerState.CAMERA_ACTIVE

    def toggle_scan(self) -> ScannerState:
        if self._state == ScannerState.SCANNING:
            return self.pause_scan()
        return self.start_scan()

    def _join_loop(self, thread):
        """Wait for a scan thread whose stop event is already set."""
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning(f"Scan thread {thread.name} did not exit in time")

    def _run_loop(self, session_id: int, stop_event: threading.Event):
        logger.debug(f"Scan loop running (session {session_id})")
        while not stop_event.is_set():
            self._tick(session_id, stop_event)
            if not self.clock.wait(stop_event):
                break
        logger.debug(f"Scan loop exited (session {session_id})")

    def _tick(self, session_id: int, stop_event: threading.Event):
        with self._camera_lock:
            camera = self._camera
            if camera is None or stop_event.is_set():
                return
            frame = camera.read()

        if frame is None:
            return

        try:
            detections = self.analyzer.analyze(frame, language=self.language)
        except Exception as e:
            logger.debug(f"Scan tick skipped: {e}")
            return

        with self._lock:
            if (stop_event.is_set() or session_id != self._session_id
                    or self._state != ScannerState.SCANNING):
                return
            self._publish(detections, frame)

    def _publish(self, detections, frame):
        """Store and draw one analysis result. Caller holds the lock."""
        size = frame_size(frame)
        self._detections = detections
        self._frame_size = size
        self._tick_count += 1
        self._last_tick_at = _now()
        self.renderer.render(detections, size)

    # =========================================================================
    # Manual capture & diagnosis
    # =========================================================================

    def capture(self, diagnose: bool = False) -> dict:
        """
        Analyse the current frame once; optionally queue an AI diagnosis.

        Works while the camera is active, scanning or not, and does not
        change the scheduler state.
        """
        with self._lock:
            if self._state == ScannerState.IDLE:
                raise ScannerStateError(language=self.language)
            if diagnose:
                self._check_can_diagnose(self.language)
            session_id = self._session_id

        frame = self.read_frame()
        if frame is None:
            raise ScannerStateError("No camera frame available yet", language=self.language)

        detections = self.analyzer.analyze(frame, language=self.language)

        # Nothing is published unless the whole capture (and its diagnosis
        # submission) can go through.
        with self._lock:
            if session_id != self._session_id or self._state == ScannerState.IDLE:
                raise ScannerStateError(language=self.language)
            if diagnose:
                self._check_can_diagnose(self.language)
                self._submit_locked(frame, self.language, session_id)
            self._publish(detections, frame)
            self._history.appendleft(self._history_entry(detections))

        return {
            'session_id': session_id,
            'detections': [d.to_dict() for d in detections],
            'frame_size': list(frame_size(frame)),
            'diagnosis_pending': bool(diagnose)
        }

    def read_frame(self):
        """Newest camera frame, or None while idle or before the first frame."""
        with self._camera_lock:
            camera = self._camera
            return camera.read() if camera is not None else None

    def submit_diagnosis(self, frame, session_id: Optional[int] = None, language: Optional[str] = None):
        """
        Queue one diagnosis on the background executor.

        Returns:
            Future resolving to a DiagnosisResult

        Raises:
            ScannerStateError: No bridge configured, or one is already running
        """
        language = language or self.language
        with self._lock:
            self._check_can_diagnose(language)
            if session_id is None:
                session_id = self._session_id
            return self._submit_locked(frame, language, session_id)

    def _check_can_diagnose(self, language):
        """Caller holds the lock."""
        if self.bridge is None:
            raise ScannerStateError("AI diagnosis is not configured", language=language)
        if self.is_analyzing:
            raise ScannerStateError(get_message('ANALYSIS_IN_PROGRESS', language), language=language)

    def _submit_locked(self, frame, language, session_id):
        """Caller holds the lock and has run _check_can_diagnose."""
        self._last_error = None
        self._diagnosis_future = self._executor.submit(
            self._diagnose_job, frame, language, session_id
        )
        return self._diagnosis_future

    def _diagnose_job(self, frame, language, session_id):
        try:
            result = self.bridge.diagnose(frame, language=language, session_id=session_id)
        except DiagnosisError as e:
            with self._lock:
                if not self._is_stale(session_id):
                    self._last_error = e.message
            raise

        with self._lock:
            if self._is_stale(session_id):
                logger.info(f"Discarding diagnosis for stale session {session_id}")
                return result
            self._last_diagnosis = result
            self._history.appendleft({
                'timestamp': result.created_at,
                'session_id': session_id,
                'type': 'diagnosis',
                'diagnosis': result.diagnosis,
                'treatment': result.treatment
            })
        return result

    def _is_stale(self, session_id) -> bool:
        return session_id != self._session_id or self._state == ScannerState.IDLE

    def _history_entry(self, detections) -> dict:
        counts = {}
        for detection in detections:
            counts[detection.severity] = counts.get(detection.severity, 0) + 1
        return {
            'timestamp': _now(),
            'session_id': self._session_id,
            'type': 'capture',
            'detection_count': len(detections),
            'severity_counts': counts
        }

    # =========================================================================
    # Settings & reporting
    # =========================================================================

    def set_settings(self, sensitivity=None, show_confidence=None,
                     color_coding=None, show_boxes=None, language=None) -> dict:
        with self._lock:
            if sensitivity is not None:
                self.analyzer.classifier.sensitivity = sensitivity
            if show_confidence is not None:
                self.renderer.show_confidence = bool(show_confidence)
            if color_coding is not None:
                self.renderer.color_coding = bool(color_coding)
            if show_boxes is not None:
                self.renderer.show_boxes = bool(show_boxes)
            if language is not None:
                self.language = language
            return self.settings()

    def settings(self) -> dict:
        return {
            'profile': self.analyzer.profile.name,
            'sensitivity': self.analyzer.classifier.sensitivity,
            'show_confidence': self.renderer.show_confidence,
            'color_coding': self.renderer.color_coding,
            'show_boxes': self.renderer.show_boxes,
            'language': self.language
        }

    def history(self):
        with self._lock:
            return list(self._history)

    def status(self) -> dict:
        with self._lock:
            return {
                'state': self._state.value,
                'session_id': self._session_id,
                'camera_active': self._state != ScannerState.IDLE,
                'scanning': self._state == ScannerState.SCANNING,
                'is_analyzing': self.is_analyzing,
                'detections': [d.to_dict() for d in self._detections],
                'frame_size': list(self._frame_size) if self._frame_size else None,
                'ticks': self._tick_count,
                'last_tick_at': self._last_tick_at,
                'diagnosis': self._last_diagnosis.to_dict() if self._last_diagnosis else None,
                'error': self._last_error,
                'settings': self.settings()
            }

    def export(self) -> dict:
        """Snapshot of the current session for client-side download."""
        with self._lock:
            return {
                'timestamp': _now(),
                'session_id': self._session_id,
                'state': self._state.value,
                'settings': self.settings(),
                'detections': [d.to_dict() for d in self._detections],
                'diagnosis': self._last_diagnosis.to_dict() if self._last_diagnosis else None,
                'history': list(self._history)
            }

    # =========================================================================
    # Teardown
    # =========================================================================

    def close(self):
        """Stop the camera and shut the diagnosis executor down."""
        self.stop_camera()
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def build_scheduler(
    profile_name: str = 'sensitivity',
    sensitivity=None,
    demo_jitter: bool = False,
    seed=None,
    camera_index: int = 0,
    camera_width: int = 1280,
    camera_height: int = 720,
    fps: float = 30,
    bridge=None,
    language: str = DEFAULT_LANGUAGE,
    camera_factory=None,
    clock=None
) -> CaptureScheduler:
    """Wire a scheduler with the analyzer, classifier and renderer of a profile."""
    profile = get_profile(profile_name)
    classifier = SeverityClassifier(
        policy=profile.policy,
        sensitivity=DEFAULT_SENSITIVITY if sensitivity is None else sensitivity,
        demo_jitter=demo_jitter,
        seed=seed
    )
    analyzer = ColorStatisticsAnalyzer(profile, classifier, language=language)
    renderer = OverlayRenderer(fill_alpha=profile.fill_alpha, border_width=profile.border_width)

    if camera_factory is None:
        def camera_factory():
            return OpenCVCamera(camera_index, camera_width, camera_height)

    return CaptureScheduler(
        camera_factory=camera_factory,
        analyzer=analyzer,
        renderer=renderer,
        bridge=bridge,
        clock=clock or IntervalFrameClock(fps),
        language=language
    )
