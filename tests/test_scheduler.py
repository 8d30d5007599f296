import threading
import time

import pytest

from conftest import FakeCamera, FakeVisionClient, quadrant_frame, wait_for
from plantcare.exceptions import (
    CameraAlreadyActiveError,
    CameraUnavailableError,
    DiagnosisError,
    ScannerStateError,
    VisionServiceError
)
from plantcare.scan import ExternalAnalysisBridge, IntervalFrameClock, ScannerState, build_scheduler


class GatedAnalyzer:
    """Holds each analyze() call until ``release`` is set."""

    def __init__(self, analyzer):
        self.inner = analyzer
        self.entered = threading.Event()
        self.release = threading.Event()

    @property
    def profile(self):
        return self.inner.profile

    @property
    def classifier(self):
        return self.inner.classifier

    def analyze(self, frame, **kwargs):
        self.entered.set()
        self.release.wait(5)
        return self.inner.analyze(frame, **kwargs)


def gated_scheduler(camera):
    sched = build_scheduler(profile_name='fixed', camera_factory=lambda: camera,
                            clock=IntervalFrameClock(fps=500))
    sched.analyzer = GatedAnalyzer(sched.analyzer)
    return sched


class TestCameraLifecycle:

    def test_start_camera(self, scheduler, camera):
        assert scheduler.start_camera() == 1
        assert scheduler.state == ScannerState.CAMERA_ACTIVE
        assert scheduler.is_active and not scheduler.is_scanning
        assert camera.opened
        assert scheduler.renderer.attached

    def test_double_start_is_rejected(self, scheduler):
        scheduler.start_camera()
        with pytest.raises(CameraAlreadyActiveError):
            scheduler.start_camera()
        assert scheduler.session_id == 1

    def test_unavailable_camera_leaves_scheduler_idle(self):
        sched = build_scheduler(profile_name='fixed', camera_factory=lambda: FakeCamera(fail=True))
        with sched:
            with pytest.raises(CameraUnavailableError):
                sched.start_camera()
            assert sched.state == ScannerState.IDLE
            assert sched.session_id == 0

    def test_localised_camera_error(self):
        sched = build_scheduler(profile_name='fixed', language='kn',
                                camera_factory=lambda: FakeCamera(fail=True))
        with sched:
            with pytest.raises(CameraUnavailableError) as info:
                sched.start_camera()
        assert info.value.language == 'kn'

    def test_stop_releases_camera_and_clears(self, scheduler, camera):
        scheduler.start_camera()
        scheduler.capture()
        assert scheduler.detections

        scheduler.stop_camera()

        assert scheduler.state == ScannerState.IDLE
        assert camera.release_count == 1
        assert scheduler.detections == []
        assert not scheduler.renderer.attached

    def test_stop_is_idempotent(self, scheduler, camera):
        scheduler.stop_camera()
        scheduler.start_camera()
        scheduler.stop_camera()
        scheduler.stop_camera()
        assert camera.release_count == 1

    def test_restart_starts_new_session(self, scheduler):
        scheduler.start_camera()
        scheduler.stop_camera()
        assert scheduler.start_camera() == 2

    def test_closed_scheduler_cannot_start(self, scheduler):
        scheduler.close()
        with pytest.raises(ScannerStateError):
            scheduler.start_camera()


class TestScanLoop:

    def test_scan_requires_camera(self, scheduler):
        with pytest.raises(ScannerStateError):
            scheduler.start_scan()
        with pytest.raises(ScannerStateError):
            scheduler.pause_scan()

    def test_scanning_publishes_detections(self, scheduler):
        scheduler.start_camera()
        scheduler.start_scan()

        assert wait_for(lambda: scheduler.status()['ticks'] >= 3)
        detections = scheduler.detections
        assert len(detections) == 1
        assert (detections[0].x, detections[0].y) == (0, 0)
        assert scheduler.renderer.surface[40, 40, 3] > 0

    def test_start_scan_twice_keeps_one_loop(self, scheduler):
        scheduler.start_camera()
        scheduler.start_scan()
        scheduler.start_scan()
        names = [t.name for t in threading.enumerate() if t.name.startswith('plantcare-scan-')]
        assert len(names) == 1

    def test_no_analysis_after_stop(self, scheduler):
        scheduler.start_camera()
        scheduler.start_scan()
        assert wait_for(lambda: scheduler.analyzer.calls > 0)

        scheduler.stop_camera()
        calls = scheduler.analyzer.calls
        time.sleep(0.05)

        assert scheduler.analyzer.calls == calls
        assert scheduler.detections == []

    def test_tick_in_flight_during_stop_is_dropped(self, camera):
        sched = gated_scheduler(camera)
        with sched:
            sched.start_camera()
            sched.start_scan()
            assert sched.analyzer.entered.wait(3)

            stopper = threading.Thread(target=sched.stop_camera)
            stopper.start()
            assert wait_for(lambda: sched.state == ScannerState.IDLE)
            sched.analyzer.release.set()
            stopper.join(5)

            assert not stopper.is_alive()
            status = sched.status()
            assert status['state'] == 'idle'
            assert status['detections'] == []
            assert status['ticks'] == 0
            assert not sched.renderer.attached

    def test_tick_in_flight_during_pause_is_dropped(self, camera):
        sched = gated_scheduler(camera)
        with sched:
            sched.start_camera()
            sched.start_scan()
            assert sched.analyzer.entered.wait(3)

            pauser = threading.Thread(target=sched.pause_scan)
            pauser.start()
            assert wait_for(lambda: sched.state == ScannerState.CAMERA_ACTIVE)
            sched.analyzer.release.set()
            pauser.join(5)

            assert not pauser.is_alive()
            assert sched.detections == []
            assert sched.status()['ticks'] == 0

    def test_pause_freezes_detections(self, scheduler):
        scheduler.start_camera()
        scheduler.start_scan()
        assert wait_for(lambda: scheduler.detections)

        assert scheduler.pause_scan() == ScannerState.CAMERA_ACTIVE
        calls = scheduler.analyzer.calls
        time.sleep(0.05)

        assert scheduler.analyzer.calls == calls
        assert len(scheduler.detections) == 1

    def test_toggle(self, scheduler):
        scheduler.start_camera()
        assert scheduler.toggle_scan() == ScannerState.SCANNING
        assert scheduler.toggle_scan() == ScannerState.CAMERA_ACTIVE

    def test_ticks_without_frames_are_skipped(self):
        camera = FakeCamera(frame=None)
        sched = build_scheduler(profile_name='fixed', camera_factory=lambda: camera,
                                clock=IntervalFrameClock(fps=500))
        with sched:
            sched.start_camera()
            sched.start_scan()
            time.sleep(0.05)
            assert sched.status()['ticks'] == 0
            assert sched.detections == []


class TestCapture:

    def test_capture_requires_camera(self, scheduler):
        with pytest.raises(ScannerStateError):
            scheduler.capture()

    def test_capture_analyses_current_frame(self, scheduler):
        scheduler.start_camera()
        result = scheduler.capture()

        assert result['session_id'] == 1
        assert result['frame_size'] == [160, 160]
        assert result['detections'][0]['severity'] == 'diseased'
        assert result['diagnosis_pending'] is False
        assert scheduler.state == ScannerState.CAMERA_ACTIVE

        history = scheduler.history()
        assert history[0]['type'] == 'capture'
        assert history[0]['severity_counts'] == {'diseased': 1}

    def test_capture_without_frame(self):
        sched = build_scheduler(profile_name='fixed', camera_factory=lambda: FakeCamera(frame=None))
        with sched:
            sched.start_camera()
            with pytest.raises(ScannerStateError):
                sched.capture()

    def test_capture_rejected_without_bridge_leaves_no_trace(self):
        sched = build_scheduler(profile_name='fixed', camera_factory=lambda: FakeCamera(frame=quadrant_frame()))
        with sched:
            sched.start_camera()
            with pytest.raises(ScannerStateError):
                sched.capture(diagnose=True)

            assert sched.history() == []
            assert sched.detections == []
            assert sched.status()['ticks'] == 0

    def test_capture_rejected_while_diagnosing_leaves_no_trace(self, camera):
        gate = threading.Event()
        sched = build_scheduler(profile_name='fixed',
                                bridge=ExternalAnalysisBridge(FakeVisionClient(gate=gate)),
                                camera_factory=lambda: camera)
        with sched:
            sched.start_camera()
            future = sched.submit_diagnosis(quadrant_frame())
            with pytest.raises(ScannerStateError):
                sched.capture(diagnose=True)

            assert sched.history() == []
            assert sched.detections == []
            gate.set()
            future.result(timeout=5)

    def test_history_is_bounded(self, scheduler):
        scheduler.start_camera()
        for _ in range(15):
            scheduler.capture()
        assert len(scheduler.history()) == 10


class TestDiagnosis:

    def test_diagnosis_result_is_recorded(self, scheduler, vision_client):
        scheduler.start_camera()
        future = scheduler.submit_diagnosis(quadrant_frame())
        result = future.result(timeout=5)

        assert result.session_id == 1
        assert result.diagnosis.startswith('Early blight')
        assert result.treatment == 'Remove infected leaves\nSpray copper fungicide'
        assert scheduler.status()['diagnosis']['raw_text'] == vision_client.reply
        assert scheduler.history()[0]['type'] == 'diagnosis'

    def test_capture_can_queue_diagnosis(self, scheduler, vision_client):
        scheduler.start_camera()
        assert scheduler.capture(diagnose=True)['diagnosis_pending'] is True
        assert wait_for(lambda: scheduler.status()['diagnosis'] is not None)
        assert len(vision_client.calls) == 1

    def test_one_diagnosis_at_a_time(self, camera):
        gate = threading.Event()
        client = FakeVisionClient(gate=gate)
        sched = build_scheduler(profile_name='fixed', bridge=ExternalAnalysisBridge(client),
                                camera_factory=lambda: camera)
        with sched:
            sched.start_camera()
            future = sched.submit_diagnosis(quadrant_frame())
            assert sched.is_analyzing
            with pytest.raises(ScannerStateError):
                sched.submit_diagnosis(quadrant_frame())
            gate.set()
            future.result(timeout=5)
            assert not sched.is_analyzing

    def test_stale_result_is_discarded(self, camera):
        gate = threading.Event()
        client = FakeVisionClient(gate=gate)
        sched = build_scheduler(profile_name='fixed', bridge=ExternalAnalysisBridge(client),
                                camera_factory=lambda: camera)
        with sched:
            sched.start_camera()
            future = sched.submit_diagnosis(quadrant_frame())
            sched.stop_camera()
            sched.start_camera()
            gate.set()

            assert future.result(timeout=5).session_id == 1
            status = sched.status()
            assert status['session_id'] == 2
            assert status['diagnosis'] is None
            assert [h for h in sched.history() if h['type'] == 'diagnosis'] == []

    def test_failure_is_reported_once(self, camera):
        client = FakeVisionClient(error=VisionServiceError("quota exceeded"))
        sched = build_scheduler(profile_name='fixed', bridge=ExternalAnalysisBridge(client),
                                camera_factory=lambda: camera)
        with sched:
            sched.start_camera()
            future = sched.submit_diagnosis(quadrant_frame())
            with pytest.raises(DiagnosisError):
                future.result(timeout=5)
            assert sched.status()['error'] == 'Analysis failed. Please try again.'
            assert len(client.calls) == 1

    def test_diagnosis_needs_bridge(self):
        sched = build_scheduler(profile_name='fixed', camera_factory=lambda: FakeCamera(frame=quadrant_frame()))
        with sched:
            with pytest.raises(ScannerStateError):
                sched.submit_diagnosis(quadrant_frame())


class TestSettingsAndExport:

    def test_settings(self, scheduler):
        settings = scheduler.set_settings(sensitivity=150, show_boxes=False, language='kn')
        assert settings['sensitivity'] == 100
        assert settings['show_boxes'] is False
        assert settings['language'] == 'kn'
        assert settings['profile'] == 'fixed'

    def test_language_applies_to_labels(self, scheduler):
        scheduler.set_settings(language='kn')
        scheduler.start_camera()
        assert scheduler.capture()['detections'][0]['label'] == 'ರೋಗಗ್ರಸ್ತ'

    def test_export(self, scheduler):
        scheduler.start_camera()
        scheduler.capture()
        export = scheduler.export()

        assert export['session_id'] == 1
        assert export['state'] == 'camera_active'
        assert export['detections'][0]['width'] == 80
        assert export['diagnosis'] is None
        assert len(export['history']) == 1
        assert 'timestamp' in export
