# =============================================================================
# PlantCare AI Backend
# routes/scan.py - Plant Scan Routes
#
# Colour-heuristic disease scan for uploaded images and browser frames,
# control of the live camera scan loop, manual capture, overlay image,
# AI diagnosis and JSON export of the current session.
# =============================================================================

import io
import json
import base64
from datetime import datetime

import cv2
from flask import Blueprint, request, current_app, Response, send_file

from plantcare.extensions import limiter
from plantcare.exceptions import InvalidFrameError, ScannerStateError
from plantcare.scan import ColorStatisticsAnalyzer, OverlayRenderer, SeverityClassifier, get_profile
from plantcare.scan.frame import frame_from_bytes, frame_from_base64, frame_size
from plantcare.utils import success_response, error_response, parse_bool, get_language
from plantcare.decorators import handle_service_errors, log_request, validate_file_upload, validate_json

# Create blueprint
scan_bp = Blueprint('scan', __name__)


def _scheduler():
    return current_app.config['SCAN_SCHEDULER']


def _bridge():
    return current_app.config.get('ANALYSIS_BRIDGE')


def _int_option(options, name):
    value = options.get(name)
    if value in (None, ''):
        return None
    value = int(value)
    if value < 1:
        raise ValueError(f"{name} must be a positive integer")
    return value


def _analyzer_for(options):
    """The live analyzer, or a one-off analyzer when another profile is requested."""
    scheduler = _scheduler()
    profile_name = options.get('profile')
    if not profile_name or profile_name == scheduler.analyzer.profile.name:
        return scheduler.analyzer

    profile = get_profile(profile_name)
    classifier = SeverityClassifier(
        policy=profile.policy,
        sensitivity=scheduler.analyzer.classifier.sensitivity
    )
    return ColorStatisticsAnalyzer(profile, classifier)


def _overlay_png(frame, detections, profile, renderer_settings) -> str:
    """Overlay composited on the image, as a PNG data URI."""
    renderer = OverlayRenderer(
        fill_alpha=profile.fill_alpha,
        border_width=profile.border_width,
        show_confidence=renderer_settings['show_confidence'],
        color_coding=renderer_settings['color_coding'],
        show_boxes=renderer_settings['show_boxes']
    )
    renderer.attach(frame_size(frame))
    renderer.render(detections, frame_size(frame))
    composite = renderer.composite(frame)

    ok, buffer = cv2.imencode('.png', cv2.cvtColor(composite, cv2.COLOR_RGB2BGR))
    if not ok:
        return None
    return 'data:image/png;base64,' + base64.b64encode(buffer.tobytes()).decode('utf-8')


def _analyze(frame, options, language):
    analyzer = _analyzer_for(options)
    sensitivity = options.get('sensitivity')
    detections = analyzer.analyze(
        frame,
        grid_size=_int_option(options, 'grid_size'),
        sampling_stride=_int_option(options, 'sampling_stride'),
        sensitivity=int(sensitivity) if sensitivity not in (None, '') else None,
        language=language
    )

    width, height = frame_size(frame)
    counts = {}
    for detection in detections:
        counts[detection.severity] = counts.get(detection.severity, 0) + 1

    result = {
        'profile': analyzer.profile.name,
        'width': width,
        'height': height,
        'detections': [d.to_dict() for d in detections],
        'detection_count': len(detections),
        'severity_counts': counts
    }

    if parse_bool(options.get('overlay')):
        result['overlay_image'] = _overlay_png(
            frame, detections, analyzer.profile, _scheduler().settings()
        )

    if parse_bool(options.get('diagnose')):
        result['diagnosis'] = _diagnose_now(frame, language)

    return result


def _diagnose_now(frame, language):
    bridge = _bridge()
    if bridge is None:
        raise ScannerStateError("AI diagnosis is not configured", language=language)
    return bridge.diagnose(frame, language=language).to_dict()


# =============================================================================
# Static Image Analysis
# =============================================================================

@scan_bp.route('/analyze', methods=['POST'])
@limiter.limit("30 per minute")
@handle_service_errors
@validate_file_upload()
def analyze_upload(file):
    """
    Scan an uploaded leaf image for diseased regions.

    Request:
        Content-Type: multipart/form-data

        Fields:
            image (file): Image file - required
            profile (str): 'fixed' or 'sensitivity' - optional
            grid_size, sampling_stride, sensitivity (int) - optional
            overlay (bool): Include the annotated image - optional
            diagnose (bool): Also run the AI diagnosis - optional
            language (str): 'en' or 'kn' - optional

    Returns:
        200: Detections with severity, confidence and label
        400: Missing, invalid or corrupt image
    """
    language = get_language()
    frame = frame_from_bytes(file.read())
    result = _analyze(frame, request.form, language)

    current_app.logger.info(
        f"Scanned {file.filename}: {result['detection_count']} regions flagged"
    )
    return success_response(result)


@scan_bp.route('/analyze/base64', methods=['POST'])
@limiter.limit("120 per minute")
@handle_service_errors
@validate_json('image')
def analyze_base64(data):
    """Scan a base64 frame (e.g. a browser camera capture)."""
    language = get_language(data)
    frame = frame_from_base64(data['image'])
    return success_response(_analyze(frame, data, language))


@scan_bp.route('/diagnose', methods=['POST'])
@limiter.limit("10 per minute")
@log_request
@handle_service_errors
def diagnose():
    """
    One-shot AI diagnosis of an uploaded (multipart 'image') or base64
    ('image' JSON field) picture.
    """
    data = request.get_json(silent=True) if request.is_json else None
    language = get_language(data)

    if data and data.get('image'):
        frame = frame_from_base64(data['image'])
    elif 'image' in request.files:
        frame = frame_from_bytes(request.files['image'].read())
    else:
        raise InvalidFrameError("Image is required", language=language)

    return success_response(_diagnose_now(frame, language))


# =============================================================================
# Live Camera Scan
# =============================================================================

@scan_bp.route('/camera/start', methods=['POST'])
@handle_service_errors
def start_camera():
    """Open the camera (409 when already active, 503 when unavailable)."""
    scheduler = _scheduler()
    data = request.get_json(silent=True) or {}
    if data.get('language'):
        scheduler.set_settings(language=get_language(data))

    scheduler.start_camera()
    if parse_bool(data.get('scan')):
        scheduler.start_scan()

    return success_response(scheduler.status(), message='Camera started')


@scan_bp.route('/camera/stop', methods=['POST'])
@handle_service_errors
def stop_camera():
    scheduler = _scheduler()
    scheduler.stop_camera()
    return success_response(scheduler.status(), message='Camera stopped')


@scan_bp.route('/start', methods=['POST'])
@handle_service_errors
def start_scan():
    scheduler = _scheduler()
    scheduler.start_scan()
    return success_response(scheduler.status())


@scan_bp.route('/pause', methods=['POST'])
@handle_service_errors
def pause_scan():
    scheduler = _scheduler()
    scheduler.pause_scan()
    return success_response(scheduler.status())


@scan_bp.route('/toggle', methods=['POST'])
@handle_service_errors
def toggle_scan():
    scheduler = _scheduler()
    scheduler.toggle_scan()
    return success_response(scheduler.status())


@scan_bp.route('/status', methods=['GET'])
def status():
    """Scanner state, latest detections and diagnosis."""
    return success_response(_scheduler().status())


@scan_bp.route('/settings', methods=['GET', 'POST'])
@handle_service_errors
def settings():
    """
    Read or update live scan settings.

    Body (all optional): sensitivity (0-100), show_confidence,
    color_coding, show_boxes, language
    """
    scheduler = _scheduler()
    if request.method == 'GET':
        return success_response(scheduler.settings())

    data = request.get_json(silent=True) or {}
    sensitivity = data.get('sensitivity')
    updated = scheduler.set_settings(
        sensitivity=float(sensitivity) if sensitivity is not None else None,
        show_confidence=data.get('show_confidence'),
        color_coding=data.get('color_coding'),
        show_boxes=data.get('show_boxes'),
        language=get_language(data) if data.get('language') else None
    )
    return success_response(updated, message='Settings updated')


@scan_bp.route('/capture', methods=['POST'])
@limiter.limit("30 per minute")
@log_request
@handle_service_errors
def capture():
    """
    Analyse the current camera frame once; with diagnose=true the frame
    is also sent to the AI service in the background (poll /status).
    """
    data = request.get_json(silent=True) or {}
    diagnose_flag = parse_bool(data.get('diagnose', request.args.get('diagnose')))
    result = _scheduler().capture(diagnose=diagnose_flag)
    return success_response(result, status_code=202 if diagnose_flag else 200)


@scan_bp.route('/history', methods=['GET'])
def history():
    """Last captures and diagnoses of this process (newest first)."""
    return success_response(_scheduler().history())


@scan_bp.route('/overlay.png', methods=['GET'])
def overlay_png():
    """Current transparent overlay (404 while the camera is off)."""
    png = _scheduler().renderer.to_png()
    if png is None:
        return error_response('Overlay not available', status_code=404)
    return send_file(io.BytesIO(png), mimetype='image/png')


@scan_bp.route('/export', methods=['GET'])
def export():
    """Download the current session (detections, diagnosis, history) as JSON."""
    payload = _scheduler().export()
    filename = f"plant-scan-{datetime.now().strftime('%Y%m%d-%H%M%S')}.json"
    return Response(
        json.dumps(payload, indent=2, ensure_ascii=False),
        mimetype='application/json',
        headers={'Content-Disposition': f'attachment; filename={filename}'}
    )
