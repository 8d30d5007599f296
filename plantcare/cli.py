#!/usr/bin/env python3
"""
PlantCare AI - Command line
===========================
Scan leaf images or a live camera feed for diseased regions, run the AI
diagnosis on a picture, or start the REST API server.

Usage:
    # Scan an image, save the annotated result
    plantcare analyze leaf.jpg --output leaf_overlay.png

    # Live camera window ('q' quit, 's' save, 'p' pause, 'd' diagnose)
    plantcare camera --index 0 --sensitivity 80

    # AI diagnosis (needs GEMINI_API_KEY)
    plantcare diagnose leaf.jpg --language kn

    # REST API server
    plantcare serve --port 5000
"""

import os
import sys
import json
import time
import argparse
import logging
from pathlib import Path

import cv2

from plantcare.constants import DEFAULT_SENSITIVITY, SUPPORTED_LANGUAGES
from plantcare.exceptions import PlantCareError
from plantcare.logging_config import setup_logger
from plantcare.scan import (
    ColorStatisticsAnalyzer,
    ExternalAnalysisBridge,
    OverlayRenderer,
    ScannerState,
    SeverityClassifier,
    build_scheduler,
    get_profile
)
from plantcare.scan.frame import frame_from_bytes, frame_size

logger = logging.getLogger('plantcare.cli')

WINDOW_NAME = 'PlantCare AI'
IDLE_WAIT_MS = 30


def build_pipeline(args):
    """Analyzer and renderer for the selected profile and sensitivity."""
    profile = get_profile(args.profile).with_overrides(grid_size=getattr(args, 'grid_size', None))
    classifier = SeverityClassifier(
        policy=profile.policy,
        sensitivity=args.sensitivity,
        demo_jitter=getattr(args, 'demo', False)
    )
    analyzer = ColorStatisticsAnalyzer(profile, classifier, language=args.language)
    renderer = OverlayRenderer(fill_alpha=profile.fill_alpha, border_width=profile.border_width)
    return analyzer, renderer


def build_bridge():
    from plantcare.config import Config
    from plantcare.services import VisionClient

    if not Config.GEMINI_API_KEY:
        return None
    return ExternalAnalysisBridge(VisionClient(Config.GEMINI_API_KEY, model=Config.GEMINI_MODEL))


def save_rgb(path, rgb):
    cv2.imwrite(str(path), cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))


def load_frame(path):
    with open(path, 'rb') as f:
        return frame_from_bytes(f.read())


def analyze_image(args):
    """Scan one image file and print or save the detections."""
    frame = load_frame(args.image)
    analyzer, renderer = build_pipeline(args)

    start = time.time()
    detections = analyzer.analyze(frame)
    elapsed_ms = (time.time() - start) * 1000

    width, height = frame_size(frame)
    result = {
        'image': str(args.image),
        'profile': analyzer.profile.name,
        'width': width,
        'height': height,
        'detections': [d.to_dict() for d in detections],
        'analysis_time_ms': round(elapsed_ms, 2)
    }

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        print("\n" + "=" * 50)
        print("PLANT SCAN RESULT")
        print("=" * 50)
        print(f"Image:   {args.image} ({width}x{height})")
        print(f"Profile: {analyzer.profile.name}")
        print(f"Regions: {len(detections)} flagged in {elapsed_ms:.1f} ms")
        for d in detections:
            print(f"  ({d.x:4d},{d.y:4d}) {d.width}x{d.height}  "
                  f"{d.label:<10} {d.confidence:.0%}")

    if args.output:
        renderer.attach((width, height))
        renderer.render(detections, (width, height))
        save_rgb(args.output, renderer.composite(frame))
        logger.info(f"Overlay saved to {args.output}")

    return result


def diagnose_image(args):
    """Send one image to the AI service and print the diagnosis."""
    bridge = build_bridge()
    if bridge is None:
        logger.error("GEMINI_API_KEY is not set")
        return 1

    result = bridge.diagnose(load_frame(args.image), language=args.language)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print("\nDIAGNOSIS")
        print(result.diagnosis)
        if result.treatment:
            print("\nTREATMENT")
            print(result.treatment)
    return 0


def build_camera_scheduler(args):
    """CaptureScheduler for the local camera with the CLI's scan options."""
    return build_scheduler(
        profile_name=args.profile,
        sensitivity=args.sensitivity,
        demo_jitter=args.demo,
        camera_index=args.index,
        camera_width=args.width,
        camera_height=args.height,
        bridge=build_bridge(),
        language=args.language
    )


def print_diagnosis(future):
    try:
        result = future.result()
    except PlantCareError as e:
        logger.error(f"Diagnosis failed: {e.message}")
        return
    print("\n" + result.raw_text + "\n")


def run_camera(args):
    """Live camera window with the scan overlay."""
    scheduler = build_camera_scheduler(args)

    try:
        scheduler.start_camera()
        scheduler.start_scan()
        cv2.namedWindow(WINDOW_NAME)

        logger.info("Starting camera scan. Press 'q' to quit, 's' to save, "
                    "'p' to pause, 'd' to diagnose.")

        while True:
            frame = scheduler.read_frame()
            display = None
            if frame is not None:
                display = cv2.cvtColor(scheduler.renderer.composite(frame), cv2.COLOR_RGB2BGR)
                cv2.imshow(WINDOW_NAME, display)

            key = cv2.waitKey(1 if frame is not None else IDLE_WAIT_MS) & 0xFF
            if key == ord('q'):
                break
            elif key == ord('p'):
                state = scheduler.toggle_scan()
                logger.info("Scanning " + ("resumed" if state == ScannerState.SCANNING else "paused"))
            elif key == ord('s') and display is not None:
                filename = f"scan_{int(time.time())}.png"
                cv2.imwrite(filename, display)
                logger.info(f"Saved: {filename}")
            elif key == ord('d') and frame is not None:
                try:
                    scheduler.submit_diagnosis(frame).add_done_callback(print_diagnosis)
                except PlantCareError as e:
                    logger.warning(e.message)

    finally:
        cv2.destroyAllWindows()
        scheduler.close()


def run_server(args):
    """Run REST API server."""
    from plantcare.app import create_app

    app = create_app(args.config)
    logger.info(f"Starting server on http://0.0.0.0:{args.port}")
    app.run(host='0.0.0.0', port=args.port, debug=args.debug, threaded=True)


def add_scan_arguments(parser):
    parser.add_argument('--profile', type=str, default='sensitivity',
                        choices=['fixed', 'sensitivity'],
                        help='Scan profile (default: sensitivity)')
    parser.add_argument('--sensitivity', '-s', type=int, default=DEFAULT_SENSITIVITY,
                        help='Detection sensitivity 0-100 (default: 70)')
    parser.add_argument('--language', '-l', type=str, default='en',
                        choices=SUPPORTED_LANGUAGES)


def main(argv=None):
    """CLI entry point."""

    parser = argparse.ArgumentParser(
        description="PlantCare AI: live plant disease scanning",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Analyze command
    analyze_parser = subparsers.add_parser('analyze', help='Scan an image file')
    analyze_parser.add_argument('image', type=Path, help='Path to image')
    analyze_parser.add_argument('--output', '-o', type=Path, help='Save annotated image (PNG/JPG)')
    analyze_parser.add_argument('--grid-size', '-g', type=int, default=None)
    analyze_parser.add_argument('--json', action='store_true', help='Print JSON')
    add_scan_arguments(analyze_parser)

    # Diagnose command
    diagnose_parser = subparsers.add_parser('diagnose', help='AI diagnosis of an image')
    diagnose_parser.add_argument('image', type=Path, help='Path to image')
    diagnose_parser.add_argument('--language', '-l', type=str, default='en',
                                 choices=SUPPORTED_LANGUAGES)
    diagnose_parser.add_argument('--json', action='store_true', help='Print JSON')

    # Camera command
    camera_parser = subparsers.add_parser('camera', help='Live camera scan')
    camera_parser.add_argument('--index', '-i', type=int, default=int(os.getenv('CAMERA_INDEX', 0)))
    camera_parser.add_argument('--width', type=int, default=1280)
    camera_parser.add_argument('--height', type=int, default=720)
    camera_parser.add_argument('--demo', action='store_true',
                               help='Occasionally mark clean regions healthy (fixed profile)')
    add_scan_arguments(camera_parser)

    # Serve command
    serve_parser = subparsers.add_parser('serve', help='Run REST API server')
    serve_parser.add_argument('--port', '-p', type=int, default=int(os.getenv('PORT', 5000)))
    serve_parser.add_argument('--config', '-c', type=str, default=None,
                              choices=['development', 'testing', 'production'])
    serve_parser.add_argument('--debug', '-d', action='store_true')

    args = parser.parse_args(argv)

    setup_logger('plantcare', console_level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        if args.command == 'analyze':
            analyze_image(args)
        elif args.command == 'diagnose':
            return diagnose_image(args)
        elif args.command == 'camera':
            run_camera(args)
        elif args.command == 'serve':
            run_server(args)
        else:
            parser.print_help()
    except PlantCareError as e:
        logger.error(e.message)
        return 1
    except (OSError, ValueError) as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
