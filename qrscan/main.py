"""Command-line entry point for the QR scanner."""

import argparse
import logging
import sys
import threading
import time
import webbrowser
from typing import List, Optional

import cv2
import numpy as np

from .backends.yolo_backend import YoloBackend
from .config.settings import Config, load_config
from .core.constants import APP_NAME, VERSION
from .core.entities import Facing, ScannerStatus, ScanState
from .core.exceptions import ConfigError
from .core.logging_config import configure_logging
from .services.inference_service import Detector
from .services.scan_pipeline import ScanPipeline
from .services.webcam_service import CameraFrameSource
from .utils.image_utils import mirror_horizontally

logger = logging.getLogger(__name__)

WINDOW_NAME = "QR Scanner"


def build_pipeline(config: Config, navigator=None) -> ScanPipeline:
    """Wire the camera, model and pipeline services from configuration."""
    frame_source = CameraFrameSource.from_config(config)
    detector = Detector(YoloBackend(device=config.device), config.model_path, config.input_size)
    return ScanPipeline.from_config(config, frame_source, detector, navigator=navigator)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=APP_NAME, description="Scan QR codes from a camera and open decoded URLs.")
    parser.add_argument("--config", default="config.json", help="Path to config.json")
    parser.add_argument("--model", help="Detection model path (overrides config)")
    parser.add_argument("--facing", choices=[f.value for f in Facing], help="Camera to start with")
    parser.add_argument("--device", help="Torch device, e.g. cpu or cuda:0")
    parser.add_argument("--no-preview", action="store_true", help="Run without a preview window")
    parser.add_argument("--no-open", action="store_true", help="Print decoded URLs instead of opening them")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser.parse_args(argv)


def apply_cli_overrides(config: Config, args: argparse.Namespace) -> Config:
    if args.model:
        config.model_path = args.model
    if args.facing:
        config.default_facing = args.facing
    if args.device:
        config.device = args.device
    if args.log_level:
        config.log_level = args.log_level
    if args.no_open:
        config.open_urls = False
    return config


def print_status(status: ScannerStatus) -> None:
    parts = [status.status_text or "-"]
    if not status.ready and status.progress:
        parts.append(f"{status.progress}%")
    if status.error:
        parts.append(f"error: {status.error}")
    print(f"[{status.scan_state.value}] " + " | ".join(parts), flush=True)


def run_headless(pipeline: ScanPipeline) -> int:
    """Scan until a URL is opened or the user interrupts."""
    pipeline.initialize(blocking=True)
    if not pipeline.status.ready:
        return 1
    if not pipeline.start():
        return 1

    try:
        while pipeline.scan_state is not ScanState.IDLE:
            time.sleep(0.1)
    except KeyboardInterrupt:
        print("\nInterrupted")
    finally:
        pipeline.stop()
    return 0


def run_preview(pipeline: ScanPipeline) -> int:
    """Show the live camera frame. Keys: s start/stop, c switch camera, q quit."""
    pipeline.initialize()
    auto_started = False
    blank = np.zeros((480, 640, 3), dtype=np.uint8)

    try:
        while True:
            status = pipeline.status
            if status.ready and not auto_started:
                auto_started = True
                pipeline.start()

            frame = pipeline.frame_source.current_frame()
            if frame is not None and pipeline.is_scanning():
                image = frame.pixels
                if pipeline.session.facing is Facing.FRONT:
                    image = mirror_horizontally(image)
                else:
                    image = image.copy()
            else:
                image = blank.copy()

            if status.status_text:
                cv2.putText(image, status.status_text, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 0), 2)
            if status.error:
                cv2.putText(image, status.error, (10, 60), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 0, 255), 2)
            cv2.imshow(WINDOW_NAME, image)

            key = cv2.waitKey(30) & 0xFF
            if key == ord('q'):
                break
            elif key == ord('s') and status.ready:
                if pipeline.is_scanning():
                    pipeline.stop()
                else:
                    pipeline.start()
            elif key == ord('c'):
                threading.Thread(target=pipeline.switch_camera, name="camera-switch", daemon=True).start()
    except KeyboardInterrupt:
        pass
    finally:
        pipeline.stop()
        cv2.destroyAllWindows()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = apply_cli_overrides(load_config(args.config), args)

    configure_logging(
        log_level=config.log_level,
        log_dir=config.log_dir,
        enable_file_logging=config.enable_file_logging,
        structured_logging=config.structured_logging,
    )

    navigator = webbrowser.open_new_tab if config.open_urls else (lambda url: print(f"URL: {url}", flush=True))
    try:
        pipeline = build_pipeline(config, navigator=navigator)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2
    pipeline.subscribe(print_status)

    try:
        if args.no_preview:
            return run_headless(pipeline)
        return run_preview(pipeline)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
