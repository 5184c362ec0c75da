"""Detect-then-decode pipeline orchestration.

One ScanPipeline owns the scan session state machine::

    IDLE --start()--> SCANNING --URL decoded--> DETECTED --> IDLE
                        |  ^
                        |  +-- no detection / not decoded / plain text
                        +--stop()--> IDLE

Frame passes are completion-chained on a single worker thread: the next pass
is scheduled only after the previous one returned, so slow inference lowers
the frame rate instead of queueing work. ``process_frame`` is additionally
guarded by a non-blocking in-flight lock, so a pass triggered while another
is running is dropped. Every start/stop bumps a generation counter; a pass
acts on its result only if its generation is still current and the session is
still SCANNING.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

from ..core import constants
from ..core.entities import Facing, PassOutcome, ScannerState, ScannerStatus, ScanSession, ScanState
from ..core.exceptions import CameraAccessError, ConfigError, DecodeFailure, FrameUnavailable, InvalidRegion
from ..core.logging_config import CorrelationContext
from ..utils.geometry import round_half_up
from ..utils.validation import is_absolute_url
from .box_selector import BoxSelector
from .decoder_service import SymbolDecoder
from .preprocessing_service import Preprocessor
from .region_extractor import RegionExtractor

logger = logging.getLogger(__name__)

StatusListener = Callable[[ScannerStatus], None]
Navigator = Callable[[str], object]


class ScanPipeline:
    """Drives acquire -> preprocess -> detect -> select -> extract -> decode -> act."""

    def __init__(self, frame_source, detector,
                 preprocessor: Optional[Preprocessor] = None,
                 selector: Optional[BoxSelector] = None,
                 extractor: Optional[RegionExtractor] = None,
                 decoder: Optional[SymbolDecoder] = None,
                 navigator: Optional[Navigator] = None,
                 default_facing: Facing = Facing.BACK,
                 camera_switch_delay: float = 0.5,
                 frame_retry_delay: float = 0.05,
                 loop_interval: float = 0.0):
        """Initialize the pipeline.

        Args:
            frame_source: Object with start(facing), stop(), current_frame(), device_count()
            detector: Detector exposing state, is_ready(), load() and infer()
            preprocessor: Frame to tensor conversion
            selector: Raw rows to single Detection
            extractor: Detection to cropped Region
            decoder: Region pixels to DecodedSymbol
            navigator: Called once with the URL when a URL is decoded
            default_facing: Camera used by the first start()
            camera_switch_delay: Seconds between stopping and restarting the camera on switch
            frame_retry_delay: Back-off in seconds when no frame is available
            loop_interval: Pause in seconds between completed passes
        """
        self.frame_source = frame_source
        self.detector = detector
        self.preprocessor = preprocessor or Preprocessor(detector.input_size)
        self.selector = selector or BoxSelector()
        self.extractor = extractor or RegionExtractor()
        self.decoder = decoder or SymbolDecoder()
        self.navigator = navigator
        self.camera_switch_delay = camera_switch_delay
        self.frame_retry_delay = frame_retry_delay
        self.loop_interval = loop_interval

        self.session = ScanSession(active=False, facing=default_facing)
        self._scan_state = ScanState.IDLE
        self._switching = False
        self._generation = 0
        self._stop_event = threading.Event()
        self._loop_thread: Optional[threading.Thread] = None
        self._init_thread: Optional[threading.Thread] = None

        self._lock = threading.RLock()
        self._in_flight = threading.Lock()

        self._status = ScannerStatus()
        self._listeners: List[StatusListener] = []

    @classmethod
    def from_config(cls, config, frame_source, detector, navigator: Optional[Navigator] = None) -> "ScanPipeline":
        try:
            default_facing = Facing(config.default_facing)
        except ValueError as e:
            raise ConfigError(f"Invalid default_facing {config.default_facing!r}") from e
        return cls(
            frame_source=frame_source,
            detector=detector,
            preprocessor=Preprocessor(config.input_size),
            selector=BoxSelector(config.detection_threshold),
            extractor=RegionExtractor.from_config(config),
            decoder=SymbolDecoder(),
            navigator=navigator,
            default_facing=default_facing,
            camera_switch_delay=config.camera_switch_delay_ms / 1000.0,
            frame_retry_delay=config.frame_retry_ms / 1000.0,
            loop_interval=config.loop_interval_ms / 1000.0,
        )

    # ------------------------------------------------------------------ status

    @property
    def status(self) -> ScannerStatus:
        return self._status

    @property
    def scan_state(self) -> ScanState:
        return self._scan_state

    def is_scanning(self) -> bool:
        return self._scan_state is ScanState.SCANNING

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a status listener. Returns a function that unsubscribes it.

        Listeners run on whichever thread changed the status, while the
        pipeline state lock is held, so they see changes in order. They must
        not block.
        """
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return _unsubscribe

    def _update_status(self, **changes) -> None:
        with self._lock:
            new_status = replace(self._status, **changes)
            if new_status == self._status:
                return
            self._status = new_status
            for listener in list(self._listeners):
                try:
                    listener(new_status)
                except Exception as e:
                    logger.error(f"Error in status listener: {e}", exc_info=True)

    # ---------------------------------------------------------- initialization

    def initialize(self, blocking: bool = False) -> Optional[threading.Thread]:
        """Warm up the decoder, enumerate cameras and load the model.

        Progress is reported through the status listeners: 0% while loading
        dependencies, 20-100% while the model loads and warms up.
        """
        if not blocking:
            self._init_thread = threading.Thread(target=self._initialize, name="scanner-init", daemon=True)
            self._init_thread.start()
            return self._init_thread
        self._initialize()
        return None

    def wait_until_initialized(self, timeout: Optional[float] = None) -> ScannerState:
        if self._init_thread is not None:
            self._init_thread.join(timeout)
        return self.detector.state

    def _initialize(self) -> None:
        self._update_status(ready=False, status_text=constants.STATUS_LOADING_DEPENDENCIES, progress=0, error=None)
        self.decoder.warmup()

        try:
            camera_count = self.frame_source.device_count()
            self._update_status(has_multiple_cameras=camera_count > 1)
            logger.info(f"Found {camera_count} camera(s)")
        except Exception as e:
            logger.error(f"Error enumerating devices: {e}")
            self._update_status(error=constants.ERROR_CAMERA_ENUMERATION)

        self._update_status(status_text=constants.STATUS_LOADING_MODEL, progress=20)
        state = self.detector.load(self._on_model_progress)

        if state is ScannerState.READY:
            self._update_status(ready=True, status_text=constants.STATUS_READY, progress=100)
        else:
            self._update_status(ready=False, status_text=constants.STATUS_INIT_FAILED, progress=0,
                                error=self.detector.load_error)

    def _on_model_progress(self, fraction: float) -> None:
        progress = min(99, round_half_up(20 + fraction * 80))
        self._update_status(status_text=constants.STATUS_LOADING_MODEL, progress=progress)

    # ---------------------------------------------------------------- commands

    def start(self, run_loop: bool = True) -> bool:
        """Acquire the camera and begin scanning.

        Args:
            run_loop: Start the completion-chained frame loop thread. With
                False the caller drives passes through process_frame().

        Returns:
            True if the session is scanning after the call
        """
        with self._lock:
            if self._scan_state is ScanState.SCANNING:
                return True
            if self._scan_state is not ScanState.IDLE:
                return False
            if not self.detector.is_ready():
                logger.warning(f"Cannot start scanning, detector is {self.detector.state.value}")
                return False

            try:
                self.frame_source.start(self.session.facing)
            except CameraAccessError as e:
                logger.error(f"Error accessing camera: {e}")
                self._update_status(error=constants.ERROR_CAMERA_ACCESS, scan_state=ScanState.IDLE)
                return False

            self._generation += 1
            generation = self._generation
            self._stop_event = threading.Event()
            self._switching = False
            self._scan_state = ScanState.SCANNING
            self.session.active = True
            logger.info(f"Scan session {generation} started ({self.session.facing.value} camera)")
            self._update_status(status_text=constants.STATUS_SCANNING, error=None, scan_state=ScanState.SCANNING)

            if run_loop:
                self._loop_thread = threading.Thread(
                    target=self._run_loop, args=(generation, self._stop_event),
                    name=f"scan-loop-{generation}", daemon=True)
                self._loop_thread.start()
            return True

    def stop(self) -> None:
        """Force the session to IDLE. No-op when already idle.

        A pass still running when this returns has its result discarded.
        """
        with self._lock:
            if self._scan_state is not ScanState.SCANNING:
                return
            self._end_session()
            self.frame_source.stop()
            logger.info("Scanning stopped")
            self._update_status(status_text="", scan_state=ScanState.IDLE)

    def switch_camera(self) -> bool:
        """Restart the camera with the other facing mode.

        The old stream is fully stopped, then after ``camera_switch_delay``
        the new one is started. Only valid while SCANNING with more than one
        camera.
        """
        with self._lock:
            if self._scan_state is not ScanState.SCANNING or self._switching:
                logger.warning("Camera switch ignored, not scanning")
                return False
            if not self._status.has_multiple_cameras:
                logger.warning("Camera switch ignored, only one camera available")
                return False

            self._switching = True
            generation = self._generation
            stop_event = self._stop_event
            new_facing = self.session.facing.toggled()
            self.frame_source.stop()
            self._update_status(status_text=constants.STATUS_SWITCHING_CAMERA)

        # Settling delay; returns early if stop() ends the session meanwhile
        stop_event.wait(self.camera_switch_delay)

        with self._lock:
            if self._scan_state is not ScanState.SCANNING or generation != self._generation:
                logger.info("Camera switch abandoned, session ended")
                return False

            self.session.facing = new_facing
            try:
                self.frame_source.start(new_facing)
            except CameraAccessError as e:
                logger.error(f"Error accessing camera after switch: {e}")
                self._end_session()
                self._update_status(status_text="", error=constants.ERROR_CAMERA_ACCESS, scan_state=ScanState.IDLE)
                return False

            self._switching = False
            logger.info(f"Switched to {new_facing.value} camera")
            self._update_status(status_text=constants.STATUS_SCANNING)
            return True

    def shutdown(self) -> None:
        self.stop()

    def _end_session(self) -> None:
        """Invalidate the running session. Caller holds the lock."""
        self._generation += 1
        self._stop_event.set()
        self._switching = False
        self._scan_state = ScanState.IDLE
        self.session.active = False

    # -------------------------------------------------------------- frame loop

    def _run_loop(self, generation: int, stop_event: threading.Event) -> None:
        with CorrelationContext(f"scan-{generation}"):
            logger.debug("Frame loop started")
            while not stop_event.is_set():
                outcome = self.process_frame()
                if outcome is PassOutcome.STALE:
                    break
                if outcome in (PassOutcome.NO_FRAME, PassOutcome.BUSY, PassOutcome.INACTIVE):
                    delay = self.frame_retry_delay
                else:
                    delay = self.loop_interval
                if delay > 0:
                    stop_event.wait(delay)
            logger.debug("Frame loop finished")

    def process_frame(self) -> PassOutcome:
        """Run one pass over the current frame.

        Returns BUSY without doing anything if another pass is in flight.
        Errors never escape; they degrade to an outcome and the next pass
        tries again.
        """
        if not self._in_flight.acquire(blocking=False):
            logger.debug("Pass already in flight, trigger dropped")
            return PassOutcome.BUSY
        try:
            return self._run_pass()
        finally:
            self._in_flight.release()

    def _run_pass(self) -> PassOutcome:
        with self._lock:
            if self._scan_state is not ScanState.SCANNING or self._switching:
                return PassOutcome.INACTIVE
            generation = self._generation
        if not self.detector.is_ready():
            return PassOutcome.INACTIVE

        text = None
        try:
            outcome, text = self._detect_and_decode()
        except FrameUnavailable as e:
            logger.debug(f"Skipping pass: {e}")
            return PassOutcome.NO_FRAME
        except InvalidRegion as e:
            logger.debug(f"Skipping decode: {e}")
            outcome = PassOutcome.INVALID_REGION
        except DecodeFailure:
            outcome = PassOutcome.NOT_DECODED
        except Exception as e:
            logger.error(f"Detection error: {e}", exc_info=True)
            return PassOutcome.ERROR

        return self._act(generation, outcome, text)

    def _detect_and_decode(self) -> Tuple[PassOutcome, Optional[str]]:
        frame = self.frame_source.current_frame()
        if frame is None:
            raise FrameUnavailable("camera has not delivered a frame")

        tensor = self.preprocessor.transform(frame)
        if tensor is None:
            raise FrameUnavailable("frame could not be converted to a tensor")
        try:
            rows = self.detector.infer(tensor)
        finally:
            del tensor

        detection = self.selector.select(rows)
        if detection is None:
            return PassOutcome.NO_DETECTION, None
        logger.debug(f"QR candidate at {detection.bbox} (confidence {detection.confidence:.3f})")

        region = self.extractor.extract(frame, detection)
        if region is None:
            raise InvalidRegion(f"crop for {detection.bbox} is empty")

        pixels = self.extractor.crop(frame, region)
        symbol = self.decoder.decode(pixels, region.width, region.height)
        if symbol is None:
            raise DecodeFailure("decoder found no symbol")

        if is_absolute_url(symbol.text):
            return PassOutcome.URL, symbol.text
        return PassOutcome.TEXT, symbol.text

    def _act(self, generation: int, outcome: PassOutcome, text: Optional[str]) -> PassOutcome:
        url_to_open = None
        with self._lock:
            if self._scan_state is not ScanState.SCANNING or generation != self._generation:
                logger.debug(f"Discarding {outcome.value} result from an ended session")
                return PassOutcome.STALE
            if self._switching:
                # Same session, frame came from the old camera
                logger.debug(f"Discarding {outcome.value} result from before the camera switch")
                return PassOutcome.INACTIVE

            if outcome is PassOutcome.NO_DETECTION:
                self._update_status(status_text=constants.STATUS_ADJUST_PLACEMENT)
            elif outcome in (PassOutcome.INVALID_REGION, PassOutcome.NOT_DECODED):
                self._update_status(status_text=constants.STATUS_NOT_DECODED)
            elif outcome is PassOutcome.TEXT:
                logger.info(f"Decoded text: {text}")
                self._update_status(status_text=constants.STATUS_DECODED_TEXT.format(text=text))
            elif outcome is PassOutcome.URL:
                logger.info(f"Decoded URL: {text}")
                self._scan_state = ScanState.DETECTED
                self._update_status(status_text=constants.STATUS_OPENING_URL.format(url=text),
                                    scan_state=ScanState.DETECTED)
                self._end_session()
                self.frame_source.stop()
                self._update_status(scan_state=ScanState.IDLE)
                url_to_open = text

        if url_to_open is not None:
            self._navigate(url_to_open)
        return outcome

    def _navigate(self, url: str) -> None:
        if self.navigator is None:
            logger.info(f"No navigator configured, not opening {url}")
            return
        try:
            self.navigator(url)
        except Exception as e:
            logger.error(f"Navigator failed to open {url}: {e}")
