"""Camera frame source: exclusive device ownership and latest-frame capture."""

import logging
import threading
import time
from typing import Any, Dict, List, Optional

import cv2
import numpy as np

from ..core.entities import Facing, Frame
from ..core.exceptions import CameraAccessError

logger = logging.getLogger(__name__)

# device index -> owning CameraFrameSource
_device_owners: Dict[int, "CameraFrameSource"] = {}
_device_owners_lock = threading.Lock()


class CameraFrameSource:
    """Wraps one camera stream and exposes its newest frame on demand."""

    def __init__(self, back_camera_index: int = 0, front_camera_index: int = 1,
                 width: int = 1280, height: int = 720, fps: int = 30,
                 max_cameras_probe: int = 4):
        """Initialize frame source.

        Args:
            back_camera_index: Device index used for the back (environment) camera
            front_camera_index: Device index used for the front (user) camera
            width: Requested frame width
            height: Requested frame height
            fps: Requested frames per second
            max_cameras_probe: Number of device indices probed by device_count()
        """
        self.camera_indices = {Facing.BACK: back_camera_index, Facing.FRONT: front_camera_index}
        self.width = width
        self.height = height
        self.target_fps = fps
        self.max_cameras_probe = max_cameras_probe

        self._capture: Optional[cv2.VideoCapture] = None
        self._device_index: Optional[int] = None
        self._facing: Optional[Facing] = None
        self._is_streaming = False
        self._stream_thread: Optional[threading.Thread] = None
        self._current_frame: Optional[Frame] = None
        self._frame_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._release_count = 0

    @classmethod
    def from_config(cls, config) -> "CameraFrameSource":
        return cls(
            back_camera_index=config.back_camera_index,
            front_camera_index=config.front_camera_index,
            width=config.camera_width,
            height=config.camera_height,
            fps=config.camera_fps,
            max_cameras_probe=config.max_cameras_probe,
        )

    @property
    def facing(self) -> Optional[Facing]:
        return self._facing

    @property
    def release_count(self) -> int:
        """How many times hardware was actually released."""
        return self._release_count

    def start(self, facing: Facing) -> int:
        """Acquire the camera for ``facing`` and start capturing.

        Returns:
            The device index now held by this source

        Raises:
            CameraAccessError: Device busy, missing or permission denied
        """
        with self._lifecycle_lock:
            if self._is_streaming:
                raise CameraAccessError("Frame source already streaming; stop it before starting again")

            index = self.camera_indices[facing]
            self._claim_device(index)
            capture = None
            try:
                capture = cv2.VideoCapture(index)
                if not capture.isOpened():
                    raise CameraAccessError(f"Failed to open camera {index} ({facing.value})")

                capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
                capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
                capture.set(cv2.CAP_PROP_FPS, self.target_fps)
            except Exception as e:
                if capture is not None:
                    capture.release()
                self._release_device(index)
                if isinstance(e, CameraAccessError):
                    raise
                raise CameraAccessError(f"Error opening camera {index}: {e}") from e

            actual_width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
            actual_height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
            logger.info(f"Camera opened: {actual_width}x{actual_height} - index {index} ({facing.value})")

            self._capture = capture
            self._device_index = index
            self._facing = facing
            self._is_streaming = True

            self._stream_thread = threading.Thread(target=self._stream_loop, name=f"camera-{index}", daemon=True)
            self._stream_thread.start()
            return index

    def stop(self) -> None:
        """Stop streaming and release the device. No frame is delivered after this returns."""
        with self._lifecycle_lock:
            if not self._is_streaming:
                return

            self._is_streaming = False
            if self._stream_thread and self._stream_thread.is_alive() and self._stream_thread is not threading.current_thread():
                self._stream_thread.join(timeout=2.0)
                if self._stream_thread.is_alive():
                    logger.warning("Capture thread did not exit within 2s")
            self._stream_thread = None
            self._cleanup()
            logger.info("Stream stopped")

    def current_frame(self) -> Optional[Frame]:
        """Return the most recent frame, or None if none has been captured yet."""
        with self._frame_lock:
            return self._current_frame

    def is_streaming(self) -> bool:
        return self._is_streaming

    def _stream_loop(self) -> None:
        """Capture loop running on its own thread."""
        frame_delay = 1.0 / max(1, self.target_fps)

        while self._is_streaming:
            loop_start = time.time()
            try:
                ret, pixels = self._capture.read()
                if ret and pixels is not None:
                    self._publish(pixels)
                else:
                    logger.debug("Failed to read frame from camera")
                    time.sleep(0.05)
            except Exception as e:
                logger.error(f"Error in stream loop: {e}")
                time.sleep(0.1)

            sleep_time = frame_delay - (time.time() - loop_start)
            if sleep_time > 0:
                time.sleep(sleep_time)

    def _publish(self, pixels: np.ndarray) -> None:
        frame = Frame.from_array(pixels)
        with self._frame_lock:
            # stop() may have run while read() was blocking
            if not self._is_streaming:
                return
            self._current_frame = frame

    def _cleanup(self) -> None:
        with self._frame_lock:
            self._current_frame = None

        if self._capture is not None:
            self._capture.release()
            self._capture = None
            self._release_count += 1

        if self._device_index is not None:
            self._release_device(self._device_index)
            self._device_index = None

    def _claim_device(self, index: int) -> None:
        with _device_owners_lock:
            owner = _device_owners.get(index)
            if owner is not None and owner is not self:
                raise CameraAccessError(f"Camera {index} is busy (held by another frame source)")
            _device_owners[index] = self

    def _release_device(self, index: int) -> None:
        with _device_owners_lock:
            if _device_owners.get(index) is self:
                del _device_owners[index]

    def device_count(self) -> int:
        """Number of camera devices that can currently be opened."""
        return len(self.list_available_cameras(self.max_cameras_probe))

    @staticmethod
    def list_available_cameras(max_cameras: int = 4) -> List[Dict[str, Any]]:
        """List available camera devices.

        Devices held by a running frame source are reported without probing.

        Returns:
            List of dictionaries: {'index': int, 'name': str, 'width': int, 'height': int}
        """
        cameras = []

        for i in range(max_cameras):
            with _device_owners_lock:
                owner = _device_owners.get(i)
            if owner is not None:
                cameras.append({'index': i, 'name': f"Camera {i}", 'width': owner.width, 'height': owner.height})
                continue

            cap = None
            try:
                cap = cv2.VideoCapture(i)
                if cap.isOpened():
                    cameras.append({
                        'index': i,
                        'name': f"Camera {i}",
                        'width': int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                        'height': int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
                    })
            except Exception as e:
                logger.debug(f"Failed to check camera {i}: {e}")
            finally:
                if cap is not None:
                    cap.release()

        return cameras
