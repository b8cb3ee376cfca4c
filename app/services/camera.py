import logging
import threading
from typing import Callable, Optional

import cv2

from app.exceptions.scan import CameraUnavailable
from app.schemas.scan import CapturedImage

logger = logging.getLogger(__name__)


class CameraSource:
    """
    Exclusive handle on one video device.

    The device is held only between `open()` and the next `capture()` or
    `release()`; both paths leave it closed. Device calls run under one lock,
    so a second `open()` never replaces a handle that was not released.
    """

    def __init__(self, camera_index: int = 0, jpeg_quality: int = 80,
                 capture_factory: Callable[[int], "cv2.VideoCapture"] = cv2.VideoCapture):
        self.camera_index = camera_index
        self.jpeg_quality = jpeg_quality
        self.capture_factory = capture_factory
        self._cam: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._cam is not None

    def open(self):
        with self._lock:
            if self._cam is not None:
                return
            cam = self.capture_factory(self.camera_index)
            if not cam.isOpened():
                cam.release()
                logger.warning(f"⚠️ Camera {self.camera_index} could not be opened")
                raise CameraUnavailable(f"Camera {self.camera_index} is not available")
            self._cam = cam
        logger.info(f"📷 Camera {self.camera_index} opened")

    def capture(self) -> CapturedImage:
        with self._lock:
            if self._cam is None:
                raise CameraUnavailable("Camera stream is not open")
            try:
                ok, frame = self._cam.read()
                if not ok or frame is None:
                    raise CameraUnavailable("Camera returned no frame")
                # Native stream resolution, no resize
                ok, encoded = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality])
                if not ok:
                    raise CameraUnavailable("Frame could not be encoded")
            finally:
                self._release_locked()
        return CapturedImage(data=encoded.tobytes(), mime_type="image/jpeg", source="camera")

    def release(self):
        with self._lock:
            self._release_locked()

    def _release_locked(self):
        if self._cam is not None:
            self._cam.release()
            self._cam = None
            logger.info(f"Camera {self.camera_index} released")


def capture_from_file(file_bytes: bytes, content_type: Optional[str] = None) -> Optional[CapturedImage]:
    """Wrap an uploaded file. An empty upload means nothing was selected."""
    if not file_bytes:
        return None
    return CapturedImage(data=file_bytes, mime_type=content_type or "image/jpeg", source="file")
