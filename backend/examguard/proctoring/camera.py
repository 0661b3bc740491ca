"""
Server-side view of the examinee's webcam.

The browser owns the real media stream; it reports whether camera
permission was granted and pushes still frames as data URIs. The session
treats this object as its camera: acquiring fails when permission was
denied, capturing returns the most recent pushed frame, releasing drops
the frame and stops accepting new ones.
"""
import base64
import binascii
import logging
import re
from typing import Optional

from .interfaces import CameraUnavailableError

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>image/[a-zA-Z0-9.+-]+);base64,(?P<data>[A-Za-z0-9+/=\s]+)$")


class InvalidFrameError(ValueError):
    pass


def validate_frame(data_uri: str, max_bytes: int) -> str:
    """Checks a ``data:image/...;base64,...`` frame and returns its MIME type."""
    match = DATA_URI_PATTERN.match(data_uri or "")
    if not match:
        raise InvalidFrameError("Frame must be a base64 image data URI")
    try:
        raw = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise InvalidFrameError(f"Frame is not valid base64: {e}")
    if not raw:
        raise InvalidFrameError("Frame is empty")
    if len(raw) > max_bytes:
        raise InvalidFrameError(f"Frame exceeds {max_bytes} bytes")
    return match.group("mime")


class BrowserCamera:

    def __init__(self, permission_granted: bool = True, max_frame_bytes: int = 2 * 1024 * 1024):
        self.permission_granted = permission_granted
        self.max_frame_bytes = max_frame_bytes
        self._active = False
        self._latest_frame: Optional[str] = None
        self.frames_received = 0

    @property
    def active(self) -> bool:
        return self._active

    def report_permission(self, granted: bool) -> None:
        self.permission_granted = granted
        if not granted:
            self._active = False
            self._latest_frame = None

    def push_frame(self, data_uri: str) -> bool:
        """Stores a frame from the browser. Returns False when no stream is held."""
        validate_frame(data_uri, self.max_frame_bytes)
        if not self._active:
            return False
        self._latest_frame = data_uri
        self.frames_received += 1
        return True

    def acquire(self) -> "BrowserCamera":
        if not self.permission_granted:
            raise CameraUnavailableError("Camera permission was not granted")
        self._active = True
        return self

    def capture_frame(self, stream: "BrowserCamera") -> Optional[str]:
        if not self.permission_granted:
            raise CameraUnavailableError("Camera permission was revoked")
        if not self._active:
            raise CameraUnavailableError("Camera stream is not active")
        return self._latest_frame

    def release(self, stream: "BrowserCamera") -> None:
        self._active = False
        self._latest_frame = None
        logger.debug("Camera stream released")
