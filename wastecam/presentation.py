"""
Presentation layer
The classification worker never touches display state: it posts notices to a
PresentationChannel and the UI-owning thread drains them into a sink
"""

import cv2
import numpy as np
import logging
import queue
import time
from dataclasses import dataclass, field
from typing import List, Optional

from .camera_interface import Frame

LABEL = "label"
ERROR = "error"
STATUS = "status"


@dataclass(frozen=True)
class Notice:
    """One message from the worker to the presentation thread"""
    kind: str
    text: str
    created: float = field(default_factory=time.time)


class PresentationChannel:
    """Thread-safe handoff from the worker to the presentation thread"""

    def __init__(self, maxsize: int = 0):
        self._queue: "queue.Queue[Notice]" = queue.Queue(maxsize=maxsize)
        self.labels_posted = 0
        self.errors_posted = 0
        self.statuses_posted = 0

    def post_label(self, text: str):
        self.labels_posted += 1
        self._queue.put(Notice(LABEL, text))

    def post_error(self, message: str):
        self.errors_posted += 1
        self._queue.put(Notice(ERROR, message))

    def post_status(self, text: str):
        """Persistent state shown until a label replaces it"""
        self.statuses_posted += 1
        self._queue.put(Notice(STATUS, text))

    def drain(self) -> List[Notice]:
        """Remove and return every pending notice without blocking"""
        notices = []
        while True:
            try:
                notices.append(self._queue.get_nowait())
            except queue.Empty:
                return notices

    def dispatch(self, sink) -> int:
        """
        Deliver pending notices to a sink

        Call only from the thread that owns the sink.

        Returns:
            Number of notices delivered
        """
        notices = self.drain()
        for notice in notices:
            if notice.kind == LABEL:
                sink.display_label(notice.text)
            elif notice.kind == STATUS:
                sink.display_status(notice.text)
            else:
                sink.display_error(notice.text)
        return len(notices)


class LogSink:
    """Headless sink: reports labels and errors through logging and stdout"""

    def __init__(self, echo: bool = True):
        self.echo = echo
        self.current_label: Optional[str] = None
        self.status: Optional[str] = None
        self.errors: List[str] = []
        self.logger = logging.getLogger(__name__)

    def display_label(self, text: str):
        if text != self.current_label:
            self.logger.info(f"Label: {text}")
            if self.echo:
                print(f"Detected: {text}")
        self.current_label = text

    def display_error(self, message: str):
        self.errors.append(message)
        self.logger.warning(f"Error notice: {message}")
        if self.echo:
            print(f"Error: {message}")

    def display_status(self, text: str):
        self.status = text
        self.logger.info(f"Status: {text}")
        if self.echo:
            print(f"Status: {text}")


class WindowSink:
    """
    OpenCV preview window

    Shows the live preview with the current label, errors as a banner
    that disappears after error_display_seconds, and a persistent status
    line while no label is available.
    """

    def __init__(self, window_name: str = "Waste Classifier", error_display_seconds: float = 2.0,
                 placeholder_size=(640, 480)):
        self.window_name = window_name
        self.error_display_seconds = error_display_seconds
        self.placeholder_size = tuple(placeholder_size)
        self.current_label: Optional[str] = None
        self.status: Optional[str] = None
        self.error_message: Optional[str] = None
        self.error_until = 0.0
        self.window_shown = False
        self.gui_available = True
        self.logger = logging.getLogger(__name__)

    def display_label(self, text: str):
        self.current_label = text

    def display_error(self, message: str):
        self.logger.warning(f"Error notice: {message}")
        self.error_message = message
        self.error_until = time.time() + self.error_display_seconds

    def display_status(self, text: str):
        self.logger.info(f"Status: {text}")
        self.status = text

    def headline(self) -> str:
        """Text for the top bar"""
        return self.current_label or self.status or "Scanning..."

    def draw(self, image: np.ndarray) -> np.ndarray:
        """
        Draw label, status and transient error banner on an RGB image

        Returns:
            BGR image ready for cv2.imshow
        """
        result_image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
        width = result_image.shape[1]

        if self.current_label is None and self.status:
            # Solid bar so the status stays readable
            cv2.rectangle(result_image, (0, 0), (width, 50), (0, 0, 160), -1)
        else:
            overlay = result_image.copy()
            cv2.rectangle(overlay, (0, 0), (width, 50), (0, 0, 0), -1)
            cv2.addWeighted(overlay, 0.45, result_image, 0.55, 0, result_image)
        cv2.putText(result_image, self.headline()[:60], (10, 35),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.8, (255, 255, 255), 2)

        if self.error_message and time.time() < self.error_until:
            height = result_image.shape[0]
            cv2.rectangle(result_image, (0, height - 40), (width, height), (0, 0, 160), -1)
            cv2.putText(result_image, self.error_message[:80], (10, height - 14),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1)

        return result_image

    def placeholder(self) -> np.ndarray:
        """Blank RGB image shown until the camera delivers a frame"""
        width, height = self.placeholder_size
        return np.zeros((height, width, 3), dtype=np.uint8)

    def render(self, frame: Optional[Frame]) -> bool:
        """
        Show the preview frame, or a placeholder while there is none

        Returns:
            False when the user asked to quit (q or Esc)
        """
        if not self.gui_available:
            time.sleep(0.05)
            return True

        if frame is not None and isinstance(frame.data, np.ndarray):
            image = frame.data
        else:
            image = self.placeholder()

        try:
            cv2.imshow(self.window_name, self.draw(image))
            self.window_shown = True
            key = cv2.waitKey(1) & 0xFF
        except cv2.error as e:
            self.logger.error(f"Preview window unavailable, continuing without it: {e}")
            self.gui_available = False
            return True

        return key not in (ord('q'), 27)

    def close(self):
        if not self.window_shown:
            return
        try:
            cv2.destroyWindow(self.window_name)
        except cv2.error as e:
            self.logger.warning(f"Failed to close preview window: {e}")
        self.window_shown = False
