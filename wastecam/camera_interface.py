"""
Camera Interface for Raspberry Pi and Simulation
Supports Pi Camera, USB cameras, video files and simulated mode for development,
plus a keep-latest frame source that feeds the classification worker
"""

import cv2
import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple, Union
import logging
import threading
import time
import os
from pathlib import Path
import random

try:
    from picamera2 import Picamera2
    PICAMERA2_AVAILABLE = True
except ImportError:
    PICAMERA2_AVAILABLE = False


@dataclass(frozen=True, eq=False)
class Frame:
    """
    One captured image

    Attributes:
        data: RGB uint8 array of shape (h, w, 3), or encoded JPEG/PNG bytes
        frame_id: Monotonically increasing counter from the source
        timestamp: UNIX timestamp of capture
    """
    data: Union[np.ndarray, bytes]
    frame_id: int = 0
    timestamp: float = 0.0

    @property
    def shape(self) -> Optional[Tuple[int, ...]]:
        if isinstance(self.data, np.ndarray):
            return self.data.shape
        return None

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixels"""
        if isinstance(self.data, np.ndarray):
            payload = f"shape={self.data.shape}"
        else:
            payload = f"bytes={len(self.data)}"
        return f"Frame(frame_id={self.frame_id}, timestamp={self.timestamp:.3f}, {payload})"


class CameraInterface:
    """
    Unified camera interface supporting:
    - Raspberry Pi Camera (via picamera2)
    - USB/Webcam (via OpenCV)
    - Video files (looped)
    - Simulated mode with sample images

    Captured frames are converted to RGB.
    """

    def __init__(self, source='auto', resolution=(640, 480), fps=30,
                 sample_dir: Optional[str] = None):
        """
        Initialize camera interface

        Args:
            source: 'auto', 'pi', 'usb', 'simulated', video file path, or device index
            resolution: (width, height) tuple
            fps: Target frames per second
            sample_dir: Directory of .jpg/.png images for simulated mode
        """
        self.resolution = tuple(resolution)
        self.fps = fps
        self.camera = None
        self.camera_type = None
        self.is_recording = False
        self.frames_captured = 0
        self.sample_dir = Path(sample_dir) if sample_dir else Path("data") / "samples"

        self.logger = logging.getLogger(__name__)
        self.setup_sample_images()

        if source == 'auto':
            self.auto_detect_camera()
        else:
            self.setup_camera(source)

    def setup_sample_images(self):
        """Setup sample images for simulated mode - REAL IMAGES ONLY"""
        self.sample_images = []

        if not self.sample_dir.is_dir():
            self.logger.debug(f"Sample directory {self.sample_dir} does not exist")
            return

        for img_path in sorted(self.sample_dir.iterdir()):
            if img_path.suffix.lower() not in ('.jpg', '.jpeg', '.png'):
                continue
            try:
                img = cv2.imread(str(img_path))
                if img is not None:
                    img = cv2.resize(img, self.resolution)
                    self.sample_images.append(cv2.cvtColor(img, cv2.COLOR_BGR2RGB))
                    self.logger.info(f"Loaded sample image: {img_path.name}")
            except cv2.error as e:
                self.logger.warning(f"Failed to load sample image {img_path}: {e}")

        if not self.sample_images:
            self.logger.warning(f"No sample images found in {self.sample_dir}. Add .jpg files for simulation mode.")
            self.logger.warning("Simulation mode will return None frames until images are added.")

    def auto_detect_camera(self):
        """Automatically detect available camera"""
        if PICAMERA2_AVAILABLE and self._test_pi_camera():
            self.setup_camera('pi')
        elif self._test_usb_camera():
            self.setup_camera('usb')
        else:
            self.logger.warning("No cameras detected, using simulation mode")
            self.setup_camera('simulated')

    def _test_pi_camera(self) -> bool:
        """Test if Pi camera is available"""
        try:
            picam2 = Picamera2()
            picam2.configure(picam2.create_preview_configuration())
            picam2.start()
            time.sleep(0.1)
            picam2.stop()
            picam2.close()
            return True
        except Exception:
            return False

    def _test_usb_camera(self) -> bool:
        """Test if USB camera is available"""
        cap = cv2.VideoCapture(0)
        try:
            if cap.isOpened():
                ret, frame = cap.read()
                return ret and frame is not None
            return False
        finally:
            cap.release()

    def setup_camera(self, source):
        """Setup camera based on source type"""
        try:
            if source == 'pi' and PICAMERA2_AVAILABLE:
                self._setup_pi_camera()
            elif source == 'usb' or isinstance(source, int):
                self._setup_usb_camera(source)
            elif isinstance(source, str) and source.isdigit():
                self._setup_usb_camera(int(source))
            elif isinstance(source, str) and source != 'simulated' and os.path.exists(source):
                self._setup_video_file(source)
            else:
                self._setup_simulated_camera()
        except (RuntimeError, FileNotFoundError, cv2.error) as e:
            self.logger.error(f"Failed to setup camera {source}: {e}")
            self._setup_simulated_camera()

    def _setup_pi_camera(self):
        """Setup Raspberry Pi camera"""
        try:
            self.camera = Picamera2()
            config = self.camera.create_preview_configuration(
                main={"size": self.resolution, "format": "RGB888"}
            )
            self.camera.configure(config)
            self.camera.start()
            self.camera_type = 'pi'
            self.logger.info("Pi Camera initialized successfully")
            time.sleep(2)  # Allow camera to warm up
        except Exception as e:
            raise RuntimeError(f"Pi Camera setup failed: {e}") from e

    def _setup_usb_camera(self, source='usb'):
        """Setup USB/webcam"""
        device_id = 0 if source == 'usb' else source
        self.camera = cv2.VideoCapture(device_id)
        self.camera.set(cv2.CAP_PROP_FRAME_WIDTH, self.resolution[0])
        self.camera.set(cv2.CAP_PROP_FRAME_HEIGHT, self.resolution[1])
        self.camera.set(cv2.CAP_PROP_FPS, self.fps)

        if not self.camera.isOpened():
            self.camera.release()
            self.camera = None
            raise RuntimeError(f"Failed to open camera {device_id}")

        self.camera_type = 'usb'
        self.logger.info(f"USB Camera {device_id} initialized successfully")

    def _setup_simulated_camera(self):
        """Setup simulated camera mode"""
        self.camera = None
        self.camera_type = 'simulated'
        self.logger.info("Simulated camera mode initialized")

    def _setup_video_file(self, video_path):
        """Setup video file as camera source"""
        if not os.path.exists(video_path):
            raise FileNotFoundError(f"Video file not found: {video_path}")

        self.camera = cv2.VideoCapture(video_path)
        if not self.camera.isOpened():
            raise RuntimeError(f"Could not open video file: {video_path}")

        self.camera_type = 'video'
        self.video_path = video_path
        self.video_fps = self.camera.get(cv2.CAP_PROP_FPS)
        self.frame_count = int(self.camera.get(cv2.CAP_PROP_FRAME_COUNT))
        self.current_frame = 0

        self.logger.info(f"Video file initialized: {video_path}")
        self.logger.info(f"Video specs: {self.frame_count} frames at {self.video_fps:.1f} FPS")

    def capture_frame(self) -> Optional[Frame]:
        """
        Capture a single frame

        Returns:
            RGB Frame or None if capture fails
        """
        try:
            if self.camera_type == 'pi':
                pixels = self._capture_pi_frame()
            elif self.camera_type == 'usb':
                pixels = self._capture_usb_frame()
            elif self.camera_type == 'video':
                pixels = self._capture_video_frame()
            else:
                pixels = self._capture_simulated_frame()
        except Exception as e:
            self.logger.error(f"Frame capture failed: {e}")
            return None

        if pixels is None:
            return None

        self.frames_captured += 1
        return Frame(data=pixels, frame_id=self.frames_captured, timestamp=time.time())

    def _capture_pi_frame(self) -> Optional[np.ndarray]:
        """Capture frame from Pi camera"""
        # RGB888 arrives in BGR byte order
        frame = self.camera.capture_array()
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def _capture_usb_frame(self) -> Optional[np.ndarray]:
        """Capture frame from USB camera"""
        ret, frame = self.camera.read()
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB) if ret else None

    def _capture_video_frame(self) -> Optional[np.ndarray]:
        """Capture frame from video file"""
        ret, frame = self.camera.read()
        if not ret:
            # End of video - loop back to start
            self.camera.set(cv2.CAP_PROP_POS_FRAMES, 0)
            self.current_frame = 0
            ret, frame = self.camera.read()
            if not ret:
                return None

        self.current_frame += 1
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def _capture_simulated_frame(self) -> Optional[np.ndarray]:
        """Get simulated frame from sample images only"""
        if not self.sample_images:
            return None

        # Return random sample with slight variations
        base_img = random.choice(self.sample_images)

        # Add minimal temporal variation to simulate slight camera movement
        noise = np.random.randint(-5, 5, base_img.shape, dtype=np.int16)
        return np.clip(base_img.astype(np.int16) + noise, 0, 255).astype(np.uint8)

    def start_recording(self):
        """Start continuous recording mode"""
        self.is_recording = True
        self.logger.info("Started recording mode")

    def stop_recording(self):
        """Stop recording mode"""
        self.is_recording = False
        self.logger.info("Stopped recording mode")

    def get_camera_info(self) -> dict:
        """Get camera information"""
        info = {
            "type": self.camera_type,
            "resolution": self.resolution,
            "fps": self.fps,
            "is_recording": self.is_recording,
            "frames_captured": self.frames_captured,
            "available": self.camera is not None or self.camera_type == 'simulated'
        }

        if self.camera_type == 'video':
            info.update({
                "video_path": getattr(self, 'video_path', None),
                "video_fps": getattr(self, 'video_fps', None),
                "frame_count": getattr(self, 'frame_count', None),
                "current_frame": getattr(self, 'current_frame', None)
            })

        return info

    def release(self):
        """Release camera resources"""
        try:
            if self.camera_type == 'pi' and self.camera:
                self.camera.stop()
                self.camera.close()
            elif self.camera_type in ('usb', 'video') and self.camera:
                self.camera.release()
        except Exception as e:
            self.logger.error(f"Failed to release camera: {e}")
        finally:
            self.camera = None
            self.logger.info("Camera resources released")

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.release()


class FrameSlot:
    """
    Single-slot handoff between the capture thread and the worker

    Holds at most one pending frame. A newer frame replaces a pending one
    and the replaced frame is counted as dropped.
    """

    def __init__(self):
        self._frame: Optional[Frame] = None
        self._closed = False
        self._condition = threading.Condition()
        self.frames_put = 0
        self.frames_dropped = 0

    def put(self, frame: Frame) -> bool:
        """
        Offer a frame

        Returns:
            True if a pending frame was replaced
        """
        with self._condition:
            replaced = self._frame is not None
            if replaced:
                self.frames_dropped += 1
            self._frame = frame
            self.frames_put += 1
            self._condition.notify()
            return replaced

    def take(self, timeout: Optional[float] = None) -> Optional[Frame]:
        """Remove and return the pending frame, waiting up to timeout seconds"""
        with self._condition:
            if self._frame is None and not self._closed:
                self._condition.wait_for(lambda: self._frame is not None or self._closed, timeout)
            frame, self._frame = self._frame, None
            return frame

    def pending(self) -> int:
        with self._condition:
            return 0 if self._frame is None else 1

    def close(self):
        """Wake any waiting consumer"""
        with self._condition:
            self._closed = True
            self._condition.notify_all()

    def reopen(self):
        with self._condition:
            self._closed = False


class LatestFrameSource:
    """
    Continuous frame source with keep-latest backpressure

    A background thread captures from the camera into a FrameSlot.
    When the consumer falls behind, intermediate frames are dropped.
    """

    def __init__(self, camera: CameraInterface, fps: Optional[float] = None):
        """
        Initialize frame source

        Args:
            camera: Camera to capture from
            fps: Capture rate limit for simulated and video sources, defaults to camera fps
        """
        self.camera = camera
        self.fps = fps or camera.fps
        self.slot = FrameSlot()
        self.logger = logging.getLogger(__name__)

        self._latest: Optional[Frame] = None
        self._latest_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def frames_received(self) -> int:
        return self.slot.frames_put

    @property
    def frames_dropped(self) -> int:
        return self.slot.frames_dropped

    def start(self):
        """Start the capture thread"""
        if self.running:
            self.logger.warning("Frame source is already running")
            return

        self._stop_event.clear()
        self.slot.reopen()
        self.camera.start_recording()
        self._thread = threading.Thread(target=self._capture_loop, name="frame-source", daemon=True)
        self._thread.start()
        self.logger.info(f"Frame source started ({self.camera.camera_type})")

    def stop(self):
        """Stop the capture thread and wake any waiting consumer"""
        self._stop_event.set()
        self.slot.close()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        self._thread = None

        self.camera.stop_recording()
        self.logger.info(
            f"Frame source stopped ({self.frames_received} received, {self.frames_dropped} dropped)"
        )

    def push(self, frame: Frame):
        """Deliver a frame to the consumer, replacing any pending one"""
        with self._latest_lock:
            self._latest = frame
        if self.slot.put(frame):
            self.logger.debug(f"Dropped stale frame, keeping {frame.frame_id}")

    def next_frame(self, timeout: Optional[float] = None) -> Optional[Frame]:
        """Most recent undelivered frame, or None if none arrives within timeout"""
        return self.slot.take(timeout)

    def latest(self) -> Optional[Frame]:
        """Most recently captured frame for preview, consumed or not"""
        with self._latest_lock:
            return self._latest

    def _capture_loop(self):
        interval = 1.0 / self.fps if self.fps else 0.0
        paced = self.camera.camera_type in ('simulated', 'video')

        while not self._stop_event.is_set():
            frame = self.camera.capture_frame()
            if frame is None:
                self.logger.debug("No frame captured")
                self._stop_event.wait(max(interval, 0.1))
                continue

            self.push(frame)

            if paced and interval:
                self._stop_event.wait(interval)
