"""
Frame to tensor encoding for the waste classifier
Decodes a frame into an RGB pixel grid, resizes it to the model input size
and normalizes every channel to [0, 1]
"""

import cv2
import numpy as np
import logging
from typing import Tuple

from ..camera_interface import Frame
from ..errors import EncodingError


class TensorEncoder:
    """
    Converts frames into (1, H, W, 3) float32 tensors

    Pixels are laid out row-major with channels in R, G, B order,
    each value divided by 255.
    """

    def __init__(self, image_size: int = 224, resize: bool = True):
        """
        Initialize encoder

        Args:
            image_size: Model input height and width
            resize: Resize frames of any other size, otherwise reject them
        """
        if image_size <= 0:
            raise ValueError(f"image_size must be positive, got {image_size}")
        self.image_size = int(image_size)
        self.resize = resize
        self.logger = logging.getLogger(__name__)

    @property
    def input_shape(self) -> Tuple[int, int, int, int]:
        return (1, self.image_size, self.image_size, 3)

    def decode(self, frame: Frame) -> np.ndarray:
        """
        Decode a frame into an (h, w, 3) uint8 RGB grid

        Raises:
            EncodingError: if the frame holds no usable pixel grid
        """
        data = frame.data
        if isinstance(data, (bytes, bytearray, memoryview)):
            pixels = self._decode_bytes(bytes(data))
        elif isinstance(data, np.ndarray):
            pixels = data
        else:
            raise EncodingError(f"Unsupported frame payload: {type(data).__name__}")

        if pixels.size == 0:
            raise EncodingError("Frame is empty")

        if pixels.ndim == 2:
            pixels = np.stack([pixels] * 3, axis=-1)
        elif pixels.ndim == 3 and pixels.shape[2] == 1:
            pixels = np.repeat(pixels, 3, axis=2)
        elif pixels.ndim == 3 and pixels.shape[2] == 4:
            pixels = pixels[:, :, :3]
        elif pixels.ndim != 3 or pixels.shape[2] != 3:
            raise EncodingError(f"Frame has unexpected shape {pixels.shape}")

        if pixels.dtype != np.uint8:
            if not np.issubdtype(pixels.dtype, np.number):
                raise EncodingError(f"Frame has non-numeric dtype {pixels.dtype}")
            if not np.all(np.isfinite(pixels)) or pixels.min() < 0 or pixels.max() > 255:
                raise EncodingError("Frame values outside 0..255")
            pixels = pixels.astype(np.uint8)

        return pixels

    def _decode_bytes(self, payload: bytes) -> np.ndarray:
        """Decode JPEG/PNG bytes into an RGB grid"""
        if not payload:
            raise EncodingError("Frame buffer is empty")

        image = cv2.imdecode(np.frombuffer(payload, dtype=np.uint8), cv2.IMREAD_COLOR)
        if image is None:
            raise EncodingError(f"Could not decode {len(payload)} byte frame")

        return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

    def fit(self, pixels: np.ndarray) -> np.ndarray:
        """Bring a pixel grid to image_size x image_size"""
        height, width = pixels.shape[:2]
        if (height, width) == (self.image_size, self.image_size):
            return pixels

        if not self.resize:
            raise EncodingError(
                f"Frame is {width}x{height}, expected "
                f"{self.image_size}x{self.image_size}"
            )

        self.logger.debug(f"Resizing frame {width}x{height} -> {self.image_size}x{self.image_size}")
        return cv2.resize(pixels, (self.image_size, self.image_size),
                          interpolation=cv2.INTER_AREA)

    def encode(self, frame: Frame) -> np.ndarray:
        """
        Encode a frame into the model input tensor

        Args:
            frame: Frame to encode

        Returns:
            float32 array of shape (1, image_size, image_size, 3) in [0, 1]
        """
        pixels = self.fit(self.decode(frame))

        # Normalize pixel values (0-1)
        normalized = pixels.astype(np.float32) / 255.0

        # Add batch dimension
        return np.expand_dims(normalized, axis=0)
