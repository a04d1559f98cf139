from __future__ import annotations

import cv2
import numpy as np
import pytest

from wastecam.camera_interface import Frame
from wastecam.errors import EncodingError
from wastecam.models.encoder import TensorEncoder


def test_encode_shape_and_range(make_frame) -> None:
    rng = np.random.default_rng(0)
    pixels = rng.integers(0, 256, size=(224, 224, 3), dtype=np.uint8)
    tensor = TensorEncoder().encode(Frame(data=pixels))

    assert tensor.shape == (1, 224, 224, 3)
    assert tensor.dtype == np.float32
    assert tensor.size == 224 * 224 * 3
    assert tensor.min() >= 0.0 and tensor.max() <= 1.0


def test_all_white_and_all_black(make_frame) -> None:
    encoder = TensorEncoder()
    assert np.all(encoder.encode(make_frame(255)) == 1.0)
    assert np.all(encoder.encode(make_frame(0)) == 0.0)


def test_channel_order_is_rgb_row_major() -> None:
    pixels = np.zeros((2, 2, 3), dtype=np.uint8)
    pixels[0, 1] = (255, 0, 51)
    tensor = TensorEncoder(image_size=2).encode(Frame(data=pixels))

    flat = tensor.reshape(-1)
    # Pixel (row 0, col 1) starts at flat index 3
    assert flat[3] == pytest.approx(1.0)
    assert flat[4] == pytest.approx(0.0)
    assert flat[5] == pytest.approx(0.2)


def test_resize_stage_brings_frame_to_model_size() -> None:
    pixels = np.full((480, 640, 3), 255, dtype=np.uint8)
    tensor = TensorEncoder(image_size=224).encode(Frame(data=pixels))
    assert tensor.shape == (1, 224, 224, 3)
    assert np.allclose(tensor, 1.0)


def test_size_mismatch_without_resize_fails() -> None:
    pixels = np.zeros((100, 120, 3), dtype=np.uint8)
    with pytest.raises(EncodingError):
        TensorEncoder(image_size=224, resize=False).encode(Frame(data=pixels))


def test_decodes_jpeg_bytes() -> None:
    bgr = np.zeros((224, 224, 3), dtype=np.uint8)
    bgr[:, :, 2] = 255  # red in BGR
    ok, buffer = cv2.imencode(".png", bgr)
    assert ok

    tensor = TensorEncoder().encode(Frame(data=buffer.tobytes()))
    assert tensor[0, 0, 0, 0] == pytest.approx(1.0)
    assert tensor[0, 0, 0, 2] == pytest.approx(0.0)


@pytest.mark.parametrize("payload", [b"", b"not an image at all"])
def test_corrupt_bytes_raise_encoding_error(payload: bytes) -> None:
    with pytest.raises(EncodingError):
        TensorEncoder().encode(Frame(data=payload))


def test_grayscale_and_alpha_frames() -> None:
    encoder = TensorEncoder(image_size=4)
    gray = encoder.encode(Frame(data=np.full((4, 4), 255, dtype=np.uint8)))
    rgba = encoder.encode(Frame(data=np.zeros((4, 4, 4), dtype=np.uint8)))
    assert gray.shape == rgba.shape == (1, 4, 4, 3)
    assert np.all(gray == 1.0)


def test_bad_shape_and_values_rejected() -> None:
    encoder = TensorEncoder(image_size=4)
    with pytest.raises(EncodingError):
        encoder.encode(Frame(data=np.zeros((4, 4, 2), dtype=np.uint8)))
    with pytest.raises(EncodingError):
        encoder.encode(Frame(data=np.full((4, 4, 3), 300.0)))
    with pytest.raises(EncodingError):
        encoder.encode(Frame(data="pixels"))  # type: ignore[arg-type]


def test_invalid_image_size() -> None:
    with pytest.raises(ValueError):
        TensorEncoder(image_size=0)
