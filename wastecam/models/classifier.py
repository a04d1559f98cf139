"""
Inference adapter for the pre-trained waste classification model
- TFLite models (.tflite) via the TensorFlow Lite interpreter
- Keras models (.h5 / .keras) via keras.models.load_model
The model itself is opaque: tensor in, probability vector out
"""

import numpy as np
import logging
import time
from pathlib import Path
from typing import Callable, Optional, Tuple

from ..errors import InferenceError, ResourceError


class TFLiteModel:
    """TensorFlow Lite interpreter wrapper with uint8 quantization support"""

    def __init__(self, model_path: str):
        import tensorflow as tf

        self.interpreter = tf.lite.Interpreter(model_path=model_path)
        self.interpreter.allocate_tensors()
        self.input_details = self.interpreter.get_input_details()
        self.output_details = self.interpreter.get_output_details()
        self.input_shape = tuple(int(d) for d in self.input_details[0]['shape'])
        self.input_scale, self.input_zero = self._get_scale_zero(self.input_details[0])
        self.output_scale, self.output_zero = self._get_scale_zero(self.output_details[0])

    @staticmethod
    def _get_scale_zero(detail) -> Tuple[float, int]:
        scale, zero = detail.get('quantization', (0.0, 0))
        return float(scale or 1.0), int(zero or 0)

    def predict(self, tensor: np.ndarray) -> np.ndarray:
        if self.input_details[0]['dtype'] == np.uint8:
            # Map [0,1] floats into the quantized domain
            tensor = np.clip(np.round(tensor / self.input_scale + self.input_zero), 0, 255).astype(np.uint8)
        else:
            tensor = tensor.astype(self.input_details[0]['dtype'])

        self.interpreter.set_tensor(self.input_details[0]['index'], tensor)
        self.interpreter.invoke()
        output = self.interpreter.get_tensor(self.output_details[0]['index'])

        if self.output_details[0]['dtype'] == np.uint8:
            output = (output.astype(np.float32) - self.output_zero) * self.output_scale
        return output

    def close(self):
        self.interpreter = None


class KerasModel:
    """Keras model wrapper, loaded without compilation"""

    def __init__(self, model_path: str):
        from tensorflow import keras

        self.model = keras.models.load_model(model_path, compile=False)
        shape = self.model.input_shape
        self.input_shape = tuple(1 if d is None else int(d) for d in shape)

    def predict(self, tensor: np.ndarray) -> np.ndarray:
        return self.model.predict(tensor, verbose=0)

    def close(self):
        self.model = None


def load_model_file(model_path: str):
    """Pick a model wrapper by file extension"""
    suffix = Path(model_path).suffix.lower()
    if suffix == '.tflite':
        return TFLiteModel(model_path)
    if suffix in ('.h5', '.hdf5', '.keras'):
        return KerasModel(model_path)
    raise ValueError(f"Unsupported model format: {suffix or model_path}")


class ModelHandle:
    """
    A loaded model

    Created once by InferenceAdapter.load, read-only afterwards and
    released exactly once.
    """

    def __init__(self, model, input_shape: Tuple[int, ...], source: str):
        self.model = model
        self.input_shape = tuple(input_shape)
        self.source = source
        self.inference_count = 0
        self._released = False

    @property
    def loaded(self) -> bool:
        return self.model is not None and not self._released

    def close(self) -> bool:
        """Release the model, returns False if already released"""
        if self._released:
            return False

        self._released = True
        model, self.model = self.model, None
        close = getattr(model, 'close', None)
        if close is not None:
            close()
        return True

    def __repr__(self) -> str:
        state = "loaded" if self.loaded else "released"
        return f"ModelHandle(source={self.source!r}, input_shape={self.input_shape}, {state})"


class InferenceAdapter:
    """
    Thin wrapper around the opaque classification model

    Usage:
        adapter = InferenceAdapter("models/model_unquant.tflite")
        handle = adapter.load()
        probabilities = adapter.infer(handle, tensor)
        adapter.release(handle)
    """

    def __init__(self, model_path: Optional[str], image_size: int = 224, num_classes: int = 4,
                 loader: Optional[Callable] = None, slow_inference_seconds: float = 1.0):
        """
        Initialize inference adapter

        Args:
            model_path: Path to .tflite, .h5 or .keras model
            image_size: Expected model input height and width
            num_classes: Expected length of the output vector
            loader: Callable taking model_path and returning an object with
                predict(tensor), input_shape and optionally close()
            slow_inference_seconds: Inference calls slower than this are logged
        """
        self.model_path = model_path
        self.image_size = image_size
        self.num_classes = num_classes
        self.loader = loader or load_model_file
        self.slow_inference_seconds = slow_inference_seconds
        self.logger = logging.getLogger(__name__)

    @property
    def expected_input_shape(self) -> Tuple[int, int, int, int]:
        return (1, self.image_size, self.image_size, 3)

    def load(self) -> ModelHandle:
        """
        Load the model

        Raises:
            ResourceError: if the model cannot be loaded or expects another input shape
        """
        if not self.model_path:
            raise ResourceError("No model path configured")
        if self.loader is load_model_file and not Path(self.model_path).exists():
            raise ResourceError(f"Model not found at {self.model_path}")

        try:
            model = self.loader(self.model_path)
        except Exception as e:
            raise ResourceError(f"Failed to load model {self.model_path}: {e}") from e

        input_shape = tuple(getattr(model, 'input_shape', self.expected_input_shape))
        if input_shape != self.expected_input_shape:
            close = getattr(model, 'close', None)
            if close is not None:
                close()
            raise ResourceError(
                f"Model {self.model_path} expects input {input_shape}, "
                f"configured for {self.expected_input_shape}"
            )

        self.logger.info(f"Loaded classification model: {self.model_path}")
        return ModelHandle(model, input_shape, str(self.model_path))

    def infer(self, handle: Optional[ModelHandle], tensor: np.ndarray) -> np.ndarray:
        """
        Run the model on one input tensor

        Args:
            handle: Loaded model handle
            tensor: float32 array matching the model input shape

        Returns:
            1-D float32 probability vector of length num_classes
        """
        if handle is None or not handle.loaded:
            raise InferenceError("Model is not loaded")

        if tuple(tensor.shape) != handle.input_shape:
            raise InferenceError(
                f"Tensor shape {tuple(tensor.shape)} does not match model input {handle.input_shape}"
            )

        start_time = time.time()
        try:
            output = handle.model.predict(tensor)
        except Exception as e:
            raise InferenceError(f"Model inference failed: {e}") from e
        elapsed = time.time() - start_time

        handle.inference_count += 1
        if elapsed > self.slow_inference_seconds:
            self.logger.warning(f"Slow inference: {elapsed:.2f}s")

        probabilities = np.asarray(output, dtype=np.float32).reshape(-1)
        if probabilities.size != self.num_classes:
            raise InferenceError(
                f"Model returned {probabilities.size} scores, expected {self.num_classes}"
            )
        return probabilities

    def release(self, handle: Optional[ModelHandle]):
        """Release the model handle, safe to call more than once"""
        if handle is None:
            return
        if handle.close():
            self.logger.info(f"Released model {handle.source} after {handle.inference_count} inferences")
