from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from wastecam.errors import InferenceError, ResourceError
from wastecam.models.classifier import InferenceAdapter, load_model_file

from .conftest import FakeModel


def _tensor(size: int = 224) -> np.ndarray:
    return np.zeros((1, size, size, 3), dtype=np.float32)


def test_infer_returns_flat_vector(fake_model, loader_for) -> None:
    adapter = InferenceAdapter("stub", loader=loader_for(fake_model))
    handle = adapter.load()

    probabilities = adapter.infer(handle, _tensor())
    assert probabilities.shape == (4,)
    assert probabilities.dtype == np.float32
    assert handle.inference_count == 1


def test_infer_after_release_fails(fake_model, loader_for) -> None:
    adapter = InferenceAdapter("stub", loader=loader_for(fake_model))
    handle = adapter.load()
    adapter.release(handle)

    assert fake_model.closed
    assert not handle.loaded
    with pytest.raises(InferenceError):
        adapter.infer(handle, _tensor())
    assert fake_model.calls == 0


def test_release_is_idempotent(fake_model, loader_for) -> None:
    adapter = InferenceAdapter("stub", loader=loader_for(fake_model))
    handle = adapter.load()
    adapter.release(handle)
    adapter.release(handle)
    adapter.release(None)
    assert "released" in repr(handle)


def test_infer_without_handle_fails() -> None:
    adapter = InferenceAdapter("stub")
    with pytest.raises(InferenceError, match="not loaded"):
        adapter.infer(None, _tensor())


def test_shape_mismatch(fake_model, loader_for) -> None:
    adapter = InferenceAdapter("stub", loader=loader_for(fake_model))
    handle = adapter.load()
    with pytest.raises(InferenceError, match="does not match"):
        adapter.infer(handle, _tensor(100))


def test_wrong_output_length(loader_for) -> None:
    model = FakeModel(outputs=[[0.2, 0.8]])
    adapter = InferenceAdapter("stub", loader=loader_for(model))
    with pytest.raises(InferenceError, match="expected 4"):
        adapter.infer(adapter.load(), _tensor())


def test_model_failure_wrapped(loader_for) -> None:
    model = FakeModel(outputs=[RuntimeError("boom")])
    adapter = InferenceAdapter("stub", loader=loader_for(model))
    with pytest.raises(InferenceError, match="boom"):
        adapter.infer(adapter.load(), _tensor())


def test_missing_model_file(tmp_path: Path) -> None:
    adapter = InferenceAdapter(str(tmp_path / "missing.tflite"))
    with pytest.raises(ResourceError, match="not found"):
        adapter.load()


def test_no_model_path() -> None:
    with pytest.raises(ResourceError):
        InferenceAdapter(None).load()


def test_loader_exception_becomes_resource_error() -> None:
    def _broken(_path: str) -> FakeModel:
        raise OSError("corrupt file")

    with pytest.raises(ResourceError, match="corrupt file"):
        InferenceAdapter("stub", loader=_broken).load()


def test_input_shape_checked_at_load(loader_for) -> None:
    model = FakeModel(input_shape=(1, 100, 100, 3))
    with pytest.raises(ResourceError, match="expects input"):
        InferenceAdapter("stub", loader=loader_for(model)).load()
    assert model.closed


def test_unsupported_extension(tmp_path: Path) -> None:
    path = tmp_path / "model.onnx"
    path.write_bytes(b"")
    with pytest.raises(ValueError):
        load_model_file(str(path))
    with pytest.raises(ResourceError):
        InferenceAdapter(str(path)).load()


def test_slow_inference_logged(fake_model, loader_for, caplog: pytest.LogCaptureFixture) -> None:
    adapter = InferenceAdapter("stub", loader=loader_for(fake_model), slow_inference_seconds=-1.0)
    with caplog.at_level("WARNING"):
        adapter.infer(adapter.load(), _tensor())
    assert "Slow inference" in caplog.text
